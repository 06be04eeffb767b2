"""
analysis.py — Store-density analysis routes.

Routes:
  POST /api/v1/analysis                    — analyse a batch of regions (cached per session)
  GET  /api/v1/analysis                    — session state for the summary panel
  PUT  /api/v1/analysis/active             — switch the active region (no refetch)
  GET  /api/v1/analysis/{region}           — full analysis: cells, box, center, hotspot
  GET  /api/v1/analysis/{region}/grid      — GeoJSON hex grid for the choropleth layer
  POST /api/v1/analysis/{region}/hotspot   — Gemini hotspot prediction, stored on the analysis

HOW THE DATA FLOWS
──────────────────
1. The map UI posts the region names from the input form.
2. The orchestrator serves cached regions directly and runs
   Nominatim → Overpass → H3 aggregation for the rest, one region at a time.
3. The UI renders the active region via /{region}/grid and reads totals
   from the summary list.
4. "Predict hotspot" posts to /{region}/hotspot; the prediction is attached
   to the cached analysis and appears in later /{region} responses.

Engine errors (RegionNotFound, ServiceError, ...) are not caught here:
main.py registers one JSON handler for the whole DensityMapError family.

TESTING YOUR CHANGES
─────────────────────
  pytest tests/test_analysis_routes.py -v

  curl -X POST http://localhost:8000/api/v1/analysis \\
       -H "Content-Type: application/json" -d '{"regions": ["Lagos", "Rivers"]}'
  curl http://localhost:8000/api/v1/analysis/Lagos/grid
"""

import logging

from fastapi import APIRouter, Depends, Request

from densitymap.core.errors import RegionNotFound
from densitymap.core.rate_limit import ANALYSIS_LIMIT, HOTSPOT_LIMIT, limiter
from densitymap.core.session import get_orchestrator
from densitymap.models.analysis import (
    AnalyzeRequest,
    AnalyzeResponse,
    PredictionOut,
    RegionAnalysisOut,
    RegionSummary,
    SelectRegionRequest,
    SessionStateOut,
)
from densitymap.models.geo import RegionAnalysis
from densitymap.services.orchestrator import AnalysisOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/analysis", tags=["analysis"])


def _cached_or_404(orchestrator: AnalysisOrchestrator, region: str) -> RegionAnalysis:
    analysis = orchestrator.store.get(region)
    if analysis is None:
        raise RegionNotFound(f"No cached analysis for {region}", region_name=region, phase="lookup")
    return analysis


@router.post("", response_model=AnalyzeResponse)
@limiter.limit(ANALYSIS_LIMIT)
async def analyze_regions(
    request: Request,
    payload: AnalyzeRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """
    Analyse the requested regions in order.

    Cached regions are returned without contacting upstream services.
    If any region fails, the whole request fails (see the error handler in
    main.py) and no partial results are returned.
    """
    names = [name.strip() for name in payload.regions if name.strip()]
    results = await orchestrator.analyze_regions(names)
    return AnalyzeResponse(
        results=[RegionSummary.from_analysis(a) for a in results],
        active_region=orchestrator.active_region,
    )


@router.get("", response_model=SessionStateOut)
async def get_session_state(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    """Loading state, active region and the last batch's summaries."""
    last_error = orchestrator.last_error
    return SessionStateOut(
        state=orchestrator.state.value,
        status_message=orchestrator.status_message,
        active_region=orchestrator.active_region,
        results=[RegionSummary.from_analysis(a) for a in orchestrator.results],
        cached_regions=orchestrator.store.region_names(),
        pending_predictions=sorted(orchestrator.pending_predictions),
        last_error=last_error.to_dict() if last_error else None,
    )


@router.put("/active", response_model=RegionSummary)
async def select_region(
    payload: SelectRegionRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    analysis = orchestrator.select_region(payload.region)
    return RegionSummary.from_analysis(analysis)


@router.get("/{region}", response_model=RegionAnalysisOut)
async def get_region(region: str, orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    return RegionAnalysisOut.from_analysis(_cached_or_404(orchestrator, region))


@router.get("/{region}/grid")
async def get_region_grid(region: str, orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    """
    GeoJSON FeatureCollection with one hexagon polygon per occupied cell.

    Coordinates are [lon, lat] per RFC 7946; each ring is closed.
    Feature properties carry `cell_id` and `count` for choropleth styling.
    """
    analysis = _cached_or_404(orchestrator, region)
    indexer = orchestrator.indexer

    features = []
    for cell in analysis.cells.values():
        ring = [[p.lon, p.lat] for p in indexer.boundary_of(cell.cell_id)]
        ring.append(ring[0])
        features.append({
            "type": "Feature",
            "geometry": {"type": "Polygon", "coordinates": [ring]},
            "properties": {"cell_id": cell.cell_id, "count": cell.count},
        })

    return {
        "type": "FeatureCollection",
        "features": features,
        "properties": {
            "region": analysis.region_name,
            "resolution": indexer.resolution,
            "max_count": analysis.densest_cell.count if analysis.densest_cell else 0,
        },
    }


@router.post("/{region}/hotspot", response_model=PredictionOut)
@limiter.limit(HOTSPOT_LIMIT)
async def predict_hotspot(
    request: Request,
    region: str,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """
    Ask Gemini for a new commercial hotspot in an already-analysed region.

    Predictions are advisory. A failure leaves the cached analysis untouched.
    """
    prediction = await orchestrator.request_hotspot(region)
    return PredictionOut.from_prediction(prediction)
