"""
analysis.py — Pydantic schemas for the analysis API.

AnalyzeRequest      — what the client sends to start a batch
RegionSummary       — totals shown in the summary panel (no cells)
RegionAnalysisOut   — full analysis for the map: cells, box, center, hotspot
SessionStateOut     — loading state, active region, visible results

The engine works on the frozen dataclasses in models/geo.py; the
from_analysis() helpers convert at the API boundary.
"""

from typing import Optional

from pydantic import BaseModel, Field

from densitymap.models.geo import HexCell, Prediction, RegionAnalysis


class PointOut(BaseModel):
    lat: float
    lon: float


class HexCellOut(BaseModel):
    cell_id: str
    count: int = Field(ge=1)
    lat: float   # cell center
    lon: float

    @classmethod
    def from_cell(cls, cell: HexCell) -> "HexCellOut":
        return cls(cell_id=cell.cell_id, count=cell.count, lat=cell.lat, lon=cell.lon)


class PredictionOut(BaseModel):
    lat: float
    lon: float
    reasoning: str

    @classmethod
    def from_prediction(cls, prediction: Prediction) -> "PredictionOut":
        return cls(lat=prediction.lat, lon=prediction.lon, reasoning=prediction.reasoning)


# ── Requests ──────────────────────────────────────────────────────────────────

class AnalyzeRequest(BaseModel):
    """Payload for POST /api/v1/analysis."""
    regions: list[str] = Field(..., min_length=1, max_length=37)


class SelectRegionRequest(BaseModel):
    """Payload for PUT /api/v1/analysis/active."""
    region: str = Field(..., min_length=1, max_length=100)


# ── Responses ─────────────────────────────────────────────────────────────────

class RegionSummary(BaseModel):
    region_name: str
    total_points: int
    cell_count: int
    average_density: float
    densest_cell: Optional[HexCellOut] = None
    has_hotspot: bool = False

    @classmethod
    def from_analysis(cls, analysis: RegionAnalysis) -> "RegionSummary":
        densest = analysis.densest_cell
        return cls(
            region_name=analysis.region_name,
            total_points=analysis.total_points,
            cell_count=len(analysis.cells),
            average_density=analysis.average_density,
            densest_cell=HexCellOut.from_cell(densest) if densest else None,
            has_hotspot=analysis.hotspot is not None,
        )


class RegionAnalysisOut(RegionSummary):
    cells: dict[str, HexCellOut]
    bounding_box: tuple[float, float, float, float]   # south, west, north, east
    center: PointOut
    hotspot: Optional[PredictionOut] = None

    @classmethod
    def from_analysis(cls, analysis: RegionAnalysis) -> "RegionAnalysisOut":
        summary = RegionSummary.from_analysis(analysis)
        return cls(
            **summary.model_dump(exclude={"densest_cell"}),
            densest_cell=summary.densest_cell,
            cells={cid: HexCellOut.from_cell(c) for cid, c in analysis.cells.items()},
            bounding_box=tuple(analysis.bounding_box),
            center=PointOut(lat=analysis.center.lat, lon=analysis.center.lon),
            hotspot=PredictionOut.from_prediction(analysis.hotspot) if analysis.hotspot else None,
        )


class AnalyzeResponse(BaseModel):
    """Response body for POST /api/v1/analysis."""
    results: list[RegionSummary]
    active_region: Optional[str] = None


class SessionStateOut(BaseModel):
    """Response body for GET /api/v1/analysis."""
    state: str                 # idle | fetching_boundary | ... | done | failed
    status_message: str
    active_region: Optional[str] = None
    results: list[RegionSummary]
    cached_regions: list[str]
    pending_predictions: list[str]
    last_error: Optional[dict] = None
