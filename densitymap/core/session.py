"""
Analysis session wiring.

Architecture decision: the API process hosts one analysis session. Its
orchestrator (and the RegionAnalysisStore it owns) is built in the
lifespan hook and kept on app.state, not in a module-level global, so
tests can build as many isolated sessions as they need.

FastAPI's dependency injection (get_orchestrator) gives routes clean
access; tests override it with an orchestrator wired to fake sources.
"""

import logging
from typing import Optional

from fastapi import Request

from densitymap.ai.gemini_client import GeminiClient
from densitymap.ai.hotspot_predictor import GeminiHotspotPredictor
from densitymap.core.config import Settings, settings as default_settings
from densitymap.services.hex_indexer import HexIndexer
from densitymap.services.orchestrator import AnalysisOrchestrator
from densitymap.sources.nominatim import NominatimBoundarySource
from densitymap.sources.overpass import OverpassPointSource

logger = logging.getLogger(__name__)


def build_orchestrator(settings: Optional[Settings] = None) -> AnalysisOrchestrator:
    """Create a fresh session wired to the real upstream adapters."""
    cfg = settings or default_settings
    orchestrator = AnalysisOrchestrator(
        boundary_source=NominatimBoundarySource(
            base_url=cfg.nominatim_url,
            country=cfg.country,
            timeout=cfg.http_timeout_s,
        ),
        point_source=OverpassPointSource(
            base_url=cfg.overpass_url,
            query_timeout=cfg.overpass_timeout_s,
            timeout=cfg.http_timeout_s,
        ),
        prediction_service=GeminiHotspotPredictor(
            client=GeminiClient(api_key=cfg.gemini_api_key, mock_mode=cfg.ai_mock_mode),
            sample_size=cfg.hotspot_sample_size,
            seed=cfg.hotspot_sample_seed,
            country=cfg.country,
        ),
        indexer=HexIndexer(cfg.h3_resolution),
    )
    logger.info("Analysis session ready (H3 resolution %d)", cfg.h3_resolution)
    return orchestrator


def get_orchestrator(request: Request) -> AnalysisOrchestrator:
    """
    FastAPI dependency — inject the session orchestrator into route handlers.

    Usage in a route:
        async def my_route(orchestrator = Depends(get_orchestrator)):
            analysis = orchestrator.store.get("Lagos")
    """
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        # Lifespan did not run (e.g. ASGITransport in tests): build lazily.
        orchestrator = build_orchestrator()
        request.app.state.orchestrator = orchestrator
    return orchestrator
