"""
Health check endpoint.

Used by:
  - Docker HEALTHCHECK instruction
  - Load balancers / orchestrators
  - Front-end to check API connectivity

Returns status + AI mode + cache size so callers can tell "API down" from
"API up but hotspot prediction not configured".
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from densitymap.ai.gemini_client import GeminiClient
from densitymap.core.config import settings
from densitymap.core.session import get_orchestrator
from densitymap.services.orchestrator import AnalysisOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    environment: str
    ai_mode: str  # "mock" | "real" | "unconfigured"
    h3_resolution: int
    cached_regions: int


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check(
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> HealthResponse:
    """
    Returns the liveness status of the API.

    The API is considered healthy (HTTP 200) even when Gemini is not
    configured — analysis still works, only hotspot prediction is disabled.
    """
    client = getattr(orchestrator.prediction_service, "client", None)
    if isinstance(client, GeminiClient):
        mock_mode, configured = client.mock_mode, client.configured
    else:
        mock_mode = settings.ai_mock_mode
        configured = mock_mode or bool(settings.gemini_api_key)

    if mock_mode:
        ai_mode = "mock"
    elif configured:
        ai_mode = "real"
    else:
        ai_mode = "unconfigured"

    return HealthResponse(
        status="ok",
        version="0.1.0",
        environment=settings.environment,
        ai_mode=ai_mode,
        h3_resolution=orchestrator.indexer.resolution,
        cached_regions=len(orchestrator.store),
    )
