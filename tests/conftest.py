"""
pytest configuration and shared fixtures for the Store Density API tests.

Key concern: tests must not reach Nominatim, Overpass or Gemini.
We achieve this by:
  1. Ensuring AI_MOCK_MODE=true so GeminiClient returns canned responses.
  2. Wiring the orchestrator to the in-memory fakes in tests/fakes.py.
  3. Overriding the get_orchestrator dependency for API tests, so each
     test gets its own session (store) instead of the app's.
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("AI_MOCK_MODE", "true")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("PRELOAD_REGIONS_STR", "")

from fakes import FakePredictionService, default_sources  # noqa: E402

from densitymap.services.hex_indexer import HexIndexer  # noqa: E402
from densitymap.services.orchestrator import AnalysisOrchestrator  # noqa: E402


@pytest.fixture()
def indexer():
    return HexIndexer(resolution=7)


@pytest.fixture()
def sources():
    return default_sources()


@pytest.fixture()
def predictor():
    return FakePredictionService()


@pytest.fixture()
def orchestrator(sources, predictor, indexer):
    boundary, points = sources
    orch = AnalysisOrchestrator(
        boundary_source=boundary,
        point_source=points,
        prediction_service=predictor,
        indexer=indexer,
    )
    predictor.orchestrator = orch
    return orch


@pytest.fixture()
async def client(orchestrator):
    """
    HTTPX async test client wired to the FastAPI app with a fake-backed session.

    Usage:
        async def test_something(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from densitymap.core.rate_limit import limiter
    from densitymap.core.session import get_orchestrator
    from densitymap.main import app

    # Reset in-memory rate-limit counters so tests are independent.
    limiter.reset()

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
