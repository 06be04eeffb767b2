"""
test_analysis_routes.py — Tests for the /api/v1/analysis routes.

The `client` fixture (conftest.py) overrides get_orchestrator with a
session wired to in-memory fakes, so no request leaves the process.
"""

from unittest.mock import patch

import pytest

from densitymap.core.errors import InvalidResponse, ServiceError, ServiceUnavailable
from densitymap.models.geo import GeoPoint, Prediction


async def _analyze(client, *regions):
    return await client.post("/api/v1/analysis", json={"regions": list(regions)})


class TestAnalyzeEndpoint:

    async def test_returns_summaries(self, client):
        r = await _analyze(client, "Lagos", "Rivers")
        assert r.status_code == 200
        data = r.json()
        assert [s["region_name"] for s in data["results"]] == ["Lagos", "Rivers"]
        assert data["active_region"] == "Lagos"

    async def test_summary_fields(self, client):
        summary = (await _analyze(client, "Lagos")).json()["results"][0]
        assert summary["total_points"] == 3
        assert summary["cell_count"] in (1, 2)
        assert summary["densest_cell"]["count"] >= 2
        assert summary["has_hotspot"] is False
        assert "cells" not in summary

    async def test_blank_names_ignored(self, client, sources):
        boundary, _ = sources
        r = await _analyze(client, " Lagos ", "  ")
        assert r.status_code == 200
        assert boundary.calls == ["Lagos"]

    async def test_empty_list_rejected(self, client):
        r = await client.post("/api/v1/analysis", json={"regions": []})
        assert r.status_code == 422

    async def test_unknown_region_404(self, client):
        r = await _analyze(client, "Lagos", "Atlantis")
        assert r.status_code == 404
        body = r.json()
        assert body["error"] == "RegionNotFound"
        assert body["region"] == "Atlantis"
        assert body["phase"] == "fetching_boundary"

    async def test_upstream_failure_502(self, client, sources):
        boundary, _ = sources
        boundary.errors["Lagos"] = ServiceError("Failed to fetch bounding box for Lagos")
        r = await _analyze(client, "Lagos")
        assert r.status_code == 502
        assert r.json()["error"] == "ServiceError"

    async def test_bad_point_data_422(self, client, sources):
        from fakes import LAGOS_BBOX

        _, points = sources
        points.points[LAGOS_BBOX] = [GeoPoint(float("nan"), 3.3)]
        r = await _analyze(client, "Lagos")
        assert r.status_code == 422
        assert r.json()["phase"] == "aggregating"


class TestSessionState:

    async def test_initial_state(self, client):
        data = (await client.get("/api/v1/analysis")).json()
        assert data["state"] == "idle"
        assert data["results"] == []
        assert data["active_region"] is None

    async def test_after_batch(self, client):
        await _analyze(client, "Rivers", "Kano")
        data = (await client.get("/api/v1/analysis")).json()
        assert data["state"] == "done"
        assert data["active_region"] == "Rivers"
        assert data["cached_regions"] == ["Rivers", "Kano"]
        assert data["last_error"] is None

    async def test_after_failure(self, client):
        await _analyze(client, "Atlantis")
        data = (await client.get("/api/v1/analysis")).json()
        assert data["state"] == "failed"
        assert data["last_error"]["region"] == "Atlantis"


class TestRegionDetail:

    async def test_full_analysis(self, client):
        await _analyze(client, "Lagos")
        data = (await client.get("/api/v1/analysis/Lagos")).json()
        assert sum(c["count"] for c in data["cells"].values()) == data["total_points"] == 3
        assert data["bounding_box"] == [6.37, 2.70, 6.70, 4.35]
        assert data["center"]["lat"] == pytest.approx(6.535)
        assert data["hotspot"] is None

    async def test_uncached_region_404(self, client, sources):
        boundary, _ = sources
        r = await client.get("/api/v1/analysis/Lagos")
        assert r.status_code == 404
        assert boundary.calls == []

    async def test_grid_geojson(self, client):
        await _analyze(client, "Kano")
        grid = (await client.get("/api/v1/analysis/Kano/grid")).json()

        assert grid["type"] == "FeatureCollection"
        assert grid["properties"]["resolution"] == 7
        assert sum(f["properties"]["count"] for f in grid["features"]) == 5
        ring = grid["features"][0]["geometry"]["coordinates"][0]
        assert len(ring) == 7
        assert ring[0] == ring[-1]
        lon, lat = ring[0]
        assert 7 < lon < 10 and 10 < lat < 13


class TestSelectRegion:

    async def test_select(self, client):
        await _analyze(client, "Lagos", "Rivers")
        r = await client.put("/api/v1/analysis/active", json={"region": "Rivers"})
        assert r.status_code == 200
        assert r.json()["region_name"] == "Rivers"
        state = (await client.get("/api/v1/analysis")).json()
        assert state["active_region"] == "Rivers"

    async def test_select_uncached_404(self, client):
        r = await client.put("/api/v1/analysis/active", json={"region": "Kano"})
        assert r.status_code == 404


class TestHotspotEndpoint:

    async def test_prediction_attached(self, client, predictor):
        predictor.results = [Prediction(4.90, 7.10, "Port Harcourt ring road")]
        await _analyze(client, "Rivers")

        r = await client.post("/api/v1/analysis/Rivers/hotspot")
        assert r.status_code == 200
        assert r.json() == {"lat": 4.90, "lon": 7.10, "reasoning": "Port Harcourt ring road"}

        detail = (await client.get("/api/v1/analysis/Rivers")).json()
        assert detail["hotspot"]["reasoning"] == "Port Harcourt ring road"
        assert detail["has_hotspot"] is True
        assert detail["total_points"] == 2

    async def test_uncached_404(self, client):
        r = await client.post("/api/v1/analysis/Rivers/hotspot")
        assert r.status_code == 404

    @pytest.mark.parametrize("error,status", [
        (ServiceUnavailable("AI client not initialised"), 503),
        (InvalidResponse("AI response did not match the required format."), 502),
    ])
    async def test_failures_keep_cache(self, client, predictor, error, status):
        predictor.results = [error]
        await _analyze(client, "Lagos")

        r = await client.post("/api/v1/analysis/Lagos/hotspot")
        assert r.status_code == status
        assert r.json()["phase"] == "prediction"

        detail = (await client.get("/api/v1/analysis/Lagos")).json()
        assert detail["hotspot"] is None


class TestRateLimit:

    async def test_analysis_429_when_limit_exceeded(self, client):
        from densitymap.core.rate_limit import limiter

        with patch.object(limiter.limiter, "hit", return_value=False):
            r = await _analyze(client, "Lagos")
        assert r.status_code == 429
        assert "error" in r.json()

    async def test_hotspot_429_when_limit_exceeded(self, client):
        from densitymap.core.rate_limit import limiter

        await _analyze(client, "Lagos")
        with patch.object(limiter.limiter, "hit", return_value=False):
            r = await client.post("/api/v1/analysis/Lagos/hotspot")
        assert r.status_code == 429

    async def test_limiter_attached_to_app_state(self, client):
        from densitymap.core.rate_limit import limiter
        from densitymap.main import app

        assert app.state.limiter is limiter
