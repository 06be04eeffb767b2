"""
contracts.py — Interfaces the orchestrator consumes.

Concrete implementations live in sources/ (Nominatim, Overpass) and ai/
(Gemini). Tests substitute in-memory fakes with the same method shapes.
"""

from typing import Protocol, Sequence

from densitymap.models.geo import BoundingBox, GeoPoint, Prediction


class BoundarySource(Protocol):
    async def fetch_bounding_box(self, region_name: str) -> BoundingBox:
        """Raises RegionNotFound when nothing matches, ServiceError on transport/format failure."""
        ...


class PointSource(Protocol):
    async def fetch_points(self, bbox: BoundingBox) -> list[GeoPoint]:
        """Raises ServiceError. An empty list is a valid result."""
        ...


class PredictionService(Protocol):
    async def predict(
        self,
        region_name: str,
        points: Sequence[GeoPoint],
        bbox: BoundingBox,
    ) -> Prediction:
        """Raises ServiceUnavailable or InvalidResponse; never returns 'no hotspot'."""
        ...
