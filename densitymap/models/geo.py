"""
geo.py — Internal value types for the density engine.

These are frozen dataclasses, not Pydantic models: the aggregator handles
tens of thousands of points per region and must be able to see malformed
coordinates (validation belongs to the HexIndexer, which raises
InvalidCoordinate). Routes convert them to the Pydantic schemas in
models/analysis.py before serialising.
"""

from dataclasses import dataclass, replace
from typing import NamedTuple, Optional


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float


class BoundingBox(NamedTuple):
    """(south, west, north, east) in degrees, south <= north."""

    south: float
    west: float
    north: float
    east: float

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(
            lat=(self.south + self.north) / 2,
            lon=(self.west + self.east) / 2,
        )


@dataclass(frozen=True)
class HexCell:
    cell_id: str
    count: int
    lat: float   # canonical cell center, not an input point
    lon: float


@dataclass(frozen=True)
class Prediction:
    """A suggested new commercial hotspot."""

    lat: float
    lon: float
    reasoning: str


@dataclass(frozen=True)
class RegionAnalysis:
    region_name: str
    total_points: int
    cells: dict[str, HexCell]
    average_density: float
    densest_cell: Optional[HexCell]
    bounding_box: BoundingBox
    center: GeoPoint
    points: tuple[GeoPoint, ...] = ()
    hotspot: Optional[Prediction] = None

    def with_hotspot(self, prediction: Optional[Prediction]) -> "RegionAnalysis":
        """Return a copy that differs only in `hotspot`."""
        return replace(self, hotspot=prediction)
