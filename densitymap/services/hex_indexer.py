"""
hex_indexer.py — Point ↔ H3 cell mapping at a fixed resolution.

USAGE
─────
    from densitymap.services.hex_indexer import HexIndexer

    indexer = HexIndexer(resolution=7)
    cell_id = indexer.index_of(GeoPoint(lat=6.50, lon=3.30))
    center  = indexer.center_of(cell_id)     # canonical center, for HexCell
    ring    = indexer.boundary_of(cell_id)   # polygon vertices, for rendering

The resolution is fixed per instance and comes from settings.h3_resolution;
two points share a cell id iff they fall in the same H3 cell at that
resolution.
"""

from __future__ import annotations

import math

import h3

from densitymap.core.errors import InvalidCoordinate
from densitymap.models.geo import GeoPoint

_MIN_RESOLUTION = 0
_MAX_RESOLUTION = 15


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_point(point: GeoPoint) -> None:
    """Raise InvalidCoordinate unless point is finite and within lat/lon ranges."""
    lat, lon = point.lat, point.lon
    if not (_is_number(lat) and _is_number(lon)):
        raise InvalidCoordinate(f"Non-numeric coordinate ({lat!r}, {lon!r})")
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidCoordinate(f"Non-finite coordinate ({lat}, {lon})")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinate(f"Latitude {lat} outside [-90, 90]")
    if not -180.0 <= lon <= 180.0:
        raise InvalidCoordinate(f"Longitude {lon} outside [-180, 180]")


class HexIndexer:
    def __init__(self, resolution: int) -> None:
        if (
            not isinstance(resolution, int)
            or isinstance(resolution, bool)
            or not _MIN_RESOLUTION <= resolution <= _MAX_RESOLUTION
        ):
            raise ValueError(
                f"H3 resolution must be an integer in "
                f"[{_MIN_RESOLUTION}, {_MAX_RESOLUTION}], got {resolution!r}"
            )
        self.resolution = resolution

    def index_of(self, point: GeoPoint) -> str:
        validate_point(point)
        return h3.latlng_to_cell(point.lat, point.lon, self.resolution)

    def center_of(self, cell_id: str) -> GeoPoint:
        self._check_cell(cell_id)
        lat, lon = h3.cell_to_latlng(cell_id)
        return GeoPoint(lat=lat, lon=lon)

    def boundary_of(self, cell_id: str) -> tuple[GeoPoint, ...]:
        """Polygon vertices in order; the last vertex implicitly joins the first."""
        self._check_cell(cell_id)
        return tuple(GeoPoint(lat=lat, lon=lon) for lat, lon in h3.cell_to_boundary(cell_id))

    def _check_cell(self, cell_id: str) -> None:
        try:
            valid = isinstance(cell_id, str) and h3.is_valid_cell(cell_id)
        except (ValueError, TypeError):
            valid = False
        if not valid:
            raise InvalidCoordinate(f"Not a valid H3 cell id: {cell_id!r}")
