"""
density_aggregator.py — Bin a region's points into hex cells.

aggregate() is a pure function of (points, bbox, indexer resolution): no
I/O, no shared state. It either returns a complete RegionAnalysis or
raises InvalidCoordinate for the first malformed point — there is no
partial result.

Densest-cell tie-break: the first cell to *reach* the maximum count in
input order wins. The running max is only replaced on a strictly greater
count, so a later cell that merely ties never displaces it.
"""

from __future__ import annotations

import logging
from typing import Sequence

from densitymap.core.errors import InvalidCoordinate
from densitymap.models.geo import BoundingBox, GeoPoint, HexCell, RegionAnalysis
from densitymap.services.hex_indexer import HexIndexer

logger = logging.getLogger(__name__)


def aggregate(
    points: Sequence[GeoPoint],
    bbox: BoundingBox,
    region_name: str,
    indexer: HexIndexer,
) -> RegionAnalysis:
    """
    Build the hex density map for one region.

    Args:
        points:      Store locations in the order the point source returned them.
        bbox:        Region bounding box (also determines the map center).
        region_name: Identity key attached to the result.
        indexer:     HexIndexer at the process-wide resolution.

    Returns:
        RegionAnalysis with no hotspot.

    Raises:
        InvalidCoordinate: any point is non-finite or out of range.
    """
    counts: dict[str, int] = {}
    centers: dict[str, GeoPoint] = {}
    max_cell_id: str | None = None
    max_count = 0

    for point in points:
        try:
            cell_id = indexer.index_of(point)
        except InvalidCoordinate as exc:
            raise exc.with_context(region_name=region_name)

        if cell_id not in counts:
            counts[cell_id] = 0
            centers[cell_id] = indexer.center_of(cell_id)
        counts[cell_id] += 1

        if counts[cell_id] > max_count:
            max_cell_id, max_count = cell_id, counts[cell_id]

    cells = {
        cell_id: HexCell(
            cell_id=cell_id,
            count=count,
            lat=centers[cell_id].lat,
            lon=centers[cell_id].lon,
        )
        for cell_id, count in counts.items()
    }

    total = len(points)
    average = total / len(cells) if cells else 0.0
    densest = cells[max_cell_id] if max_cell_id is not None else None

    logger.debug(
        "Aggregated %d points into %d cells for %s (res %d)",
        total, len(cells), region_name, indexer.resolution,
    )

    return RegionAnalysis(
        region_name=region_name,
        total_points=total,
        cells=cells,
        average_density=average,
        densest_cell=densest,
        bounding_box=bbox,
        center=bbox.center,
        points=tuple(points),
    )
