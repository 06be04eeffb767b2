"""
OverpassPointSource — Shop locations inside a bounding box via the Overpass API.

Sends an Overpass QL query for every node tagged `shop` in the box and
returns their coordinates in response order. That order drives the
densest-cell tie-break downstream, so we preserve it as-is.

Elements without numeric lat/lon (ways, relations) are skipped; out-of-range
values are passed through so the HexIndexer can reject them as
InvalidCoordinate rather than hiding bad upstream data.
"""

import logging
from typing import Optional

import httpx

from densitymap.core.config import settings
from densitymap.core.errors import ServiceError
from densitymap.models.geo import BoundingBox, GeoPoint

logger = logging.getLogger(__name__)

_QUERY_TEMPLATE = """
[out:json][timeout:{timeout}];
(
  node["shop"]({south},{west},{north},{east});
);
out geom;
"""


def build_query(bbox: BoundingBox, timeout: int) -> str:
    return _QUERY_TEMPLATE.format(
        timeout=timeout,
        south=bbox.south,
        west=bbox.west,
        north=bbox.north,
        east=bbox.east,
    )


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class OverpassPointSource:
    def __init__(
        self,
        base_url: Optional[str] = None,
        query_timeout: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or settings.overpass_url
        self.query_timeout = query_timeout if query_timeout is not None else settings.overpass_timeout_s
        self.timeout = timeout if timeout is not None else settings.http_timeout_s
        self._transport = transport

    async def fetch_points(self, bbox: BoundingBox) -> list[GeoPoint]:
        query = build_query(bbox, self.query_timeout)

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"User-Agent": settings.http_user_agent},
        ) as client:
            try:
                response = await client.post(self.base_url, content=query)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "Overpass error: %s — %s",
                    exc.response.status_code, exc.response.text[:200],
                )
                raise ServiceError(
                    f"Overpass API request failed with status {exc.response.status_code}"
                ) from exc
            except (httpx.HTTPError, ValueError) as exc:
                logger.error("Overpass request failed: %s", exc)
                raise ServiceError(f"Overpass API request failed: {exc}") from exc

        elements = data.get("elements") if isinstance(data, dict) else None
        if not isinstance(elements, list):
            raise ServiceError("Overpass response has no 'elements' list")

        points = [
            GeoPoint(lat=el["lat"], lon=el["lon"])
            for el in elements
            if isinstance(el, dict) and _is_number(el.get("lat")) and _is_number(el.get("lon"))
        ]
        skipped = len(elements) - len(points)
        if skipped:
            logger.debug("Skipped %d Overpass elements without coordinates", skipped)
        logger.info("Overpass returned %d shops", len(points))
        return points
