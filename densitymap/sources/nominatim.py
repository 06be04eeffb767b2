"""
NominatimBoundarySource — Region bounding boxes via OpenStreetMap Nominatim.

Queries "<region> State, <country>" and takes the top match's bounding box.

Nominatim returns the box as strings in the order
[minLat, maxLat, minLon, maxLon]; we reorder it into the engine's
(south, west, north, east) BoundingBox.

Unlike the optional search adapters elsewhere, failures here are never
swallowed: an empty result is RegionNotFound, anything else that goes
wrong is ServiceError, and the orchestrator fails the batch.
"""

import logging
from typing import Optional

import httpx

from densitymap.core.config import settings
from densitymap.core.errors import RegionNotFound, ServiceError
from densitymap.models.geo import BoundingBox

logger = logging.getLogger(__name__)


class NominatimBoundarySource:
    def __init__(
        self,
        base_url: Optional[str] = None,
        country: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or settings.nominatim_url
        self.country = country if country is not None else settings.country
        self.timeout = timeout if timeout is not None else settings.http_timeout_s
        # Injected in tests (httpx.MockTransport); None = real network.
        self._transport = transport

    def build_query(self, region_name: str) -> str:
        if not self.country:
            return f"{region_name} State"
        return f"{region_name} State, {self.country}"

    async def fetch_bounding_box(self, region_name: str) -> BoundingBox:
        params = {"q": self.build_query(region_name), "format": "json", "limit": 1}

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"User-Agent": settings.http_user_agent},
        ) as client:
            try:
                response = await client.get(self.base_url, params=params)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "Nominatim error for %s: %s — %s",
                    region_name, exc.response.status_code, exc.response.text[:200],
                )
                raise ServiceError(
                    f"Failed to fetch bounding box for {region_name} "
                    f"(HTTP {exc.response.status_code})",
                    region_name=region_name,
                ) from exc
            except (httpx.HTTPError, ValueError) as exc:
                logger.error("Nominatim request failed for %s: %s", region_name, exc)
                raise ServiceError(
                    f"Failed to fetch bounding box for {region_name}: {exc}",
                    region_name=region_name,
                ) from exc

        if not isinstance(data, list) or (data and not isinstance(data[0], dict)):
            logger.error("Unexpected Nominatim payload for %s: %.200r", region_name, data)
            raise ServiceError(
                f"Unexpected response format from Nominatim for {region_name}",
                region_name=region_name,
            )
        if not data or not data[0].get("boundingbox"):
            raise RegionNotFound(
                f"Could not find location data for {region_name}",
                region_name=region_name,
            )

        return _parse_bounding_box(data[0]["boundingbox"], region_name)


def _parse_bounding_box(raw, region_name: str) -> BoundingBox:
    try:
        min_lat, max_lat, min_lon, max_lon = (float(v) for v in raw)
    except (TypeError, ValueError) as exc:
        raise ServiceError(
            f"Malformed bounding box for {region_name}: {raw!r}",
            region_name=region_name,
        ) from exc

    if min_lat > max_lat:
        raise ServiceError(
            f"Bounding box for {region_name} has south > north: {raw!r}",
            region_name=region_name,
        )
    return BoundingBox(south=min_lat, west=min_lon, north=max_lat, east=max_lon)
