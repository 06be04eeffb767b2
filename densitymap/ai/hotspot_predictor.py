"""
hotspot_predictor.py — PredictionService backed by Gemini.

Flow:
  1. Sample at most `sample_size` store coordinates (deterministic, seeded)
  2. Prompt Gemini as a geospatial analyst with the region, bounding box
     and sampled coordinates, asking for JSON {lat, lon, reasoning}
  3. Validate the reply strictly

A reply that cannot be parsed, or whose lat/lon/reasoning are missing or
of the wrong type, is InvalidResponse. There is no "no hotspot" result:
every path either returns a Prediction or raises.
"""

import json
import logging
import math
import random
import re
from typing import Optional, Sequence

from densitymap.ai.gemini_client import GeminiClient, gemini_client
from densitymap.core.config import settings
from densitymap.core.errors import DensityMapError, InvalidResponse, ServiceUnavailable
from densitymap.models.geo import BoundingBox, GeoPoint, Prediction

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

_HOTSPOT_PROMPT = """\
You are a professional geospatial analyst.
I am analyzing store density in {region}{country_suffix}.
Bounding box: minLat: {south}, minLon: {west}, maxLat: {north}, maxLon: {east}.
Existing stores ({shown} of {total}): {coords}.
Predict a new commercial hotspot (lat, lon) within the box.
Give a one-sentence reasoning.

Respond with valid JSON and nothing else:
{{
  "lat": <number>,
  "lon": <number>,
  "reasoning": "<one sentence>"
}}"""


def sample_points(points: Sequence[GeoPoint], limit: int, seed: int = 0) -> list[GeoPoint]:
    """
    Return at most `limit` points, chosen reproducibly.

    The same (points, limit, seed) always yields the same sample, and the
    sample keeps the input order.
    """
    if limit <= 0:
        return []
    if len(points) <= limit:
        return list(points)
    indices = sorted(random.Random(seed).sample(range(len(points)), limit))
    return [points[i] for i in indices]


def build_prompt(
    region_name: str,
    sample: Sequence[GeoPoint],
    total: int,
    bbox: BoundingBox,
    country: str = "",
) -> str:
    coords = "; ".join(f"({p.lat:.4f}, {p.lon:.4f})" for p in sample) or "none"
    return _HOTSPOT_PROMPT.format(
        region=region_name,
        country_suffix=f", {country}" if country else "",
        south=bbox.south,
        west=bbox.west,
        north=bbox.north,
        east=bbox.east,
        shown=len(sample),
        total=total,
        coords=coords,
    )


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_prediction(raw: str) -> Prediction:
    """
    Extract a Prediction from a raw Gemini reply.

    Tolerates markdown fences or prose around the JSON object.

    Raises:
        InvalidResponse: no JSON object, or fields missing / mistyped / out of range.
    """
    m = _JSON_OBJECT_RE.search(raw or "")
    if not m:
        raise InvalidResponse("AI response did not contain a JSON object.")
    try:
        data = json.loads(m.group())
    except json.JSONDecodeError as exc:
        raise InvalidResponse(f"AI response was not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise InvalidResponse("AI response did not match the required format.")

    lat, lon, reasoning = data.get("lat"), data.get("lon"), data.get("reasoning")
    if not (_is_number(lat) and _is_number(lon) and isinstance(reasoning, str)):
        raise InvalidResponse("AI response did not match the required format.")
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidResponse("AI response contained non-finite coordinates.")
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise InvalidResponse(f"AI response coordinates out of range: ({lat}, {lon})")

    return Prediction(lat=float(lat), lon=float(lon), reasoning=reasoning.strip())


class GeminiHotspotPredictor:
    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        sample_size: Optional[int] = None,
        seed: Optional[int] = None,
        country: Optional[str] = None,
    ) -> None:
        self.client = client or gemini_client
        self.sample_size = sample_size if sample_size is not None else settings.hotspot_sample_size
        self.seed = seed if seed is not None else settings.hotspot_sample_seed
        self.country = country if country is not None else settings.country

    async def predict(
        self,
        region_name: str,
        points: Sequence[GeoPoint],
        bbox: BoundingBox,
    ) -> Prediction:
        sample = sample_points(points, self.sample_size, self.seed)
        prompt = build_prompt(region_name, sample, len(points), bbox, self.country)

        try:
            raw = await self.client.generate_json(prompt, response_key="hotspot")
        except DensityMapError as exc:
            raise exc.with_context(region_name=region_name)
        except Exception as exc:
            raise ServiceUnavailable(
                f"Failed to get a prediction from the AI model: {exc}",
                region_name=region_name,
            ) from exc

        try:
            prediction = parse_prediction(raw)
        except InvalidResponse as exc:
            logger.warning("Unparseable hotspot reply for %s: %.200s", region_name, raw)
            raise exc.with_context(region_name=region_name)

        if not (bbox.south <= prediction.lat <= bbox.north and bbox.west <= prediction.lon <= bbox.east):
            logger.warning(
                "Hotspot for %s at (%.4f, %.4f) falls outside its bounding box",
                region_name, prediction.lat, prediction.lon,
            )
        return prediction
