"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address.

The analysis and hotspot endpoints fan out to rate-limited upstream
services (Nominatim, Overpass, Gemini), so they carry tight per-IP limits.

Usage in routes:
    from fastapi import Request
    from densitymap.core.rate_limit import limiter

    @router.post("/some-upstream-endpoint")
    @limiter.limit("10/minute")
    async def my_endpoint(request: Request, payload: MyRequest):
        ...
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

ANALYSIS_LIMIT = "10/minute"
HOTSPOT_LIMIT = "5/minute"

limiter = Limiter(key_func=get_remote_address)
