"""
regions.py — Known region names for the input form's autocomplete.

Route:
  GET /api/v1/regions — optionally filtered by a case-insensitive prefix
"""

from typing import Optional

from fastapi import APIRouter, Query

from densitymap.core.constants import NIGERIAN_STATES

router = APIRouter(prefix="/api/v1/regions", tags=["regions"])


@router.get("", response_model=list[str])
async def list_regions(
    prefix: Optional[str] = Query(default=None, max_length=50, description="Filter by name prefix"),
):
    if not prefix:
        return NIGERIAN_STATES
    needle = prefix.strip().lower()
    return [name for name in NIGERIAN_STATES if name.lower().startswith(needle)]
