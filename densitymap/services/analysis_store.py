"""
analysis_store.py — Per-session cache of RegionAnalysis keyed by region name.

One store per session (owned by the orchestrator), never a module-level
singleton, so independent sessions and tests don't share state.

Stored values are frozen dataclasses. Every update replaces the whole
value under its key, so a reader holding or fetching an analysis never
sees a mix of old and new fields.
"""

from __future__ import annotations

import logging
from typing import Optional

from densitymap.core.errors import RegionNotFound
from densitymap.models.geo import Prediction, RegionAnalysis

logger = logging.getLogger(__name__)


class RegionAnalysisStore:
    """Unbounded; expected cardinality is a few dozen named regions."""

    def __init__(self) -> None:
        self._entries: dict[str, RegionAnalysis] = {}

    def get(self, region_name: str) -> Optional[RegionAnalysis]:
        return self._entries.get(region_name)

    def put(self, analysis: RegionAnalysis) -> None:
        replaced = analysis.region_name in self._entries
        self._entries[analysis.region_name] = analysis
        logger.debug(
            "%s analysis for %s (%d points, %d cells)",
            "Replaced" if replaced else "Stored",
            analysis.region_name, analysis.total_points, len(analysis.cells),
        )

    def annotate_hotspot(self, region_name: str, prediction: Prediction) -> RegionAnalysis:
        """
        Attach a hotspot prediction to a cached analysis.

        Aggregation fields are carried over untouched; only `hotspot` changes.

        Raises:
            RegionNotFound: no analysis is cached for region_name (nothing is created).
        """
        current = self._entries.get(region_name)
        if current is None:
            raise RegionNotFound(
                f"No cached analysis for {region_name}",
                region_name=region_name,
                phase="annotate",
            )
        updated = current.with_hotspot(prediction)
        self._entries[region_name] = updated
        return updated

    def region_names(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, region_name: object) -> bool:
        return region_name in self._entries

    def __len__(self) -> int:
        return len(self._entries)
