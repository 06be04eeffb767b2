"""
orchestrator.py — Per-session coordinator for region analyses.

Pipeline per uncached region (states exposed for the loading indicator):

  IDLE → FETCHING_BOUNDARY → FETCHING_POINTS → AGGREGATING → DONE | FAILED

  1. BoundarySource.fetch_bounding_box(name)   (geocoder, rate-limited)
  2. PointSource.fetch_points(bbox)            (map-data service, slow)
  3. density_aggregator.aggregate(...)         (synchronous, CPU only)
  4. store.put(analysis)                       (committed per region)

Regions in a batch are processed one at a time: the upstream services
throttle bursts. Cached regions skip steps 1-4 entirely, which also makes
duplicate names within one batch cost a single fetch.

A failure anywhere fails the whole batch. Regions committed earlier in the
batch stay cached (commits are per region, so an abandoned batch leaves
the store consistent too), but the visible results and the active region
keep their pre-batch values. An abandoned (cancelled) batch returns the
session to IDLE.

Active region after a successful batch follows ActivationPolicy:
  INITIAL_LOAD      first successful batch → first requested name
  RANKED_BY_VOLUME  later batches → highest total_points, input order on ties
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional, Sequence

from densitymap.core.errors import DensityMapError, RegionNotFound
from densitymap.models.geo import Prediction, RegionAnalysis
from densitymap.services.analysis_store import RegionAnalysisStore
from densitymap.services.contracts import BoundarySource, PointSource, PredictionService
from densitymap.services.density_aggregator import aggregate
from densitymap.services.hex_indexer import HexIndexer

logger = logging.getLogger(__name__)


class AnalysisState(str, Enum):
    IDLE = "idle"
    FETCHING_BOUNDARY = "fetching_boundary"
    FETCHING_POINTS = "fetching_points"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


class ActivationPolicy(str, Enum):
    INITIAL_LOAD = "initial_load"
    RANKED_BY_VOLUME = "ranked_by_volume"


def rank_by_volume(results: Sequence[RegionAnalysis]) -> Optional[RegionAnalysis]:
    """Highest total_points; the earliest entry wins ties."""
    best: Optional[RegionAnalysis] = None
    for analysis in results:
        if best is None or analysis.total_points > best.total_points:
            best = analysis
    return best


class AnalysisOrchestrator:
    def __init__(
        self,
        boundary_source: BoundarySource,
        point_source: PointSource,
        prediction_service: PredictionService,
        indexer: HexIndexer,
        store: Optional[RegionAnalysisStore] = None,
    ) -> None:
        self.boundary_source = boundary_source
        self.point_source = point_source
        self.prediction_service = prediction_service
        self.indexer = indexer
        self.store = store if store is not None else RegionAnalysisStore()

        self.state = AnalysisState.IDLE
        self.status_message = ""
        self.last_error: Optional[DensityMapError] = None

        self._results: list[RegionAnalysis] = []
        self._active_region: Optional[str] = None
        self._pending_predictions: set[str] = set()
        self._initial_load_done = False

    # ── Read-only views ───────────────────────────────────────────────────────

    @property
    def results(self) -> list[RegionAnalysis]:
        """Results of the last successful batch, in request order."""
        return list(self._results)

    @property
    def active_region(self) -> Optional[str]:
        return self._active_region

    @property
    def active_analysis(self) -> Optional[RegionAnalysis]:
        if self._active_region is None:
            return None
        return self.store.get(self._active_region)

    @property
    def pending_predictions(self) -> frozenset[str]:
        return frozenset(self._pending_predictions)

    @property
    def activation_policy(self) -> ActivationPolicy:
        """Policy the next successful batch will use."""
        if self._initial_load_done:
            return ActivationPolicy.RANKED_BY_VOLUME
        return ActivationPolicy.INITIAL_LOAD

    # ── Batch analysis ────────────────────────────────────────────────────────

    async def analyze_regions(self, names: Sequence[str]) -> list[RegionAnalysis]:
        """
        Analyse each region in order, reusing cached analyses.

        Returns one RegionAnalysis per requested name (duplicates included).

        Raises:
            DensityMapError: the first failure, tagged with region and phase.
                No results from this batch are surfaced.
        """
        self.last_error = None
        batch: list[RegionAnalysis] = []

        try:
            for name in names:
                cached = self.store.get(name)
                if cached is not None:
                    logger.info("Using cached analysis for %s", name)
                    batch.append(cached)
                    continue

                analysis = await self._run_pipeline(name)
                self.store.put(analysis)
                batch.append(analysis)
        except DensityMapError as exc:
            self.last_error = exc
            self._set_state(AnalysisState.FAILED, f"Analysis failed: {exc.message}")
            logger.error(
                "Batch %s failed at %s for %s: %s",
                list(names), exc.phase, exc.region_name, exc.message,
            )
            raise
        except asyncio.CancelledError:
            logger.info("Batch %s abandoned", list(names))
            self._set_state(AnalysisState.IDLE, "")
            raise
        except Exception as exc:
            self._set_state(AnalysisState.FAILED, f"Analysis failed: {exc}")
            logger.exception("Batch %s failed unexpectedly", list(names))
            raise

        self._results = batch
        self._activate(batch)
        self._set_state(AnalysisState.DONE, "")
        return list(batch)

    async def _run_pipeline(self, name: str) -> RegionAnalysis:
        try:
            self._set_state(AnalysisState.FETCHING_BOUNDARY, f"Fetching bounding box for {name}...")
            bbox = await self.boundary_source.fetch_bounding_box(name)

            self._set_state(AnalysisState.FETCHING_POINTS, f"Querying stores in {name}...")
            points = await self.point_source.fetch_points(bbox)

            self._set_state(AnalysisState.AGGREGATING, f"Calculating store density for {name}...")
            analysis = aggregate(points, bbox, name, self.indexer)
        except DensityMapError as exc:
            raise exc.with_context(region_name=name, phase=self.state.value)

        logger.info(
            "Analysed %s: %d stores in %d cells (avg %.2f)",
            name, analysis.total_points, len(analysis.cells), analysis.average_density,
        )
        return analysis

    def _activate(self, batch: Sequence[RegionAnalysis]) -> None:
        policy = self.activation_policy
        if not batch:
            self._active_region = None
        elif policy is ActivationPolicy.INITIAL_LOAD:
            self._active_region = batch[0].region_name
        else:
            self._active_region = rank_by_volume(batch).region_name
        self._initial_load_done = True
        logger.debug("Active region %s (%s)", self._active_region, policy.value)

    def _set_state(self, state: AnalysisState, message: str) -> None:
        self.state = state
        self.status_message = message

    # ── Selection + hotspot annotation ────────────────────────────────────────

    def select_region(self, name: str) -> RegionAnalysis:
        """Make a cached region active. Never fetches."""
        analysis = self.store.get(name)
        if analysis is None:
            raise RegionNotFound(f"No cached analysis for {name}", region_name=name, phase="select")
        self._active_region = name
        self._pending_predictions.discard(name)
        return analysis

    async def request_hotspot(self, name: str) -> Prediction:
        """
        Ask the prediction service for a new hotspot and attach it to the cache.

        On failure the store is left untouched and the error is re-raised.
        Concurrent requests for the same region are not serialised; the
        last annotation to complete wins.
        """
        analysis = self.store.get(name)
        if analysis is None:
            raise RegionNotFound(f"No cached analysis for {name}", region_name=name, phase="prediction")

        self._pending_predictions.add(name)
        try:
            prediction = await self.prediction_service.predict(
                name, analysis.points, analysis.bounding_box,
            )
        except DensityMapError as exc:
            logger.warning("Hotspot prediction failed for %s: %s", name, exc.message)
            raise exc.with_context(region_name=name, phase="prediction")
        finally:
            self._pending_predictions.discard(name)

        self.store.annotate_hotspot(name, prediction)
        logger.info("Hotspot for %s at (%.4f, %.4f)", name, prediction.lat, prediction.lon)
        return prediction
