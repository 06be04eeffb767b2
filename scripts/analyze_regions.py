#!/usr/bin/env python3
"""
analyze_regions.py — Run a store-density analysis from the command line.

Usage:
    python scripts/analyze_regions.py Lagos Rivers
    python scripts/analyze_regions.py Kano --hotspot          # also ask Gemini

Uses the same settings as the API (.env / environment): H3_RESOLUTION,
NOMINATIM_URL, OVERPASS_URL, GEMINI_API_KEY, AI_MOCK_MODE, ...

Exit status is 1 when the batch or the hotspot request fails.
"""

import argparse
import asyncio
import logging
import sys

from densitymap.core.config import settings
from densitymap.core.errors import DensityMapError
from densitymap.core.session import build_orchestrator


def _print_summary(results, active_region) -> None:
    print(f"{'Region':<16} {'Stores':>8} {'Cells':>7} {'Avg/cell':>9} {'Densest':>8}")
    print("-" * 52)
    for analysis in results:
        densest = analysis.densest_cell.count if analysis.densest_cell else 0
        marker = " *" if analysis.region_name == active_region else ""
        print(
            f"{analysis.region_name:<16} {analysis.total_points:>8} "
            f"{len(analysis.cells):>7} {analysis.average_density:>9.2f} {densest:>8}{marker}"
        )


async def run(regions: list[str], hotspot: bool) -> int:
    orchestrator = build_orchestrator(settings)

    try:
        results = await orchestrator.analyze_regions(regions)
    except DensityMapError as exc:
        print(f"Analysis failed ({exc.region_name}, {exc.phase}): {exc.message}", file=sys.stderr)
        return 1

    _print_summary(results, orchestrator.active_region)

    if hotspot and orchestrator.active_region:
        try:
            prediction = await orchestrator.request_hotspot(orchestrator.active_region)
        except DensityMapError as exc:
            print(f"Hotspot prediction failed: {exc.message}", file=sys.stderr)
            return 1
        print(
            f"\nSuggested hotspot in {orchestrator.active_region}: "
            f"({prediction.lat:.4f}, {prediction.lon:.4f})\n  {prediction.reasoning}"
        )
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Analyse store density per region")
    parser.add_argument("regions", nargs="+", help="Region names, e.g. Lagos Rivers")
    parser.add_argument(
        "--hotspot",
        action="store_true",
        help="Request a hotspot prediction for the active region",
    )
    parser.add_argument("--verbose", action="store_true", help="Log pipeline progress")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    sys.exit(asyncio.run(run(args.regions, hotspot=args.hotspot)))
