"""CLI job and service entrypoint for grid-based Google Places searches."""

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import Any, Dict, Optional

from places_grid.core.config import SEARCH_MODES, ConfigError, get_settings
from places_grid.core.engine import AggregationEngine, ProgressCallback
from places_grid.core.errors import GeoResolutionFailed, InvalidSearchRequest
from places_grid.etl.transform import to_row
from places_grid.models import SearchRequest
from places_grid.vendors import google_places

logger = logging.getLogger(__name__)

GEOCODE_ERROR = "Could not obtain location coordinates."


def run_search(
    *,
    district: Optional[str],
    city: Optional[str],
    category: Optional[str],
    result_cap: Optional[int],
    mode: Optional[str] = None,
    parallel_workers: Optional[int] = None,
    progress: Optional[ProgressCallback] = None,
    provider=google_places,
) -> Dict[str, Any]:
    """Run one search and return the success or error payload.

    Invalid input and geocoding failures come back as ``{"success": False,
    "error": ...}``. A missing API key raises ConfigError.
    """
    settings = get_settings()

    try:
        request = SearchRequest.build(
            district=district,
            city=city,
            category=category,
            result_cap=result_cap,
            api_key=settings.google_api_key,
            max_results=settings.max_results,
        )
    except InvalidSearchRequest as exc:
        logger.info("Rejected search: %s", exc)
        return {"success": False, "error": str(exc)}

    api_key = settings.require_api_key()

    config = settings.engine_config()
    overrides = {}
    if mode:
        overrides["mode"] = mode
    if parallel_workers:
        overrides["parallel_workers"] = parallel_workers
    if overrides:
        config = replace(config, **overrides)

    engine = AggregationEngine(api_key, config=config, provider=provider, progress=progress)
    try:
        records = engine.run(request)
    except GeoResolutionFailed:
        return {"success": False, "error": GEOCODE_ERROR}

    return {"success": True, "count": len(records), "data": [to_row(record) for record in records]}


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Collect Google Places listings over a search grid")
    parser.add_argument("--city", dest="city", required=True, help="City to search in")
    parser.add_argument("--category", dest="category", required=True, help="Company type to search for")
    parser.add_argument("--district", dest="district", default="", help="Optional district within the city")
    parser.add_argument(
        "--limit",
        dest="result_cap",
        type=int,
        default=settings.max_results,
        help="Maximum number of places to return",
    )
    parser.add_argument(
        "--mode",
        dest="mode",
        choices=SEARCH_MODES,
        default=settings.search_mode,
        help="grid: sample overlapping cells; single: one query at the center",
    )
    parser.add_argument(
        "--workers",
        dest="parallel_workers",
        type=int,
        default=settings.parallel_workers,
        help="Number of cells scanned concurrently",
    )
    return parser


def _log_progress(progress) -> None:
    logger.info(
        "Progress: cells=%d/%d places=%d",
        progress.cells_completed,
        progress.cells_total,
        progress.records_found,
    )


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    try:
        payload = run_search(
            district=args.district,
            city=args.city,
            category=args.category,
            result_cap=args.result_cap,
            mode=args.mode,
            parallel_workers=args.parallel_workers,
            progress=_log_progress,
        )
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    json.dump(payload, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    if not payload.get("success"):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
