"""HTTP entrypoint that runs grid searches for the results page."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict

from flask import Flask, jsonify, request

from places_grid.core.config import get_settings
from places_grid.jobs.run_search import GEOCODE_ERROR, run_search

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App ----------
app = Flask(__name__)

TOP_COMPANY_TYPES = (
    "restaurant", "cafe", "pharmacy", "hospital", "hotel", "school", "bank", "supermarket",
    "bakery", "clinic", "bar", "gym", "gas station", "library", "shopping mall",
    "laundry", "car repair", "beauty salon", "movie theater", "museum", "park", "church",
    "mosque", "police", "fire station", "train station", "bus station", "airport",
    "dentist", "vet", "painter", "plumber", "electrician", "lawyer", "insurance agency",
    "real estate", "construction", "furniture store", "clothing store", "electronics store",
    "pet store", "hair salon", "spa", "doctor", "optician", "toy store",
    "book store", "jewelry store", "travel agency", "taxi", "car rental", "night club",
    "fast food", "ice cream shop", "pizzeria", "barber", "bank ATM", "car wash",
    "hardware store", "garden center", "florist", "beauty supply", "convenience store",
    "liquor store", "shoe store", "mobile phone shop", "internet cafe", "coffee shop",
    "daycare", "fitness center", "swimming pool", "art gallery", "language school",
    "driving school", "computer store", "electronics repair", "printing service",
    "photography studio", "cleaning service", "laundromat", "massage therapist",
    "nail salon", "tattoo studio", "casino", "billiard hall", "bowling alley",
    "sports club", "yoga studio", "dance school", "pet grooming", "gaming store",
    "stationery store",
)

# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    """Simple root to avoid 404 on GET /"""
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; reads settings only, never calls Google."""
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "api_key_configured": bool(settings.google_api_key),
                "max_results": settings.max_results,
                "search_mode": settings.search_mode,
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.get("/categories")
def categories() -> Any:
    return jsonify({"data": list(TOP_COMPANY_TYPES)}), 200


@app.post("/search")
def search() -> Any:
    """
    Run a grid search synchronously.
    Required fields: city, company_type
    Optional: district (str), result_limit (int, clamped to 1..MAX_RESULTS)
    Accepts a JSON body or form fields.
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or request.form.to_dict()
    if not isinstance(payload, dict):
        return jsonify({"success": False, "error": "request body must be a JSON object"}), 400

    district = str(payload.get("district") or "").strip()
    city = str(payload.get("city") or "").strip()
    company_type = str(payload.get("company_type") or "").strip()

    limit_raw = payload.get("result_limit")
    limit = None
    if limit_raw not in (None, ""):
        try:
            limit = int(limit_raw)
        except (TypeError, ValueError):
            return jsonify({"success": False, "error": "result_limit must be numeric"}), 400

    try:
        result = run_search(district=district, city=city, category=company_type, result_cap=limit)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Search failed: %s", exc)
        return jsonify({"success": False, "error": f"Server error: {exc}"}), 500

    if result["success"]:
        return jsonify(result), 200
    if result["error"] == GEOCODE_ERROR:
        return jsonify(result), 422
    return jsonify(result), 400


def main() -> None:
    env_port = os.getenv("PORT")
    port = int(env_port or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
