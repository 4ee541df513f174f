"""Utilities for transforming Google Maps responses into pipeline records."""

import logging
from typing import Any, Dict, List, Optional

from places_grid.models import Coordinate, EnrichedRecord, PlaceDetails, RawCandidate

logger = logging.getLogger(__name__)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_location(result: Dict[str, Any]) -> Optional[Coordinate]:
    geometry = result.get("geometry") or {}
    location = geometry.get("location") or {}
    lat = _safe_float(location.get("lat"))
    lng = _safe_float(location.get("lng"))
    if lat is None or lng is None:
        return None
    return Coordinate(latitude=lat, longitude=lng)


def parse_geocode(payload: Dict[str, Any]) -> Optional[Coordinate]:
    """Return the first result's coordinate from a geocode payload, if any."""
    results = payload.get("results") or []
    if not results or not isinstance(results[0], dict):
        return None
    return parse_location(results[0])


def to_candidate(result: Dict[str, Any]) -> Optional[RawCandidate]:
    place_id = _text(result.get("place_id"))
    if not place_id:
        return None
    return RawCandidate(
        external_id=place_id,
        name=_text(result.get("name")),
        formatted_address=_text(result.get("formatted_address")),
        location=parse_location(result),
    )


def parse_results(payload: Dict[str, Any]) -> List[RawCandidate]:
    """Extract text search results into candidates, keeping provider order."""
    candidates: List[RawCandidate] = []
    for result in payload.get("results") or []:
        if not isinstance(result, dict):
            continue
        candidate = to_candidate(result)
        if candidate is None:
            logger.debug("Skipping result without place_id: %s", result.get("name"))
            continue
        candidates.append(candidate)
    return candidates


def to_details(result: Dict[str, Any]) -> PlaceDetails:
    return PlaceDetails(
        phone=_text(result.get("formatted_phone_number")),
        website=_text(result.get("website")),
    )


def to_row(record: EnrichedRecord) -> Dict[str, Any]:
    location = record.location
    return {
        "place_id": record.external_id,
        "name": record.name,
        "address": record.address,
        "phone": record.phone,
        "website": record.website,
        "lat": location.latitude if location else None,
        "lng": location.longitude if location else None,
    }
