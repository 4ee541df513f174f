"""Client utilities for the Google Places and Geocoding APIs."""

import logging
from typing import Any, Dict, Optional

import requests

from places_grid.models import Coordinate

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://maps.googleapis.com/maps/api"
_TIMEOUT = 10
_OK_STATUSES = {"OK", "ZERO_RESULTS"}

DETAILS_FIELDS = "formatted_phone_number,website"


class GooglePlacesError(RuntimeError):
    """Raised when a Google Maps API call does not succeed."""


class ProviderUnavailable(GooglePlacesError):
    """Raised on transport-level failures: network errors, HTTP errors, unreadable bodies."""


class ProviderStatusError(GooglePlacesError):
    """Raised when the API answers with a status other than OK or ZERO_RESULTS."""

    def __init__(self, status: str, message: Optional[str] = None) -> None:
        super().__init__(message or status)
        self.status = status


class ProviderQuotaError(ProviderStatusError):
    """Raised when the API reports OVER_QUERY_LIMIT."""


def _get(endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
    try:
        response = _SESSION.get(f"{_BASE_URL}/{endpoint}", params=params, timeout=_TIMEOUT)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("%s request failed: %s", endpoint, exc)
        raise ProviderUnavailable(str(exc)) from exc

    if not isinstance(payload, dict):
        raise ProviderUnavailable(f"{endpoint} returned a non-object payload")

    status = payload.get("status") or "UNKNOWN_ERROR"
    if status not in _OK_STATUSES:
        message = payload.get("error_message")
        logger.error("%s failed: status=%s, error_message=%s", endpoint, status, message)
        if status == "OVER_QUERY_LIMIT":
            raise ProviderQuotaError(status, message)
        raise ProviderStatusError(status, message)
    return payload


def geocode(address: str, api_key: str) -> Dict[str, Any]:
    return _get("geocode/json", {"address": address, "key": api_key})


def text_search(
    query: str,
    api_key: str,
    location: Optional[Coordinate] = None,
    radius: Optional[int] = None,
    pagetoken: Optional[str] = None,
) -> Dict[str, Any]:
    params: Dict[str, Any] = {"query": query, "key": api_key}
    if location is not None:
        params["location"] = location.as_param()
    if radius is not None:
        params["radius"] = radius
    if pagetoken:
        params["pagetoken"] = pagetoken
    return _get("place/textsearch/json", params)


def place_details(place_id: str, api_key: str, fields: str = DETAILS_FIELDS) -> Dict[str, Any]:
    params = {"place_id": place_id, "key": api_key, "fields": fields}
    payload = _get("place/details/json", params)
    return payload.get("result") or {}
