"""Resolve a free-text location to the center of the search area."""

import logging

from places_grid.core.errors import GeoResolutionFailed
from places_grid.etl.transform import parse_geocode
from places_grid.models import Coordinate
from places_grid.vendors import google_places

logger = logging.getLogger(__name__)


class GeoResolver:
    def __init__(self, api_key: str, provider=google_places) -> None:
        self._api_key = api_key
        self._provider = provider

    def resolve(self, location_hint: str) -> Coordinate:
        try:
            payload = self._provider.geocode(location_hint, self._api_key)
        except google_places.GooglePlacesError as exc:
            raise GeoResolutionFailed(f"Geocoding failed for {location_hint!r}: {exc}") from exc

        if payload.get("status") != "OK":
            raise GeoResolutionFailed(f"Geocoding returned {payload.get('status')} for {location_hint!r}")

        center = parse_geocode(payload)
        if center is None:
            raise GeoResolutionFailed(f"Geocoding returned no geometry for {location_hint!r}")

        logger.info("Resolved %s to %s", location_hint, center.as_param())
        return center
