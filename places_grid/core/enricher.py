"""Phone and website lookups for discovered places."""

import logging
import threading
from typing import Optional

from places_grid.core.pacer import DETAILS, RateLimiter
from places_grid.etl.transform import to_details
from places_grid.models import PlaceDetails
from places_grid.vendors import google_places

logger = logging.getLogger(__name__)


class DetailsEnricher:
    def __init__(
        self,
        api_key: str,
        pacer: RateLimiter,
        provider=google_places,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self._api_key = api_key
        self._pacer = pacer
        self._provider = provider
        self._cancel_event = cancel_event

    def enrich(self, external_id: str) -> Optional[PlaceDetails]:
        """Fetch phone and website; never raises for provider failures.

        Quota errors, bad statuses and transport failures all degrade to empty
        strings so the place itself is still kept. Returns None without calling
        the provider when the search was cancelled while waiting to be paced.
        """
        self._pacer.throttle(DETAILS)
        if self._cancel_event is not None and self._cancel_event.is_set():
            logger.info("Skipping details for %s: search cancelled", external_id)
            return None
        try:
            result = self._provider.place_details(
                place_id=external_id,
                api_key=self._api_key,
                fields=google_places.DETAILS_FIELDS,
            )
        except google_places.ProviderQuotaError:
            logger.warning("Details quota exhausted for %s; keeping place without contact data", external_id)
            return PlaceDetails.empty()
        except google_places.GooglePlacesError as exc:
            logger.warning("Failed to fetch details for %s: %s", external_id, exc)
            return PlaceDetails.empty()
        return to_details(result or {})
