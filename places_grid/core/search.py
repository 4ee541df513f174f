"""Paginated text search scoped to one grid cell."""

import logging
import threading
from typing import Callable, Iterator, List, Optional

from places_grid.core.config import EngineConfig
from places_grid.core.pacer import PAGE_TOKEN, RateLimiter
from places_grid.etl.transform import parse_results
from places_grid.models import GridCell, PaginationCursor, RawCandidate
from places_grid.vendors import google_places

logger = logging.getLogger(__name__)


class PaginatedSearchClient:
    """Run one category query against one cell and follow its page tokens.

    A page token only becomes valid a short while after it is issued, so
    every follow-up request waits on the pacer's ``page_token`` class
    measured from the token's issue time. Provider errors end the cell
    quietly: whatever was gathered so far is kept.
    """

    def __init__(
        self,
        api_key: str,
        config: EngineConfig,
        pacer: RateLimiter,
        provider=google_places,
        clock: Optional[Callable[[], float]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self._api_key = api_key
        self._config = config
        self._pacer = pacer
        self._provider = provider
        self._clock = clock or pacer.clock
        self._cancel_event = cancel_event

    def _cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    def iter_candidates(
        self,
        category: str,
        location_hint: str,
        cell: GridCell,
        per_cell_cap: Optional[int] = None,
    ) -> Iterator[RawCandidate]:
        """Yield candidates lazily so a caller can stop mid-cell without fetching more pages."""
        cap = self._config.per_cell_max if per_cell_cap is None else per_cell_cap
        query = f"{category} in {location_hint}"
        cursor: Optional[PaginationCursor] = None
        fetched = 0
        page = 0

        while fetched < cap and page < self._config.max_pages:
            if cursor is not None:
                self._pacer.throttle(PAGE_TOKEN, since=cursor.issued_at)
            if self._cancelled():
                logger.info("Cell %d: cancelled before page %d", cell.index, page + 1)
                return

            try:
                payload = self._provider.text_search(
                    query=query,
                    api_key=self._api_key,
                    location=cell.center,
                    radius=cell.radius_meters,
                    pagetoken=cursor.token if cursor else None,
                )
            except google_places.GooglePlacesError as exc:
                logger.warning("Cell %d: stopping pagination on page %d: %s", cell.index, page + 1, exc)
                return
            page += 1
            received_at = self._clock()

            status = payload.get("status")
            if status not in {"OK", "ZERO_RESULTS"}:
                logger.warning("Cell %d: stopping pagination on status=%s", cell.index, status)
                return

            candidates = parse_results(payload)
            logger.info("Cell %d: fetched %d results on page %d", cell.index, len(candidates), page)
            if not candidates:
                return

            for candidate in candidates:
                yield candidate
                fetched += 1
                if fetched >= cap:
                    return

            token = payload.get("next_page_token")
            if not token:
                return
            cursor = PaginationCursor(token=token, issued_at=received_at)

    def search(
        self,
        category: str,
        location_hint: str,
        cell: GridCell,
        per_cell_cap: Optional[int] = None,
    ) -> List[RawCandidate]:
        return list(self.iter_candidates(category, location_hint, cell, per_cell_cap))
