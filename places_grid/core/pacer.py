"""Local request pacing per Google Maps endpoint class."""

import logging
import threading
import time
from typing import Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

DETAILS = "details"
PAGE_TOKEN = "page_token"


class RateLimiter:
    """Enforce a minimum interval between calls of the same endpoint class.

    Slots are reserved under a lock and the caller sleeps outside it, so one
    instance can be shared by concurrent cell scans and still space their
    requests globally. This is a local policy only; it never asks the
    provider about remaining quota.
    """

    def __init__(
        self,
        intervals: Mapping[str, float],
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], object] = time.sleep,
    ) -> None:
        self._intervals = dict(intervals)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last: Dict[str, float] = {}

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    def interval(self, endpoint_class: str) -> float:
        return self._intervals.get(endpoint_class, 0.0)

    def throttle(self, endpoint_class: str, since: Optional[float] = None) -> float:
        """Block until ``endpoint_class`` may be called again; return the time waited.

        ``since`` marks an extra reference point, such as the moment a page
        token was issued, that must also be at least one interval old.
        """
        interval = self.interval(endpoint_class)
        if interval <= 0:
            return 0.0

        with self._lock:
            now = self._clock()
            references = [ref for ref in (self._last.get(endpoint_class), since) if ref is not None]
            ready_at = max(references) + interval if references else now
            release_at = max(now, ready_at)
            self._last[endpoint_class] = release_at

        delay = release_at - now
        if delay > 0:
            logger.debug("Pacing %s for %.3fs", endpoint_class, delay)
            self._sleep(delay)
        return delay
