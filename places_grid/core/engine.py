"""Grid aggregation engine.

Resolves the search area, plans overlapping cells, scans each cell with the
paginated search client, drops places already seen in an earlier cell,
enriches every new place with its phone and website, and stops the moment the
requested number of places has been collected.

Cells are scanned one at a time by default. With ``parallel_workers > 1``
distinct cells are scanned on a thread pool; the deduplicator, the result
counter and the pacer stay shared so the cap is never overshot and request
pacing stays global.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from places_grid.core.config import EngineConfig
from places_grid.core.dedup import Deduplicator
from places_grid.core.enricher import DetailsEnricher
from places_grid.core.errors import GeoResolutionFailed
from places_grid.core.geo import GeoResolver
from places_grid.core.grid import GridPlanner
from places_grid.core.pacer import DETAILS, PAGE_TOKEN, RateLimiter
from places_grid.core.search import PaginatedSearchClient
from places_grid.models import EnrichedRecord, GridCell, SearchProgress, SearchRequest
from places_grid.vendors import google_places

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[SearchProgress], None]


class EngineState(str, Enum):
    RESOLVING_LOCATION = "resolving_location"
    PLANNING = "planning"
    SCANNING_CELL = "scanning_cell"
    ENRICHING = "enriching"
    DONE = "done"
    FAILED = "failed"


@dataclass
class _Run:
    request: SearchRequest
    cells_total: int = 0
    cells_completed: int = 0
    reserved: int = 0
    records: List[EnrichedRecord] = field(default_factory=list)
    dedup: Deduplicator = field(default_factory=Deduplicator)
    lock: threading.Lock = field(default_factory=threading.Lock)


class AggregationEngine:
    def __init__(
        self,
        api_key: str,
        config: Optional[EngineConfig] = None,
        provider=google_places,
        pacer: Optional[RateLimiter] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._cancel_event = threading.Event()
        self._progress = progress
        self._state: Optional[EngineState] = None

        if pacer is None:
            # Waiting on the cancel event lets cancel() cut pacing sleeps short.
            pacer = RateLimiter(
                {
                    DETAILS: self._config.details_delay_seconds,
                    PAGE_TOKEN: self._config.page_token_delay_seconds,
                },
                sleep=self._cancel_event.wait,
            )
        self._resolver = GeoResolver(api_key, provider=provider)
        self._planner = GridPlanner(self._config)
        self._search = PaginatedSearchClient(
            api_key,
            self._config,
            pacer,
            provider=provider,
            cancel_event=self._cancel_event,
        )
        self._enricher = DetailsEnricher(api_key, pacer, provider=provider, cancel_event=self._cancel_event)

    @property
    def state(self) -> Optional[EngineState]:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Ask a running search to stop; in-flight requests finish, nothing new starts.

        Cancellation applies to the current run, or to the next one when no run
        is in progress. The engine can be run again afterwards.
        """
        logger.info("Cancellation requested")
        self._cancel_event.set()

    def _set_state(self, state: EngineState) -> None:
        if state is not self._state:
            logger.debug("Engine state %s -> %s", self._state.value if self._state else None, state.value)
        self._state = state

    def run(self, request: SearchRequest) -> List[EnrichedRecord]:
        """Collect up to ``request.result_cap`` unique, enriched places.

        Raises GeoResolutionFailed when the area cannot be geocoded; no search
        or details request is made in that case. Cell and details failures are
        absorbed. After cancel() the places gathered so far are returned.
        """
        try:
            return self._run(request)
        finally:
            self._cancel_event.clear()

    def _run(self, request: SearchRequest) -> List[EnrichedRecord]:
        run = _Run(request=request)

        self._set_state(EngineState.RESOLVING_LOCATION)
        try:
            center = self._resolver.resolve(request.location_hint)
        except GeoResolutionFailed as exc:
            self._set_state(EngineState.FAILED)
            logger.error("Search aborted: %s", exc)
            raise

        self._set_state(EngineState.PLANNING)
        cells = self._planner.plan(center, request.result_cap)
        run.cells_total = len(cells)
        logger.info(
            "Searching %r with %d cell(s) in %s mode, cap=%d",
            request.query,
            len(cells),
            self._config.mode,
            request.result_cap,
        )

        if self._config.parallel_workers > 1 and len(cells) > 1:
            self._scan_parallel(run, cells)
        else:
            for cell in cells:
                if self._should_stop(run):
                    break
                self._scan_cell(run, cell)
                self._cell_done(run)

        self._set_state(EngineState.DONE)
        self._emit_progress(run)
        logger.info(
            "Completed run: records=%d cells_scanned=%d/%d cancelled=%s",
            len(run.records),
            run.cells_completed,
            run.cells_total,
            self.cancelled,
        )
        return list(run.records)

    def _scan_parallel(self, run: _Run, cells: List[GridCell]) -> None:
        workers = min(self._config.parallel_workers, len(cells))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._scan_cell, run, cell) for cell in cells]
            for future in as_completed(futures):
                if future.cancelled():
                    continue
                if future.result():
                    self._cell_done(run)
                if self._should_stop(run):
                    for pending in futures:
                        pending.cancel()

    def _scan_cell(self, run: _Run, cell: GridCell) -> bool:
        if self._should_stop(run):
            return False
        self._set_state(EngineState.SCANNING_CELL)
        request = run.request
        candidates = self._search.iter_candidates(
            request.category,
            request.location_hint,
            cell,
            self._config.per_cell_max,
        )
        admitted = 0
        try:
            for candidate in candidates:
                with run.lock:
                    if self.cancelled or run.reserved >= request.result_cap:
                        break
                    if not run.dedup.admit(candidate.external_id):
                        continue
                    run.reserved += 1

                self._set_state(EngineState.ENRICHING)
                details = self._enricher.enrich(candidate.external_id)
                if details is None:
                    with run.lock:
                        run.reserved -= 1
                    break
                record = EnrichedRecord.from_candidate(candidate, details)
                with run.lock:
                    run.records.append(record)
                admitted += 1

                if self._should_stop(run):
                    break
        finally:
            candidates.close()
        logger.info("Cell %d: admitted %d new place(s)", cell.index, admitted)
        return True

    def _should_stop(self, run: _Run) -> bool:
        with run.lock:
            return self.cancelled or run.reserved >= run.request.result_cap

    def _cell_done(self, run: _Run) -> None:
        with run.lock:
            run.cells_completed += 1
        self._emit_progress(run)

    def _emit_progress(self, run: _Run) -> None:
        if self._progress is None:
            return
        with run.lock:
            snapshot = SearchProgress(
                cells_completed=run.cells_completed,
                cells_total=run.cells_total,
                records_found=len(run.records),
            )
        self._progress(snapshot)
