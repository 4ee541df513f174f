import sys
import threading
from pathlib import Path

import pytest

# Ensure the `places_grid` package is importable when running pytest from the repository root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from places_grid.core.config import EngineConfig  # noqa: E402
from places_grid.core.pacer import DETAILS, PAGE_TOKEN, RateLimiter  # noqa: E402


def place(place_id, name=None, lat=39.78, lng=-89.65):
    return {
        "place_id": place_id,
        "name": name or f"Place {place_id}",
        "formatted_address": f"{place_id} Main St",
        "geometry": {"location": {"lat": lat, "lng": lng}},
    }


def places(prefix, count, start=0):
    return [place(f"{prefix}{i}") for i in range(start, start + count)]


def pages_of(results, size=20):
    return [results[i:i + size] for i in range(0, len(results), size)]


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeProvider:
    """Stands in for the google_places module.

    ``cells`` holds one list of pages per grid cell, in the order cells are
    first queried. A page is a list of results, a full payload dict, or an
    exception to raise.
    """

    def __init__(self, cells=None, geocode_payload=None, details=None, clock=None):
        self.cells = cells or []
        self.geocode_payload = geocode_payload or {
            "status": "OK",
            "results": [{"geometry": {"location": {"lat": 39.78, "lng": -89.65}}}],
        }
        self.details = details or {}
        self.clock = clock
        self.geocode_calls = []
        self.search_calls = []
        self.details_calls = []
        self._cell_order = {}
        self._lock = threading.Lock()

    def geocode(self, address, api_key):
        self.geocode_calls.append(address)
        if isinstance(self.geocode_payload, Exception):
            raise self.geocode_payload
        return self.geocode_payload

    def text_search(self, query, api_key, location=None, radius=None, pagetoken=None):
        self.search_calls.append(
            {
                "query": query,
                "location": location,
                "radius": radius,
                "pagetoken": pagetoken,
                "at": self.clock() if self.clock else None,
            }
        )
        if pagetoken is None:
            with self._lock:
                cell_no = self._cell_order.setdefault(location, len(self._cell_order))
            page_no = 0
        else:
            cell_no, page_no = (int(part) for part in pagetoken.split(":"))

        pages = self.cells[cell_no] if cell_no < len(self.cells) else []
        if page_no >= len(pages):
            return {"status": "ZERO_RESULTS", "results": []}

        page = pages[page_no]
        if isinstance(page, Exception):
            raise page
        if isinstance(page, dict):
            return page
        payload = {"status": "OK", "results": page}
        if page_no + 1 < len(pages):
            payload["next_page_token"] = f"{cell_no}:{page_no + 1}"
        return payload

    def place_details(self, place_id, api_key, fields=None):
        self.details_calls.append(place_id)
        result = self.details.get(place_id)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return {"formatted_phone_number": f"+1 555 {place_id}", "website": f"https://{place_id}.example"}
        return result

    def cells_queried(self):
        return len(self._cell_order)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def pacer(clock):
    return RateLimiter({DETAILS: 0.12, PAGE_TOKEN: 2.0}, clock=clock, sleep=clock.sleep)


@pytest.fixture
def engine_config():
    return EngineConfig()
