"""Core data models shared by the grid search pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from places_grid.core.errors import InvalidSearchRequest


@dataclass(frozen=True, slots=True)
class Coordinate:
    latitude: float
    longitude: float

    def as_param(self) -> str:
        return f"{self.latitude},{self.longitude}"


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """One user-initiated search, read-only once built."""

    category: str
    location_hint: str
    result_cap: int
    api_key: str

    @classmethod
    def build(
        cls,
        *,
        district: Optional[str],
        city: Optional[str],
        category: Optional[str],
        result_cap: Optional[int],
        api_key: str,
        max_results: int = 1000,
    ) -> "SearchRequest":
        district = (district or "").strip()
        city = (city or "").strip()
        category = (category or "").strip()
        if not city or not category:
            raise InvalidSearchRequest("Please enter both city and company type.")

        cap = max_results if result_cap is None else int(result_cap)
        cap = min(max(cap, 1), max_results)

        location_hint = f"{district}, {city}" if district else city
        return cls(category=category, location_hint=location_hint, result_cap=cap, api_key=api_key)

    @property
    def query(self) -> str:
        return f"{self.category} in {self.location_hint}"


@dataclass(frozen=True, slots=True)
class GridCell:
    index: int
    center: Coordinate
    radius_meters: int


@dataclass(frozen=True, slots=True)
class RawCandidate:
    """A single text search hit, before enrichment."""

    external_id: str
    name: str
    formatted_address: str
    location: Optional[Coordinate] = None


@dataclass(frozen=True, slots=True)
class PlaceDetails:
    phone: str = ""
    website: str = ""

    @classmethod
    def empty(cls) -> "PlaceDetails":
        return cls()


@dataclass(frozen=True, slots=True)
class EnrichedRecord:
    """Final unit of output: a candidate completed with its details."""

    external_id: str
    name: str
    address: str
    phone: str
    website: str
    location: Optional[Coordinate] = None

    @classmethod
    def from_candidate(cls, candidate: RawCandidate, details: PlaceDetails) -> "EnrichedRecord":
        return cls(
            external_id=candidate.external_id,
            name=candidate.name,
            address=candidate.formatted_address,
            phone=details.phone,
            website=details.website,
            location=candidate.location,
        )


@dataclass(frozen=True, slots=True)
class PaginationCursor:
    token: str
    issued_at: float


@dataclass(frozen=True, slots=True)
class SearchProgress:
    cells_completed: int
    cells_total: int
    records_found: int
