import pytest

from places_grid.core.config import EngineConfig
from places_grid.core.engine import AggregationEngine, EngineState
from places_grid.core.errors import GeoResolutionFailed
from places_grid.core.pacer import DETAILS, RateLimiter
from places_grid.models import SearchRequest
from places_grid.vendors import google_places

from conftest import FakeProvider, pages_of, place, places


def make_request(cap, district=""):
    return SearchRequest.build(district=district, city="Springfield", category="bakery", result_cap=cap, api_key="key")


def make_engine(provider, pacer, progress=None, **config):
    return AggregationEngine("key", config=EngineConfig(**config), provider=provider, pacer=pacer, progress=progress)


def overlapping_cells(count, per_cell=60, shift=40):
    """Cell k returns ids k*shift .. k*shift+per_cell-1, so neighbours share ids."""
    return [pages_of([place(f"p{k * shift + i}") for i in range(per_cell)]) for k in range(count)]


def test_cap_met_in_first_cell_stops_run(pacer):
    provider = FakeProvider(cells=[pages_of(places("a", 60))])
    engine = make_engine(provider, pacer)

    records = engine.run(make_request(50))

    assert len(records) == 50
    assert [r.external_id for r in records] == [f"a{i}" for i in range(50)]
    assert provider.cells_queried() == 1
    assert len(provider.details_calls) == 50
    assert engine.state is EngineState.DONE


def test_cap_met_mid_cell_skips_remaining_pages_and_cells(pacer):
    provider = FakeProvider(cells=[pages_of(places("a", 60)), pages_of(places("b", 60)), [places("c", 20)], [places("d", 20)]])
    engine = make_engine(provider, pacer)

    records = engine.run(make_request(100))

    assert len(records) == 100
    assert provider.cells_queried() == 2
    # 3 pages for cell 1, 2 pages for cell 2: the 100th place sits on cell 2's second page.
    assert len(provider.search_calls) == 5
    assert len(provider.details_calls) == 100


def test_two_full_cells_fill_cap_without_truncation(pacer):
    provider = FakeProvider(cells=[pages_of(places("a", 60)), pages_of(places("b", 60)), [places("c", 20)]])
    records = make_engine(provider, pacer).run(make_request(120))

    assert len(records) == 120
    assert [r.external_id for r in records[:60]] == [f"a{i}" for i in range(60)]
    assert [r.external_id for r in records[60:]] == [f"b{i}" for i in range(60)]
    assert provider.cells_queried() == 2
    assert len(provider.search_calls) == 6


def test_duplicate_across_cells_keeps_first_cell_data(pacer):
    provider = FakeProvider(
        cells=[
            [[place("dup", name="From cell one"), place("a1")]],
            [[place("dup", name="From cell two"), place("b1")]],
        ]
    )
    records = make_engine(provider, pacer).run(make_request(120))

    ids = [r.external_id for r in records]
    assert ids == ["dup", "a1", "b1"]
    assert records[0].name == "From cell one"
    assert provider.details_calls.count("dup") == 1


@pytest.mark.parametrize("cap", [1, 7, 59, 61, 250, 1000])
def test_result_never_exceeds_cap_and_is_unique(cap, clock):
    pacer = RateLimiter({}, clock=clock, sleep=clock.sleep)
    provider = FakeProvider(cells=overlapping_cells(25))
    records = make_engine(provider, pacer).run(make_request(cap))

    ids = [r.external_id for r in records]
    assert len(records) <= cap
    assert len(ids) == len(set(ids))
    assert len(provider.details_calls) == len(set(provider.details_calls)) == len(records)


def test_geocode_failure_makes_no_search_or_details_calls(pacer):
    provider = FakeProvider(cells=[[places("a", 5)]], geocode_payload={"status": "ZERO_RESULTS", "results": []})
    engine = make_engine(provider, pacer)

    with pytest.raises(GeoResolutionFailed):
        engine.run(make_request(50))

    assert provider.search_calls == []
    assert provider.details_calls == []
    assert engine.state is EngineState.FAILED


def test_details_failure_keeps_record_with_empty_contacts(pacer):
    provider = FakeProvider(
        cells=[[[place("a"), place("b"), place("c")]]],
        details={
            "b": google_places.ProviderQuotaError("OVER_QUERY_LIMIT"),
            "c": google_places.ProviderUnavailable("timeout"),
        },
    )
    records = make_engine(provider, pacer).run(make_request(10))

    assert [r.external_id for r in records] == ["a", "b", "c"]
    assert records[0].phone == "+1 555 a"
    assert (records[1].phone, records[1].website) == ("", "")
    assert (records[2].phone, records[2].website) == ("", "")


def test_failed_cell_contributes_partial_results(pacer):
    provider = FakeProvider(
        cells=[
            [places("a", 20), google_places.ProviderStatusError("UNKNOWN_ERROR")],
            [places("b", 5)],
            [],
            [],
        ]
    )
    records = make_engine(provider, pacer).run(make_request(200))

    ids = [r.external_id for r in records]
    assert ids == [f"a{i}" for i in range(20)] + [f"b{i}" for i in range(5)]
    assert provider.cells_queried() == 4


def test_record_carries_candidate_and_details(pacer):
    provider = FakeProvider(
        cells=[[[place("a", name="Acme Bakery", lat=1.0, lng=2.0)]]],
        details={"a": {"formatted_phone_number": "555", "website": "https://acme.example"}},
    )
    (record,) = make_engine(provider, pacer).run(make_request(1))

    assert record.name == "Acme Bakery"
    assert record.address == "a Main St"
    assert record.phone == "555"
    assert record.website == "https://acme.example"
    assert (record.location.latitude, record.location.longitude) == (1.0, 2.0)


def test_geocodes_location_hint_once(pacer):
    provider = FakeProvider(cells=[[places("a", 3)]])
    make_engine(provider, pacer).run(make_request(240, district="Downtown"))
    assert provider.geocode_calls == ["Downtown, Springfield"]
    assert provider.search_calls[0]["query"] == "bakery in Downtown, Springfield"


def test_progress_reports_each_cell(pacer):
    updates = []
    provider = FakeProvider(cells=[[places("a", 10)], [places("b", 10)], [], [places("d", 5)]])
    make_engine(provider, pacer, progress=updates.append).run(make_request(240))

    assert [(u.cells_completed, u.cells_total, u.records_found) for u in updates] == [
        (1, 4, 10),
        (2, 4, 20),
        (3, 4, 20),
        (4, 4, 25),
        (4, 4, 25),
    ]


def test_cancel_stops_before_next_cell(pacer):
    provider = FakeProvider(cells=[[places("a", 10)], [places("b", 10)], [places("c", 10)], [places("d", 10)]])
    engine = None

    def cancel_after_first_cell(progress):
        if progress.cells_completed == 1:
            engine.cancel()

    engine = make_engine(provider, pacer, progress=cancel_after_first_cell)
    records = engine.run(make_request(240))

    assert len(records) == 10
    assert provider.cells_queried() == 1


def test_engine_can_run_again_after_cancel(pacer):
    provider = FakeProvider(cells=[[places("a", 5)]])
    engine = make_engine(provider, pacer)
    assert engine.state is None

    engine.cancel()
    assert engine.run(make_request(10)) == []
    assert not engine.cancelled

    records = engine.run(make_request(10))
    assert [r.external_id for r in records] == [f"a{i}" for i in range(5)]
    assert engine.state is EngineState.DONE


def test_cancel_while_waiting_for_details_skips_the_call(clock):
    provider = FakeProvider(cells=[[places("a", 5)]])
    engine = None

    def cancel_on_sleep(seconds):
        engine.cancel()
        clock.sleep(seconds)

    pacer = RateLimiter({DETAILS: 5.0}, clock=clock, sleep=cancel_on_sleep)
    engine = make_engine(provider, pacer)

    records = engine.run(make_request(10))

    assert provider.details_calls == ["a0"]
    assert [r.external_id for r in records] == ["a0"]


def test_page_token_delay_overlaps_enrichment(pacer, clock):
    provider = FakeProvider(cells=[pages_of(places("a", 40))], clock=clock)

    records = make_engine(provider, pacer).run(make_request(40))

    assert len(records) == 40
    # 20 details calls on page one: the first is free, the other 19 wait 0.12s each.
    assert provider.search_calls[1]["at"] == pytest.approx(2.28)


def test_cancel_before_scanning_makes_no_search_calls():
    provider = FakeProvider(cells=[pages_of(places("a", 60))])
    engine = AggregationEngine("key", config=EngineConfig(page_token_delay_seconds=30.0), provider=provider)
    engine.cancel()

    records = engine.run(make_request(60))

    assert records == []
    assert provider.search_calls == []


def test_single_mode_runs_one_query_at_center(pacer):
    provider = FakeProvider(cells=[pages_of(places("a", 60)), [places("b", 20)]])
    records = make_engine(provider, pacer, mode="single").run(make_request(1000))

    assert len(records) == 60
    assert provider.cells_queried() == 1
    center = provider.search_calls[0]["location"]
    assert (center.latitude, center.longitude) == (39.78, -89.65)


def test_parallel_scan_respects_cap_and_uniqueness(clock):
    pacer = RateLimiter({}, clock=clock, sleep=clock.sleep)
    provider = FakeProvider(cells=overlapping_cells(25))
    records = make_engine(provider, pacer, parallel_workers=4).run(make_request(1000))

    ids = [r.external_id for r in records]
    assert len(ids) == len(set(ids))
    assert len(records) <= 1000
    assert sorted(provider.details_calls) == sorted(ids)


def test_parallel_scan_stops_at_cap(clock):
    pacer = RateLimiter({}, clock=clock, sleep=clock.sleep)
    provider = FakeProvider(cells=[pages_of(places(f"c{k}-", 60)) for k in range(4)])
    records = make_engine(provider, pacer, parallel_workers=2).run(make_request(90))

    assert len(records) == 90
    assert len(set(r.external_id for r in records)) == 90
    assert len(provider.details_calls) == 90
