import threading

import pytest

from lakbayrouting.directory import DirectoryFile
from lakbayrouting.exceptions import (
    DirectoryError,
    DirectoryNotReadyError,
    GeocoderError,
    InvalidCoordinatesError,
    LocationNotFoundError,
    RouteNotFoundError,
)
from lakbayrouting.models.network import Coordinate
from lakbayrouting.models.trip import PathType, SearchConfig
from lakbayrouting.planner import SEGMENT_CACHE_SIZE, TripPlanner, TripSession

from conftest import (
    NEAR_A,
    NEAR_C,
    SAMPLE_DIRECTORY,
    FakeDirectorySource,
    FakeGeocoder,
    make_config,
)

CUBAO_PIN = {'lat': 14.6195, 'lng': 121.0575, 'name': 'Gateway Mall'}
QUIAPO_PIN = {'lat': 14.5990, 'lng': 120.9840, 'name': 'Plaza Miranda'}


@pytest.fixture
def planner(fake_geocoder):
    planner = TripPlanner(DirectoryFile(SAMPLE_DIRECTORY), geocoder=fake_geocoder,
                          search_defaults={'max_walk': '1km', 'max_transfers': 1,
                                           'cost_metric': 'time', 'modes': ['jeepney', 'bus']})
    planner.load_directory()
    return planner


def test_not_ready_until_loaded(failing_source):
    planner = TripPlanner(failing_source)
    assert not planner.is_ready
    with pytest.raises(DirectoryNotReadyError):
        planner.plan(NEAR_A, NEAR_C)
    with pytest.raises(DirectoryError):
        planner.load_directory()
    assert not planner.is_ready
    with pytest.raises(DirectoryNotReadyError):
        planner.terminals()


def test_failed_reload_makes_planner_not_ready(small_directory):
    source = FakeDirectorySource(small_directory, DirectoryError("timeout"))
    planner = TripPlanner(source)
    planner.load_directory()
    assert planner.is_ready
    with pytest.raises(DirectoryError):
        planner.load_directory()
    assert not planner.is_ready


def test_plan_between_pins(planner):
    plan = planner.plan(CUBAO_PIN, QUIAPO_PIN)
    assert plan is not None
    assert plan.itinerary.kind == PathType.DIRECT
    assert plan.candidate.segments[0].route_id == 'R1'
    assert plan.origin_name == 'Gateway Mall'
    assert plan.itinerary.name == 'Trip to Plaza Miranda'
    assert plan.itinerary.regular_fare == 15.0
    assert plan.itinerary.discounted_fare == 15.0 * 0.8


def test_plan_with_geocoded_text(planner, fake_geocoder):
    plan = planner.plan('Cubao', 'Quiapo Church')
    assert plan.destination_name == 'Quiapo Church, Metro Manila'
    assert fake_geocoder.queries == ['Cubao', 'Quiapo Church']


def test_unknown_location_aborts_before_search(planner, monkeypatch):
    def fail_search(*args, **kwargs):
        raise AssertionError("search must not run")

    monkeypatch.setattr('lakbayrouting.planner.search', fail_search)
    with pytest.raises(LocationNotFoundError):
        planner.plan('Atlantis', 'Quiapo Church')
    with pytest.raises(LocationNotFoundError):
        planner.plan('Cubao', '')


def test_geocoder_failure_is_location_not_found(small_directory):
    class DownGeocoder:
        def geocode(self, text):
            raise GeocoderError("unreachable")

    planner = TripPlanner(FakeDirectorySource(small_directory), geocoder=DownGeocoder())
    planner.load_directory()
    with pytest.raises(LocationNotFoundError):
        planner.plan('Cubao', NEAR_C)


def test_bad_pinned_coordinate(planner):
    with pytest.raises(InvalidCoordinatesError):
        planner.plan({'lat': 114.6, 'lng': 121.0}, QUIAPO_PIN)
    with pytest.raises(InvalidCoordinatesError):
        planner.plan({'lat': 'here', 'lng': 121.0}, QUIAPO_PIN)


def test_no_route_returns_none(planner):
    config = SearchConfig.from_user_input(max_walk='100m', modes=['jeepney'])
    assert planner.plan(Coordinate(14.70, 121.20), QUIAPO_PIN, config) is None


def test_find_trip_raises_when_no_route(planner):
    config = SearchConfig.from_user_input(max_walk='100m', modes=['jeepney'])
    with pytest.raises(RouteNotFoundError):
        planner.find_trip(Coordinate(14.70, 121.20), QUIAPO_PIN, config)
    assert planner.find_trip(CUBAO_PIN, QUIAPO_PIN).itinerary.name == 'Trip to Plaza Miranda'


def test_mode_filter_applies(planner):
    config = SearchConfig.from_user_input(max_walk='1km', modes=['bus'])
    assert planner.plan(CUBAO_PIN, QUIAPO_PIN, config) is None


def test_segments_memoised_per_version_and_modes(small_directory):
    source = FakeDirectorySource(small_directory)
    planner = TripPlanner(source)
    planner.load_directory()
    first = planner.segments_for(['jeepney', 'bus'])
    assert planner.segments_for(['BUS', 'jeepney']) is first
    assert planner.segments_for(['jeepney']) is not first

    small_directory.version += 1
    planner.load_directory()
    assert planner.segments_for(['jeepney', 'bus']) is not first


def test_terminals_and_place_search(planner):
    assert [t.name for t in planner.terminals()][:2] == ['Cubao', 'Alabang']
    results = planner.search_places('cubao')
    assert [r['type'] for r in results] == ['terminal', 'stop', 'stop']
    assert [r['name'] for r in results] == ['Cubao', 'Cubao terminal', 'Cubao Station']
    assert planner.search_places('station', limit=2) == planner.search_places('station')[:2]
    assert planner.search_places('   ') == []


def test_session_latest_wins(planner):
    session = TripSession()
    older = session.begin()
    newer = session.begin()
    assert newer > older

    newer_plan = planner.plan(CUBAO_PIN, QUIAPO_PIN)
    older_plan = planner.plan(QUIAPO_PIN, CUBAO_PIN)
    assert session.complete(newer, newer_plan) is True
    # the slow, superseded search finishes last and is discarded
    assert session.complete(older, older_plan) is False
    assert session.current is newer_plan
    assert session.current.generation == newer


def test_session_replaces_and_clears(planner):
    session = TripSession()
    first, generation, accepted = planner.plan_in_session(session, CUBAO_PIN, QUIAPO_PIN)
    assert accepted and session.current is first and first.generation == generation

    second, _, _ = planner.plan_in_session(session, QUIAPO_PIN, CUBAO_PIN)
    assert session.current is second

    _, _, accepted = planner.plan_in_session(
        session, Coordinate(14.70, 121.20), QUIAPO_PIN, make_config(max_walk_km=0.1))
    assert accepted
    assert session.current is None

    planner.plan_in_session(session, CUBAO_PIN, QUIAPO_PIN)
    session.clear()
    assert session.current is None


def test_session_generations_are_unique_across_threads():
    session = TripSession()
    issued = []
    lock = threading.Lock()

    def worker():
        for _ in range(200):
            generation = session.begin()
            with lock:
                issued.append(generation)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(set(issued)) == 800
    assert session.latest == 800


def test_failed_search_replaces_previous_trip(planner):
    session = TripSession()
    first, _, _ = planner.plan_in_session(session, CUBAO_PIN, QUIAPO_PIN)
    assert session.current is first

    with pytest.raises(LocationNotFoundError):
        planner.plan_in_session(session, 'Nowhere at all', QUIAPO_PIN)
    assert session.latest == 2
    assert session.current is None

    planner.plan_in_session(session, CUBAO_PIN, QUIAPO_PIN)
    with pytest.raises(InvalidCoordinatesError):
        planner.plan_in_session(session, {'lat': 114.6, 'lng': 121.0}, QUIAPO_PIN)
    assert session.current is None


def test_segment_cache_is_bounded(small_directory):
    planner = TripPlanner(FakeDirectorySource(small_directory), segment_cache_size=4)
    planner.load_directory()
    for i in range(50):
        assert planner.segments_for([f"junk{i}"]) == []
    assert planner.segment_cache_info().currsize == 4

    planner.load_directory()
    assert planner.segment_cache_info().currsize == 0


def test_default_segment_cache_size(small_directory):
    planner = TripPlanner(FakeDirectorySource(small_directory))
    planner.load_directory()
    for i in range(SEGMENT_CACHE_SIZE * 3):
        planner.segments_for(['jeepney', f"mode{i}"])
    assert planner.segment_cache_info().currsize == SEGMENT_CACHE_SIZE


def test_repeated_place_text_geocoded_once(planner, fake_geocoder):
    planner.plan('Cubao', 'Quiapo Church')
    planner.plan('Cubao', 'Quiapo Church')
    planner.direct_route('Cubao', 'Quiapo Church')
    assert fake_geocoder.queries == ['Cubao', 'Quiapo Church']


def test_planner_without_search_defaults_uses_default_modes():
    planner = TripPlanner(DirectoryFile(SAMPLE_DIRECTORY))
    planner.load_directory()
    assert planner.default_config().active_modes
    plan = planner.plan(CUBAO_PIN, QUIAPO_PIN)
    assert plan is not None
    assert plan.candidate.segments[0].route_id == 'R1'


def test_direct_route_falls_back_to_straight_line(small_directory):
    planner = TripPlanner(FakeDirectorySource(small_directory))
    planner.load_directory()
    leg = planner.direct_route(NEAR_A, NEAR_C)
    assert leg.kind == 'direct'
    assert leg.coordinates == (NEAR_A, NEAR_C)
    assert leg.source == 'straight_line'


def test_route_browsing(planner):
    routes = planner.routes()
    assert [r.route_id for r in routes] == ['R1', 'R2', 'R3', 'R4', 'R5', 'R6', 'R7', 'R8']
    assert all(r.direction.value == 'forward' for r in routes)
    assert [r.route_id for r in planner.routes(['Jeepney'])] == ['R1', 'R4', 'R6', 'R7']

    lrt = planner.route('R5')
    assert lrt.start_name == 'Baclaran'
    assert len(lrt.path) == 4
    assert planner.route('R99') is None
