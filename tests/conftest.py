import os
from typing import Optional

import pytest

from lakbayrouting.exceptions import DirectoryError, GeometryProviderError
from lakbayrouting.geocoder import GeocodeResult
from lakbayrouting.models.network import Coordinate, Directory, Route, Stop, Terminal
from lakbayrouting.models.trip import CostMetric, Direction, SearchConfig, Segment, SegmentStep

SAMPLE_DIRECTORY = os.path.join(os.path.dirname(__file__), '..', 'data', 'directory_sample.json')

# Handy coordinate aliases (lat, lon); ~5.6 km between consecutive points
POINT_A = Coordinate(14.60, 121.00)
POINT_B = Coordinate(14.65, 121.00)
POINT_C = Coordinate(14.70, 121.00)
POINT_D = Coordinate(14.75, 121.00)

# 0.0018 deg of latitude is ~0.2 km
NEAR_A = Coordinate(POINT_A.lat - 0.0018, POINT_A.lon)
NEAR_C = Coordinate(POINT_C.lat + 0.0018, POINT_C.lon)
NEAR_D = Coordinate(POINT_D.lat + 0.0018, POINT_D.lon)


def make_segment(route_id: str, start: Coordinate, end: Coordinate, time: float, fare: float,
                 distance: float, mode: str = 'Jeepney', terminal_id: str = 'T1',
                 direction: Direction = Direction.FORWARD, path=None) -> Segment:
    return Segment(
        terminal_id=terminal_id,
        route_id=route_id,
        direction=direction,
        mode=mode,
        route_name=f"{mode} {route_id}",
        start=start,
        start_name=f"{route_id} start",
        end=end,
        end_name=f"{route_id} end",
        fare=fare,
        time=time,
        distance=distance,
        steps=(SegmentStep(f"{route_id} start", start), SegmentStep(f"{route_id} end", end)),
        path=path,
    )


def make_config(max_walk_km: float = 1.0, max_transfers: int = 1, metric: str = 'time',
                modes=('jeepney', 'bus', 'train')) -> SearchConfig:
    return SearchConfig(max_walk_km=max_walk_km, max_transfers=max_transfers,
                        cost_metric=CostMetric(metric), active_modes=frozenset(modes))


def make_route(route_id: str, mode: str, start: Coordinate, end: Coordinate,
               fare: float, time: float, distance: float, path=None) -> Route:
    return Route(
        id=route_id,
        mode=mode,
        stops=(
            Stop(f"{route_id}-1", f"{route_id} boarding", start, 0.0, 0.0, 0.0),
            Stop(f"{route_id}-2", f"{route_id} destination", end, fare, time, distance),
        ),
        name=f"{mode} {route_id}",
        path=path,
    )


def make_terminal(terminal_id: str, coordinate: Coordinate, *routes: Route) -> Terminal:
    return Terminal(id=terminal_id, name=f"Terminal {terminal_id}", coordinate=coordinate,
                    routes=tuple(routes))


@pytest.fixture
def transfer_segments():
    """A->B and B->C; no single segment spans A->C"""
    return [
        make_segment('AB', POINT_A, POINT_B, time=20, fare=15, distance=5),
        make_segment('BC', POINT_B, POINT_C, time=15, fare=10, distance=4),
    ]


@pytest.fixture
def network_with_direct(transfer_segments):
    """The transfer network plus a slower but cheaper direct A->C"""
    return transfer_segments + [make_segment('AC', POINT_A, POINT_C, time=60, fare=12, distance=9)]


@pytest.fixture
def small_directory():
    return Directory(terminals=[
        make_terminal('TA', POINT_A,
                      make_route('R1', 'Jeepney', POINT_A, POINT_B, fare=15, time=20, distance=5),
                      make_route('R2', 'Bus', POINT_A, POINT_C, fare=8, time=50, distance=9)),
        make_terminal('TB', POINT_B,
                      make_route('R3', 'LRT Line 1', POINT_B, POINT_C, fare=10, time=15, distance=4)),
    ], version=1)


class FakeDirectorySource:
    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def fetch(self) -> Directory:
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeGeocoder:
    def __init__(self, places: Optional[dict] = None):
        self.places = places or {}
        self.queries = []

    def geocode(self, text: str):
        self.queries.append(text)
        coordinate = self.places.get(text)
        return GeocodeResult(coordinate, f"{text}, Metro Manila") if coordinate else None

    def reverse(self, coordinate: Coordinate):
        return GeocodeResult(coordinate, 'Pinned place')


class FixedGeometryProvider:
    """Answers every lookup with a three-point path through the midpoint"""

    def __init__(self):
        self.calls = []

    def route(self, start, end, profile):
        self.calls.append(profile)
        mid = Coordinate((start.lat + end.lat) / 2, (start.lon + end.lon) / 2)
        return [start, mid, end]


class FailingGeometryProvider:
    def __init__(self, error: Exception = None):
        self.error = error or GeometryProviderError("service unavailable")
        self.calls = 0

    def route(self, start, end, profile):
        self.calls += 1
        raise self.error


@pytest.fixture
def fake_geocoder():
    return FakeGeocoder({'Quiapo Church': Coordinate(14.5990, 120.9840),
                         'Cubao': Coordinate(14.6195, 121.0575)})


@pytest.fixture
def failing_source():
    return FakeDirectorySource(DirectoryError("directory service is down"))
