"""
Typed route directory: Terminals own Routes, Routes own ordered Stops
"""

from dataclasses import dataclass, field
from typing import Iterator, List, NamedTuple, Optional, Tuple


class Coordinate(NamedTuple):
    lat: float
    lon: float


@dataclass(frozen=True)
class Stop:
    """A waypoint with cumulative cost from the route's origin terminal"""
    id: str
    name: str
    coordinate: Coordinate
    fare: float
    time: float  # minutes
    distance: float  # km


@dataclass(frozen=True)
class Route:
    """Ordered stops served by one transport mode, starting at a terminal"""
    id: str
    mode: str
    stops: Tuple[Stop, ...]
    name: str = ''
    path: Optional[Tuple[Coordinate, ...]] = None

    @property
    def destination(self) -> Stop:
        return self.stops[-1]


@dataclass(frozen=True)
class Terminal:
    id: str
    name: str
    coordinate: Coordinate
    city: str = ''
    routes: Tuple[Route, ...] = ()


@dataclass
class Directory:
    """The whole network, in the order the directory service returned it"""
    terminals: List[Terminal] = field(default_factory=list)
    version: int = 0

    def iter_routes(self) -> Iterator[Tuple[Terminal, Route]]:
        for terminal in self.terminals:
            for route in terminal.routes:
                yield terminal, route

    @property
    def route_count(self) -> int:
        return sum(len(t.routes) for t in self.terminals)

    @property
    def stop_count(self) -> int:
        return sum(len(r.stops) for _, r in self.iter_routes())
