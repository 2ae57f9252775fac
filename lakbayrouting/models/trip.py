"""
Search, candidate and itinerary models
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from ..exceptions import ConfigError
from ..utils.mode_utils import DEFAULT_MODES
from ..utils.parse_utils import parse_max_transfers, parse_max_walk, parse_modes
from .network import Coordinate

# The search never goes deeper than two transfers
MAX_SUPPORTED_TRANSFERS = 2


class CostMetric(str, Enum):
    TIME = 'time'
    FARE = 'fare'
    DISTANCE = 'distance'

    @property
    def walk_penalty(self) -> float:
        """Metric units charged per walked km (heuristic, not calibrated)"""
        return WALK_PENALTIES[self]


WALK_PENALTIES = {
    CostMetric.TIME: 12.0,
    CostMetric.FARE: 10.0,
    CostMetric.DISTANCE: 1.0,
}


@dataclass(frozen=True)
class SearchConfig:
    max_walk_km: float
    max_transfers: int = 1
    cost_metric: CostMetric = CostMetric.TIME
    active_modes: FrozenSet[str] = frozenset()

    @property
    def effective_transfers(self) -> int:
        return min(self.max_transfers, MAX_SUPPORTED_TRANSFERS)

    @classmethod
    def from_user_input(cls, max_walk: Union[str, float] = '2km', max_transfers=1,
                        cost_metric: Union[str, CostMetric] = 'time',
                        modes: Union[str, Iterable[str], None] = None) -> 'SearchConfig':
        """Build a validated config from the raw settings the UI sends.

        ``modes=None`` means the default mode set; an explicit selection that
        names no mode raises ConfigError.
        """
        try:
            metric = CostMetric(str(cost_metric.value if isinstance(cost_metric, CostMetric)
                                    else cost_metric).strip().lower())
        except ValueError:
            raise ConfigError(f"Unknown cost metric: {cost_metric!r}")
        active_modes = frozenset(parse_modes(DEFAULT_MODES if modes is None else modes))
        if not active_modes:
            raise ConfigError("No active modes")
        return cls(
            max_walk_km=parse_max_walk(max_walk),
            max_transfers=parse_max_transfers(max_transfers),
            cost_metric=metric,
            active_modes=active_modes,
        )


class Direction(str, Enum):
    FORWARD = 'forward'
    RETURN = 'return'


class PathType(str, Enum):
    DIRECT = 'direct'
    ONE_TRANSFER = 'one-transfer'
    TWO_TRANSFER = 'two-transfer'


@dataclass(frozen=True)
class SegmentStep:
    """Display entry attached to a ride segment"""
    instruction: str
    coordinate: Optional[Coordinate] = None


@dataclass(frozen=True)
class Segment:
    """A directed, search-ready ride derived from a route"""
    terminal_id: str
    route_id: str
    direction: Direction
    mode: str
    route_name: str
    start: Coordinate
    start_name: str
    end: Coordinate
    end_name: str
    fare: float
    time: float
    distance: float
    steps: Tuple[SegmentStep, ...] = ()
    path: Optional[Tuple[Coordinate, ...]] = None

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.terminal_id, self.route_id, self.direction.value)

    def cost(self, metric: CostMetric) -> float:
        if metric == CostMetric.TIME:
            return self.time
        elif metric == CostMetric.FARE:
            return self.fare
        return self.distance


@dataclass(frozen=True)
class CandidatePath:
    kind: PathType
    segments: Tuple[Segment, ...]
    walk_legs: Tuple[float, ...]
    score: float

    @property
    def walk_distance(self) -> float:
        return sum(self.walk_legs)

    @property
    def ride_time(self) -> float:
        return sum(s.time for s in self.segments)

    @property
    def transfers(self) -> int:
        return len(self.segments) - 1


@dataclass(frozen=True)
class ItineraryStep:
    instruction: str
    coordinate: Optional[Coordinate] = None
    kind: str = 'ride'  # walk | ride | stop


@dataclass(frozen=True)
class LegGeometry:
    """Drawing primitive for one walk or ride leg"""
    kind: str  # walk | ride | direct
    coordinates: Tuple[Coordinate, ...]
    color: str
    mode: Optional[str] = None
    icon: Optional[str] = None
    source: str = 'straight_line'  # segment | provider | straight_line

    @property
    def is_walk(self) -> bool:
        return self.kind == 'walk'


@dataclass(frozen=True)
class Itinerary:
    name: str
    summary: str
    kind: PathType
    steps: Tuple[ItineraryStep, ...]
    regular_fare: float
    discounted_fare: float
    total_distance: float
    total_time: float
    walk_distance: float
    transfers: int
    score: float
    fare_breakdown: Dict[str, float] = field(default_factory=dict)


@dataclass
class TripPlan:
    """Itinerary plus its drawn geometry, owned by whoever displays it"""
    itinerary: Itinerary
    legs: List[LegGeometry]
    origin: Coordinate
    destination: Coordinate
    candidate: CandidatePath
    origin_name: str = 'Origin'
    destination_name: str = 'Destination'
    generation: Optional[int] = None
