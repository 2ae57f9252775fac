"""
ItineraryComposer: winning candidate -> display steps, leg geometry and totals
"""

import logging
from typing import List, Optional, Tuple

from .geometry import DRIVING, WALKING, GeometryProvider
from .models.network import Coordinate
from .models.trip import (
    CandidatePath,
    Itinerary,
    ItineraryStep,
    LegGeometry,
    PathType,
    Segment,
    TripPlan,
)
from .utils.fare_utils import calculate_fare_breakdown, discounted_fare
from .utils.geo_utils import straight_line
from .utils.mode_utils import DEFAULT_RIDE_COLOR, WALK_COLOR, mode_color, mode_icon

logger = logging.getLogger(__name__)


def _km(distance: float) -> str:
    return f"{distance:.1f}km"


def trip_name(destination_name: str, transfers: int) -> str:
    place = destination_name.split(',')[0].strip() or 'Destination'
    if transfers == 0:
        return f"Trip to {place}"
    suffix = 'Transfer' if transfers == 1 else 'Transfers'
    return f"Trip to {place} ({transfers} {suffix})"


def trip_summary(candidate: CandidatePath) -> str:
    if candidate.kind == PathType.DIRECT:
        return f"{candidate.segments[0].mode} + Walking"
    return "Multi-Leg Trip"


class ItineraryComposer:
    """Builds a TripPlan from a candidate path.

    Geometry lookups are made one leg at a time; a provider failure on any
    leg falls back to a straight line between the leg's endpoints.
    """

    def __init__(self, geometry_provider: Optional[GeometryProvider] = None):
        self.geometry_provider = geometry_provider

    def _lookup(self, start: Coordinate, end: Coordinate, profile: str) -> Tuple[Tuple[Coordinate, ...], str]:
        if self.geometry_provider is not None:
            try:
                return tuple(self.geometry_provider.route(start, end, profile)), 'provider'
            except Exception as e:
                logger.warning(f"Geometry lookup failed ({profile}), using straight line: {e}")
        return tuple(straight_line(start, end)), 'straight_line'

    def walk_leg(self, start: Coordinate, end: Coordinate) -> LegGeometry:
        coords, source = self._lookup(start, end, WALKING)
        return LegGeometry(kind='walk', coordinates=coords, color=WALK_COLOR, source=source)

    def ride_leg(self, segment: Segment) -> LegGeometry:
        if segment.path:
            coords, source = tuple(segment.path), 'segment'
        else:
            coords, source = self._lookup(segment.start, segment.end, DRIVING)
        return LegGeometry(kind='ride', coordinates=coords, color=mode_color(segment.mode),
                           mode=segment.mode, icon=mode_icon(segment.mode), source=source)

    def direct_leg(self, start: Coordinate, end: Coordinate) -> LegGeometry:
        """Door-to-door driving line drawn when no transit trip fits"""
        coords, source = self._lookup(start, end, DRIVING)
        return LegGeometry(kind='direct', coordinates=coords, color=DEFAULT_RIDE_COLOR, source=source)

    def build_steps(self, candidate: CandidatePath, origin: Coordinate,
                    destination_name: str) -> List[ItineraryStep]:
        segments, walks = candidate.segments, candidate.walk_legs
        steps = [ItineraryStep(f"Walk {_km(walks[0])} to {segments[0].start_name}", origin, 'walk')]
        for i, segment in enumerate(segments):
            steps.append(ItineraryStep(f"Ride {segment.mode} towards {segment.end_name}",
                                       segment.start, 'ride'))
            steps.extend(ItineraryStep(s.instruction, s.coordinate, 'stop') for s in segment.steps)
            next_name = segments[i + 1].start_name if i + 1 < len(segments) else destination_name
            steps.append(ItineraryStep(
                f"Alight at {segment.end_name} and Walk {_km(walks[i + 1])} to {next_name}",
                segment.end, 'walk'))
        return steps

    def build_legs(self, candidate: CandidatePath, origin: Coordinate,
                   destination: Coordinate) -> List[LegGeometry]:
        legs = []
        previous = origin
        for segment in candidate.segments:
            legs.append(self.walk_leg(previous, segment.start))
            legs.append(self.ride_leg(segment))
            previous = segment.end
        legs.append(self.walk_leg(previous, destination))
        return legs

    def compose(self, candidate: CandidatePath, origin: Coordinate, destination: Coordinate,
                origin_name: str = 'Origin', destination_name: str = 'Destination') -> TripPlan:
        segments = candidate.segments
        regular = sum(s.fare for s in segments)
        walk_km = candidate.walk_distance
        itinerary = Itinerary(
            name=trip_name(destination_name, candidate.transfers),
            summary=trip_summary(candidate),
            kind=candidate.kind,
            steps=tuple(self.build_steps(candidate, origin, destination_name)),
            regular_fare=regular,
            discounted_fare=discounted_fare(regular),
            total_distance=walk_km + sum(s.distance for s in segments),
            total_time=candidate.ride_time,
            walk_distance=walk_km,
            transfers=candidate.transfers,
            score=candidate.score,
            fare_breakdown=calculate_fare_breakdown(segments),
        )
        legs = self.build_legs(candidate, origin, destination)
        fallbacks = sum(1 for leg in legs if leg.source == 'straight_line')
        logger.debug(f"Composed {itinerary.name!r}: {len(itinerary.steps)} steps, "
                     f"{len(legs)} legs ({fallbacks} straight-line)")
        return TripPlan(
            itinerary=itinerary,
            legs=legs,
            origin=origin,
            destination=destination,
            candidate=candidate,
            origin_name=origin_name,
            destination_name=destination_name,
        )


def compose(candidate: CandidatePath, origin: Coordinate, destination: Coordinate,
            geometry_provider: Optional[GeometryProvider] = None,
            origin_name: str = 'Origin', destination_name: str = 'Destination') -> TripPlan:
    return ItineraryComposer(geometry_provider).compose(
        candidate, origin, destination, origin_name=origin_name, destination_name=destination_name)
