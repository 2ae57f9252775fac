"""
SegmentExpander: routes -> directed, search-ready ride segments
"""

import logging
from typing import Iterable, List

from .models.network import Directory, Route, Terminal
from .models.trip import Direction, Segment, SegmentStep
from .utils.mode_utils import mode_matches

logger = logging.getLogger(__name__)


def _route_name(terminal: Terminal, route: Route) -> str:
    return route.name or f"{route.mode} - {terminal.name} to {route.destination.name}"


def forward_segment(terminal: Terminal, route: Route) -> Segment:
    """Terminal -> destination stop, one display step per stop"""
    dest = route.destination
    return Segment(
        terminal_id=terminal.id,
        route_id=route.id,
        direction=Direction.FORWARD,
        mode=route.mode,
        route_name=_route_name(terminal, route),
        start=terminal.coordinate,
        start_name=terminal.name,
        end=dest.coordinate,
        end_name=dest.name,
        fare=dest.fare,
        time=dest.time,
        distance=dest.distance,
        steps=tuple(SegmentStep(stop.name, stop.coordinate) for stop in route.stops),
        path=route.path,
    )


def return_segment(terminal: Terminal, route: Route) -> Segment:
    """Destination stop -> terminal.

    The directory only records stops in the forward direction, so the return
    leg gets generic board/travel steps instead of a per-stop expansion.
    """
    dest = route.destination
    return Segment(
        terminal_id=terminal.id,
        route_id=route.id,
        direction=Direction.RETURN,
        mode=route.mode,
        route_name=_route_name(terminal, route),
        start=dest.coordinate,
        start_name=dest.name,
        end=terminal.coordinate,
        end_name=terminal.name,
        fare=dest.fare,
        time=dest.time,
        distance=dest.distance,
        steps=(
            SegmentStep(f"Board {route.mode} at {dest.name}", dest.coordinate),
            SegmentStep(f"Travel to {terminal.name}", terminal.coordinate),
        ),
        path=tuple(reversed(route.path)) if route.path else None,
    )


def expand(directory: Directory, active_modes: Iterable[str]) -> List[Segment]:
    """Forward and return segments for every route whose mode is active.

    Output order is directory order, then route order, then forward before
    return; the search relies on it for deterministic tie-breaking.
    """
    active_modes = [m.lower() for m in active_modes]
    segments: List[Segment] = []
    skipped = 0
    for terminal, route in directory.iter_routes():
        if not mode_matches(route.mode, active_modes):
            skipped += 1
            continue
        segments.append(forward_segment(terminal, route))
        segments.append(return_segment(terminal, route))
    logger.debug(f"Expanded {len(segments)} segments from directory v{directory.version} "
                 f"({skipped} routes filtered by mode)")
    return segments
