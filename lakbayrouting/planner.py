"""
TripPlanner service and per-client trip sessions

TripPlanner ties the engine together: it owns the loaded Directory, memoises
segment expansion per (directory version, mode set), resolves free-text or
pinned locations, then runs search and composition.

TripSession holds the one "current" TripPlan for a client. Each search takes a
generation id from ``begin()``; ``complete()`` only accepts the latest one, so a
slow superseded search can never overwrite a newer result.
"""

import itertools
import logging
import threading
from functools import lru_cache
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from .exceptions import (
    DirectoryError,
    DirectoryNotReadyError,
    GeocoderError,
    InvalidCoordinatesError,
    LocationNotFoundError,
    RouteNotFoundError,
)
from .itinerary_composer import ItineraryComposer
from .models.network import Coordinate, Directory, Terminal
from .models.trip import LegGeometry, SearchConfig, Segment, TripPlan
from .segment_expander import expand, forward_segment
from .trip_search import search
from .utils.geo_utils import coordinate_label
from .utils.mode_utils import mode_matches
from .utils.parse_utils import coerce_number, pick

logger = logging.getLogger(__name__)

Location = Tuple[Coordinate, str]

# Expanded segment lists kept per (directory version, mode set)
SEGMENT_CACHE_SIZE = 16
# Geocoder answers per free-text query; transport failures are not kept
GEOCODE_CACHE_SIZE = 256


def validate_coordinate(lat: float, lon: float) -> Coordinate:
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise InvalidCoordinatesError(f"Coordinate out of range: ({lat}, {lon})")
    return Coordinate(lat, lon)


class TripSession:
    """Latest-wins holder for the currently displayed TripPlan"""

    def __init__(self):
        self._lock = threading.Lock()
        self._generations = itertools.count(1)
        self._latest = 0
        self._current: Optional[TripPlan] = None

    def begin(self) -> int:
        with self._lock:
            self._latest = next(self._generations)
            return self._latest

    @property
    def latest(self) -> int:
        return self._latest

    def complete(self, generation: int, plan: Optional[TripPlan]) -> bool:
        """Install ``plan`` if ``generation`` is still the latest issued"""
        with self._lock:
            if generation != self._latest:
                logger.info(f"Discarding stale trip result (generation {generation}, latest {self._latest})")
                return False
            if plan is not None:
                plan.generation = generation
            self._current = plan
            return True

    def clear(self):
        with self._lock:
            self._current = None

    @property
    def current(self) -> Optional[TripPlan]:
        return self._current


class TripPlanner:
    """End-to-end trip planning over a loaded Directory"""

    def __init__(self, directory_source, geometry_provider=None, geocoder=None,
                 search_defaults: Optional[Dict[str, Any]] = None,
                 segment_cache_size: int = SEGMENT_CACHE_SIZE):
        self.directory_source = directory_source
        self.geocoder = geocoder
        self.composer = ItineraryComposer(geometry_provider)
        self.search_defaults = search_defaults or {}
        self._lock = threading.Lock()
        self._directory: Optional[Directory] = None
        self._expand_cached = lru_cache(maxsize=segment_cache_size)(self._expand)
        self._geocode_cached = lru_cache(maxsize=GEOCODE_CACHE_SIZE)(self._geocode)

    # ------------------------------------------------------------------
    #  Directory lifecycle
    # ------------------------------------------------------------------
    def load_directory(self) -> Directory:
        """Fetch the directory; on failure the planner is not ready"""
        try:
            directory = self.directory_source.fetch()
        except DirectoryError as e:
            with self._lock:
                self._directory = None
            self._expand_cached.cache_clear()
            logger.error(f"Directory load failed, planner not ready: {e}")
            raise
        with self._lock:
            self._directory = directory
        self._expand_cached.cache_clear()
        return directory

    @property
    def is_ready(self) -> bool:
        return self._directory is not None

    @property
    def directory(self) -> Directory:
        if self._directory is None:
            raise DirectoryNotReadyError("Route directory has not been loaded")
        return self._directory

    def segments_for(self, active_modes: Iterable[str]) -> List[Segment]:
        """Expanded segments for a mode set, memoised for the loaded directory version"""
        directory = self.directory
        return self._expand_cached(directory.version, frozenset(m.lower() for m in active_modes))

    def segment_cache_info(self):
        return self._expand_cached.cache_info()

    def _expand(self, version: int, modes: FrozenSet[str]) -> List[Segment]:
        directory = self.directory
        if directory.version != version:
            logger.debug(f"Directory moved from v{version} to v{directory.version} during expansion")
        return expand(directory, sorted(modes))

    # ------------------------------------------------------------------
    #  Locations
    # ------------------------------------------------------------------
    def resolve_location(self, value: Any) -> Location:
        """Coordinate, ``{lat, lng[, name]}`` mapping, or free text -> (coordinate, name)"""
        if isinstance(value, Coordinate):
            return value, coordinate_label(value)
        if isinstance(value, dict):
            lat = coerce_number(pick(value, 'lat', 'latitude'))
            lon = coerce_number(pick(value, 'lng', 'lon', 'longitude'))
            if lat is None or lon is None:
                raise InvalidCoordinatesError(f"Unparsable coordinate: {value!r}")
            coordinate = validate_coordinate(lat, lon)
            return coordinate, str(value.get('name') or coordinate_label(coordinate))
        if isinstance(value, str) and value.strip():
            if self.geocoder is None:
                raise LocationNotFoundError(f"No geocoder configured for {value!r}")
            try:
                result = self._geocode_cached(value)
            except GeocoderError as e:
                logger.warning(f"Geocoding {value!r} failed: {e}")
                result = None
            if result is None:
                raise LocationNotFoundError(f"Location not found: {value!r}")
            return result.coordinate, result.name
        raise LocationNotFoundError(f"Location not found: {value!r}")

    def _geocode(self, text: str):
        return self.geocoder.geocode(text)

    # ------------------------------------------------------------------
    #  Planning
    # ------------------------------------------------------------------
    def default_config(self) -> SearchConfig:
        return SearchConfig.from_user_input(**self.search_defaults)

    def plan(self, origin: Any, destination: Any, config: Optional[SearchConfig] = None) -> Optional[TripPlan]:
        """Best TripPlan between two locations, or None if no route fits the constraints"""
        if not self.is_ready:
            raise DirectoryNotReadyError("Route directory has not been loaded")
        config = config or self.default_config()

        origin_coord, origin_name = self.resolve_location(origin)
        dest_coord, dest_name = self.resolve_location(destination)

        segments = self.segments_for(config.active_modes)
        candidate = search(origin_coord, dest_coord, segments, config)
        if candidate is None:
            return None
        return self.composer.compose(candidate, origin_coord, dest_coord,
                                     origin_name=origin_name, destination_name=dest_name)

    def plan_in_session(self, session: TripSession, origin: Any, destination: Any,
                        config: Optional[SearchConfig] = None) -> Tuple[Optional[TripPlan], int, bool]:
        """Plan and offer the result to ``session``; returns (plan, generation, accepted)"""
        generation = session.begin()
        try:
            plan = self.plan(origin, destination, config)
        except Exception:
            # A failed search still replaces whatever the session showed before
            session.complete(generation, None)
            raise
        accepted = session.complete(generation, plan)
        return plan, generation, accepted

    def find_trip(self, origin: Any, destination: Any, config: Optional[SearchConfig] = None) -> TripPlan:
        """Like plan(), but a missing route raises RouteNotFoundError"""
        plan = self.plan(origin, destination, config)
        if plan is None:
            raise RouteNotFoundError("No suitable route found.")
        return plan

    def direct_route(self, origin: Any, destination: Any) -> LegGeometry:
        """Driving line between two locations, drawn when no transit trip fits"""
        origin_coord, _ = self.resolve_location(origin)
        dest_coord, _ = self.resolve_location(destination)
        return self.composer.direct_leg(origin_coord, dest_coord)

    # ------------------------------------------------------------------
    #  Lookups for the map UI
    # ------------------------------------------------------------------
    def terminals(self) -> List[Terminal]:
        return list(self.directory.terminals)

    def routes(self, modes: Optional[Iterable[str]] = None) -> List[Segment]:
        """Forward segment of every route (optionally only matching modes), in directory order"""
        active = [m.lower() for m in modes] if modes else None
        return [forward_segment(terminal, route) for terminal, route in self.directory.iter_routes()
                if active is None or mode_matches(route.mode, active)]

    def route(self, route_id: str) -> Optional[Segment]:
        for terminal, route in self.directory.iter_routes():
            if route.id == route_id:
                return forward_segment(terminal, route)
        return None

    def search_places(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Case-insensitive name search over terminals, then stops"""
        query = (query or '').strip().lower()
        if not query:
            return []
        results: List[Dict[str, Any]] = []
        seen = set()

        def _add(kind, place_id, name, coordinate):
            if name.lower() in seen or query not in name.lower():
                return
            seen.add(name.lower())
            results.append({'id': place_id, 'name': name, 'type': kind,
                            'lat': coordinate.lat, 'lng': coordinate.lon})

        for terminal in self.directory.terminals:
            _add('terminal', terminal.id, terminal.name, terminal.coordinate)
        for _, route in self.directory.iter_routes():
            for stop in route.stops:
                _add('stop', stop.id, stop.name, stop.coordinate)
        return results[:limit]
