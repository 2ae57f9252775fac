#!/usr/bin/env python3
"""
Lakbay Trip Planner - Flask Web API Blueprint
Walk + ride trip planning over the community route directory
"""

from flask import Blueprint, request, jsonify
import math
import threading
import time
from collections import OrderedDict
from typing import Any, Dict, Optional

from lakbayrouting.config import config
from lakbayrouting.directory import build_directory_source
from lakbayrouting.exceptions import (
    ConfigError,
    DirectoryError,
    DirectoryNotReadyError,
    InvalidCoordinatesError,
    LocationNotFoundError,
)
from lakbayrouting.geocoder import build_geocoder
from lakbayrouting.geometry import build_geometry_provider
from lakbayrouting.logger import logger
from lakbayrouting.models.trip import LegGeometry, SearchConfig, Segment, TripPlan
from lakbayrouting.planner import TripPlanner, TripSession, validate_coordinate
from lakbayrouting.utils.fare_utils import discounted_fare
from lakbayrouting.utils.mode_utils import mode_color, mode_icon
from lakbayrouting.utils.parse_utils import coerce_number, parse_modes

routing_bp = Blueprint('routing_bp', __name__)

# Global trip planner instance
trip_planner: Optional[TripPlanner] = None

# One "current trip" per client session, least recently used dropped past config.max_sessions
_sessions: Dict[str, TripSession] = OrderedDict()
_sessions_lock = threading.Lock()

NO_ROUTE_MESSAGE = 'No suitable route found.'


def initialize_trip_planner(planner: Optional[TripPlanner] = None) -> TripPlanner:
    """Build the planner from configuration (or install the given one) and load the directory"""
    global trip_planner
    if planner is None:
        config.validate()
        planner = TripPlanner(
            build_directory_source(config),
            geometry_provider=build_geometry_provider(config.get_provider_config()),
            geocoder=build_geocoder(config),
            search_defaults=config.get_search_defaults(),
        )
    trip_planner = planner
    _sessions.clear()
    if not planner.is_ready:
        try:
            planner.load_directory()
            logger.info("Trip planner initialized successfully")
        except DirectoryError as e:
            # Stay up in not-ready state; /routing/reload retries
            logger.error(f"Failed to load route directory: {e}")
    return planner


def get_session(session_id: Optional[str]) -> TripSession:
    key = session_id or 'default'
    with _sessions_lock:
        session = _sessions.get(key)
        if session is None:
            session = _sessions[key] = TripSession()
            while len(_sessions) > config.max_sessions:
                dropped, _ = _sessions.popitem(last=False)
                logger.debug(f"Dropped idle trip session {dropped!r}")
        else:
            _sessions.move_to_end(key)
        return session


def clean_nan_values(obj):
    """Recursively clean NaN values from objects to make them JSON serializable"""
    if isinstance(obj, dict):
        return {k: clean_nan_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [clean_nan_values(item) for item in obj]
    elif isinstance(obj, float) and math.isnan(obj):
        return None
    elif isinstance(obj, (int, float)) and math.isinf(obj):
        return None
    else:
        return obj


def _point(coordinate) -> Optional[list]:
    return [coordinate.lat, coordinate.lon] if coordinate is not None else None


def serialize_leg(leg: LegGeometry) -> Dict[str, Any]:
    return {
        'kind': leg.kind,
        'coordinates': [_point(c) for c in leg.coordinates],
        'color': leg.color,
        'dashed': leg.is_walk,
        'mode': leg.mode,
        'icon': leg.icon,
        'source': leg.source,
    }


def serialize_route(segment: Segment) -> Dict[str, Any]:
    """Forward segment of a route -> JSON for route browsing"""
    path = segment.path or (segment.start,) + tuple(s.coordinate for s in segment.steps if s.coordinate)
    return {
        'id': segment.route_id,
        'terminal_id': segment.terminal_id,
        'name': segment.route_name,
        'mode': segment.mode,
        'color': mode_color(segment.mode),
        'icon': mode_icon(segment.mode),
        'from': {'name': segment.start_name, 'location': _point(segment.start)},
        'to': {'name': segment.end_name, 'location': _point(segment.end)},
        'fare': {'regular': segment.fare, 'discounted': discounted_fare(segment.fare)},
        'distance_km': segment.distance,
        'time_min': segment.time,
        'distance': f"{segment.distance:.1f} km",
        'time': f"{round(segment.time)} min",
        'steps': [{'instruction': s.instruction, 'location': _point(s.coordinate)} for s in segment.steps],
        'path': [_point(c) for c in path],
    }


def serialize_plan(plan: TripPlan) -> Dict[str, Any]:
    """TripPlan -> JSON body for the map UI"""
    it = plan.itinerary
    return {
        'status': 'ok',
        'itinerary': {
            'name': it.name,
            'type': it.summary,
            'path_type': it.kind.value,
            'steps': [
                {'instruction': s.instruction, 'location': _point(s.coordinate), 'kind': s.kind}
                for s in it.steps
            ],
            'fare': {'regular': it.regular_fare, 'discounted': it.discounted_fare},
            'fare_breakdown': it.fare_breakdown,
            'distance_km': it.total_distance,
            'walk_distance_km': it.walk_distance,
            'time_min': it.total_time,
            'distance': f"{it.total_distance:.1f} km",
            'time': f"{round(it.total_time)} min",
            'transfers': it.transfers,
            'score': it.score,
        },
        'legs': [serialize_leg(leg) for leg in plan.legs],
        'origin': {'name': plan.origin_name, 'location': _point(plan.origin)},
        'destination': {'name': plan.destination_name, 'location': _point(plan.destination)},
        'generation': plan.generation,
    }


def _error_response(e: Exception, context: str):
    if isinstance(e, (ConfigError, InvalidCoordinatesError)):
        return jsonify({'error': str(e)}), 400
    elif isinstance(e, LocationNotFoundError):
        logger.info(f"{context}: {e}")
        return jsonify({'error': 'Locations not found.'}), 404
    elif isinstance(e, DirectoryNotReadyError):
        return jsonify({'error': 'Route directory is not loaded yet'}), 503
    logger.error(f"{context} error: {e}")
    return jsonify({'error': str(e)}), 500


def _require_planner() -> TripPlanner:
    if trip_planner is None or not trip_planner.is_ready:
        raise DirectoryNotReadyError("Route directory is not loaded yet")
    return trip_planner


@routing_bp.route('/routing', methods=['GET'])
def index():
    """Root endpoint"""
    return jsonify({
        'name': 'Lakbay Trip Planner',
        'version': '1.0.0',
        'description': 'Walk + ride trip planning over community-sourced routes',
        'endpoints': {
            'health': '/routing/health',
            'trip': '/routing/trip',
            'terminals': '/routing/terminals',
            'routes': '/routing/routes',
            'search_places': '/routing/search-places',
            'reverse_geocode': '/routing/reverse-geocode',
            'reload': '/routing/reload'
        }
    })


@routing_bp.route('/routing/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    if trip_planner is None or not trip_planner.is_ready:
        return jsonify({
            'status': 'not_ready',
            'message': 'Route directory is not loaded',
            'timestamp': time.time()
        }), 503
    directory = trip_planner.directory
    return jsonify({
        'status': 'healthy',
        'message': 'Lakbay Trip Planner is running',
        'directory_version': directory.version,
        'terminals': len(directory.terminals),
        'routes': directory.route_count,
        'timestamp': time.time()
    })


@routing_bp.route('/routing/trip', methods=['POST'])
def plan_trip():
    """Plan a trip and make it the session's current trip"""
    start = time.time()
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return jsonify({'error': 'No data provided'}), 400
    origin, destination = data.get('from'), data.get('to')
    if not origin or not destination:
        return jsonify({'error': 'Origin and destination required'}), 400

    success = False
    try:
        planner = _require_planner()
        defaults = planner.search_defaults
        search_config = SearchConfig.from_user_input(
            max_walk=data.get('max_walk', defaults.get('max_walk', '2km')),
            max_transfers=data.get('max_transfers', defaults.get('max_transfers', 1)),
            cost_metric=data.get('cost_metric', defaults.get('cost_metric', 'time')),
            modes=data.get('modes') or defaults.get('modes'),
        )
        session = get_session(data.get('session_id'))
        plan, generation, accepted = planner.plan_in_session(session, origin, destination, search_config)
        if plan is None:
            # Still show the door-to-door driving line
            fallback = planner.direct_route(origin, destination)
            return jsonify(clean_nan_values({
                'status': 'no_route',
                'message': NO_ROUTE_MESSAGE,
                'fallback': serialize_leg(fallback),
                'generation': generation,
                'accepted': accepted
            }))
        success = True
        response = serialize_plan(plan)
        response['generation'] = generation
        response['accepted'] = accepted
        return jsonify(clean_nan_values(response))
    except Exception as e:
        return _error_response(e, '/routing/trip')
    finally:
        logger.log_search_request(origin, destination, data.get('cost_metric', 'default'),
                                  (time.time() - start) * 1000, success)


@routing_bp.route('/routing/trip', methods=['GET'])
def current_trip():
    """Current trip for a session"""
    session = get_session(request.args.get('session_id'))
    plan = session.current
    if plan is None:
        return jsonify({'status': 'empty', 'generation': session.latest})
    return jsonify(clean_nan_values(serialize_plan(plan)))


@routing_bp.route('/routing/trip', methods=['DELETE'])
def clear_trip():
    """Discard a session's current trip"""
    get_session(request.args.get('session_id')).clear()
    return jsonify({'status': 'cleared'})


@routing_bp.route('/routing/terminals', methods=['GET'])
def list_terminals():
    """Terminals with coordinates for the map markers"""
    try:
        planner = _require_planner()
        terminals = [
            {
                'id': t.id,
                'name': t.name,
                'city': t.city,
                'lat': t.coordinate.lat,
                'lng': t.coordinate.lon,
                'route_count': len(t.routes)
            }
            for t in planner.terminals()
        ]
        return jsonify({'terminals': terminals})
    except Exception as e:
        return _error_response(e, '/routing/terminals')


@routing_bp.route('/routing/routes', methods=['GET'])
def list_routes():
    """Every route with fare, time, steps and path, for drawing and browsing"""
    try:
        planner = _require_planner()
        modes = parse_modes(request.args.get('modes')) or None
        return jsonify(clean_nan_values({'routes': [serialize_route(s) for s in planner.routes(modes)]}))
    except Exception as e:
        return _error_response(e, '/routing/routes')


@routing_bp.route('/routing/routes/<route_id>', methods=['GET'])
def route_details(route_id: str):
    """One route opened on its own, with its drawn ride geometry"""
    try:
        planner = _require_planner()
        segment = planner.route(route_id)
        if segment is None:
            return jsonify({'error': f'Route {route_id} not found'}), 404
        response = serialize_route(segment)
        response['leg'] = serialize_leg(planner.composer.ride_leg(segment))
        return jsonify(clean_nan_values(response))
    except Exception as e:
        return _error_response(e, '/routing/routes')


@routing_bp.route('/routing/search-places', methods=['GET'])
def search_places():
    """Search terminals and stops by name"""
    try:
        planner = _require_planner()
        query = request.args.get('q', '').strip()
        if not query:
            return jsonify({'suggestions': []})
        return jsonify({'suggestions': planner.search_places(query, limit=10)})
    except Exception as e:
        return _error_response(e, '/routing/search-places')


@routing_bp.route('/routing/reverse-geocode', methods=['GET'])
def reverse_geocode():
    """Display name for a point pinned on the map"""
    try:
        lat = coerce_number(request.args.get('lat'))
        lng = coerce_number(request.args.get('lng', request.args.get('lon')))
        if lat is None or lng is None:
            return jsonify({'error': 'lat and lng required'}), 400
        coordinate = validate_coordinate(lat, lng)
        if trip_planner is None or trip_planner.geocoder is None:
            return jsonify({'error': 'Geocoder not configured'}), 503
        t0 = time.time()
        result = trip_planner.geocoder.reverse(coordinate)
        logger.log_api_call('nominatim_reverse', (time.time() - t0) * 1000, True)
        return jsonify({'name': result.name, 'lat': coordinate.lat, 'lng': coordinate.lon})
    except Exception as e:
        return _error_response(e, '/routing/reverse-geocode')


@routing_bp.route('/routing/reload', methods=['POST'])
def reload_directory():
    """Re-fetch the route directory"""
    if trip_planner is None:
        return jsonify({'error': 'Trip planner not initialized'}), 503
    t0 = time.time()
    try:
        directory = trip_planner.load_directory()
    except DirectoryError as e:
        logger.log_api_call('directory', (time.time() - t0) * 1000, False)
        return jsonify({'status': 'not_ready', 'error': str(e)}), 503
    logger.log_api_call('directory', (time.time() - t0) * 1000, True)
    return jsonify({
        'status': 'reloaded',
        'directory_version': directory.version,
        'terminals': len(directory.terminals),
        'routes': directory.route_count
    })
