"""
Directory ingestion: loosely-typed terminal/route/stop payloads -> typed Directory

The directory service is community-sourced, so numbers often arrive as strings
("35 min", "8.5 km", "₱15") and optional fields go missing. Everything is
validated here; nothing downstream ever sees an unparsed value.
"""

import itertools
import json
import logging
import time
from typing import Any, Dict, List, Optional

import pandas as pd
import requests

from .exceptions import DataValidationError, DirectoryError
from .models.network import Coordinate, Directory, Route, Stop, Terminal
from .utils.parse_utils import coerce_number, pick

logger = logging.getLogger(__name__)

_versions = itertools.count(1)

LAT_KEYS = ('lat', 'latitude')
LON_KEYS = ('lon', 'lng', 'longitude')
MODE_KEYS = ('mode', 'type', 'transport_mode', 'vehicle_type')
PATH_KEYS = ('path', 'geometry', 'polyline')


def _coordinate(record: Dict[str, Any], path: str) -> Coordinate:
    lat = coerce_number(pick(record, *LAT_KEYS))
    lon = coerce_number(pick(record, *LON_KEYS))
    if lat is None or lon is None:
        raise DataValidationError(path, "missing or unparsable coordinate")
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise DataValidationError(path, f"coordinate out of range ({lat}, {lon})")
    return Coordinate(lat, lon)


def _cost(record: Dict[str, Any], key: str, path: str) -> float:
    value = coerce_number(record.get(key))
    if value is None:
        raise DataValidationError(path, f"unparsable {key}: {record.get(key)!r}")
    if value < 0:
        raise DataValidationError(path, f"negative {key}: {value}")
    return value


def _parse_stop(record: Dict[str, Any], index: int, path: str) -> Stop:
    if not isinstance(record, dict):
        raise DataValidationError(path, "stop is not an object")
    return Stop(
        id=str(pick(record, 'id', 'stop_id', default=f"STOP_{index + 1}")),
        name=str(pick(record, 'name', 'stop_name', default=f"Stop {index + 1}")),
        coordinate=_coordinate(record, path),
        fare=_cost(record, 'fare', path),
        time=_cost(record, 'time', path),
        distance=_cost(record, 'distance', path),
    )


def _parse_path(raw: Any, path: str) -> Optional[tuple]:
    """Route geometry: [[lat, lon], ...], [{lat, lng}, ...] or a GeoJSON LineString"""
    if raw is None:
        return None
    geojson = isinstance(raw, dict) and raw.get('type') == 'LineString'
    points = raw.get('coordinates') if geojson else raw
    if not isinstance(points, list):
        raise DataValidationError(path, "path is not a coordinate list")
    coords = []
    for i, point in enumerate(points):
        if isinstance(point, dict):
            coords.append(_coordinate(point, f"{path}[{i}]"))
            continue
        if not isinstance(point, (list, tuple)) or len(point) < 2:
            raise DataValidationError(f"{path}[{i}]", "bad path point")
        first, second = coerce_number(point[0]), coerce_number(point[1])
        if first is None or second is None:
            raise DataValidationError(f"{path}[{i}]", "unparsable path point")
        # GeoJSON is [lon, lat]
        lat, lon = (second, first) if geojson else (first, second)
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise DataValidationError(f"{path}[{i}]", "path point out of range")
        coords.append(Coordinate(lat, lon))
    if len(coords) < 2:
        return None
    return tuple(coords)


def _parse_route(record: Dict[str, Any], index: int, path: str, strict: bool) -> Route:
    if not isinstance(record, dict):
        raise DataValidationError(path, "route is not an object")
    raw_stops = record.get('stops') or []
    if not isinstance(raw_stops, list) or not raw_stops:
        raise DataValidationError(path, "route has no stops")

    stops = tuple(_parse_stop(s, i, f"{path}.stops[{i}]") for i, s in enumerate(raw_stops))
    for prev, stop in zip(stops, stops[1:]):
        if stop.fare < prev.fare or stop.time < prev.time or stop.distance < prev.distance:
            raise DataValidationError(
                path, f"stops not ordered by cumulative cost at {prev.name!r} -> {stop.name!r}")

    try:
        geometry = _parse_path(pick(record, *PATH_KEYS), f"{path}.path")
    except DataValidationError as e:
        if strict:
            raise
        logger.warning(f"Dropping path geometry: {e}")
        geometry = None

    mode = pick(record, *MODE_KEYS, default='other')
    return Route(
        id=str(pick(record, 'id', 'route_id', default=f"ROUTE_{index + 1}")),
        mode=str(mode),
        stops=stops,
        name=str(record.get('name') or ''),
        path=geometry,
    )


def _city_name(record: Dict[str, Any]) -> str:
    city = pick(record, 'city', 'city_name', default='')
    if isinstance(city, dict):
        return str(city.get('name', ''))
    return str(city)


def _parse_terminal(record: Dict[str, Any], index: int, strict: bool) -> Terminal:
    path = f"terminals[{index}]"
    if not isinstance(record, dict):
        raise DataValidationError(path, "terminal is not an object")
    terminal_id = str(pick(record, 'id', 'terminal_id', default=f"TERM_{index + 1}"))
    coordinate = _coordinate(record, path)

    routes: List[Route] = []
    for i, raw_route in enumerate(record.get('routes') or []):
        route_path = f"{path}.routes[{i}]"
        try:
            routes.append(_parse_route(raw_route, i, route_path, strict))
        except DataValidationError as e:
            if strict:
                raise
            logger.warning(f"Dropping route: {e}")

    return Terminal(
        id=terminal_id,
        name=str(pick(record, 'name', 'terminal_name', default=f"Terminal {terminal_id}")),
        coordinate=coordinate,
        city=_city_name(record),
        routes=tuple(routes),
    )


def parse_directory(payload: Any, strict: bool = False) -> Directory:
    """Validate a raw directory payload into the typed model.

    Lenient mode drops a malformed terminal or route (logged) and keeps the rest;
    strict mode raises DataValidationError on the first malformed record.
    """
    if isinstance(payload, dict):
        records = pick(payload, 'terminals', 'results', default=None)
    else:
        records = payload
    if not isinstance(records, list):
        raise DirectoryError("Directory payload has no terminal list")

    terminals: List[Terminal] = []
    for i, record in enumerate(records):
        try:
            terminals.append(_parse_terminal(record, i, strict))
        except DataValidationError as e:
            if strict:
                raise
            logger.warning(f"Dropping terminal: {e}")

    directory = Directory(terminals=terminals, version=next(_versions))
    logger.info(f"Loaded directory v{directory.version}: {len(terminals)} terminals, "
                f"{directory.route_count} routes, {directory.stop_count} stops")
    return directory


def load_directory_file(path: str, strict: bool = False) -> Directory:
    """Load a JSON directory snapshot from disk"""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            payload = json.load(f)
    except (OSError, ValueError) as e:
        raise DirectoryError(f"Failed to read directory file {path}: {e}")
    return parse_directory(payload, strict=strict)


def load_directory_csv(stops_csv: str, paths_csv: Optional[str] = None, strict: bool = False) -> Directory:
    """Load a directory exported as flat tables.

    ``stops_csv`` holds one row per stop with terminal and route columns
    (terminal_id, terminal_name, terminal_lat, terminal_lon, city, route_id,
    route_mode, route_name, stop_id, stop_name, stop_lat, stop_lon, fare,
    time, distance). ``paths_csv`` holds route_id, sequence, lat, lng.
    Row order is preserved; it decides search tie-breaking.
    """
    id_columns = {'terminal_id': str, 'route_id': str, 'stop_id': str}
    try:
        stops_df = pd.read_csv(stops_csv, dtype=id_columns)
        paths_df = pd.read_csv(paths_csv, dtype={'route_id': str}) if paths_csv else None
    except (OSError, ValueError) as e:
        raise DirectoryError(f"Failed to read directory tables: {e}")

    missing = {'terminal_id', 'route_id', 'stop_name', 'stop_lat', 'stop_lon',
               'fare', 'time', 'distance'} - set(stops_df.columns)
    if missing:
        raise DirectoryError(f"Directory table is missing columns: {sorted(missing)}")

    route_paths: Dict[str, list] = {}
    if paths_df is not None:
        paths_df = paths_df.sort_values(['route_id', 'sequence'], kind='stable')
        lon_col = 'lng' if 'lng' in paths_df.columns else 'lon'
        for route_id, group in paths_df.groupby('route_id', sort=False):
            route_paths[route_id] = [[lat, lon] for lat, lon in zip(group['lat'].values, group[lon_col].values)]

    stops_df = stops_df.astype(object).where(stops_df.notna(), None)
    terminals = []
    for terminal_id, t_group in stops_df.groupby('terminal_id', sort=False):
        first = t_group.iloc[0]
        routes = []
        for route_id, r_group in t_group.groupby('route_id', sort=False):
            r_first = r_group.iloc[0]
            routes.append({
                'id': route_id,
                'mode': r_first.get('route_mode'),
                'name': r_first.get('route_name'),
                'path': route_paths.get(route_id),
                'stops': [
                    {
                        'id': row.get('stop_id'),
                        'name': row.get('stop_name'),
                        'lat': row.get('stop_lat'),
                        'lon': row.get('stop_lon'),
                        'fare': row.get('fare'),
                        'time': row.get('time'),
                        'distance': row.get('distance'),
                    }
                    for _, row in r_group.iterrows()
                ],
            })
        terminals.append({
            'id': terminal_id,
            'name': first.get('terminal_name'),
            'lat': first.get('terminal_lat'),
            'lon': first.get('terminal_lon'),
            'city': first.get('city') or '',
            'routes': routes,
        })
    return parse_directory(terminals, strict=strict)


class DirectoryClient:
    """Fetches the whole network from the directory REST endpoint"""

    def __init__(self, url: str, timeout: float = 15.0, strict: bool = False):
        self.url = url
        self.timeout = timeout
        self.strict = strict

    def fetch(self) -> Directory:
        start = time.time()
        try:
            resp = requests.get(self.url, headers={'Accept': 'application/json'}, timeout=self.timeout)
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as e:
            raise DirectoryError(f"Directory request failed: {e}")
        except ValueError as e:
            raise DirectoryError(f"Directory response is not JSON: {e}")
        finally:
            logger.debug(f"Directory fetch took {(time.time() - start) * 1000:.0f}ms")
        return parse_directory(payload, strict=self.strict)


class DirectoryFile:
    """Directory source backed by a local JSON snapshot"""

    def __init__(self, path: str, strict: bool = False):
        self.path = path
        self.strict = strict

    def fetch(self) -> Directory:
        return load_directory_file(self.path, strict=self.strict)


def build_directory_source(cfg):
    """Pick the directory source from configuration"""
    if cfg.directory_file:
        return DirectoryFile(cfg.directory_file, strict=cfg.strict_ingestion)
    return DirectoryClient(cfg.directory_url, timeout=cfg.directory_timeout, strict=cfg.strict_ingestion)
