"""
Path geometry providers (OSRM, OpenRouteService, Mapbox Directions)

Every provider answers ``route(start, end, profile)`` with an ordered list of
Coordinates, or raises GeometryProviderError. Profiles are the engine's own
vocabulary ("walking", "driving") and are mapped to each service's names here.
"""

import logging
import time
from typing import List

import openrouteservice
import polyline
import requests

from .exceptions import ConfigError, GeometryProviderError
from .models.network import Coordinate

logger = logging.getLogger(__name__)

DEFAULT_OSRM_URL = 'https://router.project-osrm.org'

WALKING = 'walking'
DRIVING = 'driving'


class GeometryProvider:
    """Base class for path geometry lookups"""

    name = 'base'
    profile_names = {WALKING: WALKING, DRIVING: DRIVING}

    def route(self, start: Coordinate, end: Coordinate, profile: str) -> List[Coordinate]:
        if profile not in self.profile_names:
            raise GeometryProviderError(f"Unsupported profile: {profile}")
        t0 = time.time()
        try:
            coords = self._route(start, end, self.profile_names[profile])
        except GeometryProviderError:
            raise
        except Exception as e:
            raise GeometryProviderError(f"{self.name} request failed: {e}")
        finally:
            logger.debug(f"{self.name} {profile} lookup took {(time.time() - t0) * 1000:.0f}ms")
        if len(coords) < 2:
            raise GeometryProviderError(f"{self.name} returned {len(coords)} points")
        return coords

    def _route(self, start: Coordinate, end: Coordinate, profile: str) -> List[Coordinate]:
        raise NotImplementedError


class OSRMGeometryProvider(GeometryProvider):
    """OSRM HTTP route service, GeoJSON geometries"""

    name = 'osrm'
    profile_names = {WALKING: 'foot', DRIVING: 'driving'}

    def __init__(self, base_url: str = DEFAULT_OSRM_URL, timeout: float = 10.0):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def _route(self, start, end, profile):
        url = (f"{self.base_url}/route/v1/{profile}/"
               f"{start.lon},{start.lat};{end.lon},{end.lat}")
        resp = requests.get(url, params={'overview': 'full', 'geometries': 'geojson'},
                            timeout=self.timeout)
        resp.raise_for_status()
        data = resp.json()
        if data.get('code') != 'Ok' or not data.get('routes'):
            raise GeometryProviderError(f"osrm: {data.get('code')} {data.get('message', '')}".strip())
        coordinates = data['routes'][0]['geometry']['coordinates']
        # OSRM returns [lon, lat]
        return [Coordinate(lat, lon) for lon, lat in coordinates]


class ORSGeometryProvider(GeometryProvider):
    """OpenRouteService directions via the openrouteservice client"""

    name = 'ors'
    profile_names = {WALKING: 'foot-walking', DRIVING: 'driving-car'}

    def __init__(self, api_key: str, timeout: float = 10.0, client=None):
        self.client = client or openrouteservice.Client(key=api_key, timeout=timeout)

    def _route(self, start, end, profile):
        geojson = self.client.directions(
            [(start.lon, start.lat), (end.lon, end.lat)], profile=profile, format='geojson')
        coordinates = geojson['features'][0]['geometry']['coordinates']
        # ORS returns [lon, lat]
        return [Coordinate(lat, lon) for lon, lat in coordinates]


class MapboxGeometryProvider(GeometryProvider):
    """Mapbox Directions API, polyline6 geometries"""

    name = 'mapbox'
    base_url = 'https://api.mapbox.com/directions/v5/mapbox'

    def __init__(self, token: str, timeout: float = 10.0):
        self.token = token
        self.timeout = timeout

    def _route(self, start, end, profile):
        url = f"{self.base_url}/{profile}/{start.lon},{start.lat};{end.lon},{end.lat}"
        resp = requests.get(url, params={
            'geometries': 'polyline6',
            'overview': 'full',
            'access_token': self.token,
        }, timeout=self.timeout)
        resp.raise_for_status()
        routes = resp.json().get('routes')
        if not routes or not routes[0].get('geometry'):
            raise GeometryProviderError("mapbox: no route geometry")
        # decode returns (lat, lon)
        return [Coordinate(lat, lon) for lat, lon in polyline.decode(routes[0]['geometry'], precision=6)]


def build_geometry_provider(provider_config: dict) -> GeometryProvider:
    """Create the configured provider from ``Config.get_provider_config()``"""
    name = provider_config.get('provider', 'osrm')
    timeout = provider_config.get('timeout', 10.0)
    if name == 'osrm':
        return OSRMGeometryProvider(provider_config.get('osrm_url') or DEFAULT_OSRM_URL, timeout=timeout)
    elif name == 'ors':
        if not provider_config.get('ors_api_key'):
            raise ConfigError("ORS_API_KEY is required for the ors geometry provider")
        return ORSGeometryProvider(provider_config['ors_api_key'], timeout=timeout)
    elif name == 'mapbox':
        if not provider_config.get('mapbox_token'):
            raise ConfigError("MAPBOX_TOKEN is required for the mapbox geometry provider")
        return MapboxGeometryProvider(provider_config['mapbox_token'], timeout=timeout)
    raise ConfigError(f"Unknown geometry provider: {name}")
