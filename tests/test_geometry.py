import polyline
import pytest
import requests

from lakbayrouting import geometry
from lakbayrouting.exceptions import ConfigError, GeometryProviderError
from lakbayrouting.geometry import (
    MapboxGeometryProvider,
    ORSGeometryProvider,
    OSRMGeometryProvider,
    build_geometry_provider,
)
from lakbayrouting.models.network import Coordinate

CUBAO = Coordinate(14.6191, 121.0577)
QUIAPO = Coordinate(14.5995, 120.9842)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        return self.payload


def test_osrm_builds_url_and_flips_coordinates(monkeypatch):
    captured = {}

    def fake_get(url, params=None, timeout=None):
        captured['url'] = url
        captured['params'] = params
        return FakeResponse({'code': 'Ok', 'routes': [{'geometry': {'coordinates': [
            [121.0577, 14.6191], [121.02, 14.61], [120.9842, 14.5995]]}}]})

    monkeypatch.setattr(geometry.requests, 'get', fake_get)
    path = OSRMGeometryProvider('https://osrm.example/', timeout=2).route(CUBAO, QUIAPO, 'walking')
    assert captured['url'] == 'https://osrm.example/route/v1/foot/121.0577,14.6191;120.9842,14.5995'
    assert captured['params'] == {'overview': 'full', 'geometries': 'geojson'}
    assert path == [CUBAO, Coordinate(14.61, 121.02), QUIAPO]


def test_osrm_driving_profile(monkeypatch):
    urls = []

    def fake_get(url, params=None, timeout=None):
        urls.append(url)
        return FakeResponse({'code': 'Ok', 'routes': [{'geometry': {'coordinates': [
            [121.0577, 14.6191], [120.9842, 14.5995]]}}]})

    monkeypatch.setattr(geometry.requests, 'get', fake_get)
    OSRMGeometryProvider().route(CUBAO, QUIAPO, 'driving')
    assert '/route/v1/driving/' in urls[0]


@pytest.mark.parametrize("response", [
    FakeResponse({'code': 'NoRoute', 'message': 'Impossible route'}),
    FakeResponse({'code': 'Ok', 'routes': [{'geometry': {'coordinates': [[121.0, 14.6]]}}]}),
    FakeResponse({}, status_code=429),
    requests.Timeout("read timed out"),
])
def test_osrm_failures_raise_provider_error(monkeypatch, response):
    def fake_get(url, params=None, timeout=None):
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(geometry.requests, 'get', fake_get)
    with pytest.raises(GeometryProviderError):
        OSRMGeometryProvider().route(CUBAO, QUIAPO, 'driving')


def test_unknown_profile_is_rejected():
    with pytest.raises(GeometryProviderError):
        OSRMGeometryProvider().route(CUBAO, QUIAPO, 'cycling')


def test_ors_uses_client_directions():
    class FakeClient:
        def __init__(self):
            self.calls = []

        def directions(self, coordinates, profile=None, format=None):
            self.calls.append((coordinates, profile, format))
            return {'features': [{'geometry': {'coordinates': [[121.0577, 14.6191], [120.9842, 14.5995]]}}]}

    client = FakeClient()
    provider = ORSGeometryProvider('key', client=client)
    assert provider.route(CUBAO, QUIAPO, 'walking') == [CUBAO, QUIAPO]
    provider.route(CUBAO, QUIAPO, 'driving')
    assert client.calls[0] == ([(121.0577, 14.6191), (120.9842, 14.5995)], 'foot-walking', 'geojson')
    assert client.calls[1][1] == 'driving-car'


def test_ors_client_errors_are_wrapped():
    class BrokenClient:
        def directions(self, coordinates, profile=None, format=None):
            raise KeyError('features')

    with pytest.raises(GeometryProviderError):
        ORSGeometryProvider('key', client=BrokenClient()).route(CUBAO, QUIAPO, 'walking')


def test_mapbox_decodes_polyline6(monkeypatch):
    encoded = polyline.encode([(14.6191, 121.0577), (14.5995, 120.9842)], precision=6)
    captured = {}

    def fake_get(url, params=None, timeout=None):
        captured['url'] = url
        captured['params'] = params
        return FakeResponse({'routes': [{'geometry': encoded}]})

    monkeypatch.setattr(geometry.requests, 'get', fake_get)
    path = MapboxGeometryProvider('pk.test').route(CUBAO, QUIAPO, 'walking')
    assert captured['url'].endswith('/walking/121.0577,14.6191;120.9842,14.5995')
    assert captured['params']['geometries'] == 'polyline6'
    assert captured['params']['access_token'] == 'pk.test'
    assert path[0].lat == pytest.approx(CUBAO.lat)
    assert path[-1].lon == pytest.approx(QUIAPO.lon)


def test_mapbox_without_routes(monkeypatch):
    monkeypatch.setattr(geometry.requests, 'get', lambda url, params=None, timeout=None: FakeResponse({'routes': []}))
    with pytest.raises(GeometryProviderError):
        MapboxGeometryProvider('pk.test').route(CUBAO, QUIAPO, 'driving')


def test_build_geometry_provider():
    osrm = build_geometry_provider({'provider': 'osrm', 'osrm_url': 'https://osrm.example', 'timeout': 4})
    assert isinstance(osrm, OSRMGeometryProvider)
    assert osrm.base_url == 'https://osrm.example'
    assert osrm.timeout == 4

    mapbox = build_geometry_provider({'provider': 'mapbox', 'mapbox_token': 'pk.test'})
    assert isinstance(mapbox, MapboxGeometryProvider)

    with pytest.raises(ConfigError):
        build_geometry_provider({'provider': 'mapbox'})
    with pytest.raises(ConfigError):
        build_geometry_provider({'provider': 'ors'})
    with pytest.raises(ConfigError):
        build_geometry_provider({'provider': 'google'})
