import pytest
import requests

from lakbayrouting.exceptions import GeocoderError
from lakbayrouting.geocoder import NominatimGeocoder, build_geocoder
from lakbayrouting.models.network import Coordinate


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        return self.payload


@pytest.fixture
def geocoder():
    return NominatimGeocoder('https://nominatim.example/', country='ph', user_agent='lakbay-tests')


def test_geocode_best_match(geocoder, monkeypatch):
    captured = {}

    def fake_get(url, params=None, timeout=None):
        captured['url'] = url
        captured['params'] = params
        return FakeResponse([{'lat': '14.5995', 'lon': '120.9842',
                              'display_name': 'Quiapo Church, Manila, Metro Manila'}])

    monkeypatch.setattr(geocoder.session, 'get', fake_get)
    result = geocoder.geocode('  Quiapo Church ')
    assert result.coordinate == Coordinate(14.5995, 120.9842)
    assert result.name == 'Quiapo Church, Manila, Metro Manila'
    assert captured['url'] == 'https://nominatim.example/search'
    assert captured['params'] == {'q': 'Quiapo Church', 'format': 'json', 'limit': 1, 'countrycodes': 'ph'}
    assert geocoder.session.headers['User-Agent'] == 'lakbay-tests'


def test_geocode_no_match(geocoder, monkeypatch):
    monkeypatch.setattr(geocoder.session, 'get', lambda url, params=None, timeout=None: FakeResponse([]))
    assert geocoder.geocode('Atlantis') is None
    assert geocoder.geocode('   ') is None


def test_geocode_transport_failure(geocoder, monkeypatch):
    def fake_get(url, params=None, timeout=None):
        raise requests.ConnectionError("no route to host")

    monkeypatch.setattr(geocoder.session, 'get', fake_get)
    with pytest.raises(GeocoderError):
        geocoder.geocode('Cubao')


def test_reverse_uses_display_name(geocoder, monkeypatch):
    monkeypatch.setattr(geocoder.session, 'get', lambda url, params=None, timeout=None: FakeResponse(
        {'display_name': 'Plaza Miranda, Quiapo'}))
    result = geocoder.reverse(Coordinate(14.5990, 120.9838))
    assert result.name == 'Plaza Miranda, Quiapo'


@pytest.mark.parametrize("response", [
    FakeResponse({'error': 'Unable to geocode'}),
    FakeResponse({}, status_code=503),
])
def test_reverse_falls_back_to_coordinate_text(geocoder, monkeypatch, response):
    monkeypatch.setattr(geocoder.session, 'get', lambda url, params=None, timeout=None: response)
    result = geocoder.reverse(Coordinate(14.59904, 120.98381))
    assert result.name == '14.5990, 120.9838'
    assert result.coordinate == Coordinate(14.59904, 120.98381)


def test_build_geocoder():
    class Cfg:
        geocoder_url = 'https://nominatim.example'
        geocoder_country = 'ph'
        geocoder_user_agent = 'lakbay-tests'
        geocoder_timeout = 3

    built = build_geocoder(Cfg)
    assert built.base_url == 'https://nominatim.example'
    assert built.timeout == 3
