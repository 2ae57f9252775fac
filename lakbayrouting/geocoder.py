"""
Nominatim geocoding: free text -> coordinate, and pinned point -> display name
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import requests

from .exceptions import GeocoderError
from .models.network import Coordinate
from .utils.geo_utils import coordinate_label
from .utils.parse_utils import coerce_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeocodeResult:
    coordinate: Coordinate
    name: str


class NominatimGeocoder:
    """Thin client for the Nominatim search and reverse endpoints"""

    def __init__(self, base_url: str = 'https://nominatim.openstreetmap.org', country: Optional[str] = 'ph',
                 user_agent: str = 'lakbayrouting/1.0', timeout: float = 10.0):
        self.base_url = base_url.rstrip('/')
        self.country = country
        self.timeout = timeout
        self.session = requests.Session()
        # Nominatim rejects requests without an identifying User-Agent
        self.session.headers.update({'User-Agent': user_agent, 'Accept': 'application/json'})

    def _get(self, endpoint: str, params: dict):
        t0 = time.time()
        try:
            resp = self.session.get(f"{self.base_url}/{endpoint}", params=params, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as e:
            raise GeocoderError(f"Nominatim {endpoint} failed: {e}")
        except ValueError as e:
            raise GeocoderError(f"Nominatim {endpoint} returned invalid JSON: {e}")
        finally:
            logger.debug(f"Nominatim {endpoint} took {(time.time() - t0) * 1000:.0f}ms")

    def geocode(self, text: str) -> Optional[GeocodeResult]:
        """Best match for ``text``, or None when nothing matches"""
        text = (text or '').strip()
        if not text:
            return None
        params = {'q': text, 'format': 'json', 'limit': 1}
        if self.country:
            params['countrycodes'] = self.country
        results = self._get('search', params)
        if not results:
            logger.info(f"No geocoding match for {text!r}")
            return None
        best = results[0]
        lat, lon = coerce_number(best.get('lat')), coerce_number(best.get('lon'))
        if lat is None or lon is None:
            logger.warning(f"Geocoder returned an unusable coordinate for {text!r}")
            return None
        return GeocodeResult(Coordinate(lat, lon), best.get('display_name') or text)

    def reverse(self, coordinate: Coordinate) -> GeocodeResult:
        """Display name for a pinned point; falls back to the coordinate text"""
        try:
            data = self._get('reverse', {'lat': coordinate.lat, 'lon': coordinate.lon, 'format': 'json'})
        except GeocoderError as e:
            logger.warning(f"Reverse geocoding failed, using coordinates: {e}")
            data = None
        name = data.get('display_name') if isinstance(data, dict) else None
        return GeocodeResult(coordinate, name or coordinate_label(coordinate))


def build_geocoder(cfg) -> NominatimGeocoder:
    return NominatimGeocoder(cfg.geocoder_url, country=cfg.geocoder_country,
                             user_agent=cfg.geocoder_user_agent, timeout=cfg.geocoder_timeout)
