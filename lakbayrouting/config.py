"""
Configuration management for the Lakbay trip planner
"""

import os
from typing import List, Optional

from .exceptions import ConfigError
from .utils.mode_utils import DEFAULT_MODES
from .utils.parse_utils import parse_max_walk, parse_modes

VALID_METRICS = ('time', 'fare', 'distance')
VALID_PROVIDERS = ('osrm', 'ors', 'mapbox')


class Config:
    """Configuration class for the Lakbay trip planner"""

    def __init__(self):
        # Directory source
        self.directory_url: str = os.getenv('DIRECTORY_URL', 'https://api-lakbayan.onrender.com/api/directory/')
        self.directory_file: Optional[str] = os.getenv('DIRECTORY_FILE')
        self.directory_timeout: float = float(os.getenv('DIRECTORY_TIMEOUT', '15'))
        self.strict_ingestion: bool = os.getenv('STRICT_INGESTION', 'False').lower() == 'true'

        # Path geometry provider
        self.geometry_provider: str = os.getenv('GEOMETRY_PROVIDER', 'osrm').lower()
        self.osrm_url: str = os.getenv('OSRM_URL', 'https://router.project-osrm.org')
        self.ors_api_key: Optional[str] = os.getenv('ORS_API_KEY')
        self.mapbox_token: Optional[str] = os.getenv('MAPBOX_TOKEN')
        self.geometry_timeout: float = float(os.getenv('GEOMETRY_TIMEOUT', '10'))

        # Geocoder
        self.geocoder_url: str = os.getenv('GEOCODER_URL', 'https://nominatim.openstreetmap.org')
        self.geocoder_country: str = os.getenv('GEOCODER_COUNTRY', 'ph')
        self.geocoder_user_agent: str = os.getenv('GEOCODER_USER_AGENT', 'lakbayrouting/1.0')
        self.geocoder_timeout: float = float(os.getenv('GEOCODER_TIMEOUT', '10'))

        # Search defaults
        self.default_max_walk: str = os.getenv('DEFAULT_MAX_WALK', '2km')
        self.default_max_transfers: int = int(os.getenv('DEFAULT_MAX_TRANSFERS', '1'))
        self.default_cost_metric: str = os.getenv('DEFAULT_COST_METRIC', 'time').lower()
        self.default_modes: List[str] = parse_modes(
            os.getenv('DEFAULT_MODES', ','.join(DEFAULT_MODES)))

        # API configuration
        self.host: str = os.getenv('HOST', '0.0.0.0')
        self.port: int = int(os.getenv('PORT', '5000'))
        self.debug: bool = os.getenv('DEBUG', 'False').lower() == 'true'
        self.max_sessions: int = int(os.getenv('MAX_SESSIONS', '1000'))

        # Logging
        self.log_level: str = os.getenv('LOG_LEVEL', 'INFO')
        self.log_dir: str = os.getenv('LOG_DIR', 'logs')

    def validate(self):
        """Validate configuration"""
        parse_max_walk(self.default_max_walk)

        if self.default_max_transfers < 0:
            raise ConfigError("Default max transfers must not be negative")

        if not self.default_modes:
            raise ConfigError("DEFAULT_MODES must name at least one mode")

        if self.max_sessions < 1:
            raise ConfigError("MAX_SESSIONS must be at least 1")

        if self.default_cost_metric not in VALID_METRICS:
            raise ConfigError(f"Unknown cost metric: {self.default_cost_metric}")

        if self.geometry_provider not in VALID_PROVIDERS:
            raise ConfigError(f"Unknown geometry provider: {self.geometry_provider}")

        if self.geometry_provider == 'ors' and not self.ors_api_key:
            raise ConfigError("ORS_API_KEY is required for the ors geometry provider")

        if self.geometry_provider == 'mapbox' and not self.mapbox_token:
            raise ConfigError("MAPBOX_TOKEN is required for the mapbox geometry provider")

        if not self.directory_file and not self.directory_url:
            raise ConfigError("Either DIRECTORY_FILE or DIRECTORY_URL is required")

    def get_search_defaults(self) -> dict:
        """Get defaults for SearchConfig.from_user_input"""
        return {
            'max_walk': self.default_max_walk,
            'max_transfers': self.default_max_transfers,
            'cost_metric': self.default_cost_metric,
            'modes': list(self.default_modes)
        }

    def get_provider_config(self) -> dict:
        """Get configuration for the geometry provider factory"""
        return {
            'provider': self.geometry_provider,
            'osrm_url': self.osrm_url,
            'ors_api_key': self.ors_api_key,
            'mapbox_token': self.mapbox_token,
            'timeout': self.geometry_timeout
        }

    def get_api_config(self) -> dict:
        """Get configuration for Flask API"""
        return {
            'host': self.host,
            'port': self.port,
            'debug': self.debug,
            'max_sessions': self.max_sessions
        }


# Global configuration instance
config = Config()
