"""
Custom exceptions for the Lakbay trip planner
"""


class LakbayError(Exception):
    """Base exception for the Lakbay trip planner"""
    pass


class ConfigError(LakbayError):
    """Raised when configuration or user search settings are invalid"""
    pass


class DirectoryError(LakbayError):
    """Raised when the route directory cannot be fetched or decoded"""
    pass


class DirectoryNotReadyError(LakbayError):
    """Raised when a search is attempted before the directory has loaded"""
    pass


class DataValidationError(LakbayError):
    """Raised when a directory record is malformed (strict ingestion only)"""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class LocationNotFoundError(LakbayError):
    """Raised when the origin or destination cannot be resolved to a coordinate"""
    pass


class RouteNotFoundError(LakbayError):
    """Raised when no route is found between origin and destination"""
    pass


class InvalidCoordinatesError(LakbayError):
    """Raised when coordinates are invalid or out of bounds"""
    pass


class GeometryProviderError(LakbayError):
    """Raised when a path geometry request fails"""
    pass


class GeocoderError(LakbayError):
    """Raised when the geocoding service cannot be reached"""
    pass
