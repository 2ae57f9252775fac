__title__ = 'lakbayrouting'
__version__ = '1.0.0'
__author__ = 'Lakbayan Team'
__license__ = 'MIT'
__copyright__ = 'Copyright 2025 Lakbayan Team'

__all__ = ['config', 'logger', 'exceptions', 'directory', 'segment_expander', 'trip_search',
           'itinerary_composer', 'geometry', 'geocoder', 'planner']

# Set default logging handler to avoid "No handler found" warnings.
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())
