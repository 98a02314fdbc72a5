"""
Adapters layer - External integrations (geocoding, booking data).
"""

from .google_geocoder import GoogleGeocoder
from .json_store import CalendarRecord, JsonBookingStore

__all__ = ["GoogleGeocoder", "CalendarRecord", "JsonBookingStore"]
