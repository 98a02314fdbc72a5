"""
Domain-specific exception hierarchy for the field technician slot engine.
"""


class FieldSlotsError(Exception):
    """Base class for all application-level errors."""


class InvalidRequestError(FieldSlotsError, ValueError):
    """Raised when request input is rejected before any computation runs."""


class GeocodingError(FieldSlotsError):
    """Raised when the geocoding backend cannot be reached or answers with an error."""


class DataSourceError(FieldSlotsError):
    """Raised when booking data cannot be loaded or parsed."""
