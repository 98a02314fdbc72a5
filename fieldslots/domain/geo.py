"""
Geographic helpers: great-circle distance and contact coordinate resolution.
"""

import logging
import math
from typing import Dict, Protocol

from .exceptions import GeocodingError, InvalidRequestError
from .models import Contact, Coordinate

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

# Approximate centre points of Vienna's 23 districts.
VIENNA_DISTRICT_CENTROIDS: Dict[int, Coordinate] = {
    1: Coordinate(48.2085, 16.3731),   # Innere Stadt
    2: Coordinate(48.2167, 16.4000),   # Leopoldstadt
    3: Coordinate(48.1944, 16.3944),   # Landstrasse
    4: Coordinate(48.1917, 16.3667),   # Wieden
    5: Coordinate(48.1833, 16.3500),   # Margareten
    6: Coordinate(48.1983, 16.3550),   # Mariahilf
    7: Coordinate(48.2033, 16.3467),   # Neubau
    8: Coordinate(48.2100, 16.3500),   # Josefstadt
    9: Coordinate(48.2200, 16.3500),   # Alsergrund
    10: Coordinate(48.1667, 16.3667),  # Favoriten
    11: Coordinate(48.1667, 16.4333),  # Simmering
    12: Coordinate(48.1750, 16.3167),  # Meidling
    13: Coordinate(48.1833, 16.2833),  # Hietzing
    14: Coordinate(48.2000, 16.2833),  # Penzing
    15: Coordinate(48.1983, 16.3250),  # Rudolfsheim-Fuenfhaus
    16: Coordinate(48.2167, 16.3167),  # Ottakring
    17: Coordinate(48.2333, 16.3167),  # Hernals
    18: Coordinate(48.2333, 16.3333),  # Waehring
    19: Coordinate(48.2500, 16.3500),  # Doebling
    20: Coordinate(48.2333, 16.3833),  # Brigittenau
    21: Coordinate(48.2667, 16.4000),  # Floridsdorf
    22: Coordinate(48.2167, 16.4667),  # Donaustadt
    23: Coordinate(48.1333, 16.3000),  # Liesing
}


class GeocodingService(Protocol):
    """Protocol describing the best-effort address lookup needed by the resolver."""

    async def resolve(self, address: str) -> Coordinate | None:
        """Return the coordinate for an address, or None if nothing matched."""


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two points in kilometers."""
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    h = min(h, 1.0)  # rounding near antipodal points
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def district_centroid(district: int) -> Coordinate:
    """
    Centre point of a Vienna district.

    Raises:
        InvalidRequestError: If the district is not 1-23
    """
    try:
        return VIENNA_DISTRICT_CENTROIDS[district]
    except KeyError:
        raise InvalidRequestError(f"District must be between 1 and 23, got {district}") from None


class CoordinateResolver:
    """
    Resolves a contact to a coordinate with a fixed fallback chain:

    1. lat/lng stored on the contact
    2. geocoding the address (skipped when no geocoder is configured)
    3. the centroid of the contact's district

    Geocoding failures are logged and fall through; nothing is retried.
    """

    def __init__(self, geocoder: GeocodingService | None = None):
        self.geocoder = geocoder

    async def resolve(self, contact: Contact | None) -> Coordinate | None:
        if contact is None:
            return None

        stored = contact.stored_coordinate()
        if stored is not None:
            return stored

        if contact.address and self.geocoder is not None:
            geocoded = await self._geocode(contact.address)
            if geocoded is not None:
                return geocoded

        if contact.district is not None:
            return district_centroid(contact.district)

        return None

    async def _geocode(self, address: str) -> Coordinate | None:
        try:
            return await self.geocoder.resolve(address)
        except GeocodingError as e:
            logger.warning("Geocoding failed for %r, falling back: %s", address, e)
            return None
        except Exception:
            # Never fatal: any geocoder fault degrades to the district fallback
            logger.warning("Unexpected geocoder error for %r, falling back", address, exc_info=True)
            return None
