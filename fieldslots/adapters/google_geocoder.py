"""
Google Maps Geocoding API client for resolving customer addresses.
"""

import asyncio
import logging
from typing import Any, Dict

import requests

from ..config import GeocodingConfig
from ..domain.exceptions import GeocodingError
from ..domain.models import Coordinate

logger = logging.getLogger(__name__)


class GoogleGeocoder:
    """
    Best-effort address lookup against the Google Maps Geocoding API.

    Without an API key no request is made and every lookup returns None,
    so callers fall back to district centroids.
    """

    GEOCODE_ENDPOINT = "https://maps.googleapis.com/maps/api/geocode/json"

    def __init__(
        self,
        api_key: str,
        region_suffix: str = "Vienna, Austria",
        timeout_seconds: float = 10.0,
    ):
        """
        Initialize the geocoder.

        Args:
            api_key: Google Maps API key; empty disables lookups
            region_suffix: Appended to every address to bias the match
            timeout_seconds: HTTP timeout per request
        """
        self.api_key = api_key
        self.region_suffix = region_suffix
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(cls, config: GeocodingConfig) -> "GoogleGeocoder":
        return cls(
            api_key=config.get_api_key(),
            region_suffix=config.region_suffix,
            timeout_seconds=config.timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def resolve(self, address: str) -> Coordinate | None:
        """
        Geocode an address without blocking the event loop.

        Returns:
            Coordinate of the best match, or None when unconfigured or unmatched

        Raises:
            GeocodingError: If the API cannot be reached or answers with an HTTP error
        """
        if not self.is_configured:
            logger.info("Google Maps API key not configured; skipping geocoding for %r", address)
            return None

        return await asyncio.to_thread(self.lookup, address)

    def lookup(self, address: str) -> Coordinate | None:
        """Blocking variant of :meth:`resolve`."""
        full_address = f"{address}, {self.region_suffix}" if self.region_suffix else address

        try:
            response = requests.get(
                self.GEOCODE_ENDPOINT,
                params={"address": full_address, "key": self.api_key},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()

        except (requests.exceptions.RequestException, ValueError) as e:
            raise GeocodingError(f"Failed to geocode {full_address!r}: {e}") from e

        if not isinstance(data, dict):
            logger.warning("Unexpected geocoding response for %r: %r", full_address, data)
            return None

        return self._parse_geocode_response(data, full_address)

    def _parse_geocode_response(
        self,
        response_data: Dict[str, Any],
        full_address: str,
    ) -> Coordinate | None:
        """
        Parse the geocode API response into a coordinate.

        Response format:
        {
            "status": "OK",
            "results": [
                {"geometry": {"location": {"lat": 48.2, "lng": 16.37}}}
            ]
        }
        """
        status = response_data.get("status")
        results = response_data.get("results") or []

        if status != "OK" or not results:
            logger.warning("Geocoding found no match for %r (status %s)", full_address, status)
            if response_data.get("error_message"):
                logger.warning("Geocoding error message: %s", response_data["error_message"])
            return None

        try:
            location = results[0]["geometry"]["location"]
            coordinate = Coordinate(lat=float(location["lat"]), lng=float(location["lng"]))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Could not parse geocoding result for %r: %s", full_address, e)
            return None

        logger.debug("Geocoded %r -> (%s, %s)", full_address, coordinate.lat, coordinate.lng)
        return coordinate
