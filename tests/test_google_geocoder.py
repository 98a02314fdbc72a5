"""
Tests for the Google Maps geocoding adapter.
"""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
import requests

from fieldslots.adapters.google_geocoder import GoogleGeocoder
from fieldslots.config import GeocodingConfig
from fieldslots.domain.exceptions import GeocodingError
from fieldslots.domain.geo import CoordinateResolver
from fieldslots.domain.models import Contact, Coordinate

GEOCODE_OK = {
    "status": "OK",
    "results": [{"geometry": {"location": {"lat": 48.2167, "lng": 16.4}}}],
}


def _response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class TestGoogleGeocoder:
    """Tests for GoogleGeocoder."""

    def test_successful_lookup(self):
        geocoder = GoogleGeocoder(api_key="secret")

        with patch("fieldslots.adapters.google_geocoder.requests.get") as get:
            get.return_value = _response(GEOCODE_OK)
            result = geocoder.lookup("Praterstrasse 10")

        assert result == Coordinate(48.2167, 16.4)
        _, kwargs = get.call_args
        assert kwargs["params"] == {
            "address": "Praterstrasse 10, Vienna, Austria",
            "key": "secret",
        }
        assert kwargs["timeout"] == 10.0

    def test_zero_results_is_none(self):
        geocoder = GoogleGeocoder(api_key="secret")

        with patch("fieldslots.adapters.google_geocoder.requests.get") as get:
            get.return_value = _response({"status": "ZERO_RESULTS", "results": []})
            assert geocoder.lookup("Nowhere 1") is None

    def test_denied_request_is_none(self):
        geocoder = GoogleGeocoder(api_key="bad")

        with patch("fieldslots.adapters.google_geocoder.requests.get") as get:
            get.return_value = _response(
                {"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid."}
            )
            assert geocoder.lookup("Praterstrasse 10") is None

    def test_malformed_result_is_none(self):
        geocoder = GoogleGeocoder(api_key="secret")

        with patch("fieldslots.adapters.google_geocoder.requests.get") as get:
            get.return_value = _response({"status": "OK", "results": [{"geometry": {}}]})
            assert geocoder.lookup("Praterstrasse 10") is None

    @pytest.mark.parametrize("payload", [["unexpected"], "OK", None])
    def test_non_object_body_is_none(self, payload):
        geocoder = GoogleGeocoder(api_key="secret")

        with patch("fieldslots.adapters.google_geocoder.requests.get") as get:
            get.return_value = _response(payload)
            assert geocoder.lookup("Praterstrasse 10") is None

    def test_transport_error_raises_geocoding_error(self):
        geocoder = GoogleGeocoder(api_key="secret")

        with patch("fieldslots.adapters.google_geocoder.requests.get") as get:
            get.side_effect = requests.exceptions.ConnectionError("connection refused")
            with pytest.raises(GeocodingError, match="connection refused"):
                geocoder.lookup("Praterstrasse 10")

    def test_http_error_raises_geocoding_error(self):
        geocoder = GoogleGeocoder(api_key="secret")
        response = _response(GEOCODE_OK)
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("503 Server Error")

        with patch("fieldslots.adapters.google_geocoder.requests.get", return_value=response):
            with pytest.raises(GeocodingError):
                geocoder.lookup("Praterstrasse 10")

    def test_unconfigured_geocoder_makes_no_request(self):
        geocoder = GoogleGeocoder(api_key="")

        with patch("fieldslots.adapters.google_geocoder.requests.get") as get:
            assert asyncio.run(geocoder.resolve("Praterstrasse 10")) is None

        get.assert_not_called()
        assert not geocoder.is_configured

    def test_resolve_runs_lookup(self):
        geocoder = GoogleGeocoder(api_key="secret", region_suffix="")

        with patch("fieldslots.adapters.google_geocoder.requests.get") as get:
            get.return_value = _response(GEOCODE_OK)
            result = asyncio.run(geocoder.resolve("Praterstrasse 10, Wien"))

        assert result == Coordinate(48.2167, 16.4)
        assert get.call_args.kwargs["params"]["address"] == "Praterstrasse 10, Wien"

    def test_from_config(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "from-env")

        geocoder = GoogleGeocoder.from_config(GeocodingConfig(region_suffix="Graz, Austria", timeout_seconds=3))

        assert geocoder.api_key == "from-env"
        assert geocoder.region_suffix == "Graz, Austria"
        assert geocoder.timeout_seconds == 3

    def test_outage_falls_back_to_district(self):
        """A failing backend degrades to the district centroid via the resolver."""
        resolver = CoordinateResolver(GoogleGeocoder(api_key="secret"))

        with patch("fieldslots.adapters.google_geocoder.requests.get") as get:
            get.side_effect = requests.exceptions.Timeout("timed out")
            result = asyncio.run(resolver.resolve(Contact(address="Praterstrasse 10", district=2)))

        assert result == Coordinate(48.2167, 16.4000)
