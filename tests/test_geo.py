"""
Tests for distance calculation and coordinate resolution.
"""

import asyncio
from typing import List

import pytest

from fieldslots.domain.exceptions import GeocodingError, InvalidRequestError
from fieldslots.domain.geo import (
    VIENNA_DISTRICT_CENTROIDS,
    CoordinateResolver,
    district_centroid,
    haversine_km,
)
from fieldslots.domain.models import Contact, Coordinate

STEPHANSPLATZ = Coordinate(48.2085, 16.3731)
PRATER = Coordinate(48.2167, 16.4000)


class StubGeocoder:
    """Minimal stub matching GeocodingService."""

    def __init__(self, result: Coordinate | None = None, error: Exception | None = None):
        self._result = result
        self._error = error
        self.calls: List[str] = []

    async def resolve(self, address: str) -> Coordinate | None:
        self.calls.append(address)
        if self._error:
            raise self._error
        return self._result


class TestHaversine:
    """Tests for haversine_km."""

    def test_same_point_is_zero(self):
        assert haversine_km(STEPHANSPLATZ, STEPHANSPLATZ) == 0.0

    def test_symmetric(self):
        for a in VIENNA_DISTRICT_CENTROIDS.values():
            for b in (STEPHANSPLATZ, PRATER, Coordinate(-33.8688, 151.2093)):
                assert haversine_km(a, b) == haversine_km(b, a)

    def test_known_distances(self):
        """Vienna to Berlin is roughly 524 km, a degree of latitude about 111 km."""
        berlin = Coordinate(52.5200, 13.4050)

        assert haversine_km(STEPHANSPLATZ, berlin) == pytest.approx(524, abs=2)
        assert haversine_km(Coordinate(0, 0), Coordinate(1, 0)) == pytest.approx(111.19, abs=0.01)

    def test_antipodal_points(self):
        distance = haversine_km(Coordinate(0, 0), Coordinate(0, 180))

        assert distance == pytest.approx(6371 * 3.141592653589793, rel=1e-9)


class TestDistrictCentroid:
    """Tests for district centroid lookup."""

    def test_all_districts_present(self):
        assert sorted(VIENNA_DISTRICT_CENTROIDS) == list(range(1, 24))

    def test_first_district(self):
        assert district_centroid(1) == Coordinate(48.2085, 16.3731)

    @pytest.mark.parametrize("district", [0, 24, -1])
    def test_invalid_district(self, district):
        with pytest.raises(InvalidRequestError):
            district_centroid(district)


class TestCoordinateResolver:
    """Tests for the stored -> geocoded -> district fallback chain."""

    def test_stored_coordinates_win(self):
        geocoder = StubGeocoder(result=PRATER)
        resolver = CoordinateResolver(geocoder)
        contact = Contact(address="Stephansplatz 1", lat=48.1, lng=16.2, district=2)

        assert asyncio.run(resolver.resolve(contact)) == Coordinate(48.1, 16.2)
        assert geocoder.calls == []

    def test_geocoding_before_district(self):
        geocoder = StubGeocoder(result=PRATER)
        resolver = CoordinateResolver(geocoder)

        result = asyncio.run(resolver.resolve(Contact(address="Prater 1", district=1)))

        assert result == PRATER
        assert geocoder.calls == ["Prater 1"]

    def test_no_geocoding_match_falls_back_to_district(self):
        resolver = CoordinateResolver(StubGeocoder(result=None))

        result = asyncio.run(resolver.resolve(Contact(address="Nowhere 1", district=2)))

        assert result == VIENNA_DISTRICT_CENTROIDS[2]

    def test_geocoding_failure_is_swallowed(self):
        geocoder = StubGeocoder(error=GeocodingError("service down"))
        resolver = CoordinateResolver(geocoder)

        result = asyncio.run(resolver.resolve(Contact(address="Prater 1", district=2)))

        assert result == VIENNA_DISTRICT_CENTROIDS[2]
        assert len(geocoder.calls) == 1

    @pytest.mark.parametrize(
        "error",
        [ConnectionError("geocoder down"), TimeoutError("timed out"), RuntimeError("bug")],
    )
    def test_unexpected_geocoder_error_falls_back_to_district(self, error):
        geocoder = StubGeocoder(error=error)
        resolver = CoordinateResolver(geocoder)

        result = asyncio.run(resolver.resolve(Contact(address="X 1", district=1)))

        assert result == STEPHANSPLATZ
        assert geocoder.calls == ["X 1"]

    def test_without_geocoder_uses_district(self):
        resolver = CoordinateResolver()

        assert asyncio.run(resolver.resolve(Contact(address="Prater 1", district=2))) == PRATER

    def test_no_address_skips_geocoder(self):
        geocoder = StubGeocoder(result=PRATER)
        resolver = CoordinateResolver(geocoder)

        assert asyncio.run(resolver.resolve(Contact(district=1))) == STEPHANSPLATZ
        assert geocoder.calls == []

    def test_unresolvable(self):
        resolver = CoordinateResolver(StubGeocoder(result=None))

        assert asyncio.run(resolver.resolve(Contact(address="Nowhere 1"))) is None
        assert asyncio.run(resolver.resolve(Contact())) is None
        assert asyncio.run(resolver.resolve(None)) is None
