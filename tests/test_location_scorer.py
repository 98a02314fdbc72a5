"""
Tests for travel-proximity scoring.
"""

import asyncio

import pendulum
import pytest

from fieldslots.domain.geo import CoordinateResolver, haversine_km
from fieldslots.domain.location_scorer import (
    LocationScorer,
    annotate_slots,
    nearest_distance_km,
)
from fieldslots.domain.models import (
    AppointmentStatus,
    BookedAppointment,
    CandidateSlot,
    Contact,
    Coordinate,
    TimeRange,
)


def _slots(count: int = 3):
    return [
        CandidateSlot(
            time_range=TimeRange(
                start=pendulum.datetime(2024, 11, 25, 8 + i, tz="UTC"),
                end=pendulum.datetime(2024, 11, 25, 9 + i, tz="UTC"),
            ),
            calendar_id="1",
            employee_name="Anna Huber",
        )
        for i in range(count)
    ]


def _booking(contact, status=AppointmentStatus.CONFIRMED) -> BookedAppointment:
    return BookedAppointment(
        start_date=pendulum.datetime(2024, 11, 25, 13, tz="UTC"),
        end_date=pendulum.datetime(2024, 11, 25, 14, tz="UTC"),
        calendar_id="1",
        status=status,
        contact=contact,
    )


def _score(customer, bookings, slots=None):
    scorer = LocationScorer(CoordinateResolver())
    return asyncio.run(scorer.score(slots if slots is not None else _slots(), customer, bookings))


class TestHelpers:
    """Tests for the pure scoring helpers."""

    def test_nearest_distance_is_rounded_minimum(self):
        origin = Coordinate(48.2085, 16.3731)
        near = Coordinate(48.2167, 16.4000)
        far = Coordinate(48.2667, 16.4000)

        expected = round(haversine_km(origin, near), 2)

        assert nearest_distance_km(origin, [far, near]) == expected

    def test_nearest_distance_without_points(self):
        assert nearest_distance_km(Coordinate(0, 0), []) is None

    def test_annotate_keeps_order(self):
        slots = _slots()

        scored = annotate_slots(slots, 1.5)

        assert [s.slot for s in scored] == slots
        assert all(s.distance_km == 1.5 for s in scored)


class TestLocationScorer:
    """Tests for LocationScorer."""

    def test_unresolved_customer_leaves_slots_unscored(self):
        scored = _score(Contact(), [_booking(Contact(district=1))])

        assert len(scored) == 3
        assert all(s.distance_km is None for s in scored)
        assert not any(s.is_optimal for s in scored)

    def test_same_district_is_optimal(self):
        """Customer and existing visit both in district 1."""
        scored = _score(Contact(district=1), [_booking(Contact(district=1))])

        assert all(s.distance_km == pytest.approx(0.0) for s in scored)
        assert all(s.is_optimal for s in scored)

    def test_distant_booking_is_not_optimal(self):
        """Innere Stadt to Floridsdorf is further than 5 km."""
        scored = _score(Contact(district=1), [_booking(Contact(district=21))])

        assert scored[0].distance_km > 5
        assert not any(s.is_optimal for s in scored)

    def test_nearest_of_several_bookings_is_used(self):
        customer = Contact(district=1)
        bookings = [_booking(Contact(district=21)), _booking(Contact(district=2))]

        scored = _score(customer, bookings)

        expected = round(haversine_km(Coordinate(48.2085, 16.3731), Coordinate(48.2167, 16.4000)), 2)
        assert {s.distance_km for s in scored} == {expected}
        assert all(s.is_optimal for s in scored)

    def test_cancelled_bookings_count_as_reference_points(self):
        scored = _score(
            Contact(district=1),
            [_booking(Contact(district=1), status=AppointmentStatus.CANCELLED)],
        )

        assert all(s.is_optimal for s in scored)

    def test_no_locatable_bookings_is_not_optimal(self):
        bookings = [_booking(None), _booking(Contact(address="Unknown 1"))]

        scored = _score(Contact(district=1), bookings)

        assert all(s.distance_km is None for s in scored)
        assert not any(s.is_optimal for s in scored)

    def test_empty_day_is_not_optimal(self):
        scored = _score(Contact(district=1), [])

        assert all(s.distance_km is None and not s.is_optimal for s in scored)

    def test_no_slots(self):
        assert _score(Contact(district=1), [_booking(Contact(district=1))], slots=[]) == []
