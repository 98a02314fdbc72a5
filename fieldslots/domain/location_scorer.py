"""
Travel-proximity scoring of candidate slots.

The score is one number per calendar and day: the distance from the
requesting customer to the closest appointment the technician already has
that day. Every slot of the day carries the same value.
"""

import logging
from typing import Iterable, List, Sequence

from .geo import CoordinateResolver, haversine_km
from .models import BookedAppointment, CandidateSlot, Contact, Coordinate, LocationAwareSlot

logger = logging.getLogger(__name__)


def nearest_distance_km(origin: Coordinate, points: Iterable[Coordinate]) -> float | None:
    """Smallest distance from origin to any point, rounded to 2 decimals."""
    distances = [haversine_km(origin, point) for point in points]
    if not distances:
        return None
    return round(min(distances), 2)


def annotate_slots(
    slots: Iterable[CandidateSlot],
    distance_km: float | None,
) -> List[LocationAwareSlot]:
    """Attach the same distance to every slot."""
    return [LocationAwareSlot(slot=slot, distance_km=distance_km) for slot in slots]


class LocationScorer:
    """
    Annotates slots with the distance to the calendar's nearest same-day booking.

    Bookings of every status count as reference points; cancelled visits still
    show where the technician works.
    """

    def __init__(self, resolver: CoordinateResolver):
        self.resolver = resolver

    async def score(
        self,
        slots: Sequence[CandidateSlot],
        customer: Contact,
        bookings: Iterable[BookedAppointment],
    ) -> List[LocationAwareSlot]:
        """
        Args:
            slots: Candidate slots of one calendar on one day
            customer: Contact requesting the appointment
            bookings: That calendar's bookings for the same day

        Returns:
            Location-aware slots in the input order. Without a customer
            coordinate or without any locatable booking the distance is None.
        """
        customer_coordinate = await self.resolver.resolve(customer)
        if customer_coordinate is None:
            logger.info("Customer location unresolved; slots left unscored")
            return annotate_slots(slots, None)

        reference_points: List[Coordinate] = []
        for booking in bookings:
            coordinate = await self.resolver.resolve(booking.contact)
            if coordinate is not None:
                reference_points.append(coordinate)

        distance_km = nearest_distance_km(customer_coordinate, reference_points)
        logger.debug(
            "Scored %d slot(s) against %d located booking(s): %s km",
            len(slots), len(reference_points), distance_km,
        )
        return annotate_slots(slots, distance_km)
