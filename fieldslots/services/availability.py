"""
Application services for finding bookable technician slots.

The service fetches rules and bookings via repository protocols and runs them
through the domain pipeline: rule selection, slot generation, conflict and
past-time filtering, and optionally location scoring. Depending on protocols
keeps the CLI thin and lets tests plug in simple stubs.
"""

from __future__ import annotations

import logging
from typing import Any, List, Protocol

import pendulum
from pendulum import Date, DateTime

from ..domain.geo import CoordinateResolver
from ..domain.location_scorer import LocationScorer
from ..domain.models import (
    BookedAppointment,
    CandidateSlot,
    Contact,
    LocationAwareSlot,
    ScheduleRule,
    parse_request_date,
)
from ..domain.rule_selector import select_rules
from ..domain.slot_calculator import SlotCalculator

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60


class ScheduleRepository(Protocol):
    """Protocol describing the working-hour rule source."""

    async def rules_for_date(self, day: Date) -> List[ScheduleRule]:
        """Return rules that may apply on the given day."""

    async def rules_for_calendar(self, calendar_id: str) -> List[ScheduleRule]:
        """Return every rule of one calendar."""


class AppointmentRepository(Protocol):
    """Protocol describing the booked-appointment source."""

    async def bookings_in_range(
        self,
        calendar_id: str | None,
        start: DateTime,
        end: DateTime,
    ) -> List[BookedAppointment]:
        """Return bookings overlapping the range; None means all calendars."""


class ServiceCatalog(Protocol):
    """Protocol describing service duration lookups."""

    async def duration_for(self, category_id: str, service_id: str) -> int | None:
        """Return the service duration in minutes, or None if unknown."""


class AvailabilityService:
    """
    Orchestrates data retrieval and the availability pipeline.

    Holds no per-request state; every call recomputes from what the
    repositories return at that moment.
    """

    def __init__(
        self,
        schedules: ScheduleRepository,
        appointments: AppointmentRepository,
        slot_calculator: SlotCalculator | None = None,
        location_scorer: LocationScorer | None = None,
        catalog: ServiceCatalog | None = None,
        default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
    ) -> None:
        self._schedules = schedules
        self._appointments = appointments
        self._slot_calculator = slot_calculator or SlotCalculator()
        self._location_scorer = location_scorer or LocationScorer(CoordinateResolver())
        self._catalog = catalog
        self._default_duration_minutes = default_duration_minutes

    @property
    def timezone(self) -> str:
        return self._slot_calculator.timezone

    async def get_available_slots(
        self,
        date: Any,
        service_id: str | None = None,
        *,
        category_id: str | None = None,
        now: DateTime | None = None,
    ) -> List[CandidateSlot]:
        """
        Bookable slots of every active calendar on a day.

        Args:
            date: ISO-8601 string or date object
            service_id: Only use rules open to this service
            category_id: With service_id, selects the service duration
            now: Reference instant for the past-time filter (defaults to now)

        Returns:
            Slots that fit the working hours, clash with no confirmed booking
            of their calendar and have not started yet
        """
        day = parse_request_date(date, self.timezone)
        duration = await self.resolve_duration(category_id, service_id)

        rules = select_rules(await self._schedules.rules_for_date(day), day, service_id=service_id)
        if not rules:
            logger.info("No working hours found for %s", day)
            return []

        slots = self._slot_calculator.generate_slots(rules, day, duration)

        day_start, day_end = self._day_bounds(day)
        bookings = await self._appointments.bookings_in_range(None, day_start, day_end)

        available = self._slot_calculator.filter_booked(slots, bookings)
        upcoming = self._slot_calculator.filter_elapsed(
            available, now or pendulum.now(self.timezone)
        )

        logger.debug(
            "%s: %d generated, %d unbooked, %d upcoming",
            day, len(slots), len(available), len(upcoming),
        )
        return upcoming

    async def get_location_aware_slots(
        self,
        date: Any,
        calendar_id: str,
        customer: Contact,
        service_id: str | None = None,
        *,
        category_id: str | None = None,
    ) -> List[LocationAwareSlot]:
        """
        Working-hour slots of one calendar, ranked by travel proximity.

        Conflicts and elapsed slots are not removed here; the result is
        advisory and callers still check bookability.
        """
        day = parse_request_date(date, self.timezone)
        duration = await self.resolve_duration(category_id, service_id)

        calendar_rules = await self._schedules.rules_for_calendar(calendar_id)
        rules = select_rules(calendar_rules, day, calendar_id=calendar_id, service_id=service_id)
        if not rules:
            logger.info("No working hours found for calendar %s on %s", calendar_id, day)
            return []

        slots = self._slot_calculator.generate_slots(rules, day, duration)

        day_start, day_end = self._day_bounds(day)
        bookings = await self._appointments.bookings_in_range(calendar_id, day_start, day_end)

        return await self._location_scorer.score(slots, customer, bookings)

    async def resolve_duration(
        self,
        category_id: str | None,
        service_id: str | None,
    ) -> int:
        """Service duration from the catalog, or the default when unspecified."""
        if self._catalog is None or not category_id or not service_id:
            return self._default_duration_minutes

        duration = await self._catalog.duration_for(category_id, service_id)
        return duration or self._default_duration_minutes

    def _day_bounds(self, day: Date) -> tuple[DateTime, DateTime]:
        start = pendulum.datetime(day.year, day.month, day.day, tz=self.timezone)
        return start, start.end_of("day")
