"""
Core business logic for calculating bookable time slots.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

import logging
from typing import Iterable, List

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidRequestError
from .models import (
    SCHEDULING_TIMEZONE,
    BookedAppointment,
    CandidateSlot,
    ScheduleRule,
    TimeRange,
    ensure_fixed_offset,
    parse_wall_clock,
)

logger = logging.getLogger(__name__)

PAST_TOLERANCE_MINUTES = 5


class SlotCalculator:
    """
    Turns working-hour rules into fixed-length candidate slots and filters them.

    Algorithm:
    1. For each rule, walk from time_from to time_to in steps of the service duration
    2. Keep only steps whose end does not pass time_to
    3. Drop slots that overlap a confirmed booking of the same calendar
    4. Drop slots that started more than the tolerance ago
    """

    def __init__(
        self,
        timezone: str = SCHEDULING_TIMEZONE,
        past_tolerance_minutes: int = PAST_TOLERANCE_MINUTES,
    ):
        self.timezone = ensure_fixed_offset(timezone)
        self.past_tolerance_minutes = past_tolerance_minutes

    def generate_slots(
        self,
        rules: Iterable[ScheduleRule],
        day: Date,
        duration_minutes: int,
    ) -> List[CandidateSlot]:
        """
        Generate candidate slots for every rule on the given day.

        Args:
            rules: Rules already selected for the day
            day: Target date on the scheduling clock
            duration_minutes: Length of the requested service

        Returns:
            One start-ordered run of slots per rule, concatenated in rule order.
            Overlaps between different rules are kept.

        Raises:
            InvalidRequestError: If the duration is not positive
        """
        if duration_minutes <= 0:
            raise InvalidRequestError(
                f"Service duration must be greater than zero, got {duration_minutes}"
            )

        slots: List[CandidateSlot] = []
        for rule in rules:
            rule_slots = self._slots_for_rule(rule, day, duration_minutes)
            logger.debug(
                "Rule %s-%s for calendar %s yields %d slot(s) on %s",
                rule.time_from, rule.time_to, rule.calendar_id, len(rule_slots), day,
            )
            slots.extend(rule_slots)

        return slots

    def _slots_for_rule(
        self,
        rule: ScheduleRule,
        day: Date,
        duration_minutes: int,
    ) -> List[CandidateSlot]:
        """
        Walk a single rule's window.

        Example:
        Window: 09:00 - 13:00, duration 45
        Result: [09:00-09:45, 09:45-10:30, 10:30-11:15, 11:15-12:00, 12:00-12:45]
        """
        window_start = self._at_wall_clock(day, rule.time_from)
        window_end = self._at_wall_clock(day, rule.time_to)

        slots: List[CandidateSlot] = []
        current = window_start

        while current < window_end:
            slot_end = current.add(minutes=duration_minutes)
            if slot_end > window_end:
                break

            slots.append(
                CandidateSlot(
                    time_range=TimeRange(start=current, end=slot_end),
                    calendar_id=rule.calendar_id,
                    employee_name=rule.employee_name,
                )
            )
            current = slot_end

        return slots

    def _at_wall_clock(self, day: Date, wall_clock: str) -> DateTime:
        hour, minute = parse_wall_clock(wall_clock)
        return pendulum.datetime(
            day.year, day.month, day.day, hour, minute, tz=self.timezone
        )

    def filter_booked(
        self,
        slots: Iterable[CandidateSlot],
        bookings: Iterable[BookedAppointment],
    ) -> List[CandidateSlot]:
        """
        Remove slots that overlap a confirmed booking of the same calendar.

        Touching endpoints are not an overlap, so a slot may start exactly
        when a booking ends.
        """
        blocking = [booking for booking in bookings if booking.blocks_booking()]

        available: List[CandidateSlot] = []
        for slot in slots:
            is_booked = any(
                booking.calendar_id == slot.calendar_id
                and slot.time_range.overlaps(booking.time_range)
                for booking in blocking
            )
            if not is_booked:
                available.append(slot)

        return available

    def filter_elapsed(
        self,
        slots: Iterable[CandidateSlot],
        now: DateTime,
    ) -> List[CandidateSlot]:
        """
        Remove slots that have already started, allowing a small tolerance
        for clock drift between client and server.
        """
        earliest_start = now.subtract(minutes=self.past_tolerance_minutes)
        return [slot for slot in slots if slot.start >= earliest_start]
