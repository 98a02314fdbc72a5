"""
Domain models for working-hour rules, bookings and candidate slots.
"""

import re
from dataclasses import dataclass, field
from datetime import date as stdlib_date
from datetime import datetime as stdlib_datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Tuple

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidRequestError

# All rule wall-clock times and booking instants are interpreted on this clock
# unless AppConfig.timezone overrides it. It must be a fixed-offset zone;
# see ensure_fixed_offset.
SCHEDULING_TIMEZONE = "UTC"

WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

OPTIMAL_DISTANCE_KM = 5.0

_WALL_CLOCK_PATTERN = re.compile(
    r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*([aApP][mM])?\s*$"
)


class RuleType(str, Enum):
    """Kind of working-hour rule."""
    WEEKLY = "weekly"
    CERTAIN = "certain"


class AppointmentStatus(str, Enum):
    """Booking status as stored by the appointment backend."""
    CONFIRMED = "Confirmed"
    UNCONFIRMED = "Unconfirmed"
    CANCELLED = "Cancelled"


def parse_wall_clock(value: str) -> Tuple[int, int]:
    """
    Parse a wall-clock string into a 24-hour (hour, minute) pair.

    Accepts "08:00", "08:00:00" and 12-hour forms such as "5:30 pm".
    With a suffix, 12pm stays 12, 12am becomes 0 and any other pm hour
    gets 12 added.

    Raises:
        InvalidRequestError: If the string is not a recognised time
    """
    match = _WALL_CLOCK_PATTERN.match(value or "")
    if not match:
        raise InvalidRequestError(f"Unrecognised time of day: {value!r}")

    hour = int(match.group(1))
    minute = int(match.group(2))
    suffix = (match.group(3) or "").lower()

    if suffix:
        if not 0 <= hour <= 12:
            raise InvalidRequestError(f"Hour out of range for 12-hour time: {value!r}")
        if suffix == "pm" and hour != 12:
            hour += 12
        elif suffix == "am" and hour == 12:
            hour = 0

    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        raise InvalidRequestError(f"Time of day out of range: {value!r}")

    return hour, minute


def parse_request_date(value: Any, timezone: str = SCHEDULING_TIMEZONE) -> Date:
    """
    Normalise a requested day to a calendar date on the scheduling clock.

    Accepts ISO-8601 strings (date or date-time), ``datetime`` and ``date``
    objects. Date-times are converted to the scheduling clock first.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidRequestError("A date is required")

    if isinstance(value, stdlib_datetime):
        return pendulum.instance(value).in_timezone(timezone).date()

    if isinstance(value, stdlib_date):
        return pendulum.date(value.year, value.month, value.day)

    if isinstance(value, str):
        try:
            parsed = pendulum.parse(value.strip(), tz=timezone)
        except ValueError as e:
            raise InvalidRequestError(f"Invalid date {value!r}: {e}") from e

        if isinstance(parsed, DateTime):
            return parsed.in_timezone(timezone).date()
        if isinstance(parsed, Date):
            return parsed

    raise InvalidRequestError(f"Invalid date: {value!r}")


def ensure_fixed_offset(timezone: str) -> str:
    """
    Reject zones with daylight saving transitions.

    Slots are stepped in absolute time, so a zone whose offset changes during
    the year would skip or repeat a wall-clock hour on transition days.
    """
    winter = pendulum.datetime(2024, 1, 1, tz=timezone).utcoffset()
    summer = pendulum.datetime(2024, 7, 1, tz=timezone).utcoffset()
    if winter != summer:
        raise InvalidRequestError(
            f"Scheduling timezone must have a fixed UTC offset, got {timezone}"
        )
    return timezone


def weekday_name(day: stdlib_date) -> str:
    """English weekday name for a date, e.g. "Monday"."""
    return WEEKDAY_NAMES[day.isoweekday() - 1]


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another. Touching endpoints do not count."""
        return self.start < other.end and self.end > other.start

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class ScheduleRule:
    """
    A working-hours definition for one calendar, joined with calendar details.

    Invariant: weekly rules carry a weekday and no date range; certain rules
    carry an inclusive date range and no weekday.
    """
    calendar_id: str
    rule_type: RuleType
    time_from: str
    time_to: str
    employee_name: str = ""
    weekday: str | None = None
    date_from: Date | None = None
    date_to: Date | None = None
    restricted_to_service_ids: FrozenSet[str] = field(default_factory=frozenset)
    active: bool = True
    calendar_active: bool = True
    reason: str | None = None

    def __post_init__(self):
        if self.rule_type == RuleType.WEEKLY:
            if not self.weekday or self.date_from or self.date_to:
                raise InvalidRequestError(
                    f"Weekly rule for calendar {self.calendar_id} needs a weekday and no date range"
                )
            if self.weekday.capitalize() not in WEEKDAY_NAMES:
                raise InvalidRequestError(f"Unknown weekday: {self.weekday!r}")
        else:
            if self.weekday or self.date_from is None or self.date_to is None:
                raise InvalidRequestError(
                    f"Certain rule for calendar {self.calendar_id} needs a date range and no weekday"
                )

    def applies_on(self, day: Date) -> bool:
        """Check whether this rule contributes working hours on the given day."""
        if self.rule_type == RuleType.WEEKLY:
            return self.weekday.capitalize() == weekday_name(day)
        return self.date_from <= day <= self.date_to

    def allows_service(self, service_id: str) -> bool:
        """An empty restriction set means every service is allowed."""
        return not self.restricted_to_service_ids or service_id in self.restricted_to_service_ids


@dataclass(frozen=True)
class Coordinate:
    """A point on the globe in decimal degrees."""
    lat: float
    lng: float


@dataclass(frozen=True)
class Contact:
    """
    Customer record fields relevant to locating a visit.

    Invariant: district, when present, is a Vienna district number 1-23.
    """
    address: str | None = None
    lat: float | None = None
    lng: float | None = None
    district: int | None = None
    name: str | None = None

    def __post_init__(self):
        if self.district is not None and not 1 <= self.district <= 23:
            raise InvalidRequestError(
                f"District must be between 1 and 23, got {self.district}"
            )

    def stored_coordinate(self) -> Coordinate | None:
        """Coordinates persisted on the record, if both parts are present."""
        if self.lat is None or self.lng is None:
            return None
        return Coordinate(lat=self.lat, lng=self.lng)


@dataclass(frozen=True)
class BookedAppointment:
    """An existing appointment as returned by the appointment backend."""
    start_date: DateTime
    end_date: DateTime
    calendar_id: str
    status: AppointmentStatus
    contact: Contact | None = None

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_date, end=self.end_date)

    def blocks_booking(self) -> bool:
        """Only confirmed appointments make a window unbookable."""
        return self.status == AppointmentStatus.CONFIRMED


@dataclass(frozen=True)
class CandidateSlot:
    """
    A fixed-length bookable window derived from one working-hour rule.
    """
    time_range: TimeRange
    calendar_id: str
    employee_name: str

    @property
    def start(self) -> DateTime:
        return self.time_range.start

    @property
    def end(self) -> DateTime:
        return self.time_range.end

    def to_dict(self) -> Dict[str, Any]:
        """Render the slot with ISO-8601 start and end instants."""
        return {
            "start": self.start.to_iso8601_string(),
            "end": self.end.to_iso8601_string(),
            "calendar_id": self.calendar_id,
            "employee_name": self.employee_name,
        }

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, DD.MM.YYYY | HH:MM - HH:MM (employee)
        """
        weekday = weekday_name(self.start.date())
        date_str = self.start.format("DD.MM.YYYY")
        time_str = f"{self.start.format('HH:mm')} - {self.end.format('HH:mm')}"
        return f"{weekday}, {date_str} | {time_str} ({self.employee_name})"


@dataclass(frozen=True)
class LocationAwareSlot:
    """
    A candidate slot annotated with the distance to the calendar's nearest
    same-day appointment.
    """
    slot: CandidateSlot
    distance_km: float | None = None

    @property
    def is_optimal(self) -> bool:
        return self.distance_km is not None and self.distance_km <= OPTIMAL_DISTANCE_KM

    def to_dict(self) -> Dict[str, Any]:
        data = self.slot.to_dict()
        data["distanceKm"] = self.distance_km
        data["isOptimal"] = self.is_optimal
        return data
