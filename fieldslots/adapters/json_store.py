"""
Booking data source backed by a JSON document.

Stands in for the schedule, appointment and service-catalog backends so the
engine can run without a database, e.g. from the CLI or in tests.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import pendulum
from pendulum import Date, DateTime

from ..domain.exceptions import DataSourceError
from ..domain.models import (
    SCHEDULING_TIMEZONE,
    AppointmentStatus,
    BookedAppointment,
    Contact,
    RuleType,
    ScheduleRule,
    parse_wall_clock,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarRecord:
    """A technician calendar as listed by the data source."""
    calendar_id: str
    employee_name: str
    active: bool = True


class JsonBookingStore:
    """
    In-memory repository loaded from a JSON document.

    Expected top-level keys: ``calendars``, ``schedules``, ``contacts``,
    ``appointments`` and ``categories``. Malformed records are skipped with
    a warning instead of failing the whole load.
    """

    def __init__(self, data: Dict[str, Any], timezone: str = SCHEDULING_TIMEZONE):
        if not isinstance(data, dict):
            raise DataSourceError("Booking data must be a JSON object at the root level.")

        self.timezone = timezone
        self._calendars = self._parse_calendars(data.get("calendars", []))
        self._contacts = self._parse_contacts(data.get("contacts", []))
        self._rules = self._parse_rules(data.get("schedules", []))
        self._appointments = self._parse_appointments(data.get("appointments", []))
        self._durations = self._parse_categories(data.get("categories", []))

    @classmethod
    def from_file(cls, data_file: Path, timezone: str = SCHEDULING_TIMEZONE) -> "JsonBookingStore":
        """
        Load booking data from a JSON file.

        Raises:
            DataSourceError: If the file is missing or not valid JSON
        """
        if not data_file.exists():
            raise DataSourceError(f"Booking data file not found: {data_file}")

        try:
            with open(data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise DataSourceError(f"Could not read booking data from {data_file}: {exc}") from exc

        return cls(data, timezone=timezone)

    # Repository protocols

    async def rules_for_date(self, day: Date) -> List[ScheduleRule]:
        """Rules of any calendar whose weekday or date range covers the day."""
        return [rule for rule in self._rules if rule.applies_on(day)]

    async def rules_for_calendar(self, calendar_id: str) -> List[ScheduleRule]:
        return [rule for rule in self._rules if rule.calendar_id == calendar_id]

    async def bookings_in_range(
        self,
        calendar_id: str | None,
        start: DateTime,
        end: DateTime,
    ) -> List[BookedAppointment]:
        """Appointments overlapping [start, end], optionally for one calendar."""
        return [
            appointment
            for appointment in self._appointments
            if (calendar_id is None or appointment.calendar_id == calendar_id)
            and appointment.start_date <= end
            and appointment.end_date >= start
        ]

    async def duration_for(self, category_id: str, service_id: str) -> int | None:
        return self._durations.get((str(category_id), str(service_id)))

    def calendars(self) -> List[CalendarRecord]:
        return list(self._calendars.values())

    # Parsing

    def _parse_calendars(self, rows: List[Dict[str, Any]]) -> Dict[str, CalendarRecord]:
        calendars: Dict[str, CalendarRecord] = {}
        for row in rows:
            try:
                record = CalendarRecord(
                    calendar_id=str(row["id"]),
                    employee_name=row.get("employee_name", ""),
                    active=bool(row.get("active", True)),
                )
            except (KeyError, TypeError) as e:
                logger.warning("Skipping malformed calendar %r: %s", row, e)
                continue
            calendars[record.calendar_id] = record
        return calendars

    def _parse_contacts(self, rows: List[Dict[str, Any]]) -> Dict[str, Contact]:
        contacts: Dict[str, Contact] = {}
        for row in rows:
            try:
                name = " ".join(
                    part for part in (row.get("first_name"), row.get("last_name")) if part
                )
                contacts[str(row["id"])] = Contact(
                    address=row.get("address"),
                    lat=_optional_float(row.get("lat")),
                    lng=_optional_float(row.get("lng")),
                    district=_optional_int(row.get("district")),
                    name=name or None,
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed contact %r: %s", row, e)
        return contacts

    def _parse_rules(self, rows: List[Dict[str, Any]]) -> List[ScheduleRule]:
        rules: List[ScheduleRule] = []
        for row in rows:
            calendar_id = str(row.get("calendar_id", ""))
            calendar = self._calendars.get(calendar_id)
            if calendar is None:
                logger.warning("Skipping schedule for unknown calendar %r", calendar_id)
                continue

            try:
                rule_type = RuleType(str(row["working_hours_type"]).lower())
                is_weekly = rule_type == RuleType.WEEKLY
                parse_wall_clock(row["time_from"])
                parse_wall_clock(row["time_to"])
                rule = ScheduleRule(
                    calendar_id=calendar_id,
                    rule_type=rule_type,
                    time_from=row["time_from"],
                    time_to=row["time_to"],
                    employee_name=calendar.employee_name,
                    weekday=row.get("weekday") if is_weekly else None,
                    date_from=None if is_weekly else self._parse_date(row.get("date_from")),
                    date_to=None if is_weekly else self._parse_date(row.get("date_to")),
                    restricted_to_service_ids=frozenset(
                        str(service_id) for service_id in row.get("restricted_to_services") or []
                    ),
                    active=bool(row.get("active", True)),
                    calendar_active=calendar.active,
                    reason=row.get("reason"),
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed schedule %r: %s", row, e)
                continue
            rules.append(rule)
        return rules

    def _parse_appointments(self, rows: List[Dict[str, Any]]) -> List[BookedAppointment]:
        appointments: List[BookedAppointment] = []
        for row in rows:
            try:
                appointment = BookedAppointment(
                    start_date=self._parse_datetime(row["start_date"]),
                    end_date=self._parse_datetime(row["end_date"]),
                    calendar_id=str(row["calendar_id"]),
                    status=_parse_status(row.get("appointment_status")),
                    contact=self._contacts.get(str(row.get("contact_id"))),
                )
                if appointment.start_date >= appointment.end_date:
                    raise ValueError("appointment must end after it starts")
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed appointment %r: %s", row, e)
                continue
            appointments.append(appointment)
        return appointments

    def _parse_categories(self, rows: List[Dict[str, Any]]) -> Dict[tuple, int]:
        durations: Dict[tuple, int] = {}
        for category in rows:
            for service in category.get("services", []):
                try:
                    if service.get("duration"):
                        key = (str(category["id"]), str(service["id"]))
                        durations[key] = int(service["duration"])
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning("Skipping malformed service %r: %s", service, e)
        return durations

    def _parse_datetime(self, value: str) -> DateTime:
        parsed = pendulum.parse(value, tz=self.timezone)
        if not isinstance(parsed, DateTime):
            raise ValueError(f"Could not parse datetime: {value}")
        return parsed.in_timezone(self.timezone)

    def _parse_date(self, value: str | None) -> Date | None:
        """Calendar date as written, without shifting an instant onto the scheduling clock."""
        if not value:
            return None
        parsed = pendulum.parse(value)
        if isinstance(parsed, DateTime):
            return parsed.date()
        if isinstance(parsed, Date):
            return parsed
        raise ValueError(f"Could not parse date: {value}")


def _parse_status(value: Any) -> AppointmentStatus:
    for status in AppointmentStatus:
        if str(value).lower() == status.value.lower():
            return status
    raise ValueError(f"Unknown appointment status: {value!r}")


def _optional_float(value: Any) -> float | None:
    return None if value is None or value == "" else float(value)


def _optional_int(value: Any) -> int | None:
    return None if value is None or value == "" else int(value)
