"""
Selection of the working-hour rules that apply to a given day.
"""

from typing import Iterable, List

from pendulum import Date

from .models import ScheduleRule


def select_rules(
    rules: Iterable[ScheduleRule],
    day: Date,
    calendar_id: str | None = None,
    service_id: str | None = None,
) -> List[ScheduleRule]:
    """
    Pick the active rules of active calendars that apply on ``day``.

    Args:
        rules: Candidate rules, typically everything the repository knows for the day
        day: Target date on the scheduling clock
        calendar_id: Restrict to one calendar; None means all calendars
        service_id: Drop rules restricted to other services

    Returns:
        Matching rules in their original order (possibly empty)
    """
    selected: List[ScheduleRule] = []

    for rule in rules:
        if not rule.active or not rule.calendar_active:
            continue
        if calendar_id is not None and rule.calendar_id != calendar_id:
            continue
        if not rule.applies_on(day):
            continue
        if service_id is not None and not rule.allows_service(service_id):
            continue
        selected.append(rule)

    return selected
