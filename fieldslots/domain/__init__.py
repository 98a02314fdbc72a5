"""
Domain layer - Pure business logic without external dependencies.
"""

from .geo import CoordinateResolver, haversine_km
from .location_scorer import LocationScorer
from .models import (
    AppointmentStatus,
    BookedAppointment,
    CandidateSlot,
    Contact,
    Coordinate,
    LocationAwareSlot,
    RuleType,
    ScheduleRule,
    TimeRange,
)
from .rule_selector import select_rules
from .slot_calculator import SlotCalculator

__all__ = [
    "AppointmentStatus",
    "BookedAppointment",
    "CandidateSlot",
    "Contact",
    "Coordinate",
    "CoordinateResolver",
    "LocationAwareSlot",
    "LocationScorer",
    "RuleType",
    "ScheduleRule",
    "SlotCalculator",
    "TimeRange",
    "haversine_km",
    "select_rules",
]
