"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import (
    AppointmentRepository,
    AvailabilityService,
    ScheduleRepository,
    ServiceCatalog,
)

__all__ = [
    "AppointmentRepository",
    "AvailabilityService",
    "ScheduleRepository",
    "ServiceCatalog",
]
