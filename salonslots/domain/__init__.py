"""
Domain layer - Pure business logic without external dependencies.
"""

from .exceptions import (
    InvalidInput,
    NotFoundError,
    SalonSlotsError,
    StaleSlotConflict,
    StoreError,
)
from .models import (
    Booking,
    BookingInterval,
    BookingStatus,
    PaymentStatus,
    Provider,
    Service,
    TimeRange,
    TimeSlot,
    WeeklySchedule,
    WorkingInterval,
)
from .slot_calculator import OverrunPolicy, SlotCalculator, compute_slots, has_conflict

__all__ = [
    "Booking",
    "BookingInterval",
    "BookingStatus",
    "InvalidInput",
    "NotFoundError",
    "OverrunPolicy",
    "PaymentStatus",
    "Provider",
    "SalonSlotsError",
    "Service",
    "SlotCalculator",
    "StaleSlotConflict",
    "StoreError",
    "TimeRange",
    "TimeSlot",
    "WeeklySchedule",
    "WorkingInterval",
    "compute_slots",
    "has_conflict",
]
