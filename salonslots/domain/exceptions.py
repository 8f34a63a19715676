"""
Domain-specific exception hierarchy for the salon slot engine.
"""

from __future__ import annotations

from typing import Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import TimeRange


class SalonSlotsError(Exception):
    """Base class for all application-level errors."""


class InvalidInput(SalonSlotsError, ValueError):
    """Raised for malformed durations, dates, schedules or intervals."""


class NotFoundError(SalonSlotsError, LookupError):
    """Raised when a provider, service or booking does not exist or is inactive."""


class StoreError(SalonSlotsError):
    """Raised when booking data cannot be loaded, parsed or written."""


class StaleSlotConflict(SalonSlotsError):
    """
    Raised at commit time when a previously listed slot has since been taken.

    Callers should re-fetch the slot listing and let the user choose another
    time rather than retrying into a different slot.
    """

    def __init__(self, conflicts: Sequence["TimeRange"] = ()):
        self.conflicts = list(conflicts)
        super().__init__("Slot no longer available, please choose another time.")
