"""
Core business logic for calculating bookable time slots.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O). The clock is
passed in as ``now`` so results only depend on the arguments.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, List, Mapping, Union

import pendulum
from pendulum import DateTime

from .exceptions import InvalidInput
from .models import TimeRange, TimeSlot, WeeklySchedule, WorkingInterval, to_instant


class OverrunPolicy(str, Enum):
    """What to do with a slot whose service runs past closing time."""
    ALLOW = "allow"
    UNAVAILABLE = "unavailable"
    DROP = "drop"


ScheduleLike = Union[WeeklySchedule, Mapping[str, Any]]


def coerce_date(value: Any) -> date:
    """
    Accept a ``date``, a datetime (its calendar day) or a ``YYYY-MM-DD`` string.

    Raises:
        InvalidInput: If the value is not a valid calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return pendulum.from_format(value.strip(), "YYYY-MM-DD").date()
        except ValueError as exc:
            raise InvalidInput(f"Invalid date {value!r}: {exc}") from exc
    raise InvalidInput(f"Expected a calendar date, got {value!r}")


class SlotCalculator:
    """
    Calculates the slot grid of one provider for one day.

    Algorithm:
    1. Look up the working interval for the weekday (none -> no slots)
    2. Walk the day on a fixed cadence from opening to closing
    3. Mark a slot taken if [start, start + duration) overlaps a booking
    4. Mark a slot taken if it does not start after ``now``
    5. Apply the overrun policy to slots ending after closing time
    """

    def __init__(
        self,
        timezone: str = "UTC",
        slot_interval_minutes: int = 30,
        align_to_hour: bool = True,
        overrun_policy: OverrunPolicy = OverrunPolicy.ALLOW,
    ):
        if slot_interval_minutes <= 0:
            raise InvalidInput("slot_interval_minutes must be greater than zero")
        self.timezone = timezone
        self.slot_interval_minutes = slot_interval_minutes
        self.align_to_hour = align_to_hour
        self.overrun_policy = OverrunPolicy(overrun_policy)

    def compute_slots(
        self,
        schedule: ScheduleLike,
        duration_minutes: int,
        day: Union[date, str],
        existing_bookings: Iterable[TimeRange],
        now: Union[datetime, str],
    ) -> List[TimeSlot]:
        """
        Compute the ordered slot list for a provider on one calendar day.

        Args:
            schedule: Provider's weekly schedule (or its persisted mapping form)
            duration_minutes: Service duration, used as the width of each slot
            day: Calendar date (``date`` or ``YYYY-MM-DD``)
            existing_bookings: Non-cancelled bookings of this provider around the day
            now: Current instant; slots starting at or before it are unavailable

        Returns:
            List of TimeSlot objects in ascending order, empty on a day off

        Raises:
            InvalidInput: If the duration, date or schedule is malformed
        """
        duration = self._validate_duration(duration_minutes)
        target = coerce_date(day)
        weekly = self._coerce_schedule(schedule)

        interval = weekly.interval_for(target)
        if interval is None:
            return []

        current = to_instant(now, self.timezone)
        busy = self._normalize_ranges(existing_bookings)
        closing = interval.on(target, self.timezone).end

        slots: List[TimeSlot] = []

        for minute_of_day in self._slot_start_minutes(interval):
            slot_start = pendulum.datetime(
                target.year,
                target.month,
                target.day,
                minute_of_day // 60,
                minute_of_day % 60,
                tz=self.timezone,
            )
            slot_end = slot_start.add(minutes=duration)

            available = slot_start > current and not any(
                slot_start < busy_end and slot_end > busy_start
                for busy_start, busy_end in busy
            )

            if slot_end > closing:
                if self.overrun_policy is OverrunPolicy.DROP:
                    continue
                if self.overrun_policy is OverrunPolicy.UNAVAILABLE:
                    available = False

            slots.append(TimeSlot(start=slot_start, end=slot_end, available=available))

        return slots

    def find_conflicts(
        self,
        candidate: TimeRange,
        existing_bookings: Iterable[TimeRange],
    ) -> List[TimeRange]:
        """
        Return the bookings that overlap the candidate interval.

        Bookings tagged with a different provider than the candidate are
        ignored; untagged ranges always count.
        """
        candidate_provider = getattr(candidate, "provider_id", None)
        start = to_instant(candidate.start, self.timezone)
        end = to_instant(candidate.end, self.timezone)

        conflicts: List[TimeRange] = []
        for booking in existing_bookings:
            booking_provider = getattr(booking, "provider_id", None)
            if candidate_provider and booking_provider and booking_provider != candidate_provider:
                continue
            booking_start = to_instant(booking.start, self.timezone)
            booking_end = to_instant(booking.end, self.timezone)
            if start < booking_end and end > booking_start:
                conflicts.append(booking)

        return conflicts

    def has_conflict(
        self,
        candidate: TimeRange,
        existing_bookings: Iterable[TimeRange],
    ) -> bool:
        """Check whether the candidate collides with any existing booking."""
        return bool(self.find_conflicts(candidate, existing_bookings))

    def _slot_start_minutes(self, interval: WorkingInterval) -> range:
        """
        Minute-of-day offsets of the slot starts.

        With ``align_to_hour`` both bounds are cut to the full hour, so a
        09:45-17:30 shift yields slots from 09:00 up to 16:30.
        """
        if self.align_to_hour:
            first = interval.start.hour * 60
            bound = interval.end.hour * 60
        else:
            first = interval.start.hour * 60 + interval.start.minute
            bound = interval.end.hour * 60 + interval.end.minute

        return range(first, bound, self.slot_interval_minutes)

    def _normalize_ranges(self, ranges: Iterable[TimeRange]) -> List[tuple]:
        return [
            (to_instant(r.start, self.timezone), to_instant(r.end, self.timezone))
            for r in ranges
        ]

    @staticmethod
    def _validate_duration(duration_minutes: Any) -> int:
        if (
            isinstance(duration_minutes, bool)
            or not isinstance(duration_minutes, int)
            or duration_minutes <= 0
        ):
            raise InvalidInput(
                f"duration_minutes must be a positive integer, got {duration_minutes!r}"
            )
        return duration_minutes

    @staticmethod
    def _coerce_schedule(schedule: ScheduleLike) -> WeeklySchedule:
        if isinstance(schedule, WeeklySchedule):
            return schedule
        return WeeklySchedule.from_mapping(schedule)


_default_calculator = SlotCalculator()


def compute_slots(
    schedule: ScheduleLike,
    duration_minutes: int,
    day: Union[date, str],
    existing_bookings: Iterable[TimeRange],
    now: Union[DateTime, datetime, str],
) -> List[TimeSlot]:
    """Compute slots with the default calculator (UTC, 30-minute grid)."""
    return _default_calculator.compute_slots(
        schedule, duration_minutes, day, existing_bookings, now
    )


def has_conflict(candidate: TimeRange, existing_bookings: Iterable[TimeRange]) -> bool:
    """Half-open overlap check of a candidate against existing bookings."""
    return _default_calculator.has_conflict(candidate, existing_bookings)
