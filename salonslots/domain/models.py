"""
Domain models for schedules, bookings and time slots.
"""

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import pendulum
from pendulum import DateTime

from .exceptions import InvalidInput


DAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

_FULL_DAY_NAMES = {
    "monday": "mon",
    "tuesday": "tue",
    "wednesday": "wed",
    "thursday": "thu",
    "friday": "fri",
    "saturday": "sat",
    "sunday": "sun",
}


def parse_time_of_day(value: Any) -> time:
    """
    Parse an ``"HH:MM"`` string (or pass through a ``time``).

    Raises:
        InvalidInput: If the value is not a valid time of day
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)

    if not isinstance(value, str):
        raise InvalidInput(f"Expected time of day as 'HH:MM', got {value!r}")

    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise InvalidInput(f"Expected time of day as 'HH:MM', got {value!r}")

    try:
        return time(hour=int(parts[0]), minute=int(parts[1]))
    except ValueError as exc:
        raise InvalidInput(f"Invalid time of day {value!r}: {exc}") from exc


def normalize_day_key(key: str) -> str:
    """Map ``mon``/``Monday``/``MONDAY`` to the short lowercase key."""
    lowered = str(key).strip().lower()
    if lowered in DAY_KEYS:
        return lowered
    if lowered in _FULL_DAY_NAMES:
        return _FULL_DAY_NAMES[lowered]
    raise InvalidInput(f"Unknown day of week: {key!r}")


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
            raise InvalidInput(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Half-open overlap: [a, b) and [c, d) overlap iff a < d and c < b."""
        return self.start < other.end and self.end > other.start

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class BookingInterval(TimeRange):
    """Occupied interval of a persisted, non-cancelled booking."""
    provider_id: Optional[str] = None
    booking_id: Optional[str] = None


@dataclass(frozen=True)
class WorkingInterval:
    """Working hours of a provider on one day of the week."""
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidInput(
                f"Schedule start {self.start:%H:%M} must be before end {self.end:%H:%M}"
            )

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> "WorkingInterval":
        """Build from a persisted ``{"start": "HH:MM", "end": "HH:MM"}`` entry."""
        if not isinstance(raw, Mapping):
            raise InvalidInput(f"Schedule entry must be a mapping, got {raw!r}")
        if "start" not in raw or "end" not in raw:
            raise InvalidInput(f"Schedule entry needs 'start' and 'end': {dict(raw)!r}")
        return cls(start=parse_time_of_day(raw["start"]), end=parse_time_of_day(raw["end"]))

    def on(self, day: date, tz: str = "UTC") -> TimeRange:
        """Concrete working range for a calendar day in the given timezone."""
        start = pendulum.datetime(
            day.year, day.month, day.day, self.start.hour, self.start.minute, tz=tz
        )
        end = pendulum.datetime(
            day.year, day.month, day.day, self.end.hour, self.end.minute, tz=tz
        )
        return TimeRange(start=start, end=end)

    def to_record(self) -> Dict[str, str]:
        return {"start": self.start.strftime("%H:%M"), "end": self.end.strftime("%H:%M")}


@dataclass(frozen=True)
class WeeklySchedule:
    """
    Working intervals per day of week.

    A day without an entry is a day the provider does not work.
    """
    days: Mapping[str, WorkingInterval] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "WeeklySchedule":
        """
        Parse the persisted provider schedule (day key -> {start, end}).

        Null entries are treated as days off.

        Raises:
            InvalidInput: If a day key or an entry is malformed
        """
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise InvalidInput(f"Schedule must be a mapping of day -> hours, got {raw!r}")

        days: Dict[str, WorkingInterval] = {}
        for key, entry in raw.items():
            day_key = normalize_day_key(key)
            if entry is None:
                continue
            if day_key in days:
                raise InvalidInput(f"Duplicate schedule entry for {day_key!r}")
            days[day_key] = WorkingInterval.parse(entry)

        return cls(days=days)

    def interval_for(self, day: date) -> Optional[WorkingInterval]:
        """Return the working interval for a date, or None on a day off."""
        return self.days.get(DAY_KEYS[day.weekday()])

    def is_working_day(self, day: date) -> bool:
        return self.interval_for(day) is not None

    def to_record(self) -> Dict[str, Dict[str, str]]:
        return {key: interval.to_record() for key, interval in self.days.items()}


@dataclass(frozen=True)
class TimeSlot:
    """
    A candidate appointment window on the slot grid.

    ``end`` is always ``start`` plus the service duration.
    """
    start: DateTime
    end: DateTime
    available: bool

    @property
    def start_time(self) -> time:
        """Wall-clock start of the slot."""
        return time(self.start.hour, self.start.minute)

    @property
    def label(self) -> str:
        return self.start.format("HH:mm")

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Mon, 25.11.2024 | 09:00 - 09:30 (available)
        """
        state = "available" if self.available else "taken"
        return (
            f"{self.start.format('ddd, DD.MM.YYYY')} | "
            f"{self.start.format('HH:mm')} - {self.end.format('HH:mm')} ({state})"
        )


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"


def to_instant(value: Any, tz: str) -> DateTime:
    """Coerce an ISO string or datetime to an aware DateTime; naive values are read in ``tz``."""
    if isinstance(value, DateTime) and value.tzinfo is not None:
        return value
    if isinstance(value, str):
        try:
            parsed = pendulum.parse(value, tz=tz)
        except ValueError as exc:
            raise InvalidInput(f"Invalid timestamp {value!r}: {exc}") from exc
        if not isinstance(parsed, DateTime):
            raise InvalidInput(f"Expected a date and time, got {value!r}")
        return parsed
    try:
        return pendulum.instance(value, tz=tz)
    except (AttributeError, TypeError) as exc:
        raise InvalidInput(f"Invalid timestamp {value!r}") from exc


@dataclass
class Service:
    """Bookable salon service."""
    id: str
    salon_id: str
    name: str
    duration_minutes: int
    price: float = 0.0
    add_ons: List[Dict[str, Any]] = field(default_factory=list)
    active: bool = True

    def __post_init__(self):
        if (
            isinstance(self.duration_minutes, bool)
            or not isinstance(self.duration_minutes, int)
            or self.duration_minutes <= 0
        ):
            raise InvalidInput(
                f"Service {self.id!r} needs a positive integer duration, got {self.duration_minutes!r}"
            )

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Service":
        duration = record.get("duration_minutes", record.get("duration_min"))
        return cls(
            id=str(record["id"]),
            salon_id=str(record["salon_id"]),
            name=record.get("name", ""),
            duration_minutes=duration,
            price=float(record.get("price", 0.0)),
            add_ons=list(record.get("add_ons") or []),
            active=bool(record.get("active", True)),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "salon_id": self.salon_id,
            "name": self.name,
            "duration_min": self.duration_minutes,
            "price": self.price,
            "add_ons": self.add_ons,
            "active": self.active,
        }


@dataclass
class Provider:
    """Staff member with a weekly working-hours schedule."""
    id: str
    salon_id: str
    name: str
    schedule: WeeklySchedule = field(default_factory=WeeklySchedule)
    email: Optional[str] = None
    active: bool = True

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Provider":
        return cls(
            id=str(record["id"]),
            salon_id=str(record["salon_id"]),
            name=record.get("name", ""),
            schedule=WeeklySchedule.from_mapping(record.get("schedule")),
            email=record.get("email"),
            active=bool(record.get("active", True)),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "salon_id": self.salon_id,
            "name": self.name,
            "email": self.email,
            "schedule": self.schedule.to_record(),
            "active": self.active,
        }


@dataclass
class Booking:
    """Persisted appointment of a client with a provider."""
    id: str
    salon_id: str
    service_id: str
    provider_id: str
    client_id: str
    start: DateTime
    end: DateTime
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    notes: Optional[str] = None

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidInput(f"Booking {self.id!r} must start before it ends")
        self.status = BookingStatus(self.status)
        self.payment_status = PaymentStatus(self.payment_status)

    @property
    def is_cancelled(self) -> bool:
        return self.status is BookingStatus.CANCELLED

    @property
    def interval(self) -> BookingInterval:
        return BookingInterval(
            start=self.start,
            end=self.end,
            provider_id=self.provider_id,
            booking_id=self.id,
        )

    @classmethod
    def from_record(cls, record: Mapping[str, Any], tz: str = "UTC") -> "Booking":
        try:
            return cls(
                id=str(record["id"]),
                salon_id=str(record["salon_id"]),
                service_id=str(record["service_id"]),
                provider_id=str(record["provider_id"]),
                client_id=str(record["client_id"]),
                start=to_instant(record["start_time"], tz),
                end=to_instant(record["end_time"], tz),
                status=record.get("status", BookingStatus.PENDING.value),
                payment_status=record.get("payment_status", PaymentStatus.UNPAID.value),
                notes=record.get("notes"),
            )
        except KeyError as exc:
            raise InvalidInput(f"Booking record is missing field {exc}") from exc
        except ValueError as exc:
            raise InvalidInput(f"Invalid booking record {record.get('id')!r}: {exc}") from exc

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "salon_id": self.salon_id,
            "service_id": self.service_id,
            "provider_id": self.provider_id,
            "client_id": self.client_id,
            "start_time": self.start.to_iso8601_string(),
            "end_time": self.end.to_iso8601_string(),
            "status": self.status.value,
            "payment_status": self.payment_status.value,
            "notes": self.notes,
        }
