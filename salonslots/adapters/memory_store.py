"""
In-memory booking store with optional JSON file persistence.

Stands in for the hosted database: it answers the provider/service/booking
queries of the booking service and enforces non-overlap at write time.
"""

import asyncio
import dataclasses
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pendulum import DateTime

from ..domain.exceptions import InvalidInput, NotFoundError, StaleSlotConflict, StoreError
from ..domain.models import Booking, BookingStatus, Provider, Service
from ..domain.slot_calculator import SlotCalculator

logger = logging.getLogger(__name__)


class InMemoryBookingStore:
    """
    Booking store keeping all records in dictionaries.

    ``insert_if_free`` holds a per-provider lock while it re-checks conflicts
    and inserts, so two commits for the same slot can never both succeed.
    When ``data_file`` is set, every write is flushed to that JSON file,
    one writer at a time.
    """

    def __init__(
        self,
        services: Iterable[Service] = (),
        providers: Iterable[Provider] = (),
        bookings: Iterable[Booking] = (),
        data_file: Optional[Path] = None,
        timezone: str = "UTC",
        extra: Optional[Dict[str, Any]] = None,
    ):
        self._services: Dict[str, Service] = {s.id: s for s in services}
        self._providers: Dict[str, Provider] = {p.id: p for p in providers}
        self._bookings: Dict[str, Booking] = {b.id: b for b in bookings}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._write_lock = asyncio.Lock()
        self._conflict_checker = SlotCalculator(timezone=timezone)
        self._extra = dict(extra or {})
        self.data_file = data_file
        self.timezone = timezone

    @classmethod
    def from_json(cls, data_file: Path, timezone: str = "UTC") -> "InMemoryBookingStore":
        """
        Load salon data from a JSON file.

        Args:
            data_file: Path with ``services``, ``providers`` and ``bookings`` lists
            timezone: Timezone for timestamps without an offset

        Raises:
            StoreError: If the file is missing or its records are invalid
        """
        if not data_file.exists():
            raise StoreError(f"Data file not found: {data_file}")

        try:
            with open(data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Could not read {data_file}: {exc}") from exc

        if not isinstance(data, dict):
            raise StoreError("Data file must contain a JSON object at the root level.")

        try:
            services = [Service.from_record(r) for r in data.get("services", [])]
            providers = [Provider.from_record(r) for r in data.get("providers", [])]
            bookings = [Booking.from_record(r, tz=timezone) for r in data.get("bookings", [])]
        except (KeyError, TypeError, InvalidInput) as exc:
            raise StoreError(f"Invalid record in {data_file}: {exc}") from exc

        extra = {
            key: value
            for key, value in data.items()
            if key not in ("services", "providers", "bookings")
        }

        logger.debug(
            "Loaded %d service(s), %d provider(s), %d booking(s) from %s",
            len(services),
            len(providers),
            len(bookings),
            data_file,
        )

        return cls(
            services=services,
            providers=providers,
            bookings=bookings,
            data_file=data_file,
            timezone=timezone,
            extra=extra,
        )

    async def get_provider(self, provider_id: str) -> Provider:
        try:
            return self._providers[provider_id]
        except KeyError:
            raise NotFoundError(f"Unknown provider: {provider_id!r}") from None

    async def get_service(self, service_id: str) -> Service:
        try:
            return self._services[service_id]
        except KeyError:
            raise NotFoundError(f"Unknown service: {service_id!r}") from None

    async def get_booking(self, booking_id: str) -> Booking:
        try:
            return self._bookings[booking_id]
        except KeyError:
            raise NotFoundError(f"Unknown booking: {booking_id!r}") from None

    async def list_providers(self, salon_id: Optional[str] = None) -> List[Provider]:
        return [
            p for p in self._providers.values()
            if salon_id is None or p.salon_id == salon_id
        ]

    async def list_bookings(
        self,
        provider_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[Booking]:
        """Non-cancelled bookings of the provider intersecting [start, end)."""
        return self._active_bookings(provider_id, start, end)

    async def insert_if_free(self, booking: Booking) -> Booking:
        """
        Re-check conflicts and insert in one atomic step.

        Raises:
            StaleSlotConflict: If the interval overlaps a non-cancelled booking
        """
        async with self._lock_for(booking.provider_id):
            existing = [
                b.interval
                for b in self._active_bookings(booking.provider_id, booking.start, booking.end)
            ]
            conflicts = self._conflict_checker.find_conflicts(booking.interval, existing)
            if conflicts:
                raise StaleSlotConflict(conflicts)

            self._bookings[booking.id] = booking
            try:
                await self._persist()
            except StoreError:
                del self._bookings[booking.id]
                raise

        return booking

    async def update_booking_status(self, booking_id: str, status: BookingStatus) -> Booking:
        booking = await self.get_booking(booking_id)

        async with self._lock_for(booking.provider_id):
            updated = dataclasses.replace(booking, status=BookingStatus(status))
            self._bookings[booking_id] = updated
            try:
                await self._persist()
            except StoreError:
                self._bookings[booking_id] = booking
                raise

        return updated

    def to_payload(self) -> Dict[str, Any]:
        payload = dict(self._extra)
        payload["services"] = [s.to_record() for s in self._services.values()]
        payload["providers"] = [p.to_record() for p in self._providers.values()]
        payload["bookings"] = [
            b.to_record() for b in sorted(self._bookings.values(), key=lambda b: b.start)
        ]
        return payload

    def _active_bookings(self, provider_id: str, start: DateTime, end: DateTime) -> List[Booking]:
        matches = [
            b for b in self._bookings.values()
            if b.provider_id == provider_id
            and not b.is_cancelled
            and b.start < end
            and b.end > start
        ]
        return sorted(matches, key=lambda b: b.start)

    def _lock_for(self, provider_id: str) -> asyncio.Lock:
        if provider_id not in self._locks:
            self._locks[provider_id] = asyncio.Lock()
        return self._locks[provider_id]

    async def _persist(self) -> None:
        """
        Write the current state to ``data_file``.

        All providers share one file, so the snapshot and the write happen
        under a store-wide lock: the last write always carries the newest state.
        """
        if self.data_file is None:
            return
        async with self._write_lock:
            payload = self.to_payload()
            try:
                await asyncio.to_thread(self._write_json, self.data_file, payload)
            except OSError as exc:
                raise StoreError(f"Could not write {self.data_file}: {exc}") from exc

    @staticmethod
    def _write_json(path: Path, payload: Dict[str, Any]) -> None:
        # Replace the file in one step so a failed write leaves the old content
        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
