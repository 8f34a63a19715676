"""
Application services for listing slots and committing bookings.

The service fetches a fresh booking snapshot from the persistence adapter
and delegates the slot calculation to the domain-level ``SlotCalculator``.
Slot listings are advisory only: the authoritative conflict check runs
again inside the store's atomic insert when a booking is committed.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional, Protocol, Union

import pendulum
from pendulum import DateTime

from ..domain.exceptions import InvalidInput, NotFoundError, StaleSlotConflict
from ..domain.models import (
    Booking,
    BookingInterval,
    BookingStatus,
    PaymentStatus,
    Provider,
    Service,
    TimeSlot,
    to_instant,
)
from ..domain.slot_calculator import SlotCalculator, coerce_date

logger = logging.getLogger(__name__)


class BookingStoreProtocol(Protocol):
    """Protocol describing the persistence behaviour needed by the service."""

    async def get_provider(self, provider_id: str) -> Provider:
        """Return the provider or raise NotFoundError."""

    async def get_service(self, service_id: str) -> Service:
        """Return the service or raise NotFoundError."""

    async def get_booking(self, booking_id: str) -> Booking:
        """Return the booking or raise NotFoundError."""

    async def list_bookings(
        self,
        provider_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[Booking]:
        """Return non-cancelled bookings of the provider intersecting [start, end)."""

    async def insert_if_free(self, booking: Booking) -> Booking:
        """Atomically re-check conflicts and insert, or raise StaleSlotConflict."""

    async def update_booking_status(self, booking_id: str, status: BookingStatus) -> Booking:
        """Persist a status change and return the updated booking."""


class NotificationDispatcherProtocol(Protocol):
    """Protocol for the notification collaborator."""

    async def notify(self, user_id: str, kind: str, message: str) -> None:
        """Queue a notification for a user."""


@dataclass(frozen=True)
class BookingRequest:
    """A client's request to book a service with a provider at a given start."""
    provider_id: str
    service_id: str
    client_id: str
    start: DateTime
    notes: Optional[str] = None


class BookingService:
    """
    Orchestrates snapshot retrieval, slot calculation and booking commits.

    Dependency inversion toward protocols makes it easy to plug in the
    in-memory store or a real database adapter in tests.
    """

    def __init__(
        self,
        store: BookingStoreProtocol,
        slot_calculator: SlotCalculator,
        notifier: Optional[NotificationDispatcherProtocol] = None,
        clock: Optional[Callable[[], DateTime]] = None,
    ) -> None:
        self._store = store
        self._slot_calculator = slot_calculator
        self._notifier = notifier
        self._clock = clock or (lambda: pendulum.now(slot_calculator.timezone))

    @property
    def timezone(self) -> str:
        return self._slot_calculator.timezone

    async def list_slots(
        self,
        *,
        provider_id: str,
        service_id: str,
        day: Union[date, str],
    ) -> List[TimeSlot]:
        """
        Fetch fresh bookings for the day and compute the provider's slots.
        """
        provider = await self._get_active_provider(provider_id)
        service = await self._get_active_service(service_id)
        self._ensure_same_salon(provider, service)

        target = coerce_date(day)
        day_start = pendulum.datetime(target.year, target.month, target.day, tz=self.timezone)
        # Trailing slots may run into the next morning
        window_end = day_start.add(days=1, minutes=service.duration_minutes)

        bookings = await self._store.list_bookings(provider.id, day_start, window_end)
        logger.debug(
            "Fetched %d booking(s) for provider %s on %s",
            len(bookings),
            provider.id,
            target.isoformat(),
        )

        return self._slot_calculator.compute_slots(
            provider.schedule,
            service.duration_minutes,
            target,
            [booking.interval for booking in bookings],
            self._clock(),
        )

    async def check_conflict(
        self,
        *,
        provider_id: str,
        start: DateTime,
        end: DateTime,
    ) -> bool:
        """
        Re-read the provider's bookings and check a candidate interval.
        """
        candidate = BookingInterval(
            start=to_instant(start, self.timezone),
            end=to_instant(end, self.timezone),
            provider_id=provider_id,
        )
        bookings = await self._store.list_bookings(provider_id, candidate.start, candidate.end)
        return self._slot_calculator.has_conflict(
            candidate, [booking.interval for booking in bookings]
        )

    async def book(self, request: BookingRequest) -> Booking:
        """
        Commit a booking.

        Raises:
            InvalidInput: If the start time is in the past or not one of the
                provider's slots for that day
            NotFoundError: If the provider or service is unknown or inactive
            StaleSlotConflict: If the slot was taken since it was listed
        """
        provider = await self._get_active_provider(request.provider_id)
        service = await self._get_active_service(request.service_id)
        self._ensure_same_salon(provider, service)

        start = to_instant(request.start, self.timezone)
        now = to_instant(self._clock(), self.timezone)
        if start <= now:
            raise InvalidInput(f"Cannot book a slot in the past ({start.to_iso8601_string()})")
        self._ensure_on_slot_grid(provider, service, start, now)

        booking = Booking(
            id=str(uuid.uuid4()),
            salon_id=provider.salon_id,
            service_id=service.id,
            provider_id=provider.id,
            client_id=request.client_id,
            start=start,
            end=start.add(minutes=service.duration_minutes),
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.UNPAID,
            notes=request.notes or None,
        )

        try:
            stored = await self._store.insert_if_free(booking)
        except StaleSlotConflict as exc:
            logger.warning(
                "Rejected booking for provider %s at %s: %d conflicting booking(s)",
                provider.id,
                start.to_iso8601_string(),
                len(exc.conflicts),
            )
            raise

        logger.info("Created booking %s for client %s", stored.id, stored.client_id)

        await self._dispatch(
            stored.client_id,
            "booking_created",
            f"Your booking for {service.name} with {provider.name} on "
            f"{stored.start.format('DD.MM.YYYY HH:mm')} was created.",
        )
        return stored

    async def cancel(self, booking_id: str) -> Booking:
        """Cancel a booking, freeing its slot."""
        booking = await self._store.get_booking(booking_id)
        if booking.is_cancelled:
            return booking

        updated = await self._store.update_booking_status(booking_id, BookingStatus.CANCELLED)
        logger.info("Cancelled booking %s", booking_id)

        await self._dispatch(
            updated.client_id,
            "booking_cancelled",
            f"Your booking on {updated.start.format('DD.MM.YYYY HH:mm')} was cancelled.",
        )
        return updated

    async def _get_active_provider(self, provider_id: str) -> Provider:
        provider = await self._store.get_provider(provider_id)
        if not provider.active:
            raise NotFoundError(f"Provider {provider_id!r} is not active")
        return provider

    async def _get_active_service(self, service_id: str) -> Service:
        service = await self._store.get_service(service_id)
        if not service.active:
            raise NotFoundError(f"Service {service_id!r} is not active")
        return service

    @staticmethod
    def _ensure_same_salon(provider: Provider, service: Service) -> None:
        if provider.salon_id != service.salon_id:
            raise InvalidInput(
                f"Provider {provider.id!r} does not offer services of salon {service.salon_id!r}"
            )

    def _ensure_on_slot_grid(
        self,
        provider: Provider,
        service: Service,
        start: DateTime,
        now: DateTime,
    ) -> None:
        """
        Reject a start that the slot listing would never offer.

        Existing bookings are not consulted; conflicts come from the store's
        atomic insert as StaleSlotConflict.
        """
        local_start = start.in_timezone(self.timezone)
        slots = self._slot_calculator.compute_slots(
            provider.schedule,
            service.duration_minutes,
            local_start.date(),
            [],
            now,
        )
        if not any(slot.available and slot.start == start for slot in slots):
            raise InvalidInput(
                f"{local_start.format('DD.MM.YYYY HH:mm')} is not a bookable slot "
                f"for provider {provider.id!r}"
            )

    async def _dispatch(self, user_id: str, kind: str, message: str) -> None:
        """Send a notification; failures never undo the booking change."""
        if self._notifier is None:
            return
        try:
            await self._notifier.notify(user_id, kind, message)
        except Exception:
            logger.warning("Failed to send %s notification to %s", kind, user_id, exc_info=True)
