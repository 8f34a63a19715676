"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking import (
    BookingRequest,
    BookingService,
    BookingStoreProtocol,
    NotificationDispatcherProtocol,
)

__all__ = [
    "BookingRequest",
    "BookingService",
    "BookingStoreProtocol",
    "NotificationDispatcherProtocol",
]
