"""
Adapters layer - Persistence and notification collaborators.
"""

from .memory_store import InMemoryBookingStore
from .notifier import LoggingNotifier, Notification

__all__ = ["InMemoryBookingStore", "LoggingNotifier", "Notification"]
