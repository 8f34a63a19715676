"""
Notification dispatcher that records and logs messages instead of sending them.
"""

import logging
from dataclasses import dataclass
from typing import List

import pendulum
from pendulum import DateTime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    user_id: str
    kind: str
    message: str
    created_at: DateTime


class LoggingNotifier:
    """
    Keeps notifications in memory and writes them to the log.

    Useful for the CLI and for tests; a real deployment would insert into the
    notifications table or call a messaging service.
    """

    def __init__(self):
        self.sent: List[Notification] = []

    async def notify(self, user_id: str, kind: str, message: str) -> None:
        notification = Notification(
            user_id=user_id,
            kind=kind,
            message=message,
            created_at=pendulum.now("UTC"),
        )
        self.sent.append(notification)
        logger.info("Notification %s for %s: %s", kind, user_id, message)

    def for_user(self, user_id: str) -> List[Notification]:
        return [n for n in self.sent if n.user_id == user_id]
