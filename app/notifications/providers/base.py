from typing import Protocol
from app.notifications.types import Notification


class NotificationProvider(Protocol):
    """Delivers a notice to wherever the user sees it (a toast, a log line)."""

    def send(self, notification: Notification) -> None:
        ...
