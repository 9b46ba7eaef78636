from typing import List, Optional

from app.notifications.providers import LogNotificationProvider, NotificationProvider
from app.notifications.types import (
    DEFAULT_DURATION_MS,
    KIND_ERROR,
    KIND_INFO,
    KIND_SUCCESS,
    KIND_WARNING,
    Notification,
)


class NotificationService:
    """Transient user notices. At most one is active; a new one replaces the previous."""

    def __init__(self, provider: Optional[NotificationProvider] = None) -> None:
        self.provider = provider or LogNotificationProvider()
        self.active: List[Notification] = []
        self.sent: List[Notification] = []

    def show(self, kind: str, title: str, message: str = "", duration_ms: int = DEFAULT_DURATION_MS) -> Notification:
        self.dismiss_all()
        notification = Notification(kind=kind, title=title, message=message, duration_ms=duration_ms)
        self.active.append(notification)
        self.sent.append(notification)
        self.provider.send(notification)
        return notification

    def error(self, title: str, message: str = "", duration_ms: int = DEFAULT_DURATION_MS) -> Notification:
        return self.show(KIND_ERROR, title, message, duration_ms)

    def warning(self, title: str, message: str = "", duration_ms: int = DEFAULT_DURATION_MS) -> Notification:
        return self.show(KIND_WARNING, title, message, duration_ms)

    def success(self, title: str, message: str = "", duration_ms: int = DEFAULT_DURATION_MS) -> Notification:
        return self.show(KIND_SUCCESS, title, message, duration_ms)

    def info(self, title: str, message: str = "", duration_ms: int = DEFAULT_DURATION_MS) -> Notification:
        return self.show(KIND_INFO, title, message, duration_ms)

    @property
    def current(self) -> Optional[Notification]:
        return self.active[-1] if self.active else None

    def dismiss_all(self) -> None:
        self.active.clear()
