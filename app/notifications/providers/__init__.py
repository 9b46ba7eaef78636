from app.notifications.providers.base import NotificationProvider
from app.notifications.providers.log_only import LogNotificationProvider

__all__ = [
    "NotificationProvider",
    "LogNotificationProvider",
]
