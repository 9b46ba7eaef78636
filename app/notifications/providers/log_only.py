import logging
from app.notifications.types import KIND_ERROR, KIND_WARNING, Notification

_LEVELS = {KIND_ERROR: logging.ERROR, KIND_WARNING: logging.WARNING}


class LogNotificationProvider:
    def send(self, notification: Notification) -> None:
        logging.getLogger("notifications").log(
            _LEVELS.get(notification.kind, logging.INFO),
            "notify %s %s %s",
            notification.kind,
            notification.title,
            notification.message,
        )
