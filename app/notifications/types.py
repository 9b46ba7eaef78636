from dataclasses import dataclass

KIND_ERROR = "error"
KIND_WARNING = "warning"
KIND_SUCCESS = "success"
KIND_INFO = "info"

DEFAULT_DURATION_MS = 8000


@dataclass(frozen=True)
class Notification:
    kind: str
    title: str
    message: str = ""
    duration_ms: int = DEFAULT_DURATION_MS
