import re
from datetime import datetime, timezone
from typing import Optional

import httpx

# Occasion/place abbreviations that stay upper-case in titles.
ABBREVIATIONS = {"nyc", "la", "uk", "usa", "nye", "bbq", "vip", "nyfw", "pfw", "cfda", "gq"}

_WORD = re.compile(r"\w\S*")
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

HINT_NETWORK = "Check your internet connection."
HINT_SERVER = "Server error. Try again in a moment."
HINT_QUOTA = "Storage full. Try clearing some history."
HINT_BLOCKED = "Storage may be blocked. Try refreshing the page."
HINT_SESSION = "Another session may be open. Close extra tabs and try again."


def to_title_case(text: Optional[str]) -> Optional[str]:
    """"birthday party" -> "Birthday Party", "nyc brunch" -> "NYC Brunch"."""
    if not text:
        return text

    def _word(m: re.Match) -> str:
        word = m.group(0)
        if word.lower() in ABBREVIATIONS:
            return word.upper()
        return word[0].upper() + word[1:].lower()

    return _WORD.sub(_word, text)


def format_item_name(name: Optional[str]) -> str:
    if not name:
        return ""
    return " ".join(w[:1].upper() + w[1:] for w in name.lower().split(" "))


def get_error_hint(exc: Optional[BaseException]) -> str:
    """Short user-facing hint for a failure, or "" when nothing specific applies."""
    if exc is None:
        return ""
    text = str(exc).lower()
    kind = type(exc).__name__.lower()

    if isinstance(exc, httpx.TransportError) or "network" in text or "fetch" in text:
        return HINT_NETWORK

    status = getattr(exc, "status", None)
    if (isinstance(status, int) and status >= 500) or any(code in text for code in ("500", "502", "503")) \
            or "server error" in text:
        return HINT_SERVER

    if "quota" in kind or "quota" in text or "disk is full" in text:
        return HINT_QUOTA
    if "blocked" in text or "security" in text or ("access" in text and "denied" in text):
        return HINT_BLOCKED
    if "transaction" in text or "locked" in text or ("database" in text and "closed" in text):
        return HINT_SESSION
    return ""


def with_hint(message: str, exc: Optional[BaseException]) -> str:
    hint = get_error_hint(exc)
    return f"{message} {hint}" if hint else message


def now_iso() -> str:
    """Current UTC time, millisecond precision, "Z" suffix (2026-01-02T03:04:05.678Z)."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: Optional[str]) -> datetime:
    """Parse a stored timestamp; unparseable values sort as the oldest possible time."""
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
