import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from app.client.results import LAST_VIEWED_KEY, clear_result_cache
from app.client.state import SOURCE_HISTORY, SessionState
from app.client.types import StyleResult
from app.client.utils import parse_iso, to_title_case, with_hint
from app.core.cache import KV_ERRORS, KeyValueStore
from app.core.errors import RecordNotFound
from app.services.notifications.service import NotificationService
from app.store.local_store import STORE_ERRORS, LocalStore

logger = logging.getLogger("app.client.history")

PREVIEW_LENGTH = 150

_SECTION_HEADERS = re.compile(
    r"\*\*(Overall assessment|Why these pieces work|Outfit combinations|Additional styling tips)\*\*",
    re.IGNORECASE,
)
_BARE_HEADER = re.compile(r"Overall assessment", re.IGNORECASE)


def preview_text(recommendation: Optional[str]) -> str:
    text = _SECTION_HEADERS.sub("", recommendation or "")
    text = _BARE_HEADER.sub("", text).strip()
    if len(text) > PREVIEW_LENGTH:
        text = text[:PREVIEW_LENGTH] + "..."
    return text


def thumbnail(entry: StyleResult) -> Optional[str]:
    """First stylist-selected image, else the first image."""
    if not entry.images:
        return None
    if entry.selected_items:
        idx = entry.selected_items[0]
        if 0 <= idx < len(entry.images) and entry.images[idx]:
            return entry.images[idx]
    return entry.images[0]


@dataclass
class HistorySummary:
    timestamp: str
    title: str
    preview: str
    thumbnail: Optional[str]
    date_text: str


@dataclass
class HistoryView:
    entries: List[HistorySummary] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.entries


def summarize(entry: StyleResult) -> HistorySummary:
    when = parse_iso(entry.timestamp).astimezone()
    return HistorySummary(
        timestamp=entry.timestamp,
        title=to_title_case(entry.context) or "",
        preview=preview_text(entry.recommendation),
        thumbnail=thumbnail(entry),
        date_text=when.strftime("%x %H:%M"),
    )


async def get_history(store: LocalStore) -> List[StyleResult]:
    try:
        return await store.get_all_history()
    except STORE_ERRORS:
        logger.exception("failed to read history")
        return []


async def load_history(store: LocalStore) -> HistoryView:
    return HistoryView(entries=[summarize(e) for e in await get_history(store)])


class HistoryController:
    def __init__(
        self,
        session: SessionState,
        store: LocalStore,
        notifier: NotificationService,
        navigation,
        session_cache: KeyValueStore,
    ) -> None:
        self.session = session
        self.store = store
        self.notifier = notifier
        self.navigation = navigation
        self.session_cache = session_cache

    async def get_history(self) -> List[StyleResult]:
        return await get_history(self.store)

    async def load(self) -> HistoryView:
        view = await load_history(self.store)
        self.navigation.show_panel("history", view)
        return view

    async def open_entry(self, entry: StyleResult) -> None:
        self.session.show_result(entry, from_history=True, source=SOURCE_HISTORY)
        await self.navigation.display_results()

    async def open_timestamp(self, timestamp: str) -> bool:
        try:
            entry = await self.store.require_history(timestamp)
        except RecordNotFound:
            logger.info("history entry gone ts=%s", timestamp)
            self.notifier.warning("Not found", "That analysis is no longer in your history.")
            await self.load()
            return False
        except STORE_ERRORS as e:
            logger.exception("failed to open history entry ts=%s", timestamp)
            self.notifier.error("Open failed", with_hint("Couldn't open this analysis.", e))
            return False
        await self.open_entry(entry)
        return True

    async def _forget_current(self) -> None:
        self.session.current_result = None
        await clear_result_cache(self.session_cache)

    async def _last_viewed(self) -> Optional[str]:
        try:
            return await self.session_cache.get(LAST_VIEWED_KEY)
        except KV_ERRORS as e:
            logger.warning("session cache unavailable: %s", e)
            return None

    async def delete_entry(self, timestamp: str) -> None:
        try:
            await self.store.delete_history(timestamp)
        except STORE_ERRORS as e:
            logger.exception("failed to delete history entry ts=%s", timestamp)
            self.notifier.error("Delete failed", with_hint("Couldn't remove from history.", e))
            return
        current = self.session.current_result
        if current is not None and current.timestamp == timestamp:
            await self._forget_current()
        elif await self._last_viewed() == timestamp:
            await clear_result_cache(self.session_cache)
        await self.load()

    async def clear_all(self) -> None:
        try:
            await self.store.clear_history()
        except STORE_ERRORS as e:
            logger.exception("failed to clear history")
            self.notifier.error("Clear failed", with_hint("Couldn't clear history.", e))
            return
        await self._forget_current()
        await self.load()
