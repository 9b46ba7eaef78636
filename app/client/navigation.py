"""View/navigation state machine.

Four views (upload, wardrobe, history, results) each addressable by a path.
``switch_view`` is the single transition: it dismisses notices, marks the
active view, optionally pushes a navigation entry, resets per-view session
state when the view actually changes, and refreshes wardrobe/history panels
from the store (or shows a loading placeholder while the store is not ready).
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from app.client.history import get_history, load_history
from app.client.results import CURRENT_RESULT_KEY, LAST_VIEWED_KEY, ResultsController, clear_result_cache
from app.client.state import SOURCE_HISTORY, SOURCE_UPLOAD, SOURCE_WARDROBE, SessionState
from app.client.types import StyleResult
from app.client.wardrobe import load_wardrobe
from app.core.cache import KV_ERRORS, KeyValueStore, cache_json_get
from app.services.notifications.service import NotificationService
from app.store.local_store import LocalStore

logger = logging.getLogger("app.client.navigation")

VIEW_UPLOAD = "upload"
VIEW_WARDROBE = "wardrobe"
VIEW_HISTORY = "history"
VIEW_RESULTS = "results"
VIEWS = (VIEW_UPLOAD, VIEW_WARDROBE, VIEW_HISTORY, VIEW_RESULTS)


def view_path(view: str) -> str:
    return "/" if view == VIEW_UPLOAD else f"/{view}"


def view_from_path(path: Optional[str]) -> str:
    if not path or path == "/":
        return VIEW_UPLOAD
    head = path.lstrip("/").split("/", 1)[0]
    return head if head in VIEWS else VIEW_UPLOAD


@dataclass(frozen=True)
class NavEntry:
    view: Optional[str]
    path: str


class BrowserHistory:
    """Back/forward stack of navigation entries, like a browser tab's session history."""

    def __init__(self, path: str = "/") -> None:
        self.entries: List[NavEntry] = [NavEntry(view=None, path=path)]
        self.index = 0

    @property
    def location(self) -> str:
        return self.entries[self.index].path

    @property
    def current(self) -> NavEntry:
        return self.entries[self.index]

    def replace(self, path: str, view: Optional[str] = None) -> None:
        self.entries[self.index] = NavEntry(view=view, path=path)

    def push_state(self, view: str, path: str) -> None:
        del self.entries[self.index + 1:]
        self.entries.append(NavEntry(view=view, path=path))
        self.index += 1

    def back(self) -> Optional[NavEntry]:
        if self.index == 0:
            return None
        self.index -= 1
        return self.current

    def forward(self) -> Optional[NavEntry]:
        if self.index >= len(self.entries) - 1:
            return None
        self.index += 1
        return self.current


@dataclass
class Panel:
    model: Any = None
    loading: bool = False
    message: str = ""

    @classmethod
    def placeholder(cls, message: str) -> "Panel":
        return cls(loading=True, message=message)


class ViewMachine:
    def __init__(
        self,
        session: SessionState,
        store: LocalStore,
        notifier: NotificationService,
        results: ResultsController,
        session_cache: KeyValueStore,
        browser: Optional[BrowserHistory] = None,
    ) -> None:
        self.session = session
        self.store = store
        self.notifier = notifier
        self.results = results
        self.session_cache = session_cache
        self.browser = browser or BrowserHistory()
        self.active_view: Optional[str] = None
        self.panels: Dict[str, Panel] = {v: Panel() for v in VIEWS}

    def show_panel(self, view: str, model: Any) -> None:
        self.panels[view] = Panel(model=model)

    async def switch_view(self, view: str, update_url: bool = False) -> None:
        self.notifier.dismiss_all()
        switching = self.active_view != view
        self.active_view = view

        if update_url:
            self.browser.push_state(view, view_path(view))

        if switching:
            # a run started for the view being left must not present later
            self.session.cancel_analysis()
            if view == VIEW_UPLOAD:
                self.session.reset_upload_form()
            elif view == VIEW_WARDROBE and self.session.analysis_source != SOURCE_WARDROBE:
                self.session.reset_wardrobe_selection()

        if view == VIEW_WARDROBE:
            if self.store.ready:
                self.show_panel(VIEW_WARDROBE, await load_wardrobe(self.store, self.session))
            else:
                self.panels[VIEW_WARDROBE] = Panel.placeholder("Loading wardrobe...")
        elif view == VIEW_HISTORY:
            if self.store.ready:
                self.show_panel(VIEW_HISTORY, await load_history(self.store))
            else:
                self.panels[VIEW_HISTORY] = Panel.placeholder("Loading history...")
        logger.debug("view=%s switching=%s url=%s", view, switching, self.browser.location)

    async def handle_popstate(self, entry: Optional[NavEntry] = None) -> None:
        view = entry.view if entry is not None and entry.view else view_from_path(self.browser.location)
        await self.switch_view(view, update_url=False)

    async def back(self) -> None:
        """Browser back button."""
        entry = self.browser.back()
        if entry is not None:
            await self.handle_popstate(entry)

    async def forward(self) -> None:
        entry = self.browser.forward()
        if entry is not None:
            await self.handle_popstate(entry)

    async def display_results(self, update_url: bool = True) -> None:
        if self.session.current_result is None:
            return
        await self.results.mirror_to_cache()
        self.show_panel(VIEW_RESULTS, self.results.render())
        self.session.loading.hide()
        await self.switch_view(VIEW_RESULTS, update_url)

    async def _restore_snapshot(self) -> Optional[StyleResult]:
        try:
            data = await cache_json_get(self.session_cache, CURRENT_RESULT_KEY)
            return StyleResult.model_validate(data) if data else None
        except KV_ERRORS as e:
            logger.warning("session cache unavailable, no snapshot: %s", e)
            return None
        except ValueError as e:
            logger.warning("discarding unreadable result snapshot: %s", e)
        try:
            await self.session_cache.remove(CURRENT_RESULT_KEY)
        except KV_ERRORS as e:
            logger.warning("could not drop result snapshot: %s", e)
        return None

    async def _last_viewed(self) -> Optional[str]:
        try:
            return await self.session_cache.get(LAST_VIEWED_KEY)
        except KV_ERRORS as e:
            logger.warning("session cache unavailable: %s", e)
            return None

    async def initialize_view(self, path: Optional[str] = None) -> None:
        """Enter the view for ``path`` on startup, restoring a result when it points at results."""
        if path is not None:
            self.browser.replace(path)
        view = view_from_path(self.browser.location)

        if view == VIEW_RESULTS and self.session.current_result is None:
            snapshot = await self._restore_snapshot()
            if snapshot is not None:
                self.session.show_result(snapshot, from_history=False)
                await self.display_results(update_url=False)
                return

            history = await get_history(self.store) if self.store.ready else []
            if history:
                last_viewed = await self._last_viewed()
                entry = next((h for h in history if h.timestamp == last_viewed), None) or history[0]
                self.session.show_result(entry, from_history=True, source=SOURCE_HISTORY)
                await self.display_results(update_url=False)
                return

            await self.switch_view(VIEW_UPLOAD, update_url=True)
            return

        await self.switch_view(view, update_url=False)

    async def back_from_results(self) -> None:
        """Leave results for where the result came from."""
        await clear_result_cache(self.session_cache)
        source = self.session.analysis_source

        if source == SOURCE_HISTORY:
            self.session.analysis_source = SOURCE_UPLOAD
            await self.switch_view(VIEW_HISTORY, update_url=True)
        elif source == SOURCE_WARDROBE:
            # selection survives because provenance is still wardrobe during the switch
            self.session.clear_wardrobe_context()
            await self.switch_view(VIEW_WARDROBE, update_url=True)
            self.session.analysis_source = SOURCE_UPLOAD
        else:
            self.session.is_from_history = False
            self.session.analysis_source = SOURCE_UPLOAD
            await self.switch_view(VIEW_UPLOAD, update_url=True)
            self.session.reset_upload_form()
