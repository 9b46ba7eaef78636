import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from app.client.state import MAX_ITEMS, SOURCE_WARDROBE, SessionState
from app.client.types import ClientFile, StyleResult, WardrobeItem
from app.client.utils import with_hint
from app.services.notifications.service import NotificationService
from app.store.local_store import STORE_ERRORS, LocalStore

if TYPE_CHECKING:
    from app.client.analysis import Orchestrator
    from app.client.navigation import ViewMachine

logger = logging.getLogger("app.client.wardrobe")


@dataclass
class WardrobeEntry:
    item: WardrobeItem
    selected: bool


@dataclass
class WardrobeView:
    entries: List[WardrobeEntry] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def empty(self) -> bool:
        return self.error is None and not self.entries

    @property
    def select_all_visible(self) -> bool:
        return bool(self.entries)


@dataclass
class SelectionView:
    items: List[WardrobeItem] = field(default_factory=list)
    count: int = 0
    counter_text: str = ""
    styling_visible: bool = False
    can_submit: bool = False

    @property
    def visible(self) -> bool:
        return self.count > 0


def selection_counter(count: int) -> str:
    return f"({count} selected)" if count > MAX_ITEMS else f"({count}/{MAX_ITEMS})"


async def load_wardrobe(store: LocalStore, session: SessionState) -> WardrobeView:
    try:
        items = await store.get_all_wardrobe_items()
    except STORE_ERRORS:
        logger.exception("failed to load wardrobe")
        return WardrobeView(error="Error loading wardrobe")
    selected = set(session.selected_wardrobe_items)
    return WardrobeView(entries=[WardrobeEntry(item=i, selected=i.id in selected) for i in items])


class WardrobeController:
    def __init__(
        self,
        session: SessionState,
        store: LocalStore,
        notifier: NotificationService,
        navigation: "ViewMachine",
        orchestrator: "Orchestrator",
    ) -> None:
        self.session = session
        self.store = store
        self.notifier = notifier
        self.navigation = navigation
        self.orchestrator = orchestrator

    async def load(self) -> WardrobeView:
        view = await load_wardrobe(self.store, self.session)
        self.navigation.show_panel("wardrobe", view)
        return view

    async def toggle_selection(self, item_id: int) -> bool:
        """Select or deselect one item. False when the selection cap blocked it."""
        selection = self.session.selected_wardrobe_items
        if item_id in selection:
            selection.remove(item_id)
            self.notifier.dismiss_all()
        else:
            if len(selection) >= MAX_ITEMS:
                self.notifier.warning(
                    "Selection limit reached",
                    f"You can style up to {MAX_ITEMS} items at once for the best results.",
                )
                return False
            selection.append(item_id)
        if len(selection) <= MAX_ITEMS:
            self.session.used_select_all = False
        await self.load()
        return True

    async def select_all(self) -> None:
        try:
            items = await self.store.get_all_wardrobe_items()
        except STORE_ERRORS as e:
            logger.exception("select all failed")
            self.notifier.error("Selection failed", with_hint("Couldn't load your wardrobe.", e))
            return
        # no cap here; styling is hidden instead when this goes past it
        self.session.selected_wardrobe_items = [i.id for i in items]
        self.session.used_select_all = True
        await self.load()

    async def clear_selection(self) -> None:
        self.notifier.dismiss_all()
        self.session.selected_wardrobe_items = []
        self.session.used_select_all = False
        await self.load()

    def select_context(self, preset: str) -> None:
        self.session.wardrobe_context = preset
        self.session.wardrobe_custom_context = ""

    def set_custom_context(self, text: str) -> None:
        self.session.wardrobe_custom_context = text
        if text:
            self.session.wardrobe_context = None

    @property
    def can_submit(self) -> bool:
        return bool(self.session.selected_wardrobe_items) and bool(self.session.wardrobe_occasion)

    async def _resolve_selected(self) -> List[WardrobeItem]:
        """Selected items in selection order; ids no longer in the store are skipped."""
        by_id = {i.id: i for i in await self.store.get_all_wardrobe_items()}
        return [by_id[i] for i in self.session.selected_wardrobe_items if i in by_id]

    async def selection_view(self) -> SelectionView:
        if not self.session.selected_wardrobe_items:
            return SelectionView()
        try:
            items = await self._resolve_selected()
            count = len(items)
        except STORE_ERRORS:
            logger.exception("failed to resolve wardrobe selection")
            items = []
            count = len(self.session.selected_wardrobe_items)
        if count == 0:
            return SelectionView()
        hide_styling = self.session.used_select_all and count > MAX_ITEMS
        return SelectionView(
            items=items,
            count=count,
            counter_text=selection_counter(count),
            styling_visible=not hide_styling,
            can_submit=self.can_submit,
        )

    async def delete_item(self, item_id: int) -> None:
        try:
            await self.store.delete_wardrobe_item(item_id)
        except STORE_ERRORS as e:
            logger.exception("wardrobe delete failed id=%s", item_id)
            self.notifier.error("Delete failed", with_hint("Couldn't remove from wardrobe.", e))
            return
        self.session.selected_wardrobe_items = [i for i in self.session.selected_wardrobe_items if i != item_id]
        await self.load()

    async def delete_selected(self) -> None:
        if not self.session.selected_wardrobe_items:
            return
        try:
            ids = [i.id for i in await self._resolve_selected()]
            await self.store.delete_wardrobe_items(ids)
        except STORE_ERRORS as e:
            logger.exception("wardrobe bulk delete failed")
            self.notifier.error("Delete failed", with_hint("Couldn't remove from wardrobe.", e))
            await self.load()
            return
        self.session.selected_wardrobe_items = []
        await self.load()

    async def reorder(self, dragged_id: int, target_id: int) -> None:
        """Move the dragged item into the target's slot and persist the whole order."""
        if dragged_id == target_id:
            return
        try:
            ids = [i.id for i in await self.store.get_all_wardrobe_items()]
            if dragged_id not in ids or target_id not in ids:
                return
            target_index = ids.index(target_id)
            ids.remove(dragged_id)
            ids.insert(target_index, dragged_id)
            await self.store.save_wardrobe_order(ids)
        except STORE_ERRORS as e:
            logger.exception("saving wardrobe order failed")
            self.notifier.error("Reorder failed", with_hint("Couldn't save the new order.", e))
        await self.load()

    async def get_recommendation(self) -> Optional[StyleResult]:
        context = self.session.wardrobe_occasion
        try:
            items = await self._resolve_selected()
            if not items or len(items) > MAX_ITEMS or not context:
                return None
            self.session.loading.show()
            files = [ClientFile.from_data_url(i.image_data, i.file_name) for i in items]
        except STORE_ERRORS + (ValueError,) as e:
            logger.exception("wardrobe recommendation failed")
            self.notifier.error("Analysis failed", with_hint("Couldn't get a recommendation.", e))
            self.session.loading.hide()
            await self.navigation.switch_view("wardrobe")
            return None

        self.session.analysis_source = SOURCE_WARDROBE
        return await self.orchestrator.run(files, [i.image_data for i in items], context)
