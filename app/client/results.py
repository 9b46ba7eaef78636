import logging
from dataclasses import dataclass, field
from typing import List, Optional

from app.client.state import SOURCE_HISTORY, SessionState
from app.client.types import ResultItem
from app.client.utils import to_title_case, with_hint
from app.core.cache import KV_ERRORS, KeyValueStore, cache_json_set
from app.services.notifications.service import NotificationService
from app.store.local_store import STORE_ERRORS, LocalStore

logger = logging.getLogger("app.client.results")

CURRENT_RESULT_KEY = "currentResult"
LAST_VIEWED_KEY = "lastViewedResultTimestamp"


async def clear_result_cache(kv: KeyValueStore) -> None:
    try:
        await kv.remove(CURRENT_RESULT_KEY)
        await kv.remove(LAST_VIEWED_KEY)
    except KV_ERRORS as e:
        logger.warning("clearing result cache failed: %s", e)


def non_clothing_note(count: int) -> Optional[str]:
    if count <= 0:
        return None
    if count == 1:
        return "1 image was not detected as clothing and has been excluded from recommendations."
    return f"{count} images were not detected as clothing and have been excluded from recommendations."


@dataclass
class ResultsView:
    heading: str
    recommendation: str
    back_label: str
    save_visible: bool
    note: Optional[str] = None
    items: List[ResultItem] = field(default_factory=list)
    show_images: bool = False


class ResultsController:
    def __init__(
        self,
        session: SessionState,
        store: LocalStore,
        session_cache: KeyValueStore,
        notifier: NotificationService,
    ) -> None:
        self.session = session
        self.store = store
        self.session_cache = session_cache
        self.notifier = notifier

    async def mirror_to_cache(self) -> None:
        """Keep the session cache able to restore the shown result after a reload."""
        result = self.session.current_result
        if result is None:
            return
        try:
            if self.session.is_from_history:
                await self.session_cache.set(LAST_VIEWED_KEY, result.timestamp)
                await self.session_cache.remove(CURRENT_RESULT_KEY)
            else:
                await cache_json_set(self.session_cache, CURRENT_RESULT_KEY, result.to_record())
                await self.session_cache.remove(LAST_VIEWED_KEY)
        except KV_ERRORS as e:
            # only a reload loses the result
            logger.warning("mirroring result to session cache failed ts=%s: %s", result.timestamp, e)

    def render(self) -> Optional[ResultsView]:
        result = self.session.current_result
        if result is None:
            return None
        heading = "Style Recommendation"
        if result.context:
            heading = f"{to_title_case(result.context)} Style Recommendation"
        return ResultsView(
            heading=heading,
            recommendation=result.recommendation,
            back_label="Back" if self.session.analysis_source == SOURCE_HISTORY else "Edit",
            save_visible=not self.session.is_from_history,
            note=non_clothing_note(result.non_clothing_count),
            items=result.display_items(),
            show_images=bool(result.images),
        )

    async def save_current_result(self) -> bool:
        """Save the shown result to history. False when there is nothing new to save or saving failed."""
        result = self.session.current_result
        if result is None:
            return False
        try:
            if await self.store.get_history(result.timestamp) is not None:
                return False
            await self.store.put_history(result)
        except STORE_ERRORS as e:
            logger.exception("save to history failed ts=%s", result.timestamp)
            self.notifier.error("Save failed", with_hint("Couldn't save to history.", e))
            return False

        self.session.is_from_history = True
        await self.mirror_to_cache()
        return True
