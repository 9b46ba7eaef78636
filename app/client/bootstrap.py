import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from app.client.analysis import BackendClient, Orchestrator
from app.client.history import HistoryController
from app.client.navigation import BrowserHistory, ViewMachine
from app.client.results import ResultsController
from app.client.state import SessionState
from app.client.upload import FileReader, UploadController
from app.client.wardrobe import WardrobeController
from app.core.cache import KV_ERRORS, KeyValueStore, make_kv_store
from app.core.errors import StoreNotInitialized, StoreOpenFailed
from app.services.notifications.service import NotificationService
from app.store.local_store import LocalStore

logger = logging.getLogger("app.client")


class StylingApp:
    """One client session: the store, the session state and every controller, wired together."""

    def __init__(
        self,
        *,
        store: Optional[LocalStore] = None,
        local_kv: Optional[KeyValueStore] = None,
        session_kv: Optional[KeyValueStore] = None,
        notifier: Optional[NotificationService] = None,
        api: Optional[BackendClient] = None,
        browser: Optional[BrowserHistory] = None,
        reader: Optional[FileReader] = None,
    ) -> None:
        self.store = store or LocalStore()
        self.local_kv = local_kv or make_kv_store("local")
        self.session_kv = session_kv or make_kv_store("session")
        self.notifier = notifier or NotificationService()
        self.api = api or BackendClient()
        self.session = SessionState()
        self.degraded = False

        self.results = ResultsController(self.session, self.store, self.session_kv, self.notifier)
        self.navigation = ViewMachine(
            self.session, self.store, self.notifier, self.results, self.session_kv, browser=browser
        )
        self.orchestrator = Orchestrator(
            self.session, self.notifier, self.api, present=self.navigation.display_results
        )
        self.upload = UploadController(self.session, self.store, self.notifier, self.orchestrator, reader=reader)
        self.wardrobe = WardrobeController(
            self.session, self.store, self.notifier, self.navigation, self.orchestrator
        )
        self.history = HistoryController(
            self.session, self.store, self.notifier, self.navigation, self.session_kv
        )

    async def start(self, path: str = "/") -> None:
        """Open the store, migrate legacy history and enter the view for ``path``.

        When the store cannot be opened the session keeps running without it;
        wardrobe and history then show their loading placeholders.
        """
        try:
            await self.store.open()
        except StoreOpenFailed as e:
            self.degraded = True
            logger.warning("running without local store: %s", e.cause or e)
        else:
            try:
                migrated = await self.store.migrate_legacy_history(self.local_kv)
                if migrated:
                    logger.info("migrated legacy history count=%s", migrated)
            except (SQLAlchemyError, StoreNotInitialized, ValueError) + KV_ERRORS as e:
                logger.error("legacy history migration failed; keeping it for next start: %s", e)
        await self.navigation.initialize_view(path)

    async def aclose(self) -> None:
        await self.api.aclose()
        await self.store.close()


def create_client(**kwargs) -> StylingApp:
    return StylingApp(**kwargs)
