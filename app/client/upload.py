import asyncio
import logging
import time
from typing import Awaitable, Callable, Iterable, List, Optional

from app.client.analysis import Orchestrator
from app.client.state import MAX_ITEMS, SOURCE_UPLOAD, SessionState
from app.client.types import ClientFile, PendingUpload, StyleResult
from app.client.utils import with_hint
from app.services.notifications.service import NotificationService
from app.store.local_store import STORE_ERRORS, LocalStore

logger = logging.getLogger("app.client.upload")

FileReader = Callable[[ClientFile], Awaitable[str]]


async def read_as_data_url(file: ClientFile) -> str:
    return await asyncio.to_thread(file.to_data_url)


class UploadController:
    def __init__(
        self,
        session: SessionState,
        store: LocalStore,
        notifier: NotificationService,
        orchestrator: Orchestrator,
        reader: Optional[FileReader] = None,
    ) -> None:
        self.session = session
        self.store = store
        self.notifier = notifier
        self.orchestrator = orchestrator
        self.reader = reader or read_as_data_url

    async def add_files(self, files: Iterable[ClientFile]) -> List[PendingUpload]:
        """Accept image files up to the cap and read their previews concurrently.

        Slots are reserved before any read starts, so previews land next to their
        file whatever order the reads finish in.
        """
        images = [f for f in files if (f.content_type or "").startswith("image/")]
        remaining = MAX_ITEMS - len(self.session.uploads)
        if remaining <= 0 or not images:
            return []
        records = [PendingUpload(file=f) for f in images[:remaining]]
        self.session.uploads.extend(records)
        await asyncio.gather(*(self._read(r) for r in records))
        return records

    async def _read(self, record: PendingUpload) -> None:
        try:
            data_url = await self.reader(record.file)
        except (OSError, ValueError) as e:
            logger.warning("could not read %s: %s", record.file.name, e)
            if self.session.holds_upload(record):
                self.session.uploads.remove(record)
                self.notifier.error("Upload failed", with_hint(f"Couldn't read {record.file.name}.", e))
            return
        if not self.session.holds_upload(record):
            logger.debug("discarding stale preview for %s", record.file.name)
            return
        record.data_url = data_url

    def remove_upload(self, index: int) -> None:
        self.session.remove_upload(index)

    def clear_uploads(self) -> None:
        self.session.clear_uploads()

    def select_context(self, preset: str) -> None:
        self.session.selected_context = preset
        self.session.custom_context = ""

    def set_custom_context(self, text: str) -> None:
        self.session.custom_context = text
        if text:
            self.session.selected_context = None

    @property
    def can_submit(self) -> bool:
        return bool(self.session.uploads) and bool(self.session.upload_context)

    @property
    def limit_reached(self) -> bool:
        return len(self.session.uploads) >= MAX_ITEMS

    @property
    def item_count_text(self) -> str:
        count = len(self.session.uploads)
        return f"{count} item selected" if count == 1 else f"{count} items selected"

    async def submit(self) -> Optional[StyleResult]:
        if not self.can_submit:
            return None
        self.session.analysis_source = SOURCE_UPLOAD
        uploads = list(self.session.uploads)
        return await self.orchestrator.run(
            [u.file for u in uploads],
            [u.data_url or "" for u in uploads],
            self.session.upload_context,
        )

    async def save_uploads_to_wardrobe(self) -> int:
        """Add every uploaded preview to the wardrobe, in upload order. Returns how many were saved."""
        if not self.store.ready:
            self.notifier.error("Not ready", "Wardrobe is still loading. Please wait a moment.")
            return 0
        uploads = [u for u in self.session.uploads if u.data_url]
        if not uploads:
            return 0
        saved = 0
        try:
            for i, upload in enumerate(uploads):
                name = upload.file.name or f"item-{int(time.time() * 1000)}-{i}.jpg"
                await self.store.add_wardrobe_item(upload.data_url, name)
                saved += 1
        except STORE_ERRORS as e:
            logger.exception("save to wardrobe failed after %s items", saved)
            self.notifier.error("Save failed", with_hint("Couldn't save to wardrobe.", e))
            return saved
        self.notifier.success(f"Saved {saved} item{'s' if saved != 1 else ''} to wardrobe!")
        return saved
