import asyncio
import json
import logging
from typing import Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from alembic.util import CommandError

from app.client.types import DEFAULT_WARDROBE_FILE_NAME, StyleResult, WardrobeItem
from app.client.utils import now_iso, parse_iso
from app.core.cache import KeyValueStore
from app.core.config import settings
from app.core.errors import RecordNotFound, StoreNotInitialized, StoreOpenFailed
from app.store.db import sqlite_file, upgrade_schema
from app.store.models import HistoryRecord, WardrobeRecord

logger = logging.getLogger("app.store")

LEGACY_HISTORY_KEY = "fashionSenseHistory"

# Failures a caller at a UI boundary is expected to catch and report.
STORE_ERRORS = (SQLAlchemyError, StoreNotInitialized, OSError)


def _to_item(rec: WardrobeRecord) -> WardrobeItem:
    return WardrobeItem(
        id=rec.id,
        imageData=rec.image_data,
        fileName=rec.file_name,
        timestamp=rec.timestamp,
        order=rec.order,
    )


def _to_result(rec: HistoryRecord) -> StyleResult:
    return StyleResult.model_validate(
        {
            "timestamp": rec.timestamp,
            "context": rec.context,
            "attributes": rec.attributes,
            "recommendation": rec.recommendation,
            "selectedItems": rec.selected_items,
            "images": rec.images,
        }
    )


def sort_wardrobe(items: Iterable[WardrobeItem]) -> List[WardrobeItem]:
    """Explicitly ordered items first (ascending), then the rest newest first."""
    items = list(items)
    ordered = sorted((i for i in items if i.order is not None), key=lambda i: i.order)
    unordered = sorted((i for i in items if i.order is None), key=lambda i: parse_iso(i.timestamp), reverse=True)
    return ordered + unordered


class LocalStore:
    """Durable client-side storage: the wardrobe and the saved history.

    Every operation raises StoreNotInitialized until ``open()`` has succeeded.
    Writes to a collection are serialized through that collection's lock; a
    multi-record write holds the lock for its whole duration.
    """

    def __init__(self, url: Optional[str] = None) -> None:
        self.url = url or settings.LOCAL_STORE_URL
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker] = None
        self.wardrobe_lock = asyncio.Lock()
        self.history_lock = asyncio.Lock()

    @property
    def ready(self) -> bool:
        return self._sessions is not None

    async def open(self) -> None:
        """Open and migrate; on failure recreate the database once, then give up."""
        if self.ready:
            return
        try:
            await self._open_once()
            return
        except (SQLAlchemyError, CommandError, OSError) as e:
            logger.warning("store open failed url=%s err=%s; recreating", self.url, e)
            await self._discard()

        path = sqlite_file(self.url)
        try:
            if path is not None and path.exists():
                path.unlink()
            await self._open_once()
        except (SQLAlchemyError, CommandError, OSError) as e:
            await self._discard()
            logger.error("store open failed after recreate url=%s err=%s", self.url, e)
            raise StoreOpenFailed(cause=e) from e

    async def _open_once(self) -> None:
        engine = create_async_engine(self.url)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(upgrade_schema)
        except BaseException:
            await engine.dispose()
            raise
        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)
        logger.info("store ready url=%s", self.url)

    async def _discard(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessions = None

    async def close(self) -> None:
        await self._discard()

    def _session(self):
        if self._sessions is None:
            raise StoreNotInitialized()
        return self._sessions()

    # Wardrobe

    async def add_wardrobe_item(self, image_data: str, file_name: Optional[str] = None) -> int:
        async with self.wardrobe_lock:
            async with self._session() as session:
                rec = WardrobeRecord(
                    image_data=image_data,
                    file_name=file_name or DEFAULT_WARDROBE_FILE_NAME,
                    timestamp=now_iso(),
                )
                session.add(rec)
                await session.commit()
                return rec.id

    async def get_wardrobe_item(self, item_id: int) -> Optional[WardrobeItem]:
        async with self._session() as session:
            rec = await session.get(WardrobeRecord, item_id)
            return _to_item(rec) if rec is not None else None

    async def get_all_wardrobe_items(self) -> List[WardrobeItem]:
        async with self._session() as session:
            rows = (await session.execute(select(WardrobeRecord))).scalars().all()
        return sort_wardrobe(_to_item(r) for r in rows)

    async def put_wardrobe_item(self, item: WardrobeItem) -> int:
        async with self.wardrobe_lock:
            async with self._session() as session:
                rec = await session.merge(
                    WardrobeRecord(
                        id=item.id,
                        image_data=item.image_data,
                        file_name=item.file_name,
                        timestamp=item.timestamp,
                        order=item.order,
                    )
                )
                await session.commit()
                return rec.id

    async def delete_wardrobe_item(self, item_id: int) -> None:
        async with self.wardrobe_lock:
            await self._delete_wardrobe_item(item_id)

    async def _delete_wardrobe_item(self, item_id: int) -> None:
        async with self._session() as session:
            await session.execute(delete(WardrobeRecord).where(WardrobeRecord.id == item_id))
            await session.commit()

    async def delete_wardrobe_items(self, item_ids: Iterable[int]) -> None:
        """Delete one record at a time; a failure leaves the earlier deletions in place."""
        async with self.wardrobe_lock:
            for item_id in list(item_ids):
                await self._delete_wardrobe_item(item_id)

    async def clear_wardrobe(self) -> None:
        async with self.wardrobe_lock:
            async with self._session() as session:
                await session.execute(delete(WardrobeRecord))
                await session.commit()

    async def save_wardrobe_order(self, ordered_ids: Iterable[int]) -> None:
        """Write ``order = position`` for each id, read-then-write per record. Unknown ids are skipped."""
        async with self.wardrobe_lock:
            for position, item_id in enumerate(list(ordered_ids)):
                async with self._session() as session:
                    rec = await session.get(WardrobeRecord, item_id)
                    if rec is None:
                        continue
                    rec.order = position
                    await session.commit()

    # History

    async def put_history(self, result: StyleResult) -> None:
        async with self.history_lock:
            await self._put_history(result)

    async def _put_history(self, result: StyleResult) -> None:
        record = result.to_record()
        async with self._session() as session:
            await session.merge(
                HistoryRecord(
                    timestamp=result.timestamp,
                    context=result.context,
                    attributes=record.get("attributes", []),
                    recommendation=result.recommendation,
                    selected_items=list(result.selected_items),
                    images=list(result.images),
                )
            )
            await session.commit()

    async def get_history(self, timestamp: str) -> Optional[StyleResult]:
        async with self._session() as session:
            rec = await session.get(HistoryRecord, timestamp)
            return _to_result(rec) if rec is not None else None

    async def require_history(self, timestamp: str) -> StyleResult:
        entry = await self.get_history(timestamp)
        if entry is None:
            raise RecordNotFound("history", timestamp)
        return entry

    async def get_all_history(self) -> List[StyleResult]:
        async with self._session() as session:
            rows = (await session.execute(select(HistoryRecord))).scalars().all()
        entries = [_to_result(r) for r in rows]
        entries.sort(key=lambda e: parse_iso(e.timestamp), reverse=True)
        return entries

    async def delete_history(self, timestamp: str) -> None:
        async with self.history_lock:
            async with self._session() as session:
                await session.execute(delete(HistoryRecord).where(HistoryRecord.timestamp == timestamp))
                await session.commit()

    async def clear_history(self) -> None:
        async with self.history_lock:
            async with self._session() as session:
                await session.execute(delete(HistoryRecord))
                await session.commit()

    async def migrate_legacy_history(self, kv: KeyValueStore) -> int:
        """Move the flat-storage history blob into the history collection.

        The blob is removed only after every entry was written. A failure
        propagates and leaves the blob for the next startup; re-running is
        harmless because entries are upserted by timestamp.
        """
        if not self.ready:
            raise StoreNotInitialized()
        raw = await kv.get(LEGACY_HISTORY_KEY)
        if not raw:
            return 0
        entries = json.loads(raw)
        if not isinstance(entries, list):
            logger.warning("legacy history is not a list; leaving it in place")
            return 0
        logger.info("migrating legacy history count=%s", len(entries))
        async with self.history_lock:
            for entry in entries:
                await self._put_history(StyleResult.model_validate(entry))
        await kv.remove(LEGACY_HISTORY_KEY)
        return len(entries)
