"""Cache-and-sync policy between the local cache and the backend.

Reads are read-through with stale return: a cached copy is returned at once
while a detached refresh revalidates it; without a cache the read waits on
the backend and falls back to built-in defaults. Reads never raise.

Writes happen in two phases. Phase 1 (``_apply_local``) writes the tentative
value to the cache and publishes it. Phase 2 (``_commit_remote``) awaits the
backend and stores its answer as the new cached value. Settings saves and XP
awards swallow phase-2 failures and keep the optimistic value; every other
mutation restores the pre-write snapshot and re-raises.

Concurrent writers sharing a device id are not coordinated: last write wins.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from client.cache import LIBRARY, SESSIONS, SETTINGS, STATS, LocalCache
from client.remote import RemoteDataService, RemoteError
from models.library import LibraryItem, LibraryItemCreate
from models.session import ChatMessage, ChatSession, cap_messages, session_preview, session_title
from models.settings import Settings, default_settings
from models.stats import Stats, default_stats
from models.storage import StorageBreakdown
from utils.ids import new_id, now_ms

logger = logging.getLogger(__name__)

# Failures that a sync boundary absorbs: transport/status errors and payloads
# that do not match the models.
SYNC_ERRORS = (RemoteError, ValidationError, KeyError, TypeError)

INLINE_IMAGE_PREFIX = "data:image"
PENDING_PREFIX = "pending-"

Listener = Callable[[Any], None]


class ChangeFeed:
    """Publish/subscribe channel keyed by entity kind."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, kind: str, listener: Listener) -> Callable[[], None]:
        self._listeners[kind].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[kind]:
                self._listeners[kind].remove(listener)

        return unsubscribe

    def publish(self, kind: str, value: Any) -> None:
        for listener in list(self._listeners[kind]):
            try:
                listener(value)
            except Exception:
                logger.exception("Listener for %s failed", kind)


@dataclass(frozen=True)
class EntityKind:
    key: str
    default: Callable[[], Any]
    load: Callable[[Any], Any]
    dump: Callable[[Any], Any]


def _load_list(model):
    return lambda raw: [model.model_validate(entry) for entry in raw]


def _dump_list(values) -> List[dict]:
    return [value.model_dump(mode="json", exclude_none=True) for value in values]


KINDS: Dict[str, EntityKind] = {
    SETTINGS: EntityKind(SETTINGS, default_settings, Settings.model_validate, lambda v: v.model_dump(mode="json")),
    STATS: EntityKind(STATS, default_stats, Stats.model_validate, lambda v: v.model_dump(mode="json")),
    LIBRARY: EntityKind(LIBRARY, list, _load_list(LibraryItem), _dump_list),
    SESSIONS: EntityKind(SESSIONS, list, _load_list(ChatSession), _dump_list),
}


@dataclass(frozen=True)
class Snapshot:
    value: Any
    had_cache: bool


class SyncedStore:
    def __init__(self, remote: RemoteDataService, cache: LocalCache, feed: Optional[ChangeFeed] = None):
        self.remote = remote
        self.cache = cache
        self.feed = feed or ChangeFeed()
        self._refreshes: set = set()

    def subscribe(self, kind: str, listener: Listener) -> Callable[[], None]:
        return self.feed.subscribe(kind, listener)

    # Cache access

    def _snapshot(self, key: str) -> Snapshot:
        kind = KINDS[key]
        read = self.cache.read(key)
        if read.has_cache:
            try:
                return Snapshot(kind.load(read.value), True)
            except SYNC_ERRORS:
                logger.debug("Cached %s no longer matches its model; treating as a miss", key)
        return Snapshot(kind.default(), False)

    def _apply_local(self, key: str, value: Any) -> None:
        """Phase 1: write the value to the cache and tell subscribers."""
        self.cache.write(key, KINDS[key].dump(value))
        self.feed.publish(key, value)

    def _restore(self, key: str, snapshot: Snapshot) -> None:
        if snapshot.had_cache:
            self._apply_local(key, snapshot.value)
        else:
            self.cache.remove(key)
            self.feed.publish(key, snapshot.value)

    async def _commit_remote(
        self,
        key: str,
        call: Awaitable[Any],
        resolve: Optional[Callable[[Any], Any]] = None,
        rollback: Optional[Snapshot] = None,
        swallow: bool = False,
    ) -> Any:
        """Phase 2: await the backend; its answer becomes the cached value.

        With ``swallow`` a failure is logged and ``None`` returned, leaving
        the optimistic value in place. Otherwise ``rollback`` (when given) is
        restored and the error propagates.
        """
        try:
            result = await call
        except SYNC_ERRORS as exc:
            if swallow:
                logger.warning("Could not sync %s, keeping local copy: %s", key, exc)
                return None
            if rollback is not None:
                self._restore(key, rollback)
            raise
        self._apply_local(key, resolve(result) if resolve else result)
        return result

    async def _reload_or(self, key: str, fetch: Callable[[], Awaitable[Any]], fallback: Any) -> Any:
        """Re-list after a committed write; keep ``fallback`` if the listing fails."""
        try:
            return await fetch()
        except SYNC_ERRORS as exc:
            logger.warning("Reloading %s after a write failed, keeping local copy: %s", key, exc)
            return fallback

    # Reads

    async def _get(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        snapshot = self._snapshot(key)
        if snapshot.had_cache:
            self._schedule_refresh(key, fetch)
            return snapshot.value
        try:
            fresh = await fetch()
        except SYNC_ERRORS as exc:
            logger.info("Fetching %s failed, using defaults: %s", key, exc)
            return KINDS[key].default()
        self._apply_local(key, fresh)
        return fresh

    def _schedule_refresh(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> None:
        task = asyncio.get_running_loop().create_task(self._refresh(key, fetch))
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)

    async def _refresh(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> None:
        try:
            fresh = await fetch()
        except SYNC_ERRORS as exc:
            logger.debug("Background refresh of %s failed: %s", key, exc)
            return
        self._apply_local(key, fresh)

    async def wait_idle(self) -> None:
        """Wait for outstanding background refreshes."""
        while self._refreshes:
            await asyncio.gather(*list(self._refreshes), return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._refreshes):
            task.cancel()
        await asyncio.gather(*list(self._refreshes), return_exceptions=True)

    async def get_settings(self) -> Settings:
        return await self._get(SETTINGS, self.remote.get_settings)

    async def get_stats(self) -> Stats:
        return await self._get(STATS, self.remote.get_stats)

    async def get_library(self) -> List[LibraryItem]:
        return await self._get(LIBRARY, self.remote.list_library)

    async def get_sessions(self) -> List[ChatSession]:
        return await self._get(SESSIONS, self.remote.list_sessions)

    async def get_storage_breakdown(self) -> StorageBreakdown:
        try:
            return await self.remote.storage_breakdown()
        except SYNC_ERRORS as exc:
            logger.info("Storage breakdown unavailable: %s", exc)
            return StorageBreakdown()

    # Settings and stats: optimistic, failures swallowed

    async def save_settings(self, settings: Union[Settings, Dict[str, Any]]) -> Settings:
        if isinstance(settings, Settings):
            merged = settings
        else:
            merged = Settings.merged(settings, base=self._snapshot(SETTINGS).value)
        self._apply_local(SETTINGS, merged)
        saved = await self._commit_remote(SETTINGS, self.remote.save_settings(merged), swallow=True)
        return saved or merged

    async def add_xp(self, amount: int) -> Stats:
        current = self._snapshot(STATS).value
        self._apply_local(STATS, current.model_copy(update={"xp": (current.xp or 0) + amount}))
        stats = await self._commit_remote(STATS, self.remote.add_xp(amount), swallow=True)
        return stats or self._snapshot(STATS).value

    def _echo_items_saved(self, count: int) -> None:
        """Mirror the backend's itemsSaved derivation onto the cached stats."""
        snapshot = self._snapshot(STATS)
        if not snapshot.had_cache:
            return
        self._apply_local(STATS, snapshot.value.model_copy(update={"itemsSaved": count}))

    # Library: awaited, authoritative

    async def save_to_library(self, item: Union[LibraryItemCreate, Dict[str, Any]]) -> LibraryItem:
        draft = item if isinstance(item, LibraryItemCreate) else LibraryItemCreate.model_validate(item)
        before = self._snapshot(LIBRARY)
        placeholder = LibraryItem(id=PENDING_PREFIX + new_id(), date=now_ms(), **draft.model_dump())
        self._apply_local(LIBRARY, [placeholder] + before.value)

        async def create_and_list():
            created = await self.remote.create_library_item(draft)
            adopted = [created] + before.value
            if before.had_cache:
                return created, adopted
            # Nothing cached: the server may hold items this device has not seen yet
            return created, await self._reload_or(LIBRARY, self.remote.list_library, adopted)

        created, items = await self._commit_remote(
            LIBRARY, create_and_list(), resolve=lambda result: result[1], rollback=before
        )
        self._echo_items_saved(len(items))
        return created

    async def delete_from_library(self, item_id: str) -> List[LibraryItem]:
        before = self._snapshot(LIBRARY)
        self._apply_local(LIBRARY, [entry for entry in before.value if entry.id != item_id])
        items = await self._commit_remote(LIBRARY, self.remote.delete_library_item(item_id), rollback=before)
        self._echo_items_saved(len(items))
        return items

    async def optimize_images(self) -> int:
        """Strip inline thumbnails; returns how many items were changed."""
        before = self._snapshot(LIBRARY)
        self._apply_local(
            LIBRARY,
            [
                entry.model_copy(update={"thumbnail": None})
                if (entry.thumbnail or "").startswith(INLINE_IMAGE_PREFIX)
                else entry
                for entry in before.value
            ],
        )

        async def optimize_and_reload():
            optimized = await self.remote.optimize_images()
            return optimized, await self._reload_or(LIBRARY, self.remote.list_library, self._snapshot(LIBRARY).value)

        optimized, items = await self._commit_remote(
            LIBRARY, optimize_and_reload(), resolve=lambda result: result[1], rollback=before
        )
        self._echo_items_saved(len(items))
        return optimized

    # Sessions: awaited, authoritative

    async def create_session(self, first_message_text: str) -> ChatSession:
        before = self._snapshot(SESSIONS)
        title = session_title(first_message_text)
        placeholder = ChatSession(id=PENDING_PREFIX + new_id(), title=title, preview=title, updatedAt=now_ms())
        self._apply_local(SESSIONS, [placeholder] + before.value)

        async def create_and_list():
            created = await self.remote.create_session(first_message_text)
            adopted = [created] + before.value
            if before.had_cache:
                return created, adopted
            return created, await self._reload_or(SESSIONS, self.remote.list_sessions, adopted)

        created, _ = await self._commit_remote(
            SESSIONS, create_and_list(), resolve=lambda result: result[1], rollback=before
        )
        return created

    async def update_session(self, session_id: str, messages: List[ChatMessage]) -> List[ChatSession]:
        before = self._snapshot(SESSIONS)
        kept = cap_messages(messages)
        tentative = [
            session.model_copy(update={"messages": kept, "preview": session_preview(kept), "updatedAt": now_ms()})
            if session.id == session_id
            else session
            for session in before.value
        ]
        tentative.sort(key=lambda session: session.updatedAt, reverse=True)
        self._apply_local(SESSIONS, tentative)

        async def update_and_reload():
            await self.remote.update_session(session_id, messages)
            return await self._reload_or(SESSIONS, self.remote.list_sessions, tentative)

        return await self._commit_remote(SESSIONS, update_and_reload(), rollback=before)

    async def delete_session(self, session_id: str) -> List[ChatSession]:
        before = self._snapshot(SESSIONS)
        self._apply_local(SESSIONS, [session for session in before.value if session.id != session_id])
        return await self._commit_remote(SESSIONS, self.remote.delete_session(session_id), rollback=before)

    async def clear_sessions(self) -> None:
        before = self._snapshot(SESSIONS)
        self._apply_local(SESSIONS, [])
        await self._commit_remote(SESSIONS, self.remote.clear_sessions(), resolve=lambda _: [], rollback=before)

    # Whole-device operations

    async def clear_all_data(self) -> None:
        """Wipe the device on the backend, then drop every cached copy."""
        before = {key: self._snapshot(key) for key in KINDS}
        for key, kind in KINDS.items():
            self._apply_local(key, kind.default())
        try:
            await self.remote.clear_all()
        except SYNC_ERRORS:
            for key, snapshot in before.items():
                self._restore(key, snapshot)
            raise
        self.cache.clear()

    async def export_data(self) -> Dict[str, Any]:
        stats, library, sessions, settings = await asyncio.gather(
            self.get_stats(), self.get_library(), self.get_sessions(), self.get_settings()
        )
        return {
            "exportDate": datetime.now(timezone.utc).isoformat(),
            "stats": KINDS[STATS].dump(stats),
            "library": KINDS[LIBRARY].dump(library),
            "sessions": KINDS[SESSIONS].dump(sessions),
            "settings": KINDS[SETTINGS].dump(settings),
        }

    async def write_export(self, path: Path) -> Path:
        """Write ``export_data()`` as indented JSON; I/O errors propagate."""
        data = await self.export_data()
        path = Path(path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        return path
