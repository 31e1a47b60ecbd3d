"""Ingestion loop for lobby chat items and the message of the day.

Each cycle runs in a strict order:
1) Recreate the session if its page is closed
2) Keep the session alive
3) Fetch new items and the MOTD (each source fails independently)
4) Per item: normalize, advance the cursor, persist, notify
5) Persist + notify the MOTD when its body changed
6) Flush the cursor if anything was processed
7) Report the cycle to the stats sink

The whole cycle is raced against a wall-clock budget. Cycles never overlap,
so the in-memory cursor and counters have a single writer.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from core.config import LoopConfig
from core.errors import (
    CursorLoadError,
    CycleTimeoutError,
    SessionUnavailableError,
    is_session_transient,
)
from core.models import ChatItem, CursorState, MotdEntry
from core.ports import (
    CursorStore,
    DocumentStore,
    Extractor,
    NotifierPort,
    SessionHandle,
    SessionProvider,
    StatsSink,
)
from core.text import html_to_text

LOGGER = logging.getLogger(__name__)

ITEMS_COLLECTION = "messages"
MOTD_COLLECTION = "motd"


def compute_wait(duration: float, config: LoopConfig) -> float:
    """Return the pause before the next cycle, never below the floor."""

    return max(config.min_wait, config.cycle_interval - duration)


class CycleScope:
    """Cooperative deadline shared between the loop and one cycle body.

    The loop flips ``expired`` when the budget runs out; the body checks it
    between steps and stops. In-flight calls are never interrupted.
    """

    def __init__(self) -> None:
        self.expired = False

    def checkpoint(self, step: str) -> None:
        if self.expired:
            raise CycleTimeoutError(f"Cycle deadline passed before {step}")


def _log_orphaned_cycle(task: "asyncio.Task[None]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is None:
        LOGGER.info("Timed-out cycle finished in the background")
    else:
        LOGGER.warning("Timed-out cycle stopped: %s", exc)


class IngestionLoop:
    """Drives polling cycles against the forum session."""

    def __init__(
        self,
        sessions: SessionProvider,
        extractor: Extractor,
        store: DocumentStore,
        notifier: NotifierPort,
        cursor_store: CursorStore,
        stats: StatsSink,
        config: Optional[LoopConfig] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._sessions = sessions
        self._extractor = extractor
        self._store = store
        self._notifier = notifier
        self._cursor_store = cursor_store
        self._stats = stats
        self._config = config or LoopConfig()
        self._clock = clock
        self._sleep = sleep
        self._session: Optional[SessionHandle] = None
        self._session_lock: Optional[asyncio.Lock] = None
        self._cursor = CursorState()

    @property
    def cursor(self) -> CursorState:
        return self._cursor

    @property
    def session(self) -> Optional[SessionHandle]:
        return self._session

    async def run(self, stop: Optional[asyncio.Event] = None, max_cycles: Optional[int] = None) -> None:
        """Acquire a session, then run cycles until ``stop`` is set.

        ``max_cycles`` bounds the loop for tests and one-shot runs; the pause
        after the last bounded cycle is skipped.
        """

        self._cursor = self._load_cursor()
        self._session_lock = asyncio.Lock()
        try:
            self._session = await self._sessions.acquire()
        except SessionUnavailableError:
            LOGGER.error("Could not acquire a forum session, ingestion not started")
            raise

        LOGGER.info(
            "Ingestion started (last_item_id=%r, motd known=%s)",
            self._cursor.last_item_id,
            bool(self._cursor.last_motd_body),
        )

        cycles = 0
        while stop is None or not stop.is_set():
            started = self._clock()
            try:
                await self._run_bounded_cycle()
            except Exception as exc:
                await self._handle_cycle_error(exc)

            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break

            wait = compute_wait(self._clock() - started, self._config)
            LOGGER.info("Waiting %.1fs before next cycle", wait)
            await self._pause(wait, stop)

        LOGGER.info("Ingestion stopped after %s cycles", cycles)

    def _load_cursor(self) -> CursorState:
        try:
            return self._cursor_store.load()
        except CursorLoadError:
            LOGGER.exception("Cursor could not be loaded, starting from an empty cursor")
            return CursorState()

    async def _pause(self, seconds: float, stop: Optional[asyncio.Event]) -> None:
        if stop is None:
            await self._sleep(seconds)
            return
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop.wait(), timeout=seconds)

    async def _run_bounded_cycle(self) -> None:
        scope = CycleScope()
        task = asyncio.ensure_future(self._run_cycle(scope))
        try:
            done, _ = await asyncio.wait({task}, timeout=self._config.cycle_timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task in done:
            task.result()
            return

        scope.expired = True
        task.add_done_callback(_log_orphaned_cycle)
        raise CycleTimeoutError(f"Scraping cycle timeout after {self._config.cycle_timeout:g}s")

    async def _run_cycle(self, scope: CycleScope) -> None:
        if self._session is None or self._session.is_closed():
            LOGGER.warning("Session is closed, recreating before cycle")
            await self._replace_session(scope)

        scope.checkpoint("keep-alive")
        await self._sessions.keep_alive(self._session)

        scope.checkpoint("extraction")
        items = await self._fetch_items()
        scope.checkpoint("motd extraction")
        motd = await self._fetch_motd()

        processed = 0
        for item in items:
            scope.checkpoint("item processing")
            if await self._process_item(item, scope):
                processed += 1

        motd_changed = False
        if motd is not None and motd.body != self._cursor.last_motd_body:
            scope.checkpoint("motd processing")
            motd_changed = await self._process_motd(motd, scope)

        scope.checkpoint("cursor flush")
        data_changed = processed > 0 or motd_changed
        if data_changed:
            self._flush_cursor()

        self._stats.on_cycle_complete(datetime.now(timezone.utc))
        LOGGER.info(
            "Cycle complete: fetched=%s, processed=%s, motd_changed=%s, cursor=%r",
            len(items),
            processed,
            motd_changed,
            self._cursor.last_item_id,
        )

    async def _fetch_items(self) -> list[ChatItem]:
        try:
            return list(await self._extractor.fetch_new_items(self._session, self._cursor.last_item_id))
        except Exception as exc:
            LOGGER.error("Error getting items: %s", exc)
            self._stats.on_error()
            return []

    async def _fetch_motd(self) -> Optional[MotdEntry]:
        try:
            return await self._extractor.fetch_motd(self._session)
        except Exception as exc:
            LOGGER.error("Error getting MOTD: %s", exc)
            self._stats.on_error()
            return None

    async def _process_item(self, item: ChatItem, scope: CycleScope) -> bool:
        if item.id == self._cursor.last_item_id:
            LOGGER.debug("Skipping item %s, already at cursor", item.id)
            return False

        item = replace(item, body=html_to_text(item.body))
        LOGGER.info("New item %s from %s", item.id, item.author)

        # The cursor moves before persistence and is not rolled back on
        # failure: a failed item is skipped for good once a flush happens.
        self._cursor.last_item_id = item.id
        try:
            await self._store.insert(ITEMS_COLLECTION, item.to_document())
            scope.checkpoint("item notification")
            await self._notifier.send_item(item)
        except CycleTimeoutError:
            raise
        except Exception:
            LOGGER.exception("Error saving/sending item %s", item.id)
            self._stats.on_error()
            return False

        scope.checkpoint("item bookkeeping")
        self._stats.on_item_processed()
        return True

    async def _process_motd(self, motd: MotdEntry, scope: CycleScope) -> bool:
        LOGGER.info("New MOTD: %s", motd.title)
        try:
            await self._store.insert(MOTD_COLLECTION, motd.to_document())
            scope.checkpoint("motd notification")
            await self._notifier.send_motd(motd)
        except CycleTimeoutError:
            raise
        except Exception:
            LOGGER.exception("Error saving/sending MOTD")
            self._stats.on_error()
            return False

        scope.checkpoint("motd cursor update")
        self._cursor.last_motd_body = motd.body
        return True

    def _flush_cursor(self) -> None:
        try:
            self._cursor_store.save(self._cursor)
        except Exception:
            # Retried implicitly on the next cycle that changes data.
            LOGGER.exception("Error saving cursor")
            self._stats.on_error()

    async def _handle_cycle_error(self, exc: Exception) -> None:
        LOGGER.error("Scraping error: %s", exc)
        self._stats.on_error()
        if not is_session_transient(exc):
            return

        LOGGER.warning("Restarting session due to %s", type(exc).__name__)
        try:
            await self._replace_session()
        except Exception:
            LOGGER.exception("Error restarting session")
        else:
            LOGGER.info("Session restarted successfully")

    async def _replace_session(self, scope: Optional[CycleScope] = None) -> None:
        """Release the current session and install a fresh one.

        Acquisitions are serialized. A timed-out cycle body never installs
        the handle it obtained; it releases it instead.
        """

        if self._session_lock is None:
            self._session_lock = asyncio.Lock()
        async with self._session_lock:
            if scope is not None:
                scope.checkpoint("session recreation")
            old, self._session = self._session, None
            if old is not None:
                await self._release_quietly(old)
            session = await self._sessions.acquire()
            if scope is not None and scope.expired:
                await self._release_quietly(session)
                raise CycleTimeoutError("Cycle deadline passed during session recreation")
            self._session = session

    async def _release_quietly(self, session: SessionHandle) -> None:
        try:
            await self._sessions.release(session)
        except Exception:
            LOGGER.exception("Error releasing session")
