"""Ports (interfaces) used by the ingestion loop.

Ports define the minimal contracts for the browser session, extraction,
storage, notification and telemetry adapters so that the core can be reused
with different backends.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from core.models import ChatItem, CursorState, MotdEntry


class SessionHandle(Protocol):
    """A live, authenticated connection to the forum."""

    def is_closed(self) -> bool:
        ...


class SessionProvider(Protocol):
    """Creates and maintains forum sessions."""

    async def acquire(self) -> SessionHandle:
        ...

    async def keep_alive(self, session: SessionHandle) -> None:
        ...

    async def release(self, session: SessionHandle) -> None:
        ...


class Extractor(Protocol):
    """Reads new chat items and the current MOTD from a session."""

    async def fetch_new_items(self, session: SessionHandle, last_item_id: str) -> Sequence[ChatItem]:
        ...

    async def fetch_motd(self, session: SessionHandle) -> Optional[MotdEntry]:
        ...


class DocumentStore(Protocol):
    """Collection-oriented durable storage."""

    async def insert(self, collection: str, document: dict[str, Any]) -> int:
        ...

    async def find(
        self,
        collection: str,
        filter: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
        sort: Optional[tuple[str, int]] = None,
    ) -> list[dict[str, Any]]:
        ...

    async def count(self, collection: str, since: Optional[datetime] = None) -> int:
        ...


class NotifierPort(Protocol):
    """Notification operations required by the ingestion loop."""

    async def send_item(self, item: ChatItem) -> None:
        ...

    async def send_motd(self, motd: MotdEntry) -> None:
        ...


class CursorStore(Protocol):
    """Load/save for the persisted cursor."""

    def load(self) -> CursorState:
        ...

    def save(self, state: CursorState) -> None:
        ...


class StatsSink(Protocol):
    """Fire-and-forget telemetry callbacks."""

    def on_cycle_complete(self, timestamp: datetime) -> None:
        ...

    def on_item_processed(self) -> None:
        ...

    def on_error(self) -> None:
        ...
