"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class ChatItem:
    """One chat post pulled from the lobby."""

    id: str
    author: str
    body: str
    time: str

    def to_document(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MotdEntry:
    """The lobby's message of the day. Identity is the body text only."""

    title: str
    body: str
    time: str

    def to_document(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CursorState:
    """Persisted read position: last item id and last seen MOTD body."""

    last_item_id: str = ""
    last_motd_body: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"last_item_id": self.last_item_id, "last_motd_body": self.last_motd_body}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CursorState":
        return cls(
            last_item_id=str(data.get("last_item_id") or ""),
            last_motd_body=str(data.get("last_motd_body") or ""),
        )
