"""In-memory relay telemetry."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BotStats:
    """Advisory counters read by the command surface. Reset on restart."""

    started_at: datetime = field(default_factory=_utcnow)
    last_scrape_time: Optional[datetime] = None
    scrape_count: int = 0
    items_processed: int = 0
    error_count: int = 0

    def on_cycle_complete(self, timestamp: datetime) -> None:
        self.last_scrape_time = timestamp
        self.scrape_count += 1

    def on_item_processed(self) -> None:
        self.items_processed += 1

    def on_error(self) -> None:
        self.error_count += 1

    def uptime(self, now: Optional[datetime] = None) -> timedelta:
        return (now or _utcnow()) - self.started_at
