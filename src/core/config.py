"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LoopConfig:
    """Cadence and time budget of the ingestion loop, in seconds."""

    cycle_interval: float = 30.0
    cycle_timeout: float = 25.0
    min_wait: float = 5.0


@dataclass(frozen=True)
class NotificationConfig:
    """Notification formatting settings consumed by notifier adapters."""

    format: str
    item_link_template: str
    motd_link: str
