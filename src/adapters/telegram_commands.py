"""Read-only chat commands answered over Telegram.

CommandHandler builds the replies from the document store and the in-memory
stats; register_commands wires it into a Telethon client.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from telethon import events

from adapters.notification_formatting import escape_md
from core.orchestrator import ITEMS_COLLECTION, MOTD_COLLECTION
from core.ports import DocumentStore
from core.stats import BotStats

LOGGER = logging.getLogger(__name__)

COMMAND_PATTERN = r"^/(\w+)(?:@\w+)?(?:\s+(.*))?$"

RECENT_DEFAULT = 5
RECENT_MAX = 10
BODY_PREVIEW_CHARS = 100

HELP_TEXT = "\n".join(
    [
        "**Spectrum Relay - Help**",
        "",
        "**Available Commands:**",
        "/ping - Test bot responsiveness",
        "/status - Check relay status and activity",
        f"/recent [count] - View recent messages (1-{RECENT_MAX})",
        "/stats - Show database statistics",
        "/motd - Show the current Message of the Day",
        "/help - Show this help message",
        "",
        "The relay checks the lobby every 30 seconds and posts new messages to the configured chat.",
    ]
)


def format_duration(delta: timedelta) -> str:
    total = max(0, int(delta.total_seconds()))
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}h {minutes}m {seconds}s"


def parse_count(argument: Optional[str]) -> int:
    """Parse the /recent count, clamped to 1..RECENT_MAX."""

    if not argument or not argument.strip():
        return RECENT_DEFAULT
    try:
        value = int(argument.split()[0])
    except ValueError:
        return RECENT_DEFAULT
    return min(max(value, 1), RECENT_MAX)


def _clip(value: str, limit: int = BODY_PREVIEW_CHARS) -> str:
    if len(value) <= limit:
        return value
    return value[:limit] + "..."


class CommandHandler:
    """Builds command replies. Never writes to the store."""

    def __init__(
        self,
        store: DocumentStore,
        stats: BotStats,
        is_connected: Callable[[], bool] = lambda: True,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._store = store
        self._stats = stats
        self._is_connected = is_connected
        self._now = now

    async def dispatch(self, name: str, argument: Optional[str] = None, latency_ms: Optional[int] = None) -> str:
        name = name.lower()
        if name == "ping":
            return self.ping(latency_ms)
        if name == "status":
            return self.status()
        if name == "recent":
            return await self.recent(parse_count(argument))
        if name == "stats":
            return await self.statistics()
        if name == "motd":
            return await self.motd()
        if name in {"help", "start"}:
            return HELP_TEXT
        return "Unknown command."

    def ping(self, latency_ms: Optional[int]) -> str:
        if latency_ms is None:
            return "Pong!"
        return f"Pong! Latency: {latency_ms}ms"

    def status(self) -> str:
        stats = self._stats
        last_scrape = stats.last_scrape_time.strftime("%Y-%m-%d %H:%M:%S UTC") if stats.last_scrape_time else "Never"
        connection = "Connected" if self._is_connected() else "Disconnected"
        lines = [
            "**Spectrum Relay Status**",
            "",
            f"**Uptime:** {format_duration(stats.uptime(self._now()))}",
            f"**Last Scrape:** {last_scrape}",
            f"**Total Scrapes:** {stats.scrape_count}",
            f"**Messages Processed:** {stats.items_processed}",
            f"**Errors:** {stats.error_count}",
            f"**Telegram:** {connection}",
        ]
        return "\n".join(lines)

    async def recent(self, count: int) -> str:
        documents = await self._store.find(ITEMS_COLLECTION, limit=count, sort=("_id", -1))
        if not documents:
            return "No messages found in database."

        lines = [f"**Recent Lobby Messages** (Last {count})", ""]
        for document in reversed(documents):
            author = escape_md(str(document.get("author", "?")))
            lines.append(f"**{author}:** {escape_md(_clip(str(document.get('body', ''))))}")
            lines.append(f"__{escape_md(str(document.get('time') or 'Unknown time'))}__")
            lines.append("")
        return "\n".join(lines).rstrip()

    async def statistics(self) -> str:
        now = self._now()
        total_items = await self._store.count(ITEMS_COLLECTION)
        total_motd = await self._store.count(MOTD_COLLECTION)
        last_day = await self._store.count(ITEMS_COLLECTION, since=now - timedelta(hours=24))

        lines = [
            "**Lobby Statistics**",
            "",
            f"**Total Messages:** {total_items}",
            f"**Total MOTD Updates:** {total_motd}",
            f"**Messages (Last 24h):** {last_day}",
            f"**Scrape Cycles:** {self._stats.scrape_count}",
        ]
        if self._stats.last_scrape_time:
            minutes = int((now - self._stats.last_scrape_time).total_seconds() // 60)
            lines.append(f"**Minutes Since Last Scrape:** {minutes}")
        return "\n".join(lines)

    async def motd(self) -> str:
        documents = await self._store.find(MOTD_COLLECTION, limit=1, sort=("_id", -1))
        if not documents:
            return "No Message of the Day found."
        current = documents[0]
        return "\n".join(
            [
                "**Current Message of the Day**",
                "",
                f"**{escape_md(str(current.get('title', '')))}**",
                f"__{escape_md(str(current.get('time') or 'Unknown time'))}__",
                "",
                escape_md(str(current.get("body", ""))),
            ]
        )


def register_commands(client, handler: CommandHandler) -> None:
    """Answer slash commands sent to the client."""

    @client.on(events.NewMessage(incoming=True, pattern=COMMAND_PATTERN))
    async def on_command(event) -> None:
        name = event.pattern_match.group(1)
        argument = event.pattern_match.group(2)
        latency_ms = None
        if event.message.date is not None:
            delta = datetime.now(timezone.utc) - event.message.date
            latency_ms = max(0, int(delta.total_seconds() * 1000))
        try:
            reply = await handler.dispatch(name, argument, latency_ms)
        except Exception:
            LOGGER.exception("Error handling command /%s", name)
            reply = "An error occurred while processing the command."
        await event.reply(reply, parse_mode="md")
