"""Shared notification formatting helpers.

Keeping formatting here prevents drift between the item and MOTD channels
and keeps messages consistent regardless of the parse mode.
"""

from __future__ import annotations

import html

from core.config import NotificationConfig
from core.models import ChatItem, MotdEntry


def format_item_plain(item: ChatItem) -> str:
    """Unformatted first delivery for a chat item."""

    return f"{item.author}: {item.body}"


def format_motd_plain(motd: MotdEntry) -> str:
    """Unformatted first delivery for the MOTD."""

    return f"{motd.title}: {motd.body}"


def item_link(item: ChatItem, template: str) -> str:
    return template.format(id=item.id)


def escape_md(value: str) -> str:
    """Escape the characters Telethon markdown treats as entity delimiters."""

    for ch in r"*[`_":
        value = value.replace(ch, f"\\{ch}")
    return value


def _format_markdown(heading: str, link: str, when: str, body: str) -> str:
    lines = [f"**[{escape_md(heading)}]({link})**"]
    if when:
        lines.append(f"__{escape_md(when)}__")
    lines.extend(["", f"**{escape_md(body)}**"])
    return "\n".join(lines)


def _format_html(heading: str, link: str, when: str, body: str) -> str:
    safe_link = html.escape(link, quote=True)
    parts = [f"<b><a href=\"{safe_link}\">{html.escape(heading)}</a></b>"]
    if when:
        parts.append(f"<i>{html.escape(when)}</i>")
    parts.extend(["", f"<blockquote><b>{html.escape(body)}</b></blockquote>"])
    return "\n".join(parts)


def _render(mode: str, heading: str, link: str, when: str, body: str) -> str:
    if mode == "markdown":
        return _format_markdown(heading, link, when, body)
    if mode == "html":
        return _format_html(heading, link, when, body)
    raise ValueError(f"Unsupported notification format: {mode}")


def format_item(item: ChatItem, config: NotificationConfig) -> str:
    """Return the rich edit applied after a chat item was delivered."""

    link = item_link(item, config.item_link_template)
    return _render(config.format, item.author, link, item.time, item.body)


def format_motd(motd: MotdEntry, config: NotificationConfig) -> str:
    """Return the rich edit applied after the MOTD was delivered."""

    return _render(config.format, motd.title, config.motd_link, motd.time, motd.body)


def telethon_parse_mode(mode: str) -> str:
    """Map a configured format onto Telethon's parse_mode names."""

    if mode == "markdown":
        return "md"
    if mode == "html":
        return "html"
    raise ValueError(f"Unsupported notification format: {mode}")
