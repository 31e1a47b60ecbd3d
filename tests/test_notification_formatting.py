from __future__ import annotations

import pytest

from adapters.notification_formatting import (
    format_item,
    format_item_plain,
    format_motd,
    format_motd_plain,
    telethon_parse_mode,
)
from core.config import NotificationConfig
from core.models import ChatItem, MotdEntry

LOBBY = "https://robertsspaceindustries.com/spectrum/community/SC/lobby/38230"


def _config(mode: str) -> NotificationConfig:
    return NotificationConfig(format=mode, item_link_template=LOBBY + "/message/{id}", motd_link=LOBBY)


def _item(body: str = "Patch notes are up") -> ChatItem:
    return ChatItem(id="123", author="Dev_Name", body=body, time="2024-01-01 10:00")


def test_plain_formats() -> None:
    assert format_item_plain(_item()) == "Dev_Name: Patch notes are up"
    motd = MotdEntry(title="MOTD", body="Welcome", time="")
    assert format_motd_plain(motd) == "MOTD: Welcome"


def test_markdown_item_links_message_and_escapes() -> None:
    text = format_item(_item("use *this* [now]"), _config("markdown"))

    assert f"({LOBBY}/message/123)" in text
    assert "Dev\\_Name" in text
    assert "\\*this\\*" in text
    assert "\\[now]" in text
    assert "__2024-01-01 10:00__" in text


def test_html_motd_escapes_body() -> None:
    motd = MotdEntry(title="Server <status>", body="Q&A at 18:00", time="")
    text = format_motd(motd, _config("html"))

    assert f'<a href="{LOBBY}">Server &lt;status&gt;</a>' in text
    assert "Q&amp;A at 18:00" in text
    assert "<i>" not in text


def test_unsupported_mode_raises() -> None:
    with pytest.raises(ValueError):
        format_item(_item(), _config("bbcode"))
    with pytest.raises(ValueError):
        telethon_parse_mode("bbcode")


def test_parse_mode_mapping() -> None:
    assert telethon_parse_mode("markdown") == "md"
    assert telethon_parse_mode("html") == "html"
