from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from adapters.telegram_notifier import TelegramNotifier
from core.config import NotificationConfig
from core.models import ChatItem, MotdEntry


class FakeMessage:
    def __init__(self, message_id: int, text: str, edit_error: Optional[Exception] = None) -> None:
        self.id = message_id
        self.text = text
        self.edits: list[tuple[str, dict]] = []
        self._edit_error = edit_error

    async def edit(self, text: str, **kwargs) -> None:
        if self._edit_error is not None:
            raise self._edit_error
        self.edits.append((text, kwargs))


class FakeClient:
    def __init__(self, edit_error: Optional[Exception] = None, send_error: Optional[Exception] = None) -> None:
        self.sent: list[tuple[object, FakeMessage, dict]] = []
        self._edit_error = edit_error
        self._send_error = send_error

    async def send_message(self, chat, text: str, **kwargs) -> FakeMessage:
        if self._send_error is not None:
            raise self._send_error
        message = FakeMessage(len(self.sent) + 1, text, self._edit_error)
        self.sent.append((chat, message, kwargs))
        return message


def _notifier(client: FakeClient) -> TelegramNotifier:
    config = NotificationConfig(
        format="markdown",
        item_link_template="https://example.test/message/{id}",
        motd_link="https://example.test/lobby",
    )
    return TelegramNotifier(client, items_chat="@items", motd_chat=-100200, config=config)


def test_item_is_sent_plain_then_edited() -> None:
    client = FakeClient()
    item = ChatItem(id="5", author="dev", body="hello", time="now")

    asyncio.run(_notifier(client).send_item(item))

    chat, message, kwargs = client.sent[0]
    assert chat == "@items"
    assert message.text == "dev: hello"
    assert kwargs["parse_mode"] is None
    rich, edit_kwargs = message.edits[0]
    assert "https://example.test/message/5" in rich
    assert edit_kwargs["parse_mode"] == "md"


def test_motd_goes_to_motd_chat() -> None:
    client = FakeClient()

    asyncio.run(_notifier(client).send_motd(MotdEntry(title="MOTD", body="B1", time="")))

    chat, message, _ = client.sent[0]
    assert chat == -100200
    assert message.text == "MOTD: B1"
    assert "https://example.test/lobby" in message.edits[0][0]


def test_reformat_failure_keeps_delivery() -> None:
    client = FakeClient(edit_error=ValueError("message not modified"))
    item = ChatItem(id="5", author="dev", body="hello", time="now")

    asyncio.run(_notifier(client).send_item(item))

    assert len(client.sent) == 1
    assert client.sent[0][1].edits == []


def test_delivery_failure_propagates() -> None:
    client = FakeClient(send_error=ConnectionError("offline"))
    item = ChatItem(id="5", author="dev", body="hello", time="now")

    with pytest.raises(ConnectionError):
        asyncio.run(_notifier(client).send_item(item))


def test_reformat_transport_error_keeps_delivery() -> None:
    client = FakeClient(edit_error=ConnectionError("connection reset during edit"))
    motd = MotdEntry(title="MOTD", body="B1", time="")

    asyncio.run(_notifier(client).send_motd(motd))

    assert len(client.sent) == 1
    assert client.sent[0][1].text == "MOTD: B1"
    assert client.sent[0][1].edits == []
