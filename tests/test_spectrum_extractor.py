from __future__ import annotations

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from adapters.spectrum_extractor import SpectrumExtractor, build_motd, select_new_items
from adapters.spectrum_session import DEFAULT_SELECTORS, SpectrumConfig, SpectrumSessionProvider, translate_detached
from core.errors import SessionDetachedError, SessionUnavailableError


def _raw(item_id: str, body: str = "<p>hi</p>") -> dict:
    return {"id": item_id, "author": " dev ", "body": body, "time": "2024-01-01T00:00:00Z"}


def test_empty_cursor_returns_everything_with_an_id() -> None:
    items = select_new_items([_raw("1"), _raw(""), _raw("2")], "")
    assert [item.id for item in items] == ["1", "2"]
    assert items[0].author == "dev"


def test_items_after_visible_cursor() -> None:
    items = select_new_items([_raw("10"), _raw("11"), _raw("12")], "11")
    assert [item.id for item in items] == ["12"]


def test_numeric_cursor_scrolled_off_page() -> None:
    items = select_new_items([_raw("20"), _raw("21")], "19")
    assert [item.id for item in items] == ["20", "21"]
    assert select_new_items([_raw("20"), _raw("21")], "25") == []


def test_non_numeric_cursor_not_found_returns_all() -> None:
    items = select_new_items([_raw("a1"), _raw("b2")], "zz")
    assert [item.id for item in items] == ["a1", "b2"]


def test_build_motd() -> None:
    assert build_motd(None) is None
    assert build_motd({"title": "MOTD", "body": "   ", "time": ""}) is None
    motd = build_motd({"title": " MOTD ", "body": " Welcome ", "time": "today"})
    assert (motd.title, motd.body, motd.time) == ("MOTD", "Welcome", "today")


class FakePage:
    def __init__(self, result=None, error: Exception = None) -> None:
        self._result = result
        self._error = error
        self.calls: list[dict] = []

    async def evaluate(self, script: str, selectors: dict):
        self.calls.append(selectors)
        if self._error is not None:
            raise self._error
        return self._result


class FakeSession:
    def __init__(self, page: FakePage) -> None:
        self.page = page


def test_fetch_new_items_uses_selectors() -> None:
    page = FakePage(result=[_raw("1"), _raw("2")])
    extractor = SpectrumExtractor(DEFAULT_SELECTORS)

    items = asyncio.run(extractor.fetch_new_items(FakeSession(page), "1"))

    assert [item.id for item in items] == ["2"]
    assert page.calls[0]["message_item"] == DEFAULT_SELECTORS["message_item"]


def test_fetch_on_closed_page_raises_detached() -> None:
    page = FakePage(error=PlaywrightError("Target page, context or browser has been closed"))
    extractor = SpectrumExtractor(DEFAULT_SELECTORS)

    with pytest.raises(SessionDetachedError):
        asyncio.run(extractor.fetch_motd(FakeSession(page)))


def test_translate_detached_passes_other_errors() -> None:
    with pytest.raises(PlaywrightError):
        with translate_detached():
            raise PlaywrightError("Timeout 30000ms exceeded")


def test_acquire_without_running_playwright_is_unavailable(monkeypatch) -> None:
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    async def no_start() -> None:
        return None

    config = SpectrumConfig(
        login_url="https://example.test/login",
        lobby_url="https://example.test/lobby",
        login_attempts=2,
        retry_delay=1.5,
    )
    provider = SpectrumSessionProvider(config, "user@example.test", "secret", sleep=fake_sleep)
    monkeypatch.setattr(provider, "start", no_start)

    with pytest.raises(SessionUnavailableError, match="after 2 attempts"):
        asyncio.run(provider.acquire())

    assert sleeps == [1.5]
