"""Playwright session provider for the RSI Spectrum lobby.

Keeps Playwright-specific details (browser launch, sign-in, navigation) out
of the ingestion loop. Errors that mean the page is gone are translated into
SessionDetachedError so the loop can recreate the session.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterator, Optional

from playwright.async_api import Browser, Error as PlaywrightError, Page, Playwright, async_playwright

from core.errors import SessionDetachedError, SessionUnavailableError, looks_detached

LOGGER = logging.getLogger(__name__)

DEFAULT_SELECTORS = {
    "login_email": "input[name='email']",
    "login_password": "input[name='password']",
    "login_submit": "button[type='submit']",
    "message_list": ".messages-list",
    "message_item": ".message-item[data-message-id]",
    "message_id_attribute": "data-message-id",
    "message_author": ".member-name",
    "message_body": ".message-body",
    "message_time": "time",
    "motd": ".lobby-motd",
    "motd_title": ".motd-title",
    "motd_body": ".motd-body",
    "motd_time": "time",
}


@dataclass(frozen=True)
class SpectrumConfig:
    """Where and how to open the lobby."""

    login_url: str
    lobby_url: str
    headless: bool = True
    login_attempts: int = 3
    retry_delay: float = 5.0
    navigation_timeout: float = 30.0
    selectors: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SELECTORS))


@contextmanager
def translate_detached() -> Iterator[None]:
    """Re-raise Playwright errors about closed pages as SessionDetachedError."""

    try:
        yield
    except PlaywrightError as exc:
        if looks_detached(str(exc)):
            raise SessionDetachedError(str(exc)) from exc
        raise


def _normalize_url(url: str) -> str:
    if not url:
        return ""
    return url.split("?", 1)[0].split("#", 1)[0].rstrip("/")


class SpectrumSession:
    """A signed-in browser page showing the lobby."""

    def __init__(self, browser: Browser, page: Page) -> None:
        self._browser = browser
        self.page = page

    def is_closed(self) -> bool:
        return self.page.is_closed() or not self._browser.is_connected()

    async def close(self) -> None:
        await self._browser.close()


class SpectrumSessionProvider:
    """Launches Chromium, signs in and keeps the lobby page usable."""

    def __init__(
        self,
        config: SpectrumConfig,
        email: str,
        password: str,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._email = email
        self._password = password
        self._sleep = sleep
        self._playwright: Optional[Playwright] = None

    @property
    def selectors(self) -> dict[str, str]:
        return self._config.selectors

    async def start(self) -> None:
        if self._playwright is None:
            self._playwright = await async_playwright().start()

    async def stop(self) -> None:
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def acquire(self) -> SpectrumSession:
        """Open a signed-in lobby page, retrying a few times."""

        await self.start()
        attempts = max(1, self._config.login_attempts)
        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                session = await self._open_session()
            except (PlaywrightError, SessionUnavailableError) as exc:
                last_error = exc
                LOGGER.warning("Lobby login attempt %s/%s failed: %s", attempt, attempts, exc)
                if attempt < attempts:
                    await self._sleep(self._config.retry_delay)
                continue
            LOGGER.info("Monitoring %s", self._config.lobby_url)
            return session
        raise SessionUnavailableError(f"Could not open the lobby after {attempts} attempts: {last_error}")

    async def keep_alive(self, session: SpectrumSession) -> None:
        """Make sure the page still shows the lobby and is signed in."""

        page = session.page
        with translate_detached():
            if _normalize_url(page.url) != _normalize_url(self._config.lobby_url):
                LOGGER.info("Page drifted to %s, returning to the lobby", page.url)
                await page.goto(self._config.lobby_url, wait_until="domcontentloaded")
            if await page.query_selector(self.selectors["login_email"]):
                LOGGER.warning("Signed out of Spectrum, signing in again")
                await self._sign_in(page)
                await page.goto(self._config.lobby_url, wait_until="domcontentloaded")
            await page.wait_for_selector(self.selectors["message_list"])

    async def release(self, session: SpectrumSession) -> None:
        try:
            await session.close()
        except PlaywrightError as exc:
            LOGGER.warning("Error closing browser: %s", exc)

    async def _open_session(self) -> SpectrumSession:
        if self._playwright is None:
            raise SessionUnavailableError("Playwright is not running")
        browser = await self._playwright.chromium.launch(headless=self._config.headless)
        try:
            page = await browser.new_page()
            page.set_default_timeout(self._config.navigation_timeout * 1000)
            await self._sign_in(page)
            await page.goto(self._config.lobby_url, wait_until="domcontentloaded")
            await page.wait_for_selector(self.selectors["message_list"])
        except BaseException:
            try:
                await browser.close()
            except PlaywrightError as exc:
                LOGGER.debug("Error closing browser after failed login: %s", exc)
            raise
        return SpectrumSession(browser, page)

    async def _sign_in(self, page: Page) -> None:
        selectors = self.selectors
        await page.goto(self._config.login_url, wait_until="domcontentloaded")
        if not await page.query_selector(selectors["login_email"]):
            # Cookies from an earlier sign-in are still valid.
            return
        await page.fill(selectors["login_email"], self._email)
        await page.fill(selectors["login_password"], self._password)
        await page.click(selectors["login_submit"])
        await page.wait_for_load_state("networkidle")
        if await page.query_selector(selectors["login_password"]):
            raise SessionUnavailableError("Login form still visible after submit, check RSI credentials")
