"""Application entry point for the spectrum relay."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import signal
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.json_cursor_store import JsonCursorStore
from adapters.spectrum_extractor import SpectrumExtractor
from adapters.spectrum_session import DEFAULT_SELECTORS, SpectrumConfig, SpectrumSessionProvider
from adapters.sqlite_storage import SQLiteDocumentStore
from adapters.telegram_commands import CommandHandler, register_commands
from adapters.telegram_notifier import TelegramNotifier
from client import build_client, sign_in
from core.config import LoopConfig, NotificationConfig
from core.orchestrator import IngestionLoop
from core.stats import BotStats
from get_session import authorize

NAME = "RELAY"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/relay.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _log_unhandled(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    # Stray task failures are logged only; they never stop the relay.
    logger = logging.getLogger(__name__)
    exc = context.get("exception")
    if exc is not None:
        logger.error("Unhandled error in background task: %s", context.get("message"), exc_info=exc)
    else:
        logger.error("Unhandled event loop error: %s", context.get("message"))


def _build_spectrum_config() -> SpectrumConfig:
    selectors = dict(DEFAULT_SELECTORS)
    selectors.update(settings.SPECTRUM_SELECTORS)
    return SpectrumConfig(
        login_url=settings.SPECTRUM_LOGIN_URL,
        lobby_url=settings.SPECTRUM_LOBBY_URL,
        headless=settings.SPECTRUM_HEADLESS,
        login_attempts=settings.SPECTRUM_LOGIN_ATTEMPTS,
        retry_delay=settings.SPECTRUM_RETRY_DELAY,
        navigation_timeout=settings.SPECTRUM_NAVIGATION_TIMEOUT,
        selectors=selectors,
    )


async def _serve(client) -> None:
    logger = logging.getLogger(__name__)

    email = os.getenv("RSI_EMAIL")
    password = os.getenv("RSI_PASSWORD")
    if not email or not password:
        raise RuntimeError("Missing RSI_EMAIL or RSI_PASSWORD in environment")
    if not settings.ITEMS_CHAT or not settings.MOTD_CHAT:
        raise RuntimeError("notifications.items_chat and notifications.motd_chat are required")

    await sign_in(client, settings.NOTIFICATION_METHOD)
    logger.info("Telegram client signed in (%s)", settings.NOTIFICATION_METHOD)

    store = SQLiteDocumentStore(settings.DB_PATH, timeout=settings.STORE_TIMEOUT)
    store.init_db()
    stats = BotStats()

    notifier = TelegramNotifier(
        client,
        items_chat=settings.ITEMS_CHAT,
        motd_chat=settings.MOTD_CHAT,
        config=NotificationConfig(
            format=settings.NOTIFICATION_FORMAT,
            item_link_template=settings.ITEM_LINK_TEMPLATE,
            motd_link=settings.SPECTRUM_LOBBY_URL,
        ),
    )

    if settings.COMMANDS_ENABLED:
        register_commands(client, CommandHandler(store, stats, is_connected=client.is_connected))
        logger.info("Chat commands enabled")

    spectrum_config = _build_spectrum_config()
    sessions = SpectrumSessionProvider(spectrum_config, email, password)
    ingestion = IngestionLoop(
        sessions=sessions,
        extractor=SpectrumExtractor(spectrum_config.selectors),
        store=store,
        notifier=notifier,
        cursor_store=JsonCursorStore(settings.CURSOR_PATH),
        stats=stats,
        config=LoopConfig(
            cycle_interval=settings.CYCLE_INTERVAL,
            cycle_timeout=settings.CYCLE_TIMEOUT,
            min_wait=settings.MIN_WAIT,
        ),
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signum, stop.set)

    try:
        await ingestion.run(stop=stop)
    finally:
        await _shutdown(ingestion, sessions, client)


async def _shutdown(ingestion: IngestionLoop, sessions, client) -> None:
    logger = logging.getLogger(__name__)
    if ingestion.session is not None:
        try:
            await sessions.release(ingestion.session)
        except Exception:
            logger.exception("Error releasing forum session")
    await sessions.stop()
    await client.disconnect()


def _run() -> None:
    _print_banner()
    logger = logging.getLogger(__name__)
    logger.info("Starting spectrum relay")

    client = build_client()
    client.loop.set_exception_handler(_log_unhandled)
    client.loop.run_until_complete(_serve(client))


def _login() -> None:
    _print_banner()
    client = build_client()

    async def _run_login() -> None:
        await client.connect()
        await authorize(client)
        await client.disconnect()

    client.loop.run_until_complete(_run_login())


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="spectrum-relay")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the relay")
    subparsers.add_parser("login", help="Create a Telegram user session for notification_method=user")

    args = parser.parse_args(argv)
    _configure_logging()
    logger = logging.getLogger(__name__)

    # Anything escaping the ingestion loop is fatal: log it and exit non-zero
    # so a supervisor restarts the process clean.
    try:
        if args.command == "login":
            _login()
        else:
            _run()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except Exception:
        logger.exception("Fatal error, exiting")
        sys.exit(1)


if __name__ == "__main__":
    main()
