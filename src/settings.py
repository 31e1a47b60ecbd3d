"""Static configuration for the spectrum relay.

All user-editable settings (lobby, cadence, storage, notifications) live in a
single JSON file for quick edits without touching Python. Secrets stay in the
environment (.env).
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("RELAY_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _project_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Lobby location, browser mode and DOM selectors.
_spectrum = _CONFIG.get("spectrum", {})
SPECTRUM_LOGIN_URL = _spectrum.get("login_url", "https://robertsspaceindustries.com/connect")
SPECTRUM_LOBBY_URL = _spectrum.get(
    "lobby_url", "https://robertsspaceindustries.com/spectrum/community/SC/lobby/38230"
)
SPECTRUM_HEADLESS = bool(_spectrum.get("headless", True))
SPECTRUM_LOGIN_ATTEMPTS = int(_spectrum.get("login_attempts", 3))
SPECTRUM_RETRY_DELAY = float(_spectrum.get("retry_delay_seconds", 5))
SPECTRUM_NAVIGATION_TIMEOUT = float(_spectrum.get("navigation_timeout_seconds", 30))
SPECTRUM_SELECTORS = _spectrum.get("selectors", {})

# Cycle cadence: one cycle every CYCLE_INTERVAL seconds, each bounded by
# CYCLE_TIMEOUT, never less than MIN_WAIT between cycles.
_relay = _CONFIG.get("relay", {})
CYCLE_INTERVAL = float(_relay.get("cycle_interval_seconds", 30))
CYCLE_TIMEOUT = float(_relay.get("cycle_timeout_seconds", 25))
MIN_WAIT = float(_relay.get("min_wait_seconds", 5))
CURSOR_PATH = _project_path(_relay.get("cursor_path", "state/cursor.json"))

# Document store location and per-call timeout.
_storage = _CONFIG.get("storage", {})
DB_PATH = _project_path(_storage.get("db_path", "relay.db"))
STORE_TIMEOUT = float(_storage.get("timeout_seconds", 10))

# Notification targets. "bot" signs in with BOT_TOKEN, "user" uses an
# interactive Telegram login.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("notification_method", "bot")
ITEMS_CHAT = _notifications.get("items_chat")
MOTD_CHAT = _notifications.get("motd_chat")
NOTIFICATION_FORMAT = _notifications.get("format", "markdown")
ITEM_LINK_TEMPLATE = _notifications.get("item_link_template", SPECTRUM_LOBBY_URL + "/message/{id}")

# Read-only chat commands.
_commands = _CONFIG.get("commands", {})
COMMANDS_ENABLED = bool(_commands.get("enabled", True))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
