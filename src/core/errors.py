"""Domain errors and failure classification for the ingestion loop."""

from __future__ import annotations

# Substrings browsers put in errors once a page or frame is gone.
DETACHED_MARKERS = (
    "detached frame",
    "frame was detached",
    "target page, context or browser has been closed",
    "execution context was destroyed",
)


class RelayError(Exception):
    """Base class for relay errors."""


class CycleTimeoutError(RelayError):
    """A cycle ran past its wall-clock budget."""


class SessionDetachedError(RelayError):
    """The browser page behind a session is detached or closed."""


class SessionUnavailableError(RelayError):
    """A session could not be acquired at all."""


class CursorLoadError(RelayError):
    """The persisted cursor exists but could not be read."""


class StoreTimeoutError(RelayError):
    """A document store call exceeded its per-call timeout."""


def looks_detached(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in DETACHED_MARKERS)


def is_session_transient(exc: BaseException) -> bool:
    """Return True when the session must be recreated before the next cycle."""

    if isinstance(exc, (CycleTimeoutError, SessionDetachedError)):
        return True
    return looks_detached(str(exc))
