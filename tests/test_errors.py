from __future__ import annotations

from core.errors import (
    CycleTimeoutError,
    SessionDetachedError,
    SessionUnavailableError,
    is_session_transient,
)


def test_timeout_and_detached_are_transient() -> None:
    assert is_session_transient(CycleTimeoutError("Scraping cycle timeout"))
    assert is_session_transient(SessionDetachedError("gone"))


def test_detached_markers_in_message() -> None:
    assert is_session_transient(RuntimeError("Attempted to use detached Frame 'abc'"))
    assert is_session_transient(RuntimeError("Target page, context or browser has been closed"))
    assert is_session_transient(RuntimeError("Execution context was destroyed, most likely because of a navigation"))


def test_other_errors_are_not_transient() -> None:
    assert not is_session_transient(RuntimeError("boom"))
    assert not is_session_transient(SessionUnavailableError("login failed"))
    assert not is_session_transient(ValueError("bad selector"))
