from __future__ import annotations

import asyncio

from app import _shutdown


class FakeIngestion:
    def __init__(self, session) -> None:
        self.session = session


class FakeSessions:
    def __init__(self, release_error: Exception = None) -> None:
        self.calls: list[tuple[str, object]] = []
        self._release_error = release_error

    async def release(self, session) -> None:
        self.calls.append(("release", session))
        if self._release_error is not None:
            raise self._release_error

    async def stop(self) -> None:
        self.calls.append(("stop", None))


class FakeClient:
    def __init__(self) -> None:
        self.disconnected = False

    async def disconnect(self) -> None:
        self.disconnected = True


def test_shutdown_releases_live_session_before_stopping() -> None:
    sessions = FakeSessions()
    client = FakeClient()

    asyncio.run(_shutdown(FakeIngestion("browser-1"), sessions, client))

    assert sessions.calls == [("release", "browser-1"), ("stop", None)]
    assert client.disconnected


def test_shutdown_without_session_only_stops() -> None:
    sessions = FakeSessions()
    client = FakeClient()

    asyncio.run(_shutdown(FakeIngestion(None), sessions, client))

    assert sessions.calls == [("stop", None)]
    assert client.disconnected


def test_shutdown_continues_when_release_fails() -> None:
    sessions = FakeSessions(release_error=RuntimeError("browser already gone"))
    client = FakeClient()

    asyncio.run(_shutdown(FakeIngestion("browser-1"), sessions, client))

    assert sessions.calls[-1] == ("stop", None)
    assert client.disconnected
