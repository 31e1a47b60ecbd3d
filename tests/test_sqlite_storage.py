from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta, timezone

import pytest

from adapters.sqlite_storage import SQLiteDocumentStore
from core.errors import StoreTimeoutError


def _store(tmp_path, timeout: float = 10.0) -> SQLiteDocumentStore:
    store = SQLiteDocumentStore(str(tmp_path / "relay.db"), timeout=timeout)
    store.init_db()
    return store


def test_insert_and_find_by_collection(tmp_path) -> None:
    store = _store(tmp_path)

    async def scenario():
        await store.insert("messages", {"id": "1", "author": "a", "body": "one"})
        await store.insert("messages", {"id": "2", "author": "b", "body": "two"})
        await store.insert("motd", {"title": "t", "body": "m"})
        return await store.find("messages")

    documents = asyncio.run(scenario())

    assert [doc["id"] for doc in documents] == ["1", "2"]
    assert all("_id" in doc for doc in documents)


def test_find_with_filter_sort_and_limit(tmp_path) -> None:
    store = _store(tmp_path)

    async def scenario():
        for item_id, author in [("1", "a"), ("2", "b"), ("3", "a"), ("4", "a")]:
            await store.insert("messages", {"id": item_id, "author": author})
        by_author = await store.find("messages", {"author": "a"})
        newest = await store.find("messages", limit=2, sort=("_id", -1))
        by_field = await store.find("messages", sort=("id", -1), limit=1)
        return by_author, newest, by_field

    by_author, newest, by_field = asyncio.run(scenario())

    assert [doc["id"] for doc in by_author] == ["1", "3", "4"]
    assert [doc["id"] for doc in newest] == ["4", "3"]
    assert [doc["id"] for doc in by_field] == ["4"]


def test_count_with_time_window(tmp_path) -> None:
    store = _store(tmp_path)

    async def scenario():
        await store.insert("messages", {"id": "1"})
        await store.insert("messages", {"id": "2"})
        total = await store.count("messages")
        recent = await store.count("messages", since=datetime.now(timezone.utc) - timedelta(hours=24))
        future = await store.count("messages", since=datetime.now(timezone.utc) + timedelta(hours=1))
        empty = await store.count("motd")
        return total, recent, future, empty

    assert asyncio.run(scenario()) == (2, 2, 0, 0)


def test_rejects_unsafe_field_names(tmp_path) -> None:
    store = _store(tmp_path)

    with pytest.raises(ValueError):
        asyncio.run(store.find("messages", {"id') OR 1=1 --": "x"}))


def test_slow_insert_raises_store_timeout(tmp_path, monkeypatch) -> None:
    store = _store(tmp_path, timeout=0.05)

    def slow_insert(collection, document):
        time.sleep(0.3)
        return 1

    monkeypatch.setattr(store, "_insert_sync", slow_insert)

    with pytest.raises(StoreTimeoutError):
        asyncio.run(store.insert("messages", {"id": "1"}))
