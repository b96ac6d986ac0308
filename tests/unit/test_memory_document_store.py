"""Unit tests for InMemoryDocumentStore."""

import asyncio

import pytest

from hse_portal.application.interfaces.repositories import StoredDocument
from hse_portal.domain.exceptions import (
    DocumentAlreadyExistsException,
    VersionConflictException,
)
from hse_portal.infrastructure.memory import InMemoryDocumentStore


async def test_read_missing_returns_none(store: InMemoryDocumentStore) -> None:
    assert await store.read("tenants/acme") is None


async def test_write_then_read_returns_copy(store: InMemoryDocumentStore) -> None:
    data = {"name": "Acme", "tags": ["a"]}
    version = await store.write("/tenants/acme/", data)
    data["tags"].append("mutated")

    doc = await store.read("tenants/acme")

    assert doc.id == "acme"
    assert doc.path == "tenants/acme"
    assert doc.version == version
    assert doc.data == {"name": "Acme", "tags": ["a"]}
    doc.data["name"] = "changed"
    assert (await store.read("tenants/acme")).data["name"] == "Acme"


async def test_every_write_bumps_version(store: InMemoryDocumentStore) -> None:
    v1 = await store.write("a/1", {"x": 1})
    v2 = await store.merge("a/1", {"y": 2})
    assert v1 != v2
    assert (await store.read("a/1")).data == {"x": 1, "y": 2}


async def test_write_if_unchanged(store: InMemoryDocumentStore) -> None:
    v1 = await store.write("a/1", {"x": 1})
    v2 = await store.write_if_unchanged("a/1", {"x": 2}, v1)

    with pytest.raises(VersionConflictException):
        await store.write_if_unchanged("a/1", {"x": 3}, v1)
    with pytest.raises(VersionConflictException):
        await store.write_if_unchanged("a/missing", {"x": 3}, v2)
    assert (await store.read("a/1")).data == {"x": 2}


async def test_concurrent_conditional_writes_only_one_wins(
    store: InMemoryDocumentStore,
) -> None:
    version = await store.write("a/1", {"n": 0})

    results = await asyncio.gather(
        *(store.write_if_unchanged("a/1", {"n": i}, version) for i in range(1, 6)),
        return_exceptions=True,
    )

    assert sum(isinstance(r, str) for r in results) == 1
    assert sum(isinstance(r, VersionConflictException) for r in results) == 4


async def test_create_fails_when_present(store: InMemoryDocumentStore) -> None:
    await store.create("a/1", {"x": 1})
    with pytest.raises(DocumentAlreadyExistsException):
        await store.create("a/1", {"x": 2})


async def test_delete_is_idempotent(store: InMemoryDocumentStore) -> None:
    await store.write("a/1", {"x": 1})
    await store.delete("a/1")
    await store.delete("a/1")
    assert await store.read("a/1") is None


async def test_query_matches_direct_children_only(store: InMemoryDocumentStore) -> None:
    await store.write("users/u1", {"tenant_id": "acme"})
    await store.write("users/u2", {"tenant_id": "other"})
    await store.write("users/u3", {"tenant_id": "acme"})
    await store.write("users/u1/prefs/p", {"tenant_id": "acme"})
    await store.write("users_archive/u4", {"tenant_id": "acme"})

    docs = await store.query("users", "tenant_id", "acme")
    assert [d.id for d in docs] == ["u1", "u3"]

    limited = await store.query("users", "tenant_id", "acme", limit=1)
    assert [d.id for d in limited] == ["u1"]


async def test_subscribe_delivers_current_and_later_snapshots(
    store: InMemoryDocumentStore,
) -> None:
    seen: list[StoredDocument | None] = []

    async def on_change(doc: StoredDocument | None) -> None:
        seen.append(doc)

    await store.write("a/1", {"x": 1})
    unsubscribe = await store.subscribe("a/1", on_change)
    await store.merge("a/1", {"x": 2})
    await store.delete("a/1")
    await unsubscribe()
    await store.write("a/1", {"x": 3})

    assert [d.data["x"] if d else None for d in seen] == [1, 2, None]


async def test_last_unsubscribe_forgets_the_path(store: InMemoryDocumentStore) -> None:
    async def on_change(doc: StoredDocument | None) -> None:
        pass

    async def other(doc: StoredDocument | None) -> None:
        pass

    first = await store.subscribe("a/1", on_change)
    second = await store.subscribe("a/1", other)

    await first()
    assert store._subscribers["a/1"] == [other]
    await second()
    await second()
    assert "a/1" not in store._subscribers


async def test_failing_subscriber_does_not_break_writes(store: InMemoryDocumentStore) -> None:
    calls = 0

    async def broken(doc: StoredDocument | None) -> None:
        nonlocal calls
        calls += 1
        if doc is not None:
            raise RuntimeError("boom")

    await store.subscribe("a/1", broken)
    await store.write("a/1", {"x": 1})

    assert calls == 2
    assert (await store.read("a/1")).data == {"x": 1}
