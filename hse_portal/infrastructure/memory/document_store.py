"""In-process document store (implements IDocumentStore) for tests and local development.

Documents are deep-copied on the way in and out, so callers never share
state with the store. Versions come from a store-wide counter; every write
bumps it. Subscribers are called after each committed change.
"""

from __future__ import annotations

import asyncio
import copy
import itertools
from typing import Any

from hse_portal.application.interfaces.repositories import (
    OnChange,
    StoredDocument,
    Unsubscribe,
)
from hse_portal.domain.exceptions import (
    DocumentAlreadyExistsException,
    VersionConflictException,
)
from hse_portal.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


def _normalize(path: str) -> str:
    return path.strip("/")


class InMemoryDocumentStore:
    """Dict-backed IDocumentStore with atomic conditional writes."""

    def __init__(self) -> None:
        self._docs: dict[str, tuple[dict[str, Any], str]] = {}
        self._versions = itertools.count(1)
        self._lock = asyncio.Lock()
        self._subscribers: dict[str, list[OnChange]] = {}

    def _snapshot(self, path: str) -> StoredDocument | None:
        entry = self._docs.get(path)
        if entry is None:
            return None
        data, version = entry
        return StoredDocument(
            path=path,
            id=path.rsplit("/", 1)[-1],
            data=copy.deepcopy(data),
            version=version,
        )

    def _put(self, path: str, data: dict[str, Any]) -> str:
        version = str(next(self._versions))
        self._docs[path] = (copy.deepcopy(data), version)
        return version

    async def _publish(self, path: str) -> None:
        for callback in list(self._subscribers.get(path, [])):
            try:
                await callback(self._snapshot(path))
            except Exception:
                logger.exception("Subscriber callback failed for %s", path)

    async def read(self, path: str) -> StoredDocument | None:
        return self._snapshot(_normalize(path))

    async def query(
        self, collection_path: str, field: str, value: Any, *, limit: int = 1000
    ) -> list[StoredDocument]:
        prefix = _normalize(collection_path) + "/"
        results: list[StoredDocument] = []
        for path in sorted(self._docs):
            rest = path[len(prefix):] if path.startswith(prefix) else None
            # Direct children only (no subcollection documents).
            if not rest or "/" in rest:
                continue
            data, _ = self._docs[path]
            if data.get(field) == value:
                results.append(self._snapshot(path))
                if len(results) >= limit:
                    break
        return results

    async def write(self, path: str, data: dict[str, Any]) -> str:
        path = _normalize(path)
        async with self._lock:
            version = self._put(path, data)
        await self._publish(path)
        return version

    async def merge(self, path: str, partial: dict[str, Any]) -> str:
        path = _normalize(path)
        async with self._lock:
            current = self._docs.get(path)
            merged = copy.deepcopy(current[0]) if current else {}
            merged.update(copy.deepcopy(partial))
            version = self._put(path, merged)
        await self._publish(path)
        return version

    async def write_if_unchanged(
        self, path: str, data: dict[str, Any], expected_version: str
    ) -> str:
        path = _normalize(path)
        async with self._lock:
            current = self._docs.get(path)
            if current is None or current[1] != expected_version:
                raise VersionConflictException(path, expected_version)
            version = self._put(path, data)
        await self._publish(path)
        return version

    async def create(self, path: str, data: dict[str, Any]) -> str:
        path = _normalize(path)
        async with self._lock:
            if path in self._docs:
                raise DocumentAlreadyExistsException(path)
            version = self._put(path, data)
        await self._publish(path)
        return version

    async def delete(self, path: str) -> None:
        path = _normalize(path)
        async with self._lock:
            existed = self._docs.pop(path, None) is not None
        if existed:
            await self._publish(path)

    async def subscribe(self, path: str, on_change: OnChange) -> Unsubscribe:
        """Deliver the current snapshot now and every committed change after."""
        path = _normalize(path)
        self._subscribers.setdefault(path, []).append(on_change)
        await on_change(self._snapshot(path))

        async def unsubscribe() -> None:
            callbacks = self._subscribers.get(path, [])
            if on_change in callbacks:
                callbacks.remove(on_change)
            if not callbacks:
                self._subscribers.pop(path, None)

        return unsubscribe
