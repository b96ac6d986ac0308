"""Firestore-backed document store (implements IDocumentStore).

Versions are the server's document updateTime; write_if_unchanged sends it as
a currentDocument.updateTime precondition. The REST API has no realtime
listener, so subscribe polls the document and reports updateTime changes.
"""

from __future__ import annotations

import asyncio
import contextlib
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
from hse_portal.infrastructure.exceptions import (
    DocumentExistsError,
    PreconditionFailedError,
)
from hse_portal.infrastructure.firebase._rest_client import (
    FirestoreDocument,
    FirestoreRESTClient,
)
from hse_portal.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


def _stored(document: FirestoreDocument) -> StoredDocument:
    return StoredDocument(
        path=document.path,
        id=document.id,
        data=document.data,
        version=document.update_time,
    )


class FirestoreDocumentStore:
    """IDocumentStore over the Firestore REST client."""

    def __init__(
        self, client: FirestoreRESTClient, *, poll_interval: float = 5.0
    ) -> None:
        self._client = client
        self._poll_interval = poll_interval

    async def read(self, path: str) -> StoredDocument | None:
        document = await self._client.get_document(path)
        return _stored(document) if document else None

    async def query(
        self, collection_path: str, field: str, value: Any, *, limit: int = 1000
    ) -> list[StoredDocument]:
        documents = await self._client.run_query(collection_path, field, value, limit=limit)
        return [_stored(d) for d in documents]

    async def write(self, path: str, data: dict[str, Any]) -> str:
        return await self._client.patch_document(path, data)

    async def merge(self, path: str, partial: dict[str, Any]) -> str:
        return await self._client.patch_document(path, partial, merge=True)

    async def write_if_unchanged(
        self, path: str, data: dict[str, Any], expected_version: str
    ) -> str:
        try:
            return await self._client.patch_document(
                path, data, if_update_time=expected_version
            )
        except PreconditionFailedError as e:
            raise VersionConflictException(path, expected_version) from e

    async def create(self, path: str, data: dict[str, Any]) -> str:
        try:
            return await self._client.create_document(path, data)
        except DocumentExistsError as e:
            raise DocumentAlreadyExistsException(path) from e

    async def delete(self, path: str) -> None:
        await self._client.delete_document(path)

    async def subscribe(self, path: str, on_change: OnChange) -> Unsubscribe:
        """Poll the document; call on_change with the first snapshot and every change after."""

        async def poll() -> None:
            last: tuple[bool, str | None] | None = None
            while True:
                try:
                    current = await self.read(path)
                    marker = (current is not None, current.version if current else None)
                    if marker != last:
                        last = marker
                        await on_change(current)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Polling subscription failed for %s", path)
                await asyncio.sleep(self._poll_interval)

        task = asyncio.create_task(poll(), name=f"subscribe:{path}")

        async def unsubscribe() -> None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        return unsubscribe
