"""Async Firestore REST v1 client for the document store adapter.

Five calls cover everything the approvals store needs: get, patch (full
replace, masked merge, or conditional on updateTime), create, delete and a
single-field equality runQuery. Paths are relative to the database root,
e.g. "companies/acme/approvalFlows/access".

Service account tokens come from google-auth; refreshing one is a blocking
requests call, so it runs in a worker thread.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx

from hse_portal.infrastructure.exceptions import (
    DocumentExistsError,
    PreconditionFailedError,
)
from hse_portal.infrastructure.firebase._rest_encoding import (
    _encode_value,
    decode_document,
    encode_document,
)

FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
FIRESTORE_API = "https://firestore.googleapis.com/v1"

# google.rpc statuses that mean "the precondition no longer holds".
_CONFLICT_STATUSES = frozenset({"FAILED_PRECONDITION", "ABORTED"})


def service_account_credentials(key_info: dict[str, Any]):
    """google.oauth2 service account credentials scoped to Firestore."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(
        key_info, scopes=[FIRESTORE_SCOPE]
    )


def _fresh_token(credentials) -> str:
    from google.auth.transport.requests import Request

    if not credentials.valid:
        credentials.refresh(Request())
    return credentials.token


@dataclass(frozen=True)
class FirestoreDocument:
    """Decoded document with its relative path and server updateTime."""

    path: str
    data: dict[str, Any]
    update_time: str | None

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]


def field_path(name: str) -> str:
    """Backtick-quote a top-level field name unless it is a plain identifier."""
    if name.replace("_", "a").isalnum() and not name[:1].isdigit():
        return name
    escaped = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def _rpc_status(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return ""
    if isinstance(body, list):
        body = body[0] if body else {}
    if not isinstance(body, dict):
        return ""
    return (body.get("error") or {}).get("status", "")


class FirestoreRESTClient:
    """Firestore REST calls over one shared httpx.AsyncClient."""

    def __init__(
        self,
        project_id: str,
        credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.project_id = project_id
        self._credentials = credentials
        self._root = f"projects/{project_id}/databases/(default)/documents"
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=30.0)

    async def aclose(self) -> None:
        """Close the connection pool unless it was injected."""
        if self._owns_http:
            await self._http.aclose()

    def _url(self, path: str = "") -> str:
        path = path.strip("/")
        return f"{FIRESTORE_API}/{self._root}/{path}" if path else f"{FIRESTORE_API}/{self._root}"

    def _relative(self, name: str) -> str:
        marker = f"{self._root}/"
        return name.split(marker, 1)[1] if marker in name else name

    def _document(self, raw: dict[str, Any]) -> FirestoreDocument:
        return FirestoreDocument(
            path=self._relative(raw.get("name", "")),
            data=decode_document(raw),
            update_time=raw.get("updateTime"),
        )

    async def _send(
        self,
        method: str,
        url: str,
        *,
        path: str,
        json: dict[str, Any] | None = None,
        params: list[tuple[str, str]] | None = None,
        conditional: bool = False,
    ) -> Any:
        """Send one request and map Firestore failures.

        Returns the decoded JSON body, or None for 404 on an unconditional call.

        Raises:
            PreconditionFailedError: Conditional write lost (changed or deleted document).
            DocumentExistsError: Create on an existing document.
            httpx.HTTPStatusError: Any other non-success status.
        """
        token = await asyncio.to_thread(_fresh_token, self._credentials)
        resp = await self._http.request(
            method,
            url,
            json=json,
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )
        if resp.status_code == 404:
            if conditional:
                raise PreconditionFailedError(path)
            return None
        if resp.status_code in (400, 409):
            if _rpc_status(resp) in _CONFLICT_STATUSES:
                raise PreconditionFailedError(path)
            if resp.status_code == 409:
                raise DocumentExistsError(path)
        resp.raise_for_status()
        return resp.json() if resp.content else {}

    async def get_document(self, path: str) -> FirestoreDocument | None:
        raw = await self._send("GET", self._url(path), path=path)
        return self._document(raw) if raw else None

    async def patch_document(
        self,
        path: str,
        data: dict[str, Any],
        *,
        merge: bool = False,
        if_update_time: str | None = None,
    ) -> str:
        """Replace the document (or, with merge, only the given top-level fields).

        Creates the document when absent unless if_update_time is given, in
        which case the stored updateTime must still equal it.

        Returns:
            The new updateTime.
        """
        params: list[tuple[str, str]] = []
        if merge:
            params.extend(("updateMask.fieldPaths", field_path(k)) for k in data)
        if if_update_time is not None:
            params.append(("currentDocument.updateTime", if_update_time))
        raw = await self._send(
            "PATCH",
            self._url(path),
            path=path,
            json=encode_document(data),
            params=params or None,
            conditional=if_update_time is not None,
        )
        return (raw or {}).get("updateTime", "")

    async def create_document(self, path: str, data: dict[str, Any]) -> str:
        """Create the document; DocumentExistsError when the id is taken."""
        parent, document_id = path.strip("/").rsplit("/", 1)
        raw = await self._send(
            "POST",
            self._url(parent),
            path=path,
            json=encode_document(data),
            params=[("documentId", document_id)],
        )
        return (raw or {}).get("updateTime", "")

    async def delete_document(self, path: str) -> None:
        """Delete the document; a missing document is not an error."""
        await self._send("DELETE", self._url(path), path=path)

    async def run_query(
        self, collection_path: str, field: str, value: Any, *, limit: int
    ) -> list[FirestoreDocument]:
        """Documents of one collection (not its descendants) where field == value."""
        parent, _, collection_id = collection_path.strip("/").rpartition("/")
        structured = {
            "from": [{"collectionId": collection_id}],
            "where": {
                "fieldFilter": {
                    "field": {"fieldPath": field_path(field)},
                    "op": "EQUAL",
                    "value": _encode_value(value),
                }
            },
            "limit": limit,
        }
        rows = await self._send(
            "POST",
            f"{self._url(parent)}:runQuery",
            path=collection_path,
            json={"structuredQuery": structured},
        )
        return [self._document(row["document"]) for row in rows or [] if "document" in row]
