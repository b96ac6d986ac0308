"""Firestore integration (REST API + google-auth)."""

from hse_portal.infrastructure.firebase.client import (
    close_firebase,
    get_firestore_client,
    init_firebase,
)
from hse_portal.infrastructure.firebase.document_store import FirestoreDocumentStore

__all__ = [
    "FirestoreDocumentStore",
    "close_firebase",
    "get_firestore_client",
    "init_firebase",
]
