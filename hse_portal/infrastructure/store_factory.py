"""Document store factory: Firestore REST or in-memory backend from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from hse_portal.application.interfaces.repositories import IDocumentStore
from hse_portal.infrastructure.exceptions import DocumentStoreUnavailableError

if TYPE_CHECKING:
    from hse_portal.core.config import Settings


class DocumentStoreFactory:
    """Factory for document store instances based on configuration."""

    @staticmethod
    def create_document_store(settings: "Settings | None" = None) -> IDocumentStore:
        """Create the document store for settings.database_backend.

        Args:
            settings: Application settings; if None, uses get_settings().

        Returns:
            FirestoreDocumentStore or InMemoryDocumentStore.

        Raises:
            DocumentStoreUnavailableError: Firestore selected but not initialized.
            ValueError: Unknown backend.
        """
        from hse_portal.core.config import get_settings

        s = settings or get_settings()
        backend = s.database_backend.lower()

        if backend == "memory":
            from hse_portal.infrastructure.memory import InMemoryDocumentStore

            return InMemoryDocumentStore()
        if backend == "firestore":
            from hse_portal.infrastructure.firebase import (
                FirestoreDocumentStore,
                get_firestore_client,
                init_firebase,
            )

            if not init_firebase(s):
                raise DocumentStoreUnavailableError(backend)
            client = get_firestore_client()
            if client is None:
                raise DocumentStoreUnavailableError(backend)
            return FirestoreDocumentStore(
                client, poll_interval=s.subscription_poll_interval_seconds
            )
        raise ValueError(f"Unknown database backend: {backend!r}")
