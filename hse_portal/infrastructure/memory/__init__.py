"""In-memory document store (tests, local development)."""

from hse_portal.infrastructure.memory.document_store import InMemoryDocumentStore

__all__ = ["InMemoryDocumentStore"]
