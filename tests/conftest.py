"""Pytest configuration and fixtures for hse_portal.

Runs against the in-memory document store: DATABASE_BACKEND and SECRET_KEY
are set before hse_portal.main is imported (create_app() reads settings).
"""

import os

os.environ["DATABASE_BACKEND"] = "memory"
os.environ["SECRET_KEY"] = "test-secret-key-for-hse-portal-tests"
os.environ["TELEMETRY_ENABLED"] = "false"

from functools import partial  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from hse_portal.api.v1.dependencies import get_document_store  # noqa: E402
from hse_portal.application.services import (  # noqa: E402
    ApprovalStateMachine,
    DirectoryResolver,
)
from hse_portal.core.config import get_settings  # noqa: E402
from hse_portal.infrastructure.memory import InMemoryDocumentStore  # noqa: E402
from hse_portal.main import app  # noqa: E402
from tests.factories import TENANT_ID, FakeDirectory, seed_users  # noqa: E402

get_settings.cache_clear()


@pytest.fixture
def directory() -> FakeDirectory:
    """Directory with the default users (see tests.factories.default_users)."""
    return FakeDirectory()


@pytest.fixture
def resolver(directory: FakeDirectory) -> DirectoryResolver:
    return DirectoryResolver(directory, TENANT_ID)


@pytest.fixture
def resolver_factory(directory: FakeDirectory):
    """tenant_id -> fresh DirectoryResolver over the fake directory."""
    return partial(DirectoryResolver, directory)


@pytest.fixture
def state_machine(resolver: DirectoryResolver) -> ApprovalStateMachine:
    return ApprovalStateMachine(resolver)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
async def seeded_store(store: InMemoryDocumentStore) -> InMemoryDocumentStore:
    """In-memory store holding the default users as directory documents."""
    await seed_users(store)
    return store


@pytest.fixture
async def client(seeded_store: InMemoryDocumentStore) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI), backed by seeded_store."""
    app.dependency_overrides[get_document_store] = lambda: seeded_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.pop(get_document_store, None)
