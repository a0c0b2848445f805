"""Test configuration and fixtures for the Little Library MCP Server.

1. Isolated test databases - each test gets a fresh SQLite file
2. Two organizations - so every feature can be checked for tenant isolation
3. Seeded randomness - emoji IDs are repeatable across runs
4. Configuration overrides and cleanup
"""

import os
import random
from collections.abc import Generator
from pathlib import Path
from uuid import uuid4

import pytest

from little_library.config import ServerConfig, reset_config
from little_library.context import LibraryContext
from little_library.database import (
    BookCreateSchema,
    CopyCreateSchema,
    LocationCreateSchema,
    RecordStore,
    ensure_organization,
)
from little_library.identity import IdentityAllocator
from little_library.models import Borrower
from little_library.tenancy import TenantScope

# === Test Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Generator[Path, None, None]:
    """Provide a temporary database path for each test."""
    db_path = tmp_path / "test_library.db"
    yield db_path

    if db_path.exists():
        db_path.unlink()


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    """Provide a SQLAlchemy database URL for testing."""
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def store(test_database_url: str) -> Generator[RecordStore, None, None]:
    """A RecordStore on a file database, so separate sessions really are separate."""
    record_store = RecordStore(test_database_url)
    record_store.init_database()
    yield record_store
    record_store.close()


def _make_tenant(store: RecordStore, name: str) -> TenantScope:
    tenant = TenantScope(org_id=str(uuid4()))
    with store.unit_of_work() as session:
        ensure_organization(session, tenant, name)
    return tenant


@pytest.fixture
def tenant(store: RecordStore) -> TenantScope:
    return _make_tenant(store, "Maple Street Primary")


@pytest.fixture
def other_tenant(store: RecordStore) -> TenantScope:
    return _make_tenant(store, "Oak Lane Community Library")


@pytest.fixture
def allocator() -> IdentityAllocator:
    return IdentityAllocator(rng=random.Random(1234))


@pytest.fixture
def library(store: RecordStore, tenant: TenantScope, allocator) -> LibraryContext:
    return LibraryContext.create(store, tenant, allocator)


@pytest.fixture
def other_library(store: RecordStore, other_tenant: TenantScope) -> LibraryContext:
    return LibraryContext.create(store, other_tenant, IdentityAllocator(rng=random.Random(99)))


# === Catalogue Fixtures ===


@pytest.fixture
def book(library: LibraryContext):
    return library.catalogue.add_book(
        BookCreateSchema(title="The Gruffalo", authors=["Julia Donaldson", "Axel Scheffler"]),
        library.tenant,
    )


@pytest.fixture
def location(library: LibraryContext):
    return library.catalogue.add_location(
        LocationCreateSchema(name="Reading corner"), library.tenant
    )


@pytest.fixture
def copy(library: LibraryContext, book, location):
    """An available copy of ``book``."""
    return library.catalogue.add_copy(
        CopyCreateSchema(book_id=book.id, location_id=location.id, barcode="LL-0001"),
        library.tenant,
    )


@pytest.fixture
def child(library: LibraryContext):
    return library.children.register(library.tenant, name="Mia", grade_or_class="2B")


@pytest.fixture
def open_loan(library: LibraryContext, copy, child):
    """``copy`` checked out to ``child``."""
    return library.circulation.checkout(copy.id, Borrower(child_id=child.id), library.tenant)


# === Configuration Fixtures ===


@pytest.fixture
def test_config(test_db_path: Path) -> Generator[ServerConfig, None, None]:
    """Provide a test-specific server configuration."""
    reset_config()

    config = ServerConfig(
        server_name="test-little-library",
        server_version="0.0.1-test",
        database_path=test_db_path,
        organization_id=str(uuid4()),
        organization_name="Test Library",
        debug=True,
        log_level="DEBUG",
    )

    yield config

    reset_config()


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Provide a clean environment without LITTLE_LIBRARY_* variables."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("LITTLE_LIBRARY_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


# === Cleanup Fixtures ===


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Reset global configuration after each test."""
    yield
    reset_config()
