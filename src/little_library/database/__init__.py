"""
Database package for the Little Library MCP Server.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- The RecordStore and its units of work (session.py)
- Tenant-scoped repositories, one per aggregate

Repositories flush but never commit; services wrap each operation in
``RecordStore.unit_of_work()`` so multi-step writes such as checkout and
return are atomic.
"""

from .catalog_repository import (
    BookCreateSchema,
    BookRepository,
    CopyCreateSchema,
    CopyRepository,
    LocationCreateSchema,
    LocationRepository,
)
from .circulation_repository import CheckoutCreateSchema, CirculationRepository
from .organization_repository import ensure_organization
from .reader_repository import (
    ChildDetailsSchema,
    ChildRepository,
    JournalEntryCreateSchema,
    JournalRepository,
)
from .repository import BaseRepository, PaginatedResponse, PaginationParams
from .schema import (
    Base,
    Book,
    Child,
    Copy,
    CopyStatusEnum,
    JournalEntry,
    Loan,
    Location,
    Organization,
)
from .session import RecordStore, store_safe_query, violates_index

__all__ = [
    "Base",
    "BaseRepository",
    "Book",
    "BookCreateSchema",
    "BookRepository",
    "CheckoutCreateSchema",
    "Child",
    "ChildDetailsSchema",
    "ChildRepository",
    "CirculationRepository",
    "Copy",
    "CopyCreateSchema",
    "CopyRepository",
    "CopyStatusEnum",
    "JournalEntry",
    "JournalEntryCreateSchema",
    "JournalRepository",
    "Loan",
    "Location",
    "LocationCreateSchema",
    "LocationRepository",
    "Organization",
    "PaginatedResponse",
    "PaginationParams",
    "RecordStore",
    "ensure_organization",
    "store_safe_query",
    "violates_index",
]
