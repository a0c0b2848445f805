"""Catalogue and reading journal operations, one unit of work each."""

from ..database import (
    BookCreateSchema,
    BookRepository,
    CopyCreateSchema,
    CopyRepository,
    JournalEntryCreateSchema,
    JournalRepository,
    LocationCreateSchema,
    LocationRepository,
    RecordStore,
)
from ..models import Book, Copy, CopyStatus, CopyWithBook, JournalEntry, Location
from ..tenancy import TenantScope


class Catalogue:
    def __init__(self, store: RecordStore):
        self.store = store

    def add_book(self, data: BookCreateSchema, tenant: TenantScope) -> Book:
        with self.store.unit_of_work() as session:
            return BookRepository(session, tenant).create(data)

    def list_books(self, tenant: TenantScope) -> list[Book]:
        with self.store.unit_of_work() as session:
            return BookRepository(session, tenant).list_books()

    def delete_book(self, book_id: str, tenant: TenantScope) -> bool:
        """Soft-delete a book. Its copies and journal entries drop out of listings."""
        with self.store.unit_of_work() as session:
            return BookRepository(session, tenant).soft_delete(book_id)

    def import_book(
        self, data: BookCreateSchema, copies: int, tenant: TenantScope
    ) -> tuple[Book, list[Copy]]:
        """Create a book and ``copies`` available copies of it in one unit of work."""
        with self.store.unit_of_work() as session:
            book = BookRepository(session, tenant).create(data)
            copy_repo = CopyRepository(session, tenant)
            created = [copy_repo.create(CopyCreateSchema(book_id=book.id)) for _ in range(copies)]
        return book, created

    def add_location(self, data: LocationCreateSchema, tenant: TenantScope) -> Location:
        with self.store.unit_of_work() as session:
            return LocationRepository(session, tenant).create(data)

    def list_locations(self, tenant: TenantScope) -> list[Location]:
        with self.store.unit_of_work() as session:
            return LocationRepository(session, tenant).list_locations()

    def add_copy(self, data: CopyCreateSchema, tenant: TenantScope) -> Copy:
        with self.store.unit_of_work() as session:
            return CopyRepository(session, tenant).create(data)

    def list_copies(
        self, tenant: TenantScope, status: CopyStatus | None = None
    ) -> list[CopyWithBook]:
        with self.store.unit_of_work() as session:
            return CopyRepository(session, tenant).list_copies(status)

    def set_copy_status(self, copy_id: str, status: CopyStatus, tenant: TenantScope) -> Copy:
        with self.store.unit_of_work() as session:
            return CopyRepository(session, tenant).set_status(copy_id, status)

    def add_journal_entry(
        self, data: JournalEntryCreateSchema, tenant: TenantScope
    ) -> JournalEntry:
        with self.store.unit_of_work() as session:
            return JournalRepository(session, tenant).add_entry(data)
