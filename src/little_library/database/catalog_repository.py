"""
Catalogue repositories for the Little Library MCP Server.

Books, locations and copies are plain tenant-scoped records. The one rule
that touches circulation lives here too: catalogue management may mark a
copy lost or damaged at any time, but may only put a copy back to
``available`` when it has no open loan, and may never set ``checked_out``
(only checkout does that).
"""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy import and_, exists, update
from sqlalchemy.orm import joinedload

from ..errors import ConflictError, NotFoundError
from ..models.catalog import Book as BookModel
from ..models.catalog import Copy as CopyModel
from ..models.catalog import CopyStatus, CopyWithBook
from ..models.catalog import Location as LocationModel
from .repository import BaseRepository
from .schema import Book as BookDB
from .schema import Copy as CopyDB
from .schema import CopyStatusEnum
from .schema import Loan as LoanDB
from .schema import Location as LocationDB
from .session import store_safe_query


class BookCreateSchema(BaseModel):
    """Schema for creating a book."""

    title: str = Field(..., min_length=1, max_length=500)
    authors: list[str] = Field(..., min_length=1)
    isbn: str | None = None
    cover_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class LocationCreateSchema(BaseModel):
    """Schema for creating a location."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None


class CopyCreateSchema(BaseModel):
    """Schema for creating a copy. New copies cannot start checked out."""

    book_id: str
    location_id: str | None = None
    barcode: str | None = None
    status: CopyStatus = CopyStatus.AVAILABLE
    notes: str | None = None


def _load_json(value: str | None, default):
    if not value:
        return default
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return default


def book_to_model(book: BookDB) -> BookModel:
    """Convert book DB object to Pydantic model."""
    return BookModel(
        id=book.id,
        org_id=book.org_id,
        title=book.title,
        authors=_load_json(book.authors, []),
        isbn=book.isbn,
        cover_url=book.cover_url,
        metadata=_load_json(book.extra_metadata, {}),
        created_at=book.created_at,
        updated_at=book.updated_at,
        deleted_at=book.deleted_at,
    )


def location_to_model(location: LocationDB) -> LocationModel:
    return LocationModel.model_validate(location, from_attributes=True)


def copy_to_model(copy: CopyDB) -> CopyModel:
    """Convert copy DB object to Pydantic model."""
    return CopyModel(
        id=copy.id,
        org_id=copy.org_id,
        book_id=copy.book_id,
        location_id=copy.location_id,
        barcode=copy.barcode,
        status=CopyStatus(copy.status.value),
        notes=copy.notes,
        created_at=copy.created_at,
        updated_at=copy.updated_at,
        deleted_at=copy.deleted_at,
    )


def copy_with_book_to_model(copy: CopyDB) -> CopyWithBook:
    return CopyWithBook(
        **copy_to_model(copy).model_dump(),
        book=book_to_model(copy.book),
        location=location_to_model(copy.location) if copy.location else None,
    )


class BookRepository(BaseRepository[BookDB, BookModel]):
    """Repository for catalogue books."""

    entity_name = "Book"

    @property
    def model_class(self):
        return BookDB

    def _to_response_model(self, db_obj: BookDB) -> BookModel:
        return book_to_model(db_obj)

    def create(self, data: BookCreateSchema) -> BookModel:
        book = BookDB(
            org_id=self.tenant.org_id,
            title=data.title,
            authors=json.dumps(data.authors, ensure_ascii=False),
            isbn=data.isbn or None,
            cover_url=data.cover_url or None,
            extra_metadata=json.dumps(data.metadata, ensure_ascii=False),
        )
        self.session.add(book)
        self.session.flush()
        return book_to_model(book)

    def list_books(self) -> list[BookModel]:
        """List live books ordered by title."""
        query = self._scoped().order_by(BookDB.title)
        results = store_safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to list books"
        )
        return [book_to_model(b) for b in results]


class LocationRepository(BaseRepository[LocationDB, LocationModel]):
    """Repository for shelving locations."""

    entity_name = "Location"

    @property
    def model_class(self):
        return LocationDB

    def _to_response_model(self, db_obj: LocationDB) -> LocationModel:
        return location_to_model(db_obj)

    def create(self, data: LocationCreateSchema) -> LocationModel:
        location = LocationDB(
            org_id=self.tenant.org_id, name=data.name, description=data.description
        )
        self.session.add(location)
        self.session.flush()
        return location_to_model(location)

    def list_locations(self) -> list[LocationModel]:
        query = self._scoped().order_by(LocationDB.name)
        results = store_safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to list locations"
        )
        return [location_to_model(loc) for loc in results]


class CopyRepository(BaseRepository[CopyDB, CopyModel]):
    """Repository for physical copies."""

    entity_name = "Copy"

    @property
    def model_class(self):
        return CopyDB

    def _to_response_model(self, db_obj: CopyDB) -> CopyModel:
        return copy_to_model(db_obj)

    def create(self, data: CopyCreateSchema) -> CopyModel:
        """
        Add a copy of a book.

        Raises:
            NotFoundError: If the book or location does not resolve
            ConflictError: If asked to create a checked-out copy
        """
        if data.status == CopyStatus.CHECKED_OUT:
            raise ConflictError("Copies can only become checked out through checkout")

        BookRepository(self.session, self.tenant).require(data.book_id)
        if data.location_id:
            LocationRepository(self.session, self.tenant).require(data.location_id)

        copy = CopyDB(
            org_id=self.tenant.org_id,
            book_id=data.book_id,
            location_id=data.location_id,
            barcode=data.barcode or None,
            status=CopyStatusEnum(data.status.value),
            notes=data.notes,
        )
        self.session.add(copy)
        self.session.flush()
        return copy_to_model(copy)

    def list_copies(self, status: CopyStatus | None = None) -> list[CopyWithBook]:
        """List live copies of live books, newest first."""
        query = (
            self._scoped()
            .join(BookDB, CopyDB.book_id == BookDB.id)
            .where(BookDB.deleted_at.is_(None))
            .options(joinedload(CopyDB.book), joinedload(CopyDB.location))
            .order_by(CopyDB.created_at.desc())
        )
        if status is not None:
            query = query.where(CopyDB.status == CopyStatusEnum(status.value))

        results = store_safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalars().all(),
            "Failed to list copies",
        )
        return [copy_with_book_to_model(c) for c in results]

    def set_status(self, copy_id: str, status: CopyStatus) -> CopyModel:
        """
        Change a copy's condition from catalogue management.

        Args:
            copy_id: Copy to update
            status: ``lost``, ``damaged`` or ``available``

        Raises:
            NotFoundError: If the copy does not resolve
            ConflictError: If ``checked_out`` is requested, or ``available``
                is requested while the copy has an open loan
        """
        if status == CopyStatus.CHECKED_OUT:
            raise ConflictError("Copies can only become checked out through checkout")

        conditions = [
            CopyDB.id == copy_id,
            self.tenant.where(CopyDB),
            CopyDB.deleted_at.is_(None),
        ]
        if status == CopyStatus.AVAILABLE:
            open_loan = exists().where(
                and_(LoanDB.copy_id == CopyDB.id, LoanDB.returned_at.is_(None))
            )
            conditions.append(~open_loan)

        result = self.session.execute(
            update(CopyDB)
            .where(*conditions)
            .values(status=CopyStatusEnum(status.value), updated_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            if not self.exists(copy_id):
                raise NotFoundError("Copy not found")
            raise ConflictError("Copy has an open loan; return the loan instead")

        self.session.expire_all()
        return self.require(copy_id)
