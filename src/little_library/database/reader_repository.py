"""
Reader repositories for the Little Library MCP Server.

Children are identified by a three-emoji ID that must be unique among the
organization's non-deleted children. The snapshot-based allocator can race
with a concurrent registration, so every write of an emoji ID goes through
the partial unique index ``uq_child_org_emoji_active``: if another live
child got the same ID first, the write fails with ``ConflictError`` and the
caller recomputes against a fresh snapshot.
"""

import logging
from datetime import date, datetime

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..errors import ConflictError
from ..models.reader import Child as ChildModel
from ..models.reader import JournalEntry as JournalEntryModel
from ..models.reader import JournalEntryWithBook
from .catalog_repository import BookRepository, book_to_model
from .repository import BaseRepository
from .schema import Book as BookDB
from .schema import Child as ChildDB
from .schema import JournalEntry as JournalEntryDB
from .session import store_safe_query, violates_index

logger = logging.getLogger(__name__)


class ChildDetailsSchema(BaseModel):
    """Optional personal details; a child may be registered with none."""

    name: str | None = Field(None, max_length=200)
    grade_or_class: str | None = Field(None, max_length=100)


class JournalEntryCreateSchema(BaseModel):
    """Schema for adding a reading journal entry."""

    child_id: str
    book_id: str
    rating: int | None = Field(None, ge=1, le=5)
    review: str | None = Field(None, max_length=2000)
    read_date: date | None = None


class ChildRepository(BaseRepository[ChildDB, ChildModel]):
    """Repository for child readers."""

    entity_name = "Child"

    @property
    def model_class(self):
        return ChildDB

    def _to_response_model(self, db_obj: ChildDB) -> ChildModel:
        return ChildModel.model_validate(db_obj, from_attributes=True)

    def active_emoji_ids(self, exclude_child_id: str | None = None) -> set[str]:
        """
        Snapshot the emoji IDs in use by live children of the tenant.

        Args:
            exclude_child_id: Leave this child's own ID out of the snapshot
        """
        query = self._scoped(select(ChildDB.emoji_id))
        if exclude_child_id:
            query = query.where(ChildDB.id != exclude_child_id)
        results = store_safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to load emoji IDs in use",
        )
        return set(results)

    def get_by_emoji_id(self, emoji_id: str) -> ChildModel | None:
        """Exact match among live children of the tenant."""
        query = self._scoped().where(ChildDB.emoji_id == emoji_id)
        child = store_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to look up child by emoji ID",
        )
        return self._to_response_model(child) if child is not None else None

    def list_children(self) -> list[ChildModel]:
        query = self._scoped().order_by(ChildDB.created_at.desc())
        results = store_safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to list children"
        )
        return [self._to_response_model(c) for c in results]

    def insert(self, emoji_id: str, details: ChildDetailsSchema) -> ChildModel:
        """
        Insert a child with ``emoji_id``, only if no live child holds it.

        Raises:
            ConflictError: If the ID was taken concurrently
        """
        child = ChildDB(
            org_id=self.tenant.org_id,
            emoji_id=emoji_id,
            name=details.name,
            grade_or_class=details.grade_or_class,
        )
        self.session.add(child)
        self._flush_identifier(emoji_id)
        return self._to_response_model(child)

    def set_emoji_id(self, child_id: str, emoji_id: str) -> ChildModel:
        """
        Replace a child's emoji ID, only if no other live child holds it.

        Raises:
            NotFoundError: If the child does not resolve
            ConflictError: If the ID is held by another live child
        """
        child = self._require_db(child_id)
        child.emoji_id = emoji_id
        child.updated_at = datetime.now()
        self._flush_identifier(emoji_id)
        return self._to_response_model(child)

    def update_details(self, child_id: str, details: ChildDetailsSchema) -> ChildModel:
        child = self._require_db(child_id)
        for field, value in details.model_dump(exclude_unset=True).items():
            setattr(child, field, value)
        child.updated_at = datetime.now()
        self.session.flush()
        return self._to_response_model(child)

    def _flush_identifier(self, emoji_id: str) -> None:
        try:
            self.session.flush()
        except IntegrityError as e:
            if not violates_index(
                e, "uq_child_org_emoji_active", "children.org_id", "children.emoji_id"
            ):
                raise
            logger.info("Emoji ID %s already taken in organization %s", emoji_id, self.tenant)
            raise ConflictError("Emoji ID is already in use") from e


class JournalRepository(BaseRepository[JournalEntryDB, JournalEntryModel]):
    """Repository for reading journal entries."""

    entity_name = "Journal entry"

    @property
    def model_class(self):
        return JournalEntryDB

    def _to_response_model(self, db_obj: JournalEntryDB) -> JournalEntryModel:
        return JournalEntryModel.model_validate(db_obj, from_attributes=True)

    def add_entry(self, data: JournalEntryCreateSchema) -> JournalEntryModel:
        """
        Record that a child read a book.

        Raises:
            NotFoundError: If the child or book does not resolve
        """
        ChildRepository(self.session, self.tenant).require(data.child_id)
        BookRepository(self.session, self.tenant).require(data.book_id)

        entry = JournalEntryDB(
            org_id=self.tenant.org_id,
            child_id=data.child_id,
            book_id=data.book_id,
            rating=data.rating,
            review=data.review,
            read_date=data.read_date,
        )
        self.session.add(entry)
        self.session.flush()
        return self._to_response_model(entry)

    def entries_for_child(self, child_id: str) -> list[JournalEntryWithBook]:
        """Entries for live books, newest first."""
        query = (
            self._scoped()
            .where(JournalEntryDB.child_id == child_id)
            .join(BookDB, JournalEntryDB.book_id == BookDB.id)
            .where(BookDB.deleted_at.is_(None))
            .options(joinedload(JournalEntryDB.book))
            .order_by(JournalEntryDB.created_at.desc())
        )
        results = store_safe_query(
            self.session,
            lambda s: s.execute(query).unique().scalars().all(),
            "Failed to load journal entries",
        )
        return [
            JournalEntryWithBook(
                **self._to_response_model(entry).model_dump(), book=book_to_model(entry.book)
            )
            for entry in results
        ]
