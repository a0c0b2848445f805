"""
SQLAlchemy database schema for the Little Library MCP Server.

Every table except ``organizations`` carries an ``org_id`` column; the
repositories filter on it for every statement. Catalogue records and
children are soft-deleted through ``deleted_at``; loans are never deleted.

Two invariants are enforced by the database itself with partial unique
indexes, so they hold even when two requests race:

1. At most one open loan (``returned_at IS NULL``) per copy
2. At most one non-deleted child per emoji ID within an organization
"""

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def new_id() -> str:
    """Generate a primary key."""
    return str(uuid4())


class CopyStatusEnum(str, enum.Enum):
    """Database enum for the circulation status of a physical copy."""

    AVAILABLE = "available"
    CHECKED_OUT = "checked_out"
    LOST = "lost"
    DAMAGED = "damaged"


class Organization(Base):
    """Organizations table - the tenant boundary."""

    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    settings = Column(Text, nullable=True)  # JSON object

    created_at = Column(DateTime, nullable=False, default=datetime.now)


class Book(Base):
    """Books table - catalogue items, one row per title."""

    __tablename__ = "books"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False)
    title = Column(String(500), nullable=False)
    # Ordered author names, JSON array (Text for SQLite compatibility)
    authors = Column(Text, nullable=False)
    isbn = Column(String(20), nullable=True)
    cover_url = Column(String(500), nullable=True)
    # "metadata" is reserved by the declarative base
    extra_metadata = Column("metadata", Text, nullable=True)  # JSON object

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.now)
    deleted_at = Column(DateTime, nullable=True)

    copies = relationship("Copy", back_populates="book")

    __table_args__ = (
        Index("idx_book_org_title", "org_id", "title"),
        Index("idx_book_isbn", "isbn"),
    )


class Location(Base):
    """Locations table - shelves, rooms or boxes where copies live."""

    __tablename__ = "locations"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("idx_location_org", "org_id"),)


class Copy(Base):
    """
    Copies table - physical instances of a book.

    ``status`` is the only circulation state the core mutates. It is
    ``checked_out`` exactly when the copy has an open loan.
    """

    __tablename__ = "copies"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False)
    book_id = Column(String(36), ForeignKey("books.id"), nullable=False)
    location_id = Column(String(36), ForeignKey("locations.id"), nullable=True)
    barcode = Column(String(100), nullable=True)
    status = Column(
        Enum(CopyStatusEnum, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CopyStatusEnum.AVAILABLE,
    )
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.now)
    deleted_at = Column(DateTime, nullable=True)

    book = relationship("Book", back_populates="copies")
    location = relationship("Location")
    loans = relationship("Loan", back_populates="copy")

    __table_args__ = (
        Index("idx_copy_org_status", "org_id", "status"),
        Index("idx_copy_book", "book_id"),
    )


class Child(Base):
    """Children table - anonymous readers identified by three emojis."""

    __tablename__ = "children"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False)
    emoji_id = Column(String(64), nullable=False)
    name = Column(String(200), nullable=True)
    grade_or_class = Column(String(100), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.now)
    deleted_at = Column(DateTime, nullable=True)

    journal_entries = relationship("JournalEntry", back_populates="child")

    __table_args__ = (
        Index(
            "uq_child_org_emoji_active",
            "org_id",
            "emoji_id",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )


class Loan(Base):
    """
    Loans table - one row per checkout.

    Created by checkout, closed once by return (``returned_at``), never
    deleted. The borrower is a child or, when no child is on file, a
    free-text name and class.
    """

    __tablename__ = "loans"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False)
    copy_id = Column(String(36), ForeignKey("copies.id"), nullable=False)
    child_id = Column(String(36), ForeignKey("children.id"), nullable=True)
    borrower_name = Column(String(200), nullable=True)
    borrower_class = Column(String(100), nullable=True)
    checked_out_at = Column(DateTime, nullable=False, default=datetime.now)
    due_date = Column(Date, nullable=True)
    returned_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)

    copy = relationship("Copy", back_populates="loans")
    child = relationship("Child")

    __table_args__ = (
        Index("idx_loan_org_checked_out", "org_id", "checked_out_at"),
        Index(
            "uq_loan_open_per_copy",
            "copy_id",
            unique=True,
            sqlite_where=text("returned_at IS NULL"),
            postgresql_where=text("returned_at IS NULL"),
        ),
        CheckConstraint(
            "child_id IS NOT NULL OR borrower_name IS NOT NULL",
            name="check_loan_has_borrower",
        ),
    )


class JournalEntry(Base):
    """Reading journal table - a child's record of books read."""

    __tablename__ = "reading_journal"

    id = Column(String(36), primary_key=True, default=new_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False)
    child_id = Column(String(36), ForeignKey("children.id"), nullable=False)
    book_id = Column(String(36), ForeignKey("books.id"), nullable=False)
    rating = Column(Integer, nullable=True)
    review = Column(Text, nullable=True)
    read_date = Column(Date, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)

    child = relationship("Child", back_populates="journal_entries")
    book = relationship("Book")

    __table_args__ = (
        Index("idx_journal_child", "org_id", "child_id"),
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="check_rating"),
    )
