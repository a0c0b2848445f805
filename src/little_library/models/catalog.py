"""
Catalogue models for the Little Library MCP Server.

- Book: a title in the organization's catalogue
- Location: where copies are shelved
- Copy: one physical instance of a book, with its circulation status
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CopyStatus(str, Enum):
    """Circulation status of a physical copy."""

    AVAILABLE = "available"
    CHECKED_OUT = "checked_out"
    LOST = "lost"
    DAMAGED = "damaged"


class Book(BaseModel):
    """A catalogue item. Soft-deleted books keep their history."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique identifier for the book")
    org_id: str = Field(..., description="Owning organization")
    title: str = Field(..., min_length=1, max_length=500)
    authors: list[str] = Field(
        ...,
        min_length=1,
        description="Author names in display order",
        examples=[["Julia Donaldson", "Axel Scheffler"]],
    )
    isbn: str | None = Field(None, examples=["9780333710937"])
    cover_url: str | None = None
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form details (language, reading level, publisher, ...)",
    )
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Location(BaseModel):
    """A shelf, room or box."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    org_id: str
    name: str = Field(..., min_length=1, max_length=200, examples=["Reading corner"])
    description: str | None = None
    created_at: datetime | None = None
    deleted_at: datetime | None = None


class Copy(BaseModel):
    """A physical copy of a book."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    org_id: str
    book_id: str
    location_id: str | None = None
    barcode: str | None = None
    status: CopyStatus = CopyStatus.AVAILABLE
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def is_available(self) -> bool:
        return self.status == CopyStatus.AVAILABLE and self.deleted_at is None


class CopyWithBook(Copy):
    """Copy joined with its book and location for listings."""

    book: Book
    location: Location | None = None
