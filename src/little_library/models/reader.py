"""
Reader models for the Little Library MCP Server.

Children are anonymous readers. Their emoji ID is the handle they use to
open their own reading journal, so it is the only field a child ever needs
to remember; name and class are optional and may be left empty.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from .catalog import Book


class Child(BaseModel):
    """A reader registered with an organization."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Internal identifier")
    org_id: str
    emoji_id: str = Field(
        ...,
        description="Three-emoji identifier, unique among active children of the organization",
        examples=["🐶🌈🎨", "🦊⭐🍕"],
    )
    name: str | None = Field(None, max_length=200)
    grade_or_class: str | None = Field(None, max_length=100, examples=["2B", "Year 3"])
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


class JournalEntry(BaseModel):
    """A child's note about a book they read."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    org_id: str
    child_id: str
    book_id: str
    rating: int | None = Field(None, ge=1, le=5, description="1-5 stars")
    review: str | None = None
    read_date: date | None = None
    created_at: datetime | None = None


class JournalEntryWithBook(JournalEntry):
    book: Book


class ReaderJournal(BaseModel):
    """What a child sees after entering their emoji ID."""

    child: Child
    entries: list[JournalEntryWithBook] = Field(default_factory=list)
