"""
Catalogue and reading journal tools for the Little Library MCP Server.

Books, shelving locations and copies are managed here. ``set_copy_status``
is the only way to mark a copy lost or damaged; it can put a copy back to
``available`` only when no loan is open on it, and never sets
``checked_out`` (checkout does that).
"""

import logging
from datetime import date
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError

from ..context import LibraryContext
from ..database import (
    BookCreateSchema,
    CopyCreateSchema,
    JournalEntryCreateSchema,
    LocationCreateSchema,
)
from ..errors import LibraryError
from ..models import CopyStatus
from .responses import failed, invalid_arguments, success_response, unexpected

logger = logging.getLogger(__name__)


# =============================================================================
# BOOKS
# =============================================================================


class AddBookInput(BaseModel):
    title: str = Field(..., min_length=1, max_length=500, examples=["The Gruffalo"])
    authors: list[str] = Field(
        ...,
        min_length=1,
        description="Author names in display order",
        examples=[["Julia Donaldson"]],
    )
    isbn: str | None = Field(default=None, pattern=r"^[0-9Xx-]{10,17}$")
    cover_url: str | None = Field(default=None, max_length=500)
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Free-form details such as language or reading level"
    )


async def add_book_handler(arguments: dict[str, Any], library: LibraryContext) -> dict[str, Any]:
    try:
        params = AddBookInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments(logger, e, "Invalid book")

    try:
        book = library.catalogue.add_book(
            BookCreateSchema(**params.model_dump()), library.tenant
        )
    except LibraryError as e:
        return failed(logger, "Add book", e)
    except Exception as e:
        return unexpected(logger, "add_book", e)

    return success_response(
        f"Added '{book.title}' to the catalogue", {"book": book.model_dump(mode="json")}
    )


class DeleteBookInput(BaseModel):
    book_id: UUID


async def delete_book_handler(arguments: dict[str, Any], library: LibraryContext) -> dict[str, Any]:
    """Soft-delete a book; repeating the delete succeeds."""
    try:
        params = DeleteBookInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments(logger, e, "Invalid book delete")

    try:
        deleted = library.catalogue.delete_book(str(params.book_id), library.tenant)
    except LibraryError as e:
        return failed(logger, "Delete book", e)
    except Exception as e:
        return unexpected(logger, "delete_book", e)

    message = "Book deleted" if deleted else "Book was already deleted"
    return success_response(message, {"book_id": str(params.book_id), "deleted": deleted})


# =============================================================================
# LOCATIONS AND COPIES
# =============================================================================


class AddLocationInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, examples=["Reading corner"])
    description: str | None = Field(default=None, max_length=1000)


async def add_location_handler(
    arguments: dict[str, Any], library: LibraryContext
) -> dict[str, Any]:
    try:
        params = AddLocationInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments(logger, e, "Invalid location")

    try:
        location = library.catalogue.add_location(
            LocationCreateSchema(**params.model_dump()), library.tenant
        )
    except LibraryError as e:
        return failed(logger, "Add location", e)
    except Exception as e:
        return unexpected(logger, "add_location", e)

    return success_response(
        f"Added location '{location.name}'", {"location": location.model_dump(mode="json")}
    )


class AddCopyInput(BaseModel):
    book_id: UUID
    location_id: UUID | None = None
    barcode: str | None = Field(default=None, max_length=100)
    status: Literal["available", "lost", "damaged"] = Field(
        default="available", description="Initial condition; new copies cannot start checked out"
    )
    notes: str | None = Field(default=None, max_length=500)


async def add_copy_handler(arguments: dict[str, Any], library: LibraryContext) -> dict[str, Any]:
    try:
        params = AddCopyInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments(logger, e, "Invalid copy")

    try:
        copy = library.catalogue.add_copy(
            CopyCreateSchema(
                book_id=str(params.book_id),
                location_id=str(params.location_id) if params.location_id else None,
                barcode=params.barcode,
                status=CopyStatus(params.status),
                notes=params.notes,
            ),
            library.tenant,
        )
    except LibraryError as e:
        return failed(logger, "Add copy", e)
    except Exception as e:
        return unexpected(logger, "add_copy", e)

    return success_response(
        f"Added copy {copy.id} ({copy.status.value})", {"copy": copy.model_dump(mode="json")}
    )


class SetCopyStatusInput(BaseModel):
    copy_id: UUID
    status: Literal["available", "lost", "damaged"] = Field(
        ..., description="New condition of the copy"
    )


async def set_copy_status_handler(
    arguments: dict[str, Any], library: LibraryContext
) -> dict[str, Any]:
    try:
        params = SetCopyStatusInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments(logger, e, "Invalid copy status")

    try:
        copy = library.catalogue.set_copy_status(
            str(params.copy_id), CopyStatus(params.status), library.tenant
        )
    except LibraryError as e:
        return failed(logger, "Set copy status", e)
    except Exception as e:
        return unexpected(logger, "set_copy_status", e)

    return success_response(
        f"Copy {copy.id} is now {copy.status.value}", {"copy": copy.model_dump(mode="json")}
    )


# =============================================================================
# READING JOURNAL
# =============================================================================


class AddJournalEntryInput(BaseModel):
    child_id: UUID
    book_id: UUID
    rating: int | None = Field(default=None, ge=1, le=5, description="1-5 stars")
    review: str | None = Field(default=None, max_length=2000)
    read_date: date | None = None


async def add_journal_entry_handler(
    arguments: dict[str, Any], library: LibraryContext
) -> dict[str, Any]:
    try:
        params = AddJournalEntryInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments(logger, e, "Invalid journal entry")

    try:
        entry = library.catalogue.add_journal_entry(
            JournalEntryCreateSchema(
                child_id=str(params.child_id),
                book_id=str(params.book_id),
                rating=params.rating,
                review=params.review,
                read_date=params.read_date,
            ),
            library.tenant,
        )
    except LibraryError as e:
        return failed(logger, "Add journal entry", e)
    except Exception as e:
        return unexpected(logger, "add_journal_entry", e)

    return success_response("Journal entry added", {"entry": entry.model_dump(mode="json")})


# =============================================================================
# TOOL DEFINITIONS
# =============================================================================

catalog_tools = [
    {
        "name": "add_book",
        "description": "Add a book to the catalogue.",
        "inputSchema": AddBookInput.model_json_schema(),
        "handler": add_book_handler,
    },
    {
        "name": "delete_book",
        "description": "Remove a book from the catalogue. Loan history is kept.",
        "inputSchema": DeleteBookInput.model_json_schema(),
        "handler": delete_book_handler,
    },
    {
        "name": "add_location",
        "description": "Add a shelf, room or box where copies are kept.",
        "inputSchema": AddLocationInput.model_json_schema(),
        "handler": add_location_handler,
    },
    {
        "name": "add_copy",
        "description": "Add a physical copy of a catalogue book.",
        "inputSchema": AddCopyInput.model_json_schema(),
        "handler": add_copy_handler,
    },
    {
        "name": "set_copy_status",
        "description": (
            "Mark a copy lost, damaged or available. A copy with an open loan "
            "cannot be marked available; return the loan instead."
        ),
        "inputSchema": SetCopyStatusInput.model_json_schema(),
        "handler": set_copy_status_handler,
    },
    {
        "name": "add_journal_entry",
        "description": "Record that a child read a book, with an optional rating and review.",
        "inputSchema": AddJournalEntryInput.model_json_schema(),
        "handler": add_journal_entry_handler,
    },
]
