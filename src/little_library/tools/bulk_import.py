"""Bulk import tool for loading books and copies from CSV text.

Expected columns (header row required, case-insensitive):

    title,authors,isbn,copies
    "The Gruffalo","Julia Donaldson; Axel Scheffler",9780333710937,3

``authors`` is semicolon-separated and defaults to "Unknown"; ``copies``
defaults to 1. Each row is imported in its own unit of work, so a bad row
is reported and skipped without undoing the rows around it.
"""

import csv
import io
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..context import LibraryContext
from ..database import BookCreateSchema
from ..errors import LibraryError, RequestValidationError
from .responses import failed, invalid_arguments, success_response, unexpected

logger = logging.getLogger(__name__)

MAX_COPIES_PER_ROW = 100
DEFAULT_AUTHOR = "Unknown"


class BulkImportInput(BaseModel):
    """Input schema for the import_books_csv tool."""

    csv_text: str = Field(
        ...,
        description="CSV content with a title,authors,isbn,copies header row",
        min_length=1,
        max_length=1_000_000,
        examples=["title,authors,isbn,copies\nZog,Julia Donaldson,9781407115573,2"],
    )


def _read_rows(text: str) -> list[tuple[int, dict[str, str]]]:
    """Parse CSV text into ``(line number, row)`` pairs with normalized headers."""
    reader = csv.DictReader(io.StringIO(text.lstrip()), skipinitialspace=True)
    try:
        if reader.fieldnames:
            reader.fieldnames = [name.strip().lower() for name in reader.fieldnames]
        rows = [(reader.line_num, row) for row in reader]
    except csv.Error as e:
        raise RequestValidationError(
            "Malformed CSV", [{"field": "csv_text", "message": str(e)}]
        ) from e
    if not reader.fieldnames or not rows:
        raise RequestValidationError(
            "CSV must have header and at least one data row",
            [{"field": "csv_text", "message": "No data rows found"}],
        )
    return rows


def _parse_row(row: dict[str, str]) -> tuple[BookCreateSchema, int]:
    """
    Turn one CSV row into a book schema and a copy count.

    Raises:
        ValueError: If the row has no title or an unusable copy count
    """
    title = (row.get("title") or "").strip()
    if not title:
        raise ValueError("Missing title")

    authors = [a.strip() for a in (row.get("authors") or "").split(";") if a.strip()]
    isbn = (row.get("isbn") or "").strip() or None

    copies_value = (row.get("copies") or "").strip()
    try:
        copies = int(copies_value) if copies_value else 1
    except ValueError:
        raise ValueError(f"Invalid copies value '{copies_value}'") from None
    if not 0 <= copies <= MAX_COPIES_PER_ROW:
        raise ValueError(f"Copies must be between 0 and {MAX_COPIES_PER_ROW}")

    book = BookCreateSchema(title=title, authors=authors or [DEFAULT_AUTHOR], isbn=isbn)
    return book, copies


async def import_books_csv_handler(
    arguments: dict[str, Any], library: LibraryContext
) -> dict[str, Any]:
    """
    Handler for the import_books_csv tool.

    Returns:
        Summary with ``success``/``failed`` row counts, copies created and
        one ``"Line N: reason"`` entry per failed row
    """
    try:
        params = BulkImportInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments(logger, e, "Invalid import parameters")

    try:
        rows = _read_rows(params.csv_text)
    except RequestValidationError as e:
        return failed(logger, "CSV import", e)

    summary: dict[str, Any] = {"success": 0, "failed": 0, "copies": 0, "errors": []}
    try:
        for line, row in rows:
            try:
                book_data, copies = _parse_row(row)
                _, created = library.catalogue.import_book(book_data, copies, library.tenant)
            except (ValueError, LibraryError) as e:
                summary["failed"] += 1
                summary["errors"].append(f"Line {line}: {e}")
                continue
            summary["success"] += 1
            summary["copies"] += len(created)
    except Exception as e:
        return unexpected(logger, "import_books_csv", e)

    logger.info(
        "CSV import for organization %s: %d imported, %d failed",
        library.tenant,
        summary["success"],
        summary["failed"],
    )

    message = (
        f"Imported {summary['success']} of {len(rows)} books "
        f"({summary['copies']} copies)"
    )
    if summary["errors"]:
        message += "\n" + "\n".join(summary["errors"][:5])
    return success_response(message, summary)


import_books_csv_tool = {
    "name": "import_books_csv",
    "description": (
        "Import books and available copies from CSV text with a "
        "title,authors,isbn,copies header. Authors are separated by ';'. "
        "Bad rows are skipped and reported by line number."
    ),
    "inputSchema": BulkImportInput.model_json_schema(),
    "handler": import_books_csv_handler,
}

bulk_import_tools = [import_books_csv_tool]
