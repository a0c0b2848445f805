"""Loan listing resources for the Little Library MCP Server."""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..context import LibraryContext
from ..database import PaginationParams
from ..errors import LibraryError
from ..models import LoanFilter

logger = logging.getLogger(__name__)

LOANS_PAGE_SIZE = 50


def parse_loan_filter(value: str) -> LoanFilter:
    try:
        return LoanFilter(value.lower())
    except ValueError as e:
        allowed = ", ".join(f.value for f in LoanFilter)
        raise ResourceError(f"Invalid loan filter '{value}'; expected one of: {allowed}") from e


def parse_page(value: str | int) -> int:
    try:
        page = int(value)
    except ValueError as e:
        raise ResourceError(f"Invalid page number: {value}") from e
    if page < 1:
        raise ResourceError("Page must be >= 1")
    return page


async def list_loans_handler(
    status_filter: str, library: LibraryContext, page: str | int = 1
) -> dict[str, Any]:
    """
    List loans newest first.

    Args:
        status_filter: ``all``, ``active`` (not yet returned) or ``returned``
        page: 1-based page of ``LOANS_PAGE_SIZE`` loans
    """
    loan_filter = parse_loan_filter(status_filter)
    pagination = PaginationParams(page=parse_page(page), page_size=LOANS_PAGE_SIZE)
    try:
        result = library.circulation.list_loans(library.tenant, loan_filter, pagination)
    except LibraryError as e:
        logger.exception("Error listing loans")
        raise ResourceError(f"Failed to retrieve loans: {e!s}") from e

    return {
        "filter": loan_filter.value,
        "loans": [loan.model_dump(mode="json") for loan in result.items],
        "pagination": {
            "page": result.page,
            "page_size": result.page_size,
            "total": result.total,
            "total_pages": result.total_pages,
            "has_next": result.has_next,
            "has_previous": result.has_previous,
        },
    }
