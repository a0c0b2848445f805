"""
Catalogue resources for the Little Library MCP Server.

Books and copies of soft-deleted books are left out of every listing.
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..context import LibraryContext
from ..errors import LibraryError
from ..models import CopyStatus

logger = logging.getLogger(__name__)


async def list_books_handler(library: LibraryContext) -> dict[str, Any]:
    try:
        books = library.catalogue.list_books(library.tenant)
    except LibraryError as e:
        logger.exception("Error listing books")
        raise ResourceError(f"Failed to retrieve book list: {e!s}") from e

    return {"books": [book.model_dump(mode="json") for book in books], "total": len(books)}


async def list_locations_handler(library: LibraryContext) -> dict[str, Any]:
    try:
        locations = library.catalogue.list_locations(library.tenant)
    except LibraryError as e:
        logger.exception("Error listing locations")
        raise ResourceError(f"Failed to retrieve locations: {e!s}") from e

    return {
        "locations": [location.model_dump(mode="json") for location in locations],
        "total": len(locations),
    }


async def list_copies_handler(status_filter: str, library: LibraryContext) -> dict[str, Any]:
    """
    List copies, optionally by status.

    Args:
        status_filter: ``all`` or one of ``available``, ``checked_out``,
            ``lost``, ``damaged``
    """
    status = None
    if status_filter.lower() != "all":
        try:
            status = CopyStatus(status_filter.lower())
        except ValueError as e:
            allowed = ", ".join(["all", *(s.value for s in CopyStatus)])
            raise ResourceError(
                f"Invalid copy status '{status_filter}'; expected one of: {allowed}"
            ) from e

    try:
        copies = library.catalogue.list_copies(library.tenant, status)
    except LibraryError as e:
        logger.exception("Error listing copies")
        raise ResourceError(f"Failed to retrieve copies: {e!s}") from e

    return {
        "filter": status.value if status else "all",
        "copies": [copy.model_dump(mode="json") for copy in copies],
        "total": len(copies),
    }
