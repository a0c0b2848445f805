"""
Resources for the Little Library MCP Server.

Resources are the read side: listings and the reader journal lookup. Each
handler takes the ``LibraryContext`` explicitly; ``register_resources``
binds them to one server.
"""

from typing import Any

from fastmcp import FastMCP

from ..context import LibraryContext
from .catalog import list_books_handler, list_copies_handler, list_locations_handler
from .loans import list_loans_handler
from .readers import get_reader_handler, list_children_handler

JSON = "application/json"

library_resources: list[dict[str, Any]] = [
    {
        "uri_template": "library://readers/{emoji_id}",
        "name": "reader_journal",
        "description": "A child's profile and reading journal, looked up by their three-emoji ID.",
    },
    {
        "uri": "library://children",
        "name": "list_children",
        "description": "All registered children, newest first.",
    },
    {
        "uri_template": "library://loans/{status_filter}",
        "name": "list_loans",
        "description": "Loans newest first. Filter: all, active or returned.",
    },
    {
        "uri_template": "library://loans/{status_filter}/{page}",
        "name": "list_loans_page",
        "description": "A further page of the loan listing.",
    },
    {
        "uri": "library://books",
        "name": "list_books",
        "description": "Catalogue books ordered by title.",
    },
    {
        "uri_template": "library://copies/{status_filter}",
        "name": "list_copies",
        "description": "Physical copies. Filter: all, available, checked_out, lost or damaged.",
    },
    {
        "uri": "library://locations",
        "name": "list_locations",
        "description": "Shelves, rooms and boxes where copies are kept.",
    },
]


def register_resources(mcp: FastMCP, library: LibraryContext) -> None:
    """Register every resource with ``mcp``, bound to ``library``."""
    definitions = {resource["name"]: resource for resource in library_resources}

    def resource(name: str):
        definition = definitions[name]
        return mcp.resource(
            definition.get("uri_template") or definition["uri"],
            name=name,
            description=definition["description"],
            mime_type=JSON,
        )

    @resource("reader_journal")
    async def reader_journal(emoji_id: str) -> dict[str, Any]:
        return await get_reader_handler(emoji_id, library)

    @resource("list_children")
    async def list_children() -> dict[str, Any]:
        return await list_children_handler(library)

    @resource("list_loans")
    async def list_loans(status_filter: str) -> dict[str, Any]:
        return await list_loans_handler(status_filter, library)

    @resource("list_loans_page")
    async def list_loans_page(status_filter: str, page: str) -> dict[str, Any]:
        return await list_loans_handler(status_filter, library, page)

    @resource("list_books")
    async def list_books() -> dict[str, Any]:
        return await list_books_handler(library)

    @resource("list_copies")
    async def list_copies(status_filter: str) -> dict[str, Any]:
        return await list_copies_handler(status_filter, library)

    @resource("list_locations")
    async def list_locations() -> dict[str, Any]:
        return await list_locations_handler(library)


__all__ = ["library_resources", "register_resources"]
