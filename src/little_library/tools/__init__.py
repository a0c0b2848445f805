"""
Tools for the Little Library MCP Server.

Each tool module defines Pydantic input schemas, ``*_handler`` coroutines
taking ``(arguments, library)`` and a list of tool definitions. The
handlers are transport-agnostic; ``register_tools`` binds them to a
FastMCP server with typed signatures so clients see real parameters.
"""

from typing import Any

from fastmcp import FastMCP

from ..context import LibraryContext
from .bulk_import import bulk_import_tools
from .catalog import catalog_tools
from .children import children_tools
from .circulation import circulation_tools

all_tools: list[dict[str, Any]] = [
    *children_tools,
    *circulation_tools,
    *catalog_tools,
    *bulk_import_tools,
]


def _arguments(**values: Any) -> dict[str, Any]:
    """Drop parameters the client left out, so schemas see them as unset."""
    return {key: value for key, value in values.items() if value is not None}


def register_tools(mcp: FastMCP, library: LibraryContext) -> None:
    """Register every tool with ``mcp``, bound to ``library``."""
    tools = {tool["name"]: tool for tool in all_tools}

    def tool(name: str):
        return mcp.tool(name=name, description=tools[name]["description"])

    async def call(name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        return await tools[name]["handler"](arguments, library)

    @tool("register_child")
    async def register_child(
        name: str | None = None, grade_or_class: str | None = None
    ) -> dict[str, Any]:
        return await call("register_child", _arguments(name=name, grade_or_class=grade_or_class))

    @tool("update_child")
    async def update_child(
        child_id: str,
        regenerate_emoji: bool = False,
        custom_emoji_id: str | None = None,
        name: str | None = None,
        grade_or_class: str | None = None,
    ) -> dict[str, Any]:
        return await call(
            "update_child",
            _arguments(
                child_id=child_id,
                regenerate_emoji=regenerate_emoji,
                custom_emoji_id=custom_emoji_id,
                name=name,
                grade_or_class=grade_or_class,
            ),
        )

    @tool("delete_child")
    async def delete_child(child_id: str) -> dict[str, Any]:
        return await call("delete_child", {"child_id": child_id})

    @tool("checkout_copy")
    async def checkout_copy(
        copy_id: str,
        child_id: str | None = None,
        borrower_name: str | None = None,
        borrower_class: str | None = None,
        due_date: str | None = None,
        notes: str | None = None,
    ) -> dict[str, Any]:
        return await call(
            "checkout_copy",
            _arguments(
                copy_id=copy_id,
                child_id=child_id,
                borrower_name=borrower_name,
                borrower_class=borrower_class,
                due_date=due_date,
                notes=notes,
            ),
        )

    @tool("return_loan")
    async def return_loan(loan_id: str) -> dict[str, Any]:
        return await call("return_loan", {"loan_id": loan_id})

    @tool("add_book")
    async def add_book(
        title: str,
        authors: list[str],
        isbn: str | None = None,
        cover_url: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await call(
            "add_book",
            _arguments(
                title=title, authors=authors, isbn=isbn, cover_url=cover_url, metadata=metadata
            ),
        )

    @tool("delete_book")
    async def delete_book(book_id: str) -> dict[str, Any]:
        return await call("delete_book", {"book_id": book_id})

    @tool("add_location")
    async def add_location(name: str, description: str | None = None) -> dict[str, Any]:
        return await call("add_location", _arguments(name=name, description=description))

    @tool("add_copy")
    async def add_copy(
        book_id: str,
        location_id: str | None = None,
        barcode: str | None = None,
        status: str = "available",
        notes: str | None = None,
    ) -> dict[str, Any]:
        return await call(
            "add_copy",
            _arguments(
                book_id=book_id,
                location_id=location_id,
                barcode=barcode,
                status=status,
                notes=notes,
            ),
        )

    @tool("set_copy_status")
    async def set_copy_status(copy_id: str, status: str) -> dict[str, Any]:
        return await call("set_copy_status", {"copy_id": copy_id, "status": status})

    @tool("add_journal_entry")
    async def add_journal_entry(
        child_id: str,
        book_id: str,
        rating: int | None = None,
        review: str | None = None,
        read_date: str | None = None,
    ) -> dict[str, Any]:
        return await call(
            "add_journal_entry",
            _arguments(
                child_id=child_id,
                book_id=book_id,
                rating=rating,
                review=review,
                read_date=read_date,
            ),
        )

    @tool("import_books_csv")
    async def import_books_csv(csv_text: str) -> dict[str, Any]:
        return await call("import_books_csv", {"csv_text": csv_text})


__all__ = ["all_tools", "register_tools"]
