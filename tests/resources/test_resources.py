"""
Tests for the read-side resources.

Resource handlers raise ``ResourceError`` for bad URIs and failed lookups,
which FastMCP turns into protocol errors.
"""

from urllib.parse import quote

import pytest
from fastmcp.exceptions import ResourceError

from little_library.database import JournalEntryCreateSchema
from little_library.models import Borrower
from little_library.resources.catalog import (
    list_books_handler,
    list_copies_handler,
    list_locations_handler,
)
from little_library.resources.loans import LOANS_PAGE_SIZE, list_loans_handler
from little_library.resources.readers import get_reader_handler, list_children_handler


class TestReaderResource:
    async def test_lookup_by_emoji_id(self, library, child, book):
        library.catalogue.add_journal_entry(
            JournalEntryCreateSchema(child_id=child.id, book_id=book.id, rating=3),
            library.tenant,
        )

        result = await get_reader_handler(child.emoji_id, library)

        assert result["child"]["id"] == child.id
        assert result["entries"][0]["book"]["title"] == "The Gruffalo"

    async def test_percent_encoded_emoji_id(self, library, child):
        result = await get_reader_handler(quote(child.emoji_id), library)
        assert result["child"]["emoji_id"] == child.emoji_id

    async def test_unknown_emoji_id(self, library, child):
        library.children.assign_custom_identifier(child.id, "🐝🐝🐝", library.tenant)

        with pytest.raises(ResourceError, match="Reader not found"):
            await get_reader_handler("🦄🦄🦄", library)

    async def test_other_org_reader_hidden(self, other_library, child):
        with pytest.raises(ResourceError):
            await get_reader_handler(child.emoji_id, other_library)

    async def test_list_children(self, library, child):
        result = await list_children_handler(library)

        assert result["total"] == 1
        assert result["children"][0]["emoji_id"] == child.emoji_id


class TestLoanResources:
    async def test_active_and_returned(self, library, copy, open_loan):
        active = await list_loans_handler("active", library)
        returned = await list_loans_handler("RETURNED", library)

        assert active["filter"] == "active"
        assert [loan["id"] for loan in active["loans"]] == [open_loan.id]
        assert active["loans"][0]["book_copy"]["book"]["title"] == "The Gruffalo"
        assert returned["loans"] == []

    async def test_pagination(self, library, open_loan):
        result = await list_loans_handler("all", library, "1")

        assert result["pagination"]["page_size"] == LOANS_PAGE_SIZE
        assert result["pagination"]["total"] == 1
        assert result["pagination"]["has_next"] is False

    async def test_invalid_filter(self, library):
        with pytest.raises(ResourceError, match="Invalid loan filter"):
            await list_loans_handler("overdue", library)

    @pytest.mark.parametrize("page", ["0", "two"])
    async def test_invalid_page(self, library, page):
        with pytest.raises(ResourceError):
            await list_loans_handler("all", library, page)

    async def test_loans_are_per_org(self, other_library, open_loan):
        result = await list_loans_handler("all", other_library)
        assert result["pagination"]["total"] == 0


class TestCatalogueResources:
    async def test_books_and_locations(self, library, book, location):
        books = await list_books_handler(library)
        locations = await list_locations_handler(library)

        assert books["total"] == 1
        assert books["books"][0]["authors"] == ["Julia Donaldson", "Axel Scheffler"]
        assert locations["locations"][0]["name"] == "Reading corner"

    async def test_copies_by_status(self, library, copy, child):
        library.circulation.checkout(copy.id, Borrower(child_id=child.id), library.tenant)

        checked_out = await list_copies_handler("checked_out", library)
        available = await list_copies_handler("available", library)

        assert checked_out["filter"] == "checked_out"
        assert [c["id"] for c in checked_out["copies"]] == [copy.id]
        assert available["total"] == 0

    async def test_invalid_copy_status(self, library):
        with pytest.raises(ResourceError, match="Invalid copy status"):
            await list_copies_handler("borrowed", library)
