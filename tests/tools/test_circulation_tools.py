"""
Tests for the checkout_copy and return_loan tools.

These tests cover what an MCP client sees:
1. Argument validation before storage is touched
2. Success payloads
3. Error status codes for unavailable copies and repeated returns
"""

from datetime import date, timedelta

from little_library.errors import StoreUnavailableError
from little_library.models import CopyStatus
from little_library.tools.circulation import checkout_copy_handler, return_loan_handler

MISSING_ID = "00000000-0000-0000-0000-000000000000"


class TestCheckoutCopyTool:
    async def test_checkout_to_child(self, library, copy, child):
        result = await checkout_copy_handler(
            {"copy_id": copy.id, "child_id": child.id}, library
        )

        assert "isError" not in result
        assert f"child {child.id}" in result["content"][0]["text"]
        loan = result["data"]["loan"]
        assert loan["copy_id"] == copy.id
        assert loan["child_id"] == child.id
        assert loan["returned_at"] is None

    async def test_checkout_with_due_date(self, library, copy):
        due = date.today() + timedelta(days=7)
        result = await checkout_copy_handler(
            {"copy_id": copy.id, "borrower_name": "Sam", "due_date": due.isoformat()}, library
        )

        assert result["data"]["loan"]["due_date"] == due.isoformat()
        assert "Due date" in result["content"][0]["text"]

    async def test_missing_borrower(self, library, copy):
        result = await checkout_copy_handler({"copy_id": copy.id}, library)

        assert result["isError"] is True
        assert result["error"]["status"] == 400
        assert result["error"]["type"] == "validation_error"
        assert result["error"]["details"][0]["field"] == "__root__"

    async def test_malformed_copy_id(self, library):
        result = await checkout_copy_handler(
            {"copy_id": "not-a-uuid", "borrower_name": "Sam"}, library
        )

        assert result["error"]["status"] == 400
        assert [d["field"] for d in result["error"]["details"]] == ["copy_id"]
        assert "copy_id" in result["content"][0]["text"]

    async def test_every_violation_reported(self, library):
        result = await checkout_copy_handler(
            {"copy_id": "nope", "borrower_name": "", "due_date": "2000-01-01"}, library
        )

        fields = {d["field"] for d in result["error"]["details"]}
        assert {"copy_id", "borrower_name", "due_date"} <= fields

    async def test_unknown_copy(self, library):
        result = await checkout_copy_handler(
            {"copy_id": MISSING_ID, "borrower_name": "Sam"}, library
        )

        assert result["error"]["status"] == 404
        assert result["error"]["message"] == "Copy not found"

    async def test_unavailable_copy(self, library, copy, open_loan):
        result = await checkout_copy_handler(
            {"copy_id": copy.id, "borrower_name": "Sam"}, library
        )

        assert result["isError"] is True
        assert result["error"]["status"] == 400
        assert result["error"]["type"] == "conflict"
        assert "checked_out" in result["error"]["message"]

    async def test_damaged_copy(self, library, copy):
        library.catalogue.set_copy_status(copy.id, CopyStatus.DAMAGED, library.tenant)

        result = await checkout_copy_handler(
            {"copy_id": copy.id, "borrower_name": "Sam"}, library
        )

        assert result["error"]["status"] == 400
        assert "damaged" in result["error"]["message"]

    async def test_other_org_cannot_borrow(self, other_library, copy):
        result = await checkout_copy_handler(
            {"copy_id": copy.id, "borrower_name": "Intruder"}, other_library
        )
        assert result["error"]["status"] == 404


class TestReturnLoanTool:
    async def test_return(self, library, copy, open_loan):
        result = await return_loan_handler({"loan_id": open_loan.id}, library)

        assert "isError" not in result
        assert result["data"]["loan"]["returned_at"] is not None
        assert library.catalogue.list_copies(library.tenant, CopyStatus.AVAILABLE)[0].id == copy.id

    async def test_second_return(self, library, open_loan):
        await return_loan_handler({"loan_id": open_loan.id}, library)
        result = await return_loan_handler({"loan_id": open_loan.id}, library)

        assert result["isError"] is True
        assert result["error"]["status"] == 400
        assert result["error"]["message"] == "Book already returned"
        assert result["content"][0]["text"] == "Book already returned"

    async def test_unknown_loan(self, library):
        result = await return_loan_handler({"loan_id": MISSING_ID}, library)
        assert result["error"]["status"] == 404

    async def test_missing_loan_id(self, library):
        result = await return_loan_handler({}, library)

        assert result["error"]["status"] == 400
        assert result["error"]["details"][0]["field"] == "loan_id"

    async def test_store_failure_is_retryable(self, library, open_loan, monkeypatch):
        def unavailable(*args, **kwargs):
            raise StoreUnavailableError("Database is locked")

        monkeypatch.setattr(library.circulation, "return_loan", unavailable)

        result = await return_loan_handler({"loan_id": open_loan.id}, library)

        assert result["error"]["status"] == 503
        assert result["error"]["retryable"] is True

    async def test_unexpected_error_is_reported(self, library, open_loan, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(library.circulation, "return_loan", explode)

        result = await return_loan_handler({"loan_id": open_loan.id}, library)

        assert result["isError"] is True
        assert result["error"]["status"] == 500
        assert "boom" in result["error"]["message"]
