"""
Circulation tools for the Little Library MCP Server.

1. checkout_copy: lend an available copy to a child or a named borrower
2. return_loan: close an open loan and put the copy back on the shelf

Both validate their arguments before touching storage. An unavailable copy
and an already-returned loan are reported with status 400, a missing copy
or loan with 404.
"""

import logging
from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..context import LibraryContext
from ..errors import LibraryError
from ..models import Borrower
from .responses import failed, invalid_arguments, success_response, unexpected

logger = logging.getLogger(__name__)


# =============================================================================
# CHECKOUT TOOL IMPLEMENTATION
# =============================================================================


class CheckoutCopyInput(BaseModel):
    """
    Input schema for the checkout_copy tool.

    A borrower is either a registered child (``child_id``) or a free-text
    name with an optional class. If both are given the child is recorded as
    the borrower and the text is kept alongside.
    """

    copy_id: UUID = Field(
        ...,
        description="ID of the physical copy to lend",
        examples=["0b8f5e44-6a57-4d4e-9f55-0b5f2a1c7e90"],
    )

    child_id: UUID | None = Field(
        default=None,
        description="ID of the registered child borrowing the copy",
    )

    borrower_name: str | None = Field(
        default=None,
        description="Borrower name when no child record is used",
        min_length=1,
        max_length=200,
        examples=["Sam"],
    )

    borrower_class: str | None = Field(
        default=None,
        description="Borrower's class or grade",
        max_length=100,
        examples=["2B"],
    )

    due_date: date | None = Field(
        default=None,
        description="Optional due date",
        examples=["2024-03-01"],
    )

    notes: str | None = Field(
        default=None,
        description="Optional notes about this checkout",
        max_length=500,
    )

    @field_validator("due_date")
    @classmethod
    def validate_due_date(cls, v: date | None) -> date | None:
        """Ensure due date is not in the past."""
        if v is not None and v < datetime.now().date():
            raise ValueError("Due date cannot be in the past")
        return v

    @model_validator(mode="after")
    def require_borrower(self) -> "CheckoutCopyInput":
        if self.child_id is None and not self.borrower_name:
            raise ValueError("Either child_id or borrower_name is required")
        return self


async def checkout_copy_handler(
    arguments: dict[str, Any], library: LibraryContext
) -> dict[str, Any]:
    """
    Handler for the checkout_copy tool.

    Args:
        arguments: Raw arguments from the MCP tools/call request
        library: Services and tenant for this server

    Returns:
        Structured response with the new loan or error information
    """
    try:
        params = CheckoutCopyInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments(logger, e, "Invalid checkout parameters")

    try:
        borrower = Borrower(
            child_id=str(params.child_id) if params.child_id else None,
            borrower_name=params.borrower_name,
            borrower_class=params.borrower_class,
        )
        loan = library.circulation.checkout(
            str(params.copy_id),
            borrower,
            library.tenant,
            due_date=params.due_date,
            notes=params.notes,
        )
    except LibraryError as e:
        return failed(logger, "Checkout", e)
    except Exception as e:
        return unexpected(logger, "checkout_copy", e)

    message = f"Checked out copy {loan.copy_id} to {loan.borrower_label}."
    if loan.due_date:
        message += f" Due date: {loan.due_date.strftime('%B %d, %Y')}"

    return success_response(message, {"loan": loan.model_dump(mode="json")})


# =============================================================================
# RETURN TOOL IMPLEMENTATION
# =============================================================================


class ReturnLoanInput(BaseModel):
    """Input schema for the return_loan tool."""

    loan_id: UUID = Field(
        ...,
        description="ID of the open loan to close",
        examples=["5d1c2b7a-3e4f-4a5b-8c9d-0e1f2a3b4c5d"],
    )


async def return_loan_handler(arguments: dict[str, Any], library: LibraryContext) -> dict[str, Any]:
    """
    Handler for the return_loan tool.

    Returning is not idempotent: a second return of the same loan reports
    "Book already returned" and leaves the copy as it is.
    """
    try:
        params = ReturnLoanInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_arguments(logger, e, "Invalid return parameters")

    try:
        loan = library.circulation.return_loan(str(params.loan_id), library.tenant)
    except LibraryError as e:
        return failed(logger, "Return", e)
    except Exception as e:
        return unexpected(logger, "return_loan", e)

    return success_response(
        f"Returned loan {loan.id}; copy {loan.copy_id} is available again.",
        {"loan": loan.model_dump(mode="json")},
    )


# =============================================================================
# TOOL DEFINITIONS
# =============================================================================

checkout_copy_tool = {
    "name": "checkout_copy",
    "description": (
        "Lend an available copy to a registered child or a named borrower. "
        "Fails if the copy is checked out, lost or damaged."
    ),
    "inputSchema": CheckoutCopyInput.model_json_schema(),
    "handler": checkout_copy_handler,
}

return_loan_tool = {
    "name": "return_loan",
    "description": "Close an open loan and make the copy available again.",
    "inputSchema": ReturnLoanInput.model_json_schema(),
    "handler": return_loan_handler,
}

circulation_tools = [checkout_copy_tool, return_loan_tool]
