"""
Circulation models for the Little Library MCP Server.

A Loan links one copy to one borrower. It is open while ``returned_at`` is
empty; checkout creates it and return closes it exactly once.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .catalog import CopyWithBook
from .reader import Child


class LoanFilter(str, Enum):
    """Which loans a listing should include."""

    ALL = "all"
    ACTIVE = "active"
    RETURNED = "returned"


class Borrower(BaseModel):
    """
    Who is borrowing a copy.

    A registered child is preferred; the free-text name and class cover
    borrowers with no child record. When both are given the child is
    authoritative for attribution and the text is kept as given.
    """

    child_id: str | None = None
    borrower_name: str | None = Field(None, max_length=200)
    borrower_class: str | None = Field(None, max_length=100)

    @model_validator(mode="after")
    def require_identity(self) -> "Borrower":
        if not self.child_id and not self.borrower_name:
            raise ValueError("Either child_id or borrower_name is required")
        return self


class Loan(BaseModel):
    """A borrowing record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    org_id: str
    copy_id: str
    child_id: str | None = None
    borrower_name: str | None = None
    borrower_class: str | None = None
    checked_out_at: datetime
    due_date: date | None = None
    returned_at: datetime | None = None
    notes: str | None = None

    @property
    def is_open(self) -> bool:
        return self.returned_at is None

    @property
    def borrower_label(self) -> str:
        """Human-readable borrower for tool messages."""
        if self.borrower_name and self.borrower_class:
            return f"{self.borrower_name} ({self.borrower_class})"
        return self.borrower_name or f"child {self.child_id}"


class LoanWithDetails(Loan):
    """Loan joined with its copy, book and child for listings."""

    book_copy: CopyWithBook
    child: Child | None = None
