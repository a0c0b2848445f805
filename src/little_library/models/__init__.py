"""
Little Library MCP Server Models.

Pydantic models returned by repositories and serialized into tool and
resource responses:

- Catalogue: Book, Location, Copy
- Readers: Child, JournalEntry, ReaderJournal
- Circulation: Loan, Borrower
"""

from .catalog import Book, Copy, CopyStatus, CopyWithBook, Location
from .circulation import Borrower, Loan, LoanFilter, LoanWithDetails
from .reader import Child, JournalEntry, JournalEntryWithBook, ReaderJournal

__all__ = [
    "Book",
    "Borrower",
    "Child",
    "Copy",
    "CopyStatus",
    "CopyWithBook",
    "JournalEntry",
    "JournalEntryWithBook",
    "Loan",
    "LoanFilter",
    "LoanWithDetails",
    "Location",
    "ReaderJournal",
]
