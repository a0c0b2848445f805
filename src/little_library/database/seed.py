"""
Sample data for the Little Library MCP Server.

Generates a small, believable school library for one organization:
locations, books with one to three copies each, children with emoji IDs,
a loan history (mostly returned, a few still open) and journal entries.

Everything is written through the repositories, so seeded data obeys the
same rules as live data: an open loan always has its copy checked out and
emoji IDs are unique among the organization's children.
"""

import logging
import random
from datetime import date, timedelta

from faker import Faker

from ..identity import IdentityAllocator
from ..models import Borrower, CopyStatus
from ..tenancy import TenantScope
from .catalog_repository import (
    BookCreateSchema,
    BookRepository,
    CopyCreateSchema,
    CopyRepository,
    LocationCreateSchema,
    LocationRepository,
)
from .circulation_repository import CheckoutCreateSchema, CirculationRepository
from .organization_repository import ensure_organization
from .reader_repository import (
    ChildDetailsSchema,
    ChildRepository,
    JournalEntryCreateSchema,
    JournalRepository,
)
from .session import RecordStore

logger = logging.getLogger(__name__)

LOCATION_NAMES = ["Reading corner", "Picture books", "Class 2B shelf", "Library cart"]
CLASSES = ["1A", "1B", "2A", "2B", "3A", "3B", "Year 4", "Year 5"]
LANGUAGES = ["en", "en", "en", "de", "fr", "es"]


def seed_database(
    store: RecordStore,
    tenant: TenantScope,
    organization_name: str = "Sample School Library",
    num_books: int = 30,
    num_children: int = 25,
    num_loans: int = 40,
    seed: int = 42,
) -> dict[str, int]:
    """
    Populate ``tenant`` with sample data.

    Args:
        store: Target record store (tables must exist)
        tenant: Organization to seed
        seed: Seed for Faker and the random draws, for repeatable data

    Returns:
        Counts of created records by kind
    """
    fake = Faker()
    Faker.seed(seed)
    rng = random.Random(seed)
    allocator = IdentityAllocator(rng=rng)

    with store.unit_of_work() as session:
        ensure_organization(session, tenant, organization_name)

        locations = [
            LocationRepository(session, tenant).create(LocationCreateSchema(name=name))
            for name in LOCATION_NAMES
        ]

        books = []
        copies = []
        for _ in range(num_books):
            book = BookRepository(session, tenant).create(
                BookCreateSchema(
                    title=fake.catch_phrase().title(),
                    authors=[fake.name() for _ in range(rng.choice([1, 1, 1, 2]))],
                    isbn=fake.isbn13(separator=""),
                    metadata={
                        "language": rng.choice(LANGUAGES),
                        "reading_level": rng.randint(1, 6),
                    },
                )
            )
            books.append(book)
            for _ in range(rng.randint(1, 3)):
                copies.append(
                    CopyRepository(session, tenant).create(
                        CopyCreateSchema(
                            book_id=book.id,
                            location_id=rng.choice(locations).id,
                            barcode=fake.unique.ean8(),
                        )
                    )
                )

        children_repo = ChildRepository(session, tenant)
        children = []
        for _ in range(num_children):
            emoji_id = allocator.generate_unique(children_repo.active_emoji_ids())
            children.append(
                children_repo.insert(
                    emoji_id,
                    ChildDetailsSchema(
                        name=fake.first_name() if rng.random() < 0.7 else None,
                        grade_or_class=rng.choice(CLASSES),
                    ),
                )
            )

        circulation = CirculationRepository(session, tenant)
        journal = JournalRepository(session, tenant)
        loans = 0
        entries = 0
        for i in range(min(num_loans, len(copies))):
            copy = copies[i]
            child = rng.choice(children)
            loan = circulation.checkout(
                CheckoutCreateSchema(
                    copy_id=copy.id,
                    borrower=Borrower(child_id=child.id),
                    due_date=date.today() + timedelta(days=rng.randint(7, 21)),
                )
            )
            loans += 1
            # Most of the history is already back on the shelf
            if rng.random() < 0.75:
                circulation.return_loan(loan.id)
                if rng.random() < 0.6:
                    journal.add_entry(
                        JournalEntryCreateSchema(
                            child_id=child.id,
                            book_id=copy.book_id,
                            rating=rng.randint(1, 5),
                            review=fake.sentence() if rng.random() < 0.5 else None,
                            read_date=date.today() - timedelta(days=rng.randint(0, 60)),
                        )
                    )
                    entries += 1

        # A couple of copies in poor shape
        copy_repo = CopyRepository(session, tenant)
        for copy in copies[num_loans : num_loans + 2]:
            copy_repo.set_status(copy.id, CopyStatus.DAMAGED)

    counts = {
        "locations": len(locations),
        "books": len(books),
        "copies": len(copies),
        "children": len(children),
        "loans": loans,
        "journal_entries": entries,
    }
    logger.info("Seeded organization %s: %s", tenant, counts)
    return counts
