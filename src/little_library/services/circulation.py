"""
Circulation engine for the Little Library MCP Server.

Checkout and return each touch two records (the copy's status and the
loan). The engine runs both writes in a single unit of work so that a
failure at any point leaves neither applied; the repository makes each
write conditional on the state it expects, so two concurrent requests for
one copy cannot both succeed.
"""

import logging
from datetime import date

from ..database import (
    CheckoutCreateSchema,
    CirculationRepository,
    PaginatedResponse,
    PaginationParams,
    RecordStore,
)
from ..models import Borrower, Loan, LoanFilter, LoanWithDetails
from ..tenancy import TenantScope

logger = logging.getLogger(__name__)


class CirculationEngine:
    """Checks copies out and back in for one tenant per call."""

    def __init__(self, store: RecordStore):
        self.store = store

    def checkout(
        self,
        copy_id: str,
        borrower: Borrower,
        tenant: TenantScope,
        due_date: date | None = None,
        notes: str | None = None,
    ) -> Loan:
        """
        Lend a copy.

        Raises:
            NotFoundError: Copy or child does not resolve under ``tenant``
            CopyUnavailableError: Copy is checked out, lost or damaged
            StoreUnavailableError: The store failed; nothing was written
        """
        data = CheckoutCreateSchema(
            copy_id=copy_id, borrower=borrower, due_date=due_date, notes=notes
        )
        with self.store.unit_of_work() as session:
            loan = CirculationRepository(session, tenant).checkout(data)
        logger.debug("Checkout committed: loan %s", loan.id)
        return loan

    def return_loan(self, loan_id: str, tenant: TenantScope) -> Loan:
        """
        Close a loan and make its copy available.

        Raises:
            NotFoundError: Loan does not resolve under ``tenant``
            LoanAlreadyReturnedError: Loan was already closed
            StoreUnavailableError: The store failed; nothing was written
        """
        with self.store.unit_of_work() as session:
            loan = CirculationRepository(session, tenant).return_loan(loan_id)
        logger.debug("Return committed: loan %s", loan.id)
        return loan

    def get_loan(self, loan_id: str, tenant: TenantScope) -> Loan:
        with self.store.unit_of_work() as session:
            return CirculationRepository(session, tenant).get_loan(loan_id)

    def list_loans(
        self,
        tenant: TenantScope,
        status_filter: LoanFilter = LoanFilter.ALL,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[LoanWithDetails]:
        with self.store.unit_of_work() as session:
            return CirculationRepository(session, tenant).list_loans(status_filter, pagination)
