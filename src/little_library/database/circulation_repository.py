"""
Circulation repository implementation for the Little Library MCP Server.

This repository performs the two circulation transitions:

1. **Checkout**: ``available -> checked_out`` plus a new open loan
2. **Return**: close the open loan plus ``checked_out -> available``

Neither transition reads a status and then writes it back. Each starts with
a conditional UPDATE whose WHERE clause carries the precondition
(``status = 'available'`` or ``returned_at IS NULL``); when the row count is
zero the precondition failed, whatever this session believed a moment ago.
Two requests racing for one copy therefore cannot both win. The open-loan
partial unique index backs this up at the schema level.

Both steps of a transition run in the caller's unit of work, so they commit
or roll back together.
"""

import logging
from datetime import date, datetime

from pydantic import BaseModel
from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..errors import CopyUnavailableError, LibraryError, LoanAlreadyReturnedError, NotFoundError
from ..models.circulation import Borrower, LoanFilter, LoanWithDetails
from ..models.circulation import Loan as LoanModel
from ..models.reader import Child as ChildModel
from .catalog_repository import copy_with_book_to_model
from .reader_repository import ChildRepository
from .repository import BaseRepository, PaginatedResponse, PaginationParams
from .schema import Copy as CopyDB
from .schema import CopyStatusEnum
from .schema import Loan as LoanDB
from .session import store_safe_query, violates_index

logger = logging.getLogger(__name__)


class CheckoutCreateSchema(BaseModel):
    """Schema for creating a checkout."""

    copy_id: str
    borrower: Borrower
    due_date: date | None = None
    notes: str | None = None


class CirculationRepository(BaseRepository[LoanDB, LoanModel]):
    """
    Repository for loans and the copy status they control.

    Operations flush but do not commit; use them inside
    ``RecordStore.unit_of_work()``.
    """

    entity_name = "Loan"

    @property
    def model_class(self):
        return LoanDB

    def _to_response_model(self, db_obj: LoanDB) -> LoanModel:
        return LoanModel.model_validate(db_obj, from_attributes=True)

    def checkout(self, checkout_data: CheckoutCreateSchema) -> LoanModel:
        """
        Check a copy out to a borrower.

        Args:
            checkout_data: Copy, borrower and optional due date/notes

        Returns:
            The new open loan

        Raises:
            NotFoundError: If the copy or the given child does not resolve
            CopyUnavailableError: If the copy is not available right now
        """
        borrower = checkout_data.borrower
        if borrower.child_id:
            # Attribution goes to the child; a missing child is a bad reference
            ChildRepository(self.session, self.tenant).require(borrower.child_id)

        now = datetime.now()
        self._claim_copy(checkout_data.copy_id, now)

        loan = self._insert_loan(checkout_data, now)
        logger.info(
            "Copy %s checked out as loan %s in organization %s",
            checkout_data.copy_id,
            loan.id,
            self.tenant,
        )
        return loan

    def return_loan(self, loan_id: str) -> LoanModel:
        """
        Close an open loan and make its copy available again.

        Not idempotent: returning a closed loan is an error.

        Raises:
            NotFoundError: If the loan does not resolve
            LoanAlreadyReturnedError: If the loan is already closed
        """
        now = datetime.now()
        result = self.session.execute(
            update(LoanDB)
            .where(
                LoanDB.id == loan_id,
                self.tenant.where(LoanDB),
                LoanDB.returned_at.is_(None),
            )
            .values(returned_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            if not self.exists(loan_id):
                raise NotFoundError("Loan not found")
            raise LoanAlreadyReturnedError(loan_id)

        self.session.expire_all()
        loan = self._require_db(loan_id)
        self._release_copy(loan.copy_id, now)

        logger.info(
            "Loan %s returned, copy %s available in organization %s",
            loan_id,
            loan.copy_id,
            self.tenant,
        )
        return self._to_response_model(loan)

    def _claim_copy(self, copy_id: str, now: datetime) -> None:
        """Flip ``available -> checked_out`` only if the copy is available."""
        result = self.session.execute(
            update(CopyDB)
            .where(
                CopyDB.id == copy_id,
                self.tenant.where(CopyDB),
                CopyDB.deleted_at.is_(None),
                CopyDB.status == CopyStatusEnum.AVAILABLE,
            )
            .values(status=CopyStatusEnum.CHECKED_OUT, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        current = store_safe_query(
            self.session,
            lambda s: s.execute(
                select(CopyDB.status).where(
                    CopyDB.id == copy_id,
                    self.tenant.where(CopyDB),
                    CopyDB.deleted_at.is_(None),
                )
            ).scalar_one_or_none(),
            "Failed to get copy status",
        )
        if current is None:
            raise NotFoundError("Copy not found")
        raise CopyUnavailableError(copy_id, CopyStatusEnum(current).value)

    def _insert_loan(self, checkout_data: CheckoutCreateSchema, now: datetime) -> LoanModel:
        borrower = checkout_data.borrower
        loan = LoanDB(
            org_id=self.tenant.org_id,
            copy_id=checkout_data.copy_id,
            child_id=borrower.child_id or None,
            borrower_name=borrower.borrower_name or None,
            borrower_class=borrower.borrower_class or None,
            checked_out_at=now,
            due_date=checkout_data.due_date,
            notes=checkout_data.notes or None,
        )
        self.session.add(loan)
        try:
            self.session.flush()
        except IntegrityError as e:
            if not violates_index(e, "uq_loan_open_per_copy", "loans.copy_id"):
                raise
            # Another open loan for this copy slipped in
            raise CopyUnavailableError(checkout_data.copy_id) from e
        return self._to_response_model(loan)

    def _release_copy(self, copy_id: str, now: datetime) -> None:
        result = self.session.execute(
            update(CopyDB)
            .where(CopyDB.id == copy_id, self.tenant.where(CopyDB))
            .values(status=CopyStatusEnum.AVAILABLE, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # The loan references a copy this tenant cannot see
            raise LibraryError(f"Loan references missing copy {copy_id}")

    def get_loan(self, loan_id: str) -> LoanModel:
        return self.require(loan_id)

    def open_loan_for_copy(self, copy_id: str) -> LoanModel | None:
        query = self._scoped().where(LoanDB.copy_id == copy_id, LoanDB.returned_at.is_(None))
        loan = store_safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get open loan for copy",
        )
        return self._to_response_model(loan) if loan is not None else None

    def list_loans(
        self,
        status_filter: LoanFilter = LoanFilter.ALL,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[LoanWithDetails]:
        """
        List loans newest first, with copy, book and child attached.

        Args:
            status_filter: all, active (open) or returned
            pagination: Pagination parameters
        """
        query = self._scoped()
        if status_filter == LoanFilter.ACTIVE:
            query = query.where(LoanDB.returned_at.is_(None))
        elif status_filter == LoanFilter.RETURNED:
            query = query.where(LoanDB.returned_at.is_not(None))

        query = query.order_by(desc(LoanDB.checked_out_at))
        options = (
            joinedload(LoanDB.copy).joinedload(CopyDB.book),
            joinedload(LoanDB.copy).joinedload(CopyDB.location),
            joinedload(LoanDB.child),
        )
        return self._paginate(query, pagination, self._loan_with_details, options)

    def _loan_with_details(self, loan: LoanDB) -> LoanWithDetails:
        return LoanWithDetails(
            **self._to_response_model(loan).model_dump(),
            book_copy=copy_with_book_to_model(loan.copy),
            child=ChildModel.model_validate(loan.child, from_attributes=True)
            if loan.child
            else None,
        )
