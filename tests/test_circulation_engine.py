"""
Tests for the circulation engine.

These tests pin down the checkout/return state machine:
1. Round trips leave exactly one closed loan and an available copy
2. A copy can only be lent once at a time, even against a stale read
3. Returns are not idempotent
4. A failure halfway through a transition leaves nothing behind
5. Every lookup is confined to the caller's organization
"""

import threading
from datetime import date, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from little_library.database import (
    CheckoutCreateSchema,
    CirculationRepository,
    CopyCreateSchema,
    CopyRepository,
    RecordStore,
)
from little_library.database import Loan as LoanDB
from little_library.errors import (
    ConflictError,
    CopyUnavailableError,
    LibraryError,
    LoanAlreadyReturnedError,
    NotFoundError,
    StoreUnavailableError,
)
from little_library.models import Borrower, CopyStatus, LoanFilter
from little_library.services import CirculationEngine


def copy_status(library, copy_id) -> CopyStatus:
    with library.store.unit_of_work() as session:
        return CopyRepository(session, library.tenant).require(copy_id).status


def count_loans(library, copy_id, open_only=False) -> int:
    query = select(func.count()).select_from(LoanDB).where(LoanDB.copy_id == copy_id)
    if open_only:
        query = query.where(LoanDB.returned_at.is_(None))
    with library.store.unit_of_work() as session:
        return session.execute(query).scalar()


class TestCheckout:
    def test_checkout_child(self, library, copy, child):
        loan = library.circulation.checkout(copy.id, Borrower(child_id=child.id), library.tenant)

        assert loan.copy_id == copy.id
        assert loan.child_id == child.id
        assert loan.org_id == library.tenant.org_id
        assert loan.returned_at is None
        assert loan.is_open
        assert copy_status(library, copy.id) == CopyStatus.CHECKED_OUT

    def test_checkout_free_text_borrower(self, library, copy):
        due = date.today() + timedelta(days=14)
        loan = library.circulation.checkout(
            copy.id,
            Borrower(borrower_name="Sam", borrower_class="3A"),
            library.tenant,
            due_date=due,
            notes="Class read-aloud",
        )

        assert loan.child_id is None
        assert loan.borrower_label == "Sam (3A)"
        assert loan.due_date == due
        assert loan.notes == "Class read-aloud"

    def test_child_and_text_both_kept(self, library, copy, child):
        loan = library.circulation.checkout(
            copy.id, Borrower(child_id=child.id, borrower_name="Mia B."), library.tenant
        )
        assert loan.child_id == child.id
        assert loan.borrower_name == "Mia B."

    def test_borrower_required(self):
        with pytest.raises(ValueError):
            Borrower()

    def test_unknown_copy(self, library, child):
        with pytest.raises(NotFoundError, match="Copy not found"):
            library.circulation.checkout(
                "00000000-0000-0000-0000-000000000000", Borrower(child_id=child.id), library.tenant
            )

    def test_unknown_child(self, library, copy):
        with pytest.raises(NotFoundError, match="Child not found"):
            library.circulation.checkout(
                copy.id, Borrower(child_id="00000000-0000-0000-0000-000000000000"), library.tenant
            )
        assert copy_status(library, copy.id) == CopyStatus.AVAILABLE

    def test_deleted_child_cannot_borrow(self, library, copy, child):
        library.children.delete(child.id, library.tenant)
        with pytest.raises(NotFoundError):
            library.circulation.checkout(copy.id, Borrower(child_id=child.id), library.tenant)

    def test_double_checkout_rejected(self, library, copy, open_loan):
        with pytest.raises(CopyUnavailableError) as exc_info:
            library.circulation.checkout(copy.id, Borrower(borrower_name="Sam"), library.tenant)

        assert isinstance(exc_info.value, ConflictError)
        assert exc_info.value.status_code == 400
        assert exc_info.value.status == "checked_out"
        assert count_loans(library, copy.id, open_only=True) == 1

    @pytest.mark.parametrize("status", [CopyStatus.LOST, CopyStatus.DAMAGED])
    def test_lost_and_damaged_rejected(self, library, copy, status):
        library.catalogue.set_copy_status(copy.id, status, library.tenant)

        with pytest.raises(CopyUnavailableError, match=status.value):
            library.circulation.checkout(copy.id, Borrower(borrower_name="Sam"), library.tenant)

        assert copy_status(library, copy.id) == status
        assert count_loans(library, copy.id) == 0

    def test_stale_read_cannot_double_lend(self, library, copy):
        """A session that saw the copy available loses to a checkout committed meanwhile."""
        with library.store.unit_of_work() as session:
            stale = CopyRepository(session, library.tenant).require(copy.id)
            assert stale.status == CopyStatus.AVAILABLE

            library.circulation.checkout(copy.id, Borrower(borrower_name="First"), library.tenant)

            with pytest.raises(CopyUnavailableError):
                CirculationRepository(session, library.tenant).checkout(
                    CheckoutCreateSchema(copy_id=copy.id, borrower=Borrower(borrower_name="Second"))
                )

        assert count_loans(library, copy.id) == 1
        assert copy_status(library, copy.id) == CopyStatus.CHECKED_OUT

    def test_open_loan_index_backs_up_status(self, library, copy):
        """An orphan open loan on an 'available' copy still blocks a second open loan."""
        with library.store.unit_of_work() as session:
            session.add(
                LoanDB(org_id=library.tenant.org_id, copy_id=copy.id, borrower_name="Orphan")
            )

        with pytest.raises(CopyUnavailableError):
            library.circulation.checkout(copy.id, Borrower(borrower_name="Sam"), library.tenant)

        # The status flip was rolled back with the failed insert
        assert copy_status(library, copy.id) == CopyStatus.AVAILABLE
        assert count_loans(library, copy.id, open_only=True) == 1

    def test_failed_loan_insert_rolls_back_status(self, library, copy, monkeypatch):
        def broken_insert(self, checkout_data, now):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(CirculationRepository, "_insert_loan", broken_insert)

        with pytest.raises(RuntimeError):
            library.circulation.checkout(copy.id, Borrower(borrower_name="Sam"), library.tenant)

        assert copy_status(library, copy.id) == CopyStatus.AVAILABLE
        assert count_loans(library, copy.id) == 0

    def test_other_integrity_errors_propagate(self, library, copy):
        """Only the open-loan index means the copy is taken; other constraint failures surface."""
        unattributed = CheckoutCreateSchema.model_construct(
            copy_id=copy.id,
            borrower=Borrower.model_construct(
                child_id=None, borrower_name=None, borrower_class=None
            ),
            due_date=None,
            notes=None,
        )

        with pytest.raises(IntegrityError, match="CHECK"):
            with library.store.unit_of_work() as session:
                CirculationRepository(session, library.tenant).checkout(unattributed)

        assert copy_status(library, copy.id) == CopyStatus.AVAILABLE
        assert count_loans(library, copy.id) == 0


class TestReturn:
    def test_round_trip(self, library, copy, open_loan):
        returned = library.circulation.return_loan(open_loan.id, library.tenant)

        assert returned.id == open_loan.id
        assert returned.returned_at is not None
        assert returned.returned_at >= returned.checked_out_at
        assert copy_status(library, copy.id) == CopyStatus.AVAILABLE
        assert count_loans(library, copy.id) == 1
        assert count_loans(library, copy.id, open_only=True) == 0

    def test_copy_can_be_lent_again(self, library, copy, open_loan):
        library.circulation.return_loan(open_loan.id, library.tenant)
        again = library.circulation.checkout(copy.id, Borrower(borrower_name="Sam"), library.tenant)

        assert again.id != open_loan.id
        assert count_loans(library, copy.id) == 2

    def test_double_return_rejected(self, library, copy, open_loan):
        library.circulation.return_loan(open_loan.id, library.tenant)

        with pytest.raises(LoanAlreadyReturnedError, match="Book already returned") as exc_info:
            library.circulation.return_loan(open_loan.id, library.tenant)

        assert exc_info.value.status_code == 400
        assert copy_status(library, copy.id) == CopyStatus.AVAILABLE

    def test_second_return_leaves_copy_status_alone(self, library, copy, open_loan):
        library.circulation.return_loan(open_loan.id, library.tenant)
        library.catalogue.set_copy_status(copy.id, CopyStatus.DAMAGED, library.tenant)

        with pytest.raises(LoanAlreadyReturnedError):
            library.circulation.return_loan(open_loan.id, library.tenant)

        assert copy_status(library, copy.id) == CopyStatus.DAMAGED

    def test_unknown_loan(self, library):
        with pytest.raises(NotFoundError, match="Loan not found"):
            library.circulation.return_loan("00000000-0000-0000-0000-000000000000", library.tenant)

    def test_failed_copy_release_rolls_back_loan(self, library, copy, open_loan, monkeypatch):
        def broken_release(self, copy_id, now):
            raise LibraryError("copy update failed")

        monkeypatch.setattr(CirculationRepository, "_release_copy", broken_release)

        with pytest.raises(LibraryError, match="copy update failed"):
            library.circulation.return_loan(open_loan.id, library.tenant)

        assert library.circulation.get_loan(open_loan.id, library.tenant).returned_at is None
        assert copy_status(library, copy.id) == CopyStatus.CHECKED_OUT

    def test_checked_out_copy_scenario(self, library, copy, open_loan):
        with pytest.raises(CopyUnavailableError):
            library.circulation.checkout(copy.id, Borrower(borrower_name="Sam"), library.tenant)

        library.circulation.return_loan(open_loan.id, library.tenant)
        assert copy_status(library, copy.id) == CopyStatus.AVAILABLE


class TestConcurrentCheckout:
    @pytest.mark.parametrize("attempt", range(5))
    def test_two_threads_race_for_one_copy(self, library, copy, attempt):
        barrier = threading.Barrier(2)
        outcomes = []

        def borrow(name):
            engine = CirculationEngine(library.store)
            barrier.wait()
            try:
                engine.checkout(copy.id, Borrower(borrower_name=name), library.tenant)
                outcomes.append("ok")
            except CopyUnavailableError:
                outcomes.append("unavailable")
            except Exception as e:
                outcomes.append(repr(e))

        threads = [threading.Thread(target=borrow, args=(name,)) for name in ("Ada", "Ben")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(outcomes) == ["ok", "unavailable"]
        assert count_loans(library, copy.id, open_only=True) == 1
        assert copy_status(library, copy.id) == CopyStatus.CHECKED_OUT


class TestTenantIsolation:
    def test_other_org_cannot_see_copy(self, library, other_library, copy):
        with pytest.raises(NotFoundError, match="Copy not found"):
            other_library.circulation.checkout(
                copy.id, Borrower(borrower_name="Intruder"), other_library.tenant
            )
        assert copy_status(library, copy.id) == CopyStatus.AVAILABLE

    def test_other_org_cannot_return_loan(self, library, other_library, copy, open_loan):
        with pytest.raises(NotFoundError):
            other_library.circulation.return_loan(open_loan.id, other_library.tenant)
        assert copy_status(library, copy.id) == CopyStatus.CHECKED_OUT

    def test_other_org_child_cannot_borrow(self, library, other_library, copy):
        outsider = other_library.children.register(other_library.tenant)
        with pytest.raises(NotFoundError, match="Child not found"):
            library.circulation.checkout(copy.id, Borrower(child_id=outsider.id), library.tenant)

    def test_loan_lists_are_separate(self, library, other_library, open_loan):
        assert library.circulation.list_loans(library.tenant).total == 1
        assert other_library.circulation.list_loans(other_library.tenant).total == 0


class TestListLoans:
    def test_filters(self, library, book, child):
        copies = [
            library.catalogue.add_copy(CopyCreateSchema(book_id=book.id), library.tenant)
            for _ in range(3)
        ]
        loans = [
            library.circulation.checkout(c.id, Borrower(child_id=child.id), library.tenant)
            for c in copies
        ]
        library.circulation.return_loan(loans[0].id, library.tenant)

        everything = library.circulation.list_loans(library.tenant)
        active = library.circulation.list_loans(library.tenant, LoanFilter.ACTIVE)
        returned = library.circulation.list_loans(library.tenant, LoanFilter.RETURNED)

        assert everything.total == 3
        assert {loan.id for loan in active.items} == {loans[1].id, loans[2].id}
        assert [loan.id for loan in returned.items] == [loans[0].id]

        detail = returned.items[0]
        assert detail.book_copy.book.title == "The Gruffalo"
        assert detail.child is not None
        assert detail.child.emoji_id == child.emoji_id


class TestStoreUnavailable:
    def test_unreachable_store(self, tmp_path, tenant):
        broken = RecordStore(f"sqlite:///{tmp_path}/missing/dir/library.db")
        engine = CirculationEngine(broken)

        with pytest.raises(StoreUnavailableError) as exc_info:
            engine.return_loan("00000000-0000-0000-0000-000000000000", tenant)

        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 503
