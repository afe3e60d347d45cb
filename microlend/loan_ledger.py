"""
loan_ledger.py - Loan records, update records and identifier allocation

The LoanLedger is the only object that stores loans. It does not validate
business rules; LoanEngine decides what to write and the ledger keeps the
structural invariants:

    - Identifiers are dense, zero-based and strictly increasing
    - An identifier is never reused, whatever state its loan is in
    - Loans are never deleted
    - At most one LoanUpdateRecord exists per loan (latest wins)
"""

from __future__ import annotations
from typing import Dict, Iterator, List, Optional

from .core import DEFAULT_MAX_LOANS, LoanRecord, LoanUpdateRecord, MicroLendError


class LoanLedger:
    """
    Mapping of loan ids to loan records and to their latest update record.

    Not thread-safe. LoanEngine holds the lock that serializes access.

    Example:
        ledger = LoanLedger(max_loans=10)
        loan_id = ledger.next_loan_id      # 0
        ledger.insert(loan_id, record)
        ledger.get(0)                      # record
        ledger.loan_count                  # 1
    """

    def __init__(self, max_loans: int = DEFAULT_MAX_LOANS, test_mode: bool = False):
        """
        Create an empty ledger.

        Args:
            max_loans: Ceiling on the identifier space (ids 0..max_loans-1)
            test_mode: Allow seed() calls (default: False)
        """
        if max_loans < 0:
            raise ValueError(f"max_loans cannot be negative, got {max_loans}")
        self.max_loans = max_loans
        self._loans: Dict[int, LoanRecord] = {}
        self._updates: Dict[int, LoanUpdateRecord] = {}
        self._next_loan_id: int = 0
        self._test_mode = test_mode

    # ========================================================================
    # READ-ONLY ACCESS
    # ========================================================================

    @property
    def next_loan_id(self) -> int:
        """The id the next insert must use."""
        return self._next_loan_id

    @property
    def loan_count(self) -> int:
        """Loans ever issued. Not a count of active loans."""
        return self._next_loan_id

    @property
    def is_exhausted(self) -> bool:
        return self._next_loan_id >= self.max_loans

    def exists(self, loan_id: int) -> bool:
        return loan_id in self._loans

    def get(self, loan_id: int) -> Optional[LoanRecord]:
        return self._loans.get(loan_id)

    def get_update(self, loan_id: int) -> Optional[LoanUpdateRecord]:
        return self._updates.get(loan_id)

    def loans(self, borrower: Optional[str] = None) -> List[tuple[int, LoanRecord]]:
        """(id, record) pairs in id order, optionally for one borrower."""
        return [
            (loan_id, loan)
            for loan_id, loan in sorted(self._loans.items())
            if borrower is None or loan.borrower == borrower
        ]

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._loans))

    def __len__(self) -> int:
        return len(self._loans)

    # ========================================================================
    # MUTATION
    # ========================================================================

    def insert(self, loan_id: int, record: LoanRecord) -> int:
        """
        Store a new loan under the next identifier and advance the counter.

        Args:
            loan_id: Must equal next_loan_id
            record: The loan to store

        Returns:
            The allocated loan id

        Raises:
            MicroLendError: If loan_id is not the next id, is occupied, or the
                            identifier space is exhausted
        """
        if self.is_exhausted:
            raise MicroLendError(f"loan id space exhausted (max_loans={self.max_loans})")
        if loan_id != self._next_loan_id:
            raise MicroLendError(f"expected loan id {self._next_loan_id}, got {loan_id}")
        if loan_id in self._loans:
            raise MicroLendError(f"loan {loan_id} already exists")
        self._loans[loan_id] = record
        self._next_loan_id += 1
        return loan_id

    def replace(self, loan_id: int, record: LoanRecord) -> None:
        """
        Swap the stored record for an existing loan.

        Raises:
            MicroLendError: If the loan does not exist or the borrower changed
        """
        current = self._loans.get(loan_id)
        if current is None:
            raise MicroLendError(f"loan {loan_id} not found")
        if record.borrower != current.borrower:
            raise MicroLendError(f"loan {loan_id}: borrower is immutable")
        self._loans[loan_id] = record

    def record_update(self, loan_id: int, record: LoanRecord, update: LoanUpdateRecord) -> None:
        """Replace a loan's terms and overwrite its update record together."""
        self.replace(loan_id, record)
        self._updates[loan_id] = update

    def seed(self, loan_id: int, record: LoanRecord) -> None:
        """
        Store a record under any id without touching the counter.

        WARNING: This bypasses identifier allocation and is only available in
        test mode. It exists to exercise the occupied-id check.

        Raises:
            MicroLendError: If called when test_mode is False
        """
        if not self._test_mode:
            raise MicroLendError(
                "seed() is disabled in production mode. "
                "Set test_mode=True when creating LoanLedger for testing."
            )
        self._loans[loan_id] = record

    def __repr__(self) -> str:
        return f"LoanLedger({len(self._loans)} loans, next_id={self._next_loan_id}, max={self.max_loans})"
