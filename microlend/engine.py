"""
engine.py - Loan Lifecycle Engine

Orchestrates every state-changing operation on loans and risk parameters:

    request_loan  - validate, charge the issuance fee, issue a new loan
    repay_loan    - apply a borrower payment against the fixed total due
    update_loan   - replace a loan's terms and restart its grace period
    set_*         - authority-gated risk parameter changes

Each operation:
1. Takes the engine lock (one lock guards the ledger and the parameter store)
2. Runs an ordered list of checks; the first failing check is the result
3. Performs the single external effect, if any (request only)
4. Mutates the loan ledger
5. Returns Ok(value) or Err(LoanError)

The order of the checks is part of the contract: callers and tests rely on
which error is reported when several inputs are invalid at once.
"""

from __future__ import annotations
from decimal import Decimal, localcontext
import threading
from typing import Callable, List, Optional, Sequence, Tuple, TYPE_CHECKING

from .core import (
    MAX_LOAN_AMOUNT, MAX_GRACE_PERIOD, MAX_PENALTY_RATE, MIN_COLLATERAL_RATIO,
    ZERO, SUPPORTED_CURRENCIES, DECIMAL_CONTEXT,
    LoanStatus, LoanError,
    LoanRecord, LoanUpdateRecord,
    Ok, Err, Result,
    calculate_repayment, calculate_total_due,
    parse_currency, to_decimal,
)
from .parameters import ParameterSet, ParameterStore
from .loan_ledger import LoanLedger
from .authority import AuthorizationOracle, StaticAuthorityRegistry
from .transfers import InMemoryTransferGateway, TransferGateway, TransferResult
from .logging import get_logger

if TYPE_CHECKING:
    from .config import MicroLendConfig


logger = get_logger(__name__)

# A check passes when its predicate returns True.
Check = Tuple[LoanError, Callable[[], bool]]


def first_failure(checks: Sequence[Check]) -> Optional[LoanError]:
    """
    Evaluate checks in order and return the error of the first that fails.

    Predicates are evaluated lazily, so later checks (including oracle
    queries) never run once an earlier one has failed.
    """
    for error, predicate in checks:
        if not predicate():
            return error
    return None


def term_checks(
    params: ParameterSet,
    amount: Decimal,
    interest_rate: Decimal,
    duration: int,
) -> List[Check]:
    """Bounds shared by loan requests and loan updates, in reporting order."""
    return [
        (LoanError.INVALID_LOAN_AMOUNT,
         lambda: ZERO < amount <= MAX_LOAN_AMOUNT),
        (LoanError.INVALID_INTEREST_RATE,
         lambda: ZERO < interest_rate <= params.max_interest_rate),
        (LoanError.INVALID_REPAYMENT_DURATION,
         lambda: params.min_repayment_duration <= duration <= params.max_repayment_duration),
    ]


def collateral_is_valid(collateral_amount: Decimal, amount: Decimal) -> bool:
    """Zero means uncollateralized and is always accepted."""
    if collateral_amount == ZERO:
        return True
    return collateral_amount >= amount * MIN_COLLATERAL_RATIO


class LoanEngine:
    """
    Single-writer lifecycle engine for micro-loans.

    Every public method, reads included, runs under one re-entrant lock, so
    no operation can observe another's partial mutation.

    Example:
        registry = StaticAuthorityRegistry(["ST1BORROWER"])
        gateway = InMemoryTransferGateway()
        engine = LoanEngine(oracle=registry, gateway=gateway)
        engine.set_authority_contract("ST2AUTH")

        result = engine.request_loan(
            caller="ST1BORROWER", now=0,
            amount=1000, interest_rate=5, repayment_duration=60,
            grace_period=7, penalty_rate=2, currency="STX",
            collateral_amount=1500, trust_score=75, pool_id=1,
        )
        # result == Ok(0); gateway.transfer_log == [Transfer(500: ST1BORROWER→ST2AUTH)]

        engine.repay_loan(caller="ST1BORROWER", now=10, loan_id=0, payment=1050)
        # Ok(True); engine.get_loan(0).status == LoanStatus.REPAID
    """

    def __init__(
        self,
        oracle: Optional[AuthorizationOracle] = None,
        gateway: Optional[TransferGateway] = None,
        parameters: Optional[ParameterStore] = None,
        ledger: Optional[LoanLedger] = None,
    ):
        """
        Initialize the engine. Omitted collaborators get fresh defaults.

        Args:
            oracle: Answers is_verified_authority (default: empty registry)
            gateway: Moves the issuance fee (default: in-memory book)
            parameters: Risk parameters (default: built-in defaults, unbound)
            ledger: Loan storage (default: empty, 10000-id ceiling)
        """
        self.oracle = oracle if oracle is not None else StaticAuthorityRegistry()
        self.gateway = gateway if gateway is not None else InMemoryTransferGateway()
        self.parameters = parameters if parameters is not None else ParameterStore()
        self.ledger = ledger if ledger is not None else LoanLedger()
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        config: MicroLendConfig,
        oracle: Optional[AuthorizationOracle] = None,
        gateway: Optional[TransferGateway] = None,
    ) -> LoanEngine:
        """Build an engine with fresh state from configuration."""
        config.validate()
        return cls(
            oracle=oracle,
            gateway=gateway,
            parameters=ParameterStore(ParameterSet.from_config(config.risk)),
            ledger=LoanLedger(max_loans=config.ledger.max_loans),
        )

    # ========================================================================
    # LOAN REQUEST
    # ========================================================================

    def request_loan(
        self,
        caller: str,
        now: int,
        amount,
        interest_rate,
        repayment_duration: int,
        grace_period: int,
        penalty_rate,
        currency,
        collateral_amount,
        trust_score,
        pool_id: int,
    ) -> Result:
        """
        Validate and issue a new loan.

        Checks, in reporting order:
            MAX_LOANS_EXCEEDED, INVALID_LOAN_AMOUNT, INVALID_INTEREST_RATE,
            INVALID_REPAYMENT_DURATION, INSUFFICIENT_TRUST_SCORE,
            INVALID_COLLATERAL, INVALID_GRACE_PERIOD, INVALID_PENALTY_RATE,
            INVALID_CURRENCY, NOT_AUTHORIZED, AUTHORITY_NOT_VERIFIED,
            LOAN_ALREADY_EXISTS

        When all pass, the issuance fee moves from caller to the bound
        authority. A rejected transfer yields Err(TRANSFER_FAILED) and no loan.

        Args:
            caller: Principal requesting the loan (becomes the borrower)
            now: Current time unit
            amount: Principal, in (0, 1_000_000]
            interest_rate: Flat percentage, in (0, max_interest_rate]
            repayment_duration: Term, in [min, max] repayment duration
            grace_period: Time units before repayment opens (<= 30)
            penalty_rate: Late-payment rate (<= 10)
            currency: "STX" or "USD" (or a Currency)
            collateral_amount: 0, or at least 1.5 x amount
            trust_score: Externally computed score, >= min_trust_score
            pool_id: Opaque funding pool reference

        Returns:
            Ok(loan_id) or Err(LoanError)
        """
        amount = to_decimal(amount)
        interest_rate = to_decimal(interest_rate)
        penalty_rate = to_decimal(penalty_rate)
        collateral_amount = to_decimal(collateral_amount)
        trust_score = to_decimal(trust_score)
        parsed_currency = parse_currency(currency)

        with self._lock, localcontext(DECIMAL_CONTEXT):
            params = self.parameters.parameters
            loan_id = self.ledger.next_loan_id

            checks: List[Check] = [
                (LoanError.MAX_LOANS_EXCEEDED, lambda: not self.ledger.is_exhausted),
            ]
            checks += term_checks(params, amount, interest_rate, repayment_duration)
            checks += [
                (LoanError.INSUFFICIENT_TRUST_SCORE,
                 lambda: trust_score >= params.min_trust_score),
                (LoanError.INVALID_COLLATERAL,
                 lambda: collateral_is_valid(collateral_amount, amount)),
                (LoanError.INVALID_GRACE_PERIOD,
                 lambda: grace_period <= MAX_GRACE_PERIOD),
                (LoanError.INVALID_PENALTY_RATE,
                 lambda: penalty_rate <= MAX_PENALTY_RATE),
                (LoanError.INVALID_CURRENCY,
                 lambda: parsed_currency in SUPPORTED_CURRENCIES),
                (LoanError.NOT_AUTHORIZED,
                 lambda: bool(self.oracle.is_verified_authority(caller))),
                (LoanError.AUTHORITY_NOT_VERIFIED,
                 lambda: params.authority.is_bound),
                (LoanError.LOAN_ALREADY_EXISTS,
                 lambda: not self.ledger.exists(loan_id)),
            ]

            error = first_failure(checks)
            if error is not None:
                return self._reject("request_loan", error, caller=caller)

            authority = params.authority_contract
            outcome = self.gateway.transfer(params.issuance_fee, caller, authority)
            if outcome is not TransferResult.APPLIED:
                return self._reject("request_loan", LoanError.TRANSFER_FAILED, caller=caller)

            record = LoanRecord(
                borrower=caller,
                amount=amount,
                interest_rate=interest_rate,
                repayment_duration=repayment_duration,
                start_timestamp=now,
                grace_period=grace_period,
                penalty_rate=penalty_rate,
                currency=parsed_currency,
                status=LoanStatus.ACTIVE,
                collateral_amount=collateral_amount,
                repaid_amount=ZERO,
                trust_score_at_issuance=trust_score,
                pool_id=pool_id,
            )
            self.ledger.insert(loan_id, record)

        logger.info(
            "Loan %d issued to %s: %s %s at %s%% for %d, fee %s paid to %s",
            loan_id, caller, amount, parsed_currency.value, interest_rate,
            repayment_duration, params.issuance_fee, authority,
        )
        return Ok(loan_id)

    # ========================================================================
    # REPAYMENT
    # ========================================================================

    def repay_loan(self, caller: str, now: int, loan_id: int, payment) -> Result:
        """
        Apply a payment to an active loan.

        Checks, in reporting order:
            LOAN_NOT_FOUND, INVALID_BORROWER, INVALID_STATUS, LOAN_NOT_DUE,
            PAYMENT_EXCEEDS_DEBT, INVALID_PAYMENT_AMOUNT

        The grace period is a minimum holding period: payments before
        start_timestamp + grace_period are refused. Settlement of the payment
        itself is outside this engine.

        Returns:
            Ok(True) or Err(LoanError). The loan becomes REPAID exactly when
            cumulative repayment reaches the total due.
        """
        payment = to_decimal(payment)

        with self._lock, localcontext(DECIMAL_CONTEXT):
            loan = self.ledger.get(loan_id)
            error = first_failure([
                (LoanError.LOAN_NOT_FOUND, lambda: loan is not None),
                (LoanError.INVALID_BORROWER, lambda: loan.borrower == caller),
                (LoanError.INVALID_STATUS, lambda: loan.is_active),
                (LoanError.LOAN_NOT_DUE, lambda: now >= loan.repayable_from),
                (LoanError.PAYMENT_EXCEEDS_DEBT,
                 lambda: loan.repaid_amount + payment <= loan.total_due),
                (LoanError.INVALID_PAYMENT_AMOUNT, lambda: payment >= ZERO),
            ])
            if error is not None:
                return self._reject("repay_loan", error, caller=caller, loan_id=loan_id)

            repaid = calculate_repayment(loan, payment)
            self.ledger.replace(loan_id, repaid)

        logger.info(
            "Loan %d repayment of %s by %s: %s/%s repaid (%s)",
            loan_id, payment, caller, repaid.repaid_amount, repaid.total_due, repaid.status.value,
        )
        return Ok(True)

    # ========================================================================
    # UPDATE
    # ========================================================================

    def update_loan(
        self,
        caller: str,
        now: int,
        loan_id: int,
        new_amount,
        new_interest_rate,
        new_duration: int,
    ) -> Result:
        """
        Replace the terms of an active loan.

        Checks, in reporting order:
            LOAN_NOT_FOUND, INVALID_BORROWER, INVALID_STATUS,
            INVALID_LOAN_AMOUNT, INVALID_INTEREST_RATE,
            INVALID_REPAYMENT_DURATION, PAYMENT_EXCEEDS_DEBT

        Bounds are evaluated against the current parameters, not those in
        force at issuance. The new total due may not fall below what has
        already been repaid. Terms whose total due equals the amount repaid
        settle the loan.

        On success start_timestamp becomes now, which restarts the grace
        period, and the loan's update record is overwritten.

        Returns:
            Ok(True) or Err(LoanError)
        """
        new_amount = to_decimal(new_amount)
        new_interest_rate = to_decimal(new_interest_rate)

        with self._lock, localcontext(DECIMAL_CONTEXT):
            params = self.parameters.parameters
            loan = self.ledger.get(loan_id)

            checks: List[Check] = [
                (LoanError.LOAN_NOT_FOUND, lambda: loan is not None),
                (LoanError.INVALID_BORROWER, lambda: loan.borrower == caller),
                (LoanError.INVALID_STATUS, lambda: loan.is_active),
            ]
            checks += term_checks(params, new_amount, new_interest_rate, new_duration)
            checks.append(
                (LoanError.PAYMENT_EXCEEDS_DEBT,
                 lambda: loan.repaid_amount <= calculate_total_due(new_amount, new_interest_rate))
            )
            error = first_failure(checks)
            if error is not None:
                return self._reject("update_loan", error, caller=caller, loan_id=loan_id)

            # New terms that exactly match what was repaid settle the loan.
            new_total = calculate_total_due(new_amount, new_interest_rate)
            status = LoanStatus.REPAID if loan.repaid_amount >= new_total else LoanStatus.ACTIVE

            updated = LoanRecord(
                borrower=loan.borrower,
                amount=new_amount,
                interest_rate=new_interest_rate,
                repayment_duration=new_duration,
                start_timestamp=now,
                grace_period=loan.grace_period,
                penalty_rate=loan.penalty_rate,
                currency=loan.currency,
                status=status,
                collateral_amount=loan.collateral_amount,
                repaid_amount=loan.repaid_amount,
                trust_score_at_issuance=loan.trust_score_at_issuance,
                pool_id=loan.pool_id,
            )
            update = LoanUpdateRecord(
                amount=new_amount,
                interest_rate=new_interest_rate,
                repayment_duration=new_duration,
                timestamp=now,
                updater=caller,
            )
            self.ledger.record_update(loan_id, updated, update)

        logger.info(
            "Loan %d updated by %s: %s at %s%% for %d, restarted at %d",
            loan_id, caller, new_amount, new_interest_rate, new_duration, now,
        )
        return Ok(True)

    # ========================================================================
    # RISK PARAMETERS
    # ========================================================================

    def set_authority_contract(self, principal: str) -> Result:
        with self._lock:
            return self.parameters.set_authority_contract(principal)

    def set_issuance_fee(self, fee) -> Result:
        with self._lock:
            return self.parameters.set_issuance_fee(fee)

    def set_min_trust_score(self, score) -> Result:
        with self._lock:
            return self.parameters.set_min_trust_score(score)

    def set_max_interest_rate(self, rate) -> Result:
        with self._lock:
            return self.parameters.set_max_interest_rate(rate)

    def set_repayment_duration_range(self, min_duration: int, max_duration: int) -> Result:
        with self._lock:
            return self.parameters.set_repayment_duration_range(min_duration, max_duration)

    # ========================================================================
    # READ ACCESSORS
    # ========================================================================

    def get_loan(self, loan_id: int) -> Optional[LoanRecord]:
        """The current record, or None if no such loan was issued."""
        with self._lock:
            return self.ledger.get(loan_id)

    def get_loan_update(self, loan_id: int) -> Optional[LoanUpdateRecord]:
        """The latest update record, or None if the loan was never updated."""
        with self._lock:
            return self.ledger.get_update(loan_id)

    def get_loan_count(self) -> int:
        """Loans ever issued (the issuance counter), not active loans."""
        with self._lock:
            return self.ledger.loan_count

    def get_parameters(self) -> ParameterSet:
        with self._lock:
            return self.parameters.parameters

    def is_verified_authority(self, principal: str) -> bool:
        return bool(self.oracle.is_verified_authority(principal))

    def list_loans(self, borrower: Optional[str] = None) -> List[Tuple[int, LoanRecord]]:
        """(id, record) pairs in id order, optionally for one borrower."""
        with self._lock:
            return self.ledger.loans(borrower)

    # ========================================================================
    # INTERNAL
    # ========================================================================

    def _reject(self, operation: str, error: LoanError, **context) -> Err:
        logger.debug(
            "%s rejected: %s",
            operation, error.name,
            extra={"extra": {"operation": operation, "error": int(error), **context}},
        )
        return Err(error)

    def __repr__(self) -> str:
        return f"LoanEngine({self.ledger!r}, {self.parameters!r})"
