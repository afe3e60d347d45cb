"""
Core types and pure functions for the micro-loan engine.

This module provides the foundational data structures used by every other module:
1. Constants: hard loan bounds, the null principal, default risk parameters
2. Enums: LoanStatus, Currency, LoanError (closed error enumeration)
3. Result types: Ok and Err, returned by every engine operation
4. Immutable records: LoanRecord, LoanUpdateRecord
5. Exceptions: MicroLendError and its subclasses (programming errors only)
6. Pure calculation functions: calculate_total_due and friends

All functions in this module are pure. Nothing here mutates engine state.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from decimal import Context, Decimal, InvalidOperation, ROUND_HALF_EVEN, localcontext
from enum import Enum, IntEnum
from typing import Any, Optional, Union


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# Interest is computed as amount * rate / 100, which is exact for any
# reasonable input at this precision.
#
# decimal contexts are thread-local, so every loan calculation runs inside
# localcontext(DECIMAL_CONTEXT) instead of relying on the importing thread.
#
DECIMAL_CONTEXT = Context(prec=50, rounding=ROUND_HALF_EVEN)


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved sentinel principal. Never an acceptable authority binding.
NULL_PRINCIPAL = "SP000000000000000000002Q6VF78"

# Hard bounds that are not authority-configurable.
MAX_LOAN_AMOUNT = Decimal("1000000")
MAX_GRACE_PERIOD = 30
MAX_PENALTY_RATE = Decimal("10")

# Supplied collateral must cover at least this multiple of the principal.
MIN_COLLATERAL_RATIO = Decimal("1.5")

# Default risk parameters (authority can retune all of these).
DEFAULT_ISSUANCE_FEE = Decimal("500")
DEFAULT_MIN_TRUST_SCORE = Decimal("50")
DEFAULT_MAX_INTEREST_RATE = Decimal("15")
DEFAULT_MIN_REPAYMENT_DURATION = 30
DEFAULT_MAX_REPAYMENT_DURATION = 365

# Ceiling on the loan identifier space.
DEFAULT_MAX_LOANS = 10000

ZERO = Decimal("0")
HUNDRED = Decimal("100")


# ============================================================================
# ENUMS
# ============================================================================

class LoanStatus(Enum):
    """
    Lifecycle state of a loan.

    ACTIVE: Issued and not yet fully repaid. Accepts repayments and updates.
    REPAID: Terminal. Cumulative repayments reached the total due.
    """
    ACTIVE = "active"
    REPAID = "repaid"


class Currency(Enum):
    """Denominations a loan may be issued in."""
    STX = "STX"
    USD = "USD"


SUPPORTED_CURRENCIES = frozenset(Currency)


class LoanError(IntEnum):
    """
    Closed enumeration of rejection reasons.

    Codes are stable and grouped by kind:
    - authorization: NOT_AUTHORIZED, AUTHORITY_NOT_VERIFIED, AUTHORITY_ALREADY_BOUND
    - configuration: INVALID_LOAN_AMOUNT .. INVALID_CURRENCY, INVALID_MIN_SCORE ..
    - resource limits: MAX_LOANS_EXCEEDED, LOAN_ALREADY_EXISTS
    - state: LOAN_NOT_FOUND, INVALID_BORROWER, INVALID_STATUS, LOAN_NOT_DUE,
      PAYMENT_EXCEEDS_DEBT
    - external effect: TRANSFER_FAILED
    """
    NOT_AUTHORIZED = 100
    INVALID_LOAN_AMOUNT = 101
    INVALID_INTEREST_RATE = 102
    INVALID_REPAYMENT_DURATION = 103
    INSUFFICIENT_TRUST_SCORE = 104
    LOAN_ALREADY_EXISTS = 105
    LOAN_NOT_FOUND = 106
    INVALID_COLLATERAL = 109
    LOAN_NOT_DUE = 110
    PAYMENT_EXCEEDS_DEBT = 111
    INVALID_STATUS = 112
    INVALID_BORROWER = 113
    MAX_LOANS_EXCEEDED = 115
    INVALID_GRACE_PERIOD = 116
    INVALID_PENALTY_RATE = 117
    INVALID_CURRENCY = 118
    INVALID_UPDATE_PARAM = 119
    AUTHORITY_NOT_VERIFIED = 120
    INVALID_MIN_SCORE = 121
    INVALID_MAX_INTEREST = 122
    INVALID_MIN_DURATION = 123
    INVALID_MAX_DURATION = 124
    AUTHORITY_ALREADY_BOUND = 125
    TRANSFER_FAILED = 126
    INVALID_PAYMENT_AMOUNT = 127


# ============================================================================
# EXCEPTIONS
# ============================================================================

class MicroLendError(Exception):
    """Base exception for all microlend errors."""
    pass


class ResultError(MicroLendError):
    """Raised when unwrapping an Err result."""

    def __init__(self, error: LoanError):
        super().__init__(f"operation rejected: {error.name} ({error.value})")
        self.error = error


class ConfigurationError(MicroLendError):
    """Raised when configuration is invalid or missing."""
    pass


# ============================================================================
# RESULT TYPES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Ok:
    """Successful outcome carrying the operation's value."""
    value: Any = True

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> Any:
        return self.value


@dataclass(frozen=True, slots=True)
class Err:
    """Rejected outcome carrying exactly one error kind."""
    error: LoanError

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        raise ResultError(self.error)


Result = Union[Ok, Err]


# ============================================================================
# HELPERS
# ============================================================================

def to_decimal(value: Any) -> Decimal:
    """
    Convert a numeric input to Decimal.

    Floats go through str() so that 0.1 becomes Decimal("0.1"), not its
    binary expansion.

    Raises:
        ValueError: If the value is not numeric or not finite.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"expected a number, got {value!r}")
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"expected a number, got {value!r}") from None
    if result.is_nan() or result.is_infinite():
        raise ValueError(f"expected a finite number, got {value!r}")
    return result


def parse_currency(value: Any) -> Optional[Currency]:
    """Return the Currency for value, or None if it is not supported."""
    if isinstance(value, Currency):
        return value
    try:
        return Currency(value)
    except ValueError:
        return None


def _require_principal(name: str, value: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} cannot be empty")


# ============================================================================
# IMMUTABLE RECORDS
# ============================================================================

@dataclass(frozen=True, slots=True)
class LoanRecord:
    """
    One issued loan.

    Terms (amount, interest_rate, repayment_duration) are set at issuance and
    replaced wholesale by an update. repaid_amount and status change on
    repayment. Every change produces a new instance via dataclasses.replace;
    the ledger swaps the stored record.

    Attributes:
        borrower: Principal that requested the loan. Never changes.
        amount: Principal, in (0, 1_000_000].
        interest_rate: Flat percentage, e.g. Decimal("5") for 5%.
        repayment_duration: Term in time units.
        start_timestamp: Time unit of issuance or of the latest update.
        grace_period: Time units after start before repayment is accepted.
        penalty_rate: Late-payment rate, bound-checked only.
        currency: Denomination.
        status: ACTIVE or REPAID.
        collateral_amount: 0 (uncollateralized) or >= 1.5 x amount at issuance.
        repaid_amount: Cumulative repayments.
        trust_score_at_issuance: Snapshot of the borrower's score.
        pool_id: Opaque funding pool reference.
    """
    borrower: str
    amount: Decimal
    interest_rate: Decimal
    repayment_duration: int
    start_timestamp: int
    grace_period: int
    penalty_rate: Decimal
    currency: Currency
    status: LoanStatus
    collateral_amount: Decimal
    repaid_amount: Decimal
    trust_score_at_issuance: Decimal
    pool_id: int

    def __post_init__(self):
        _require_principal("borrower", self.borrower)
        for name in ('amount', 'interest_rate', 'penalty_rate', 'collateral_amount',
                     'repaid_amount', 'trust_score_at_issuance'):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                object.__setattr__(self, name, to_decimal(value))

    @property
    def total_due(self) -> Decimal:
        """Principal plus flat interest at this loan's own rate."""
        return calculate_total_due(self.amount, self.interest_rate)

    @property
    def outstanding(self) -> Decimal:
        with localcontext(DECIMAL_CONTEXT):
            return self.total_due - self.repaid_amount

    @property
    def is_active(self) -> bool:
        return self.status is LoanStatus.ACTIVE

    @property
    def repayable_from(self) -> int:
        """First time unit at which a repayment is accepted."""
        return self.start_timestamp + self.grace_period

    def __repr__(self) -> str:
        return (
            f"LoanRecord({self.borrower}: {self.amount} {self.currency.value} @ {self.interest_rate}%, "
            f"repaid {self.repaid_amount}/{self.total_due}, {self.status.value})"
        )


@dataclass(frozen=True, slots=True)
class LoanUpdateRecord:
    """
    The latest accepted change of terms for a loan.

    At most one exists per loan id; each update overwrites the previous one.
    """
    amount: Decimal
    interest_rate: Decimal
    repayment_duration: int
    timestamp: int
    updater: str

    def __post_init__(self):
        _require_principal("updater", self.updater)
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', to_decimal(self.amount))
        if not isinstance(self.interest_rate, Decimal):
            object.__setattr__(self, 'interest_rate', to_decimal(self.interest_rate))


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def calculate_interest(amount: Decimal, interest_rate: Decimal) -> Decimal:
    """
    Flat simple interest on the principal.

    PURE FUNCTION - no compounding, no time component.

    Args:
        amount: Principal
        interest_rate: Percentage (5 means 5%)

    Returns:
        amount * interest_rate / 100
    """
    with localcontext(DECIMAL_CONTEXT):
        return amount * interest_rate / HUNDRED


def calculate_total_due(amount: Decimal, interest_rate: Decimal) -> Decimal:
    """
    Total debt of a loan: principal plus flat interest.

    The result depends only on the loan's own terms, never on the live
    maximum interest rate.

    Example:
        calculate_total_due(Decimal("1000"), Decimal("5"))  # Decimal("1050")
    """
    with localcontext(DECIMAL_CONTEXT):
        return amount + calculate_interest(amount, interest_rate)


def calculate_repayment(loan: LoanRecord, payment: Decimal) -> LoanRecord:
    """
    Apply a payment to a loan and return the new record.

    Status becomes REPAID exactly when cumulative repayment reaches the total
    due. The caller is responsible for having checked that the payment does
    not exceed the outstanding debt.
    """
    with localcontext(DECIMAL_CONTEXT):
        new_repaid = loan.repaid_amount + payment
        status = LoanStatus.REPAID if new_repaid >= loan.total_due else LoanStatus.ACTIVE
    return replace(loan, repaid_amount=new_repaid, status=status)
