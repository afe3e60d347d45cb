"""
parameters.py - Authority-controlled risk parameters

Holds the process-wide risk configuration consulted by every loan request and
update, and the single authority binding that gates changes to it.

ARCHITECTURE:
=============

1. AuthorityBinding = Unbound | BoundTo
   - Only Unbound has bind(). A BoundTo cannot be rebound, so a bound
     authority is immutable by construction rather than by setter discipline.

2. ParameterSet (frozen dataclass)
   - Immutable snapshot of every risk parameter plus the binding.
   - Each setter produces a new snapshot with exactly its own field(s) changed.

3. ParameterStore
   - Owns the current snapshot and exposes getters and Result-returning setters.
   - Setters check that an authority is bound. Whether the caller IS that
     authority is resolved by the caller-identity layer in front of the engine.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Optional, Union, TYPE_CHECKING

from .core import (
    NULL_PRINCIPAL, ZERO,
    DEFAULT_ISSUANCE_FEE, DEFAULT_MIN_TRUST_SCORE, DEFAULT_MAX_INTEREST_RATE,
    DEFAULT_MIN_REPAYMENT_DURATION, DEFAULT_MAX_REPAYMENT_DURATION,
    LoanError, Ok, Err, Result,
    to_decimal,
)
from .logging import get_logger

if TYPE_CHECKING:
    from .config import RiskParameterConfig


logger = get_logger(__name__)


# ============================================================================
# AUTHORITY BINDING
# ============================================================================

@dataclass(frozen=True, slots=True)
class BoundTo:
    """Authority permanently bound to a principal."""
    principal: str

    @property
    def is_bound(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Unbound:
    """No authority bound yet. The only state that can transition."""

    @property
    def is_bound(self) -> bool:
        return False

    def bind(self, principal: str) -> BoundTo:
        return BoundTo(principal)


AuthorityBinding = Union[Unbound, BoundTo]

UNBOUND = Unbound()


def is_acceptable_authority(principal: str) -> bool:
    """The null principal and blank identifiers can never be bound."""
    return isinstance(principal, str) and bool(principal.strip()) and principal != NULL_PRINCIPAL


# ============================================================================
# PARAMETER SNAPSHOT
# ============================================================================

@dataclass(frozen=True, slots=True)
class ParameterSet:
    """
    Immutable snapshot of the risk configuration.

    Attributes:
        issuance_fee: Charged to the borrower on every loan request (>= 0)
        min_trust_score: Lowest admissible trust score (>= 0)
        max_interest_rate: Highest admissible interest rate, percent (> 0)
        min_repayment_duration: Shortest admissible term (> 0)
        max_repayment_duration: Longest admissible term (>= min)
        authority: The authority binding
    """
    issuance_fee: Decimal = DEFAULT_ISSUANCE_FEE
    min_trust_score: Decimal = DEFAULT_MIN_TRUST_SCORE
    max_interest_rate: Decimal = DEFAULT_MAX_INTEREST_RATE
    min_repayment_duration: int = DEFAULT_MIN_REPAYMENT_DURATION
    max_repayment_duration: int = DEFAULT_MAX_REPAYMENT_DURATION
    authority: AuthorityBinding = field(default=UNBOUND)

    def __post_init__(self):
        """Convert numeric inputs to Decimal and check the defaults are coherent."""
        if not isinstance(self.issuance_fee, Decimal):
            object.__setattr__(self, 'issuance_fee', to_decimal(self.issuance_fee))
        if not isinstance(self.min_trust_score, Decimal):
            object.__setattr__(self, 'min_trust_score', to_decimal(self.min_trust_score))
        if not isinstance(self.max_interest_rate, Decimal):
            object.__setattr__(self, 'max_interest_rate', to_decimal(self.max_interest_rate))

        if self.issuance_fee < ZERO:
            raise ValueError(f"issuance_fee cannot be negative, got {self.issuance_fee}")
        if self.min_trust_score < ZERO:
            raise ValueError(f"min_trust_score cannot be negative, got {self.min_trust_score}")
        if self.max_interest_rate <= ZERO:
            raise ValueError(f"max_interest_rate must be positive, got {self.max_interest_rate}")
        if self.min_repayment_duration <= 0:
            raise ValueError(
                f"min_repayment_duration must be positive, got {self.min_repayment_duration}"
            )
        if self.max_repayment_duration < self.min_repayment_duration:
            raise ValueError(
                f"max_repayment_duration ({self.max_repayment_duration}) is below "
                f"min_repayment_duration ({self.min_repayment_duration})"
            )

    @classmethod
    def from_config(cls, config: RiskParameterConfig) -> ParameterSet:
        """Build a fresh, unbound parameter set from configuration."""
        return cls(
            issuance_fee=config.issuance_fee,
            min_trust_score=config.min_trust_score,
            max_interest_rate=config.max_interest_rate,
            min_repayment_duration=config.min_repayment_duration,
            max_repayment_duration=config.max_repayment_duration,
        )

    @property
    def authority_contract(self) -> Optional[str]:
        if isinstance(self.authority, BoundTo):
            return self.authority.principal
        return None


# ============================================================================
# PARAMETER STORE
# ============================================================================

class ParameterStore:
    """
    Mutable holder of the current ParameterSet.

    Not thread-safe on its own. LoanEngine serializes access together with
    the loan ledger.

    Example:
        store = ParameterStore()
        store.set_authority_contract("ST2AUTH")       # Ok(True)
        store.set_max_interest_rate(Decimal("20"))    # Ok(True)
        store.set_authority_contract("ST3OTHER")      # Err(AUTHORITY_ALREADY_BOUND)
    """

    def __init__(self, parameters: Optional[ParameterSet] = None):
        self._parameters = parameters or ParameterSet()

    # ========================================================================
    # GETTERS
    # ========================================================================

    @property
    def parameters(self) -> ParameterSet:
        """The current snapshot. Safe to hold; it never changes."""
        return self._parameters

    @property
    def issuance_fee(self) -> Decimal:
        return self._parameters.issuance_fee

    @property
    def min_trust_score(self) -> Decimal:
        return self._parameters.min_trust_score

    @property
    def max_interest_rate(self) -> Decimal:
        return self._parameters.max_interest_rate

    @property
    def min_repayment_duration(self) -> int:
        return self._parameters.min_repayment_duration

    @property
    def max_repayment_duration(self) -> int:
        return self._parameters.max_repayment_duration

    @property
    def authority_contract(self) -> Optional[str]:
        return self._parameters.authority_contract

    @property
    def is_bound(self) -> bool:
        return self._parameters.authority.is_bound

    # ========================================================================
    # SETTERS (Mutating)
    # ========================================================================

    def set_authority_contract(self, principal: str) -> Result:
        """
        Bind the authority. Succeeds at most once per store.

        Returns:
            Ok(True) on the first acceptable binding
            Err(NOT_AUTHORIZED) for the null principal or a blank identifier
            Err(AUTHORITY_ALREADY_BOUND) once bound, whatever the new value
        """
        if not is_acceptable_authority(principal):
            return self._reject("set_authority_contract", LoanError.NOT_AUTHORIZED)
        authority = self._parameters.authority
        if not isinstance(authority, Unbound):
            return self._reject("set_authority_contract", LoanError.AUTHORITY_ALREADY_BOUND)
        self._parameters = replace(self._parameters, authority=authority.bind(principal))
        logger.info("Authority bound to %s", principal)
        return Ok(True)

    def set_issuance_fee(self, fee) -> Result:
        """Set the issuance fee. Requires a bound authority and fee >= 0."""
        if not self.is_bound:
            return self._reject("set_issuance_fee", LoanError.AUTHORITY_NOT_VERIFIED)
        fee = to_decimal(fee)
        if fee < ZERO:
            return self._reject("set_issuance_fee", LoanError.INVALID_UPDATE_PARAM)
        self._parameters = replace(self._parameters, issuance_fee=fee)
        logger.info("Issuance fee set to %s", fee)
        return Ok(True)

    def set_min_trust_score(self, score) -> Result:
        """Set the minimum trust score. Requires a bound authority and score >= 0."""
        if not self.is_bound:
            return self._reject("set_min_trust_score", LoanError.AUTHORITY_NOT_VERIFIED)
        score = to_decimal(score)
        if score < ZERO:
            return self._reject("set_min_trust_score", LoanError.INVALID_MIN_SCORE)
        self._parameters = replace(self._parameters, min_trust_score=score)
        logger.info("Minimum trust score set to %s", score)
        return Ok(True)

    def set_max_interest_rate(self, rate) -> Result:
        """
        Set the interest rate cap. Requires a bound authority and rate > 0.

        Existing loans keep their rate even if it is now above the cap.
        """
        if not self.is_bound:
            return self._reject("set_max_interest_rate", LoanError.AUTHORITY_NOT_VERIFIED)
        rate = to_decimal(rate)
        if rate <= ZERO:
            return self._reject("set_max_interest_rate", LoanError.INVALID_MAX_INTEREST)
        self._parameters = replace(self._parameters, max_interest_rate=rate)
        logger.info("Maximum interest rate set to %s", rate)
        return Ok(True)

    def set_repayment_duration_range(self, min_duration: int, max_duration: int) -> Result:
        """Set both duration bounds together. Requires min > 0 and max >= min."""
        if not self.is_bound:
            return self._reject("set_repayment_duration_range", LoanError.AUTHORITY_NOT_VERIFIED)
        if min_duration <= 0:
            return self._reject("set_repayment_duration_range", LoanError.INVALID_MIN_DURATION)
        if max_duration < min_duration:
            return self._reject("set_repayment_duration_range", LoanError.INVALID_MAX_DURATION)
        self._parameters = replace(
            self._parameters,
            min_repayment_duration=min_duration,
            max_repayment_duration=max_duration,
        )
        logger.info("Repayment duration range set to [%d, %d]", min_duration, max_duration)
        return Ok(True)

    def _reject(self, operation: str, error: LoanError) -> Err:
        logger.debug("%s rejected: %s", operation, error.name)
        return Err(error)

    def __repr__(self) -> str:
        p = self._parameters
        return (
            f"ParameterStore(fee={p.issuance_fee}, min_score={p.min_trust_score}, "
            f"max_rate={p.max_interest_rate}, duration=[{p.min_repayment_duration}, "
            f"{p.max_repayment_duration}], authority={p.authority_contract})"
        )
