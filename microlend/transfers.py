"""
transfers.py - Value transfer collaborator

The loan engine does not move value itself. It hands exactly one instruction
per successful loan request (the issuance fee, borrower -> authority) to a
TransferGateway and treats anything other than APPLIED as a failed request.

Key pieces:
    - Transfer: immutable record of one applied value movement
    - TransferResult: outcome of a transfer attempt
    - TransferGateway: protocol the engine depends on
    - InMemoryTransferGateway: balance book with min-balance validation and an
      append-only transfer log, for tests, demos and embedding
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal, localcontext
from enum import Enum
from typing import Dict, List, Optional, Protocol, runtime_checkable

from .core import DECIMAL_CONTEXT, ZERO, to_decimal
from .logging import get_logger


logger = get_logger(__name__)


# Lets wallets run large overdrafts unless a stricter floor is configured.
DEFAULT_MIN_BALANCE = Decimal("-1000000000")


class TransferResult(Enum):
    """
    Outcome of a transfer attempt.

    APPLIED: Balances moved and the transfer was logged.
    REJECTED: Validation failed; nothing moved.
    """
    APPLIED = "applied"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    A single movement of value between two principals.

    Attributes:
        amount: Quantity moved (finite, non-negative)
        source: Principal debited
        dest: Principal credited
        sequence_number: Position in the gateway's log
    """
    amount: Decimal
    source: str
    dest: str
    sequence_number: int = 0

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Transfer source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Transfer dest cannot be empty")
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', to_decimal(self.amount))
        if self.amount < ZERO:
            raise ValueError(f"Transfer amount cannot be negative, got {self.amount}")

    def __repr__(self) -> str:
        return f"Transfer({self.amount}: {self.source}→{self.dest})"


@runtime_checkable
class TransferGateway(Protocol):
    """
    Protocol for the external value-transfer primitive.

    A gateway either applies the whole transfer or nothing. It may raise for
    infrastructure faults; the engine lets such exceptions propagate without
    having mutated any loan state.
    """

    def transfer(self, amount: Decimal, source: str, dest: str) -> TransferResult:
        """Move amount from source to dest."""
        ...


class InMemoryTransferGateway:
    """
    In-memory balance book implementing TransferGateway.

    Every transfer is validated against min_balance before any balance
    changes. Applied transfers are appended to transfer_log in order.

    Example:
        gateway = InMemoryTransferGateway(min_balance=Decimal("0"))
        gateway.fund("ST1BORROWER", Decimal("1000"))
        gateway.transfer(Decimal("500"), "ST1BORROWER", "ST2AUTH")  # APPLIED
        gateway.transfer(Decimal("600"), "ST1BORROWER", "ST2AUTH")  # REJECTED
    """

    def __init__(self, min_balance: Decimal = DEFAULT_MIN_BALANCE):
        """
        Args:
            min_balance: Lowest balance a source may be left with
        """
        self.min_balance = to_decimal(min_balance)
        self.balances: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        self.transfer_log: List[Transfer] = []

    def get_balance(self, principal: str) -> Decimal:
        return self.balances.get(principal, ZERO)

    def fund(self, principal: str, amount: Decimal) -> None:
        """Credit a principal directly, outside the transfer log."""
        amount = to_decimal(amount)
        if amount < ZERO:
            raise ValueError(f"funding amount cannot be negative, got {amount}")
        with localcontext(DECIMAL_CONTEXT):
            self.balances[principal] += amount

    def transfer(self, amount: Decimal, source: str, dest: str) -> TransferResult:
        """
        Move amount from source to dest atomically.

        Returns:
            TransferResult.APPLIED if balances moved
            TransferResult.REJECTED if the source would fall below min_balance
            or the instruction is malformed
        """
        with localcontext(DECIMAL_CONTEXT):
            valid, reason = self._validate(amount, source, dest)
            if not valid:
                logger.warning("Transfer rejected: %s", reason)
                return TransferResult.REJECTED

            amount = to_decimal(amount)
            record = Transfer(amount, source, dest, sequence_number=len(self.transfer_log))
            self.balances[source] -= amount
            self.balances[dest] += amount
        self.transfer_log.append(record)
        logger.debug("Transfer applied: %r", record)
        return TransferResult.APPLIED

    def _validate(self, amount, source: Optional[str], dest: Optional[str]):
        """
        Returns:
            Tuple of (success: bool, reason: str)
        """
        if not source or not dest:
            return False, f"missing principal: {source!r} -> {dest!r}"
        try:
            amount = to_decimal(amount)
        except ValueError as e:
            return False, str(e)
        if amount < ZERO:
            return False, f"negative amount {amount}"
        proposed = self.get_balance(source) - amount
        if source != dest and proposed < self.min_balance:
            return False, f"{source}: {proposed} < min {self.min_balance}"
        return True, ""

    def total_supply(self) -> Decimal:
        """Sum of all balances; transfers never change it."""
        with localcontext(DECIMAL_CONTEXT):
            return sum((self.balances[p] for p in sorted(self.balances)), ZERO)

    def __repr__(self):
        return f"InMemoryTransferGateway({len(self.balances)} principals, {len(self.transfer_log)} transfers)"
