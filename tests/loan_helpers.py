"""
loan_helpers.py - Engine construction and request helpers for tests

Provides:
- Well-known principals (borrower, authority, outsider)
- The canonical valid loan request and a helper to vary one field at a time
- make_engine(): fresh engine with an in-memory oracle and transfer gateway
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from microlend import (
    LoanEngine,
    LoanLedger,
    ParameterStore,
    StaticAuthorityRegistry,
    InMemoryTransferGateway,
    Result,
)


BORROWER = "ST1BORROWER"
AUTHORITY = "ST2AUTH"
OUTSIDER = "ST3FAKE"

# 1000 STX at 5% over 60, grace 7, penalty 2, collateral 1500, trust 75, pool 1
VALID_REQUEST: Dict[str, Any] = {
    "amount": Decimal("1000"),
    "interest_rate": Decimal("5"),
    "repayment_duration": 60,
    "grace_period": 7,
    "penalty_rate": Decimal("2"),
    "currency": "STX",
    "collateral_amount": Decimal("1500"),
    "trust_score": Decimal("75"),
    "pool_id": 1,
}


def request(engine: LoanEngine, caller: str = BORROWER, now: int = 0, **overrides) -> Result:
    """Submit VALID_REQUEST with some fields replaced."""
    kwargs = {**VALID_REQUEST, **overrides}
    return engine.request_loan(caller=caller, now=now, **kwargs)


def make_engine(
    bind: bool = True,
    max_loans: int = 10000,
    min_balance: Optional[Decimal] = None,
    test_mode: bool = False,
) -> LoanEngine:
    """Fresh engine: BORROWER is a verified authority, AUTHORITY optionally bound."""
    gateway = (
        InMemoryTransferGateway()
        if min_balance is None
        else InMemoryTransferGateway(min_balance=min_balance)
    )
    engine = LoanEngine(
        oracle=StaticAuthorityRegistry([BORROWER]),
        gateway=gateway,
        parameters=ParameterStore(),
        ledger=LoanLedger(max_loans=max_loans, test_mode=test_mode),
    )
    if bind:
        engine.set_authority_contract(AUTHORITY)
    return engine
