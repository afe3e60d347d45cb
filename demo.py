#!/usr/bin/env python3
"""
demo.py - Walkthrough: One Micro-Loan From Request to Repayment

Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL SEE:
  1: Setup        - Engine from environment config, authority binding
  2: Issuance     - A valid request, the fee transfer, a rejected request
  3: Repayment    - Grace period, partial and final payments
  4: Renegotiation - New terms restart the grace period
  5: Governance   - The authority retunes the risk parameters

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing

Logging follows LOG_LEVEL and LOG_FORMAT (try LOG_FORMAT=json LOG_LEVEL=DEBUG).
"""

from decimal import Decimal
import sys

from microlend import (
    LoanEngine, MicroLendConfig, StaticAuthorityRegistry, InMemoryTransferGateway,
    setup_logging,
)


AUTHORITY = "SP2AUTHORITY"
BORROWER = "SP1BORROWER"
STRANGER = "SP9STRANGER"

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}\n")


def show(label: str, value):
    print(f"{label:<28}{value}")


def step_01_setup() -> LoanEngine:
    step_header(1, "Setup")
    config = MicroLendConfig.from_env()
    setup_logging(config.logging.level, config.logging.format_type)

    engine = LoanEngine.from_config(
        config,
        oracle=StaticAuthorityRegistry([BORROWER]),
        gateway=InMemoryTransferGateway(),
    )
    show("Parameters:", engine.parameters)
    show("Bind authority:", engine.set_authority_contract(AUTHORITY))
    show("Bind again:", engine.set_authority_contract(STRANGER))
    return engine


def step_02_issuance(engine: LoanEngine):
    step_header(2, "Issuance")
    terms = dict(
        amount=1000, interest_rate=5, repayment_duration=60,
        grace_period=7, penalty_rate=2, currency="STX",
        collateral_amount=1500, pool_id=1,
    )
    show("Request (trust 75):", engine.request_loan(BORROWER, 0, trust_score=75, **terms))
    show("Loan 0:", engine.get_loan(0))
    show("Fee transfers:", engine.gateway.transfer_log)
    show("Request (trust 40):", engine.request_loan(BORROWER, 0, trust_score=40, **terms))
    show("Stranger request:", engine.request_loan(STRANGER, 0, trust_score=75, **terms))


def step_03_repayment(engine: LoanEngine):
    step_header(3, "Repayment")
    show("Pay 500 at t=5:", engine.repay_loan(BORROWER, 5, 0, Decimal("500")))
    show("Pay 500 at t=7:", engine.repay_loan(BORROWER, 7, 0, Decimal("500")))
    show("Pay 100 at t=8:", engine.repay_loan(BORROWER, 8, 0, Decimal("100")))
    show("Loan 0:", engine.get_loan(0))


def step_04_renegotiation(engine: LoanEngine):
    step_header(4, "Renegotiation")
    show("Update at t=20:", engine.update_loan(BORROWER, 20, 0, Decimal("2000"), Decimal("10"), 90))
    show("Update record:", engine.get_loan_update(0))
    show("Pay 50 at t=26:", engine.repay_loan(BORROWER, 26, 0, Decimal("50")))
    show("Pay 1200 at t=27:", engine.repay_loan(BORROWER, 27, 0, Decimal("1200")))
    show("Loan 0:", engine.get_loan(0))


def step_05_governance(engine: LoanEngine):
    step_header(5, "Governance")
    show("Fee -> 1000:", engine.set_issuance_fee(1000))
    show("Min trust -> 60:", engine.set_min_trust_score(60))
    show("Max rate -> 0:", engine.set_max_interest_rate(0))
    show("Duration -> [15, 180]:", engine.set_repayment_duration_range(15, 180))
    show("Parameters:", engine.parameters)
    show("Loans issued:", engine.get_loan_count())


def main():
    engine = step_01_setup()
    wait_for_enter()
    step_02_issuance(engine)
    wait_for_enter()
    step_03_repayment(engine)
    wait_for_enter()
    step_04_renegotiation(engine)
    wait_for_enter()
    step_05_governance(engine)


if __name__ == "__main__":
    main()
