"""
Fee Atomicity Conformance Tests

INVARIANT: A loan is issued if and only if its issuance fee moved.

    loans issued = applied fee transfers
    authority balance = fee × loans issued
    Σ balances is unchanged by any request

A request whose fee transfer is rejected leaves no loan and consumes no id.
"""

from hypothesis import given, settings
from hypothesis import strategies as st
from decimal import Decimal

from microlend import LoanError, Err
from tests.loan_helpers import BORROWER, AUTHORITY, request, make_engine


def _whole(low: int, high: int):
    return st.decimals(
        min_value=Decimal(low),
        max_value=Decimal(high),
        places=0,
        allow_nan=False,
        allow_infinity=False,
    )


class TestFeeAtomicityProperties:
    """Property-based fee atomicity tests."""

    @given(_whole(0, 3000), _whole(0, 800), st.integers(min_value=1, max_value=8))
    @settings(max_examples=80)
    def test_one_fee_per_loan(self, funding, fee, attempts):
        """
        PROPERTY: With a no-overdraft gateway, the borrower gets exactly as
        many loans as their funding covers fees for.
        """
        engine = make_engine(min_balance=Decimal("0"))
        engine.set_issuance_fee(fee)
        engine.gateway.fund(BORROWER, funding)
        supply = engine.gateway.total_supply()

        results = [request(engine) for _ in range(attempts)]
        issued = sum(1 for r in results if r.ok)

        expected = attempts if fee == 0 else min(attempts, int(funding // fee))
        assert issued == expected
        assert [r.value for r in results if r.ok] == list(range(issued))
        assert all(r == Err(LoanError.TRANSFER_FAILED) for r in results if not r.ok)

        assert engine.get_loan_count() == issued
        assert len(engine.gateway.transfer_log) == issued
        assert engine.gateway.get_balance(AUTHORITY) == fee * issued
        assert engine.gateway.get_balance(BORROWER) == funding - fee * issued
        assert engine.gateway.total_supply() == supply

    @given(_whole(0, 800), st.integers(min_value=0, max_value=8))
    @settings(max_examples=40)
    def test_rejected_requests_move_nothing(self, fee, attempts):
        """
        PROPERTY: Requests rejected by a check never reach the gateway.
        """
        engine = make_engine()
        engine.set_issuance_fee(fee)
        for _ in range(attempts):
            assert request(engine, currency="BTC") == Err(LoanError.INVALID_CURRENCY)
        assert engine.gateway.transfer_log == []
        assert engine.gateway.get_balance(AUTHORITY) == Decimal("0")
