"""
Repayment Conformance Tests

INVARIANT: For every loan, at all times:
    0 <= repaid_amount <= total_due
    status = REPAID  ⟺  repaid_amount = total_due
    repaid_amount never decreases

REPAID is terminal: no repayment or update is accepted afterwards.
"""

from hypothesis import given, settings
from hypothesis import strategies as st
from decimal import Decimal

from microlend import LoanError, LoanStatus, Err
from tests.loan_helpers import BORROWER, request, make_engine


def _payment():
    return st.decimals(
        min_value=Decimal("-50"),
        max_value=Decimal("700"),
        places=2,
        allow_nan=False,
        allow_infinity=False,
    )


def _check_invariants(loan):
    assert Decimal("0") <= loan.repaid_amount <= loan.total_due
    assert (loan.status is LoanStatus.REPAID) == (loan.repaid_amount == loan.total_due)


class TestRepaymentProperties:
    """Property-based repayment tests."""

    @given(st.lists(_payment(), max_size=20))
    @settings(max_examples=80)
    def test_repayment_is_monotone_and_exact(self, payments):
        """
        PROPERTY: Accepted payments add exactly their amount, rejected
        payments change nothing, and the invariants hold after every step.
        """
        engine = make_engine()
        request(engine)

        for payment in payments:
            before = engine.get_loan(0)
            result = engine.repay_loan(BORROWER, 7, 0, payment)
            after = engine.get_loan(0)

            if result.ok:
                assert after.repaid_amount == before.repaid_amount + payment
            else:
                assert after == before
            assert after.repaid_amount >= before.repaid_amount
            _check_invariants(after)

    @given(st.lists(_payment(), max_size=20))
    @settings(max_examples=50)
    def test_repaid_is_terminal(self, payments):
        """
        PROPERTY: Once REPAID, every repayment and update reports INVALID_STATUS.
        """
        engine = make_engine()
        request(engine)
        engine.repay_loan(BORROWER, 7, 0, Decimal("1050"))

        for payment in payments:
            result = engine.repay_loan(BORROWER, 7, 0, payment)
            assert result == Err(LoanError.INVALID_STATUS)
        result = engine.update_loan(BORROWER, 8, 0, Decimal("2000"), Decimal("10"), 90)
        assert result == Err(LoanError.INVALID_STATUS)
        assert engine.get_loan(0).repaid_amount == Decimal("1050")

    @given(st.lists(
        st.one_of(
            st.tuples(st.just("repay"), _payment()),
            st.tuples(
                st.just("update"),
                st.decimals(min_value=Decimal("1"), max_value=Decimal("3000"), places=0,
                            allow_nan=False, allow_infinity=False),
                st.integers(min_value=1, max_value=15),
            ),
        ),
        max_size=20,
    ))
    @settings(max_examples=80)
    def test_updates_never_strand_repayments(self, operations):
        """
        PROPERTY: Interleaving updates with repayments never leaves a loan
        with more repaid than it owes.
        """
        engine = make_engine()
        request(engine)
        now = 0

        for op in operations:
            now += 7
            if op[0] == "repay":
                engine.repay_loan(BORROWER, now, 0, op[1])
            else:
                engine.update_loan(BORROWER, now, 0, op[1], Decimal(op[2]), 60)
                now += 7
            _check_invariants(engine.get_loan(0))
