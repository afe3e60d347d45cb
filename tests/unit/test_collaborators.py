"""
test_collaborators.py - Unit tests for the authorization oracle and transfer gateway

Tests:
- StaticAuthorityRegistry membership, verify and revoke
- Protocol conformance of the shipped collaborators
- Transfer record validation
- InMemoryTransferGateway balances, min-balance rejection and transfer log
"""

import pytest
from decimal import Decimal

from microlend import (
    AuthorizationOracle, StaticAuthorityRegistry,
    Transfer, TransferResult, TransferGateway, InMemoryTransferGateway,
)


# ============================================================================
# AUTHORIZATION ORACLE
# ============================================================================

class TestStaticAuthorityRegistry:

    def test_empty_by_default(self):
        registry = StaticAuthorityRegistry()
        assert not registry.is_verified_authority("ST1BORROWER")

    def test_initial_principals(self):
        registry = StaticAuthorityRegistry(["ST1BORROWER", "ST2AUTH"])
        assert registry.is_verified_authority("ST1BORROWER")
        assert registry.is_verified_authority("ST2AUTH")
        assert not registry.is_verified_authority("ST3FAKE")

    def test_verify_and_revoke(self):
        registry = StaticAuthorityRegistry()
        registry.verify("ST3NEW")
        assert registry.is_verified_authority("ST3NEW")
        registry.revoke("ST3NEW")
        assert not registry.is_verified_authority("ST3NEW")

    def test_revoke_absent_is_noop(self):
        registry = StaticAuthorityRegistry()
        registry.revoke("ST3NEW")
        assert registry.principals == set()

    def test_verify_empty_rejected(self):
        with pytest.raises(ValueError):
            StaticAuthorityRegistry().verify(" ")

    def test_principals_is_a_copy(self):
        registry = StaticAuthorityRegistry(["A"])
        registry.principals.add("B")
        assert registry.principals == {"A"}

    def test_implements_protocol(self):
        assert isinstance(StaticAuthorityRegistry(), AuthorizationOracle)


# ============================================================================
# TRANSFERS
# ============================================================================

class TestTransferRecord:

    def test_converts_amount(self):
        t = Transfer(500, "A", "B")
        assert t.amount == Decimal("500")

    @pytest.mark.parametrize("source, dest", [("", "B"), ("A", " ")])
    def test_empty_principals_rejected(self, source, dest):
        with pytest.raises(ValueError):
            Transfer(Decimal("1"), source, dest)

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            Transfer(Decimal("-1"), "A", "B")

    def test_repr(self):
        assert repr(Transfer(Decimal("500"), "A", "B")) == "Transfer(500: A→B)"


class TestInMemoryTransferGateway:

    def test_implements_protocol(self):
        assert isinstance(InMemoryTransferGateway(), TransferGateway)

    def test_default_allows_overdraft(self):
        gateway = InMemoryTransferGateway()
        assert gateway.transfer(Decimal("500"), "A", "B") is TransferResult.APPLIED
        assert gateway.get_balance("A") == Decimal("-500")
        assert gateway.get_balance("B") == Decimal("500")

    def test_log_records_applied_transfers(self):
        gateway = InMemoryTransferGateway()
        gateway.transfer(Decimal("500"), "A", "B")
        gateway.transfer(Decimal("20"), "B", "C")
        assert gateway.transfer_log == [
            Transfer(Decimal("500"), "A", "B", sequence_number=0),
            Transfer(Decimal("20"), "B", "C", sequence_number=1),
        ]

    def test_min_balance_rejects_and_moves_nothing(self):
        gateway = InMemoryTransferGateway(min_balance=Decimal("0"))
        gateway.fund("A", Decimal("100"))
        assert gateway.transfer(Decimal("101"), "A", "B") is TransferResult.REJECTED
        assert gateway.get_balance("A") == Decimal("100")
        assert gateway.get_balance("B") == Decimal("0")
        assert gateway.transfer_log == []

    def test_exact_balance_allowed(self):
        gateway = InMemoryTransferGateway(min_balance=Decimal("0"))
        gateway.fund("A", Decimal("100"))
        assert gateway.transfer(Decimal("100"), "A", "B") is TransferResult.APPLIED
        assert gateway.get_balance("A") == Decimal("0")

    def test_zero_amount_applied(self):
        gateway = InMemoryTransferGateway(min_balance=Decimal("0"))
        assert gateway.transfer(Decimal("0"), "A", "B") is TransferResult.APPLIED
        assert len(gateway.transfer_log) == 1

    @pytest.mark.parametrize("amount, source, dest", [
        (Decimal("-1"), "A", "B"),
        (Decimal("1"), None, "B"),
        (Decimal("1"), "A", None),
        ("garbage", "A", "B"),
    ])
    def test_malformed_rejected(self, amount, source, dest):
        gateway = InMemoryTransferGateway()
        assert gateway.transfer(amount, source, dest) is TransferResult.REJECTED
        assert gateway.transfer_log == []

    def test_conservation(self):
        gateway = InMemoryTransferGateway()
        gateway.fund("A", Decimal("1000"))
        gateway.transfer(Decimal("300"), "A", "B")
        gateway.transfer(Decimal("700"), "B", "C")
        assert gateway.total_supply() == Decimal("1000")

    def test_fund_negative_rejected(self):
        with pytest.raises(ValueError):
            InMemoryTransferGateway().fund("A", Decimal("-1"))
