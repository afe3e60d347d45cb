"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the loan engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. identifiers.py - Dense, never-reused loan ids and the reporting order
2. repayment.py - Monotone repayment and exact REPAID transitions
3. authority_binding.py - The authority binds once and never changes
4. fee_atomicity.py - One fee per issued loan, none otherwise
5. determinism.py - Identical inputs produce identical state
6. serialization.py - Concurrent callers observe a single order

These tests use hypothesis for property-based testing.
"""
