"""
conftest.py - Shared pytest fixtures for microlend tests

Provides:
- Fresh engines, unbound and bound
- An engine already holding one issued loan
- Root logger restoration for tests that call setup_logging()
"""

import logging
import pytest

from microlend import LoanEngine
from tests.loan_helpers import make_engine, request


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def unbound_engine() -> LoanEngine:
    """Engine with no authority contract bound."""
    return make_engine(bind=False)


@pytest.fixture
def engine() -> LoanEngine:
    """Engine with AUTHORITY bound and default parameters."""
    return make_engine()


@pytest.fixture
def issued_engine(engine) -> LoanEngine:
    """Engine holding loan 0 (1000 STX at 5%, grace 7) issued at time 0."""
    result = request(engine)
    assert result.ok and result.value == 0
    return engine


@pytest.fixture
def restore_root_logging():
    """Put the root logger back the way it was after a setup_logging() test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("microlend").setLevel(logging.NOTSET)
