"""
microlend - Collateralized Micro-Loan Engine

Admits loan requests under authority-controlled risk limits, tracks flat-rate
repayment, and lets a single bound authority retune the risk parameters.

Usage:
    from microlend import LoanEngine, StaticAuthorityRegistry, InMemoryTransferGateway

    engine = LoanEngine(
        oracle=StaticAuthorityRegistry(["ST1BORROWER"]),
        gateway=InMemoryTransferGateway(),
    )
    engine.set_authority_contract("ST2AUTH")

    result = engine.request_loan(
        caller="ST1BORROWER", now=0,
        amount=1000, interest_rate=5, repayment_duration=60,
        grace_period=7, penalty_rate=2, currency="STX",
        collateral_amount=1500, trust_score=75, pool_id=1,
    )
    if result.ok:
        loan_id = result.value
"""

# Core types
from .core import (
    LoanRecord,
    LoanUpdateRecord,
    LoanStatus,
    Currency,
    LoanError,
    Ok,
    Err,
    Result,
    MicroLendError,
    ResultError,
    ConfigurationError,
    calculate_interest,
    calculate_total_due,
    calculate_repayment,
    to_decimal,
    parse_currency,
    NULL_PRINCIPAL,
    MAX_LOAN_AMOUNT,
    MAX_GRACE_PERIOD,
    MAX_PENALTY_RATE,
    MIN_COLLATERAL_RATIO,
    SUPPORTED_CURRENCIES,
    DEFAULT_ISSUANCE_FEE,
    DEFAULT_MIN_TRUST_SCORE,
    DEFAULT_MAX_INTEREST_RATE,
    DEFAULT_MIN_REPAYMENT_DURATION,
    DEFAULT_MAX_REPAYMENT_DURATION,
    DEFAULT_MAX_LOANS,
)

# Parameter store
from .parameters import (
    ParameterSet,
    ParameterStore,
    AuthorityBinding,
    Unbound,
    BoundTo,
    UNBOUND,
    is_acceptable_authority,
)

# Authorization oracle
from .authority import (
    AuthorizationOracle,
    StaticAuthorityRegistry,
)

# Value transfer
from .transfers import (
    Transfer,
    TransferResult,
    TransferGateway,
    InMemoryTransferGateway,
)

# Loan ledger
from .loan_ledger import LoanLedger

# Engine
from .engine import (
    LoanEngine,
    first_failure,
    term_checks,
    collateral_is_valid,
)

# Configuration and logging
from .config import (
    MicroLendConfig,
    RiskParameterConfig,
    LedgerConfig,
    LoggingConfig,
)
from .logging import setup_logging, get_logger

__all__ = [
    # Core
    'LoanRecord', 'LoanUpdateRecord', 'LoanStatus', 'Currency', 'LoanError',
    'Ok', 'Err', 'Result',
    'MicroLendError', 'ResultError', 'ConfigurationError',
    'calculate_interest', 'calculate_total_due', 'calculate_repayment',
    'to_decimal', 'parse_currency',
    'NULL_PRINCIPAL', 'MAX_LOAN_AMOUNT', 'MAX_GRACE_PERIOD', 'MAX_PENALTY_RATE',
    'MIN_COLLATERAL_RATIO', 'SUPPORTED_CURRENCIES',
    'DEFAULT_ISSUANCE_FEE', 'DEFAULT_MIN_TRUST_SCORE', 'DEFAULT_MAX_INTEREST_RATE',
    'DEFAULT_MIN_REPAYMENT_DURATION', 'DEFAULT_MAX_REPAYMENT_DURATION', 'DEFAULT_MAX_LOANS',
    # Parameters
    'ParameterSet', 'ParameterStore', 'AuthorityBinding', 'Unbound', 'BoundTo', 'UNBOUND',
    'is_acceptable_authority',
    # Authority
    'AuthorizationOracle', 'StaticAuthorityRegistry',
    # Transfers
    'Transfer', 'TransferResult', 'TransferGateway', 'InMemoryTransferGateway',
    # Ledger
    'LoanLedger',
    # Engine
    'LoanEngine', 'first_failure', 'term_checks', 'collateral_is_valid',
    # Config / logging
    'MicroLendConfig', 'RiskParameterConfig', 'LedgerConfig', 'LoggingConfig',
    'setup_logging', 'get_logger',
]

__version__ = '1.0.0'
