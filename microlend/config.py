"""Configuration management for microlend."""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
import os
from typing import Callable, Optional, TypeVar

from .core import (
    DEFAULT_ISSUANCE_FEE, DEFAULT_MIN_TRUST_SCORE, DEFAULT_MAX_INTEREST_RATE,
    DEFAULT_MIN_REPAYMENT_DURATION, DEFAULT_MAX_REPAYMENT_DURATION, DEFAULT_MAX_LOANS,
    ConfigurationError,
    to_decimal,
)


T = TypeVar("T")


@dataclass
class RiskParameterConfig:
    """Initial risk parameters. The bound authority can change them at runtime."""

    issuance_fee: Decimal = DEFAULT_ISSUANCE_FEE
    min_trust_score: Decimal = DEFAULT_MIN_TRUST_SCORE
    max_interest_rate: Decimal = DEFAULT_MAX_INTEREST_RATE
    min_repayment_duration: int = DEFAULT_MIN_REPAYMENT_DURATION
    max_repayment_duration: int = DEFAULT_MAX_REPAYMENT_DURATION

    def validate(self) -> None:
        """Raise ConfigurationError if the parameters are not coherent."""
        if self.issuance_fee < 0:
            raise ConfigurationError(f"issuance_fee cannot be negative: {self.issuance_fee}")
        if self.min_trust_score < 0:
            raise ConfigurationError(f"min_trust_score cannot be negative: {self.min_trust_score}")
        if self.max_interest_rate <= 0:
            raise ConfigurationError(f"max_interest_rate must be positive: {self.max_interest_rate}")
        if self.min_repayment_duration <= 0:
            raise ConfigurationError(
                f"min_repayment_duration must be positive: {self.min_repayment_duration}"
            )
        if self.max_repayment_duration < self.min_repayment_duration:
            raise ConfigurationError(
                f"max_repayment_duration {self.max_repayment_duration} "
                f"< min_repayment_duration {self.min_repayment_duration}"
            )


@dataclass
class LedgerConfig:
    """Loan ledger configuration."""

    max_loans: int = DEFAULT_MAX_LOANS

    def validate(self) -> None:
        if self.max_loans < 0:
            raise ConfigurationError(f"max_loans cannot be negative: {self.max_loans}")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format_type: str = "standard"


@dataclass
class MicroLendConfig:
    """Main configuration for microlend."""

    risk: RiskParameterConfig = field(default_factory=RiskParameterConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        self.risk.validate()
        self.ledger.validate()

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> MicroLendConfig:
        """Create config from environment variables.

        Unset variables fall back to the defaults. Values that cannot be
        parsed, or that are out of range, raise ConfigurationError.
        """
        env = os.environ if environ is None else environ

        risk = RiskParameterConfig(
            issuance_fee=_read(env, "MICROLEND_ISSUANCE_FEE", to_decimal, DEFAULT_ISSUANCE_FEE),
            min_trust_score=_read(env, "MICROLEND_MIN_TRUST_SCORE", to_decimal, DEFAULT_MIN_TRUST_SCORE),
            max_interest_rate=_read(
                env, "MICROLEND_MAX_INTEREST_RATE", to_decimal, DEFAULT_MAX_INTEREST_RATE
            ),
            min_repayment_duration=_read(
                env, "MICROLEND_MIN_DURATION", int, DEFAULT_MIN_REPAYMENT_DURATION
            ),
            max_repayment_duration=_read(
                env, "MICROLEND_MAX_DURATION", int, DEFAULT_MAX_REPAYMENT_DURATION
            ),
        )

        ledger = LedgerConfig(
            max_loans=_read(env, "MICROLEND_MAX_LOANS", int, DEFAULT_MAX_LOANS),
        )

        logging_config = LoggingConfig(
            level=env.get("LOG_LEVEL", "INFO"),
            format_type=env.get("LOG_FORMAT", "standard"),
        )

        config = cls(risk=risk, ledger=ledger, logging=logging_config)
        config.validate()
        return config


def _read(env, name: str, parse: Callable[[str], T], default: T) -> T:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return parse(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name}={raw!r} is invalid: {e}") from e
