"""
logging.py - Log output for the loan engine

Everything the package emits goes through loggers under "microlend":

    microlend.engine      INFO on issuance, repayment and renegotiation,
                          DEBUG for every rejected request/repay/update
    microlend.parameters  INFO when the authority is bound or a risk
                          parameter changes, DEBUG on refused setters
    microlend.transfers   WARNING when a fee transfer is refused
    microlend.authority   INFO when a principal is verified or revoked

Rejections carry their context as extra={"extra": {...}}: the operation
name, the numeric LoanError code, and the caller or loan id involved.
JsonFormatter lifts those keys into the top level of each JSON line.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


LOGGER_NAME = "microlend"
STANDARD_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", format_type: str = "standard") -> None:
    """
    Route microlend log output to stdout.

    Replaces any handlers already on the root logger, so calling it twice
    does not duplicate lines. An unknown level name falls back to INFO.

    Args:
        level: DEBUG shows each rejected operation with its error code;
            INFO shows loans issued, repaid and updated.
        format_type: "json" for one JSON object per line, anything else
            for the pipe-separated text format.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(fmt=STANDARD_FORMAT, datefmt=DATE_FORMAT)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    logging.getLogger(LOGGER_NAME).setLevel(log_level)


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    The thread name is included because a single engine is shared between
    threads. Decimal amounts in the context are written as strings.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        context = getattr(record, "extra", None)
        if context:
            entry.update(context)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass __name__ so it nests under "microlend"."""
    return logging.getLogger(name)
