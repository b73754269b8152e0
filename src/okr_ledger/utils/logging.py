import json
import logging
import os
import sys
from logging import Logger
from typing import Optional

DEFAULT_LEDGER_ID = "okr-ledger"
# Attributes callers may attach through `extra=` that end up in JSON output.
CONTEXT_FIELDS = ("request_id", "team_id", "record_id", "owner")


class LedgerContextFilter(logging.Filter):
    """Stamps every record with the ledger it came from."""

    def __init__(self, ledger_id: str) -> None:
        super().__init__()
        self.ledger_id = ledger_id

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "ledger_id"):
            record.ledger_id = self.ledger_id
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line, carrying ledger_id and any protocol identifiers."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "ledger_id": getattr(record, "ledger_id", DEFAULT_LEDGER_ID),
            "component": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log[field] = value
        if record.exc_info:
            log["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log, default=str)


def configure_logging(
    level: Optional[str] = None,
    json_output: bool = False,
    log_file: Optional[str] = None,
    ledger_id: str = DEFAULT_LEDGER_ID,
) -> None:
    """
    Route ledger logs to stdout (and optionally a file), tagged with ledger_id.

    The level falls back to $LOG_LEVEL, then INFO.
    """
    effective_level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    if json_output:
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(ledger_id)s %(name)s | %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    context = LedgerContextFilter(ledger_id)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context)
    logging.basicConfig(
        level=getattr(logging, effective_level, logging.INFO),
        handlers=handlers,
        force=True,
    )


def get_logger(name: str) -> Logger:
    """Logger under the okr_ledger namespace, e.g. get_logger("oracle")."""
    return logging.getLogger(f"okr_ledger.{name}")
