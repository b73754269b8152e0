"""Oracle transports. The HTTP service lives in ledger_service and is imported explicitly."""

from .oracle_gateway import HttpOracleTransport, MockOracle, OracleCallback

__all__ = [
    "HttpOracleTransport",
    "MockOracle",
    "OracleCallback",
]
