from .models import (
    AggregationStrategy,
    LedgerConfig,
    MembershipMode,
    OracleConfig,
    OracleMode,
    RetentionConfig,
)
from .system import build_ledger, load_ledger_config, resolve_ledger_config_path

__all__ = [
    "AggregationStrategy",
    "LedgerConfig",
    "MembershipMode",
    "OracleConfig",
    "OracleMode",
    "RetentionConfig",
    "build_ledger",
    "load_ledger_config",
    "resolve_ledger_config_path",
]
