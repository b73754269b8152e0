import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


class MembershipMode(str, Enum):
    APPEND = "append"
    UNIQUE = "unique"


class AggregationStrategy(str, Enum):
    SCAN = "scan"
    INDEXED = "indexed"


class OracleMode(str, Enum):
    MOCK = "mock"
    HTTP = "http"


@dataclass
class OracleConfig:
    mode: OracleMode = OracleMode.MOCK
    url: str = "http://localhost:7000"
    callback_url: Optional[str] = None
    timeout_seconds: float = 10.0
    retries: int = 0
    backoff_seconds: float = 0.5
    public_key_path: Optional[str] = None
    signing_key_path: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "OracleConfig":
        base = cls()
        if not data:
            return base
        for key, value in data.items():
            if not hasattr(base, key):
                raise ValueError(f"Unknown oracle key '{key}'")
        mode = OracleMode(str(data.get("mode", base.mode.value)))
        timeout_seconds = float(data.get("timeout_seconds", base.timeout_seconds))
        if timeout_seconds <= 0:
            raise ValueError("Oracle timeout_seconds must be positive")
        retries = int(data.get("retries", base.retries))
        if retries < 0:
            raise ValueError("Oracle retries cannot be negative")
        backoff_seconds = float(data.get("backoff_seconds", base.backoff_seconds))
        if backoff_seconds < 0:
            raise ValueError("Oracle backoff_seconds cannot be negative")
        url = str(data.get("url", base.url)).strip()
        if mode is OracleMode.HTTP and not url:
            raise ValueError("HTTP oracle mode requires a url")
        return cls(
            mode=mode,
            url=url,
            callback_url=data.get("callback_url"),
            timeout_seconds=timeout_seconds,
            retries=retries,
            backoff_seconds=backoff_seconds,
            public_key_path=data.get("public_key_path"),
            signing_key_path=data.get("signing_key_path"),
        )


@dataclass
class RetentionConfig:
    fulfilled_ttl_seconds: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "RetentionConfig":
        if not data:
            return cls()
        ttl = data.get("fulfilled_ttl_seconds")
        if ttl is None:
            return cls()
        if float(ttl) < 0:
            raise ValueError("fulfilled_ttl_seconds must be non-negative")
        return cls(fulfilled_ttl_seconds=float(ttl))


@dataclass
class LedgerConfig:
    ledger_id: str = "okr-ledger"
    membership_mode: MembershipMode = MembershipMode.APPEND
    aggregation_strategy: AggregationStrategy = AggregationStrategy.SCAN
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    log_level: str = "INFO"
    metrics_port: Optional[int] = None

    @classmethod
    def from_file(cls, path: Path) -> "LedgerConfig":
        return cls.from_dict(json.loads(Path(path).read_text()))

    @classmethod
    def from_dict(cls, data: Dict) -> "LedgerConfig":
        try:
            membership_mode = MembershipMode(str(data.get("membership_mode", "append")))
        except ValueError as exc:
            raise ValueError(f"Unknown membership mode '{data.get('membership_mode')}'") from exc
        try:
            aggregation_strategy = AggregationStrategy(str(data.get("aggregation_strategy", "scan")))
        except ValueError as exc:
            raise ValueError(
                f"Unknown aggregation strategy '{data.get('aggregation_strategy')}'"
            ) from exc
        ledger_id = str(data.get("ledger_id", "okr-ledger")).strip()
        if not ledger_id:
            raise ValueError("ledger_id cannot be empty")
        metrics_port = data.get("metrics_port")
        if metrics_port is not None:
            metrics_port = int(metrics_port)
            if metrics_port <= 0 or metrics_port > 65535:
                raise ValueError("metrics_port must be within 1-65535")
        return cls(
            ledger_id=ledger_id,
            membership_mode=membership_mode,
            aggregation_strategy=aggregation_strategy,
            retention=RetentionConfig.from_mapping(data.get("retention")),
            oracle=OracleConfig.from_mapping(data.get("oracle")),
            log_level=str(data.get("log_level", "INFO")).upper(),
            metrics_port=metrics_port,
        )
