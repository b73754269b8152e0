"""Loading ledger configuration and wiring a ledger from it."""

import os
from pathlib import Path
from typing import Optional, Tuple

from okr_ledger.communication.oracle_gateway import HttpOracleTransport, MockOracle
from okr_ledger.config.models import LedgerConfig, MembershipMode, OracleMode
from okr_ledger.crypto import (
    CiphertextCapability,
    MirrorCapability,
    generate_signing_keypair,
    load_private_key_pem,
    load_public_key_pem,
    public_key_from_private,
)
from okr_ledger.ledger import (
    AccessPolicy,
    ConfidentialLedger,
    MembershipRegistry,
    OracleTransport,
    RetentionPolicy,
    UniqueMembershipRegistry,
)
from okr_ledger.utils import get_logger
from okr_ledger.utils.metrics import MetricsSink

LEDGER_CONFIG_FILENAME = "ledger-config.json"
LEDGER_CONFIG_ENV_VAR = "LEDGER_CONFIG_PATH"

logger = get_logger("config")


def resolve_ledger_config_path(path: Optional[Path] = None) -> Path:
    """Explicit path first, then $LEDGER_CONFIG_PATH, then ./ledger-config.json."""
    if path is not None:
        return Path(path).resolve()
    env_value = os.getenv(LEDGER_CONFIG_ENV_VAR)
    if env_value:
        candidate = Path(env_value)
        if not candidate.is_absolute():
            candidate = (Path.cwd() / candidate).resolve()
        return candidate
    return (Path.cwd() / LEDGER_CONFIG_FILENAME).resolve()


def load_ledger_config(path: Optional[Path] = None) -> LedgerConfig:
    """
    Load the ledger configuration.

    A missing file yields the defaults; invalid JSON or values raise ValueError.
    """
    resolved = resolve_ledger_config_path(path)
    if not resolved.exists():
        logger.info("No ledger config at %s; using defaults", resolved)
        return LedgerConfig()
    try:
        return LedgerConfig.from_file(resolved)
    except ValueError as exc:
        raise ValueError(f"Invalid ledger config at {resolved}: {exc}") from exc


def build_ledger(
    config: LedgerConfig,
    capability: Optional[CiphertextCapability] = None,
    signing_key: Optional[bytes] = None,
    policy: Optional[AccessPolicy] = None,
    metrics: Optional[MetricsSink] = None,
) -> Tuple[ConfidentialLedger, OracleTransport]:
    """
    Build a ledger and its oracle transport from configuration.

    Without an explicit capability a MirrorCapability is created, keyed by the
    configured oracle public key (or the mock oracle's own key in mock mode).
    """
    oracle_cfg = config.oracle
    if oracle_cfg.mode is OracleMode.MOCK and signing_key is None:
        if oracle_cfg.signing_key_path:
            signing_key = load_private_key_pem(Path(oracle_cfg.signing_key_path))
        else:
            signing_key = generate_signing_keypair().private_key
            logger.info("Generated ephemeral mock oracle signing key")

    if capability is None:
        if oracle_cfg.public_key_path:
            public_key = load_public_key_pem(Path(oracle_cfg.public_key_path))
        elif signing_key is not None:
            public_key = public_key_from_private(signing_key)
        else:
            raise ValueError("An oracle public_key_path is required to verify HTTP oracle proofs")
        capability = MirrorCapability(public_key)

    transport: OracleTransport
    if oracle_cfg.mode is OracleMode.MOCK:
        if not isinstance(capability, MirrorCapability):
            raise ValueError("The mock oracle only decrypts mirror ciphertexts")
        transport = MockOracle(capability, signing_key)
    else:
        transport = HttpOracleTransport(
            relayer_url=oracle_cfg.url,
            timeout=oracle_cfg.timeout_seconds,
            retries=oracle_cfg.retries,
            backoff=oracle_cfg.backoff_seconds,
            callback_url=oracle_cfg.callback_url,
        )

    membership = (
        UniqueMembershipRegistry()
        if config.membership_mode is MembershipMode.UNIQUE
        else MembershipRegistry()
    )
    ledger = ConfidentialLedger(
        capability,
        transport,
        policy=policy,
        membership=membership,
        aggregation_strategy=config.aggregation_strategy.value,
        retention=RetentionPolicy(fulfilled_ttl_seconds=config.retention.fulfilled_ttl_seconds),
        metrics=metrics,
    )
    logger.info(
        "Built ledger id=%s membership=%s strategy=%s oracle=%s",
        config.ledger_id,
        config.membership_mode.value,
        config.aggregation_strategy.value,
        oracle_cfg.mode.value,
    )
    return ledger, transport
