"""Shared fixtures: oracle keys, mirror capability, and a wired ledger."""

from dataclasses import dataclass
from typing import Callable

import pytest

from okr_ledger.communication import MockOracle
from okr_ledger.crypto import MirrorCapability, SigningKeyPair, generate_signing_keypair
from okr_ledger.ledger import ConfidentialLedger


class StepClock:
    """Deterministic clock advancing by `step` on every read."""

    def __init__(self, start: float = 1000.0, step: float = 1.0) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


@dataclass
class LedgerEnv:
    ledger: ConfidentialLedger
    capability: MirrorCapability
    oracle: MockOracle
    keys: SigningKeyPair
    clock: StepClock


@pytest.fixture
def oracle_keys() -> SigningKeyPair:
    return generate_signing_keypair()


@pytest.fixture
def capability(oracle_keys: SigningKeyPair) -> MirrorCapability:
    return MirrorCapability(oracle_keys.public_key)


@pytest.fixture
def make_env(oracle_keys: SigningKeyPair, capability: MirrorCapability) -> Callable[..., LedgerEnv]:
    def _make(**kwargs) -> LedgerEnv:
        clock = kwargs.pop("clock", None) or StepClock()
        oracle = MockOracle(capability, oracle_keys.private_key)
        ledger = ConfidentialLedger(capability, oracle, clock=clock, **kwargs)
        return LedgerEnv(ledger=ledger, capability=capability, oracle=oracle, keys=oracle_keys, clock=clock)

    return _make


@pytest.fixture
def env(make_env) -> LedgerEnv:
    return make_env()
