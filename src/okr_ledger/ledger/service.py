"""Atomic facade over the record store, aggregation engine and oracle client."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, List, Optional, Union

from okr_ledger.crypto import Ciphertext, CiphertextCapability, DecryptionProof
from okr_ledger.crypto.proof import Cleartext
from okr_ledger.ledger.access import AccessPolicy, AllowAllPolicy
from okr_ledger.ledger.aggregation import (
    AggregationEngine,
    IndexedLatestResolver,
    LatestResolver,
    ScanLatestResolver,
    TeamAggregate,
)
from okr_ledger.ledger.errors import UnauthorizedError
from okr_ledger.ledger.events import EventBus, EventMetrics
from okr_ledger.ledger.membership import MembershipRegistry
from okr_ledger.ledger.oracle import (
    DecryptionOracleClient,
    OracleTransport,
    PendingDecryptionRequest,
    RetentionPolicy,
)
from okr_ledger.ledger.records import EncryptedRecord, EncryptedRecordStore
from okr_ledger.utils import get_logger
from okr_ledger.utils.metrics import MetricsSink

logger = get_logger("ledger")

RESOLVER_STRATEGIES = {
    "scan": ScanLatestResolver,
    "indexed": IndexedLatestResolver,
}


class ConfidentialLedger:
    """
    Public operations of the confidential OKR ledger.

    Mutating calls are serialized by one re-entrant lock. Authorization and
    preconditions are checked before anything is written, and events fire
    only after the write has been applied.
    """

    def __init__(
        self,
        capability: CiphertextCapability,
        transport: OracleTransport,
        policy: Optional[AccessPolicy] = None,
        membership: Optional[MembershipRegistry] = None,
        aggregation_strategy: str = "scan",
        retention: Optional[RetentionPolicy] = None,
        events: Optional[EventBus] = None,
        metrics: Optional[MetricsSink] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if aggregation_strategy not in RESOLVER_STRATEGIES:
            raise ValueError(f"Unknown aggregation strategy '{aggregation_strategy}'")
        self.capability = capability
        self.policy: AccessPolicy = policy or AllowAllPolicy()
        self.membership = membership if membership is not None else MembershipRegistry()
        self.events = events if events is not None else EventBus()
        self.metrics = metrics
        if metrics is not None:
            self.events.subscribe(EventMetrics(metrics))
        self.store = EncryptedRecordStore(self.membership, events=self.events, clock=clock)
        self.resolver: LatestResolver = RESOLVER_STRATEGIES[aggregation_strategy](self.store)
        self.engine = AggregationEngine(
            capability,
            self.membership,
            self.resolver,
            events=self.events,
            metrics=metrics,
            clock=clock,
        )
        self.oracle = DecryptionOracleClient(
            capability,
            self.engine,
            transport,
            events=self.events,
            metrics=metrics,
            retention=retention,
            clock=clock,
        )
        self._lock = threading.RLock()

    def submit(
        self,
        owner: str,
        encrypted_objective: Any,
        encrypted_key_results: Any,
        encrypted_progress: Ciphertext,
        team_id: str,
        caller: Optional[str] = None,
    ) -> int:
        """Append a record; the caller defaults to the owner."""
        caller = owner if caller is None else caller
        with self._lock:
            if not self.policy.can_submit(caller, team_id):
                logger.warning("Submit denied caller=%s team=%s", caller, team_id)
                raise UnauthorizedError(f"{caller} may not submit to team {team_id}")
            return self.store.submit(
                owner,
                encrypted_objective,
                encrypted_key_results,
                encrypted_progress,
                team_id,
            )

    def recompute(self, team_id: str) -> TeamAggregate:
        with self._lock:
            return self.engine.recompute(team_id)

    def request_decryption(self, team_id: str, caller: str) -> int:
        with self._lock:
            if not self.policy.can_request_decryption(caller, team_id):
                logger.warning("Decryption request denied caller=%s team=%s", caller, team_id)
                raise UnauthorizedError(f"{caller} may not request decryption for team {team_id}")
            return self.oracle.request_decryption(team_id)

    def on_callback(
        self, request_id: int, cleartext: Cleartext, proof: Union[DecryptionProof, bytes]
    ) -> Optional[int]:
        with self._lock:
            return self.oracle.on_callback(request_id, cleartext, proof)

    def get_record(self, record_id: int) -> EncryptedRecord:
        return self.store.get_by_id(record_id)

    def get_aggregate(self, team_id: str) -> TeamAggregate:
        return self.engine.get_aggregate(team_id)

    def list_aggregates(self) -> List[TeamAggregate]:
        return self.engine.list_aggregates()

    def records_for_owner(self, owner: str) -> List[int]:
        return self.store.records_for_owner(owner)

    def team_members(self, team_id: str) -> List[str]:
        return self.membership.list(team_id)

    def participant_count(self, team_id: str) -> int:
        return self.membership.participant_count(team_id)

    def get_request(self, request_id: int) -> PendingDecryptionRequest:
        return self.oracle.get_request(request_id)

    def pending_requests(self) -> List[int]:
        return self.oracle.pending_requests()

    def purge_fulfilled(self, now: Optional[float] = None) -> int:
        with self._lock:
            return self.oracle.purge_fulfilled(now)

    def is_available(self) -> bool:
        """True while the oracle transport can take new decryption requests."""
        return self.oracle.transport.is_available()
