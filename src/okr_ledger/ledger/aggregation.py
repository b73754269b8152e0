"""Homomorphic team aggregation over each member's latest progress."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol

from okr_ledger.crypto import Ciphertext, CiphertextCapability
from okr_ledger.ledger.errors import NotFoundError
from okr_ledger.ledger.events import AggregateComputed, EventBus
from okr_ledger.ledger.membership import MembershipRegistry
from okr_ledger.ledger.records import EncryptedRecord, EncryptedRecordStore
from okr_ledger.utils import get_logger
from okr_ledger.utils.metrics import MetricsSink, Timer

logger = get_logger("aggregation")


@dataclass(frozen=True)
class TeamAggregate:
    """Full recomputation of a team's encrypted progress sum as of last_updated."""

    team_id: str
    encrypted_sum: Ciphertext
    last_updated: float


class LatestResolver(Protocol):
    def latest(self, owner: str) -> Optional[EncryptedRecord]: ...


class ScanLatestResolver:
    """
    Finds an owner's latest record by scanning every stored record.

    Cost is O(records) per lookup, so a recompute is O(members x records).
    """

    def __init__(self, store: EncryptedRecordStore) -> None:
        self.store = store

    def latest(self, owner: str) -> Optional[EncryptedRecord]:
        best: Optional[EncryptedRecord] = None
        for record in self.store:
            if record.owner == owner and (best is None or record.id > best.id):
                best = record
        return best


class IndexedLatestResolver:
    """O(1) lookup through the store's owner -> latest id index."""

    def __init__(self, store: EncryptedRecordStore) -> None:
        self.store = store

    def latest(self, owner: str) -> Optional[EncryptedRecord]:
        record_id = self.store.latest_id_for(owner)
        if record_id is None:
            return None
        return self.store.get_by_id(record_id)


class AggregationEngine:
    """
    Recomputes team aggregates from scratch on every call.

    Every membership entry contributes exactly one homomorphic add. Members
    without a record, or whose progress handle is uninitialized, contribute the
    capability's zero so the sequence of operations never depends on which
    members have data.
    """

    def __init__(
        self,
        capability: CiphertextCapability,
        membership: MembershipRegistry,
        resolver: LatestResolver,
        events: Optional[EventBus] = None,
        metrics: Optional[MetricsSink] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.capability = capability
        self.membership = membership
        self.resolver = resolver
        self.events = events
        self.metrics = metrics
        self.clock = clock
        self._aggregates: Dict[str, TeamAggregate] = {}
        self._lock = threading.Lock()

    def _contribution(self, record: Optional[EncryptedRecord]) -> Ciphertext:
        candidate = record.encrypted_progress if record is not None else self.capability.zero()
        if not self.capability.is_initialized(candidate):
            return self.capability.zero()
        return candidate

    def _sum_members(self, members: List[str]) -> Ciphertext:
        acc = self.capability.zero()
        for owner in members:
            acc = self.capability.add(acc, self._contribution(self.resolver.latest(owner)))
        return acc

    def recompute(self, team_id: str) -> TeamAggregate:
        members = self.membership.list(team_id)
        if self.metrics is not None:
            with Timer(self.metrics, "recompute_seconds"):
                encrypted_sum = self._sum_members(members)
        else:
            encrypted_sum = self._sum_members(members)
        aggregate = TeamAggregate(team_id=team_id, encrypted_sum=encrypted_sum, last_updated=self.clock())
        with self._lock:
            self._aggregates[team_id] = aggregate
        logger.info("Recomputed aggregate team=%s entries=%d", team_id, len(members))
        if self.events is not None:
            self.events.publish(AggregateComputed(team_id=team_id, timestamp=aggregate.last_updated))
        return aggregate

    def has_aggregate(self, team_id: str) -> bool:
        with self._lock:
            return team_id in self._aggregates

    def get_aggregate(self, team_id: str) -> TeamAggregate:
        with self._lock:
            aggregate = self._aggregates.get(team_id)
        if aggregate is None:
            raise NotFoundError(f"No aggregate computed for team {team_id}")
        return aggregate

    def list_aggregates(self) -> List[TeamAggregate]:
        """All aggregates, most recently updated first."""
        with self._lock:
            aggregates = list(self._aggregates.values())
        return sorted(aggregates, key=lambda agg: agg.last_updated, reverse=True)
