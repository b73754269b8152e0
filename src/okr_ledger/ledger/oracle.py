"""Decryption-oracle handshake: issue requests, validate and consume callbacks."""

from __future__ import annotations

import dataclasses
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, NoReturn, Optional, Type, Union

from okr_ledger.crypto import CiphertextCapability, DecryptionProof, compute_commitment, decode_cleartext
from okr_ledger.crypto.proof import Cleartext
from okr_ledger.ledger.aggregation import AggregationEngine
from okr_ledger.ledger.errors import (
    EmptyAggregateError,
    InvalidProofError,
    LedgerError,
    NotFoundError,
    UnknownRequestError,
)
from okr_ledger.ledger.events import AggregateDecrypted, DecryptionRequested, EventBus
from okr_ledger.utils import get_logger
from okr_ledger.utils.metrics import MetricsSink

logger = get_logger("oracle")


class OracleTransport(ABC):
    """Hands a packaged ciphertext to the external decryption oracle."""

    @abstractmethod
    def submit(self, request_id: int, payload: bytes) -> None:
        """Deliver the request. Raising aborts the request with no state change."""

    def is_available(self) -> bool:
        """Whether the transport can currently accept requests."""
        return True


class RequestStatus(str, Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"


@dataclass
class PendingDecryptionRequest:
    request_id: int
    team_id: str
    commitment: bytes
    requested_at: float
    status: RequestStatus = RequestStatus.PENDING
    cleartext: Optional[int] = None
    fulfilled_at: Optional[float] = None


@dataclass(frozen=True)
class RetentionPolicy:
    """
    How long fulfilled requests are kept.

    Attributes:
        fulfilled_ttl_seconds: None keeps every entry; otherwise fulfilled
            entries older than this are purged after each fulfilment.
    """

    fulfilled_ttl_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if self.fulfilled_ttl_seconds is not None and self.fulfilled_ttl_seconds < 0:
            raise ValueError("fulfilled_ttl_seconds must be non-negative")


class DecryptionOracleClient:
    """
    Tracks decryption requests for team aggregates.

    Per request the lifecycle is None -> PENDING -> FULFILLED. A callback for a
    fulfilled (or purged) request is accepted silently and changes nothing.
    """

    def __init__(
        self,
        capability: CiphertextCapability,
        aggregates: AggregationEngine,
        transport: OracleTransport,
        events: Optional[EventBus] = None,
        metrics: Optional[MetricsSink] = None,
        retention: Optional[RetentionPolicy] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.capability = capability
        self.aggregates = aggregates
        self.transport = transport
        self.events = events
        self.metrics = metrics
        self.retention = retention or RetentionPolicy()
        self.clock = clock
        self._requests: Dict[int, PendingDecryptionRequest] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def request_decryption(self, team_id: str) -> int:
        if not self.aggregates.has_aggregate(team_id):
            raise EmptyAggregateError(f"Team {team_id} has no computed aggregate; recompute first")
        aggregate = self.aggregates.get_aggregate(team_id)
        payload = self.capability.to_transport(aggregate.encrypted_sum)
        with self._lock:
            request_id = self._next_id
            self.transport.submit(request_id, payload)
            self._requests[request_id] = PendingDecryptionRequest(
                request_id=request_id,
                team_id=team_id,
                commitment=compute_commitment(payload),
                requested_at=self.clock(),
            )
            self._next_id += 1
        logger.info("Requested decryption request_id=%d team=%s", request_id, team_id)
        if self.events is not None:
            self.events.publish(DecryptionRequested(request_id=request_id))
        return request_id

    def _was_purged(self, request_id: int) -> bool:
        # Ids are only issued once the transport accepts them and entries only
        # leave _requests through purge_fulfilled, so an issued id that is
        # missing must have been purged.
        return 1 <= request_id < self._next_id and request_id not in self._requests

    def _reject(self, message: str, error: Type[LedgerError]) -> NoReturn:
        logger.warning(message)
        if self.metrics is not None:
            self.metrics.emit_counter("callbacks_rejected")
        raise error(message)

    def on_callback(
        self, request_id: int, cleartext: Cleartext, proof: Union[DecryptionProof, bytes]
    ) -> Optional[int]:
        """
        Consume an oracle callback.

        Returns the decoded cleartext when the request is (or already was)
        fulfilled, or None for a purged request.
        """
        with self._lock:
            entry = self._requests.get(request_id)
            if entry is None:
                if self._was_purged(request_id):
                    logger.debug("Ignoring callback for purged request_id=%d", request_id)
                    return None
                self._reject(f"Callback for unknown request_id={request_id}", UnknownRequestError)
            if entry.status is RequestStatus.FULFILLED:
                logger.debug("Ignoring repeated callback for request_id=%d", request_id)
                return entry.cleartext
            try:
                value = decode_cleartext(cleartext)
                parsed = DecryptionProof.coerce(proof)
            except ValueError as exc:
                self._reject(f"Malformed callback for request_id={request_id}: {exc}", InvalidProofError)
            if parsed.commitment != entry.commitment:
                self._reject(
                    f"Proof for request_id={request_id} commits to a different ciphertext",
                    InvalidProofError,
                )
            if not self.capability.verify_decryption(request_id, value, parsed):
                self._reject(f"Proof verification failed for request_id={request_id}", InvalidProofError)
            now = self.clock()
            entry.status = RequestStatus.FULFILLED
            entry.cleartext = value
            entry.fulfilled_at = now
            team_id = entry.team_id
            if self.retention.fulfilled_ttl_seconds is not None:
                self.purge_fulfilled(now)
        logger.info("Decryption fulfilled request_id=%d team=%s", request_id, team_id)
        if self.events is not None:
            self.events.publish(AggregateDecrypted(team_id=team_id, cleartext=value))
        return value

    def purge_fulfilled(self, now: Optional[float] = None) -> int:
        """Drop fulfilled entries older than the retention TTL; returns how many."""
        ttl = self.retention.fulfilled_ttl_seconds
        if ttl is None:
            return 0
        now = self.clock() if now is None else now
        with self._lock:
            expired = [
                request_id
                for request_id, entry in self._requests.items()
                if entry.status is RequestStatus.FULFILLED
                and entry.fulfilled_at is not None
                and now - entry.fulfilled_at >= ttl
            ]
            for request_id in expired:
                del self._requests[request_id]
        if expired:
            logger.info("Purged %d fulfilled decryption requests", len(expired))
        return len(expired)

    def get_request(self, request_id: int) -> PendingDecryptionRequest:
        with self._lock:
            entry = self._requests.get(request_id)
            if entry is None:
                raise NotFoundError(f"Request {request_id} not found")
            return dataclasses.replace(entry)

    def pending_requests(self) -> List[int]:
        with self._lock:
            return [rid for rid, entry in self._requests.items() if entry.status is RequestStatus.PENDING]
