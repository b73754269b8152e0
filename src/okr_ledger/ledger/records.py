"""Append-only ledger of encrypted OKR submissions."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from okr_ledger.crypto import Ciphertext
from okr_ledger.ledger.errors import NotFoundError
from okr_ledger.ledger.events import EventBus, RecordSubmitted
from okr_ledger.ledger.membership import MembershipRegistry
from okr_ledger.utils import get_logger

logger = get_logger("records")


@dataclass(frozen=True)
class EncryptedRecord:
    """One immutable submission. A new progress report is a new record."""

    id: int
    owner: str
    team_id: str
    encrypted_objective: Any
    encrypted_key_results: Any
    encrypted_progress: Ciphertext
    created_at: float


class EncryptedRecordStore:
    """
    Stores records under sequential ids starting at 1 and appends each owner
    to the team membership on submit.

    Ciphertext contents are never inspected. An owner -> latest id index is
    maintained alongside the records for IndexedLatestResolver.
    """

    def __init__(
        self,
        membership: MembershipRegistry,
        events: Optional[EventBus] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.membership = membership
        self.events = events
        self.clock = clock
        self._records: Dict[int, EncryptedRecord] = {}
        self._by_owner: Dict[str, List[int]] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def submit(
        self,
        owner: str,
        encrypted_objective: Any,
        encrypted_key_results: Any,
        encrypted_progress: Ciphertext,
        team_id: str,
    ) -> int:
        with self._lock:
            record = EncryptedRecord(
                id=self._next_id,
                owner=owner,
                team_id=team_id,
                encrypted_objective=encrypted_objective,
                encrypted_key_results=encrypted_key_results,
                encrypted_progress=encrypted_progress,
                created_at=self.clock(),
            )
            self._records[record.id] = record
            self._by_owner.setdefault(owner, []).append(record.id)
            self._next_id += 1
            self.membership.append(team_id, owner)
        logger.info("Stored record id=%d owner=%s team=%s", record.id, owner, team_id)
        if self.events is not None:
            self.events.publish(RecordSubmitted(id=record.id, owner=owner, timestamp=record.created_at))
        return record.id

    def get_by_id(self, record_id: int) -> EncryptedRecord:
        with self._lock:
            record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(f"Record {record_id} not found")
        return record

    def records_for_owner(self, owner: str) -> List[int]:
        """Record ids submitted by owner, in creation order."""
        with self._lock:
            return list(self._by_owner.get(owner, []))

    def latest_id_for(self, owner: str) -> Optional[int]:
        with self._lock:
            ids = self._by_owner.get(owner)
            return ids[-1] if ids else None

    def __iter__(self) -> Iterator[EncryptedRecord]:
        with self._lock:
            records = list(self._records.values())
        return iter(records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
