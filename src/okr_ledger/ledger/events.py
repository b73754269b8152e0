"""Events emitted by the ledger for dashboards and indexers."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Type, TypeVar, Union

from okr_ledger.utils import get_logger
from okr_ledger.utils.metrics import MetricsSink

logger = get_logger("events")


@dataclass(frozen=True)
class RecordSubmitted:
    id: int
    owner: str
    timestamp: float


@dataclass(frozen=True)
class AggregateComputed:
    team_id: str
    timestamp: float


@dataclass(frozen=True)
class DecryptionRequested:
    request_id: int


@dataclass(frozen=True)
class AggregateDecrypted:
    team_id: str
    cleartext: int


LedgerEvent = Union[RecordSubmitted, AggregateComputed, DecryptionRequested, AggregateDecrypted]
Subscriber = Callable[[LedgerEvent], None]
E = TypeVar("E")


class EventBus:
    """
    Keeps an ordered history of emitted events and fans them out to subscribers.

    Events are published after state is committed, so a failing subscriber is
    logged and skipped rather than propagated.
    """

    def __init__(self, keep_history: bool = True) -> None:
        self.keep_history = keep_history
        self._history: List[LedgerEvent] = []
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber and return a function that removes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: LedgerEvent) -> None:
        with self._lock:
            if self.keep_history:
                self._history.append(event)
            subscribers = list(self._subscribers)
        logger.debug("Publishing %s", event)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:  # noqa: BLE001
                logger.exception("Event subscriber failed for %s", type(event).__name__)

    def history(self, event_type: Optional[Type[E]] = None) -> List[E]:
        with self._lock:
            events = list(self._history)
        if event_type is None:
            return events  # type: ignore[return-value]
        return [event for event in events if isinstance(event, event_type)]

    def clear(self) -> None:
        with self._lock:
            self._history.clear()


class EventMetrics:
    """Subscriber translating ledger events into metric counters."""

    COUNTERS = {
        RecordSubmitted: "records_submitted",
        AggregateComputed: "aggregates_computed",
        DecryptionRequested: "decryptions_requested",
        AggregateDecrypted: "decryptions_fulfilled",
    }

    def __init__(self, sink: MetricsSink) -> None:
        self.sink = sink

    def __call__(self, event: LedgerEvent) -> None:
        name = self.COUNTERS.get(type(event))
        if name is not None:
            self.sink.emit_counter(name)
