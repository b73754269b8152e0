"""Prometheus exposition for ledger counters."""

from __future__ import annotations

import threading
from typing import Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server

from okr_ledger.utils.logging import get_logger

logger = get_logger("prometheus")

COUNTER_HELP: Dict[str, str] = {
    "records_submitted": "Encrypted OKR records appended to the ledger",
    "aggregates_computed": "Team aggregate recomputations",
    "decryptions_requested": "Decryption requests handed to the oracle",
    "decryptions_fulfilled": "Oracle callbacks accepted with a valid proof",
    "callbacks_rejected": "Oracle callbacks rejected (unknown request or bad proof)",
}

TIMER_HELP: Dict[str, str] = {
    "recompute_seconds": "Time spent recomputing a team aggregate",
}


class LedgerPrometheusMetrics:
    """
    Metrics sink backed by prometheus_client.

    Accepts the same emit_counter/emit_timer calls as InMemoryMetrics so it can
    sit behind a CompositeMetrics fan-out. Unknown metric names are ignored.
    """

    def __init__(self, ledger_id: str, registry: Optional[CollectorRegistry] = None) -> None:
        self.ledger_id = ledger_id
        self.registry = registry or CollectorRegistry()
        self._server_started = False
        self._lock = threading.Lock()
        self._counters = {
            name: Counter(f"okr_ledger_{name}", help_text, ["ledger_id"], registry=self.registry)
            for name, help_text in COUNTER_HELP.items()
        }
        self._timers = {
            name: Histogram(f"okr_ledger_{name}", help_text, ["ledger_id"], registry=self.registry)
            for name, help_text in TIMER_HELP.items()
        }

    def emit_counter(self, name: str, value: float = 1.0, **labels: str) -> None:
        counter = self._counters.get(name)
        if counter is not None:
            counter.labels(ledger_id=self.ledger_id).inc(value)

    def emit_timer(self, name: str, value: float, **labels: str) -> None:
        histogram = self._timers.get(name)
        if histogram is not None:
            histogram.labels(ledger_id=self.ledger_id).observe(value)

    def start_server(self, port: int = 9100) -> None:
        """Start the metrics HTTP endpoint once."""
        with self._lock:
            if self._server_started:
                return
            start_http_server(port, registry=self.registry)
            self._server_started = True
            logger.info("Prometheus metrics server listening on port %d", port)
