"""
Confidential OKR ledger demo: two members report progress, the team aggregate
is recomputed under encryption, and the mock oracle reveals only the total.

Usage:
  pip install -e .
  python scripts/run_okr_demo.py
"""

from okr_ledger.config import LedgerConfig, MembershipMode, build_ledger
from okr_ledger.utils import configure_logging, get_logger


def main() -> None:
    configure_logging()
    logger = get_logger("okr_demo")
    ledger, oracle = build_ledger(LedgerConfig(membership_mode=MembershipMode.UNIQUE))
    ledger.events.subscribe(lambda event: logger.info(f"event: {event}"))
    capability = ledger.capability

    ledger.submit("alice", b"ship v2", b"kr-1;kr-2", capability.encrypt(40), "team-1")
    ledger.submit("bob", b"cut latency", b"kr-1", capability.encrypt(60), "team-1")
    ledger.submit("alice", b"ship v2", b"kr-1;kr-2", capability.encrypt(55), "team-1")
    ledger.recompute("team-1")

    request_id = ledger.request_decryption("team-1", caller="alice")
    callback = oracle.fulfil(request_id)
    total = ledger.on_callback(callback.request_id, callback.cleartext, callback.proof)
    members = ledger.participant_count("team-1")
    logger.info(f"team-1 total progress={total} across {members} members (average {total / members:.1f})")


if __name__ == "__main__":
    main()
