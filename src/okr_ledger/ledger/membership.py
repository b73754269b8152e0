"""Per-team ordered participant lists built from submissions."""

from __future__ import annotations

import threading
from typing import Dict, List, Set


class MembershipRegistry:
    """
    Ordered membership per team. Every append is kept, so an owner who submits
    twice to the same team appears twice.
    """

    def __init__(self) -> None:
        self._members: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def append(self, team_id: str, owner: str) -> None:
        with self._lock:
            self._members.setdefault(team_id, []).append(owner)

    def list(self, team_id: str) -> List[str]:
        with self._lock:
            return list(self._members.get(team_id, []))

    def teams(self) -> List[str]:
        with self._lock:
            return list(self._members)

    def participant_count(self, team_id: str) -> int:
        """Number of distinct owners, regardless of duplicate entries."""
        return len(set(self.list(team_id)))


class UniqueMembershipRegistry(MembershipRegistry):
    """Idempotent variant: an owner is recorded once per team, at first submission."""

    def __init__(self) -> None:
        super().__init__()
        self._seen: Dict[str, Set[str]] = {}

    def append(self, team_id: str, owner: str) -> None:
        with self._lock:
            seen = self._seen.setdefault(team_id, set())
            if owner in seen:
                return
            seen.add(owner)
            self._members.setdefault(team_id, []).append(owner)
