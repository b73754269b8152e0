"""Pluggable authorization capabilities consulted before state changes."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Protocol

from okr_ledger.ledger.membership import MembershipRegistry


class AccessPolicy(Protocol):
    def can_submit(self, caller: str, team_id: str) -> bool: ...

    def can_request_decryption(self, caller: str, team_id: str) -> bool: ...


class AllowAllPolicy:
    """Permits every caller; the default for tests and single-tenant hosts."""

    def can_submit(self, caller: str, team_id: str) -> bool:
        return True

    def can_request_decryption(self, caller: str, team_id: str) -> bool:
        return True


class TeamMemberPolicy:
    """
    Anyone may submit; only identities already recorded in a team's membership
    may ask for that team's aggregate to be decrypted.
    """

    def __init__(self, membership: MembershipRegistry) -> None:
        self.membership = membership

    def can_submit(self, caller: str, team_id: str) -> bool:
        return True

    def can_request_decryption(self, caller: str, team_id: str) -> bool:
        return caller in self.membership.list(team_id)


class AllowListPolicy:
    """Static per-team allow lists. Teams without an entry use the wildcard list, if any."""

    WILDCARD = "*"

    def __init__(
        self,
        submitters: Mapping[str, Iterable[str]],
        requesters: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> None:
        self._submitters = {team: frozenset(ids) for team, ids in submitters.items()}
        self._requesters = {team: frozenset(ids) for team, ids in (requesters or {}).items()}

    @classmethod
    def _allowed(cls, table: Mapping[str, frozenset], caller: str, team_id: str) -> bool:
        allowed = table.get(team_id, table.get(cls.WILDCARD, frozenset()))
        return caller in allowed

    def can_submit(self, caller: str, team_id: str) -> bool:
        return self._allowed(self._submitters, caller, team_id)

    def can_request_decryption(self, caller: str, team_id: str) -> bool:
        return self._allowed(self._requesters, caller, team_id)
