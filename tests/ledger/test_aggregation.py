"""Tests for homomorphic team aggregation."""

import random

import pytest

from okr_ledger.crypto import MirrorCapability, MirrorCiphertext
from okr_ledger.ledger import (
    AggregateComputed,
    AggregationEngine,
    EncryptedRecordStore,
    EventBus,
    IndexedLatestResolver,
    MembershipRegistry,
    NotFoundError,
    ScanLatestResolver,
    UniqueMembershipRegistry,
)


class CountingCapability(MirrorCapability):
    """Mirror capability that records how many homomorphic adds ran."""

    def __init__(self, oracle_public_key: bytes) -> None:
        super().__init__(oracle_public_key)
        self.adds = 0

    def add(self, left, right):
        self.adds += 1
        return super().add(left, right)


def _mirror_latest_sum(submissions, team_id: str) -> int:
    """Plain-integer reference: sum of each membership entry's latest progress."""
    latest = {}
    members = []
    for owner, team, value in submissions:
        latest[owner] = value
        if team == team_id:
            members.append(owner)
    return sum(latest[owner] for owner in members)


class TestRecompute:
    """Tests for AggregationEngine.recompute via the ledger facade."""

    def test_sum_of_two_members(self, env) -> None:
        env.ledger.submit("alice", b"o", b"k", env.capability.encrypt(40), "T1")
        env.ledger.submit("bob", b"o", b"k", env.capability.encrypt(60), "T1")
        aggregate = env.ledger.recompute("T1")
        assert env.capability.decrypt(aggregate.encrypted_sum) == 100
        assert env.ledger.get_aggregate("T1") == aggregate

    def test_latest_submission_wins(self, env) -> None:
        env.ledger.submit("alice", b"o", b"k", env.capability.encrypt(20), "T")
        env.ledger.submit("alice", b"o", b"k", env.capability.encrypt(80), "T2")
        env.ledger.submit("bob", b"o", b"k", env.capability.encrypt(5), "T")
        aggregate = env.ledger.recompute("T")
        # Membership of T is [alice, bob]; alice's latest record (80) was filed under T2.
        assert env.capability.decrypt(aggregate.encrypted_sum) == 85

    def test_latest_wins_single_team(self, env) -> None:
        env.ledger.submit("alice", b"o", b"k", env.capability.encrypt(20), "T")
        env.ledger.submit("alice", b"o", b"k", env.capability.encrypt(80), "T")
        aggregate = env.ledger.recompute("T")
        # Duplicate membership entries each contribute alice's latest value.
        assert env.capability.decrypt(aggregate.encrypted_sum) == 160

    def test_latest_wins_with_unique_membership(self, make_env) -> None:
        env = make_env(membership=UniqueMembershipRegistry())
        env.ledger.submit("alice", b"o", b"k", env.capability.encrypt(20), "T")
        env.ledger.submit("alice", b"o", b"k", env.capability.encrypt(80), "T")
        aggregate = env.ledger.recompute("T")
        assert env.capability.decrypt(aggregate.encrypted_sum) == 80

    def test_recompute_is_idempotent(self, env) -> None:
        env.ledger.submit("alice", b"o", b"k", env.capability.encrypt(40), "T1")
        env.ledger.submit("bob", b"o", b"k", env.capability.encrypt(60), "T1")
        first = env.ledger.recompute("T1")
        second = env.ledger.recompute("T1")
        assert env.capability.to_transport(first.encrypted_sum) == env.capability.to_transport(
            second.encrypted_sum
        )
        assert second.last_updated > first.last_updated

    def test_empty_team_aggregates_to_zero(self, env) -> None:
        aggregate = env.ledger.recompute("nobody")
        assert env.capability.decrypt(aggregate.encrypted_sum) == 0

    def test_get_aggregate_before_recompute(self, env) -> None:
        with pytest.raises(NotFoundError):
            env.ledger.get_aggregate("T1")

    def test_recompute_emits_event(self, env) -> None:
        aggregate = env.ledger.recompute("T1")
        assert env.ledger.events.history(AggregateComputed) == [
            AggregateComputed(team_id="T1", timestamp=aggregate.last_updated)
        ]

    def test_list_aggregates_newest_first(self, env) -> None:
        env.ledger.recompute("a")
        env.ledger.recompute("b")
        env.ledger.recompute("a")
        assert [agg.team_id for agg in env.ledger.list_aggregates()] == ["a", "b"]


class TestUniformShape:
    """Every membership entry costs exactly one add, whatever data it has."""

    def _engine(self, capability, membership, store) -> AggregationEngine:
        return AggregationEngine(capability, membership, ScanLatestResolver(store), events=EventBus())

    def test_member_without_record_contributes_zero(self, oracle_keys) -> None:
        capability = CountingCapability(oracle_keys.public_key)
        membership = MembershipRegistry()
        store = EncryptedRecordStore(membership)
        store.submit("alice", b"o", b"k", capability.encrypt(10), "T")
        membership.append("T", "ghost")
        engine = self._engine(capability, membership, store)
        aggregate = engine.recompute("T")
        assert capability.decrypt(aggregate.encrypted_sum) == 10
        assert capability.adds == 2

    def test_uninitialized_progress_replaced_by_zero(self, oracle_keys) -> None:
        capability = CountingCapability(oracle_keys.public_key)
        membership = MembershipRegistry()
        store = EncryptedRecordStore(membership)
        store.submit("alice", b"o", b"k", capability.encrypt(10), "T")
        store.submit("bob", b"o", b"k", MirrorCiphertext.uninitialized(), "T")
        engine = self._engine(capability, membership, store)
        aggregate = engine.recompute("T")
        assert capability.decrypt(aggregate.encrypted_sum) == 10
        assert capability.adds == 2

    def test_add_count_independent_of_presence(self, oracle_keys) -> None:
        capability = CountingCapability(oracle_keys.public_key)
        membership = MembershipRegistry()
        store = EncryptedRecordStore(membership)
        for owner in ["a", "b", "c"]:
            membership.append("T", owner)
        engine = self._engine(capability, membership, store)
        engine.recompute("T")
        empty_adds = capability.adds
        capability.adds = 0
        store.submit("d", b"o", b"k", capability.encrypt(1), "U")
        store.submit("a", b"o", b"k", capability.encrypt(1), "U")
        engine.recompute("T")
        assert capability.adds == empty_adds == 3


class TestResolverStrategies:
    """Full scan and indexed lookup must agree."""

    def test_resolvers_agree_on_random_histories(self, capability) -> None:
        rng = random.Random(1234)
        owners = [f"owner-{i}" for i in range(8)]
        teams = ["t0", "t1", "t2"]
        for _ in range(25):
            membership = MembershipRegistry()
            store = EncryptedRecordStore(membership)
            submissions = []
            for _ in range(rng.randint(0, 40)):
                owner, team, value = rng.choice(owners), rng.choice(teams), rng.randint(0, 100)
                store.submit(owner, b"o", b"k", capability.encrypt(value), team)
                submissions.append((owner, team, value))
            scan = AggregationEngine(capability, membership, ScanLatestResolver(store))
            indexed = AggregationEngine(capability, membership, IndexedLatestResolver(store))
            for team in teams:
                scan_sum = scan.recompute(team).encrypted_sum
                indexed_sum = indexed.recompute(team).encrypted_sum
                assert capability.to_transport(scan_sum) == capability.to_transport(indexed_sum)
                assert capability.decrypt(scan_sum) == _mirror_latest_sum(submissions, team)

    def test_indexed_strategy_through_ledger(self, make_env) -> None:
        env = make_env(aggregation_strategy="indexed")
        env.ledger.submit("alice", b"o", b"k", env.capability.encrypt(20), "T")
        env.ledger.submit("bob", b"o", b"k", env.capability.encrypt(30), "T")
        env.ledger.submit("alice", b"o", b"k", env.capability.encrypt(80), "U")
        assert isinstance(env.ledger.resolver, IndexedLatestResolver)
        assert env.capability.decrypt(env.ledger.recompute("T").encrypted_sum) == 110

    def test_unknown_strategy_rejected(self, make_env) -> None:
        with pytest.raises(ValueError):
            make_env(aggregation_strategy="magic")
