"""Tests for the append-only record store and membership registries."""

import pytest

from okr_ledger.ledger import (
    EncryptedRecordStore,
    EventBus,
    MembershipRegistry,
    NotFoundError,
    RecordSubmitted,
    UniqueMembershipRegistry,
)


class TestEncryptedRecordStore:
    """Tests for EncryptedRecordStore."""

    def test_ids_start_at_one_and_increase(self, capability) -> None:
        store = EncryptedRecordStore(MembershipRegistry())
        ids = [
            store.submit(owner, b"obj", b"krs", capability.encrypt(i), team)
            for i, (owner, team) in enumerate([("a", "t1"), ("b", "t1"), ("a", "t2"), ("c", "t1")])
        ]
        assert ids == [1, 2, 3, 4]
        assert len(store) == 4

    def test_record_fields_are_kept(self, capability) -> None:
        store = EncryptedRecordStore(MembershipRegistry(), clock=lambda: 42.0)
        progress = capability.encrypt(40)
        record_id = store.submit("alice", b"objective", b"key-results", progress, "team-1")
        record = store.get_by_id(record_id)
        assert record.owner == "alice"
        assert record.team_id == "team-1"
        assert record.encrypted_objective == b"objective"
        assert record.encrypted_key_results == b"key-results"
        assert record.encrypted_progress == progress
        assert record.created_at == 42.0

    def test_records_are_immutable(self, capability) -> None:
        store = EncryptedRecordStore(MembershipRegistry())
        record = store.get_by_id(store.submit("alice", b"o", b"k", capability.encrypt(1), "t"))
        with pytest.raises(AttributeError):
            record.owner = "mallory"  # type: ignore[misc]

    def test_unknown_id_raises_not_found(self) -> None:
        store = EncryptedRecordStore(MembershipRegistry())
        with pytest.raises(NotFoundError):
            store.get_by_id(1)

    def test_submit_appends_membership(self, capability) -> None:
        membership = MembershipRegistry()
        store = EncryptedRecordStore(membership)
        store.submit("alice", b"o", b"k", capability.encrypt(20), "t1")
        store.submit("bob", b"o", b"k", capability.encrypt(30), "t1")
        store.submit("alice", b"o", b"k", capability.encrypt(80), "t1")
        assert membership.list("t1") == ["alice", "bob", "alice"]

    def test_owner_index(self, capability) -> None:
        store = EncryptedRecordStore(MembershipRegistry())
        store.submit("alice", b"o", b"k", capability.encrypt(1), "t1")
        store.submit("bob", b"o", b"k", capability.encrypt(2), "t1")
        store.submit("alice", b"o", b"k", capability.encrypt(3), "t2")
        assert store.records_for_owner("alice") == [1, 3]
        assert store.latest_id_for("alice") == 3
        assert store.latest_id_for("nobody") is None
        assert store.records_for_owner("nobody") == []

    def test_submit_emits_event(self, capability) -> None:
        events = EventBus()
        store = EncryptedRecordStore(MembershipRegistry(), events=events, clock=lambda: 7.0)
        store.submit("alice", b"o", b"k", capability.encrypt(1), "t1")
        assert events.history(RecordSubmitted) == [RecordSubmitted(id=1, owner="alice", timestamp=7.0)]


class TestMembershipRegistry:
    """Tests for append-only and idempotent membership."""

    def test_duplicates_kept_in_order(self) -> None:
        registry = MembershipRegistry()
        for owner in ["a", "b", "a"]:
            registry.append("t", owner)
        assert registry.list("t") == ["a", "b", "a"]
        assert registry.participant_count("t") == 2

    def test_unknown_team_is_empty(self) -> None:
        registry = MembershipRegistry()
        assert registry.list("missing") == []
        assert registry.participant_count("missing") == 0

    def test_list_returns_copy(self) -> None:
        registry = MembershipRegistry()
        registry.append("t", "a")
        registry.list("t").append("intruder")
        assert registry.list("t") == ["a"]

    def test_unique_registry_is_idempotent(self) -> None:
        registry = UniqueMembershipRegistry()
        for owner in ["a", "b", "a", "b", "c"]:
            registry.append("t", owner)
        registry.append("u", "a")
        assert registry.list("t") == ["a", "b", "c"]
        assert registry.list("u") == ["a"]
        assert sorted(registry.teams()) == ["t", "u"]
