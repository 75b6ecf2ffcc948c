"""
Session records, metadata merging, namespacing and small collaborators.
"""

import pytest

from plumage.sessions.clock import ManualClock, SystemClock
from plumage.sessions.context import SessionContext
from plumage.sessions.faults import SessionStoreCorruptedFault
from plumage.sessions.identifiers import UUIDGenerator
from plumage.sessions.metadata import (
    MetadataMerger,
    SessionRecord,
    coerce_metadata,
    normalize_record,
)
from plumage.sessions.namespace import Namespacer


# ============================================================================
# MetadataMerger
# ============================================================================

class TestMetadataMerger:

    @pytest.fixture
    def merger(self, identifiers, clock):
        clock.set(1_700_000_000_000)
        return MetadataMerger(identifiers, clock)

    def test_empty_metadata(self, merger):
        assert merger.merge(None) == {"fingerprint": "id-1", "inserted_at": 1_700_000_000_000}

    def test_keeps_fingerprint(self, merger, identifiers):
        merged = merger.merge({"fingerprint": "fp"})
        assert merged["fingerprint"] == "fp"
        assert identifiers.count == 0

    def test_overwrites_inserted_at(self, merger):
        assert merger.merge({"inserted_at": 5})["inserted_at"] == 1_700_000_000_000

    def test_does_not_mutate_input(self, merger):
        original = {"ip": "10.0.0.1"}
        merger.merge(original)
        assert original == {"ip": "10.0.0.1"}

    def test_preserves_caller_key_order(self, merger):
        merged = merger.merge([("b", 2), ("a", 1)])
        assert list(merged) == ["b", "a", "fingerprint", "inserted_at"]


# ============================================================================
# coerce_metadata
# ============================================================================

class TestCoerceMetadata:

    def test_none(self):
        assert coerce_metadata(None) == {}

    def test_mapping_copied(self):
        source = {"a": 1}
        result = coerce_metadata(source)
        assert result == source
        assert result is not source

    def test_pairs_last_write_wins(self):
        assert coerce_metadata([("a", 1), ("b", 2), ("a", 3)]) == {"a": 3, "b": 2}

    def test_pairs_keep_first_position(self):
        assert list(coerce_metadata([("a", 1), ("b", 2), ("a", 3)])) == ["a", "b"]


# ============================================================================
# normalize_record
# ============================================================================

class TestNormalizeRecord:

    def test_current_format(self):
        record = normalize_record(("user", {"fingerprint": "fp", "inserted_at": 1}))
        assert record == SessionRecord("user", {"fingerprint": "fp", "inserted_at": 1})

    def test_list_from_json_backend(self):
        record = normalize_record(["user", {"inserted_at": 1}])
        assert isinstance(record, SessionRecord)
        assert record.principal == "user"

    def test_pair_list_metadata(self):
        record = normalize_record(("user", [["fingerprint", "fp"], ["inserted_at", 1]]))
        assert record.metadata == {"fingerprint": "fp", "inserted_at": 1}

    def test_legacy_int_timestamp(self):
        assert normalize_record(("user", 1234)).metadata == {"inserted_at": 1234}

    def test_legacy_float_timestamp(self):
        assert normalize_record(("user", 1234.5)).metadata == {"inserted_at": 1234.5}

    def test_bool_is_not_a_timestamp(self):
        with pytest.raises(SessionStoreCorruptedFault):
            normalize_record(("user", True))

    @pytest.mark.parametrize("value", ["user", ("user",), ("a", "b", "c"), None])
    def test_not_a_pair(self, value):
        with pytest.raises(SessionStoreCorruptedFault):
            normalize_record(value)

    def test_unsupported_metadata(self):
        with pytest.raises(SessionStoreCorruptedFault) as exc:
            normalize_record(("user", "text"), token="tok")
        assert exc.value.token_hash.startswith("sha256:")
        assert "str" in exc.value.message

    def test_malformed_pairs(self):
        with pytest.raises(SessionStoreCorruptedFault):
            normalize_record(("user", [("only-key",)]))

    @pytest.mark.parametrize("inserted_at", ["2024-01-01", "1700000000000", [1], True])
    def test_inserted_at_must_be_a_number(self, inserted_at):
        with pytest.raises(SessionStoreCorruptedFault):
            normalize_record(("user", {"inserted_at": inserted_at}))

    def test_missing_inserted_at_allowed(self):
        assert normalize_record(("user", {"fingerprint": "fp"})).metadata == {"fingerprint": "fp"}


# ============================================================================
# Namespacer
# ============================================================================

class TestNamespacer:

    def test_prefix(self):
        assert Namespacer("my_app").prepend("auth") == "my_app_auth"

    def test_no_namespace(self):
        assert Namespacer(None).prepend("auth") == "auth"

    def test_empty_namespace_is_none(self):
        assert Namespacer("").prepend("auth") == "auth"


# ============================================================================
# Clock / identifiers
# ============================================================================

class TestClocks:

    def test_manual_clock(self):
        clock = ManualClock(10)
        clock.advance(5)
        assert clock.now_ms() == 15
        clock.set(0)
        assert clock.now_ms() == 0

    def test_system_clock_is_epoch_ms(self):
        now = SystemClock().now_ms()
        assert isinstance(now, int)
        assert now > 1_600_000_000_000


class TestUUIDGenerator:

    def test_unique(self):
        generator = UUIDGenerator()
        ids = {generator.generate() for _ in range(50)}
        assert len(ids) == 50

    def test_format(self):
        value = UUIDGenerator().generate()
        assert len(value) == 36
        assert value.count("-") == 4


# ============================================================================
# SessionContext
# ============================================================================

class TestSessionContext:

    def test_transport_fields(self):
        ctx = SessionContext()
        ctx.put_session("auth", "tok")
        assert ctx.get_session("auth") == "tok"
        ctx.delete_session("auth")
        assert ctx.get_session("auth") is None
        ctx.delete_session("auth")

    def test_put_metadata_overwrites(self):
        ctx = SessionContext(metadata={"ip": "1.1.1.1"})
        ctx.put_metadata("ip", "2.2.2.2")
        assert ctx.metadata == {"ip": "2.2.2.2"}

    def test_put_new_metadata_keeps_existing(self):
        ctx = SessionContext()
        ctx.put_new_metadata("first_seen_at", 1)
        ctx.put_new_metadata("first_seen_at", 2)
        assert ctx.metadata == {"first_seen_at": 1}
