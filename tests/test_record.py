"""Tests for the ModuleRecord JSON codec."""

from __future__ import annotations

import json

from ecograph.models.record import ModuleRecord, decode_record, encode_record


class TestRecordCodec:
    def test_encode_decode(self, make_record):
        record = make_record("Foo", "1.0", ["Bar"], auth="zef:a", unresolved=True)
        decoded = decode_record(encode_record(record))
        assert decoded == record

    def test_from_candidate_copies_identity(self, make_candidate):
        candidate = make_candidate("Foo", "2.1", repo="cpan", auth="cpan:X")
        record = ModuleRecord.from_candidate(candidate, ["A"])
        assert record.identity == candidate.identity
        assert record.source_repo == "cpan"
        assert record.unresolved is False

    def test_missing_identity_rebuilt(self):
        payload = json.dumps(
            {"name": "Foo", "version": "1", "auth": None, "source_repo": "fez", "dependencies": []}
        )
        assert decode_record(payload).identity == "Foo:ver<1>"

    def test_rejects_bad_shapes(self):
        assert decode_record(None) is None
        assert decode_record("") is None
        assert decode_record("42") is None
        assert decode_record('{"name": "A"}') is None
        base = {"name": "A", "version": "1", "source_repo": "fez", "identity": "A:ver<1>"}
        assert decode_record(json.dumps({**base, "dependencies": "B"})) is None
        assert decode_record(json.dumps({**base, "dependencies": [1]})) is None
        assert decode_record(json.dumps({**base, "last_scanned": "yesterday"})) is None
        assert decode_record(json.dumps({**base, "authority": 5})) is None

    def test_naive_timestamp_becomes_utc(self):
        base = {
            "name": "A",
            "version": "1",
            "source_repo": "fez",
            "identity": "A:ver<1>",
            "last_scanned": "2024-01-01T00:00:00",
        }
        assert decode_record(json.dumps(base)).last_scanned.tzinfo is not None
