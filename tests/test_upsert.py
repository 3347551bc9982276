"""Tests for keyed record upsert."""

import logging

import pytest

from conftest import make_row
from miskit.exceptions import RowValidationError, UpsertError
from miskit.ingest.stores import StoredRecord
from miskit.ingest.upsert import UpsertAction


class TestRecordUpsertEngine:

    def test_first_write_creates(self, upsert_engine, record_store):
        result = upsert_engine.upsert(make_row("ABC123"))

        assert result.action == UpsertAction.CREATED
        assert result.revision == 1
        assert [c[0] for c in record_store.calls] == ["find_by_key", "insert"]

    def test_round_trip(self, upsert_engine, record_store):
        row = make_row("ABC123", plant="P7", cop=3.5)
        upsert_engine.upsert(row)

        stored = record_store.find_by_key("ABC123")
        assert len(stored) == 1
        assert stored[0].fields == row.to_fields()

    def test_same_key_twice_keeps_one_record_and_two_revisions(self, upsert_engine, record_store):
        first = upsert_engine.upsert(make_row("ABC123"))
        second = upsert_engine.upsert(make_row("ABC123", plant="P2"))

        assert second.action == UpsertAction.UPDATED
        assert second.record_id == first.record_id
        assert second.revision == 2
        assert len(record_store.find_by_key("ABC123")) == 1
        labels = [e.label for e in record_store.get_revision_history(first.record_id)]
        assert labels == ["1.0", "2.0"]

    def test_update_is_a_full_replace(self, upsert_engine, record_store):
        upsert_engine.upsert(make_row("ABC123", remarks_on_changes="first upload", pmc=0.4))
        upsert_engine.upsert(make_row("ABC123", remarks_on_changes="", pmc=None))

        fields = record_store.find_by_key("ABC123")[0].fields
        assert fields["remarks_on_changes"] == ""
        assert fields["pmc"] is None

    def test_key_is_trimmed(self, upsert_engine, record_store):
        upsert_engine.upsert(make_row("ABC123"))
        result = upsert_engine.upsert(make_row("  ABC123 "))
        assert result.action == UpsertAction.UPDATED
        assert result.key == "ABC123"

    def test_blank_key_is_rejected_before_any_call(self, upsert_engine, record_store):
        with pytest.raises(RowValidationError):
            upsert_engine.upsert(make_row("  "))
        assert record_store.calls == []

    def test_duplicate_matches_use_the_first(self, upsert_engine, record_store, caplog):
        upsert_engine.upsert(make_row("DUP1"))
        original = record_store.find_by_key("DUP1")[0]
        record_store.duplicates["DUP1"] = [
            original,
            StoredRecord(id=999, key="DUP1", fields={}, revision=5),
        ]

        with caplog.at_level(logging.WARNING, logger="miskit.ingest.upsert"):
            result = upsert_engine.upsert(make_row("DUP1", plant="P3"))

        assert result.record_id == original.id
        assert result.revision == 2
        assert "matched 2 records" in caplog.text

    def test_store_failure_becomes_upsert_error(self, upsert_engine, record_store):
        record_store.fail_keys.add("BAD1")
        with pytest.raises(UpsertError) as exc:
            upsert_engine.upsert(make_row("BAD1"))
        assert exc.value.key == "BAD1"
        assert "service unavailable" in str(exc.value)
