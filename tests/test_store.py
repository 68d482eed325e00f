"""
Unit tests for the snapshot store adapter and the event recorder.
"""

from datetime import date
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from regwatch.analysis.models import AnalysisResult, DocumentStatus, failed_analysis_result
from regwatch.database.models import ChangeEvent, Snapshot
from regwatch.monitors.event_recorder import EventRecorder
from regwatch.monitors.fingerprint import fingerprint
from regwatch.monitors.results import StoreError
from regwatch.monitors.snapshot_store import SnapshotStore

from helpers import all_rows, count_rows


def broken_session_factory():
    """Session factory whose sessions fail on every statement."""
    session = MagicMock()
    session.query.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))
    session.flush.side_effect = OperationalError("INSERT", {}, Exception("database is locked"))
    return MagicMock(return_value=session)


class TestSnapshotStore:
    """Test snapshot recording and lookup."""

    @pytest.fixture
    def store(self, session_factory):
        return SnapshotStore(session_factory)

    def test_get_latest_without_history(self, store, add_source):
        source = add_source()
        assert store.get_latest(source.id) is None
        assert store.get_latest_successful(source.id) is None

    def test_record_success_snapshot(self, store, add_source, session_factory):
        source = add_source()

        snapshot = store.record(source.id, b"<p>v1</p>", fingerprint(b"<p>v1</p>"), "success", 200)

        assert snapshot.id is not None
        assert snapshot.raw_content == "<p>v1</p>"
        assert snapshot.content_hash == fingerprint(b"<p>v1</p>")
        assert snapshot.fetch_status == "success"
        assert snapshot.http_status == 200
        assert snapshot.error_message is None
        assert snapshot.fetched_at is not None
        assert count_rows(session_factory, Snapshot, source_id=source.id) == 1

    def test_record_failure_snapshot(self, store, add_source):
        source = add_source()

        snapshot = store.record_failure(source.id, "HTTP 503", http_status=503)

        assert snapshot.fetch_status == "error"
        assert snapshot.raw_content == ""
        assert snapshot.content_hash == ""
        assert snapshot.http_status == 503
        assert snapshot.error_message == "HTTP 503"

    def test_invalid_bytes_are_replaced(self, store, add_source):
        source = add_source()
        snapshot = store.record(source.id, b"caf\xe9", fingerprint(b"caf\xe9"), "success", 200)
        assert snapshot.raw_content == "caf�"

    def test_invalid_outcome_rejected(self, store, add_source):
        source = add_source()
        with pytest.raises(ValueError):
            store.record(source.id, b"", "", "pending")

    def test_latest_is_most_recent_regardless_of_outcome(self, store, add_source):
        source = add_source()
        first = store.record(source.id, b"v1", fingerprint(b"v1"), "success", 200)
        failure = store.record_failure(source.id, "Timeout after 30s")

        assert store.get_latest(source.id).id == failure.id
        assert store.get_latest_successful(source.id).id == first.id

    def test_history_is_per_source(self, store, add_source):
        source_a = add_source(name="A", url="https://example.gov/a")
        source_b = add_source(name="B", url="https://example.gov/b")
        store.record(source_a.id, b"a", fingerprint(b"a"), "success", 200)

        assert store.get_latest(source_b.id) is None

    def test_history_is_append_only(self, store, add_source, session_factory):
        source = add_source()
        for content in (b"v1", b"v1", b"v2"):
            store.record(source.id, content, fingerprint(content), "success", 200)

        snapshots = all_rows(session_factory, Snapshot, source_id=source.id)
        assert [s.raw_content for s in snapshots] == ["v1", "v1", "v2"]

    def test_write_failure_raises_store_error(self):
        store = SnapshotStore(broken_session_factory())
        with pytest.raises(StoreError, match="Failed to record snapshot"):
            store.record(1, b"v1", fingerprint(b"v1"), "success", 200)

    def test_read_failure_raises_store_error(self):
        store = SnapshotStore(broken_session_factory())
        with pytest.raises(StoreError, match="Failed to read latest snapshot"):
            store.get_latest(1)


class TestEventRecorder:
    """Test change event persistence."""

    @pytest.fixture
    def recorder(self, session_factory):
        return EventRecorder(session_factory)

    @pytest.fixture
    def snapshots(self, session_factory, add_source):
        source = add_source()
        store = SnapshotStore(session_factory)
        before = store.record(source.id, b"v1", fingerprint(b"v1"), "success", 200)
        after = store.record(source.id, b"v2", fingerprint(b"v2"), "success", 200)
        return source, before, after

    def test_record_event(self, recorder, snapshots, session_factory):
        source, before, after = snapshots
        result = AnalysisResult(
            summary="New labeling requirement.",
            tags=["labeling"],
            status=DocumentStatus.PROPOSAL,
            effective_date=date(2026, 3, 1),
            needs_review=False
        )

        event = recorder.record(source, before.id, after.id, result)

        assert event.id is not None
        stored = all_rows(session_factory, ChangeEvent)[0]
        assert stored.source_id == source.id
        assert stored.snapshot_before_id == before.id
        assert stored.snapshot_after_id == after.id
        assert stored.change_summary == "New labeling requirement."
        assert stored.tags == ["labeling"]
        assert stored.status == "proposal"
        assert stored.effective_date == date(2026, 3, 1)
        assert stored.needs_review is False
        assert stored.reviewed_at is None
        assert stored.detected_at is not None

    def test_record_first_observation(self, recorder, snapshots):
        source, _, after = snapshots
        event = recorder.record(source, None, after.id, failed_analysis_result())
        assert event.snapshot_before_id is None
        assert event.needs_review is True

    def test_second_event_for_same_snapshot_rejected(self, recorder, snapshots, session_factory):
        source, before, after = snapshots
        recorder.record(source, before.id, after.id, failed_analysis_result())

        with pytest.raises(StoreError):
            recorder.record(source, before.id, after.id, failed_analysis_result())
        assert count_rows(session_factory, ChangeEvent) == 1
