"""
Unit tests for content fingerprinting and the change decision.
"""

import hashlib

import pytest

from regwatch.database.models import Snapshot
from regwatch.monitors.change_detector import ChangeDecision, detect_change
from regwatch.monitors.fingerprint import fingerprint


class TestFingerprint:
    """Test content fingerprinting."""

    def test_fingerprint_is_sha256_hex(self):
        assert fingerprint(b"v1") == hashlib.sha256(b"v1").hexdigest()
        assert len(fingerprint(b"v1")) == 64

    def test_fingerprint_is_deterministic(self):
        content = b"<html><body>Rule text</body></html>"
        assert fingerprint(content) == fingerprint(bytes(content))

    def test_different_content_different_fingerprint(self):
        assert fingerprint(b"v1") != fingerprint(b"v2")
        assert fingerprint(b"rule") != fingerprint(b"rule ")

    def test_text_is_hashed_as_utf8(self):
        assert fingerprint("Réglementation") == fingerprint("Réglementation".encode("utf-8"))

    def test_empty_content(self):
        assert fingerprint(b"") == hashlib.sha256(b"").hexdigest()


class TestDetectChange:
    """Test the change decision function."""

    @pytest.fixture
    def success_snapshot(self):
        return Snapshot(id=1, source_id=1, content_hash=fingerprint(b"v1"), fetch_status="success")

    def test_no_previous_snapshot_is_first_observation(self):
        decision = detect_change(None, fingerprint(b"v1"))
        assert decision is ChangeDecision.FIRST_OBSERVATION
        assert decision.is_change

    def test_same_fingerprint_is_unchanged(self, success_snapshot):
        decision = detect_change(success_snapshot, fingerprint(b"v1"))
        assert decision is ChangeDecision.UNCHANGED
        assert not decision.is_change

    def test_different_fingerprint_is_changed(self, success_snapshot):
        decision = detect_change(success_snapshot, fingerprint(b"v2"))
        assert decision is ChangeDecision.CHANGED
        assert decision.is_change

    def test_error_snapshot_has_no_comparison_basis(self):
        error_snapshot = Snapshot(id=2, source_id=1, content_hash="", fetch_status="error", http_status=500)
        assert detect_change(error_snapshot, fingerprint(b"v1")) is ChangeDecision.FIRST_OBSERVATION

    def test_error_snapshot_with_empty_content_fingerprint(self):
        # An empty successful page must not match an error snapshot's empty hash
        error_snapshot = Snapshot(id=2, source_id=1, content_hash="", fetch_status="error")
        assert detect_change(error_snapshot, "").is_change
