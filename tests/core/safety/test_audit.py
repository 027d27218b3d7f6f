"""Tests for the JSONL audit logger."""

from __future__ import annotations

import json

import pytest

from bcfield.core.events import PLUGIN_LOADED, Event
from bcfield.core.safety.audit import AuditLogger


def _entries(path):
    return [json.loads(line) for line in path.read_text().splitlines()]


class TestAuditLogger:
    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "audit.jsonl"
        AuditLogger(path).log_permissions_changed("p1", ["dom"])
        assert path.exists()

    def test_security_violation_entry(self, audit_logger, tmp_path):
        audit_logger.log_security_violation("p1", "read cookies", "high")
        entry = _entries(tmp_path / "audit.jsonl")[0]
        assert entry["event"] == "security_violation"
        assert entry["plugin_id"] == "p1"
        assert entry["severity"] == "high"
        assert "timestamp" in entry

    def test_blocked_request_truncated(self, audit_logger, tmp_path):
        audit_logger.log_blocked_request("p1", "x" * 1000, "too big")
        entry = _entries(tmp_path / "audit.jsonl")[0]
        assert entry["request"].endswith("...[truncated]")
        assert len(entry["request"]) == 500 + len("...[truncated]")

    def test_entries_appended(self, audit_logger, tmp_path):
        audit_logger.log_permissions_changed("p1", ["a"])
        audit_logger.log_permissions_changed("p2", ["b"])
        assert [e["plugin_id"] for e in _entries(tmp_path / "audit.jsonl")] == [
            "p1",
            "p2",
        ]

    @pytest.mark.asyncio
    async def test_lifecycle_event_handler(self, audit_logger, tmp_path):
        await audit_logger.on_lifecycle_event(
            Event(name=PLUGIN_LOADED, data={"plugin_id": "p1", "version": "1.0.0"})
        )
        entry = _entries(tmp_path / "audit.jsonl")[0]
        assert entry["event"] == PLUGIN_LOADED
        assert entry["version"] == "1.0.0"

    def test_write_failure_is_logged_not_raised(self, tmp_path):
        logger = AuditLogger(tmp_path / "audit.jsonl")
        (tmp_path / "audit.jsonl").mkdir()
        logger.log_permissions_changed("p1", [])
