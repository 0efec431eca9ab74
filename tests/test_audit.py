"""Tests for the audit trail aggregator."""

from unittest.mock import Mock, patch

from toolgate.domain.models import AuditEntry, HookEventName
from toolgate.infrastructure.audit import AuditTrail, truncate_payload

PRE = HookEventName.PRE_TOOL_USE
POST = HookEventName.POST_TOOL_USE


def entry(tool, invocation_id, phase, **kwargs):
    return AuditEntry(tool_name=tool, invocation_id=invocation_id, phase=phase, **kwargs)


class TestAuditTrail:
    """Test suite for AuditTrail class"""

    def setup_method(self):
        """Setup test fixtures"""
        self.trail = AuditTrail()

    def test_record_appends_in_arrival_order(self):
        self.trail.record(entry("Bash", "a", PRE))
        self.trail.record(entry("Read", "b", PRE))
        self.trail.record(entry("Bash", "a", POST, duration_ms=10))

        assert [(e.invocation_id, e.phase) for e in self.trail.entries()] == [
            ("a", PRE),
            ("b", PRE),
            ("a", POST),
        ]
        assert len(self.trail) == 3

    def test_summarize_empty(self):
        summary = self.trail.summarize()

        assert summary.per_tool_counts == {}
        assert summary.blocked_count == 0
        assert summary.total_duration_ms == 0.0
        assert summary.entry_count == 0

    def test_summarize_counts_post_entries_and_all_blocks(self):
        self.trail.record(entry("Bash", "a", PRE))
        self.trail.record(entry("Bash", "a", POST, duration_ms=12.5))
        self.trail.record(entry("Read", "b", PRE))
        self.trail.record(entry("Read", "b", POST, duration_ms=7.5))
        self.trail.record(entry("Bash", "c", PRE, blocked=True, block_reason="rm -rf"))
        self.trail.record(entry("Write", "d", POST, anomaly="POST without matching PRE"))

        summary = self.trail.summarize()

        assert summary.per_tool_counts == {"Bash": 1, "Read": 1, "Write": 1}
        assert summary.blocked_count == 1
        assert summary.total_duration_ms == 20.0
        assert summary.entry_count == 6
        assert summary.anomaly_count == 1

    def test_summarize_is_idempotent(self):
        self.trail.record(entry("Bash", "a", PRE))
        self.trail.record(entry("Bash", "a", POST, duration_ms=3))

        assert self.trail.summarize() == self.trail.summarize()

    def test_queries(self):
        self.trail.record(entry("Bash", "a", PRE))
        self.trail.record(entry("Bash", "b", PRE, blocked=True, block_reason="x"))
        self.trail.record(entry("Bash", "a", POST))

        assert [e.phase for e in self.trail.entries_for("a")] == [PRE, POST]
        assert [e.invocation_id for e in self.trail.blocked_entries()] == ["b"]

    def test_entries_returns_snapshot(self):
        self.trail.record(entry("Bash", "a", PRE))

        snapshot = self.trail.entries()
        snapshot.clear()

        assert len(self.trail) == 1

    @patch("toolgate.infrastructure.audit.structlog.get_logger")
    def test_anomalies_are_logged_at_warning_level(self, mock_get_logger):
        mock_logger = Mock()
        mock_get_logger.return_value = mock_logger
        trail = AuditTrail()

        trail.record(entry("Bash", "a", POST, anomaly="POST without matching PRE"))
        trail.record(entry("Bash", "b", PRE))

        mock_get_logger.assert_called_once_with("audit")
        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args[1]["anomaly"] == "POST without matching PRE"
        mock_logger.info.assert_called_once()
        assert mock_logger.info.call_args[1]["invocation_id"] == "b"


class TestTruncatePayload:
    def test_long_strings_are_cut(self):
        payload = {"command": "x" * 150, "count": 3}

        truncated = truncate_payload(payload, limit=100)

        assert truncated == {"command": "x" * 100, "count": 3}
        assert len(payload["command"]) == 150

    def test_none_payload(self):
        assert truncate_payload(None) is None
