"""Append-only audit trail with on-demand summaries."""

import threading
from collections import Counter
from typing import Any

import structlog

from ..domain.models import AuditEntry, AuditSummary, HookEventName

DEFAULT_INPUT_LIMIT = 100


def truncate_payload(
    payload: dict[str, Any] | None, limit: int = DEFAULT_INPUT_LIMIT
) -> dict[str, Any] | None:
    """Copy ``payload`` with string values cut to ``limit`` characters."""
    if payload is None:
        return None
    truncated: dict[str, Any] = {}
    for key, value in payload.items():
        if isinstance(value, str) and len(value) > limit:
            truncated[key] = value[:limit]
        else:
            truncated[key] = value
    return truncated


class AuditTrail:
    """Structured audit trail for tool invocations"""

    def __init__(self) -> None:
        self.logger = structlog.get_logger("audit")
        self._entries: list[AuditEntry] = []
        self._lock = threading.Lock()

    def record(self, entry: AuditEntry) -> None:
        """Append an entry in arrival order"""
        with self._lock:
            self._entries.append(entry)

        fields = {
            "tool_name": entry.tool_name,
            "invocation_id": entry.invocation_id,
            "phase": entry.phase.value,
            "blocked": entry.blocked,
            "block_reason": entry.block_reason,
            "duration_ms": entry.duration_ms,
            "timestamp": entry.timestamp.isoformat(),
        }
        if entry.anomaly:
            self.logger.warning("Audit anomaly recorded", anomaly=entry.anomaly, **fields)
        else:
            self.logger.info("Audit entry recorded", **fields)

    def entries(self) -> list[AuditEntry]:
        """Snapshot of all entries in arrival order"""
        with self._lock:
            return list(self._entries)

    def entries_for(self, invocation_id: str) -> list[AuditEntry]:
        return [e for e in self.entries() if e.invocation_id == invocation_id]

    def blocked_entries(self) -> list[AuditEntry]:
        return [e for e in self.entries() if e.blocked]

    def summarize(self) -> AuditSummary:
        """Scan the trail: POST entries for counts and duration, all for blocks"""
        entries = self.entries()

        per_tool: Counter[str] = Counter()
        total_duration = 0.0
        for entry in entries:
            if entry.phase == HookEventName.POST_TOOL_USE:
                per_tool[entry.tool_name] += 1
                if entry.duration_ms:
                    total_duration += entry.duration_ms

        return AuditSummary(
            per_tool_counts=dict(per_tool),
            blocked_count=sum(1 for e in entries if e.blocked),
            total_duration_ms=total_duration,
            entry_count=len(entries),
            anomaly_count=sum(1 for e in entries if e.anomaly),
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
