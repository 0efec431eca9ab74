"""In-flight invocation timing, keyed by invocation id."""

import threading
from datetime import datetime

import structlog

from ..domain.models import CorrelationRecord, InvocationState, to_utc


class CorrelationStore:
    """Concurrency-safe map of invocation id to start time.

    Records are created at PRE dispatch and consumed at POST dispatch.
    Anomalies (duplicate PRE, POST without PRE) are logged, never raised.
    """

    def __init__(self) -> None:
        self.logger = structlog.get_logger(__name__)
        self._records: dict[str, CorrelationRecord] = {}
        self._lock = threading.Lock()

    def begin(
        self, invocation_id: str, timestamp: datetime, tool_name: str = ""
    ) -> bool:
        """Insert a record; returns False if one already exists."""
        with self._lock:
            if invocation_id in self._records:
                duplicate = True
            else:
                duplicate = False
                self._records[invocation_id] = CorrelationRecord(
                    invocation_id=invocation_id,
                    tool_name=tool_name,
                    start_timestamp=to_utc(timestamp),
                    state=InvocationState.PRE_RUNNING,
                )

        if duplicate:
            self.logger.warning(
                "Duplicate PRE for invocation", invocation_id=invocation_id
            )
            return False
        return True

    def end(self, invocation_id: str, timestamp: datetime) -> float | None:
        """Remove the record and return elapsed milliseconds, or None."""
        with self._lock:
            record = self._records.pop(invocation_id, None)

        if record is None:
            self.logger.warning(
                "POST without matching PRE", invocation_id=invocation_id
            )
            return None

        elapsed = to_utc(timestamp) - record.start_timestamp
        return max(0.0, elapsed.total_seconds() * 1000)

    def mark(self, invocation_id: str, state: InvocationState) -> None:
        with self._lock:
            record = self._records.get(invocation_id)
            if record is not None:
                record.state = state

    def state(self, invocation_id: str) -> InvocationState | None:
        with self._lock:
            record = self._records.get(invocation_id)
            return record.state if record is not None else None

    def discard(self, invocation_id: str) -> None:
        """Drop a record without measuring it (denied invocations)."""
        with self._lock:
            self._records.pop(invocation_id, None)

    def pending(self) -> list[str]:
        """Invocation ids still awaiting their POST event."""
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
