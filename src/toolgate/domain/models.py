"""Domain models for the Toolgate interception layer."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


def to_utc(value: datetime) -> datetime:
    """Timestamps without an offset are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class HookEventName(str, Enum):
    """Lifecycle phases a hook registration can be keyed by."""

    PRE_TOOL_USE = "PreToolUse"
    POST_TOOL_USE = "PostToolUse"
    SESSION_START = "SessionStart"
    SESSION_END = "SessionEnd"
    STOP = "Stop"

    @property
    def is_tool_phase(self) -> bool:
        return self in (HookEventName.PRE_TOOL_USE, HookEventName.POST_TOOL_USE)


class PermissionDecision(str, Enum):
    """Outcome of a PRE dispatch."""

    ALLOW = "allow"
    DENY = "deny"


class InvocationState(str, Enum):
    """Per-invocation dispatch state."""

    CREATED = "created"
    PRE_RUNNING = "pre_running"
    PRE_ALLOWED = "pre_allowed"
    PRE_DENIED = "pre_denied"
    POST_RUNNING = "post_running"
    COMPLETE = "complete"


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    INVALID_CONFIGURATION = "CONFIG_001"
    HOOK_EXECUTION_FAILED = "HOOK_001"
    HOOK_CANCELLED = "HOOK_002"
    CORRELATION_ANOMALY = "CORR_001"
    INVALID_HOOK_INPUT = "INPUT_001"
    INTERNAL_ERROR = "INTERNAL_001"


class ToolgateError(Exception):
    """Base exception with user-friendly messages."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        user_message: str,
        context: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.user_message = user_message
        self.context = context or {}
        super().__init__(message)


class ConfigurationError(ToolgateError):
    """Raised at registration or load time; prevents the session from starting."""

    def __init__(
        self,
        message: str,
        user_message: str = "Hook configuration is invalid",
        context: dict[str, Any] | None = None,
    ):
        super().__init__(
            ErrorCode.INVALID_CONFIGURATION, message, user_message, context
        )


class ToolInvocationEvent(BaseModel):
    """A PRE or POST event emitted by the agent runtime around one tool call"""

    invocation_id: str = Field(..., min_length=1)
    tool_name: str = Field(..., min_length=1)
    phase: HookEventName
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    session_id: str | None = None
    result: Any = None

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return to_utc(v)

    def as_post(self, **updates: Any) -> "ToolInvocationEvent":
        """Derive the POST event for this invocation."""
        data: dict[str, Any] = {
            "phase": HookEventName.POST_TOOL_USE,
            "timestamp": datetime.now(UTC),
        }
        data.update(updates)
        # model_copy skips validation
        data["timestamp"] = to_utc(data["timestamp"])
        return self.model_copy(update=data)


class LifecycleEvent(BaseModel):
    """Session-level event (start, end, stop) with no tool attached"""

    phase: HookEventName
    session_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"frozen": True}

    @property
    def tool_name(self) -> None:
        return None


class PolicyDecision(BaseModel):
    """Allow/deny verdict returned to the runtime for a PRE event"""

    outcome: PermissionDecision
    reason: str | None = None
    hook_name: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def allow(cls, reason: str | None = None) -> "PolicyDecision":
        return cls(outcome=PermissionDecision.ALLOW, reason=reason)

    @classmethod
    def deny(cls, reason: str, hook_name: str | None = None) -> "PolicyDecision":
        return cls(outcome=PermissionDecision.DENY, reason=reason, hook_name=hook_name)

    @property
    def denied(self) -> bool:
        return self.outcome == PermissionDecision.DENY


class CorrelationRecord(BaseModel):
    """In-flight timing state for one invocation"""

    invocation_id: str
    tool_name: str = ""
    start_timestamp: datetime
    state: InvocationState = InvocationState.CREATED


class AuditEntry(BaseModel):
    """Domain model for audit trail entries"""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    tool_name: str
    invocation_id: str
    phase: HookEventName
    input: dict[str, Any] | None = None
    duration_ms: float | None = None
    blocked: bool = False
    block_reason: str | None = None
    anomaly: str | None = None

    model_config = {"frozen": True}


class AuditSummary(BaseModel):
    """Aggregates computed from the audit trail"""

    per_tool_counts: dict[str, int] = Field(default_factory=dict)
    blocked_count: int = 0
    total_duration_ms: float = 0.0
    entry_count: int = 0
    anomaly_count: int = 0
