"""Tests for domain models."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from toolgate.domain.models import (
    AuditEntry,
    ConfigurationError,
    ErrorCode,
    HookEventName,
    LifecycleEvent,
    PermissionDecision,
    PolicyDecision,
    ToolgateError,
    ToolInvocationEvent,
)


class TestHookEventName:
    def test_values(self):
        assert HookEventName.PRE_TOOL_USE == "PreToolUse"
        assert HookEventName.POST_TOOL_USE == "PostToolUse"
        assert HookEventName.SESSION_START == "SessionStart"
        assert HookEventName.SESSION_END == "SessionEnd"
        assert HookEventName.STOP == "Stop"

    def test_tool_phases(self):
        assert HookEventName.PRE_TOOL_USE.is_tool_phase
        assert HookEventName.POST_TOOL_USE.is_tool_phase
        assert not HookEventName.STOP.is_tool_phase


class TestErrors:
    def test_error_code_values(self):
        assert ErrorCode.INVALID_CONFIGURATION == "CONFIG_001"
        assert ErrorCode.HOOK_EXECUTION_FAILED == "HOOK_001"
        assert ErrorCode.HOOK_CANCELLED == "HOOK_002"
        assert ErrorCode.INVALID_HOOK_INPUT == "INPUT_001"

    def test_toolgate_error(self):
        error = ToolgateError(ErrorCode.INTERNAL_ERROR, "detail", "Something failed")

        assert str(error) == "detail"
        assert error.user_message == "Something failed"
        assert error.context == {}

    def test_configuration_error_defaults(self):
        error = ConfigurationError("bad matcher", context={"matcher": "("})

        assert isinstance(error, ToolgateError)
        assert error.code == ErrorCode.INVALID_CONFIGURATION
        assert error.user_message == "Hook configuration is invalid"
        assert error.context == {"matcher": "("}


class TestToolInvocationEvent:
    def test_defaults(self):
        event = ToolInvocationEvent(
            invocation_id="a", tool_name="Read", phase=HookEventName.PRE_TOOL_USE
        )

        assert event.payload == {}
        assert event.timestamp.tzinfo is not None
        assert event.result is None

    def test_event_is_immutable(self):
        event = ToolInvocationEvent(
            invocation_id="a", tool_name="Read", phase=HookEventName.PRE_TOOL_USE
        )

        with pytest.raises(ValidationError):
            event.tool_name = "Write"

    @pytest.mark.parametrize("field", ["invocation_id", "tool_name"])
    def test_identifiers_must_be_non_empty(self, field):
        data = {"invocation_id": "a", "tool_name": "Read", "phase": "PreToolUse"}
        data[field] = ""

        with pytest.raises(ValidationError):
            ToolInvocationEvent(**data)

    def test_as_post_keeps_identity(self):
        start = datetime(2025, 1, 1, tzinfo=UTC)
        pre = ToolInvocationEvent(
            invocation_id="a",
            tool_name="Bash",
            phase=HookEventName.PRE_TOOL_USE,
            payload={"command": "ls"},
            timestamp=start,
        )

        post = pre.as_post()

        assert post.phase == HookEventName.POST_TOOL_USE
        assert (post.invocation_id, post.tool_name, post.payload) == (
            "a",
            "Bash",
            {"command": "ls"},
        )
        assert post.timestamp > start
        assert pre.phase == HookEventName.PRE_TOOL_USE


    def test_naive_timestamp_is_read_as_utc(self):
        event = ToolInvocationEvent(
            invocation_id="a",
            tool_name="Read",
            phase=HookEventName.PRE_TOOL_USE,
            timestamp=datetime(2025, 1, 1, 12, 0),
        )

        assert event.timestamp == datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def test_offset_timestamp_is_converted_to_utc(self):
        event = ToolInvocationEvent(
            invocation_id="a",
            tool_name="Read",
            phase=HookEventName.PRE_TOOL_USE,
            timestamp="2025-01-01T14:00:00+02:00",
        )

        assert event.timestamp.utcoffset() == timedelta(0)
        assert event.timestamp.hour == 12

    def test_as_post_normalizes_timestamp_override(self):
        pre = ToolInvocationEvent(
            invocation_id="a", tool_name="Read", phase=HookEventName.PRE_TOOL_USE
        )
        local = timezone(timedelta(hours=-5))

        naive_post = pre.as_post(timestamp=datetime(2025, 1, 1, 12, 0))
        offset_post = pre.as_post(timestamp=datetime(2025, 1, 1, 7, 0, tzinfo=local))

        assert naive_post.timestamp == datetime(2025, 1, 1, 12, 0, tzinfo=UTC)
        assert offset_post.timestamp.tzinfo is UTC
        assert offset_post.timestamp.hour == 12


class TestPolicyDecision:
    def test_constructors(self):
        assert PolicyDecision.allow().outcome == PermissionDecision.ALLOW
        denied = PolicyDecision.deny("no", hook_name="guard")

        assert denied.denied
        assert denied.reason == "no"
        assert denied.hook_name == "guard"

    def test_lifecycle_event_has_no_tool(self):
        assert LifecycleEvent(phase=HookEventName.STOP).tool_name is None

    def test_audit_entry_defaults(self):
        entry = AuditEntry(
            tool_name="Bash", invocation_id="a", phase=HookEventName.PRE_TOOL_USE
        )

        assert not entry.blocked
        assert entry.duration_ms is None
        assert entry.anomaly is None
