"""Tests for fail-closed hook fault handling."""

from unittest.mock import Mock

from toolgate.domain.models import (
    ErrorCode,
    HookEventName,
    LifecycleEvent,
    ToolgateError,
    ToolInvocationEvent,
)
from toolgate.infrastructure.error_handler import (
    CANCELLED_REASON,
    HOOK_FAILED_REASON,
    HookFaultHandler,
)


class TestHookFaultHandler:
    """Test suite for HookFaultHandler class"""

    def setup_method(self):
        """Setup test fixtures"""
        self.handler = HookFaultHandler()
        self.handler.logger = Mock()
        self.event = ToolInvocationEvent(
            invocation_id="inv-9",
            tool_name="Bash",
            phase=HookEventName.PRE_TOOL_USE,
            payload={"command": "ls"},
            session_id="test-session-123",
        )

    def test_unexpected_error_fails_closed(self):
        """Test that any exception becomes a DENY with a fixed reason"""
        decision = self.handler.handle_fault(
            RuntimeError("socket closed"), self.event, "approval_hook"
        )

        assert decision.denied
        assert decision.reason == HOOK_FAILED_REASON
        assert decision.hook_name == "approval_hook"

        kwargs = self.handler.logger.error.call_args[1]
        assert kwargs["error_code"] == ErrorCode.HOOK_EXECUTION_FAILED.value
        assert kwargs["error_type"] == "RuntimeError"
        assert kwargs["invocation_id"] == "inv-9"
        assert kwargs["session_id"] == "test-session-123"

    def test_toolgate_error_is_logged_with_its_code(self):
        error = ToolgateError(
            ErrorCode.INTERNAL_ERROR,
            "store unavailable",
            "Internal error",
            context={"store": "correlation"},
        )

        decision = self.handler.handle_fault(error, self.event, "hook")

        assert decision.reason == HOOK_FAILED_REASON
        kwargs = self.handler.logger.error.call_args[1]
        assert kwargs["error_code"] == "INTERNAL_001"
        assert kwargs["context"] == {"store": "correlation"}

    def test_cancellation_is_a_deny(self):
        decision = self.handler.handle_cancellation(
            self.event, "slow_hook", "timed out after 1.0s"
        )

        assert decision.denied
        assert decision.reason == CANCELLED_REASON
        kwargs = self.handler.logger.warning.call_args[1]
        assert kwargs["error_code"] == ErrorCode.HOOK_CANCELLED.value
        assert kwargs["cause"] == "timed out after 1.0s"

    def test_post_fault_is_only_logged(self):
        result = self.handler.handle_post_fault(
            ValueError("bad"), self.event.as_post(), "logger_hook"
        )

        assert result is None
        kwargs = self.handler.logger.error.call_args[1]
        assert kwargs["phase"] == "PostToolUse"

    def test_lifecycle_event_context(self):
        event = LifecycleEvent(phase=HookEventName.SESSION_END, session_id="s")

        self.handler.handle_post_fault(ValueError("bad"), event, "hook")

        kwargs = self.handler.logger.error.call_args[1]
        assert kwargs["tool_name"] is None
        assert kwargs["invocation_id"] is None
        assert kwargs["session_id"] == "s"
