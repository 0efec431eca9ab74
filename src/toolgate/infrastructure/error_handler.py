"""Fail-closed conversion of hook faults into policy decisions."""

from typing import Any

import structlog

from ..domain.models import ErrorCode, PolicyDecision, ToolgateError

HOOK_FAILED_REASON = "hook execution failed"
CANCELLED_REASON = "cancelled"


class HookFaultHandler:
    """Centralized hook error handling with structured logging"""

    def __init__(self) -> None:
        self.logger = structlog.get_logger(__name__)

    def handle_fault(
        self, error: BaseException, event: Any, hook_name: str
    ) -> PolicyDecision:
        """Convert a hook exception into a DENY decision"""
        context = self._event_context(event)

        if isinstance(error, ToolgateError):
            self.logger.error(
                "Hook raised a toolgate error",
                hook=hook_name,
                error_code=error.code.value,
                error_message=error.message,
                user_message=error.user_message,
                context=error.context,
                **context,
            )
        else:
            self.logger.error(
                "Hook execution failed",
                hook=hook_name,
                error_code=ErrorCode.HOOK_EXECUTION_FAILED.value,
                error_type=type(error).__name__,
                error_message=str(error),
                exc_info=error,
                **context,
            )

        # Fail closed for unexpected errors
        return PolicyDecision.deny(HOOK_FAILED_REASON, hook_name=hook_name)

    def handle_cancellation(
        self, event: Any, hook_name: str, cause: str | None
    ) -> PolicyDecision:
        """Convert a cancelled pending hook into a non-retryable DENY"""
        self.logger.warning(
            "Hook cancelled while pending",
            hook=hook_name,
            error_code=ErrorCode.HOOK_CANCELLED.value,
            cause=cause,
            **self._event_context(event),
        )
        return PolicyDecision.deny(CANCELLED_REASON, hook_name=hook_name)

    def handle_post_fault(
        self, error: BaseException, event: Any, hook_name: str
    ) -> None:
        """POST hooks cannot deny; a failure is only logged"""
        self.logger.error(
            "Post-phase hook failed",
            hook=hook_name,
            error_code=ErrorCode.HOOK_EXECUTION_FAILED.value,
            error_type=type(error).__name__,
            error_message=str(error),
            exc_info=error,
            **self._event_context(event),
        )

    @staticmethod
    def _event_context(event: Any) -> dict[str, Any]:
        return {
            "tool_name": getattr(event, "tool_name", None),
            "invocation_id": getattr(event, "invocation_id", None),
            "session_id": getattr(event, "session_id", None),
            "phase": event.phase.value if hasattr(event, "phase") else None,
        }
