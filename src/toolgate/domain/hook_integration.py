"""
Runtime boundary: the interceptor the agent runtime talks to.

The runtime calls :meth:`ToolInterceptor.on_pre_tool_use` before executing a
tool and :meth:`ToolInterceptor.on_post_tool_use` after it. Nothing raised
inside hooks or stores reaches the runtime; it only ever observes ALLOW/DENY
plus a human-readable reason.

Hook configuration is scoped to one interceptor. Delegated sub-agents do not
inherit it; give them their own interceptor explicitly.
"""

import uuid
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from ..infrastructure.error_handler import HOOK_FAILED_REASON
from .cancellation import CancellationToken
from .dispatcher import HookDispatcher
from .models import (
    AuditSummary,
    ErrorCode,
    HookEventName,
    LifecycleEvent,
    PolicyDecision,
    ToolgateError,
    ToolInvocationEvent,
)

SESSION_ENDED_REASON = "session has ended"

SdkHookCallback = Callable[[dict[str, Any], str | None, Any], Awaitable[dict[str, Any]]]


def event_from_hook_input(raw_input: Mapping[str, Any]) -> ToolInvocationEvent:
    """
    Build an event from the runtime's hook JSON.

    Args:
        raw_input: Mapping with ``tool_name``, ``tool_input`` and optionally
            ``tool_use_id``, ``hook_event_name``, ``session_id`` and
            ``tool_response``

    Returns:
        Validated invocation event

    Raises:
        ToolgateError: If the input is malformed or not a tool event
    """
    phase_name = raw_input.get("hook_event_name", HookEventName.PRE_TOOL_USE.value)
    try:
        phase = HookEventName(phase_name)
    except ValueError as e:
        raise ToolgateError(
            ErrorCode.INVALID_HOOK_INPUT,
            f"Unknown hook_event_name: {phase_name!r}",
            "The hook input names an unknown event",
        ) from e

    if not phase.is_tool_phase:
        raise ToolgateError(
            ErrorCode.INVALID_HOOK_INPUT,
            f"{phase.value} is not a tool event",
            "The hook input is not a tool invocation",
        )

    invocation_id = (
        raw_input.get("tool_use_id")
        or raw_input.get("invocation_id")
        or str(uuid.uuid4())
    )

    fields: dict[str, Any] = {
        "invocation_id": invocation_id,
        "tool_name": raw_input.get("tool_name", ""),
        "phase": phase,
        "payload": raw_input.get("tool_input") or {},
        "session_id": raw_input.get("session_id"),
        "result": raw_input.get("tool_response"),
    }
    # Recorded streams carry their own timestamps
    if raw_input.get("timestamp") is not None:
        fields["timestamp"] = raw_input["timestamp"]

    try:
        return ToolInvocationEvent(**fields)
    except ValidationError as e:
        raise ToolgateError(
            ErrorCode.INVALID_HOOK_INPUT,
            f"Invalid hook input: {e}",
            "The hook input data is malformed or incomplete",
            context={"tool_name": raw_input.get("tool_name")},
        ) from e


def decision_to_hook_output(decision: PolicyDecision) -> dict[str, Any]:
    """Render a decision in the runtime's PreToolUse output shape."""
    if not decision.denied and decision.reason is None:
        # Empty output lets the operation proceed
        return {}

    return {
        "hookSpecificOutput": {
            "hookEventName": HookEventName.PRE_TOOL_USE.value,
            "permissionDecision": decision.outcome.value,
            "permissionDecisionReason": decision.reason or "",
        }
    }


class ToolInterceptor:
    """Session-scoped boundary between the agent runtime and the dispatcher."""

    def __init__(self, dispatcher: HookDispatcher, session_id: str | None = None):
        self.dispatcher = dispatcher
        self.session_id = session_id
        self.session_token = CancellationToken()
        self.logger = structlog.get_logger(__name__)

    @property
    def closed(self) -> bool:
        return self.session_token.cancelled

    async def on_pre_tool_use(self, event: ToolInvocationEvent) -> PolicyDecision:
        """Decide whether the runtime may execute ``event.tool_name``."""
        if self.closed:
            self.logger.warning(
                "PRE event after session end",
                tool_name=event.tool_name,
                invocation_id=event.invocation_id,
            )
            decision = PolicyDecision.deny(SESSION_ENDED_REASON)
            self.dispatcher.record_pre(event, decision)
            return decision

        try:
            return await self.dispatcher.dispatch_pre(event, self.session_token)
        except Exception as e:
            self.logger.error(
                "PRE dispatch failed",
                tool_name=event.tool_name,
                invocation_id=event.invocation_id,
                error=str(e),
                exc_info=True,
            )
            return PolicyDecision.deny(HOOK_FAILED_REASON)

    async def on_post_tool_use(
        self, event: ToolInvocationEvent, execution_result: Any = None
    ) -> None:
        """Record completion of a tool that was allowed to run."""
        try:
            await self.dispatcher.dispatch_post(
                event, execution_result, self.session_token
            )
        except Exception as e:
            self.logger.error(
                "POST dispatch failed",
                tool_name=event.tool_name,
                invocation_id=event.invocation_id,
                error=str(e),
                exc_info=True,
            )

    async def start_session(self, session_id: str | None = None) -> list[Any]:
        if session_id is not None:
            self.session_id = session_id
        return await self._lifecycle(HookEventName.SESSION_START)

    async def stop(self) -> list[Any]:
        return await self._lifecycle(HookEventName.STOP)

    async def end_session(self, reason: str = "session ended") -> list[Any]:
        """Run SessionEnd hooks, then cancel everything still pending."""
        outputs = await self._lifecycle(HookEventName.SESSION_END)

        in_flight = self.dispatcher.correlation_store.pending()
        if in_flight:
            self.logger.warning(
                "Session ended with invocations in flight",
                session_id=self.session_id,
                invocation_ids=in_flight,
            )
        self.session_token.cancel(reason)
        return outputs

    def summarize(self) -> AuditSummary:
        return self.dispatcher.audit_trail.summarize()

    def sdk_hooks(self) -> dict[str, list[SdkHookCallback]]:
        """Callbacks for agent SDKs using ``(input_data, tool_use_id, context)``."""

        async def pre_tool_use(
            input_data: dict[str, Any], tool_use_id: str | None, context: Any
        ) -> dict[str, Any]:
            try:
                event = event_from_hook_input(
                    {
                        **input_data,
                        "tool_use_id": tool_use_id or input_data.get("tool_use_id"),
                        "hook_event_name": HookEventName.PRE_TOOL_USE.value,
                        "session_id": input_data.get("session_id", self.session_id),
                    }
                )
            except ToolgateError as e:
                self.logger.error("Rejected malformed PRE input", error=e.message)
                return decision_to_hook_output(PolicyDecision.deny(e.user_message))
            return decision_to_hook_output(await self.on_pre_tool_use(event))

        async def post_tool_use(
            input_data: dict[str, Any], tool_use_id: str | None, context: Any
        ) -> dict[str, Any]:
            try:
                event = event_from_hook_input(
                    {
                        **input_data,
                        "tool_use_id": tool_use_id or input_data.get("tool_use_id"),
                        "hook_event_name": HookEventName.POST_TOOL_USE.value,
                        "session_id": input_data.get("session_id", self.session_id),
                    }
                )
            except ToolgateError as e:
                self.logger.error("Rejected malformed POST input", error=e.message)
                return {}
            await self.on_post_tool_use(event, input_data.get("tool_response"))
            return {}

        return {
            HookEventName.PRE_TOOL_USE.value: [pre_tool_use],
            HookEventName.POST_TOOL_USE.value: [post_tool_use],
        }

    async def _lifecycle(self, phase: HookEventName) -> list[Any]:
        event = LifecycleEvent(phase=phase, session_id=self.session_id)
        try:
            return await self.dispatcher.dispatch_lifecycle(event, self.session_token)
        except Exception as e:
            self.logger.error(
                "Lifecycle dispatch failed",
                phase=phase.value,
                error=str(e),
                exc_info=True,
            )
            return []
