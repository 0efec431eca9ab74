"""Hook dispatcher: ordered, short-circuiting, fail-closed hook chains."""

import asyncio
from typing import Any

import structlog

from ..infrastructure.audit import DEFAULT_INPUT_LIMIT, AuditTrail, truncate_payload
from ..infrastructure.correlation import CorrelationStore
from ..infrastructure.error_handler import CANCELLED_REASON, HookFaultHandler
from .cancellation import CancellationToken
from .hooks import FunctionHook, HookEvent
from .models import (
    AuditEntry,
    HookEventName,
    InvocationState,
    LifecycleEvent,
    PolicyDecision,
    ToolInvocationEvent,
)
from .policy import combine, normalize_hook_output
from .registry import HookRegistration, HookRegistry


class HookCancelled(Exception):
    """A pending hook was interrupted by its cancellation token."""

    def __init__(self, cause: str | None):
        self.cause = cause
        super().__init__(cause or "cancelled")


def flatten(registrations: list[HookRegistration]) -> list[FunctionHook]:
    """Registration order first, then hook order within each registration."""
    return [hook for registration in registrations for hook in registration.hooks]


def _discard_result(task: asyncio.Future[Any]) -> None:
    # Abandoned hook tasks must not report "exception was never retrieved"
    if not task.cancelled():
        task.exception()


class HookDispatcher:
    """Runs hook chains for tool invocation and lifecycle events.

    The registry is frozen on construction. The correlation store and the
    audit trail are owned by the caller and injected, so each session (or
    test) can use fresh instances.
    """

    def __init__(
        self,
        registry: HookRegistry,
        correlation_store: CorrelationStore | None = None,
        audit_trail: AuditTrail | None = None,
        invocation_timeout: float | None = None,
        error_handler: HookFaultHandler | None = None,
        input_limit: int = DEFAULT_INPUT_LIMIT,
    ):
        self.registry = registry.freeze()
        self.correlation_store = (
            correlation_store if correlation_store is not None else CorrelationStore()
        )
        self.audit_trail = audit_trail if audit_trail is not None else AuditTrail()
        self.invocation_timeout = invocation_timeout
        self.error_handler = error_handler or HookFaultHandler()
        self.input_limit = input_limit
        self.logger = structlog.get_logger(__name__)

    async def dispatch_pre(
        self, event: ToolInvocationEvent, token: CancellationToken | None = None
    ) -> PolicyDecision:
        """Run PRE chains and return the combined decision.

        Hooks run one at a time; the first DENY stops the chain. Hook faults
        and token cancellations become DENY decisions and are never raised.

        If the calling task itself is cancelled, the invocation is recorded
        as blocked and ``asyncio.CancelledError`` propagates.

        Raises:
            ValueError: If ``event`` is not a PreToolUse event
        """
        if event.phase != HookEventName.PRE_TOOL_USE:
            raise ValueError(f"dispatch_pre got a {event.phase.value} event")

        with structlog.contextvars.bound_contextvars(
            invocation_id=event.invocation_id, tool_name=event.tool_name
        ):
            tracked = self.correlation_store.begin(
                event.invocation_id, event.timestamp, event.tool_name
            )
            anomaly = None if tracked else "duplicate PRE for invocation"
            if tracked:
                self._transition(event.invocation_id, InvocationState.PRE_RUNNING)

            chain = flatten(
                self.registry.resolve(HookEventName.PRE_TOOL_USE, event.tool_name)
            )
            results: list[PolicyDecision | None] = []
            try:
                with self._invocation_token(token) as invocation_token:
                    for hook in chain:
                        result = await self._run_pre_hook(
                            hook, event, invocation_token
                        )
                        results.append(result)
                        if result is not None and result.denied:
                            break
            except asyncio.CancelledError:
                # The runtime abandoned the invocation; the tool never runs
                self._settle_pre(
                    event, PolicyDecision.deny(CANCELLED_REASON), tracked, anomaly
                )
                raise

            decision = combine(results)
            self._settle_pre(event, decision, tracked, anomaly)

            self.logger.debug(
                "PRE dispatch complete",
                hooks_run=len(results),
                hooks_resolved=len(chain),
                outcome=decision.outcome.value,
            )
            return decision

    def record_pre(
        self,
        event: ToolInvocationEvent,
        decision: PolicyDecision,
        anomaly: str | None = None,
    ) -> None:
        """Append the PRE audit entry for a decision made about ``event``."""
        self.audit_trail.record(
            AuditEntry(
                timestamp=event.timestamp,
                tool_name=event.tool_name,
                invocation_id=event.invocation_id,
                phase=HookEventName.PRE_TOOL_USE,
                input=truncate_payload(event.payload, self.input_limit),
                blocked=decision.denied,
                block_reason=decision.reason if decision.denied else None,
                anomaly=anomaly,
            )
        )

    def _settle_pre(
        self,
        event: ToolInvocationEvent,
        decision: PolicyDecision,
        tracked: bool,
        anomaly: str | None,
    ) -> None:
        if tracked:
            if decision.denied:
                self._transition(event.invocation_id, InvocationState.PRE_DENIED)
                # No POST follows a denied invocation
                self.correlation_store.discard(event.invocation_id)
            else:
                self._transition(event.invocation_id, InvocationState.PRE_ALLOWED)
        self.record_pre(event, decision, anomaly)

    async def dispatch_post(
        self,
        event: ToolInvocationEvent,
        result: Any = None,
        token: CancellationToken | None = None,
    ) -> list[Any]:
        """Run every POST chain; return values are informational only.

        Raises:
            ValueError: If ``event`` is not a PostToolUse event
        """
        if event.phase != HookEventName.POST_TOOL_USE:
            raise ValueError(f"dispatch_post got a {event.phase.value} event")

        if result is not None:
            event = event.model_copy(update={"result": result})

        with structlog.contextvars.bound_contextvars(
            invocation_id=event.invocation_id, tool_name=event.tool_name
        ):
            duration_ms = self.correlation_store.end(
                event.invocation_id, event.timestamp
            )
            anomaly = None if duration_ms is not None else "POST without matching PRE"
            self._log_state(InvocationState.POST_RUNNING)

            chain = flatten(
                self.registry.resolve(HookEventName.POST_TOOL_USE, event.tool_name)
            )
            outputs = await self._run_informational(chain, event, token)

            self.audit_trail.record(
                AuditEntry(
                    timestamp=event.timestamp,
                    tool_name=event.tool_name,
                    invocation_id=event.invocation_id,
                    phase=HookEventName.POST_TOOL_USE,
                    duration_ms=duration_ms,
                    anomaly=anomaly,
                )
            )
            self._log_state(InvocationState.COMPLETE, duration_ms=duration_ms)
            return outputs

    async def dispatch_lifecycle(
        self, event: LifecycleEvent, token: CancellationToken | None = None
    ) -> list[Any]:
        """Run SessionStart / SessionEnd / Stop hooks.

        Raises:
            ValueError: If ``event`` carries a tool phase
        """
        if event.phase.is_tool_phase:
            raise ValueError(f"dispatch_lifecycle got a {event.phase.value} event")

        with structlog.contextvars.bound_contextvars(session_id=event.session_id):
            chain = flatten(self.registry.resolve(event.phase, None))
            outputs = await self._run_informational(chain, event, token)
            self.logger.debug(
                "Lifecycle dispatch complete",
                phase=event.phase.value,
                hooks_run=len(chain),
            )
            return outputs

    async def _run_pre_hook(
        self, hook: FunctionHook, event: HookEvent, token: CancellationToken
    ) -> PolicyDecision | None:
        try:
            output = await self._invoke(hook, event, token)
            return normalize_hook_output(output, hook.name)
        except HookCancelled as e:
            return self.error_handler.handle_cancellation(event, hook.name, e.cause)
        except Exception as e:
            return self.error_handler.handle_fault(e, event, hook.name)

    async def _run_informational(
        self,
        chain: list[FunctionHook],
        event: HookEvent,
        token: CancellationToken | None,
    ) -> list[Any]:
        outputs: list[Any] = []
        with self._invocation_token(token) as invocation_token:
            for hook in chain:
                try:
                    outputs.append(await self._invoke(hook, event, invocation_token))
                except HookCancelled as e:
                    self.error_handler.handle_cancellation(event, hook.name, e.cause)
                    break
                except Exception as e:
                    self.error_handler.handle_post_fault(e, event, hook.name)
        return outputs

    async def _invoke(
        self, hook: FunctionHook, event: HookEvent, token: CancellationToken
    ) -> Any:
        """Await one hook, racing it against the cancellation token."""
        if token.cancelled:
            raise HookCancelled(token.reason)

        hook_task = asyncio.ensure_future(hook.evaluate(event, token))
        cancel_wait = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait(
                {hook_task, cancel_wait}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            hook_task.cancel()
            raise
        finally:
            cancel_wait.cancel()

        if hook_task.done():
            if hook_task.cancelled():
                raise HookCancelled("hook task was cancelled")
            return hook_task.result()

        hook_task.cancel()
        hook_task.add_done_callback(_discard_result)
        raise HookCancelled(token.reason)

    def _invocation_token(self, token: CancellationToken | None) -> CancellationToken:
        parent = token if token is not None else CancellationToken()
        return parent.child(timeout=self.invocation_timeout)

    def _transition(self, invocation_id: str, state: InvocationState) -> None:
        self.correlation_store.mark(invocation_id, state)
        self._log_state(state)

    def _log_state(self, state: InvocationState, **extra: Any) -> None:
        self.logger.debug("Invocation state changed", state=state.value, **extra)
