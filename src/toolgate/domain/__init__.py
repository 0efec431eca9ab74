"""Domain layer for Toolgate."""

from .cancellation import CancellationToken
from .hooks import FunctionHook, Hook, as_hook
from .models import (
    AuditEntry,
    AuditSummary,
    ConfigurationError,
    CorrelationRecord,
    ErrorCode,
    HookEventName,
    InvocationState,
    LifecycleEvent,
    PermissionDecision,
    PolicyDecision,
    ToolgateError,
    ToolInvocationEvent,
)
from .policy import combine, normalize_hook_output
from .registry import HookRegistration, HookRegistry

__all__ = [
    "AuditEntry",
    "AuditSummary",
    "CancellationToken",
    "ConfigurationError",
    "CorrelationRecord",
    "ErrorCode",
    "FunctionHook",
    "Hook",
    "HookEventName",
    "HookRegistration",
    "HookRegistry",
    "InvocationState",
    "LifecycleEvent",
    "PermissionDecision",
    "PolicyDecision",
    "ToolgateError",
    "ToolInvocationEvent",
    "as_hook",
    "combine",
    "normalize_hook_output",
]
