"""Toolgate - tool-call interception and policy enforcement for AI agents.

This package sits between an agent runtime and the tools it invokes. It runs
user-defined hooks around every tool call in a deterministic order, can veto
a call before it executes, and keeps a time-correlated audit trail.
"""

__version__ = "0.1.0"

from .domain.cancellation import CancellationToken
from .domain.dispatcher import HookDispatcher
from .domain.hook_integration import ToolInterceptor
from .domain.models import (
    AuditEntry,
    AuditSummary,
    ConfigurationError,
    ErrorCode,
    HookEventName,
    PermissionDecision,
    PolicyDecision,
    ToolgateError,
    ToolInvocationEvent,
)
from .domain.registry import HookRegistry
from .infrastructure.audit import AuditTrail
from .infrastructure.correlation import CorrelationStore

__all__ = [
    "__version__",
    "AuditEntry",
    "AuditSummary",
    "AuditTrail",
    "CancellationToken",
    "ConfigurationError",
    "CorrelationStore",
    "ErrorCode",
    "HookDispatcher",
    "HookEventName",
    "HookRegistry",
    "PermissionDecision",
    "PolicyDecision",
    "ToolgateError",
    "ToolInterceptor",
    "ToolInvocationEvent",
]
