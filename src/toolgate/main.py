"""Wiring for a Toolgate session."""

from .domain.dispatcher import HookDispatcher
from .domain.hook_integration import ToolInterceptor
from .infrastructure.audit import AuditTrail
from .infrastructure.config import ConfigManager, ToolgateConfig, build_registry
from .infrastructure.correlation import CorrelationStore


def create_interceptor(
    config: ToolgateConfig | None = None,
    session_id: str | None = None,
    audit_trail: AuditTrail | None = None,
) -> ToolInterceptor:
    """Build a session interceptor with fresh stores.

    Raises:
        ConfigurationError: If the hook configuration is invalid; the session
            must not start in that case
    """
    if config is None:
        config = ConfigManager().load_config()
    registry = build_registry(config)

    dispatcher = HookDispatcher(
        registry,
        correlation_store=CorrelationStore(),
        audit_trail=audit_trail if audit_trail is not None else AuditTrail(),
        invocation_timeout=config.invocation_timeout_seconds,
        input_limit=config.audit_input_limit,
    )
    return ToolInterceptor(dispatcher, session_id=session_id)
