"""Infrastructure layer: stores, configuration, logging and reporting.

This module contains the concurrency-safe stores mutated during dispatch,
plus configuration loading and other ambient concerns.
"""

from .audit import AuditTrail, truncate_payload
from .config import ConfigManager, RegistrationConfig, ToolgateConfig, build_registry
from .correlation import CorrelationStore
from .error_handler import HookFaultHandler

__all__ = [
    "AuditTrail",
    "ConfigManager",
    "CorrelationStore",
    "HookFaultHandler",
    "RegistrationConfig",
    "ToolgateConfig",
    "build_registry",
    "truncate_payload",
]
