"""Configuration management for Toolgate."""

import importlib
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..domain.builtin_hooks import BUILTIN_HOOKS
from ..domain.models import ConfigurationError, HookEventName
from ..domain.registry import HookRegistry
from .audit import DEFAULT_INPUT_LIMIT

CONFIG_PATH_ENV = "TOOLGATE_CONFIG_PATH"
DEFAULT_CONFIG_FILE = "config/toolgate.yaml"


class RegistrationConfig(BaseModel):
    """One hook registration as written in the config file."""

    matcher: str | None = Field(
        default=None, description="Regex matched against the whole tool name"
    )
    hooks: list[str] = Field(
        ..., min_length=1, description="Built-in hook names or module:attr paths"
    )


def _default_hooks() -> dict[HookEventName, list[RegistrationConfig]]:
    return {
        HookEventName.PRE_TOOL_USE: [
            RegistrationConfig(hooks=["log_invocation"]),
            RegistrationConfig(matcher="Bash", hooks=["block_dangerous_commands"]),
            RegistrationConfig(matcher="Write|Edit", hooks=["log_file_operation"]),
        ],
        HookEventName.POST_TOOL_USE: [RegistrationConfig(hooks=["log_completion"])],
    }


class ToolgateConfig(BaseModel):
    """Session configuration model."""

    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Emit JSON log lines")
    audit_log_file: str | None = Field(
        default=None, description="Optional file that also receives audit events"
    )
    invocation_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Per-invocation hook chain timeout; pending hooks are denied",
    )
    audit_input_limit: int = Field(
        default=DEFAULT_INPUT_LIMIT,
        ge=1,
        description="Characters kept per string value in audit inputs",
    )
    hooks: dict[HookEventName, list[RegistrationConfig]] = Field(
        default_factory=_default_hooks, description="Lifecycle-keyed registrations"
    )


def resolve_hook_reference(reference: str) -> Any:
    """Turn a config hook reference into a hook object or callable.

    Built-in names are instantiated from ``BUILTIN_HOOKS``; anything of the
    form ``package.module:attribute`` is imported. Classes are instantiated
    with no arguments.
    """
    factory = BUILTIN_HOOKS.get(reference)
    if factory is not None:
        return factory()

    module_name, sep, attr_path = reference.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigurationError(
            f"Unknown hook reference: {reference!r}",
            context={"builtin_hooks": sorted(BUILTIN_HOOKS)},
        )

    try:
        target: Any = importlib.import_module(module_name)
        for attr in attr_path.split("."):
            target = getattr(target, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(
            f"Cannot import hook {reference!r}: {e}",
            context={"reference": reference},
        ) from e

    return target() if isinstance(target, type) else target


def build_registry(config: ToolgateConfig) -> HookRegistry:
    """Compile the configured registrations into a frozen registry."""
    registry = HookRegistry()
    for phase, registrations in config.hooks.items():
        for registration in registrations:
            hooks = [resolve_hook_reference(ref) for ref in registration.hooks]
            registry.register(phase, matcher=registration.matcher, hooks=hooks)
    return registry.freeze()


class ConfigManager:
    """Manager for loading and managing Toolgate configuration."""

    def __init__(self, config_file: str | None = None):
        """Initialize the config manager.

        Args:
            config_file: Optional path to configuration file; falls back to
                ``TOOLGATE_CONFIG_PATH`` and then ``config/toolgate.yaml``
        """
        self.config_file = (
            config_file or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_FILE
        )
        self._config: ToolgateConfig | None = None

    def load_config(self) -> ToolgateConfig:
        """Load configuration from file, or defaults if the file is absent.

        Raises:
            ConfigurationError: If the file cannot be parsed or validated
        """
        config_data: dict[str, Any] = {}

        config_path = Path(self.config_file)
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Failed to parse YAML config file: {e}",
                    context={"config_file": str(config_path)},
                ) from e

        try:
            self._config = ToolgateConfig(**config_data)
        except (ValidationError, TypeError) as e:
            raise ConfigurationError(
                f"Invalid configuration in {config_path}: {e}",
                context={"config_file": str(config_path)},
            ) from e
        return self._config

    def get_config(self) -> ToolgateConfig:
        if self._config is None:
            return self.load_config()
        return self._config

    def save_default_config(self) -> Path:
        """Write the default configuration file and return its path."""
        config_path = Path(self.config_file)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        config_data = ToolgateConfig().model_dump(mode="json", exclude_none=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
        return config_path
