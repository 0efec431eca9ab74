"""Pattern registry of hook registrations keyed by lifecycle phase."""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from .hooks import FunctionHook, as_hook
from .models import ConfigurationError, HookEventName

# Matchers that the agent runtime's settings files use to mean "every tool"
UNIVERSAL_MATCHERS = frozenset({"", "*"})
MAX_PATTERN_LENGTH = 1000


@dataclass(frozen=True)
class HookRegistration:
    """An ordered hook list scoped to a phase and an optional tool-name pattern."""

    phase: HookEventName
    hooks: tuple[FunctionHook, ...]
    matcher: str | None = None
    pattern: re.Pattern[str] | None = None

    @property
    def universal(self) -> bool:
        return self.pattern is None

    def matches(self, tool_name: str | None) -> bool:
        """Whole-name match; universal registrations match everything."""
        if self.pattern is None:
            return True
        if tool_name is None:
            return False
        return self.pattern.fullmatch(tool_name) is not None

    def same_as(self, other: "HookRegistration") -> bool:
        return (
            self.phase == other.phase
            and self.matcher == other.matcher
            and len(self.hooks) == len(other.hooks)
            and all(a.target is b.target for a, b in zip(self.hooks, other.hooks))
        )


class HookRegistry:
    """Ordered registrations per phase; read-only once frozen."""

    def __init__(self) -> None:
        self.logger = structlog.get_logger(__name__)
        self._registrations: dict[HookEventName, list[HookRegistration]] = {
            phase: [] for phase in HookEventName
        }
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "HookRegistry":
        """Stop accepting registrations; the registry may then be shared freely."""
        self._frozen = True
        return self

    def register(
        self,
        phase: HookEventName | str,
        matcher: str | None = None,
        hooks: Iterable[Any] = (),
    ) -> HookRegistration:
        """Append a registration to the phase's ordered list.

        Args:
            phase: Lifecycle phase (enum member or its value, e.g. "PreToolUse")
            matcher: Optional regex matched against the whole tool name
            hooks: Ordered hook callables or hook objects

        Returns:
            The stored registration

        Raises:
            ConfigurationError: For malformed patterns, empty or invalid hook
                lists, unknown phases, duplicates, or a frozen registry
        """
        if self._frozen:
            raise ConfigurationError(
                "Cannot register hooks after the registry has been frozen",
                context={"phase": str(phase), "matcher": matcher},
            )

        event_name = self._coerce_phase(phase)
        if matcher is not None and not isinstance(matcher, str):
            raise ConfigurationError(
                f"Matcher must be a string, got {type(matcher).__name__}",
                context={"phase": event_name.value},
            )
        hook_list = list(hooks)
        if not hook_list:
            raise ConfigurationError(
                f"Registration for {event_name.value} has no hooks",
                context={"matcher": matcher},
            )

        try:
            wrapped = tuple(as_hook(hook) for hook in hook_list)
        except TypeError as e:
            raise ConfigurationError(
                f"Invalid hook in {event_name.value} registration: {e}",
                context={"matcher": matcher},
            ) from e

        normalized = None if matcher is None or matcher in UNIVERSAL_MATCHERS else matcher
        registration = HookRegistration(
            phase=event_name,
            hooks=wrapped,
            matcher=normalized,
            pattern=self._compile_matcher(normalized),
        )

        for existing in self._registrations[event_name]:
            if existing.same_as(registration):
                raise ConfigurationError(
                    f"Duplicate {event_name.value} registration for matcher "
                    f"{normalized!r}",
                    context={"hooks": [hook.name for hook in wrapped]},
                )

        self._registrations[event_name].append(registration)
        self.logger.debug(
            "Hook registration added",
            phase=event_name.value,
            matcher=normalized,
            hooks=[hook.name for hook in wrapped],
        )
        return registration

    def resolve(
        self, phase: HookEventName | str, tool_name: str | None
    ) -> list[HookRegistration]:
        """Registrations applicable to ``tool_name``, in registration order."""
        event_name = self._coerce_phase(phase)
        return [
            registration
            for registration in self._registrations[event_name]
            if registration.matches(tool_name)
        ]

    def registrations(self, phase: HookEventName | str) -> list[HookRegistration]:
        return list(self._registrations[self._coerce_phase(phase)])

    def __len__(self) -> int:
        return sum(len(regs) for regs in self._registrations.values())

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[HookEventName | str, Iterable[Mapping[str, Any]]]
    ) -> "HookRegistry":
        """Build a frozen registry from the runtime-style hooks configuration.

        Example::

            HookRegistry.from_mapping({
                "PreToolUse": [
                    {"hooks": [log_hook]},
                    {"matcher": "Write|Edit", "hooks": [file_hook]},
                ],
                "PostToolUse": [{"hooks": [done_hook]}],
            })
        """
        registry = cls()
        for phase, entries in mapping.items():
            for entry in entries:
                registry.register(
                    phase, matcher=entry.get("matcher"), hooks=entry.get("hooks", ())
                )
        return registry.freeze()

    @staticmethod
    def _coerce_phase(phase: HookEventName | str) -> HookEventName:
        try:
            return HookEventName(phase)
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown hook phase: {phase!r}",
                context={"valid_phases": [p.value for p in HookEventName]},
            ) from e

    @staticmethod
    def _compile_matcher(matcher: str | None) -> re.Pattern[str] | None:
        if matcher is None:
            return None
        if len(matcher) > MAX_PATTERN_LENGTH:
            raise ConfigurationError(
                "Matcher pattern too long", context={"length": len(matcher)}
            )
        try:
            return re.compile(matcher)
        except re.error as e:
            raise ConfigurationError(
                f"Invalid matcher pattern {matcher!r}: {e}",
                context={"matcher": matcher},
            ) from e
