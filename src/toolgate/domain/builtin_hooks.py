"""Built-in hooks: dangerous command blocking and invocation logging."""

import json
import re
from collections.abc import Callable
from typing import Any, NamedTuple

import structlog

from .cancellation import CancellationToken
from .hooks import HookEvent
from .models import PolicyDecision


class DangerousPattern(NamedTuple):
    pattern: re.Pattern[str]
    description: str


DANGEROUS_PATTERNS: tuple[DangerousPattern, ...] = (
    # Destructive file operations
    DangerousPattern(re.compile(r"rm\s+(-[rf]+\s+)*/"), "rm with absolute path"),
    DangerousPattern(re.compile(r"rm\s+-rf\s+"), "rm -rf (recursive force delete)"),
    DangerousPattern(re.compile(r"rmdir\s+/"), "rmdir with absolute path"),
    # System modification
    DangerousPattern(re.compile(r"chmod\s+777"), "chmod 777 (insecure permissions)"),
    DangerousPattern(re.compile(r"mkfs\."), "mkfs (format filesystem)"),
    DangerousPattern(re.compile(r"dd\s+if=.*of=/dev/"), "dd to device"),
    # Network exfiltration
    DangerousPattern(re.compile(r"curl.*\|\s*sh"), "curl pipe to shell"),
    DangerousPattern(re.compile(r"wget.*\|\s*sh"), "wget pipe to shell"),
    # Credential access
    DangerousPattern(re.compile(r"cat\s+.*\.ssh/"), "reading SSH keys"),
    DangerousPattern(re.compile(r"cat\s+.*/etc/passwd"), "reading passwd file"),
    DangerousPattern(re.compile(r"cat\s+.*/etc/shadow"), "reading shadow file"),
    # Fork bombs and resource exhaustion
    DangerousPattern(re.compile(r":\(\)\s*\{.*\}"), "fork bomb"),
    DangerousPattern(re.compile(r">\s*/dev/sd[a-z]"), "writing to raw device"),
)


def _abbreviate(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


class DangerousCommandHook:
    """PRE hook that denies shell commands matching a dangerous pattern."""

    name = "block_dangerous_commands"

    def __init__(
        self,
        patterns: tuple[DangerousPattern, ...] = DANGEROUS_PATTERNS,
        command_key: str = "command",
    ):
        self.patterns = patterns
        self.command_key = command_key
        self.logger = structlog.get_logger(__name__)

    def check(self, command: str) -> PolicyDecision | None:
        """Return a deny decision for the first matching pattern, if any."""
        for dangerous in self.patterns:
            match = dangerous.pattern.search(command)
            if match:
                return PolicyDecision.deny(
                    f"Blocked dangerous command: {dangerous.description} "
                    f"(matched {match.group(0)!r})",
                    hook_name=self.name,
                )
        return None

    async def evaluate(
        self, event: HookEvent, token: CancellationToken
    ) -> PolicyDecision | None:
        command = event.payload.get(self.command_key)
        if not isinstance(command, str):
            return None

        decision = self.check(command)
        if decision is not None:
            self.logger.warning(
                "Blocked dangerous command",
                tool_name=event.tool_name,
                command=_abbreviate(command, 60),
                reason=decision.reason,
            )
        return decision


class InvocationLogHook:
    """Logs every tool invocation request with an abbreviated input."""

    name = "log_invocation"

    def __init__(self) -> None:
        self.logger = structlog.get_logger(__name__)

    async def evaluate(self, event: HookEvent, token: CancellationToken) -> None:
        command = event.payload.get("command")
        if isinstance(command, str):
            summary = _abbreviate(command, 60)
        else:
            summary = _abbreviate(json.dumps(event.payload, default=str), 80)

        self.logger.info(
            "Tool invocation requested",
            tool_name=event.tool_name,
            invocation_id=getattr(event, "invocation_id", None),
            input=summary,
        )


class CompletionLogHook:
    """Logs tool completion after execution."""

    name = "log_completion"

    def __init__(self) -> None:
        self.logger = structlog.get_logger(__name__)

    async def evaluate(self, event: HookEvent, token: CancellationToken) -> None:
        self.logger.info(
            "Tool invocation completed",
            tool_name=event.tool_name,
            invocation_id=getattr(event, "invocation_id", None),
        )


class FileOperationHook:
    """Logs file paths touched by file-writing tools."""

    name = "log_file_operation"

    def __init__(self) -> None:
        self.logger = structlog.get_logger(__name__)

    async def evaluate(self, event: HookEvent, token: CancellationToken) -> None:
        file_path = event.payload.get("file_path")
        if file_path:
            self.logger.info(
                "File operation", tool_name=event.tool_name, file_path=file_path
            )


BUILTIN_HOOKS: dict[str, Callable[[], Any]] = {
    DangerousCommandHook.name: DangerousCommandHook,
    InvocationLogHook.name: InvocationLogHook,
    CompletionLogHook.name: CompletionLogHook,
    FileOperationHook.name: FileOperationHook,
}
