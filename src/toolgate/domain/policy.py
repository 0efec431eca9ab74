"""Policy decision combinator for PRE hook chains."""

from collections.abc import Iterable, Mapping
from typing import Any

from .models import PermissionDecision, PolicyDecision


def normalize_hook_output(
    value: Any, hook_name: str | None = None
) -> PolicyDecision | None:
    """Map a hook's return value onto a decision.

    Accepted shapes:
        - ``None`` or an empty mapping: neutral, continue the chain
        - :class:`PolicyDecision`
        - ``{"hookSpecificOutput": {"permissionDecision": "deny",
          "permissionDecisionReason": "..."}}``
        - legacy ``{"decision": "block", "reason": "..."}``

    Raises:
        TypeError: If the value has none of the shapes above
    """
    if value is None:
        return None

    if isinstance(value, PolicyDecision):
        if value.denied and value.hook_name is None and hook_name is not None:
            return value.model_copy(update={"hook_name": hook_name})
        return value

    if not isinstance(value, Mapping):
        raise TypeError(
            f"Hook {hook_name or '<anonymous>'} returned unsupported "
            f"{type(value).__name__}"
        )

    specific = value.get("hookSpecificOutput")
    if isinstance(specific, Mapping) and "permissionDecision" in specific:
        permission = str(specific["permissionDecision"]).lower()
        reason = specific.get("permissionDecisionReason")
        if permission == PermissionDecision.DENY.value:
            return PolicyDecision.deny(reason or "Denied by hook", hook_name=hook_name)
        if permission == PermissionDecision.ALLOW.value:
            return PolicyDecision.allow(reason)
        raise TypeError(f"Unsupported permissionDecision {permission!r}")

    decision = value.get("decision")
    if decision == "block":
        return PolicyDecision.deny(
            value.get("reason") or "Blocked by hook", hook_name=hook_name
        )
    if decision == "approve":
        return PolicyDecision.allow(value.get("reason"))

    # Informational keys only (e.g. a systemMessage); treated as neutral
    return None


def combine(results: Iterable[PolicyDecision | None]) -> PolicyDecision:
    """Return the first DENY in chain order, or ALLOW if there is none."""
    for result in results:
        if result is not None and result.denied:
            return result
    return PolicyDecision.allow()
