"""Hook capability interface and adapters.

Every hook is called as ``evaluate(event, token)``, where ``event`` is the
immutable event being dispatched and ``token`` is the
:class:`~toolgate.domain.cancellation.CancellationToken` for the current
invocation. Plain functions (sync or async) and objects exposing an
``evaluate`` method are adapted to the same interface.
"""

import inspect
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from .cancellation import CancellationToken
from .models import LifecycleEvent, ToolInvocationEvent

HookEvent = ToolInvocationEvent | LifecycleEvent


@runtime_checkable
class Hook(Protocol):
    """Single-method hook capability."""

    name: str

    async def evaluate(self, event: HookEvent, token: CancellationToken) -> Any: ...


class FunctionHook:
    """Adapts a callable (or an object's ``evaluate`` method) to :class:`Hook`."""

    def __init__(
        self,
        func: Callable[..., Any],
        name: str | None = None,
        target: Any = None,
    ):
        if not callable(func):
            raise TypeError(f"Hook must be callable, got {type(func).__name__}")
        self.func = func
        self.target = target if target is not None else func
        self.name = name or getattr(func, "__qualname__", None) or repr(func)

    async def evaluate(self, event: HookEvent, token: CancellationToken) -> Any:
        result = self.func(event, token)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"<FunctionHook {self.name}>"


def as_hook(obj: Any) -> FunctionHook:
    """Wrap a function or hook object so the dispatcher can treat them alike."""
    if isinstance(obj, FunctionHook):
        return obj

    evaluate = getattr(obj, "evaluate", None)
    if callable(evaluate) and not (inspect.isroutine(obj) or isinstance(obj, type)):
        name = getattr(obj, "name", None) or type(obj).__name__
        return FunctionHook(evaluate, name=name, target=obj)

    if callable(obj):
        return FunctionHook(obj)

    raise TypeError(
        f"Object of type {type(obj).__name__} is neither callable nor a hook"
    )
