"""Cancellation tokens threaded through every hook call."""

import asyncio
from typing import Any


class CancellationToken:
    """Cooperative cancellation signal for hook chains.

    A session owns a root token; each invocation gets a child token, which
    is cancelled when the root is cancelled or when its own timeout elapses.
    Tokens are bound to the event loop they are used on and must be
    cancelled from that loop.
    """

    def __init__(
        self,
        parent: "CancellationToken | None" = None,
        timeout: float | None = None,
    ):
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._parent = parent
        self._children: set[CancellationToken] = set()
        self._timer: asyncio.TimerHandle | None = None

        if parent is not None:
            parent._children.add(self)
            if parent.cancelled:
                self.cancel(parent.reason)

        if timeout is not None and not self.cancelled:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(
                timeout, self.cancel, f"timed out after {timeout}s"
            )

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Fire the signal for this token and all of its children."""
        if self.cancelled:
            return
        self._reason = reason or "cancelled"
        self._event.set()
        self._cancel_timer()
        for child in list(self._children):
            child.cancel(self._reason)

    async def wait(self) -> str | None:
        """Suspend until the token is cancelled; returns the reason."""
        await self._event.wait()
        return self._reason

    def child(self, timeout: float | None = None) -> "CancellationToken":
        return CancellationToken(parent=self, timeout=timeout)

    def close(self) -> None:
        """Detach from the parent and stop the timeout timer."""
        self._cancel_timer()
        if self._parent is not None:
            self._parent._children.discard(self)
            self._parent = None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def __enter__(self) -> "CancellationToken":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = f"cancelled={self._reason!r}" if self.cancelled else "active"
        return f"<CancellationToken {state}>"
