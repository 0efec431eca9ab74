"""Tests for cancellation tokens."""

import asyncio

import pytest

from toolgate.domain.cancellation import CancellationToken


class TestCancellationToken:
    def test_cancel_sets_reason(self):
        token = CancellationToken()

        token.cancel("session ended")
        token.cancel("ignored")

        assert token.cancelled
        assert token.reason == "session ended"

    def test_default_reason(self):
        token = CancellationToken()

        token.cancel()

        assert token.reason == "cancelled"

    def test_cancel_cascades_to_children_only(self):
        parent = CancellationToken()
        child = parent.child()
        grandchild = child.child()

        child.cancel("invocation aborted")

        assert grandchild.cancelled
        assert grandchild.reason == "invocation aborted"
        assert not parent.cancelled

        parent.cancel("session ended")
        assert child.reason == "invocation aborted"

    def test_child_of_cancelled_parent_starts_cancelled(self):
        parent = CancellationToken()
        parent.cancel("gone")

        assert parent.child().reason == "gone"

    def test_closed_child_is_detached(self):
        parent = CancellationToken()
        with parent.child() as child:
            pass

        parent.cancel()

        assert not child.cancelled

    @pytest.mark.asyncio
    async def test_wait_returns_reason(self):
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)

        token.cancel("stop")

        assert await waiter == "stop"

    @pytest.mark.asyncio
    async def test_timeout_cancels_token(self):
        token = CancellationToken(timeout=0.01)

        reason = await asyncio.wait_for(token.wait(), 5)

        assert reason == "timed out after 0.01s"

    @pytest.mark.asyncio
    async def test_close_stops_timeout(self):
        token = CancellationToken(timeout=0.01)
        token.close()

        await asyncio.sleep(0.05)

        assert not token.cancelled
