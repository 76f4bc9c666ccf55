"""Tests for the retry wrapper."""

import logging
from unittest.mock import AsyncMock, Mock

import pytest

from cbqueue.retry import invoke, run_with_retries


class TestInvoke:
    """Tests for calling sync and async actions."""

    async def test_sync_action(self):
        assert await invoke(lambda: 42) == 42

    async def test_async_action(self):
        async def action():
            return "done"

        assert await invoke(action) == "done"

    async def test_sync_action_returning_awaitable(self):
        action = AsyncMock(return_value=7)
        assert await invoke(lambda: action()) == 7


class TestRunWithRetries:
    """Tests for bounded sequential retries."""

    async def test_success_first_try(self):
        action = AsyncMock()
        on_error = Mock()

        await run_with_retries(action, 3, on_error)

        assert action.await_count == 1
        on_error.assert_not_called()

    async def test_zero_retries_propagates(self):
        action = AsyncMock(side_effect=RuntimeError("boom"))
        on_error = Mock()

        with pytest.raises(RuntimeError, match="boom"):
            await run_with_retries(action, 0, on_error)

        assert action.await_count == 1
        on_error.assert_not_called()

    async def test_always_failing_runs_retries_plus_one(self):
        """Each retried attempt is reported; the last error is raised."""
        action = AsyncMock(side_effect=RuntimeError("boom"))
        on_error = Mock()

        with pytest.raises(RuntimeError):
            await run_with_retries(action, 3, on_error)

        assert action.await_count == 4
        assert on_error.call_count == 3

    async def test_stops_after_success(self):
        action = AsyncMock(side_effect=[ValueError("first"), ValueError("second"), None, None])
        on_error = Mock()

        await run_with_retries(action, 5, on_error)

        assert action.await_count == 3
        assert [str(call.args[0]) for call in on_error.call_args_list] == ["first", "second"]

    async def test_sync_action_failures_retried(self):
        calls = []

        def action():
            calls.append(1)
            raise KeyError("missing")

        with pytest.raises(KeyError):
            await run_with_retries(action, 2)

        assert len(calls) == 3

    async def test_retry_logged_as_warning(self, caplog):
        action = AsyncMock(side_effect=[RuntimeError("flaky"), None])

        with caplog.at_level(logging.WARNING, logger="cbqueue.retry"):
            await run_with_retries(action, 1)

        assert "retrying (1/1): flaky" in caplog.text
