"""Core CallbackQueue class."""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
import math
from collections import deque
from collections.abc import Iterable, Mapping
from numbers import Real
from typing import Any, Callable

from cbqueue.models import InvalidArgumentError, QueueState, WorkItem
from cbqueue.options import QueueOptions, normalize_options
from cbqueue.retry import run_with_retries

logger = logging.getLogger(__name__)

_STATE_HOOKS = {
    QueueState.IDLE: "on_idle",
    QueueState.BUSY: "on_busy",
    QueueState.STOPPED: "on_stop",
}


class CallbackQueue:
    """
    Runs submitted callbacks with at most `max_concurrent` of them in flight.

    Pending work starts strictly in submission order. Completion order is
    whatever the callbacks make it. Failed callbacks are retried in place
    and reported through `on_error`; they never raise out of the queue.

    Example:
        queue = cbqueue.CallbackQueue({
            "max_concurrent": 2,
            "on_error": lambda error: print(f"failed: {error}"),
        })

        for url in urls:
            queue.enqueue(functools.partial(fetch, url), retries=3)

        await queue.drain()
    """

    def __init__(self, options: Mapping[str, Any] | QueueOptions | None = None) -> None:
        self._options = normalize_options(options)

        self._pending: deque[WorkItem] = deque()
        self._running: dict[int, asyncio.Task] = {}
        self._handles = itertools.count(1)
        self._hook_tasks: set[asyncio.Future] = set()

        self._state = QueueState.IDLE if self._options.auto_start else QueueState.STOPPED

    @classmethod
    def create(cls, options: Mapping[str, Any] | QueueOptions | None = None) -> CallbackQueue:
        """Build a queue. Same as calling the class."""
        return cls(options)

    # --- Introspection ---

    @property
    def state(self) -> QueueState:
        return self._state

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def running_count(self) -> int:
        return len(self._running)

    @property
    def options(self) -> QueueOptions:
        return self._options

    def __repr__(self) -> str:
        return (
            f"<CallbackQueue state={self._state.value} pending={len(self._pending)} "
            f"running={len(self._running)}/{self._options.max_concurrent}>"
        )

    # --- Submission ---

    def enqueue(self, action: Callable[[], Any], retries: int | float = 0) -> WorkItem:
        """
        Add one action to the end of the queue.

        Args:
            action: Callable to run. Coroutine functions are awaited.
            retries: Extra attempts allowed if the action raises.

        Returns:
            The queued WorkItem.

        Raises:
            InvalidArgumentError: If action isn't callable or retries is
                not a non-negative number.
        """
        if not callable(action):
            raise InvalidArgumentError(f"action must be callable, got {type(action).__name__}")
        _check_retries(retries)

        item = WorkItem(action=action, retries=retries)
        self._pending.append(item)

        if self._options.auto_start:
            self.start()
        return item

    def enqueue_all(self, actions: Iterable[Callable[[], Any]], retries: int | float = 0) -> list[WorkItem]:
        """
        Add several actions as one contiguous batch, keeping their order.

        Everything is validated before anything is queued.

        Raises:
            InvalidArgumentError: If actions isn't an iterable of callables
                or retries is not a non-negative number.
        """
        if isinstance(actions, (str, bytes, Mapping)) or not isinstance(actions, Iterable):
            raise InvalidArgumentError(
                f"actions must be an iterable of callables, got {type(actions).__name__}"
            )
        actions = list(actions)
        for index, action in enumerate(actions):
            if not callable(action):
                raise InvalidArgumentError(
                    f"actions[{index}] must be callable, got {type(action).__name__}"
                )
        _check_retries(retries)

        items = [WorkItem(action=action, retries=retries) for action in actions]
        self._pending.extend(items)

        if self._options.auto_start:
            self.start()
        return items

    def dequeue(self) -> WorkItem | None:
        """Remove and return the next pending item, or None if there is none."""
        if not self._pending:
            return None
        return self._pending.popleft()

    def dequeue_all(self) -> list[WorkItem]:
        """Remove and return every pending item. Running work is unaffected."""
        items = list(self._pending)
        self._pending.clear()
        return items

    def clear(self) -> list[WorkItem]:
        """Stop the queue and remove every pending item."""
        self.stop()
        return self.dequeue_all()

    # --- Lifecycle ---

    def start(self) -> None:
        """
        Start (or resume) processing pending work.

        No-op if the queue is already BUSY or nothing is pending. Must be
        called from within a running event loop.
        """
        if self._state is QueueState.BUSY or not self._pending:
            return

        # Fail before touching state if there is no loop to run work on
        asyncio.get_running_loop()

        self._set_state(QueueState.BUSY)
        self._process()

    def stop(self) -> None:
        """
        Stop admitting new work.

        Running actions are not cancelled; they finish and report through
        the hooks as usual. Pending work stays queued until start().
        """
        self._set_state(QueueState.STOPPED)

    async def drain(self, timeout: float | None = None) -> bool:
        """
        Wait until nothing is in flight.

        While the queue is BUSY this includes work admitted during the wait,
        so on a running queue it waits for the pending list to empty too.

        Args:
            timeout: Max seconds to wait. None = wait forever.

        Returns:
            True if in-flight work reached zero, False on timeout.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while self._running:
            remaining = None
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    return False
            await asyncio.wait(list(self._running.values()), timeout=remaining)

        return True

    # --- Admission ---

    def _process(self) -> None:
        """Launch pending work until the queue is full, stopped or empty."""
        while self._state is not QueueState.STOPPED:
            if len(self._running) >= self._options.max_concurrent:
                return

            if not self._pending:
                if not self._running:
                    self._set_state(QueueState.IDLE)
                return

            item = self._pending.popleft()
            handle = next(self._handles)
            task = asyncio.get_running_loop().create_task(self._execute(handle, item))
            self._running[handle] = task
            logger.debug(
                "Launched work #%d (%d/%d running)",
                handle, len(self._running), self._options.max_concurrent,
            )

    async def _execute(self, handle: int, item: WorkItem) -> None:
        """Run one item to completion, then admit more work."""
        error: Exception | None = None
        try:
            await run_with_retries(item.action, item.retries, self._report_attempt_error)
        except Exception as exc:
            error = exc
        finally:
            self._running.pop(handle, None)

        if error is None:
            logger.debug("Work #%d completed", handle)
            self._emit("on_success")
        else:
            logger.debug("Work #%d failed: %s", handle, error)
            self._emit("on_error", error)

        self._process()

    def _report_attempt_error(self, error: Exception) -> None:
        self._emit("on_error", error)

    # --- State & hooks ---

    def _set_state(self, state: QueueState) -> None:
        if self._state is state:
            return
        logger.debug("Queue state %s -> %s", self._state.value, state.value)
        self._state = state
        self._emit(_STATE_HOOKS[state])

    def _emit(self, name: str, *args: Any) -> None:
        """Call a hook, keeping its failures away from the queue's bookkeeping."""
        hook = getattr(self._options, name)
        try:
            result = hook(*args)
        except Exception:
            logger.exception("Queue hook %s raised", name)
            return

        if not inspect.isawaitable(result):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Queue hook %s returned an awaitable outside an event loop; dropping it", name)
            if inspect.iscoroutine(result):
                result.close()
            return

        task = asyncio.ensure_future(result, loop=loop)
        self._hook_tasks.add(task)
        task.add_done_callback(lambda t: self._hook_done(name, t))

    def _hook_done(self, name: str, task: asyncio.Future) -> None:
        self._hook_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Queue hook %s failed", name, exc_info=error)


def _check_retries(retries: Any) -> None:
    if isinstance(retries, bool) or not isinstance(retries, Real):
        raise InvalidArgumentError(f"retries must be a non-negative number, got {type(retries).__name__}")
    if math.isnan(retries) or retries < 0:
        raise InvalidArgumentError(f"retries must be a non-negative number, got {retries!r}")
