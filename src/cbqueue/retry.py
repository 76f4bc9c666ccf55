"""Bounded retry of a single action."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


async def invoke(action: Callable[[], Any]) -> Any:
    """Call an action (sync or async) and await its result if needed."""
    result = action()
    if inspect.isawaitable(result):
        result = await result
    return result


async def run_with_retries(
    action: Callable[[], Any],
    retries: int | float = 0,
    on_attempt_error: Callable[[Exception], Any] | None = None,
) -> None:
    """
    Run an action, retrying it up to `retries` more times on failure.

    Attempts run one after another. `on_attempt_error` is called for every
    failed attempt that is followed by a retry. The error of the last
    attempt is re-raised, so a caller sees exactly one terminal failure.

    Args:
        action: Callable to run. May return an awaitable.
        retries: Extra attempts allowed after the first one.
        on_attempt_error: Called with the error of each retried attempt.

    Raises:
        Exception: Whatever the final attempt raised.
    """
    attempt = 0
    while True:
        try:
            await invoke(action)
            return
        except Exception as error:
            if attempt >= retries:
                raise
            attempt += 1
            logger.warning("Action failed, retrying (%d/%s): %s", attempt, retries, error)
            if on_attempt_error is not None:
                on_attempt_error(error)
