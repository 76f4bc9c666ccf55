"""Queue configuration and its normalization."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any, Callable

logger = logging.getLogger(__name__)

HOOK_NAMES = ("on_error", "on_success", "on_idle", "on_busy", "on_stop")


def noop(*args: Any, **kwargs: Any) -> None:
    """Default hook. Does nothing."""


@dataclass(frozen=True)
class QueueOptions:
    """
    Configuration for a CallbackQueue.

    Attributes:
        auto_start: Start processing as soon as something is enqueued.
        max_concurrent: Maximum number of actions running at once.
        on_error: Called with the exception of every failed attempt.
        on_success: Called after an action completes successfully.
        on_idle: Called when the queue becomes IDLE.
        on_busy: Called when the queue becomes BUSY.
        on_stop: Called when the queue becomes STOPPED.
    """

    auto_start: bool = True
    max_concurrent: int = 10
    on_error: Callable[[BaseException], Any] = noop
    on_success: Callable[[], Any] = noop
    on_idle: Callable[[], Any] = noop
    on_busy: Callable[[], Any] = noop
    on_stop: Callable[[], Any] = noop


DEFAULT_OPTIONS = QueueOptions()


def normalize_options(options: Mapping[str, Any] | QueueOptions | None = None) -> QueueOptions:
    """
    Merge user options over the defaults, correcting anything unusable.

    Unknown keys are dropped. Hooks that aren't callable become noop.
    A non-bool auto_start or a max_concurrent that isn't a positive int
    falls back to its default. Never raises.

    Example:
        opts = normalize_options({"max_concurrent": 2, "on_idle": None})
        assert opts.on_idle is noop
    """
    if options is None:
        return DEFAULT_OPTIONS

    if isinstance(options, QueueOptions):
        given = {f.name: getattr(options, f.name) for f in fields(QueueOptions)}
    elif isinstance(options, Mapping):
        given = dict(options)
    else:
        logger.warning("Ignoring queue options of type %s", type(options).__name__)
        return DEFAULT_OPTIONS

    known = {f.name for f in fields(QueueOptions)}
    unknown = sorted(str(key) for key in given if key not in known)
    if unknown:
        logger.debug("Dropping unknown queue options: %s", ", ".join(unknown))

    values: dict[str, Any] = {}

    auto_start = given.get("auto_start", DEFAULT_OPTIONS.auto_start)
    if isinstance(auto_start, bool):
        values["auto_start"] = auto_start
    else:
        logger.warning("Invalid auto_start %r, using %r", auto_start, DEFAULT_OPTIONS.auto_start)
        values["auto_start"] = DEFAULT_OPTIONS.auto_start

    max_concurrent = given.get("max_concurrent", DEFAULT_OPTIONS.max_concurrent)
    if isinstance(max_concurrent, int) and not isinstance(max_concurrent, bool) and max_concurrent >= 1:
        values["max_concurrent"] = max_concurrent
    else:
        logger.warning(
            "Invalid max_concurrent %r, using %d", max_concurrent, DEFAULT_OPTIONS.max_concurrent
        )
        values["max_concurrent"] = DEFAULT_OPTIONS.max_concurrent

    for name in HOOK_NAMES:
        hook = given.get(name)
        values[name] = hook if callable(hook) else noop

    return QueueOptions(**values)
