"""cbqueue - Run async callbacks with a concurrency cap, retries and lifecycle hooks."""

from cbqueue.models import InvalidArgumentError, QueueState, WorkItem
from cbqueue.options import QueueOptions
from cbqueue.queue import CallbackQueue

__version__ = "0.1.0"
__all__ = ["CallbackQueue", "QueueOptions", "QueueState", "WorkItem", "InvalidArgumentError"]
