"""Basic import and instantiation tests."""

import cbqueue
from cbqueue import QueueState
from cbqueue.options import DEFAULT_OPTIONS


def test_import():
    """Verify cbqueue can be imported and exposes the queue class."""
    assert hasattr(cbqueue, "CallbackQueue")
    assert hasattr(cbqueue, "InvalidArgumentError")


def test_queue_instantiation():
    """A queue built without options uses the defaults and starts IDLE."""
    queue = cbqueue.CallbackQueue()
    assert queue.options == DEFAULT_OPTIONS
    assert queue.state == QueueState.IDLE
    assert queue.pending_count == 0
    assert queue.running_count == 0


def test_create_factory():
    """create() is equivalent to calling the class."""
    queue = cbqueue.CallbackQueue.create()
    assert isinstance(queue, cbqueue.CallbackQueue)
    assert queue.options == DEFAULT_OPTIONS

    queue = cbqueue.CallbackQueue.create(None)
    assert queue.options == DEFAULT_OPTIONS


def test_no_auto_start_begins_stopped():
    """Without auto_start the queue starts STOPPED."""
    queue = cbqueue.CallbackQueue({"auto_start": False, "max_concurrent": 5})
    assert queue.state == QueueState.STOPPED
    assert queue.options.max_concurrent == 5
    assert queue.options.auto_start is False


def test_state_is_string_enum():
    """States compare equal to their names."""
    assert QueueState.BUSY == "BUSY"
    assert QueueState("IDLE") is QueueState.IDLE


def test_repr_shows_counts():
    queue = cbqueue.CallbackQueue({"auto_start": False, "max_concurrent": 3})
    queue.enqueue(lambda: None)
    assert repr(queue) == "<CallbackQueue state=STOPPED pending=1 running=0/3>"
