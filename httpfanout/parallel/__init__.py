"""
httpfanout Parallel Dispatch Module.

Key Components:
    - Dispatcher: fans requests out over worker units and streams notifications
    - WorkerUnit: runs one chunk of requests sequentially on a pool thread
    - RequestExecutor: executes a single request into an OutcomeRecord
    - split: contiguous, order-preserving chunk partitioning

Example:
    >>> from httpfanout.parallel import Dispatcher
    >>> dispatcher = Dispatcher()
    >>> dispatcher.on("result", print)
    >>> summary = await dispatcher.run(requests, concurrency=4)
"""

from .chunker import chunk_size, split
from .dispatcher import Dispatcher, dispatch_sync
from .events import DispatchObserver, NotificationHub
from .executor import RequestExecutor
from .worker import EventKind, WorkerEvent, WorkerUnit

__all__ = [
    "Dispatcher",
    "dispatch_sync",
    "DispatchObserver",
    "NotificationHub",
    "RequestExecutor",
    "WorkerUnit",
    "WorkerEvent",
    "EventKind",
    "split",
    "chunk_size",
]
