"""
httpfanout: dispatch batches of HTTP requests over a bounded worker pool.

Example:
    >>> from httpfanout import Dispatcher, RequestDescriptor
    >>> dispatcher = Dispatcher()
    >>> summary = await dispatcher.run(
    ...     [RequestDescriptor(url="https://httpbin.org/get")], concurrency=2
    ... )
"""

from .config_loader import DispatchConfig, default_concurrency, load_dispatch_config, load_request_file
from .parallel import Dispatcher, DispatchObserver, RequestExecutor, dispatch_sync, split
from .transport import RequestsTransport, TransportError, TransportResponse
from .types import Chunk, DispatchSummary, OutcomeRecord, RequestDescriptor

__version__ = "0.1.0"

__all__ = [
    "Dispatcher",
    "DispatchObserver",
    "RequestExecutor",
    "dispatch_sync",
    "split",
    "DispatchConfig",
    "default_concurrency",
    "load_dispatch_config",
    "load_request_file",
    "RequestsTransport",
    "TransportError",
    "TransportResponse",
    "Chunk",
    "DispatchSummary",
    "OutcomeRecord",
    "RequestDescriptor",
]
