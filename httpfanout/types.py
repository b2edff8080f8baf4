"""Core value types shared by the dispatcher, workers and transports."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple

from requests.structures import CaseInsensitiveDict


@dataclass(frozen=True)
class RequestDescriptor:
    """
    A single HTTP request to dispatch.

    Header keys are case-insensitive. Headers and query are stored as
    read-only copies. The body is an opaque payload whose encoding is chosen
    from the declared ``Content-Type`` header at send time.
    """

    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict, hash=False)
    body: Any = field(default=None, hash=False)
    query: Optional[Mapping[str, Any]] = field(default=None, hash=False)
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.url, str) or not self.url:
            raise ValueError("RequestDescriptor.url must be a non-empty string")
        object.__setattr__(self, "method", (self.method or "GET").upper())
        headers = CaseInsensitiveDict({str(k): str(v) for k, v in (self.headers or {}).items()})
        object.__setattr__(self, "headers", MappingProxyType(headers))
        if self.query is not None:
            object.__setattr__(self, "query", MappingProxyType(dict(self.query)))

    @property
    def content_type(self) -> str | None:
        return self.headers.get("Content-Type")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RequestDescriptor":
        """Build a descriptor from a plain mapping (``target_id`` is accepted as the correlation id)."""
        if "url" not in data:
            raise ValueError(f"Request mapping is missing 'url': {dict(data)!r}")
        correlation_id = data.get("correlation_id", data.get("target_id"))
        return cls(
            url=data["url"],
            method=data.get("method", "GET"),
            headers=data.get("headers") or {},
            body=data.get("body"),
            query=data.get("query"),
            correlation_id=str(correlation_id) if correlation_id is not None else None,
        )


@dataclass(frozen=True)
class OutcomeRecord:
    """Normalized result of executing one RequestDescriptor.

    Attributes:
        success: False only for transport-level failures (a 404 is a success)
        status_code: HTTP status, None when no response was received
        duration_ms: Wall-clock time around the transport call
        headers: Response headers (None on failure)
        body: Decoded response body (None on failure)
        error: Failure description (None on success)
        correlation_id: Echo of the request's correlation id
        url: Request URL
        method: Request method
    """

    success: bool
    status_code: int | None
    duration_ms: float
    headers: Dict[str, str] | None = None
    body: Any = None
    error: str | None = None
    correlation_id: str | None = None
    url: str | None = None
    method: str | None = None


@dataclass(frozen=True)
class Chunk:
    """Contiguous slice of the request list assigned to one worker unit."""

    index: int
    start: int
    requests: Tuple[RequestDescriptor, ...]

    def __len__(self) -> int:
        return len(self.requests)

    def __iter__(self) -> Iterator[RequestDescriptor]:
        return iter(self.requests)


@dataclass
class DispatchSession:
    """Per-run state. Mutated only by the dispatcher's control flow."""

    total: int
    cancel_token: threading.Event = field(default_factory=threading.Event)
    completed: int = 0
    spawned: int = 0
    drained: int = 0
    discarded: int = 0
    active_units: Set[int] = field(default_factory=set)
    outcomes: List[OutcomeRecord] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.cancel_token.is_set()


@dataclass
class DispatchSummary:
    """Aggregated result of one ``Dispatcher.run`` call.

    Attributes:
        total: Number of requests submitted
        completed: Number of outcomes relayed as ``result`` notifications
        success_count: Relayed outcomes with success=True
        failure_count: Relayed outcomes with success=False
        cancelled: Whether the run ended through cancellation
        elapsed_ms: Wall-clock time of the whole run
        outcomes: Relayed outcomes in arrival order
    """

    total: int
    completed: int
    success_count: int
    failure_count: int
    cancelled: bool
    elapsed_ms: float
    outcomes: List[OutcomeRecord] = field(default_factory=list)
