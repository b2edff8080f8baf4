"""
Worker units for httpfanout.

A WorkerUnit owns one chunk and runs its requests one after another on a
pool thread. It talks to the dispatcher only through ``post``, a one-way
callable that hands WorkerEvents to the dispatcher's loop.

Fault policy:
    If an exception escapes the executor (which is not supposed to raise),
    the unit reports a synthetic failure outcome for the faulted request
    and for every request it has not started, then drains. The dispatcher
    therefore always sees one outcome per request unless cancelled.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ..types import Chunk, OutcomeRecord
from .executor import RequestExecutor

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Kinds of messages a worker unit posts to the dispatcher."""

    STARTED = "started"
    OUTCOME = "outcome"
    DRAINED = "drained"


@dataclass(frozen=True)
class WorkerEvent:
    """Message from a worker unit.

    Attributes:
        kind: Event kind
        chunk_index: Index of the posting unit's chunk
        request_index: Position within the chunk (OUTCOME only)
        record: Outcome of that request (OUTCOME only)
        executed: Requests actually started by the unit (DRAINED only)
    """

    kind: EventKind
    chunk_index: int
    request_index: int | None = None
    record: OutcomeRecord | None = None
    executed: int = 0


PostFn = Callable[[WorkerEvent], None]


class WorkerUnit:
    """
    Sequential executor for one chunk.

    Example:
        >>> unit = WorkerUnit(chunk, RequestExecutor(transport), token, events.append)
        >>> unit.run()
    """

    def __init__(
        self,
        chunk: Chunk,
        executor: RequestExecutor,
        cancel_token: threading.Event,
        post: PostFn,
    ) -> None:
        self.chunk = chunk
        self._executor = executor
        self._cancel_token = cancel_token
        self._post = post
        self.executed = 0

    @property
    def index(self) -> int:
        return self.chunk.index

    def run(self) -> None:
        """Execute the chunk, posting STARTED, one OUTCOME per request, then DRAINED."""
        self._post(WorkerEvent(kind=EventKind.STARTED, chunk_index=self.index))
        try:
            for position, descriptor in enumerate(self.chunk.requests):
                if self._cancel_token.is_set():
                    logger.debug(
                        "Unit %d stopping: %d/%d requests not started",
                        self.index,
                        len(self.chunk) - position,
                        len(self.chunk),
                    )
                    break

                self.executed += 1
                try:
                    record = self._executor.execute(descriptor)
                except Exception as e:
                    logger.exception(
                        "Unit %d faulted on request %d (%s)",
                        self.index,
                        position,
                        descriptor.url,
                    )
                    self._report_fault(position, e)
                    break

                self._post(
                    WorkerEvent(
                        kind=EventKind.OUTCOME,
                        chunk_index=self.index,
                        request_index=position,
                        record=record,
                    )
                )
        finally:
            self._post(
                WorkerEvent(
                    kind=EventKind.DRAINED,
                    chunk_index=self.index,
                    executed=self.executed,
                )
            )

    def _report_fault(self, position: int, error: Exception) -> None:
        """Post synthetic failures for the faulted request and everything after it."""
        message = f"Worker fault: {type(error).__name__}: {error}"
        for idx in range(position, len(self.chunk)):
            descriptor = self.chunk.requests[idx]
            self._post(
                WorkerEvent(
                    kind=EventKind.OUTCOME,
                    chunk_index=self.index,
                    request_index=idx,
                    record=OutcomeRecord(
                        success=False,
                        status_code=None,
                        duration_ms=0.0,
                        error=message,
                        correlation_id=descriptor.correlation_id,
                        url=descriptor.url,
                        method=descriptor.method,
                    ),
                )
            )
