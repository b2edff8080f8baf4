"""
Unit tests for WorkerUnit.

Runs units on the calling thread and collects posted events in a list.
"""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

from httpfanout.parallel.worker import EventKind, WorkerUnit
from httpfanout.types import Chunk, OutcomeRecord, RequestDescriptor


def _chunk(n: int, index: int = 0) -> Chunk:
    return Chunk(
        index=index,
        start=0,
        requests=tuple(RequestDescriptor(url=f"https://example.test/{i}", correlation_id=str(i)) for i in range(n)),
    )


def _echo_executor() -> MagicMock:
    executor = MagicMock()
    executor.execute.side_effect = lambda d: OutcomeRecord(
        success=True, status_code=200, duration_ms=1.0, correlation_id=d.correlation_id, url=d.url
    )
    return executor


class TestWorkerUnit:
    """Tests for WorkerUnit.run."""

    def test_events_in_chunk_order(self) -> None:
        """STARTED, one OUTCOME per request in order, then DRAINED."""
        events = []
        unit = WorkerUnit(_chunk(3, index=4), _echo_executor(), threading.Event(), events.append)
        unit.run()

        kinds = [e.kind for e in events]
        assert kinds == [EventKind.STARTED, EventKind.OUTCOME, EventKind.OUTCOME, EventKind.OUTCOME, EventKind.DRAINED]
        outcomes = [e for e in events if e.kind is EventKind.OUTCOME]
        assert [e.request_index for e in outcomes] == [0, 1, 2]
        assert [e.record.correlation_id for e in outcomes] == ["0", "1", "2"]
        assert all(e.chunk_index == 4 for e in events)
        assert events[-1].executed == 3

    def test_cancel_token_checked_before_each_request(self) -> None:
        """A set token stops the unit before its next request but lets the current one finish."""
        events = []
        token = threading.Event()
        executor = _echo_executor()
        inner = executor.execute.side_effect

        def execute_then_cancel(descriptor):
            record = inner(descriptor)
            token.set()
            return record

        executor.execute.side_effect = execute_then_cancel
        WorkerUnit(_chunk(4), executor, token, events.append).run()

        assert executor.execute.call_count == 1
        assert [e.kind for e in events] == [EventKind.STARTED, EventKind.OUTCOME, EventKind.DRAINED]
        assert events[-1].executed == 1

    def test_pre_cancelled_unit_runs_nothing(self) -> None:
        events = []
        token = threading.Event()
        token.set()
        executor = _echo_executor()
        WorkerUnit(_chunk(2), executor, token, events.append).run()

        executor.execute.assert_not_called()
        assert [e.kind for e in events] == [EventKind.STARTED, EventKind.DRAINED]

    def test_fault_reports_synthetic_failures(self) -> None:
        """An exception escaping the executor fails the faulted and remaining requests."""
        events = []
        executor = _echo_executor()
        inner = executor.execute.side_effect

        def flaky(descriptor):
            if descriptor.correlation_id == "1":
                raise RuntimeError("executor crashed")
            return inner(descriptor)

        executor.execute.side_effect = flaky
        WorkerUnit(_chunk(4), executor, threading.Event(), events.append).run()

        outcomes = [e for e in events if e.kind is EventKind.OUTCOME]
        assert [e.request_index for e in outcomes] == [0, 1, 2, 3]
        assert outcomes[0].record.success
        for event in outcomes[1:]:
            assert not event.record.success
            assert "Worker fault: RuntimeError: executor crashed" == event.record.error
        assert [e.record.correlation_id for e in outcomes] == ["0", "1", "2", "3"]
        assert events[-1].kind is EventKind.DRAINED
        assert executor.execute.call_count == 2
