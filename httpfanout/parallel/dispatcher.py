"""
Dispatcher for httpfanout.

Fans a batch of HTTP requests out over a bounded pool of worker units and
streams the outcomes back as notifications.

Architecture:
    - The request list is split into contiguous chunks (see chunker.split)
    - Each chunk runs on its own WorkerUnit, sequentially, on a pool thread
    - At most ``concurrency`` units run at once
    - Units post events to the dispatcher's asyncio loop; a single
      coroutine consumes them, so notifications never interleave

Notifications:
    result(record)              once per relayed outcome, in arrival order
    progress(completed, total)  right after each result
    finished(completed, total)  once, when the run was not cancelled
    cancelled(completed)        once, instead of finished, after cancel()

Cancellation:
    cancel() sets a token that every unit checks before starting a request.
    In-flight requests are never aborted; outcomes that arrive after cancel()
    are discarded, so cancel() after N results yields exactly N results.
    If the run coroutine itself is cancelled, the token is set and a
    background thread closes the transports once the units have drained.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Mapping, Sequence

from ..config_loader import DispatchConfig
from ..transport.client import RequestsTransport
from ..transport.encoding import FileProbe, is_upload_file
from ..types import Chunk, DispatchSession, DispatchSummary, RequestDescriptor
from .chunker import split
from .events import CANCELLED, FINISHED, PROGRESS, RESULT, DispatchObserver, NotificationHub
from .executor import RequestExecutor, Transport
from .worker import EventKind, WorkerEvent, WorkerUnit

logger = logging.getLogger(__name__)

TransportFactory = Callable[[], Transport]


class Dispatcher:
    """
    Concurrent HTTP request dispatcher.

    Example:
        >>> dispatcher = Dispatcher()
        >>> dispatcher.on("progress", lambda done, total: print(f"{done}/{total}"))
        >>> summary = await dispatcher.run(requests, concurrency=4)
        >>> print(f"{summary.success_count}/{summary.total} succeeded")

    Thread Safety:
        ``cancel()`` may be called from any thread. ``run()`` must not be
        called again on the same instance until the previous run returns.
    """

    def __init__(
        self,
        config: DispatchConfig | None = None,
        transport_factory: TransportFactory | None = None,
        probe: FileProbe = is_upload_file,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            config: Dispatch settings (default concurrency, transport options)
            transport_factory: Builds one transport per worker unit; defaults
                to RequestsTransport configured from ``config``
            probe: File probe used for multipart bodies
        """
        self._config = config or DispatchConfig()
        self._transport_factory = transport_factory or self._default_transport
        self._probe = probe
        self._hub = NotificationHub()
        self._session: DispatchSession | None = None

    @property
    def config(self) -> DispatchConfig:
        return self._config

    @property
    def running(self) -> bool:
        return self._session is not None

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        """Register a listener for 'result', 'progress', 'finished' or 'cancelled'."""
        self._hub.on(event, callback)

    def off(self, event: str, callback: Callable[..., Any]) -> None:
        self._hub.off(event, callback)

    def cancel(self) -> None:
        """Stop starting new requests. Idempotent; returns without waiting for drain."""
        session = self._session
        if session is None:
            logger.debug("cancel() called with no dispatch in progress")
            return
        if session.cancel_token.is_set():
            return
        session.cancel_token.set()
        logger.info(
            "Cancellation requested: %d/%d completed, %d units active",
            session.completed,
            session.total,
            len(session.active_units),
        )

    async def run(
        self,
        requests: Sequence[RequestDescriptor | Mapping[str, Any]],
        concurrency: int | None = None,
        observer: DispatchObserver | None = None,
    ) -> DispatchSummary:
        """
        Dispatch a batch of requests and wait until every unit has drained.

        Args:
            requests: Non-empty ordered sequence of descriptors (mappings are
                converted with RequestDescriptor.from_dict)
            concurrency: Maximum units running at once; defaults to the
                configured concurrency
            observer: Optional observer subscribed for this run only

        Returns:
            DispatchSummary with counts and relayed outcomes

        Raises:
            ValueError: Invalid request list or concurrency
            RuntimeError: A dispatch is already running, or the worker pool
                refused work
        """
        if self._session is not None:
            raise RuntimeError("A dispatch is already running on this Dispatcher")

        descriptors = self._validate_requests(requests)
        width = self._validate_concurrency(concurrency)
        chunks = split(descriptors, width)

        session = DispatchSession(total=len(descriptors))
        self._session = session
        if observer is not None:
            self._hub.subscribe(observer)
        try:
            return await self._dispatch(session, chunks, width)
        finally:
            self._session = None
            if observer is not None:
                self._hub.unsubscribe(observer)

    async def _dispatch(
        self,
        session: DispatchSession,
        chunks: List[Chunk],
        width: int,
    ) -> DispatchSummary:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[WorkerEvent] = asyncio.Queue()

        def post(event: WorkerEvent) -> None:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, event)
            except RuntimeError:
                logger.debug("Dispatch loop closed; dropping %s from unit %d", event.kind.value, event.chunk_index)

        start_time = time.time()
        logger.info(
            "Starting dispatch: %d requests in %d chunks, concurrency %d",
            session.total,
            len(chunks),
            width,
        )

        pool = ThreadPoolExecutor(
            max_workers=min(width, len(chunks)),
            thread_name_prefix="httpfanout_worker",
        )
        transports: List[Transport] = []
        spawn_error: Exception | None = None
        try:
            for chunk in chunks:
                try:
                    transport = self._transport_factory()
                    transports.append(transport)
                    unit = WorkerUnit(
                        chunk,
                        RequestExecutor(transport, probe=self._probe),
                        session.cancel_token,
                        post,
                    )
                    pool.submit(unit.run)
                except Exception as e:
                    logger.error("Failed to start unit %d: %s", chunk.index, e)
                    spawn_error = e
                    session.cancel_token.set()
                    break
                session.spawned += 1

            while session.drained < session.spawned:
                event = await queue.get()
                self._handle_event(session, event)
        finally:
            if session.drained >= session.spawned:
                pool.shutdown(wait=False)
                self._close_transports(transports)
            else:
                # abandoned mid-run: units stop at the next token check
                session.cancel_token.set()
                threading.Thread(
                    target=self._reap,
                    args=(pool, transports),
                    name="httpfanout_reaper",
                    daemon=True,
                ).start()

        if spawn_error is not None:
            raise RuntimeError(
                f"Dispatch aborted: only {session.spawned} of {len(chunks)} units started"
            ) from spawn_error

        return self._finish(session, start_time)

    def _handle_event(self, session: DispatchSession, event: WorkerEvent) -> None:
        if event.kind is EventKind.STARTED:
            session.active_units.add(event.chunk_index)
            logger.debug("Unit %d started", event.chunk_index)
            return

        if event.kind is EventKind.DRAINED:
            session.active_units.discard(event.chunk_index)
            session.drained += 1
            logger.debug(
                "Unit %d drained after %d requests (%d/%d units done)",
                event.chunk_index,
                event.executed,
                session.drained,
                session.spawned,
            )
            return

        record = event.record
        if session.cancelled:
            session.discarded += 1
            logger.warning(
                "Discarding outcome for %s from unit %d: dispatch cancelled",
                record.url if record else "?",
                event.chunk_index,
            )
            return

        session.completed += 1
        session.outcomes.append(record)
        self._hub.emit(RESULT, record)
        self._hub.emit(PROGRESS, session.completed, session.total)

    def _finish(self, session: DispatchSession, start_time: float) -> DispatchSummary:
        elapsed_ms = (time.time() - start_time) * 1000
        cancelled = session.cancelled and session.completed < session.total
        success_count = sum(1 for r in session.outcomes if r.success)

        if cancelled:
            logger.info(
                "Dispatch cancelled: %d/%d completed, %d in-flight outcomes discarded, %.1fs",
                session.completed,
                session.total,
                session.discarded,
                elapsed_ms / 1000,
            )
            self._hub.emit(CANCELLED, session.completed)
        else:
            logger.info(
                "Dispatch complete: %d/%d success, %.1fs total",
                success_count,
                session.total,
                elapsed_ms / 1000,
            )
            self._hub.emit(FINISHED, session.completed, session.total)

        return DispatchSummary(
            total=session.total,
            completed=session.completed,
            success_count=success_count,
            failure_count=session.completed - success_count,
            cancelled=cancelled,
            elapsed_ms=elapsed_ms,
            outcomes=list(session.outcomes),
        )

    def _validate_requests(
        self, requests: Sequence[RequestDescriptor | Mapping[str, Any]]
    ) -> List[RequestDescriptor]:
        if isinstance(requests, (str, bytes)) or not isinstance(requests, Sequence):
            raise ValueError("Invalid requests: must be a non-empty sequence of request descriptors")
        if len(requests) == 0:
            raise ValueError("Invalid requests: must be a non-empty sequence of request descriptors")

        descriptors: List[RequestDescriptor] = []
        for idx, item in enumerate(requests):
            if isinstance(item, RequestDescriptor):
                descriptors.append(item)
            elif isinstance(item, Mapping):
                descriptors.append(RequestDescriptor.from_dict(item))
            else:
                raise ValueError(f"Invalid request at index {idx}: {type(item).__name__}")
        return descriptors

    def _validate_concurrency(self, concurrency: int | None) -> int:
        if concurrency is None:
            return self._config.effective_concurrency
        if isinstance(concurrency, bool) or not isinstance(concurrency, int):
            raise ValueError(f"Invalid concurrency: {concurrency!r}")
        return max(1, concurrency)

    @classmethod
    def _reap(cls, pool: ThreadPoolExecutor, transports: List[Transport]) -> None:
        pool.shutdown(wait=True)
        logger.debug("Abandoned dispatch drained; closing %d transports", len(transports))
        cls._close_transports(transports)

    @staticmethod
    def _close_transports(transports: List[Transport]) -> None:
        for transport in transports:
            close = getattr(transport, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception as e:
                logger.warning("Error closing transport %r: %s", transport, e)

    def _default_transport(self) -> Transport:
        return RequestsTransport(
            timeout=self._config.timeout,
            user_agent=self._config.user_agent,
            verify=self._config.verify_tls,
        )


def dispatch_sync(
    requests: Sequence[RequestDescriptor | Mapping[str, Any]],
    concurrency: int | None = None,
    config: DispatchConfig | None = None,
    observer: DispatchObserver | None = None,
) -> DispatchSummary:
    """
    Synchronous wrapper around Dispatcher.run.

    Example:
        >>> from httpfanout import dispatch_sync
        >>> summary = dispatch_sync([{"url": "https://httpbin.org/get"}], concurrency=2)
    """

    async def _run() -> DispatchSummary:
        return await Dispatcher(config=config).run(requests, concurrency, observer=observer)

    return asyncio.run(_run())
