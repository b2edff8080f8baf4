"""
Notification fan-out for the dispatcher.

Listeners are scoped to one Dispatcher instance; there is no module-level
registry. Callbacks run on the dispatcher's loop thread, one at a time.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from ..types import OutcomeRecord

logger = logging.getLogger(__name__)

RESULT = "result"
PROGRESS = "progress"
FINISHED = "finished"
CANCELLED = "cancelled"

EVENTS = (RESULT, PROGRESS, FINISHED, CANCELLED)


class DispatchObserver:
    """
    Base class for session-scoped observers; override what you need.

    Example:
        >>> class Printer(DispatchObserver):
        ...     def on_progress(self, completed, total):
        ...         print(f"{completed}/{total}")
        >>> await dispatcher.run(requests, observer=Printer())
    """

    def on_result(self, record: OutcomeRecord) -> None:
        pass

    def on_progress(self, completed: int, total: int) -> None:
        pass

    def on_finished(self, completed: int, total: int) -> None:
        pass

    def on_cancelled(self, completed: int) -> None:
        pass


class NotificationHub:
    """Per-dispatcher listener table."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Callable[..., Any]]] = {name: [] for name in EVENTS}

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        self._check(event)
        self._listeners[event].append(callback)

    def off(self, event: str, callback: Callable[..., Any]) -> None:
        self._check(event)
        try:
            self._listeners[event].remove(callback)
        except ValueError:
            pass

    def subscribe(self, observer: DispatchObserver) -> None:
        self.on(RESULT, observer.on_result)
        self.on(PROGRESS, observer.on_progress)
        self.on(FINISHED, observer.on_finished)
        self.on(CANCELLED, observer.on_cancelled)

    def unsubscribe(self, observer: DispatchObserver) -> None:
        self.off(RESULT, observer.on_result)
        self.off(PROGRESS, observer.on_progress)
        self.off(FINISHED, observer.on_finished)
        self.off(CANCELLED, observer.on_cancelled)

    def emit(self, event: str, *args: Any) -> None:
        """Call every listener for ``event``; a failing listener does not stop the others."""
        for callback in list(self._listeners[event]):
            try:
                callback(*args)
            except Exception:
                logger.exception("Listener %r for '%s' raised", callback, event)

    @staticmethod
    def _check(event: str) -> None:
        if event not in EVENTS:
            raise ValueError(f"Unknown event '{event}'. Available: {', '.join(EVENTS)}")
