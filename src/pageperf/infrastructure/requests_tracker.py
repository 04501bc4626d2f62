"""
Request Lifecycle Tracker.

Keeps the set of in-flight and failed requests for a single navigation.
The snapshot is only used to explain a navigation failure; it never decides
whether a navigation succeeded.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict

from pageperf.exceptions import TrackerStateError
from pageperf.models import RequestSnapshot

logger = logging.getLogger(__name__)


class TrackerState(Enum):
    """Tracker lifecycle."""
    IDLE = "idle"
    TRACKING = "tracking"
    DISPOSED = "disposed"


class RequestEventKind(Enum):
    """Network events the tracker reacts to."""
    REQUEST = "request"
    FINISHED = "requestfinished"
    FAILED = "requestfailed"


@dataclass(frozen=True)
class RequestEvent:
    """A network event reduced to what the tracker needs."""
    kind: RequestEventKind
    url: str


class RequestsTracker:
    """
    Tracks request URLs for one navigation.

    Page events are translated into RequestEvent messages and applied by
    dispatch(), so the bookkeeping can be exercised without a browser:

        tracker = RequestsTracker()
        tracker.init(page)
        ...
        snapshot = tracker.get_requests()
        tracker.dispose(page)
    """

    def __init__(self):
        self.state = TrackerState.IDLE
        # dicts preserve observation order and give O(1) removal
        self._inflight: Dict[str, None] = {}
        self._failed: Dict[str, None] = {}
        self._listeners: Dict[str, Callable] = {}

    def init(self, page) -> None:
        """Subscribe to the page's network events and start tracking."""
        if self.state is not TrackerState.IDLE:
            raise TrackerStateError(f"Cannot init tracker in state {self.state.value}")

        for kind in RequestEventKind:
            listener = self._make_listener(kind)
            self._listeners[kind.value] = listener
            page.on(kind.value, listener)

        self.state = TrackerState.TRACKING
        logger.debug("Request tracking started")

    def _make_listener(self, kind: RequestEventKind) -> Callable:
        def listener(request) -> None:
            self.dispatch(RequestEvent(kind=kind, url=request.url))
        return listener

    def dispatch(self, event: RequestEvent) -> None:
        """Apply one network event to the in-flight/failed sets."""
        if self.state is not TrackerState.TRACKING:
            return

        if event.kind is RequestEventKind.REQUEST:
            self._inflight[event.url] = None
        elif event.kind is RequestEventKind.FINISHED:
            self._inflight.pop(event.url, None)
        elif event.kind is RequestEventKind.FAILED:
            self._inflight.pop(event.url, None)
            self._failed[event.url] = None

    def get_requests(self) -> RequestSnapshot:
        """Return a copy of the failed and in-flight URLs."""
        if self.state is not TrackerState.TRACKING:
            raise TrackerStateError(
                f"Requests are only available while tracking (state: {self.state.value})"
            )

        return RequestSnapshot(
            failed=list(self._failed),
            inflight=list(self._inflight),
        )

    def dispose(self, page) -> None:
        """Unsubscribe from the page. Safe to call more than once."""
        if self.state is TrackerState.DISPOSED:
            return

        for event_name, listener in self._listeners.items():
            try:
                page.remove_listener(event_name, listener)
            except Exception as e:
                logger.debug(f"Failed to remove {event_name} listener: {e}")

        self._listeners.clear()
        self.state = TrackerState.DISPOSED
        logger.debug("Request tracking disposed")
