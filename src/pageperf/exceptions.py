"""Exceptions raised by the page-load profiler."""

from typing import Optional


class ProfilerError(Exception):
    """Base class for profiler failures."""


class NavigationError(ProfilerError):
    """Navigation timed out or failed at the network level.

    The message embeds the original error followed by the in-flight and
    failed request lists observed when the failure happened.
    """

    def __init__(self, url: str, original: Exception, snapshot):
        self.url = url
        self.original = original
        self.snapshot = snapshot
        super().__init__(self.format_message(original, snapshot))

    @staticmethod
    def format_message(original: Exception, snapshot) -> str:
        inflight = "\n".join(snapshot.inflight)
        failed = "\n".join(snapshot.failed)
        return (
            f"{original}\n\n"
            f"Inflight requests:\n{inflight}\n\n"
            f"Failed requests:\n{failed}"
        )


class TrackerStateError(ProfilerError):
    """RequestsTracker was used outside of its tracking state."""


class WatcherStateError(ProfilerError):
    """An instrumentation window was stopped twice."""


class LifecycleError(ProfilerError):
    """An intercepted request attempted an illegal state transition."""

    def __init__(self, url: str, current, target, message: Optional[str] = None):
        self.url = url
        self.current = current
        self.target = target
        super().__init__(
            message or f"Illegal request transition {current.value} -> {target.value} for {url}"
        )


class BrowserNotStartedError(ProfilerError):
    """BrowserSession used outside of its async context manager."""
