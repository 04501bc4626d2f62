"""
Instrumentation Window Watcher.

A watch() call opens a capture window on a page: Chrome tracing is started
through the DevTools Protocol and every trace event reported until the
window is stopped is buffered. Stopping the window also samples the
Performance domain metrics and the page's paint entries and marks, so a
WatchingResult describes exactly what happened between the two calls.

Windows may follow each other on the same page (navigation, then each
action) but a single window can only be stopped once.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pageperf.constants import TRACE_CATEGORIES
from pageperf.exceptions import WatcherStateError
from pageperf.models import WatchingResult

logger = logging.getLogger(__name__)


PAINT_TIMINGS_SCRIPT = """
() => {
    const paints = {};
    for (const entry of performance.getEntriesByType('paint')) {
        paints[entry.name] = entry.startTime;
    }
    return paints;
}
"""

MARKS_SCRIPT = """
() => performance.getEntriesByType('mark').map(m => ({
    name: m.name,
    startTime: m.startTime
}))
"""


class InstrumentationWatcher:
    """
    One capture window on a page.

    If no CDP session is supplied the watcher opens its own and detaches it
    when the window is stopped.
    """

    def __init__(self, page, client=None, categories: Optional[List[str]] = None):
        self._page = page
        self._client = client
        self._owns_client = client is None
        self._categories = categories or TRACE_CATEGORIES
        self._events: List[Dict[str, Any]] = []
        self._complete: Optional[asyncio.Future] = None
        self._started_at = 0.0
        self._started = False
        self._stopped = False

    def _on_data_collected(self, params: Dict[str, Any]) -> None:
        self._events.extend(params.get("value", []))

    def _on_tracing_complete(self, params: Dict[str, Any]) -> None:
        if self._complete is not None and not self._complete.done():
            self._complete.set_result(True)

    async def start(self) -> None:
        if self._started:
            raise WatcherStateError("Instrumentation window already started")
        self._started = True

        if self._client is None:
            self._client = await self._page.context.new_cdp_session(self._page)

        self._complete = asyncio.get_running_loop().create_future()
        self._client.on("Tracing.dataCollected", self._on_data_collected)
        self._client.on("Tracing.tracingComplete", self._on_tracing_complete)

        try:
            await self._client.send("Performance.enable")
            await self._client.send("Tracing.start", {
                "categories": ",".join(self._categories),
                "transferMode": "ReportEvents",
            })
        except Exception:
            await self._release()
            raise

        self._started_at = time.monotonic()
        logger.debug("Instrumentation window started")

    async def _release(self) -> None:
        self._client.remove_listener("Tracing.dataCollected", self._on_data_collected)
        self._client.remove_listener("Tracing.tracingComplete", self._on_tracing_complete)
        if self._owns_client:
            try:
                await self._client.detach()
            except Exception as e:
                logger.debug(f"Failed to detach CDP session: {e}")

    async def stop(self) -> WatchingResult:
        """Close the window and return everything captured inside it."""
        if not self._started:
            raise WatcherStateError("Instrumentation window was never started")
        if self._stopped:
            raise WatcherStateError("Instrumentation window already stopped")
        self._stopped = True

        try:
            await self._client.send("Tracing.end")
            await self._complete
            stopped_at = time.monotonic()

            raw_metrics = await self._client.send("Performance.getMetrics")
            paints = await self._page.evaluate(PAINT_TIMINGS_SCRIPT)
            marks = await self._page.evaluate(MARKS_SCRIPT)
        finally:
            await self._release()

        metrics = {
            item["name"]: item["value"]
            for item in (raw_metrics or {}).get("metrics", [])
        }

        logger.debug(f"Instrumentation window stopped: {len(self._events)} trace events")

        return WatchingResult(
            tracing=list(self._events),
            metrics=metrics,
            paints=dict(paints or {}),
            marks=list(marks or []),
            started_at=self._started_at,
            stopped_at=stopped_at,
        )


async def watch(page, client=None) -> Callable[[], Awaitable[WatchingResult]]:
    """
    Start an instrumentation window.

    Args:
        page: Playwright page
        client: Optional CDP session attached to the page

    Returns:
        Coroutine function that stops the window and returns its WatchingResult
    """
    watcher = InstrumentationWatcher(page, client)
    await watcher.start()
    return watcher.stop
