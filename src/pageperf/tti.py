"""
Time To Interactive estimation.

Long tasks are recorded by an observer injected before navigation. TTI is
the earliest point at or after the first meaningful event from which a
quiet window passes with no long task starting and no more than a couple
of concurrent network requests.

get_tti() polls the page until the quiet window following the estimate
has actually elapsed, and gives up after a bounded search horizon.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional

from pageperf.constants import (
    DEFAULT_FIRST_EVENT,
    TTI_MAX_INFLIGHT_REQUESTS,
    TTI_POLL_INTERVAL_MS,
    TTI_QUIET_WINDOW_MS,
    TTI_SEARCH_HORIZON_MS,
)
from pageperf.models import LongTaskEntry, NetworkSpan

logger = logging.getLogger(__name__)


# Injected with page.add_init_script so it runs before any page script
LONG_TASKS_OBSERVER_SCRIPT = """
(() => {
    window.__longTasks = window.__longTasks || [];
    if (!('PerformanceObserver' in window)) {
        return;
    }
    try {
        const observer = new PerformanceObserver((list) => {
            for (const entry of list.getEntries()) {
                window.__longTasks.push({ start: entry.startTime, duration: entry.duration });
            }
        });
        observer.observe({ type: 'longtask', buffered: true });
    } catch (e) {
        window.__longTasksError = e.message;
    }
})();
"""

TTI_STATE_SCRIPT = """
(firstEvent) => {
    const nav = performance.getEntriesByType('navigation')[0];
    const entries = firstEvent ? performance.getEntriesByName(firstEvent) : [];
    const first = entries.length
        ? entries[0].startTime
        : (nav ? nav.domContentLoadedEventEnd : null);
    return {
        now: performance.now(),
        firstEvent: first,
        loadEventEnd: nav ? nav.loadEventEnd : null,
        longTasks: window.__longTasks || [],
        network: performance.getEntriesByType('resource').map(r => ({
            start: r.startTime,
            end: r.responseEnd
        }))
    };
}
"""


@dataclass
class TtiEstimate:
    """TTI candidate and the page time at which it becomes final."""
    value: float
    window_end: float


def max_concurrency(spans: Iterable[NetworkSpan], start: float, end: float) -> int:
    """Highest number of spans overlapping at any point of [start, end)."""
    points = []
    for span in spans:
        if span.end <= start or span.start >= end:
            continue
        points.append((max(span.start, start), 1))
        points.append((span.end, -1))

    # Ends sort before starts at the same instant
    points.sort(key=lambda p: (p[0], p[1]))

    current = peak = 0
    for _, delta in points:
        current += delta
        peak = max(peak, current)
    return peak


def compute_tti(
    first_event: float,
    long_tasks: List[LongTaskEntry],
    network_spans: Optional[List[NetworkSpan]] = None,
    quiet_window: float = TTI_QUIET_WINDOW_MS,
    max_inflight: int = TTI_MAX_INFLIGHT_REQUESTS,
) -> TtiEstimate:
    """
    Find the earliest quiet point at or after first_event.

    Candidates are first_event and the end of every long task or network
    request after it. A candidate is accepted when no long task is running
    at that point or starts inside the window, and the network never has
    more than max_inflight requests open inside the window. The last
    candidate always qualifies, so an estimate is always returned.

    Args:
        first_event: Lower bound in page time (ms)
        long_tasks: Observed long tasks
        network_spans: Resource fetches as (start, end) in page time
        quiet_window: Required quiet period (ms)
        max_inflight: Allowed concurrent requests inside the window

    Returns:
        TtiEstimate with the TTI value and the end of its quiet window
    """
    network_spans = network_spans or []
    tasks = sorted(long_tasks, key=lambda t: t.start)

    candidates = {first_event}
    candidates.update(t.end for t in tasks if t.end > first_event)
    candidates.update(s.end for s in network_spans if s.end > first_event)

    for candidate in sorted(candidates):
        window_end = candidate + quiet_window

        if any(t.start < candidate < t.end for t in tasks):
            continue
        if any(candidate <= t.start < window_end for t in tasks):
            continue
        if max_concurrency(network_spans, candidate, window_end) > max_inflight:
            continue

        return TtiEstimate(value=candidate, window_end=window_end)

    # Unreachable: the latest candidate has nothing after it
    last = max(candidates)
    return TtiEstimate(value=last, window_end=last + quiet_window)


async def inject_long_tasks_observer(page) -> None:
    """Register the long task observer for the next navigation."""
    await page.add_init_script(LONG_TASKS_OBSERVER_SCRIPT)


async def get_tti(
    page,
    progress=None,
    first_event: Optional[str] = DEFAULT_FIRST_EVENT,
    quiet_window_ms: float = TTI_QUIET_WINDOW_MS,
    horizon_ms: float = TTI_SEARCH_HORIZON_MS,
    poll_interval_ms: float = TTI_POLL_INTERVAL_MS,
) -> Optional[float]:
    """
    Wait for the page to become interactive and return TTI in page time (ms).

    Args:
        page: Playwright page with the long task observer installed
        progress: Optional ProgressLogger for the horizon warning
        first_event: Performance entry name used as lower bound
        quiet_window_ms: Required quiet period
        horizon_ms: Give up after this much wall time
        poll_interval_ms: Delay between polls

    Returns:
        TTI in ms, or the load event time (None if unknown) when the
        horizon passes without a final answer
    """
    deadline = time.monotonic() + horizon_ms / 1000

    while True:
        state = await page.evaluate(TTI_STATE_SCRIPT, first_event)

        long_tasks = [
            LongTaskEntry(start=t.get("start", 0), duration=t.get("duration", 0))
            for t in state.get("longTasks", [])
        ]
        network = [
            NetworkSpan(start=n.get("start", 0), end=n.get("end", 0))
            for n in state.get("network", [])
        ]
        estimate = compute_tti(
            state.get("firstEvent") or 0.0,
            long_tasks,
            network,
            quiet_window=quiet_window_ms,
        )

        if state.get("now", 0) >= estimate.window_end:
            logger.debug(f"TTI reached at {estimate.value:.1f}ms ({len(long_tasks)} long tasks)")
            return estimate.value

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            sentinel = state.get("loadEventEnd")
            message = (
                f"Page did not become interactive within {horizon_ms:.0f}ms; "
                f"using load time {sentinel} as TTI"
            )
            if progress is not None:
                await progress.warning(message)
            else:
                logger.warning(message)
            return sentinel

        await asyncio.sleep(min(poll_interval_ms / 1000, remaining))
