"""
Hero element timings.

Two sources describe when important ("hero") elements appear:
- Paint trace events, matched to elements through CSS selectors ("layers")
  resolved with the DevTools DOM domain.
- Element Timing API entries, buffered by an observer injected before
  navigation. After first content a handler tags every element carrying
  the hero attribute with `elementtiming` so later renders are reported.
"""

import logging
from typing import Any, Dict, List, Optional, Set

from pageperf.constants import ELEMENT_TIMING_WAIT_MS, HERO_ATTRIBUTE, PAINT_EVENT_NAME
from pageperf.models import ElementTiming, PaintEvent

logger = logging.getLogger(__name__)


ELEMENT_TIMING_OBSERVER_SCRIPT = """
(() => {
    window.__elementTimings = window.__elementTimings || [];
    if (!('PerformanceObserver' in window)) {
        return;
    }
    try {
        const observer = new PerformanceObserver((list) => {
            for (const entry of list.getEntries()) {
                window.__elementTimings.push({
                    identifier: entry.identifier,
                    renderTime: entry.renderTime,
                    loadTime: entry.loadTime,
                    startTime: entry.startTime,
                    url: entry.url,
                    naturalWidth: entry.naturalWidth,
                    naturalHeight: entry.naturalHeight
                });
            }
        });
        observer.observe({ type: 'element', buffered: true });
    } catch (e) {
        window.__elementTimingsError = e.message;
    }
})();
"""

ELEMENT_TIMING_HANDLER_SCRIPT = """
(attribute) => {
    const selector = '[' + attribute + ']';
    const tag = (el) => {
        if (!el.hasAttribute('elementtiming')) {
            el.setAttribute('elementtiming', el.getAttribute(attribute) || el.id || el.tagName.toLowerCase());
        }
    };
    document.querySelectorAll(selector).forEach(tag);

    if (!window.__heroMutationObserver) {
        window.__heroMutationObserver = new MutationObserver((mutations) => {
            for (const mutation of mutations) {
                for (const node of mutation.addedNodes) {
                    if (node.nodeType !== Node.ELEMENT_NODE) {
                        continue;
                    }
                    if (node.hasAttribute(attribute)) {
                        tag(node);
                    }
                    node.querySelectorAll(selector).forEach(tag);
                }
            }
        });
        window.__heroMutationObserver.observe(document.documentElement, { childList: true, subtree: true });
    }
    return true;
}
"""

# Returns buffered entries and empties the buffer
DRAIN_ELEMENT_TIMINGS_SCRIPT = """
() => {
    const entries = window.__elementTimings || [];
    window.__elementTimings = [];
    return entries;
}
"""

ELEMENT_TIMING_PRESENT_SCRIPT = """
(identifier) => (window.__elementTimings || []).some(e => e.identifier === identifier)
"""


async def inject_element_timing_observer(page) -> None:
    """Register the element timing observer for the next navigation."""
    await page.add_init_script(ELEMENT_TIMING_OBSERVER_SCRIPT)


async def inject_element_timing_handler(page, attribute: str = HERO_ATTRIBUTE) -> None:
    """Tag hero elements with `elementtiming`, now and as they are added."""
    await page.evaluate(ELEMENT_TIMING_HANDLER_SCRIPT, attribute)


async def get_elements_timings(page) -> Dict[str, ElementTiming]:
    """
    Collect element timing entries reported since the previous call.

    Returns:
        Mapping identifier -> ElementTiming; the latest entry wins
    """
    entries = await page.evaluate(DRAIN_ELEMENT_TIMINGS_SCRIPT)

    timings: Dict[str, ElementTiming] = {}
    for entry in entries or []:
        timing = ElementTiming.from_entry(entry)
        if timing.identifier:
            timings[timing.identifier] = timing
    return timings


async def wait_for_element_timing(page, identifier: str, timeout_ms: float = ELEMENT_TIMING_WAIT_MS) -> None:
    """Wait until an element timing entry with this identifier is buffered.

    Handed to actions as a helper.

    Raises:
        playwright.async_api.TimeoutError: If no entry appears in time
    """
    await page.wait_for_function(ELEMENT_TIMING_PRESENT_SCRIPT, arg=identifier, timeout=timeout_ms)


async def _backend_node_ids(client, root_id: int, selector: str) -> Set[int]:
    found = await client.send("DOM.querySelectorAll", {"nodeId": root_id, "selector": selector})

    backend_ids = set()
    for node_id in found.get("nodeIds", []):
        described = await client.send("DOM.describeNode", {"nodeId": node_id})
        backend_ids.add(described["node"]["backendNodeId"])
    return backend_ids


async def get_paint_events_by_selectors(
    client,
    tracing: List[Dict[str, Any]],
    layers: Optional[List[str]],
) -> Dict[str, List[PaintEvent]]:
    """
    Attribute Paint trace events to CSS selectors.

    Args:
        client: CDP session attached to the page
        tracing: Trace events from a WatchingResult
        layers: CSS selectors of hero elements (None or empty: nothing tracked)

    Returns:
        Mapping selector -> paint events; unmatched selectors map to []
    """
    if not layers:
        return {}

    paints = [event for event in tracing if event.get("name") == PAINT_EVENT_NAME]
    result: Dict[str, List[PaintEvent]] = {selector: [] for selector in layers}

    try:
        document = await client.send("DOM.getDocument", {"depth": 0})
        root_id = document["root"]["nodeId"]
    except Exception as e:
        logger.warning(f"Cannot resolve layers, DOM unavailable: {e}")
        return result

    for selector in layers:
        try:
            backend_ids = await _backend_node_ids(client, root_id, selector)
        except Exception as e:
            logger.debug(f"Selector {selector!r} could not be resolved: {e}")
            continue

        result[selector] = [
            PaintEvent.from_trace_event(event)
            for event in paints
            if event.get("args", {}).get("data", {}).get("nodeId") in backend_ids
        ]

    return result
