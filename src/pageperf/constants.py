# src/pageperf/constants.py
"""Centralized constants for the page-load profiler.

Values that callers may want to tune per run live on ProfilerConfig in
config.py; the numbers below are the defaults it falls back to.
"""

# =============================================================================
# Performance Timeline Marks
# =============================================================================

# Marks written into window.performance around every profiled action
ACTION_START = "pageperf:action-start"
ACTION_END = "pageperf:action-end"


# =============================================================================
# Navigation
# =============================================================================

# Upper bound for load + network idle during navigation (milliseconds)
NAVIGATION_TIMEOUT_MS = 60000

# Lifecycle states waited on, in order, during navigation
NAVIGATION_WAIT_UNTIL = ("load", "networkidle")


# =============================================================================
# Proxy Cache
# =============================================================================

# Delivery delay for replayed POST responses (milliseconds)
CACHE_REPLAY_DELAY_MS = 500

# Cache policy type that enables POST replay
PROXY_CACHE_TYPE = "proxy"


# =============================================================================
# Time To Interactive
# =============================================================================

# Trailing window that must be free of long tasks (milliseconds)
TTI_QUIET_WINDOW_MS = 5000

# Maximum concurrent network requests still considered "settled"
TTI_MAX_INFLIGHT_REQUESTS = 2

# How long get_tti keeps polling before giving up (milliseconds)
TTI_SEARCH_HORIZON_MS = 30000

# Delay between polls of the long task buffer (milliseconds)
TTI_POLL_INTERVAL_MS = 500

# Performance entry used as the lower bound of TTI when none is configured
DEFAULT_FIRST_EVENT = "first-contentful-paint"


# =============================================================================
# Element Timing
# =============================================================================

# Attribute marking elements that should report element timing
HERO_ATTRIBUTE = "data-hero"

# Default wait for waitForElementTiming helper (milliseconds)
ELEMENT_TIMING_WAIT_MS = 10000


# =============================================================================
# Tracing
# =============================================================================

TRACE_CATEGORIES = [
    "devtools.timeline",
    "loading",
    "blink.user_timing",
    "disabled-by-default-devtools.timeline",
    "disabled-by-default-devtools.timeline.frame",
]

# Trace event name emitted for every paint of a layout object
PAINT_EVENT_NAME = "Paint"
