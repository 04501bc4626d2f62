"""
Infrastructure Package.

Browser session management, environment emulation, request interception
and the response cache used by the page loader.
"""

from .cache_store import (
    CacheStore,
    CachedResponse,
    make_cache_key,
)
from .requests_tracker import (
    RequestsTracker,
    RequestEvent,
    RequestEventKind,
    TrackerState,
)
from .request_proxy import (
    CachingProxy,
    LifecycleState,
    RequestLifecycle,
)
from .emulation import (
    NETWORK_PRESETS,
    VIEWPORTS,
    DEVICES,
    context_options,
    emulate_platform,
    apply_throttling,
    set_cookies,
    clear_browser_state,
)

__all__ = [
    # Cache Store
    "CacheStore",
    "CachedResponse",
    "make_cache_key",
    # Requests Tracker
    "RequestsTracker",
    "RequestEvent",
    "RequestEventKind",
    "TrackerState",
    # Caching Proxy
    "CachingProxy",
    "LifecycleState",
    "RequestLifecycle",
    # Emulation
    "NETWORK_PRESETS",
    "VIEWPORTS",
    "DEVICES",
    "context_options",
    "emulate_platform",
    "apply_throttling",
    "set_cookies",
    "clear_browser_state",
]
