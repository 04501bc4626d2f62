"""Page-load performance profiler driven by Playwright."""

__version__ = "0.1.0"

from pageperf.config import (
    ProfilerConfig,
    PageConfig,
    NamedAction,
    CacheConfig,
    RequestsConfig,
    ThrottlingConfig,
    settings,
)
from pageperf.models import (
    WatchingResult,
    ActionResult,
    ProfilingResult,
    PaintEvent,
    ElementTiming,
    RequestSnapshot,
)
from pageperf.exceptions import (
    ProfilerError,
    NavigationError,
    TrackerStateError,
    WatcherStateError,
    LifecycleError,
    BrowserNotStartedError,
)
from pageperf.page_loader import PageLoader, LoaderState, load_page
from pageperf.runner import profile, warm_cache
from pageperf.infrastructure import CacheStore, CachedResponse
from pageperf.infrastructure.browser_session import BrowserSession

__all__ = [
    # Configuration
    "ProfilerConfig",
    "PageConfig",
    "NamedAction",
    "CacheConfig",
    "RequestsConfig",
    "ThrottlingConfig",
    "settings",
    # Results
    "WatchingResult",
    "ActionResult",
    "ProfilingResult",
    "PaintEvent",
    "ElementTiming",
    "RequestSnapshot",
    # Errors
    "ProfilerError",
    "NavigationError",
    "TrackerStateError",
    "WatcherStateError",
    "LifecycleError",
    "BrowserNotStartedError",
    # Profiling
    "PageLoader",
    "LoaderState",
    "load_page",
    "profile",
    "warm_cache",
    "BrowserSession",
    "CacheStore",
    "CachedResponse",
]
