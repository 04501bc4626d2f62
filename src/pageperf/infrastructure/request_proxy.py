"""
Request Interception & Caching Proxy.

Intercepts every request a page makes. Requests matching the ignore
predicate are aborted. Under the 'proxy' cache policy, POST requests whose
cache key was recorded earlier are fulfilled from the CacheStore after a
short delivery delay, and fresh POST responses are recorded for later
replay. Everything else goes to the network.

Caching is best-effort: a failure to abort, continue, fulfill or read a
response is logged and never fails the page load.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pageperf.constants import CACHE_REPLAY_DELAY_MS
from pageperf.exceptions import LifecycleError
from pageperf.infrastructure.cache_store import CacheStore, CachedResponse, make_cache_key
from pageperf.logging_config import ProgressLogger

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    """Where an intercepted request is in its lifecycle."""
    SENT = "sent"
    ABORTED = "aborted"
    CACHED = "cached"
    FORWARDED = "forwarded"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS = {
    LifecycleState.SENT: {LifecycleState.ABORTED, LifecycleState.CACHED, LifecycleState.FORWARDED, LifecycleState.FAILED},
    LifecycleState.CACHED: {LifecycleState.COMPLETED, LifecycleState.FAILED},
    LifecycleState.FORWARDED: {LifecycleState.COMPLETED, LifecycleState.FAILED},
    LifecycleState.ABORTED: set(),
    LifecycleState.COMPLETED: set(),
    LifecycleState.FAILED: set(),
}


@dataclass
class RequestLifecycle:
    """State of one intercepted request."""
    url: str
    method: str
    cache_key: Optional[str] = None
    state: LifecycleState = LifecycleState.SENT
    history: List[LifecycleState] = field(default_factory=lambda: [LifecycleState.SENT])

    def advance(self, target: LifecycleState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise LifecycleError(self.url, self.state, target)
        self.state = target
        self.history.append(target)

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.state]


def read_post_data(request) -> Optional[str]:
    """Request body as text; bytes that are not UTF-8 survive as surrogates."""
    buffer = request.post_data_buffer
    if buffer is None:
        return None
    return buffer.decode("utf-8", errors="surrogateescape")


def _identity_post_data(url: str, post_data: Optional[str]) -> Optional[str]:
    return post_data


def _identity_response(url: str, post_data: Optional[str], body: str) -> str:
    return body


class CachingProxy:
    """
    Routes a page's requests through the ignore filter and the proxy cache.

    Handlers only touch the duck-typed surface of Playwright's Route and
    Request objects (url, method, post_data_buffer, abort, continue_, fulfill,
    response), so they can be driven by fakes in tests.

    Usage:
        proxy = CachingProxy(config, progress)
        await proxy.install(page)
    """

    def __init__(self, config, progress: Optional[ProgressLogger] = None):
        """
        Initialize the proxy.

        Args:
            config: ProfilerConfig providing cache policy, ignore predicate,
                replay delay and the cache store
            progress: Progress logger for failures
        """
        self.cache_store: CacheStore = config.cache_store
        self.active: bool = config.is_proxy_cache
        self.replay_delay: float = getattr(config, "cache_replay_delay_ms", CACHE_REPLAY_DELAY_MS) / 1000
        self._progress = progress or ProgressLogger()

        cache = config.cache
        self._post_data_handler: Callable = (
            cache.post_data_handler if self.active and cache.post_data_handler else _identity_post_data
        )
        self._response_data_handler: Callable = (
            cache.response_data_handler if self.active and cache.response_data_handler else _identity_response
        )

        requests = config.requests
        self._ignore: Optional[Callable[[str], bool]] = requests.ignore if requests else None

        self._lifecycles: Dict[Any, RequestLifecycle] = {}
        self.network_calls = 0
        self.cache_hits = 0
        self.aborted = 0

    async def install(self, page) -> None:
        """Register the route handler and, for the proxy policy, the recorder."""
        await page.route("**/*", self.handle_route)

        if self.active:
            page.on("requestfinished", self.handle_request_finished)
            page.on("requestfailed", self.handle_request_failed)

    @property
    def lifecycles(self) -> List[RequestLifecycle]:
        return list(self._lifecycles.values())

    def cache_key(self, url: str, post_data: Optional[str]) -> str:
        return make_cache_key(url, self._post_data_handler(url, post_data))

    def _advance(self, request, target: LifecycleState) -> None:
        lifecycle = self._lifecycles.get(request)
        if lifecycle is None:
            return
        try:
            lifecycle.advance(target)
        except LifecycleError as e:
            logger.debug(str(e))

    async def handle_route(self, route) -> None:
        """Decide whether an outgoing request is aborted, replayed or forwarded."""
        request = route.request
        url = request.url
        method = request.method
        lifecycle = RequestLifecycle(url=url, method=method)
        self._lifecycles[request] = lifecycle

        if self._ignore is not None and self._ignore(url):
            try:
                await route.abort()
                lifecycle.advance(LifecycleState.ABORTED)
                self.aborted += 1
            except Exception as e:
                await self._report_failure(f"Failed to abort {url}", e)
            return

        if self.active and method == "POST":
            try:
                raw_post_data = read_post_data(request)
                key = self.cache_key(url, raw_post_data)
            except Exception as e:
                await self._report_failure(f"Failed to derive cache key for {url}", e)
                key = None

            lifecycle.cache_key = key
            cached = self.cache_store.get(key) if key is not None else None

            if cached is not None:
                lifecycle.advance(LifecycleState.CACHED)
                self.cache_hits += 1
                await self._replay(route, url, raw_post_data, cached)
                return

        try:
            lifecycle.advance(LifecycleState.FORWARDED)
            self.network_calls += 1
            await route.continue_()
        except Exception as e:
            await self._report_failure(f"Failed to continue {url}", e)

    async def _replay(self, route, url: str, raw_post_data: Optional[str], cached: CachedResponse) -> None:
        try:
            body = self._response_data_handler(url, raw_post_data, cached.body)

            # Cached replays still take time so timings are not artificially zero
            await asyncio.sleep(self.replay_delay)

            await route.fulfill(
                status=cached.status,
                headers=cached.headers,
                body=body,
                content_type=cached.content_type,
            )
            logger.debug(f"Replayed cached response for {url}")
        except Exception as e:
            await self._report_failure(f"Failed to replay cached response for {url}", e)

    async def handle_request_finished(self, request) -> None:
        """Record the response of a POST request that is not cached yet."""
        self._advance(request, LifecycleState.COMPLETED)

        if not self.active or request.method != "POST":
            return

        url = request.url

        try:
            key = self.cache_key(url, read_post_data(request))
            if self.cache_store.has(key):
                return

            response = await request.response()
            if response is None:
                return

            body = await response.text()
            headers = dict(response.headers)
            data = CachedResponse(
                body=body,
                headers=headers,
                status=response.status,
                content_type=headers.get("content-type"),
            )

            if self.cache_store.set(key, data):
                logger.debug(f"Cached POST response for {url}")
        except Exception as e:
            await self._report_failure(f"Failed to cache response for {url}", e)

    def handle_request_failed(self, request) -> None:
        self._advance(request, LifecycleState.FAILED)

    async def _report_failure(self, message: str, error: Exception) -> None:
        try:
            await self._progress.warning(f"{message}: {error}")
        except Exception as e:
            logger.warning(f"Progress logger failed while reporting '{message}': {e}")
