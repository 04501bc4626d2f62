"""
Page Loader.

Runs one page-load profiling pass:

    opening -> configuring -> navigating -> measuring -> running-actions
            -> closing -> done

A navigation timeout or network error moves the run to `failed` and raises
NavigationError carrying the requests that were still in flight or had
failed. The page is closed on every path before a result is returned or an
error propagates.
"""

import logging
import time
from enum import Enum

from playwright.async_api import Error as PlaywrightError

from pageperf.actions import profile_actions
from pageperf.constants import NAVIGATION_WAIT_UNTIL
from pageperf.exceptions import NavigationError
from pageperf.hero_elements import (
    get_elements_timings,
    get_paint_events_by_selectors,
    inject_element_timing_handler,
    inject_element_timing_observer,
)
from pageperf.infrastructure.emulation import (
    apply_throttling,
    clear_browser_state,
    emulate_platform,
    set_cookies,
)
from pageperf.infrastructure.request_proxy import CachingProxy
from pageperf.infrastructure.requests_tracker import RequestsTracker
from pageperf.logging_config import ProgressLogger
from pageperf.models import ProfilingResult
from pageperf.tti import get_tti, inject_long_tasks_observer
from pageperf.watching import watch

logger = logging.getLogger(__name__)


class LoaderState(Enum):
    """Page loader states."""
    OPENING = "opening"
    CONFIGURING = "configuring"
    NAVIGATING = "navigating"
    MEASURING = "measuring"
    RUNNING_ACTIONS = "running-actions"
    CLOSING = "closing"
    DONE = "done"
    FAILED = "failed"


class PageLoader:
    """
    Profiles one page configuration on a fresh page.

    Attributes:
        state: Current LoaderState, useful when diagnosing a failure
        proxy: The CachingProxy installed on the page (after configuring)
    """

    def __init__(self, context, config, page_config):
        """
        Initialize the loader.

        Args:
            context: Playwright BrowserContext to open the page in
            config: ProfilerConfig
            page_config: PageConfig to profile
        """
        self.context = context
        self.config = config
        self.page_config = page_config
        self.progress = ProgressLogger(config.logger)
        self.state = LoaderState.OPENING
        self.proxy = None

    def _transition(self, state: LoaderState) -> None:
        logger.debug(f"{self.page_config.name}: {self.state.value} -> {state.value}")
        self.state = state

    async def _configure(self, page, client) -> None:
        self._transition(LoaderState.CONFIGURING)

        # Cleared before cookies are set so configured cookies survive
        await clear_browser_state(client)

        await emulate_platform(page, client, self.config.platform)
        await apply_throttling(client, self.config.throttling_for(self.page_config))
        await set_cookies(client, self.config.cookies_for(self.page_config))

        self.proxy = CachingProxy(self.config, self.progress)
        await self.proxy.install(page)

    async def _navigate(self, page) -> None:
        self._transition(LoaderState.NAVIGATING)
        url = self.page_config.url
        timeout_ms = self.config.navigation_timeout_ms

        tracker = RequestsTracker()
        tracker.init(page)

        load_state, *idle_states = NAVIGATION_WAIT_UNTIL
        deadline = time.monotonic() + timeout_ms / 1000
        try:
            await page.goto(url, wait_until=load_state, timeout=timeout_ms)
            for state in idle_states:
                remaining_ms = max(1.0, (deadline - time.monotonic()) * 1000)
                await page.wait_for_load_state(state, timeout=remaining_ms)
        except PlaywrightError as e:
            self._transition(LoaderState.FAILED)
            snapshot = tracker.get_requests()
            tracker.dispose(page)
            logger.error(
                f"Navigation failed for {url}: {e} "
                f"({len(snapshot.inflight)} inflight, {len(snapshot.failed)} failed requests)"
            )
            raise NavigationError(url, e, snapshot) from e

        tracker.dispose(page)
        logger.info(
            f"Loaded {url}: {self.proxy.network_calls} network calls, "
            f"{self.proxy.cache_hits} cache hits, {self.proxy.aborted} aborted"
        )

    async def load(self) -> ProfilingResult:
        """Run the profiling pass and return its result."""
        self._transition(LoaderState.OPENING)
        page = await self.context.new_page()

        try:
            client = await self.context.new_cdp_session(page)

            await self._configure(page, client)

            stop_watching = await watch(page, client)

            await inject_long_tasks_observer(page)
            await inject_element_timing_observer(page)

            await self._navigate(page)

            self._transition(LoaderState.MEASURING)
            watching_result = await stop_watching()
            time_to_interactive = await get_tti(
                page,
                self.progress,
                self.config.first_event,
                quiet_window_ms=self.config.tti_quiet_window_ms,
                horizon_ms=self.config.tti_horizon_ms,
            )

            content = await page.content()

            layers_paints = await get_paint_events_by_selectors(
                client, watching_result.tracing, self.page_config.layers
            )

            await inject_element_timing_handler(page)
            elements_timings = await get_elements_timings(page)

            self._transition(LoaderState.RUNNING_ACTIONS)
            actions = await profile_actions(page, client, self.config, self.page_config, self.progress)

            result = ProfilingResult(
                watching=watching_result,
                content=content,
                actions=actions,
                time_to_interactive=time_to_interactive,
                layers_paints=layers_paints,
                elements_timings=elements_timings,
            )
        except Exception:
            if self.state is not LoaderState.FAILED:
                self._transition(LoaderState.FAILED)
            raise
        finally:
            await self._close(page)

        self._transition(LoaderState.DONE)
        return result

    async def _close(self, page) -> None:
        failed = self.state is LoaderState.FAILED
        self._transition(LoaderState.CLOSING)
        await page.close()
        if failed:
            self.state = LoaderState.FAILED


async def load_page(context, config, page_config) -> ProfilingResult:
    """
    Profile a single page load.

    Args:
        context: Playwright BrowserContext
        config: ProfilerConfig
        page_config: PageConfig to load

    Returns:
        ProfilingResult for this load

    Raises:
        NavigationError: If navigation times out or fails
        Exception: Whatever a configured action raises
    """
    loader = PageLoader(context, config, page_config)
    return await loader.load()
