"""
Multi-page profiling runner.

Loads every configured page `count` times and returns the raw results per
page. When the proxy cache is enabled, a warming pass loads each page once
first so that measured loads replay recorded POST responses.
"""

import logging
from typing import Dict, List, Optional

from pageperf.infrastructure.browser_session import BrowserSession
from pageperf.infrastructure.emulation import context_options
from pageperf.logging_config import ProgressLogger
from pageperf.models import ProfilingResult
from pageperf.page_loader import load_page

logger = logging.getLogger(__name__)


async def _load_in_fresh_context(session: BrowserSession, config, page_config) -> ProfilingResult:
    async with session.context(**context_options(config.platform)) as context:
        return await load_page(context, config, page_config)


async def warm_cache(session: BrowserSession, config, progress: Optional[ProgressLogger] = None) -> int:
    """
    Load every page once to fill the proxy cache.

    Warming loads are not measured; a failing page is reported and skipped
    so the measured pass still runs.

    Returns:
        Number of entries in the cache store after warming
    """
    progress = progress or ProgressLogger(config.logger)

    for page_config in config.pages:
        await progress(f'warming cache for "{page_config.name}"')
        try:
            await _load_in_fresh_context(session, config, page_config)
        except Exception as e:
            await progress.warning(f'cache warming failed for "{page_config.name}": {e}')

    cached = len(config.cache_store)
    await progress(f"cache warmed: {cached} responses recorded")
    return cached


async def profile(config, session: Optional[BrowserSession] = None) -> Dict[str, List[ProfilingResult]]:
    """
    Profile all configured pages.

    Args:
        config: ProfilerConfig
        session: Started BrowserSession; one is launched when omitted

    Returns:
        Mapping page name -> list of ProfilingResult, one per measured load

    Raises:
        NavigationError: If a measured load fails to navigate
    """
    progress = ProgressLogger(config.logger)

    if not config.pages:
        await progress("Nothing to profile")
        return {}

    if session is None:
        async with BrowserSession() as owned_session:
            return await _profile_pages(owned_session, config, progress)

    return await _profile_pages(session, config, progress)


async def _profile_pages(session: BrowserSession, config, progress: ProgressLogger) -> Dict[str, List[ProfilingResult]]:
    if config.is_proxy_cache:
        await warm_cache(session, config, progress)

    results: Dict[str, List[ProfilingResult]] = {page.name: [] for page in config.pages}
    total = config.count * len(config.pages)
    done = 0

    for run in range(config.count):
        for page_config in config.pages:
            await progress(f'profiling "{page_config.name}" (run {run + 1}/{config.count})')
            result = await _load_in_fresh_context(session, config, page_config)
            results[page_config.name].append(result)
            done += 1
            logger.info(f"Progress: {done}/{total} page loads")

    return results
