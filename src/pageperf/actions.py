"""
Action Runner.

Executes a page's named actions one after another once the page has
loaded. Each action runs inside its own instrumentation window, bracketed
by ACTION_START/ACTION_END performance marks, and yields an ActionResult.
Exceptions raised by an action are not caught here.
"""

import inspect
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Mapping

from pageperf.constants import ACTION_END, ACTION_START
from pageperf.hero_elements import (
    get_elements_timings,
    get_paint_events_by_selectors,
    wait_for_element_timing,
)
from pageperf.logging_config import ProgressLogger
from pageperf.models import ActionResult
from pageperf.watching import watch

logger = logging.getLogger(__name__)


MARK_SCRIPT = "(name) => window.performance.mark(name)"


@dataclass(frozen=True)
class ActionHelpers:
    """Helpers passed to every action."""
    wait_for_element_timing: Callable[..., Awaitable[None]] = wait_for_element_timing


async def mark(page, name: str) -> None:
    """Write a mark into the page's performance timeline."""
    await page.evaluate(MARK_SCRIPT, name)


async def run_action(action: Callable[..., Any], page, named_pages: Mapping[str, str], helpers: ActionHelpers) -> Any:
    """Invoke a sync or async action and wait for it to finish."""
    outcome = action(page, named_pages, helpers)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return outcome


async def profile_actions(page, client, config, page_config, progress: ProgressLogger = None) -> Dict[str, ActionResult]:
    """
    Run the page's actions sequentially and measure each one.

    Args:
        page: Loaded Playwright page
        client: CDP session attached to the page
        config: ProfilerConfig (provides the name -> url page map)
        page_config: PageConfig whose actions are executed
        progress: Progress logger

    Returns:
        Mapping action name -> ActionResult in execution order
    """
    progress = progress or ProgressLogger(config.logger)
    results: Dict[str, ActionResult] = {}

    if not page_config.actions:
        return results

    named_pages = MappingProxyType(config.named_pages())
    helpers = ActionHelpers()

    for named_action in page_config.actions:
        await progress(f'action "{named_action.name}" started')

        stop_watching = await watch(page)

        await mark(page, ACTION_START)
        await run_action(named_action.action, page, named_pages, helpers)
        await mark(page, ACTION_END)

        content = await page.content()

        watching_result = await stop_watching()

        layers_paints = await get_paint_events_by_selectors(
            client, watching_result.tracing, named_action.layers
        )
        elements_timings = await get_elements_timings(page)

        results[named_action.name] = ActionResult(
            watching=watching_result,
            content=content,
            layers_paints=layers_paints,
            elements_timings=elements_timings,
        )

        await progress(f'action "{named_action.name}" completed')

    return results
