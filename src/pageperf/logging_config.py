"""Logging configuration for the page-load profiler."""

import inspect
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Optional


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> None:
    """Configure logging for the profiler.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            defaults to PAGEPERF_LOG_LEVEL
        log_file: Optional log file path; defaults to PAGEPERF_LOG_FILE
        format_string: Optional custom format string
    """
    from pageperf.config import settings

    level = level or settings.LOG_LEVEL
    log_file = log_file or settings.LOG_FILE

    if format_string is None:
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        handlers.append(file_handler)

    logging.basicConfig(
        level=numeric_level,
        format=format_string,
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    # Set levels for noisy third-party libraries
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('playwright').setLevel(logging.WARNING)


class ProgressLogger:
    """
    Forwards profiler progress messages to a caller-supplied callback.

    Every message is also written to the standard logging module, so a
    profiler run without a callback still leaves a trace in the logs.
    The callback may be a plain function or a coroutine function.
    """

    def __init__(
        self,
        callback: Optional[Callable[[str], Any]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._callback = callback
        self._logger = logger or logging.getLogger("pageperf")

    async def __call__(self, message: str, level: int = logging.INFO) -> None:
        self._logger.log(level, message)

        if self._callback is None:
            return

        result = self._callback(message)
        if inspect.isawaitable(result):
            await result

    async def warning(self, message: str) -> None:
        await self(message, logging.WARNING)
