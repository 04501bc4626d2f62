"""
Configuration for page-load profiling runs.

ProfilerConfig is a validated Pydantic model describing which pages to load
and under which conditions. Settings supplies process-wide defaults read
from environment variables (and a .env file when present).
"""
from dotenv import load_dotenv
from pathlib import Path
from typing import Any, Callable, Dict, List, Literal, Optional
import json
import os

import yaml
from pydantic import BaseModel, Field, field_validator

from pageperf.constants import (
    CACHE_REPLAY_DELAY_MS,
    DEFAULT_FIRST_EVENT,
    NAVIGATION_TIMEOUT_MS,
    PROXY_CACHE_TYPE,
    TTI_QUIET_WINDOW_MS,
    TTI_SEARCH_HORIZON_MS,
)
from pageperf.infrastructure.cache_store import CacheStore
from pageperf.infrastructure.emulation import NETWORK_PRESETS

load_dotenv()  # Loads variables from .env file


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    HEADLESS = _env_bool("PAGEPERF_HEADLESS", True)
    BROWSER_CHANNEL = os.getenv("PAGEPERF_BROWSER_CHANNEL")  # e.g. "chrome"; None = bundled Chromium
    LOG_LEVEL = os.getenv("PAGEPERF_LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("PAGEPERF_LOG_FILE")
    NAVIGATION_TIMEOUT_MS = int(os.getenv("PAGEPERF_NAVIGATION_TIMEOUT_MS", str(NAVIGATION_TIMEOUT_MS)))


settings = Settings()


class ThrottlingConfig(BaseModel):
    """Network and CPU throttling applied before navigation."""

    network: Optional[str] = Field(
        default=None,
        description="Network preset name (see NETWORK_PRESETS)"
    )

    cpu: Optional[float] = Field(
        default=None,
        description="CPU slowdown rate (1 = no throttling)",
        ge=1,
    )

    @field_validator("network")
    @classmethod
    def _known_preset(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in NETWORK_PRESETS:
            raise ValueError(
                f"Unknown network preset {value!r}; expected one of {sorted(NETWORK_PRESETS)}"
            )
        return value


class CacheConfig(BaseModel):
    """Proxy cache policy for POST requests."""

    type: Literal["proxy"] = Field(
        default=PROXY_CACHE_TYPE,
        description="Caching policy; only 'proxy' replay is supported"
    )

    post_data_handler: Optional[Callable[[str, Optional[str]], Optional[str]]] = Field(
        default=None,
        description="(url, post_data) -> normalized post data used in the cache key"
    )

    response_data_handler: Optional[Callable[[str, Optional[str], str], str]] = Field(
        default=None,
        description="(url, raw_post_data, cached_body) -> body served to the page"
    )


class RequestsConfig(BaseModel):
    """Request filtering."""

    ignore: Optional[Callable[[str], bool]] = Field(
        default=None,
        description="url -> True to abort the request"
    )


class NamedAction(BaseModel):
    """One timed interaction step executed after the page has loaded."""

    name: str = Field(description="Action name, unique within a page")

    action: Callable[..., Any] = Field(
        description="(page, named_pages, helpers) -> None or awaitable"
    )

    layers: Optional[List[str]] = Field(
        default=None,
        description="CSS selectors whose paints are tracked during this action"
    )


class PageConfig(BaseModel):
    """A page to profile."""

    name: str
    url: str
    layers: List[str] = Field(default_factory=list)
    actions: List[NamedAction] = Field(default_factory=list)
    cookies: Optional[List[Dict[str, Any]]] = None
    throttling: Optional[ThrottlingConfig] = None


class ProfilerConfig(BaseModel):
    """
    Configuration for a profiling session.

    All fields are validated by Pydantic. Callables (action functions, cache
    handlers, the ignore predicate and the logger) are carried as-is.
    """

    pages: List[PageConfig] = Field(default_factory=list)

    platform: Literal["desktop", "mobile"] = Field(
        default="desktop",
        description="Viewport/device emulation profile"
    )

    cookies: Optional[List[Dict[str, Any]]] = Field(
        default=None,
        description="Cookies set on every page before navigation"
    )

    cache: Optional[CacheConfig] = None

    requests: Optional[RequestsConfig] = None

    throttling: Optional[ThrottlingConfig] = None

    logger: Optional[Callable[[str], Any]] = Field(
        default=None,
        description="Progress callback; may be sync or async"
    )

    first_event: str = Field(
        default=DEFAULT_FIRST_EVENT,
        description="Performance entry name used as the lower bound for TTI"
    )

    count: int = Field(
        default=1,
        description="Number of measured loads per page",
        ge=1,
    )

    navigation_timeout_ms: int = Field(
        default_factory=lambda: settings.NAVIGATION_TIMEOUT_MS,
        description="Bound on load + network idle during navigation",
        ge=1000,
    )

    cache_replay_delay_ms: int = Field(
        default=CACHE_REPLAY_DELAY_MS,
        description="Delay before a cached POST response is delivered",
        ge=0,
    )

    tti_quiet_window_ms: float = Field(default=TTI_QUIET_WINDOW_MS, gt=0)

    tti_horizon_ms: float = Field(default=TTI_SEARCH_HORIZON_MS, gt=0)

    cache_store: CacheStore = Field(
        default_factory=CacheStore,
        description="Response store used by the proxy cache"
    )

    class Config:
        """Pydantic model configuration."""
        arbitrary_types_allowed = True
        validate_assignment = True

    @property
    def is_proxy_cache(self) -> bool:
        return self.cache is not None and self.cache.type == PROXY_CACHE_TYPE

    def named_pages(self) -> Dict[str, str]:
        """Map of page name to URL."""
        return {page.name: page.url for page in self.pages}

    def cookies_for(self, page_config: PageConfig) -> List[Dict[str, Any]]:
        """Global cookies followed by the page's own cookies."""
        return list(self.cookies or []) + list(page_config.cookies or [])

    def throttling_for(self, page_config: PageConfig) -> Optional[ThrottlingConfig]:
        """Page-level throttling overrides the global setting."""
        return page_config.throttling or self.throttling

    @classmethod
    def from_file(cls, path: str, **overrides: Any) -> "ProfilerConfig":
        """Load a configuration from a JSON or YAML file.

        Only plain data can be loaded this way; callables (actions, cache
        handlers, the ignore predicate, the logger) are passed as overrides.

        Args:
            path: Path to a .json, .yaml or .yml file
            **overrides: Extra fields that take precedence over the file

        Returns:
            ProfilerConfig built from the file contents
        """
        file_path = Path(path)

        with open(file_path, 'r') as f:
            if file_path.suffix in ('.yaml', '.yml'):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        data.update(overrides)
        return cls(**data)
