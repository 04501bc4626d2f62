"""Shared fixtures: in-memory stand-ins for Playwright pages, routes and CDP sessions."""

import inspect
import json
from typing import Any, Callable, Dict, List, Optional

import pytest

from pageperf.actions import MARK_SCRIPT
from pageperf.hero_elements import (
    DRAIN_ELEMENT_TIMINGS_SCRIPT,
    ELEMENT_TIMING_HANDLER_SCRIPT,
    ELEMENT_TIMING_PRESENT_SCRIPT,
)
from pageperf.tti import TTI_STATE_SCRIPT
from pageperf.watching import MARKS_SCRIPT, PAINT_TIMINGS_SCRIPT


class FakeEmitter:
    """Minimal event emitter with Playwright's on/remove_listener surface."""

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {}

    def on(self, event: str, handler: Callable) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Callable) -> None:
        self._handlers.get(event, []).remove(handler)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    async def emit(self, event: str, *args) -> None:
        for handler in list(self._handlers.get(event, [])):
            result = handler(*args)
            if inspect.isawaitable(result):
                await result


class FakeResponse:
    def __init__(self, body: str, headers: Optional[Dict[str, str]] = None, status: int = 200):
        self.body = body
        self.headers = headers or {"content-type": "application/json"}
        self.status = status

    async def text(self) -> str:
        return self.body


class FakeRequest:
    """Request double; post_data decodes strictly like Playwright does."""

    def __init__(self, url: str, method: str = "GET", post_data=None, hang: bool = False):
        self.url = url
        self.method = method
        if isinstance(post_data, str):
            post_data = post_data.encode()
        self._body: Optional[bytes] = post_data
        self.hang = hang
        self.served: Optional[FakeResponse] = None

    @property
    def post_data(self) -> Optional[str]:
        return self._body.decode() if self._body is not None else None

    @property
    def post_data_buffer(self) -> Optional[bytes]:
        return self._body

    async def response(self) -> Optional[FakeResponse]:
        return self.served


class FakeServer:
    """Counts network calls and answers each with a distinct body."""

    def __init__(self):
        self.calls: List[FakeRequest] = []
        self.fail_urls: set = set()

    def handle(self, request: FakeRequest) -> FakeResponse:
        self.calls.append(request)
        body = json.dumps({"call": len(self.calls), "url": request.url})
        return FakeResponse(body=body)


class FakeRoute:
    def __init__(self, request: FakeRequest, server: FakeServer):
        self.request = request
        self.server = server
        self.outcome: Optional[str] = None
        self.fulfilled_with: Optional[Dict[str, Any]] = None

    async def abort(self) -> None:
        self.outcome = "aborted"

    async def continue_(self) -> None:
        self.outcome = "continued"
        if self.request.hang:
            return
        self.request.served = self.server.handle(self.request)

    async def fulfill(self, status=200, headers=None, body="", content_type=None) -> None:
        self.outcome = "fulfilled"
        self.fulfilled_with = {
            "status": status,
            "headers": headers,
            "body": body,
            "content_type": content_type,
        }
        self.request.served = FakeResponse(body=body, headers=headers, status=status)


class FakeCDPSession(FakeEmitter):
    """Answers the DevTools commands the profiler sends."""

    def __init__(self):
        super().__init__()
        self.sent: List[tuple] = []
        self.trace_events: List[Dict[str, Any]] = []
        self.selector_nodes: Dict[str, List[int]] = {}
        self.backend_ids: Dict[int, int] = {}
        self.detached = 0

    def methods(self) -> List[str]:
        return [method for method, _ in self.sent]

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None):
        self.sent.append((method, params))

        if method == "Tracing.end":
            await self.emit("Tracing.dataCollected", {"value": list(self.trace_events)})
            await self.emit("Tracing.tracingComplete", {})
            return {}
        if method == "Performance.getMetrics":
            return {"metrics": [{"name": "JSHeapUsedSize", "value": 1024.0}]}
        if method == "DOM.getDocument":
            return {"root": {"nodeId": 1}}
        if method == "DOM.querySelectorAll":
            return {"nodeIds": self.selector_nodes.get(params["selector"], [])}
        if method == "DOM.describeNode":
            return {"node": {"backendNodeId": self.backend_ids[params["nodeId"]]}}
        return {}

    async def detach(self) -> None:
        self.detached += 1


class FakePage(FakeEmitter):
    """
    Page double.

    goto() replays `planned_requests` through the installed route handler
    and emits request/requestfinished/requestfailed like Playwright does.
    """

    def __init__(self, server: FakeServer):
        super().__init__()
        self.server = server
        self.cdp = FakeCDPSession()
        self.context = None
        self.html = "<html><body><h1 data-hero='title'>Hello</h1></body></html>"
        self.planned_requests: List[Callable[[], FakeRequest]] = []
        self.goto_error: Optional[Exception] = None
        self.networkidle_error: Optional[Exception] = None
        self.route_handler: Optional[Callable] = None
        self.routes: List[FakeRoute] = []
        self.init_scripts: List[str] = []
        self.viewport: Optional[Dict[str, int]] = None
        self.closed = False
        self.clock = 0.0
        self.marks: List[tuple] = []
        self.paints = {"first-paint": 90.0, "first-contentful-paint": 100.0}
        self.element_timings: List[Dict[str, Any]] = []
        self.tti_state = {
            "now": 20000.0,
            "firstEvent": 100.0,
            "loadEventEnd": 250.0,
            "longTasks": [],
            "network": [],
        }
        self.events: List[str] = []

    async def route(self, pattern: str, handler: Callable) -> None:
        self.route_handler = handler

    async def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    async def set_viewport_size(self, viewport: Dict[str, int]) -> None:
        self.viewport = viewport

    async def issue(self, request: FakeRequest) -> FakeRoute:
        await self.emit("request", request)
        route = FakeRoute(request, self.server)
        self.routes.append(route)

        if self.route_handler is not None:
            await self.route_handler(route)
        else:
            await route.continue_()

        if route.outcome == "aborted" or request.url in self.server.fail_urls:
            await self.emit("requestfailed", request)
        elif request.served is not None:
            await self.emit("requestfinished", request)
        return route

    async def goto(self, url: str, wait_until=None, timeout=None):
        self.events.append("goto")
        self.url = url
        for make_request in self.planned_requests:
            await self.issue(make_request())
        if self.goto_error is not None:
            raise self.goto_error
        return None

    async def wait_for_load_state(self, state: str = "load", timeout=None) -> None:
        if self.networkidle_error is not None:
            raise self.networkidle_error

    async def wait_for_function(self, expression: str, arg=None, timeout=None) -> None:
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        if not any(e.get("identifier") == arg for e in self.element_timings):
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {arg}")

    async def evaluate(self, expression: str, arg=None):
        if expression == MARK_SCRIPT:
            self.clock += 1.0
            self.marks.append((arg, self.clock))
            return None
        if expression == PAINT_TIMINGS_SCRIPT:
            return dict(self.paints)
        if expression == MARKS_SCRIPT:
            return [{"name": name, "startTime": ts} for name, ts in self.marks]
        if expression == TTI_STATE_SCRIPT:
            return dict(self.tti_state)
        if expression == DRAIN_ELEMENT_TIMINGS_SCRIPT:
            entries, self.element_timings = self.element_timings, []
            return entries
        if expression == ELEMENT_TIMING_HANDLER_SCRIPT:
            return True
        if expression == ELEMENT_TIMING_PRESENT_SCRIPT:
            return any(e.get("identifier") == arg for e in self.element_timings)
        raise AssertionError(f"Unexpected script evaluated: {expression[:60]}")

    async def content(self) -> str:
        return self.html

    async def close(self) -> None:
        self.events.append("close")
        self.closed = True


class FakeContext:
    def __init__(self, page: FakePage):
        self.page = page
        page.context = self
        self.pages_opened = 0

    async def new_page(self) -> FakePage:
        self.pages_opened += 1
        return self.page

    async def new_cdp_session(self, page: FakePage) -> FakeCDPSession:
        return page.cdp


@pytest.fixture
def fake_server():
    return FakeServer()


@pytest.fixture
def fake_page(fake_server):
    return FakePage(fake_server)


@pytest.fixture
def fake_context(fake_page):
    return FakeContext(fake_page)


@pytest.fixture
def make_request():
    """Factory for fake requests: make_request(url, method='GET', post_data=None, hang=False)."""
    return FakeRequest


@pytest.fixture
def make_route(fake_server):
    """Factory wrapping a fake request in a route bound to the fake server."""
    def _make(request: FakeRequest) -> FakeRoute:
        return FakeRoute(request, fake_server)
    return _make


@pytest.fixture
def make_response():
    return FakeResponse


@pytest.fixture
def make_cdp_session():
    return FakeCDPSession
