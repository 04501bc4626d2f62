"""Unit tests for the instrumentation window watcher."""

import pytest

from pageperf.exceptions import WatcherStateError
from pageperf.watching import InstrumentationWatcher, watch


class TestWatch:

    @pytest.mark.asyncio
    async def test_window_collects_trace_events(self, fake_page, fake_context):
        fake_page.cdp.trace_events = [
            {"name": "Paint", "ts": 10},
            {"name": "Layout", "ts": 12},
        ]

        stop = await watch(fake_page, fake_page.cdp)
        result = await stop()

        assert [event["name"] for event in result.tracing] == ["Paint", "Layout"]
        assert result.metrics == {"JSHeapUsedSize": 1024.0}
        assert result.paints["first-contentful-paint"] == 100.0
        assert result.duration >= 0

    @pytest.mark.asyncio
    async def test_start_and_end_tracing(self, fake_page, fake_context):
        stop = await watch(fake_page, fake_page.cdp)
        await stop()

        methods = fake_page.cdp.methods()
        assert methods.index("Tracing.start") < methods.index("Tracing.end")
        assert "Performance.enable" in methods

    @pytest.mark.asyncio
    async def test_listeners_removed_after_stop(self, fake_page, fake_context):
        stop = await watch(fake_page, fake_page.cdp)
        await stop()

        assert fake_page.cdp.listener_count("Tracing.dataCollected") == 0
        assert fake_page.cdp.listener_count("Tracing.tracingComplete") == 0

    @pytest.mark.asyncio
    async def test_borrowed_session_is_not_detached(self, fake_page, fake_context):
        stop = await watch(fake_page, fake_page.cdp)
        await stop()

        assert fake_page.cdp.detached == 0

    @pytest.mark.asyncio
    async def test_own_session_is_detached(self, fake_page, fake_context):
        stop = await watch(fake_page)
        await stop()

        assert fake_page.cdp.detached == 1

    @pytest.mark.asyncio
    async def test_windows_are_independent(self, fake_page, fake_context):
        fake_page.cdp.trace_events = [{"name": "Paint", "ts": 1}]
        first = await (await watch(fake_page, fake_page.cdp))()

        fake_page.cdp.trace_events = [{"name": "Paint", "ts": 2}, {"name": "Paint", "ts": 3}]
        second = await (await watch(fake_page, fake_page.cdp))()

        assert len(first.tracing) == 1
        assert len(second.tracing) == 2

    @pytest.mark.asyncio
    async def test_stop_twice_raises(self, fake_page, fake_context):
        stop = await watch(fake_page, fake_page.cdp)
        await stop()

        with pytest.raises(WatcherStateError, match="already stopped"):
            await stop()

    @pytest.mark.asyncio
    async def test_stop_without_start_raises(self, fake_page):
        watcher = InstrumentationWatcher(fake_page, fake_page.cdp)

        with pytest.raises(WatcherStateError, match="never started"):
            await watcher.stop()


class TestWatchStartFailure:
    """A window that cannot start leaves nothing attached."""

    @staticmethod
    def fail_on(session, failing_method):
        send = session.send

        async def _send(method, params=None):
            if method == failing_method:
                raise RuntimeError(f"{method} rejected")
            return await send(method, params)

        session.send = _send

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failing_method", ["Performance.enable", "Tracing.start"])
    async def test_own_session_released_when_start_fails(self, fake_page, fake_context, failing_method):
        self.fail_on(fake_page.cdp, failing_method)

        with pytest.raises(RuntimeError, match="rejected"):
            await watch(fake_page)

        assert fake_page.cdp.listener_count("Tracing.dataCollected") == 0
        assert fake_page.cdp.listener_count("Tracing.tracingComplete") == 0
        assert fake_page.cdp.detached == 1

    @pytest.mark.asyncio
    async def test_borrowed_session_kept_when_start_fails(self, fake_page, fake_context):
        self.fail_on(fake_page.cdp, "Tracing.start")

        with pytest.raises(RuntimeError):
            await watch(fake_page, fake_page.cdp)

        assert fake_page.cdp.listener_count("Tracing.tracingComplete") == 0
        assert fake_page.cdp.detached == 0
