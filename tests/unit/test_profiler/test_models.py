"""Unit tests for result records and progress logging."""

import json
import logging

import pytest

from pageperf.exceptions import NavigationError
from pageperf.logging_config import ProgressLogger
from pageperf.models import (
    ActionResult,
    ElementTiming,
    PaintEvent,
    ProfilingResult,
    RequestSnapshot,
    WatchingResult,
)


class TestResultRecords:

    def test_watching_duration(self):
        result = WatchingResult(started_at=10.0, stopped_at=12.5)

        assert result.duration == 2.5

    def test_paint_event_from_trace(self):
        event = {"name": "Paint", "ts": 1234, "dur": 7, "args": {"data": {"nodeId": 5, "clip": [1, 2]}}}

        paint = PaintEvent.from_trace_event(event)

        assert (paint.ts, paint.duration, paint.node_id, paint.clip) == (1234, 7, 5, [1, 2])

    def test_element_timing_handles_nulls(self):
        timing = ElementTiming.from_entry({"identifier": "hero", "renderTime": None, "url": None})

        assert timing.render_time == 0.0
        assert timing.url == ""

    def test_profiling_result_is_json_serializable(self):
        watching = WatchingResult(tracing=[{"name": "Paint"}], metrics={"Nodes": 10.0})
        result = ProfilingResult(
            watching=watching,
            content="<html></html>",
            actions={"open": ActionResult(watching=WatchingResult(), content="<html>2</html>")},
            time_to_interactive=812.5,
            layers_paints={"h1": [PaintEvent(ts=1.0)]},
            elements_timings={"hero": ElementTiming(identifier="hero", render_time=300.0)},
        )

        data = json.loads(json.dumps(result.to_dict()))

        assert data["time_to_interactive"] == 812.5
        assert data["tracing_event_count"] == 1
        assert data["actions"]["open"]["content_length"] == len("<html>2</html>")
        assert data["layers_paints"]["h1"][0]["ts"] == 1.0
        assert data["elements_timings"]["hero"]["render_time"] == 300.0

    def test_navigation_error_message(self):
        snapshot = RequestSnapshot(failed=["https://a.test/x"], inflight=["https://a.test/y", "https://a.test/z"])

        error = NavigationError("https://a.test/", RuntimeError("boom"), snapshot)

        assert str(error) == (
            "boom\n\n"
            "Inflight requests:\nhttps://a.test/y\nhttps://a.test/z\n\n"
            "Failed requests:\nhttps://a.test/x"
        )


class TestProgressLogger:

    @pytest.mark.asyncio
    async def test_sync_callback(self):
        messages = []

        await ProgressLogger(messages.append)("hello")

        assert messages == ["hello"]

    @pytest.mark.asyncio
    async def test_async_callback(self):
        messages = []

        async def callback(message):
            messages.append(message)

        await ProgressLogger(callback).warning("careful")

        assert messages == ["careful"]

    @pytest.mark.asyncio
    async def test_without_callback_logs(self, caplog):
        with caplog.at_level(logging.INFO, logger="pageperf"):
            await ProgressLogger()("only logged")

        assert "only logged" in caplog.text
