"""Result records produced by a page-load profiling run."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class RequestSnapshot:
    """Failed and in-flight request URLs, in observation order."""
    failed: List[str] = field(default_factory=list)
    inflight: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"failed": list(self.failed), "inflight": list(self.inflight)}


@dataclass
class LongTaskEntry:
    """Long task observed by the page-level observer."""
    start: float
    duration: float

    @property
    def end(self) -> float:
        return self.start + self.duration


@dataclass
class NetworkSpan:
    """Network request lifetime in page time (ms)."""
    start: float
    end: float


@dataclass
class PaintEvent:
    """Paint trace event attributed to a hero element."""
    ts: float  # Trace timestamp (microseconds)
    duration: float = 0.0  # Microseconds
    node_id: Optional[int] = None
    clip: List[float] = field(default_factory=list)

    @classmethod
    def from_trace_event(cls, event: Dict[str, Any]) -> "PaintEvent":
        data = event.get("args", {}).get("data", {})
        return cls(
            ts=event.get("ts", 0),
            duration=event.get("dur", 0),
            node_id=data.get("nodeId"),
            clip=list(data.get("clip", [])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ts": self.ts,
            "duration": self.duration,
            "node_id": self.node_id,
            "clip": self.clip,
        }


@dataclass
class ElementTiming:
    """Element Timing API entry for an element carrying `elementtiming`."""
    identifier: str
    render_time: float = 0.0
    load_time: float = 0.0
    start_time: float = 0.0
    url: str = ""
    natural_width: int = 0
    natural_height: int = 0

    @classmethod
    def from_entry(cls, entry: Dict[str, Any]) -> "ElementTiming":
        return cls(
            identifier=entry.get("identifier", ""),
            render_time=entry.get("renderTime") or 0.0,
            load_time=entry.get("loadTime") or 0.0,
            start_time=entry.get("startTime") or 0.0,
            url=entry.get("url") or "",
            natural_width=entry.get("naturalWidth") or 0,
            natural_height=entry.get("naturalHeight") or 0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "render_time": self.render_time,
            "load_time": self.load_time,
            "start_time": self.start_time,
            "url": self.url,
            "natural_width": self.natural_width,
            "natural_height": self.natural_height,
        }


@dataclass
class WatchingResult:
    """
    Instrumentation signals captured inside one watcher window.

    `tracing` holds the raw Chrome trace events collected between the
    watch() call and its stop(); the remaining fields are read from the
    page when the window closes.
    """
    tracing: List[Dict[str, Any]] = field(default_factory=list)
    metrics: Dict[str, float] = field(default_factory=dict)
    paints: Dict[str, float] = field(default_factory=dict)
    marks: List[Dict[str, Any]] = field(default_factory=list)
    started_at: float = 0.0
    stopped_at: float = 0.0

    @property
    def duration(self) -> float:
        """Window length in seconds."""
        return max(0.0, self.stopped_at - self.started_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tracing_event_count": len(self.tracing),
            "metrics": dict(self.metrics),
            "paints": dict(self.paints),
            "marks": list(self.marks),
            "duration": self.duration,
        }


def _paints_to_dict(layers_paints: Dict[str, List[PaintEvent]]) -> Dict[str, Any]:
    return {
        selector: [paint.to_dict() for paint in paints]
        for selector, paints in layers_paints.items()
    }


def _timings_to_dict(elements_timings: Dict[str, ElementTiming]) -> Dict[str, Any]:
    return {
        identifier: timing.to_dict()
        for identifier, timing in elements_timings.items()
    }


@dataclass
class ActionResult:
    """Measurements for one named action."""
    watching: WatchingResult
    content: str = ""
    layers_paints: Dict[str, List[PaintEvent]] = field(default_factory=dict)
    elements_timings: Dict[str, ElementTiming] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.watching.to_dict(),
            "content_length": len(self.content),
            "layers_paints": _paints_to_dict(self.layers_paints),
            "elements_timings": _timings_to_dict(self.elements_timings),
        }


@dataclass
class ProfilingResult:
    """
    Complete measurement for one page load.

    Produced only when navigation succeeded and every action completed;
    a failed load raises instead of returning a partial result.
    """
    watching: WatchingResult
    content: str = ""
    actions: Dict[str, ActionResult] = field(default_factory=dict)
    time_to_interactive: Optional[float] = None
    layers_paints: Dict[str, List[PaintEvent]] = field(default_factory=dict)
    elements_timings: Dict[str, ElementTiming] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            **self.watching.to_dict(),
            "content_length": len(self.content),
            "actions": {name: action.to_dict() for name, action in self.actions.items()},
            "time_to_interactive": self.time_to_interactive,
            "layers_paints": _paints_to_dict(self.layers_paints),
            "elements_timings": _timings_to_dict(self.elements_timings),
        }
