"""Timing of refresh cycles.

Each refresh runs inside trace_context, which logs entry and exit at debug
level and adds the elapsed time to the collector of the current context, if
one is installed with get_trace_collector.
"""

from collections import defaultdict
import contextvars
from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
from time import perf_counter
from typing import Generator

__all__ = [
    "TraceCollector",
    "get_trace_collector",
    "trace_context",
]

_LOGGER = logging.getLogger(__name__)


@dataclass
class TraceCollector:
    """Accumulated seconds and call counts per trace label."""

    timings: dict[str, float] = field(default_factory=lambda: defaultdict(float))
    counts: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def add(self, label: str, duration: float) -> None:
        self.timings[label] += duration
        self.counts[label] += 1


_trace: contextvars.ContextVar[list[str]] = contextvars.ContextVar("trace")
_collector: contextvars.ContextVar[TraceCollector | None] = contextvars.ContextVar(
    "trace_collector", default=None
)


@contextmanager
def get_trace_collector() -> Generator[TraceCollector, None, None]:
    """Collect timings of traces run within the context."""
    collector = TraceCollector()
    token = _collector.set(collector)
    try:
        yield collector
    finally:
        _collector.reset(token)


@contextmanager
def trace_context(name: str) -> Generator[None, None, None]:
    """Time a block of work, nested labels are joined with ``>``."""
    stack = _trace.get([])
    token = _trace.set(stack + [name])
    label = " > ".join(stack + [name])
    start = perf_counter()
    _LOGGER.debug("[Trace] > %s", label)
    try:
        yield
    finally:
        elapsed = perf_counter() - start
        _trace.reset(token)
        if (collector := _collector.get()) is not None:
            collector.add(label, elapsed)
        _LOGGER.debug("[Trace] < %s (%0.3fs)", label, elapsed)
