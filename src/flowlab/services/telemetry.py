"""Stage timings for ``--verbose``.

A ``@traced`` service call opens a span; pipeline stages (``rewrite``,
``markup``, ``execute``, ``render``) and nested traced calls open child
spans under it. Only the outermost traced call attaches the finished tree
to ``ServiceResult.meta["telemetry"]``. With tracing off, ``trace_span``
yields None and ``@traced`` is a plain call.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

import structlog

from flowlab.services.result import ServiceResult

log = structlog.get_logger("flowlab.telemetry")

_tracing: ContextVar[bool] = ContextVar("_tracing", default=False)
_active: ContextVar[Span | None] = ContextVar("_active", default=None)


@dataclass
class Span:
    """One timed stage and the stages run inside it."""

    name: str
    started: float = field(default_factory=time.perf_counter)
    elapsed_ms: float | None = None
    annotations: dict[str, Any] = field(default_factory=dict)
    children: list[Span] = field(default_factory=list)

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def finish(self) -> None:
        self.elapsed_ms = (time.perf_counter() - self.started) * 1000

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "duration_ms": round(self.elapsed_ms or 0.0, 2)}
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data


@contextmanager
def _opened(span: Span, parent: Span | None) -> Generator[Span]:
    if parent is not None:
        parent.children.append(span)
    token = _active.set(span)
    try:
        yield span
    finally:
        span.finish()
        _active.reset(token)


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Time one stage under the running traced call, if there is one."""
    parent = _active.get() if _tracing.get() else None
    if parent is None:
        yield None
        return
    with _opened(Span(name), parent) as span:
        yield span


def traced(func: Callable[..., Any]) -> Callable[..., Any]:
    """Time a service method; the outermost call gets the span tree in its meta."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if not _tracing.get():
            return func(*args, **kwargs)

        parent = _active.get()
        with _opened(Span(func.__qualname__), parent) as span:
            result = func(*args, **kwargs)
        log.debug("span.complete", span_name=span.name, duration_ms=round(span.elapsed_ms or 0.0, 2))

        if parent is None and isinstance(result, ServiceResult):
            meta = {**(result.meta or {}), "telemetry": span.to_dict()}
            result = result.model_copy(update={"meta": meta})
        return result

    return wrapper


def enable_telemetry(enabled: bool = True) -> None:
    """Switch stage timing on (AppContext does this under --verbose) or off."""
    _tracing.set(enabled)
