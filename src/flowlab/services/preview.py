"""PreviewService — the CLI-facing operations over the compile pipeline.

Every public method returns a ServiceResult; pipeline failures become
``ok=False`` results carrying the failure code, never exceptions.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from types import ModuleType
from typing import Any

from flowlab import examples
from flowlab.domain.execution import ExecutionResult
from flowlab.runtime import ui
from flowlab.services.pipeline import CompilePipeline
from flowlab.services.result import ServiceError, ServiceResult
from flowlab.services.telemetry import trace_span, traced

NOT_FOUND = "NOT_FOUND"
RENDER_ERROR = "RENDER_ERROR"


def capability_kind(value: Any) -> str:
    if isinstance(value, ModuleType):
        return "module"
    if inspect.isclass(value):
        return "class"
    if callable(value):
        return "callable"
    if isinstance(value, dict):
        return "mapping"
    return type(value).__name__


class PreviewService:
    """Check, render and describe component sources."""

    def __init__(self, pipeline: CompilePipeline, *, warnings: list[str] | None = None) -> None:
        self._pipeline = pipeline
        # Startup warnings (e.g. from plugins) are reported with every result.
        self._startup_warnings = list(warnings or [])

    @property
    def pipeline(self) -> CompilePipeline:
        return self._pipeline

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    @traced
    def check(self, text: str, *, source: str = "<text>", show_code: bool = False) -> ServiceResult:
        """Compile and execute *text*; report the component or the failure."""
        result = self._pipeline.run(text)
        return self._check_result("check", result, source=source, show_code=show_code)

    @traced
    def render(self, text: str, *, source: str = "<text>", props: dict[str, Any] | None = None) -> ServiceResult:
        """Compile, execute and render *text* to an element tree."""
        result = self._pipeline.run(text)
        if result.component is None:
            return self._check_result("render", result, source=source)
        return self._render_component("render", result.component, source=source, props=props)

    # ------------------------------------------------------------------
    # Examples
    # ------------------------------------------------------------------

    @traced
    def list_examples(self) -> ServiceResult:
        items = [e.model_dump(exclude={"filename"}) for e in examples.list_examples()]
        return ServiceResult(ok=True, op="list_examples", data={"examples": items, "count": len(items)})

    @traced
    def show_example(self, slug: str) -> ServiceResult:
        example = examples.get_example(slug)
        if example is None:
            return self._not_found("show_example", slug)
        data = {**example.model_dump(), "source": example.load_source()}
        return ServiceResult(ok=True, op="show_example", data=data)

    @traced
    def check_example(self, slug: str, *, show_code: bool = False) -> ServiceResult:
        example = examples.get_example(slug)
        if example is None:
            return self._not_found("check", slug)
        return self.check(example.load_source(), source=slug, show_code=show_code)

    @traced
    def render_example(self, slug: str) -> ServiceResult:
        example = examples.get_example(slug)
        if example is None:
            return self._not_found("render_example", slug)
        result = self._pipeline.run(example.load_source())
        if result.component is None:
            return self._check_result("render_example", result, source=slug)
        return self._render_component("render_example", result.component, source=slug)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    @traced
    def capabilities(self) -> ServiceResult:
        registry = self._pipeline.registry
        items = [{"name": name, "kind": capability_kind(registry[name])} for name in registry.names()]
        return ServiceResult(
            ok=True,
            op="capabilities",
            data={
                "capabilities": items,
                "count": len(items),
                "runtime_name": self._pipeline.describe()["runtime_name"],
            },
            warnings=list(self._startup_warnings),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_result(
        self,
        op: str,
        result: ExecutionResult,
        *,
        source: str,
        show_code: bool = False,
    ) -> ServiceResult:
        unit = self._pipeline.last_unit
        warnings = [*self._startup_warnings, *(unit.warnings if unit else ())]
        data: dict[str, Any] = {"source": source}
        if unit is not None:
            data["default_binding"] = unit.default_binding
            if show_code:
                data["code"] = unit.executable_text

        if result.error is not None:
            error = ServiceError.from_execution(result.error)
            return ServiceResult(ok=False, op=op, data=data, warnings=warnings, error=error)

        data["component"] = _component_name(result.component)
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    def _render_component(
        self,
        op: str,
        component: Callable[..., Any],
        *,
        source: str,
        props: dict[str, Any] | None = None,
    ) -> ServiceResult:
        with trace_span("render") as span:
            try:
                tree = ui.render(component, **(props or {}))
            except Exception as exc:
                return ServiceResult.failure(
                    op,
                    RENDER_ERROR,
                    f"{type(exc).__name__}: {exc}",
                    data={"source": source},
                    warnings=list(self._startup_warnings),
                )
            if span:
                span.annotate("component", _component_name(component))
        return ServiceResult(
            ok=True,
            op=op,
            data={"source": source, "component": _component_name(component), "tree": ui.to_data(tree)},
            warnings=list(self._startup_warnings),
        )

    def _not_found(self, op: str, slug: str) -> ServiceResult:
        known = ", ".join(e.slug for e in examples.list_examples())
        return ServiceResult.failure(op, NOT_FOUND, f"No example named {slug!r} (known: {known})", slug=slug)


def _component_name(component: Any) -> str:
    return getattr(component, "__qualname__", None) or getattr(component, "__name__", None) or repr(component)
