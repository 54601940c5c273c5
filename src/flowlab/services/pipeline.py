"""CompilePipeline — rewrite, compile markup, execute.

``run`` never raises for anything the edited text can cause: each stage's
failure is mapped onto an ExecutionResult failure. Only
``KeyboardInterrupt`` (and other non-Exception signals) propagate.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from flowlab.domain.declarations import rewrite_declarations
from flowlab.domain.errors import CompileError, PipelineError
from flowlab.domain.execution import ExecutionResult
from flowlab.domain.markup import append_default_export, compile_markup
from flowlab.domain.source import CompiledUnit
from flowlab.runtime.registry import CapabilityRegistry, Resolver, build_registry
from flowlab.runtime.sandbox import SandboxExecutor
from flowlab.services.telemetry import trace_span

if TYPE_CHECKING:
    from flowlab.config.models import CompilerConfig

log = structlog.get_logger(__name__)


class CompilePipeline:
    """One configured transform-and-execute chain over a fixed registry."""

    def __init__(
        self,
        registry: CapabilityRegistry | None = None,
        compiler: CompilerConfig | None = None,
    ) -> None:
        from flowlab.config.models import CompilerConfig

        self.registry = registry if registry is not None else build_registry()
        self.config = compiler or CompilerConfig()
        self.options = self.config.markup_options()
        runtime = self.registry.get(self.config.runtime_name)
        if runtime is None:
            from flowlab.runtime import ui

            runtime = ui
        self.executor = SandboxExecutor(
            Resolver(self.registry),
            runtime,
            runtime_name=self.config.runtime_name,
            filename=self.config.filename,
        )
        self.last_unit: CompiledUnit | None = None

    def compile(self, text: str) -> CompiledUnit:
        """Rewrite declarations and compile markup; raises PipelineError."""
        with trace_span("rewrite") as span:
            rewritten = rewrite_declarations(text, resource_extensions=self.config.resource_extensions)
            if span:
                span.annotate("default_binding", rewritten.default_binding)
        with trace_span("markup"):
            executable = compile_markup(rewritten.text, filename=self.config.filename, options=self.options)

        if rewritten.default_binding is not None:
            executable = append_default_export(executable, rewritten.default_binding)
        return CompiledUnit(
            executable_text=executable,
            default_binding=rewritten.default_binding,
            warnings=tuple(str(w) for w in rewritten.warnings),
        )

    def run(self, text: str) -> ExecutionResult:
        """Compile and execute *text*; always returns an ExecutionResult."""
        self.last_unit = None
        try:
            unit = self.compile(text)
        except PipelineError as exc:
            log.info("pipeline.compile_failed", code=exc.code, error=str(exc))
            return ExecutionResult.failure(exc)
        except Exception as exc:
            log.warning("pipeline.compile_crashed", error=repr(exc), exc_info=True)
            return ExecutionResult.failure(CompileError(f"{type(exc).__name__}: {exc}"))

        self.last_unit = unit
        with trace_span("execute") as span:
            result = self.executor.execute(unit)
            if span:
                span.annotate("kind", result.kind)

        if result.error is not None:
            log.info("pipeline.execute_failed", code=result.error.code, error=result.error.message)
        else:
            log.debug("pipeline.ok", default_binding=unit.default_binding, warnings=len(unit.warnings))
        return result

    def describe(self) -> dict[str, Any]:
        return {
            "runtime_name": self.config.runtime_name,
            "capabilities": self.registry.names(),
        }
