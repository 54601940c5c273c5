"""Pipeline error taxonomy.

Every stage raises one of these; the compile pipeline maps them onto
ExecutionResult failures by ``code``. Nothing here ever reaches the
display surface as an exception.
"""

from __future__ import annotations

from dataclasses import dataclass


class PipelineError(Exception):
    """Base class for failures raised by a pipeline stage."""

    code = "PIPELINE_ERROR"

    def __init__(self, message: str, *, line: int | None = None, column: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        if self.column is None:
            return f"{self.message} (line {self.line})"
        return f"{self.message} (line {self.line}, column {self.column})"


class CompileError(PipelineError):
    """Malformed markup or malformed surrounding syntax."""

    code = "COMPILE_ERROR"


class DeclarationSyntaxError(CompileError):
    """An import/export declaration that does not complete its grammar."""


class UnresolvedDependency(PipelineError, ImportError):
    """Executed text asked for a module name the registry does not expose."""

    code = "UNRESOLVED_DEPENDENCY"

    def __init__(self, name: str, member: str | None = None) -> None:
        if member is None:
            message = f"Cannot find module: {name}"
        else:
            message = f"Cannot find export {member!r} in module: {name}"
        super().__init__(message)
        self.name = name
        self.member = member


class NotAComponentError(PipelineError):
    """Execution succeeded but the exported value cannot be rendered."""

    code = "NOT_A_COMPONENT"

    def __init__(self, value: object) -> None:
        super().__init__(
            "produced value is not a component: exported value must be callable "
            f"(got {type(value).__name__})"
        )


class BaselineError(PipelineError):
    """The original example source failed, so there is nothing to fall back to."""

    code = "BASELINE_ERROR"


@dataclass(frozen=True)
class RewriteAmbiguity:
    """A default export that lost to an earlier one."""

    binding: str | None  # identifier of the ignored export, None for expressions
    line: int
    kept: str

    def __str__(self) -> str:
        what = repr(self.binding) if self.binding else "expression"
        return f"line {self.line}: default export {what} ignored, {self.kept!r} already exported"
