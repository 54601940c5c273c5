"""ExecutionResult — outcome of one compile-and-execute attempt.

INVARIANT: exactly one of ``component`` / ``error`` is set. Construct
through ``ExecutionResult.success`` and ``ExecutionResult.failure``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, model_validator

from flowlab.domain.errors import PipelineError

RUNTIME_ERROR = "RUNTIME_ERROR"


class ExecutionError(BaseModel):
    """Structured failure of a pipeline stage."""

    model_config = {"frozen": True}

    code: str
    message: str
    line: int | None = None
    column: int | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> ExecutionError:
        """Map an exception onto a failure record.

        Pipeline errors keep their code and position; anything else is a
        runtime error rendered as ``"<Type>: <message>"``.
        """
        if isinstance(exc, PipelineError):
            return cls(code=exc.code, message=str(exc), line=exc.line, column=exc.column)
        return cls(code=RUNTIME_ERROR, message=f"{type(exc).__name__}: {exc}")


class ExecutionResult(BaseModel):
    """Tagged union of a renderable component or an ExecutionError."""

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    component: Callable[..., Any] | None = None
    error: ExecutionError | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> ExecutionResult:
        if (self.component is None) == (self.error is None):
            raise ValueError("ExecutionResult needs exactly one of component or error")
        return self

    @property
    def kind(self) -> Literal["component", "error"]:
        return "component" if self.component is not None else "error"

    @property
    def ok(self) -> bool:
        return self.component is not None

    @classmethod
    def success(cls, component: Callable[..., Any]) -> ExecutionResult:
        return cls(component=component)

    @classmethod
    def failure(cls, error: ExecutionError | BaseException) -> ExecutionResult:
        if isinstance(error, BaseException):
            error = ExecutionError.from_exception(error)
        return cls(error=error)
