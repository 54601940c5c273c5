"""ServiceResult and ServiceError — the contract between services and the CLI.

INVARIANT: every PreviewService operation returns a ServiceResult. The
pipeline's own ExecutionResult (``flowlab.domain.execution``) is folded
into one by ``ServiceResult.from_execution``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from flowlab.domain.execution import ExecutionError


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_execution(cls, error: ExecutionError) -> ServiceError:
        detail = {k: v for k, v in (("line", error.line), ("column", error.column)) if v is not None}
        return cls(code=error.code, message=error.message, detail=detail)


class ServiceResult(BaseModel):
    """Return type for service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"check"``).
        data: Operation-specific payload.
        warnings: Non-fatal issues, such as ignored default exports.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (telemetry span tree under ``"telemetry"``).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        code: str,
        message: str,
        *,
        data: dict[str, Any] | None = None,
        warnings: list[str] | None = None,
        **detail: Any,
    ) -> ServiceResult:
        return cls(
            ok=False,
            op=op,
            data=data or {},
            warnings=warnings or [],
            error=ServiceError(code=code, message=message, detail=detail),
        )
