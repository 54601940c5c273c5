"""Sandbox executor — run compiled text in a fresh scope and extract the component.

Each ``execute`` call builds a new namespace holding only the injected
names (``resolve``, ``module``, ``exports``, the markup runtime) and a
builtins table whose ``__import__`` goes through the capability registry.
Nothing outlives the call and no interpreter-global state is touched.

This is containment of mistakes, not a security boundary: edited code can
still reach anything reachable from the builtins it is given.
"""

from __future__ import annotations

import builtins
import logging
from collections.abc import Mapping
from types import ModuleType, SimpleNamespace
from typing import Any

from flowlab.domain.errors import CompileError, NotAComponentError, UnresolvedDependency
from flowlab.domain.execution import ExecutionResult
from flowlab.domain.source import CompiledUnit
from flowlab.runtime.registry import Resolver

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "<component>"


class SandboxExecutor:
    """Executes compiled units against one resolver and markup runtime."""

    def __init__(
        self,
        resolver: Resolver,
        runtime: Any,
        *,
        runtime_name: str = "ui",
        filename: str = DEFAULT_FILENAME,
    ) -> None:
        self.resolver = resolver
        self.runtime = runtime
        self.runtime_name = runtime_name
        self.filename = filename

    def execute(self, unit: CompiledUnit) -> ExecutionResult:
        """Compile and run *unit* once; return its component or a failure.

        ``KeyboardInterrupt`` is deliberately not caught.
        """
        try:
            code = compile(unit.executable_text, self.filename, "exec", dont_inherit=True)
        except SyntaxError as exc:
            return ExecutionResult.failure(CompileError(exc.msg, line=exc.lineno, column=exc.offset))

        module = SimpleNamespace(exports={})
        namespace = self._namespace(module)
        try:
            exec(code, namespace)  # noqa: S102
        except (Exception, SystemExit) as exc:
            logger.debug("Execution failed: %s: %s", type(exc).__name__, exc)
            return ExecutionResult.failure(exc)

        value = _extract(module.exports)
        if not callable(value):
            return ExecutionResult.failure(NotAComponentError(value))
        return ExecutionResult.success(value)

    def _namespace(self, module: SimpleNamespace) -> dict[str, Any]:
        sandbox_builtins = dict(vars(builtins))
        sandbox_builtins["__import__"] = self._import
        return {
            "__builtins__": sandbox_builtins,
            "__name__": "__component__",
            "resolve": self.resolver,
            "module": module,
            "exports": module.exports,
            self.runtime_name: self.runtime,
        }

    def _import(
        self,
        name: str,
        globals: dict[str, Any] | None = None,  # noqa: A002
        locals: dict[str, Any] | None = None,  # noqa: A002
        fromlist: tuple[str, ...] | None = (),
        level: int = 0,
    ) -> Any:
        """``__import__`` replacement that only knows registry names."""
        if level:
            raise UnresolvedDependency("." * level + name)
        value = self.resolver(name)
        if fromlist:
            wanted = [m for m in fromlist if m != "*"]
            members = dict(zip(wanted, self.resolver.named(name, *wanted), strict=True))
            if "*" in fromlist:
                members = {**_public_members(value), **members}
            return SimpleNamespace(**members)
        # `import a.b` binds the top-level name; only whole names are registered.
        if "." in name:
            raise UnresolvedDependency(name)
        return value


def _public_members(value: Any) -> dict[str, Any]:
    """What ``from name import *`` binds: ``__all__``, else every public name."""
    if isinstance(value, Mapping):
        return {k: v for k, v in value.items() if isinstance(k, str) and k.isidentifier() and not k.startswith("_")}
    names = getattr(value, "__all__", None)
    if names is None:
        names = [n for n in dir(value) if not n.startswith("_")]
    return {n: getattr(value, n) for n in names}


def _extract(exports: Any) -> Any:
    """The ``"default"`` export when present, else the exports value itself."""
    if isinstance(exports, dict):
        default = exports.get("default")
        if default is not None:
            return default
    elif isinstance(exports, ModuleType | SimpleNamespace):
        default = getattr(exports, "default", None)
        if default is not None:
            return default
    return exports
