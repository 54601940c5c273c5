"""Tests for the sandbox executor."""

from __future__ import annotations

from typing import Any

import pytest

from flowlab.domain.source import CompiledUnit
from flowlab.runtime import flow, ui
from flowlab.runtime.registry import CapabilityRegistry, Resolver
from flowlab.runtime.sandbox import SandboxExecutor


@pytest.fixture
def executor(stub_registry: CapabilityRegistry) -> SandboxExecutor:
    return SandboxExecutor(Resolver(stub_registry), ui)


def _run(executor: SandboxExecutor, text: str) -> Any:
    return executor.execute(CompiledUnit(executable_text=text))


class TestExtraction:
    def test_default_export(self, executor: SandboxExecutor) -> None:
        result = _run(executor, 'def W():\n    return 1\nmodule.exports["default"] = W\n')
        assert result.ok
        assert result.component() == 1

    def test_exports_replaced_by_callable(self, executor: SandboxExecutor) -> None:
        result = _run(executor, "def W():\n    return 2\nmodule.exports = W\n")
        assert result.component() == 2

    def test_nothing_exported(self, executor: SandboxExecutor) -> None:
        result = _run(executor, "x = 1\n")
        assert result.error is not None
        assert result.error.code == "NOT_A_COMPONENT"

    def test_non_callable_default(self, executor: SandboxExecutor) -> None:
        result = _run(executor, 'module.exports["default"] = 42\n')
        assert result.error is not None
        assert result.error.code == "NOT_A_COMPONENT"


class TestFailures:
    def test_runtime_error(self, executor: SandboxExecutor) -> None:
        result = _run(executor, "1 / 0\n")
        assert result.error is not None
        assert result.error.code == "RUNTIME_ERROR"
        assert result.error.message.startswith("ZeroDivisionError:")

    def test_syntax_error(self, executor: SandboxExecutor) -> None:
        result = _run(executor, "x = (\n")
        assert result.error is not None
        assert result.error.code == "COMPILE_ERROR"

    def test_system_exit_contained(self, executor: SandboxExecutor) -> None:
        result = _run(executor, "raise SystemExit(3)\n")
        assert result.error is not None
        assert result.error.code == "RUNTIME_ERROR"

    def test_unknown_resolve(self, executor: SandboxExecutor) -> None:
        result = _run(executor, 'x = resolve("nonexistent-lib")\n')
        assert result.error is not None
        assert result.error.code == "UNRESOLVED_DEPENDENCY"
        assert "nonexistent-lib" in result.error.message


class TestImportHook:
    def test_import_registry_name(self, executor: SandboxExecutor) -> None:
        result = _run(executor, "import ui\nmodule.exports = ui.create_element\n")
        assert result.component is ui.create_element

    def test_from_import_members(self, executor: SandboxExecutor) -> None:
        result = _run(executor, "from m import a, b\nmodule.exports = lambda: a + b\n")
        assert result.component() == 3

    def test_star_import_from_mapping(self, executor: SandboxExecutor) -> None:
        result = _run(executor, "from m import *\nmodule.exports = lambda: (a, b)\n")
        assert result.ok
        assert result.component() == (1, 2)

    def test_star_import_from_module(self, executor: SandboxExecutor) -> None:
        result = _run(executor, "from flow import *\nmodule.exports = lambda: Flow\n")
        assert result.ok
        assert result.component() is flow.Flow

    def test_stdlib_not_importable(self, executor: SandboxExecutor) -> None:
        result = _run(executor, "import os\n")
        assert result.error is not None
        assert result.error.message == "Cannot find module: os"

    def test_relative_import_rejected(self, executor: SandboxExecutor) -> None:
        result = _run(executor, "from . import x\n")
        assert result.error is not None
        assert result.error.code == "UNRESOLVED_DEPENDENCY"


class TestIsolation:
    def test_fresh_namespace_each_run(self, executor: SandboxExecutor) -> None:
        _run(executor, "leak = 1\nmodule.exports = lambda: 1\n")
        result = _run(executor, "module.exports = lambda: leak\n")
        with pytest.raises(NameError):
            result.component()

    def test_runtime_injected(self, executor: SandboxExecutor) -> None:
        result = _run(executor, 'module.exports = lambda: ui.create_element("div", None)\n')
        assert result.component().type == "div"
