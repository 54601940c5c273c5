"""Tests for CompilePipeline — rewrite, markup, execute."""

from __future__ import annotations

from typing import Any

import pytest

from flowlab.config.models import CompilerConfig
from flowlab.runtime.registry import CapabilityRegistry, build_registry
from flowlab.runtime.ui import render, to_data
from flowlab.services import pipeline as pipeline_module
from flowlab.services.pipeline import CompilePipeline
from tests.conftest import MINIMAL_SOURCE, run_ok


@pytest.fixture
def stub_pipeline(stub_registry: CapabilityRegistry) -> CompilePipeline:
    return CompilePipeline(stub_registry)


class TestDeclarationBinding:
    @pytest.mark.parametrize(
        ("declaration", "expression", "expected"),
        [
            ('import D from "m"', "D is DEFAULT", True),
            ('import { a, b } from "m"', "(a, b)", (1, 2)),
            ('import { a as x } from "m"', "x", 1),
            ('import * as N from "m"', 'N["b"]', 2),
            ('import D, { a, b as c } from "m"', "(D is DEFAULT, a, c)", (True, 1, 2)),
            ('import D, * as N from "m"', 'D is N["default"]', True),
            ('import "m"', "'ok'", "ok"),
        ],
    )
    def test_bindings(
        self,
        stub_pipeline: CompilePipeline,
        stub_registry: CapabilityRegistry,
        declaration: str,
        expression: str,
        expected: Any,
    ) -> None:
        text = f"{declaration}\nDEFAULT = resolve('m')['default']\nmodule.exports = lambda: {expression}\n"
        component = run_ok(stub_pipeline, text)
        assert component() == expected

    def test_python_import_resolves_through_registry(self, pipeline: CompilePipeline) -> None:
        component = run_ok(pipeline, "import networkx as nx\nmodule.exports = lambda: nx.DiGraph\n")
        assert component().__name__ == "DiGraph"


class TestDefaultExport:
    def test_export_default_def_is_component(self, pipeline: CompilePipeline) -> None:
        component = run_ok(pipeline, "export default def Widget(): return 1\n")
        assert component.__name__ == "Widget"
        assert component() == 1

    def test_export_default_reference(self, pipeline: CompilePipeline) -> None:
        component = run_ok(pipeline, MINIMAL_SOURCE)
        assert to_data(render(component)) == {
            "type": "Flow",
            "props": {"fit_view": True},
            "children": [{"type": "Background"}],
        }

    def test_export_default_number_rejected(self, pipeline: CompilePipeline) -> None:
        result = pipeline.run("export default 42\n")
        assert result.error is not None
        assert result.error.code == "NOT_A_COMPONENT"

    def test_exports_replaced_without_default(self, pipeline: CompilePipeline) -> None:
        result = pipeline.run("module.exports = lambda: 5\n")
        assert result.component is not None
        assert result.component() == 5

    def test_ambiguity_recorded_on_unit(self, pipeline: CompilePipeline) -> None:
        run_ok(pipeline, "def A(): pass\ndef B(): pass\nexport default A\nexport default B\n")
        assert pipeline.last_unit is not None
        assert pipeline.last_unit.default_binding == "A"
        assert len(pipeline.last_unit.warnings) == 1


class TestFailures:
    def test_unresolvable_dependency_names_module(self, pipeline: CompilePipeline) -> None:
        result = pipeline.run('import X from "nonexistent-lib"\nexport default X\n')
        assert result.error is not None
        assert result.error.code == "UNRESOLVED_DEPENDENCY"
        assert "nonexistent-lib" in result.error.message

    def test_unbalanced_markup(self, pipeline: CompilePipeline) -> None:
        result = pipeline.run("def W():\n    return <div><span></div>\n")
        assert result.error is not None
        assert result.error.code == "COMPILE_ERROR"
        assert result.error.line == 2
        assert pipeline.last_unit is None

    def test_bad_declaration(self, pipeline: CompilePipeline) -> None:
        result = pipeline.run('import { a "m"\n')
        assert result.error is not None
        assert result.error.code == "COMPILE_ERROR"

    def test_runtime_error(self, pipeline: CompilePipeline) -> None:
        result = pipeline.run("raise ValueError('nope')\n")
        assert result.error is not None
        assert result.error.message == "ValueError: nope"

    def test_deep_markup_nesting(self, pipeline: CompilePipeline) -> None:
        result = pipeline.run("x = " + "<a>" * 600 + "</a>" * 600 + "\n")
        assert result.error is not None
        assert result.error.code == "COMPILE_ERROR"

    def test_unexpected_compile_crash_is_a_failure(
        self, pipeline: CompilePipeline, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def crash(*_args: Any, **_kwargs: Any) -> Any:
            raise RuntimeError("scanner bug")

        monkeypatch.setattr(pipeline_module, "rewrite_declarations", crash)
        result = pipeline.run("x = 1\n")
        assert result.error is not None
        assert result.error.code == "COMPILE_ERROR"
        assert result.error.message == "RuntimeError: scanner bug"

    def test_keyboard_interrupt_propagates(self, pipeline: CompilePipeline) -> None:
        with pytest.raises(KeyboardInterrupt):
            pipeline.run("raise KeyboardInterrupt\n")


class TestConfiguration:
    def test_custom_runtime_name(self) -> None:
        pipeline = CompilePipeline(build_registry(), CompilerConfig(runtime_name="h"))
        component = run_ok(pipeline, 'export default def W():\n    return <div />\n')
        assert render(component).type == "div"
        assert pipeline.last_unit is not None
        assert "h.create_element" in pipeline.last_unit.executable_text

    def test_describe(self, pipeline: CompilePipeline) -> None:
        info = pipeline.describe()
        assert info["runtime_name"] == "ui"
        assert "flow" in info["capabilities"]


class TestCompile:
    def test_default_export_appended(self, pipeline: CompilePipeline) -> None:
        unit = pipeline.compile('import Flow from "flow"\nexport default def W():\n    return <Flow />\n')
        assert unit.default_binding == "W"
        assert unit.executable_text.startswith('Flow = resolve.default("flow")\ndef W():')
        assert unit.executable_text.endswith('if "W" in globals(): module.exports["default"] = W\n')

    def test_no_default_export(self, pipeline: CompilePipeline) -> None:
        unit = pipeline.compile("x = 1\n")
        assert unit.default_binding is None
        assert unit.executable_text == "x = 1\n"

    def test_ambiguity_warnings_are_strings(self, pipeline: CompilePipeline) -> None:
        unit = pipeline.compile("def A():\n    pass\nexport default A\nexport default A\n")
        assert len(unit.warnings) == 1
        assert isinstance(unit.warnings[0], str)
