"""Tests for PreviewService."""

from __future__ import annotations

from collections.abc import Generator

import pytest

from flowlab import examples
from flowlab.services.pipeline import CompilePipeline
from flowlab.services.preview import PreviewService, capability_kind
from flowlab.services.telemetry import enable_telemetry
from tests.conftest import MINIMAL_SOURCE


@pytest.fixture
def preview(pipeline: CompilePipeline) -> PreviewService:
    return PreviewService(pipeline)


@pytest.fixture
def _telemetry() -> Generator[None]:
    enable_telemetry()
    yield
    enable_telemetry(False)


class TestCheck:
    def test_ok(self, preview: PreviewService) -> None:
        result = preview.check(MINIMAL_SOURCE, source="a.flowx")
        assert result.ok
        assert result.op == "check"
        assert result.data["component"] == "Widget"
        assert result.data["default_binding"] == "Widget"
        assert "code" not in result.data

    def test_show_code(self, preview: PreviewService) -> None:
        result = preview.check(MINIMAL_SOURCE, show_code=True)
        assert "ui.create_element(Flow" in result.data["code"]

    def test_failure(self, preview: PreviewService) -> None:
        result = preview.check('import X from "nonexistent-lib"\n', source="a.flowx")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "UNRESOLVED_DEPENDENCY"
        assert result.data["source"] == "a.flowx"

    def test_compile_failure_has_position(self, preview: PreviewService) -> None:
        result = preview.check("x = <div>\n")
        assert result.error is not None
        assert result.error.detail["line"] == 1

    def test_warnings_include_ambiguity(self, preview: PreviewService) -> None:
        result = preview.check("def A(): pass\nexport default A\nexport default A\n")
        assert result.ok
        assert len(result.warnings) == 1

    def test_startup_warnings_reported(self, pipeline: CompilePipeline) -> None:
        result = PreviewService(pipeline, warnings=["plugin broke"]).check(MINIMAL_SOURCE)
        assert result.warnings == ["plugin broke"]

    @pytest.mark.usefixtures("_telemetry")
    def test_verbose_telemetry(self, preview: PreviewService) -> None:
        result = preview.check(MINIMAL_SOURCE)
        assert result.meta is not None
        names = [c["name"] for c in result.meta["telemetry"]["children"]]
        assert names == ["rewrite", "markup", "execute"]


class TestRender:
    def test_tree(self, preview: PreviewService) -> None:
        result = preview.render(MINIMAL_SOURCE)
        assert result.ok
        assert result.data["tree"]["type"] == "Flow"

    def test_props(self, preview: PreviewService) -> None:
        source = 'export default def Hello(name="x"):\n    return <p>{name}</p>\n'
        result = preview.render(source, props={"name": "flowlab"})
        assert result.data["tree"] == {"type": "p", "children": ["flowlab"]}

    def test_render_error(self, preview: PreviewService) -> None:
        source = "export default def Bad():\n    raise ValueError('no')\n"
        result = preview.render(source)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "RENDER_ERROR"
        assert result.error.message == "ValueError: no"

    def test_compile_error_passes_through(self, preview: PreviewService) -> None:
        result = preview.render("x = <div>\n")
        assert result.op == "render"
        assert result.error is not None
        assert result.error.code == "COMPILE_ERROR"


class TestExamples:
    def test_list(self, preview: PreviewService) -> None:
        result = preview.list_examples()
        assert result.data["count"] == len(examples.EXAMPLES)
        assert "filename" not in result.data["examples"][0]

    def test_show(self, preview: PreviewService) -> None:
        result = preview.show_example("basic-nodes")
        assert result.ok
        assert "export default BasicNodes" in result.data["source"]

    def test_unknown_slug(self, preview: PreviewService) -> None:
        for result in (
            preview.show_example("nope"),
            preview.check_example("nope"),
            preview.render_example("nope"),
        ):
            assert not result.ok
            assert result.error is not None
            assert result.error.code == "NOT_FOUND"
            assert "basic-nodes" in result.error.message

    def test_check_example_uses_slug_as_source(self, preview: PreviewService) -> None:
        result = preview.check_example("custom-nodes")
        assert result.ok
        assert result.data["source"] == "custom-nodes"
        assert result.data["component"] == "CustomNodes"

    def test_render_example(self, preview: PreviewService) -> None:
        result = preview.render_example("interactive-flow")
        assert result.ok
        assert result.op == "render_example"


class TestCapabilities:
    def test_lists_registry(self, preview: PreviewService) -> None:
        result = preview.capabilities()
        kinds = {c["name"]: c["kind"] for c in result.data["capabilities"]}
        assert kinds == {"flow": "module", "layout": "module", "networkx": "module", "ui": "module"}
        assert result.data["runtime_name"] == "ui"

    @pytest.mark.parametrize(
        ("value", "kind"),
        [(len, "callable"), (int, "class"), ({"a": 1}, "mapping"), (3, "int")],
    )
    def test_capability_kind(self, value: object, kind: str) -> None:
        assert capability_kind(value) == kind


class TestNestedTelemetry:
    @pytest.mark.usefixtures("_telemetry")
    def test_check_example_nests_check(self, preview: PreviewService) -> None:
        result = preview.check_example("basic-nodes")
        tree = result.meta["telemetry"]
        assert tree["name"] == "PreviewService.check_example"
        (inner,) = tree["children"]
        assert inner["name"] == "PreviewService.check"
        assert [c["name"] for c in inner["children"]] == ["rewrite", "markup", "execute"]
