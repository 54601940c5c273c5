"""Tests for the markup compiler."""

from __future__ import annotations

import pytest

from flowlab.domain.errors import CompileError
from flowlab.domain.markup import (
    MarkupOptions,
    append_default_export,
    clean_text_child,
    compile_markup,
)


class TestElements:
    def test_self_closing_host_tag(self) -> None:
        assert compile_markup("x = <div />") == 'x = ui.create_element("div", None)'

    def test_component_with_props_and_child(self) -> None:
        out = compile_markup("return_value = <Flow nodes={nodes} fit_view><Background /></Flow>")
        assert out == (
            'return_value = ui.create_element(Flow, {"nodes": (nodes), "fit_view": True}, '
            "ui.create_element(Background, None))"
        )

    def test_fragment(self) -> None:
        out = compile_markup("x = <><a /></>")
        assert out == 'x = ui.create_element(ui.Fragment, None, ui.create_element("a", None))'

    def test_string_attribute_is_unescaped(self) -> None:
        out = compile_markup('x = <a title="Tom &amp; Jerry" />')
        assert out == 'x = ui.create_element("a", {"title": "Tom & Jerry"})'

    def test_spread_attribute(self) -> None:
        assert compile_markup("x = <a {...props} />") == 'x = ui.create_element("a", {**(props)})'

    def test_element_attribute_value(self) -> None:
        out = compile_markup("x = <Flow icon=<Icon /> />")
        assert out == 'x = ui.create_element(Flow, {"icon": ui.create_element(Icon, None)})'

    def test_nested_braces_in_attribute(self) -> None:
        out = compile_markup('x = <div style={{"color": "red"}} />')
        assert out == 'x = ui.create_element("div", {"style": ({"color": "red"})})'

    @pytest.mark.parametrize(
        ("tag", "expected"),
        [
            ("div", '"div"'),
            ("my-widget", '"my-widget"'),
            ("svg:rect", '"svg:rect"'),
            ("Flow", "Flow"),
            ("flow.Panel", "flow.Panel"),
        ],
    )
    def test_tag_types(self, tag: str, expected: str) -> None:
        assert compile_markup(f"x = <{tag} />") == f"x = ui.create_element({expected}, None)"

    def test_custom_runtime_names(self) -> None:
        options = MarkupOptions(runtime_name="h", factory="el", fragment="Frag")
        assert compile_markup("x = <><b /></>", options=options) == 'x = h.el(h.Frag, None, h.el("b", None))'


class TestChildren:
    def test_text_child(self) -> None:
        assert compile_markup("x = <p>Hello &amp; world</p>") == 'x = ui.create_element("p", None, "Hello & world")'

    def test_expression_child(self) -> None:
        assert compile_markup("x = <p>{name}</p>") == 'x = ui.create_element("p", None, (name))'

    def test_spread_child(self) -> None:
        assert compile_markup("x = <p>{...items}</p>") == 'x = ui.create_element("p", None, *(items))'

    def test_comment_only_child_dropped(self) -> None:
        assert compile_markup("x = <p>{# a note }</p>") == 'x = ui.create_element("p", None)'

    def test_empty_container_dropped(self) -> None:
        assert compile_markup("x = <p>{}</p>") == 'x = ui.create_element("p", None)'

    def test_markup_inside_comprehension(self) -> None:
        out = compile_markup("x = <ul>{[<li>{i}</li> for i in items]}</ul>")
        assert out == 'x = ui.create_element("ul", None, ([ui.create_element("li", None, (i)) for i in items]))'

    def test_mixed_text_and_expressions(self) -> None:
        out = compile_markup("x = <span>{n} nodes</span>")
        assert out == 'x = ui.create_element("span", None, (n), " nodes")'


class TestPythonContext:
    def test_comparisons_untouched(self) -> None:
        text = "ok = a < b and c <= d\nshift = a << 2\n"
        assert compile_markup(text) == text

    def test_markup_after_return(self) -> None:
        text = "def f():\n    return <div />\n"
        assert compile_markup(text) == 'def f():\n    return ui.create_element("div", None)\n'

    def test_markup_as_call_argument(self) -> None:
        assert compile_markup("f(<div />)") == 'f(ui.create_element("div", None))'

    def test_strings_and_comments_untouched(self) -> None:
        text = 'label = "<div />"  # <span />\n'
        assert compile_markup(text) == text

    def test_line_count_preserved(self) -> None:
        text = 'x = (\n    <div\n        id="a"\n    >\n        <span />\n        text\n    </div>\n)\ny = 1\n'
        out = compile_markup(text)
        assert out.count("\n") == text.count("\n")
        assert out.endswith("\ny = 1\n")


class TestErrors:
    def test_mismatched_closing_tag(self) -> None:
        with pytest.raises(CompileError) as exc_info:
            compile_markup("x = (\n    <div><span></div>\n)\n")
        err = exc_info.value
        assert "expected </span>" in str(err)
        assert err.line == 2
        assert err.code == "COMPILE_ERROR"

    def test_unterminated_element(self) -> None:
        with pytest.raises(CompileError, match="unterminated <div>"):
            compile_markup("x = <div>")

    def test_unterminated_expression(self) -> None:
        with pytest.raises(CompileError, match="unterminated"):
            compile_markup("x = <div>{a</div>")

    def test_python_syntax_error_reported_as_compile_error(self) -> None:
        with pytest.raises(CompileError) as exc_info:
            compile_markup("x = 1\ny = <div /> +\n")
        assert exc_info.value.line == 2

    def test_spread_needs_expression(self) -> None:
        with pytest.raises(CompileError, match="spread"):
            compile_markup("x = <a {...} />")

    def test_deep_nesting_is_a_compile_error(self) -> None:
        with pytest.raises(CompileError) as exc_info:
            compile_markup("x = " + "<a>" * 600 + "</a>" * 600 + "\n")
        assert exc_info.value.code == "COMPILE_ERROR"

    def test_null_byte_is_a_compile_error(self) -> None:
        with pytest.raises(CompileError):
            compile_markup("x = 1\0\n")


class TestCleanTextChild:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Hello", "Hello"),
            ("\n   Hello\n   world\n  ", "Hello world"),
            ("\n   \n", ""),
            ("a &lt; b", "a < b"),
            (" keep ", " keep "),
        ],
    )
    def test_whitespace_rules(self, raw: str, expected: str) -> None:
        assert clean_text_child(raw) == expected


class TestDefaultExportPostStep:
    def test_append_default_export_adds_newline(self) -> None:
        assert append_default_export("x = 1", "x") == 'x = 1\nif "x" in globals(): module.exports["default"] = x\n'
