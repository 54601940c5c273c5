"""Tests for the Console factory."""

from __future__ import annotations

from flowlab.output.console import create_console, get_output, style_for_kind


class TestConsole:
    def test_renders_to_buffer(self) -> None:
        console = create_console()
        console.print("[flow.ok]OK[/flow.ok]")
        assert get_output(console) == "OK\n"

    def test_width_override(self) -> None:
        assert create_console(width=40).width == 40

    def test_style_for_kind(self) -> None:
        assert style_for_kind("module") == "flow.kind.module"
        assert style_for_kind("int") == ""
