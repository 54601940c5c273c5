"""Tests for the examples command group."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from flowlab.cli import cli
from flowlab.examples import EXAMPLES, load_source


@pytest.mark.usefixtures("_isolated_project")
class TestExamplesCommand:
    def test_list(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["examples", "list"])
        assert result.exit_code == 0
        for example in EXAMPLES:
            assert example.slug in result.output

    def test_list_quiet(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "examples", "list"])
        assert result.stdout.split() == [e.slug for e in EXAMPLES]

    def test_show_quiet_is_source(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["-q", "examples", "show", "custom-nodes"])
        assert result.exit_code == 0
        assert result.stdout == load_source("custom-nodes").rstrip("\n") + "\n"

    def test_render(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["examples", "render", "basic-nodes"])
        assert result.exit_code == 0, result.output
        assert "BasicNodes" in result.output
        assert "Flow" in result.output

    def test_render_json_tree(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "examples", "render", "auto-layout"])
        assert result.exit_code == 0
        tree = json.loads(result.stdout)["data"]["tree"]
        assert tree["type"] == "Flow"
        positions = [n["position"] for n in tree["props"]["nodes"]]
        assert len(positions) == 5

    def test_unknown_slug(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["examples", "render", "nope"])
        assert result.exit_code == 1
        assert "No example named 'nope'" in result.output
