"""Tests for FlowlabSettings — CLI flags, env vars and TOML in one object."""

from pathlib import Path

import click
import pytest

from flowlab.config.settings import FlowlabSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("FLOWLAB_CONFIG", "FLOWLAB_VERBOSE", "FLOWLAB_WATCH__INTERVAL", "FLOWLAB_COMPILER__RUNTIME_NAME"):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        settings = FlowlabSettings.from_cli(cwd=tmp_path)
        assert settings.project_root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.compiler.runtime_name == "ui"
        assert settings.watch.interval == 0.5
        assert settings.plugin_dir == tmp_path / ".flowlab" / "plugins"

    def test_frozen(self, tmp_path: Path) -> None:
        settings = FlowlabSettings.from_cli(cwd=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        (tmp_path / "flowlab.toml").write_text('[compiler]\nruntime_name = "h"\n[watch]\ninterval = 1.5\n')
        settings = FlowlabSettings.from_cli(cwd=tmp_path)
        assert settings.compiler.runtime_name == "h"
        assert settings.compiler.factory == "create_element"
        assert settings.watch.interval == 1.5
        assert settings.config_path == tmp_path / "flowlab.toml"

    def test_project_root_is_config_dir(self, tmp_path: Path) -> None:
        (tmp_path / "flowlab.toml").write_text("")
        child = tmp_path / "src"
        child.mkdir()
        assert FlowlabSettings.from_cli(cwd=child).project_root == tmp_path

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "flowlab.toml").write_text("[compiler\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            FlowlabSettings.from_cli(cwd=tmp_path)

    def test_explicit_missing_config(self, tmp_path: Path) -> None:
        with pytest.raises(click.ClickException, match="Config file not found"):
            FlowlabSettings.from_cli(config_path=str(tmp_path / "nope.toml"), cwd=tmp_path)

    def test_explicit_config(self, tmp_path: Path) -> None:
        path = tmp_path / "other.toml"
        path.write_text("[plugins]\nlocal_dir = \"ext\"\n")
        settings = FlowlabSettings.from_cli(config_path=str(path), cwd=tmp_path)
        assert settings.plugin_dir == tmp_path / "ext"


class TestPriority:
    def test_env_beats_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "flowlab.toml").write_text("[watch]\ninterval = 1.5\n")
        monkeypatch.setenv("FLOWLAB_WATCH__INTERVAL", "3")
        assert FlowlabSettings.from_cli(cwd=tmp_path).watch.interval == 3.0

    def test_cli_flag_beats_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FLOWLAB_VERBOSE", "false")
        assert FlowlabSettings.from_cli(cwd=tmp_path, verbose=True).verbose is True
