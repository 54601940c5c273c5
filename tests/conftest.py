"""Shared pytest fixtures and test helpers for flowlab tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from flowlab.domain.execution import ExecutionResult
from flowlab.runtime.registry import CapabilityRegistry, build_registry
from flowlab.services.pipeline import CompilePipeline

MINIMAL_SOURCE = """\
import Flow, { Background } from "flow"


def Widget():
    return <Flow fit_view><Background /></Flow>


export default Widget
"""


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def registry() -> CapabilityRegistry:
    """The built-in capability registry."""
    return build_registry()


@pytest.fixture
def pipeline(registry: CapabilityRegistry) -> CompilePipeline:
    return CompilePipeline(registry)


@pytest.fixture
def stub_registry() -> CapabilityRegistry:
    """Built-ins plus a stub module ``m`` with a default and two members."""
    sentinel = object()
    return build_registry(extra={"m": {"default": sentinel, "a": 1, "b": 2}})


@pytest.fixture
def _isolated_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path]:
    """Run from an empty directory with no flowlab.toml above it."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("FLOWLAB_CONFIG", raising=False)
    yield tmp_path


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


class CountingPipeline:
    """Wraps a pipeline and records every text it is asked to run."""

    def __init__(self, inner: CompilePipeline) -> None:
        self.inner = inner
        self.calls: list[str] = []

    def run(self, text: str) -> ExecutionResult:
        self.calls.append(text)
        return self.inner.run(text)


def run_ok(pipeline: CompilePipeline, text: str) -> Any:
    """Run *text* and return its component, failing the test on error."""
    result = pipeline.run(text)
    assert result.error is None, result.error
    return result.component
