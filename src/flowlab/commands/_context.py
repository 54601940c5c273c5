"""AppContext — shared Click context for all commands.

Created once by the root CLI group and handed to subcommands via
``@click.pass_obj``. The capability registry, pipeline and preview
service are built lazily so ``--help`` and ``--version`` never load
plugins.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from flowlab.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from flowlab.config.settings import FlowlabSettings
    from flowlab.runtime.registry import CapabilityRegistry
    from flowlab.services.pipeline import CompilePipeline
    from flowlab.services.preview import PreviewService
    from flowlab.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: FlowlabSettings) -> None:
        self.settings = settings
        self._registry: CapabilityRegistry | None = None
        self._pipeline: CompilePipeline | None = None
        self._preview: PreviewService | None = None
        self.plugin_warnings: list[str] = []

        from flowlab.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, quiet=settings.quiet, log_json=settings.log_json)

        # Spans are only collected when someone will see them
        if settings.verbose:
            from flowlab.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def registry(self) -> CapabilityRegistry:
        """Built-ins, configured modules, then plugin capabilities."""
        if self._registry is None:
            from flowlab.plugins.manager import PluginManager
            from flowlab.runtime.registry import build_registry

            manager = PluginManager()
            manager.discover_and_load(local_dir=self.settings.plugin_dir)
            extra, self.plugin_warnings = manager.collect_capabilities()
            self._registry = build_registry(self.settings.capabilities, extra)
        return self._registry

    @property
    def pipeline(self) -> CompilePipeline:
        if self._pipeline is None:
            from flowlab.services.pipeline import CompilePipeline

            self._pipeline = CompilePipeline(self.registry, self.settings.compiler)
        return self._pipeline

    @property
    def preview(self) -> PreviewService:
        if self._preview is None:
            from flowlab.services.preview import PreviewService

            pipeline = self.pipeline
            self._preview = PreviewService(pipeline, warnings=self.plugin_warnings)
        return self._preview

    @property
    def output_settings(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: writes to stdout. Warnings go to stderr so they don't
          pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = self.output_settings
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
