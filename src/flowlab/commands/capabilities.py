"""Command: list the capability registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from flowlab.commands._base import usage_examples

if TYPE_CHECKING:
    from flowlab.commands._context import AppContext


@click.command()
@usage_examples(
    """\
  flowlab capabilities
  flowlab -q capabilities
  flowlab --json capabilities"""
)
@click.pass_obj
def capabilities(app: AppContext) -> None:
    """Show the names component sources can import, and what each one is."""
    app.emit(app.preview.capabilities())
