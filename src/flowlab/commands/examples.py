"""Command group: the bundled example catalog."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from flowlab.commands._base import usage_examples

if TYPE_CHECKING:
    from flowlab.commands._context import AppContext


@click.group()
@usage_examples(
    """\
  flowlab examples list
  flowlab examples show basic-nodes
  flowlab examples render auto-layout
  flowlab --json examples render custom-nodes""",
    with_catalog=True,
)
def examples() -> None:
    """Browse, show and render the bundled examples."""


@examples.command("list")
@usage_examples(
    """\
  flowlab examples list
  flowlab -q examples list"""
)
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List example slugs with their titles."""
    app.emit(app.preview.list_examples())


@examples.command()
@usage_examples(
    """\
  flowlab examples show interactive-flow
  flowlab -q examples show interactive-flow > start.flowx""",
    with_catalog=True,
)
@click.argument("slug")
@click.pass_obj
def show(app: AppContext, slug: str) -> None:
    """Print an example's source text."""
    app.emit(app.preview.show_example(slug))


@examples.command()
@usage_examples(
    """\
  flowlab examples render basic-nodes
  flowlab --json examples render auto-layout""",
    with_catalog=True,
)
@click.argument("slug")
@click.pass_obj
def render(app: AppContext, slug: str) -> None:
    """Compile an example and print its rendered element tree."""
    app.emit(app.preview.render_example(slug))
