"""Command: compile and execute one component source."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from flowlab.commands._base import usage_examples

if TYPE_CHECKING:
    from flowlab.commands._context import AppContext


@click.command()
@usage_examples(
    """\
  flowlab check flow.flowx
  flowlab check flow.flowx --show-code
  flowlab check --example custom-nodes
  flowlab --json check flow.flowx""",
    with_catalog=True,
)
@click.argument("path", required=False, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--example", "slug", default=None, help="Check a bundled example instead of a file.")
@click.option("--show-code", is_flag=True, help="Include the compiled Python text.")
@click.pass_obj
def check(app: AppContext, path: Path | None, slug: str | None, show_code: bool) -> None:
    """Compile and execute a component source; exit 1 with the diagnostic on failure."""
    if slug is not None and path is None:
        app.emit(app.preview.check_example(slug, show_code=show_code))
    elif path is not None and slug is None:
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise click.ClickException(f"{path} is not valid UTF-8: {exc.reason}") from exc
        app.emit(app.preview.check(text, source=str(path), show_code=show_code))
    else:
        raise click.UsageError("Give exactly one of PATH or --example.")
