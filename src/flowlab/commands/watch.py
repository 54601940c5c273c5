"""Command: live preview session over a file."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import click

from flowlab.commands._base import usage_examples

if TYPE_CHECKING:
    from flowlab.commands._context import AppContext
    from flowlab.services.recompiler import RenderState


def _state_json(state: RenderState, source: str) -> str:
    payload = {
        "source": source,
        "component": getattr(state.component, "__qualname__", repr(state.component)),
        "diagnostic": state.diagnostic,
        "code": state.error.code if state.error else None,
    }
    return json.dumps(payload)


@click.command()
@usage_examples(
    """\
  flowlab watch flow.flowx
  flowlab watch flow.flowx --example custom-nodes
  flowlab watch flow.flowx --interval 0.2
  flowlab --json watch flow.flowx""",
    with_catalog=True,
)
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--example", "slug", default=None, help="Use a bundled example as the baseline.")
@click.option("--interval", type=click.FloatRange(min=0, min_open=True), default=None, help="Seconds between idle wake-ups.")
@click.option("--max-polls", type=int, default=None, hidden=True)
@click.pass_obj
def watch(app: AppContext, path: Path, slug: str | None, interval: float | None, max_polls: int | None) -> None:
    """Recompile PATH on every save and print what the preview shows.

    The baseline is the example's source with --example (PATH is seeded
    with it when missing), otherwise PATH's text at startup. A failing
    edit keeps the last good component and prints its diagnostic.
    """
    from flowlab import examples
    from flowlab.config.logging import bind_context, clear_context
    from flowlab.domain.errors import BaselineError
    from flowlab.output.renderers import render_state
    from flowlab.services.recompiler import LiveRecompiler
    from flowlab.services.watcher import FileWatcher

    if slug is not None:
        try:
            baseline = examples.load_source(slug)
        except KeyError:
            known = ", ".join(e.slug for e in examples.list_examples())
            raise click.ClickException(f"No example named {slug!r} (known: {known})") from None
        if not path.exists():
            path.write_text(baseline, encoding="utf-8")
    elif path.is_file():
        try:
            baseline = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise click.ClickException(f"{path} is not valid UTF-8: {exc.reason}") from exc
    else:
        raise click.UsageError(f"{path} does not exist; create it or pass --example.")

    try:
        recompiler = LiveRecompiler.from_source(baseline, app.pipeline)
    except BaselineError as exc:
        raise click.ClickException(str(exc)) from exc

    source = str(path)

    def show(state: RenderState) -> None:
        if app.settings.json_output:
            click.echo(_state_json(state, source))
        else:
            click.echo(render_state(state, source=source))

    show(recompiler.state)
    recompiler.add_listener(show)
    watch_config = app.settings.watch
    watcher = FileWatcher(
        path,
        recompiler,
        interval=interval or watch_config.interval,
        debounce_ms=watch_config.debounce_ms,
        force_polling=watch_config.force_polling,
    )

    bind_context(watched=source)
    try:
        watcher.run(max_polls=max_polls)
    except KeyboardInterrupt:
        click.echo("Stopped.", err=True)
    finally:
        clear_context()
