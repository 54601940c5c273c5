"""The ``--examples`` flag shared by every flowlab command.

``usage_examples`` adds an eager flag that prints worked invocations and
exits, so ``--help`` stays short. Commands that take an example slug also
list the bundled catalog after the invocations.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import click

_F = TypeVar("_F", bound=Callable[..., Any])


def _show_examples(text: str, *, with_catalog: bool) -> Callable[[click.Context, click.Parameter, bool], None]:
    def callback(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(text)
        if with_catalog:
            from flowlab.examples import list_examples

            click.echo("\nBundled examples:")
            for example in list_examples():
                click.echo(f"  {example.slug:<18} {example.title}")
        ctx.exit(0)

    return callback


def usage_examples(text: str, *, with_catalog: bool = False) -> Callable[[_F], _F]:
    """Decorate a command or group with ``--examples`` printing *text*."""
    return click.option(
        "--examples",
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=_show_examples(text, with_catalog=with_catalog),
        help="Show usage examples and exit.",
    )
