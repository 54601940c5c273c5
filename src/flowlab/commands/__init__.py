"""Subcommand modules for flowlab.

Provides register_commands() which uses deferred imports to keep
``flowlab --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from flowlab.commands.examples import examples

    cli.add_command(examples)

    # --- Standalone commands ---
    from flowlab.commands.capabilities import capabilities
    from flowlab.commands.check import check
    from flowlab.commands.watch import watch

    cli.add_command(check)
    cli.add_command(capabilities)
    cli.add_command(watch)
