"""Pluggy hook specifications for flowlab.

One setup-time hook: plugins contribute extra capabilities that edited
code may import. Contributions never replace built-in or configured names.
"""

from __future__ import annotations

from typing import Any

import pluggy

PROJECT_NAME = "flowlab"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class FlowlabHookSpec:
    """Hook specifications for the flowlab plugin system."""

    @hookspec
    def register_capabilities(self) -> dict[str, Any] | None:
        """Return capability name -> value mappings to add to the registry."""
