"""Extension layer — plugin system via pluggy.

Discovery: entry points in the ``flowlab.plugins`` group, plus single-file
plugins from the configured local directory.
INVARIANT: Plugin failures are warnings, never errors.
"""

from flowlab.plugins.hookspecs import hookimpl
from flowlab.plugins.manager import PluginManager

__all__ = ["PluginManager", "hookimpl"]
