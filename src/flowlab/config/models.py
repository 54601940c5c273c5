"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, flowlab.toml only contains
overrides. An empty (or missing) file is a valid configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from flowlab.domain.declarations import RESOURCE_EXTENSIONS
from flowlab.domain.markup import MarkupOptions


class CompilerConfig(BaseModel):
    """[compiler] section."""

    model_config = {"frozen": True}

    runtime_name: str = "ui"
    factory: str = "create_element"
    fragment: str = "Fragment"
    resource_extensions: list[str] = Field(default_factory=lambda: sorted(RESOURCE_EXTENSIONS))
    filename: str = "<component>"

    def markup_options(self) -> MarkupOptions:
        return MarkupOptions(runtime_name=self.runtime_name, factory=self.factory, fragment=self.fragment)


class CapabilitiesConfig(BaseModel):
    """[capabilities] section.

    ``modules`` maps extra capability names to importable module paths.
    """

    model_config = {"frozen": True}

    modules: dict[str, str] = Field(default_factory=dict)
    builtins: bool = True


class WatchConfig(BaseModel):
    """[watch] section."""

    model_config = {"frozen": True}

    interval: float = Field(default=0.5, gt=0)
    debounce_ms: int = Field(default=50, ge=1)
    force_polling: bool = False


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    local_dir: str = ".flowlab/plugins"


class FlowlabConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    compiler: CompilerConfig = Field(default_factory=CompilerConfig)
    capabilities: CapabilitiesConfig = Field(default_factory=CapabilitiesConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
