"""Bundled example catalog.

Each example is one ``.flowx`` source shipped inside this package. Its
text is the baseline a live session starts from and resets to.
"""

from __future__ import annotations

from importlib import resources

from pydantic import BaseModel


class Example(BaseModel):
    """One catalog entry."""

    model_config = {"frozen": True}

    slug: str
    title: str
    description: str
    filename: str

    def load_source(self) -> str:
        return resources.files(__name__).joinpath(self.filename).read_text(encoding="utf-8")


EXAMPLES: tuple[Example, ...] = (
    Example(
        slug="basic-nodes",
        title="Basic nodes",
        description="Built-in node types, edges and connecting nodes",
        filename="basic_nodes.flowx",
    ),
    Example(
        slug="custom-nodes",
        title="Custom nodes",
        description="A node component of your own with handles",
        filename="custom_nodes.flowx",
    ),
    Example(
        slug="interactive-flow",
        title="Interactive flow",
        description="Add, remove and connect nodes",
        filename="interactive_flow.flowx",
    ),
    Example(
        slug="auto-layout",
        title="Automatic layout",
        description="Layered layout computed from the edges",
        filename="auto_layout.flowx",
    ),
)


def list_examples() -> list[Example]:
    return list(EXAMPLES)


def get_example(slug: str) -> Example | None:
    return next((e for e in EXAMPLES if e.slug == slug), None)


def load_source(slug: str) -> str:
    """Baseline source text of the example *slug*.

    Raises:
        KeyError: no example has that slug.
    """
    example = get_example(slug)
    if example is None:
        raise KeyError(slug)
    return example.load_source()
