"""Layered layout — place diagram nodes by rank on a NetworkX DiGraph.

Ranks are the topological generations of the graph's condensation, so
cycles collapse into one rank instead of failing. Within a rank nodes keep
their input order and are centred on the rank axis.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import networkx as nx

logger = logging.getLogger(__name__)

type _Graph = nx.DiGraph

DIRECTIONS = ("TB", "BT", "LR", "RL")

# direction -> (target handle, source handle)
_HANDLES = {
    "TB": ("top", "bottom"),
    "BT": ("bottom", "top"),
    "LR": ("left", "right"),
    "RL": ("right", "left"),
}


def build_graph(nodes: Iterable[Mapping[str, Any]], edges: Iterable[Mapping[str, Any]]) -> _Graph:
    """Build a DiGraph keyed by node id.

    All nodes are added first so isolated nodes get a rank; edges naming
    unknown nodes are skipped.
    """
    g: _Graph = nx.DiGraph()
    for order, node in enumerate(nodes):
        g.add_node(node["id"], order=order, data=node.get("data", {}))
    for edge in edges:
        source, target = edge.get("source"), edge.get("target")
        if source not in g or target not in g:
            logger.debug("Skipping edge %s: unknown endpoint", edge.get("id"))
            continue
        g.add_edge(source, target, id=edge.get("id"))
    return g


def ranks(g: _Graph) -> dict[Any, int]:
    """Map node id to its layer index."""
    dag = nx.condensation(g)
    members = dag.graph["mapping"]
    component_rank: dict[int, int] = {}
    for rank, generation in enumerate(nx.topological_generations(dag)):
        for component in generation:
            component_rank[component] = rank
    return {node: component_rank[members[node]] for node in g.nodes}


def layout_graph(
    nodes: Iterable[Mapping[str, Any]],
    edges: Iterable[Mapping[str, Any]],
    direction: str = "TB",
    node_width: float = 150,
    node_height: float = 50,
    rank_sep: float = 50,
    node_sep: float = 50,
) -> list[dict[str, Any]]:
    """Return copies of *nodes* with ``position`` and handle sides set.

    ``position`` is the top-left corner of a ``node_width`` x
    ``node_height`` box.
    """
    direction = direction.upper()
    if direction not in _HANDLES:
        raise ValueError(f"direction must be one of {', '.join(DIRECTIONS)}, got {direction!r}")

    nodes = list(nodes)
    g = build_graph(nodes, edges)
    node_rank = ranks(g)

    layers: dict[int, list[Any]] = {}
    for node in nodes:
        layers.setdefault(node_rank[node["id"]], []).append(node["id"])

    horizontal = direction in ("LR", "RL")
    along, across = (node_width, node_height) if horizontal else (node_height, node_width)
    step_rank = along + rank_sep
    step_node = across + node_sep
    last_rank = max(layers, default=0)

    centres: dict[Any, tuple[float, float]] = {}
    for rank, members in layers.items():
        if direction in ("BT", "RL"):
            rank = last_rank - rank
        for index, node_id in enumerate(members):
            offset = (index - (len(members) - 1) / 2) * step_node
            main = rank * step_rank + along / 2
            centres[node_id] = (main, offset) if horizontal else (offset, main)

    target_side, source_side = _HANDLES[direction]
    placed = []
    for node in nodes:
        cx, cy = centres[node["id"]]
        placed.append(
            {
                **node,
                "position": {"x": cx - node_width / 2, "y": cy - node_height / 2},
                "target_position": target_side,
                "source_position": source_side,
            }
        )
    return placed
