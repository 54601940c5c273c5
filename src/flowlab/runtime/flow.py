"""Diagram widget capability — host types, change helpers and state hooks.

Nodes and edges are plain dicts (``{"id": ..., "position": {"x", "y"},
"data": {...}}`` and ``{"id": ..., "source": ..., "target": ...}``), the
shape component code builds them in. Helpers never mutate their inputs.

Drawing, dragging and viewport handling belong to the display surface;
here the widget types are host elements that render as-is.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from enum import StrEnum
from typing import Any

from flowlab.runtime.ui import Host, use_callback, use_state

Flow = Host("Flow")
Background = Host("Background")
Controls = Host("Controls")
MiniMap = Host("MiniMap")
Panel = Host("Panel")
Handle = Host("Handle")

# `import Flow from "flow"`
default = Flow

type Node = dict[str, Any]
type Edge = dict[str, Any]


class Position(StrEnum):
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


class MarkerType(StrEnum):
    ARROW = "arrow"
    ARROW_CLOSED = "arrowclosed"


def edge_id(connection: Mapping[str, Any]) -> str:
    source_handle = connection.get("source_handle") or ""
    target_handle = connection.get("target_handle") or ""
    return f"xy-edge__{connection['source']}{source_handle}-{connection['target']}{target_handle}"


def add_edge(connection: Mapping[str, Any], edges: Iterable[Edge]) -> list[Edge]:
    """Return *edges* plus *connection*, unless an identical edge exists."""
    edges = list(edges)
    if not connection.get("source") or not connection.get("target"):
        return edges
    key = ("source", "target", "source_handle", "target_handle")
    for edge in edges:
        if all(edge.get(k) == connection.get(k) for k in key):
            return edges
    new_edge = dict(connection)
    new_edge.setdefault("id", edge_id(connection))
    return [*edges, new_edge]


def _apply_changes(changes: Iterable[Mapping[str, Any]], items: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    result = [dict(item) for item in items]
    for change in changes:
        kind = change.get("type")
        if kind == "add":
            result.append(dict(change["item"]))
            continue
        if kind == "remove":
            result = [item for item in result if item.get("id") != change.get("id")]
            continue
        for item in result:
            if item.get("id") != change.get("id"):
                continue
            if kind == "position" and change.get("position") is not None:
                item["position"] = dict(change["position"])
            elif kind == "select":
                item["selected"] = bool(change.get("selected"))
            elif kind == "dimensions" and change.get("dimensions") is not None:
                item["measured"] = dict(change["dimensions"])
            elif kind == "replace":
                item.clear()
                item.update(change["item"])
    return result


def apply_node_changes(changes: Iterable[Mapping[str, Any]], nodes: Iterable[Node]) -> list[Node]:
    """Apply add/remove/position/select/dimensions/replace changes to *nodes*."""
    return _apply_changes(changes, nodes)


def apply_edge_changes(changes: Iterable[Mapping[str, Any]], edges: Iterable[Edge]) -> list[Edge]:
    """Apply add/remove/select/replace changes to *edges*."""
    return _apply_changes(changes, edges)


def use_nodes_state(initial: Iterable[Node]) -> tuple[list[Node], Callable[[Any], None], Callable[[Any], None]]:
    """Return ``(nodes, set_nodes, on_nodes_change)``."""
    nodes, set_nodes = use_state(lambda: list(initial))
    on_change = use_callback(lambda changes: set_nodes(lambda ns: apply_node_changes(changes, ns)), [])
    return nodes, set_nodes, on_change


def use_edges_state(initial: Iterable[Edge]) -> tuple[list[Edge], Callable[[Any], None], Callable[[Any], None]]:
    """Return ``(edges, set_edges, on_edges_change)``."""
    edges, set_edges = use_state(lambda: list(initial))
    on_change = use_callback(lambda changes: set_edges(lambda es: apply_edge_changes(changes, es)), [])
    return edges, set_edges, on_change
