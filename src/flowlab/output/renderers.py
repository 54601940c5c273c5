"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a StringIO-backed Console; the caller gets the
text back from :func:`render_result`. Dispatch is by ``result.op``;
unknown ops fall through to a generic key-value renderer.

Failures render as a red banner panel holding the diagnostic verbatim.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from flowlab.output.console import create_console, get_output, style_for_kind

if TYPE_CHECKING:
    from rich.console import Console

    from flowlab.services.recompiler import RenderState
    from flowlab.services.result import ServiceResult

# Longest prop value shown inline in a rendered tree.
_PROP_WIDTH = 40


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)
    if verbose:
        _render_meta(console, result)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``: names only, or a one-line status."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"
    if result.op == "list_examples":
        return "\n".join(e["slug"] for e in result.data.get("examples", []))
    if result.op == "capabilities":
        return "\n".join(c["name"] for c in result.data.get("capabilities", []))
    if result.op == "show_example":
        return result.data.get("source", "").rstrip("\n")
    return f"OK: {result.op}"


def render_banner(message: str, *, title: str = "ERROR") -> str:
    """The red diagnostic banner on its own."""
    console = create_console()
    console.print(_banner(message, title=title))
    return get_output(console).rstrip("\n")


def render_state(state: RenderState, *, source: str) -> str:
    """One live-session update: the component name, or the diagnostic banner."""
    console = create_console()
    name = getattr(state.component, "__qualname__", repr(state.component))
    if state.diagnostic is None:
        console.print(Text("OK", style="flow.ok"), Text(f"  {source}", style="flow.op"), Text(f"  {name}"))
    else:
        code = state.error.code if state.error else "ERROR"
        console.print(_banner(state.diagnostic, title=f"{code}  {source}"))
        console.print(Text(f"  still showing {name}", style="flow.key"))
    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _banner(message: str, *, title: str) -> Panel:
    return Panel(Text(message), title=Text(title, style="flow.error"), border_style="red", expand=True)


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="flow.ok"), Text(f"  {result.op}", style="flow.op"))


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="flow.key")
    style = "flow.slug" if key in ("slug", "source") else "flow.title" if key == "title" else ""
    console.print(k, Text(str(value), style=style), sep="")


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Telemetry span tree and any other meta (verbose only)."""
    if not result.meta:
        return
    console.print()
    console.print(Text("  meta:", style="dim"))
    for key, value in result.meta.items():
        if key == "telemetry":
            _render_telemetry_tree(console, value, indent=4)
        else:
            console.print(f"    {key}: {value}")


def _render_telemetry_tree(console: Console, span: dict[str, Any], indent: int = 4) -> None:
    duration = span.get("duration_ms", 0.0)
    style = "bold red" if duration > 1000 else "yellow" if duration > 100 else "dim"
    line = Text(" " * indent)
    line.append(f"{duration:>8.2f}ms", style=style)
    line.append(f"  {span.get('name', '?')}")
    annotations = span.get("annotations") or {}
    if annotations:
        line.append("  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")", style="dim")
    console.print(line)
    for child in span.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _render_warnings(console: Console, result: ServiceResult) -> None:
    for warning in result.warnings:
        console.print(Text("  warning: ", style="flow.warning"), Text(warning), sep="")


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    code = err.code if err else "ERROR"
    source = result.data.get("source")
    title = f"{code}  {result.op}" + (f"  {source}" if source else "")
    console.print(_banner(err.message if err else "Unknown error", title=title))
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")
    if verbose and result.data.get("code"):
        console.print(Syntax(result.data["code"], "python", line_numbers=True))


# ── Op renderers ──────────────────────────────────────────────────────


def _render_check(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key in ("source", "component", "default_binding"):
        if key in result.data:
            _field(console, key, result.data[key])
    _render_warnings(console, result)
    if "code" in result.data:
        console.print()
        console.print(Syntax(result.data["code"], "python", line_numbers=True))


def _render_tree(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "source", result.data.get("source", ""))
    _render_warnings(console, result)
    root = Tree(Text(result.data.get("component", "?"), style="flow.component"))
    tree = result.data.get("tree")
    for node in tree if isinstance(tree, list) else [tree]:
        if node is not None:
            _add_node(root, node)
    console.print(root)


def _add_node(parent: Tree, node: Any) -> None:
    if not isinstance(node, dict):
        parent.add(Text(json.dumps(node, ensure_ascii=False)))
        return
    label = Text(str(node.get("type", "?")), style="flow.host")
    for key, value in (node.get("props") or {}).items():
        rendered = json.dumps(value, ensure_ascii=False, default=str)
        if len(rendered) > _PROP_WIDTH:
            rendered = rendered[: _PROP_WIDTH - 3] + "..."
        label.append(f" {key}={rendered}", style="flow.prop")
    branch = parent.add(label)
    for child in node.get("children") or []:
        _add_node(branch, child)


def _render_list_examples(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("Slug", style="flow.slug", no_wrap=True)
    table.add_column("Title", style="flow.title")
    table.add_column("Description")
    for example in result.data.get("examples", []):
        table.add_row(example["slug"], example["title"], example["description"])
    console.print(table)


def _render_show_example(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    data = result.data
    console.print(Text(data.get("title", ""), style="flow.title"), Text(f"  {data.get('slug', '')}", style="flow.slug"))
    if data.get("description"):
        console.print(Text(data["description"], style="flow.key"))
    console.print()
    console.print(Syntax(data.get("source", ""), "python", line_numbers=verbose))


def _render_capabilities(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("Name", style="flow.slug", no_wrap=True)
    table.add_column("Kind")
    for item in result.data.get("capabilities", []):
        table.add_row(item["name"], Text(item["kind"], style=style_for_kind(item["kind"])))
    console.print(table)
    if "runtime_name" in result.data:
        _field(console, "markup runtime", result.data["runtime_name"])
    _render_warnings(console, result)


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, dict | list):
            value = json.dumps(value, separators=(",", ":"), default=str)
        _field(console, key, value)
    _render_warnings(console, result)


_OP_RENDERERS: dict[str, Any] = {
    "check": _render_check,
    "render": _render_tree,
    "render_example": _render_tree,
    "list_examples": _render_list_examples,
    "show_example": _render_show_example,
    "capabilities": _render_capabilities,
}
