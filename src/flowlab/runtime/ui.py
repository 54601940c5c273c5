"""UI runtime — element factory, hooks and a tree renderer.

Compiled markup calls ``create_element`` from this module; component code
reaches it as the ``ui`` capability. ``render`` expands function
components into a tree of host elements (string tags and ``Host`` types),
running hooks against per-position state and re-rendering while state
changes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

MAX_RENDER_PASSES = 25


class RenderError(RuntimeError):
    """Rendering did not settle, or a hook was used outside a render."""


# ── Elements ─────────────────────────────────────────────────────────


class Host:
    """A host element type: rendered as-is, never called."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"<host {self.name}>"


Fragment = Host("Fragment")


@dataclass(frozen=True)
class Element:
    """Immutable description of one node in the UI tree."""

    type: Any
    props: dict[str, Any] = field(default_factory=dict)
    children: tuple[Any, ...] = ()

    @property
    def type_name(self) -> str:
        if isinstance(self.type, str):
            return self.type
        if isinstance(self.type, Host):
            return self.type.name
        return getattr(self.type, "__name__", type(self.type).__name__)

    @property
    def is_host(self) -> bool:
        return isinstance(self.type, str | Host)


def create_element(type: Any, props: dict[str, Any] | None = None, *children: Any) -> Element:  # noqa: A002
    """Build an element; ``None`` and booleans among children are dropped."""
    return Element(type=type, props=dict(props or {}), children=tuple(_flatten(children)))


def _flatten(children: Iterable[Any]) -> Iterator[Any]:
    for child in children:
        if child is None or isinstance(child, bool):
            continue
        if isinstance(child, list | tuple) or _is_generator(child):
            yield from _flatten(child)
        else:
            yield child


def _is_generator(value: Any) -> bool:
    return hasattr(value, "__next__") and hasattr(value, "__iter__") and not isinstance(value, str)


# ── Hooks ────────────────────────────────────────────────────────────


@dataclass
class Ref:
    current: Any = None


@dataclass
class _Instance:
    slots: list[Any] = field(default_factory=list)


@dataclass
class _Frame:
    renderer: Renderer
    instance: _Instance
    index: int = 0


@dataclass
class _State:
    value: Any


@dataclass
class _Memo:
    deps: tuple[Any, ...] | None
    value: Any


@dataclass
class _Effect:
    deps: tuple[Any, ...] | None
    cleanup: Callable[[], Any] | None = None


_current_frame: ContextVar[_Frame | None] = ContextVar("_current_frame", default=None)


def _next_slot() -> tuple[_Frame, int]:
    frame = _current_frame.get()
    if frame is None:
        raise RenderError("hooks can only be called while a component renders")
    index = frame.index
    frame.index += 1
    return frame, index


def _deps_changed(old: tuple[Any, ...] | None, new: tuple[Any, ...] | None) -> bool:
    if old is None or new is None:
        return True
    return len(old) != len(new) or any(a is not b and a != b for a, b in zip(old, new, strict=True))


def use_state(initial: Any = None) -> tuple[Any, Callable[[Any], None]]:
    """Return ``(value, set_value)``; ``set_value`` accepts a value or an updater."""
    frame, index = _next_slot()
    slots = frame.instance.slots
    if index == len(slots):
        slots.append(_State(initial() if callable(initial) else initial))
    state: _State = slots[index]
    renderer = frame.renderer

    def set_state(value: Any) -> None:
        new = value(state.value) if callable(value) else value
        if new is not state.value and new != state.value:
            state.value = new
            renderer.invalidate()

    return state.value, set_state


def use_ref(initial: Any = None) -> Ref:
    frame, index = _next_slot()
    slots = frame.instance.slots
    if index == len(slots):
        slots.append(Ref(initial))
    return slots[index]


def use_memo(factory: Callable[[], Any], deps: Iterable[Any] | None = None) -> Any:
    frame, index = _next_slot()
    slots = frame.instance.slots
    key = None if deps is None else tuple(deps)
    if index == len(slots):
        slots.append(_Memo(key, factory()))
    else:
        memo: _Memo = slots[index]
        if _deps_changed(memo.deps, key):
            memo.deps, memo.value = key, factory()
    return slots[index].value


def use_callback(callback: Callable[..., Any], deps: Iterable[Any] | None = None) -> Callable[..., Any]:
    return use_memo(lambda: callback, deps)


def _use_effect(effect: Callable[[], Any], deps: Iterable[Any] | None, *, layout: bool) -> None:
    frame, index = _next_slot()
    slots = frame.instance.slots
    key = None if deps is None else tuple(deps)
    if index == len(slots):
        slots.append(_Effect(deps=key))
        frame.renderer.schedule(slots[index], effect, layout=layout)
        return
    slot: _Effect = slots[index]
    if _deps_changed(slot.deps, key):
        slot.deps = key
        frame.renderer.schedule(slot, effect, layout=layout)


def use_effect(effect: Callable[[], Any], deps: Iterable[Any] | None = None) -> None:
    """Run *effect* after the render pass when *deps* changed (every pass when ``None``)."""
    _use_effect(effect, deps, layout=False)


def use_layout_effect(effect: Callable[[], Any], deps: Iterable[Any] | None = None) -> None:
    """Like ``use_effect`` but runs before the ordinary effects of the same pass."""
    _use_effect(effect, deps, layout=True)


# ── Renderer ─────────────────────────────────────────────────────────


class Renderer:
    """Expands an element tree, keeping hook state per tree position."""

    def __init__(self, max_passes: int = MAX_RENDER_PASSES) -> None:
        self.max_passes = max_passes
        self.passes = 0
        self._instances: dict[tuple[Any, ...], _Instance] = {}
        self._layout_effects: list[tuple[_Effect, Callable[[], Any]]] = []
        self._effects: list[tuple[_Effect, Callable[[], Any]]] = []
        self._dirty = False

    def invalidate(self) -> None:
        self._dirty = True

    def schedule(self, slot: _Effect, effect: Callable[[], Any], *, layout: bool) -> None:
        (self._layout_effects if layout else self._effects).append((slot, effect))

    def run(self, element: Any) -> Any:
        """Render until state settles; return the expanded host tree."""
        for _ in range(self.max_passes):
            self.passes += 1
            self._dirty = False
            tree = self._expand(element, ())
            self._flush_effects()
            if not self._dirty:
                return tree
        raise RenderError(f"component did not settle after {self.max_passes} render passes")

    def _flush_effects(self) -> None:
        for queue in (self._layout_effects, self._effects):
            pending, queue[:] = list(queue), []
            for slot, effect in pending:
                if slot.cleanup is not None:
                    slot.cleanup()
                result = effect()
                slot.cleanup = result if callable(result) else None

    def _expand(self, node: Any, path: tuple[Any, ...]) -> Any:
        if node is None or isinstance(node, bool):
            return None
        if isinstance(node, list | tuple):
            return self._expand_children(node, path)
        if not isinstance(node, Element):
            return node

        if node.type is Fragment:
            return Element(Fragment, dict(node.props), self._expand_children(node.children, path))
        if node.is_host:
            props = {k: self._expand_prop(v, (*path, k)) for k, v in node.props.items()}
            return Element(node.type, props, self._expand_children(node.children, path))
        if not callable(node.type):
            raise RenderError(f"element type {node.type!r} is not a component")

        key = (*path, node.props.get("key"), node.type)
        instance = self._instances.setdefault(key, _Instance())
        props = dict(node.props)
        if node.children:
            props["children"] = node.children if len(node.children) > 1 else node.children[0]
        token = _current_frame.set(_Frame(self, instance))
        try:
            rendered = node.type(**props)
        finally:
            _current_frame.reset(token)
        return self._expand(rendered, key)

    def _expand_children(self, children: Iterable[Any], path: tuple[Any, ...]) -> tuple[Any, ...]:
        expanded: list[Any] = []
        for index, child in enumerate(children):
            result = self._expand(child, (*path, index))
            if result is None:
                continue
            if isinstance(result, tuple):
                expanded.extend(result)
            elif isinstance(result, Element) and result.type is Fragment:
                expanded.extend(result.children)
            else:
                expanded.append(result)
        return tuple(expanded)

    def _expand_prop(self, value: Any, path: tuple[Any, ...]) -> Any:
        if isinstance(value, Element):
            return self._expand(value, path)
        return value


def render(component: Any, /, **props: Any) -> Any:
    """Render a component (or an element) to a host-element tree."""
    element = component if isinstance(component, Element) else create_element(component, props)
    return Renderer().run(element)


def to_data(node: Any) -> Any:
    """JSON-friendly view of a rendered tree."""
    if isinstance(node, Element):
        data: dict[str, Any] = {"type": node.type_name}
        props = {k: to_data(v) for k, v in node.props.items() if not callable(v)}
        if props:
            data["props"] = props
        if node.children:
            data["children"] = [to_data(c) for c in node.children]
        return data
    if isinstance(node, dict):
        return {str(k): to_data(v) for k, v in node.items()}
    if isinstance(node, list | tuple):
        return [to_data(v) for v in node]
    if isinstance(node, str | int | float) or node is None:
        return node
    return repr(node)
