"""Markup compiler — tag-like markup expressions to plain factory calls.

Runs after the declaration rewriter. Markup may appear wherever a Python
expression may start::

    return <Flow nodes={nodes} fit_view><Background /></Flow>

compiles to::

    return ui.create_element(Flow, {"nodes": (nodes), "fit_view": True}, ui.create_element(Background, None))

INVARIANT: the compiled text has exactly as many line breaks as the
source, so Python's own error positions still point into the user's text.
Line breaks consumed inside an element are re-emitted between the call's
arguments, where implicit line joining makes them harmless.

The compiler is pure: every call builds its own ``_MarkupCompiler``.
"""

from __future__ import annotations

import html
import json
import re
from dataclasses import dataclass

from flowlab.domain.errors import CompileError

DEFAULT_FILENAME = "<component>"

_IDENTIFIER = re.compile(r"[^\W\d]\w*")
_TAG_NAME = re.compile(r"[^\W\d][\w.\-:]*")
_ATTR_NAME = re.compile(r"[^\W\d][\w\-:]*")
_NUMBER = re.compile(r"\d[\w.]*")
_STRING_PREFIXES = frozenset({"r", "u", "b", "f", "br", "rb", "fr", "rf"})
_QUOTES = ("'", '"')

# After these keywords an expression (and therefore markup) may start.
_EXPRESSION_KEYWORDS = frozenset(
    {
        "return",
        "yield",
        "lambda",
        "else",
        "and",
        "or",
        "not",
        "in",
        "is",
        "if",
        "elif",
        "while",
        "await",
        "assert",
        "from",
        "del",
    }
)


@dataclass(frozen=True)
class MarkupOptions:
    """Names the compiled calls are emitted against."""

    runtime_name: str = "ui"
    factory: str = "create_element"
    fragment: str = "Fragment"

    @property
    def factory_ref(self) -> str:
        return f"{self.runtime_name}.{self.factory}"

    @property
    def fragment_ref(self) -> str:
        return f"{self.runtime_name}.{self.fragment}"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def compile_markup(
    text: str,
    *,
    filename: str = DEFAULT_FILENAME,
    options: MarkupOptions | None = None,
) -> str:
    """Replace every markup expression in *text* with factory calls.

    The result is checked with :func:`compile`; a ``SyntaxError`` there is
    reported as a :class:`CompileError` at the same position. Nesting too
    deep for either pass is a CompileError as well.
    """
    compiler = _MarkupCompiler(text, options or MarkupOptions())
    try:
        output = compiler.compile()
        compile(output, filename, "exec", dont_inherit=True)
    except SyntaxError as exc:
        raise CompileError(exc.msg, line=exc.lineno, column=exc.offset) from exc
    except (RecursionError, MemoryError) as exc:
        raise CompileError("markup nested too deeply") from exc
    except ValueError as exc:
        raise CompileError(str(exc)) from exc
    return output


def append_default_export(text: str, binding: str) -> str:
    """Make *binding* the module's default export once the text has run."""
    if text and not text.endswith("\n"):
        text += "\n"
    return f'{text}if "{binding}" in globals(): module.exports["default"] = {binding}\n'


def clean_text_child(text: str) -> str:
    """Collapse a literal text child the way markup whitespace works.

    Each line is trimmed (the first keeps its leading space, the last its
    trailing space), whitespace-only lines disappear and the remaining
    lines are joined by a single space.
    """
    lines = text.replace("\r\n", "\n").split("\n")
    last_non_empty = max((i for i, line in enumerate(lines) if line.strip()), default=-1)
    parts: list[str] = []
    for i, line in enumerate(lines):
        trimmed = line.replace("\t", " ")
        if i != 0:
            trimmed = trimmed.lstrip(" ")
        if i != len(lines) - 1:
            trimmed = trimmed.rstrip(" ")
        if trimmed:
            if i != last_non_empty:
                trimmed += " "
            parts.append(trimmed)
    return html.unescape("".join(parts))


# ---------------------------------------------------------------------------
# Compiler
# ---------------------------------------------------------------------------


class _MarkupCompiler:
    def __init__(self, text: str, options: MarkupOptions) -> None:
        self.text = text
        self.options = options
        self.pos = 0
        self.pending_newlines = 0

    # -- helpers --------------------------------------------------------

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ""

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def error(self, message: str, pos: int | None = None) -> CompileError:
        at = self.pos if pos is None else pos
        line = self.text.count("\n", 0, at) + 1
        column = at - self.text.rfind("\n", 0, at)
        return CompileError(message, line=line, column=column)

    def flush(self) -> str:
        newlines = "\n" * self.pending_newlines
        self.pending_newlines = 0
        return newlines

    def skip_space(self) -> None:
        while not self.at_end() and self.peek() in " \t\r\f\n":
            if self.peek() == "\n":
                self.pending_newlines += 1
            self.pos += 1

    def read_string(self) -> str:
        """Return a Python string literal verbatim, starting at its quote."""
        start = self.pos
        quote = self.peek()
        if self.text.startswith(quote * 3, self.pos):
            self.pos += 3
            while not self.at_end() and not self.text.startswith(quote * 3, self.pos):
                self.pos += 2 if self.peek() == "\\" else 1
            self.pos = min(self.pos + 3, len(self.text))
            return self.text[start : self.pos]
        self.pos += 1
        while not self.at_end():
            ch = self.peek()
            if ch == "\\":
                self.pos += 2
            elif ch == quote:
                self.pos += 1
                break
            elif ch == "\n":
                break
            else:
                self.pos += 1
        return self.text[start : self.pos]

    def starts_markup(self) -> bool:
        nxt = self.peek(1)
        return nxt == ">" or bool(nxt) and bool(_IDENTIFIER.match(nxt))

    # -- code -----------------------------------------------------------

    def compile(self) -> str:
        output, _ = self.code(stop=None)
        return output

    def code(self, stop: str | None, opened: int = 0) -> tuple[str, bool]:
        """Copy Python code, compiling markup found in expression position.

        With ``stop="}"`` the scan ends at the first unmatched ``}``, which
        is left unconsumed. Returns the output and whether any significant
        token was seen.
        """
        out: list[str] = []
        depth = 0
        operand = False
        significant = False
        while not self.at_end():
            ch = self.peek()
            if stop is not None and ch == stop and depth == 0:
                return "".join(out), significant

            if ch == "\n":
                out.append(ch)
                self.pos += 1
                if depth == 0 and stop is None:
                    operand = False
                continue
            if ch in " \t\r\f":
                out.append(ch)
                self.pos += 1
                continue
            if ch == "\\" and self.peek(1) == "\n":
                out.append("\\\n")
                self.pos += 2
                continue
            if ch == "#":
                end = self.text.find("\n", self.pos)
                end = len(self.text) if end == -1 else end
                if stop is None:
                    out.append(self.text[self.pos : end])
                else:
                    # inside a container a comment also ends at the closing brace
                    brace = self.text.find(stop, self.pos, end)
                    end = end if brace == -1 else brace
                self.pos = end
                continue

            significant = True
            if ch in _QUOTES:
                out.append(self.read_string())
                operand = True
            elif _IDENTIFIER.match(ch):
                word = _IDENTIFIER.match(self.text, self.pos).group()  # type: ignore[union-attr]
                self.pos += len(word)
                if word.lower() in _STRING_PREFIXES and self.peek() in _QUOTES:
                    out.append(word + self.read_string())
                    operand = True
                else:
                    out.append(word)
                    operand = word not in _EXPRESSION_KEYWORDS
            elif ch.isdigit():
                number = _NUMBER.match(self.text, self.pos).group()  # type: ignore[union-attr]
                out.append(number)
                self.pos += len(number)
                operand = True
            elif ch == "<" and not operand and self.starts_markup():
                out.append(self.element())
                operand = True
            elif ch == "<":
                operator = "<" + self.peek(1) if self.peek(1) in "<=" and self.peek(1) else "<"
                out.append(operator)
                self.pos += len(operator)
                operand = False
            elif ch in "([{":
                out.append(ch)
                self.pos += 1
                depth += 1
                operand = False
            elif ch in ")]}":
                out.append(ch)
                self.pos += 1
                depth = max(depth - 1, 0)
                operand = True
            else:
                out.append(ch)
                self.pos += 1
                operand = False

        if stop is not None:
            raise self.error("unterminated '{' expression", opened)
        return "".join(out), significant

    def braced(self, opened: int) -> tuple[str, bool]:
        """Compile the rest of a ``{...}`` container opened at *opened*."""
        inner, significant = self.code(stop="}", opened=opened)
        self.pos += 1
        return inner, significant

    # -- markup ---------------------------------------------------------

    def element(self) -> str:
        start = self.pos
        self.pos += 1
        self.skip_space()

        if self.peek() == ">":
            self.pos += 1
            children = self.children(closing="", opened=start)
            return self.call(self.options.fragment_ref, "None", children)

        match = _TAG_NAME.match(self.text, self.pos)
        if match is None:
            raise self.error("expected a tag name after '<'")
        name = match.group()
        self.pos = match.end()
        type_expr = _tag_type(name)

        props = self.attributes(name)
        if self.text.startswith("/>", self.pos):
            self.pos += 2
            return self.call(type_expr, props, [])
        self.pos += 1  # ">"
        children = self.children(closing=name, opened=start)
        return self.call(type_expr, props, children)

    def call(self, type_expr: str, props: str, children: list[str]) -> str:
        args = [type_expr, props, *children]
        return f"{self.options.factory_ref}({', '.join(args)}{self.flush()})"

    def attributes(self, tag: str) -> str:
        entries: list[str] = []
        while True:
            self.skip_space()
            if self.at_end():
                raise self.error(f"unterminated <{tag}> tag")
            if self.text.startswith("/>", self.pos) or self.peek() == ">":
                break

            if self.peek() == "{":
                open_pos = self.pos
                self.pos += 1
                self.skip_space()
                if self.text.startswith("...", self.pos):
                    self.pos += 3
                elif self.text.startswith("**", self.pos):
                    self.pos += 2
                else:
                    raise self.error("expected '...' in spread attribute", open_pos)
                expr, significant = self.braced(open_pos)
                if not significant:
                    raise self.error("spread attribute needs an expression", open_pos)
                entries.append(f"{self.flush()}**({expr})")
                continue

            match = _ATTR_NAME.match(self.text, self.pos)
            if match is None:
                raise self.error(f"malformed attribute in <{tag}>")
            name = match.group()
            self.pos = match.end()
            self.skip_space()
            if self.peek() != "=":
                entries.append(f"{self.flush()}{json.dumps(name)}: True")
                continue

            self.pos += 1
            self.skip_space()
            value_pos = self.pos
            ch = self.peek()
            if ch in _QUOTES:
                end = self.text.find(ch, self.pos + 1)
                if end == -1:
                    raise self.error(f"unterminated value for attribute {name!r}")
                raw = self.text[self.pos + 1 : end]
                self.pending_newlines += raw.count("\n")
                self.pos = end + 1
                value = json.dumps(html.unescape(raw))
            elif ch == "{":
                self.pos += 1
                expr, significant = self.braced(value_pos)
                if not significant:
                    raise self.error(f"attribute {name!r} needs an expression", value_pos)
                value = f"({expr})"
            elif ch == "<" and self.starts_markup():
                value = self.element()
            else:
                raise self.error(f"malformed value for attribute {name!r}")
            entries.append(f"{self.flush()}{json.dumps(name)}: {value}")

        if not entries:
            return "None"
        return "{" + ", ".join(entries) + "}"

    def children(self, closing: str, opened: int) -> list[str]:
        children: list[str] = []
        label = f"<{closing}>" if closing else "fragment <>"
        while True:
            if self.at_end():
                raise self.error(f"unterminated {label}", opened)

            if self.text.startswith("</", self.pos):
                close_pos = self.pos
                self.pos += 2
                self.skip_space()
                match = _TAG_NAME.match(self.text, self.pos)
                name = match.group() if match else ""
                if match:
                    self.pos = match.end()
                self.skip_space()
                if self.peek() != ">":
                    raise self.error("malformed closing tag", close_pos)
                self.pos += 1
                if name != closing:
                    found = f"</{name}>"
                    raise self.error(f"expected </{closing}> but found {found}", close_pos)
                return children

            ch = self.peek()
            if ch == "<":
                if not self.starts_markup():
                    raise self.error("unexpected '<' in markup text")
                children.append(self.flush() + self.element())
            elif ch == "{":
                open_pos = self.pos
                self.pos += 1
                spread = False
                save, saved_newlines = self.pos, self.pending_newlines
                self.skip_space()
                if self.text.startswith("...", self.pos):
                    self.pos += 3
                    spread = True
                else:
                    self.pos, self.pending_newlines = save, saved_newlines
                expr, significant = self.braced(open_pos)
                if not significant:
                    if spread:
                        raise self.error("spread child needs an expression", open_pos)
                    self.pending_newlines += expr.count("\n")
                    continue
                prefix = "*" if spread else ""
                children.append(f"{self.flush()}{prefix}({expr})")
            else:
                start = self.pos
                while not self.at_end() and self.peek() not in "<{":
                    self.pos += 1
                raw = self.text[start : self.pos]
                self.pending_newlines += raw.count("\n")
                value = clean_text_child(raw)
                if value:
                    children.append(self.flush() + json.dumps(value))


def _tag_type(name: str) -> str:
    """Host tags become strings; component references stay expressions."""
    if "-" in name or ":" in name or (name[0].islower() and "." not in name):
        return json.dumps(name)
    return name
