"""Declaration rewriter — module import/export syntax to ``resolve()`` calls.

Pure text-to-text pass, no infrastructure dependencies. A small
recursive-descent scanner walks the source, skipping Python string literals
and comments, and parses import/export declarations only where a statement
starts. Each declaration is replaced in place by an equivalent assignment
against the injected ``resolve`` capability. Replacements keep the line
count of the text they replace, so positions reported by later stages still
point into the user's source.

Forms, in rule order::

    import "./flow.css"                  ->  (removed)
    import D, { a, b as c } from "m"     ->  D = resolve.default("m"); (a, c) = resolve.named("m", "a", "b")
    import * as N from "m"               ->  N = resolve("m")
    import { a, b } from "m"             ->  (a, b) = resolve.named("m", "a", "b")
    import D from "m"                    ->  D = resolve.default("m")
    import "m"                           ->  (removed)
    export default def Name(...):        ->  def Name(...):        (default binding: Name)
    export default Name                  ->  (removed)             (default binding: Name)
    export const X = 1                   ->  X = 1
    export { A, B }                      ->  (removed)
    export default <expr>                ->  <expr>

Plain Python imports (``import os``, ``import a.b as c``) are not
declarations in this grammar and are left untouched.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from flowlab.domain.errors import DeclarationSyntaxError, RewriteAmbiguity

logger = logging.getLogger(__name__)

RESOLVE_NAME = "resolve"

# Side-effect imports with these extensions are resources, not code.
RESOURCE_EXTENSIONS = frozenset({"css", "scss", "sass", "less"})

_DECLARATION_KEYWORDS = frozenset({"const", "let", "var"})
_STRING_PREFIXES = frozenset({"r", "u", "b", "f", "br", "rb", "fr", "rf"})
_IDENTIFIER = re.compile(r"[^\W\d]\w*")
_QUOTES = ("'", '"')

_IMPORT_KINDS = frozenset(
    {"side_effect", "default", "named", "namespace", "default_named", "default_namespace"}
)


@dataclass(frozen=True)
class Declaration:
    """One recognized import/export statement, or the prefix of one.

    ``start``/``end`` delimit the replaced span. For prefix forms
    (``export default def ...``) the span covers only the export keywords
    and the declaration itself stays in place.
    """

    kind: str
    start: int
    end: int
    module: str | None = None
    default: str | None = None
    namespace: str | None = None
    names: tuple[tuple[str, str], ...] = ()  # (exported name, local binding)
    binding: str | None = None
    chained: bool = False  # another statement follows on the same line


@dataclass(frozen=True)
class RewriteResult:
    """Rewritten text plus the default export it recorded."""

    text: str
    default_binding: str | None = None
    warnings: tuple[RewriteAmbiguity, ...] = ()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def rewrite_declarations(
    text: str,
    *,
    resource_extensions: Iterable[str] = RESOURCE_EXTENSIONS,
) -> RewriteResult:
    """Rewrite every import/export declaration in *text*.

    Side-effect imports whose extension is in *resource_extensions* are
    dropped as resources; every other side-effect import is dropped too.

    Raises:
        DeclarationSyntaxError: a statement starts like a declaration but
            does not complete the grammar.
    """
    extensions = frozenset(ext.lower().lstrip(".") for ext in resource_extensions)
    pieces: list[str] = []
    defaults: list[Declaration] = []
    cursor = 0
    for decl in scan_declarations(text):
        pieces.append(text[cursor : decl.start])
        pieces.append(_pad_lines(_render(decl, extensions), text[decl.start : decl.end]))
        cursor = decl.end
        if decl.kind.startswith("export_default"):
            defaults.append(decl)
    pieces.append(text[cursor:])

    binding, warnings = _pick_default(defaults, text)
    return RewriteResult(text="".join(pieces), default_binding=binding, warnings=warnings)


def scan_declarations(text: str) -> Iterator[Declaration]:
    """Yield declarations in source order.

    Only statement starts are inspected: the beginning of a line (after
    indentation) or the position after a ``;`` that ended a declaration.
    String literals and comments are skipped whole.
    """
    s = _Scanner(text)
    statement_start = True
    while not s.at_end():
        if statement_start:
            statement_start = False
            s.skip_inline_space()
            word = s.peek_word()
            if word in ("import", "export"):
                save = s.pos
                decl = _parse_import(s) if word == "import" else _parse_export(s)
                if decl is not None:
                    yield decl
                    s.pos = decl.end
                    statement_start = decl.chained
                    continue
                s.pos = save
            continue

        ch = s.peek()
        if ch == "\n":
            s.pos += 1
            statement_start = True
        elif ch == "\\" and s.peek(1) == "\n":
            s.pos += 2
        elif ch == "#":
            s.skip_comment()
        elif ch in _QUOTES:
            s.skip_string()
        elif _IDENTIFIER.match(ch):
            word = s.read_word() or ""
            if word.lower() in _STRING_PREFIXES and s.peek() in _QUOTES:
                s.skip_string()
        else:
            s.pos += 1


def is_resource(module: str, extensions: Iterable[str] = RESOURCE_EXTENSIONS) -> bool:
    """True when *module* names a non-executable resource such as a stylesheet."""
    _, dot, ext = module.rpartition(".")
    return bool(dot) and ext.lower() in extensions


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------


class _Scanner:
    """Cursor over the source text with the few lexical helpers the grammar needs."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ""

    def peek_word(self) -> str | None:
        match = _IDENTIFIER.match(self.text, self.pos)
        return match.group() if match else None

    def read_word(self) -> str | None:
        match = _IDENTIFIER.match(self.text, self.pos)
        if match is None:
            return None
        self.pos = match.end()
        return match.group()

    def skip_inline_space(self) -> None:
        while self.peek() in (" ", "\t", "\r", "\f") and not self.at_end():
            self.pos += 1

    def skip_space(self) -> None:
        """Skip whitespace, newlines and comments (inside braces)."""
        while not self.at_end():
            ch = self.peek()
            if ch in " \t\r\f\n":
                self.pos += 1
            elif ch == "#":
                self.skip_comment()
            else:
                break

    def skip_comment(self) -> None:
        end = self.text.find("\n", self.pos)
        self.pos = len(self.text) if end == -1 else end

    def skip_string(self) -> None:
        """Skip a Python string literal starting at the quote.

        Single-quoted strings stop at the end of the line, so stray
        apostrophes in markup text cannot swallow the rest of the file.
        """
        quote = self.peek()
        if self.text.startswith(quote * 3, self.pos):
            end = self.text.find(quote * 3, self.pos + 3)
            while end != -1 and _escaped(self.text, end):
                end = self.text.find(quote * 3, end + 1)
            self.pos = len(self.text) if end == -1 else end + 3
            return
        self.pos += 1
        while not self.at_end():
            ch = self.peek()
            if ch == "\\":
                self.pos += 2
            elif ch == quote:
                self.pos += 1
                return
            elif ch == "\n":
                return
            else:
                self.pos += 1

    def read_module_string(self) -> str:
        quote = self.peek()
        if quote not in _QUOTES:
            raise self.error("expected a quoted module name")
        start = self.pos + 1
        self.pos = start
        while not self.at_end():
            ch = self.peek()
            if ch == "\\":
                self.pos += 2
            elif ch == quote:
                value = self.text[start : self.pos]
                self.pos += 1
                return value
            elif ch == "\n":
                break
            else:
                self.pos += 1
        raise self.error("unterminated module name")

    def expect_word(self, word: str) -> None:
        if self.peek_word() != word:
            raise self.error(f"expected {word!r}")
        self.read_word()

    def statement_ends_here(self) -> bool:
        save = self.pos
        self.skip_inline_space()
        if self.peek() == ";":
            self.pos += 1
            self.skip_inline_space()
        ends = self.at_end() or self.peek() in ("\n", "#")
        self.pos = save
        return ends

    def error(self, message: str) -> DeclarationSyntaxError:
        line = self.text.count("\n", 0, self.pos) + 1
        column = self.pos - self.text.rfind("\n", 0, self.pos)
        return DeclarationSyntaxError(message, line=line, column=column)


def _escaped(text: str, index: int) -> bool:
    backslashes = 0
    while index > 0 and text[index - 1] == "\\":
        backslashes += 1
        index -= 1
    return backslashes % 2 == 1


# ---------------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------------


def _parse_import(s: _Scanner) -> Declaration | None:
    start = s.pos
    s.read_word()
    if s.peek() not in (" ", "\t", "{", "*", '"', "'"):
        return None
    s.skip_inline_space()
    ch = s.peek()

    if ch in _QUOTES:
        module = s.read_module_string()
        end, chained = _end_statement(s, "import")
        return Declaration("side_effect", start, end, module=module, chained=chained)

    if ch == "{":
        names = _parse_name_list(s)
        module = _parse_from(s)
        end, chained = _end_statement(s, "import")
        return Declaration("named", start, end, module=module, names=names, chained=chained)

    if ch == "*":
        s.pos += 1
        namespace = _parse_alias(s)
        module = _parse_from(s)
        end, chained = _end_statement(s, "import")
        return Declaration("namespace", start, end, module=module, namespace=namespace, chained=chained)

    default = s.read_word()
    if default is None:
        return None
    s.skip_inline_space()

    if s.peek() == ",":
        s.pos += 1
        s.skip_inline_space()
        if s.peek() == "{":
            names = _parse_name_list(s)
            module = _parse_from(s)
            end, chained = _end_statement(s, "import")
            return Declaration(
                "default_named", start, end, module=module, default=default, names=names, chained=chained
            )
        if s.peek() == "*":
            s.pos += 1
            namespace = _parse_alias(s)
            module = _parse_from(s)
            end, chained = _end_statement(s, "import")
            return Declaration(
                "default_namespace",
                start,
                end,
                module=module,
                default=default,
                namespace=namespace,
                chained=chained,
            )
        # import a, b  (plain Python)
        return None

    if s.peek_word() == "from":
        module = _parse_from(s)
        end, chained = _end_statement(s, "import")
        return Declaration("default", start, end, module=module, default=default, chained=chained)

    # import os / import a.b as c  (plain Python)
    return None


def _parse_export(s: _Scanner) -> Declaration | None:
    start = s.pos
    s.read_word()
    if s.peek() not in (" ", "\t", "{", "*"):
        return None
    s.skip_inline_space()
    ch = s.peek()

    if ch == "{":
        _parse_name_list(s)
        s.skip_inline_space()
        if s.peek_word() == "from":
            _parse_from(s)
        end, chained = _end_statement(s, "export")
        return Declaration("export_list", start, end, chained=chained)

    if ch == "*":
        s.pos += 1
        s.skip_inline_space()
        if s.peek_word() == "as":
            _parse_alias(s)
        _parse_from(s)
        end, chained = _end_statement(s, "export")
        return Declaration("export_list", start, end, chained=chained)

    word = s.peek_word()
    if word is None:
        # `export (x)`, `export = 1`: a Python name, not a declaration
        return None

    if word == "default":
        return _parse_export_default(s, start)

    body = s.pos
    if word in _DECLARATION_KEYWORDS:
        s.read_word()
        s.skip_inline_space()
        name_pos = s.pos
        name = s.read_word()
        if name is None:
            raise s.error(f"expected a name after 'export {word}'")
        return Declaration("export_decl", start, name_pos, binding=name)

    name = _declared_name(s)
    if name is not None:
        return Declaration("export_decl", start, body, binding=name)

    s.read_word()
    s.skip_inline_space()
    if s.peek() == "=" and s.peek(1) != "=":
        return Declaration("export_decl", start, body, binding=word)
    s.pos = body
    raise s.error("unsupported export form")


def _parse_export_default(s: _Scanner, start: int) -> Declaration:
    s.read_word()
    s.skip_inline_space()
    body = s.pos
    if s.at_end() or s.peek() == "\n":
        raise s.error("expected a declaration or expression after 'export default'")

    word = s.peek_word()
    if word in _DECLARATION_KEYWORDS:
        s.read_word()
        s.skip_inline_space()
        name_pos = s.pos
        name = s.read_word()
        if name is None:
            raise s.error(f"expected a name after 'export default {word}'")
        return Declaration("export_default_decl", start, name_pos, binding=name)

    name = _declared_name(s)
    if name is not None:
        return Declaration("export_default_decl", start, body, binding=name)

    if word is not None:
        s.read_word()
        if s.statement_ends_here():
            end, chained = _end_statement(s, "export")
            return Declaration("export_default_ref", start, end, binding=word, chained=chained)
        s.pos = body

    return Declaration("export_default_expr", start, body)


def _declared_name(s: _Scanner) -> str | None:
    """Name declared by a ``def``/``async def``/``class`` at the cursor, if any.

    Leaves the cursor where it was.
    """
    save = s.pos
    try:
        word = s.read_word()
        if word == "async":
            s.skip_inline_space()
            word = s.read_word()
        if word not in ("def", "class"):
            return None
        s.skip_inline_space()
        name = s.read_word()
        if name is None:
            raise s.error(f"expected a name after '{word}'")
        return name
    finally:
        s.pos = save


def _parse_name_list(s: _Scanner) -> tuple[tuple[str, str], ...]:
    s.pos += 1  # "{"
    names: list[tuple[str, str]] = []
    while True:
        s.skip_space()
        if s.at_end():
            raise s.error("unterminated '{' in declaration")
        if s.peek() == "}":
            s.pos += 1
            return tuple(names)
        exported = s.read_word()
        if exported is None:
            raise s.error("expected a name in '{ ... }'")
        s.skip_space()
        local = exported
        if s.peek_word() == "as":
            s.read_word()
            s.skip_space()
            alias = s.read_word()
            if alias is None:
                raise s.error(f"expected a name after '{exported} as'")
            local = alias
            s.skip_space()
        names.append((exported, local))
        if s.peek() == ",":
            s.pos += 1
        elif s.at_end():
            raise s.error("unterminated '{' in declaration")
        elif s.peek() != "}":
            raise s.error("expected ',' or '}' in '{ ... }'")


def _parse_alias(s: _Scanner) -> str:
    s.skip_inline_space()
    s.expect_word("as")
    s.skip_inline_space()
    name = s.read_word()
    if name is None:
        raise s.error("expected a name after 'as'")
    return name


def _parse_from(s: _Scanner) -> str:
    s.skip_inline_space()
    s.expect_word("from")
    s.skip_inline_space()
    return s.read_module_string()


def _end_statement(s: _Scanner, what: str) -> tuple[int, bool]:
    """Consume an optional ``;``; return the span end and whether a statement follows."""
    end = s.pos
    s.skip_inline_space()
    semicolon = s.peek() == ";"
    if semicolon:
        s.pos += 1
        end = s.pos
    s.skip_inline_space()
    if s.at_end() or s.peek() in ("\n", "#"):
        return end, False
    if semicolon:
        return end, True
    raise s.error(f"unexpected text after {what} declaration")


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render(decl: Declaration, extensions: frozenset[str]) -> str:
    if decl.kind in _IMPORT_KINDS:
        code = _render_import(decl, extensions)
    else:
        code = ""
    if code and decl.chained:
        code += ";"
    return code


def _render_import(decl: Declaration, extensions: frozenset[str]) -> str:
    module = json.dumps(decl.module)
    if decl.kind == "side_effect":
        what = "resource" if is_resource(decl.module or "", extensions) else "side-effect"
        logger.debug("Dropped %s import %s", what, decl.module)
        return ""
    if decl.kind == "namespace":
        return f"{decl.namespace} = {RESOLVE_NAME}({module})"
    if decl.kind == "named":
        return _render_named(module, decl.names)

    default = f"{decl.default} = {RESOLVE_NAME}.default({module})"
    if decl.kind == "default_named":
        return f"{default}; {_render_named(module, decl.names)}"
    if decl.kind == "default_namespace":
        return f"{default}; {decl.namespace} = {RESOLVE_NAME}({module})"
    return default


def _render_named(module: str, names: tuple[tuple[str, str], ...]) -> str:
    if not names:
        return f"{RESOLVE_NAME}({module})"
    targets = ", ".join(local for _, local in names)
    if len(names) == 1:
        targets += ","
    members = ", ".join(json.dumps(exported) for exported, _ in names)
    return f"({targets}) = {RESOLVE_NAME}.named({module}, {members})"


def _pad_lines(replacement: str, original: str) -> str:
    missing = original.count("\n") - replacement.count("\n")
    return replacement + "\n" * missing if missing > 0 else replacement


def _pick_default(
    defaults: list[Declaration], text: str
) -> tuple[str | None, tuple[RewriteAmbiguity, ...]]:
    """First default export that names a binding wins; the rest are reported."""
    winner = next((d for d in defaults if d.binding is not None), None)
    if len(defaults) < 2:
        return (winner.binding if winner else None), ()

    first = winner or defaults[0]
    kept = winner.binding if winner and winner.binding else "expression"
    warnings: list[RewriteAmbiguity] = []
    for decl in defaults:
        if decl is first:
            continue
        line = text.count("\n", 0, decl.start) + 1
        ambiguity = RewriteAmbiguity(binding=decl.binding, line=line, kept=kept)
        logger.warning("Ambiguous default export: %s", ambiguity)
        warnings.append(ambiguity)
    return (winner.binding if winner else None), tuple(warnings)
