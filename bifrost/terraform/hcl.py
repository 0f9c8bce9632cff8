"""HCL value model and renderer.

Section generators build attribute maps out of plain Python values (str,
bool, int, float, list, dict) plus the expression types defined here.
Rendering is a single deterministic pass: attribute order is the insertion
order of the map, and nothing depends on hashing or the clock.

Escaping policy for literal strings: backslash, double quote, newline,
carriage return and tab use their HCL escapes, any other control character
becomes ``\\uNNNN``, and template introducers ``${`` / ``%{`` are doubled so
they are emitted literally. Only ``Interpolation`` values keep ``${...}``.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Optional

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")

INDENT = "  "

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


class Expression:
    """A value rendered verbatim rather than as a quoted literal."""

    def render(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class Reference(Expression):
    """Structured reference to another declaration: ``kind.name.attribute``.

    An empty attribute renders the bare ``kind.name`` form used by
    ``depends_on``.
    """

    kind: str
    name: str
    attribute: str = "id"

    def render(self) -> str:
        if not self.attribute:
            return f"{self.kind}.{self.name}"
        return f"{self.kind}.{self.name}.{self.attribute}"


@dataclass(frozen=True)
class VarRef(Expression):
    """Reference to an input variable, optionally indexed by a map key."""

    name: str
    key: Optional[str] = None

    def render(self) -> str:
        if self.key is None:
            return f"var.{self.name}"
        return f"var.{self.name}[{quote(self.key)}]"


@dataclass(frozen=True)
class Interpolation(Expression):
    """A quoted string whose ``${...}`` sequences are live template expressions."""

    template: str

    def render(self) -> str:
        return quote(self.template, template=True)


@dataclass(frozen=True)
class Raw(Expression):
    """A bare expression such as ``string``, ``map(string)`` or ``each.value``."""

    text: str

    def render(self) -> str:
        return self.text


@dataclass(frozen=True)
class Block:
    """A nested block such as ``log_config { ... }``.

    A list of blocks under one attribute key renders as repeated blocks.
    """

    attributes: Mapping[str, Any] = field(default_factory=dict)


def quote(text: str, template: bool = False) -> str:
    """Render a string as an HCL quoted literal."""
    out = []
    for char in text:
        if char in _ESCAPES:
            out.append(_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            out.append(f"\\u{ord(char):04x}")
        else:
            out.append(char)
    escaped = "".join(out)
    if not template:
        escaped = escaped.replace("${", "$${").replace("%{", "%%{")
    return f'"{escaped}"'


def render_key(key: str) -> str:
    return key if IDENTIFIER.match(key) else quote(key)


def render_value(value: Any, depth: int = 0) -> str:
    """Render a value that sits on the right-hand side of ``=``."""
    if isinstance(value, Expression):
        return value.render()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return quote(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(render_value(item, depth) for item in value) + "]"
    if isinstance(value, Mapping):
        if not value:
            return "{}"
        pad = INDENT * (depth + 1)
        width = max(len(render_key(str(k))) for k in value)
        lines = ["{"]
        for key, item in value.items():
            rendered_key = render_key(str(key))
            lines.append(f"{pad}{rendered_key.ljust(width)} = {render_value(item, depth + 1)}")
        lines.append(f"{INDENT * depth}}}")
        return "\n".join(lines)
    if value is None:
        return "null"
    raise TypeError(f"Cannot render {type(value).__name__} as HCL")


def _is_block(value: Any) -> bool:
    if isinstance(value, Block):
        return True
    return isinstance(value, (list, tuple)) and bool(value) and all(
        isinstance(item, Block) for item in value
    )


def render_body(attributes: Mapping[str, Any], depth: int = 1) -> list[str]:
    """Render the inside of a block, aligning ``=`` across attribute runs.

    Nested blocks are separated from neighbouring attributes by a blank line.
    """
    pad = INDENT * depth
    lines: list[str] = []
    items = list(attributes.items())
    run_width = 0
    previous_was_block = False

    for position, (key, value) in enumerate(items):
        if _is_block(value):
            blocks = [value] if isinstance(value, Block) else list(value)
            for block in blocks:
                if lines:
                    lines.append("")
                lines.append(f"{pad}{key} {{")
                lines.extend(render_body(block.attributes, depth + 1))
                lines.append(f"{pad}}}")
            previous_was_block = True
            continue

        if previous_was_block or position == 0 or run_width == 0:
            run_width = _run_width(items, position)
            if previous_was_block:
                lines.append("")
        previous_was_block = False
        lines.append(f"{pad}{key.ljust(run_width)} = {render_value(value, depth)}")

    return lines


def _run_width(items: list, start: int) -> int:
    width = 0
    for key, value in items[start:]:
        if _is_block(value):
            break
        width = max(width, len(key))
    return width


def render_block(keyword: str, labels: tuple[str, ...], attributes: Mapping[str, Any]) -> str:
    """Render a top-level block like ``resource "kind" "name" { ... }``."""
    header = " ".join([keyword, *(quote(label) for label in labels)])
    body = render_body(attributes, depth=1)
    return "\n".join([f"{header} {{", *body, "}"])


def iter_expressions(value: Any) -> Iterator[Expression]:
    """Yield every expression nested anywhere inside a value."""
    if isinstance(value, Expression):
        yield value
    elif isinstance(value, Block):
        for item in value.attributes.values():
            yield from iter_expressions(item)
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from iter_expressions(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_expressions(item)
