"""Signature and type-name formatting shared by the builder and the renderers.

All functions are pure.  Empty input produces an empty string.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from cargo_diagram.model import UNIT_TYPE
from cargo_diagram.parsing.ast import LiteralType, RefType, SliceType, TupleType

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cargo_diagram.model import Function, Parameter
    from cargo_diagram.parsing.ast import TypeExpr

_OPEN = "<(["
_CLOSE = ">)]"

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_SEGMENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*\s*(<.*>|\(.*\)(\s*->.+)?)?$", re.DOTALL)


# ---------------------------------------------------------------------------
# Low-level text helpers
# ---------------------------------------------------------------------------


def split_top_level(text: str, sep: str) -> list[str]:
    """Split *text* on *sep*, ignoring separators nested in ``<>``, ``()`` or ``[]``.

    The ``>`` of a ``->`` arrow does not close a bracket.
    """
    if not text:
        return []
    parts: list[str] = []
    depth = 0
    start = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in _OPEN:
            depth += 1
        elif ch in _CLOSE and not (ch == ">" and i > 0 and text[i - 1] == "-"):
            depth = max(depth - 1, 0)
        elif depth == 0 and text.startswith(sep, i):
            parts.append(text[start:i])
            i += len(sep)
            start = i
            continue
        i += 1
    parts.append(text[start:])
    return parts


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def is_path(text: str) -> bool:
    """Check that *text* is a ``::``-separated path of identifiers with optional generic arguments."""
    segments = [s.strip() for s in split_top_level(text.strip(), "::")]
    if segments and segments[0] == "":
        segments = segments[1:]  # leading ``::``
    if not segments:
        return False
    for segment in segments:
        if segment.startswith("<") and segment.endswith(">"):
            continue  # turbofish
        if not _SEGMENT_RE.match(segment):
            return False
    return True


def format_path(text: str) -> str:
    """Format a trait or derive path, collapsing generic arguments to ``<...>``.

    ``serde::Serialize`` stays as is, ``From<String>`` becomes ``From<...>``,
    ``Fn(u8) -> u8`` becomes ``Fn<...>``.
    """
    names: list[str] = []
    for raw in split_top_level(text.strip(), "::"):
        segment = raw.strip()
        if not segment:
            continue
        if segment.startswith("<"):
            if names and not names[-1].endswith("<...>"):
                names[-1] = f"{names[-1]}<...>"
            continue
        match = _IDENT_RE.match(segment)
        if match is None:
            names.append(collapse_whitespace(segment))
            continue
        ident = match.group(0)
        names.append(f"{ident}<...>" if segment[match.end() :].strip() else ident)
    return "::".join(names)


# ---------------------------------------------------------------------------
# Types and signatures
# ---------------------------------------------------------------------------


def type_name(expr: TypeExpr | None) -> str:
    """Normalize a declared type into the textual form used in the model.

    References are unwrapped, tuples and slices are rebuilt from their
    element names, and plain paths lose their leading module qualification.
    Anything else is kept literally.
    """
    if expr is None:
        return ""
    if isinstance(expr, RefType):
        return type_name(expr.elem)
    if isinstance(expr, TupleType):
        return f"({', '.join(type_name(e) for e in expr.elems)})"
    if isinstance(expr, SliceType):
        return f"[{type_name(expr.elem)}]"
    if isinstance(expr, LiteralType):
        text = collapse_whitespace(expr.text)
        if expr.is_path:
            segments = split_top_level(text, "::")
            if segments:
                return segments[-1].strip()
        return text
    return ""


def format_parameters(parameters: Iterable[Parameter]) -> str:
    return ", ".join(f"{p.name}: {p.type_name}" for p in parameters)


def format_signature(name: str, parameters: Iterable[Parameter], return_type: str) -> str:
    """``name(a: A, b: B) -> R``; the arrow is always present."""
    if not name:
        return ""
    return f"{name}({format_parameters(parameters)}) -> {return_type or UNIT_TYPE}"


def format_function(function: Function) -> str:
    return format_signature(function.name, function.parameters, function.return_type)
