"""Declaration nodes produced by the parser and consumed by the model builder.

The builder only understands the closed set of node kinds defined here
(``Declaration``).  Anything the parser cannot map onto one of them is dropped
before it reaches the builder.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from tree_sitter import Node


class ParseError(Exception):
    """Raised when a source file cannot be parsed."""

    def __init__(self, path: str, reason: str = "syntax error") -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


# ---------------------------------------------------------------------------
# Attributes and types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Attribute:
    """An outer attribute such as ``#[derive(Debug)]`` or ``#[doc = "..."]``.

    ``arguments`` is the text between the delimiters of a list-style
    attribute, ``value`` the string content of a ``name = "value"`` one.
    Doc comments arrive as ``Attribute("doc", value=...)``.
    """

    path: str
    arguments: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class RefType:
    elem: TypeExpr


@dataclass(frozen=True)
class TupleType:
    elems: tuple[TypeExpr, ...]


@dataclass(frozen=True)
class SliceType:
    elem: TypeExpr


@dataclass(frozen=True)
class LiteralType:
    """Any other type, kept as its source text (paths, generics, arrays, fn pointers)."""

    text: str
    is_path: bool = False


TypeExpr = Union[RefType, TupleType, SliceType, LiteralType]


# ---------------------------------------------------------------------------
# Declaration nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldDecl:
    name: str | None
    type: TypeExpr


@dataclass(frozen=True)
class ParamDecl:
    name: str
    type: TypeExpr


@dataclass(frozen=True)
class StructDecl:
    name: str
    attributes: tuple[Attribute, ...] = ()
    public: bool = False
    fields: tuple[FieldDecl, ...] = ()


@dataclass(frozen=True)
class EnumDecl:
    name: str
    attributes: tuple[Attribute, ...] = ()
    public: bool = False
    variants: tuple[str, ...] = ()


@dataclass(frozen=True)
class FunctionDecl:
    """A function, method or trait signature.

    ``receiver`` is ``None`` for functions without a ``self`` parameter,
    ``"Self"`` for the shorthand forms (``self``, ``&self``, ``&mut self``)
    and the declared type for a typed receiver (``self: Box<Self>``).
    """

    name: str
    attributes: tuple[Attribute, ...] = ()
    public: bool = False
    parameters: tuple[ParamDecl, ...] = ()
    return_type: TypeExpr | None = None
    receiver: TypeExpr | None = None


@dataclass(frozen=True)
class TraitDecl:
    name: str
    attributes: tuple[Attribute, ...] = ()
    public: bool = False
    functions: tuple[FunctionDecl, ...] = ()


@dataclass(frozen=True)
class ImplDecl:
    """An ``impl`` block.

    ``target`` is the simple name of the implementing type, or ``None`` when
    the type is not a plain (optionally generic) name.  ``trait`` is the raw
    path text of the implemented trait for ``impl Trait for Type`` blocks.
    """

    target: str | None
    trait: str | None = None
    attributes: tuple[Attribute, ...] = ()
    methods: tuple[FunctionDecl, ...] = ()


@dataclass(frozen=True)
class ModDecl:
    """A ``mod`` item; ``items`` is ``None`` for ``mod name;`` declarations."""

    name: str
    attributes: tuple[Attribute, ...] = ()
    public: bool = False
    items: tuple[Declaration, ...] | None = None


Declaration = Union[StructDecl, EnumDecl, TraitDecl, FunctionDecl, ImplDecl, ModDecl]


@dataclass(frozen=True)
class ParsedFile:
    """Module-level declarations of one source file, in source order."""

    file_path: str
    declarations: list[Declaration] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def node_text(node: Node) -> str:
    """Get the text content of a tree-sitter node as a string."""
    text = node.text
    if text is None:
        return ""
    return text.decode("utf-8", errors="replace")
