"""Parsing package — tree-sitter Rust parser and the declaration nodes it yields."""

from __future__ import annotations

from cargo_diagram.parsing.ast import (
    Attribute,
    Declaration,
    EnumDecl,
    FieldDecl,
    FunctionDecl,
    ImplDecl,
    LiteralType,
    ModDecl,
    ParamDecl,
    ParsedFile,
    ParseError,
    RefType,
    SliceType,
    StructDecl,
    TraitDecl,
    TupleType,
    TypeExpr,
)
from cargo_diagram.parsing.rust import parse_source

__all__ = [
    "Attribute",
    "Declaration",
    "EnumDecl",
    "FieldDecl",
    "FunctionDecl",
    "ImplDecl",
    "LiteralType",
    "ModDecl",
    "ParamDecl",
    "ParseError",
    "ParsedFile",
    "RefType",
    "SliceType",
    "StructDecl",
    "TraitDecl",
    "TupleType",
    "TypeExpr",
    "parse_source",
]
