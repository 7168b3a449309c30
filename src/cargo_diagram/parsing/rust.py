"""Rust support — tree-sitter parser that yields builder declarations.

Only module-level items (and the items of inline ``mod`` blocks) are
converted.  Outer attributes and doc comments are siblings that precede an
item in the tree-sitter grammar, so they are collected by walking backwards
from the item.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import tree_sitter_rust as tsrust
from tree_sitter import Language, Parser

from cargo_diagram.parsing.ast import (
    Attribute,
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
    node_text,
)

if TYPE_CHECKING:
    from tree_sitter import Node

    from cargo_diagram.parsing.ast import Declaration, TypeExpr

# ---------------------------------------------------------------------------
# Language registration
# ---------------------------------------------------------------------------

RUST_LANGUAGE = Language(tsrust.language())

_PATH_TYPES = frozenset({"type_identifier", "scoped_type_identifier", "generic_type", "primitive_type"})
_COMMENT_TYPES = frozenset({"line_comment", "block_comment"})
_FUNCTION_TYPES = frozenset({"function_item", "function_signature_item"})
_STRING_RE = re.compile(r'^r?(#*)"(.*)"\1$', re.DOTALL)


# ---------------------------------------------------------------------------
# Attributes, docs, visibility
# ---------------------------------------------------------------------------


def _doc_comment_text(node: Node) -> str | None:
    """Text of an outer doc comment (``///`` or ``/** */``), else ``None``."""
    text = node_text(node)
    if node.type == "line_comment":
        if text.startswith("///") and not text.startswith("////"):
            return text[3:].rstrip("\r\n")
        return None
    if text.startswith("/**") and not text.startswith(("/***", "/**/")) and text.endswith("*/"):
        return text[3:-2]
    return None


def _string_value(node: Node) -> str | None:
    match = _STRING_RE.match(node_text(node))
    return match.group(2) if match else None


def _attribute(item: Node) -> Attribute | None:
    attr = next((c for c in item.named_children if c.type == "attribute"), None)
    if attr is None or not attr.named_children:
        return None
    path = node_text(attr.named_children[0])
    arguments = attr.child_by_field_name("arguments")
    value = attr.child_by_field_name("value")
    return Attribute(
        path=path,
        arguments=node_text(arguments) if arguments is not None else None,
        value=_string_value(value) if value is not None else None,
    )


def _outer_attributes(node: Node) -> tuple[Attribute, ...]:
    """Walk backward through siblings to collect attributes and doc comments."""
    collected: list[Attribute] = []
    sibling = node.prev_named_sibling
    while sibling is not None:
        if sibling.type == "attribute_item":
            attr = _attribute(sibling)
            if attr is not None:
                collected.append(attr)
        elif sibling.type in _COMMENT_TYPES:
            doc = _doc_comment_text(sibling)
            if doc is not None:
                collected.append(Attribute(path="doc", value=doc))
        else:
            break
        sibling = sibling.prev_named_sibling
    collected.reverse()
    return tuple(collected)


def _is_public(node: Node) -> bool:
    return any(child.type == "visibility_modifier" for child in node.children)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


def _type_expr(node: Node) -> TypeExpr:
    if node.type == "reference_type":
        inner = node.child_by_field_name("type")
        if inner is not None:
            return RefType(elem=_type_expr(inner))
    elif node.type == "tuple_type":
        return TupleType(elems=tuple(_type_expr(c) for c in node.named_children))
    elif node.type == "array_type":
        element = node.child_by_field_name("element")
        if element is not None and node.child_by_field_name("length") is None:
            return SliceType(elem=_type_expr(element))
    return LiteralType(text=node_text(node), is_path=node.type in _PATH_TYPES)


def _simple_type_name(node: Node | None) -> str | None:
    """``Foo`` for ``Foo`` or ``Foo<T>``; ``None`` for anything else."""
    if node is None:
        return None
    if node.type == "type_identifier":
        return node_text(node)
    if node.type == "generic_type":
        base = node.child_by_field_name("type")
        if base is not None and base.type == "type_identifier":
            return node_text(base)
    return None


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


def _name(node: Node) -> str | None:
    name = node.child_by_field_name("name")
    return node_text(name) if name is not None else None


def _fields(body: Node | None) -> tuple[FieldDecl, ...]:
    if body is None:
        return ()
    if body.type == "field_declaration_list":
        fields: list[FieldDecl] = []
        for child in body.named_children:
            if child.type != "field_declaration":
                continue
            name = child.child_by_field_name("name")
            ty = child.child_by_field_name("type")
            if name is not None and ty is not None:
                fields.append(FieldDecl(name=node_text(name), type=_type_expr(ty)))
        return tuple(fields)
    if body.type == "ordered_field_declaration_list":
        return tuple(FieldDecl(name=None, type=_type_expr(ty)) for ty in body.children_by_field_name("type"))
    return ()


def _parse_struct(node: Node) -> StructDecl | None:
    name = _name(node)
    if name is None:
        return None
    return StructDecl(
        name=name,
        attributes=_outer_attributes(node),
        public=_is_public(node),
        fields=_fields(node.child_by_field_name("body")),
    )


def _parse_enum(node: Node) -> EnumDecl | None:
    name = _name(node)
    if name is None:
        return None
    variants: list[str] = []
    body = node.child_by_field_name("body")
    if body is not None:
        for child in body.named_children:
            if child.type == "enum_variant":
                variant = _name(child)
                if variant is not None:
                    variants.append(variant)
    return EnumDecl(
        name=name,
        attributes=_outer_attributes(node),
        public=_is_public(node),
        variants=tuple(variants),
    )


def _parse_parameters(node: Node | None) -> tuple[tuple[ParamDecl, ...], TypeExpr | None]:
    """Return the typed parameters and the receiver of a parameter list."""
    if node is None:
        return (), None
    params: list[ParamDecl] = []
    receiver: TypeExpr | None = None
    for child in node.named_children:
        if child.type == "self_parameter":
            receiver = LiteralType(text="Self", is_path=True)
            continue
        if child.type != "parameter":
            continue
        pattern = child.child_by_field_name("pattern")
        ty = child.child_by_field_name("type")
        if pattern is None or ty is None:
            continue
        if pattern.type == "self":
            receiver = _type_expr(ty)
        elif pattern.type == "identifier":
            params.append(ParamDecl(name=node_text(pattern), type=_type_expr(ty)))
    return tuple(params), receiver


def _parse_function(node: Node) -> FunctionDecl | None:
    name = _name(node)
    if name is None:
        return None
    params, receiver = _parse_parameters(node.child_by_field_name("parameters"))
    return_type = node.child_by_field_name("return_type")
    return FunctionDecl(
        name=name,
        attributes=_outer_attributes(node),
        public=_is_public(node),
        parameters=params,
        return_type=_type_expr(return_type) if return_type is not None else None,
        receiver=receiver,
    )


def _functions_in(body: Node | None) -> tuple[FunctionDecl, ...]:
    if body is None:
        return ()
    functions: list[FunctionDecl] = []
    for child in body.named_children:
        if child.type in _FUNCTION_TYPES:
            fn = _parse_function(child)
            if fn is not None:
                functions.append(fn)
    return tuple(functions)


def _parse_trait(node: Node) -> TraitDecl | None:
    name = _name(node)
    if name is None:
        return None
    return TraitDecl(
        name=name,
        attributes=_outer_attributes(node),
        public=_is_public(node),
        functions=_functions_in(node.child_by_field_name("body")),
    )


def _parse_impl(node: Node) -> ImplDecl:
    trait = node.child_by_field_name("trait")
    return ImplDecl(
        target=_simple_type_name(node.child_by_field_name("type")),
        trait=node_text(trait) if trait is not None else None,
        attributes=_outer_attributes(node),
        methods=_functions_in(node.child_by_field_name("body")),
    )


def _parse_mod(node: Node) -> ModDecl | None:
    name = _name(node)
    if name is None:
        return None
    body = node.child_by_field_name("body")
    return ModDecl(
        name=name,
        attributes=_outer_attributes(node),
        public=_is_public(node),
        items=tuple(_declarations(body)) if body is not None else None,
    )


_ITEM_PARSERS = {
    "struct_item": _parse_struct,
    "enum_item": _parse_enum,
    "trait_item": _parse_trait,
    "function_item": _parse_function,
    "impl_item": _parse_impl,
    "mod_item": _parse_mod,
}


def _declarations(container: Node) -> list[Declaration]:
    """Convert the recognized items directly inside *container*, in source order."""
    declarations: list[Declaration] = []
    for child in container.named_children:
        parse = _ITEM_PARSERS.get(child.type)
        if parse is None:
            continue
        decl = parse(child)
        if decl is not None:
            declarations.append(decl)
    return declarations


# ---------------------------------------------------------------------------
# Rust parse entry point
# ---------------------------------------------------------------------------


def parse_source(path: str, source: bytes) -> ParsedFile:
    """Parse Rust *source* and return its module-level declarations.

    Raises :class:`ParseError` if tree-sitter reports a syntax error anywhere
    in the file.
    """
    parser = Parser(RUST_LANGUAGE)
    tree = parser.parse(source)
    root = tree.root_node
    if root.has_error:
        line = _first_error_line(root)
        raise ParseError(path, f"syntax error near line {line}" if line else "syntax error")
    return ParsedFile(file_path=path, declarations=_declarations(root))


def _first_error_line(root: Node) -> int | None:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        stack.extend(reversed([c for c in node.children if c.has_error or c.is_missing]))
    return None
