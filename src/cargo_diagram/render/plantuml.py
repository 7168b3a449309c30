"""Deterministic PlantUML class diagram generator.

Every root module (``<crate>__main`` / ``<crate>__lib``) becomes a tree of
nested packages, following submodule links.  Classes are aliased by their full
dotted package path so equally named structs in different modules never
collide, and are displayed by their bare name.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cargo_diagram.signatures import collapse_whitespace, format_function

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from cargo_diagram.model import CrateModel, Enum, Function, Module, Struct, Trait

START = "@startuml"
END = "@enduml"
# Aliases contain dots; without this PlantUML would turn them into implicit packages.
NAMESPACE_DIRECTIVE = "set namespaceSeparator none"

DEFAULT_MODULE_COLOR = "#lightskyblue"
DEFAULT_TRAIT_COLOR = "#violet"

FUNCTIONS_CLASS = "__functions__"
INDENT = "  "


@dataclass(frozen=True)
class RenderOptions:
    show_relations: bool = False
    module_color: str = DEFAULT_MODULE_COLOR
    trait_color: str = DEFAULT_TRAIT_COLOR
    include_private_functions: bool = False
    layout: tuple[str, ...] = ()


class OutputError(Exception):
    """Raised when the diagram file cannot be written."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{path}: {reason}")


@dataclass(frozen=True)
class _Open:
    key: str  # model key
    path: str  # dotted package path, used for aliases
    depth: int


@dataclass(frozen=True)
class _Close:
    depth: int


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


def _color(color: str) -> str:
    return f" {color}" if color else ""


def _comment(indent: str, text: str) -> list[str]:
    text = collapse_whitespace(text)
    return [f"{indent}' {text}"] if text else []


def _section(indent: str, label: str, entries: list[str]) -> list[str]:
    if not entries:
        return []
    return [f"{indent}-- {label} --", *(f"{indent}{entry}" for entry in entries)]


def _functions_section(indent: str, functions: Iterable[Function], options: RenderOptions) -> list[str]:
    lines: list[str] = []
    for fn in functions:
        if not (fn.is_public or options.include_private_functions):
            continue
        lines.extend(_comment(indent, fn.description))
        prefix = "+" if fn.is_public else "-"
        lines.append(f"{indent}{prefix}{format_function(fn)}")
    if not lines:
        return []
    return [f"{indent}-- Functions --", *lines]


def _struct_block(struct: Struct, path: str, indent: str, options: RenderOptions) -> list[str]:
    inner = indent + INDENT
    return [
        f'{indent}class "{struct.name}" as {path}.{struct.name} <<struct>> {{',
        *_comment(inner, struct.description),
        *_section(inner, "Derives", struct.derives),
        *_section(inner, "Implements", struct.impl_traits),
        *_section(inner, "Members", [f"{m.name}: {m.type_name}" for m in struct.members]),
        *_functions_section(inner, struct.functions, options),
        f"{indent}}}",
    ]


def _enum_block(enum: Enum, path: str, indent: str) -> list[str]:
    inner = indent + INDENT
    return [
        f'{indent}enum "{enum.name}" as {path}.{enum.name} <<enum>> {{',
        *_comment(inner, enum.description),
        *(f"{inner}{variant}" for variant in enum.variants),
        f"{indent}}}",
    ]


def _trait_block(trait: Trait, alias: str, indent: str, options: RenderOptions) -> list[str]:
    inner = indent + INDENT
    return [
        f'{indent}interface "{trait.name}" as {alias} <<trait>>{_color(options.trait_color)} {{',
        *_comment(inner, trait.description),
        *_functions_section(inner, trait.functions, options),
        f"{indent}}}",
    ]


def _functions_block(module: Module, path: str, indent: str, options: RenderOptions) -> list[str]:
    inner = indent + INDENT
    section = _functions_section(inner, module.functions, options)
    if not section:
        return []
    return [
        f'{indent}class "{_display_name(path)}" as {path}.{FUNCTIONS_CLASS} <<module>> {{',
        *section,
        f"{indent}}}",
    ]


def _module_body(module: Module, path: str, depth: int, options: RenderOptions) -> list[str]:
    indent = INDENT * depth
    lines = _comment(indent, module.description)
    for struct in module.sorted_structs():
        lines.extend(_struct_block(struct, path, indent, options))
    for enum in module.sorted_enums():
        lines.extend(_enum_block(enum, path, indent))
    seen_traits: Counter[str] = Counter()
    for trait in module.traits:
        # Repeated declarations (e.g. per-platform cfg variants) get numbered aliases.
        repeat = seen_traits[trait.name]
        seen_traits[trait.name] += 1
        alias = f"{path}.{trait.name}" if repeat == 0 else f"{path}.{trait.name}.{repeat}"
        lines.extend(_trait_block(trait, alias, indent, options))
    lines.extend(_functions_block(module, path, indent, options))
    return lines


def _display_name(path: str) -> str:
    return path.rsplit(".", 1)[-1]


# ---------------------------------------------------------------------------
# Relations
# ---------------------------------------------------------------------------


def struct_relations(module: Module) -> list[tuple[str, str]]:
    """Infer ``(owner, target)`` struct pairs inside one module.

    A pair is produced when a member's type name contains the bare name of
    another struct of the same module.  This is plain substring matching, not
    type resolution: a ``WidgetId`` member also points at a sibling
    ``Widget``.  Each pair is reported once.
    """
    structs = module.sorted_structs()
    pairs: list[tuple[str, str]] = []
    for owner in structs:
        for member in owner.members:
            for target in structs:
                if target.name == owner.name or target.name not in member.type_name:
                    continue
                pair = (owner.name, target.name)
                if pair not in pairs:
                    pairs.append(pair)
    return pairs


# ---------------------------------------------------------------------------
# Tree walk
# ---------------------------------------------------------------------------


def _resolve_child(model: CrateModel, parent_key: str, name: str) -> str | None:
    """Model key of submodule *name* of *parent_key*, qualified first, then bare."""
    qualified = f"{parent_key}.{name}"
    if qualified in model:
        return qualified
    if name in model:
        return name
    return None


def _render_tree(
    model: CrateModel,
    root: str,
    options: RenderOptions,
    visited: set[str],
    lines: list[str],
    compositions: list[str],
    relations: list[str],
) -> None:
    stack: list[_Open | _Close] = [_Open(key=root, path=root, depth=0)]
    while stack:
        item = stack.pop()
        if isinstance(item, _Close):
            lines.append(f"{INDENT * item.depth}}}")
            continue

        module = model.modules[item.key]
        indent = INDENT * item.depth
        lines.append(
            f'{indent}package "{_display_name(item.path)}" as {item.path}{_color(options.module_color)} {{'
        )
        lines.extend(_module_body(module, item.path, item.depth + 1, options))
        if options.show_relations:
            relations.extend(
                f"{item.path}.{owner} --> {item.path}.{target}" for owner, target in struct_relations(module)
            )

        children: list[_Open] = []
        for name in module.submodules:
            child_key = _resolve_child(model, item.key, name)
            if child_key is None or child_key in visited:
                continue
            visited.add(child_key)
            child_path = f"{item.path}.{name}"
            compositions.append(f"{item.path} --> {child_path}")
            children.append(_Open(key=child_key, path=child_path, depth=item.depth + 1))

        stack.append(_Close(depth=item.depth))
        stack.extend(reversed(children))


def render_plantuml(model: CrateModel, options: RenderOptions | None = None) -> str:
    """Render *model* as PlantUML text.

    Only modules reachable from a root module are drawn.  Each module is
    drawn at most once, so cyclic submodule links terminate.
    """
    options = options or RenderOptions()
    lines = [START, NAMESPACE_DIRECTIVE, *options.layout]
    compositions: list[str] = []
    relations: list[str] = []
    visited: set[str] = set()
    for root in model.roots():
        if root in visited:
            continue
        visited.add(root)
        _render_tree(model, root, options, visited, lines, compositions, relations)
    lines.extend(compositions)
    lines.extend(relations)
    lines.append(END)
    return "\n".join(lines) + "\n"


def write_diagram(text: str, path: Path) -> None:
    """Write diagram text as UTF-8, raising :class:`OutputError` on failure."""
    try:
        with path.open("w", encoding="utf-8") as fh:
            fh.write(text)
    except OSError as exc:
        raise OutputError(path, exc.strerror or str(exc)) from exc
