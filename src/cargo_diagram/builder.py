"""Model builder — folds parsed declarations into the shared ``CrateModel``.

One call to :meth:`ModelBuilder.build` handles one source file.  The module a
declaration belongs to travels with it as an explicit ``_Context`` value, so
inline modules and impl blocks never touch shared traversal state.

Entries are insert-or-merge: an ``impl`` block may name a struct before its
declaration has been seen, in which case an empty placeholder is created and
filled in later.

The builder is not safe to call concurrently on the same model.  Callers that
parse in parallel should funnel the parsed files through a single builder.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from cargo_diagram.model import UNIT_TYPE, Enum, Function, Member, Parameter, Struct, Trait, Visibility
from cargo_diagram.parsing.ast import (
    EnumDecl,
    FunctionDecl,
    ImplDecl,
    LiteralType,
    ModDecl,
    StructDecl,
    TraitDecl,
)
from cargo_diagram.signatures import format_path, is_path, split_top_level, type_name

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from cargo_diagram.model import CrateModel, Module
    from cargo_diagram.parsing.ast import Attribute, Declaration, TypeExpr

T = TypeVar("T")

DERIVE_ATTRIBUTE = "derive"
DOC_ATTRIBUTE = "doc"
SELF_TYPE = "Self"


@dataclass(frozen=True)
class _Context:
    """Where the declaration being visited lives."""

    module: str
    # Set while visiting the methods of an ``impl Trait for Type`` block.
    impl_trait: str | None = None


# ---------------------------------------------------------------------------
# Attribute helpers
# ---------------------------------------------------------------------------


def extract_doc(attributes: Iterable[Attribute]) -> str:
    """Join the text of all ``doc`` attributes with single spaces, in order."""
    return " ".join(attr.value for attr in attributes if attr.path == DOC_ATTRIBUTE and attr.value is not None)


def parse_derive_arguments(arguments: str) -> list[str] | None:
    """Parse the argument list of a ``derive`` attribute.

    Returns the formatted paths, or ``None`` when any entry is not a path.
    A rejected attribute contributes nothing to the model; it is never
    partially applied or reported.
    """
    text = arguments.strip()
    if text[:1] in "([{" and text[-1:] in ")]}":
        text = text[1:-1]
    entries = [entry.strip() for entry in split_top_level(text, ",")]
    if entries and entries[-1] == "":
        entries.pop()  # trailing comma
    names: list[str] = []
    for entry in entries:
        if not is_path(entry):
            return None
        names.append(format_path(entry))
    return names


def extract_derives(attributes: Iterable[Attribute]) -> list[str]:
    derives: list[str] = []
    for attr in attributes:
        if attr.path != DERIVE_ATTRIBUTE or attr.arguments is None:
            continue
        names = parse_derive_arguments(attr.arguments)
        if names is not None:
            derives.extend(names)
    return derives


def merge_ordered(existing: list[T], incoming: Iterable[T]) -> None:
    """Multiset union in encounter order, in place.

    An item from *incoming* is appended only as often as it occurs there
    more times than in *existing*, so re-processing a declaration adds
    nothing while repeats inside one declaration are kept.
    """
    have = Counter(existing)
    for item in incoming:
        if have[item] > 0:
            have[item] -= 1
        else:
            existing.append(item)


def _simple_type_name(expr: TypeExpr | None) -> str | None:
    """Last path segment of a receiver type with generics stripped, if it is a plain path."""
    if not isinstance(expr, LiteralType) or not expr.is_path:
        return None
    last = type_name(expr)
    name = last.split("<", 1)[0].strip()
    return name or None


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class ModelBuilder:
    """Accumulates declarations of many files into one ``CrateModel``."""

    def __init__(self, model: CrateModel) -> None:
        self.model = model
        # (module, struct name) -> functions whose receiver names a struct not seen yet
        self._pending_receivers: dict[tuple[str, str], list[Function]] = {}

    def build(self, module_name: str, declarations: Sequence[Declaration]) -> list[str]:
        """Add one file's declarations to *module_name*.

        Returns the names of the file-backed submodules (``mod name;``) the
        file declares, in declaration order, for the caller to resolve.
        """
        self.model.module(module_name)
        external: list[str] = []
        self._visit_all(_Context(module=module_name), declarations, external)
        return external

    # -- dispatch ------------------------------------------------------------

    def _visit_all(self, ctx: _Context, declarations: Iterable[Declaration], external: list[str]) -> None:
        for decl in declarations:
            self._visit(ctx, decl, external)

    def _visit(self, ctx: _Context, decl: Declaration, external: list[str]) -> None:
        if isinstance(decl, StructDecl):
            self._visit_struct(ctx, decl)
        elif isinstance(decl, EnumDecl):
            self._visit_enum(ctx, decl)
        elif isinstance(decl, TraitDecl):
            self._visit_trait(ctx, decl)
        elif isinstance(decl, FunctionDecl):
            self._visit_function(ctx, decl)
        elif isinstance(decl, ImplDecl):
            self._visit_impl(ctx, decl)
        elif isinstance(decl, ModDecl):
            self._visit_mod(ctx, decl, external)
        # Anything else is not part of the model.

    # -- declarations --------------------------------------------------------

    def _visit_struct(self, ctx: _Context, decl: StructDecl) -> None:
        module = self.model.module(ctx.module)
        entry = self._struct_entry(module, decl.name)
        entry.description = extract_doc(decl.attributes)
        entry.declared = True
        members = [
            Member(name=f.name if f.name is not None else str(index), type_name=type_name(f.type))
            for index, f in enumerate(decl.fields)
        ]
        merge_ordered(entry.members, members)
        merge_ordered(entry.derives, extract_derives(decl.attributes))

    def _visit_enum(self, ctx: _Context, decl: EnumDecl) -> None:
        module = self.model.module(ctx.module)
        entry = module.enums.get(decl.name)
        if entry is None:
            entry = Enum(name=decl.name)
            module.enums[decl.name] = entry
        placeholder = module.structs.get(decl.name)
        if placeholder is not None and not placeholder.declared:
            # An earlier impl block guessed "struct"; the name belongs to this enum.
            entry.impl_traits.extend(placeholder.impl_traits)
            del module.structs[decl.name]
        entry.description = extract_doc(decl.attributes)
        merge_ordered(entry.variants, decl.variants)
        merge_ordered(entry.derives, extract_derives(decl.attributes))

    def _visit_trait(self, ctx: _Context, decl: TraitDecl) -> None:
        module = self.model.module(ctx.module)
        module.traits.append(
            Trait(
                name=decl.name,
                description=extract_doc(decl.attributes),
                functions=[self._function(fn, force_public=True) for fn in decl.functions],
            )
        )

    def _visit_function(self, ctx: _Context, decl: FunctionDecl) -> None:
        module = self.model.module(ctx.module)
        function = self._function(decl)
        module.functions.append(function)
        owner = _simple_type_name(decl.receiver)
        if owner is None or owner == SELF_TYPE:
            return
        entry = module.structs.get(owner)
        if entry is not None:
            entry.functions.append(function)
        else:
            self._pending_receivers.setdefault((module.name, owner), []).append(function)

    def _visit_impl(self, ctx: _Context, decl: ImplDecl) -> None:
        if decl.target is None:
            return
        module = self.model.module(ctx.module)
        trait_name = format_path(decl.trait) if decl.trait else None
        impl_ctx = _Context(module=ctx.module, impl_trait=trait_name)

        if trait_name:
            enum_entry = module.enums.get(decl.target)
            if enum_entry is not None:
                enum_entry.impl_traits.append(trait_name)
            else:
                self._struct_entry(module, decl.target).impl_traits.append(trait_name)

        if not decl.methods or decl.target in module.enums:
            return  # enums carry no function list
        owner = self._struct_entry(module, decl.target)
        for method in decl.methods:
            owner.functions.append(self._method(impl_ctx, method))

    def _visit_mod(self, ctx: _Context, decl: ModDecl, external: list[str]) -> None:
        module = self.model.module(ctx.module)
        module.submodules.append(decl.name)
        # Last marker wins: the doc on a ``mod`` line ends up describing the parent.
        module.description = extract_doc(decl.attributes)
        if decl.items is None:
            external.append(decl.name)
            return
        child = f"{ctx.module}.{decl.name}"
        self.model.module(child)
        # Nested ``mod x;`` inside an inline module cannot be resolved to a file
        # relative to the parent, so only the outermost level is reported.
        self._visit_all(_Context(module=child), decl.items, [])

    # -- helpers -------------------------------------------------------------

    def _struct_entry(self, module: Module, name: str) -> Struct:
        entry = module.structs.get(name)
        if entry is None:
            entry = Struct(name=name)
            entry.functions.extend(self._pending_receivers.pop((module.name, name), ()))
            module.structs[name] = entry
        return entry

    def _method(self, ctx: _Context, decl: FunctionDecl) -> Function:
        # Trait impl methods are as visible as the trait itself.
        return self._function(decl, force_public=ctx.impl_trait is not None)

    @staticmethod
    def _function(decl: FunctionDecl, *, force_public: bool = False) -> Function:
        public = force_public or decl.public
        return Function(
            name=decl.name,
            description=extract_doc(decl.attributes),
            visibility=Visibility.PUBLIC if public else Visibility.PRIVATE,
            parameters=tuple(Parameter(name=p.name, type_name=type_name(p.type)) for p in decl.parameters),
            return_type=type_name(decl.return_type) if decl.return_type is not None else UNIT_TYPE,
        )
