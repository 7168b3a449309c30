"""Declaration model shared by the model builder and the diagram renderers.

The model is a plain in-memory description of one analysis run: modules keyed
by qualified module name, each holding the structs, enums, traits and free
functions declared in it.  It is built once and then only read.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

# Suffixes that mark a module as a diagram entry point.
MAIN_SUFFIX = "__main"
LIB_SUFFIX = "__lib"
ROOT_SUFFIXES: tuple[str, ...] = (MAIN_SUFFIX, LIB_SUFFIX)

UNIT_TYPE = "()"

# ---------------------------------------------------------------------------
# Kind discriminators
# ---------------------------------------------------------------------------


class Visibility(StrEnum):
    PUBLIC = "public"
    PRIVATE = "private"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Parameter:
    name: str
    type_name: str


@dataclass(frozen=True)
class Member:
    """A struct field; tuple-struct fields are named by position."""

    name: str
    type_name: str


@dataclass(frozen=True)
class Function:
    name: str
    description: str = ""
    visibility: Visibility = Visibility.PRIVATE
    parameters: tuple[Parameter, ...] = ()
    return_type: str = UNIT_TYPE

    @property
    def is_public(self) -> bool:
        return self.visibility == Visibility.PUBLIC


@dataclass
class Struct:
    name: str
    description: str = ""
    members: list[Member] = field(default_factory=list)
    derives: list[str] = field(default_factory=list)
    impl_traits: list[str] = field(default_factory=list)
    functions: list[Function] = field(default_factory=list)
    # False while the entry only exists because an impl block or a receiver named it.
    declared: bool = False


@dataclass
class Enum:
    name: str
    description: str = ""
    variants: list[str] = field(default_factory=list)
    derives: list[str] = field(default_factory=list)
    impl_traits: list[str] = field(default_factory=list)


@dataclass
class Trait:
    name: str
    description: str = ""
    functions: list[Function] = field(default_factory=list)


@dataclass
class Module:
    """Everything declared directly inside one module."""

    name: str
    description: str = ""
    structs: dict[str, Struct] = field(default_factory=dict)
    enums: dict[str, Enum] = field(default_factory=dict)
    traits: list[Trait] = field(default_factory=list)
    functions: list[Function] = field(default_factory=list)
    submodules: list[str] = field(default_factory=list)

    def sorted_structs(self) -> list[Struct]:
        return [self.structs[key] for key in sorted(self.structs)]

    def sorted_enums(self) -> list[Enum]:
        return [self.enums[key] for key in sorted(self.enums)]


@dataclass
class CrateModel:
    """All modules seen during one run, keyed by qualified module name."""

    modules: dict[str, Module] = field(default_factory=dict)

    def module(self, name: str) -> Module:
        """Return the module entry for *name*, creating an empty one if needed."""
        entry = self.modules.get(name)
        if entry is None:
            entry = Module(name=name)
            self.modules[name] = entry
        return entry

    def get(self, name: str) -> Module | None:
        return self.modules.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.modules

    def roots(self) -> list[str]:
        """Module names that are diagram entry points, sorted."""
        return sorted(name for name in self.modules if is_root_module(name))

    def sorted_modules(self) -> list[Module]:
        return [self.modules[key] for key in sorted(self.modules)]


def is_root_module(name: str) -> bool:
    return name.endswith(ROOT_SUFFIXES)
