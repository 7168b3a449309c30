"""Crate discovery and module file resolution.

A crate is any directory holding a ``Cargo.toml``.  Its ``src/main.rs`` and
``src/lib.rs`` are the entry files; they become the root modules
``<crate>__main`` and ``<crate>__lib``.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from cargo_diagram.model import LIB_SUFFIX, MAIN_SUFFIX

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

MANIFEST = "Cargo.toml"
DEFAULT_EXCLUDE_DIRS: tuple[str, ...] = ("target", ".git")

# Files whose submodules live next to them rather than in a same-named directory.
_DIRECTORY_OWNERS = frozenset({"main.rs", "lib.rs", "mod.rs"})


@dataclass(frozen=True)
class CrateEntry:
    """An entry file of a crate and the root module it represents."""

    module_name: str
    path: Path


def find_crates(root: Path, exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS) -> list[Path]:
    """Return every directory under *root* (inclusive) that holds a ``Cargo.toml``, sorted."""
    excluded = set(exclude_dirs)
    crates: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        if MANIFEST in filenames:
            crates.append(Path(dirpath))
    return sorted(crates)


def crate_name(crate_dir: Path) -> str:
    """Package name from ``Cargo.toml``, else the directory name; ``-`` becomes ``_``."""
    name = ""
    manifest = crate_dir / MANIFEST
    try:
        with manifest.open("rb") as fh:
            data = tomllib.load(fh)
        package = data.get("package")
        if isinstance(package, dict) and isinstance(package.get("name"), str):
            name = package["name"]
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.debug("Cannot read package name from {}: {}", manifest, exc)
    if not name:
        name = crate_dir.resolve().name or "crate"
    return name.replace("-", "_")


def crate_entries(crate_dir: Path) -> list[CrateEntry]:
    """Entry files of a crate: ``src/main.rs`` first, then ``src/lib.rs``."""
    src_dir = crate_dir / "src"
    name = crate_name(crate_dir)
    entries: list[CrateEntry] = []
    for filename, suffix in (("main.rs", MAIN_SUFFIX), ("lib.rs", LIB_SUFFIX)):
        path = src_dir / filename
        if path.is_file():
            entries.append(CrateEntry(module_name=f"{name}{suffix}", path=path))
    return entries


def submodule_base_dirs(path: Path) -> list[Path]:
    """Directories searched for the submodules declared in *path*.

    ``main.rs``, ``lib.rs`` and ``mod.rs`` own their directory.  Any other
    ``foo.rs`` keeps its submodules in ``foo/``; its own directory is
    searched as a fallback for older layouts.
    """
    if path.name in _DIRECTORY_OWNERS:
        return [path.parent]
    return [path.parent / path.stem, path.parent]


def resolve_submodule(name: str, base_dirs: Sequence[Path]) -> Path | None:
    """Find the file for ``mod name;``: ``name.rs``, else ``name/mod.rs``."""
    for base_dir in base_dirs:
        mod_file = base_dir / f"{name}.rs"
        if mod_file.is_file():
            return mod_file
        mod_dir = base_dir / name / "mod.rs"
        if mod_dir.is_file():
            return mod_dir
    return None
