"""Analysis driver — walks crates file by file and feeds the model builder."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from cargo_diagram.builder import ModelBuilder
from cargo_diagram.model import CrateModel
from cargo_diagram.parsing.rust import parse_source
from cargo_diagram.scanner import (
    DEFAULT_EXCLUDE_DIRS,
    crate_entries,
    find_crates,
    resolve_submodule,
    submodule_base_dirs,
)

if TYPE_CHECKING:
    from cargo_diagram.settings import DiagramSettings


class SourceError(Exception):
    """Raised when a source file cannot be read."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{path}: {reason}")


def read_source(path: Path) -> bytes:
    try:
        with path.open("rb") as fh:
            return fh.read()
    except OSError as exc:
        raise SourceError(path, exc.strerror or str(exc)) from exc


def analyze_file(path: Path, module_name: str, builder: ModelBuilder) -> None:
    """Analyze *path* as *module_name* and every file-backed submodule below it.

    Submodules are processed depth-first with an explicit work list; a
    submodule that cannot be resolved is skipped with a warning.  A file that
    is already one of its own ancestors (``a.rs`` declaring ``mod a;`` that
    resolves back to itself) is skipped.  The same file reached from two
    different roots is analyzed once per root.
    """
    stack: list[tuple[Path, str, frozenset[Path]]] = [(path, module_name, frozenset())]
    while stack:
        file_path, name, ancestors = stack.pop()
        key = file_path.resolve()
        if key in ancestors:
            logger.warning("Skipping {} for module {}: file includes itself", file_path, name)
            continue
        chain = ancestors | {key}

        logger.debug("Analyzing file {} as {}", file_path, name)
        parsed = parse_source(str(file_path), read_source(file_path))
        submodules = builder.build(name, parsed.declarations)

        base_dirs = submodule_base_dirs(file_path)
        children: list[tuple[Path, str, frozenset[Path]]] = []
        for submodule in submodules:
            mod_path = resolve_submodule(submodule, base_dirs)
            if mod_path is None:
                logger.warning("Module {} declared in {} not found", submodule, file_path)
                continue
            children.append((mod_path, f"{name}.{submodule}", chain))
        # Reversed so the first declared submodule is analyzed first.
        stack.extend(reversed(children))


def analyze_repository(
    root: Path,
    settings: DiagramSettings | None = None,
    model: CrateModel | None = None,
) -> CrateModel:
    """Build the model of every crate found under *root*."""
    model = CrateModel() if model is None else model
    builder = ModelBuilder(model)
    exclude_dirs = settings.scan.exclude_dirs if settings is not None else DEFAULT_EXCLUDE_DIRS

    crates = find_crates(root, exclude_dirs)
    if not crates:
        logger.warning("No Cargo.toml found under {}", root)
    for crate_dir in crates:
        logger.debug("Analyzing crate {}", crate_dir)
        for entry in crate_entries(crate_dir):
            analyze_file(entry.path, entry.module_name, builder)
    logger.info("Analyzed {} crate(s), {} module(s)", len(crates), len(model.modules))
    return model
