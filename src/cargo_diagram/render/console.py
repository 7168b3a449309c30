"""Plain-text overview of the model, one module after another."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cargo_diagram.model import CrateModel


def render_console(model: CrateModel) -> str:
    lines: list[str] = []
    for module in model.sorted_modules():
        lines.append(f"Module: {module.name}")
        for struct in module.sorted_structs():
            lines.append(f"  Struct: {struct.name}")
            lines.append("    Derives:")
            lines.extend(f"      - {derive}" for derive in struct.derives)
            lines.append("    Impl Traits:")
            lines.extend(f"      - {trait}" for trait in struct.impl_traits)
        lines.append("  Submodules:")
        lines.extend(f"    - {submodule}" for submodule in module.submodules)
        lines.append("")
    return "\n".join(lines)
