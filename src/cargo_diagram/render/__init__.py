"""Renderers — PlantUML diagram and plain-text overview."""

from __future__ import annotations

from cargo_diagram.render.console import render_console
from cargo_diagram.render.plantuml import OutputError, RenderOptions, render_plantuml, struct_relations, write_diagram

__all__ = [
    "OutputError",
    "RenderOptions",
    "render_console",
    "render_plantuml",
    "struct_relations",
    "write_diagram",
]
