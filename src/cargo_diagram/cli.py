"""CLI entrypoint for cargo-diagram."""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from loguru import logger

app = typer.Typer(
    name="cargo-diagram",
    help="cargo-diagram — draw the modules, structs and traits of your crates as a PlantUML diagram.",
    no_args_is_help=True,
)

_LOG_LEVELS = ("WARNING", "INFO", "DEBUG")


@app.callback()
def main(
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Increase log output (-v info, -vv debug)."),
) -> None:
    """Configure logging for all commands."""
    logger.remove()
    logger.add(sys.stderr, level=_LOG_LEVELS[min(verbose, len(_LOG_LEVELS) - 1)])


@app.command()
def diagram(
    relations: bool | None = typer.Option(
        None, "--relations/--no-relations", "-r", help="Show relations inside of the diagram (alpha)."
    ),
    path: Path | None = typer.Option(None, "--path", "-p", help="Directory searched for crates (default: .)."),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Diagram file to write (default: ./overview.puml)."
    ),
    module_color: str | None = typer.Option(None, "--module-color", "-m", help="PlantUML color of modules."),
    trait_color: str | None = typer.Option(None, "--trait-color", "-t", help="PlantUML color of traits."),
    functions_private: bool | None = typer.Option(
        None, "--functions-private/--no-functions-private", "-f", help="Draw private functions."
    ),
    console: bool = typer.Option(False, "--console", help="Print a plain-text overview instead of writing a diagram."),
) -> None:
    """Create a diagram of the crates below a directory."""
    from cargo_diagram.analyzer import SourceError, analyze_repository
    from cargo_diagram.parsing.ast import ParseError
    from cargo_diagram.render import OutputError, render_console, render_plantuml, write_diagram
    from cargo_diagram.settings import DiagramSettings

    settings = DiagramSettings()
    if path is not None:
        settings.path = path
    if output is not None:
        settings.output = output
    if relations is not None:
        settings.render.show_relations = relations
    if module_color is not None:
        settings.render.module_color = module_color
    if trait_color is not None:
        settings.render.trait_color = trait_color
    if functions_private is not None:
        settings.render.include_private_functions = functions_private

    root = settings.path.resolve()
    if not root.is_dir():
        logger.error("Not a directory: {}", root)
        raise typer.Exit(code=1)

    try:
        model = analyze_repository(root, settings)
    except (SourceError, ParseError) as exc:
        logger.error("Cannot analyze {} — {}", exc.path, exc.reason)
        raise typer.Exit(code=1) from exc

    if console:
        typer.echo(render_console(model))
        return

    text = render_plantuml(model, settings.render.to_options())
    try:
        write_diagram(text, settings.output)
    except OutputError as exc:
        logger.error("Cannot write diagram to {} — {}", exc.path, exc.reason)
        raise typer.Exit(code=1) from exc
    logger.info("Diagram written to {}", settings.output)


if __name__ == "__main__":
    app()
