"""Configuration management for cargo-diagram."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict, TomlConfigSettingsSource

from cargo_diagram.render.plantuml import DEFAULT_MODULE_COLOR, DEFAULT_TRAIT_COLOR, RenderOptions
from cargo_diagram.scanner import DEFAULT_EXCLUDE_DIRS

CONFIG_FILE = "diagram.toml"
DEFAULT_OUTPUT = "overview.puml"

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def _find_config_toml() -> Path | None:
    """Walk up from cwd looking for ``diagram.toml``."""
    current = Path.cwd().resolve()
    while True:
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


class RenderSettings(BaseSettings):
    """Diagram rendering settings."""

    show_relations: bool = Field(default=False, description="Draw inferred struct-to-struct relations (alpha).")
    module_color: str = Field(
        default=DEFAULT_MODULE_COLOR, description="PlantUML color of module packages; empty for none."
    )
    trait_color: str = Field(default=DEFAULT_TRAIT_COLOR, description="PlantUML color of traits; empty for none.")
    include_private_functions: bool = Field(default=False, description="Also draw private functions.")
    layout: list[str] = Field(
        default_factory=list, description="Layout directives copied verbatim, e.g. 'left to right direction'."
    )

    def to_options(self) -> RenderOptions:
        return RenderOptions(
            show_relations=self.show_relations,
            module_color=self.module_color,
            trait_color=self.trait_color,
            include_private_functions=self.include_private_functions,
            layout=tuple(self.layout),
        )


class ScanSettings(BaseSettings):
    """Crate discovery settings."""

    exclude_dirs: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS),
        description="Directory names never descended into while looking for crates.",
    )


class DiagramSettings(BaseSettings):
    """Root configuration for cargo-diagram."""

    model_config = SettingsConfigDict(
        toml_file=CONFIG_FILE,
        env_prefix="CARGO_DIAGRAM_",
        env_nested_delimiter="__",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml_path = _find_config_toml()
        sources: list[PydanticBaseSettingsSource] = [init_settings, env_settings]
        if toml_path:
            sources.append(TomlConfigSettingsSource(settings_cls, toml_file=toml_path))
        sources.append(file_secret_settings)
        return tuple(sources)

    path: Path = Field(default=Path("."), description="Root directory searched for crates.")
    output: Path = Field(default=Path(DEFAULT_OUTPUT), description="File the diagram is written to.")
    render: RenderSettings = Field(default_factory=RenderSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)
