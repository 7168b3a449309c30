"""cargo-diagram — structural PlantUML diagrams of Rust crates."""

from __future__ import annotations

__version__ = "0.1.0"
