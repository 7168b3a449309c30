"""Shared test fixtures for cargo-diagram."""

from __future__ import annotations

import pytest

from cargo_diagram.model import CrateModel


@pytest.fixture
def model():
    return CrateModel()


@pytest.fixture
def isolated_cwd(tmp_path, monkeypatch):
    """Run in an empty directory so no ``diagram.toml`` or env var leaks into settings."""
    for name in ("CARGO_DIAGRAM_PATH", "CARGO_DIAGRAM_OUTPUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
