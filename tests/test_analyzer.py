"""Tests for crate discovery, module resolution and the analysis driver."""

from __future__ import annotations

from pathlib import Path

import pytest

from cargo_diagram.analyzer import SourceError, analyze_repository, read_source
from cargo_diagram.parsing.ast import ParseError
from cargo_diagram.render import render_plantuml
from cargo_diagram.scanner import crate_entries, crate_name, find_crates, resolve_submodule, submodule_base_dirs
from cargo_diagram.settings import DiagramSettings


def _write(root: Path, rel_path: str, content: str = "") -> Path:
    """Write a file at root/rel_path, creating parent dirs."""
    p = root / rel_path
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
    return p


# ---------------------------------------------------------------------------
# Crate discovery
# ---------------------------------------------------------------------------


class TestScanner:
    def test_find_crates_sorted_and_excluding(self, tmp_path):
        _write(tmp_path, "Cargo.toml", "[workspace]\n")
        _write(tmp_path, "tools/Cargo.toml", '[package]\nname = "tools"\n')
        _write(tmp_path, "core/Cargo.toml", '[package]\nname = "core"\n')
        _write(tmp_path, "target/debug/Cargo.toml", "")
        assert find_crates(tmp_path) == [tmp_path, tmp_path / "core", tmp_path / "tools"]

    def test_find_crates_custom_excludes(self, tmp_path):
        _write(tmp_path, "vendor/dep/Cargo.toml", "")
        _write(tmp_path, "app/Cargo.toml", "")
        assert find_crates(tmp_path, exclude_dirs=["vendor"]) == [tmp_path / "app"]

    def test_crate_name_from_manifest(self, tmp_path):
        _write(tmp_path, "Cargo.toml", '[package]\nname = "my-app"\nversion = "0.1.0"\n')
        assert crate_name(tmp_path) == "my_app"

    def test_crate_name_falls_back_to_directory(self, tmp_path):
        crate = tmp_path / "my-ws"
        _write(crate, "Cargo.toml", "[workspace]\nmembers = []\n")
        assert crate_name(crate) == "my_ws"

    def test_crate_name_with_broken_manifest(self, tmp_path):
        crate = tmp_path / "broken"
        _write(crate, "Cargo.toml", "[package\n")
        assert crate_name(crate) == "broken"

    def test_crate_entries(self, tmp_path):
        _write(tmp_path, "Cargo.toml", '[package]\nname = "app"\n')
        _write(tmp_path, "src/lib.rs")
        _write(tmp_path, "src/main.rs")
        entries = crate_entries(tmp_path)
        assert [e.module_name for e in entries] == ["app__main", "app__lib"]
        assert entries[0].path == tmp_path / "src" / "main.rs"

    def test_crate_without_sources(self, tmp_path):
        _write(tmp_path, "Cargo.toml", '[package]\nname = "app"\n')
        assert crate_entries(tmp_path) == []


# ---------------------------------------------------------------------------
# Submodule resolution
# ---------------------------------------------------------------------------


class TestResolution:
    def test_directory_owner_files(self, tmp_path):
        for name in ("main.rs", "lib.rs", "mod.rs"):
            assert submodule_base_dirs(tmp_path / name) == [tmp_path]

    def test_plain_file_looks_in_own_directory_first(self, tmp_path):
        assert submodule_base_dirs(tmp_path / "config.rs") == [tmp_path / "config", tmp_path]

    def test_file_module_preferred(self, tmp_path):
        _write(tmp_path, "net.rs")
        _write(tmp_path, "net/mod.rs")
        assert resolve_submodule("net", [tmp_path]) == tmp_path / "net.rs"

    def test_directory_module(self, tmp_path):
        _write(tmp_path, "net/mod.rs")
        assert resolve_submodule("net", [tmp_path]) == tmp_path / "net" / "mod.rs"

    def test_base_dirs_searched_in_order(self, tmp_path):
        _write(tmp_path, "inner.rs")
        _write(tmp_path, "config/inner.rs")
        base_dirs = submodule_base_dirs(tmp_path / "config.rs")
        assert resolve_submodule("inner", base_dirs) == tmp_path / "config" / "inner.rs"

    def test_missing(self, tmp_path):
        assert resolve_submodule("nothing", [tmp_path]) is None


# ---------------------------------------------------------------------------
# Analysis driver
# ---------------------------------------------------------------------------


class TestAnalyze:
    def test_binary_crate_with_nested_modules(self, tmp_path):
        _write(tmp_path, "Cargo.toml", '[package]\nname = "my-app"\n')
        _write(tmp_path, "src/main.rs", "/// Settings.\nmod config;\n\nfn main() {}\n")
        _write(tmp_path, "src/config.rs", "pub struct Config {\n    verbose: bool,\n}\n\nmod inner;\n")
        _write(tmp_path, "src/config/inner.rs", "pub struct Inner;\n")

        model = analyze_repository(tmp_path)

        assert sorted(model.modules) == ["my_app__main", "my_app__main.config", "my_app__main.config.inner"]
        root = model.modules["my_app__main"]
        assert root.submodules == ["config"]
        assert root.description.strip() == "Settings."
        assert [f.name for f in root.functions] == ["main"]
        config = model.modules["my_app__main.config"]
        assert config.structs["Config"].members[0].type_name == "bool"
        assert list(model.modules["my_app__main.config.inner"].structs) == ["Inner"]

    def test_library_with_mod_rs_layout(self, tmp_path):
        _write(tmp_path, "Cargo.toml", '[package]\nname = "net"\n')
        _write(tmp_path, "src/lib.rs", "pub mod proto;\n")
        _write(tmp_path, "src/proto/mod.rs", "pub mod tcp;\n")
        _write(tmp_path, "src/proto/tcp.rs", "pub struct Socket;\n")

        model = analyze_repository(tmp_path)

        assert "net__lib.proto.tcp" in model
        assert list(model.modules["net__lib.proto.tcp"].structs) == ["Socket"]

    def test_unresolved_submodule_is_skipped(self, tmp_path):
        _write(tmp_path, "Cargo.toml", '[package]\nname = "app"\n')
        _write(tmp_path, "src/lib.rs", "mod missing;\npub struct Kept;\n")

        model = analyze_repository(tmp_path)

        lib = model.modules["app__lib"]
        assert lib.submodules == ["missing"]
        assert list(lib.structs) == ["Kept"]
        assert "app__lib.missing" not in model

    def test_self_referencing_module_file_is_analyzed_once(self, tmp_path):
        _write(tmp_path, "Cargo.toml", '[package]\nname = "app"\n')
        _write(tmp_path, "src/lib.rs", "mod a;\n")
        _write(tmp_path, "src/a.rs", "mod a;\nstruct A;\n")

        model = analyze_repository(tmp_path)

        assert "app__lib.a" in model
        assert "app__lib.a.a" not in model

    def test_module_file_shared_by_binary_and_library(self, tmp_path):
        _write(tmp_path, "Cargo.toml", '[package]\nname = "app"\n')
        _write(tmp_path, "src/main.rs", "mod util;\nfn main() {}\n")
        _write(tmp_path, "src/lib.rs", "pub mod util;\n")
        _write(tmp_path, "src/util.rs", "pub struct Helper;\n")

        model = analyze_repository(tmp_path)

        assert sorted(model.modules) == ["app__lib", "app__lib.util", "app__main", "app__main.util"]
        assert list(model.modules["app__main.util"].structs) == ["Helper"]
        assert list(model.modules["app__lib.util"].structs) == ["Helper"]

    def test_shared_module_drawn_under_both_roots(self, tmp_path):
        _write(tmp_path, "Cargo.toml", '[package]\nname = "app"\n')
        _write(tmp_path, "src/main.rs", "mod util;\nfn main() {}\n")
        _write(tmp_path, "src/lib.rs", "pub mod util;\n")
        _write(tmp_path, "src/util.rs", "pub struct Helper;\n")

        lines = render_plantuml(analyze_repository(tmp_path)).splitlines()

        assert "app__lib --> app__lib.util" in lines
        assert "app__main --> app__main.util" in lines
        assert '    class "Helper" as app__lib.util.Helper <<struct>> {' in lines

    def test_workspace_members(self, tmp_path):
        _write(tmp_path, "Cargo.toml", "[workspace]\nmembers = ['one', 'two']\n")
        _write(tmp_path, "one/Cargo.toml", '[package]\nname = "one"\n')
        _write(tmp_path, "one/src/lib.rs", "pub fn hello() {}\n")
        _write(tmp_path, "two/Cargo.toml", '[package]\nname = "two"\n')
        _write(tmp_path, "two/src/main.rs", "fn main() {}\n")

        model = analyze_repository(tmp_path)

        assert model.roots() == ["one__lib", "two__main"]

    def test_no_crates(self, tmp_path):
        assert analyze_repository(tmp_path).modules == {}

    def test_excluded_directories_from_settings(self, tmp_path, isolated_cwd):
        _write(tmp_path, "examples/demo/Cargo.toml", '[package]\nname = "demo"\n')
        _write(tmp_path, "examples/demo/src/main.rs", "fn main() {}\n")
        settings = DiagramSettings()
        settings.scan.exclude_dirs = ["examples"]
        assert analyze_repository(tmp_path, settings).modules == {}

    def test_parse_error_propagates(self, tmp_path):
        _write(tmp_path, "Cargo.toml", '[package]\nname = "app"\n')
        _write(tmp_path, "src/lib.rs", "struct Broken {\n")
        with pytest.raises(ParseError):
            analyze_repository(tmp_path)

    def test_read_source_error(self, tmp_path):
        with pytest.raises(SourceError) as excinfo:
            read_source(tmp_path / "nope.rs")
        assert excinfo.value.path.endswith("nope.rs")
