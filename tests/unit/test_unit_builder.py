"""
Unit tests for the compilation unit builder.
"""

import shutil
from unittest.mock import patch

import pytest

from tsbundle.compiler.headers import render_header
from tsbundle.compiler.toolchain import CToolchain
from tsbundle.compiler.unit_builder import CompilationUnitBuilder
from tsbundle.fetch.materializer import FetchRequest, MaterializedSource
from tsbundle.utils.config import Optimize
from tsbundle.utils.exceptions import CompilationError, HeaderError


@pytest.fixture
def builder(tmp_path, fake_runner):
    return CompilationUnitBuilder(CToolchain(fake_runner), tmp_path / "build", tmp_path / "dist")


def _source(root, name, revision="local"):
    return MaterializedSource(name, root, revision, FetchRequest(name))


class TestCompilationUnitBuilder:
    """Test building single grammar modules."""

    def test_parser_and_scanner(self, tmp_path, registry, builder, fake_runner, grammar_factory):
        spec = registry.require("python")
        root = grammar_factory(tmp_path / "vendor" / "python", spec)

        compiled = builder.build(spec, _source(root, "python", "abc"), Optimize.RELEASE_SAFE)

        work_dir = tmp_path / "build" / "modules" / "python"
        assert compiled.objects == (work_dir / "obj" / "parser.o", work_dir / "obj" / "scanner.o")
        assert compiled.archive == tmp_path / "dist" / "lib" / "libpython.a"
        assert compiled.header == tmp_path / "dist" / "include" / "python.h"
        assert compiled.header.read_text() == render_header("python")
        assert compiled.revision == "abc"

        compile_cmds = fake_runner.commands("cc")
        assert len(compile_cmds) == 2
        assert all("-O2" in cmd for cmd in compile_cmds)
        assert all(f"-I{root / 'src'}" in cmd for cmd in compile_cmds)

    def test_parser_only_module(self, tmp_path, registry, builder, fake_runner, grammar_factory):
        """Modules without an external scanner compile a single file."""
        spec = registry.require("zig")
        root = grammar_factory(tmp_path / "vendor" / "zig", spec)

        compiled = builder.build(spec, _source(root, "zig"))

        assert [o.name for o in compiled.objects] == ["parser.o"]
        assert len(fake_runner.commands("cc")) == 1

    def test_nested_source_root(self, tmp_path, registry, builder, grammar_factory):
        """Grammars living in a subdirectory are compiled from there."""
        spec = registry.require("typescript")
        root = grammar_factory(tmp_path / "vendor" / "typescript", spec)

        compiled = builder.build(spec, _source(root, "typescript"))

        assert compiled.archive.name == "libtypescript.a"
        assert (root / spec.source_root / "parser.c").is_file()

    def test_missing_scanner_is_fatal(self, tmp_path, registry, builder, fake_runner, grammar_factory):
        spec = registry.require("rust")
        root = grammar_factory(tmp_path / "vendor" / "rust", spec)
        (root / "src" / "scanner.c").unlink()

        with pytest.raises(CompilationError) as exc_info:
            builder.build(spec, _source(root, "rust"))

        assert exc_info.value.module == "rust"
        assert "scanner.c" in str(exc_info.value)
        assert fake_runner.calls == []

    def test_header_not_written_into_package(self, tmp_path, registry, builder, grammar_factory):
        spec = registry.require("c")
        root = grammar_factory(tmp_path / "vendor" / "c", spec)
        before = sorted(p.relative_to(root) for p in root.rglob("*"))

        builder.build(spec, _source(root, "c"))

        assert sorted(p.relative_to(root) for p in root.rglob("*")) == before
        assert (tmp_path / "build" / "modules" / "c" / "include" / "c.h").is_file()

    def test_header_install_failure(self, tmp_path, registry, builder, grammar_factory):
        spec = registry.require("c")
        root = grammar_factory(tmp_path / "vendor" / "c", spec)

        with patch("tsbundle.compiler.unit_builder.shutil.copy2", side_effect=[None, PermissionError("denied")]):
            with pytest.raises(HeaderError) as exc_info:
                builder.build(spec, _source(root, "c"))

        assert exc_info.value.module == "c"
        assert "denied" in str(exc_info.value)

    def test_archive_install_failure(self, tmp_path, registry, builder, grammar_factory):
        spec = registry.require("c")
        root = grammar_factory(tmp_path / "vendor" / "c", spec)

        with patch("tsbundle.compiler.unit_builder.shutil.copy2", side_effect=OSError("disk full")):
            with pytest.raises(CompilationError, match="disk full"):
                builder.build(spec, _source(root, "c"))

    def test_rebuild_is_stable(self, tmp_path, registry, builder, grammar_factory):
        spec = registry.require("json")
        root = grammar_factory(tmp_path / "vendor" / "json", spec)

        first = builder.build(spec, _source(root, "json"))
        header_text = first.header.read_text()
        shutil.rmtree(tmp_path / "dist")
        second = builder.build(spec, _source(root, "json"))

        assert second.archive == first.archive
        assert second.header.read_text() == header_text
