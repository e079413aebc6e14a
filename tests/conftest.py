"""
Pytest configuration and shared fixtures for tsbundle tests.

The ``FakeRunner`` stands in for every external tool (cc, ar, git,
tree-sitter) so the whole build pipeline can be exercised without a C
toolchain or network access.
"""

import os
import shutil
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pytest

from tsbundle.fetch.manifest import CORE_PACKAGE, DependencyManifest
from tsbundle.registry import ModuleSpec, default_registry
from tsbundle.utils.commands import CommandResult, CommandRunner
from tsbundle.utils.config import BuildConfig

FAKE_HEAD_FILE = ".fake_head"


class FakeRunner(CommandRunner):
    """
    Simulates the external tools used by a build.

    Compilers and archivers write a small placeholder to their ``-o`` or
    archive output. ``git clone`` copies a registered source directory,
    ``git checkout`` records the revision in a marker file that
    ``git rev-parse`` reads back. ``tree-sitter generate`` writes
    ``src/parser.c`` into its working directory.
    """

    def __init__(
        self,
        available: Iterable[str] = ("cc", "ar", "git"),
        git_sources: Optional[Dict[str, Path]] = None,
    ):
        self.available = set(available)
        self.git_sources = dict(git_sources or {})
        self.failures: Dict[str, Tuple[int, str]] = {}
        self.head_override: Optional[str] = None
        self.calls: List[Tuple[Tuple[str, ...], Optional[str]]] = []
        self._lock = threading.Lock()

    def fail_when(self, needle: str, returncode: int = 1, stderr: str = "error: simulated failure") -> None:
        """Make any command whose text contains ``needle`` fail."""
        self.failures[needle] = (returncode, stderr)

    def commands(self, tool: str) -> List[Tuple[str, ...]]:
        return [argv for argv, _ in self.calls if os.path.basename(argv[0]) == tool]

    def which(self, name: str) -> Optional[str]:
        if name in self.available:
            return f"/usr/bin/{name}"
        return None

    def run(self, argv, cwd=None, env=None, timeout=None) -> CommandResult:
        argv = tuple(str(a) for a in argv)
        with self._lock:
            self.calls.append((argv, cwd))

        tool = os.path.basename(argv[0])
        if tool not in self.available and not os.path.isfile(argv[0]):
            raise FileNotFoundError(argv[0])

        text = " ".join(argv)
        for needle, (code, stderr) in self.failures.items():
            if needle in text:
                return CommandResult(argv, code, "", stderr)

        if tool in ("cc", "gcc", "clang"):
            output = Path(argv[argv.index("-o") + 1])
            output.write_bytes(b"\x7fELF fake object")
        elif tool == "ar":
            output = Path(argv[2])
            output.write_bytes(b"!<arch>\n" + "\n".join(argv[3:]).encode())
        elif tool == "tree-sitter":
            src = Path(cwd) / "src"
            src.mkdir(parents=True, exist_ok=True)
            (src / "parser.c").write_text("/* generated */\n")
        elif tool == "git":
            return self._git(argv)
        return CommandResult(argv, 0, "", "")

    def _git(self, argv) -> CommandResult:
        args = list(argv[1:])
        if args[0] == "clone":
            url, dest = args[-2], Path(args[-1])
            source = self.git_sources.get(url)
            if source is None:
                return CommandResult(argv, 128, "", f"fatal: repository '{url}' not found")
            shutil.copytree(source, dest)
            return CommandResult(argv, 0, "", "")
        if args[0] == "-C":
            path = Path(args[1])
            if args[2] == "checkout":
                rev = self.head_override or args[-1]
                (path / FAKE_HEAD_FILE).write_text(rev)
                return CommandResult(argv, 0, "", "")
            if args[2] == "rev-parse":
                marker = path / FAKE_HEAD_FILE
                if not marker.exists():
                    return CommandResult(argv, 128, "", "fatal: not a git repository")
                return CommandResult(argv, 0, marker.read_text() + "\n", "")
        return CommandResult(argv, 1, "", f"unsupported fake git command: {' '.join(args)}")


def make_grammar_tree(root: Path, spec: ModuleSpec) -> Path:
    """Create a minimal package tree for ``spec`` under ``root``."""
    src = root / spec.source_root
    src.mkdir(parents=True, exist_ok=True)
    (root / "grammar.js").write_text(f"module.exports = grammar({{ name: '{spec.name}' }});\n")
    if not spec.needs_generation:
        (src / "parser.c").write_text(f"/* parser for {spec.name} */\n")
    if spec.has_scanner:
        (src / "scanner.c").write_text(f"/* scanner for {spec.name} */\n")
    return root


def make_core_tree(root: Path) -> Path:
    """Create a minimal tree-sitter runtime source tree."""
    (root / "lib" / "src").mkdir(parents=True, exist_ok=True)
    (root / "lib" / "include" / "tree_sitter").mkdir(parents=True, exist_ok=True)
    (root / "lib" / "src" / "lib.c").write_text("/* amalgamated runtime */\n")
    (root / "lib" / "include" / "tree_sitter" / "api.h").write_text("/* api */\n")
    return root


@pytest.fixture
def registry():
    """The built-in module registry."""
    return default_registry()


@pytest.fixture
def fake_runner():
    """A fresh FakeRunner with cc, ar and git available."""
    return FakeRunner()


@pytest.fixture
def build_config(tmp_path, monkeypatch):
    """Default BuildConfig writing into a temporary directory."""
    monkeypatch.chdir(tmp_path)
    for var in ("CC", "AR", "TSBUNDLE_JOBS", "TSBUNDLE_CACHE_DIR", "TSBUNDLE_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    config = BuildConfig()
    config.output.build_dir = str(tmp_path / "build")
    config.output.prefix = str(tmp_path / "dist")
    config.build.jobs = 4
    return config


@pytest.fixture
def vendor_manifest(tmp_path, registry):
    """
    Factory creating local package trees and a manifest pointing at them.

    The core runtime package is always included.
    """

    def _make(names: Iterable[str]) -> DependencyManifest:
        vendor = tmp_path / "vendor"
        deps = {CORE_PACKAGE: {"path": str(make_core_tree(vendor / CORE_PACKAGE))}}
        for name in names:
            spec = registry.require(name)
            deps[name] = {"path": str(make_grammar_tree(vendor / name, spec))}
        return DependencyManifest.from_dict({"dependencies": deps}, tmp_path)

    return _make


@pytest.fixture
def runner_factory():
    """The FakeRunner class, for tests that need a custom tool set."""
    return FakeRunner


@pytest.fixture
def grammar_factory():
    """Helper creating a grammar package tree: ``grammar_factory(root, spec)``."""
    return make_grammar_tree


@pytest.fixture
def core_factory():
    """Helper creating a core runtime tree: ``core_factory(root)``."""
    return make_core_tree
