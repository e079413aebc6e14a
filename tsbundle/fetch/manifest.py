"""
Dependency manifest.

Declares where every fetchable package comes from, keyed by the same
name the registry uses (plus ``tree_sitter_api`` for the core library):

    dependencies:
      python:
        git: https://github.com/tree-sitter/tree-sitter-python
        rev: 4bfdd9033a2225cc95032ce77066b7aeca9e2efc
      c:
        path: vendor/tree-sitter-c
        sha256: 9f2c...

Relative ``path`` entries are resolved against the manifest's directory.
"""

import hashlib
import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional

import yaml

from ..utils.exceptions import ConfigErrorKind, ConfigurationError

CORE_PACKAGE = "tree_sitter_api"

COMMIT_PATTERN = re.compile(r"^([0-9a-f]{40}|[0-9a-f]{64})$")


@dataclass(frozen=True)
class DependencySource:
    """Where one package comes from and how it is pinned."""

    name: str
    git: Optional[str] = None
    rev: Optional[str] = None
    path: Optional[Path] = None
    sha256: Optional[str] = None

    @property
    def is_git(self) -> bool:
        return self.git is not None


def _invalid(message: str, token: str) -> ConfigurationError:
    return ConfigurationError(message, ConfigErrorKind.INVALID_CONFIG, token)


def _parse_entry(name: str, entry: Any, base_dir: Path) -> DependencySource:
    if not isinstance(entry, dict):
        raise _invalid(f"Dependency '{name}' must be a mapping", name)

    git = entry.get("git")
    path = entry.get("path")
    if bool(git) == bool(path):
        raise _invalid(f"Dependency '{name}' needs exactly one of 'git' or 'path'", name)

    if git:
        rev = str(entry.get("rev", "")).lower()
        if not COMMIT_PATTERN.match(rev):
            raise _invalid(f"Dependency '{name}' must pin 'rev' to a full commit hash", name)
        return DependencySource(name=name, git=str(git), rev=rev)

    resolved = Path(path)
    if not resolved.is_absolute():
        resolved = base_dir / resolved
    sha256 = entry.get("sha256")
    return DependencySource(name=name, path=resolved, sha256=str(sha256).lower() if sha256 else None)


class DependencyManifest:
    """Read-only mapping of package name to ``DependencySource``."""

    def __init__(self, sources: Mapping[str, DependencySource]):
        self._sources = dict(sources)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base_dir: Optional[Path] = None) -> "DependencyManifest":
        base_dir = base_dir or Path.cwd()
        deps = data.get("dependencies") or {}
        if not isinstance(deps, dict):
            raise _invalid("Manifest 'dependencies' must be a mapping", "dependencies")
        return cls({name: _parse_entry(name, entry, base_dir) for name, entry in deps.items()})

    @classmethod
    def load(cls, manifest_file: str) -> "DependencyManifest":
        """Load a YAML or JSON manifest file."""
        path = Path(manifest_file)
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise _invalid(f"Failed to load dependency manifest {path}: {e}", str(path)) from e
        if not isinstance(data, dict):
            raise _invalid(f"Dependency manifest {path} must contain a mapping", str(path))
        return cls.from_dict(data, path.resolve().parent)

    def get(self, name: str) -> Optional[DependencySource]:
        return self._sources.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._sources

    def __iter__(self) -> Iterator[str]:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)


def tree_digest(root: Path) -> str:
    """
    SHA-256 over every file in a source tree.

    Paths are hashed relative to ``root`` in sorted order together with
    file contents; VCS metadata directories are skipped.
    """
    digest = hashlib.sha256()
    entries = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in (".git", ".hg", ".svn"))
        for filename in filenames:
            full = Path(dirpath) / filename
            entries.append((full.relative_to(root).as_posix(), full))

    for rel, full in sorted(entries):
        digest.update(rel.encode("utf-8"))
        digest.update(b"\0")
        with open(full, "rb") as f:
            for chunk in iter(lambda: f.read(65536), b""):
                digest.update(chunk)
        digest.update(b"\0")
    return digest.hexdigest()
