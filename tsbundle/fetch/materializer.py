"""
Dependency materialization.

Turns a package name into a source tree on disk according to the
dependency manifest. Git packages are cloned into a cache directory and
checked out at their pinned commit; path packages are used in place.
Every failure is fatal: there is no partial-build fallback.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..utils.commands import CommandRunner, CommandTimeout
from ..utils.config import Optimize
from ..utils.exceptions import DependencyError
from ..utils.logging import get_logger
from .manifest import DependencyManifest, DependencySource, tree_digest

logger = get_logger(__name__)


@dataclass(frozen=True)
class FetchRequest:
    """A package name plus the target parameters it is fetched for."""

    name: str
    target: Optional[str] = None
    optimize: Optimize = Optimize.DEBUG


@dataclass(frozen=True)
class MaterializedSource:
    """A package's source tree on disk."""

    name: str
    root: Path
    revision: str
    request: FetchRequest

    def with_root(self, root: Path) -> "MaterializedSource":
        return MaterializedSource(self.name, root, self.revision, self.request)


class DependencyMaterializer:
    """
    Fetches package sources declared in a ``DependencyManifest``.

    Each package gets its own checkout directory, so materializing
    different packages concurrently is safe.
    """

    def __init__(
        self,
        manifest: DependencyManifest,
        cache_dir: Path,
        runner: CommandRunner,
        git: str = "git",
        timeout: float = 600,
    ):
        self.manifest = manifest
        self.cache_dir = Path(cache_dir)
        self.runner = runner
        self.git = git
        self.timeout = timeout

    def materialize(self, request: FetchRequest) -> MaterializedSource:
        """
        Obtain the source tree for ``request.name``.

        Raises:
            DependencyError: If the package is undeclared, cannot be fetched,
                or does not match its pinned revision or digest
        """
        source = self.manifest.get(request.name)
        if source is None:
            raise DependencyError(
                f"Missing package declaration for '{request.name}' in dependency manifest",
                request.name,
            )
        if source.is_git:
            return self._materialize_git(source, request)
        return self._materialize_path(source, request)

    def _materialize_path(self, source: DependencySource, request: FetchRequest) -> MaterializedSource:
        root = source.path
        if not root.is_dir():
            raise DependencyError(f"Package '{source.name}' path does not exist: {root}", source.name)

        if source.sha256:
            try:
                actual = tree_digest(root)
            except OSError as e:
                raise DependencyError(f"Cannot read package '{source.name}' at {root}: {e}", source.name) from e
            if actual != source.sha256:
                raise DependencyError(
                    f"Integrity check failed for '{source.name}': expected sha256 {source.sha256}, got {actual}",
                    source.name,
                )
            revision = actual
        else:
            revision = "local"

        logger.debug(f"Using local sources for '{source.name}' at {root}")
        return MaterializedSource(source.name, root, revision, request)

    def _materialize_git(self, source: DependencySource, request: FetchRequest) -> MaterializedSource:
        checkout = self.cache_dir / f"{source.name}-{source.rev[:12]}"

        if checkout.is_dir():
            try:
                cached_head = self._head(checkout, source)
            except DependencyError:
                cached_head = ""
            if cached_head == source.rev:
                logger.debug(f"Reusing cached checkout of '{source.name}' at {checkout}")
                return MaterializedSource(source.name, checkout, source.rev, request)
            logger.warning(f"Cached checkout of '{source.name}' is stale, fetching again")
            self._remove(source, checkout)

        partial = checkout.with_name(checkout.name + ".partial")
        self._remove(source, partial)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DependencyError(f"Cannot create cache directory {self.cache_dir}: {e}", source.name) from e

        logger.info(f"Fetching '{source.name}' from {source.git} @ {source.rev[:12]}")
        self._git(source, ["clone", "--quiet", "--no-checkout", source.git, str(partial)])
        self._git(source, ["-C", str(partial), "checkout", "--quiet", "--detach", source.rev])

        head = self._head(partial, source)
        if head != source.rev:
            shutil.rmtree(partial, ignore_errors=True)
            raise DependencyError(
                f"Integrity check failed for '{source.name}': expected commit {source.rev}, got {head}",
                source.name,
            )

        try:
            partial.rename(checkout)
        except OSError as e:
            raise DependencyError(f"Cannot move checkout of '{source.name}' into {checkout}: {e}", source.name) from e
        return MaterializedSource(source.name, checkout, source.rev, request)

    def _remove(self, source: DependencySource, path: Path) -> None:
        try:
            if path.exists():
                shutil.rmtree(path)
        except OSError as e:
            raise DependencyError(f"Cannot remove {path} while fetching '{source.name}': {e}", source.name) from e

    def _head(self, checkout: Path, source: DependencySource) -> str:
        result = self._git(source, ["-C", str(checkout), "rev-parse", "HEAD"])
        return result.stdout.strip().lower()

    def _git(self, source: DependencySource, args):
        argv = [self.git] + list(args)
        try:
            result = self.runner.run(argv, timeout=self.timeout)
        except FileNotFoundError as e:
            raise DependencyError(
                f"git executable '{self.git}' not found while fetching '{source.name}'",
                source.name,
            ) from e
        except CommandTimeout as e:
            raise DependencyError(f"Fetching '{source.name}' timed out: {e}", source.name) from e

        if not result.ok:
            raise DependencyError(
                f"Fetching '{source.name}' failed: {' '.join(argv)} exited with {result.returncode}",
                source.name,
                result.output,
            )
        return result
