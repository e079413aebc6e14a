"""
Grammar generation step.

Some grammar packages only ship ``grammar.js`` and need the tree-sitter
CLI to produce ``parser.c``. The generator runs on a staged copy of the
fetched package inside the build directory; the fetched tree itself is
never modified.
"""

import os
import shutil
from pathlib import Path
from typing import Optional

from ..fetch.materializer import MaterializedSource
from ..registry import ModuleSpec
from ..utils.commands import CommandRunner, CommandTimeout
from ..utils.config import GeneratorConfig
from ..utils.exceptions import GenerationError
from ..utils.logging import get_logger

logger = get_logger(__name__)

INSTALL_HINT = "Install tree-sitter-cli (e.g. `npm install -g tree-sitter-cli` or `cargo install tree-sitter-cli`) and make sure it is on PATH"


class GrammarGenerator:
    """Locates and runs the external grammar generator."""

    def __init__(self, runner: CommandRunner, config: Optional[GeneratorConfig] = None):
        self.runner = runner
        self.config = config or GeneratorConfig()

    def locate(self, module: str) -> str:
        """
        Find the generator executable.

        The command search path is tried first, then the configured
        bundled fallback.

        Raises:
            GenerationError: If no usable executable is found
        """
        found = self.runner.which(self.config.executable)
        if found:
            return found

        bundled = self.config.bundled_path
        if bundled and os.path.isfile(bundled) and os.access(bundled, os.X_OK):
            logger.debug(f"Using bundled generator at {bundled}")
            return bundled

        raise GenerationError(
            f"Grammar '{module}' requires generation but the '{self.config.executable}' "
            f"executable was not found. {INSTALL_HINT}.",
            module,
        )

    def stage(self, source: MaterializedSource, staging_dir: Path) -> MaterializedSource:
        """
        Copy a fetched package into the build-owned staging directory.

        Raises:
            GenerationError: If the staging directory cannot be replaced
        """
        try:
            if staging_dir.exists():
                shutil.rmtree(staging_dir)
            staging_dir.parent.mkdir(parents=True, exist_ok=True)
            shutil.copytree(source.root, staging_dir, ignore=shutil.ignore_patterns(".git"))
        except OSError as e:
            raise GenerationError(
                f"Failed to stage grammar '{source.name}' into {staging_dir}: {e}",
                source.name,
            ) from e
        return source.with_root(staging_dir)

    def generate(self, spec: ModuleSpec, source: MaterializedSource, staging_dir: Path) -> MaterializedSource:
        """
        Run the generator for ``spec`` and return the generated tree.

        The executable is located before anything is staged, so a missing
        tool fails without touching the build directory.

        Raises:
            GenerationError: If the tool is missing, times out or exits non-zero
        """
        executable = self.locate(spec.name)
        staged = self.stage(source, staging_dir)
        cmd = [executable, self.config.subcommand]

        logger.info(f"[{spec.name}] running {' '.join(cmd)} in {staged.root}")
        try:
            result = self.runner.run(cmd, cwd=str(staged.root), timeout=self.config.timeout_seconds)
        except FileNotFoundError as e:
            raise GenerationError(
                f"Generator '{executable}' disappeared while generating '{spec.name}'. {INSTALL_HINT}.",
                spec.name,
            ) from e
        except CommandTimeout as e:
            raise GenerationError(
                f"Generating grammar '{spec.name}' timed out after {self.config.timeout_seconds} seconds",
                spec.name,
            ) from e

        if not result.ok:
            raise GenerationError(
                f"Generating grammar '{spec.name}' failed with return code {result.returncode}:\n{result.output}",
                spec.name,
                result.output,
            )

        parser = staged.root / spec.source_root / "parser.c"
        if not parser.is_file():
            raise GenerationError(
                f"Generator finished for '{spec.name}' but {parser} was not produced",
                spec.name,
                result.output,
            )
        return staged
