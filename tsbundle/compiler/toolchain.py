"""
C toolchain utilities.

Builds and runs compile, archive and link commands for grammar sources.
Commands go through a ``CommandRunner`` and every step verifies that its
output file was actually produced.
"""

import platform
from pathlib import Path
from typing import List, Optional, Sequence

from ..utils.commands import CommandRunner, CommandTimeout
from ..utils.config import Optimize, ToolchainConfig
from ..utils.exceptions import CompilationError
from ..utils.logging import get_logger

logger = get_logger(__name__)


def shared_library_name(name: str) -> str:
    """Platform file name of a shared library called ``name``."""
    if platform.system() == "Darwin":
        return f"lib{name}.dylib"
    return f"lib{name}.so"


class CToolchain:
    """Compiler and archiver invocation for one build."""

    def __init__(self, runner: CommandRunner, config: Optional[ToolchainConfig] = None):
        """
        Initialize the toolchain.

        Args:
            runner: Command runner used for every invocation
            config: Compiler settings (defaults to ``cc``/``ar`` with C11)
        """
        self.runner = runner
        self.config = config or ToolchainConfig()

    def get_cflags(
        self,
        optimize: Optimize,
        target: Optional[str] = None,
        include_dirs: Sequence[Path] = (),
        extra_flags: Optional[List[str]] = None,
    ) -> List[str]:
        """
        Get CFLAGS for compiling one translation unit.

        Args:
            optimize: Optimization mode
            target: Optional target triple passed as ``--target``
            include_dirs: Include directories
            extra_flags: Additional flags

        Returns:
            List of compiler flags
        """
        flags = [f"-std={self.config.c_std}", "-fPIC"]
        flags.extend(optimize.cflags)
        if target:
            flags.append(f"--target={target}")
        for include in include_dirs:
            flags.append(f"-I{include}")
        flags.extend(self.config.extra_cflags)
        if extra_flags:
            flags.extend(extra_flags)
        return flags

    def get_compile_command(self, source: Path, output: Path, cflags: List[str]) -> List[str]:
        return [self.config.cc] + cflags + ["-c", str(source), "-o", str(output)]

    def get_archive_command(self, objects: Sequence[Path], output: Path) -> List[str]:
        return [self.config.ar, "rcs", str(output)] + [str(o) for o in objects]

    def get_link_command(
        self,
        archives: Sequence[Path],
        output: Path,
        target: Optional[str] = None,
    ) -> List[str]:
        """
        Get the command linking static archives into one shared library.

        Every archive member is kept so that all grammar accessors are
        exported from the result.
        """
        cmd = [self.config.cc, "-shared", "-fPIC"]
        if target:
            cmd.append(f"--target={target}")
        cmd.extend(["-o", str(output)])
        if platform.system() == "Darwin":
            for archive in archives:
                cmd.extend(["-Wl,-force_load", str(archive)])
        else:
            cmd.append("-Wl,--whole-archive")
            cmd.extend(str(a) for a in archives)
            cmd.append("-Wl,--no-whole-archive")
        return cmd

    def compile(self, module: str, source: Path, output: Path, cflags: List[str]) -> Path:
        """Compile one C file to an object file."""
        if not source.is_file():
            raise CompilationError(f"Source file not found: {source}", module)
        self._prepare_output(module, output, "Compilation")
        self._run(module, self.get_compile_command(source, output, cflags), output, "Compilation")
        return output

    def archive(self, module: str, objects: Sequence[Path], output: Path) -> Path:
        """Bundle object files into a static library."""
        self._prepare_output(module, output, "Archiving", replace=True)
        self._run(module, self.get_archive_command(objects, output), output, "Archiving")
        return output

    def link_shared(
        self,
        module: str,
        archives: Sequence[Path],
        output: Path,
        target: Optional[str] = None,
    ) -> Path:
        """Link static archives into a shared library."""
        self._prepare_output(module, output, "Linking")
        self._run(module, self.get_link_command(archives, output, target), output, "Linking")
        return output

    def _prepare_output(self, module: str, output: Path, step: str, replace: bool = False) -> None:
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            if replace and output.exists():
                output.unlink()
        except OSError as e:
            raise CompilationError(f"{step} failed for '{module}': cannot prepare {output}: {e}", module) from e

    def _run(self, module: str, cmd: List[str], output: Path, step: str) -> None:
        logger.debug(f"{step} [{module}]: {' '.join(cmd)}")
        try:
            result = self.runner.run(cmd, timeout=self.config.timeout_seconds)
        except FileNotFoundError as e:
            raise CompilationError(
                f"{step} failed for '{module}': executable '{cmd[0]}' not found. "
                f"Please ensure a C toolchain is installed and on PATH.",
                module,
            ) from e
        except CommandTimeout as e:
            raise CompilationError(
                f"{step} timed out for '{module}' after {self.config.timeout_seconds} seconds",
                module,
            ) from e

        if not result.ok:
            error_msg = f"{step} failed for '{module}' with return code {result.returncode}"
            if result.stderr:
                error_msg += f"\nStderr: {result.stderr}"
            raise CompilationError(error_msg, module, result.output)

        if not output.exists() or output.stat().st_size == 0:
            raise CompilationError(
                f"{step} succeeded for '{module}' but {output} was not created or is empty",
                module,
                result.output,
            )
