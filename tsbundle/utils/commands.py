"""
External command execution.

All processes tsbundle launches (compiler, archiver, git, the grammar
generator) go through a ``CommandRunner`` so callers and tests can swap
in a different implementation without touching ``subprocess``.
"""

import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from .logging import BuildLogger

command_log = BuildLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    argv: tuple
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined output, stderr first since tools report errors there."""
        return "\n".join(part for part in (self.stderr.strip(), self.stdout.strip()) if part)


class CommandTimeout(Exception):
    """Raised by a runner when a command exceeds its timeout."""

    def __init__(self, argv: Sequence[str], timeout: float):
        super().__init__(f"Command timed out after {timeout} seconds: {' '.join(argv)}")
        self.argv = tuple(argv)
        self.timeout = timeout


class CommandRunner(ABC):
    """
    Capability for locating and running external executables.

    Subclasses implement ``which`` and ``run``. ``run`` never raises for
    a non-zero exit status; callers inspect ``CommandResult.returncode``.
    It raises ``FileNotFoundError`` when the executable does not exist and
    ``CommandTimeout`` when the timeout expires.
    """

    @abstractmethod
    def which(self, name: str) -> Optional[str]:
        """Full path of executable ``name``, or None when it is not found."""
        pass

    @abstractmethod
    def run(
        self,
        argv: Sequence[str],
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Run ``argv`` to completion and capture its output."""
        pass


class SubprocessRunner(CommandRunner):
    """Runs commands with ``subprocess`` and searches ``PATH`` with ``shutil.which``."""

    def which(self, name: str) -> Optional[str]:
        if os.path.sep in name:
            return name if os.path.isfile(name) and os.access(name, os.X_OK) else None
        return shutil.which(name)

    def run(
        self,
        argv: Sequence[str],
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        argv = [str(a) for a in argv]
        command_log.log_command(argv, cwd)
        try:
            proc = subprocess.run(
                argv,
                cwd=cwd,
                env=env,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            raise CommandTimeout(argv, timeout)
        return CommandResult(tuple(argv), proc.returncode, proc.stdout or "", proc.stderr or "")
