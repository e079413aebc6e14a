"""
Compilation unit builder.

Compiles one grammar module into a static library, synthesizes its
public header and installs both under the install prefix.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from ..fetch.materializer import MaterializedSource
from ..registry import ModuleSpec
from ..utils.config import Optimize
from ..utils.exceptions import CompilationError, HeaderError
from ..utils.logging import get_logger
from .headers import write_header
from .toolchain import CToolchain

logger = get_logger(__name__)


@dataclass(frozen=True)
class CompiledModule:
    """Static library and installed header of one grammar module."""

    spec: ModuleSpec
    archive: Path
    header: Path
    objects: Tuple[Path, ...]
    include_dir: Path
    revision: str = ""

    @property
    def name(self) -> str:
        return self.spec.name


def install_file(module: str, source: Path, destination: Path) -> Path:
    """Copy a build output into the install tree."""
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
    except OSError as e:
        raise CompilationError(f"Failed to install {source} to {destination}: {e}", module) from e
    return destination


class CompilationUnitBuilder:
    """
    Builds grammar modules into static libraries.

    Each module gets its own directory below ``build_dir/modules`` so
    modules can be built concurrently without sharing intermediate files.
    """

    def __init__(self, toolchain: CToolchain, build_dir: Path, install_dir: Path):
        self.toolchain = toolchain
        self.build_dir = Path(build_dir)
        self.install_dir = Path(install_dir)

    def module_dir(self, name: str) -> Path:
        return self.build_dir / "modules" / name

    def build(
        self,
        spec: ModuleSpec,
        source: MaterializedSource,
        optimize: Optimize = Optimize.DEBUG,
        target: Optional[str] = None,
    ) -> CompiledModule:
        """
        Compile ``spec`` from the materialized ``source`` tree.

        Args:
            spec: Module to build
            source: Fetched (or generated) package tree
            optimize: Optimization mode
            target: Optional target triple

        Returns:
            CompiledModule describing the installed artifacts

        Raises:
            CompilationError: If a source file is missing or a tool fails
            HeaderError: If the header cannot be written or installed
        """
        src_root = source.root / spec.source_root
        sources = [src_root / filename for filename in spec.source_files]
        missing = [str(s) for s in sources if not s.is_file()]
        if missing:
            raise CompilationError(
                f"Grammar '{spec.name}' is missing source file(s): {', '.join(missing)}",
                spec.name,
            )

        work_dir = self.module_dir(spec.name)
        cflags = self.toolchain.get_cflags(optimize, target, include_dirs=[src_root])

        objects = []
        for src in sources:
            obj = work_dir / "obj" / (src.stem + ".o")
            self.toolchain.compile(spec.name, src, obj, cflags)
            objects.append(obj)

        archive = self.toolchain.archive(spec.name, objects, work_dir / f"lib{spec.name}.a")
        staged_header = write_header(spec, work_dir / "include")

        installed_archive = install_file(spec.name, archive, self.install_dir / "lib" / archive.name)
        installed_header = self.install_dir / "include" / staged_header.name
        try:
            installed_header.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(staged_header, installed_header)
        except OSError as e:
            raise HeaderError(spec.name, str(installed_header), e) from e

        logger.debug(f"[{spec.name}] installed {installed_archive} and {installed_header}")
        return CompiledModule(
            spec=spec,
            archive=installed_archive,
            header=installed_header,
            objects=tuple(objects),
            include_dir=installed_header.parent,
            revision=source.revision,
        )
