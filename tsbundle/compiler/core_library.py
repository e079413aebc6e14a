"""
Core tree-sitter runtime library.

The runtime is fetched like any other package and built from its
amalgamated ``lib/src/lib.c`` into ``libtree-sitter.a``.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..fetch.materializer import MaterializedSource
from ..utils.config import Optimize
from ..utils.exceptions import CompilationError
from ..utils.logging import get_logger
from .toolchain import CToolchain
from .unit_builder import install_file

logger = get_logger(__name__)

CORE_LIBRARY_NAME = "tree-sitter"
AMALGAMATED_SOURCE = Path("lib") / "src" / "lib.c"
PUBLIC_INCLUDE_DIR = Path("lib") / "include"


@dataclass(frozen=True)
class CoreLibrary:
    """Installed core runtime archive and its public headers."""

    archive: Path
    include_dir: Path
    revision: str


class CoreLibraryBuilder:
    """Builds and installs the core runtime from a fetched source tree."""

    def __init__(self, toolchain: CToolchain, build_dir: Path, install_dir: Path):
        self.toolchain = toolchain
        self.build_dir = Path(build_dir)
        self.install_dir = Path(install_dir)

    def build(
        self,
        source: MaterializedSource,
        optimize: Optimize = Optimize.DEBUG,
        target: Optional[str] = None,
    ) -> CoreLibrary:
        lib_c = source.root / AMALGAMATED_SOURCE
        include_src = source.root / PUBLIC_INCLUDE_DIR
        if not lib_c.is_file():
            raise CompilationError(f"Core library source not found: {lib_c}", CORE_LIBRARY_NAME)

        work_dir = self.build_dir / "core"
        cflags = self.toolchain.get_cflags(
            optimize,
            target,
            include_dirs=[include_src, source.root / "lib" / "src"],
        )
        obj = self.toolchain.compile(CORE_LIBRARY_NAME, lib_c, work_dir / "obj" / "lib.o", cflags)
        archive = self.toolchain.archive(CORE_LIBRARY_NAME, [obj], work_dir / f"lib{CORE_LIBRARY_NAME}.a")

        installed = install_file(CORE_LIBRARY_NAME, archive, self.install_dir / "lib" / archive.name)
        include_dir = self.install_dir / "include"
        for header in sorted((include_src / "tree_sitter").glob("*.h")):
            install_file(CORE_LIBRARY_NAME, header, include_dir / "tree_sitter" / header.name)

        logger.info(f"Built core library {installed.name} @ {source.revision[:12]}")
        return CoreLibrary(archive=installed, include_dir=include_dir, revision=source.revision)
