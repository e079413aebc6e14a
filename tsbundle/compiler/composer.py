"""
Module composition.

Links the core runtime and every compiled grammar into one shared
library and publishes the resolved selection as compile-time switches,
so consumers only reference grammars that were actually linked in.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..selection.resolver import ResolvedConfig
from ..utils.config import validate_bundle_name
from ..utils.exceptions import CompilationError
from ..utils.logging import get_logger
from .core_library import CoreLibrary
from .toolchain import CToolchain, shared_library_name
from .unit_builder import CompiledModule, install_file

logger = get_logger(__name__)


@dataclass(frozen=True)
class ComposedModule:
    """The exported bundle: linked library plus its feature switches."""

    name: str
    library: Path
    config_header: Path
    config_json: Path
    core: CoreLibrary
    modules: Tuple[CompiledModule, ...]
    config: ResolvedConfig
    defines: Tuple[str, ...]


def render_config_header(name: str, config: ResolvedConfig) -> str:
    """C header with one ``#define`` per module plus the aggregate switch."""
    validate_bundle_name(name)
    guard = f"{name.upper()}_CONFIG_H_"
    lines = [f"#ifndef {guard}", f"#define {guard}"]
    for macro, value in config.feature_defines(name):
        lines.append(f"#define {macro} {value}")
    lines.append("#endif")
    return "\n".join(lines) + "\n"


class ModuleComposer:
    """Aggregates compiled grammars and the core runtime into one bundle."""

    def __init__(
        self,
        toolchain: CToolchain,
        build_dir: Path,
        install_dir: Path,
        name: str = "tsbundle",
    ):
        self.toolchain = toolchain
        self.build_dir = Path(build_dir)
        self.install_dir = Path(install_dir)
        self.name = validate_bundle_name(name)

    def compose(
        self,
        core: CoreLibrary,
        modules: Sequence[CompiledModule],
        config: ResolvedConfig,
        target: Optional[str] = None,
    ) -> ComposedModule:
        """
        Link ``core`` and ``modules`` and attach ``config``.

        Raises:
            CompilationError: If the link set disagrees with ``config`` or linking fails
        """
        ordered = self._check_link_set(modules, config)
        work_dir = self.build_dir / "bundle"

        config_header = self._write(work_dir / f"{self.name}_config.h", render_config_header(self.name, config))
        config_json = self._write(
            work_dir / "config.json",
            json.dumps({"name": self.name, "config": config.to_dict()}, indent=2) + "\n",
        )

        archives = [core.archive] + [m.archive for m in ordered]
        library = self.toolchain.link_shared(
            self.name, archives, work_dir / shared_library_name(self.name), target
        )

        installed_library = install_file(self.name, library, self.install_dir / "lib" / library.name)
        installed_header = install_file(self.name, config_header, self.install_dir / "include" / config_header.name)
        installed_json = install_file(
            self.name, config_json, self.install_dir / "share" / self.name / config_json.name
        )

        defines = tuple(f"-D{macro}={value}" for macro, value in config.feature_defines(self.name))
        return ComposedModule(
            name=self.name,
            library=installed_library,
            config_header=installed_header,
            config_json=installed_json,
            core=core,
            modules=tuple(ordered),
            config=config,
            defines=defines,
        )

    def _check_link_set(self, modules: Sequence[CompiledModule], config: ResolvedConfig) -> List[CompiledModule]:
        by_name = {m.name: m for m in modules}
        for name in by_name:
            if not config.is_included(name):
                raise CompilationError(
                    f"Grammar '{name}' was compiled but is not enabled in the resolved configuration",
                    self.name,
                )
        missing = [name for name in config.included if name not in by_name]
        if missing:
            raise CompilationError(
                f"Enabled grammar(s) missing from the link set: {', '.join(missing)}",
                self.name,
            )
        return [by_name[name] for name in config.included]

    def _write(self, path: Path, content: str) -> Path:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise CompilationError(f"Failed to write {path}: {e}", self.name) from e
        return path
