"""
Catalogue of buildable grammar modules.

Each entry records where a grammar keeps its C sources inside the fetched
package and which build quirks it has. The registry is immutable once
constructed and is passed explicitly to every component that needs it.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple

from .utils.exceptions import ConfigErrorKind, ConfigurationError

DEFAULT_SOURCE_ROOT = "src"

# Names double as artifact names and C macro fragments.
MODULE_NAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")


@dataclass(frozen=True)
class ModuleSpec:
    """
    One optional grammar module.

    Attributes:
        name: Unique identifier, CLI token and accessor suffix
        source_root: Directory holding parser.c relative to the package root
        has_scanner: Whether a hand-written scanner.c sits next to parser.c
        needs_generation: Whether the generator must run before compiling
    """

    name: str
    source_root: str = DEFAULT_SOURCE_ROOT
    has_scanner: bool = True
    needs_generation: bool = False

    @property
    def source_files(self) -> Tuple[str, ...]:
        if self.has_scanner:
            return ("parser.c", "scanner.c")
        return ("parser.c",)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleSpec":
        """Build a spec from a config-file entry."""
        if not isinstance(data, dict) or "name" not in data:
            raise ConfigurationError(
                f"Registry entry must be a mapping with a 'name': {data!r}",
                ConfigErrorKind.INVALID_REGISTRY,
            )
        return cls(
            name=str(data["name"]),
            source_root=str(data.get("source_root", DEFAULT_SOURCE_ROOT)),
            has_scanner=bool(data.get("has_scanner", True)),
            needs_generation=bool(data.get("needs_generation", False)),
        )


BUILTIN_MODULES: Tuple[ModuleSpec, ...] = (
    ModuleSpec("bash"),
    ModuleSpec("c", has_scanner=False),
    ModuleSpec("css"),
    ModuleSpec("cpp"),
    ModuleSpec("c_sharp"),
    ModuleSpec("dart"),
    ModuleSpec("dockerfile", has_scanner=False),
    ModuleSpec("elixir"),
    ModuleSpec("elm"),
    ModuleSpec("erlang", has_scanner=False),
    ModuleSpec("fsharp", source_root="fsharp/src"),
    ModuleSpec("go", has_scanner=False),
    ModuleSpec("haskell"),
    ModuleSpec("html"),
    ModuleSpec("java", has_scanner=False),
    ModuleSpec("javascript"),
    ModuleSpec("json", has_scanner=False),
    ModuleSpec("julia"),
    ModuleSpec("kotlin"),
    ModuleSpec("lua"),
    ModuleSpec("make", has_scanner=False),
    ModuleSpec("markdown", source_root="tree-sitter-markdown/src"),
    ModuleSpec("nim"),
    ModuleSpec("ocaml", source_root="grammars/ocaml/src"),
    ModuleSpec("perl"),
    ModuleSpec("php", source_root="php/src"),
    ModuleSpec("python"),
    ModuleSpec("r"),
    ModuleSpec("ruby"),
    ModuleSpec("rust"),
    ModuleSpec("scala"),
    ModuleSpec("sql"),
    ModuleSpec("swift", needs_generation=True),
    ModuleSpec("toml"),
    ModuleSpec("typescript", source_root="typescript/src"),
    ModuleSpec("yaml"),
    ModuleSpec("zig", has_scanner=False),
)


class ModuleRegistry:
    """Ordered, immutable collection of ``ModuleSpec`` entries."""

    def __init__(self, specs: Iterable[ModuleSpec]):
        self._specs: Tuple[ModuleSpec, ...] = tuple(specs)
        self._by_name: Dict[str, ModuleSpec] = {}
        for spec in self._specs:
            if not MODULE_NAME_PATTERN.match(spec.name):
                raise ConfigurationError(
                    f"Invalid grammar module name '{spec.name}': must be a lower-case C identifier",
                    ConfigErrorKind.INVALID_REGISTRY,
                    spec.name,
                )
            if spec.name in self._by_name:
                raise ConfigurationError(
                    f"Grammar module '{spec.name}' is registered twice",
                    ConfigErrorKind.INVALID_REGISTRY,
                    spec.name,
                )
            self._by_name[spec.name] = spec

    def lookup(self, name: str) -> Optional[ModuleSpec]:
        return self._by_name.get(name)

    def require(self, name: str) -> ModuleSpec:
        """Return the spec for ``name`` or raise a configuration error."""
        spec = self._by_name.get(name)
        if spec is None:
            raise ConfigurationError(
                f"Unknown grammar module '{name}'",
                ConfigErrorKind.UNKNOWN_MODULE,
                name,
            )
        return spec

    def all(self) -> Tuple[ModuleSpec, ...]:
        return self._specs

    def names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self._specs)

    def extended(self, extra: Iterable[ModuleSpec]) -> "ModuleRegistry":
        """Return a new registry with ``extra`` appended."""
        return ModuleRegistry(self._specs + tuple(extra))

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[ModuleSpec]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __repr__(self) -> str:
        return f"ModuleRegistry({len(self._specs)} modules)"


def default_registry() -> ModuleRegistry:
    """Registry of the built-in grammar modules."""
    return ModuleRegistry(BUILTIN_MODULES)
