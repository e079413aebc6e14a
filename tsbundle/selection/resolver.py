"""
Selection resolution.

Merges the command-line intent with the declarative options into one
frozen ``ResolvedConfig``. The same object drives compilation and is
exported to the composed module, so both agree on which grammars exist.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..registry import ModuleRegistry
from .arguments import ArgumentSelection, parse_selection_args
from .options import DeclarativeOptions, read_declarative_options


@dataclass(frozen=True)
class SelectionIntent:
    """Everything the user asked for, before resolution."""

    languages: Tuple[str, ...] = ()
    all_languages: bool = False
    options: DeclarativeOptions = field(default_factory=DeclarativeOptions)


@dataclass(frozen=True)
class ResolvedConfig:
    """Final inclusion decision for every registered grammar module."""

    modules: Mapping[str, bool]
    all: bool

    def __post_init__(self):
        if not isinstance(self.modules, MappingProxyType):
            object.__setattr__(self, "modules", MappingProxyType(dict(self.modules)))

    def __getitem__(self, name: str) -> bool:
        return self.modules[name]

    def is_included(self, name: str) -> bool:
        return self.modules.get(name, False)

    @property
    def included(self) -> Tuple[str, ...]:
        """Names of included modules in registry order."""
        return tuple(name for name, on in self.modules.items() if on)

    def to_dict(self) -> Dict[str, bool]:
        data = {"all": self.all}
        data.update(self.modules)
        return data

    def feature_defines(self, prefix: str) -> List[Tuple[str, int]]:
        """
        Compile-time switches as ``(macro, value)`` pairs.

        The aggregate switch comes first, then one macro per module.
        """
        prefix = prefix.upper()
        defines = [(f"{prefix}_CONFIG_ALL", int(self.all))]
        for name, on in self.modules.items():
            defines.append((f"{prefix}_CONFIG_{name.upper()}", int(on)))
        return defines


def read_selection_intent(
    argv: Sequence[str],
    registry: ModuleRegistry,
    option_values: Optional[Mapping[str, Any]] = None,
    collect_errors: bool = False,
) -> SelectionIntent:
    """Read argv flags and declarative options into one intent."""
    args: ArgumentSelection = parse_selection_args(argv, registry, collect_errors=collect_errors)
    options = read_declarative_options(registry, option_values or {})
    return SelectionIntent(args.languages, args.all_languages, options)


def resolve_selection(intent: SelectionIntent, registry: ModuleRegistry) -> ResolvedConfig:
    """
    Decide which modules to build.

    An explicit option for a module wins. Otherwise the module is included
    when the aggregate flag is on or it was named on the command line. The
    aggregate flag itself follows the same rule: an explicit ``all`` option
    overrides ``--all-languages``.
    """
    all_flag = intent.options.all
    if all_flag is None:
        all_flag = intent.all_languages

    requested = set(intent.languages)
    modules: Dict[str, bool] = {}
    for spec in registry:
        explicit = intent.options.get(spec.name)
        if explicit is not None:
            modules[spec.name] = explicit
        else:
            modules[spec.name] = all_flag or spec.name in requested

    return ResolvedConfig(MappingProxyType(modules), all_flag)
