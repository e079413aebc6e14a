"""
Declarative build options.

One optional boolean per registered grammar module plus the aggregate
``all`` switch. An absent option means "unspecified": the resolver then
falls back to the command-line selection.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from ..registry import ModuleRegistry
from ..utils.exceptions import ConfigErrorKind, ConfigurationError

ALL_OPTION = "all"

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class DeclarativeOptions:
    """Explicit per-module overrides and the aggregate override."""

    modules: Mapping[str, Optional[bool]] = field(default_factory=lambda: MappingProxyType({}))
    all: Optional[bool] = None

    def get(self, name: str) -> Optional[bool]:
        return self.modules.get(name)


def parse_bool(name: str, value: Any) -> Optional[bool]:
    """Interpret one option value; ``None`` stays unspecified."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    raise ConfigurationError(
        f"Option '{name}' expects a boolean, got {value!r}",
        ConfigErrorKind.INVALID_OPTION_VALUE,
        name,
    )


def read_declarative_options(registry: ModuleRegistry, values: Mapping[str, Any]) -> DeclarativeOptions:
    """
    Read the declarative module switches.

    Args:
        registry: Registry defining which option names exist
        values: Raw option values keyed by module name (or ``all``)

    Returns:
        DeclarativeOptions with an entry for every registered module

    Raises:
        ConfigurationError: For an unknown option name or a non-boolean value
    """
    for name in values:
        if name != ALL_OPTION and name not in registry:
            raise ConfigurationError(
                f"Unknown build option '{name}'",
                ConfigErrorKind.UNKNOWN_OPTION,
                name,
            )

    modules = {spec.name: parse_bool(spec.name, values.get(spec.name)) for spec in registry}
    return DeclarativeOptions(
        modules=MappingProxyType(modules),
        all=parse_bool(ALL_OPTION, values.get(ALL_OPTION)),
    )


def parse_define_tokens(tokens: Iterable[str]) -> dict:
    """
    Parse ``NAME[=VALUE]`` define tokens (the part after ``-D``).

    A bare ``NAME`` means true. Values are validated later by
    ``read_declarative_options``.
    """
    values = {}
    for token in tokens:
        if token.startswith("-D"):
            token = token[2:]
        name, sep, value = token.partition("=")
        name = name.strip()
        if not name:
            raise ConfigurationError(
                f"Malformed build option '-D{token}'",
                ConfigErrorKind.INVALID_OPTION_VALUE,
                token,
            )
        values[name] = value if sep else True
    return values


def merge_option_sources(*sources: Mapping[str, Any]) -> dict:
    """Merge raw option mappings; later sources win for the same name."""
    merged = {}
    for source in sources:
        for name, value in source.items():
            if value is not None:
                merged[name] = value
    return merged
