"""
Command-line grammar selection.

Arguments before the first ``--`` belong to the build driver and are
ignored here. After it, two flags are recognised:

    --all-languages              request every registered grammar
    --language NAME [NAME ...]   request specific grammars

A language list ends at the next token starting with ``-``; that token
is then read as an ordinary flag, so ``--language a --language b`` is
two lists and ``--language a --all-languages`` sets both intents.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

from ..registry import ModuleRegistry
from ..utils.exceptions import ConfigErrorKind, ConfigurationError, ConfigurationErrorGroup

SEPARATOR = "--"
ALL_LANGUAGES_FLAG = "--all-languages"
LANGUAGE_FLAG = "--language"


class ScanState(Enum):
    """States of the argument scanner."""

    BEFORE_SEPARATOR = "before_separator"
    SCANNING = "scanning"
    IN_LANGUAGE_LIST = "in_language_list"


@dataclass(frozen=True)
class ArgumentSelection:
    """Selection intent read from the argument vector."""

    languages: Tuple[str, ...] = ()
    all_languages: bool = False


class _SelectionScanner:
    def __init__(self, registry: ModuleRegistry, collect_errors: bool):
        self.registry = registry
        self.collect_errors = collect_errors
        self.state = ScanState.BEFORE_SEPARATOR
        self.languages: List[str] = []
        self.all_languages = False
        self.errors: List[ConfigurationError] = []

    def feed(self, token: str) -> None:
        if self.state is ScanState.BEFORE_SEPARATOR:
            if token == SEPARATOR:
                self.state = ScanState.SCANNING
            return

        if self.state is ScanState.IN_LANGUAGE_LIST:
            if token in self.registry:
                self._add_language(token)
                return
            if token.startswith("-"):
                self.state = ScanState.SCANNING
            else:
                self._fail(
                    ConfigurationError(
                        f"Unknown grammar module '{token}' passed to {LANGUAGE_FLAG}",
                        ConfigErrorKind.UNKNOWN_MODULE,
                        token,
                    )
                )
                return

        if token == ALL_LANGUAGES_FLAG:
            self.all_languages = True
        elif token == LANGUAGE_FLAG:
            self.state = ScanState.IN_LANGUAGE_LIST

    def _add_language(self, name: str) -> None:
        if name in self.languages:
            self._fail(
                ConfigurationError(
                    f"Grammar module '{name}' selected more than once",
                    ConfigErrorKind.DUPLICATE_MODULE,
                    name,
                )
            )
            return
        self.languages.append(name)

    def _fail(self, error: ConfigurationError) -> None:
        if not self.collect_errors:
            raise error
        self.errors.append(error)

    def result(self) -> ArgumentSelection:
        if self.errors:
            if len(self.errors) == 1:
                raise self.errors[0]
            raise ConfigurationErrorGroup(self.errors)
        return ArgumentSelection(tuple(self.languages), self.all_languages)


def parse_selection_args(
    argv: Sequence[str],
    registry: ModuleRegistry,
    collect_errors: bool = False,
) -> ArgumentSelection:
    """
    Read the grammar selection from an argument vector.

    Args:
        argv: Full argument vector; everything up to the first ``--`` is skipped
        registry: Registry used to validate module names
        collect_errors: Report every problem at once instead of stopping at the first

    Returns:
        ArgumentSelection with the requested names in command-line order

    Raises:
        ConfigurationError: For an unknown or duplicated module name
        ConfigurationErrorGroup: When ``collect_errors`` is set and several problems exist
    """
    scanner = _SelectionScanner(registry, collect_errors)
    for token in argv:
        scanner.feed(token)
    return scanner.result()


def split_at_separator(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split ``argv`` into build-driver arguments and user flags."""
    argv = list(argv)
    if SEPARATOR in argv:
        index = argv.index(SEPARATOR)
        return argv[:index], argv[index + 1:]
    return argv, []
