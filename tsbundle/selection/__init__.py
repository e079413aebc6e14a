"""
Grammar selection: argument reading, declarative options and resolution.
"""

from .arguments import ArgumentSelection, ScanState, parse_selection_args, split_at_separator
from .options import (
    DeclarativeOptions,
    merge_option_sources,
    parse_define_tokens,
    read_declarative_options,
)
from .resolver import ResolvedConfig, SelectionIntent, read_selection_intent, resolve_selection

__all__ = [
    "ArgumentSelection",
    "ScanState",
    "parse_selection_args",
    "split_at_separator",
    "DeclarativeOptions",
    "merge_option_sources",
    "parse_define_tokens",
    "read_declarative_options",
    "ResolvedConfig",
    "SelectionIntent",
    "read_selection_intent",
    "resolve_selection",
]
