"""
Public header synthesis for grammar modules.

Upstream grammar packages do not reliably ship a header declaring their
language accessor, so one is generated per module. Headers are written
into a build-owned directory, never into the fetched package.
"""

from pathlib import Path

from ..registry import ModuleSpec
from ..utils.exceptions import HeaderError

ACCESSOR_PREFIX = "tree_sitter"

_HEADER_TEMPLATE = """\
#ifndef {guard}
#define {guard}
typedef struct TSLanguage TSLanguage;
#ifdef __cplusplus
extern "C"
{{
#endif
const TSLanguage *{accessor}(void);
#ifdef __cplusplus
}}
#endif
#endif
"""


def accessor_name(name: str) -> str:
    """Name of the exported language accessor, e.g. ``tree_sitter_zig``."""
    return f"{ACCESSOR_PREFIX}_{name}"


def include_guard(name: str) -> str:
    """Include guard macro, e.g. ``TREE_SITTER_ZIG_H_``."""
    return f"{ACCESSOR_PREFIX.upper()}_{name.upper()}_H_"


def header_filename(name: str) -> str:
    return f"{name}.h"


def render_header(name: str) -> str:
    """Header text for module ``name``; identical for identical names."""
    return _HEADER_TEMPLATE.format(guard=include_guard(name), accessor=accessor_name(name))


def write_header(spec: ModuleSpec, include_dir: Path) -> Path:
    """
    Write the module header into ``include_dir``.

    Rewriting an unchanged header leaves the file untouched, so repeated
    builds do not invalidate anything that depends on it.

    Raises:
        HeaderError: If the directory or file cannot be written
    """
    path = include_dir / header_filename(spec.name)
    content = render_header(spec.name)
    try:
        include_dir.mkdir(parents=True, exist_ok=True)
        if path.is_file() and path.read_text(encoding="utf-8") == content:
            return path
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise HeaderError(spec.name, str(path), e) from e
    return path
