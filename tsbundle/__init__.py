"""
tsbundle: build a tree-sitter grammar bundle from selectable modules

Resolves which grammar modules to include from command-line flags and
declarative build options, fetches each selected grammar, runs the
tree-sitter generator where a grammar needs it, compiles every grammar
into a static library with a synthesized header, and links them with the
core runtime into one shared library carrying compile-time switches.

Usage:
    from tsbundle import BuildConfig, BuildContext, BuildOrchestrator

    context = BuildContext.from_config(BuildConfig("tsbundle.yaml"))
    result = BuildOrchestrator(context).run(["--", "--language", "python", "rust"])
    print(result.composed.library)
"""

__version__ = "0.1.0"
__author__ = "tsbundle developers"

from .registry import ModuleRegistry, ModuleSpec, default_registry
from .selection import ResolvedConfig, SelectionIntent, resolve_selection
from .utils.config import BuildConfig, load_config
from .pipeline import BuildContext, BuildOrchestrator, BuildResult

__all__ = [
    "ModuleRegistry",
    "ModuleSpec",
    "default_registry",
    "ResolvedConfig",
    "SelectionIntent",
    "resolve_selection",
    "BuildConfig",
    "load_config",
    "BuildContext",
    "BuildOrchestrator",
    "BuildResult",
]
