from .composer import ComposedModule, ModuleComposer, render_config_header
from .core_library import CoreLibrary, CoreLibraryBuilder
from .generator import GrammarGenerator
from .headers import accessor_name, include_guard, render_header, write_header
from .toolchain import CToolchain, shared_library_name
from .unit_builder import CompilationUnitBuilder, CompiledModule

__all__ = [
    "ComposedModule",
    "ModuleComposer",
    "render_config_header",
    "CoreLibrary",
    "CoreLibraryBuilder",
    "GrammarGenerator",
    "accessor_name",
    "include_guard",
    "render_header",
    "write_header",
    "CToolchain",
    "shared_library_name",
    "CompilationUnitBuilder",
    "CompiledModule",
]
