"""
Dependency fetching for grammar packages and the core library.
"""

from .manifest import CORE_PACKAGE, DependencyManifest, DependencySource, tree_digest
from .materializer import DependencyMaterializer, FetchRequest, MaterializedSource

__all__ = [
    "CORE_PACKAGE",
    "DependencyManifest",
    "DependencySource",
    "tree_digest",
    "DependencyMaterializer",
    "FetchRequest",
    "MaterializedSource",
]
