"""Native build drivers for the compression libraries and RocksDB itself."""

from .base import BuildContext, DependencyArtifact, DependencyRecipe
from .dependencies import DependencyBuilder, default_recipes, unpack_source
from .rocksdb import EngineArtifact, RocksDBBuilder, find_engine_library

__all__ = [
    "BuildContext",
    "DependencyArtifact",
    "DependencyBuilder",
    "DependencyRecipe",
    "EngineArtifact",
    "RocksDBBuilder",
    "default_recipes",
    "find_engine_library",
    "unpack_source",
]
