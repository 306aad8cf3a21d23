"""
lodtree
=======

Import of LOD (level-of-detail) tree exports into an in-memory spatial tree.

An export is either described by an explicit ``LODTreeExport.xml`` manifest
tree or, without one, by tile file naming conventions below ``Data``. Both
forms are read into the same ``LodTreeExport`` value::

    from lodtree import load_lod_tree_export, flatten

    export = load_lod_tree_export("path/to/export", offset=(0.0, 0.0, 0.0))
    for node in flatten(export):
        print(node.level, node.model_path, node.origin)
"""

from .config import ImportConfig
from .errors import (
    ConfigurationError,
    LodTreeError,
    NotFoundError,
    ParseError,
    ReferenceFrameError,
    SchemaError,
    StorageError,
    StorageIOError,
    VersionError,
)
from .export import load_lod_tree_export, locate_manifest
from .listing import FlatListingTreeBuilder, reconstruct_tile, tile_identifier
from .models import LodTreeExport, Node, Point3, SkippedEntry, flatten
from .parsers import ManifestTreeParser, parse_node
from .srs import ReferenceFrame, resolve_reference_frame
from .storage import DirectoryStorage, MemoryStorage, Storage, ZipStorage, open_storage

__version__ = "0.1.0"

__all__ = [
    "ImportConfig",
    "ConfigurationError",
    "LodTreeError",
    "NotFoundError",
    "ParseError",
    "ReferenceFrameError",
    "SchemaError",
    "StorageError",
    "StorageIOError",
    "VersionError",
    "load_lod_tree_export",
    "locate_manifest",
    "FlatListingTreeBuilder",
    "reconstruct_tile",
    "tile_identifier",
    "LodTreeExport",
    "Node",
    "Point3",
    "SkippedEntry",
    "flatten",
    "ManifestTreeParser",
    "parse_node",
    "ReferenceFrame",
    "resolve_reference_frame",
    "DirectoryStorage",
    "MemoryStorage",
    "Storage",
    "ZipStorage",
    "open_storage",
]
