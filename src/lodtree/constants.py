"""
LOD Tree Constants
==================

File names, element names and schema limits shared by the manifest parser
and the flat-listing reconstruction.
"""

# =============================================================================
# Export Layout
# =============================================================================

MAIN_MANIFEST_NAME = "LODTreeExport.xml"
"""Primary tree manifest at the export root."""

ALTERNATIVE_MANIFEST_NAME = "metadata.xml"
"""Alternative metadata manifest used when the primary manifest is absent."""

DATA_DIRECTORY = "Data"
"""Top-level directory holding the tile directories of a manifest-less export."""

TILE_DIRECTORY_PREFIX = "Tile_"
"""Name prefix of a tile directory inside ``Data``."""

MESH_EXTENSIONS = (".obj", ".dae")
"""Extensions of recognized mesh payloads."""


# =============================================================================
# Manifest Schemas
# =============================================================================

TREE_EXPORT_ROOT = "LODTreeExport"
TREE_EXPORT_MAX_VERSION = 1.1

MODEL_METADATA_ROOT = "ModelMetadata"
MODEL_METADATA_MAX_VERSION = 1.0

VERSION_TOLERANCE = 1e-12
"""Slack allowed above a schema maximum before a version is rejected."""

TILE_ELEMENT = "Tile"
NODE_ELEMENT = "Node"

# Per-node elements
RADIUS_ELEMENT = "Radius"
MIN_RANGE_ELEMENT = "MinRange"
CENTER_ELEMENT = "Center"
MODEL_PATH_ELEMENT = "ModelPath"

# Root-level elements
SRS_ELEMENT = "SRS"
LOCAL_ELEMENT = "Local"
SRS_ORIGIN_ELEMENT = "SRSOrigin"


# =============================================================================
# Flat-Listing Filenames
# =============================================================================

ROOT_TOKEN_COUNT = 3
"""Token count of a tile root payload name, e.g. ``_L16.obj``."""

NODE_TOKEN_COUNT = 4
"""Token count of a non-root payload name, e.g. ``_L17_03.obj``."""

IDENTIFIER_TOKEN_INDEX = 2
"""Position of the node identifier within a non-root payload name."""
