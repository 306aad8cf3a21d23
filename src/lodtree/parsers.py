"""
LOD Tree Manifest Parser
========================

Builds the node hierarchy from the explicit XML manifests of an export:

- the root ``LODTreeExport.xml`` declares the spatial reference, the local
  origin and one ``Tile`` entry per block;
- each tile entry points at a tile manifest whose ``Tile`` element is the
  block's root node.

Node centers are offsets relative to the parent node, so origins are
accumulated top-down while parsing.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import PurePosixPath
from typing import List, Optional, Tuple

from .constants import (
    CENTER_ELEMENT,
    LOCAL_ELEMENT,
    MIN_RANGE_ELEMENT,
    MODEL_PATH_ELEMENT,
    NODE_ELEMENT,
    RADIUS_ELEMENT,
    SRS_ELEMENT,
    TILE_ELEMENT,
    TREE_EXPORT_MAX_VERSION,
)
from .errors import SchemaError
from .models import Node, Point3
from .srs import ReferenceFrame, resolve_reference_frame
from .storage import Storage
from .xmlutils import (
    TREE_EXPORT_LOADER,
    ManifestLoader,
    is_element,
    optional_text,
    require_child,
    require_double_attr,
    require_double_text,
    require_text_attr,
)

logger = logging.getLogger(__name__)

_TILE_DOCUMENT_LOADER = ManifestLoader(TILE_ELEMENT, TREE_EXPORT_MAX_VERSION)


def read_point(elem) -> Point3:
    """Read the ``x``, ``y`` and ``z`` attributes of an element."""
    return Point3(
        require_double_attr(elem, "x"),
        require_double_attr(elem, "y"),
        require_double_attr(elem, "z"),
    )


def join_payload_path(directory: str, relative: str) -> str:
    return (PurePosixPath(directory) / relative.strip().replace("\\", "/")).as_posix()


def parse_node(elem, payload_dir: str, accumulated_origin: Point3, level: int = 0) -> Node:
    """
    Convert a ``Tile`` or ``Node`` element and its subtree into a ``Node``.

    Args:
        elem: The XML element describing the node.
        payload_dir: Directory model paths are relative to.
        accumulated_origin: Absolute origin of the parent node.
        level: Depth of the node below its tile root.
    """
    try:
        radius = require_double_text(require_child(elem, RADIUS_ELEMENT))
        min_range = require_double_text(require_child(elem, MIN_RANGE_ELEMENT))
    except SchemaError as exc:
        raise SchemaError(exc.missing, f"node at line {elem.sourceline}: error reading node data") from exc

    origin = accumulated_origin + read_point(require_child(elem, CENTER_ELEMENT))

    model_path = optional_text(elem, MODEL_PATH_ELEMENT)
    if model_path is not None and model_path.strip():
        model_path = join_payload_path(payload_dir, model_path)
    else:
        model_path = None

    children = tuple(
        parse_node(child, payload_dir, origin, level + 1)
        for child in elem
        if is_element(child, NODE_ELEMENT)
    )
    return Node(
        radius=radius,
        min_range=min_range,
        origin=origin,
        model_path=model_path,
        children=children,
        level=level,
    )


def load_tile_element(storage: Storage, path: str):
    """
    Load a tile manifest and return the element describing the block root.

    Tile manifests are ``LODTreeExport`` documents holding a single ``Tile``
    child; a document whose root element is ``Tile`` is accepted as well.
    """
    data = storage.read_all(path)
    root = TREE_EXPORT_LOADER.parse(data, path)
    if is_element(root, TILE_ELEMENT):
        return _TILE_DOCUMENT_LOADER.validate(root, path)
    root = TREE_EXPORT_LOADER.validate(root, path)
    return require_child(root, TILE_ELEMENT)


class ManifestTreeParser:
    """
    Parses an export described by ``LODTreeExport.xml``.

    Example::

        parser = ManifestTreeParser(DirectoryStorage("export"))
        frame, origin, blocks = parser.parse("LODTreeExport.xml", Point3())
    """

    def __init__(self, storage: Storage, max_workers: int = 1):
        self.storage = storage
        self.max_workers = max_workers

    def parse(self, manifest_path: str, offset: Point3,
              data: Optional[bytes] = None) -> Tuple[Optional[ReferenceFrame], Point3, List[Node]]:
        """
        Parse the root manifest and every tile it lists.

        ``data`` is the already read manifest content; when None the manifest
        is read from storage.

        Raises:
            NotFoundError: The root manifest (or a tile manifest) is missing.
            ParseError, SchemaError, VersionError: The manifests are invalid.
        """
        if data is None:
            root = TREE_EXPORT_LOADER.read(self.storage, manifest_path)
        else:
            root = TREE_EXPORT_LOADER.load(data, manifest_path)

        srs_text = require_child(root, SRS_ELEMENT).text or ""
        local = read_point(require_child(root, LOCAL_ELEMENT))
        frame, origin = resolve_reference_frame(srs_text, local)
        origin = origin + offset

        tile_paths = [
            require_text_attr(elem, "path")
            for elem in root
            if is_element(elem, TILE_ELEMENT)
        ]
        blocks = self._parse_tiles(tile_paths, origin)
        logger.info(f"Loaded {len(blocks)} blocks from {manifest_path}")
        return frame, origin, blocks

    def parse_tile(self, path: str, origin: Point3) -> Node:
        logger.info(f"Parsing block {path}.")
        elem = load_tile_element(self.storage, path)
        payload_dir = PurePosixPath(path.replace("\\", "/")).parent.as_posix()
        return parse_node(elem, payload_dir, origin, 0)

    def _parse_tiles(self, tile_paths: List[str], origin: Point3) -> List[Node]:
        if self.max_workers <= 1 or len(tile_paths) <= 1:
            return [self.parse_tile(path, origin) for path in tile_paths]

        # map() keeps document order and re-raises the first failure
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(lambda p: self.parse_tile(p, origin), tile_paths))
