"""
Flat-Listing Tree Reconstruction
================================

Rebuilds the node hierarchy of an export that ships no ``LODTreeExport.xml``.
The hierarchy is encoded in the payload file names of each tile directory::

    Data/Tile_+000_+001/Tile_+000_+001_L16.obj       -> root (identifier "")
    Data/Tile_+000_+001/Tile_+000_+001_L17_0.obj     -> identifier "0"
    Data/Tile_+000_+001/Tile_+000_+001_L18_03.obj    -> identifier "03"

A node's parent is the node whose identifier is the longest proper prefix of
its own. Sorting identifiers lexicographically lets a single stack walk
attach every node; entries that cannot be attached are skipped and reported.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Optional, Tuple

from .config import ImportConfig
from .constants import (
    IDENTIFIER_TOKEN_INDEX,
    NODE_TOKEN_COUNT,
    ROOT_TOKEN_COUNT,
    SRS_ELEMENT,
    SRS_ORIGIN_ELEMENT,
)
from .errors import NotFoundError, SchemaError
from .models import Node, Point3, SkippedEntry
from .srs import ReferenceFrame, resolve_reference_frame
from .storage import Storage
from .xmlutils import MODEL_METADATA_LOADER, require_child, require_text

logger = logging.getLogger(__name__)

_TOKEN_SEPARATORS = re.compile(r"[_.]")

# Skip reasons
SKIP_TOKEN_COUNT = "token-count"
SKIP_NO_PARENT = "no-parent"
SKIP_EMPTY = "empty"


# =============================================================================
# Directory Listing
# =============================================================================

@dataclass
class ListingDirectory:
    """One directory of a path listing."""
    name: str
    path: str = ""
    directories: Dict[str, "ListingDirectory"] = field(default_factory=dict)
    files: List[str] = field(default_factory=list)


class ListingTree:
    """
    Directory tree materialized from a flat list of entry paths.

    Paths ending with ``/`` are directories, anything else a file. Only names
    are recorded; file content is never read.
    """

    def __init__(self, paths: Iterable[str]):
        self.root = ListingDirectory("")
        for path in paths:
            self.add(path)

    def add(self, path: str) -> None:
        path = path.replace("\\", "/")
        parts = [p for p in path.split("/") if p]
        if not parts:
            return
        is_directory = path.endswith("/")
        directory = self.root
        for part in parts if is_directory else parts[:-1]:
            child = directory.directories.get(part)
            if child is None:
                child_path = f"{directory.path}/{part}" if directory.path else part
                child = ListingDirectory(part, child_path)
                directory.directories[part] = child
            directory = child
        if not is_directory:
            directory.files.append(parts[-1])

    def find(self, path: str) -> Optional[ListingDirectory]:
        directory = self.root
        for part in (p for p in path.split("/") if p):
            directory = directory.directories.get(part)
            if directory is None:
                return None
        return directory


# =============================================================================
# Identifier Reconstruction
# =============================================================================

def tile_identifier(directory_name: str, filename: str) -> Optional[str]:
    """
    Identifier encoded in a payload file name of a tile directory.

    The directory name is stripped from the front of ``filename`` and the
    rest split on ``_`` and ``.``. Three tokens denote the tile root (empty
    identifier), four tokens a node whose identifier is the third token.

    Returns:
        The identifier, or None when the token count matches neither form.
    """
    tokens = _TOKEN_SEPARATORS.split(filename[len(directory_name):])
    if len(tokens) == ROOT_TOKEN_COUNT:
        return ""
    if len(tokens) == NODE_TOKEN_COUNT:
        return tokens[IDENTIFIER_TOKEN_INDEX]
    return None


class _Frame:
    __slots__ = ("identifier", "path", "children")

    def __init__(self, identifier: str, path: str):
        self.identifier = identifier
        self.path = path
        self.children: List["_Frame"] = []

    def freeze(self, origin: Point3) -> Node:
        return Node(
            radius=0.0,
            min_range=0.0,
            origin=origin,
            model_path=self.path,
            children=tuple(child.freeze(origin) for child in self.children),
            level=len(self.identifier),
        )


def reconstruct_tile(candidates: Iterable[Tuple[str, str]], origin: Point3,
                     directory: str = "") -> Tuple[Optional[Node], List[SkippedEntry]]:
    """
    Rebuild one tile's tree from ``(identifier, path)`` pairs.

    Args:
        candidates: Identifier and payload path of every payload in the tile.
        origin: Origin shared by all nodes of the tile.
        directory: Tile directory, used in skip reports.

    Returns:
        ``(root, skipped)``. ``root`` is None when there are no candidates.
    """
    pairs = sorted(candidates)
    if not pairs:
        logger.warning(f"Tile directory {directory} holds no mesh payloads, skipping.")
        return None, [SkippedEntry(directory, None, SKIP_EMPTY)]

    root = _Frame(*pairs[0])
    if root.identifier:
        logger.warning(f"{directory}: no root payload, using {root.path} as tile root.")

    skipped: List[SkippedEntry] = []
    stack = [root]
    for identifier, path in pairs[1:]:
        # nearest frame with a strictly shorter identifier; the root frame stays
        while len(stack) > 1 and len(stack[-1].identifier) >= len(identifier):
            stack.pop()
        parent = stack[-1]
        if len(parent.identifier) >= len(identifier) or not identifier.startswith(parent.identifier):
            logger.warning(
                f"{path}: identifier {identifier!r} does not extend {parent.identifier!r}, skipping."
            )
            skipped.append(SkippedEntry(directory, path, SKIP_NO_PARENT, identifier))
            continue

        frame = _Frame(identifier, path)
        parent.children.append(frame)
        stack.append(frame)

    return root.freeze(origin), skipped


# =============================================================================
# Flat-Listing Export Builder
# =============================================================================

def parse_origin_triple(elem) -> Point3:
    """Parse ``"x,y,z"`` element text into a point."""
    text = require_text(elem)
    parts = text.split(",")
    if len(parts) != 3:
        raise SchemaError(elem.tag, f'line {elem.sourceline}, expected "x,y,z" but got {text!r}')
    try:
        return Point3(*(float(p) for p in parts))
    except ValueError:
        raise SchemaError(elem.tag, f"line {elem.sourceline}, {text!r} is not numeric") from None


class FlatListingTreeBuilder:
    """
    Builds the blocks of an export from its directory listing.

    Example::

        builder = FlatListingTreeBuilder(DirectoryStorage("export"))
        frame, origin, blocks, skipped = builder.build(Point3())
    """

    def __init__(self, storage: Storage, config: Optional[ImportConfig] = None):
        self.storage = storage
        self.config = config or ImportConfig()

    def read_metadata(self, offset: Point3) -> Tuple[Optional[ReferenceFrame], Point3]:
        """Resolve reference frame and origin from the metadata manifest."""
        root = MODEL_METADATA_LOADER.read(self.storage, self.config.alternative_manifest_name)
        srs_text = require_child(root, SRS_ELEMENT).text or ""
        local = parse_origin_triple(require_child(root, SRS_ORIGIN_ELEMENT))
        frame, origin = resolve_reference_frame(srs_text, local)
        return frame, origin + offset

    def tile_candidates(self, directory: ListingDirectory) -> Tuple[List[Tuple[str, str]], List[SkippedEntry]]:
        """Collect ``(identifier, path)`` pairs of the payloads in a tile directory."""
        candidates = []
        skipped = []
        for filename in sorted(directory.files):
            if not filename.startswith(directory.name):
                continue
            if PurePosixPath(filename).suffix not in self.config.mesh_extensions:
                continue

            path = f"{directory.path}/{filename}"
            identifier = tile_identifier(directory.name, filename)
            if identifier is None:
                logger.warning(f"{path}: unexpected payload name, skipping.")
                skipped.append(SkippedEntry(directory.path, path, SKIP_TOKEN_COUNT))
                continue
            logger.debug(f"{path}: identifier {identifier!r}")
            candidates.append((identifier, path))
        return candidates, skipped

    def build_tile(self, directory: ListingDirectory, origin: Point3) -> Tuple[Optional[Node], List[SkippedEntry]]:
        candidates, skipped = self.tile_candidates(directory)
        node, rejected = reconstruct_tile(candidates, origin, directory.path)
        if node is not None:
            logger.info(f"Reconstructed block {directory.path} with {node.count()} nodes.")
        return node, skipped + rejected

    def tile_directories(self) -> List[ListingDirectory]:
        listing = ListingTree(self.storage.list_all_paths())
        data = listing.find(self.config.data_directory)
        if data is None:
            raise NotFoundError(f'Directory "{self.config.data_directory}" not found in export.')
        prefix = self.config.tile_directory_prefix
        return [data.directories[name] for name in sorted(data.directories) if name.startswith(prefix)]

    def build(self, offset: Point3) -> Tuple[Optional[ReferenceFrame], Point3, List[Node], List[SkippedEntry]]:
        frame, origin = self.read_metadata(offset)
        directories = self.tile_directories()

        if self.config.max_workers > 1 and len(directories) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                results = list(executor.map(lambda d: self.build_tile(d, origin), directories))
        else:
            results = [self.build_tile(d, origin) for d in directories]

        blocks: List[Node] = []
        skipped: List[SkippedEntry] = []
        for node, tile_skipped in results:
            if node is not None:
                blocks.append(node)
            skipped.extend(tile_skipped)

        if skipped:
            logger.warning(f"{len(skipped)} flat-listing entries skipped.")
        return frame, origin, blocks, skipped
