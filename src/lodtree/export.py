"""
LOD Tree Export Import
======================

Entry point of the package. An export is read from its ``LODTreeExport.xml``
manifest when present; otherwise the tree is reconstructed from the file
names below ``Data``. Both paths produce the same ``LodTreeExport`` value.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

from .config import ImportConfig
from .errors import NotFoundError
from .listing import FlatListingTreeBuilder
from .models import ZERO, LodTreeExport, Point3
from .parsers import ManifestTreeParser
from .storage import Storage, ZipStorage, open_storage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManifestLookup:
    """Outcome of looking for the primary manifest, with its content when found."""
    path: str
    found: bool
    data: Optional[bytes] = field(default=None, repr=False)


def locate_manifest(storage: Storage, config: ImportConfig) -> ManifestLookup:
    """Read the primary manifest once; only a missing file yields a not-found lookup."""
    path = config.main_manifest_name
    try:
        data = storage.read_all(path)
    except NotFoundError:
        return ManifestLookup(path=path, found=False)
    return ManifestLookup(path=path, found=True, data=data)


def _from_manifest(storage: Storage, lookup: ManifestLookup, offset: Point3,
                   config: ImportConfig) -> LodTreeExport:
    parser = ManifestTreeParser(storage, max_workers=config.max_workers)
    frame, origin, blocks = parser.parse(lookup.path, offset, data=lookup.data)
    return LodTreeExport(reference_frame=frame, origin=origin, blocks=tuple(blocks))


def _from_listing(storage: Storage, offset: Point3, config: ImportConfig) -> LodTreeExport:
    builder = FlatListingTreeBuilder(storage, config)
    frame, origin, blocks, skipped = builder.build(offset)
    return LodTreeExport(
        reference_frame=frame,
        origin=origin,
        blocks=tuple(blocks),
        skipped=tuple(skipped),
    )


def load_lod_tree_export(source: Union[Storage, str, os.PathLike],
                         offset: Sequence[float] = ZERO,
                         config: Optional[ImportConfig] = None) -> LodTreeExport:
    """
    Import an LOD tree export.

    Args:
        source: Storage of the export, or a directory / zip archive path.
        offset: Global offset added to the export origin after re-basing.
        config: Import settings; defaults to ``ImportConfig()``.

    Returns:
        The imported export.

    Raises:
        LodTreeError: Any failure. Only a missing primary manifest is
            recovered from, by reading the flat listing instead.
    """
    config = config or ImportConfig()
    offset = Point3(*offset)

    if isinstance(source, Storage):
        return _load(source, offset, config)

    storage = open_storage(source)
    try:
        return _load(storage, offset, config)
    finally:
        if isinstance(storage, ZipStorage):
            storage.close()


def _load(storage: Storage, offset: Point3, config: ImportConfig) -> LodTreeExport:
    lookup = locate_manifest(storage, config)
    if lookup.found:
        logger.info(f"Reading tree from {lookup.path}")
        return _from_manifest(storage, lookup, offset, config)

    if not config.allow_fallback:
        raise NotFoundError(f"{lookup.path} not found in {storage!r}")

    logger.warning(f"{lookup.path} not found, reconstructing tree from the directory listing.")
    return _from_listing(storage, offset, config)
