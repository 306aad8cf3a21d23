"""
LOD Tree Data Models
====================

Immutable value types produced by an import: the spatial hierarchy of
``Node`` objects, the ``LodTreeExport`` aggregate owning the forest of tile
roots, and ``SkippedEntry`` records for flat-listing entries that were left out.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, NamedTuple, Optional, Tuple

import numpy as np


class Point3(NamedTuple):
    """A point or offset in the export's reference frame."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other) -> "Point3":
        # offsets may be Point3, plain triples or numpy vectors
        return Point3.from_array(self.as_array() + np.asarray(other, dtype=np.float64).reshape(3))

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @classmethod
    def from_array(cls, values) -> "Point3":
        arr = np.asarray(values, dtype=np.float64).reshape(3)
        return cls(float(arr[0]), float(arr[1]), float(arr[2]))


ZERO = Point3()


@dataclass(frozen=True)
class Node:
    """
    One element of the spatial hierarchy.

    Attributes:
        radius: Bounding radius used for visibility-range decisions.
        min_range: Viewing distance at which this node becomes preferred.
        origin: Absolute position in the export's reference frame.
        model_path: Path of the geometry payload, None for organizational nodes.
        children: Child nodes in document or identifier order.
        level: Depth hint. Tree depth for manifest trees, identifier length
            for trees reconstructed from a flat listing.
    """
    radius: float
    min_range: float
    origin: Point3
    model_path: Optional[str] = None
    children: Tuple["Node", ...] = ()
    level: int = 0

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def iter_nodes(self) -> Iterator["Node"]:
        """Yield this node and its descendants, parents before children."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def count(self) -> int:
        return sum(1 for _ in self.iter_nodes())


@dataclass(frozen=True)
class SkippedEntry:
    """A flat-listing entry excluded from reconstruction."""
    directory: str
    path: Optional[str]
    reason: str
    identifier: Optional[str] = None


@dataclass(frozen=True)
class LodTreeExport:
    """
    Result of importing an LOD tree export.

    Attributes:
        reference_frame: Resolved spatial reference, None when the source declared none.
        origin: Export-wide base origin after re-basing and the caller offset.
        blocks: Forest roots, one per tile.
        skipped: Flat-listing entries that were excluded.
    """
    reference_frame: Optional[object]
    origin: Point3
    blocks: Tuple[Node, ...] = ()
    skipped: Tuple[SkippedEntry, ...] = field(default=(), compare=False)

    def nodes(self) -> List[Node]:
        return flatten(self)

    def node_count(self) -> int:
        return sum(block.count() for block in self.blocks)


def flatten(export: LodTreeExport) -> List[Node]:
    """
    Enumerate every node of the export depth-first.

    Roots are visited in ``blocks`` order and each parent precedes its children.
    """
    result: List[Node] = []
    for block in export.blocks:
        result.extend(block.iter_nodes())
    return result
