"""Command line inspector for LOD tree exports."""

import argparse
import logging
import sys

from . import __version__
from .config import ImportConfig
from .errors import LodTreeError
from .export import load_lod_tree_export
from .models import LodTreeExport, Node


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lodtree",
        description="Print the spatial tree of an LOD tree export.",
    )
    parser.add_argument("path", help="Export directory or zip archive")
    parser.add_argument("--offset", nargs=3, type=float, default=(0.0, 0.0, 0.0),
                        metavar=("X", "Y", "Z"), help="Global offset added to the origin")
    parser.add_argument("--workers", type=int, default=1,
                        help="Threads used to load tiles (default: 1)")
    parser.add_argument("--no-fallback", action="store_true",
                        help="Fail when LODTreeExport.xml is missing")
    parser.add_argument("--depth", type=int, default=None,
                        help="Print nodes up to this tree depth only")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase log verbosity")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _print_node(node: Node, depth: int, max_depth, out) -> None:
    if max_depth is not None and depth > max_depth:
        return
    x, y, z = node.origin
    out.write(
        f"{'  ' * depth}[{node.level}] {node.model_path or '-'} "
        f"r={node.radius:g} min={node.min_range:g} @ ({x:.3f}, {y:.3f}, {z:.3f})\n"
    )
    for child in node.children:
        _print_node(child, depth + 1, max_depth, out)


def print_export(export: LodTreeExport, max_depth=None, out=None) -> None:
    out = out or sys.stdout
    out.write(f"SRS: {export.reference_frame if export.reference_frame else 'none'}\n")
    out.write(f"Origin: {tuple(export.origin)}\n")
    out.write(f"Blocks: {len(export.blocks)}, nodes: {export.node_count()}\n")
    if export.skipped:
        out.write(f"Skipped entries: {len(export.skipped)}\n")
    for block in export.blocks:
        _print_node(block, 0, max_depth, out)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")

    try:
        config = ImportConfig(max_workers=args.workers, allow_fallback=not args.no_fallback)
        export = load_lod_tree_export(args.path, offset=args.offset, config=config)
    except LodTreeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print_export(export, args.depth)
    return 0


if __name__ == "__main__":
    sys.exit(main())
