import pytest
import os
import sys
from pathlib import Path

# Add the src directory to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from lodtree import MemoryStorage


def tree_export_xml(tiles, srs="EPSG:32633", local=(0.0, 0.0, 0.0), version="1.1"):
    """Root LODTreeExport.xml listing the given tile manifest paths"""
    entries = "".join(f'<Tile path="{p}"/>' for p in tiles)
    x, y, z = local
    return (
        f'<?xml version="1.0" encoding="utf-8"?>'
        f'<LODTreeExport version="{version}">'
        f'<SRS>{srs}</SRS><Local x="{x}" y="{y}" z="{z}"/>{entries}'
        f'</LODTreeExport>'
    )


def node_xml(center, radius=10.0, min_range=5.0, model=None, children="", tag="Node"):
    """Node element with a Center offset and optional payload and children"""
    x, y, z = center
    model_elem = f"<ModelPath>{model}</ModelPath>" if model is not None else ""
    return (
        f"<{tag}><Radius>{radius}</Radius><MinRange>{min_range}</MinRange>"
        f'<Center x="{x}" y="{y}" z="{z}"/>{model_elem}{children}</{tag}>'
    )


def tile_xml(root_node, version="1.1"):
    """Tile manifest wrapping a root node element"""
    return f'<LODTreeExport version="{version}">{root_node}</LODTreeExport>'


def metadata_xml(srs="EPSG:32633", origin="100,200,30", version="1.0"):
    return (
        f'<?xml version="1.0" encoding="utf-8"?>'
        f'<ModelMetadata version="{version}"><SRS>{srs}</SRS>'
        f'<SRSOrigin>{origin}</SRSOrigin></ModelMetadata>'
    )


@pytest.fixture
def three_level_files():
    """Manifest export with one tile: root -> child -> grandchild"""
    grandchild = node_xml((0.5, 0.5, 0.5), radius=1.0, min_range=0.5, model="L18_00.obj")
    child = node_xml((10.0, 0.0, 1.0), radius=5.0, min_range=2.0, model="L17_0.obj",
                     children=grandchild)
    sibling = node_xml((-10.0, 0.0, 0.0), radius=5.0, min_range=2.0, model="L17_1.obj")
    root = node_xml((100.0, 200.0, 3.0), radius=50.0, min_range=20.0, model="L16.obj",
                    children=child + sibling, tag="Tile")
    return {
        "LODTreeExport.xml": tree_export_xml(["Data/Tile_0/Tile_0.xml"], local=(1000.0, 2000.0, 300.0)),
        "Data/Tile_0/Tile_0.xml": tile_xml(root),
    }


@pytest.fixture
def three_level_storage(three_level_files):
    return MemoryStorage(three_level_files)


@pytest.fixture
def flat_listing_files():
    """Manifest-less export with two tile directories"""
    files = {"metadata.xml": metadata_xml()}
    for name in ["Tile_A_L16.obj", "Tile_A_L17_0.obj", "Tile_A_L17_1.obj",
                 "Tile_A_L18_00.obj", "Tile_A_L18_01.obj", "Tile_A_L18_1X.obj",
                 "Tile_A_L16.jpg"]:
        files[f"Data/Tile_A/{name}"] = b""
    files["Data/Tile_B/Tile_B_L16.dae"] = b""
    files["Data/Other/Other_L16.obj"] = b""
    return files


@pytest.fixture
def flat_listing_storage(flat_listing_files):
    return MemoryStorage(flat_listing_files)


@pytest.fixture
def write_tree(tmp_path):
    """Write a mapping of relative path to content below tmp_path"""
    def _write(files, root=None):
        root = Path(root or tmp_path)
        for rel, content in files.items():
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, str):
                content = content.encode("utf-8")
            target.write_bytes(content)
        return root
    return _write
