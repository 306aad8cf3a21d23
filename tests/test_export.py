"""Tests for lodtree.export - the import entry point."""
import logging
import zipfile

import pytest

from lodtree import (
    ImportConfig,
    LodTreeExport,
    MemoryStorage,
    NotFoundError,
    ParseError,
    SchemaError,
    StorageIOError,
    VersionError,
    flatten,
    load_lod_tree_export,
    locate_manifest,
)
from lodtree.models import Point3

from conftest import metadata_xml, node_xml, tile_xml, tree_export_xml


class TestLocateManifest:
    def test_found(self, three_level_storage):
        lookup = locate_manifest(three_level_storage, ImportConfig())
        assert lookup.found
        assert lookup.path == "LODTreeExport.xml"
        assert lookup.data.startswith(b"<?xml")

    def test_missing(self, flat_listing_storage):
        assert not locate_manifest(flat_listing_storage, ImportConfig()).found

    def test_manifest_read_once(self, three_level_files):
        reads = []

        class CountingStorage(MemoryStorage):
            def read_all(self, path):
                reads.append(path)
                return super().read_all(path)

            def exists(self, path):
                raise AssertionError("lookup must read the manifest directly")

        load_lod_tree_export(CountingStorage(three_level_files))
        assert reads.count("LODTreeExport.xml") == 1

    def test_unreadable_manifest_is_not_a_fallback(self, flat_listing_files):
        class BrokenStorage(MemoryStorage):
            def read_all(self, path):
                if path == "LODTreeExport.xml":
                    raise StorageIOError("disk error")
                return super().read_all(path)

        with pytest.raises(StorageIOError):
            load_lod_tree_export(BrokenStorage(flat_listing_files))


class TestManifestPath:
    def test_origin_accumulation(self, three_level_storage):
        export = load_lod_tree_export(three_level_storage, offset=(0.5, 0.5, 0.5))
        assert isinstance(export, LodTreeExport)
        assert export.origin == Point3(1000.5, 2000.5, 300.5)

        # global offset + local origin + every ancestor center
        grandchild = export.blocks[0].children[0].children[0]
        expected = Point3(1000.5 + 100.0 + 10.0 + 0.5, 2000.5 + 200.0 + 0.0 + 0.5, 300.5 + 3.0 + 1.0 + 0.5)
        assert grandchild.origin == expected
        assert export.skipped == ()

    def test_idempotent(self, three_level_files):
        first = load_lod_tree_export(MemoryStorage(three_level_files))
        second = load_lod_tree_export(MemoryStorage(three_level_files))
        assert first == second
        assert flatten(first) == flatten(second)

    def test_malformed_manifest_is_not_a_fallback(self, flat_listing_files):
        flat_listing_files["LODTreeExport.xml"] = "<LODTreeExport version='1.1'>"
        with pytest.raises(ParseError):
            load_lod_tree_export(MemoryStorage(flat_listing_files))

    def test_unsupported_version_is_fatal(self, three_level_files):
        three_level_files["LODTreeExport.xml"] = three_level_files["LODTreeExport.xml"].replace(
            'version="1.1"', 'version="1.2"')
        with pytest.raises(VersionError):
            load_lod_tree_export(MemoryStorage(three_level_files))

    def test_tile_path_outside_root_is_rejected(self, three_level_files, write_tree, tmp_path):
        export_dir = tmp_path / "export"
        write_tree({"outside.xml": tile_xml(node_xml((0.0, 0.0, 0.0), tag="Tile"))})
        three_level_files["LODTreeExport.xml"] = tree_export_xml(["../outside.xml"])
        write_tree(three_level_files, root=export_dir)
        with pytest.raises(StorageIOError):
            load_lod_tree_export(export_dir)

    def test_missing_field_is_fatal(self, three_level_files):
        three_level_files["Data/Tile_0/Tile_0.xml"] = tile_xml("<Tile><Radius>1</Radius></Tile>")
        with pytest.raises(SchemaError):
            load_lod_tree_export(MemoryStorage(three_level_files))


class TestFallback:
    def test_missing_manifest_uses_listing(self, flat_listing_storage, caplog):
        with caplog.at_level(logging.WARNING, logger="lodtree.export"):
            export = load_lod_tree_export(flat_listing_storage)
        assert len(export.blocks) == 2
        assert export.origin == Point3(100.0, 200.0, 30.0)
        assert "LODTreeExport.xml" in caplog.text

    def test_empty_data_directory(self, write_tree):
        root = write_tree({"metadata.xml": metadata_xml()})
        (root / "Data").mkdir()
        export = load_lod_tree_export(root)
        assert export.blocks == ()
        assert export.origin == Point3(100.0, 200.0, 30.0)

    def test_fallback_disabled(self, flat_listing_storage):
        with pytest.raises(NotFoundError):
            load_lod_tree_export(flat_listing_storage, config=ImportConfig(allow_fallback=False))

    def test_skipped_entries_are_observable(self, flat_listing_files):
        flat_listing_files["Data/Tile_A/Tile_A_L18_7Z.obj"] = b""
        flat_listing_files["Data/Tile_A/Tile_A_L17.obj.bak.obj"] = b""
        export = load_lod_tree_export(MemoryStorage(flat_listing_files))
        assert len(export.skipped) == 2
        assert {s.reason for s in export.skipped} == {"no-parent", "token-count"}

    def test_idempotent(self, flat_listing_files):
        first = load_lod_tree_export(MemoryStorage(flat_listing_files))
        second = load_lod_tree_export(MemoryStorage(flat_listing_files))
        assert first == second


class TestFlatten:
    def test_two_roots(self):
        leaf_a = node_xml((1.0, 0.0, 0.0), model="a1.obj")
        leaf_b = node_xml((2.0, 0.0, 0.0), model="a2.obj")
        files = {
            "LODTreeExport.xml": tree_export_xml(["a/t.xml", "b/t.xml"], srs=""),
            "a/t.xml": tile_xml(node_xml((0.0, 0.0, 0.0), model="a.obj", children=leaf_a + leaf_b, tag="Tile")),
            "b/t.xml": tile_xml(node_xml((0.0, 0.0, 0.0), model="b.obj", tag="Tile")),
        }
        export = load_lod_tree_export(MemoryStorage(files))
        nodes = flatten(export)
        assert [n.model_path for n in nodes] == ["a/a.obj", "a/a1.obj", "a/a2.obj", "b/b.obj"]
        assert export.nodes() == nodes
        assert export.node_count() == 4

    def test_depth_first(self, flat_listing_storage):
        export = load_lod_tree_export(flat_listing_storage)
        names = [n.model_path.rsplit("/", 1)[-1] for n in flatten(export)]
        assert names == [
            "Tile_A_L16.obj", "Tile_A_L17_0.obj", "Tile_A_L18_00.obj", "Tile_A_L18_01.obj",
            "Tile_A_L17_1.obj", "Tile_A_L18_1X.obj", "Tile_B_L16.dae",
        ]


class TestSources:
    def test_directory(self, three_level_files, write_tree):
        root = write_tree(three_level_files)
        export = load_lod_tree_export(root)
        assert export == load_lod_tree_export(MemoryStorage(three_level_files))

    def test_zip_with_top_level_folder(self, three_level_files, tmp_path):
        archive = tmp_path / "export.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            for name, content in three_level_files.items():
                zf.writestr(f"export/{name}", content)
        export = load_lod_tree_export(archive)
        assert export == load_lod_tree_export(MemoryStorage(three_level_files))

    def test_zip_flat_listing(self, flat_listing_files, tmp_path):
        archive = tmp_path / "export.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            for name, content in flat_listing_files.items():
                zf.writestr(name, content)
        export = load_lod_tree_export(str(archive))
        assert len(export.blocks) == 2

    def test_missing_path(self, tmp_path):
        with pytest.raises(NotFoundError):
            load_lod_tree_export(tmp_path / "nowhere")
