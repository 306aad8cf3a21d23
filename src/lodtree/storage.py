"""
Export Storage Backends
=======================

Read-only access to the entries of an export, either unpacked in a directory
or packed in a zip archive. Paths are POSIX-style and relative to the export
root; directory entries in listings end with ``/``.
"""

import logging
import os
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Dict, List, Mapping, Set, Union

from .errors import NotFoundError, StorageIOError

logger = logging.getLogger(__name__)


def normalize_path(path: Union[str, PurePosixPath]) -> str:
    """
    Normalize a relative export path to POSIX form without ``.`` segments.

    Raises:
        StorageIOError: The path contains a ``..`` segment.
    """
    parts = [p for p in str(path).replace("\\", "/").split("/") if p not in ("", ".")]
    if ".." in parts:
        raise StorageIOError(f"Path {path!r} leaves the export root")
    return "/".join(parts)


def directory_entry(path: str) -> str:
    """Listing form of a directory path."""
    return normalize_path(path) + "/"


class Storage(ABC):
    """Read-only view of the entries making up an export."""

    @abstractmethod
    def read_all(self, path: str) -> bytes:
        """
        Return the full content of a file.

        Raises:
            NotFoundError: The file does not exist.
            StorageIOError: The file exists but could not be read.
        """

    @abstractmethod
    def list_all_paths(self) -> List[str]:
        """
        Return every entry under the export root, sorted.

        Directories are listed with a trailing ``/``, so empty directories
        are part of the listing.
        """

    def exists(self, path: str) -> bool:
        """
        Whether ``path`` names a readable file.

        This default reads the whole file; backends that can answer without
        reading should override it.
        """
        try:
            self.read_all(path)
        except NotFoundError:
            return False
        return True


class DirectoryStorage(Storage):
    """Export unpacked in a filesystem directory."""

    def __init__(self, root: Union[str, os.PathLike]):
        self.root = Path(root)
        if not self.root.is_dir():
            raise NotFoundError(f"Export directory not found: {self.root}")

    def read_all(self, path: str) -> bytes:
        target = self.root / normalize_path(path)
        try:
            return target.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError(f"{path} not found in {self.root}") from exc
        except OSError as exc:
            raise StorageIOError(f"Error reading {target}: {exc}") from exc

    def exists(self, path: str) -> bool:
        return (self.root / normalize_path(path)).is_file()

    def list_all_paths(self) -> List[str]:
        paths = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            rel = Path(dirpath).relative_to(self.root)
            for name in dirnames:
                paths.append(directory_entry((rel / name).as_posix()))
            for name in filenames:
                paths.append(normalize_path((rel / name).as_posix()))
        return sorted(paths)

    def __repr__(self):
        return f"DirectoryStorage({str(self.root)!r})"


class ZipStorage(Storage):
    """
    Export packed in a zip archive.

    When every entry of the archive lives under one top-level directory, that
    directory is treated as the export root. Entries whose names leave the
    archive root are ignored.
    """

    def __init__(self, archive_path: Union[str, os.PathLike]):
        self.archive_path = Path(archive_path)
        try:
            self._zip = zipfile.ZipFile(self.archive_path)
        except FileNotFoundError as exc:
            raise NotFoundError(f"Archive not found: {self.archive_path}") from exc
        except (OSError, zipfile.BadZipFile) as exc:
            raise StorageIOError(f"Error opening {self.archive_path}: {exc}") from exc

        names = self._zip.namelist()
        self.prefix = self._common_prefix([n for n in names if not n.endswith("/")])
        self._entries: Dict[str, str] = {}
        self._directories: Set[str] = set()
        for name in names:
            try:
                rel = normalize_path(name[len(self.prefix):])
            except StorageIOError:
                logger.warning(f"Ignoring archive entry {name!r} outside the export root")
                continue
            if not rel:
                continue
            if name.endswith("/"):
                self._directories.add(rel + "/")
            else:
                self._entries[rel] = name
        if self.prefix:
            logger.debug(f"Using archive subdirectory {self.prefix!r} as export root")

    @staticmethod
    def _common_prefix(names: List[str]) -> str:
        tops = {n.split("/", 1)[0] for n in names}
        if len(tops) == 1 and all("/" in n for n in names):
            return tops.pop() + "/"
        return ""

    def read_all(self, path: str) -> bytes:
        name = self._entries.get(normalize_path(path))
        if name is None:
            raise NotFoundError(f"{path} not found in {self.archive_path}")
        try:
            return self._zip.read(name)
        except (OSError, zipfile.BadZipFile) as exc:
            raise StorageIOError(f"Error reading {name} from {self.archive_path}: {exc}") from exc

    def exists(self, path: str) -> bool:
        return normalize_path(path) in self._entries

    def list_all_paths(self) -> List[str]:
        return sorted(set(self._entries) | self._directories)

    def close(self) -> None:
        self._zip.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def __repr__(self):
        return f"ZipStorage({str(self.archive_path)!r})"


class MemoryStorage(Storage):
    """
    Export held in memory as a mapping of path to content.

    Keys ending with ``/`` declare (possibly empty) directories; their value
    is ignored.
    """

    def __init__(self, files: Mapping[str, Union[bytes, str, None]]):
        self._files: Dict[str, bytes] = {}
        self._directories: Set[str] = set()
        for path, content in files.items():
            if str(path).endswith("/"):
                self._directories.add(directory_entry(path))
                continue
            if isinstance(content, str):
                content = content.encode("utf-8")
            self._files[normalize_path(path)] = content

    def read_all(self, path: str) -> bytes:
        try:
            return self._files[normalize_path(path)]
        except KeyError as exc:
            raise NotFoundError(f"{path} not found") from exc

    def exists(self, path: str) -> bool:
        return normalize_path(path) in self._files

    def list_all_paths(self) -> List[str]:
        return sorted(set(self._files) | self._directories)


def open_storage(path: Union[str, os.PathLike]) -> Storage:
    """Open a directory or zip archive as export storage."""
    path = Path(path)
    if path.is_dir():
        return DirectoryStorage(path)
    if not path.exists():
        raise NotFoundError(f"Export path does not exist: {path}")
    if zipfile.is_zipfile(path):
        return ZipStorage(path)
    raise StorageIOError(f"Unsupported export container: {path}")
