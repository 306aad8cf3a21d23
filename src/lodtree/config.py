"""Import configuration."""

from dataclasses import dataclass, fields
from typing import Any, Mapping, Tuple

from .constants import (
    ALTERNATIVE_MANIFEST_NAME,
    DATA_DIRECTORY,
    MAIN_MANIFEST_NAME,
    MESH_EXTENSIONS,
    TILE_DIRECTORY_PREFIX,
)
from .errors import ConfigurationError


@dataclass(frozen=True)
class ImportConfig:
    """
    Settings controlling how an export is located and read.

    Attributes:
        main_manifest_name: Primary tree manifest file name.
        alternative_manifest_name: Metadata manifest read by the flat-listing path.
        data_directory: Directory scanned for tile directories when no manifest exists.
        tile_directory_prefix: Required name prefix of tile directories.
        mesh_extensions: Payload extensions recognized in tile directories.
        max_workers: Worker threads used to load tiles; 1 loads sequentially.
        allow_fallback: Whether a missing primary manifest falls back to the
            flat listing instead of failing.
    """
    main_manifest_name: str = MAIN_MANIFEST_NAME
    alternative_manifest_name: str = ALTERNATIVE_MANIFEST_NAME
    data_directory: str = DATA_DIRECTORY
    tile_directory_prefix: str = TILE_DIRECTORY_PREFIX
    mesh_extensions: Tuple[str, ...] = MESH_EXTENSIONS
    max_workers: int = 1
    allow_fallback: bool = True

    def __post_init__(self):
        if self.max_workers < 1:
            raise ConfigurationError(
                f"max_workers must be at least 1, got {self.max_workers}"
            )
        # accept lists from plain-data sources
        object.__setattr__(self, "mesh_extensions", tuple(self.mesh_extensions))

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ImportConfig":
        """Build a config from plain data, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**values)
