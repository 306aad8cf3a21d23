"""Exception hierarchy for LOD tree imports."""


class LodTreeError(Exception):
    """Base class for every failure raised by an import."""


class ConfigurationError(LodTreeError):
    """Invalid import configuration."""


class ParseError(LodTreeError):
    """Malformed XML document."""

    def __init__(self, message, path=None, line=None):
        super().__init__(message)
        self.path = path
        self.line = line


class SchemaError(LodTreeError):
    """Required element, attribute or text is missing, or the root is wrong."""

    def __init__(self, missing, context=None):
        self.missing = missing
        self.context = context
        if context:
            message = f'XML item "{missing}" not found in {context}.'
        else:
            message = f'XML item "{missing}" not found.'
        super().__init__(message)


class VersionError(LodTreeError):
    """Manifest declares a version newer than the supported maximum."""

    def __init__(self, version, maximum, path=None):
        self.version = version
        self.maximum = maximum
        self.path = path
        where = f"{path}: " if path else ""
        super().__init__(
            f"{where}unsupported format version ({version}), maximum is {maximum}."
        )


class ReferenceFrameError(LodTreeError):
    """Spatial reference text could not be interpreted."""


class StorageError(LodTreeError):
    """Base class for storage failures."""


class NotFoundError(StorageError):
    """Named resource does not exist in storage."""


class StorageIOError(StorageError):
    """Storage failure other than a missing resource."""
