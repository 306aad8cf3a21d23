"""
XML Access Helpers
==================

Strict accessors over ``lxml`` elements and the manifest loader shared by the
tree-export and model-metadata schemas. Every accessor raises ``SchemaError``
when the requested item is absent; nothing is ever defaulted.
"""

import logging
from typing import Optional

from lxml import etree

from .constants import (
    MODEL_METADATA_MAX_VERSION,
    MODEL_METADATA_ROOT,
    TREE_EXPORT_MAX_VERSION,
    TREE_EXPORT_ROOT,
    VERSION_TOLERANCE,
)
from .errors import ParseError, SchemaError, VersionError
from .storage import Storage

logger = logging.getLogger(__name__)

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)


# =============================================================================
# Attribute Reader
# =============================================================================

def _describe(elem) -> str:
    return f'element "{elem.tag}" (line {elem.sourceline})'


def require_child(node, name: str):
    """Return the first direct child element called ``name``."""
    child = node.find(name)
    if child is None:
        raise SchemaError(name, _describe(node))
    return child


def require_text_attr(elem, name: str) -> str:
    value = elem.get(name)
    if value is None:
        raise SchemaError(name, _describe(elem))
    return value


def _to_double(text: Optional[str], name: str, elem) -> float:
    if text is None:
        raise SchemaError(name, _describe(elem))
    try:
        return float(text)
    except ValueError:
        raise SchemaError(name, f"{_describe(elem)}, {text!r} is not a number") from None


def require_double_attr(elem, name: str) -> float:
    return _to_double(elem.get(name), name, elem)


def require_double_text(elem) -> float:
    """Return the element text as a float."""
    return _to_double(elem.text, elem.tag, elem)


def require_text(elem) -> str:
    if elem.text is None:
        raise SchemaError(elem.tag, _describe(elem))
    return elem.text


def optional_text(node, name: str) -> Optional[str]:
    """Text of the first child called ``name``, or None when there is no such child."""
    child = node.find(name)
    if child is None:
        return None
    return child.text or ""


def is_element(node, name: str) -> bool:
    # comments and processing instructions carry a non-string tag
    return isinstance(node.tag, str) and node.tag == name


# =============================================================================
# Manifest Loader
# =============================================================================

class ManifestLoader:
    """
    Parses a manifest document and validates its root element and version.

    Args:
        root_name: Required name of the document's root element.
        max_version: Newest supported ``version`` attribute value.
        tolerance: Slack allowed above ``max_version``.
    """

    def __init__(self, root_name: str, max_version: float, tolerance: float = VERSION_TOLERANCE):
        self.root_name = root_name
        self.max_version = max_version
        self.tolerance = tolerance

    def parse(self, data: bytes, path: Optional[str] = None):
        """Parse ``data`` into an element tree, reporting the parser diagnostic on failure."""
        try:
            return etree.fromstring(data, parser=_PARSER)
        except etree.XMLSyntaxError as exc:
            where = path or "<document>"
            raise ParseError(f"Error loading {where}: {exc}", path=path, line=exc.lineno) from exc

    def validate(self, root, path: Optional[str] = None):
        """Check the root element name and version; return the root element."""
        if not is_element(root, self.root_name):
            raise SchemaError(self.root_name, path or "document")

        version = require_double_attr(root, "version")
        if version > self.max_version + self.tolerance:
            raise VersionError(version, self.max_version, path)
        return root

    def load(self, data: bytes, path: Optional[str] = None):
        return self.validate(self.parse(data, path), path)

    def read(self, storage: Storage, path: str):
        """Read ``path`` from storage and load it; storage errors propagate."""
        logger.debug(f"Loading {self.root_name} manifest {path}")
        return self.load(storage.read_all(path), path)

    def __repr__(self):
        return f"ManifestLoader({self.root_name!r}, max_version={self.max_version})"


TREE_EXPORT_LOADER = ManifestLoader(TREE_EXPORT_ROOT, TREE_EXPORT_MAX_VERSION)
MODEL_METADATA_LOADER = ManifestLoader(MODEL_METADATA_ROOT, MODEL_METADATA_MAX_VERSION)
