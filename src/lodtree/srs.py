"""
Reference Frame Resolution
==========================

Interprets the spatial reference declared by an export. Projected (metric)
references are used as they are. Geographic references are replaced by a
local East-North-Up tangent frame anchored at the export's local origin, and
the origin is reset to zero, so consumers always receive metric, locally flat
coordinates.

Geographic points follow the always-xy convention: ``x`` is longitude, ``y``
is latitude, both in degrees, and ``z`` is ellipsoidal height in meters.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import pyproj
from pyproj.exceptions import CRSError

from .errors import ReferenceFrameError
from .models import ZERO, Point3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceFrame:
    """
    Spatial reference of an export.

    Attributes:
        crs: The parsed reference system. For a local tangent frame this is the
            geographic system the frame was derived from.
        anchor: Geographic anchor of a local tangent frame, None otherwise.
        source: The reference text as declared by the export.
    """
    crs: pyproj.CRS
    anchor: Optional[Point3] = None
    source: str = ""

    @property
    def is_local(self) -> bool:
        return self.anchor is not None

    @property
    def is_geographic(self) -> bool:
        return not self.is_local and self.crs.is_geographic

    def _ellipsoid_params(self) -> str:
        ellipsoid = self.crs.ellipsoid
        if ellipsoid is None:
            raise ReferenceFrameError(f"Reference system has no ellipsoid: {self.crs.name}")
        if not ellipsoid.inverse_flattening:
            return f"+R={ellipsoid.semi_major_metre!r}"
        return f"+a={ellipsoid.semi_major_metre!r} +rf={ellipsoid.inverse_flattening!r}"

    def definition(self) -> str:
        """PROJ text of the frame: the tangent-frame pipeline or the CRS itself."""
        if not self.is_local:
            return self.crs.to_wkt()
        ell = self._ellipsoid_params()
        lon, lat, h = self.anchor
        return (
            "+proj=pipeline "
            "+step +proj=unitconvert +xy_in=deg +xy_out=rad "
            f"+step +proj=cart {ell} "
            f"+step +proj=topocentric +lon_0={lon!r} +lat_0={lat!r} +h_0={h!r} {ell}"
        )

    def to_local_transformer(self) -> pyproj.Transformer:
        """Transformer from geographic (lon, lat, h) to tangent-frame (e, n, u)."""
        if not self.is_local:
            raise ReferenceFrameError("Reference frame is not a local tangent frame")
        return pyproj.Transformer.from_pipeline(self.definition())

    def __str__(self):
        if self.is_local:
            return f"ENU[{self.anchor.x}, {self.anchor.y}, {self.anchor.z}] on {self.crs.name}"
        return self.crs.name


def parse_srs(text: str) -> ReferenceFrame:
    """Parse a reference-system definition (EPSG code, PROJ string or WKT)."""
    try:
        crs = pyproj.CRS.from_user_input(text.strip())
    except CRSError as exc:
        raise ReferenceFrameError(f"Invalid spatial reference {text!r}: {exc}") from exc
    return ReferenceFrame(crs=crs, source=text)


def is_geographic(frame: ReferenceFrame) -> bool:
    return frame.is_geographic


def enu_frame_anchored_at(origin: Point3, frame: ReferenceFrame) -> ReferenceFrame:
    """Derive an East-North-Up tangent frame anchored at ``origin`` of ``frame``."""
    base = frame.crs.geodetic_crs or frame.crs
    return ReferenceFrame(crs=base, anchor=Point3(*origin), source=frame.source)


def resolve_reference_frame(text: Optional[str], origin: Point3) -> Tuple[Optional[ReferenceFrame], Point3]:
    """
    Resolve the reference frame and origin declared by an export.

    Args:
        text: Reference-system text, may be empty.
        origin: Local origin declared alongside it.

    Returns:
        ``(frame, origin)``. ``frame`` is None when no reference was declared.
        For geographic references the frame is a tangent frame anchored at
        ``origin`` and the returned origin is zero.
    """
    origin = Point3(*origin)
    if not text or not text.strip():
        return None, origin

    frame = parse_srs(text)
    if is_geographic(frame):
        logger.info(f"Geographic reference {frame.crs.name}; using tangent frame at {tuple(origin)}")
        return enu_frame_anchored_at(origin, frame), ZERO
    return frame, origin
