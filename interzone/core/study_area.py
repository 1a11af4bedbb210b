"""
Study Area Geometry
====================

The polygons an analysis is evaluated against: the focus area that bounds
the analysis, the predicted interaction zones, and (context only) the
lane polygons of the intersection.

Zones are computed upstream from lane geometry and consumed here as
read-only input.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import pandas as pd
from shapely import wkt
from shapely.geometry.base import BaseGeometry


@dataclass(frozen=True)
class Zone:
    """A predicted interaction zone.

    Attributes:
        id: Zone identifier.
        geometry: Zone polygon.
    """

    id: str
    geometry: BaseGeometry


@dataclass
class StudyArea:
    """Focus area and zones of one intersection.

    Attributes:
        focus_area: Polygon the analysis is restricted to.
        zones: Predicted interaction zones.
        lanes: Lane polygons, kept for context only.
        crs: Identifier of the projected coordinate system all geometries
            are expressed in (e.g. ``"EPSG:25832"``).
    """

    focus_area: BaseGeometry
    zones: List[Zone] = field(default_factory=list)
    lanes: List[BaseGeometry] = field(default_factory=list)
    crs: Optional[str] = None

    def __post_init__(self):
        if self.focus_area is None or self.focus_area.is_empty:
            raise ValueError("StudyArea needs a non-empty focus area polygon")
        if self.focus_area.geom_type not in ("Polygon", "MultiPolygon"):
            raise ValueError(
                f"Focus area must be a polygon, got {self.focus_area.geom_type}"
            )


def as_geometry(value) -> BaseGeometry:
    """Accept a shapely geometry or a WKT string."""
    if isinstance(value, BaseGeometry):
        return value
    if isinstance(value, str):
        return wkt.loads(value)
    raise ValueError(f"Cannot interpret {type(value).__name__} as a geometry")


def zones_from_frame(
    frame: pd.DataFrame,
    id_column: str = "id",
    geometry_column: str = "geometry",
) -> List[Zone]:
    """Build zones from a table with an id and a geometry column.

    Geometries may be shapely objects or WKT strings. Row order is kept,
    which fixes the zone reported for overlapping zones.
    """
    missing = {id_column, geometry_column} - set(frame.columns)
    if missing:
        raise ValueError(f"Zone table is missing columns: {sorted(missing)}")

    zones = []
    for zone_id, geom in zip(frame[id_column], frame[geometry_column]):
        geom = as_geometry(geom)
        if geom.geom_type not in ("Polygon", "MultiPolygon"):
            raise ValueError(
                f"Zone {zone_id!r} must be a polygon, got {geom.geom_type}"
            )
        zones.append(Zone(id=str(zone_id), geometry=geom))
    return zones
