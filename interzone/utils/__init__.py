"""
Geometric primitives for interzone.
"""

from interzone.utils.geometry import (
    Crossing,
    MalformedTrajectoryError,
    Segment,
    bearing,
    boundary,
    circuity,
    crossings,
    displacement,
    line_boundaries,
    line_vertices,
    lines_to_segments,
    polyline_length,
    to_segments,
)

__all__ = [
    "Crossing",
    "MalformedTrajectoryError",
    "Segment",
    "bearing",
    "boundary",
    "circuity",
    "crossings",
    "displacement",
    "line_boundaries",
    "line_vertices",
    "lines_to_segments",
    "polyline_length",
    "to_segments",
]
