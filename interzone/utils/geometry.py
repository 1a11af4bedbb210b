"""
Geometric Primitives
=====================

Line measurements and line/line operations used by the interaction
detectors: boundary extraction, displacement, circuity, segment
decomposition and crossing detection.

All functions work in a planar projected coordinate system. Inputs are
either shapely ``LineString`` objects or anything exposing a ``coords``
sequence (e.g. :class:`interzone.core.trajectory.Trajectory`).

Example::

    from shapely.geometry import LineString
    from interzone.utils.geometry import crossings, displacement

    a = LineString([(0, 0), (10, 10)])
    b = LineString([(0, 10), (10, 0)])
    print(displacement(a))          # 14.14...
    print(crossings([a], [b])[0])   # Crossing(point=(5.0, 5.0), ...)
"""

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np
from shapely import STRtree
from shapely.geometry import LineString, Point

Coord = Tuple[float, ...]


class MalformedTrajectoryError(ValueError):
    """Raised when a line or trajectory has fewer than two points."""


@dataclass(frozen=True)
class Segment:
    """A straight piece of a trajectory between two consecutive points.

    Attributes:
        line_id: Identifier of the parent line or trajectory.
        segment_id: 1-based position of the segment within its parent.
        start: Start coordinate.
        end: End coordinate.
        start_time: Timestamp of the start point (seconds).
        end_time: Timestamp of the end point (seconds).
    """

    line_id: str
    segment_id: int
    start: Coord
    end: Coord
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def geometry(self) -> LineString:
        return LineString([self.start, self.end])

    @property
    def mid_time(self) -> float:
        """Midpoint in time, used as the segment's crossing instant."""
        return (self.start_time + self.end_time) / 2.0


@dataclass(frozen=True)
class Crossing:
    """A point where a line of set A crosses a line of set B.

    Attributes:
        point: (x, y) location of the crossing.
        index_a: Index of the crossing line in the first input set.
        index_b: Index of the crossing line in the second input set.
    """

    point: Tuple[float, float]
    index_a: int
    index_b: int


def _coords(line) -> np.ndarray:
    return np.asarray(line.coords, dtype=np.float64)


def polyline_length(polyline: np.ndarray) -> float:
    """Compute total arc length of a 2D polyline.

    Args:
        polyline: (N, 2) or (N, 3) array of points. Only x and y are used.

    Returns:
        Total length. Returns 0.0 if fewer than 2 points.
    """
    if len(polyline) < 2:
        return 0.0
    diffs = np.diff(polyline[:, :2], axis=0)
    return float(np.sum(np.sqrt(np.sum(diffs**2, axis=1))))


def boundary(line) -> Tuple[Coord, Coord]:
    """Return the first and last coordinate of a single line.

    Raises:
        MalformedTrajectoryError: If the line has fewer than 2 points.
    """
    coords = list(line.coords)
    if len(coords) < 2:
        raise MalformedTrajectoryError(
            f"Line needs at least 2 points, got {len(coords)}"
        )
    return tuple(coords[0]), tuple(coords[-1])


def line_boundaries(lines: Iterable) -> List[Tuple[Coord, Coord]]:
    """Extract the (first, last) coordinate pair of every line.

    Any z dimension present in the input is preserved.

    Args:
        lines: Iterable of lines.

    Returns:
        One (first, last) tuple per input line, in input order.

    Raises:
        MalformedTrajectoryError: If any line has fewer than 2 points.
    """
    return [boundary(line) for line in lines]


def displacement(line) -> float:
    """Straight-line distance between the first and last point of a line.

    Only the planar x/y components are used. Zero iff start == end.
    """
    start, end = boundary(line)
    return float(math.hypot(end[0] - start[0], end[1] - start[1]))


def circuity(line) -> float:
    """Ratio of path length to displacement.

    Returns:
        length / displacement, or ``nan`` when the displacement is zero.
    """
    disp = displacement(line)
    if disp == 0.0:
        return float("nan")
    return polyline_length(_coords(line)) / disp


def normalize_bearing(angle_deg: float) -> float:
    """Normalize a bearing to [0, 360) degrees."""
    return angle_deg % 360.0


def bearing(line) -> float:
    """Azimuth from the first to the last point of a line.

    Measured in degrees clockwise from grid north (the +y axis).

    Returns:
        Bearing in [0, 360), or ``nan`` for zero displacement.
    """
    start, end = boundary(line)
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    if dx == 0.0 and dy == 0.0:
        return float("nan")
    return normalize_bearing(math.degrees(math.atan2(dx, dy)))


def line_vertices(lines: Sequence) -> List[Tuple[int, Coord]]:
    """Explode lines into their vertices.

    Returns:
        List of (line_index, coordinate) pairs in input order.
    """
    return [
        (i, tuple(c))
        for i, line in enumerate(lines)
        for c in line.coords
    ]


def to_segments(
    coords: Sequence[Coord],
    times: Optional[Sequence[float]] = None,
    line_id: str = "",
) -> List[Segment]:
    """Decompose an ordered point sequence into consecutive segments.

    For N points this yields exactly N-1 segments; segment i spans point
    i and i+1 and inherits both timestamps.

    Args:
        coords: Ordered coordinates.
        times: Optional timestamps aligned with ``coords``.
        line_id: Identifier copied onto every segment.

    Returns:
        Segments with 1-based ``segment_id`` in temporal order.

    Raises:
        MalformedTrajectoryError: If fewer than 2 points are given.
    """
    if len(coords) < 2:
        raise MalformedTrajectoryError(
            f"Line {line_id!r} needs at least 2 points, got {len(coords)}"
        )
    if times is not None and len(times) != len(coords):
        raise ValueError(
            f"Got {len(times)} timestamps for {len(coords)} coordinates"
        )

    segments = []
    for i in range(len(coords) - 1):
        segments.append(
            Segment(
                line_id=line_id,
                segment_id=i + 1,
                start=tuple(coords[i]),
                end=tuple(coords[i + 1]),
                start_time=None if times is None else float(times[i]),
                end_time=None if times is None else float(times[i + 1]),
            )
        )
    return segments


def lines_to_segments(lines: Sequence, line_ids: Optional[Sequence[str]] = None) -> List[Segment]:
    """Decompose time-less lines into segments.

    Segment ids are numbered per line, starting at 1.
    """
    if line_ids is None:
        line_ids = [str(i) for i in range(len(lines))]
    segments: List[Segment] = []
    for line, line_id in zip(lines, line_ids):
        segments.extend(to_segments(list(line.coords), line_id=str(line_id)))
    return segments


def _point_parts(geom) -> List[Point]:
    if geom.is_empty:
        return []
    if geom.geom_type == "Point":
        return [geom]
    if geom.geom_type == "MultiPoint":
        return list(geom.geoms)
    if geom.geom_type == "GeometryCollection":
        return [g for g in geom.geoms if g.geom_type == "Point"]
    return []


def _boundary_set(lines: Sequence) -> Set[Tuple[float, float]]:
    points = set()
    for first, last in line_boundaries(lines):
        points.add((float(first[0]), float(first[1])))
        points.add((float(last[0]), float(last[1])))
    return points


def crossings(lines_a: Sequence[LineString], lines_b: Sequence[LineString]) -> List[Crossing]:
    """Find the points where lines of set A cross lines of set B.

    Candidate pairs are found with an STR-tree query using the ``crosses``
    predicate, so only pairs that topologically cross are intersected.
    Intersection points that coincide with a boundary point of any line
    in either input set are dropped; those are touches, not crossings.

    Args:
        lines_a: First set of lines.
        lines_b: Second set of lines.

    Returns:
        Crossings ordered by (index_a, index_b).
    """
    if len(lines_a) == 0 or len(lines_b) == 0:
        return []

    # Boundary points are always taken from the complete input sets
    boundaries = _boundary_set(lines_a) | _boundary_set(lines_b)

    tree = STRtree(list(lines_b))
    idx_a, idx_b = tree.query(list(lines_a), predicate="crosses")
    order = np.lexsort((idx_b, idx_a))

    result: List[Crossing] = []
    for k in order:
        i, j = int(idx_a[k]), int(idx_b[k])
        inter = lines_a[i].intersection(lines_b[j])
        for pt in _point_parts(inter):
            xy = (float(pt.x), float(pt.y))
            if xy in boundaries:
                continue
            result.append(Crossing(point=xy, index_a=i, index_b=j))
    return result
