"""
Trajectory Record Ingestion
=============================

Turn point and line tables (pandas DataFrames, already projected to a
shared coordinate system) into typed trajectory objects.

Column names are never guessed: a ``PointFields`` / ``LineFields``
mapping names every column that is read, and the line id is matched to
the point track id explicitly.

Example::

    import pandas as pd
    from interzone.core.records import TrajectoryDataset

    points = pd.read_csv("points.csv")
    lines = pd.read_csv("lines.csv")  # geometry as WKT
    dataset = TrajectoryDataset.from_frames(points, lines, crs="EPSG:25832")
    trajectories = dataset.trajectories()
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from interzone.core.classifier import is_missing
from interzone.core.study_area import as_geometry
from interzone.core.trajectory import TrackLine, Trajectory, TrajectoryPoint

logger = logging.getLogger(__name__)

MS_PER_SECOND = 1000.0


@dataclass(frozen=True)
class PointFields:
    """Column names of the point table."""

    track_id: str = "track_id"
    t: str = "t"
    x: str = "x"
    y: str = "y"
    z: Optional[str] = None
    object_type: str = "object_type"
    vehicle_type: str = "vehicle_type"

    def required(self) -> List[str]:
        cols = [self.track_id, self.t, self.x, self.y]
        if self.z is not None:
            cols.append(self.z)
        return cols


@dataclass(frozen=True)
class LineFields:
    """Column names of the line table.

    ``id`` is the column matched against ``PointFields.track_id``.
    """

    id: str = "id"
    start_time: str = "startTimestamp"
    end_time: str = "endTimestamp"
    update_time: str = "updateTimestamp"
    object_type: str = "object_type"
    vehicle_type: str = "vehicle_type"
    geometry: str = "geometry"

    def required(self) -> List[str]:
        return [self.id, self.geometry]


def _check_columns(frame: pd.DataFrame, columns: List[str], name: str) -> None:
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise ValueError(f"{name} table is missing columns: {missing}")


def _floats(frame: pd.DataFrame, column: Optional[str]) -> np.ndarray:
    # Column-wise read keeps each column's own dtype; NA becomes nan.
    if column is None or column not in frame.columns:
        return np.full(len(frame), np.nan)
    return frame[column].to_numpy(dtype=np.float64, na_value=np.nan)


def _seconds(frame: pd.DataFrame, column: Optional[str]) -> List[Optional[float]]:
    values = _floats(frame, column) / MS_PER_SECOND
    return [None if np.isnan(v) else float(v) for v in values]


def _tags(frame: pd.DataFrame, column: str) -> List[Optional[str]]:
    if column not in frame.columns:
        return [None] * len(frame)
    return [None if is_missing(v) else str(v) for v in frame[column].tolist()]


def _ids(frame: pd.DataFrame, column: str) -> List[str]:
    return frame[column].astype(str).tolist()


def points_from_frame(
    frame: pd.DataFrame, fields: PointFields = PointFields()
) -> List[TrajectoryPoint]:
    """Read trajectory points from a table with epoch-millisecond times."""
    _check_columns(frame, fields.required(), "Point")

    zs = [None] * len(frame) if fields.z is None else _floats(frame, fields.z).tolist()
    rows = zip(
        _ids(frame, fields.track_id),
        _seconds(frame, fields.t),
        _floats(frame, fields.x).tolist(),
        _floats(frame, fields.y).tolist(),
        zs,
        _tags(frame, fields.object_type),
        _tags(frame, fields.vehicle_type),
    )
    return [
        TrajectoryPoint(
            track_id=track_id,
            t=t,
            x=x,
            y=y,
            z=z,
            object_type=object_type,
            vehicle_type=vehicle_type,
        )
        for track_id, t, x, y, z, object_type, vehicle_type in rows
    ]


def lines_from_frame(
    frame: pd.DataFrame, fields: LineFields = LineFields()
) -> List[TrackLine]:
    """Read track lines from a table; geometry may be shapely or WKT."""
    _check_columns(frame, fields.required(), "Line")

    rows = zip(
        _ids(frame, fields.id),
        frame[fields.geometry].tolist(),
        _seconds(frame, fields.start_time),
        _seconds(frame, fields.end_time),
        _seconds(frame, fields.update_time),
        _tags(frame, fields.object_type),
        _tags(frame, fields.vehicle_type),
    )
    lines = []
    for line_id, raw, start, end, update, object_type, vehicle_type in rows:
        geom = as_geometry(raw)
        if geom.geom_type != "LineString":
            raise ValueError(
                f"Line {line_id!r} must be a LineString, got {geom.geom_type}"
            )
        lines.append(
            TrackLine(
                id=line_id,
                geometry=geom,
                start_time=start,
                end_time=end,
                update_time=update,
                object_type=object_type,
                vehicle_type=vehicle_type,
            )
        )
    return lines


def group_points(points: List[TrajectoryPoint]) -> List[Trajectory]:
    """Group points by track id into time-ordered trajectories.

    Tracks are returned in order of first appearance.
    """
    by_track: Dict[str, List[TrajectoryPoint]] = defaultdict(list)
    for p in points:
        by_track[p.track_id].append(p)
    return [Trajectory.from_points(tid, pts) for tid, pts in by_track.items()]


@dataclass
class TrajectoryDataset:
    """Raw point and line records of one recording.

    Attributes:
        points: All trajectory points.
        lines: Line records; may be empty when only points are available.
        crs: Coordinate system identifier shared by all geometries.
    """

    points: List[TrajectoryPoint] = field(default_factory=list)
    lines: List[TrackLine] = field(default_factory=list)
    crs: Optional[str] = None

    @classmethod
    def from_frames(
        cls,
        points: pd.DataFrame,
        lines: Optional[pd.DataFrame] = None,
        crs: Optional[str] = None,
        point_fields: PointFields = PointFields(),
        line_fields: LineFields = LineFields(),
    ) -> "TrajectoryDataset":
        """Build a dataset from point and (optional) line tables."""
        dataset = cls(
            points=points_from_frame(points, point_fields),
            lines=[] if lines is None else lines_from_frame(lines, line_fields),
            crs=crs,
        )
        logger.info(
            "Loaded %d points and %d lines", len(dataset.points), len(dataset.lines)
        )
        return dataset

    def trajectories(self) -> List[Trajectory]:
        """Group the points into trajectories."""
        return group_points(self.points)

    def track_ids(self) -> List[str]:
        return list(dict.fromkeys(p.track_id for p in self.points))
