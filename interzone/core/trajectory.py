"""
Trajectory Data Model
======================

Dataclasses for raw trajectory observations and the per-track objects
derived from them.

    - ``TrajectoryPoint``: one timestamped, type-tagged location.
    - ``Trajectory``: the ordered points of one track with derived
      geometry (length, displacement, circuity) and its transport mode.
    - ``TrackLine``: one record of the line dataset, i.e. a track already
      aggregated to a polyline by the data provider.

Example::

    from interzone.core.trajectory import Trajectory, TrajectoryPoint

    pts = [TrajectoryPoint("a", t, float(t), 0.0) for t in range(5)]
    traj = Trajectory.from_points("a", pts)
    print(traj.length, traj.displacement)  # 4.0 4.0
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import numpy as np
from shapely.geometry import LineString, Point

from interzone.utils.geometry import (
    MalformedTrajectoryError,
    Segment,
    bearing,
    circuity,
    displacement,
    polyline_length,
    to_segments,
)

# Transport modes a trajectory can be assigned
MODES = (
    "car",
    "bike",
    "pedestrian",
    "motorcycle",
    "bus",
    "truck",
    "unclear",
    "unknown",
)


@dataclass(frozen=True)
class TrajectoryPoint:
    """A single observation of a road user.

    Attributes:
        track_id: Identifier of the track the point belongs to.
        t: Timestamp in seconds since the epoch.
        x: Projected x coordinate.
        y: Projected y coordinate.
        object_type: Object type tag, or None when missing.
        vehicle_type: Vehicle type tag, or None when missing.
        z: Optional elevation.
    """

    track_id: str
    t: float
    x: float
    y: float
    object_type: Optional[str] = None
    vehicle_type: Optional[str] = None
    z: Optional[float] = None

    @property
    def coords(self) -> Tuple[float, ...]:
        if self.z is None:
            return (self.x, self.y)
        return (self.x, self.y, self.z)

    @property
    def geometry(self) -> Point:
        return Point(self.coords)


@dataclass(frozen=True)
class TrackLine:
    """A record of the line dataset.

    Attributes:
        id: Track identifier, matching ``TrajectoryPoint.track_id``.
        geometry: Polyline of the whole track.
        start_time: First timestamp of the track (seconds).
        end_time: Last timestamp of the track (seconds).
        update_time: Time the record was last updated (seconds).
        object_type: Object type tag of the line record.
        vehicle_type: Vehicle type tag of the line record.
    """

    id: str
    geometry: LineString
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    update_time: Optional[float] = None
    object_type: Optional[str] = None
    vehicle_type: Optional[str] = None

    @property
    def coords(self):
        return self.geometry.coords

    @property
    def length(self) -> float:
        return float(self.geometry.length)

    @property
    def displacement(self) -> float:
        return displacement(self.geometry)


@dataclass
class Trajectory:
    """Ordered observations of one road user.

    Classification fields are empty until a
    :class:`~interzone.core.classifier.ModeClassifier` attaches them.

    Attributes:
        id: Track identifier.
        points: Points sorted by timestamp.
        object_type: Dominant object type (None = missing).
        vehicle_type: Dominant vehicle type (None = missing).
        mode: Resolved transport mode, one of ``MODES``.
    """

    id: str
    points: Tuple[TrajectoryPoint, ...] = field(default_factory=tuple)
    object_type: Optional[str] = None
    vehicle_type: Optional[str] = None
    mode: str = "unknown"

    @classmethod
    def from_points(
        cls, track_id: str, points: Iterable[TrajectoryPoint]
    ) -> "Trajectory":
        """Build a trajectory, sorting the points by timestamp."""
        ordered = tuple(sorted(points, key=lambda p: p.t))
        return cls(id=str(track_id), points=ordered)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def coords(self) -> np.ndarray:
        """(N, 2) or (N, 3) array of point coordinates."""
        if not self.points:
            return np.empty((0, 2))
        return np.array([p.coords for p in self.points], dtype=np.float64)

    @property
    def times(self) -> np.ndarray:
        return np.array([p.t for p in self.points], dtype=np.float64)

    @property
    def is_valid(self) -> bool:
        """Whether the trajectory has enough points to form a line."""
        return len(self.points) >= 2

    @property
    def geometry(self) -> LineString:
        if not self.is_valid:
            raise MalformedTrajectoryError(
                f"Trajectory {self.id!r} has {len(self.points)} point(s); "
                "at least 2 are needed for a line"
            )
        return LineString(self.coords)

    @property
    def length(self) -> float:
        return polyline_length(self.coords)

    @property
    def displacement(self) -> float:
        return displacement(self)

    @property
    def circuity(self) -> float:
        return circuity(self)

    @property
    def bearing(self) -> float:
        return bearing(self)

    @property
    def duration(self) -> float:
        if not self.points:
            return 0.0
        return self.points[-1].t - self.points[0].t

    def segments(self) -> List[Segment]:
        """Decompose into N-1 timestamped segments."""
        return to_segments(
            [p.coords for p in self.points],
            [p.t for p in self.points],
            line_id=self.id,
        )

    def summary(self) -> dict:
        """Serialize key properties to a JSON-compatible dictionary."""
        valid = self.is_valid
        return {
            "id": self.id,
            "n_points": len(self.points),
            "mode": self.mode,
            "object_type": self.object_type,
            "vehicle_type": self.vehicle_type,
            "length_m": round(self.length, 2),
            "displacement_m": round(self.displacement, 2) if valid else None,
            "duration_s": round(self.duration, 2),
        }
