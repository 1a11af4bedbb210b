"""
Space-Time Prism Interaction Detection
========================================

Flag bike observations that have a car observation close by in both
space and time.

For each bike point ``p`` two neighbor sets are built over the car points:

    - **spatial**: car points strictly closer than ``space_radius``;
    - **temporal**: car points whose timestamp lies strictly inside
      ``(t_p - time_radius, t_p + time_radius)``.

``p`` is an interaction iff both sets share at least one car point. The
shared point must be the same observation, not merely one at the same
place or time. Flagged points outside the focus area are discarded.

The car KD-tree and time index are built once, so ``detect`` can be
called repeatedly with different radii.

Example::

    from interzone.detection import PrismDetector

    detector = PrismDetector.from_trajectories(bikes, cars, focus_area)
    events = detector.detect(space_radius=2.0, time_radius=2.0)
    print(f"{len(events)} prism interactions")
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import shapely
from scipy.spatial import KDTree
from shapely.geometry.base import BaseGeometry

from interzone.core.trajectory import Trajectory, TrajectoryPoint
from interzone.detection.events import InteractionEvent

logger = logging.getLogger(__name__)


def _xy(points: Sequence[TrajectoryPoint]) -> np.ndarray:
    if not points:
        return np.empty((0, 2))
    return np.array([(p.x, p.y) for p in points], dtype=np.float64)


class PrismDetector:
    """Detect interactions by simultaneous spatial and temporal proximity.

    Args:
        bike_points: Observations of bikes.
        car_points: Observations of cars.
        focus_area: Polygon events must intersect. None keeps all events.
    """

    def __init__(
        self,
        bike_points: Sequence[TrajectoryPoint],
        car_points: Sequence[TrajectoryPoint],
        focus_area: Optional[BaseGeometry] = None,
    ):
        self.bike_points = list(bike_points)
        self.car_points = list(car_points)
        self.focus_area = focus_area

        self._bike_xy = _xy(self.bike_points)
        self._bike_t = np.array([p.t for p in self.bike_points], dtype=np.float64)
        self._car_xy = _xy(self.car_points)
        car_t = np.array([p.t for p in self.car_points], dtype=np.float64)
        self._car_order = np.argsort(car_t, kind="stable")
        self._car_t_sorted = car_t[self._car_order]
        self._car_tree = KDTree(self._car_xy) if self.car_points else None

        self._in_focus = self._focus_mask()

    @classmethod
    def from_trajectories(
        cls,
        bikes: Sequence[Trajectory],
        cars: Sequence[Trajectory],
        focus_area: Optional[BaseGeometry] = None,
    ) -> "PrismDetector":
        """Build a detector from the points of bike and car trajectories."""
        return cls(
            [p for traj in bikes for p in traj.points],
            [p for traj in cars for p in traj.points],
            focus_area,
        )

    def _focus_mask(self) -> np.ndarray:
        if self.focus_area is None or not self.bike_points:
            return np.ones(len(self.bike_points), dtype=bool)
        return shapely.intersects(self.focus_area, shapely.points(self._bike_xy))

    def spatial_neighbors(self, index: int, space_radius: float) -> np.ndarray:
        """Car point indices strictly within ``space_radius`` of bike point ``index``."""
        if self._car_tree is None:
            return np.empty(0, dtype=int)
        candidates = np.asarray(
            self._car_tree.query_ball_point(self._bike_xy[index], r=space_radius),
            dtype=int,
        )
        if candidates.size == 0:
            return candidates
        diffs = self._car_xy[candidates] - self._bike_xy[index]
        dist = np.hypot(diffs[:, 0], diffs[:, 1])
        return np.sort(candidates[dist < space_radius])

    def temporal_neighbors(self, index: int, time_radius: float) -> np.ndarray:
        """Car point indices with timestamps strictly inside the time window."""
        t = self._bike_t[index]
        lo = np.searchsorted(self._car_t_sorted, t - time_radius, side="right")
        hi = np.searchsorted(self._car_t_sorted, t + time_radius, side="left")
        return np.sort(self._car_order[lo:hi])

    def detect(
        self,
        space_radius: float = 2.0,
        time_radius: float = 2.0,
    ) -> List[InteractionEvent]:
        """Return one event per bike point flagged as an interaction.

        Args:
            space_radius: Spatial neighborhood radius (meters).
            time_radius: Temporal neighborhood radius (seconds).

        Returns:
            Events at the flagged bike point locations, in bike point order.

        Raises:
            ValueError: If a radius is not positive.
        """
        if space_radius <= 0 or time_radius <= 0:
            raise ValueError(
                "Prism radii must be positive, got "
                f"space_radius={space_radius}, time_radius={time_radius}"
            )
        if not self.bike_points or not self.car_points:
            return []

        events: List[InteractionEvent] = []
        for i, bike in enumerate(self.bike_points):
            if not self._in_focus[i]:
                continue
            shared = np.intersect1d(
                self.spatial_neighbors(i, space_radius),
                self.temporal_neighbors(i, time_radius),
                assume_unique=True,
            )
            if shared.size == 0:
                continue

            diffs = self._car_xy[shared] - self._bike_xy[i]
            nearest = int(shared[np.argmin(np.hypot(diffs[:, 0], diffs[:, 1]))])
            events.append(
                InteractionEvent(
                    x=bike.x,
                    y=bike.y,
                    source="prism",
                    bike_id=bike.track_id,
                    car_id=self.car_points[nearest].track_id,
                    t=bike.t,
                )
            )

        logger.info(
            "Prism detector (%.2f m, %.2f s): %d of %d bike points flagged",
            space_radius,
            time_radius,
            len(events),
            len(self.bike_points),
        )
        return events

    def summary(self, events: List[InteractionEvent]) -> Dict[str, int]:
        """Counts of flagged points and involved tracks."""
        return {
            "n_events": len(events),
            "n_bikes": len({e.bike_id for e in events}),
            "n_cars": len({e.car_id for e in events}),
        }
