"""
Post-Encroachment Time Interaction Detection
==============================================

Find places where a bike path and a car path cross, and measure the time
between the two road users passing that place.

The pipeline:
    1. Decompose every bike and car trajectory into timestamped segments.
    2. Find all (bike segment, car segment) crossings. Intersection
       points that coincide with any segment end point are touches and are
       dropped.
    3. Assign each segment its midpoint time ``(t0 + t1) / 2`` as the
       crossing instant, regardless of where along the segment the
       crossing lies, and take ``PET = |t_car - t_bike|``.
    4. A crossing inside the focus area with ``PET <= threshold`` is an
       interaction.

Steps 1-3 run once per detector; ``detect`` only applies the threshold.

Example::

    from interzone.detection import PETDetector

    detector = PETDetector(bikes, cars, focus_area)
    events = detector.detect(threshold=2.0)
    table = detector.crossing_table()  # every crossing with its PET
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import shapely
from shapely.geometry.base import BaseGeometry

from interzone.core.trajectory import Trajectory
from interzone.detection.events import InteractionEvent
from interzone.utils.geometry import Segment, crossings

logger = logging.getLogger(__name__)

CROSSING_COLUMNS = [
    "x",
    "y",
    "bike_id",
    "bike_segment",
    "car_id",
    "car_segment",
    "t_bike",
    "t_car",
    "pet",
    "in_focus",
]


class PETDetector:
    """Detect interactions from path crossings and post-encroachment time.

    Args:
        bikes: Bike trajectories.
        cars: Car trajectories.
        focus_area: Polygon events must intersect. None keeps all events.
    """

    def __init__(
        self,
        bikes: Sequence[Trajectory],
        cars: Sequence[Trajectory],
        focus_area: Optional[BaseGeometry] = None,
    ):
        self.focus_area = focus_area
        self.skipped: Dict[str, str] = {}
        self.bike_segments = self._segments(bikes)
        self.car_segments = self._segments(cars)
        self._table: Optional[pd.DataFrame] = None

    def _segments(self, trajectories: Sequence[Trajectory]) -> List[Segment]:
        segments: List[Segment] = []
        for traj in trajectories:
            if not traj.is_valid:
                self.skipped[traj.id] = f"{len(traj)} point(s), need at least 2"
                logger.warning("Skipping trajectory %s: fewer than 2 points", traj.id)
                continue
            segments.extend(traj.segments())
        return segments

    def crossing_table(self) -> pd.DataFrame:
        """All bike/car segment crossings with their PET.

        Computed on first access and cached.
        """
        if self._table is not None:
            return self._table

        found = crossings(
            [s.geometry for s in self.bike_segments],
            [s.geometry for s in self.car_segments],
        )

        rows = []
        for c in found:
            bike_seg = self.bike_segments[c.index_a]
            car_seg = self.car_segments[c.index_b]
            t_bike = bike_seg.mid_time
            t_car = car_seg.mid_time
            rows.append(
                {
                    "x": c.point[0],
                    "y": c.point[1],
                    "bike_id": bike_seg.line_id,
                    "bike_segment": bike_seg.segment_id,
                    "car_id": car_seg.line_id,
                    "car_segment": car_seg.segment_id,
                    "t_bike": t_bike,
                    "t_car": t_car,
                    "pet": abs(t_car - t_bike),
                }
            )
        table = pd.DataFrame(rows, columns=CROSSING_COLUMNS)

        if self.focus_area is None or table.empty:
            table["in_focus"] = True
        else:
            pts = shapely.points(table[["x", "y"]].to_numpy(dtype=np.float64))
            table["in_focus"] = shapely.intersects(self.focus_area, pts)

        logger.info(
            "PET detector: %d crossings between %d bike and %d car segments",
            len(table),
            len(self.bike_segments),
            len(self.car_segments),
        )
        self._table = table
        return table

    def detect(self, threshold: float = 2.0) -> List[InteractionEvent]:
        """Return crossings inside the focus area with PET <= threshold.

        Args:
            threshold: Maximum post-encroachment time (seconds).

        Raises:
            ValueError: If the threshold is not positive.
        """
        if threshold <= 0:
            raise ValueError(f"PET threshold must be positive, got {threshold}")

        table = self.crossing_table()
        if table.empty:
            return []
        hits = table[table["in_focus"].astype(bool) & (table["pet"] <= threshold)]

        events = [
            InteractionEvent(
                x=float(row.x),
                y=float(row.y),
                source="pet",
                pet=float(row.pet),
                bike_id=row.bike_id,
                car_id=row.car_id,
                t=float(row.t_bike),
            )
            for row in hits.itertuples(index=False)
        ]
        logger.info("PET detector (<= %.2f s): %d interactions", threshold, len(events))
        return events
