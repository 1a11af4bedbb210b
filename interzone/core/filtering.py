"""
Trajectory Filtering
=====================

Select the tracks that can take part in an interaction at the
intersection: those whose start-to-end displacement lies strictly inside
a range (default 10 m to 70 m) and whose geometry intersects the focus
area.

The filter runs on line records when the provider ships them, and on
trajectories built from points otherwise.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from shapely import STRtree
from shapely.geometry.base import BaseGeometry

from interzone.core.trajectory import TrackLine, Trajectory

logger = logging.getLogger(__name__)


class TrajectoryFilter:
    """Keep tracks by displacement and focus-area overlap.

    Args:
        min_displacement: Exclusive lower displacement bound (meters).
        max_displacement: Exclusive upper displacement bound (meters).
    """

    def __init__(self, min_displacement: float = 10.0, max_displacement: float = 70.0):
        if min_displacement < 0 or max_displacement <= min_displacement:
            raise ValueError(
                "Displacement bounds must satisfy 0 <= min < max, got "
                f"({min_displacement}, {max_displacement})"
            )
        self.min_displacement = min_displacement
        self.max_displacement = max_displacement
        self.skipped: Dict[str, str] = {}

    def _in_range(self, value: float) -> bool:
        return self.min_displacement < value < self.max_displacement

    def select_ids(
        self,
        lines: Sequence[TrackLine],
        focus_area: Optional[BaseGeometry] = None,
    ) -> List[str]:
        """Return the ids of the line records that pass the filter."""
        self.skipped = {}
        candidates = []
        for line in lines:
            if len(line.geometry.coords) < 2:
                self.skipped[line.id] = "fewer than 2 points"
                continue
            if not self._in_range(line.displacement):
                continue
            candidates.append(line)

        kept = self._intersecting(candidates, [l.geometry for l in candidates], focus_area)
        logger.info("Filter kept %d of %d lines", len(kept), len(lines))
        return [l.id for l in kept]

    def apply(
        self,
        trajectories: Iterable[Trajectory],
        focus_area: Optional[BaseGeometry] = None,
        ids: Optional[Iterable[str]] = None,
    ) -> List[Trajectory]:
        """Filter trajectories.

        Args:
            trajectories: Candidate trajectories.
            focus_area: Polygon the trajectory must intersect.
            ids: Track ids already selected from line records. When given,
                trajectories are kept by id only.

        Returns:
            Trajectories passing the filter, in input order.
        """
        trajectories = list(trajectories)
        if ids is not None:
            wanted = set(ids)
            kept = [t for t in trajectories if t.id in wanted]
            logger.info("Filter kept %d of %d trajectories", len(kept), len(trajectories))
            return kept

        self.skipped = {}
        candidates = []
        for traj in trajectories:
            if not traj.is_valid:
                self.skipped[traj.id] = f"{len(traj)} point(s), need at least 2"
                logger.debug("Skipping trajectory %s: too few points", traj.id)
                continue
            if not self._in_range(traj.displacement):
                continue
            candidates.append(traj)

        kept = self._intersecting(candidates, [t.geometry for t in candidates], focus_area)
        logger.info("Filter kept %d of %d trajectories", len(kept), len(trajectories))
        return kept

    @staticmethod
    def _intersecting(items: list, geoms: list, focus_area: Optional[BaseGeometry]) -> list:
        if focus_area is None or not items:
            return list(items)
        tree = STRtree(geoms)
        hits = set(int(i) for i in tree.query(focus_area, predicate="intersects"))
        return [item for i, item in enumerate(items) if i in hits]
