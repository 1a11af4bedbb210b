"""
Trajectory Mode Classification
================================

Assign a transport mode to every trajectory from its noisy per-point
type tags.

Type tags may be missing on some points, and corrections discovered late
in a track are only written to its later points. Resolution works in
three steps:

    1. **Backward fill**: a missing tag takes the value of the next tagged
       point in time, so the last point's value is authoritative.
    2. **Dominant value**: the most frequent tag per trajectory, computed
       separately for object type and vehicle type. Ties go to the value
       seen first. A share below the threshold (default 75%) yields
       ``"unclear"``; no tags at all yields ``None`` (missing).
    3. **Mode mapping**: ordered rules from the two dominant values.

Example::

    from interzone.core.classifier import ModeClassifier

    classifier = ModeClassifier()
    trajectories = classifier.classify(trajectories)
    bikes = [t for t in trajectories if t.mode == "bike"]
"""

import dataclasses
import logging
from collections import Counter
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from interzone.core.trajectory import Trajectory

logger = logging.getLogger(__name__)

UNCLEAR = "unclear"

# (field, tag value, mode), evaluated in order; first match wins.
# The vehicle_type "unclear" rule stays after the vehicle classes.
MODE_RULES = (
    ("object_type", "pedestrian", "pedestrian"),
    ("object_type", UNCLEAR, "unclear"),
    ("vehicle_type", "passengerCar", "car"),
    ("vehicle_type", "bike", "bike"),
    ("vehicle_type", "motorcycle", "motorcycle"),
    ("vehicle_type", "bus", "bus"),
    ("vehicle_type", "heavyTruck", "truck"),
    ("vehicle_type", UNCLEAR, "unclear"),
)


def is_missing(value) -> bool:
    """Whether a tag value counts as missing (None, NaN, NA or empty)."""
    if isinstance(value, str):
        return value.strip() == ""
    return pd.api.types.is_scalar(value) and bool(pd.isna(value))


def fill_backward(values: Sequence[Optional[str]]) -> List[Optional[str]]:
    """Fill missing values from the next non-missing value in sequence.

    Single reverse pass over a time-ordered sequence. Trailing missing
    values have nothing to inherit from and stay missing.

    Args:
        values: Tag values ordered by time.

    Returns:
        New list of the same length.
    """
    filled: List[Optional[str]] = [None] * len(values)
    carry: Optional[str] = None
    for i in range(len(values) - 1, -1, -1):
        if is_missing(values[i]):
            filled[i] = carry
        else:
            carry = values[i]
            filled[i] = carry
    return filled


def dominant_value(
    values: Iterable[Optional[str]],
    threshold: float = 0.75,
) -> Optional[str]:
    """Return the most frequent non-missing value.

    Args:
        values: Tag values.
        threshold: Minimum share of non-missing values the winner needs;
            below it the result is ``"unclear"``.

    Returns:
        The dominant value, ``"unclear"``, or None if every value is
        missing.
    """
    present = [v for v in values if not is_missing(v)]
    if not present:
        return None

    counts = Counter(present)
    best_count = max(counts.values())
    # Counter keeps first-insertion order, which breaks ties
    dominant = next(v for v, c in counts.items() if c == best_count)

    if best_count / len(present) < threshold:
        return UNCLEAR
    return dominant


def resolve_mode(
    object_type: Optional[str], vehicle_type: Optional[str]
) -> str:
    """Map dominant object/vehicle types to a transport mode."""
    tags = {"object_type": object_type, "vehicle_type": vehicle_type}
    for field_name, tag, mode in MODE_RULES:
        if tags[field_name] == tag:
            return mode
    return "unknown"


class ModeClassifier:
    """Classify trajectories into transport modes.

    Args:
        dominance_threshold: Minimum share the most frequent tag needs to
            count as dominant.
    """

    def __init__(self, dominance_threshold: float = 0.75):
        if not 0.0 < dominance_threshold <= 1.0:
            raise ValueError(
                f"dominance_threshold must be in (0, 1], got {dominance_threshold}"
            )
        self.dominance_threshold = dominance_threshold

    def classify_one(self, trajectory: Trajectory) -> Trajectory:
        """Return a classified copy of a single trajectory.

        Point tags are back-filled in the copy; the input is untouched.
        """
        object_types = fill_backward([p.object_type for p in trajectory.points])
        vehicle_types = fill_backward([p.vehicle_type for p in trajectory.points])

        points = tuple(
            dataclasses.replace(p, object_type=o, vehicle_type=v)
            for p, o, v in zip(trajectory.points, object_types, vehicle_types)
        )
        object_type = dominant_value(object_types, self.dominance_threshold)
        vehicle_type = dominant_value(vehicle_types, self.dominance_threshold)

        return dataclasses.replace(
            trajectory,
            points=points,
            object_type=object_type,
            vehicle_type=vehicle_type,
            mode=resolve_mode(object_type, vehicle_type),
        )

    def classify(self, trajectories: Iterable[Trajectory]) -> List[Trajectory]:
        """Classify every trajectory.

        Args:
            trajectories: Trajectories to classify.

        Returns:
            Classified copies, in input order.
        """
        result = [self.classify_one(t) for t in trajectories]
        logger.info("Classified %d trajectories: %s", len(result), self.mode_counts(result))
        return result

    @staticmethod
    def mode_counts(trajectories: Iterable[Trajectory]) -> dict:
        """Count trajectories per mode."""
        return dict(Counter(t.mode for t in trajectories))
