"""
Core modules for trajectory ingestion, filtering and mode classification.
"""

from interzone.core.trajectory import MODES, TrackLine, Trajectory, TrajectoryPoint
from interzone.core.records import (
    LineFields,
    PointFields,
    TrajectoryDataset,
    group_points,
)
from interzone.core.study_area import StudyArea, Zone, zones_from_frame
from interzone.core.classifier import ModeClassifier, dominant_value, fill_backward, resolve_mode
from interzone.core.filtering import TrajectoryFilter

__all__ = [
    "MODES",
    "TrackLine",
    "Trajectory",
    "TrajectoryPoint",
    "LineFields",
    "PointFields",
    "TrajectoryDataset",
    "group_points",
    "StudyArea",
    "Zone",
    "zones_from_frame",
    "ModeClassifier",
    "dominant_value",
    "fill_backward",
    "resolve_mode",
    "TrajectoryFilter",
]
