"""
interzone: Evaluating Network-Based Interaction Zones with Trajectory Data
==========================================================================

interzone checks how well interaction zones, predicted from intersection
lane geometry alone, match bicycle-car interactions observed in real
trajectory data.

Key capabilities:
    - Line primitives: boundaries, displacement, circuity, segments,
      boundary-aware crossings
    - Transport mode classification from noisy per-point type tags
    - Interaction detection by space-time prism and post-encroachment time
    - Zone join, grid density, quadrat test and kernel density

Quick start::

    from interzone import AnalysisConfig, InteractionAnalysis
    from interzone.core import StudyArea, TrajectoryDataset

    dataset = TrajectoryDataset.from_frames(points_df, lines_df, crs="EPSG:25832")
    area = StudyArea(focus_area=focus, zones=zones, crs="EPSG:25832")
    result = InteractionAnalysis(dataset, area, AnalysisConfig()).run()
    print(result.counts_table())
"""

__version__ = "0.1.0"

from interzone.core.trajectory import Trajectory, TrajectoryPoint
from interzone.core.classifier import ModeClassifier
from interzone.detection.events import InteractionEvent
from interzone.detection.prism import PrismDetector
from interzone.detection.pet import PETDetector
from interzone.pipeline import AnalysisConfig, AnalysisResult, InteractionAnalysis

__all__ = [
    "Trajectory",
    "TrajectoryPoint",
    "ModeClassifier",
    "InteractionEvent",
    "PrismDetector",
    "PETDetector",
    "AnalysisConfig",
    "AnalysisResult",
    "InteractionAnalysis",
]
