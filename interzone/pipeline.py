"""
Interaction Zone Evaluation Pipeline
======================================

Run the full batch analysis for one intersection:

    1. **Filter**: keep tracks with displacement in (10 m, 70 m) that
       intersect the focus area.
    2. **Classify**: resolve the transport mode of every kept track.
    3. **Detect**: run the prism and PET detectors on the bike and car
       tracks.
    4. **Compare**: join events to the interaction zones, count them,
       and compute grid density, quadrat test and kernel density.

Stages run strictly in sequence and everything is held in memory.
Trajectories, segments and crossings are derived once, so detection can
be repeated with other thresholds without re-deriving them.

Example::

    from interzone.pipeline import AnalysisConfig, InteractionAnalysis

    analysis = InteractionAnalysis(dataset, study_area, AnalysisConfig())
    result = analysis.run()
    print(result.comparisons["pet"].counts)

    # Another PET threshold on the same crossings
    events = analysis.detect_pet(threshold=1.0)
"""

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from interzone.comparison.density import DensitySurface, GridDensity, grid_density, kernel_density
from interzone.comparison.quadrat import QuadratTestResult, quadrat_test
from interzone.comparison.zones import count_by_location, join_zones
from interzone.core.classifier import ModeClassifier
from interzone.core.filtering import TrajectoryFilter
from interzone.core.records import TrajectoryDataset
from interzone.core.study_area import StudyArea
from interzone.core.trajectory import Trajectory
from interzone.detection.events import InteractionEvent, events_to_frame
from interzone.detection.pet import PETDetector
from interzone.detection.prism import PrismDetector

logger = logging.getLogger(__name__)

DETECTORS = ("prism", "pet")


@dataclass
class AnalysisConfig:
    """Thresholds and resolutions of the analysis.

    Attributes:
        min_displacement: Exclusive lower track displacement bound (m).
        max_displacement: Exclusive upper track displacement bound (m).
        dominance_threshold: Minimum share of the dominant type tag.
        bike_mode: Mode treated as bike.
        car_mode: Mode treated as car.
        prism_space_radius: Prism spatial radius (m).
        prism_time_radius: Prism temporal radius (s).
        pet_threshold: Maximum PET of an interaction (s).
        grid_cell_size: Side of the density grid cells.
        grid_n_cells: Optional (nx, ny) grid size overriding the cell size.
        quadrat_nx: Quadrat columns.
        quadrat_ny: Quadrat rows.
        quadrat_jitter: Jitter radius applied before the quadrat test.
        seed: Seed of the jitter generator.
        kde_sigma: Kernel density bandwidth.
        kde_dimyx: Kernel density raster size (rows, columns).
        kde_edge_correction: Whether to edge-correct the kernel density.
    """

    min_displacement: float = 10.0
    max_displacement: float = 70.0
    dominance_threshold: float = 0.75
    bike_mode: str = "bike"
    car_mode: str = "car"
    prism_space_radius: float = 2.0
    prism_time_radius: float = 2.0
    pet_threshold: float = 2.0
    grid_cell_size: float = 1.0
    grid_n_cells: Optional[Tuple[int, int]] = None
    quadrat_nx: int = 10
    quadrat_ny: int = 10
    quadrat_jitter: float = 0.5
    seed: Optional[int] = 0
    kde_sigma: float = 1.5
    kde_dimyx: Tuple[int, int] = (128, 128)
    kde_edge_correction: bool = True

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ValueError: On the first invalid value.
        """
        positive = (
            "prism_space_radius",
            "prism_time_radius",
            "pet_threshold",
            "grid_cell_size",
            "kde_sigma",
        )
        for name in positive:
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if not 0 <= self.min_displacement < self.max_displacement:
            raise ValueError(
                "Displacement bounds must satisfy 0 <= min < max, got "
                f"({self.min_displacement}, {self.max_displacement})"
            )
        if not 0 < self.dominance_threshold <= 1:
            raise ValueError(
                f"dominance_threshold must be in (0, 1], got {self.dominance_threshold}"
            )
        if self.quadrat_nx < 1 or self.quadrat_ny < 1:
            raise ValueError("Quadrat grid must be at least 1x1")
        if self.quadrat_jitter < 0:
            raise ValueError(f"quadrat_jitter must be non-negative, got {self.quadrat_jitter}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisConfig":
        """Build a config from a dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        values = dict(data)
        for key in ("grid_n_cells", "kde_dimyx"):
            if values.get(key) is not None:
                values[key] = tuple(values[key])
        config = cls(**values)
        config.validate()
        return config

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DetectorComparison:
    """Comparison of one detector's events against the zones.

    Attributes:
        source: Detector name ("prism" or "pet").
        events: Events with zone id and in/out classification.
        counts: Count and percentage of events per location.
        grid: Grid density over the focus area.
        quadrat: Quadrat test for complete spatial randomness.
        kde: Kernel density surface.
    """

    source: str
    events: List[InteractionEvent]
    counts: pd.DataFrame
    grid: GridDensity
    quadrat: QuadratTestResult
    kde: DensitySurface

    def events_frame(self) -> pd.DataFrame:
        return events_to_frame(self.events)


@dataclass
class AnalysisResult:
    """All outputs of one pipeline run."""

    trajectories: List[Trajectory] = field(default_factory=list)
    comparisons: Dict[str, DetectorComparison] = field(default_factory=dict)
    skipped: Dict[str, str] = field(default_factory=dict)

    def mode_counts(self) -> Dict[str, int]:
        return ModeClassifier.mode_counts(self.trajectories)

    def counts_table(self) -> pd.DataFrame:
        """Location counts of all detectors stacked, with a ``source`` column."""
        frames = [
            comp.counts.assign(source=name) for name, comp in self.comparisons.items()
        ]
        if not frames:
            return pd.DataFrame(columns=["location", "count", "percentage", "source"])
        return pd.concat(frames, ignore_index=True)


class InteractionAnalysis:
    """Evaluate interaction zones against observed trajectories.

    Args:
        dataset: Point (and optionally line) records.
        study_area: Focus area and interaction zones.
        config: Analysis thresholds; defaults are used when omitted.

    Raises:
        ValueError: If the config is invalid or the dataset and study
            area are in different coordinate systems.
    """

    def __init__(
        self,
        dataset: TrajectoryDataset,
        study_area: StudyArea,
        config: Optional[AnalysisConfig] = None,
    ):
        self.config = config or AnalysisConfig()
        self.config.validate()
        if (
            dataset.crs is not None
            and study_area.crs is not None
            and dataset.crs != study_area.crs
        ):
            raise ValueError(
                f"Coordinate systems differ: dataset is {dataset.crs}, "
                f"study area is {study_area.crs}"
            )

        self.dataset = dataset
        self.study_area = study_area
        self._trajectories: Optional[List[Trajectory]] = None
        self._prism: Optional[PrismDetector] = None
        self._pet: Optional[PETDetector] = None
        self.skipped: Dict[str, str] = {}

    def trajectories(self) -> List[Trajectory]:
        """Filtered and classified trajectories (computed once)."""
        if self._trajectories is not None:
            return self._trajectories

        cfg = self.config
        focus = self.study_area.focus_area
        track_filter = TrajectoryFilter(cfg.min_displacement, cfg.max_displacement)

        trajectories = self.dataset.trajectories()
        if self.dataset.lines:
            ids = track_filter.select_ids(self.dataset.lines, focus)
            kept = track_filter.apply(trajectories, ids=ids)
        else:
            kept = track_filter.apply(trajectories, focus)
        self.skipped.update(track_filter.skipped)

        classifier = ModeClassifier(cfg.dominance_threshold)
        self._trajectories = classifier.classify(kept)
        return self._trajectories

    def split_modes(self) -> Tuple[List[Trajectory], List[Trajectory]]:
        """Return (bikes, cars) among the classified trajectories."""
        trajectories = self.trajectories()
        bikes = [t for t in trajectories if t.mode == self.config.bike_mode]
        cars = [t for t in trajectories if t.mode == self.config.car_mode]
        logger.info("Split %d bikes and %d cars", len(bikes), len(cars))
        return bikes, cars

    @property
    def prism_detector(self) -> PrismDetector:
        if self._prism is None:
            bikes, cars = self.split_modes()
            self._prism = PrismDetector.from_trajectories(
                bikes, cars, self.study_area.focus_area
            )
        return self._prism

    @property
    def pet_detector(self) -> PETDetector:
        if self._pet is None:
            bikes, cars = self.split_modes()
            self._pet = PETDetector(bikes, cars, self.study_area.focus_area)
            self.skipped.update(self._pet.skipped)
        return self._pet

    def detect_prism(
        self,
        space_radius: Optional[float] = None,
        time_radius: Optional[float] = None,
    ) -> List[InteractionEvent]:
        """Prism events; radii default to the config values."""
        return self.prism_detector.detect(
            space_radius if space_radius is not None else self.config.prism_space_radius,
            time_radius if time_radius is not None else self.config.prism_time_radius,
        )

    def detect_pet(self, threshold: Optional[float] = None) -> List[InteractionEvent]:
        """PET events; the threshold defaults to the config value."""
        return self.pet_detector.detect(
            threshold if threshold is not None else self.config.pet_threshold
        )

    def compare(self, source: str, events: List[InteractionEvent]) -> DetectorComparison:
        """Run the spatial comparison stage for one detector's events."""
        cfg = self.config
        focus = self.study_area.focus_area
        zones = self.study_area.zones

        joined = join_zones(events, zones)
        return DetectorComparison(
            source=source,
            events=joined,
            counts=count_by_location(joined),
            grid=grid_density(
                joined, focus, zones, cell_size=cfg.grid_cell_size, n_cells=cfg.grid_n_cells
            ),
            quadrat=quadrat_test(
                joined,
                focus,
                nx=cfg.quadrat_nx,
                ny=cfg.quadrat_ny,
                jitter=cfg.quadrat_jitter,
                seed=cfg.seed,
            ),
            kde=kernel_density(
                joined,
                focus,
                sigma=cfg.kde_sigma,
                dimyx=cfg.kde_dimyx,
                edge_correction=cfg.kde_edge_correction,
            ),
        )

    def run(self, detectors: Tuple[str, ...] = DETECTORS) -> AnalysisResult:
        """Run all stages for the requested detectors.

        Args:
            detectors: Subset of ``("prism", "pet")``.

        Returns:
            AnalysisResult with one comparison per detector.
        """
        unknown = set(detectors) - set(DETECTORS)
        if unknown:
            raise ValueError(f"Unknown detectors: {sorted(unknown)}")

        result = AnalysisResult(trajectories=self.trajectories())
        if "prism" in detectors:
            result.comparisons["prism"] = self.compare("prism", self.detect_prism())
        if "pet" in detectors:
            result.comparisons["pet"] = self.compare("pet", self.detect_pet())
        result.skipped = dict(self.skipped)
        return result
