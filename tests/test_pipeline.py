"""
End-to-end tests for the interaction zone evaluation pipeline.
"""

import pandas as pd
import pytest
from shapely.geometry import box

from interzone.core.records import TrajectoryDataset
from interzone.core.study_area import StudyArea, Zone
from interzone.pipeline import AnalysisConfig, InteractionAnalysis


def _rows(track_id, samples, object_type, vehicle_type):
    """Point rows from (t_ms, x, y) samples."""
    return [
        {
            "track_id": track_id,
            "t": t,
            "x": float(x),
            "y": float(y),
            "object_type": object_type,
            "vehicle_type": vehicle_type,
        }
        for t, x, y in samples
    ]


def _points_frame():
    # Bike along y=50, car along x=45; they cross once at (45, 50).
    # Bike segment 2 spans 1-2 s (mid 1.5), car segment 2 spans 2-3 s (mid 2.5).
    bike = _rows(
        "bike1",
        [(0, 30, 50), (1000, 40, 50), (2000, 50, 50), (3000, 60, 50)],
        "vehicle",
        "bike",
    )
    car = _rows(
        "car1",
        [(1000, 45, 35), (2000, 45, 45), (3000, 45, 55), (4000, 45, 65)],
        "vehicle",
        "passengerCar",
    )
    walker = _rows(
        "ped1",
        [(0, 44, 40), (1000, 46, 40), (2000, 46, 60), (3000, 44, 60)],
        "pedestrian",
        None,
    )
    parked = _rows("car2", [(0, 80, 80), (4000, 81, 80)], "vehicle", "passengerCar")
    return pd.DataFrame(bike + car + walker + parked)


def _analysis(config=None, zones=None, crs="EPSG:25832", lines=None):
    dataset = TrajectoryDataset.from_frames(_points_frame(), lines, crs=crs)
    area = StudyArea(
        focus_area=box(0, 0, 100, 100),
        zones=zones if zones is not None else [Zone("z1", box(0, 0, 10, 10))],
        crs="EPSG:25832",
    )
    return InteractionAnalysis(dataset, area, config)


class TestInteractionAnalysis:
    """Tests for the full pipeline."""

    def test_single_crossing_outside_zone(self):
        result = _analysis().run()
        pet = result.comparisons["pet"]
        assert len(pet.events) == 1
        event = pet.events[0]
        assert (event.x, event.y) == pytest.approx((45.0, 50.0))
        assert event.pet == pytest.approx(1.0)
        assert event.classification == "out"
        assert event.zone_id is None

        counts = pet.counts.set_index("location")
        assert counts.loc["out", "count"] == 1
        assert counts.loc["out", "percentage"] == pytest.approx(100.0)

    def test_crossing_inside_zone(self):
        result = _analysis(zones=[Zone("centre", box(40, 45, 50, 55))]).run(detectors=("pet",))
        event = result.comparisons["pet"].events[0]
        assert (event.zone_id, event.classification) == ("centre", "in")

    def test_modes_and_filtering(self):
        analysis = _analysis()
        modes = {t.id: t.mode for t in analysis.trajectories()}
        # car2 barely moves and is filtered out by displacement
        assert modes == {"bike1": "bike", "car1": "car", "ped1": "pedestrian"}
        bikes, cars = analysis.split_modes()
        assert [t.id for t in bikes] == ["bike1"]
        assert [t.id for t in cars] == ["car1"]

    def test_prism_has_no_close_encounters(self):
        result = _analysis().run(detectors=("prism",))
        prism = result.comparisons["prism"]
        assert prism.events == []
        assert list(prism.counts["count"]) == [0, 0]
        assert prism.grid.total == 0
        assert not prism.quadrat.conclusive

    def test_rerun_with_other_thresholds(self):
        analysis = _analysis()
        assert len(analysis.detect_pet()) == 1
        table = analysis.pet_detector.crossing_table()
        assert analysis.detect_pet(threshold=0.5) == []
        assert analysis.pet_detector.crossing_table() is table
        assert len(analysis.detect_prism(space_radius=10.0, time_radius=2.0)) > 0

    def test_grid_counts_every_event(self):
        result = _analysis().run()
        grid = result.comparisons["pet"].grid
        assert grid.total == 1
        assert len(grid.cells) == 100 * 100

    def test_line_records_drive_filter(self):
        lines = pd.DataFrame(
            {
                "id": ["bike1", "car1"],
                "geometry": ["LINESTRING (30 50, 60 50)", "LINESTRING (45 35, 45 65)"],
            }
        )
        analysis = _analysis(lines=lines)
        assert sorted(t.id for t in analysis.trajectories()) == ["bike1", "car1"]

    def test_integer_ids_with_line_records(self):
        points = pd.DataFrame(
            {
                "track_id": [1, 1, 1],
                "t": [0, 1000, 2000],
                "x": [0.0, 10.0, 20.0],
                "y": [5.0, 5.0, 5.0],
            }
        )
        lines = pd.DataFrame({"id": [1], "geometry": ["LINESTRING (0 5, 20 5)"]})
        dataset = TrajectoryDataset.from_frames(points, lines, crs="EPSG:25832")
        area = StudyArea(focus_area=box(0, 0, 100, 100), crs="EPSG:25832")
        kept = InteractionAnalysis(dataset, area).trajectories()
        assert [t.id for t in kept] == ["1"]
        assert kept[0].mode == "unknown"

    def test_counts_table(self):
        table = _analysis().run().counts_table()
        assert set(table["source"]) == {"prism", "pet"}
        assert len(table) == 4

    def test_crs_mismatch(self):
        with pytest.raises(ValueError, match="Coordinate systems differ"):
            _analysis(crs="EPSG:4326")

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            _analysis(config=AnalysisConfig(pet_threshold=0.0))

    def test_unknown_detector(self):
        with pytest.raises(ValueError):
            _analysis().run(detectors=("magic",))


class TestAnalysisConfig:
    """Tests for the AnalysisConfig dataclass."""

    def test_defaults(self):
        config = AnalysisConfig()
        assert config.prism_space_radius == 2.0
        assert config.prism_time_radius == 2.0
        assert config.pet_threshold == 2.0
        assert config.kde_sigma == 1.5
        assert (config.min_displacement, config.max_displacement) == (10.0, 70.0)
        config.validate()

    def test_from_dict(self):
        config = AnalysisConfig.from_dict({"pet_threshold": 1.5, "kde_dimyx": [64, 32]})
        assert config.pet_threshold == 1.5
        assert config.kde_dimyx == (64, 32)

    def test_from_dict_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown config keys"):
            AnalysisConfig.from_dict({"pet_treshold": 1.5})

    def test_round_trip_dict(self):
        config = AnalysisConfig(grid_n_cells=(10, 10))
        assert AnalysisConfig.from_dict(config.to_dict()) == config
