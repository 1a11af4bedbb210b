"""
Tests for record ingestion and trajectory filtering.
"""

import numpy as np
import pandas as pd
import pytest
from shapely.geometry import LineString, box

from interzone.core.filtering import TrajectoryFilter
from interzone.core.records import (
    LineFields,
    PointFields,
    TrajectoryDataset,
    group_points,
    lines_from_frame,
    points_from_frame,
)
from interzone.core.study_area import StudyArea, zones_from_frame
from interzone.core.trajectory import Trajectory, TrajectoryPoint


def _straight_track(track_id, start, end, n=5):
    xs = np.linspace(start[0], end[0], n)
    ys = np.linspace(start[1], end[1], n)
    return Trajectory.from_points(
        track_id,
        [TrajectoryPoint(track_id, float(i), float(x), float(y)) for i, (x, y) in enumerate(zip(xs, ys))],
    )


class TestPointIngestion:
    """Tests for reading point tables."""

    def _frame(self):
        return pd.DataFrame(
            {
                "track_id": ["a", "a", "b"],
                "t": [2000, 1000, 1500],
                "x": [1.0, 0.0, 5.0],
                "y": [0.0, 0.0, 5.0],
                "object_type": ["vehicle", np.nan, "pedestrian"],
                "vehicle_type": ["bike", None, ""],
            }
        )

    def test_times_in_seconds(self):
        points = points_from_frame(self._frame())
        assert [p.t for p in points] == [2.0, 1.0, 1.5]

    def test_missing_tags_are_none(self):
        points = points_from_frame(self._frame())
        assert points[1].object_type is None
        assert points[1].vehicle_type is None
        assert points[2].vehicle_type is None

    def test_group_points_sorts_by_time(self):
        trajectories = group_points(points_from_frame(self._frame()))
        assert [t.id for t in trajectories] == ["a", "b"]
        assert [p.t for p in trajectories[0].points] == [1.0, 2.0]

    def test_custom_field_mapping(self):
        frame = self._frame().rename(columns={"track_id": "trackId", "t": "timestamp"})
        fields = PointFields(track_id="trackId", t="timestamp")
        points = points_from_frame(frame, fields)
        assert points[0].track_id == "a"

    def test_missing_column(self):
        frame = self._frame().drop(columns=["x"])
        with pytest.raises(ValueError, match="missing columns"):
            points_from_frame(frame)

    def test_integer_ids_without_tag_columns(self):
        frame = pd.DataFrame(
            {"track_id": [1, 1, 2], "t": [0, 1000, 0], "x": [0.0, 1.0, 2.0], "y": [0.0, 0.0, 0.0]}
        )
        points = points_from_frame(frame)
        assert [p.track_id for p in points] == ["1", "1", "2"]
        assert all(p.object_type is None and p.vehicle_type is None for p in points)

    def test_nullable_string_tags(self):
        frame = self._frame()
        frame["object_type"] = pd.array([pd.NA, "vehicle", "pedestrian"], dtype="string")
        frame["vehicle_type"] = pd.array(["bike", pd.NA, pd.NA], dtype="string")
        points = points_from_frame(frame)
        assert points[0].object_type is None
        assert points[1].object_type == "vehicle"
        assert points[0].vehicle_type == "bike"
        assert points[1].vehicle_type is None


class TestLineIngestion:
    """Tests for reading line tables."""

    def test_wkt_geometry(self):
        frame = pd.DataFrame(
            {
                "id": [7],
                "startTimestamp": [1000],
                "endTimestamp": [5000],
                "updateTimestamp": [6000],
                "object_type": ["vehicle"],
                "vehicle_type": ["passengerCar"],
                "geometry": ["LINESTRING (0 0, 30 40)"],
            }
        )
        lines = lines_from_frame(frame)
        assert lines[0].id == "7"
        assert lines[0].start_time == 1.0
        assert lines[0].end_time == 5.0
        assert lines[0].displacement == pytest.approx(50.0)

    def test_custom_id_column(self):
        frame = pd.DataFrame({"track": ["x"], "geom": [LineString([(0, 0), (1, 1)])]})
        lines = lines_from_frame(frame, LineFields(id="track", geometry="geom"))
        assert lines[0].id == "x"
        assert lines[0].start_time is None

    def test_non_line_geometry(self):
        frame = pd.DataFrame({"id": ["x"], "geometry": ["POINT (0 0)"]})
        with pytest.raises(ValueError):
            lines_from_frame(frame)

    def test_dataset_from_frames(self):
        points = pd.DataFrame(
            {"track_id": ["a", "a"], "t": [0, 1000], "x": [0.0, 1.0], "y": [0.0, 0.0]}
        )
        dataset = TrajectoryDataset.from_frames(points, crs="EPSG:25832")
        assert dataset.crs == "EPSG:25832"
        assert dataset.lines == []
        assert dataset.track_ids() == ["a"]
        assert len(dataset.trajectories()[0]) == 2

    def test_integer_ids_match_points(self):
        points = pd.DataFrame(
            {"track_id": [1, 1, 1], "t": [0, 1000, 2000], "x": [0.0, 10.0, 20.0], "y": [5.0, 5.0, 5.0]}
        )
        lines = pd.DataFrame({"id": [1], "geometry": ["LINESTRING (0 5, 20 5)"]})
        dataset = TrajectoryDataset.from_frames(points, lines)
        assert dataset.track_ids() == ["1"]
        assert [line.id for line in dataset.lines] == ["1"]


class TestStudyArea:
    """Tests for zones and focus areas."""

    def test_zones_from_frame(self):
        frame = pd.DataFrame(
            {"id": [1, 2], "geometry": ["POLYGON ((0 0, 1 0, 1 1, 0 0))", box(5, 5, 6, 6)]}
        )
        zones = zones_from_frame(frame)
        assert [z.id for z in zones] == ["1", "2"]

    def test_focus_area_must_be_polygon(self):
        with pytest.raises(ValueError):
            StudyArea(focus_area=LineString([(0, 0), (1, 1)]))


class TestTrajectoryFilter:
    """Tests for the displacement / focus area filter."""

    def test_displacement_bounds_exclusive(self):
        trajs = [
            _straight_track("short", (0, 0), (10, 0)),
            _straight_track("ok", (0, 0), (30, 0)),
            _straight_track("long", (0, 0), (70, 0)),
        ]
        kept = TrajectoryFilter().apply(trajs)
        assert [t.id for t in kept] == ["ok"]

    def test_focus_area(self):
        trajs = [
            _straight_track("inside", (0, 0), (30, 0)),
            _straight_track("away", (500, 500), (530, 500)),
        ]
        kept = TrajectoryFilter().apply(trajs, box(-5, -5, 50, 5))
        assert [t.id for t in kept] == ["inside"]

    def test_single_point_skipped(self):
        lonely = Trajectory.from_points("p", [TrajectoryPoint("p", 0.0, 0.0, 0.0)])
        track_filter = TrajectoryFilter()
        assert track_filter.apply([lonely]) == []
        assert "p" in track_filter.skipped

    def test_select_ids_from_lines(self):
        frame = pd.DataFrame(
            {
                "id": ["a", "b"],
                "geometry": ["LINESTRING (0 0, 20 0)", "LINESTRING (0 0, 2 0)"],
            }
        )
        ids = TrajectoryFilter().select_ids(lines_from_frame(frame), box(-1, -1, 5, 1))
        assert ids == ["a"]

    def test_apply_with_ids(self):
        trajs = [_straight_track("a", (0, 0), (1, 0)), _straight_track("b", (0, 0), (1, 0))]
        kept = TrajectoryFilter().apply(trajs, ids=["b"])
        assert [t.id for t in kept] == ["b"]

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            TrajectoryFilter(min_displacement=50, max_displacement=10)
