"""
Tests for the geometry primitives.
"""

import math

import numpy as np
import pytest
from shapely.geometry import LineString

from interzone.core.trajectory import Trajectory, TrajectoryPoint
from interzone.utils.geometry import (
    MalformedTrajectoryError,
    bearing,
    circuity,
    crossings,
    displacement,
    line_boundaries,
    line_vertices,
    lines_to_segments,
    polyline_length,
    to_segments,
)


def _trajectory(coords, track_id="t1"):
    points = [
        TrajectoryPoint(track_id, float(i), float(x), float(y))
        for i, (x, y) in enumerate(coords)
    ]
    return Trajectory.from_points(track_id, points)


class TestLineBoundaries:
    """Tests for boundary extraction."""

    def test_first_and_last(self):
        line = LineString([(0, 0), (1, 1), (2, 0)])
        assert line_boundaries([line]) == [((0.0, 0.0), (2.0, 0.0))]

    def test_keeps_z(self):
        line = LineString([(0, 0, 1), (1, 1, 2)])
        first, last = line_boundaries([line])[0]
        assert first == (0.0, 0.0, 1.0)
        assert last == (1.0, 1.0, 2.0)

    def test_one_pair_per_line(self):
        lines = [LineString([(0, 0), (1, 0)]), LineString([(5, 5), (6, 6), (7, 5)])]
        assert len(line_boundaries(lines)) == 2

    def test_single_point_trajectory_fails(self):
        traj = _trajectory([(0, 0)])
        with pytest.raises(MalformedTrajectoryError):
            line_boundaries([traj])


class TestLineMeasures:
    """Tests for displacement, circuity and bearing."""

    def test_length_at_least_displacement(self):
        rng = np.random.RandomState(7)
        for _ in range(20):
            coords = np.cumsum(rng.normal(0, 3, size=(12, 2)), axis=0)
            line = LineString(coords)
            disp = displacement(line)
            assert disp >= 0.0
            assert polyline_length(coords) >= disp - 1e-9

    def test_straight_line_length_equals_displacement(self):
        line = LineString([(0, 0), (1, 1), (3, 3)])
        assert displacement(line) == pytest.approx(line.length)
        assert circuity(line) == pytest.approx(1.0)

    def test_bent_line_longer_than_displacement(self):
        line = LineString([(0, 0), (3, 4), (6, 0)])
        assert displacement(line) == pytest.approx(6.0)
        assert circuity(line) == pytest.approx(10.0 / 6.0)

    def test_zero_displacement(self):
        line = LineString([(0, 0), (1, 0), (0, 0)])
        assert displacement(line) == 0.0
        assert math.isnan(circuity(line))
        assert math.isnan(bearing(line))

    @pytest.mark.parametrize(
        "end,expected",
        [((0, 1), 0.0), ((1, 0), 90.0), ((0, -1), 180.0), ((-1, 0), 270.0)],
    )
    def test_bearing(self, end, expected):
        assert bearing(LineString([(0, 0), end])) == pytest.approx(expected)

    def test_trajectory_properties(self):
        traj = _trajectory([(0, 0), (3, 4), (6, 8)])
        assert traj.length == pytest.approx(10.0)
        assert traj.displacement == pytest.approx(10.0)
        assert traj.duration == 2.0


class TestSegments:
    """Tests for segment decomposition."""

    def test_segment_count(self):
        coords = [(0, 0), (1, 0), (2, 1), (3, 1), (4, 0)]
        segments = to_segments(coords, times=[0, 1, 2, 3, 4], line_id="a")
        assert len(segments) == len(coords) - 1
        assert [s.segment_id for s in segments] == [1, 2, 3, 4]

    def test_segments_reconstruct_points(self):
        traj = _trajectory([(0, 0), (1, 0), (2, 1), (3, 1)])
        segments = traj.segments()
        rebuilt = [s.start for s in segments] + [segments[-1].end]
        assert rebuilt == [p.coords for p in traj.points]
        for a, b in zip(segments, segments[1:]):
            assert a.end == b.start

    def test_segments_inherit_times(self):
        segments = to_segments([(0, 0), (1, 0), (2, 0)], times=[10.0, 12.0, 13.0])
        assert (segments[0].start_time, segments[0].end_time) == (10.0, 12.0)
        assert segments[0].mid_time == 11.0
        assert segments[1].mid_time == 12.5

    def test_too_few_points(self):
        with pytest.raises(MalformedTrajectoryError):
            to_segments([(0, 0)])

    def test_time_length_mismatch(self):
        with pytest.raises(ValueError):
            to_segments([(0, 0), (1, 1)], times=[0.0])

    def test_lines_to_segments(self):
        lines = [LineString([(0, 0), (1, 0), (2, 0)]), LineString([(5, 5), (6, 6)])]
        segments = lines_to_segments(lines, line_ids=["a", "b"])
        assert [(s.line_id, s.segment_id) for s in segments] == [("a", 1), ("a", 2), ("b", 1)]
        assert segments[0].start_time is None

    def test_line_vertices(self):
        lines = [LineString([(0, 0), (1, 0)]), LineString([(5, 5), (6, 6), (7, 7)])]
        vertices = line_vertices(lines)
        assert len(vertices) == 5
        assert vertices[2] == (1, (5.0, 5.0))


class TestCrossings:
    """Tests for crossing detection."""

    def test_simple_cross(self):
        a = LineString([(0, 5), (10, 5)])
        b = LineString([(5, 0), (5, 10)])
        result = crossings([a], [b])
        assert len(result) == 1
        assert result[0].point == pytest.approx((5.0, 5.0))
        assert (result[0].index_a, result[0].index_b) == (0, 0)

    def test_shared_endpoint_is_not_a_crossing(self):
        a = LineString([(0, 0), (10, 0)])
        b = LineString([(10, 0), (10, 10)])
        assert crossings([a], [b]) == []

    def test_t_junction_is_not_a_crossing(self):
        a = LineString([(0, 0), (10, 0)])
        b = LineString([(5, 0), (5, 10)])
        assert crossings([a], [b]) == []

    def test_point_on_any_boundary_is_excluded(self):
        # a1 and b1 cross at (5, 5), which is also the start point of a2
        a1 = LineString([(0, 5), (10, 5)])
        a2 = LineString([(5, 5), (8, 9)])
        b1 = LineString([(5, 0), (5, 10)])
        assert crossings([a1, a2], [b1]) == []

    def test_multiple_crossings_of_one_pair(self):
        a = LineString([(0, 0), (10, 10), (20, 0)])
        b = LineString([(0, 5), (20, 5)])
        result = crossings([a], [b])
        points = sorted(c.point for c in result)
        assert points == [pytest.approx((5.0, 5.0)), pytest.approx((15.0, 5.0))]

    def test_indices_refer_to_inputs(self):
        a = [LineString([(0, 0), (1, 0)]), LineString([(0, 5), (10, 5)])]
        b = [LineString([(50, 50), (60, 60)]), LineString([(5, 0), (5, 10)])]
        result = crossings(a, b)
        assert [(c.index_a, c.index_b) for c in result] == [(1, 1)]

    def test_empty_inputs(self):
        a = LineString([(0, 5), (10, 5)])
        assert crossings([], [a]) == []
        assert crossings([a], []) == []
