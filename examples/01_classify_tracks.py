#!/usr/bin/env python3
"""
Example 1: Load and Classify Tracks
=====================================

This example loads a point table, filters the tracks by displacement
and focus area, resolves their transport modes and prints a summary.

The point table needs the columns ``track_id, t`` (epoch milliseconds),
``x, y`` (projected coordinates), ``object_type`` and ``vehicle_type``.
The focus area is a WKT polygon in the same coordinate system.

Usage:
    python 01_classify_tracks.py points.csv focus_area.wkt
"""

import sys
from pathlib import Path
from pprint import pprint

import pandas as pd
from shapely import wkt

from interzone.core import ModeClassifier, TrajectoryDataset, TrajectoryFilter


def main():
    if len(sys.argv) < 3:
        print("Usage: python 01_classify_tracks.py <points.csv> <focus_area.wkt>")
        print("\nThis example classifies the tracks crossing a focus area.")
        return

    points = pd.read_csv(sys.argv[1])
    focus_area = wkt.loads(Path(sys.argv[2]).read_text())

    dataset = TrajectoryDataset.from_frames(points)
    trajectories = dataset.trajectories()
    print(f"Loaded {len(dataset.points)} points in {len(trajectories)} tracks")

    # Displacement in (10 m, 70 m) and intersecting the focus area
    track_filter = TrajectoryFilter()
    kept = track_filter.apply(trajectories, focus_area)
    print(f"Kept {len(kept)} tracks, skipped {len(track_filter.skipped)} malformed")

    classified = ModeClassifier().classify(kept)

    print("\n--- Modes ---")
    pprint(ModeClassifier.mode_counts(classified))

    print("\n--- First tracks ---")
    for traj in classified[:5]:
        pprint(traj.summary())


if __name__ == "__main__":
    main()
