#!/usr/bin/env python3
"""
Example 2: Evaluate Interaction Zones
=======================================

This example runs the full analysis for one intersection: it detects
bike-car interactions with both detectors and compares them against the
predicted interaction zones.

Expected files in the data directory:
    - ``points.csv``: track_id, t, x, y, object_type, vehicle_type
    - ``lines.csv`` (optional): id, startTimestamp, endTimestamp,
      updateTimestamp, object_type, vehicle_type, geometry (WKT)
    - ``zones.csv``: id, geometry (WKT)
    - ``focus_area.wkt``: one polygon

Usage:
    python 02_evaluate_zones.py /path/to/data_dir [EPSG:25832]
"""

import logging
import sys
from pathlib import Path

import pandas as pd
from shapely import wkt

from interzone import AnalysisConfig, InteractionAnalysis
from interzone.core import StudyArea, TrajectoryDataset, zones_from_frame


def load_inputs(data_dir: Path, crs: str):
    lines_path = data_dir / "lines.csv"
    dataset = TrajectoryDataset.from_frames(
        pd.read_csv(data_dir / "points.csv"),
        pd.read_csv(lines_path) if lines_path.exists() else None,
        crs=crs,
    )
    study_area = StudyArea(
        focus_area=wkt.loads((data_dir / "focus_area.wkt").read_text()),
        zones=zones_from_frame(pd.read_csv(data_dir / "zones.csv")),
        crs=crs,
    )
    return dataset, study_area


def main():
    if len(sys.argv) < 2:
        print("Usage: python 02_evaluate_zones.py <data_dir> [crs]")
        print("\nThis example compares observed interactions with interaction zones.")
        return

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    data_dir = Path(sys.argv[1])
    crs = sys.argv[2] if len(sys.argv) > 2 else None
    dataset, study_area = load_inputs(data_dir, crs)

    analysis = InteractionAnalysis(dataset, study_area, AnalysisConfig())
    result = analysis.run()

    print(f"\nTracks after filtering: {len(result.trajectories)}")
    print(f"Modes: {result.mode_counts()}")
    if result.skipped:
        print(f"Skipped: {result.skipped}")

    for name, comparison in result.comparisons.items():
        print(f"\n--- {name.upper()} interactions ---")
        print(comparison.counts.to_string(index=False))

        print("\n  Grid density by location:")
        print(comparison.grid.summary().to_string(index=False))

        q = comparison.quadrat
        if q.conclusive:
            print(f"\n  Quadrat test: X2={q.statistic:.2f}, df={q.df}, p={q.p_value:.4g}")
        else:
            print(f"\n  Quadrat test inconclusive: {q.reason}")

        print(f"  KDE max density: {comparison.kde.max:.4f} per unit area")

        out_path = data_dir / f"interactions_{name}.csv"
        comparison.events_frame().to_csv(out_path, index=False)
        print(f"  Events written to {out_path}")


if __name__ == "__main__":
    main()
