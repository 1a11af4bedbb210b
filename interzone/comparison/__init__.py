"""
Spatial comparison of interaction events against interaction zones.

Provides the zone join and location counts, grid and kernel density
surfaces, and the quadrat test for complete spatial randomness.
"""

from interzone.comparison.zones import count_by_location, join_zones, lookup_zones
from interzone.comparison.density import (
    DensitySurface,
    GridDensity,
    grid_density,
    kernel_density,
)
from interzone.comparison.quadrat import QuadratTestResult, jitter_points, quadrat_test

__all__ = [
    "count_by_location",
    "join_zones",
    "lookup_zones",
    "DensitySurface",
    "GridDensity",
    "grid_density",
    "kernel_density",
    "QuadratTestResult",
    "jitter_points",
    "quadrat_test",
]
