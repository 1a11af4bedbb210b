"""
Quadrat Test for Complete Spatial Randomness
==============================================

Chi-squared goodness-of-fit test of the interaction point pattern against
complete spatial randomness (CSR) inside the focus area.

The bounding box of the focus area is split into ``nx`` x ``ny``
quadrats. Quadrats are clipped to the focus area; the expected count of
each is proportional to its clipped area. With ``k`` non-empty quadrats
the statistic is compared to a chi-squared distribution with ``k - 1``
degrees of freedom (two-sided p-value).

Before counting, every point is displaced uniformly within a disc of
radius ``jitter`` (staying inside the window) to break exact
coincidences. Jitter uses a seeded generator, so results are
reproducible.

Example::

    from interzone.comparison import quadrat_test

    result = quadrat_test(events, focus_area, nx=10, ny=10)
    if result.conclusive:
        print(f"X2={result.statistic:.1f}, p={result.p_value:.3g}")
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np
import shapely
from scipy import stats
from shapely.geometry import box
from shapely.geometry.base import BaseGeometry

from interzone.detection.events import InteractionEvent, event_coords

logger = logging.getLogger(__name__)


@dataclass
class QuadratTestResult:
    """Outcome of a quadrat test.

    Attributes:
        statistic: Chi-squared statistic (``nan`` if inconclusive).
        p_value: Two-sided p-value (``nan`` if inconclusive).
        df: Degrees of freedom.
        observed: Observed counts per quadrat, shape (ny, nx); ``nan``
            for quadrats outside the window.
        expected: Expected counts per quadrat under CSR, same layout.
        n_points: Number of points tested.
        conclusive: False when the pattern is degenerate.
        reason: Why the test is inconclusive.
    """

    statistic: float = float("nan")
    p_value: float = float("nan")
    df: int = 0
    observed: np.ndarray = field(default_factory=lambda: np.empty((0, 0)))
    expected: np.ndarray = field(default_factory=lambda: np.empty((0, 0)))
    n_points: int = 0
    conclusive: bool = False
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "statistic": self.statistic,
            "p_value": self.p_value,
            "df": self.df,
            "n_points": self.n_points,
            "conclusive": self.conclusive,
            "reason": self.reason,
        }


def jitter_points(
    coords: np.ndarray,
    window: BaseGeometry,
    radius: float,
    rng: np.random.Generator,
    max_tries: int = 10,
) -> np.ndarray:
    """Displace points uniformly within a disc, keeping them in the window.

    Points whose displacement leaves the window are re-drawn; after
    ``max_tries`` failed draws a point keeps its original location.
    """
    if radius <= 0 or len(coords) == 0:
        return coords.copy()

    result = coords.copy()
    pending = np.arange(len(coords))
    for _ in range(max_tries):
        if pending.size == 0:
            break
        r = radius * np.sqrt(rng.uniform(size=pending.size))
        theta = rng.uniform(0.0, 2.0 * np.pi, size=pending.size)
        moved = coords[pending] + np.column_stack([r * np.cos(theta), r * np.sin(theta)])
        ok = shapely.intersects(window, shapely.points(moved))
        result[pending[ok]] = moved[ok]
        pending = pending[~ok]
    return result


def quadrat_test(
    events: Sequence[InteractionEvent],
    focus_area: BaseGeometry,
    nx: int = 10,
    ny: int = 10,
    jitter: float = 0.5,
    seed: Optional[int] = 0,
) -> QuadratTestResult:
    """Test interaction locations for complete spatial randomness.

    Args:
        events: Interaction events; those outside the focus area are ignored.
        focus_area: Window polygon.
        nx: Number of quadrat columns.
        ny: Number of quadrat rows.
        jitter: Jitter radius in distance units; 0 disables jittering.
        seed: Seed for the jitter generator.

    Returns:
        QuadratTestResult. Degenerate patterns (no points, fewer than two
        quadrats in the window, all points in one quadrat) are reported
        as inconclusive rather than raising.
    """
    if nx < 1 or ny < 1:
        raise ValueError(f"Quadrat grid must be at least 1x1, got {nx}x{ny}")
    if jitter < 0:
        raise ValueError(f"jitter must be non-negative, got {jitter}")

    coords = event_coords(events)
    if len(coords):
        coords = coords[shapely.intersects(focus_area, shapely.points(coords))]
    n = len(coords)
    if n == 0:
        return QuadratTestResult(reason="no points in the window")

    rng = np.random.default_rng(seed)
    coords = jitter_points(coords, focus_area, jitter, rng)

    xmin, ymin, xmax, ymax = focus_area.bounds
    dx = (xmax - xmin) / nx
    dy = (ymax - ymin) / ny

    areas = np.zeros((ny, nx), dtype=np.float64)
    for row in range(ny):
        for col in range(nx):
            quadrat = box(
                xmin + col * dx, ymin + row * dy,
                xmin + (col + 1) * dx, ymin + (row + 1) * dy,
            )
            areas[row, col] = focus_area.intersection(quadrat).area

    cols = np.clip(np.floor((coords[:, 0] - xmin) / dx).astype(np.int64), 0, nx - 1)
    rows = np.clip(np.floor((coords[:, 1] - ymin) / dy).astype(np.int64), 0, ny - 1)
    observed = np.bincount(rows * nx + cols, minlength=nx * ny).reshape(ny, nx).astype(np.float64)

    in_window = areas > 0
    k = int(in_window.sum())
    expected = np.where(in_window, n * areas / areas.sum(), np.nan)
    observed_out = np.where(in_window, observed, np.nan)

    if k < 2:
        return QuadratTestResult(
            observed=observed_out, expected=expected, n_points=n,
            reason="fewer than two quadrats in the window",
        )
    if int((observed[in_window] > 0).sum()) < 2:
        return QuadratTestResult(
            observed=observed_out, expected=expected, n_points=n,
            reason="all points fall in a single quadrat",
        )

    obs = observed[in_window]
    exp = expected[in_window]
    statistic = float(np.sum((obs - exp) ** 2 / exp))
    df = k - 1
    lower = stats.chi2.cdf(statistic, df)
    upper = stats.chi2.sf(statistic, df)
    p_value = float(min(1.0, 2.0 * min(lower, upper)))

    logger.info("Quadrat test: X2=%.3f, df=%d, p=%.4g (n=%d)", statistic, df, p_value, n)
    return QuadratTestResult(
        statistic=statistic,
        p_value=p_value,
        df=df,
        observed=observed_out,
        expected=expected,
        n_points=n,
        conclusive=True,
    )
