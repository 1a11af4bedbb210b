"""
Interaction Density Surfaces
==============================

Two ways of turning interaction points into a density surface over the
focus area:

    - **Grid density**: count events per regular grid cell, keep cells
      whose centroid lies in the focus area, and join each cell to the
      interaction zones so densities inside and outside the zones can be
      compared.
    - **Kernel density**: an isotropic Gaussian kernel estimate on a
      pixel raster, for qualitative comparison against zone outlines.

Example::

    from interzone.comparison import grid_density, kernel_density

    grid = grid_density(events, focus_area, zones, cell_size=1.0)
    print(grid.summary())

    surface = kernel_density(events, focus_area, sigma=1.5)
    print(surface.values.shape)
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import shapely
from scipy.ndimage import gaussian_filter
from shapely.geometry.base import BaseGeometry

from interzone.comparison.zones import lookup_zones
from interzone.core.study_area import Zone
from interzone.detection.events import LOCATIONS, InteractionEvent, event_coords

GRID_COLUMNS = ["cell_id", "col", "row", "x", "y", "density", "zone_id", "location"]


@dataclass
class GridDensity:
    """Per-cell interaction counts over the focus area.

    Attributes:
        cells: One row per cell inside the focus area with columns
            ``cell_id, col, row, x, y, density, zone_id, location``.
        cell_width: Cell width in distance units.
        cell_height: Cell height in distance units.
        shape: (ny, nx) size of the full grid over the focus bounds.
    """

    cells: pd.DataFrame
    cell_width: float
    cell_height: float
    shape: Tuple[int, int]

    @property
    def cell_area(self) -> float:
        return self.cell_width * self.cell_height

    @property
    def total(self) -> int:
        return int(self.cells["density"].sum())

    def summary(self) -> pd.DataFrame:
        """Mean density and cell count grouped by location.

        Returns:
            DataFrame with columns ``location, mean_density, n_cells,
            area``; both ``in`` and ``out`` rows are always present.
        """
        rows = []
        for loc in LOCATIONS:
            sub = self.cells[self.cells["location"] == loc]
            n = len(sub)
            rows.append(
                {
                    "location": loc,
                    "mean_density": float(sub["density"].mean()) if n else 0.0,
                    "n_cells": n,
                    "area": n * self.cell_area,
                }
            )
        return pd.DataFrame(rows)


def _grid_shape(
    bounds: Tuple[float, float, float, float],
    cell_size: float,
    n_cells: Optional[Tuple[int, int]],
) -> Tuple[int, int, float, float]:
    xmin, ymin, xmax, ymax = bounds
    if n_cells is not None:
        nx, ny = n_cells
        if nx < 1 or ny < 1:
            raise ValueError(f"n_cells must be positive, got {n_cells}")
        return nx, ny, (xmax - xmin) / nx, (ymax - ymin) / ny
    if cell_size <= 0:
        raise ValueError(f"cell_size must be positive, got {cell_size}")
    nx = max(1, math.ceil((xmax - xmin) / cell_size))
    ny = max(1, math.ceil((ymax - ymin) / cell_size))
    return nx, ny, cell_size, cell_size


def grid_density(
    events: Sequence[InteractionEvent],
    focus_area: BaseGeometry,
    zones: Sequence[Zone] = (),
    cell_size: float = 1.0,
    n_cells: Optional[Tuple[int, int]] = None,
) -> GridDensity:
    """Count interaction events per grid cell over the focus area.

    The grid starts at the lower-left corner of the focus area bounds.
    Cells are half-open (a point on a shared edge belongs to the cell
    above/right of it), so every event inside the bounds is counted
    exactly once.

    Args:
        events: Interaction events.
        focus_area: Focus area polygon.
        zones: Interaction zones for the in/out classification of cells.
        cell_size: Side length of square cells.
        n_cells: Optional (nx, ny) cell count; overrides ``cell_size``.

    Returns:
        GridDensity for the cells whose centroid lies in the focus area.
    """
    xmin, ymin, xmax, ymax = focus_area.bounds
    nx, ny, dx, dy = _grid_shape(focus_area.bounds, cell_size, n_cells)

    counts = np.zeros(nx * ny, dtype=np.int64)
    coords = event_coords(events)
    if len(coords):
        inside = (
            (coords[:, 0] >= xmin)
            & (coords[:, 0] <= xmax)
            & (coords[:, 1] >= ymin)
            & (coords[:, 1] <= ymax)
        )
        coords = coords[inside]
        cols = np.clip(np.floor((coords[:, 0] - xmin) / dx).astype(np.int64), 0, nx - 1)
        rows = np.clip(np.floor((coords[:, 1] - ymin) / dy).astype(np.int64), 0, ny - 1)
        counts = np.bincount(rows * nx + cols, minlength=nx * ny)

    cell_ids = np.arange(nx * ny)
    row_idx, col_idx = np.divmod(cell_ids, nx)
    cx = xmin + (col_idx + 0.5) * dx
    cy = ymin + (row_idx + 0.5) * dy
    keep = shapely.intersects(focus_area, shapely.points(np.column_stack([cx, cy])))

    centroids = np.column_stack([cx[keep], cy[keep]])
    zone_ids = lookup_zones(centroids, zones)

    cells = pd.DataFrame(
        {
            "cell_id": cell_ids[keep],
            "col": col_idx[keep],
            "row": row_idx[keep],
            "x": cx[keep],
            "y": cy[keep],
            "density": counts[keep],
            "zone_id": zone_ids,
            "location": ["out" if z is None else "in" for z in zone_ids],
        },
        columns=GRID_COLUMNS,
    )
    return GridDensity(cells=cells, cell_width=dx, cell_height=dy, shape=(ny, nx))


@dataclass
class DensitySurface:
    """Kernel density raster.

    Attributes:
        xs: Pixel centre x coordinates, shape (nx,).
        ys: Pixel centre y coordinates, shape (ny,).
        values: Density per unit area, shape (ny, nx); ``nan`` outside
            the focus area.
        sigma: Kernel bandwidth.
        n_points: Number of events inside the focus area used for the
            estimate.
        extent: (xmin, ymin, xmax, ymax) of the focus area bounds.
    """

    xs: np.ndarray
    ys: np.ndarray
    values: np.ndarray
    sigma: float
    n_points: int = 0
    extent: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)

    @property
    def pixel_area(self) -> float:
        if len(self.xs) < 2 or len(self.ys) < 2:
            return 0.0
        return float((self.xs[1] - self.xs[0]) * (self.ys[1] - self.ys[0]))

    @property
    def max(self) -> float:
        if np.all(np.isnan(self.values)):
            return 0.0
        return float(np.nanmax(self.values))

    def to_frame(self) -> pd.DataFrame:
        """Long table of pixels inside the focus area: x, y, density."""
        gx, gy = np.meshgrid(self.xs, self.ys)
        mask = ~np.isnan(self.values)
        return pd.DataFrame(
            {"x": gx[mask], "y": gy[mask], "density": self.values[mask]}
        )


def kernel_density(
    events: Sequence[InteractionEvent],
    focus_area: BaseGeometry,
    sigma: float = 1.5,
    dimyx: Tuple[int, int] = (128, 128),
    edge_correction: bool = True,
) -> DensitySurface:
    """Gaussian kernel density estimate of interaction locations.

    The kernel is evaluated exactly at every pixel centre. With
    ``edge_correction`` each pixel is divided by the share of its kernel
    mass that falls inside the focus area, compensating for events near
    the window border.

    Args:
        events: Interaction events.
        focus_area: Window polygon.
        sigma: Standard deviation of the isotropic Gaussian kernel.
        dimyx: Raster size as (rows, columns).
        edge_correction: Whether to apply the uniform edge correction.

    Returns:
        DensitySurface in events per unit area.
    """
    if sigma <= 0:
        raise ValueError(f"sigma must be positive, got {sigma}")
    ny, nx = dimyx
    if nx < 1 or ny < 1:
        raise ValueError(f"dimyx must be positive, got {dimyx}")

    xmin, ymin, xmax, ymax = focus_area.bounds
    dx = (xmax - xmin) / nx
    dy = (ymax - ymin) / ny
    xs = xmin + (np.arange(nx) + 0.5) * dx
    ys = ymin + (np.arange(ny) + 0.5) * dy

    gx, gy = np.meshgrid(xs, ys)
    mask = shapely.intersects(focus_area, shapely.points(gx.ravel(), gy.ravel())).reshape(ny, nx)

    coords = event_coords(events)
    coords = coords[shapely.intersects(focus_area, shapely.points(coords))] if len(coords) else coords

    values = np.zeros((ny, nx), dtype=np.float64)
    if len(coords):
        # Separable kernel: K(x, y) = kx(x) * ky(y)
        kx = np.exp(-((xs[None, :] - coords[:, 0:1]) ** 2) / (2.0 * sigma**2))
        ky = np.exp(-((ys[None, :] - coords[:, 1:2]) ** 2) / (2.0 * sigma**2))
        values = (ky.T @ kx) / (2.0 * np.pi * sigma**2)

        if edge_correction:
            mass = gaussian_filter(
                mask.astype(np.float64), sigma=(sigma / dy, sigma / dx), mode="constant"
            )
            with np.errstate(divide="ignore", invalid="ignore"):
                values = np.where(mass > 0, values / mass, 0.0)

    values = np.where(mask, values, np.nan)
    return DensitySurface(
        xs=xs,
        ys=ys,
        values=values,
        sigma=sigma,
        n_points=len(coords),
        extent=(xmin, ymin, xmax, ymax),
    )
