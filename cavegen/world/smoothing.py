# cavegen/world/smoothing.py
"""Majority-rule cellular automaton used to turn noise into caves."""

import numpy as np
import structlog
from scipy.ndimage import convolve

from cavegen.constants import TILE_OPEN, TILE_WALL
from cavegen.world.field import OccupancyField

log = structlog.get_logger(__name__)


def _neighbour_kernel(ndim: int) -> np.ndarray:
    kernel = np.ones((3,) * ndim, dtype=np.int32)
    kernel[(1,) * ndim] = 0
    return kernel


def count_wall_neighbours(cells: np.ndarray) -> np.ndarray:
    """
    Number of walls among each cell's 8 (2D) or 26 (3D) neighbours.
    Neighbours outside the grid count as walls.
    """
    return convolve(
        cells.astype(np.int32),
        _neighbour_kernel(cells.ndim),
        mode="constant",
        cval=TILE_WALL,
    )


def smooth_step(cells: np.ndarray, smooth_limit: int) -> np.ndarray:
    """One full pass computed from ``cells`` into a new array."""
    counts = count_wall_neighbours(cells)
    smoothed = cells.copy()
    smoothed[counts > smooth_limit] = TILE_WALL
    smoothed[counts < smooth_limit] = TILE_OPEN
    return smoothed


def smooth_field(field: OccupancyField, iterations: int, smooth_limit: int) -> OccupancyField:
    """Run ``iterations`` passes; each pass only reads the previous snapshot."""
    cells = field.cells
    for i in range(iterations):
        cells = smooth_step(cells, smooth_limit)
        log.debug("Smoothing pass done", iteration=i + 1, walls=int(cells.sum()))
    log.info("Smoothing finished", iterations=iterations, limit=smooth_limit)
    return OccupancyField(field.shape, cells)


__all__ = ["count_wall_neighbours", "smooth_step", "smooth_field"]
