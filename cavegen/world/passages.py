# cavegen/world/passages.py
"""
Passage carving between rooms.

A passage is an integer line between two edge tiles with a disc (2D) or
sphere (3D) of open cells stamped at every point of the line.
"""

from typing import List

import numpy as np
import structlog
from numba import njit

from cavegen.constants import PASSAGE_RADIUS, TILE_OPEN, Coord
from cavegen.world.field import OccupancyField

log = structlog.get_logger(__name__)


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def get_line(start: Coord, end: Coord) -> List[Coord]:
    """
    Integer line from ``start`` towards ``end``, end point excluded.

    Steps one unit per point along the axis with the larger x/y delta and
    accumulates the minor-axis delta, stepping the minor axis whenever the
    accumulator reaches the major length. For 3D coordinates only x and y
    advance; every point keeps the start tile's z.
    """
    x, y = start[0], start[1]
    dx = end[0] - x
    dy = end[1] - y

    inverted = False
    step = _sign(dx)
    gradient_step = _sign(dy)
    longest = abs(dx)
    shortest = abs(dy)
    if longest < shortest:
        inverted = True
        longest, shortest = shortest, longest
        step, gradient_step = gradient_step, step

    tail = tuple(start[2:])
    line: List[Coord] = []
    gradient_accumulation = longest // 2
    for _ in range(longest):
        line.append((x, y) + tail)
        if inverted:
            y += step
        else:
            x += step
        gradient_accumulation += shortest
        if gradient_accumulation >= longest:
            if inverted:
                x += gradient_step
            else:
                y += gradient_step
            gradient_accumulation -= longest
    return line


@njit(cache=True)
def _stamp_discs_2d(cells: np.ndarray, points: np.ndarray, radius: int) -> int:
    """Open every in-bounds cell within ``radius`` of each point. Returns cells flipped."""
    width, height = cells.shape
    r_sq = radius * radius
    opened = 0
    for p in range(points.shape[0]):
        cx = points[p, 0]
        cy = points[p, 1]
        for dx in range(-radius, radius + 1):
            for dy in range(-radius, radius + 1):
                if dx * dx + dy * dy > r_sq:
                    continue
                x = cx + dx
                y = cy + dy
                if x >= 0 and x < width and y >= 0 and y < height:
                    if cells[x, y] != TILE_OPEN:
                        cells[x, y] = TILE_OPEN
                        opened += 1
    return opened


@njit(cache=True)
def _stamp_spheres_3d(cells: np.ndarray, points: np.ndarray, radius: int) -> int:
    width, height, depth = cells.shape
    r_sq = radius * radius
    opened = 0
    for p in range(points.shape[0]):
        cx = points[p, 0]
        cy = points[p, 1]
        cz = points[p, 2]
        for dx in range(-radius, radius + 1):
            for dy in range(-radius, radius + 1):
                for dz in range(-radius, radius + 1):
                    if dx * dx + dy * dy + dz * dz > r_sq:
                        continue
                    x = cx + dx
                    y = cy + dy
                    z = cz + dz
                    if (
                        x >= 0 and x < width
                        and y >= 0 and y < height
                        and z >= 0 and z < depth
                    ):
                        if cells[x, y, z] != TILE_OPEN:
                            cells[x, y, z] = TILE_OPEN
                            opened += 1
    return opened


class PassageCarver:
    """Carves corridors into a field in place."""

    def __init__(self, field: OccupancyField, radius: int = PASSAGE_RADIUS):
        self.field = field
        self.radius = radius
        self.carved = 0

    def carve(self, tile_a: Coord, tile_b: Coord) -> List[Coord]:
        """Open a passage from ``tile_a`` towards ``tile_b`` and return its line."""
        line = get_line(tile_a, tile_b)
        ndim = self.field.ndim
        points = np.array(line, dtype=np.int64).reshape(-1, ndim)
        if ndim == 2:
            opened = _stamp_discs_2d(self.field.cells, points, self.radius)
        else:
            opened = _stamp_spheres_3d(self.field.cells, points, self.radius)
        self.carved += 1
        log.debug(
            "Passage carved",
            start=tile_a,
            end=tile_b,
            points=len(line),
            cells_opened=int(opened),
        )
        return line


__all__ = ["get_line", "PassageCarver"]
