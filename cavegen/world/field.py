# cavegen/world/field.py
from itertools import product
from typing import Optional, Tuple

import numpy as np
import structlog

from cavegen.constants import TILE_OPEN, TILE_WALL, Coord
from cavegen.rng import SeededRNG

log = structlog.get_logger(__name__)


class OccupancyField:
    """
    Dense binary grid of cell states (0 = open, 1 = wall).

    Cells are indexed ``[x, y]`` in 2D and ``[x, y, z]`` in 3D so that a
    :data:`Coord` tuple indexes the array directly.
    """

    def __init__(self, shape: Tuple[int, ...], cells: Optional[np.ndarray] = None):
        shape = tuple(int(size) for size in shape)
        if len(shape) not in (2, 3) or any(size <= 0 for size in shape):
            log.error("Invalid field shape", shape=shape)
            raise ValueError("Field shape must be 2 or 3 positive dimensions.")
        if cells is None:
            cells = np.full(shape, TILE_WALL, dtype=np.uint8, order="C")
        elif cells.shape != shape:
            raise ValueError(f"Cell array shape {cells.shape} does not match {shape}")
        self.cells: np.ndarray = cells

    @classmethod
    def from_array(cls, cells: np.ndarray) -> "OccupancyField":
        return cls(cells.shape, np.ascontiguousarray(cells, dtype=np.uint8))

    @classmethod
    def random_fill(
        cls, shape: Tuple[int, ...], wall_percent: int, rng: SeededRNG
    ) -> "OccupancyField":
        """
        Fill every interior cell with a wall iff a uniform draw in ``[0, 100)``
        is below ``wall_percent``; perimeter cells are walls unconditionally.
        """
        draws = rng.below(100, shape)
        cells = (draws < wall_percent).astype(np.uint8)
        field = cls(shape, cells)
        field.force_perimeter()
        log.debug(
            "Randomly filled field",
            shape=shape,
            wall_percent=wall_percent,
            walls=field.count(TILE_WALL),
        )
        return field

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.cells.shape

    @property
    def ndim(self) -> int:
        return self.cells.ndim

    def __getitem__(self, coord: Coord) -> int:
        return int(self.cells[coord])

    def __setitem__(self, coord: Coord, value: int) -> None:
        self.cells[coord] = value

    def count(self, tile_type: int) -> int:
        return int(np.count_nonzero(self.cells == tile_type))

    def perimeter_mask(self, thickness: int = 1) -> np.ndarray:
        """Boolean mask of every cell within ``thickness`` of any face."""
        mask = np.zeros(self.shape, dtype=bool)
        for axis, size in enumerate(self.shape):
            band = min(thickness, size)
            index = [slice(None)] * self.ndim
            index[axis] = slice(0, band)
            mask[tuple(index)] = True
            index[axis] = slice(size - band, size)
            mask[tuple(index)] = True
        return mask

    def force_perimeter(self) -> None:
        self.cells[self.perimeter_mask()] = TILE_WALL

    def padded(self, border_size: int) -> "OccupancyField":
        """New field surrounded by ``border_size`` layers of wall."""
        if border_size < 0:
            raise ValueError("border_size must not be negative")
        cells = np.pad(self.cells, border_size, mode="constant", constant_values=TILE_WALL)
        return OccupancyField(cells.shape, cells)

    def find_spawn(self, start: Coord) -> Optional[Coord]:
        """
        First open cell scanning forward from ``start`` along every axis
        (x outermost, last axis innermost). Returns ``None`` if none is open.
        """
        ranges = [range(max(0, s), size) for s, size in zip(start, self.shape)]
        for coord in product(*ranges):
            if self.cells[coord] == TILE_OPEN:
                return tuple(int(c) for c in coord)
        return None


def grid_to_world_2d(
    coord: Coord, shape: Tuple[int, ...], square_size: float
) -> Tuple[float, float, float]:
    """Position of control node ``coord`` on the x/z ground plane, centred on the origin."""
    x, y = coord
    width, height = shape
    return (
        -width * square_size / 2.0 + x * square_size + square_size / 2.0,
        0.0,
        -height * square_size / 2.0 + y * square_size + square_size / 2.0,
    )


def grid_to_world_3d(coord: Coord, shape: Tuple[int, ...]) -> Tuple[float, float, float]:
    """Centre of cell ``coord`` with the same offset applied to 3D mesh chunks."""
    return tuple(c + 0.5 - size // 2 for c, size in zip(coord, shape))


__all__ = ["OccupancyField", "grid_to_world_2d", "grid_to_world_3d"]
