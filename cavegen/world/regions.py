# cavegen/world/regions.py
"""
Connected-component labelling over an occupancy field.

Regions only join along axis-aligned neighbours (4 in 2D, 6 in 3D). Cells are
scanned in C order so region ordering, and therefore every decision derived
from it, is deterministic.
"""

from collections import deque
from typing import Dict, List, Tuple

import numpy as np
import structlog

from cavegen.constants import REGION_THRESHOLD, TILE_OPEN, TILE_WALL, Coord
from cavegen.world.field import OccupancyField
from cavegen.world.rooms import Room

log = structlog.get_logger(__name__)

Region = List[Coord]

AXIS_NEIGHBOURS: Dict[int, Tuple[Coord, ...]] = {
    2: ((-1, 0), (0, -1), (0, 1), (1, 0)),
    3: (
        (-1, 0, 0),
        (0, -1, 0),
        (0, 0, -1),
        (0, 0, 1),
        (0, 1, 0),
        (1, 0, 0),
    ),
}


def _flood_fill(
    cells: np.ndarray, start: Coord, tile_type: int, visited: np.ndarray
) -> Region:
    """Breadth-first collection of the region containing ``start``."""
    shape = cells.shape
    offsets = AXIS_NEIGHBOURS[cells.ndim]
    tiles: Region = []
    queue = deque([start])
    visited[start] = True
    while queue:
        tile = queue.popleft()
        tiles.append(tile)
        for offset in offsets:
            neighbour = tuple(t + o for t, o in zip(tile, offset))
            if not all(0 <= n < size for n, size in zip(neighbour, shape)):
                continue
            if visited[neighbour] or cells[neighbour] != tile_type:
                continue
            visited[neighbour] = True
            queue.append(neighbour)
    return tiles


def get_regions(field: OccupancyField, tile_type: int) -> List[Region]:
    """Every maximal axis-connected region of ``tile_type`` cells."""
    cells = field.cells
    visited = np.zeros(cells.shape, dtype=bool)
    regions: List[Region] = []
    for index in zip(*np.nonzero(cells == tile_type)):
        start = tuple(int(i) for i in index)
        if visited[start]:
            continue
        regions.append(_flood_fill(cells, start, tile_type, visited))
    return regions


def remove_small_regions(
    field: OccupancyField, tile_type: int, threshold: int = REGION_THRESHOLD
) -> Tuple[List[Region], int]:
    """
    Flip every ``tile_type`` region smaller than ``threshold`` to the opposite
    type. Returns the surviving regions and the number of regions removed.
    """
    flipped_type = TILE_OPEN if tile_type == TILE_WALL else TILE_WALL
    survivors: List[Region] = []
    removed = 0
    for region in get_regions(field, tile_type):
        if len(region) < threshold:
            field.cells[tuple(np.array(region).T)] = flipped_type
            removed += 1
        else:
            survivors.append(region)
    return survivors, removed


def process_regions_and_rooms(
    field: OccupancyField, threshold: int = REGION_THRESHOLD
) -> List[Room]:
    """
    Prune small wall regions to open, then small open regions to wall, and
    wrap each surviving open region as a :class:`Room`.
    """
    wall_regions, walls_removed = remove_small_regions(field, TILE_WALL, threshold)
    open_regions, open_removed = remove_small_regions(field, TILE_OPEN, threshold)
    rooms = [Room(region, field.cells) for region in open_regions]
    log.info(
        "Regions processed",
        wall_regions=len(wall_regions),
        wall_regions_removed=walls_removed,
        rooms=len(rooms),
        open_regions_removed=open_removed,
        threshold=threshold,
    )
    return rooms


def sweep_small_wall_regions(field: OccupancyField, threshold: int = REGION_THRESHOLD) -> int:
    """Reopen wall fragments that carving split below ``threshold``."""
    _, removed = remove_small_regions(field, TILE_WALL, threshold)
    if removed:
        log.debug("Reopened wall fragments after carving", regions=removed)
    return removed


__all__ = [
    "AXIS_NEIGHBOURS",
    "Region",
    "get_regions",
    "remove_small_regions",
    "process_regions_and_rooms",
    "sweep_small_wall_regions",
]
