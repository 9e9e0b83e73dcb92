"""Shared constants for cave generation and meshing."""

from typing import Final, Tuple, TypeAlias

# Cell states
TILE_OPEN: Final[int] = 0
TILE_WALL: Final[int] = 1

# Regions smaller than this are flipped to the opposite cell type
REGION_THRESHOLD: Final[int] = 50
# Radius of the disc (2D) or sphere (3D) stamped along a passage
PASSAGE_RADIUS: Final[int] = 5
# Renderer-imposed vertex cap for a single 3D mesh chunk
MAX_VERTICES_PER_CHUNK: Final[int] = 60000

Coord: TypeAlias = Tuple[int, ...]

__all__ = [
    "TILE_OPEN",
    "TILE_WALL",
    "REGION_THRESHOLD",
    "PASSAGE_RADIUS",
    "MAX_VERTICES_PER_CHUNK",
    "Coord",
]
