# cavegen/export.py
"""
Debug views of generated caves: ASCII dumps, PNG previews and OBJ meshes.
"""

from pathlib import Path
from typing import Iterable, Optional, Tuple

import numpy as np
import structlog
from PIL import Image

from cavegen.constants import TILE_WALL, Coord
from cavegen.mesh.buffers import MeshData
from cavegen.world.field import OccupancyField

log = structlog.get_logger(__name__)

WALL_CHAR = "#"
OPEN_CHAR = "."
SPAWN_CHAR = "@"

WALL_COLOR: Tuple[int, int, int, int] = (40, 36, 32, 255)
OPEN_COLOR: Tuple[int, int, int, int] = (214, 200, 170, 255)
SPAWN_COLOR: Tuple[int, int, int, int] = (220, 40, 40, 255)


def _slice_2d(
    field: OccupancyField, z: Optional[int], spawn: Optional[Coord]
) -> Tuple[np.ndarray, Optional[Tuple[int, int]], int]:
    """The ``[x, y]`` plane to draw, the spawn within it (if on it) and the z used."""
    if field.ndim == 2:
        spawn_xy = tuple(spawn) if spawn is not None else None
        return field.cells, spawn_xy, 0
    if z is None:
        z = spawn[2] if spawn is not None else field.shape[2] // 2
    if not 0 <= z < field.shape[2]:
        raise ValueError(f"z slice {z} outside field depth {field.shape[2]}")
    spawn_xy = None
    if spawn is not None and spawn[2] == z:
        spawn_xy = (spawn[0], spawn[1])
    return field.cells[:, :, z], spawn_xy, z


def render_ascii(
    field: OccupancyField, spawn: Optional[Coord] = None, z: Optional[int] = None
) -> str:
    """One text row per y, walls as ``#``, open cells as ``.``, spawn as ``@``."""
    plane, spawn_xy, _ = _slice_2d(field, z, spawn)
    width, height = plane.shape
    rows = []
    for y in range(height):
        row = []
        for x in range(width):
            if spawn_xy == (x, y):
                row.append(SPAWN_CHAR)
            else:
                row.append(WALL_CHAR if plane[x, y] == TILE_WALL else OPEN_CHAR)
        rows.append("".join(row))
    return "\n".join(rows)


def field_image(
    field: OccupancyField,
    spawn: Optional[Coord] = None,
    z: Optional[int] = None,
    scale: int = 4,
) -> Image.Image:
    if scale < 1:
        raise ValueError("scale must be at least 1")
    plane, spawn_xy, _ = _slice_2d(field, z, spawn)
    # Image rows are y, columns are x.
    walls = plane.T == TILE_WALL
    pixels = np.empty(walls.shape + (4,), dtype=np.uint8)
    pixels[walls] = WALL_COLOR
    pixels[~walls] = OPEN_COLOR
    if spawn_xy is not None:
        pixels[spawn_xy[1], spawn_xy[0]] = SPAWN_COLOR
    image = Image.fromarray(pixels)
    if scale != 1:
        image = image.resize(
            (image.width * scale, image.height * scale), Image.Resampling.NEAREST
        )
    return image


def save_field_preview(
    field: OccupancyField,
    path: Path,
    spawn: Optional[Coord] = None,
    z: Optional[int] = None,
    scale: int = 4,
) -> Path:
    path = Path(path)
    image = field_image(field, spawn, z, scale)
    image.save(path, format="PNG")
    log.info("Field preview saved", path=str(path), size=image.size)
    return path


def write_obj(meshes: Iterable[Tuple[str, MeshData]], path: Path) -> Path:
    """
    Write named meshes into one Wavefront OBJ file, one object per mesh.
    Indices are rebased because OBJ indices are global and 1-based.
    """
    path = Path(path)
    base = 1
    objects = 0
    with path.open("w", encoding="utf-8") as f:
        for name, mesh in meshes:
            if mesh.is_empty:
                continue
            f.write(f"o {name}\n")
            for vx, vy, vz in mesh.vertices:
                f.write(f"v {vx:.6f} {vy:.6f} {vz:.6f}\n")
            for a, b, c in mesh.triangles.reshape(-1, 3):
                f.write(f"f {a + base} {b + base} {c + base}\n")
            base += mesh.vertex_count
            objects += 1
    log.info("OBJ written", path=str(path), objects=objects, vertices=base - 1)
    return path


__all__ = [
    "render_ascii",
    "field_image",
    "save_field_preview",
    "write_obj",
]
