# cavegen/mesh/marching_cubes.py
"""
Marching cubes mesher for 3D caves.

The field is binary, so every surface vertex sits at the midpoint of a cube
edge. Vertices on the same lattice edge are shared between the cubes that
touch it. Configuration bits are set for open corners, which makes every
triangle face into the open cave volume.
"""

from dataclasses import dataclass, field as dc_field
from typing import Dict, List, Tuple

import numpy as np
import structlog

from cavegen.config import ConfigError
from cavegen.constants import MAX_VERTICES_PER_CHUNK, TILE_OPEN
from cavegen.mesh.buffers import MeshChunk, MeshData, Vector3, split_into_chunks
from cavegen.mesh.tables import CUBE_CORNERS, CUBE_EDGES, TRI_TABLE

log = structlog.get_logger(__name__)

# Doubled lattice offset of each edge midpoint, so midpoints stay integral.
_EDGE_MIDPOINTS_X2: Tuple[Tuple[int, int, int], ...] = tuple(
    tuple(CUBE_CORNERS[a][axis] + CUBE_CORNERS[b][axis] for axis in range(3))
    for a, b in CUBE_EDGES
)


def cube_configurations(cells: np.ndarray) -> np.ndarray:
    """
    Configuration index of every unit cube of ``cells``. The result has one
    entry per cube, shape ``(X-1, Y-1, Z-1)``.
    """
    if cells.ndim != 3:
        raise ValueError("Marching cubes needs a 3D cell array")
    sx, sy, sz = (size - 1 for size in cells.shape)
    open_cells = cells == TILE_OPEN
    configs = np.zeros((max(sx, 0), max(sy, 0), max(sz, 0)), dtype=np.uint8)
    for bit, (dx, dy, dz) in enumerate(CUBE_CORNERS):
        corner = open_cells[dx : dx + sx, dy : dy + sy, dz : dz + sz]
        configs |= corner.astype(np.uint8) << np.uint8(bit)
    return configs


def chunk_offset(shape: Tuple[int, ...]) -> Vector3:
    """Translation that centres a field of ``shape`` on the origin."""
    return tuple(float(-(size // 2)) for size in shape)


@dataclass
class CaveMesh3D:
    mesh: MeshData
    offset: Vector3
    chunks: List[MeshChunk] = dc_field(default_factory=list)


class MarchingCubesMesher:
    def __init__(self, max_vertices_per_chunk: int = MAX_VERTICES_PER_CHUNK):
        if max_vertices_per_chunk < 3:
            raise ConfigError("max_vertices_per_chunk must be at least 3")
        self.max_vertices_per_chunk = max_vertices_per_chunk

    def polygonize(self, cells: np.ndarray) -> MeshData:
        """Single welded mesh in field-local coordinates (cell centre at ``c + 0.5``)."""
        configs = cube_configurations(cells)
        surface = (configs != 0) & (configs != 255)

        vertex_lookup: Dict[Tuple[int, int, int], int] = {}
        vertices: List[Vector3] = []
        triangles: List[int] = []
        for x, y, z in np.argwhere(surface):
            x2, y2, z2 = 2 * int(x), 2 * int(y), 2 * int(z)
            for edge in TRI_TABLE[configs[x, y, z]]:
                mx, my, mz = _EDGE_MIDPOINTS_X2[edge]
                key = (x2 + mx, y2 + my, z2 + mz)
                index = vertex_lookup.get(key)
                if index is None:
                    index = len(vertices)
                    vertex_lookup[key] = index
                    vertices.append((key[0] / 2.0 + 0.5, key[1] / 2.0 + 0.5, key[2] / 2.0 + 0.5))
                triangles.append(index)
        return MeshData.from_lists(vertices, triangles)

    def generate(self, cells: np.ndarray) -> CaveMesh3D:
        mesh = self.polygonize(cells)
        offset = chunk_offset(cells.shape)
        chunks = split_into_chunks(mesh, self.max_vertices_per_chunk, offset)
        log.info(
            "3D cave mesh generated",
            vertices=mesh.vertex_count,
            triangles=mesh.triangle_count,
            chunks=len(chunks),
            max_vertices_per_chunk=self.max_vertices_per_chunk,
        )
        return CaveMesh3D(mesh, offset, chunks)


__all__ = [
    "CaveMesh3D",
    "MarchingCubesMesher",
    "chunk_offset",
    "cube_configurations",
]
