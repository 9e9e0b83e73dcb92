# cavegen/mesh/buffers.py
"""Vertex/triangle buffers emitted by the meshers."""

from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Sequence, Tuple

import numpy as np
import structlog

log = structlog.get_logger(__name__)

Vector3 = Tuple[float, float, float]


class Triangle(NamedTuple):
    a: int
    b: int
    c: int

    def contains(self, vertex_index: int) -> bool:
        return vertex_index == self.a or vertex_index == self.b or vertex_index == self.c


@dataclass
class MeshData:
    """
    A flat mesh: ``vertices`` is a float32 ``(n, 3)`` array and ``triangles``
    a flat int32 array of vertex indices, three per triangle.
    """

    vertices: np.ndarray
    triangles: np.ndarray

    @classmethod
    def empty(cls) -> "MeshData":
        return cls(np.zeros((0, 3), dtype=np.float32), np.zeros(0, dtype=np.int32))

    @classmethod
    def from_lists(cls, vertices: Sequence[Vector3], triangles: Sequence[int]) -> "MeshData":
        return cls(
            np.asarray(vertices, dtype=np.float32).reshape(-1, 3),
            np.asarray(triangles, dtype=np.int32).reshape(-1),
        )

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.triangles.shape[0] // 3)

    @property
    def is_empty(self) -> bool:
        return self.triangle_count == 0

    def triangle(self, index: int) -> Triangle:
        a, b, c = self.triangles[index * 3 : index * 3 + 3]
        return Triangle(int(a), int(b), int(c))

    def iter_triangles(self):
        for i in range(self.triangle_count):
            yield self.triangle(i)


@dataclass
class CollisionProxy:
    """Collision geometry a host builds its physics shape from."""

    mesh: MeshData
    position: Vector3 = (0.0, 0.0, 0.0)


@dataclass
class MeshChunk:
    """One independently renderable and collidable piece of a larger mesh."""

    mesh: MeshData
    collider: CollisionProxy
    position: Vector3


def split_into_chunks(
    mesh: MeshData, max_vertices: int, position: Vector3 = (0.0, 0.0, 0.0)
) -> List[MeshChunk]:
    """
    Split ``mesh`` into chunks of at most ``max_vertices`` vertices.

    Triangles are assigned in order and never split; each chunk re-indexes the
    vertices it uses from zero. Every chunk is placed at ``position``.
    """
    if max_vertices < 3:
        raise ValueError("max_vertices must be at least 3")
    if mesh.is_empty:
        return []

    chunks: List[MeshChunk] = []
    local_index: Dict[int, int] = {}
    local_vertices: List[int] = []
    local_triangles: List[int] = []

    def flush() -> None:
        chunk_mesh = MeshData(
            mesh.vertices[np.asarray(local_vertices, dtype=np.int64)],
            np.asarray(local_triangles, dtype=np.int32),
        )
        chunks.append(MeshChunk(chunk_mesh, CollisionProxy(chunk_mesh, position), position))

    for tri in mesh.iter_triangles():
        new_vertices = len({v for v in tri if v not in local_index})
        if len(local_vertices) + new_vertices > max_vertices:
            flush()
            local_index = {}
            local_vertices = []
            local_triangles = []
        for v in tri:
            if v not in local_index:
                local_index[v] = len(local_vertices)
                local_vertices.append(v)
            local_triangles.append(local_index[v])
    flush()

    log.debug(
        "Mesh split into chunks",
        chunks=len(chunks),
        vertices=mesh.vertex_count,
        max_vertices=max_vertices,
    )
    return chunks


__all__ = [
    "Triangle",
    "MeshData",
    "CollisionProxy",
    "MeshChunk",
    "Vector3",
    "split_into_chunks",
]
