# cavegen/mesh/marching_squares.py
"""
Marching squares mesher for 2D caves.

Produces the cave ceiling mesh from the wall cells, traces the closed outlines
of that mesh and hangs a wall quad below every outline edge.
"""

from dataclasses import dataclass, field as dc_field
from typing import Dict, List, Set

import numpy as np
import structlog

from cavegen.config import ConfigError
from cavegen.constants import TILE_WALL
from cavegen.mesh.buffers import CollisionProxy, MeshData, Triangle, Vector3
from cavegen.mesh.tables import CORNER_WEIGHTS, FULL_SQUARE, SQUARE_TABLE
from cavegen.world.field import grid_to_world_2d

log = structlog.get_logger(__name__)


class Node:
    """Mesh point whose vertex index is assigned the first time it is emitted."""

    __slots__ = ("position", "vertex_index")

    def __init__(self, position: Vector3):
        self.position = position
        self.vertex_index = -1


class ControlNode(Node):
    """Node at a cell centre, owning the midpoints above it (+z) and to its right (+x)."""

    __slots__ = ("active", "above", "right")

    def __init__(self, position: Vector3, active: bool, square_size: float):
        super().__init__(position)
        self.active = active
        x, y, z = position
        half = square_size / 2.0
        self.above = Node((x, y, z + half))
        self.right = Node((x + half, y, z))


class Square:
    def __init__(
        self,
        top_left: ControlNode,
        top_right: ControlNode,
        bottom_right: ControlNode,
        bottom_left: ControlNode,
    ):
        self.top_left = top_left
        self.top_right = top_right
        self.bottom_right = bottom_right
        self.bottom_left = bottom_left

        self.center_top = top_left.right
        self.center_right = bottom_right.above
        self.center_bottom = bottom_left.right
        self.center_left = bottom_left.above

    @property
    def configuration(self) -> int:
        return sum(weight for name, weight in CORNER_WEIGHTS if getattr(self, name).active)


class SquareGrid:
    """Control nodes for every cell and the squares spanning adjacent nodes."""

    def __init__(self, cells: np.ndarray, square_size: float):
        if cells.ndim != 2:
            raise ValueError("SquareGrid needs a 2D cell array")
        width, height = cells.shape
        self.control_nodes: List[List[ControlNode]] = [
            [
                ControlNode(
                    grid_to_world_2d((x, y), cells.shape, square_size),
                    bool(cells[x, y] == TILE_WALL),
                    square_size,
                )
                for y in range(height)
            ]
            for x in range(width)
        ]
        nodes = self.control_nodes
        self.squares: List[List[Square]] = [
            [
                Square(nodes[x][y + 1], nodes[x + 1][y + 1], nodes[x + 1][y], nodes[x][y])
                for y in range(height - 1)
            ]
            for x in range(width - 1)
        ]

    def iter_squares(self):
        for column in self.squares:
            yield from column


@dataclass
class CaveMesh2D:
    cave: MeshData
    walls: MeshData
    wall_collider: CollisionProxy
    outlines: List[List[int]] = dc_field(default_factory=list)


class MarchingSquaresMesher:
    """
    Triangulates a padded 2D field. State is rebuilt on every :meth:`generate`
    call, so one mesher can be reused across regenerations.
    """

    def __init__(self, square_size: float = 1.0, wall_height: float = 5.0):
        if square_size <= 0:
            raise ConfigError("square_size must be positive")
        if wall_height < 0:
            raise ConfigError("wall_height must not be negative")
        self.square_size = square_size
        self.wall_height = wall_height
        self._reset()

    def _reset(self) -> None:
        self.vertices: List[Vector3] = []
        self.triangles: List[int] = []
        self.triangle_dictionary: Dict[int, List[Triangle]] = {}
        self.outlines: List[List[int]] = []
        self.checked_vertices: Set[int] = set()

    def generate(self, cells: np.ndarray) -> CaveMesh2D:
        self._reset()
        grid = SquareGrid(cells, self.square_size)
        for square in grid.iter_squares():
            self.triangulate_square(square)
        cave = MeshData.from_lists(self.vertices, self.triangles)

        self.calculate_mesh_outlines()
        walls = self.create_wall_mesh()
        log.info(
            "2D cave mesh generated",
            vertices=cave.vertex_count,
            triangles=cave.triangle_count,
            outlines=len(self.outlines),
            wall_triangles=walls.triangle_count,
        )
        return CaveMesh2D(cave, walls, CollisionProxy(walls), [list(o) for o in self.outlines])

    # ------------------------------------------------------------------
    # triangulation
    # ------------------------------------------------------------------
    def triangulate_square(self, square: Square) -> int:
        """Emit the fan for ``square``'s configuration and return the configuration."""
        configuration = square.configuration
        points = [getattr(square, name) for name in SQUARE_TABLE[configuration]]
        if points:
            self._mesh_from_points(points)
        if configuration == FULL_SQUARE:
            # Interior corners can never lie on an outline.
            for corner in (square.top_left, square.top_right, square.bottom_right, square.bottom_left):
                self.checked_vertices.add(corner.vertex_index)
        return configuration

    def _mesh_from_points(self, points: List[Node]) -> None:
        for point in points:
            if point.vertex_index == -1:
                point.vertex_index = len(self.vertices)
                self.vertices.append(point.position)
        for i in range(1, len(points) - 1):
            self._create_triangle(points[0], points[i], points[i + 1])

    def _create_triangle(self, a: Node, b: Node, c: Node) -> None:
        triangle = Triangle(a.vertex_index, b.vertex_index, c.vertex_index)
        self.triangles.extend(triangle)
        for vertex_index in triangle:
            self.triangle_dictionary.setdefault(vertex_index, []).append(triangle)

    # ------------------------------------------------------------------
    # outlines
    # ------------------------------------------------------------------
    def is_outline_edge(self, vertex_a: int, vertex_b: int) -> bool:
        """An edge lies on an outline iff exactly one triangle contains it."""
        shared = 0
        for triangle in self.triangle_dictionary[vertex_a]:
            if triangle.contains(vertex_b):
                shared += 1
                if shared > 1:
                    break
        return shared == 1

    def get_connected_outline_vertex(self, vertex_index: int) -> int:
        for triangle in self.triangle_dictionary[vertex_index]:
            for vertex_b in triangle:
                if vertex_b == vertex_index or vertex_b in self.checked_vertices:
                    continue
                if self.is_outline_edge(vertex_index, vertex_b):
                    return vertex_b
        return -1

    def calculate_mesh_outlines(self) -> List[List[int]]:
        for vertex_index in range(len(self.vertices)):
            if vertex_index in self.checked_vertices:
                continue
            next_vertex = self.get_connected_outline_vertex(vertex_index)
            if next_vertex == -1:
                continue
            self.checked_vertices.add(vertex_index)
            outline = [vertex_index]
            while next_vertex != -1:
                outline.append(next_vertex)
                self.checked_vertices.add(next_vertex)
                next_vertex = self.get_connected_outline_vertex(next_vertex)
            outline.append(vertex_index)
            self.outlines.append(outline)
        return self.outlines

    # ------------------------------------------------------------------
    # walls
    # ------------------------------------------------------------------
    def create_wall_mesh(self) -> MeshData:
        """One quad per outline edge, its bottom edge ``wall_height`` below along -y."""
        if not self.outlines:
            return MeshData.empty()
        vertices = np.asarray(self.vertices, dtype=np.float32).reshape(-1, 3)
        drop = np.array((0.0, self.wall_height, 0.0), dtype=np.float32)
        wall_vertices: List[np.ndarray] = []
        wall_triangles: List[int] = []
        for outline in self.outlines:
            for i in range(len(outline) - 1):
                start = len(wall_vertices)
                left = vertices[outline[i]]
                right = vertices[outline[i + 1]]
                wall_vertices.extend((left, right, left - drop, right - drop))
                wall_triangles.extend(
                    (start, start + 2, start + 3, start + 3, start + 1, start)
                )
        return MeshData(
            np.asarray(wall_vertices, dtype=np.float32).reshape(-1, 3),
            np.asarray(wall_triangles, dtype=np.int32),
        )


__all__ = [
    "Node",
    "ControlNode",
    "Square",
    "SquareGrid",
    "CaveMesh2D",
    "MarchingSquaresMesher",
]
