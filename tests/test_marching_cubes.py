import numpy as np
import pytest

from cavegen.config import CaveConfig, ConfigError
from cavegen.mesh.buffers import MeshData, split_into_chunks
from cavegen.mesh.marching_cubes import (
    MarchingCubesMesher,
    chunk_offset,
    cube_configurations,
)
from cavegen.mesh.tables import CUBE_EDGES, TRI_TABLE
from cavegen.world.procgen import generate_cave


def _single_open_cell():
    cells = np.ones((3, 3, 3), dtype=np.uint8)
    cells[1, 1, 1] = 0
    return cells


def test_tri_table_is_complete():
    assert len(TRI_TABLE) == 256
    assert TRI_TABLE[0] == ()
    assert TRI_TABLE[255] == ()
    assert all(len(entry) % 3 == 0 for entry in TRI_TABLE)


def test_tri_table_only_uses_cut_edges():
    for config, entry in enumerate(TRI_TABLE):
        for edge in entry:
            a, b = CUBE_EDGES[edge]
            assert bool(config & (1 << a)) != bool(config & (1 << b))


def test_configuration_bits_mark_open_corners():
    cells = np.ones((2, 2, 2), dtype=np.uint8)
    assert cube_configurations(cells)[0, 0, 0] == 0
    cells[0, 0, 0] = 0
    assert cube_configurations(cells)[0, 0, 0] == 1
    cells[1, 1, 1] = 0
    assert cube_configurations(cells)[0, 0, 0] == 1 + 64


def test_solid_and_empty_fields_have_no_surface():
    mesher = MarchingCubesMesher()
    assert mesher.polygonize(np.ones((4, 4, 4), dtype=np.uint8)).is_empty
    assert mesher.polygonize(np.zeros((4, 4, 4), dtype=np.uint8)).is_empty


def test_single_open_cell_is_a_welded_octahedron():
    mesh = MarchingCubesMesher().polygonize(_single_open_cell())
    assert mesh.triangle_count == 8
    assert mesh.vertex_count == 6
    centre = np.array([1.5, 1.5, 1.5])
    distances = np.linalg.norm(mesh.vertices - centre, axis=1)
    assert np.allclose(distances, 0.5)


def test_normals_face_open_space():
    mesh = MarchingCubesMesher().polygonize(_single_open_cell())
    centre = np.array([1.5, 1.5, 1.5])
    for tri in mesh.iter_triangles():
        a, b, c = (mesh.vertices[i].astype(np.float64) for i in tri)
        normal = np.cross(b - a, c - a)
        centroid = (a + b + c) / 3.0
        assert np.dot(normal, centre - centroid) > 0


def test_chunk_offset_centres_field():
    assert chunk_offset((22, 21, 10)) == (-11.0, -10.0, -5.0)


def test_split_preserves_geometry():
    mesh = MarchingCubesMesher().polygonize(_single_open_cell())
    chunks = split_into_chunks(mesh, 4, (1.0, 2.0, 3.0))
    assert all(chunk.mesh.vertex_count <= 4 for chunk in chunks)
    assert sum(chunk.mesh.triangle_count for chunk in chunks) == mesh.triangle_count
    original = mesh.vertices[mesh.triangles]
    rebuilt = np.concatenate([chunk.mesh.vertices[chunk.mesh.triangles] for chunk in chunks])
    assert np.array_equal(original, rebuilt)
    assert all(chunk.position == (1.0, 2.0, 3.0) for chunk in chunks)
    assert all(chunk.collider.mesh is chunk.mesh for chunk in chunks)


def test_split_with_room_for_everything_is_one_chunk():
    mesh = MarchingCubesMesher().polygonize(_single_open_cell())
    (chunk,) = split_into_chunks(mesh, 60000)
    assert chunk.mesh.vertex_count == mesh.vertex_count
    assert np.array_equal(chunk.mesh.triangles, mesh.triangles)


def test_split_minimum_chunk_size():
    mesh = MarchingCubesMesher().polygonize(_single_open_cell())
    chunks = split_into_chunks(mesh, 3)
    assert len(chunks) == 8
    with pytest.raises(ValueError):
        split_into_chunks(mesh, 2)


def test_split_empty_mesh():
    assert split_into_chunks(MeshData.empty(), 10) == []


def test_mesher_rejects_tiny_chunks():
    with pytest.raises(ConfigError):
        MarchingCubesMesher(2)


def test_generated_cave_respects_chunk_limit():
    cave = generate_cave(
        CaveConfig(
            width=16, height=16, depth=16, wall_percent=38, max_wall_percent=40,
            smooth_limit=10, seed="chunks",
        )
    )
    result = MarchingCubesMesher(max_vertices_per_chunk=300).generate(cave.field.cells)
    assert result.offset == (-9.0, -9.0, -9.0)
    assert all(chunk.mesh.vertex_count <= 300 for chunk in result.chunks)
    assert sum(c.mesh.triangle_count for c in result.chunks) == result.mesh.triangle_count
    again = MarchingCubesMesher(max_vertices_per_chunk=300).generate(cave.field.cells)
    assert np.array_equal(result.mesh.vertices, again.mesh.vertices)
    assert np.array_equal(result.mesh.triangles, again.mesh.triangles)
