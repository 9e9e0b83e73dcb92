import pytest

from cavegen.config import CaveConfig
from cavegen.mesh.marching_cubes import CaveMesh3D
from cavegen.mesh.marching_squares import CaveMesh2D
from cavegen.session import CaveSession, PlaceholderSpawner, collision_proxies, mesh_cave


def _open_config(**overrides):
    values = dict(
        width=10, height=10, wall_percent=0, smooth_iterations=2, region_threshold=4, seed="session"
    )
    values.update(overrides)
    return CaveConfig(**values)


def test_regenerate_spawns_placeholder_and_collider():
    spawner = PlaceholderSpawner()
    session = CaveSession(_open_config(player_template="avatar"), spawner)
    result = session.regenerate()
    assert isinstance(result.mesh, CaveMesh2D)
    assert spawner.live_of_kind("placeholder") == [result.placeholder]
    assert spawner.live[result.placeholder]["template"] == "avatar"
    assert spawner.live[result.placeholder]["position"] == result.cave.spawn_position
    assert len(result.colliders) == 1
    assert spawner.live_of_kind("collider") == result.colliders


def test_regenerate_releases_previous_objects():
    spawner = PlaceholderSpawner()
    session = CaveSession(_open_config(), spawner)
    first = session.regenerate()
    second = session.regenerate()
    assert first.placeholder in spawner.destroyed
    assert all(handle in spawner.destroyed for handle in first.colliders)
    assert spawner.live_of_kind("placeholder") == [second.placeholder]
    assert spawner.live_of_kind("collider") == second.colliders
    assert session.generation == 2
    assert session.current is second


def test_regenerate_with_overrides_updates_config():
    session = CaveSession(_open_config())
    result = session.regenerate(seed="changed", width=12)
    assert session.config.seed == "changed"
    assert result.cave.seed == "changed"
    assert result.cave.field.shape == (14, 12)


def test_closed_cave_spawns_nothing():
    spawner = PlaceholderSpawner()
    session = CaveSession(_open_config(wall_percent=100, region_threshold=50), spawner)
    result = session.regenerate()
    assert result.placeholder is None
    assert result.colliders == []
    assert spawner.live == {}


def test_destroy_unknown_handle_raises():
    with pytest.raises(KeyError):
        PlaceholderSpawner().destroy(42)


def test_3d_session_uses_chunks_as_colliders():
    config = CaveConfig(
        width=12, height=12, depth=12, wall_percent=38, max_wall_percent=40,
        smooth_limit=10, seed="session3d", max_vertices_per_chunk=200,
    )
    cave_session = CaveSession(config)
    result = cave_session.regenerate()
    assert isinstance(result.mesh, CaveMesh3D)
    assert len(result.colliders) == len(result.mesh.chunks)


def test_mesh_cave_matches_dimensionality():
    session = CaveSession(_open_config())
    cave = session.regenerate().cave
    mesh = mesh_cave(cave)
    assert isinstance(mesh, CaveMesh2D)
    assert collision_proxies(mesh) == [mesh.wall_collider]
