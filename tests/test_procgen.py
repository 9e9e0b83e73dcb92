import numpy as np
import pytest
from scipy.ndimage import label

from cavegen.config import CaveConfig, ConfigError
from cavegen.constants import TILE_OPEN, TILE_WALL
from cavegen.world.field import grid_to_world_2d
from cavegen.world.procgen import GenerationContext, generate_cave


def _config_2d(seed, **overrides):
    return CaveConfig(width=64, height=48, seed=seed, **overrides)


def _config_3d(seed, **overrides):
    values = dict(
        width=16,
        height=16,
        depth=16,
        wall_percent=38,
        max_wall_percent=40,
        smooth_limit=10,
        seed=seed,
    )
    values.update(overrides)
    return CaveConfig(**values)


def _component_sizes(mask):
    labels, count = label(mask)
    return np.bincount(labels.ravel(), minlength=count + 1)[1:]


def _reachable_from(room):
    seen = {id(room)}
    stack = [room]
    while stack:
        for other in stack.pop().connected_rooms:
            if id(other) not in seen:
                seen.add(id(other))
                stack.append(other)
    return seen


def test_generation_is_deterministic():
    a = generate_cave(_config_2d("same"))
    b = generate_cave(_config_2d("same"))
    assert np.array_equal(a.field.cells, b.field.cells)
    assert a.spawn == b.spawn
    assert a.passages == b.passages
    assert [room.size for room in a.rooms] == [room.size for room in b.rooms]


def test_different_seeds_differ():
    a = generate_cave(_config_2d("one"))
    b = generate_cave(_config_2d("two"))
    assert not np.array_equal(a.field.cells, b.field.cells)


def test_invalid_config_fails_fast():
    with pytest.raises(ConfigError):
        generate_cave(CaveConfig(width=0))


@pytest.mark.parametrize("border", [1, 3])
def test_padded_border_is_wall(border):
    cave = generate_cave(_config_2d("border", border_size=border))
    assert cave.field.shape == (64 + 2 * border, 48 + 2 * border)
    assert (cave.field.cells[cave.field.perimeter_mask(border)] == TILE_WALL).all()


@pytest.mark.parametrize("seed", ["alpha", "beta", "gamma", "delta"])
def test_every_region_meets_threshold_2d(seed):
    cave = generate_cave(_config_2d(seed))
    cells = cave.field.cells
    for tile_type in (TILE_OPEN, TILE_WALL):
        sizes = _component_sizes(cells == tile_type)
        assert (sizes >= cave.config.region_threshold).all()


@pytest.mark.parametrize("seed", ["alpha", "beta"])
def test_rooms_form_one_graph_2d(seed):
    cave = generate_cave(_config_2d(seed))
    assert len(cave.rooms) > 1
    assert cave.passages
    main = cave.main_room
    assert main is cave.rooms[0]
    assert sum(room.is_main_room for room in cave.rooms) == 1
    assert len(_reachable_from(main)) == len(cave.rooms)
    assert all(room.is_accessible_from_main_room for room in cave.rooms)


def test_3d_generation_invariants():
    cave = generate_cave(_config_3d("c", width=30, height=30, depth=30))
    cells = cave.field.cells
    assert cave.is_3d
    assert cells.shape == (32, 32, 32)
    assert (cells[cave.field.perimeter_mask(1)] == TILE_WALL).all()
    for tile_type in (TILE_OPEN, TILE_WALL):
        sizes = _component_sizes(cells == tile_type)
        assert (sizes >= cave.config.region_threshold).all()
    assert len(cave.rooms) > 1
    assert len(cave.passages) >= len(cave.rooms) - 1
    assert sum(room.is_main_room for room in cave.rooms) == 1
    assert len(_reachable_from(cave.main_room)) == len(cave.rooms)
    assert all(room.is_accessible_from_main_room for room in cave.rooms)
    assert cave.spawn is None or cave.field[cave.spawn] == TILE_OPEN


def test_zero_rooms_is_tolerated():
    cave = generate_cave(CaveConfig(width=20, height=20, wall_percent=100, seed="solid"))
    assert cave.rooms == []
    assert cave.main_room is None
    assert cave.spawn is None
    assert cave.spawn_position is None
    assert (cave.field.cells == TILE_WALL).all()


def test_zero_rooms_is_tolerated_in_3d():
    cave = generate_cave(_config_3d("solid", wall_percent=40, max_wall_percent=100, smooth_limit=0))
    assert cave.rooms == []
    assert cave.spawn is None


def test_open_interior_becomes_single_room():
    config = CaveConfig(
        width=10, height=10, wall_percent=0, smooth_iterations=2, region_threshold=4, seed="abc"
    )
    cave = generate_cave(config)
    assert len(cave.rooms) == 1
    room = cave.rooms[0]
    # the four interior corners close up during smoothing
    assert room.size == 60
    assert room.is_main_room
    assert cave.passages == []
    assert cave.spawn == (5, 5)
    assert cave.spawn_position == grid_to_world_2d((5, 5), (12, 12), 1.0)


def test_small_example_scenario():
    config = CaveConfig(
        width=10, height=10, wall_percent=45, smooth_iterations=2, region_threshold=4, seed="abc"
    )
    cave = generate_cave(config)
    assert (cave.field.cells[cave.field.perimeter_mask(1)] == TILE_WALL).all()
    assert len(cave.rooms) >= 1
    assert sum(room.is_main_room for room in cave.rooms) == 1
    assert cave.main_room is cave.rooms[0]
    assert len(_reachable_from(cave.main_room)) == len(cave.rooms)


def test_context_runs_stages_in_order():
    context = GenerationContext(_config_2d("stages"))
    filled = context.fill()
    assert filled.shape == (64, 48)
    smoothed = context.smooth()
    assert smoothed is context.field
    rooms = context.build_rooms()
    graph = context.connect_rooms()
    assert graph.rooms == sorted(rooms, key=lambda r: r.size, reverse=True)
    cave = context.finish()
    assert cave.field.shape == (66, 50)
    assert cave.seed == "stages"


def test_spawn_is_open_and_positioned():
    cave = generate_cave(_config_2d("spawn"))
    if cave.spawn is None:
        pytest.skip("seed produced no open cell")
    assert cave.field[cave.spawn] == TILE_OPEN
    assert cave.spawn_position == grid_to_world_2d(
        cave.spawn, cave.field.shape, cave.config.square_size
    )
