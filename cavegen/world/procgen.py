# cavegen/world/procgen.py
"""
Cave generation pipeline.

seed -> fill -> smooth -> prune regions -> connect rooms (carving passages)
-> pad with border -> spawn lookup. Every call rebuilds from scratch; nothing
is shared between runs.
"""

from dataclasses import dataclass, field as dc_field
from typing import List, Optional, Tuple

import structlog

from cavegen.config import CaveConfig
from cavegen.constants import Coord
from cavegen.rng import SeededRNG
from cavegen.world.field import OccupancyField, grid_to_world_2d, grid_to_world_3d
from cavegen.world.passages import PassageCarver
from cavegen.world.regions import process_regions_and_rooms, sweep_small_wall_regions
from cavegen.world.rooms import Room, RoomGraph
from cavegen.world.smoothing import smooth_field

log = structlog.get_logger(__name__)


@dataclass
class CaveMap:
    """Finished generation pass handed to meshers and hosts."""

    field: OccupancyField
    rooms: List[Room]
    seed: str
    border_size: int
    config: CaveConfig
    passages: List[Tuple[Coord, Coord]] = dc_field(default_factory=list)
    spawn: Optional[Coord] = None
    spawn_position: Optional[Tuple[float, float, float]] = None

    @property
    def main_room(self) -> Optional[Room]:
        return next((room for room in self.rooms if room.is_main_room), None)

    @property
    def is_3d(self) -> bool:
        return self.field.ndim == 3


class GenerationContext:
    """Owns the mutable state of a single generation pass."""

    def __init__(self, config: CaveConfig):
        self.config = config.validate()
        self.rng = SeededRNG(config.seed, config.use_random_seed)
        self.field: Optional[OccupancyField] = None
        self.rooms: List[Room] = []
        self.graph: Optional[RoomGraph] = None

    def fill(self) -> OccupancyField:
        self.field = OccupancyField.random_fill(
            self.config.shape, self.config.wall_percent, self.rng
        )
        return self.field

    def smooth(self) -> OccupancyField:
        self.field = smooth_field(
            self.field, self.config.smooth_iterations, self.config.smooth_limit
        )
        return self.field

    def build_rooms(self) -> List[Room]:
        self.rooms = process_regions_and_rooms(self.field, self.config.region_threshold)
        return self.rooms

    def connect_rooms(self) -> RoomGraph:
        carver = PassageCarver(self.field, self.config.passage_radius)
        self.graph = RoomGraph(self.rooms, on_connect=carver.carve)
        self.graph.connect_all()
        if carver.carved:
            sweep_small_wall_regions(self.field, self.config.region_threshold)
        return self.graph

    def finish(self) -> CaveMap:
        border = self.config.border_size
        padded = self.field.padded(border)
        start = tuple(size // 2 for size in self.config.shape)
        spawn = padded.find_spawn(start)
        spawn_position = None
        if spawn is None:
            log.warning("No open cell found for spawn", start=start)
        elif padded.ndim == 2:
            spawn_position = grid_to_world_2d(spawn, padded.shape, self.config.square_size)
        else:
            spawn_position = grid_to_world_3d(spawn, padded.shape)
        return CaveMap(
            field=padded,
            rooms=self.graph.rooms if self.graph else self.rooms,
            seed=self.rng.seed,
            border_size=border,
            config=self.config,
            passages=list(self.graph.passages) if self.graph else [],
            spawn=spawn,
            spawn_position=spawn_position,
        )


def generate_cave(config: CaveConfig) -> CaveMap:
    """Run the full pipeline for ``config`` and return the padded result."""
    context = GenerationContext(config)
    log.info(
        "Starting cave generation",
        shape=config.shape,
        seed=context.rng.seed,
        wall_percent=config.wall_percent,
        smooth_iterations=config.smooth_iterations,
    )
    context.fill()
    context.smooth()
    context.build_rooms()
    context.connect_rooms()
    cave = context.finish()
    log.info(
        "Cave generation complete",
        shape=cave.field.shape,
        rooms=len(cave.rooms),
        passages=len(cave.passages),
        spawn=cave.spawn,
    )
    return cave


__all__ = ["CaveMap", "GenerationContext", "generate_cave"]
