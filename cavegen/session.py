# cavegen/session.py
"""
Regenerate-on-demand driver.

A :class:`CaveSession` owns the latest cave, its meshes and the host-side
objects spawned for it. Every :meth:`CaveSession.regenerate` discards the
previous placeholder and collision proxies before creating new ones.
"""

from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, List, Optional, Protocol, Union

import structlog

from cavegen.config import CaveConfig
from cavegen.mesh.buffers import CollisionProxy, Vector3
from cavegen.mesh.marching_cubes import CaveMesh3D, MarchingCubesMesher
from cavegen.mesh.marching_squares import CaveMesh2D, MarchingSquaresMesher
from cavegen.world.procgen import CaveMap, generate_cave

log = structlog.get_logger(__name__)

CaveMesh = Union[CaveMesh2D, CaveMesh3D]


class Spawner(Protocol):
    """Host collaborator that instantiates and releases scene objects."""

    def spawn(self, template: str, position: Vector3) -> Any:
        ...

    def add_collider(self, proxy: CollisionProxy) -> Any:
        ...

    def destroy(self, handle: Any) -> None:
        ...


class PlaceholderSpawner:
    """In-memory spawner that tracks which handles are alive."""

    def __init__(self) -> None:
        self._next_handle = 0
        self.live: Dict[int, Dict[str, Any]] = {}
        self.destroyed: List[int] = []

    def _register(self, record: Dict[str, Any]) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self.live[handle] = record
        return handle

    def spawn(self, template: str, position: Vector3) -> int:
        return self._register({"kind": "placeholder", "template": template, "position": position})

    def add_collider(self, proxy: CollisionProxy) -> int:
        return self._register({"kind": "collider", "proxy": proxy})

    def destroy(self, handle: int) -> None:
        if handle not in self.live:
            raise KeyError(f"Unknown or already destroyed handle: {handle}")
        del self.live[handle]
        self.destroyed.append(handle)

    def live_of_kind(self, kind: str) -> List[int]:
        return [h for h, record in self.live.items() if record["kind"] == kind]


@dataclass
class GenerationResult:
    cave: CaveMap
    mesh: CaveMesh
    placeholder: Optional[Any] = None
    colliders: List[Any] = dc_field(default_factory=list)


class CaveSession:
    def __init__(self, config: CaveConfig, spawner: Optional[Spawner] = None):
        self.config = config.validate()
        self.spawner: Spawner = spawner if spawner is not None else PlaceholderSpawner()
        self.current: Optional[GenerationResult] = None
        self.generation = 0

    def regenerate(self, **overrides: Any) -> GenerationResult:
        """
        Rebuild the cave from scratch. Keyword arguments override config fields
        for this and later runs (``None`` values are ignored).
        """
        if overrides:
            self.config = self.config.with_overrides(**overrides)
        cave = generate_cave(self.config)
        mesh = mesh_cave(cave)

        self._release_current()
        result = GenerationResult(cave, mesh)
        for proxy in collision_proxies(mesh):
            result.colliders.append(self.spawner.add_collider(proxy))
        if cave.spawn_position is not None:
            result.placeholder = self.spawner.spawn(
                self.config.player_template, cave.spawn_position
            )
        else:
            log.warning("Cave has no spawn point; placeholder not created")

        self.current = result
        self.generation += 1
        log.info(
            "Cave regenerated",
            generation=self.generation,
            seed=cave.seed,
            colliders=len(result.colliders),
            spawn=cave.spawn,
        )
        return result

    def _release_current(self) -> None:
        if self.current is None:
            return
        if self.current.placeholder is not None:
            self.spawner.destroy(self.current.placeholder)
        for handle in self.current.colliders:
            self.spawner.destroy(handle)
        log.debug(
            "Released previous cave objects",
            colliders=len(self.current.colliders),
            placeholder=self.current.placeholder is not None,
        )
        self.current = None


def mesh_cave(cave: CaveMap) -> CaveMesh:
    """Run the mesher matching the cave's dimensionality."""
    config = cave.config
    if cave.is_3d:
        return MarchingCubesMesher(config.max_vertices_per_chunk).generate(cave.field.cells)
    return MarchingSquaresMesher(config.square_size, config.wall_height).generate(
        cave.field.cells
    )


def collision_proxies(mesh: CaveMesh) -> List[CollisionProxy]:
    if isinstance(mesh, CaveMesh3D):
        return [chunk.collider for chunk in mesh.chunks]
    if mesh.walls.is_empty:
        return []
    return [mesh.wall_collider]


__all__ = [
    "Spawner",
    "PlaceholderSpawner",
    "GenerationResult",
    "CaveSession",
    "mesh_cave",
    "collision_proxies",
]
