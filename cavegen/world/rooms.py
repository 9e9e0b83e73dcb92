# cavegen/world/rooms.py
"""
Rooms and the connectivity algorithm that links them into one reachable graph.
"""

from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from cavegen.constants import TILE_WALL, Coord

log = structlog.get_logger(__name__)

PassageCallback = Callable[[Coord, Coord], None]

# Rows of room A compared per step when searching for the closest tile pair.
DISTANCE_BLOCK_ROWS = 256


class Room:
    """A surviving open region plus its edge tiles and connection metadata."""

    def __init__(self, tiles: List[Coord], cells: np.ndarray):
        self.tiles: List[Coord] = tiles
        self.edge_tiles: List[Coord] = _edge_tiles(tiles, cells)
        self.connected_rooms: List["Room"] = []
        self.is_main_room: bool = False
        self.is_accessible_from_main_room: bool = False
        self._edge_array: Optional[np.ndarray] = None

    @property
    def size(self) -> int:
        return len(self.tiles)

    @property
    def edge_array(self) -> np.ndarray:
        """Edge tiles as an ``(n, ndim)`` integer array, built on first use."""
        if self._edge_array is None:
            ndim = len(self.tiles[0]) if self.tiles else 2
            self._edge_array = np.array(self.edge_tiles, dtype=np.int64).reshape(-1, ndim)
        return self._edge_array

    def is_connected(self, other: "Room") -> bool:
        return any(room is other for room in self.connected_rooms)

    def set_accessible_from_main_room(self) -> None:
        """Flag this room and everything reachable through it as accessible."""
        stack = [self]
        while stack:
            room = stack.pop()
            if room.is_accessible_from_main_room:
                continue
            room.is_accessible_from_main_room = True
            stack.extend(
                r for r in room.connected_rooms if not r.is_accessible_from_main_room
            )

    @staticmethod
    def connect_rooms(room_a: "Room", room_b: "Room") -> None:
        if room_a.is_accessible_from_main_room:
            room_b.set_accessible_from_main_room()
        elif room_b.is_accessible_from_main_room:
            room_a.set_accessible_from_main_room()
        room_a.connected_rooms.append(room_b)
        room_b.connected_rooms.append(room_a)

    def __repr__(self) -> str:
        return (
            f"Room(size={self.size}, edges={len(self.edge_tiles)}, "
            f"main={self.is_main_room}, accessible={self.is_accessible_from_main_room})"
        )


def _edge_tiles(tiles: Sequence[Coord], cells: np.ndarray) -> List[Coord]:
    """
    Tiles with a wall on an axis-aligned side. A tile is listed once per wall
    side; neighbours outside the grid count as walls.
    """
    edges: List[Coord] = []
    shape = cells.shape
    for tile in tiles:
        for axis in range(len(tile)):
            for step in (-1, 1):
                neighbour = list(tile)
                neighbour[axis] += step
                n = neighbour[axis]
                if n < 0 or n >= shape[axis] or cells[tuple(neighbour)] == TILE_WALL:
                    edges.append(tile)
    return edges


def _closest_tiles(
    room_a: Room, room_b: Room, block_rows: int = DISTANCE_BLOCK_ROWS
) -> Optional[Tuple[int, Coord, Coord]]:
    """Minimum squared distance between the two rooms' edge tiles, first pair wins ties.

    Rows of ``room_a`` are scanned in blocks so only ``block_rows x len(b)``
    distances are held at once.
    """
    a = room_a.edge_array
    b = room_b.edge_array
    if len(a) == 0 or len(b) == 0:
        return None
    best: Optional[Tuple[int, int, int]] = None
    for start in range(0, len(a), block_rows):
        diff = a[start : start + block_rows, None, :] - b[None, :, :]
        dist_sq = np.einsum("ijk,ijk->ij", diff, diff)
        flat = int(np.argmin(dist_sq))
        i, j = divmod(flat, len(b))
        distance = int(dist_sq[i, j])
        # Strict comparison keeps the earliest block on ties.
        if best is None or distance < best[0]:
            best = (distance, start + i, j)
    distance, i, j = best
    return distance, room_a.edge_tiles[i], room_b.edge_tiles[j]


class RoomGraph:
    """
    Orders rooms by size, seeds the largest as the main room and links every
    room into a graph reachable from it.

    ``on_connect`` is invoked with the chosen tile pair for every new link; the
    generator uses it to carve the passage.
    """

    def __init__(self, rooms: List[Room], on_connect: Optional[PassageCallback] = None):
        self.rooms: List[Room] = sorted(rooms, key=lambda room: room.size, reverse=True)
        self.on_connect = on_connect
        self.passages: List[Tuple[Coord, Coord]] = []
        if self.rooms:
            main = self.rooms[0]
            main.is_main_room = True
            main.is_accessible_from_main_room = True
        else:
            log.warning("No rooms survived pruning; nothing to connect")

    @property
    def main_room(self) -> Optional[Room]:
        return self.rooms[0] if self.rooms else None

    def connect_all(self) -> None:
        if not self.rooms:
            return
        self.connect_isolated_rooms()
        self.force_accessibility_from_main_room()
        log.info(
            "Rooms connected",
            rooms=len(self.rooms),
            passages=len(self.passages),
            unreachable=len(self.unreachable_rooms()),
        )

    def connect_isolated_rooms(self) -> None:
        """Link every room that has no connection yet to its nearest other room."""
        for room_a in self.rooms:
            if room_a.connected_rooms:
                continue
            best: Optional[Tuple[int, Coord, Coord]] = None
            best_room: Optional[Room] = None
            for room_b in self.rooms:
                if room_a is room_b or room_a.is_connected(room_b):
                    continue
                found = _closest_tiles(room_a, room_b)
                if found is not None and (best is None or found[0] < best[0]):
                    best, best_room = found, room_b
            if best is not None:
                self._create_passage(room_a, best_room, best[1], best[2])

    def force_accessibility_from_main_room(self) -> None:
        """
        Repeatedly link the closest unreachable/reachable pair until every room
        is reachable or no further link can be made.
        """
        while True:
            unreachable = self.unreachable_rooms()
            if not unreachable:
                return
            reachable = [r for r in self.rooms if r.is_accessible_from_main_room]
            best: Optional[Tuple[int, Coord, Coord]] = None
            best_pair: Optional[Tuple[Room, Room]] = None
            for room_a in unreachable:
                for room_b in reachable:
                    if room_a.is_connected(room_b):
                        continue
                    found = _closest_tiles(room_a, room_b)
                    if found is not None and (best is None or found[0] < best[0]):
                        best, best_pair = found, (room_a, room_b)
            if best is None:
                log.warning(
                    "Rooms left unreachable from main room",
                    count=len(unreachable),
                    sizes=[r.size for r in unreachable],
                )
                return
            self._create_passage(best_pair[0], best_pair[1], best[1], best[2])

    def _create_passage(self, room_a: Room, room_b: Room, tile_a: Coord, tile_b: Coord) -> None:
        Room.connect_rooms(room_a, room_b)
        self.passages.append((tile_a, tile_b))
        log.debug("Passage created", tile_a=tile_a, tile_b=tile_b)
        if self.on_connect is not None:
            self.on_connect(tile_a, tile_b)

    def unreachable_rooms(self) -> List[Room]:
        return [r for r in self.rooms if not r.is_accessible_from_main_room]

    def is_connected(self) -> bool:
        """True when every room can be reached from the main room via connections."""
        main = self.main_room
        if main is None:
            return True
        seen = {id(main)}
        stack = [main]
        while stack:
            room = stack.pop()
            for other in room.connected_rooms:
                if id(other) not in seen:
                    seen.add(id(other))
                    stack.append(other)
        return len(seen) == len(self.rooms)


__all__ = ["Room", "RoomGraph", "PassageCallback"]
