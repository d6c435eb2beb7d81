"""Reference implementations of the field's external collaborators.

The game engine normally supplies the voxel world, the noise and the route
search.  These adapters back the command line tool and the integration
tests with the same contracts.
"""
from __future__ import annotations

from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Iterator, Mapping, Optional

import numpy as np

from modules.field.geometry import Column, Point3
from modules.field.interfaces import Route

RouteSearch = Callable[[Point3, Point3], Optional[Route]]

_SEED_MASK = (1 << 64) - 1
# Shifts column coordinates into the non-negative range SeedSequence accepts.
_COORD_OFFSET = 1 << 31


class InMemoryVoxelWorld:
    """Sparse voxel store; positions never written hold ``default``."""

    def __init__(self, default: str, blocks: Optional[Mapping[Point3, str]] = None) -> None:
        self.default = default
        self._blocks: Dict[Point3, str] = {}
        for position, block in (blocks or {}).items():
            self.set(position, block)

    def __len__(self) -> int:
        return len(self._blocks)

    def get(self, position: Point3) -> str:
        return self._blocks.get(position, self.default)

    def set(self, position: Point3, block: str) -> None:
        if block == self.default:
            self._blocks.pop(position, None)
        else:
            self._blocks[position] = block

    def solid_blocks(self) -> Dict[Point3, str]:
        """Return a copy of every position not holding the default block."""

        return dict(self._blocks)


class WhiteNoiseFill:
    """Place a block in a column with probability ``chance``.

    Each ``(seed, x, z)`` triple seeds its own generator, so the answer for a
    column does not depend on iteration order.
    """

    def __init__(self, chance: float) -> None:
        if not 0.0 <= chance <= 1.0:
            raise ValueError("chance must lie between 0 and 1")
        self.chance = chance

    def sample(self, column: Column, seed: int) -> float:
        x, z = column
        rng = np.random.default_rng([seed & _SEED_MASK, x + _COORD_OFFSET, z + _COORD_OFFSET])
        return float(rng.random())

    def should_place(self, column: Column, seed: int) -> bool:
        return self.sample(column, seed) < self.chance


class VoxelRouteSearch:
    """Breadth-first walk over standable voxels of the field.

    A voxel is standable when it is empty and rests on the ground plane or on
    a solid voxel.  Each step moves one column horizontally and at most one
    voxel up or down.  The goal may be solid (the shrine is).
    """

    def __init__(self, world, empty_block: str, center: Point3, reach: int, height: int) -> None:
        self.world = world
        self.empty_block = empty_block
        self.center = center
        self.reach = reach
        self.height = height

    def __call__(self, start: Point3, goal: Point3) -> Optional[Route]:
        return self.search(start, goal)

    def _in_bounds(self, position: Point3) -> bool:
        x, y, z = position
        cx, cy, cz = self.center
        return (
            abs(x - cx) <= self.reach
            and abs(z - cz) <= self.reach
            and cy <= y <= cy + self.height
        )

    def _standable(self, position: Point3) -> bool:
        if not self._in_bounds(position):
            return False
        if self.world.get(position) != self.empty_block:
            return False
        x, y, z = position
        return y == self.center[1] or self.world.get((x, y - 1, z)) != self.empty_block

    @staticmethod
    def _neighbours(position: Point3) -> Iterator[Point3]:
        x, y, z = position
        for dx, dz in ((1, 0), (-1, 0), (0, 1), (0, -1)):
            for dy in (0, 1, -1):
                yield (x + dx, y + dy, z + dz)

    def search(self, start: Point3, goal: Point3) -> Optional[Route]:
        if start == goal:
            return (start,)
        parents: Dict[Point3, Optional[Point3]] = {start: None}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for nxt in self._neighbours(current):
                if nxt in parents:
                    continue
                if nxt != goal and not self._standable(nxt):
                    continue
                parents[nxt] = current
                if nxt == goal:
                    return self._rebuild(parents, goal)
                queue.append(nxt)
        return None

    @staticmethod
    def _rebuild(parents: Dict[Point3, Optional[Point3]], goal: Point3) -> Route:
        path = []
        node: Optional[Point3] = goal
        while node is not None:
            path.append(node)
            node = parents[node]
        path.reverse()
        return tuple(path)


class ExecutorPathfinder:
    """Run a synchronous route search on a thread pool."""

    def __init__(self, search: RouteSearch, workers: int = 4) -> None:
        self._search = search
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="route-search")

    def find_route(self, start: Point3, goal: Point3) -> "Future[Optional[Route]]":
        return self._executor.submit(self._search, start, goal)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=not wait)

    def __enter__(self) -> "ExecutorPathfinder":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


__all__ = [
    "ExecutorPathfinder",
    "InMemoryVoxelWorld",
    "RouteSearch",
    "VoxelRouteSearch",
    "WhiteNoiseFill",
]
