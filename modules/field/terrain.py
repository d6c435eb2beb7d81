"""Clear and refill the field dome through the voxel world interface.

Both passes walk the same set of columns: the horizontal disc of the sphere,
derived from the circle equation ``x² + z² <= r²``.  Each column owns the
voxels from the centre's ground plane up to the sphere surface, derived from
the sphere equation solved for height.
"""
from __future__ import annotations

import logging
import math
from typing import Iterator, Tuple

from modules.field.geometry import FieldBlocks, FieldGeometry, Point3
from modules.field.interfaces import FillPredicate, VoxelWorld
from utils.logger import log_calls

logger = logging.getLogger(__name__)

# Pulls the height bound below voxels sitting exactly on the sphere surface so
# float rounding cannot add an extra terrain shell.
HEIGHT_EPSILON = 0.001


def column_height(radius: int, dx: int, dz: int) -> int:
    """Return the highest vertical offset owned by column ``(dx, dz)``.

    The result is ``-1`` for columns touching the sphere only at ground level.
    """

    return math.floor(math.sqrt(radius * radius - dx * dx - dz * dz) - HEIGHT_EPSILON)


def disc_columns(radius: int) -> Iterator[Tuple[int, int, int]]:
    """Yield ``(dx, dz, height)`` for every column of the sphere's disc."""

    for dx in range(-radius, radius + 1):
        half_width = math.isqrt(radius * radius - dx * dx)
        for dz in range(-half_width, half_width + 1):
            yield dx, dz, column_height(radius, dx, dz)


def clear_sphere(world: VoxelWorld, center: Point3, radius: int, blocks: FieldBlocks) -> int:
    """Empty every non-shrine voxel inside the dome and return the write count."""

    cx, cy, cz = center
    written = 0
    for dx, dz, height in disc_columns(radius):
        for dy in range(height + 1):
            position = (cx + dx, cy + dy, cz + dz)
            block = world.get(position)
            if block != blocks.empty and block != blocks.shrine:
                world.set(position, blocks.empty)
                written += 1
    return written


def refill_sphere(
    world: VoxelWorld,
    center: Point3,
    radius: int,
    blocks: FieldBlocks,
    predicate: FillPredicate,
    seed: int,
) -> int:
    """Drop a filler block into the lowest free voxel of each selected column.

    Columns whose height bound is negative still own their ground voxel.
    Columns without any free voxel are left untouched.
    """

    cx, cy, cz = center
    written = 0
    for dx, dz, height in disc_columns(radius):
        if not predicate.should_place((cx + dx, cz + dz), seed):
            continue
        for dy in range(max(height, 0) + 1):
            position = (cx + dx, cy + dy, cz + dz)
            if world.get(position) == blocks.empty:
                world.set(position, blocks.filler)
                written += 1
                break
    return written


class TerrainRegenerator:
    """Deterministic terrain passes over the field dome.

    For a fixed seed, ``clear`` followed by ``refill`` always produces the same
    voxel set, which keeps route recomputation and tests reproducible.
    """

    def __init__(self, world: VoxelWorld, blocks: FieldBlocks, predicate: FillPredicate) -> None:
        self.world = world
        self.blocks = blocks
        self.predicate = predicate

    @log_calls
    def clear(self, geometry: FieldGeometry) -> int:
        written = clear_sphere(self.world, geometry.center, geometry.radius, self.blocks)
        logger.info("Cleared %d voxels from field of radius %d", written, geometry.radius)
        return written

    @log_calls
    def refill(self, geometry: FieldGeometry, seed: int) -> int:
        written = refill_sphere(
            self.world, geometry.center, geometry.radius, self.blocks, self.predicate, seed
        )
        logger.info("Placed %d filler blocks (seed=%d)", written, seed)
        return written

    def regenerate(self, geometry: FieldGeometry, seed: int) -> Tuple[int, int]:
        """Clear then refill; return both write counts."""

        return self.clear(geometry), self.refill(geometry, seed)


__all__ = [
    "HEIGHT_EPSILON",
    "TerrainRegenerator",
    "clear_sphere",
    "column_height",
    "disc_columns",
    "refill_sphere",
]
