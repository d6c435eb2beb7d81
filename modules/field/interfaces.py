"""Protocols for the collaborators the field drives but does not own."""
from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Mapping, Optional, Protocol, Tuple

from core.event_bus import Topic
from modules.field.geometry import Column, Point3

Route = Tuple[Point3, ...]
"""Ordered positions from an entrance to the centre."""


class VoxelWorld(Protocol):
    """Block storage addressed by integer voxel positions."""

    def get(self, position: Point3) -> str:
        ...

    def set(self, position: Point3, block: str) -> None:
        ...


class FillPredicate(Protocol):
    """Seeded noise deciding whether a column receives a filler block."""

    def should_place(self, column: Column, seed: int) -> bool:
        ...


class Pathfinder(Protocol):
    """Asynchronous route search.

    The returned future resolves with a route, or ``None`` when no route
    exists.  Futures may complete on any thread and in any order.
    """

    def find_route(self, start: Point3, goal: Point3) -> "Future[Optional[Route]]":
        ...


class EventPublisher(Protocol):
    def publish(self, topic: Topic, payload: Mapping[str, Any] | None = None, /, **kwargs: Any) -> None:
        ...


__all__ = [
    "EventPublisher",
    "FillPredicate",
    "Pathfinder",
    "Route",
    "VoxelWorld",
]
