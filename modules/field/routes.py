"""Published per-entrance routes, readable by renderers and gameplay."""
from __future__ import annotations

import threading
from typing import List, Optional, Tuple

from modules.field.interfaces import Route


class RouteTable:
    """Latest known route for each entrance id.

    Entries are replaced one at a time as completions arrive, so a reader may
    observe routes from different waves side by side but never a cleared
    table.  Only :class:`~modules.field.coordinator.PathCoordinator` writes.
    """

    def __init__(self, entrance_count: int) -> None:
        if entrance_count < 1:
            raise ValueError("entrance_count must be positive")
        self._routes: List[Optional[Route]] = [None] * entrance_count
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._routes)

    def route_for(self, entrance_id: int) -> Optional[Route]:
        """Return the route for ``entrance_id`` or ``None`` if there is none."""

        if not 0 <= entrance_id < len(self._routes):
            raise IndexError(f"unknown entrance id {entrance_id}")
        with self._lock:
            return self._routes[entrance_id]

    def all_routes(self) -> Tuple[Optional[Route], ...]:
        """Return every route ordered by entrance id."""

        with self._lock:
            return tuple(self._routes)

    snapshot = all_routes

    def _store(self, entrance_id: int, route: Optional[Route]) -> None:
        with self._lock:
            self._routes[entrance_id] = route


__all__ = ["RouteTable"]
