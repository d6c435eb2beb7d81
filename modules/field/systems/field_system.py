from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Protocol

from core.event_bus import EventBus, Topic
from modules.field.adapters import WhiteNoiseFill
from modules.field.coordinator import PathCoordinator
from modules.field.events import ActivateField, ResetField, TerrainChanged
from modules.field.geometry import Point3
from modules.field.interfaces import FillPredicate, Pathfinder, VoxelWorld
from modules.field.lifecycle import FieldLifecycle
from modules.field.settings import FieldSettings
from modules.field.terrain import TerrainRegenerator


logger = logging.getLogger(__name__)


class _EventBus(Protocol):
    def subscribe(self, event_type: Topic, callback: Callable[..., None]) -> None:
        ...

    def unsubscribe(self, event_type: Topic, callback: Callable[..., None]) -> None:
        ...

    def publish(
        self, event_type: Topic, payload: Mapping[str, object] | None = None, /, **kwargs: object
    ) -> None:
        ...


class FieldSystem:
    """Translate field request events into lifecycle calls."""

    def __init__(self, lifecycle: FieldLifecycle, *, event_bus: _EventBus) -> None:
        self.lifecycle = lifecycle
        self._bus = event_bus
        self._bus.subscribe(ActivateField.topic, self._on_activate_requested)
        self._bus.subscribe(ResetField.topic, self._on_reset_requested)
        self._bus.subscribe(TerrainChanged.topic, self._on_terrain_changed)

    def detach(self) -> None:
        self._bus.unsubscribe(ActivateField.topic, self._on_activate_requested)
        self._bus.unsubscribe(ResetField.topic, self._on_reset_requested)
        self._bus.unsubscribe(TerrainChanged.topic, self._on_terrain_changed)

    def _on_activate_requested(self, **_: object) -> None:
        self.lifecycle.activate()

    def _on_reset_requested(self, *, seed: Optional[int] = None, **_: object) -> None:
        self.lifecycle.reset(seed)

    def _on_terrain_changed(self, *, position: Optional[Point3] = None, **_: object) -> None:
        self.lifecycle.terrain_changed(position)


@dataclass
class Field:
    """Every runtime object of one loaded field, wired together."""

    settings: FieldSettings
    event_bus: EventBus
    regenerator: TerrainRegenerator
    coordinator: PathCoordinator
    lifecycle: FieldLifecycle
    system: FieldSystem

    def shutdown(self) -> None:
        self.system.detach()
        self.lifecycle.shutdown()


def build_field(
    settings: FieldSettings,
    world: VoxelWorld,
    pathfinder: Pathfinder,
    *,
    fill_predicate: Optional[FillPredicate] = None,
    event_bus: Optional[EventBus] = None,
) -> Field:
    """Compose the field from validated settings and engine collaborators."""

    bus = event_bus if event_bus is not None else EventBus()
    predicate = fill_predicate if fill_predicate is not None else WhiteNoiseFill(settings.terrain.fill_chance)
    regenerator = TerrainRegenerator(world, settings.blocks, predicate)
    coordinator = PathCoordinator(
        pathfinder,
        settings.geometry.entrance_count,
        event_bus=bus,
        route_timeout=settings.pathfinding.route_timeout,
    )
    lifecycle = FieldLifecycle(
        settings.geometry,
        regenerator,
        coordinator,
        settings.terrain.seed_source(),
        event_bus=bus,
        regenerate_on_activate=settings.regenerate_on_activate,
    )
    system = FieldSystem(lifecycle, event_bus=bus)
    logger.debug(
        "Field built: radius=%d entrances=%d timeout=%s",
        settings.geometry.radius,
        settings.geometry.entrance_count,
        settings.pathfinding.route_timeout,
    )
    return Field(
        settings=settings,
        event_bus=bus,
        regenerator=regenerator,
        coordinator=coordinator,
        lifecycle=lifecycle,
        system=system,
    )


__all__ = ["Field", "FieldSystem", "build_field"]
