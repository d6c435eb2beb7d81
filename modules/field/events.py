"""Event definitions for field activation, resets and route publication."""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Protocol, Tuple, runtime_checkable

from core.events.topics import EventTopic
from modules.field.geometry import Point3
from modules.field.interfaces import Route


@runtime_checkable
class _PublishesEvents(Protocol):
    """Protocol capturing the subset of the event bus used here."""

    def publish(self, event_type: EventTopic, **payload: object) -> None:
        """Publish an event to all subscribers."""


@dataclass(frozen=True, slots=True)
class ActivateField:
    """Request bringing the field online."""

    topic: ClassVar[EventTopic] = EventTopic.ACTIVATE_FIELD

    def publish(self, bus: _PublishesEvents) -> None:
        """Convenience helper mirroring ``EventBus.publish``."""

        bus.publish(self.topic)


@dataclass(frozen=True, slots=True)
class ResetField:
    """Request regenerating the field terrain, optionally with ``seed``."""

    seed: Optional[int] = None

    topic: ClassVar[EventTopic] = EventTopic.RESET_FIELD

    def publish(self, bus: _PublishesEvents) -> None:
        bus.publish(self.topic, seed=self.seed)


@dataclass(frozen=True, slots=True)
class TerrainChanged:
    """A block was placed or removed; routes may be out of date."""

    position: Optional[Point3] = None

    topic: ClassVar[EventTopic] = EventTopic.TERRAIN_CHANGED

    def publish(self, bus: _PublishesEvents) -> None:
        bus.publish(self.topic, position=self.position)


@dataclass(frozen=True, slots=True)
class FieldActivationStarted:
    """Notification that activation has begun."""

    topic: ClassVar[EventTopic] = EventTopic.FIELD_ACTIVATION_STARTED

    def publish(self, bus: _PublishesEvents) -> None:
        bus.publish(self.topic)


@dataclass(frozen=True, slots=True)
class FieldActivated:
    """Notification that the first route wave completed and the field is live."""

    topic: ClassVar[EventTopic] = EventTopic.FIELD_ACTIVATED

    def publish(self, bus: _PublishesEvents) -> None:
        bus.publish(self.topic)


@dataclass(frozen=True, slots=True)
class FieldReset:
    """Notification that the terrain was regenerated with ``seed``."""

    seed: int

    topic: ClassVar[EventTopic] = EventTopic.FIELD_RESET

    def publish(self, bus: _PublishesEvents) -> None:
        bus.publish(self.topic, seed=self.seed)


@dataclass(frozen=True, slots=True)
class RoutesUpdated:
    """One entrance received a new route (or lost its route)."""

    epoch: int
    entrance_id: int
    route: Optional[Route]

    topic: ClassVar[EventTopic] = EventTopic.ROUTES_UPDATED

    def publish(self, bus: _PublishesEvents) -> None:
        bus.publish(self.topic, epoch=self.epoch, entrance_id=self.entrance_id, route=self.route)


@dataclass(frozen=True, slots=True)
class RouteWaveCompleted:
    """Every entrance of wave ``epoch`` has been accounted for."""

    epoch: int
    routes: Tuple[Optional[Route], ...]

    topic: ClassVar[EventTopic] = EventTopic.ROUTE_WAVE_COMPLETED

    def publish(self, bus: _PublishesEvents) -> None:
        bus.publish(self.topic, epoch=self.epoch, routes=self.routes)


__all__ = [
    "ActivateField",
    "FieldActivated",
    "FieldActivationStarted",
    "FieldReset",
    "ResetField",
    "RouteWaveCompleted",
    "RoutesUpdated",
    "TerrainChanged",
]
