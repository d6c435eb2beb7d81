"""Canonical registry of event bus topics used by the defence field.

Each entry is declared as a :class:`~enum.Enum` member and documents the
producer, the intended consumers and the payload guarantees for the associated
event.  Importing modules should rely on the enum members (e.g.
``topics.EventTopic.ROUTES_UPDATED``) to avoid drifting topic names and hidden
couplings between systems.
"""

from __future__ import annotations

from enum import Enum

__all__ = ["EventTopic"]


class EventTopic(str, Enum):
    """Enumeration of every topic published on the field event bus."""

    ACTIVATE_FIELD = "field.activate"
    """Published by gameplay triggers asking for the field to come online.

    Subscribers: :class:`modules.field.systems.field_system.FieldSystem`.
    Guarantees: carries no payload.
    """

    RESET_FIELD = "field.reset_requested"
    """Published by gameplay triggers asking for the terrain to be regenerated.

    Subscribers: the field system.
    Guarantees: may carry an optional integer ``seed``.
    """

    TERRAIN_CHANGED = "field.terrain_changed"
    """Published by the world glue whenever a block is placed or removed.

    Subscribers: the field system, which schedules a route recomputation.
    Guarantees: may carry the changed ``position`` as an ``(x, y, z)`` tuple.
    """

    FIELD_ACTIVATION_STARTED = "field.activation_started"
    """Published by :class:`modules.field.lifecycle.FieldLifecycle`.

    Subscribers: the shrine collaborator and UI indicators.
    Guarantees: carries no payload; emitted once per activation.
    """

    FIELD_ACTIVATED = "field.activated"
    """Published by the lifecycle once the first route wave has completed.

    Subscribers: the shrine collaborator, wave spawners.
    Guarantees: carries no payload; emitted once per activation.
    """

    FIELD_RESET = "field.reset"
    """Published by the lifecycle after the terrain has been regenerated.

    Subscribers: renderers that cache terrain, analytics.
    Guarantees: includes the ``seed`` used for the refill.
    """

    ROUTES_UPDATED = "field.routes_updated"
    """Published by :class:`modules.field.coordinator.PathCoordinator`.

    Subscribers: route renderers and enemy movement controllers.
    Guarantees: includes ``epoch``, ``entrance_id`` and ``route`` (``None``
    when no route exists).
    """

    ROUTE_WAVE_COMPLETED = "field.route_wave_completed"
    """Published by the coordinator once every entrance of a wave resolved.

    Subscribers: UI layers and logging sinks.
    Guarantees: includes ``epoch`` and the ``routes`` tuple indexed by
    entrance id.
    """
