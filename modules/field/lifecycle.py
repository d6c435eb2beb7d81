"""Activation state machine for the defence field."""
from __future__ import annotations

import functools
import logging
import threading
from enum import Enum
from typing import Callable, Optional

from modules.field.coordinator import PathCoordinator, WaveHandle
from modules.field.events import FieldActivated, FieldActivationStarted, FieldReset
from modules.field.geometry import FieldGeometry, Point3
from modules.field.interfaces import EventPublisher
from modules.field.terrain import TerrainRegenerator

logger = logging.getLogger(__name__)

SeedSource = Callable[[], int]


class LifecycleState(str, Enum):
    INACTIVE = "inactive"
    ACTIVATING = "activating"
    ACTIVE = "active"


class FieldLifecycle:
    """Own the field state and route every trigger to terrain and paths.

    One instance exists per loaded world; the composition root creates it at
    startup and calls :meth:`shutdown` when the world unloads.  Redundant
    calls (activating twice, resetting an inactive field) are no-ops.
    """

    def __init__(
        self,
        geometry: FieldGeometry,
        regenerator: TerrainRegenerator,
        coordinator: PathCoordinator,
        seed_source: SeedSource,
        *,
        event_bus: Optional[EventPublisher] = None,
        regenerate_on_activate: bool = True,
    ) -> None:
        self.geometry = geometry
        self.regenerator = regenerator
        self.coordinator = coordinator
        self.seed_source = seed_source
        self.regenerate_on_activate = regenerate_on_activate
        self._bus = event_bus
        self._state = LifecycleState.INACTIVE
        # Bumped per activation and on shutdown; a hook only completes its own.
        self._activation = 0
        # The activation hook runs on a pathfinder thread.
        self._lock = threading.Lock()

    @property
    def state(self) -> LifecycleState:
        with self._lock:
            return self._state

    @property
    def is_active(self) -> bool:
        return self.state is LifecycleState.ACTIVE

    def activate(self) -> Optional[WaveHandle]:
        """Bring an inactive field online; ignored in any other state."""

        with self._lock:
            if self._state is not LifecycleState.INACTIVE:
                logger.debug("Ignoring activation while field is %s", self._state.value)
                return None
            self._state = LifecycleState.ACTIVATING
            self._activation += 1
            hook = functools.partial(self._activation_complete, self._activation)

        logger.info("Setting up the field.")
        self._emit(FieldActivationStarted())
        try:
            if self.regenerate_on_activate:
                self.regenerator.regenerate(self.geometry, self.seed_source())
            return self.coordinator.start_wave(self.geometry, on_complete=hook)
        except Exception:
            with self._lock:
                self._state = LifecycleState.INACTIVE
            logger.exception("Field activation failed")
            raise

    def reset(self, seed: Optional[int] = None) -> Optional[WaveHandle]:
        """Regenerate the terrain of an active field and recompute routes."""

        with self._lock:
            if self._state is not LifecycleState.ACTIVE:
                logger.debug("Ignoring reset while field is %s", self._state.value)
                return None

        if seed is None:
            seed = self.seed_source()
        logger.info("Resetting field terrain (seed=%d)", seed)
        self.regenerator.regenerate(self.geometry, seed)
        self._emit(FieldReset(seed=seed))
        return self.coordinator.start_wave(self.geometry)

    def terrain_changed(self, position: Optional[Point3] = None) -> Optional[WaveHandle]:
        """Recompute routes after a block was placed or removed."""

        with self._lock:
            state = self._state
            activation = self._activation
        if state is LifecycleState.INACTIVE:
            return None
        logger.debug("Terrain changed at %s; recomputing routes", position)
        if state is LifecycleState.ACTIVATING:
            # The superseded activation wave never fires its hook, so carry it.
            return self.coordinator.start_wave(
                self.geometry, on_complete=functools.partial(self._activation_complete, activation)
            )
        return self.coordinator.start_wave(self.geometry)

    def shutdown(self) -> None:
        """Drop the pending wave and return to the inactive state."""

        self.coordinator.abandon()
        with self._lock:
            self._state = LifecycleState.INACTIVE
            self._activation += 1
        logger.info("Field shut down.")

    def _activation_complete(self, activation: int) -> None:
        with self._lock:
            if self._state is not LifecycleState.ACTIVATING or activation != self._activation:
                logger.debug("Dropping completion of activation %d", activation)
                return
            self._state = LifecycleState.ACTIVE
        logger.info("Field activated.")
        self._emit(FieldActivated())

    def _emit(self, event) -> None:
        if self._bus is None:
            return
        try:
            event.publish(self._bus)
        except Exception:
            logger.exception("Subscriber for %s failed", event.topic.value)


__all__ = ["FieldLifecycle", "LifecycleState", "SeedSource"]
