"""Fan-out/fan-in coordination of per-entrance route requests.

A *wave* issues one asynchronous route request per entrance and folds the
completions into the shared :class:`~modules.field.routes.RouteTable`.  Waves
are numbered by a strictly increasing epoch; starting a new wave supersedes
the previous one, and any completion carrying an older epoch is discarded on
arrival.  In-flight requests are never aborted at the source.

Completions may arrive on pathfinder threads, out of order, and interleaved
with new ``start_wave`` calls.  Every piece of wave state is therefore read
and written under one coordinator lock.  Hooks, future resolution and event
publication run after the lock is released, which lets a completion hook
start another wave.
"""
from __future__ import annotations

import asyncio
import functools
import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Optional, Set, Tuple

from modules.field.events import RouteWaveCompleted, RoutesUpdated
from modules.field.geometry import FieldGeometry, Point3
from modules.field.interfaces import EventPublisher, Pathfinder, Route
from modules.field.routes import RouteTable

logger = logging.getLogger(__name__)

CompletionHook = Callable[[], None]
RouteSnapshot = Tuple[Optional[Route], ...]


class WaveHandle:
    """Caller-side view of one wave.

    ``future`` resolves with the route snapshot once every entrance of the
    wave has been accounted for.  It is cancelled if a newer wave supersedes
    this one first.
    """

    def __init__(self, epoch: int) -> None:
        self.epoch = epoch
        self.future: "Future[RouteSnapshot]" = Future()

    def __repr__(self) -> str:
        return f"WaveHandle(epoch={self.epoch}, done={self.future.done()})"

    def done(self) -> bool:
        return self.future.done()

    @property
    def superseded(self) -> bool:
        return self.future.cancelled()

    def wait(self, timeout: float | None = None) -> RouteSnapshot:
        """Block until the wave completes.

        Raises :class:`concurrent.futures.CancelledError` if the wave was
        superseded and :class:`TimeoutError` if ``timeout`` expires.
        """

        return self.future.result(timeout)

    async def wait_async(self, timeout: float | None = None) -> RouteSnapshot:
        """Await the wave from an asyncio host."""

        return await asyncio.wait_for(asyncio.wrap_future(self.future), timeout)


@dataclass
class _Wave:
    epoch: int
    pending: Set[int]
    on_complete: Optional[CompletionHook]
    handle: WaveHandle
    timer: Optional[threading.Timer] = None


class PathCoordinator:
    """Keep one route per entrance up to date across overlapping waves."""

    def __init__(
        self,
        pathfinder: Pathfinder,
        entrance_count: int,
        *,
        event_bus: Optional[EventPublisher] = None,
        route_timeout: Optional[float] = None,
    ) -> None:
        if route_timeout is not None and route_timeout <= 0:
            raise ValueError("route_timeout must be positive when provided")
        self._pathfinder = pathfinder
        self._routes = RouteTable(entrance_count)
        self._bus = event_bus
        self.route_timeout = route_timeout
        self._lock = threading.Lock()
        self._epoch = 0
        self._wave: Optional[_Wave] = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def route_table(self) -> RouteTable:
        return self._routes

    @property
    def epoch(self) -> int:
        """Epoch of the most recently started wave (0 before the first)."""

        with self._lock:
            return self._epoch

    @property
    def outstanding(self) -> int:
        """Number of entrances the current wave is still waiting on."""

        with self._lock:
            return len(self._wave.pending) if self._wave is not None else 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._wave is not None

    # ------------------------------------------------------------------
    # Wave control
    # ------------------------------------------------------------------
    def start_wave(
        self, geometry: FieldGeometry, on_complete: Optional[CompletionHook] = None
    ) -> WaveHandle:
        """Issue one route request per entrance and return immediately."""

        if geometry.entrance_count != len(self._routes):
            raise ValueError(
                f"geometry has {geometry.entrance_count} entrances, "
                f"coordinator was built for {len(self._routes)}"
            )

        with self._lock:
            self._epoch += 1
            epoch = self._epoch
            wave = _Wave(
                epoch=epoch,
                pending=set(range(geometry.entrance_count)),
                on_complete=on_complete,
                handle=WaveHandle(epoch),
            )
            if self.route_timeout is not None:
                wave.timer = threading.Timer(self.route_timeout, self._expire_wave, args=(epoch,))
                wave.timer.daemon = True
            superseded, self._wave = self._wave, wave

        if superseded is not None:
            self._retire(superseded)
        logger.debug("Starting route wave %d for %d entrances", epoch, geometry.entrance_count)

        if wave.timer is not None:
            wave.timer.start()
        for entrance_id, entrance in enumerate(geometry.entrances):
            self._request(epoch, entrance_id, entrance, geometry.center)
        return wave.handle

    def abandon(self) -> None:
        """Supersede the current wave without starting another."""

        with self._lock:
            wave, self._wave = self._wave, None
        if wave is not None:
            self._retire(wave)

    def handle_completion(self, epoch: int, entrance_id: int, route: Optional[Route]) -> bool:
        """Fold one route result into the table.

        Returns ``False`` when the result was discarded because its wave has
        been superseded or the entrance was already resolved.
        """

        with self._lock:
            wave = self._wave
            if wave is None or wave.epoch != epoch:
                logger.debug(
                    "Discarding stale route for entrance %d (epoch %d, current %d)",
                    entrance_id,
                    epoch,
                    self._epoch,
                )
                return False
            if entrance_id not in wave.pending:
                logger.debug("Ignoring repeated route for entrance %d in wave %d", entrance_id, epoch)
                return False

            self._routes._store(entrance_id, route)
            wave.pending.discard(entrance_id)
            finished = not wave.pending
            hook: Optional[CompletionHook] = None
            snapshot: RouteSnapshot = ()
            if finished:
                self._wave = None
                hook, wave.on_complete = wave.on_complete, None
                snapshot = self._routes.all_routes()

        self._emit(RoutesUpdated(epoch=epoch, entrance_id=entrance_id, route=route))
        if finished:
            self._finish(wave, hook, snapshot)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _request(self, epoch: int, entrance_id: int, start: Point3, goal: Point3) -> None:
        try:
            future = self._pathfinder.find_route(start, goal)
        except Exception:
            logger.warning("Route request for entrance %d could not be issued", entrance_id, exc_info=True)
            self.handle_completion(epoch, entrance_id, None)
            return
        future.add_done_callback(functools.partial(self._on_route_done, epoch, entrance_id))

    def _on_route_done(self, epoch: int, entrance_id: int, future: "Future[Optional[Route]]") -> None:
        route: Optional[Route] = None
        if future.cancelled():
            logger.warning("Route request for entrance %d was cancelled", entrance_id)
        elif future.exception() is not None:
            logger.warning(
                "Route request for entrance %d failed", entrance_id, exc_info=future.exception()
            )
        else:
            result = future.result()
            # An empty path means the search found nothing.
            route = tuple(result) if result else None
        self.handle_completion(epoch, entrance_id, route)

    def _expire_wave(self, epoch: int) -> None:
        with self._lock:
            wave = self._wave
            if wave is None or wave.epoch != epoch:
                return
            unresolved = sorted(wave.pending)
        logger.warning(
            "Route wave %d timed out after %.1fs; entrances %s recorded without route",
            epoch,
            self.route_timeout,
            unresolved,
        )
        for entrance_id in unresolved:
            self.handle_completion(epoch, entrance_id, None)

    def _retire(self, wave: _Wave) -> None:
        if wave.timer is not None:
            wave.timer.cancel()
        wave.handle.future.cancel()
        logger.debug("Route wave %d superseded with %d entrances outstanding", wave.epoch, len(wave.pending))

    def _finish(self, wave: _Wave, hook: Optional[CompletionHook], snapshot: RouteSnapshot) -> None:
        if wave.timer is not None:
            wave.timer.cancel()
        routed = sum(1 for route in snapshot if route is not None)
        logger.info("Route wave %d completed: %d/%d entrances routed", wave.epoch, routed, len(snapshot))
        if hook is not None:
            try:
                hook()
            except Exception:
                logger.exception("Completion hook for route wave %d failed", wave.epoch)
        self._emit(RouteWaveCompleted(epoch=wave.epoch, routes=snapshot))
        wave.handle.future.set_result(snapshot)

    def _emit(self, event: RoutesUpdated | RouteWaveCompleted) -> None:
        if self._bus is None:
            return
        try:
            event.publish(self._bus)
        except Exception:
            logger.exception("Subscriber for %s failed", event.topic.value)


__all__ = ["CompletionHook", "PathCoordinator", "RouteSnapshot", "WaveHandle"]
