from __future__ import annotations

import threading
import time
import unittest
from concurrent.futures import CancelledError, Future

import pytest

from core.events.topics import EventTopic
from modules.field.coordinator import PathCoordinator
from tests.helpers.field import ImmediatePathfinder, ManualPathfinder, RecordingBus, make_geometry

ROUTE_EAST = ((5, 0, 0), (0, 0, 0))
ROUTE_WEST = ((-5, 0, 0), (0, 0, 0))


class _Counter:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


class TestPathCoordinator(unittest.TestCase):
    def setUp(self) -> None:
        self.geometry = make_geometry(radius=5)
        self.pathfinder = ManualPathfinder()
        self.bus = RecordingBus()
        self.coordinator = PathCoordinator(self.pathfinder, 2, event_bus=self.bus)

    def test_start_wave_issues_one_request_per_entrance(self):
        handle = self.coordinator.start_wave(self.geometry)

        self.assertEqual(handle.epoch, 1)
        self.assertEqual(self.coordinator.outstanding, 2)
        self.assertEqual(
            [(start, goal) for start, goal, _ in self.pathfinder.requests],
            [((5, 0, 0), (0, 0, 0)), ((-5, 0, 0), (0, 0, 0))],
        )
        self.assertFalse(handle.done())

    def test_out_of_order_completions_fire_hook_once(self):
        hook = _Counter()
        handle = self.coordinator.start_wave(self.geometry, on_complete=hook)

        self.pathfinder.resolve(1, list(ROUTE_WEST))
        self.assertEqual(self.coordinator.route_table.route_for(1), ROUTE_WEST)
        self.assertIsNone(self.coordinator.route_table.route_for(0))
        self.assertEqual(self.coordinator.outstanding, 1)
        self.assertEqual(hook.calls, 0)

        self.pathfinder.resolve(0, None)
        self.assertEqual(self.coordinator.outstanding, 0)
        self.assertEqual(hook.calls, 1)
        self.assertEqual(handle.wait(0), (None, ROUTE_WEST))
        self.assertFalse(self.coordinator.pending)

        # A late repeat for the finished wave changes nothing.
        self.assertFalse(self.coordinator.handle_completion(handle.epoch, 0, ROUTE_EAST))
        self.assertEqual(hook.calls, 1)
        self.assertIsNone(self.coordinator.route_table.route_for(0))

    def test_overlapping_waves_discard_stale_completions(self):
        first_hook = _Counter()
        second_hook = _Counter()
        first = self.coordinator.start_wave(self.geometry, on_complete=first_hook)
        second = self.coordinator.start_wave(self.geometry, on_complete=second_hook)

        self.assertEqual((first.epoch, second.epoch), (1, 2))
        self.assertTrue(first.superseded)
        self.assertEqual(self.coordinator.outstanding, 2)

        self.pathfinder.resolve(0, list(ROUTE_EAST))
        self.pathfinder.resolve(1, list(ROUTE_WEST))
        self.assertEqual(self.coordinator.route_table.all_routes(), (None, None))
        self.assertEqual(self.coordinator.outstanding, 2)
        self.assertEqual(first_hook.calls, 0)

        self.pathfinder.resolve(3, list(ROUTE_WEST))
        self.pathfinder.resolve(2, list(ROUTE_EAST))
        self.assertEqual(self.coordinator.route_table.all_routes(), (ROUTE_EAST, ROUTE_WEST))
        self.assertEqual(second_hook.calls, 1)
        self.assertEqual(first_hook.calls, 0)
        with self.assertRaises(CancelledError):
            first.wait(0)

    def test_new_wave_keeps_previous_routes_until_resolved(self):
        self.coordinator.start_wave(self.geometry)
        self.pathfinder.resolve(0, list(ROUTE_EAST))
        self.pathfinder.resolve(1, list(ROUTE_WEST))

        self.coordinator.start_wave(self.geometry)
        self.assertEqual(self.coordinator.route_table.all_routes(), (ROUTE_EAST, ROUTE_WEST))

        self.pathfinder.resolve(3, None)
        self.assertEqual(self.coordinator.route_table.all_routes(), (ROUTE_EAST, None))

    def test_stale_completion_reports_discard(self):
        self.coordinator.start_wave(self.geometry)
        self.coordinator.start_wave(self.geometry)

        self.assertFalse(self.coordinator.handle_completion(1, 0, ROUTE_EAST))
        self.assertTrue(self.coordinator.handle_completion(2, 0, ROUTE_EAST))
        self.assertEqual(self.coordinator.outstanding, 1)

    def test_empty_route_is_recorded_as_absent(self):
        self.coordinator.start_wave(self.geometry)
        self.pathfinder.resolve(0, [])

        self.assertIsNone(self.coordinator.route_table.route_for(0))
        self.assertEqual(self.coordinator.outstanding, 1)

    def test_failed_request_is_recorded_as_absent(self):
        hook = _Counter()
        self.coordinator.start_wave(self.geometry, on_complete=hook)

        with self.assertLogs("modules.field.coordinator", level="WARNING"):
            self.pathfinder.fail(0, RuntimeError("search exploded"))
        self.pathfinder.future(1).cancel()

        self.assertEqual(self.coordinator.route_table.all_routes(), (None, None))
        self.assertEqual(hook.calls, 1)

    def test_request_that_raises_is_recorded_as_absent(self):
        class _Broken:
            def find_route(self, start, goal):
                raise ConnectionError("pathfinder offline")

        coordinator = PathCoordinator(_Broken(), 2)
        hook = _Counter()
        with self.assertLogs("modules.field.coordinator", level="WARNING"):
            handle = coordinator.start_wave(self.geometry, on_complete=hook)

        self.assertEqual(handle.wait(0), (None, None))
        self.assertEqual(hook.calls, 1)

    def test_synchronous_pathfinder_completes_inside_start_wave(self):
        pathfinder = ImmediatePathfinder(unreachable={(-5, 0, 0)})
        coordinator = PathCoordinator(pathfinder, 2)
        hook = _Counter()

        handle = coordinator.start_wave(self.geometry, on_complete=hook)

        self.assertTrue(handle.done())
        self.assertEqual(handle.wait(0), (ROUTE_EAST, None))
        self.assertEqual(hook.calls, 1)

    def test_hook_failure_is_logged_not_raised(self):
        def _explode():
            raise RuntimeError("listener bug")

        handle = self.coordinator.start_wave(self.geometry, on_complete=_explode)
        self.pathfinder.resolve(0, None)
        with self.assertLogs("modules.field.coordinator", level="ERROR"):
            self.pathfinder.resolve(1, None)

        self.assertEqual(handle.wait(0), (None, None))

    def test_hook_may_start_next_wave(self):
        handles = []

        def _restart():
            handles.append(self.coordinator.start_wave(self.geometry))

        self.coordinator.start_wave(self.geometry, on_complete=_restart)
        self.pathfinder.resolve(0, None)
        self.pathfinder.resolve(1, None)

        self.assertEqual(len(handles), 1)
        self.assertEqual(self.coordinator.epoch, 2)
        self.assertEqual(self.coordinator.outstanding, 2)

    def test_notifications_are_published(self):
        self.coordinator.start_wave(self.geometry)
        self.pathfinder.resolve(1, list(ROUTE_WEST))
        self.pathfinder.resolve(0, None)

        self.assertEqual(
            self.bus.topics(),
            [
                EventTopic.ROUTES_UPDATED.value,
                EventTopic.ROUTES_UPDATED.value,
                EventTopic.ROUTE_WAVE_COMPLETED.value,
            ],
        )
        first_update = self.bus.published[0][1]
        self.assertEqual(first_update, {"epoch": 1, "entrance_id": 1, "route": ROUTE_WEST})
        self.assertEqual(self.bus.published[-1][1], {"epoch": 1, "routes": (None, ROUTE_WEST)})

    def test_abandon_supersedes_without_new_requests(self):
        hook = _Counter()
        handle = self.coordinator.start_wave(self.geometry, on_complete=hook)

        self.coordinator.abandon()
        self.pathfinder.resolve(0, list(ROUTE_EAST))
        self.pathfinder.resolve(1, list(ROUTE_WEST))

        self.assertTrue(handle.superseded)
        self.assertEqual(hook.calls, 0)
        self.assertEqual(self.coordinator.route_table.all_routes(), (None, None))
        self.assertEqual(len(self.pathfinder.requests), 2)

    def test_entrance_count_mismatch_is_rejected(self):
        geometry = make_geometry(radius=5, entrances=[(5, 0, 0), (-5, 0, 0), (0, 0, 5)])

        with self.assertRaises(ValueError):
            self.coordinator.start_wave(geometry)


def test_timeout_resolves_unanswered_entrances_as_absent():
    pathfinder = ManualPathfinder()
    coordinator = PathCoordinator(pathfinder, 2, route_timeout=0.05)
    fired = threading.Event()

    handle = coordinator.start_wave(make_geometry(radius=5), on_complete=fired.set)
    pathfinder.resolve(0, list(ROUTE_EAST))

    assert handle.wait(5) == (ROUTE_EAST, None)
    assert fired.is_set()
    # The real answer arriving after the timeout is ignored.
    pathfinder.resolve(1, list(ROUTE_WEST))
    assert coordinator.route_table.route_for(1) is None


def test_timeout_does_not_fire_after_completion():
    pathfinder = ManualPathfinder()
    coordinator = PathCoordinator(pathfinder, 2, route_timeout=0.05)
    coordinator.start_wave(make_geometry(radius=5))
    pathfinder.resolve(0, list(ROUTE_EAST))
    pathfinder.resolve(1, list(ROUTE_WEST))

    time.sleep(0.15)

    assert coordinator.route_table.all_routes() == (ROUTE_EAST, ROUTE_WEST)


def test_invalid_timeout_is_rejected():
    with pytest.raises(ValueError):
        PathCoordinator(ManualPathfinder(), 1, route_timeout=0)


def test_concurrent_completions_fire_hook_exactly_once():
    entrances = [(10, 0, z) for z in range(-8, 9)] + [(-10, 0, z) for z in range(-8, 9)]
    geometry = make_geometry(radius=10, entrances=entrances)
    pathfinder = ManualPathfinder()
    coordinator = PathCoordinator(pathfinder, len(entrances))
    calls = []
    lock = threading.Lock()

    def _hook():
        with lock:
            calls.append(threading.current_thread().name)

    for _ in range(3):
        coordinator.start_wave(geometry, on_complete=_hook)
    current = pathfinder.requests[-len(entrances):]
    stale = pathfinder.requests[: -len(entrances)]
    barrier = threading.Barrier(8)

    def _deliver(chunk):
        barrier.wait()
        for start, _, future in chunk:
            future.set_result([start, (0, 0, 0)])

    everything = stale + current
    chunks = [everything[i::8] for i in range(8)]
    threads = [threading.Thread(target=_deliver, args=(chunk,)) for chunk in chunks]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 1
    assert coordinator.outstanding == 0
    assert coordinator.route_table.all_routes() == tuple(
        ((x, y, z), (0, 0, 0)) for x, y, z in entrances
    )


@pytest.mark.asyncio
async def test_wave_can_be_awaited():
    pathfinder = ManualPathfinder()
    coordinator = PathCoordinator(pathfinder, 2)
    handle = coordinator.start_wave(make_geometry(radius=5))

    threading.Timer(0.01, pathfinder.resolve, args=(0, None)).start()
    threading.Timer(0.02, pathfinder.resolve, args=(1, list(ROUTE_WEST))).start()

    assert await handle.wait_async(timeout=5) == (None, ROUTE_WEST)


def test_future_callbacks_receive_completed_future():
    future: Future = Future()
    future.set_result(None)
    coordinator = PathCoordinator(ManualPathfinder(), 1)
    geometry = make_geometry(radius=5, entrances=[(5, 0, 0)])
    coordinator.start_wave(geometry)

    coordinator._on_route_done(1, 0, future)

    assert coordinator.outstanding == 0
