"""Command line interface to build, activate and inspect a defence field."""
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from concurrent.futures import TimeoutError as WaitTimeout
from typing import Optional, Sequence

from config.config_loader import DEFAULT_CONFIG_FILE, ConfigLoader
from modules.field.adapters import ExecutorPathfinder, InMemoryVoxelWorld, VoxelRouteSearch
from modules.field.coordinator import RouteSnapshot
from modules.field.geometry import FieldConfigError
from modules.field.settings import FieldSettings, load_field_settings
from modules.field.systems.field_system import build_field
from utils.logger import configure_console_logging

# Extra time granted on top of the route timeout before giving up on a wave.
WAIT_MARGIN = 5.0
# Upper bound on waiting for a wave when routes never time out.
DEFAULT_WAIT = 300.0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Activate a defence field and print its entrance routes.")
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="Path to the YAML field configuration.")
    parser.add_argument("--seed", type=int, default=None, help="Noise seed overriding terrain.noise_seed.")
    parser.add_argument("--reset", action="store_true", help="Reset the terrain once after activation.")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Route timeout in seconds overriding pathfinding.route_timeout.",
    )
    parser.add_argument(
        "--wait",
        type=float,
        default=None,
        help="Seconds to wait for each route wave (default: route timeout plus a margin).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def _apply_overrides(settings: FieldSettings, args: argparse.Namespace) -> FieldSettings:
    if args.seed is not None:
        settings = dataclasses.replace(
            settings, terrain=dataclasses.replace(settings.terrain, noise_seed=args.seed)
        )
    if args.timeout is not None:
        settings = dataclasses.replace(
            settings, pathfinding=dataclasses.replace(settings.pathfinding, route_timeout=args.timeout)
        )
    return settings


def _search_reach(settings: FieldSettings) -> int:
    cx, _, cz = settings.geometry.center
    furthest = max(max(abs(x - cx), abs(z - cz)) for x, _, z in settings.geometry.entrances)
    return max(settings.geometry.radius, furthest) + 1


def _wait_timeout(settings: FieldSettings, requested: Optional[float]) -> float:
    if requested is not None:
        return requested
    route_timeout = settings.pathfinding.route_timeout
    if route_timeout is None:
        return DEFAULT_WAIT
    return route_timeout + WAIT_MARGIN


def _print_routes(routes: RouteSnapshot) -> None:
    for entrance_id, route in enumerate(routes):
        if route is None:
            print(f"entrance {entrance_id}: no route")
        else:
            print(f"entrance {entrance_id}: {len(route)} steps from {route[0]} to {route[-1]}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_console_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = _apply_overrides(load_field_settings(ConfigLoader(args.config)), args)
    except FieldConfigError as exc:
        parser.exit(2, f"configuration error: {exc}\n")

    geometry = settings.geometry
    blocks = settings.blocks
    world = InMemoryVoxelWorld(default=blocks.empty, blocks={geometry.center: blocks.shrine})
    search = VoxelRouteSearch(world, blocks.empty, geometry.center, _search_reach(settings), geometry.radius)

    wait = _wait_timeout(settings, args.wait)

    with ExecutorPathfinder(search, workers=settings.pathfinding.workers) as pathfinder:
        field = build_field(settings, world, pathfinder)
        try:
            routes = field.lifecycle.activate().wait(wait)
            if args.reset:
                routes = field.lifecycle.reset().wait(wait)
        except WaitTimeout:
            print(f"routes not ready after {wait:.1f}s", file=sys.stderr)
            return 1
        finally:
            field.shutdown()

    _print_routes(routes)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
