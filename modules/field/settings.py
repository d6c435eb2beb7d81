"""Validated field configuration built from the YAML config loader."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional

from config.config_loader import ConfigLoader
from modules.field.geometry import FieldBlocks, FieldConfigError, FieldGeometry
from modules.field.lifecycle import SeedSource

TIME_SEED = "time"
DEFAULT_ROUTE_TIMEOUT = 30.0
DEFAULT_WORKERS = 4


def time_seed() -> int:
    """Return the current wall-clock time in milliseconds."""

    return time.time_ns() // 1_000_000


@dataclass(frozen=True, slots=True)
class TerrainSettings:
    """Refill noise parameters; ``noise_seed`` of ``None`` draws from the clock."""

    noise_seed: Optional[int]
    fill_chance: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.fill_chance <= 1.0:
            raise FieldConfigError("terrain.fill_chance must lie between 0 and 1")

    def seed_source(self) -> SeedSource:
        if self.noise_seed is None:
            return time_seed
        seed = self.noise_seed
        return lambda: seed


@dataclass(frozen=True, slots=True)
class PathfindingSettings:
    route_timeout: Optional[float]
    workers: int

    def __post_init__(self) -> None:
        if self.route_timeout is not None and self.route_timeout <= 0:
            raise FieldConfigError("pathfinding.route_timeout must be positive or null")
        if self.workers < 1:
            raise FieldConfigError("pathfinding.workers must be at least 1")


@dataclass(frozen=True, slots=True)
class FieldSettings:
    geometry: FieldGeometry
    blocks: FieldBlocks
    terrain: TerrainSettings
    pathfinding: PathfindingSettings
    regenerate_on_activate: bool = True


def _require(loader: ConfigLoader, *keys: str) -> Any:
    try:
        return loader.get(*keys)
    except KeyError as exc:
        raise FieldConfigError(f"missing configuration key {'.'.join(keys)}") from exc


def _parse_seed(value: Any) -> Optional[int]:
    if value == TIME_SEED:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise FieldConfigError(f"terrain.noise_seed must be an integer or '{TIME_SEED}', got {value!r}")
    return value


def _parse_number(value: Any, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FieldConfigError(f"{label} must be a number, got {value!r}")
    return float(value)


def load_field_settings(loader: ConfigLoader) -> FieldSettings:
    """Build :class:`FieldSettings` from ``loader``.

    Raises :class:`FieldConfigError` for any missing or malformed value; the
    caller is expected to abort startup.
    """

    geometry = FieldGeometry.from_values(
        center=_require(loader, "field", "center"),
        radius=_require(loader, "field", "radius"),
        entrances=_require(loader, "field", "entrances"),
    )
    blocks = FieldBlocks(
        empty=_require(loader, "blocks", "empty"),
        shrine=_require(loader, "blocks", "shrine"),
        filler=_require(loader, "blocks", "filler"),
    )
    terrain = TerrainSettings(
        noise_seed=_parse_seed(loader.get("terrain", "noise_seed", default=TIME_SEED)),
        fill_chance=_parse_number(_require(loader, "terrain", "fill_chance"), "terrain.fill_chance"),
    )

    timeout = loader.get("pathfinding", "route_timeout", default=DEFAULT_ROUTE_TIMEOUT)
    workers = loader.get("pathfinding", "workers", default=DEFAULT_WORKERS)
    if isinstance(workers, bool) or not isinstance(workers, int):
        raise FieldConfigError(f"pathfinding.workers must be an integer, got {workers!r}")
    pathfinding = PathfindingSettings(
        route_timeout=None if timeout is None else _parse_number(timeout, "pathfinding.route_timeout"),
        workers=workers,
    )

    regenerate = loader.get("field", "regenerate_on_activate", default=True)
    if not isinstance(regenerate, bool):
        raise FieldConfigError("field.regenerate_on_activate must be a boolean")

    return FieldSettings(
        geometry=geometry,
        blocks=blocks,
        terrain=terrain,
        pathfinding=pathfinding,
        regenerate_on_activate=regenerate,
    )


__all__ = [
    "FieldSettings",
    "PathfindingSettings",
    "TerrainSettings",
    "load_field_settings",
    "time_seed",
]
