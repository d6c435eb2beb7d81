"""Defence field: terrain regeneration and per-entrance route upkeep."""

from .coordinator import PathCoordinator, WaveHandle
from .geometry import FieldBlocks, FieldConfigError, FieldGeometry, Point3
from .lifecycle import FieldLifecycle, LifecycleState
from .routes import RouteTable
from .settings import FieldSettings, load_field_settings
from .terrain import TerrainRegenerator, clear_sphere, refill_sphere

__all__ = [
    "FieldBlocks",
    "FieldConfigError",
    "FieldGeometry",
    "FieldLifecycle",
    "FieldSettings",
    "LifecycleState",
    "PathCoordinator",
    "Point3",
    "RouteTable",
    "TerrainRegenerator",
    "WaveHandle",
    "clear_sphere",
    "load_field_settings",
    "refill_sphere",
]
