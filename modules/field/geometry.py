"""Static description of the defence field: its sphere, shrine and entrances."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

Point3 = Tuple[int, int, int]
Column = Tuple[int, int]


class FieldConfigError(ValueError):
    """Raised when the field configuration is missing or malformed.

    Configuration errors are fatal at startup; nothing in the field recovers
    from them.
    """


def _as_point(value: object, *, label: str) -> Point3:
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise FieldConfigError(f"{label} must be a sequence of three integers, got {value!r}")
    coords = tuple(value)
    if len(coords) != 3 or not all(isinstance(c, int) and not isinstance(c, bool) for c in coords):
        raise FieldConfigError(f"{label} must be a sequence of three integers, got {value!r}")
    return coords  # type: ignore[return-value]


def squared_distance(a: Point3, b: Point3) -> int:
    """Return the squared euclidean distance between two voxel positions."""

    return (a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 + (a[2] - b[2]) ** 2


@dataclass(frozen=True, slots=True)
class FieldGeometry:
    """Immutable sphere, centre and ordered entrance list of the field.

    The entrance index is its identifier for the lifetime of the process.
    Every entrance lies on or outside the sphere surface.
    """

    center: Point3
    radius: int
    entrances: Tuple[Point3, ...]

    def __post_init__(self) -> None:
        center = _as_point(self.center, label="center")
        if isinstance(self.radius, bool) or not isinstance(self.radius, int):
            raise FieldConfigError(f"radius must be an integer, got {self.radius!r}")
        if self.radius <= 0:
            raise FieldConfigError("radius must be positive")

        entrances = tuple(
            _as_point(entrance, label=f"entrance {index}")
            for index, entrance in enumerate(self.entrances)
        )
        if not entrances:
            raise FieldConfigError("at least one entrance is required")
        if len(set(entrances)) != len(entrances):
            raise FieldConfigError("entrance positions must be distinct")

        radius_sq = self.radius * self.radius
        for index, entrance in enumerate(entrances):
            if squared_distance(entrance, center) < radius_sq:
                raise FieldConfigError(
                    f"entrance {index} at {entrance} lies inside the field sphere"
                )

        object.__setattr__(self, "center", center)
        object.__setattr__(self, "entrances", entrances)

    @classmethod
    def from_values(
        cls, center: Sequence[int], radius: int, entrances: Iterable[Sequence[int]]
    ) -> "FieldGeometry":
        """Build a geometry from loosely typed configuration values."""

        if isinstance(entrances, (str, bytes)) or not isinstance(entrances, Iterable):
            raise FieldConfigError(f"entrances must be a list of positions, got {entrances!r}")
        return cls(center=center, radius=radius, entrances=tuple(entrances))  # type: ignore[arg-type]

    @property
    def entrance_count(self) -> int:
        return len(self.entrances)

    def contains(self, point: Point3) -> bool:
        """Return ``True`` when ``point`` lies inside the field dome.

        The dome spans the centre's ground plane and everything above it
        within ``radius``.
        """

        if point[1] < self.center[1]:
            return False
        return squared_distance(point, self.center) <= self.radius * self.radius


@dataclass(frozen=True, slots=True)
class FieldBlocks:
    """Block kinds the field reads and writes."""

    empty: str
    shrine: str
    filler: str

    def __post_init__(self) -> None:
        for field_name, value in (("empty", self.empty), ("shrine", self.shrine), ("filler", self.filler)):
            if not isinstance(value, str) or not value:
                raise FieldConfigError(f"block kind '{field_name}' must be a non-empty string")
        if len({self.empty, self.shrine, self.filler}) != 3:
            raise FieldConfigError("empty, shrine and filler block kinds must be distinct")


__all__ = [
    "Column",
    "FieldBlocks",
    "FieldConfigError",
    "FieldGeometry",
    "Point3",
    "squared_distance",
]
