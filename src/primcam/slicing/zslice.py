"""
Planar cross-section data structures.

A ZSlice holds every closed contour cut from the geometry at one Z height,
split into outer boundaries and islands (holes). Nesting deeper than one
level is not represented: an island belongs to some outer contour of the
same slice, but which one is not recorded.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

Point2D = Tuple[float, float]
Contour = List[Point2D]


@dataclass(frozen=True)
class Bounds2D:
    """Axis-aligned 2D extents of a slice."""

    min_x: float = 0.0
    max_x: float = 0.0
    min_y: float = 0.0
    max_y: float = 0.0

    @classmethod
    def around_circle(cls, cx: float, cy: float, radius: float) -> "Bounds2D":
        return cls(cx - radius, cx + radius, cy - radius, cy + radius)

    @classmethod
    def of_points(cls, points: Contour) -> "Bounds2D":
        if not points:
            return cls()
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        return cls(min(xs), max(xs), min(ys), max(ys))

    def union(self, other: "Bounds2D") -> "Bounds2D":
        return Bounds2D(
            min(self.min_x, other.min_x),
            max(self.max_x, other.max_x),
            min(self.min_y, other.min_y),
            max(self.max_y, other.max_y),
        )

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


@dataclass
class ZSlice:
    """
    Cross-section of a component at one Z height.

    Attributes:
        z_level: Height of the cutting plane (mm)
        contours: Outer boundaries, each an implicitly closed polygon
        islands: Interior holes
        area: Material area at this height (mm²)
        bounds: 2D extents, zeroed when the slice is empty
    """

    z_level: float
    contours: List[Contour] = field(default_factory=list)
    islands: List[Contour] = field(default_factory=list)
    area: float = 0.0
    bounds: Bounds2D = field(default_factory=Bounds2D)

    @property
    def is_empty(self) -> bool:
        return not self.contours and not self.islands

    def add_contour(self, contour: Contour, area: float, bounds: Bounds2D) -> None:
        self._extend_bounds(bounds)
        self.contours.append(contour)
        self.area += area

    def add_island(self, island: Contour) -> None:
        self.islands.append(island)

    def _extend_bounds(self, bounds: Bounds2D) -> None:
        self.bounds = bounds if self.is_empty else self.bounds.union(bounds)

    def to_dict(self) -> dict:
        return {
            "zLevel": self.z_level,
            "contours": [[list(p) for p in c] for c in self.contours],
            "islands": [[list(p) for p in c] for c in self.islands],
            "area": self.area,
            "bounds": {
                "minX": self.bounds.min_x,
                "maxX": self.bounds.max_x,
                "minY": self.bounds.min_y,
                "maxY": self.bounds.max_y,
            },
        }


def empty_slice(z_level: float) -> ZSlice:
    return ZSlice(z_level=z_level)


def merge_bounds(slices: List[ZSlice]) -> Optional[Bounds2D]:
    """Union of the bounds of non-empty slices, or None if all are empty."""
    result: Optional[Bounds2D] = None
    for s in slices:
        if s.is_empty:
            continue
        result = s.bounds if result is None else result.union(s.bounds)
    return result
