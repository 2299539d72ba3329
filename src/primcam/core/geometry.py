"""
Bounding boxes and closed-form volume/surface area for component descriptors.

Bounds are computed analytically from each primitive's parameters; a
composite's box is the union of its children's boxes.

Composite volume and surface area are an approximation: the union box is
treated as a solid block. Overlapping or sparse assemblies are therefore
over-estimated. A true aggregate volume would need solid booleans.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from primcam.core.components import (
    Box,
    Capsule,
    ComponentDescriptor,
    Composite,
    Cone,
    Cylinder,
    Hemisphere,
    Mesh,
    Sphere,
    Torus,
)
from primcam.core.exceptions import GeometryError

Point3D = Tuple[float, float, float]

# Half-size of the placeholder box around components without known extents.
FALLBACK_HALF_SIZE = 0.1


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned bounding box with derived measures.

    Attributes:
        min_point: (x, y, z) minimum corner
        max_point: (x, y, z) maximum corner
        volume: Enclosed volume (mm³), exact for primitives, box estimate otherwise
        surface_area: Surface area (mm²), same rules as volume
    """

    min_point: Point3D
    max_point: Point3D
    volume: float = 0.0
    surface_area: float = 0.0

    @property
    def dimensions(self) -> Point3D:
        return (
            self.max_point[0] - self.min_point[0],
            self.max_point[1] - self.min_point[1],
            self.max_point[2] - self.min_point[2],
        )

    @property
    def center(self) -> Point3D:
        return (
            (self.min_point[0] + self.max_point[0]) / 2,
            (self.min_point[1] + self.max_point[1]) / 2,
            (self.min_point[2] + self.max_point[2]) / 2,
        )

    @property
    def zmin(self) -> float:
        return self.min_point[2]

    @property
    def zmax(self) -> float:
        return self.max_point[2]

    @property
    def box_volume(self) -> float:
        dx, dy, dz = self.dimensions
        return dx * dy * dz

    @property
    def box_surface_area(self) -> float:
        dx, dy, dz = self.dimensions
        return 2 * (dx * dy + dx * dz + dy * dz)

    @classmethod
    def empty(cls) -> "BoundingBox":
        """Zeroed box used for failed pipeline runs."""
        return cls((0.0, 0.0, 0.0), (0.0, 0.0, 0.0))

    @classmethod
    def from_center(cls, center: Point3D, half_extents: Point3D) -> "BoundingBox":
        """Box centred on a point; volume/surface default to the box estimate."""
        min_pt = tuple(c - h for c, h in zip(center, half_extents))
        max_pt = tuple(c + h for c, h in zip(center, half_extents))
        box = cls(min_pt, max_pt)
        return box.with_measures(box.box_volume, box.box_surface_area)

    def with_measures(self, volume: float, surface_area: float) -> "BoundingBox":
        return BoundingBox(self.min_point, self.max_point, volume, surface_area)

    def union(self, other: "BoundingBox") -> "BoundingBox":
        """Smallest box containing both; measures use the box estimate."""
        min_pt = tuple(min(a, b) for a, b in zip(self.min_point, other.min_point))
        max_pt = tuple(max(a, b) for a, b in zip(self.max_point, other.max_point))
        box = BoundingBox(min_pt, max_pt)
        return box.with_measures(box.box_volume, box.box_surface_area)

    def to_dict(self) -> dict:
        return {
            "min": list(self.min_point),
            "max": list(self.max_point),
            "dimensions": list(self.dimensions),
            "center": list(self.center),
            "volume": self.volume,
            "surfaceArea": self.surface_area,
        }


def _box_bounds(c: Box) -> BoundingBox:
    p = c.position
    box = BoundingBox.from_center(p.as_tuple(), (c.width / 2, c.depth / 2, c.height / 2))
    return box.with_measures(
        c.width * c.depth * c.height,
        2 * (c.width * c.depth + c.width * c.height + c.depth * c.height),
    )


def _sphere_bounds(c: Sphere) -> BoundingBox:
    r = c.radius
    box = BoundingBox.from_center(c.position.as_tuple(), (r, r, r))
    return box.with_measures((4 / 3) * math.pi * r**3, 4 * math.pi * r**2)


def _hemisphere_bounds(c: Hemisphere) -> BoundingBox:
    r = c.radius
    p = c.position
    if c.direction == "up":
        z_lo, z_hi = p.z, p.z + r
    else:
        z_lo, z_hi = p.z - r, p.z
    box = BoundingBox((p.x - r, p.y - r, z_lo), (p.x + r, p.y + r, z_hi))
    # Curved cap plus flat base
    return box.with_measures((2 / 3) * math.pi * r**3, 3 * math.pi * r**2)


def _cylinder_bounds(c: Cylinder) -> BoundingBox:
    r, h = c.radius, c.height
    box = BoundingBox.from_center(c.position.as_tuple(), (r, r, h / 2))
    return box.with_measures(math.pi * r**2 * h, 2 * math.pi * r * (r + h))


def _cone_bounds(c: Cone) -> BoundingBox:
    r, h = c.radius, c.height
    box = BoundingBox.from_center(c.position.as_tuple(), (r, r, h / 2))
    slant = math.sqrt(r**2 + h**2)
    return box.with_measures((1 / 3) * math.pi * r**2 * h, math.pi * r * (r + slant))


def _torus_bounds(c: Torus) -> BoundingBox:
    big, t = c.radius, c.tube_radius
    box = BoundingBox.from_center(c.position.as_tuple(), (big + t, big + t, t))
    return box.with_measures(2 * math.pi**2 * big * t**2, 4 * math.pi**2 * big * t)


def _capsule_bounds(c: Capsule) -> BoundingBox:
    r = c.radius
    half_length = c.body_height / 2 + r
    axis = "xyz".index(c.orientation)
    half = [r, r, r]
    half[axis] = half_length
    box = BoundingBox.from_center(c.position.as_tuple(), tuple(half))
    body = c.body_height
    return box.with_measures(
        math.pi * r**2 * body + (4 / 3) * math.pi * r**3,
        2 * math.pi * r * body + 4 * math.pi * r**2,
    )


def _mesh_bounds(c: Mesh) -> BoundingBox:
    h = FALLBACK_HALF_SIZE
    return BoundingBox.from_center(c.position.as_tuple(), (h, h, h))


def _composite_bounds(c: Composite) -> BoundingBox:
    child_boxes = [calculate_bounding_box(child) for child in c.children]
    box = child_boxes[0]
    for other in child_boxes[1:]:
        box = box.union(other)
    # Approximation: the union box is treated as solid.
    return box.with_measures(box.box_volume, box.box_surface_area)


_BOUNDS_BY_KIND: Dict[str, Callable[..., BoundingBox]] = {
    "box": _box_bounds,
    "sphere": _sphere_bounds,
    "hemisphere": _hemisphere_bounds,
    "cylinder": _cylinder_bounds,
    "cone": _cone_bounds,
    "torus": _torus_bounds,
    "capsule": _capsule_bounds,
    "mesh": _mesh_bounds,
    "composite": _composite_bounds,
}


def calculate_bounding_box(component: ComponentDescriptor) -> BoundingBox:
    """
    Compute the axis-aligned bounding box of a component.

    Args:
        component: Primitive or composite descriptor

    Returns:
        BoundingBox with closed-form volume and surface area

    Raises:
        GeometryError: If the component kind is unknown
    """
    handler = _BOUNDS_BY_KIND.get(getattr(component, "kind", None))
    if handler is None:
        raise GeometryError(
            f"Cannot compute bounds for component type: {type(component).__name__}"
        )
    return handler(component)
