"""
Plane intersection — exact horizontal cross-sections of parametric primitives.

Every primitive is axis-aligned with a vertical axis, so each section is a
rectangle, a circle, or a ring (torus). Circles are tessellated into
polygons whose vertex count grows with radius × resolution.

Composites are sliced child by child at the same height; the child slices
are merged by ``combine_slices``.
"""

import math
from typing import Callable, Dict, Iterable, List, Optional

import numpy as np

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
from primcam.core.exceptions import PrimcamError, UnsupportedGeometryError
from primcam.core.logging import get_logger
from primcam.slicing.combiner import combine_slices
from primcam.slicing.zslice import Bounds2D, Contour, ZSlice, empty_slice

logger = get_logger(__name__)

MIN_CIRCLE_POINTS = 16

# Section radii below this (mm) are tangent contact, not material.
RADIUS_EPSILON = 1e-9


def tessellate_circle(cx: float, cy: float, radius: float, resolution: float = 10.0) -> Contour:
    """
    Counter-clockwise polygon approximating a circle.

    Uses ``max(16, ceil(radius * resolution))`` vertices at equal angular
    steps, the first one at angle 0.
    """
    count = max(MIN_CIRCLE_POINTS, int(math.ceil(radius * resolution)))
    angles = np.arange(count) * (2.0 * math.pi / count)
    xs = cx + radius * np.cos(angles)
    ys = cy + radius * np.sin(angles)
    return [(float(x), float(y)) for x, y in zip(xs, ys)]


def _in_range(z: float, z_min: float, z_max: float) -> bool:
    return z_min <= z <= z_max


def _sphere_section_radius(radius: float, distance: float) -> float:
    return math.sqrt(max(0.0, radius * radius - distance * distance))


class PlaneIntersector:
    """
    Slices component descriptors with horizontal planes.

    Warnings for unsupported or failing components are collected on the
    instance (``warnings``) rather than raised, so that one bad child does
    not abort a whole assembly.

    Usage::

        intersector = PlaneIntersector(resolution=10.0)
        section = intersector.slice(component, z_level=5.0)
    """

    def __init__(
        self,
        resolution: float = 10.0,
        detect_islands: bool = True,
        merge_overlaps: bool = False,
        strict: bool = False,
    ):
        """
        Args:
            resolution: Circle tessellation density (points per mm of radius)
            detect_islands: Emit interior holes (torus rings)
            merge_overlaps: Boolean-union composite children instead of
                concatenating their contours
            strict: Raise UnsupportedGeometryError instead of warning
        """
        self.resolution = resolution
        self.detect_islands = detect_islands
        self.merge_overlaps = merge_overlaps
        self.strict = strict
        self.warnings: List[str] = []
        self._handlers: Dict[str, Callable[[ComponentDescriptor, float], ZSlice]] = {
            "box": self._slice_box,
            "sphere": self._slice_sphere,
            "hemisphere": self._slice_hemisphere,
            "cylinder": self._slice_cylinder,
            "cone": self._slice_cone,
            "torus": self._slice_torus,
            "capsule": self._slice_capsule,
            "mesh": self._slice_mesh,
            "composite": self._slice_composite,
        }

    def slice(self, component: ComponentDescriptor, z_level: float) -> ZSlice:
        """
        Cross-section of a component at one height.

        Args:
            component: Primitive or composite descriptor
            z_level: Height of the cutting plane (mm)

        Returns:
            ZSlice, empty if the plane misses the component
        """
        handler = self._handlers.get(getattr(component, "kind", None))
        if handler is None:
            self._warn(f"Unknown component type: {type(component).__name__}")
            return empty_slice(z_level)
        return handler(component, z_level)

    def slice_levels(self, component: ComponentDescriptor, levels: Iterable[float]) -> List[ZSlice]:
        """Slice a component at every level, in the given order."""
        return [self.slice(component, z) for z in levels]

    def _warn(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)
            logger.warning("slice_warning", message=message)

    def _unsupported(self, message: str, component_id: str) -> None:
        if self.strict:
            raise UnsupportedGeometryError(message, component_id=component_id)
        self._warn(f"{message} (component {component_id})")

    def _circle_slice(self, z_level: float, cx: float, cy: float, radius: float) -> ZSlice:
        section = empty_slice(z_level)
        if radius <= RADIUS_EPSILON:
            return section
        section.add_contour(
            tessellate_circle(cx, cy, radius, self.resolution),
            math.pi * radius * radius,
            Bounds2D.around_circle(cx, cy, radius),
        )
        return section

    # ── Primitive sections ─────────────────────────────────────────────

    def _slice_box(self, c: Box, z_level: float) -> ZSlice:
        p = c.position
        section = empty_slice(z_level)
        if not _in_range(z_level, p.z - c.height / 2, p.z + c.height / 2):
            return section
        hw, hd = c.width / 2, c.depth / 2
        contour = [
            (p.x - hw, p.y - hd),
            (p.x + hw, p.y - hd),
            (p.x + hw, p.y + hd),
            (p.x - hw, p.y + hd),
        ]
        section.add_contour(
            contour,
            c.width * c.depth,
            Bounds2D(p.x - hw, p.x + hw, p.y - hd, p.y + hd),
        )
        return section

    def _slice_sphere(self, c: Sphere, z_level: float) -> ZSlice:
        p = c.position
        distance = abs(z_level - p.z)
        if distance > c.radius:
            return empty_slice(z_level)
        return self._circle_slice(z_level, p.x, p.y, _sphere_section_radius(c.radius, distance))

    def _slice_hemisphere(self, c: Hemisphere, z_level: float) -> ZSlice:
        # Flat face at position.z, dome above ("up") or below ("down").
        p = c.position
        if c.direction == "up":
            z_min, z_max = p.z, p.z + c.radius
        else:
            z_min, z_max = p.z - c.radius, p.z
        if not _in_range(z_level, z_min, z_max):
            return empty_slice(z_level)
        radius = _sphere_section_radius(c.radius, abs(z_level - p.z))
        return self._circle_slice(z_level, p.x, p.y, radius)

    def _slice_cylinder(self, c: Cylinder, z_level: float) -> ZSlice:
        p = c.position
        if not _in_range(z_level, p.z - c.height / 2, p.z + c.height / 2):
            return empty_slice(z_level)
        return self._circle_slice(z_level, p.x, p.y, c.radius)

    def _slice_cone(self, c: Cone, z_level: float) -> ZSlice:
        p = c.position
        z_min, z_max = p.z - c.height / 2, p.z + c.height / 2
        if not _in_range(z_level, z_min, z_max):
            return empty_slice(z_level)
        if c.height <= 0:
            return self._circle_slice(z_level, p.x, p.y, c.radius)
        from_base = z_level - z_min if c.direction == "up" else z_max - z_level
        radius = c.radius * (1.0 - from_base / c.height)
        return self._circle_slice(z_level, p.x, p.y, max(0.0, radius))

    def _slice_torus(self, c: Torus, z_level: float) -> ZSlice:
        p = c.position
        section = empty_slice(z_level)
        distance = abs(z_level - p.z)
        if distance > c.tube_radius:
            return section
        offset = _sphere_section_radius(c.tube_radius, distance)
        if offset <= RADIUS_EPSILON:
            return section

        inner = max(0.0, c.radius - offset)
        outer = c.radius + offset
        section.add_contour(
            tessellate_circle(p.x, p.y, outer, self.resolution),
            math.pi * (outer * outer - inner * inner),
            Bounds2D.around_circle(p.x, p.y, outer),
        )
        if inner > 0 and self.detect_islands:
            section.add_island(tessellate_circle(p.x, p.y, inner, self.resolution))
        return section

    def _slice_capsule(self, c: Capsule, z_level: float) -> ZSlice:
        if c.orientation != "z":
            self._unsupported(
                f"Capsule orientation '{c.orientation}' not supported for slicing", c.id
            )
            return empty_slice(z_level)

        p = c.position
        half_body = c.body_height / 2
        top_center = p.z + half_body
        bottom_center = p.z - half_body
        if not _in_range(z_level, bottom_center - c.radius, top_center + c.radius):
            return empty_slice(z_level)

        if z_level > top_center:
            radius = _sphere_section_radius(c.radius, z_level - top_center)
        elif z_level < bottom_center:
            radius = _sphere_section_radius(c.radius, bottom_center - z_level)
        else:
            radius = c.radius
        return self._circle_slice(z_level, p.x, p.y, radius)

    def _slice_mesh(self, c: Mesh, z_level: float) -> ZSlice:
        self._unsupported("Slicing for mesh components is not supported", c.id)
        return empty_slice(z_level)

    def _slice_composite(self, c: Composite, z_level: float) -> ZSlice:
        child_slices: List[ZSlice] = []
        for child in c.children:
            try:
                child_slice = self.slice(child, z_level)
            except UnsupportedGeometryError:
                raise
            except (PrimcamError, ValueError, ArithmeticError) as e:
                self._warn(f"Error slicing component {child.id}: {e}")
                continue
            if not child_slice.is_empty:
                child_slices.append(child_slice)

        if not child_slices:
            return empty_slice(z_level)
        return combine_slices(child_slices, merge_overlaps=self.merge_overlaps)


def slice_component_at_z(
    component: ComponentDescriptor,
    z_level: float,
    resolution: float = 10.0,
    detect_islands: bool = True,
    warnings: Optional[List[str]] = None,
) -> ZSlice:
    """
    Cross-section of a component at one height.

    Warnings raised while slicing are appended to ``warnings`` when given.
    """
    intersector = PlaneIntersector(resolution=resolution, detect_islands=detect_islands)
    section = intersector.slice(component, z_level)
    if warnings is not None:
        warnings.extend(w for w in intersector.warnings if w not in warnings)
    return section

