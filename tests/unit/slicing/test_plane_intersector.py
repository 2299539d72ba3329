"""
Tests for plane intersection of parametric primitives.
"""

import math

import numpy as np
import pytest

from primcam.core.components import (
    Box,
    Capsule,
    Composite,
    Cone,
    Cylinder,
    Hemisphere,
    Mesh,
    Sphere,
    Torus,
)
from primcam.core.exceptions import UnsupportedGeometryError
from primcam.slicing.contour import contour_area, is_clockwise
from primcam.slicing.plane_intersector import (
    MIN_CIRCLE_POINTS,
    PlaneIntersector,
    slice_component_at_z,
    tessellate_circle,
)


def _radius(contour, cx=0.0, cy=0.0):
    """Mean distance of contour vertices from a centre."""
    pts = np.asarray(contour)
    return float(np.mean(np.hypot(pts[:, 0] - cx, pts[:, 1] - cy)))


class TestTessellateCircle:
    """Tests for circle tessellation."""

    def test_point_count_scales_with_radius(self):
        """Test vertex count is ceil(radius × resolution)."""
        assert len(tessellate_circle(0, 0, 50, 10)) == 500
        assert len(tessellate_circle(0, 0, 2.55, 10)) == 26

    def test_minimum_point_count(self):
        """Test small circles still get the minimum vertex count."""
        assert len(tessellate_circle(0, 0, 0.5, 10)) == MIN_CIRCLE_POINTS

    def test_counter_clockwise_from_angle_zero(self):
        """Test the polygon starts at angle 0 and winds CCW."""
        circle = tessellate_circle(3, 4, 2, 10)
        assert circle[0] == pytest.approx((5.0, 4.0))
        assert not is_clockwise(circle)

    def test_vertices_on_circle(self):
        """Test every vertex lies on the circle."""
        circle = tessellate_circle(1, 1, 7, 4)
        pts = np.asarray(circle)
        assert np.allclose(np.hypot(pts[:, 0] - 1, pts[:, 1] - 1), 7.0)


class TestBoxSection:
    """Tests for box sections."""

    def test_inside_extent(self, cube):
        """Test a plane through a box gives its footprint rectangle."""
        section = PlaneIntersector().slice(cube, 0.0)
        assert len(section.contours) == 1
        assert len(section.contours[0]) == 4
        assert section.area == pytest.approx(10000.0)
        assert contour_area(section.contours[0]) == pytest.approx(10000.0)
        assert section.bounds.width == pytest.approx(100.0)

    @pytest.mark.parametrize("z", [-50.0, -12.3, 0.0, 33.0, 50.0])
    def test_footprint_constant(self, z):
        """Test every plane within the extent, boundaries included, sees width × depth."""
        box = Box(width=30, depth=20, height=100)
        section = PlaneIntersector().slice(box, z)
        assert len(section.contours) == 1
        assert contour_area(section.contours[0]) == pytest.approx(600.0)

    def test_outside_extent(self, cube):
        """Test planes above or below a box are empty."""
        intersector = PlaneIntersector()
        assert intersector.slice(cube, 50.01).is_empty
        assert intersector.slice(cube, -60.0).is_empty

    def test_offset_position(self):
        """Test the rectangle follows the box position."""
        box = Box(width=10, depth=4, height=2, position=(5, -3, 1))
        section = PlaneIntersector().slice(box, 1.0)
        b = section.bounds
        assert (b.min_x, b.max_x, b.min_y, b.max_y) == (0.0, 10.0, -5.0, -1.0)


class TestSphereSection:
    """Tests for sphere and hemisphere sections."""

    def test_equator(self, sphere):
        """Test the centre plane gives a full-radius circle."""
        section = PlaneIntersector().slice(sphere, 0.0)
        assert len(section.contours) == 1
        assert _radius(section.contours[0]) == pytest.approx(50.0)
        assert section.area == pytest.approx(math.pi * 2500)

    def test_off_centre(self, sphere):
        """Test section radius follows sqrt(r² - d²)."""
        section = PlaneIntersector().slice(sphere, 30.0)
        assert _radius(section.contours[0]) == pytest.approx(40.0)

    def test_pole_is_empty(self, sphere):
        """Test the tangent plane at the pole has no area."""
        assert PlaneIntersector().slice(sphere, 50.0).is_empty

    def test_beyond_is_empty(self, sphere):
        """Test planes beyond the sphere are empty."""
        assert PlaneIntersector().slice(sphere, 60.0).is_empty

    def test_hemisphere_up(self):
        """Test an upward dome exists only above its flat face."""
        dome = Hemisphere(radius=10)
        intersector = PlaneIntersector()
        assert intersector.slice(dome, -1.0).is_empty
        assert _radius(intersector.slice(dome, 0.0).contours[0]) == pytest.approx(10.0)
        assert _radius(intersector.slice(dome, 5.0).contours[0]) == pytest.approx(math.sqrt(75))

    def test_hemisphere_down(self):
        """Test a downward dome exists only below its flat face."""
        dome = Hemisphere(radius=10, direction="down", position=(0, 0, 20))
        intersector = PlaneIntersector()
        assert intersector.slice(dome, 21.0).is_empty
        assert _radius(intersector.slice(dome, 15.0).contours[0]) == pytest.approx(math.sqrt(75))


class TestCylinderAndCone:
    """Tests for cylinder and cone sections."""

    @pytest.mark.parametrize("z", [-10.0, -3.0, 0.0, 9.9, 10.0])
    def test_cylinder_constant_radius(self, z):
        """Test every plane in range gives the same radius."""
        section = PlaneIntersector().slice(Cylinder(radius=5, height=20), z)
        assert _radius(section.contours[0]) == pytest.approx(5.0)

    def test_cylinder_outside(self):
        """Test planes outside the height are empty."""
        assert PlaneIntersector().slice(Cylinder(radius=5, height=20), 10.5).is_empty

    def test_cone_apex_up(self):
        """Test radius shrinks linearly from base to apex."""
        cone = Cone(radius=10, height=20)
        intersector = PlaneIntersector()
        assert _radius(intersector.slice(cone, -10.0).contours[0]) == pytest.approx(10.0)
        assert _radius(intersector.slice(cone, 0.0).contours[0]) == pytest.approx(5.0)
        assert intersector.slice(cone, 10.0).is_empty

    def test_cone_apex_down(self):
        """Test an inverted cone has its base on top."""
        cone = Cone(radius=10, height=20, direction="down")
        intersector = PlaneIntersector()
        assert _radius(intersector.slice(cone, 10.0).contours[0]) == pytest.approx(10.0)
        assert _radius(intersector.slice(cone, 5.0).contours[0]) == pytest.approx(7.5)
        assert intersector.slice(cone, -10.0).is_empty


class TestTorusSection:
    """Tests for torus sections."""

    def test_centre_plane(self, torus):
        """Test the centre plane gives an outer contour and an inner island."""
        section = PlaneIntersector().slice(torus, 0.0)
        assert len(section.contours) == 1
        assert len(section.islands) == 1
        assert _radius(section.contours[0]) == pytest.approx(25.0)
        assert _radius(section.islands[0]) == pytest.approx(15.0)
        assert section.area == pytest.approx(math.pi * (625 - 225))

    @pytest.mark.parametrize("z", [-4.9, -2.0, 0.0, 3.0, 4.0])
    def test_outer_never_smaller_than_inner(self, torus, z):
        """Test the outer radius is at least the island radius."""
        section = PlaneIntersector().slice(torus, z)
        assert _radius(section.contours[0]) >= _radius(section.islands[0])

    def test_tangent_plane_empty(self, torus):
        """Test the top tangent plane is empty."""
        assert PlaneIntersector().slice(torus, 5.0).is_empty

    def test_no_island_when_inner_radius_collapses(self):
        """Test a fat torus has no island where the hole closes."""
        section = PlaneIntersector().slice(Torus(radius=3, tube_radius=5), 0.0)
        assert len(section.contours) == 1
        assert section.islands == []

    def test_island_detection_disabled(self, torus):
        """Test detect_islands=False suppresses islands."""
        section = PlaneIntersector(detect_islands=False).slice(torus, 0.0)
        assert section.islands == []


class TestCapsuleSection:
    """Tests for capsule sections."""

    def test_three_regions(self):
        """Test body, cap and tip sections."""
        capsule = Capsule(radius=5, height=30)
        intersector = PlaneIntersector()
        assert _radius(intersector.slice(capsule, 0.0).contours[0]) == pytest.approx(5.0)
        assert _radius(intersector.slice(capsule, 10.0).contours[0]) == pytest.approx(5.0)
        assert _radius(intersector.slice(capsule, 12.0).contours[0]) == pytest.approx(math.sqrt(21))
        assert _radius(intersector.slice(capsule, -12.0).contours[0]) == pytest.approx(math.sqrt(21))
        assert intersector.slice(capsule, 15.0).is_empty
        assert intersector.slice(capsule, 16.0).is_empty

    def test_horizontal_capsule_warns(self):
        """Test non-vertical capsules are skipped with a warning."""
        intersector = PlaneIntersector()
        section = intersector.slice(Capsule(id="cap", radius=5, height=30, orientation="x"), 0.0)
        assert section.is_empty
        assert len(intersector.warnings) == 1
        assert "cap" in intersector.warnings[0]

    def test_horizontal_capsule_strict(self):
        """Test strict mode raises for unsupported geometry."""
        intersector = PlaneIntersector(strict=True)
        with pytest.raises(UnsupportedGeometryError) as exc_info:
            intersector.slice(Capsule(id="cap", radius=5, height=30, orientation="y"), 0.0)
        assert exc_info.value.component_id == "cap"


class TestCompositeSection:
    """Tests for composite sections."""

    def test_children_concatenated(self, assembly):
        """Test child contours are concatenated and areas summed."""
        section = PlaneIntersector().slice(assembly, 0.0)
        assert len(section.contours) == 2
        assert section.area == pytest.approx(200.0 + math.pi * 25)
        assert section.bounds.min_x == pytest.approx(-40.0)
        assert section.bounds.max_x == pytest.approx(35.0)

    def test_mesh_child_skipped(self):
        """Test a mesh child warns while other children still slice."""
        tree = Composite(children=[Mesh(id="scan", source="scan.stl"), Sphere(radius=5)])
        intersector = PlaneIntersector()
        section = intersector.slice(tree, 0.0)
        assert len(section.contours) == 1
        assert any("scan" in w for w in intersector.warnings)

    def test_warnings_deduplicated(self):
        """Test the same warning is recorded once across levels."""
        intersector = PlaneIntersector()
        intersector.slice_levels(Mesh(id="m"), [0.0, 1.0, 2.0])
        assert len(intersector.warnings) == 1

    def test_empty_composite_level(self, assembly):
        """Test a plane missing every child is empty."""
        assert PlaneIntersector().slice(assembly, 20.0).is_empty

    def test_merge_overlaps(self):
        """Test opt-in union merges overlapping children."""
        tree = Composite(children=[
            Box(width=10, depth=10, height=2),
            Box(width=10, depth=10, height=2, position=(5, 0, 0)),
        ])
        concatenated = PlaneIntersector().slice(tree, 0.0)
        merged = PlaneIntersector(merge_overlaps=True).slice(tree, 0.0)
        assert len(concatenated.contours) == 2
        assert concatenated.area == pytest.approx(200.0)
        assert len(merged.contours) == 1
        assert merged.area == pytest.approx(150.0)
        assert merged.bounds.max_x == pytest.approx(10.0)


class TestSliceComponentAtZ:
    """Tests for the module-level helper."""

    def test_collects_warnings(self):
        """Test warnings are appended to the given list."""
        warnings = []
        section = slice_component_at_z(Mesh(id="m"), 0.0, warnings=warnings)
        assert section.is_empty
        assert len(warnings) == 1

    def test_resolution(self, sphere):
        """Test resolution controls vertex count."""
        section = slice_component_at_z(sphere, 0.0, resolution=2.0)
        assert len(section.contours[0]) == 100
