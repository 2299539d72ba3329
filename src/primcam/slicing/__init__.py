"""
Slicing module - Z-level planning, plane sections and 2.5D toolpaths.

- calculate_z_levels: Slice heights from a bounding box
- PlaneIntersector: Closed-form cross-sections of parametric primitives
- combine_slices: Merging of composite child sections
- contour: Orientation, offset and simplification of closed polygons
- ToolpathGenerator: Contour/pocket toolpaths with entry and exit moves
"""

from primcam.slicing.combiner import combine_slices
from primcam.slicing.plane_intersector import PlaneIntersector, slice_component_at_z
from primcam.slicing.toolpath import (
    MoveType,
    ToolpathPoint,
    ToolpathStatistics,
    compute_statistics,
)
from primcam.slicing.toolpath_generator import ToolpathGenerator, ToolpathResult, generate_toolpath
from primcam.slicing.zlevels import ZLevelPlan, calculate_z_levels
from primcam.slicing.zslice import Bounds2D, ZSlice

__all__ = [
    "calculate_z_levels",
    "ZLevelPlan",
    "PlaneIntersector",
    "slice_component_at_z",
    "combine_slices",
    "ZSlice",
    "Bounds2D",
    "MoveType",
    "ToolpathPoint",
    "ToolpathStatistics",
    "compute_statistics",
    "ToolpathGenerator",
    "ToolpathResult",
    "generate_toolpath",
]
