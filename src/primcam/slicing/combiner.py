"""
Slice combination for composite components.

By default child slices at the same height are merged by concatenation:
contours and islands are appended, areas summed, bounds united. This is
not a polygon union. Overlapping children double-count area and touching
outlines stay separate contours.

With ``merge_overlaps=True`` the children are instead joined with a real
boolean union (pyclipper); islands covered by another child disappear and
the area is recomputed from the merged outline.
"""

from typing import List, Sequence

from primcam.core.exceptions import SlicingError
from primcam.slicing.contour import contour_bounds, union_regions
from primcam.slicing.zslice import Bounds2D, ZSlice, merge_bounds


def combine_slices(slices: Sequence[ZSlice], merge_overlaps: bool = False) -> ZSlice:
    """
    Merge slices taken at the same height into one.

    Args:
        slices: Child slices, all at the same Z
        merge_overlaps: Use a boolean union instead of concatenation

    Returns:
        Combined ZSlice (the input itself when only one slice is given)

    Raises:
        SlicingError: If no slices are given
    """
    if not slices:
        raise SlicingError("No slices to combine")

    if len(slices) == 1:
        return slices[0]

    if merge_overlaps:
        return _union_slices(slices)

    combined = ZSlice(z_level=slices[0].z_level)
    for s in slices:
        combined.contours.extend(s.contours)
        combined.islands.extend(s.islands)
        combined.area += s.area
    bounds = merge_bounds(list(slices))
    if bounds is not None:
        combined.bounds = bounds
    return combined


def _union_slices(slices: Sequence[ZSlice]) -> ZSlice:
    outers, islands, area = union_regions([(s.contours, s.islands) for s in slices])
    combined = ZSlice(z_level=slices[0].z_level, contours=outers, islands=islands, area=area)
    bounds: List[Bounds2D] = [contour_bounds(c) for c in outers]
    if bounds:
        merged = bounds[0]
        for b in bounds[1:]:
            merged = merged.union(b)
        combined.bounds = merged
    return combined
