"""
Contour processing — pure operations on closed 2D polygons.

Provides:
- signed_area / is_clockwise — orientation from the shoelace sum
- calculate_centroid — polygon centroid with a vertex-mean fallback
- offset_contour — per-vertex miter offset (tool-radius compensation)
- offset_regions — clipped offset via **pyclipper**, split into regions
- simplify_contour — Douglas-Peucker reduction
- point_in_contour — even-odd containment test
- union_regions — boolean union via **pyclipper** (Clipper library)

Contours are lists of (x, y) tuples. Closure is implicit: the last vertex
connects back to the first. None of these functions mutate their input.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pyclipper

from primcam.slicing.zslice import Bounds2D, Contour, Point2D

logger = logging.getLogger(__name__)

# Below this absolute area a contour is treated as degenerate.
AREA_EPSILON = 1e-5

# Largest miter scale applied at sharp corners (1 / sin(half angle)).
MITER_LIMIT = 10.0

# pyclipper uses integer coordinates for precision.
# We scale floating-point mm coordinates by this factor.
_CLIPPER_SCALE = 1000  # 1 mm  → 1000 clipper units  → 0.001 mm resolution


def signed_area(contour: Sequence[Point2D]) -> float:
    """Compute signed area (positive = CCW, negative = CW)."""
    n = len(contour)
    if n < 3:
        return 0.0
    area = 0.0
    for i in range(n):
        x1, y1 = contour[i]
        x2, y2 = contour[(i + 1) % n]
        area += x1 * y2 - x2 * y1
    return area / 2.0


def contour_area(contour: Sequence[Point2D]) -> float:
    return abs(signed_area(contour))


def is_clockwise(contour: Sequence[Point2D]) -> bool:
    """
    True if the contour winds clockwise (Y axis up).

    Contours with fewer than three points count as clockwise.
    """
    if len(contour) < 3:
        return True
    return signed_area(contour) < 0


def ensure_orientation(contour: Sequence[Point2D], clockwise: bool) -> Contour:
    """Return the contour wound in the requested direction."""
    if len(contour) >= 3 and is_clockwise(contour) != clockwise:
        return list(reversed(contour))
    return list(contour)


def calculate_centroid(contour: Sequence[Point2D]) -> Point2D:
    """
    Polygon centroid.

    Falls back to the mean of the vertices when the enclosed area is
    numerically zero (collinear or collapsed contours).
    """
    if not contour:
        raise ValueError("Cannot compute the centroid of an empty contour")

    n = len(contour)
    area = 0.0
    cx = 0.0
    cy = 0.0
    for i in range(n):
        x1, y1 = contour[i]
        x2, y2 = contour[(i + 1) % n]
        cross = x1 * y2 - x2 * y1
        area += cross
        cx += (x1 + x2) * cross
        cy += (y1 + y2) * cross
    area /= 2.0

    if abs(area) < AREA_EPSILON:
        pts = np.asarray(contour, dtype=float)
        mean = pts.mean(axis=0)
        return (float(mean[0]), float(mean[1]))

    return (cx / (6.0 * area), cy / (6.0 * area))


def contour_length(contour: Sequence[Point2D], closed: bool = True) -> float:
    """Perimeter of the contour (including the closing edge if closed)."""
    if len(contour) < 2:
        return 0.0
    pts = np.asarray(contour, dtype=float)
    if closed:
        pts = np.vstack([pts, pts[:1]])
    return float(np.sum(np.linalg.norm(np.diff(pts, axis=0), axis=1)))


def contour_bounds(contour: Sequence[Point2D]) -> Bounds2D:
    return Bounds2D.of_points(list(contour))


def is_degenerate(contour: Sequence[Point2D]) -> bool:
    """Fewer than three points, or no enclosed area."""
    return len(contour) < 3 or contour_area(contour) < AREA_EPSILON


def point_in_contour(point: Point2D, contour: Sequence[Point2D]) -> bool:
    """Even-odd ray test. Points exactly on an edge may fall either way."""
    x, y = point
    inside = False
    n = len(contour)
    for i in range(n):
        x1, y1 = contour[i]
        x2, y2 = contour[(i + 1) % n]
        if (y1 > y) != (y2 > y):
            x_cross = x1 + (y - y1) * (x2 - x1) / (y2 - y1)
            if x < x_cross:
                inside = not inside
    return inside


def _unit(dx: float, dy: float) -> Optional[Tuple[float, float]]:
    length = math.hypot(dx, dy)
    if length < 1e-12:
        return None
    return (dx / length, dy / length)


def _edge_direction(contour: Sequence[Point2D], start: int, step: int) -> Optional[Tuple[float, float]]:
    """Direction of the first non-zero edge walking from ``start`` by ``step``."""
    n = len(contour)
    x0, y0 = contour[start]
    for k in range(1, n):
        x1, y1 = contour[(start + step * k) % n]
        d = _unit(x1 - x0, y1 - y0) if step > 0 else _unit(x0 - x1, y0 - y1)
        if d is not None:
            return d
    return None


def vertex_offset_vector(
    contour: Sequence[Point2D], index: int, outward_sign: float
) -> Tuple[float, float]:
    """
    Miter displacement for one vertex, per unit offset distance.

    The two adjacent edge normals are averaged and the result scaled by
    ``1 / sin(half the corner angle)`` so that both edges end up exactly
    one unit away. Reversal corners and zero-length edges fall back to a
    single edge normal.
    """
    incoming = _edge_direction(contour, index, -1)
    outgoing = _edge_direction(contour, index, 1)
    if incoming is None and outgoing is None:
        return (0.0, 0.0)
    if incoming is None:
        incoming = outgoing
    if outgoing is None:
        outgoing = incoming

    # Right-hand normals point outward for CCW contours.
    n1 = (incoming[1] * outward_sign, -incoming[0] * outward_sign)
    n2 = (outgoing[1] * outward_sign, -outgoing[0] * outward_sign)

    bisector = _unit(n1[0] + n2[0], n1[1] + n2[1])
    if bisector is None:
        return n2

    # cos of half the turn angle == sin of half the corner angle
    cos_half = bisector[0] * n1[0] + bisector[1] * n1[1]
    scale = 1.0 / cos_half if cos_half > 1.0 / MITER_LIMIT else MITER_LIMIT
    return (bisector[0] * scale, bisector[1] * scale)


def offset_contour(contour: Sequence[Point2D], distance: float) -> Contour:
    """
    Offset a closed contour by a signed distance.

    Positive distances move every edge away from the enclosed area
    (outward), negative distances move it inward, independent of the
    contour's winding. Contours with fewer than three points, or a zero
    distance, are returned unchanged.

    Concave corners are not clipped, so large inward offsets can
    self-intersect; callers check the result with ``is_degenerate`` or
    by comparing areas.
    """
    if distance == 0 or len(contour) < 3:
        return list(contour)

    outward_sign = -1.0 if is_clockwise(contour) else 1.0
    result: Contour = []
    for i, (x, y) in enumerate(contour):
        ox, oy = vertex_offset_vector(contour, i, outward_sign)
        result.append((x + ox * distance, y + oy * distance))
    return result


def _perpendicular_distances(points: np.ndarray, start: np.ndarray, end: np.ndarray) -> np.ndarray:
    chord = end - start
    length = float(np.hypot(chord[0], chord[1]))
    rel = points - start
    if length < 1e-12:
        return np.hypot(rel[:, 0], rel[:, 1])
    return np.abs(chord[0] * rel[:, 1] - chord[1] * rel[:, 0]) / length


def _douglas_peucker(points: np.ndarray, tolerance: float) -> List[int]:
    """Indices kept by Douglas-Peucker between the first and last point."""
    last = len(points) - 1
    keep = {0, last}
    stack = [(0, last)]
    while stack:
        lo, hi = stack.pop()
        if hi <= lo + 1:
            continue
        distances = _perpendicular_distances(points[lo + 1:hi], points[lo], points[hi])
        k = int(np.argmax(distances))
        if distances[k] > tolerance:
            split = lo + 1 + k
            keep.add(split)
            stack.append((lo, split))
            stack.append((split, hi))
    return sorted(keep)


def simplify_contour(
    contour: Sequence[Point2D], tolerance: float, closed: bool = True
) -> Contour:
    """
    Douglas-Peucker simplification.

    Args:
        contour: Points to simplify
        tolerance: Maximum perpendicular deviation (mm); ``<= 0`` returns
            the input unchanged
        closed: Treat the sequence as a closed loop. A loop whose last point
            repeats the first keeps that repeated point in the output.

    Returns:
        The retained points, in original order
    """
    if len(contour) <= 2 or tolerance <= 0:
        return list(contour)

    explicit_close = tuple(contour[0]) == tuple(contour[-1])
    if closed:
        # Anchor both ends on the first vertex, then re-close.
        ring = list(contour[:-1]) if explicit_close else list(contour)
        if len(ring) <= 2:
            return list(contour)
        pts = np.asarray(ring + [ring[0]], dtype=float)
        kept = _douglas_peucker(pts, tolerance)
        result = [ring[i] for i in kept[:-1]]
        if explicit_close:
            result.append(ring[0])
        return result

    pts = np.asarray(contour, dtype=float)
    return [contour[i] for i in _douglas_peucker(pts, tolerance)]


def _to_clipper(polygon: Sequence[Point2D]) -> List[Tuple[int, int]]:
    """Scale floating-point polygon to pyclipper integer coordinates."""
    return [(int(round(x * _CLIPPER_SCALE)), int(round(y * _CLIPPER_SCALE)))
            for x, y in polygon]


def _from_clipper(path: list) -> Contour:
    """Scale pyclipper integer coordinates back to floating-point mm."""
    return [(x / _CLIPPER_SCALE, y / _CLIPPER_SCALE) for x, y in path]


def offset_regions(contour: Sequence[Point2D], distance: float) -> List[Contour]:
    """
    Offset a closed contour with pyclipper, keeping every resulting region.

    Unlike ``offset_contour`` the result is clipped: an inward offset that
    pinches a narrow neck splits into one contour per remaining region,
    and one that consumes the whole area returns an empty list. Every
    region is wound like the input.
    """
    if is_degenerate(contour):
        return []
    pco = pyclipper.PyclipperOffset()
    pco.MiterLimit = MITER_LIMIT
    pco.AddPath(_to_clipper(contour), pyclipper.JT_MITER, pyclipper.ET_CLOSEDPOLYGON)
    paths = pco.Execute(int(round(distance * _CLIPPER_SCALE)))

    clockwise = is_clockwise(contour)
    regions = []
    for path in paths:
        region = _from_clipper(path)
        if not is_degenerate(region):
            regions.append(ensure_orientation(region, clockwise))
    return regions


def _region_paths(outers: Iterable[Contour], holes: Iterable[Contour]) -> list:
    """Clipper paths for ``outers`` minus ``holes``."""
    subject = [_to_clipper(c) for c in outers if not is_degenerate(c)]
    clip = [_to_clipper(c) for c in holes if not is_degenerate(c)]
    if not subject:
        return []
    if not clip:
        return subject
    pc = pyclipper.Pyclipper()
    pc.AddPaths(subject, pyclipper.PT_SUBJECT, True)
    pc.AddPaths(clip, pyclipper.PT_CLIP, True)
    return pc.Execute(pyclipper.CT_DIFFERENCE, pyclipper.PFT_NONZERO, pyclipper.PFT_NONZERO)


def union_regions(
    regions: Sequence[Tuple[Sequence[Contour], Sequence[Contour]]],
) -> Tuple[List[Contour], List[Contour], float]:
    """
    Boolean union of several (outers, holes) regions using pyclipper.

    Each region is first reduced to its outers minus its own holes, so a
    hole in one region can be filled by material from another.

    Returns:
        (outer contours, island contours, enclosed area)
    """
    paths = []
    for outers, holes in regions:
        paths.extend(_region_paths(outers, holes))
    if not paths:
        return [], [], 0.0

    pc = pyclipper.Pyclipper()
    pc.AddPaths(paths, pyclipper.PT_SUBJECT, True)
    merged = pc.Execute(pyclipper.CT_UNION, pyclipper.PFT_NONZERO, pyclipper.PFT_NONZERO)

    outers_out: List[Contour] = []
    holes_out: List[Contour] = []
    area = 0.0
    for path in merged:
        contour = _from_clipper(path)
        if pyclipper.Orientation(path):
            outers_out.append(contour)
        else:
            holes_out.append(contour)
        area += signed_area(contour)

    logger.debug(
        "Union of %d regions: %d outers, %d islands",
        len(regions), len(outers_out), len(holes_out),
    )
    return outers_out, holes_out, abs(area)
