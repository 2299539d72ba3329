"""
Entry/Exit — how the tool gets into and out of a closed cutting loop.

Provides:
- direct_lap()      — full lap at depth after a straight plunge
- ramp_into_loop()  — descend along the loop at a ramp angle, then lap
- ramp_lead_out()   — continue past the last point while rising
- arc_lead_out()    — quarter-arc exit turning away from the wall
"""

import math
from typing import List, Sequence, Tuple

from primcam.slicing.zslice import Point2D

Point3D = Tuple[float, float, float]
Polyline3D = List[Point3D]

# Guard against looping forever on a loop whose perimeter is ~0.
MAX_RAMP_LAPS = 1000


def direct_lap(loop: Sequence[Point2D], z: float) -> Polyline3D:
    """
    Cutting moves for one lap starting and ending at ``loop[0]``.

    The entry point itself is not included; the caller has already
    plunged onto it.
    """
    n = len(loop)
    return [(loop[i % n][0], loop[i % n][1], z) for i in range(1, n + 1)]


def ramp_into_loop(
    loop: Sequence[Point2D],
    z_from: float,
    z_to: float,
    ramp_angle: float,
) -> Tuple[Polyline3D, Polyline3D]:
    """
    Ramp down along a closed loop, then cut one full lap at depth.

    The ramp starts at ``loop[0]`` at height ``z_from`` and follows the
    loop's edges, descending at ``ramp_angle`` from horizontal, until it
    reaches ``z_to``. Short loops are wrapped around as many times as the
    ramp needs. The lap then runs all the way round back to the ramp's end
    point so that the ramped section is also cut at full depth.

    Parameters:
        loop: Closed loop, entry point first.
        z_from: Height at which the ramp begins (mm).
        z_to: Cutting height (mm).
        ramp_angle: Descent angle from horizontal (degrees).

    Returns:
        (ramp points, lap points). The ramp's first point, ``loop[0]`` at
        ``z_from``, is not included.
    """
    n = len(loop)
    drop = z_from - z_to
    if n < 2 or drop <= 0 or ramp_angle >= 90.0:
        return [], direct_lap(loop, z_to)

    run = drop / math.tan(math.radians(ramp_angle))
    ramp: Polyline3D = []
    travelled = 0.0
    end_point = (loop[0][0], loop[0][1])
    edge = 0

    for i in range(n * MAX_RAMP_LAPS):
        ax, ay = loop[i % n]
        bx, by = loop[(i + 1) % n]
        seg = math.hypot(bx - ax, by - ay)
        if seg <= 0.0:
            continue
        if travelled + seg >= run:
            t = (run - travelled) / seg
            end_point = (ax + t * (bx - ax), ay + t * (by - ay))
            edge = i % n
            ramp.append((end_point[0], end_point[1], z_to))
            break
        travelled += seg
        ramp.append((bx, by, z_from - drop * travelled / run))
    else:
        # Perimeter too small to reach depth: finish with a straight plunge.
        ramp.append((loop[0][0], loop[0][1], z_to))
        return ramp, direct_lap(loop, z_to)

    lap = [
        (loop[(edge + 1 + k) % n][0], loop[(edge + 1 + k) % n][1], z_to)
        for k in range(n)
    ]
    lap.append((end_point[0], end_point[1], z_to))
    return ramp, lap


def _last_direction(path: Sequence[Point3D]) -> Tuple[float, float]:
    """Unit XY direction of the last non-zero move, or (0, 0)."""
    for i in range(len(path) - 1, 0, -1):
        dx = path[i][0] - path[i - 1][0]
        dy = path[i][1] - path[i - 1][1]
        length = math.hypot(dx, dy)
        if length > 1e-10:
            return (dx / length, dy / length)
    return (0.0, 0.0)


def ramp_lead_out(
    path: Sequence[Point3D],
    lead_length: float = 2.0,
    ramp_angle: float = 10.0,
) -> Polyline3D:
    """
    Exit point continuing past the end of a path while rising.

    Parameters:
        path: Cutting moves, last point is where the cut ends.
        lead_length: Horizontal distance of the lead-out (mm).
        ramp_angle: Exit angle from horizontal (degrees).

    Returns:
        A single lead-out point, or an empty list if the path has no
        direction or ``lead_length`` is zero.
    """
    if len(path) < 2 or lead_length <= 0:
        return []
    nx, ny = _last_direction(path)
    if nx == 0.0 and ny == 0.0:
        return []

    x, y, z = path[-1]
    rise = lead_length * math.tan(math.radians(min(ramp_angle, 89.0)))
    return [(x + nx * lead_length, y + ny * lead_length, z + rise)]


def arc_lead_out(
    path: Sequence[Point3D],
    radius: float = 2.0,
    turn_left: bool = True,
    segments: int = 6,
) -> Polyline3D:
    """
    Quarter-arc exit tangent to the last move of a path, at cutting height.

    Parameters:
        path: Cutting moves, last point is where the cut ends.
        radius: Arc radius (mm).
        turn_left: Turn to the left of the direction of travel.
        segments: Number of chords used for the arc.

    Returns:
        Arc points, excluding the start point.
    """
    if len(path) < 2 or radius <= 0 or segments < 1:
        return []
    dx, dy = _last_direction(path)
    if dx == 0.0 and dy == 0.0:
        return []

    x, y, z = path[-1]
    side = 1.0 if turn_left else -1.0
    # Centre lies on the normal towards the turn side.
    cx = x - dy * radius * side
    cy = y + dx * radius * side
    start = math.atan2(y - cy, x - cx)
    sweep = side * math.pi / 2.0

    points: Polyline3D = []
    for k in range(1, segments + 1):
        angle = start + sweep * k / segments
        points.append((cx + radius * math.cos(angle), cy + radius * math.sin(angle), z))
    return points
