"""
Toolpath generation from planar slices.

Turns the contours of each ZSlice into an ordered list of machine moves:
rapid to safe height above the entry point, plunge (or ramp) to the
cutting level, one lap around the closed loop, optional lead-out, then
retract. The entry point of every loop is the vertex nearest to where
the tool currently is, and that position is carried across slices.

Two operations are supported:
- contour: one lap per contour, compensated to the inside/outside/on side
- pocket: concentric inward rings spaced by the stepover, centre outwards
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from primcam.core.config import (
    CutDirection,
    EntryStrategy,
    ExitStrategy,
    GcodeConfig,
    OffsetSide,
    OperationType,
)
from primcam.slicing.contour import (
    contour_area,
    ensure_orientation,
    is_clockwise,
    is_degenerate,
    offset_contour,
    offset_regions,
    point_in_contour,
    simplify_contour,
)
from primcam.slicing.entry_exit import (
    arc_lead_out,
    direct_lap,
    ramp_into_loop,
    ramp_lead_out,
)
from primcam.slicing.toolpath import ToolpathPoint, linear, rapid
from primcam.slicing.zslice import Contour, Point2D, ZSlice

logger = logging.getLogger(__name__)

MAX_POCKET_RINGS = 500


@dataclass
class ToolpathResult:
    """
    Output of a toolpath generation run.

    Attributes:
        points: Ordered machine moves
        warnings: Non-fatal problems met while generating
        layers: (index of first point, z level) for every cut slice
        loops_cut: Number of closed loops machined
        skipped_contours: Contours dropped as degenerate
    """

    points: List[ToolpathPoint] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    layers: List[Tuple[int, float]] = field(default_factory=list)
    loops_cut: int = 0
    skipped_contours: int = 0

    def warn(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)
            logger.warning(message)

    def to_dict(self) -> dict:
        return {
            "points": [p.to_dict() for p in self.points],
            "warnings": list(self.warnings),
            "layers": [{"index": i, "zLevel": z} for i, z in self.layers],
            "loopsCut": self.loops_cut,
            "skippedContours": self.skipped_contours,
        }


# A loop to machine and whether the part material lies inside it.
_Loop = Tuple[Contour, bool]


class ToolpathGenerator:
    """
    Generate 2.5D milling toolpaths from Z slices.

    Usage::

        generator = ToolpathGenerator(config)
        result = generator.generate(slices)
        print(len(result.points), result.warnings)

    Args:
        config: Validated machining configuration
        start_position: XY position of the tool before the first move
    """

    def __init__(self, config: GcodeConfig, start_position: Point2D = (0.0, 0.0)):
        self.config = config
        self.start_position = (float(start_position[0]), float(start_position[1]))

    def generate(self, slices: Sequence[ZSlice]) -> ToolpathResult:
        """
        Build the move list for slices given in cutting order.

        Empty slices are skipped. With ``finishing_pass`` enabled, the last
        non-empty slice is cut once more with no stock left.

        Returns:
            ToolpathResult; never raises for degenerate geometry
        """
        result = ToolpathResult()
        position = self.start_position
        previous_z: Optional[float] = None
        last_slice: Optional[ZSlice] = None

        for zslice in slices:
            if zslice.is_empty:
                continue
            loops = self._slice_loops(zslice, self.config.stock_to_leave, result)
            if loops:
                result.layers.append((len(result.points), zslice.z_level))
            for loop, part_inside in loops:
                position = self._cut_loop(
                    result, loop, zslice.z_level, part_inside, position, previous_z
                )
            previous_z = zslice.z_level
            last_slice = zslice

        if self.config.finishing_pass and last_slice is not None:
            loops = self._slice_loops(last_slice, 0.0, result, finishing=True)
            if loops:
                result.layers.append((len(result.points), last_slice.z_level))
            for loop, part_inside in loops:
                position = self._cut_loop(
                    result, loop, last_slice.z_level, part_inside, position, previous_z
                )

        if result.skipped_contours:
            result.warn(f"Skipped {result.skipped_contours} degenerate contour(s)")

        logger.info(
            "Generated toolpath: %d points, %d loops from %d slices",
            len(result.points),
            result.loops_cut,
            len(slices),
        )
        return result

    # ── Loop construction ──────────────────────────────────────────────

    def _prepare(
        self, contour: Contour, result: ToolpathResult, count: bool = True
    ) -> Optional[Contour]:
        """Simplify a contour and drop it if degenerate, counting the skip."""
        if self.config.tolerance_threshold > 0:
            contour = simplify_contour(contour, self.config.tolerance_threshold)
        if is_degenerate(contour):
            if count:
                result.skipped_contours += 1
            return None
        return list(contour)

    def _slice_loops(
        self,
        zslice: ZSlice,
        stock: float,
        result: ToolpathResult,
        finishing: bool = False,
    ) -> List[_Loop]:
        cfg = self.config
        tool_offset = cfg.tool_radius + stock
        pocket = cfg.operation_type == OperationType.POCKET

        count = not finishing
        islands = [c for c in (self._prepare(i, result, count) for i in zslice.islands) if c]
        loops: List[_Loop] = []

        for raw in zslice.contours:
            contour = self._prepare(raw, result, count)
            if contour is None:
                continue

            if pocket:
                keepouts = [offset_contour(i, tool_offset) for i in islands]
                rings = self._pocket_rings(
                    contour, tool_offset, keepouts, zslice.z_level, result, wall_only=finishing
                )
                loops.extend((ring, False) for ring in rings)
            elif cfg.side == OffsetSide.OUTSIDE:
                loops.append((offset_contour(contour, tool_offset), True))
            elif cfg.side == OffsetSide.INSIDE:
                loop = offset_contour(contour, -tool_offset)
                if _collapsed(contour, loop):
                    result.warn(
                        f"Tool too large for contour at Z={zslice.z_level:.3f}, contour skipped"
                    )
                    continue
                loops.append((loop, False))
            else:
                loops.append((contour, True))

        for island in islands:
            if pocket or cfg.side != OffsetSide.ON:
                island = offset_contour(island, tool_offset)
            loops.append((island, True))

        if cfg.enforce_direction:
            loops = [(self._orient(loop, part_inside), part_inside) for loop, part_inside in loops]
        return loops

    def _pocket_rings(
        self,
        contour: Contour,
        tool_offset: float,
        keepouts: List[Contour],
        z_level: float,
        result: ToolpathResult,
        wall_only: bool = False,
    ) -> List[Contour]:
        """
        Concentric inward rings, innermost first.

        Each ring is offset by the stepover until nothing is left. A ring
        that pinches apart carries on as several rings, one per region.
        With ``wall_only`` just the rings next to the wall are returned.
        """
        stepover = float(self.config.stepover or self.config.tool_diameter * 0.4)
        level = offset_regions(contour, -tool_offset)
        rings: List[Contour] = []

        for _ in range(1 if wall_only else MAX_POCKET_RINGS):
            if not level:
                break
            next_level: List[Contour] = []
            for ring in level:
                if any(point_in_contour(p, k) for k in keepouts for p in ring):
                    result.warn(f"Pocket ring crosses an island at Z={z_level:.3f}, ring skipped")
                else:
                    rings.append(ring)
                next_level.extend(offset_regions(ring, -stepover))
            level = next_level
        else:
            if level and not wall_only:
                result.warn(f"Pocket ring limit of {MAX_POCKET_RINGS} reached at Z={z_level:.3f}")

        if not rings:
            result.warn(f"Tool too large for pocket at Z={z_level:.3f}, contour skipped")
        rings.reverse()
        return rings

    def _orient(self, loop: Contour, part_inside: bool) -> Contour:
        # Clockwise spindle: climb milling keeps the part on the right.
        climb = self.config.direction == CutDirection.CLIMB
        return ensure_orientation(loop, clockwise=(climb == part_inside))

    # ── Motion ─────────────────────────────────────────────────────────

    def _cut_loop(
        self,
        result: ToolpathResult,
        loop: Contour,
        z_level: float,
        part_inside: bool,
        position: Point2D,
        previous_z: Optional[float],
    ) -> Point2D:
        """Append the moves for one loop and return the tool's new XY."""
        cfg = self.config
        loop = _rotate_to_nearest(loop, position)
        sx, sy = loop[0]
        points = result.points

        points.append(rapid(sx, sy, cfg.safe_height))

        ramp_top = previous_z if previous_z is not None else z_level + cfg.stepdown
        ramp_top = min(ramp_top, cfg.safe_height)
        if cfg.entry_strategy == EntryStrategy.RAMP and ramp_top > z_level:
            points.append(linear(sx, sy, ramp_top, cfg.plunge_rate))
            ramp, lap = ramp_into_loop(loop, ramp_top, z_level, cfg.ramp_angle)
            points.extend(linear(x, y, z, cfg.plunge_rate) for x, y, z in ramp)
        else:
            if cfg.entry_strategy in (EntryStrategy.HELIX, EntryStrategy.ZIGZAG):
                result.warn(
                    f"Entry strategy '{cfg.entry_strategy.value}' is not supported, "
                    "using a direct plunge"
                )
            points.append(linear(sx, sy, z_level, cfg.plunge_rate))
            lap = direct_lap(loop, z_level)

        points.extend(linear(x, y, z, cfg.feed_rate) for x, y, z in lap)

        path = [(sx, sy, z_level)] + lap
        if cfg.exit_strategy == ExitStrategy.RAMP:
            lead = ramp_lead_out(path, cfg.lead_length, cfg.ramp_angle)
        elif cfg.exit_strategy == ExitStrategy.ARC:
            turn_left = (not is_clockwise(loop)) != part_inside
            lead = arc_lead_out(path, cfg.lead_length, turn_left=turn_left)
        else:
            lead = []
        points.extend(linear(x, y, z, cfg.feed_rate) for x, y, z in lead)

        ex, ey = points[-1].x, points[-1].y
        points.append(linear(ex, ey, cfg.safe_height, cfg.plunge_rate))
        result.loops_cut += 1
        return (ex, ey)


def _collapsed(original: Contour, offset: Contour) -> bool:
    """An inward offset that vanished or turned inside out."""
    if is_degenerate(offset) or is_clockwise(offset) != is_clockwise(original):
        return True
    if contour_area(offset) >= contour_area(original):
        return True
    # Offset edges stay parallel to their source edge; past the medial
    # axis they flip direction.
    a = np.asarray(original, dtype=float)
    b = np.asarray(offset, dtype=float)
    dots = np.sum((np.roll(a, -1, axis=0) - a) * (np.roll(b, -1, axis=0) - b), axis=1)
    return bool(np.any(dots < 0))


def _rotate_to_nearest(loop: Contour, position: Point2D) -> Contour:
    """Start the loop at the vertex closest to ``position``."""
    pts = np.asarray(loop, dtype=float)
    index = int(np.argmin(np.hypot(pts[:, 0] - position[0], pts[:, 1] - position[1])))
    return list(loop[index:]) + list(loop[:index])


def generate_toolpath(
    slices: Sequence[ZSlice],
    config: GcodeConfig,
    start_position: Point2D = (0.0, 0.0),
) -> ToolpathResult:
    """Convenience wrapper around ToolpathGenerator."""
    return ToolpathGenerator(config, start_position).generate(slices)
