"""
Z-level planning — the heights at which the geometry is sliced.

Levels run strictly downward from the top of the stock (or an explicit
start height) to the bottom (or an explicit end height / depth cap). The
number of levels is capped so that a pathological bounding box or a tiny
step can never produce an unbounded plan.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from primcam.core.exceptions import ConfigurationError
from primcam.core.geometry import BoundingBox
from primcam.core.logging import get_logger

logger = get_logger(__name__)

MAX_Z_LEVELS = 1000

# Levels closer than this (mm) are considered the same height.
Z_TOLERANCE = 1e-3


@dataclass
class ZLevelPlan:
    """Planned Z heights plus any warnings raised while planning."""

    levels: List[float] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    capped: bool = False

    def __len__(self) -> int:
        return len(self.levels)

    def __iter__(self):
        return iter(self.levels)


def calculate_z_levels(
    bounding_box: BoundingBox,
    step_size: float,
    include_top: bool = True,
    include_bottom: bool = True,
    max_depth: Optional[float] = None,
    z_start: Optional[float] = None,
    z_end: Optional[float] = None,
) -> ZLevelPlan:
    """
    Compute the ordered slice heights for a bounding box.

    Args:
        bounding_box: Bounds of the component
        step_size: Vertical distance between levels (mm), must be > 0
        include_top: Emit a level exactly at the top height
        include_bottom: Emit a level exactly at the bottom height
        max_depth: Limit how far below the top the plan reaches (mm)
        z_start: Top height override (defaults to the box maximum Z)
        z_end: Bottom height override (defaults to the box minimum Z)

    Returns:
        ZLevelPlan with strictly decreasing levels

    Raises:
        ConfigurationError: If step_size is not positive or z_end lies above z_start
    """
    if step_size <= 0:
        raise ConfigurationError(
            "Z step size must be greater than zero",
            details={"step_size": step_size},
        )

    top = bounding_box.zmax if z_start is None else z_start
    bottom = bounding_box.zmin if z_end is None else z_end
    if bottom > top + Z_TOLERANCE:
        raise ConfigurationError(
            "Slicing end height lies above the start height",
            details={"z_start": top, "z_end": bottom},
        )
    bottom = min(bottom, top)
    if max_depth is not None and max_depth > 0:
        bottom = max(bottom, top - max_depth)

    plan = ZLevelPlan()

    def _cap_reached() -> bool:
        if len(plan.levels) < MAX_Z_LEVELS:
            return False
        if not plan.capped:
            plan.capped = True
            message = f"Excessive number of Z levels, limited to {MAX_Z_LEVELS}"
            plan.warnings.append(message)
            logger.warning(
                "z_level_cap_reached",
                limit=MAX_Z_LEVELS,
                top=top,
                bottom=bottom,
                step=step_size,
            )
        return True

    if include_top:
        plan.levels.append(top)

    k = 1
    while True:
        z = top - k * step_size
        if z < bottom - Z_TOLERANCE:
            break
        if abs(z - bottom) <= Z_TOLERANCE:
            z = bottom
        if plan.levels and z >= plan.levels[-1]:
            break
        if _cap_reached():
            break
        plan.levels.append(z)
        if z == bottom:
            break
        k += 1

    if include_bottom and not plan.capped:
        last = plan.levels[-1] if plan.levels else None
        if last is None or abs(last - bottom) > Z_TOLERANCE:
            if not _cap_reached():
                plan.levels.append(bottom)
    elif not include_bottom and plan.levels and bottom < top:
        # Drop a level that landed on the bottom surface.
        if abs(plan.levels[-1] - bottom) <= Z_TOLERANCE:
            plan.levels.pop()

    logger.debug(
        "z_levels_planned",
        count=len(plan.levels),
        top=top,
        bottom=bottom,
        step=step_size,
    )
    return plan
