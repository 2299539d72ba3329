"""
Toolpath data structures for representing machine motion.

A toolpath is a flat, ordered list of ToolpathPoint targets. Each point is
reached either with a rapid (non-cutting) move or a linear feed move.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np

# Assumed rapid traverse rate for time estimates (mm/min).
RAPID_FEED_RATE = 5000.0


class MoveType(str, Enum):
    """How the tool travels to a point."""

    RAPID = "rapid"  # G0, positioning only
    LINEAR = "linear"  # G1, controlled feed


@dataclass(frozen=True)
class ToolpathPoint:
    """
    Target position of one move.

    Attributes:
        x, y, z: Target position (mm)
        move: Motion type used to reach the point
        feed_rate: Feed for linear moves (mm/min); None uses the default feed
    """

    x: float
    y: float
    z: float
    move: MoveType = MoveType.LINEAR
    feed_rate: Optional[float] = None

    @property
    def is_rapid(self) -> bool:
        return self.move == MoveType.RAPID

    def distance_to(self, other: "ToolpathPoint") -> float:
        return float(np.sqrt(
            (other.x - self.x) ** 2 + (other.y - self.y) ** 2 + (other.z - self.z) ** 2
        ))

    def to_dict(self) -> Dict[str, object]:
        d: Dict[str, object] = {"x": self.x, "y": self.y, "z": self.z, "type": self.move.value}
        if self.feed_rate is not None:
            d["feedRate"] = self.feed_rate
        return d


def rapid(x: float, y: float, z: float) -> ToolpathPoint:
    return ToolpathPoint(x, y, z, MoveType.RAPID)


def linear(x: float, y: float, z: float, feed_rate: Optional[float] = None) -> ToolpathPoint:
    return ToolpathPoint(x, y, z, MoveType.LINEAR, feed_rate)


@dataclass
class ToolpathStatistics:
    """
    Summary measures of a toolpath.

    Attributes:
        total_distance: Length of all moves (mm)
        rapid_distance: Length of rapid moves (mm)
        cutting_distance: Length of linear moves (mm)
        estimated_time: Machining time estimate (minutes)
        point_count: Number of points
        bounds: min/max per axis, zeroed for an empty toolpath
    """

    total_distance: float = 0.0
    rapid_distance: float = 0.0
    cutting_distance: float = 0.0
    estimated_time: float = 0.0
    point_count: int = 0
    bounds: Dict[str, float] = field(
        default_factory=lambda: {
            "minX": 0.0, "maxX": 0.0, "minY": 0.0, "maxY": 0.0, "minZ": 0.0, "maxZ": 0.0,
        }
    )

    def to_dict(self) -> Dict[str, object]:
        return {
            "totalDistance": self.total_distance,
            "rapidDistance": self.rapid_distance,
            "cuttingDistance": self.cutting_distance,
            "estimatedTime": self.estimated_time,
            "pointCount": self.point_count,
            "bounds": dict(self.bounds),
        }


def compute_statistics(
    points: Sequence[ToolpathPoint],
    default_feed_rate: float,
    rapid_feed_rate: float = RAPID_FEED_RATE,
) -> ToolpathStatistics:
    """
    Distances and time estimate for a toolpath.

    Each move is classified by the type of its destination point. Rapid
    moves run at ``rapid_feed_rate``; linear moves at their own feed or
    ``default_feed_rate``.

    Returns:
        ToolpathStatistics with ``estimated_time`` in minutes
    """
    stats = ToolpathStatistics(point_count=len(points))
    if not points:
        return stats

    coords = np.array([(p.x, p.y, p.z) for p in points], dtype=float)
    mins = coords.min(axis=0)
    maxs = coords.max(axis=0)
    stats.bounds = {
        "minX": float(mins[0]), "maxX": float(maxs[0]),
        "minY": float(mins[1]), "maxY": float(maxs[1]),
        "minZ": float(mins[2]), "maxZ": float(maxs[2]),
    }
    if len(points) < 2:
        return stats

    lengths = np.linalg.norm(np.diff(coords, axis=0), axis=1)
    rapid_mask = np.array([p.is_rapid for p in points[1:]], dtype=bool)
    feeds = np.array(
        [p.feed_rate or default_feed_rate for p in points[1:]], dtype=float
    )

    stats.total_distance = float(lengths.sum())
    stats.rapid_distance = float(lengths[rapid_mask].sum())
    stats.cutting_distance = float(lengths[~rapid_mask].sum())

    rapid_time = stats.rapid_distance / rapid_feed_rate
    cutting_time = float(np.sum(lengths[~rapid_mask] / feeds[~rapid_mask]))
    stats.estimated_time = rapid_time + cutting_time
    return stats
