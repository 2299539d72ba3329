"""
Generic ISO G-code post processor — generates .nc programs for 3-axis mills.

Output is a small ISO subset: G0/G1 motion with X/Y/Z/F words. The emitter
tracks modal state so that a word is only written when its value changes,
and lines that would change nothing are dropped.
"""

import datetime
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from primcam.core.config import CommentStyle, GcodeConfig
from primcam.core.exceptions import PostProcessorError
from primcam.core.logging import get_logger
from primcam.postprocessor.base import EventContext, EventHooks, PostProcessorBase
from primcam.slicing.toolpath import ToolpathPoint

logger = get_logger(__name__)

# Work offsets 7-9 use the extended G59.x registers.
WORK_OFFSETS = {
    1: "G54", 2: "G55", 3: "G56", 4: "G57", 5: "G58", 6: "G59",
    7: "G59.1", 8: "G59.2", 9: "G59.3",
}

LINE_NUMBER_STEP = 10


def format_feed(value: float) -> str:
    """Feed word value without trailing zeros (1000.0 -> "1000")."""
    text = f"{value:.1f}"
    return text[:-2] if text.endswith(".0") else text


@dataclass
class ModalState:
    """Last emitted value of every modal word (formatted)."""
    motion: Optional[str] = None
    x: Optional[str] = None
    y: Optional[str] = None
    z: Optional[str] = None
    feed: Optional[str] = None


class GcodeEmitter(PostProcessorBase):
    """Generic ISO G-code post processor generating .nc files."""

    file_extension = ".nc"

    def __init__(
        self,
        config: GcodeConfig,
        hooks: Optional[EventHooks] = None,
        generated_at: Optional[datetime.datetime] = None,
    ):
        super().__init__(config, hooks)
        self.generated_at = generated_at
        self._modal = ModalState()
        self._feed_clamped = False

    # ── Formatting ────────────────────────────────────────────────────

    def comment(self, text: str) -> str:
        if self.config.comment_style == CommentStyle.PARENTHESES:
            # Nested parentheses would end the comment early.
            return f"({text.replace('(', '[').replace(')', ']')})"
        return f"; {text}"

    def _coord(self, value: float) -> str:
        text = f"{value:.{self.config.decimal_places}f}"
        # Avoid "-0.000"
        if text.startswith("-") and float(text) == 0.0:
            text = text[1:]
        return text

    def _feed_for(self, pt: ToolpathPoint) -> float:
        feed = pt.feed_rate if pt.feed_rate is not None else self.config.feed_rate
        limit = self.config.max_feed_rate
        if limit is not None and feed > limit:
            if not self._feed_clamped:
                logger.warning("feed_rate_clamped", requested=feed, limit=limit)
                self._feed_clamped = True
            return limit
        return feed

    # ── Program structure ─────────────────────────────────────────────

    def header(self) -> List[str]:
        cfg = self.config
        stamp = (self.generated_at or datetime.datetime.now()).strftime("%Y-%m-%d %H:%M")
        lines = [
            self.comment(f"Program: {cfg.program_name}"),
            self.comment(f"Operation: {cfg.operation_type.value}"),
        ]
        if cfg.material_name:
            lines.append(self.comment(f"Material: {cfg.material_name}"))
        lines.extend([
            self.comment(f"Tool: D{self._coord(cfg.tool_diameter)} L{self._coord(cfg.tool_length)}"),
            self.comment(f"Generated: {stamp}"),
            "G90",
            "G21",
            "G17",
        ])
        if cfg.use_work_offset:
            lines.append(WORK_OFFSETS[cfg.work_offset])
        lines.append(f"M3 S{cfg.spindle_speed:.0f}")
        if cfg.coolant:
            lines.append("M8")
        if cfg.mist:
            lines.append("M7")

        safe_z = self._coord(cfg.safe_height)
        lines.append(f"G0 Z{safe_z}")
        self._modal = ModalState(motion="G0", z=safe_z)
        return lines

    def footer(self) -> List[str]:
        cfg = self.config
        lines = [f"G0 Z{self._coord(cfg.safe_height)}"]
        if cfg.coolant or cfg.mist:
            lines.append("M9")
        lines.extend(["M5", "M30"])
        return lines

    # ── Motion ────────────────────────────────────────────────────────

    def _move(self, pt: ToolpathPoint, motion: str) -> List[str]:
        if not all(math.isfinite(v) for v in (pt.x, pt.y, pt.z)):
            raise PostProcessorError(
                "Toolpath point has a non-finite coordinate",
                details={"x": pt.x, "y": pt.y, "z": pt.z},
            )
        modal = self._modal
        words = []
        for axis, value in (("X", pt.x), ("Y", pt.y), ("Z", pt.z)):
            text = self._coord(value)
            attr = axis.lower()
            if getattr(modal, attr) != text:
                words.append(f"{axis}{text}")
                setattr(modal, attr, text)
        if not words:
            return []

        feed_word = None
        if motion == "G1":
            feed = format_feed(self._feed_for(pt))
            if feed != modal.feed:
                feed_word = f"F{feed}"
                modal.feed = feed

        if motion != modal.motion:
            words.insert(0, motion)
            modal.motion = motion
        if feed_word:
            words.append(feed_word)
        return [" ".join(words)]

    def rapid_move(self, pt: ToolpathPoint) -> List[str]:
        return self._move(pt, "G0")

    def linear_move(self, pt: ToolpathPoint) -> List[str]:
        return self._move(pt, "G1")

    def event_context(self) -> EventContext:
        ctx = super().event_context()
        modal = self._modal
        ctx.x = float(modal.x) if modal.x is not None else None
        ctx.y = float(modal.y) if modal.y is not None else None
        ctx.z = float(modal.z) if modal.z is not None else None
        ctx.feed = float(modal.feed) if modal.feed is not None else None
        return ctx

    def finalize(self, lines: List[str]) -> List[str]:
        if not self.config.line_numbers:
            return lines
        numbered = []
        n = 0
        for line in lines:
            if line.startswith(("(", ";")):
                numbered.append(line)
                continue
            n += LINE_NUMBER_STEP
            numbered.append(f"N{n} {line}")
        return numbered

    def generate(
        self,
        points: Sequence[ToolpathPoint],
        layers: Optional[Sequence[Tuple[int, float]]] = None,
    ) -> str:
        self._modal = ModalState()
        self._feed_clamped = False
        program = super().generate(points, layers)
        logger.debug("gcode_generated", lines=len(self._lines), points=len(points))
        return program


def generate_gcode(
    points: Sequence[ToolpathPoint],
    config: GcodeConfig,
    layers: Optional[Sequence[Tuple[int, float]]] = None,
    hooks: Optional[EventHooks] = None,
) -> str:
    """Convenience wrapper around GcodeEmitter."""
    return GcodeEmitter(config, hooks).generate(points, layers)
