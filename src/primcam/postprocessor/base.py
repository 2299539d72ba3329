"""
PostProcessorBase — Abstract base class for toolpath post processors.

Provides an event-hook architecture where users can inject custom code
at key points in the program (start, end, layer change).

Template variables available in event hooks:
  {layerIndex}  — current layer number (0-based)
  {zLevel}      — Z height of the current layer (mm)
  {x}, {y}, {z} — tool position at the event (mm)
  {feed}        — active feed rate (mm/min)
  {programName} — program name from the config
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from primcam.core.config import GcodeConfig
from primcam.slicing.toolpath import ToolpathPoint


@dataclass
class EventHooks:
    """
    Customizable code snippets injected at event points.
    Each string may contain template variables like {x}, {zLevel}.
    """
    program_start: str = ""
    program_end: str = ""
    layer_start: str = ""
    layer_end: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'EventHooks':
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        return cls(**{k: v for k, v in d.items() if k in valid_fields})


@dataclass
class EventContext:
    """Values substituted into hook templates."""
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None
    feed: Optional[float] = None
    layer_index: int = -1
    z_level: Optional[float] = None

    def template_vars(self, program_name: str, decimals: int = 3) -> Dict[str, str]:
        def fmt(value: Optional[float]) -> str:
            return "" if value is None else f"{value:.{decimals}f}"

        return {
            'x': fmt(self.x),
            'y': fmt(self.y),
            'z': fmt(self.z),
            'feed': "" if self.feed is None else f"{self.feed:g}",
            'layerIndex': str(self.layer_index),
            'zLevel': fmt(self.z_level),
            'programName': program_name,
        }


class PostProcessorBase(ABC):
    """
    Abstract base class for post processors.

    Subclasses implement format-specific methods:
    - header() / footer()
    - linear_move() / rapid_move()
    - comment()
    """

    def __init__(self, config: GcodeConfig, hooks: Optional[EventHooks] = None):
        self.config = config
        self.hooks = hooks or EventHooks()
        self._lines: List[str] = []
        self._current_layer: int = -1
        self._current_z: Optional[float] = None

    # ── Abstract methods (must be implemented by subclasses) ───────────

    @abstractmethod
    def header(self) -> List[str]:
        """Generate program header lines."""
        ...

    @abstractmethod
    def footer(self) -> List[str]:
        """Generate program footer lines."""
        ...

    @abstractmethod
    def linear_move(self, pt: ToolpathPoint) -> List[str]:
        """Generate a linear (cutting) move command."""
        ...

    @abstractmethod
    def rapid_move(self, pt: ToolpathPoint) -> List[str]:
        """Generate a rapid (positioning) move command."""
        ...

    @abstractmethod
    def comment(self, text: str) -> str:
        """Format a comment line."""
        ...

    # ── Optional overrides ────────────────────────────────────────────

    def layer_change_code(self, layer: int, z_level: float) -> List[str]:
        """Code injected at layer transitions."""
        return [self.comment(f"Layer {layer} Z={z_level:.{self.config.decimal_places}f}")]

    def event_context(self) -> EventContext:
        """Current machine state for hook expansion."""
        return EventContext(layer_index=self._current_layer, z_level=self._current_z)

    def finalize(self, lines: List[str]) -> List[str]:
        """Last pass over the complete program (line numbering etc.)."""
        return lines

    # ── Hook expansion ────────────────────────────────────────────────

    def _expand_hook(self, hook_template: str, ctx: Optional[EventContext] = None) -> List[str]:
        """Expand template variables in a hook string."""
        if not hook_template.strip():
            return []
        ctx = ctx or self.event_context()
        template_vars = ctx.template_vars(self.config.program_name, self.config.decimal_places)
        try:
            expanded = hook_template.format(**template_vars)
        except (KeyError, IndexError, ValueError):
            expanded = hook_template  # Leave unresolved variables as-is
        return [line for line in expanded.split('\n') if line.strip()]

    # ── Main generation pipeline ──────────────────────────────────────

    def generate(
        self,
        points: Sequence[ToolpathPoint],
        layers: Optional[Sequence[Tuple[int, float]]] = None,
    ) -> str:
        """
        Generate the complete post-processed program.

        Parameters:
            points: Ordered toolpath points.
            layers: (index of first point, z level) pairs marking layer starts.

        Returns:
            Complete program as a string, empty if there are no points.
        """
        self._lines = []
        self._current_layer = -1
        self._current_z = None

        if not points:
            return ""

        layer_starts = {index: z for index, z in (layers or [])}

        self._lines.extend(self.header())
        self._lines.extend(self._expand_hook(self.hooks.program_start))

        for index, pt in enumerate(points):
            if index in layer_starts:
                if self._current_layer >= 0:
                    self._lines.extend(self._expand_hook(self.hooks.layer_end))
                self._current_layer += 1
                self._current_z = layer_starts[index]
                self._lines.extend(self.layer_change_code(self._current_layer, self._current_z))
                self._lines.extend(self._expand_hook(self.hooks.layer_start))

            if pt.is_rapid:
                self._lines.extend(self.rapid_move(pt))
            else:
                self._lines.extend(self.linear_move(pt))

        if self._current_layer >= 0:
            self._lines.extend(self._expand_hook(self.hooks.layer_end))

        self._lines.extend(self._expand_hook(self.hooks.program_end))
        self._lines.extend(self.footer())

        return "\n".join(self.finalize(self._lines)) + "\n"
