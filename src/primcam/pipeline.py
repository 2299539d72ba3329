"""
Pipeline orchestrator for the geometry-to-G-code workflow.

Chains: descriptor -> bounding box -> Z levels -> slices -> toolpath -> G-code

Each step is timed and isolated by ``_run_step``. Configuration problems
are raised when the pipeline is constructed; anything that goes wrong
during ``run`` is reported in ``PipelineResult.errors`` together with an
empty-but-well-formed result, so callers can always render something.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from primcam.core.components import (
    ComponentDescriptor,
    component_from_element,
    count_primitives,
    parse_component,
)
from primcam.core.config import GcodeConfig, SlicingOptions
from primcam.core.exceptions import ConfigurationError, GeometryError
from primcam.core.geometry import BoundingBox, calculate_bounding_box
from primcam.core.logging import component_context, get_logger
from primcam.postprocessor.base import EventHooks
from primcam.postprocessor.gcode import GcodeEmitter
from primcam.slicing.plane_intersector import PlaneIntersector
from primcam.slicing.toolpath import ToolpathPoint, ToolpathStatistics, compute_statistics
from primcam.slicing.toolpath_generator import ToolpathGenerator
from primcam.slicing.zlevels import calculate_z_levels
from primcam.slicing.zslice import Point2D, ZSlice

logger = get_logger(__name__)


@dataclass
class StepResult:
    """Result of a single pipeline step."""

    name: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    duration_s: float = 0.0


@dataclass
class PipelineResult:
    """Result of a complete pipeline run."""

    success: bool = False
    toolpath: List[ToolpathPoint] = field(default_factory=list)
    gcode: str = ""
    z_levels: List[float] = field(default_factory=list)
    slices: List[ZSlice] = field(default_factory=list)
    bounding_box: BoundingBox = field(default_factory=BoundingBox.empty)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    estimated_time: float = 0.0  # minutes
    total_distance: float = 0.0  # mm
    statistics: ToolpathStatistics = field(default_factory=ToolpathStatistics)
    steps: List[StepResult] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)
    step_completed: str = ""  # Last step that completed successfully

    def add_warnings(self, warnings: List[str]) -> None:
        for w in warnings:
            if w not in self.warnings:
                self.warnings.append(w)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "toolpath": [p.to_dict() for p in self.toolpath],
            "gcode": self.gcode,
            "zLevels": list(self.z_levels),
            "slices": [s.to_dict() for s in self.slices],
            "boundingBox": self.bounding_box.to_dict(),
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "estimatedTime": self.estimated_time,
            "totalDistance": self.total_distance,
            "statistics": self.statistics.to_dict(),
            "timings": dict(self.timings),
            "stepCompleted": self.step_completed,
        }


# Type alias for progress callback: (step_name, fraction 0.0-1.0)
ProgressCallback = Callable[[str, float], None]


def _noop_callback(step: str, pct: float) -> None:
    pass


def _coerce_config(config: Union[GcodeConfig, Dict[str, Any]]) -> GcodeConfig:
    if isinstance(config, GcodeConfig):
        # Models built with model_construct() skip validation.
        if config.tool_diameter <= 0:
            raise ConfigurationError(
                "Tool diameter must be greater than zero",
                details={"tool_diameter": config.tool_diameter},
            )
        if config.stepdown <= 0:
            raise ConfigurationError(
                "Step-down must be greater than zero",
                details={"stepdown": config.stepdown},
            )
        return config
    if isinstance(config, dict):
        return GcodeConfig.from_dict(config)
    raise ConfigurationError(f"Unsupported config type: {type(config).__name__}")


def _component_id(component: Any) -> str:
    if isinstance(component, dict):
        return str(component.get("id", ""))
    return str(getattr(component, "id", ""))


class Pipeline:
    """End-to-end geometry-to-G-code pipeline.

    Usage:
        pipeline = Pipeline(GcodeConfig(tool_diameter=6.0), SlicingOptions(step_size=2.0))
        result = pipeline.run(Box(width=50, depth=30, height=10))
        if result.errors:
            ...
        print(result.gcode)

    Args:
        config: Machining configuration (model or plain dict)
        slicing: Slicing options; defaults to stepping by ``config.stepdown``
        hooks: Event hooks injected into the G-code program
        progress_callback: Called with (step name, fraction) around every step
        strict: Fail the run on unsupported geometry instead of warning
        start_position: Tool XY position before the first move

    Raises:
        ConfigurationError: If the configuration is invalid
    """

    def __init__(
        self,
        config: Union[GcodeConfig, Dict[str, Any]],
        slicing: Union[SlicingOptions, Dict[str, Any], None] = None,
        hooks: Union[EventHooks, Dict[str, str], None] = None,
        progress_callback: Optional[ProgressCallback] = None,
        strict: bool = False,
        start_position: Point2D = (0.0, 0.0),
    ):
        self.config = _coerce_config(config)
        if slicing is None:
            slicing = SlicingOptions(step_size=self.config.stepdown)
        elif isinstance(slicing, dict):
            slicing = SlicingOptions.from_dict(slicing)
        self.slicing = slicing
        if isinstance(hooks, dict):
            hooks = EventHooks.from_dict(hooks)
        self.hooks = hooks or EventHooks()
        self.strict = strict
        self.start_position = start_position
        self._progress = progress_callback or _noop_callback

    @property
    def max_depth(self) -> Optional[float]:
        """Depth limit: the slicing option, else the configured cut depth."""
        if self.slicing.max_depth is not None:
            return self.slicing.max_depth
        if self.config.depth:
            return self.config.depth
        return None

    def run(self, component: Union[ComponentDescriptor, Dict[str, Any]]) -> PipelineResult:
        """Run every step for one component tree.

        Never raises: failures become ``errors`` on an empty result.
        """
        result = PipelineResult()
        with component_context(_component_id(component)):
            try:
                self._execute(component, result)
            except Exception as e:
                logger.exception("pipeline_unexpected_error", error=str(e))
                result.errors.append(f"Unexpected error: {e}")
            if result.errors:
                return self._failed(result)
            result.success = True
            logger.info(
                "pipeline_complete",
                points=len(result.toolpath),
                levels=len(result.z_levels),
                warnings=len(result.warnings),
                estimated_min=round(result.estimated_time, 2),
            )
        return result

    def _execute(self, component: Any, result: PipelineResult) -> None:
        step = self._record(result, "parse", lambda: self._parse(component))
        if not step.success:
            return
        descriptor: ComponentDescriptor = step.data

        step = self._record(result, "bounding_box", lambda: calculate_bounding_box(descriptor))
        if not step.success:
            return
        bbox: BoundingBox = step.data

        opts = self.slicing
        step = self._record(result, "z_levels", lambda: calculate_z_levels(
            bbox,
            opts.step_size,
            include_top=opts.include_top,
            include_bottom=opts.include_bottom,
            max_depth=self.max_depth,
            z_start=opts.z_start,
            z_end=opts.z_end,
        ))
        if not step.success:
            return
        plan = step.data
        result.add_warnings(plan.warnings)

        intersector = PlaneIntersector(
            resolution=opts.resolution,
            detect_islands=opts.detect_islands,
            merge_overlaps=opts.merge_overlaps,
            strict=self.strict,
        )
        step = self._record(result, "slicing", lambda: intersector.slice_levels(descriptor, plan.levels))
        result.add_warnings(intersector.warnings)
        if not step.success:
            return
        slices: List[ZSlice] = step.data
        if plan.levels and all(s.is_empty for s in slices):
            result.add_warnings(["No contours found at any Z level"])

        generator = ToolpathGenerator(self.config, self.start_position)
        step = self._record(result, "toolpath", lambda: generator.generate(slices))
        if not step.success:
            return
        toolpath = step.data
        result.add_warnings(toolpath.warnings)

        emitter = GcodeEmitter(self.config, self.hooks)
        step = self._record(result, "gcode", lambda: emitter.generate(toolpath.points, toolpath.layers))
        if not step.success:
            return

        stats = compute_statistics(toolpath.points, self.config.feed_rate)

        result.bounding_box = bbox
        result.z_levels = list(plan.levels)
        result.slices = slices
        result.toolpath = toolpath.points
        result.gcode = step.data
        result.statistics = stats
        result.estimated_time = stats.estimated_time
        result.total_distance = stats.total_distance
        logger.debug(
            "pipeline_geometry",
            primitives=count_primitives(descriptor),
            bbox=bbox.to_dict(),
        )

    @staticmethod
    def _parse(component: Any) -> ComponentDescriptor:
        if isinstance(component, dict):
            return parse_component(component)
        if not hasattr(component, "kind"):
            raise GeometryError(f"Unsupported component type: {type(component).__name__}")
        return component

    def _record(self, result: PipelineResult, name: str, fn: Callable[[], Any]) -> StepResult:
        step = self._run_step(name, fn)
        result.steps.append(step)
        result.timings[name] = step.duration_s
        if step.success:
            result.step_completed = name
        else:
            result.errors.append(f"{name.replace('_', ' ').capitalize()} failed: {step.error}")
        return step

    def _run_step(self, name: str, fn: Callable) -> StepResult:
        """Execute a single pipeline step with timing and error handling."""
        self._progress(name, 0.0)
        t0 = time.perf_counter()
        try:
            data = fn()
            duration = time.perf_counter() - t0
            self._progress(name, 1.0)
            logger.info("pipeline_step_complete", step=name, duration_s=round(duration, 4))
            return StepResult(name=name, success=True, data=data, duration_s=duration)
        except Exception as e:
            duration = time.perf_counter() - t0
            logger.error("pipeline_step_failed", step=name, duration_s=round(duration, 4), error=str(e))
            return StepResult(name=name, success=False, error=str(e), duration_s=duration)

    @staticmethod
    def _failed(result: PipelineResult) -> PipelineResult:
        """Empty result carrying only diagnostics."""
        return PipelineResult(
            success=False,
            warnings=result.warnings,
            errors=result.errors,
            steps=result.steps,
            timings=result.timings,
            step_completed=result.step_completed,
        )


def generate_gcode_from_element(
    element: Dict[str, Any],
    config: Union[GcodeConfig, Dict[str, Any]],
    slicing: Union[SlicingOptions, Dict[str, Any], None] = None,
) -> PipelineResult:
    """
    Run the pipeline on a flat editor element dict.

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    pipeline = Pipeline(config, slicing)
    try:
        component = component_from_element(element)
    except GeometryError as e:
        return PipelineResult(errors=[f"Invalid element: {e}"])
    return pipeline.run(component)
