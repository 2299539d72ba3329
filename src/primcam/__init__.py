"""
primcam - Parametric primitives to G-code

Slices trees of parametric solids (box, sphere, cylinder, cone, torus,
hemisphere, capsule, composite) at Z levels, turns the cross-sections into
2.5D milling toolpaths, and post-processes them into ISO G-code.
"""

__version__ = "0.1.0"
__author__ = "primcam Contributors"

from primcam.core.config import ConfigManager, GcodeConfig, SlicingOptions
from primcam.pipeline import Pipeline, PipelineResult, generate_gcode_from_element

__all__ = [
    "__version__",
    "ConfigManager",
    "GcodeConfig",
    "SlicingOptions",
    "Pipeline",
    "PipelineResult",
    "generate_gcode_from_element",
]
