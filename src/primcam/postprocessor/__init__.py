"""
primcam Post Processor Module

Converts toolpath points into a generic ISO G-code program. Post processors
inherit from PostProcessorBase and support event hooks for customization.
"""

from .base import PostProcessorBase, EventHooks
from .gcode import GcodeEmitter, generate_gcode

__all__ = [
    'PostProcessorBase',
    'EventHooks',
    'GcodeEmitter',
    'generate_gcode',
]
