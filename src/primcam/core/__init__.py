"""
Core module - Component descriptors, bounds, configuration, errors and logging.
"""

from primcam.core.components import (
    Box,
    Capsule,
    ComponentDescriptor,
    Composite,
    Cone,
    Cylinder,
    Hemisphere,
    Mesh,
    Sphere,
    Torus,
    Vec3,
    component_from_element,
    parse_component,
)
from primcam.core.config import (
    ConfigManager,
    GcodeConfig,
    MachiningProfile,
    SlicingOptions,
    load_profile,
)
from primcam.core.exceptions import (
    PrimcamError,
    ConfigurationError,
    GeometryError,
    UnsupportedGeometryError,
    SlicingError,
    PostProcessorError,
)
from primcam.core.geometry import BoundingBox, calculate_bounding_box

__all__ = [
    # Components
    "Vec3",
    "Box",
    "Sphere",
    "Hemisphere",
    "Cylinder",
    "Cone",
    "Torus",
    "Capsule",
    "Mesh",
    "Composite",
    "ComponentDescriptor",
    "parse_component",
    "component_from_element",
    # Config
    "ConfigManager",
    "GcodeConfig",
    "SlicingOptions",
    "MachiningProfile",
    "load_profile",
    # Exceptions
    "PrimcamError",
    "ConfigurationError",
    "GeometryError",
    "UnsupportedGeometryError",
    "SlicingError",
    "PostProcessorError",
    # Geometry
    "BoundingBox",
    "calculate_bounding_box",
]
