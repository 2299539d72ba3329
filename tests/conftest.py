"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import pytest

from primcam.core.components import Box, Composite, Cylinder, Sphere, Torus
from primcam.core.config import GcodeConfig
from primcam.core.logging import configure_logging


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config_dir(temp_dir):
    """Create a sample configuration directory with two machining profiles."""
    config_dir = temp_dir / "config"
    (config_dir / "operations").mkdir(parents=True)

    contour_profile = """
profile:
  name: "Test Contour"
  description: "Outside profile for tests"

gcode:
  tool_diameter: 6.0
  feed_rate: 900
  plunge_rate: 250
  side: outside

slicing:
  step_size: 2.0

hooks:
  layer_start: "; layer {layerIndex}"
"""
    (config_dir / "operations" / "test_contour.yaml").write_text(contour_profile)

    pocket_profile = """
profile:
  name: "Test Pocket"

gcode:
  tool_diameter: 4.0
  operation_type: pocket
  stepover: "50%"
"""
    (config_dir / "operations" / "test_pocket.yaml").write_text(pocket_profile)

    return config_dir


@pytest.fixture
def gcode_config():
    """Plain 6 mm contour configuration."""
    return GcodeConfig(tool_diameter=6.0, feed_rate=1000.0, plunge_rate=300.0)


@pytest.fixture
def cube():
    """100 mm cube centred on the origin."""
    return Box(id="cube", width=100.0, depth=100.0, height=100.0)


@pytest.fixture
def sphere():
    """Sphere of radius 50 centred on the origin."""
    return Sphere(id="sphere", radius=50.0)


@pytest.fixture
def torus():
    """Torus with major radius 20 and tube radius 5."""
    return Torus(id="torus", radius=20.0, tube_radius=5.0)


@pytest.fixture
def assembly():
    """Two disjoint primitives grouped in a composite."""
    return Composite(
        id="assembly",
        children=[
            Box(id="block", position=(-30.0, 0.0, 0.0), width=20.0, depth=10.0, height=10.0),
            Cylinder(id="pin", position=(30.0, 0.0, 0.0), radius=5.0, height=10.0),
        ],
    )


@pytest.fixture
def reset_logging():
    """Restore stderr-only logging after a test that reconfigures it."""
    yield
    configure_logging(level="WARNING")
