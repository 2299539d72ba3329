"""
Tests for the command-line interface.
"""

import json

import pytest
from click.testing import CliRunner

from primcam.cli import load_descriptor, main
from primcam.core.components import Box, Composite
from primcam.core.exceptions import GeometryError

pytestmark = pytest.mark.usefixtures("reset_logging")

CUBE_YAML = """
kind: box
id: cube
width: 100
depth: 100
height: 100
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cube_file(temp_dir):
    path = temp_dir / "cube.yaml"
    path.write_text(CUBE_YAML)
    return path


class TestLoadDescriptor:
    """Tests for descriptor file loading."""

    def test_yaml_tree(self, cube_file):
        """Test YAML descriptor trees are parsed."""
        component = load_descriptor(cube_file)
        assert isinstance(component, Box)
        assert component.width == 100

    def test_json_element(self, temp_dir):
        """Test JSON editor elements are converted."""
        path = temp_dir / "element.json"
        path.write_text(json.dumps({
            "type": "group",
            "elements": [{"type": "cube", "width": 10, "height": 10, "depth": 10}],
        }))
        component = load_descriptor(path)
        assert isinstance(component, Composite)
        assert component.children[0].kind == "box"

    def test_not_a_mapping(self, temp_dir):
        """Test non-mapping files are rejected."""
        path = temp_dir / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(GeometryError):
            load_descriptor(path)

    def test_missing_kind(self, temp_dir):
        """Test mappings without kind or type are rejected."""
        path = temp_dir / "other.yaml"
        path.write_text("width: 10\n")
        with pytest.raises(GeometryError):
            load_descriptor(path)


class TestInspectionCommands:
    """Tests for bounds and levels."""

    def test_bounds(self, runner, cube_file):
        """Test the bounding box is printed."""
        result = runner.invoke(main, ["bounds", str(cube_file)])
        assert result.exit_code == 0
        assert "Volume: 1000000.000" in result.output
        assert "Surface area: 60000.000" in result.output

    def test_bounds_invalid_descriptor(self, runner, temp_dir):
        """Test invalid descriptors exit with an error."""
        path = temp_dir / "bad.yaml"
        path.write_text("kind: box\nwidth: 1\n")
        result = runner.invoke(main, ["bounds", str(path)])
        assert result.exit_code == 1
        assert "Failed to compute bounds" in result.output

    def test_levels(self, runner, cube_file):
        """Test levels are listed from the top down."""
        result = runner.invoke(main, ["levels", str(cube_file), "--step", "25"])
        assert result.exit_code == 0
        assert "50.000\n25.000\n0.000\n-25.000\n-50.000\n" in result.output
        assert "5 level(s)" in result.output

    def test_levels_options(self, runner, cube_file):
        """Test top/bottom flags and the depth limit."""
        result = runner.invoke(
            main, ["levels", str(cube_file), "-s", "10", "--no-top", "--max-depth", "30"]
        )
        assert result.exit_code == 0
        assert "40.000\n30.000\n20.000\n" in result.output
        assert "3 level(s)" in result.output


class TestProfileCommands:
    """Tests for profile listing."""

    def test_profiles(self, runner, sample_config_dir):
        """Test profiles in the config directory are listed."""
        result = runner.invoke(main, ["--config-dir", str(sample_config_dir), "profiles"])
        assert result.exit_code == 0
        assert "test_contour" in result.output
        assert "test_pocket" in result.output

    def test_no_profiles(self, runner, temp_dir):
        """Test an empty config directory is reported."""
        result = runner.invoke(main, ["--config-dir", str(temp_dir), "profiles"])
        assert result.exit_code == 0
        assert "No machining profiles found." in result.output

    def test_missing_config_dir(self, runner, temp_dir):
        """Test a missing config directory is an error."""
        result = runner.invoke(main, ["--config-dir", str(temp_dir / "nope"), "profiles"])
        assert result.exit_code == 1


class TestRunCommand:
    """Tests for the run command."""

    def test_run_to_file(self, runner, cube_file, temp_dir):
        """Test G-code is written to the output file."""
        output = temp_dir / "cube.nc"
        result = runner.invoke(main, ["run", str(cube_file), "-s", "50", "-o", str(output)])
        assert result.exit_code == 0
        program = output.read_text()
        assert program.startswith("; Program: primcam")
        assert program.count("; Layer") == 3
        assert "Toolpath Summary" in result.output

    def test_run_to_stdout(self, runner, cube_file):
        """Test G-code is echoed without an output file."""
        result = runner.invoke(main, ["run", str(cube_file), "-s", "50"])
        assert result.exit_code == 0
        assert "M30" in result.output

    def test_run_with_profile(self, runner, cube_file, sample_config_dir, temp_dir):
        """Test a named profile supplies config, slicing and hooks."""
        output = temp_dir / "cube.nc"
        result = runner.invoke(main, [
            "--config-dir", str(sample_config_dir),
            "run", str(cube_file), "-p", "test_contour", "-o", str(output),
        ])
        assert result.exit_code == 0
        lines = output.read_text().splitlines()
        # 2 mm steps over 100 mm
        assert sum(1 for line in lines if line.startswith("; Layer")) == 51
        assert "; layer 0" in lines
        assert "G1 Z50.000 F250" in lines

    def test_run_with_config_file(self, runner, cube_file, sample_config_dir, temp_dir):
        """Test a profile file can be given directly."""
        output = temp_dir / "cube.nc"
        profile = sample_config_dir / "operations" / "test_pocket.yaml"
        result = runner.invoke(main, [
            "run", str(cube_file), "-c", str(profile), "-s", "50", "-o", str(output),
        ])
        assert result.exit_code == 0
        assert "; Operation: pocket" in output.read_text().splitlines()

    def test_tool_override(self, runner, cube_file, temp_dir):
        """Test the tool diameter can be overridden."""
        output = temp_dir / "cube.nc"
        result = runner.invoke(main, ["run", str(cube_file), "-s", "50", "-t", "12", "-o", str(output)])
        assert result.exit_code == 0
        assert "; Tool: D12.000 L30.000" in output.read_text().splitlines()

    def test_tool_override_rescales_percentage_stepover(self, runner, temp_dir):
        """Test a percentage stepover follows the overridden tool diameter."""
        part = temp_dir / "block.yaml"
        part.write_text("kind: box\nid: block\nwidth: 20\ndepth: 20\nheight: 100\n")
        profile = temp_dir / "pocket.yaml"
        profile.write_text("gcode:\n  tool_diameter: 3\n  operation_type: pocket\n  stepover: '40%'\n")
        output = temp_dir / "block.nc"
        result = runner.invoke(main, [
            "run", str(part), "-c", str(profile), "-t", "10", "-s", "50", "-o", str(output),
        ])
        assert result.exit_code == 0
        words = {word for line in output.read_text().splitlines() for word in line.split()}
        # Rings at 5 and 9 mm in from the walls; a 1.2 mm stepover would add more.
        assert {"X-5.000", "X5.000", "X-1.000", "X1.000"} <= words
        assert "X-3.800" not in words

    def test_log_file(self, runner, cube_file, temp_dir):
        """Test a run writes JSON logs tagged with the component id."""
        log_file = temp_dir / "run.log"
        result = runner.invoke(main, [
            "--log-level", "INFO", "--json-logs", "--log-file", str(log_file),
            "run", str(cube_file), "-s", "50", "-o", str(temp_dir / "cube.nc"),
        ])
        assert result.exit_code == 0
        records = [json.loads(line) for line in log_file.read_text().splitlines()]
        events = {r["event"] for r in records}
        assert "pipeline_complete" in events
        assert any(e.startswith("Generated toolpath:") for e in events)
        assert all(r.get("component") == "cube" for r in records if r["event"] == "pipeline_complete")

    def test_invalid_tool(self, runner, cube_file):
        """Test configuration errors exit with status 1."""
        result = runner.invoke(main, ["run", str(cube_file), "-t", "0"])
        assert result.exit_code == 1
        assert "Failed to set up pipeline" in result.output

    def test_unknown_profile(self, runner, cube_file, sample_config_dir):
        """Test an unknown profile name exits with status 1."""
        result = runner.invoke(main, [
            "--config-dir", str(sample_config_dir), "run", str(cube_file), "-p", "missing",
        ])
        assert result.exit_code == 1

    def test_strict_mesh(self, runner, temp_dir):
        """Test pipeline errors exit with status 1."""
        path = temp_dir / "scan.yaml"
        path.write_text("kind: mesh\nid: scan\nsource: scan.stl\n")
        result = runner.invoke(main, ["run", str(path), "--strict"])
        assert result.exit_code == 1
        assert "Slicing failed" in result.output
