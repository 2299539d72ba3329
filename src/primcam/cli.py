"""
Command-line interface for primcam.

Provides commands for inspecting component descriptors (bounds, Z levels),
listing machining profiles, and running the full G-code pipeline.
"""

from pathlib import Path
from typing import Any, Optional

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from primcam import __version__
from primcam.core.components import ComponentDescriptor, component_from_element, parse_component
from primcam.core.config import ConfigManager, GcodeConfig, MachiningProfile, SlicingOptions, load_profile
from primcam.core.exceptions import ConfigurationError, GeometryError, PrimcamError
from primcam.core.geometry import calculate_bounding_box
from primcam.core.logging import configure_logging
from primcam.pipeline import Pipeline
from primcam.slicing.zlevels import calculate_z_levels

console = Console()
err_console = Console(stderr=True)


def load_descriptor(path: Path) -> ComponentDescriptor:
    """
    Read a component descriptor from a YAML or JSON file.

    Files with a top-level ``kind`` are descriptor trees; files with a
    ``type`` are flat editor elements.

    Raises:
        GeometryError: If the file cannot be read or is not a descriptor
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise GeometryError(f"Failed to read descriptor: {path}", details={"error": str(e)}) from e

    if not isinstance(data, dict):
        raise GeometryError(f"Descriptor file must contain a mapping: {path}")
    if "kind" in data:
        return parse_component(data)
    if "type" in data:
        return component_from_element(data)
    raise GeometryError(f"Descriptor has neither 'kind' nor 'type': {path}")


def _fail(message: str, error: Exception) -> None:
    err_console.print(f"[red]✗[/red] {message}: {escape(str(error))}")
    raise SystemExit(1)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config-dir",
    type=click.Path(path_type=Path),
    default="config",
    help="Configuration directory",
)
@click.option("--log-level", default="WARNING", help="Minimum log level")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write logs to this file")
@click.pass_context
def main(
    ctx: click.Context, config_dir: Path, log_level: str, json_logs: bool, log_file: Optional[str]
) -> None:
    """primcam - parametric primitives to G-code."""
    configure_logging(level=log_level, json_output=json_logs, log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir


# =============================================================================
# Inspection Commands
# =============================================================================


@main.command("bounds")
@click.argument("descriptor", type=click.Path(exists=True, path_type=Path))
def bounds(descriptor: Path) -> None:
    """Show the bounding box of a component."""
    try:
        bbox = calculate_bounding_box(load_descriptor(descriptor))
    except PrimcamError as e:
        _fail("Failed to compute bounds", e)

    table = Table(title=f"Bounds: {descriptor.name}")
    table.add_column("Property", style="cyan")
    table.add_column("X", justify="right")
    table.add_column("Y", justify="right")
    table.add_column("Z", justify="right")
    table.add_row("Min", *(f"{v:.3f}" for v in bbox.min_point))
    table.add_row("Max", *(f"{v:.3f}" for v in bbox.max_point))
    table.add_row("Size", *(f"{v:.3f}" for v in bbox.dimensions))
    table.add_row("Center", *(f"{v:.3f}" for v in bbox.center))
    console.print(table)
    console.print(f"  Volume: {bbox.volume:.3f} mm³")
    console.print(f"  Surface area: {bbox.surface_area:.3f} mm²")


@main.command("levels")
@click.argument("descriptor", type=click.Path(exists=True, path_type=Path))
@click.option("--step", "-s", type=float, default=1.0, show_default=True, help="Z step (mm)")
@click.option("--max-depth", type=float, default=None, help="Depth limit below the top (mm)")
@click.option("--top/--no-top", default=True, help="Include the top surface")
@click.option("--bottom/--no-bottom", default=True, help="Include the bottom surface")
def levels(descriptor: Path, step: float, max_depth: Optional[float], top: bool, bottom: bool) -> None:
    """List the Z levels a component would be sliced at."""
    try:
        bbox = calculate_bounding_box(load_descriptor(descriptor))
        plan = calculate_z_levels(
            bbox, step, include_top=top, include_bottom=bottom, max_depth=max_depth
        )
    except PrimcamError as e:
        _fail("Failed to plan Z levels", e)

    for z in plan.levels:
        console.print(f"{z:.3f}")
    for warning in plan.warnings:
        err_console.print(f"[yellow]⚠[/yellow] {escape(warning)}")
    err_console.print(f"{len(plan.levels)} level(s)")


# =============================================================================
# Configuration Commands
# =============================================================================


@main.command("profiles")
@click.pass_context
def profiles(ctx: click.Context) -> None:
    """List available machining profiles."""
    try:
        manager = ConfigManager(ctx.obj["config_dir"])
        names = manager.list_profiles()
    except ConfigurationError as e:
        _fail("Failed to list profiles", e)

    if not names:
        console.print("[yellow]No machining profiles found.[/yellow]")
        return

    table = Table(title="Machining Profiles")
    table.add_column("Name", style="cyan")
    table.add_column("Operation")
    table.add_column("Tool")
    table.add_column("Description")
    for name in names:
        profile = manager.get_profile(name)
        table.add_row(
            name,
            profile.gcode.operation_type.value,
            f"Ø{profile.gcode.tool_diameter:g}",
            profile.description or "-",
        )
    console.print(table)


# =============================================================================
# Pipeline Commands
# =============================================================================


def _resolve_profile(
    ctx: click.Context, config_file: Optional[Path], profile_name: Optional[str]
) -> Optional[MachiningProfile]:
    if config_file is not None:
        return load_profile(config_file)
    if profile_name is not None:
        return ConfigManager(ctx.obj["config_dir"]).get_profile(profile_name)
    return None


@main.command("run")
@click.argument("descriptor", type=click.Path(exists=True, path_type=Path))
@click.option("--config", "-c", "config_file", type=click.Path(exists=True, path_type=Path),
              help="Machining profile YAML file")
@click.option("--profile", "-p", "profile_name", help="Named profile from the config directory")
@click.option("--tool-diameter", "-t", type=float, help="Override tool diameter (mm)")
@click.option("--step", "-s", type=float, help="Override Z step (mm)")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Write G-code to this file")
@click.option("--strict", is_flag=True, help="Fail on unsupported geometry")
@click.pass_context
def run(
    ctx: click.Context,
    descriptor: Path,
    config_file: Optional[Path],
    profile_name: Optional[str],
    tool_diameter: Optional[float],
    step: Optional[float],
    output: Optional[Path],
    strict: bool,
) -> None:
    """Generate G-code for a component."""
    try:
        component = load_descriptor(descriptor)
        profile = _resolve_profile(ctx, config_file, profile_name)

        overrides: dict[str, Any] = {}
        if tool_diameter is not None:
            overrides["tool_diameter"] = tool_diameter
        if profile is not None:
            config = profile.gcode_config(**overrides)
        else:
            config = GcodeConfig.from_dict({"tool_diameter": 6.0, **overrides})

        slicing: Optional[SlicingOptions] = profile.slicing if profile else None
        if step is not None:
            base = slicing.model_dump() if slicing else {}
            slicing = SlicingOptions.from_dict({**base, "step_size": step})

        pipeline = Pipeline(config, slicing, hooks=profile.hooks if profile else None, strict=strict)
    except PrimcamError as e:
        _fail("Failed to set up pipeline", e)

    result = pipeline.run(component)

    summary_console = console if output is not None else err_console
    for warning in result.warnings:
        summary_console.print(f"[yellow]⚠[/yellow] {escape(warning)}")
    if result.errors:
        for error in result.errors:
            err_console.print(f"[red]✗[/red] {escape(error)}")
        raise SystemExit(1)

    if output is not None:
        output.write_text(result.gcode)
    else:
        click.echo(result.gcode, nl=False)

    table = Table(title="Toolpath Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Z levels", str(len(result.z_levels)))
    table.add_row("Points", str(len(result.toolpath)))
    table.add_row("Total distance", f"{result.total_distance:.1f} mm")
    table.add_row("Cutting distance", f"{result.statistics.cutting_distance:.1f} mm")
    table.add_row("Estimated time", f"{result.estimated_time:.2f} min")
    if output is not None:
        table.add_row("Output", str(output))
    summary_console.print(table)


if __name__ == "__main__":
    main()
