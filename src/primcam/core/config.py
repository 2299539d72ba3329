"""
Configuration management for primcam.

Handles validation of machining/slicing parameters and loading of named
machining profiles from YAML files.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from primcam.core.exceptions import ConfigurationError


class OperationType(str, Enum):
    """Milling operation types."""

    CONTOUR = "contour"  # Single lap along each contour
    POCKET = "pocket"  # Concentric laps clearing the contour interior


class CutDirection(str, Enum):
    """Milling direction relative to spindle rotation."""

    CLIMB = "climb"
    CONVENTIONAL = "conventional"


class OffsetSide(str, Enum):
    """Which side of the contour the tool runs on."""

    INSIDE = "inside"
    OUTSIDE = "outside"
    ON = "on"


class EntryStrategy(str, Enum):
    """How the tool enters material."""

    DIRECT = "direct"
    RAMP = "ramp"
    HELIX = "helix"
    ZIGZAG = "zigzag"


class ExitStrategy(str, Enum):
    """How the tool leaves material."""

    DIRECT = "direct"
    RAMP = "ramp"
    ARC = "arc"


class CommentStyle(str, Enum):
    """G-code comment syntax."""

    PARENTHESES = "parentheses"  # (comment)
    SEMICOLON = "semicolon"  # ; comment


def parse_stepover(value: Union[float, str], tool_diameter: float) -> float:
    """
    Normalize a stepover to an absolute distance in mm.

    Strings are read as a percentage of the tool diameter ("40%" or "40").
    Numbers are already absolute.
    """
    if isinstance(value, str):
        text = value.strip().rstrip("%").strip()
        try:
            percentage = float(text) / 100.0
        except ValueError:
            raise ValueError(f"Invalid stepover percentage: {value!r}")
        return tool_diameter * percentage
    return float(value)


class GcodeConfig(BaseModel):
    """Machining configuration for toolpath and G-code generation."""

    # Tool
    tool_diameter: float
    tool_length: float = 30.0
    spindle_speed: float = 12000.0  # RPM
    feed_rate: float = 1000.0  # mm/min
    plunge_rate: float = 300.0  # mm/min

    # Operation
    operation_type: OperationType = OperationType.CONTOUR
    depth: Optional[float] = Field(default=None, ge=0)
    stepdown: float = 1.0
    stepover: Optional[Union[float, str]] = None
    stock_to_leave: float = Field(default=0.0, ge=0)

    # Heights
    safe_height: float = 5.0
    clearance_height: Optional[float] = None

    # Cutting options
    direction: CutDirection = CutDirection.CLIMB
    side: OffsetSide = OffsetSide.ON
    enforce_direction: bool = False
    entry_strategy: EntryStrategy = EntryStrategy.DIRECT
    exit_strategy: ExitStrategy = ExitStrategy.DIRECT
    ramp_angle: float = Field(default=10.0, gt=0, le=90)
    lead_length: float = Field(default=2.0, ge=0)
    finishing_pass: bool = False
    tolerance_threshold: float = Field(default=0.0, ge=0)

    # Coolant
    coolant: bool = False
    mist: bool = False

    # Output format
    use_work_offset: bool = False
    work_offset: int = Field(default=1, ge=1, le=9)
    decimal_places: int = Field(default=3, ge=0, le=6)
    comment_style: CommentStyle = CommentStyle.SEMICOLON
    line_numbers: bool = False
    program_name: str = "primcam"
    material_name: Optional[str] = None
    max_feed_rate: Optional[float] = Field(default=None, gt=0)

    @field_validator("tool_diameter")
    @classmethod
    def _positive_diameter(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("tool_diameter must be greater than zero")
        return value

    @field_validator("stepdown")
    @classmethod
    def _positive_stepdown(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("stepdown must be greater than zero")
        return value

    @field_validator("feed_rate", "plunge_rate")
    @classmethod
    def _positive_rate(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("feed and plunge rates must be greater than zero")
        return value

    @model_validator(mode="after")
    def _normalize(self) -> "GcodeConfig":
        if self.stepover is None and self.operation_type != OperationType.CONTOUR:
            factor = 0.1 if self.finishing_pass else 0.4
            self.stepover = self.tool_diameter * factor
        elif self.stepover is not None:
            self.stepover = parse_stepover(self.stepover, self.tool_diameter)
            if self.stepover <= 0:
                raise ValueError("stepover must be greater than zero")
        if self.clearance_height is None:
            self.clearance_height = self.safe_height + 2.0
        return self

    @property
    def tool_radius(self) -> float:
        return self.tool_diameter / 2.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GcodeConfig":
        """
        Build a config from a plain dict, raising ConfigurationError on bad input.

        Raises:
            ConfigurationError: If validation fails
        """
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid G-code configuration",
                details={"errors": _describe_errors(e)},
            ) from e


class SlicingOptions(BaseModel):
    """Options for Z-level planning and plane intersection."""

    z_start: Optional[float] = None
    z_end: Optional[float] = None
    step_size: float = Field(default=1.0, gt=0)
    resolution: float = Field(default=10.0, gt=0)  # points per mm of radius
    include_top: bool = True
    include_bottom: bool = True
    max_depth: Optional[float] = Field(default=None, gt=0)
    detect_islands: bool = True
    merge_overlaps: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SlicingOptions":
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid slicing options",
                details={"errors": _describe_errors(e)},
            ) from e


class MachiningProfile(BaseModel):
    """A named set of G-code and slicing parameters."""

    name: str
    description: str = ""
    gcode: GcodeConfig
    slicing: SlicingOptions = Field(default_factory=SlicingOptions)
    hooks: dict[str, str] = Field(default_factory=dict)
    # G-code parameters as written, before stepover normalisation.
    gcode_source: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _keep_gcode_source(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("gcode"), dict):
            data = {**data, "gcode_source": dict(data["gcode"])}
        return data

    def gcode_config(self, **overrides: Any) -> GcodeConfig:
        """
        Rebuild the G-code config with some parameters replaced.

        Derived values (percentage or default stepover, clearance height)
        are recomputed from the profile as written, so a different tool
        diameter gets its own stepover.

        Raises:
            ConfigurationError: If the result fails validation
        """
        data = dict(self.gcode_source) if self.gcode_source else self.gcode.model_dump()
        data.update(overrides)
        return GcodeConfig.from_dict(data)


def _describe_errors(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in error.errors()
    ]


@dataclass
class ConfigManager:
    """
    Loads machining profiles from YAML files.

    Profiles live in ``<config_dir>/operations/*.yaml``::

        profile:
          name: "6mm contour"
        gcode:
          tool_diameter: 6.0
          feed_rate: 800
        slicing:
          step_size: 1.0

    Example:
        >>> config = ConfigManager(config_dir=Path("config"))
        >>> profile = config.get_profile("contour_6mm")
    """

    config_dir: Path
    _profiles: dict[str, MachiningProfile] = field(default_factory=dict, init=False)
    _loaded: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.config_dir = Path(self.config_dir)
        if not self.config_dir.exists():
            raise ConfigurationError(
                f"Configuration directory not found: {self.config_dir}"
            )

    def load(self) -> None:
        """Load all profiles from disk."""
        operations_dir = self.config_dir / "operations"
        if operations_dir.exists():
            for config_file in sorted(operations_dir.glob("*.yaml")):
                self._profiles[config_file.stem] = load_profile(config_file)
        self._loaded = True

    def get_profile(self, name: str) -> MachiningProfile:
        """
        Get machining profile by name.

        Args:
            name: Profile name (file name without .yaml extension)

        Returns:
            MachiningProfile instance

        Raises:
            ConfigurationError: If profile not found
        """
        if not self._loaded:
            self.load()

        if name not in self._profiles:
            raise ConfigurationError(
                f"Machining profile not found: {name}",
                details={"available": list(self._profiles.keys())},
            )
        return self._profiles[name]

    def list_profiles(self) -> list[str]:
        """List available profile names."""
        if not self._loaded:
            self.load()
        return list(self._profiles.keys())


def load_profile(config_file: Path) -> MachiningProfile:
    """
    Load a single machining profile file.

    Raises:
        ConfigurationError: If the file is unreadable or invalid
    """
    config_file = Path(config_file)
    try:
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Failed to read machining profile: {config_file}",
            details={"error": str(e)},
        ) from e

    if not isinstance(data, dict) or "gcode" not in data:
        raise ConfigurationError(
            f"Machining profile has no 'gcode' section: {config_file}"
        )

    header = data.get("profile") or {}
    try:
        return MachiningProfile(
            name=header.get("name", config_file.stem),
            description=header.get("description", ""),
            gcode=data["gcode"],
            slicing=data.get("slicing") or {},
            hooks=data.get("hooks") or {},
        )
    except ValidationError as e:
        raise ConfigurationError(
            f"Failed to load machining profile: {config_file}",
            details={"errors": _describe_errors(e)},
        ) from e
