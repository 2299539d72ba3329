"""
Component descriptors: the parametric primitive tree handed to the pipeline.

Each primitive kind is its own frozen pydantic model carrying only the
parameters valid for it. ``ComponentDescriptor`` is the discriminated union
over all kinds, keyed by ``kind``.

Conventions (millimetres, world space):
- ``position`` is the centre of the primitive, except for hemispheres where
  it is the centre of the flat face.
- ``height`` is always the Z extent; box ``width`` runs along X and
  ``depth`` along Y.
"""

import uuid
from typing import Annotated, Any, Iterator, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeFloat,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from primcam.core.exceptions import GeometryError


def _new_id() -> str:
    return f"component_{uuid.uuid4().hex[:12]}"


class Vec3(BaseModel):
    """Immutable 3D vector."""

    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def _from_sequence(cls, data: Any) -> Any:
        if isinstance(data, (list, tuple)):
            if len(data) != 3:
                raise ValueError("A 3D vector needs exactly three values")
            return {"x": data[0], "y": data[1], "z": data[2]}
        return data

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


class _ComponentBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=_new_id)
    name: Optional[str] = None
    position: Vec3 = Field(default_factory=Vec3)
    # Carried for the editor; slicing assumes axis-aligned primitives.
    rotation: Optional[Vec3] = None


class Box(_ComponentBase):
    kind: Literal["box"] = "box"
    width: NonNegativeFloat
    height: NonNegativeFloat
    depth: NonNegativeFloat


class Sphere(_ComponentBase):
    kind: Literal["sphere"] = "sphere"
    radius: NonNegativeFloat


class Hemisphere(_ComponentBase):
    kind: Literal["hemisphere"] = "hemisphere"
    radius: NonNegativeFloat
    direction: Literal["up", "down"] = "up"


class Cylinder(_ComponentBase):
    kind: Literal["cylinder"] = "cylinder"
    radius: NonNegativeFloat
    height: NonNegativeFloat


class Cone(_ComponentBase):
    kind: Literal["cone"] = "cone"
    radius: NonNegativeFloat
    height: NonNegativeFloat
    direction: Literal["up", "down"] = "up"  # apex direction


class Torus(_ComponentBase):
    kind: Literal["torus"] = "torus"
    radius: NonNegativeFloat
    tube_radius: NonNegativeFloat

    @model_validator(mode="before")
    @classmethod
    def _default_tube(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("tube_radius") is None:
            data = dict(data)
            data["tube_radius"] = float(data.get("radius", 0.0)) * 0.2
        return data


class Capsule(_ComponentBase):
    kind: Literal["capsule"] = "capsule"
    radius: NonNegativeFloat
    height: NonNegativeFloat  # total length, caps included
    orientation: Literal["x", "y", "z"] = "z"

    @property
    def body_height(self) -> float:
        return max(0.0, self.height - 2 * self.radius)


class Mesh(_ComponentBase):
    """Reference to an external triangulated mesh. Not sliceable."""

    kind: Literal["mesh"] = "mesh"
    source: Optional[str] = None


class Composite(_ComponentBase):
    kind: Literal["composite"] = "composite"
    children: List["ComponentDescriptor"] = Field(min_length=1)


ComponentDescriptor = Annotated[
    Union[Box, Sphere, Hemisphere, Cylinder, Cone, Torus, Capsule, Mesh, Composite],
    Field(discriminator="kind"),
]

Composite.model_rebuild()

PRIMITIVE_KINDS = ("box", "sphere", "hemisphere", "cylinder", "cone", "torus", "capsule")

_adapter: TypeAdapter = TypeAdapter(ComponentDescriptor)


def parse_component(data: Any) -> ComponentDescriptor:
    """
    Validate a descriptor tree given as plain dicts (JSON/YAML).

    Raises:
        GeometryError: If the tree is malformed
    """
    if isinstance(data, BaseModel):
        return data
    try:
        return _adapter.validate_python(data)
    except ValidationError as e:
        raise GeometryError(
            "Invalid component descriptor",
            details={"errors": [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]},
        ) from e


_KIND_ALIASES = {
    "cube": "box",
    "rectangle": "box",
    "component": "composite",
    "group": "composite",
}

_PARAMETER_ALIASES = {
    "tubeRadius": "tube_radius",
    "tube_radius": "tube_radius",
    "direction": "direction",
    "orientation": "orientation",
    "width": "width",
    "height": "height",
    "depth": "depth",
    "radius": "radius",
}

_KIND_FIELDS = {
    "box": ("width", "height", "depth"),
    "sphere": ("radius",),
    "hemisphere": ("radius", "direction"),
    "cylinder": ("radius", "height"),
    "cone": ("radius", "height", "direction"),
    "torus": ("radius", "tube_radius"),
    "capsule": ("radius", "height", "orientation"),
    "mesh": ("source",),
    "composite": (),
}


def component_from_element(element: dict[str, Any]) -> ComponentDescriptor:
    """
    Convert a flat editor element dict into a descriptor.

    Editor elements carry ``type``, ``x/y/z``, size fields at the top level,
    an optional ``parameters`` bag, and ``elements`` for groups. Unknown
    element types become ``mesh`` placeholders so that the rest of an
    assembly still processes.

    Raises:
        GeometryError: If the converted descriptor is invalid
    """
    raw_type = str(element.get("type", "mesh")).lower()
    kind = _KIND_ALIASES.get(raw_type, raw_type)
    if kind not in _KIND_FIELDS:
        kind = "mesh"

    merged: dict[str, Any] = {}
    for key, value in (element.get("parameters") or {}).items():
        if key in _PARAMETER_ALIASES:
            merged[_PARAMETER_ALIASES[key]] = value
    for key in ("width", "height", "depth", "radius", "direction", "orientation"):
        if element.get(key) is not None:
            merged[key] = element[key]

    data: dict[str, Any] = {
        "kind": kind,
        "position": {
            "x": element.get("x") or 0.0,
            "y": element.get("y") or 0.0,
            "z": element.get("z") or 0.0,
        },
    }
    if element.get("id"):
        data["id"] = str(element["id"])
    if element.get("name"):
        data["name"] = element["name"]

    if kind == "box":
        data["width"] = merged.get("width") or 0.0
        data["height"] = merged.get("height") or 0.0
        data["depth"] = merged.get("depth") or merged.get("height") or 0.0
    elif kind == "composite":
        children = element.get("elements") or []
        data["children"] = [component_from_element(child) for child in children]
    elif kind == "mesh":
        data["source"] = element.get("source") or raw_type
    else:
        for key in _KIND_FIELDS[kind]:
            if key in merged:
                data[key] = merged[key]
        data.setdefault("radius", 0.0)
        if "height" in _KIND_FIELDS[kind]:
            data.setdefault("height", 0.0)

    return parse_component(data)


def iter_components(component: ComponentDescriptor) -> Iterator[ComponentDescriptor]:
    """Depth-first walk over a descriptor tree, parents before children."""
    yield component
    if isinstance(component, Composite):
        for child in component.children:
            yield from iter_components(child)


def count_primitives(component: ComponentDescriptor) -> int:
    """Number of leaf primitives (meshes excluded) in a tree."""
    return sum(1 for c in iter_components(component) if c.kind in PRIMITIVE_KINDS)
