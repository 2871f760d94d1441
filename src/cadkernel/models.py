from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, fields, replace
from typing import ClassVar, TypeAlias

from .exceptions import EntityValidationError

Point: TypeAlias = tuple[float, float]

LINE_STYLES = ("solid", "dashed", "dotted", "dashdot")
HATCH_PATTERNS = ("solid", "lines", "cross", "dots", "brick", "honeycomb")


def _as_points(values) -> tuple[Point, ...]:
    return tuple((float(p[0]), float(p[1])) for p in values)


@dataclass(frozen=True, slots=True)
class Line:
    kind: ClassVar[str] = "line"
    start: Point
    end: Point


@dataclass(frozen=True, slots=True)
class Circle:
    kind: ClassVar[str] = "circle"
    center: Point
    radius: float


@dataclass(frozen=True, slots=True)
class Arc:
    kind: ClassVar[str] = "arc"
    center: Point
    radius: float
    start_angle: float  # radians, CCW from positive X
    end_angle: float    # radians, sweep is CCW from start to end


@dataclass(frozen=True, slots=True)
class Rectangle:
    """Axis-aligned rectangle; ``top_left`` is the minimum corner."""

    kind: ClassVar[str] = "rectangle"
    top_left: Point
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class Polyline:
    kind: ClassVar[str] = "polyline"
    points: tuple[Point, ...]
    closed: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", _as_points(self.points))


@dataclass(frozen=True, slots=True)
class Ellipse:
    kind: ClassVar[str] = "ellipse"
    center: Point
    radius_x: float
    radius_y: float
    rotation: float = 0.0


@dataclass(frozen=True, slots=True)
class Text:
    kind: ClassVar[str] = "text"
    position: Point
    content: str
    font_size: float
    rotation: float = 0.0


@dataclass(frozen=True, slots=True)
class Dimension:
    kind: ClassVar[str] = "dimension"
    start: Point
    end: Point
    offset: float = 0.0


@dataclass(frozen=True, slots=True)
class Hatch:
    kind: ClassVar[str] = "hatch"
    boundary: tuple[Point, ...]
    pattern: str = "lines"
    scale: float = 1.0
    angle: float = 0.0
    fill_color: str = "#ffffff"
    opacity: float = 0.4

    def __post_init__(self) -> None:
        object.__setattr__(self, "boundary", _as_points(self.boundary))


@dataclass(frozen=True, slots=True)
class Spline:
    kind: ClassVar[str] = "spline"
    control_points: tuple[Point, ...]
    degree: int = 3
    closed: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "control_points", _as_points(self.control_points))


@dataclass(frozen=True, slots=True)
class XLine:
    """Construction line, infinite in both directions."""

    kind: ClassVar[str] = "xline"
    base_point: Point
    direction: Point


@dataclass(frozen=True, slots=True)
class Ray:
    """Construction ray, infinite from ``base_point`` along ``direction``."""

    kind: ClassVar[str] = "ray"
    base_point: Point
    direction: Point


@dataclass(frozen=True, slots=True)
class BlockRef:
    kind: ClassVar[str] = "blockref"
    block_id: str
    insert_point: Point
    scale_x: float = 1.0
    scale_y: float = 1.0
    rotation: float = 0.0  # radians


EntityData: TypeAlias = (
    Line | Circle | Arc | Rectangle | Polyline | Ellipse | Text
    | Dimension | Hatch | Spline | XLine | Ray | BlockRef
)

ENTITY_TYPES: dict[str, type] = {
    cls.kind: cls
    for cls in (Line, Circle, Arc, Rectangle, Polyline, Ellipse, Text, Dimension, Hatch, Spline, XLine, Ray, BlockRef)
}


def new_id() -> str:
    return f"ent-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True, slots=True)
class CADEntity:
    id: str
    data: EntityData
    layer_id: str = "layer-0"
    color: str = "#ffffff"
    line_width: float = 1.0
    line_style: str = "solid"
    visible: bool = True
    locked: bool = False

    @property
    def type(self) -> str:
        return self.data.kind

    def derive(self, data: EntityData) -> CADEntity:
        """Return a new entity with fresh id, the same style and ``data``."""
        return replace(self, id=new_id(), data=data)


@dataclass(frozen=True, slots=True)
class BlockDefinition:
    """Named group of entities stored relative to ``base_point``."""

    id: str
    name: str
    entities: tuple[CADEntity, ...]
    base_point: Point = (0.0, 0.0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entities", tuple(self.entities))


@dataclass(frozen=True, slots=True)
class Layer:
    id: str
    name: str
    color: str = "#ffffff"
    visible: bool = True
    locked: bool = False


DEFAULT_LAYERS: tuple[Layer, ...] = (
    Layer(id="layer-0", name="0", color="#ffffff"),
    Layer(id="layer-construction", name="Construction", color="#a3a3a3"),
    Layer(id="layer-dimensions", name="Dimensions", color="#f59e0b"),
    Layer(id="layer-annotations", name="Annotations", color="#22c55e"),
)


@dataclass(frozen=True, slots=True)
class SnapSettings:
    enabled: bool = True
    grid_snap: bool = False
    endpoint_snap: bool = True
    midpoint_snap: bool = True
    center_snap: bool = True
    intersection_snap: bool = True
    perpendicular_snap: bool = False
    tangent_snap: bool = False
    nearest_snap: bool = False


@dataclass(frozen=True, slots=True)
class GridSettings:
    spacing: float = 10.0
    snap_to_grid: bool = False


@dataclass(frozen=True, slots=True)
class PolarTrackingSettings:
    """Polar tracking angles are given in degrees, as the editor exposes them."""

    enabled: bool = False
    increment: float = 15.0
    additional_angles: tuple[float, ...] = ()


@dataclass(frozen=True, slots=True)
class SnapResult:
    point: Point
    type: str
    entity_id: str | None = None


@dataclass(frozen=True, slots=True)
class ModifyResult:
    """Copy-on-write edit: ids to drop from the document, entities to add."""

    remove_ids: tuple[str, ...] = ()
    add_entities: tuple[CADEntity, ...] = field(default_factory=tuple)


def _check_point(value: Point, name: str) -> None:
    if len(value) != 2 or not all(math.isfinite(v) for v in value):
        raise EntityValidationError(f"{name} must be a finite 2D point, got {value!r}", field=name)


def _check_positive(value: float, name: str) -> None:
    if not math.isfinite(value) or value <= 0.0:
        raise EntityValidationError(f"{name} must be a positive number, got {value!r}", field=name)


def _check_finite(value: float, name: str) -> None:
    if not math.isfinite(value):
        raise EntityValidationError(f"{name} must be finite, got {value!r}", field=name)


def validate_entity_data(data: EntityData) -> EntityData:
    """Reject malformed or degenerate entity data; return it unchanged otherwise."""
    if type(data) not in ENTITY_TYPES.values():
        raise EntityValidationError(f"Unsupported entity data: {type(data).__name__}")

    for f in fields(data):
        value = getattr(data, f.name)
        if f.name in ("start", "end", "center", "top_left", "position", "base_point", "insert_point", "direction"):
            _check_point(value, f.name)
        elif f.name in ("points", "boundary", "control_points"):
            for p in value:
                _check_point(p, f.name)
        elif isinstance(value, float) and not isinstance(value, bool):
            _check_finite(value, f.name)

    if isinstance(data, Line):
        if math.hypot(data.end[0] - data.start[0], data.end[1] - data.start[1]) < 1e-10:
            raise EntityValidationError("line has zero length", field="end")
    elif isinstance(data, Circle):
        _check_positive(data.radius, "radius")
    elif isinstance(data, Arc):
        _check_positive(data.radius, "radius")
        sweep = math.fmod(data.end_angle - data.start_angle, 2.0 * math.pi)
        if abs(sweep) < 1e-10:
            raise EntityValidationError("arc has zero sweep", field="end_angle")
    elif isinstance(data, Rectangle):
        _check_positive(data.width, "width")
        _check_positive(data.height, "height")
    elif isinstance(data, Polyline):
        if len(data.points) < 2:
            raise EntityValidationError("polyline needs at least 2 points", field="points")
    elif isinstance(data, Ellipse):
        _check_positive(data.radius_x, "radius_x")
        _check_positive(data.radius_y, "radius_y")
    elif isinstance(data, Text):
        _check_positive(data.font_size, "font_size")
    elif isinstance(data, Hatch):
        if len(data.boundary) < 3:
            raise EntityValidationError("hatch boundary needs at least 3 points", field="boundary")
        if data.pattern not in HATCH_PATTERNS:
            raise EntityValidationError(f"unknown hatch pattern {data.pattern!r}", field="pattern")
        _check_positive(data.scale, "scale")
        if not 0.0 <= data.opacity <= 1.0:
            raise EntityValidationError("opacity must be within [0, 1]", field="opacity")
    elif isinstance(data, Spline):
        if len(data.control_points) < 2:
            raise EntityValidationError("spline needs at least 2 control points", field="control_points")
        if data.degree < 1:
            raise EntityValidationError("spline degree must be >= 1", field="degree")
    elif isinstance(data, (XLine, Ray)):
        if math.hypot(*data.direction) < 1e-10:
            raise EntityValidationError("direction must be non-zero", field="direction")
    elif isinstance(data, BlockRef):
        if not data.block_id:
            raise EntityValidationError("block reference needs a block id", field="block_id")
        if abs(data.scale_x) < 1e-10 or abs(data.scale_y) < 1e-10:
            raise EntityValidationError("block scale factors must be non-zero", field="scale_x")
    return data


def make_entity(
    data: EntityData,
    *,
    layer_id: str = "layer-0",
    color: str = "#ffffff",
    line_width: float = 1.0,
    line_style: str = "solid",
    visible: bool = True,
    locked: bool = False,
    entity_id: str | None = None,
) -> CADEntity:
    """Validate ``data`` and wrap it in a styled entity with a fresh id."""
    validate_entity_data(data)
    if line_style not in LINE_STYLES:
        raise EntityValidationError(f"unknown line style {line_style!r}", field="line_style")
    if not math.isfinite(line_width) or line_width < 0.0:
        raise EntityValidationError("line width must be non-negative", field="line_width")
    return CADEntity(
        id=entity_id or new_id(),
        data=data,
        layer_id=layer_id,
        color=color,
        line_width=line_width,
        line_style=line_style,
        visible=visible,
        locked=locked,
    )
