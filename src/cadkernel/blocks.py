from __future__ import annotations

import logging
import math
import uuid
from dataclasses import replace
from typing import Iterable

from . import geometry as g
from .models import (
    Arc, BlockDefinition, BlockRef, CADEntity, Circle, Dimension, EntityData, Ellipse, Hatch,
    Line, Point, Polyline, Ray, Rectangle, Spline, Text, XLine, make_entity, new_id,
)

logger = logging.getLogger(__name__)


def transform_point(
    p: Point,
    base_point: Point,
    insert_point: Point,
    scale_x: float,
    scale_y: float,
    rotation: float,
) -> Point:
    """Map a block-local point into model space: shift, scale, rotate, insert."""
    x = (p[0] - base_point[0]) * scale_x
    y = (p[1] - base_point[1]) * scale_y
    cos_r, sin_r = math.cos(rotation), math.sin(rotation)
    return (insert_point[0] + x * cos_r - y * sin_r, insert_point[1] + x * sin_r + y * cos_r)


def _transform_vector(v: Point, scale_x: float, scale_y: float, rotation: float) -> Point:
    return g.rotate_vector((v[0] * scale_x, v[1] * scale_y), rotation)


def _transform_angle(angle: float, scale_x: float, scale_y: float, rotation: float) -> float:
    v = _transform_vector((math.cos(angle), math.sin(angle)), scale_x, scale_y, rotation)
    return g.normalize_angle(math.atan2(v[1], v[0]))


def representative_points(data: EntityData) -> list[Point]:
    if isinstance(data, (Line, Dimension)):
        return [data.start, data.end]
    if isinstance(data, (Circle, Arc, Ellipse)):
        return [data.center]
    if isinstance(data, Rectangle):
        return [data.top_left, (data.top_left[0] + data.width, data.top_left[1] + data.height)]
    if isinstance(data, Polyline):
        return list(data.points)
    if isinstance(data, Text):
        return [data.position]
    if isinstance(data, Hatch):
        return list(data.boundary)
    if isinstance(data, Spline):
        return list(data.control_points)
    if isinstance(data, (XLine, Ray)):
        return [data.base_point]
    if isinstance(data, BlockRef):
        return [data.insert_point]
    raise TypeError(f"Unsupported entity data: {type(data).__name__}")


def calculate_base_point(entities: Iterable[CADEntity]) -> Point:
    """Centroid of the entities' representative points, or the origin."""
    pts = [p for e in entities for p in representative_points(e.data)]
    if not pts:
        return (0.0, 0.0)
    return (sum(p[0] for p in pts) / len(pts), sum(p[1] for p in pts) / len(pts))


def create_block_definition(
    name: str, entities: Iterable[CADEntity], base_point: Point | None = None,
) -> BlockDefinition:
    entities = list(entities)
    bp = base_point if base_point is not None else calculate_base_point(entities)
    children = tuple(replace(e, id=new_id()) for e in entities)
    return BlockDefinition(id=f"block-{uuid.uuid4().hex[:12]}", name=name, entities=children, base_point=bp)


def create_block_ref(
    block_id: str,
    insert_point: Point,
    scale_x: float = 1.0,
    scale_y: float = 1.0,
    rotation: float = 0.0,
    *,
    layer_id: str = "layer-0",
    color: str = "#ffffff",
) -> CADEntity:
    data = BlockRef(block_id=block_id, insert_point=insert_point, scale_x=scale_x, scale_y=scale_y, rotation=rotation)
    return make_entity(data, layer_id=layer_id, color=color)


def instance_data(data: EntityData, base_point: Point, ref: BlockRef) -> EntityData:
    """Child geometry of one block definition entity as placed by ``ref``.

    Radii, font sizes and dimension offsets scale by ``|scale_x|``; circular
    features do not become ellipses under non-uniform scale.
    """
    sx, sy, rot = ref.scale_x, ref.scale_y, ref.rotation

    def tp(p: Point) -> Point:
        return transform_point(p, base_point, ref.insert_point, sx, sy, rot)

    uniform = abs(sx)
    mirrored = sx * sy < 0

    if isinstance(data, Line):
        return Line(tp(data.start), tp(data.end))
    if isinstance(data, Circle):
        return Circle(tp(data.center), data.radius * uniform)
    if isinstance(data, Arc):
        start = _transform_angle(data.start_angle, sx, sy, rot)
        end = _transform_angle(data.end_angle, sx, sy, rot)
        if mirrored:
            start, end = end, start
        return Arc(tp(data.center), data.radius * uniform, start, end)
    if isinstance(data, Rectangle):
        corners = [tp(p) for p in (
            data.top_left,
            (data.top_left[0] + data.width, data.top_left[1]),
            (data.top_left[0] + data.width, data.top_left[1] + data.height),
            (data.top_left[0], data.top_left[1] + data.height),
        )]
        if abs(math.sin(2.0 * rot)) > g.EPS:
            return Polyline(points=tuple(corners), closed=True)
        minx, miny, maxx, maxy = g.points_bounds(corners)
        return Rectangle((minx, miny), maxx - minx, maxy - miny)
    if isinstance(data, Polyline):
        return replace(data, points=tuple(tp(p) for p in data.points))
    if isinstance(data, Ellipse):
        rotation = _transform_angle(data.rotation, sx, sy, rot)
        return Ellipse(tp(data.center), data.radius_x * abs(sx), data.radius_y * abs(sy), rotation)
    if isinstance(data, Text):
        return replace(
            data, position=tp(data.position), font_size=data.font_size * uniform,
            rotation=_transform_angle(data.rotation, sx, sy, rot),
        )
    if isinstance(data, Dimension):
        return Dimension(tp(data.start), tp(data.end), data.offset * uniform)
    if isinstance(data, Hatch):
        return replace(data, boundary=tuple(tp(p) for p in data.boundary))
    if isinstance(data, Spline):
        return replace(data, control_points=tuple(tp(p) for p in data.control_points))
    if isinstance(data, (XLine, Ray)):
        return replace(data, base_point=tp(data.base_point), direction=_transform_vector(data.direction, sx, sy, rot))
    if isinstance(data, BlockRef):
        return replace(
            data,
            insert_point=tp(data.insert_point),
            scale_x=data.scale_x * sx,
            scale_y=data.scale_y * sy,
            rotation=g.normalize_angle(data.rotation + rot),
        )
    raise TypeError(f"Unsupported entity data: {type(data).__name__}")


def block_ref_entities(block: BlockDefinition, ref: BlockRef) -> list[CADEntity]:
    """Derived model-space entities of a block reference; never persisted."""
    tag = f"ref-{ref.insert_point[0]:.0f}-{ref.insert_point[1]:.0f}"
    return [
        replace(child, id=f"{child.id}-{tag}", data=instance_data(child.data, block.base_point, ref))
        for child in block.entities
    ]


def explode_block_ref(block: BlockDefinition, ref_entity: CADEntity) -> list[CADEntity]:
    """Materialize a block reference as standalone entities with fresh ids.

    Exploded children take the reference's layer and color.
    """
    if not isinstance(ref_entity.data, BlockRef):
        return []
    if ref_entity.data.block_id != block.id:
        logger.debug("Block reference %s points at %s, not %s", ref_entity.id, ref_entity.data.block_id, block.id)
        return []
    return [
        replace(e, id=new_id(), layer_id=ref_entity.layer_id, color=ref_entity.color)
        for e in block_ref_entities(block, ref_entity.data)
    ]
