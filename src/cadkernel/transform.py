from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Callable, Iterable, Sequence

from . import geometry as g
from .blocks import calculate_base_point, representative_points
from .exceptions import EntityValidationError
from .intersect import rectangle_corners
from .models import (
    Arc, BlockRef, CADEntity, Circle, Dimension, EntityData, Ellipse, Hatch, Line, ModifyResult,
    Point, Polyline, Ray, Rectangle, Spline, Text, XLine,
)

logger = logging.getLogger(__name__)

PointMap = Callable[[Point], Point]


def _map_points(data: EntityData, fn: PointMap) -> EntityData:
    """Apply ``fn`` to every point-valued field, leaving scalars alone."""
    if isinstance(data, (Line, Dimension)):
        return replace(data, start=fn(data.start), end=fn(data.end))
    if isinstance(data, (Circle, Arc, Ellipse)):
        return replace(data, center=fn(data.center))
    if isinstance(data, Rectangle):
        return replace(data, top_left=fn(data.top_left))
    if isinstance(data, Polyline):
        return replace(data, points=tuple(fn(p) for p in data.points))
    if isinstance(data, Text):
        return replace(data, position=fn(data.position))
    if isinstance(data, Hatch):
        return replace(data, boundary=tuple(fn(p) for p in data.boundary))
    if isinstance(data, Spline):
        return replace(data, control_points=tuple(fn(p) for p in data.control_points))
    if isinstance(data, (XLine, Ray)):
        return replace(data, base_point=fn(data.base_point))
    if isinstance(data, BlockRef):
        return replace(data, insert_point=fn(data.insert_point))
    raise TypeError(f"Unsupported entity data: {type(data).__name__}")


def _rectangle_from_corners(corners: Iterable[Point]) -> Rectangle:
    minx, miny, maxx, maxy = g.points_bounds(corners)
    return Rectangle((minx, miny), maxx - minx, maxy - miny)


def _is_quarter_turn(angle: float) -> bool:
    return abs(math.sin(2.0 * angle)) < 1e-9


def _is_eighth_turn(angle: float) -> bool:
    return abs(math.sin(4.0 * angle)) < 1e-9


def translate_entity_data(data: EntityData, dx: float, dy: float) -> EntityData:
    return _map_points(data, lambda p: g.translate_point(p, dx, dy))


def rotate_entity_data(data: EntityData, center: Point, angle: float) -> EntityData:
    """Rotate about ``center`` by ``angle`` radians.

    A rectangle turned by anything but a quarter turn becomes a closed
    four-point polyline.
    """
    def rp(p: Point) -> Point:
        return g.rotate_point(p, center, angle)

    if isinstance(data, Rectangle):
        corners = [rp(p) for p in rectangle_corners(data)]
        if _is_quarter_turn(angle):
            return _rectangle_from_corners(corners)
        return Polyline(points=tuple(corners), closed=True)
    moved = _map_points(data, rp)
    if isinstance(moved, Arc):
        return replace(
            moved,
            start_angle=g.normalize_angle(moved.start_angle + angle),
            end_angle=g.normalize_angle(moved.end_angle + angle),
        )
    if isinstance(moved, (Ellipse, Text)):
        return replace(moved, rotation=moved.rotation + angle)
    if isinstance(moved, Hatch):
        return replace(moved, angle=moved.angle + angle)
    if isinstance(moved, (XLine, Ray)):
        return replace(moved, direction=g.rotate_vector(moved.direction, angle))
    if isinstance(moved, BlockRef):
        return replace(moved, rotation=g.normalize_angle(moved.rotation + angle))
    return moved


def mirror_entity_data(data: EntityData, axis_start: Point, axis_end: Point) -> EntityData:
    """Reflect across the line through ``axis_start`` and ``axis_end``.

    Arc sweeps reverse sense, so start and end angles swap roles through
    ``2·axis_angle − angle``.
    """
    def mp(p: Point) -> Point:
        return g.reflect_point(p, axis_start, axis_end)

    axis = g.angle_of(axis_start, axis_end)

    if isinstance(data, Rectangle):
        corners = [mp(p) for p in rectangle_corners(data)]
        if _is_eighth_turn(axis):
            return _rectangle_from_corners(corners)
        return Polyline(points=tuple(corners), closed=True)
    moved = _map_points(data, mp)
    if isinstance(moved, Arc):
        return replace(
            moved,
            start_angle=g.normalize_angle(2.0 * axis - data.end_angle),
            end_angle=g.normalize_angle(2.0 * axis - data.start_angle),
        )
    if isinstance(moved, Ellipse):
        return replace(moved, rotation=2.0 * axis - moved.rotation)
    if isinstance(moved, Dimension):
        return replace(moved, offset=-moved.offset)
    if isinstance(moved, Hatch):
        return replace(moved, angle=2.0 * axis - moved.angle)
    if isinstance(moved, (XLine, Ray)):
        return replace(moved, direction=g.reflect_vector(moved.direction, axis_start, axis_end))
    if isinstance(moved, BlockRef):
        return replace(moved, rotation=g.normalize_angle(2.0 * axis - moved.rotation), scale_y=-moved.scale_y)
    return moved


def scale_entity_data(data: EntityData, center: Point, factor: float) -> EntityData:
    """Scale about ``center``; sizes scale by ``|factor|``."""
    if not math.isfinite(factor) or abs(factor) < g.EPS:
        raise EntityValidationError(f"scale factor must be non-zero, got {factor!r}", field="factor")
    k = abs(factor)

    def sp(p: Point) -> Point:
        return g.scale_point(p, center, factor)

    if isinstance(data, Rectangle):
        return _rectangle_from_corners(sp(p) for p in rectangle_corners(data))
    moved = _map_points(data, sp)
    flip = math.pi if factor < 0 else 0.0
    if isinstance(moved, Circle):
        return replace(moved, radius=moved.radius * k)
    if isinstance(moved, Arc):
        return replace(
            moved,
            radius=moved.radius * k,
            start_angle=g.normalize_angle(moved.start_angle + flip),
            end_angle=g.normalize_angle(moved.end_angle + flip),
        )
    if isinstance(moved, Ellipse):
        return replace(moved, radius_x=moved.radius_x * k, radius_y=moved.radius_y * k, rotation=moved.rotation + flip)
    if isinstance(moved, Text):
        return replace(moved, font_size=moved.font_size * k, rotation=moved.rotation + flip)
    if isinstance(moved, Dimension):
        return replace(moved, offset=moved.offset * k)
    if isinstance(moved, Hatch):
        return replace(moved, scale=moved.scale * k)
    if isinstance(moved, (XLine, Ray)):
        return replace(moved, direction=(moved.direction[0] * factor, moved.direction[1] * factor))
    if isinstance(moved, BlockRef):
        return replace(
            moved,
            scale_x=moved.scale_x * k,
            scale_y=moved.scale_y * k,
            rotation=g.normalize_angle(moved.rotation + flip),
        )
    return moved


def move_entities(entities: Iterable[CADEntity], dx: float, dy: float) -> list[CADEntity]:
    """Displaced entities keeping their ids."""
    return [replace(e, data=translate_entity_data(e.data, dx, dy)) for e in entities]


def copy_entities(entities: Iterable[CADEntity], dx: float, dy: float) -> list[CADEntity]:
    """Displaced copies with fresh ids."""
    return [e.derive(translate_entity_data(e.data, dx, dy)) for e in entities]


def rotate_entities(entities: Iterable[CADEntity], center: Point, angle: float) -> list[CADEntity]:
    return [replace(e, data=rotate_entity_data(e.data, center, angle)) for e in entities]


def scale_entities(entities: Iterable[CADEntity], center: Point, factor: float) -> list[CADEntity]:
    return [replace(e, data=scale_entity_data(e.data, center, factor)) for e in entities]


def mirror_entities(
    entities: Iterable[CADEntity], axis_start: Point, axis_end: Point, keep_original: bool = True,
) -> ModifyResult | None:
    """Mirrored copies with fresh ids; originals are removed unless ``keep_original``."""
    if g.distance(axis_start, axis_end) < g.EPS:
        logger.debug("Mirror axis has zero length")
        return None
    entities = list(entities)
    added = tuple(e.derive(mirror_entity_data(e.data, axis_start, axis_end)) for e in entities)
    removed = () if keep_original else tuple(e.id for e in entities)
    return ModifyResult(remove_ids=removed, add_entities=added)


def entities_centroid(entities: Iterable[CADEntity]) -> Point:
    """Default polar-array center: centroid of the entities' representative points."""
    return calculate_base_point(entities)


def rectangular_array(
    entities: Sequence[CADEntity],
    rows: int,
    columns: int,
    row_spacing: float,
    col_spacing: float,
    angle: float = 0.0,
) -> list[CADEntity]:
    """Copies on a ``rows × columns`` grid, rotated by ``angle`` degrees.

    The originals occupy cell [0, 0] and are not part of the result.
    """
    rad = math.radians(angle)
    cos_a, sin_a = math.cos(rad), math.sin(rad)
    copies: list[CADEntity] = []
    for r in range(rows):
        for c in range(columns):
            if r == 0 and c == 0:
                continue
            raw_dx, raw_dy = c * col_spacing, r * row_spacing
            dx = raw_dx * cos_a - raw_dy * sin_a
            dy = raw_dx * sin_a + raw_dy * cos_a
            copies.extend(copy_entities(entities, dx, dy))
    return copies


def polar_step(count: int, total_angle: float) -> float:
    """Angle in degrees between consecutive items of a polar array."""
    if abs(total_angle) >= 360.0:
        return total_angle / count
    return total_angle / (count - 1)


def polar_array(
    entities: Sequence[CADEntity],
    center: Point,
    count: int,
    total_angle: float = 360.0,
    rotate_items: bool = True,
) -> list[CADEntity]:
    """``count − 1`` copies spread over ``total_angle`` degrees about ``center``.

    Without ``rotate_items`` each copy is only translated, so that its
    reference point lands on the rotated position.
    """
    if count < 2:
        return []
    step = math.radians(polar_step(count, total_angle))
    copies: list[CADEntity] = []
    for i in range(1, count):
        angle = step * i
        for e in entities:
            if rotate_items:
                data = rotate_entity_data(e.data, center, angle)
            else:
                ref = calculate_base_point([e])
                target = g.rotate_point(ref, center, angle)
                data = translate_entity_data(e.data, target[0] - ref[0], target[1] - ref[1])
            copies.append(e.derive(data))
    return copies


__all__ = [
    "copy_entities",
    "entities_centroid",
    "mirror_entities",
    "mirror_entity_data",
    "move_entities",
    "polar_array",
    "polar_step",
    "rectangular_array",
    "representative_points",
    "rotate_entities",
    "rotate_entity_data",
    "scale_entities",
    "scale_entity_data",
    "translate_entity_data",
]
