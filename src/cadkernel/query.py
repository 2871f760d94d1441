from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from . import geometry as g
from .blocks import block_ref_entities
from .intersect import polyline_segments, rectangle_corners
from .models import (
    Arc, BlockDefinition, BlockRef, CADEntity, Circle, Dimension, EntityData, Ellipse, Hatch,
    Layer, Line, Point, Polyline, Ray, Rectangle, Spline, Text, XLine,
)
from .spline import spline_points

TEXT_WIDTH_FACTOR = 0.6
TEXT_HIT_HEIGHT_FACTOR = 1.2


@dataclass(frozen=True, slots=True)
class BBox:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def of_points(cls, points: Iterable[Point]) -> BBox | None:
        bounds = g.points_bounds(points)
        return cls(*bounds) if bounds else None

    def union(self, other: BBox) -> BBox:
        return BBox(
            min(self.min_x, other.min_x), min(self.min_y, other.min_y),
            max(self.max_x, other.max_x), max(self.max_y, other.max_y),
        )

    def intersects(self, other: BBox) -> bool:
        return not (
            self.max_x < other.min_x or self.min_x > other.max_x
            or self.max_y < other.min_y or self.min_y > other.max_y
        )

    def contains(self, other: BBox) -> bool:
        return (
            other.min_x >= self.min_x and other.max_x <= self.max_x
            and other.min_y >= self.min_y and other.max_y <= self.max_y
        )

    @property
    def center(self) -> Point:
        return ((self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0)


def _near_segments(point: Point, segments: Iterable[tuple[Point, Point]], tolerance: float) -> bool:
    return any(g.point_segment_distance(point, a, b) < tolerance for a, b in segments)


def _text_local(point: Point, data: Text) -> Point:
    return g.rotate_point(point, data.position, -data.rotation)


def dimension_line(data: Dimension) -> tuple[Point, Point]:
    """The dimension line, displaced from the measured points by ``offset``."""
    n = g.unit_vector(-(data.end[1] - data.start[1]), data.end[0] - data.start[0])
    if n is None:
        return data.start, data.end
    dx, dy = n[0] * data.offset, n[1] * data.offset
    return g.translate_point(data.start, dx, dy), g.translate_point(data.end, dx, dy)


def hit_test(
    entity: CADEntity,
    point: Point,
    tolerance: float,
    blocks: Mapping[str, BlockDefinition] | None = None,
) -> bool:
    """True when ``point`` is within ``tolerance`` of the entity's geometry."""
    d = entity.data
    if isinstance(d, Line):
        return g.point_segment_distance(point, d.start, d.end) < tolerance
    if isinstance(d, Circle):
        return abs(g.distance(point, d.center) - d.radius) < tolerance
    if isinstance(d, Arc):
        if abs(g.distance(point, d.center) - d.radius) > tolerance:
            return False
        return g.angle_in_arc(g.angle_of(d.center, point), d.start_angle, d.end_angle, tol=0.0)
    if isinstance(d, Rectangle):
        return _near_segments(point, polyline_segments(rectangle_corners(d), True), tolerance)
    if isinstance(d, Polyline):
        return _near_segments(point, polyline_segments(d.points, d.closed), tolerance)
    if isinstance(d, Ellipse):
        lx, ly = g.rotate_point(point, d.center, -d.rotation)
        dx = (lx - d.center[0]) / d.radius_x
        dy = (ly - d.center[1]) / d.radius_y
        return abs(math.hypot(dx, dy) - 1.0) < tolerance / min(d.radius_x, d.radius_y)
    if isinstance(d, Text):
        x, y = _text_local(point, d)
        w = len(d.content) * d.font_size * TEXT_WIDTH_FACTOR
        h = d.font_size * TEXT_HIT_HEIGHT_FACTOR
        return d.position[0] <= x <= d.position[0] + w and d.position[1] - h <= y <= d.position[1]
    if isinstance(d, Dimension):
        return g.point_segment_distance(point, d.start, d.end) < tolerance * 2
    if isinstance(d, Hatch):
        if g.point_in_polygon(point, d.boundary):
            return True
        return _near_segments(point, polyline_segments(d.boundary, True), tolerance)
    if isinstance(d, Spline):
        pts = spline_points(d)
        return _near_segments(point, zip(pts, pts[1:]), tolerance)
    if isinstance(d, XLine):
        far = g.translate_point(d.base_point, *d.direction)
        return g.point_line_distance(point, d.base_point, far) < tolerance
    if isinstance(d, Ray):
        return g.point_ray_distance(point, d.base_point, d.direction) < tolerance
    if isinstance(d, BlockRef):
        if not blocks or d.block_id not in blocks:
            return False
        return any(hit_test(child, point, tolerance, blocks) for child in block_ref_entities(blocks[d.block_id], d))
    raise TypeError(f"Unsupported entity data: {type(d).__name__}")


def _arc_extreme_points(d: Arc) -> list[Point]:
    pts = [g.point_on_circle(d.center, d.radius, d.start_angle), g.point_on_circle(d.center, d.radius, d.end_angle)]
    for quadrant in (0.0, math.pi / 2.0, math.pi, 1.5 * math.pi):
        if g.angle_in_arc(quadrant, d.start_angle, d.end_angle, tol=0.0):
            pts.append(g.point_on_circle(d.center, d.radius, quadrant))
    return pts


def data_bounding_box(d: EntityData, blocks: Mapping[str, BlockDefinition] | None = None) -> BBox | None:
    if isinstance(d, Line):
        return BBox.of_points((d.start, d.end))
    if isinstance(d, Circle):
        return BBox(d.center[0] - d.radius, d.center[1] - d.radius, d.center[0] + d.radius, d.center[1] + d.radius)
    if isinstance(d, Arc):
        return BBox.of_points(_arc_extreme_points(d))
    if isinstance(d, Rectangle):
        return BBox.of_points(rectangle_corners(d))
    if isinstance(d, Polyline):
        return BBox.of_points(d.points)
    if isinstance(d, Ellipse):
        c, s = math.cos(d.rotation), math.sin(d.rotation)
        hw = math.hypot(d.radius_x * c, d.radius_y * s)
        hh = math.hypot(d.radius_x * s, d.radius_y * c)
        return BBox(d.center[0] - hw, d.center[1] - hh, d.center[0] + hw, d.center[1] + hh)
    if isinstance(d, Text):
        w = len(d.content) * d.font_size * TEXT_WIDTH_FACTOR
        corners = [(0.0, 0.0), (w, 0.0), (w, -d.font_size), (0.0, -d.font_size)]
        return BBox.of_points(g.rotate_point(g.translate_point(d.position, *c), d.position, d.rotation) for c in corners)
    if isinstance(d, Dimension):
        return BBox.of_points((d.start, d.end, *dimension_line(d)))
    if isinstance(d, Hatch):
        return BBox.of_points(d.boundary)
    if isinstance(d, Spline):
        return BBox.of_points(spline_points(d))
    if isinstance(d, (XLine, Ray)):
        return None
    if isinstance(d, BlockRef):
        if not blocks or d.block_id not in blocks:
            return None
        box: BBox | None = None
        for child in block_ref_entities(blocks[d.block_id], d):
            child_box = data_bounding_box(child.data, blocks)
            if child_box is not None:
                box = child_box if box is None else box.union(child_box)
        return box
    raise TypeError(f"Unsupported entity data: {type(d).__name__}")


def bounding_box(entity: CADEntity, blocks: Mapping[str, BlockDefinition] | None = None) -> BBox | None:
    """Axis-aligned bounds; ``None`` for unbounded construction lines."""
    return data_bounding_box(entity.data, blocks)


def drawing_bounds(entities: Iterable[CADEntity], blocks: Mapping[str, BlockDefinition] | None = None) -> BBox | None:
    box: BBox | None = None
    for e in entities:
        if not e.visible:
            continue
        b = bounding_box(e, blocks)
        if b is not None:
            box = b if box is None else box.union(b)
    return box


def _layer_index(layers: Sequence[Layer] | None) -> dict[str, Layer]:
    return {layer.id: layer for layer in layers or ()}


def is_visible(entity: CADEntity, layers: Sequence[Layer] | None = None) -> bool:
    layer = _layer_index(layers).get(entity.layer_id)
    return entity.visible and (layer is None or layer.visible)


def is_editable(entity: CADEntity, layers: Sequence[Layer] | None = None) -> bool:
    layer = _layer_index(layers).get(entity.layer_id)
    if layer is not None and layer.locked:
        return False
    return is_visible(entity, layers) and not entity.locked


def entities_in_box(
    entities: Iterable[CADEntity],
    p1: Point,
    p2: Point,
    layers: Sequence[Layer] | None = None,
    blocks: Mapping[str, BlockDefinition] | None = None,
) -> list[str]:
    """Box selection: dragging right-to-left (``p2.x < p1.x``) selects by crossing.

    Crossing keeps entities whose bounds touch the box; window keeps only
    entities whose bounds lie fully inside it.
    """
    box = BBox(min(p1[0], p2[0]), min(p1[1], p2[1]), max(p1[0], p2[0]), max(p1[1], p2[1]))
    crossing = p2[0] < p1[0]
    ids: list[str] = []
    for e in entities:
        if not is_editable(e, layers):
            continue
        bb = bounding_box(e, blocks)
        if bb is None:
            continue
        if box.intersects(bb) if crossing else box.contains(bb):
            ids.append(e.id)
    return ids


def pick_entity(
    entities: Sequence[CADEntity],
    point: Point,
    tolerance: float,
    layers: Sequence[Layer] | None = None,
    blocks: Mapping[str, BlockDefinition] | None = None,
) -> CADEntity | None:
    """Topmost (last drawn) editable entity under ``point``."""
    for e in reversed(entities):
        if is_editable(e, layers) and hit_test(e, point, tolerance, blocks):
            return e
    return None
