from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, TypeAlias

from . import geometry as g
from .blocks import block_ref_entities
from .models import (
    Arc, BlockDefinition, BlockRef, CADEntity, Circle, Dimension, EntityData, Ellipse, Hatch,
    Line, Point, Polyline, Ray, Rectangle, Spline, Text, XLine,
)
from .spline import spline_points

ELLIPSE_SAMPLES = 64


@dataclass(frozen=True, slots=True)
class LinearPrim:
    """``origin + t * direction`` for ``t`` in ``t_range``."""

    origin: Point
    direction: Point
    t_range: g.ParamRange = g.SEGMENT

    @classmethod
    def segment(cls, a: Point, b: Point) -> LinearPrim:
        return cls(a, (b[0] - a[0], b[1] - a[1]), g.SEGMENT)

    def at(self, t: float) -> Point:
        return (self.origin[0] + t * self.direction[0], self.origin[1] + t * self.direction[1])


@dataclass(frozen=True, slots=True)
class CirclePrim:
    """Full circle, or a CCW arc when both angles are set."""

    center: Point
    radius: float
    start_angle: float | None = None
    end_angle: float | None = None

    def contains_angle(self, angle: float) -> bool:
        if self.start_angle is None or self.end_angle is None:
            return True
        return g.angle_in_arc(angle, self.start_angle, self.end_angle)


@dataclass(frozen=True, slots=True)
class EllipsePrim:
    center: Point
    radius_x: float
    radius_y: float
    rotation: float = 0.0

    def polygon(self) -> list[LinearPrim]:
        pts = g.ellipse_points(self.center, self.radius_x, self.radius_y, self.rotation, ELLIPSE_SAMPLES)
        return [LinearPrim.segment(pts[i - 1], pts[i]) for i in range(len(pts))]


Primitive: TypeAlias = LinearPrim | CirclePrim | EllipsePrim


def rectangle_corners(data: Rectangle) -> list[Point]:
    x, y = data.top_left
    return [(x, y), (x + data.width, y), (x + data.width, y + data.height), (x, y + data.height)]


def polyline_segments(points: tuple[Point, ...] | list[Point], closed: bool) -> list[tuple[Point, Point]]:
    segs = [(points[i - 1], points[i]) for i in range(1, len(points))]
    if closed and len(points) > 2:
        segs.append((points[-1], points[0]))
    return segs


def entity_primitives(
    data: EntityData, blocks: Mapping[str, BlockDefinition] | None = None,
) -> list[Primitive]:
    """Decompose entity data into curve primitives for intersection."""
    if isinstance(data, Line):
        return [LinearPrim.segment(data.start, data.end)]
    if isinstance(data, Circle):
        return [CirclePrim(data.center, data.radius)]
    if isinstance(data, Arc):
        return [CirclePrim(data.center, data.radius, data.start_angle, data.end_angle)]
    if isinstance(data, Rectangle):
        return [LinearPrim.segment(a, b) for a, b in polyline_segments(rectangle_corners(data), True)]
    if isinstance(data, Polyline):
        return [LinearPrim.segment(a, b) for a, b in polyline_segments(data.points, data.closed)]
    if isinstance(data, Ellipse):
        return [EllipsePrim(data.center, data.radius_x, data.radius_y, data.rotation)]
    if isinstance(data, Spline):
        pts = spline_points(data)
        return [LinearPrim.segment(pts[i - 1], pts[i]) for i in range(1, len(pts))]
    if isinstance(data, XLine):
        return [LinearPrim(data.base_point, data.direction, g.UNBOUNDED)]
    if isinstance(data, Ray):
        return [LinearPrim(data.base_point, data.direction, g.RAY)]
    if isinstance(data, BlockRef):
        if not blocks or data.block_id not in blocks:
            return []
        prims: list[Primitive] = []
        for child in block_ref_entities(blocks[data.block_id], data):
            prims.extend(entity_primitives(child.data, blocks))
        return prims
    if isinstance(data, (Text, Dimension, Hatch)):
        return []
    raise TypeError(f"Unsupported entity data: {type(data).__name__}")


def linear_hits(line: LinearPrim, prim: Primitive) -> list[tuple[float, Point]]:
    """Hits of a linear primitive against ``prim`` as ``(t, point)`` along ``line``."""
    if isinstance(prim, LinearPrim):
        return g.linear_intersection(
            line.origin, line.direction, line.t_range, prim.origin, prim.direction, prim.t_range,
        )
    lo, hi = line.t_range
    if isinstance(prim, CirclePrim):
        params = g.linear_circle_params(line.origin, line.direction, prim.center, prim.radius)
        return [
            (t, line.at(t))
            for t in params
            if lo - g.EPS <= t <= hi + g.EPS and prim.contains_angle(g.angle_of(prim.center, line.at(t)))
        ]
    params = g.linear_ellipse_params(
        line.origin, line.direction, prim.center, prim.radius_x, prim.radius_y, prim.rotation,
    )
    return [(t, line.at(t)) for t in params if lo - g.EPS <= t <= hi + g.EPS]


def intersect_primitives(a: Primitive, b: Primitive) -> list[Point]:
    if isinstance(a, LinearPrim):
        return [p for _, p in linear_hits(a, b)]
    if isinstance(b, LinearPrim):
        return [p for _, p in linear_hits(b, a)]
    if isinstance(a, EllipsePrim) or isinstance(b, EllipsePrim):
        # Curve-ellipse pairs use the sampled ellipse polygon.
        if isinstance(a, EllipsePrim):
            return g.dedupe_points(p for seg in a.polygon() for p in intersect_primitives(seg, b))
        return g.dedupe_points(p for seg in b.polygon() for p in intersect_primitives(a, seg))
    return [
        p
        for p in g.circle_circle_intersection(a.center, a.radius, b.center, b.radius)
        if a.contains_angle(g.angle_of(a.center, p)) and b.contains_angle(g.angle_of(b.center, p))
    ]


def intersect_entities(
    a: EntityData, b: EntityData, blocks: Mapping[str, BlockDefinition] | None = None,
) -> list[Point]:
    """All intersection points between two entities, de-duplicated."""
    points: list[Point] = []
    for pa in entity_primitives(a, blocks):
        for pb in entity_primitives(b, blocks):
            points.extend(intersect_primitives(pa, pb))
    return g.dedupe_points(points)


def linear_hits_against(
    line: LinearPrim, others: Iterable[CADEntity], blocks: Mapping[str, BlockDefinition] | None = None,
) -> list[tuple[float, Point]]:
    """Hits of ``line`` against every visible entity in ``others``."""
    hits: list[tuple[float, Point]] = []
    for other in others:
        if not other.visible:
            continue
        for prim in entity_primitives(other.data, blocks):
            hits.extend(linear_hits(line, prim))
    return hits


def circle_hits_against(
    circle: CirclePrim, others: Iterable[CADEntity], blocks: Mapping[str, BlockDefinition] | None = None,
) -> list[Point]:
    """Hits of a full circle against every visible entity in ``others``."""
    points: list[Point] = []
    for other in others:
        if not other.visible:
            continue
        for prim in entity_primitives(other.data, blocks):
            points.extend(intersect_primitives(circle, prim))
    return points
