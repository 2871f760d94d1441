from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Iterable, Literal

from . import geometry as g
from .models import (
    Arc, BlockRef, CADEntity, Circle, Dimension, EntityData, Ellipse, Hatch, Line, Point,
    Polyline, Ray, Rectangle, Spline, Text, XLine,
)

GripKind = Literal["endpoint", "midpoint", "center", "control", "radius", "quadrant"]

MIN_GRIP_RADIUS = 1.0
DIRECTION_GRIP_LENGTH = 50.0

# Rectangle grip keys and the edges they drag: (left, top, right, bottom).
_RECT_EDGES: dict[str, tuple[bool, bool, bool, bool]] = {
    "top_left": (True, True, False, False),
    "top_right": (False, True, True, False),
    "bottom_left": (True, False, False, True),
    "bottom_right": (False, False, True, True),
    "mid_top": (False, True, False, False),
    "mid_bottom": (False, False, False, True),
    "mid_left": (True, False, False, False),
    "mid_right": (False, False, True, False),
}


@dataclass(frozen=True, slots=True)
class Grip:
    """A draggable handle; ``key`` names the piece of data it edits."""

    id: str
    entity_id: str
    point: Point
    kind: GripKind
    key: str
    index: int = -1


def _grip(entity: CADEntity, key: str, point: Point, kind: GripKind, index: int = -1) -> Grip:
    suffix = key if index < 0 else f"{key}{index}"
    return Grip(id=f"{entity.id}-{suffix}", entity_id=entity.id, point=point, kind=kind, key=key, index=index)


def _segment_pairs(points: tuple[Point, ...], closed: bool) -> list[tuple[int, int]]:
    n = len(points)
    pairs = [(i, i + 1) for i in range(n - 1)]
    if closed and n > 2:
        pairs.append((n - 1, 0))
    return pairs


def entity_grips(entity: CADEntity) -> list[Grip]:
    d = entity.data
    if isinstance(d, (Line, Dimension)):
        grips = [_grip(entity, "start", d.start, "endpoint"), _grip(entity, "end", d.end, "endpoint")]
        if isinstance(d, Line):
            grips.append(_grip(entity, "midpoint", g.midpoint(d.start, d.end), "midpoint"))
        return grips
    if isinstance(d, Circle):
        grips = [_grip(entity, "center", d.center, "center")]
        for i, angle in enumerate((0.0, math.pi / 2.0, math.pi, 1.5 * math.pi)):
            grips.append(_grip(entity, "radius", g.point_on_circle(d.center, d.radius, angle), "quadrant", i))
        return grips
    if isinstance(d, Arc):
        return [
            _grip(entity, "center", d.center, "center"),
            _grip(entity, "start_angle", g.point_on_circle(d.center, d.radius, d.start_angle), "endpoint"),
            _grip(entity, "end_angle", g.point_on_circle(d.center, d.radius, d.end_angle), "endpoint"),
        ]
    if isinstance(d, Rectangle):
        x, y = d.top_left
        w, h = d.width, d.height
        return [
            _grip(entity, "top_left", (x, y), "endpoint"),
            _grip(entity, "top_right", (x + w, y), "endpoint"),
            _grip(entity, "bottom_left", (x, y + h), "endpoint"),
            _grip(entity, "bottom_right", (x + w, y + h), "endpoint"),
            _grip(entity, "mid_top", (x + w / 2.0, y), "midpoint"),
            _grip(entity, "mid_bottom", (x + w / 2.0, y + h), "midpoint"),
            _grip(entity, "mid_left", (x, y + h / 2.0), "midpoint"),
            _grip(entity, "mid_right", (x + w, y + h / 2.0), "midpoint"),
        ]
    if isinstance(d, Polyline):
        grips = [_grip(entity, "points", p, "endpoint", i) for i, p in enumerate(d.points)]
        for i, j in _segment_pairs(d.points, d.closed):
            grips.append(_grip(entity, "mid", g.midpoint(d.points[i], d.points[j]), "midpoint", i))
        return grips
    if isinstance(d, Ellipse):
        cos_r, sin_r = math.cos(d.rotation), math.sin(d.rotation)
        return [
            _grip(entity, "center", d.center, "center"),
            _grip(entity, "radius_x", (d.center[0] + d.radius_x * cos_r, d.center[1] + d.radius_x * sin_r), "quadrant"),
            _grip(entity, "radius_y", (d.center[0] - d.radius_y * sin_r, d.center[1] + d.radius_y * cos_r), "quadrant"),
        ]
    if isinstance(d, Text):
        return [_grip(entity, "position", d.position, "endpoint")]
    if isinstance(d, Spline):
        return [_grip(entity, "control_points", p, "control", i) for i, p in enumerate(d.control_points)]
    if isinstance(d, (XLine, Ray)):
        tip = (
            d.base_point[0] + d.direction[0] * DIRECTION_GRIP_LENGTH,
            d.base_point[1] + d.direction[1] * DIRECTION_GRIP_LENGTH,
        )
        return [_grip(entity, "base_point", d.base_point, "endpoint"), _grip(entity, "direction", tip, "control")]
    if isinstance(d, BlockRef):
        return [_grip(entity, "insert_point", d.insert_point, "endpoint")]
    if isinstance(d, Hatch):
        return [_grip(entity, "boundary", p, "endpoint", i) for i, p in enumerate(d.boundary)]
    raise TypeError(f"Unsupported entity data: {type(d).__name__}")


def hit_test_grip(grips: Iterable[Grip], point: Point, tolerance: float) -> Grip | None:
    """First grip within ``tolerance`` of ``point``."""
    for grip in grips:
        if g.distance(grip.point, point) <= tolerance:
            return grip
    return None


def _replace_at(points: tuple[Point, ...], index: int, p: Point) -> tuple[Point, ...]:
    pts = list(points)
    pts[index] = p
    return tuple(pts)


def _drag_rectangle(d: Rectangle, key: str, p: Point) -> Rectangle:
    left, top = d.top_left
    right, bottom = left + d.width, top + d.height
    move_left, move_top, move_right, move_bottom = _RECT_EDGES[key]
    if move_left:
        left = p[0]
    if move_right:
        right = p[0]
    if move_top:
        top = p[1]
    if move_bottom:
        bottom = p[1]
    x0, x1 = sorted((left, right))
    y0, y1 = sorted((top, bottom))
    return Rectangle((x0, y0), max(x1 - x0, g.EPS), max(y1 - y0, g.EPS))


def _axis_radius(d: Ellipse, p: Point, angle: float) -> float:
    along = (p[0] - d.center[0]) * math.cos(angle) + (p[1] - d.center[1]) * math.sin(angle)
    return max(MIN_GRIP_RADIUS, abs(along))


def apply_grip_move(entity: CADEntity, grip: Grip, new_point: Point) -> EntityData:
    """Data of ``entity`` after dragging ``grip`` to ``new_point``.

    Unknown keys leave the data unchanged.
    """
    d, key, p = entity.data, grip.key, new_point
    if isinstance(d, (Line, Dimension)):
        if key == "start":
            return replace(d, start=p)
        if key == "end":
            return replace(d, end=p)
        if key == "midpoint":
            mid = g.midpoint(d.start, d.end)
            dx, dy = p[0] - mid[0], p[1] - mid[1]
            return replace(d, start=g.translate_point(d.start, dx, dy), end=g.translate_point(d.end, dx, dy))
        return d
    if isinstance(d, Circle):
        if key == "center":
            return replace(d, center=p)
        if key == "radius":
            return replace(d, radius=max(MIN_GRIP_RADIUS, g.distance(d.center, p)))
        return d
    if isinstance(d, Arc):
        if key == "center":
            return replace(d, center=p)
        if key in ("start_angle", "end_angle"):
            radius = max(MIN_GRIP_RADIUS, g.distance(d.center, p))
            angle = g.normalize_angle(g.angle_of(d.center, p))
            return replace(d, radius=radius, **{key: angle})
        return d
    if isinstance(d, Rectangle):
        if key in _RECT_EDGES:
            return _drag_rectangle(d, key, p)
        return d
    if isinstance(d, Polyline):
        if key == "points":
            return replace(d, points=_replace_at(d.points, grip.index, p))
        if key == "mid":
            i, j = grip.index, (grip.index + 1) % len(d.points)
            mid = g.midpoint(d.points[i], d.points[j])
            dx, dy = p[0] - mid[0], p[1] - mid[1]
            pts = _replace_at(d.points, i, g.translate_point(d.points[i], dx, dy))
            pts = _replace_at(pts, j, g.translate_point(d.points[j], dx, dy))
            return replace(d, points=pts)
        return d
    if isinstance(d, Ellipse):
        if key == "center":
            return replace(d, center=p)
        if key == "radius_x":
            return replace(d, radius_x=_axis_radius(d, p, d.rotation))
        if key == "radius_y":
            return replace(d, radius_y=_axis_radius(d, p, d.rotation + math.pi / 2.0))
        return d
    if isinstance(d, Text):
        return replace(d, position=p) if key == "position" else d
    if isinstance(d, Spline):
        if key == "control_points":
            return replace(d, control_points=_replace_at(d.control_points, grip.index, p))
        return d
    if isinstance(d, (XLine, Ray)):
        if key == "base_point":
            return replace(d, base_point=p)
        if key == "direction":
            u = g.unit_vector(p[0] - d.base_point[0], p[1] - d.base_point[1])
            return d if u is None else replace(d, direction=u)
        return d
    if isinstance(d, BlockRef):
        return replace(d, insert_point=p) if key == "insert_point" else d
    if isinstance(d, Hatch):
        if key == "boundary":
            return replace(d, boundary=_replace_at(d.boundary, grip.index, p))
        return d
    raise TypeError(f"Unsupported entity data: {type(d).__name__}")
