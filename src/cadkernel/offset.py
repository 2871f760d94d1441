from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Sequence

from . import geometry as g
from .models import Arc, CADEntity, Circle, Ellipse, Line, Point, Polyline, Ray, Rectangle, XLine

logger = logging.getLogger(__name__)


def _side_normal(a: Point, b: Point, side_point: Point) -> Point | None:
    """Unit normal of ``ab`` pointing toward ``side_point``."""
    u = g.unit_vector(b[0] - a[0], b[1] - a[1])
    if u is None:
        return None
    n1 = (-u[1], u[0])
    n2 = (u[1], -u[0])
    mid = g.midpoint(a, b)
    if g.distance(side_point, g.translate_point(mid, *n1)) < g.distance(side_point, g.translate_point(mid, *n2)):
        return n1
    return n2


def _shrunk(radius: float, distance: float, inside: bool) -> float:
    return max(g.MIN_OFFSET_SIZE, radius - distance) if inside else radius + distance


def segment_normals(points: Sequence[Point], closed: bool) -> list[Point]:
    """Left-hand unit normal per segment; zero for degenerate segments."""
    n = len(points)
    count = n if closed else n - 1
    normals: list[Point] = []
    for i in range(count):
        a, b = points[i], points[(i + 1) % n]
        u = g.unit_vector(b[0] - a[0], b[1] - a[1])
        normals.append((0.0, 0.0) if u is None else (-u[1], u[0]))
    return normals


def offset_polyline_points(points: Sequence[Point], closed: bool, distance: float, side_point: Point) -> list[Point]:
    """Offset every vertex along the re-normalized average of its adjacent segment normals.

    The side is decided once from the first segment and applied to every vertex.
    """
    normals = segment_normals(points, closed)
    mid0 = g.midpoint(points[0], points[1])
    test1 = g.translate_point(mid0, *normals[0])
    test2 = g.translate_point(mid0, -normals[0][0], -normals[0][1])
    sign = 1.0 if g.distance(side_point, test1) < g.distance(side_point, test2) else -1.0

    n = len(points)
    out: list[Point] = []
    for i in range(n):
        adjacent: list[Point] = []
        if i > 0 or closed:
            adjacent.append(normals[i - 1] if i > 0 else normals[-1])
        if i < n - 1 or closed:
            adjacent.append(normals[i] if i < len(normals) else normals[0])
        nx = sum(v[0] for v in adjacent) / len(adjacent)
        ny = sum(v[1] for v in adjacent) / len(adjacent)
        length = math.hypot(nx, ny)
        if length > g.EPS:
            nx, ny = nx / length, ny / length
        out.append((points[i][0] + sign * nx * distance, points[i][1] + sign * ny * distance))
    return out


def offset_entity(entity: CADEntity, distance: float, side_point: Point) -> CADEntity | None:
    """Parallel copy of ``entity`` at ``distance`` toward ``side_point``.

    Always returns a new entity; ``None`` for variants that have no offset
    (text, dimension, hatch, spline, block reference) or degenerate input.
    """
    d = entity.data
    if isinstance(d, Line):
        n = _side_normal(d.start, d.end, side_point)
        if n is None:
            return None
        dx, dy = n[0] * distance, n[1] * distance
        return entity.derive(Line(g.translate_point(d.start, dx, dy), g.translate_point(d.end, dx, dy)))
    if isinstance(d, (XLine, Ray)):
        n = _side_normal(d.base_point, g.translate_point(d.base_point, *d.direction), side_point)
        if n is None:
            return None
        return entity.derive(replace(d, base_point=g.translate_point(d.base_point, n[0] * distance, n[1] * distance)))
    if isinstance(d, Circle):
        inside = g.distance(side_point, d.center) < d.radius
        return entity.derive(Circle(d.center, _shrunk(d.radius, distance, inside)))
    if isinstance(d, Arc):
        inside = g.distance(side_point, d.center) < d.radius
        return entity.derive(replace(d, radius=_shrunk(d.radius, distance, inside)))
    if isinstance(d, Ellipse):
        lx, ly = g.rotate_point(side_point, d.center, -d.rotation)
        inside = ((lx - d.center[0]) / d.radius_x) ** 2 + ((ly - d.center[1]) / d.radius_y) ** 2 < 1.0
        return entity.derive(replace(
            d,
            radius_x=_shrunk(d.radius_x, distance, inside),
            radius_y=_shrunk(d.radius_y, distance, inside),
        ))
    if isinstance(d, Rectangle):
        x, y = d.top_left
        inside = x < side_point[0] < x + d.width and y < side_point[1] < y + d.height
        delta = -2.0 * distance if inside else 2.0 * distance
        width = max(g.MIN_OFFSET_SIZE, d.width + delta)
        height = max(g.MIN_OFFSET_SIZE, d.height + delta)
        cx, cy = x + d.width / 2.0, y + d.height / 2.0
        return entity.derive(Rectangle((cx - width / 2.0, cy - height / 2.0), width, height))
    if isinstance(d, Polyline):
        if len(d.points) < 2:
            return None
        points = offset_polyline_points(d.points, d.closed, distance, side_point)
        return entity.derive(replace(d, points=tuple(points)))
    logger.debug("Offset is not supported for %s entities", entity.type)
    return None
