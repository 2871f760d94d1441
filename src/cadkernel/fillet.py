from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Literal

from . import geometry as g
from .models import Arc, CADEntity, Line, ModifyResult, Point

logger = logging.getLogger(__name__)

FilletMode = Literal["fillet", "chamfer"]


def _far_end(line: Line, corner: Point) -> tuple[Point, bool]:
    """Endpoint farther from ``corner`` and whether it is the start point."""
    if g.distance(line.start, corner) > g.distance(line.end, corner):
        return line.start, True
    return line.end, False


def _trim_towards(line: Line, corner: Point, new_point: Point) -> Line:
    """Keep the far end of ``line`` and move its near end to ``new_point``."""
    far, far_is_start = _far_end(line, corner)
    return Line(far, new_point) if far_is_start else Line(new_point, far)


def _outward(line: Line, corner: Point) -> tuple[Point, float] | None:
    far, _ = _far_end(line, corner)
    u = g.unit_vector(far[0] - corner[0], far[1] - corner[1])
    if u is None:
        return None
    return u, g.distance(corner, far)


def _derived_line(source: CADEntity, data: Line) -> list[CADEntity]:
    if g.distance(data.start, data.end) < g.MIN_SEGMENT:
        return []
    return [source.derive(data)]


def _new_corner_entity(source: CADEntity, data) -> CADEntity:
    return replace(source.derive(data), visible=True, locked=False)


def _fillet_center(
    l1: Line, l2: Line, corner: Point, dir1: Point, len1: float, dir2: Point, len2: float, radius: float,
) -> Point | None:
    best: Point | None = None
    for n1 in ((-dir1[1], dir1[0]), (dir1[1], -dir1[0])):
        for n2 in ((-dir2[1], dir2[0]), (dir2[1], -dir2[0])):
            p1 = (corner[0] + n1[0] * radius, corner[1] + n1[1] * radius)
            p2 = (corner[0] + n2[0] * radius, corner[1] + n2[1] * radius)
            c = g.line_line_intersection_unbounded(
                p1, g.translate_point(p1, *dir1), p2, g.translate_point(p2, *dir2),
            )
            if c is None:
                continue
            if abs(g.point_line_distance(c, l1.start, l1.end) - radius) >= g.FILLET_TOL:
                continue
            if abs(g.point_line_distance(c, l2.start, l2.end) - radius) >= g.FILLET_TOL:
                continue
            # Both tangent points must lie on the kept, outward part of each line.
            t1 = (c[0] - corner[0]) * dir1[0] + (c[1] - corner[1]) * dir1[1]
            t2 = (c[0] - corner[0]) * dir2[0] + (c[1] - corner[1]) * dir2[1]
            if t1 < -g.EPS or t2 < -g.EPS or t1 > len1 + g.EPS or t2 > len2 + g.EPS:
                continue
            if best is None or g.distance(c, corner) < g.distance(best, corner):
                best = c
    return best


def fillet_entities(
    entity1: CADEntity,
    entity2: CADEntity,
    radius: float,
    mode: FilletMode = "fillet",
) -> ModifyResult | None:
    """Round (``fillet``) or bevel (``chamfer``) the corner between two lines.

    A radius of zero trims both lines to their intersection. Returns ``None``
    for non-line input, parallel lines or a radius too large for the lines.
    """
    if mode not in ("fillet", "chamfer"):
        raise ValueError(f"Unknown corner mode: {mode}")
    l1, l2 = entity1.data, entity2.data
    if not isinstance(l1, Line) or not isinstance(l2, Line):
        logger.debug("Fillet needs two lines, got %s and %s", entity1.type, entity2.type)
        return None

    corner = g.line_line_intersection_unbounded(l1.start, l1.end, l2.start, l2.end)
    if corner is None:
        logger.debug("Lines %s and %s are parallel", entity1.id, entity2.id)
        return None

    removed = (entity1.id, entity2.id)
    if radius <= 0:
        added = [
            *_derived_line(entity1, _trim_towards(l1, corner, corner)),
            *_derived_line(entity2, _trim_towards(l2, corner, corner)),
        ]
        return ModifyResult(remove_ids=removed, add_entities=tuple(added))

    out1, out2 = _outward(l1, corner), _outward(l2, corner)
    if out1 is None or out2 is None:
        return None
    (dir1, len1), (dir2, len2) = out1, out2

    if mode == "chamfer":
        if radius > len1 or radius > len2:
            logger.debug("Chamfer distance %s exceeds line length", radius)
            return None
        c1 = (corner[0] + dir1[0] * radius, corner[1] + dir1[1] * radius)
        c2 = (corner[0] + dir2[0] * radius, corner[1] + dir2[1] * radius)
        added = [
            *_derived_line(entity1, _trim_towards(l1, corner, c1)),
            *_derived_line(entity2, _trim_towards(l2, corner, c2)),
            _new_corner_entity(entity1, Line(c1, c2)),
        ]
        return ModifyResult(remove_ids=removed, add_entities=tuple(added))

    center = _fillet_center(l1, l2, corner, dir1, len1, dir2, len2, radius)
    if center is None:
        logger.debug("No fillet of radius %s fits between %s and %s", radius, entity1.id, entity2.id)
        return None

    tangent1 = g.closest_point_on_line(center, l1.start, l1.end)
    tangent2 = g.closest_point_on_line(center, l2.start, l2.end)
    start = g.normalize_angle(g.angle_of(center, tangent1))
    end = g.normalize_angle(g.angle_of(center, tangent2))
    if g.arc_sweep(start, end) > math.pi:
        start, end = end, start

    added = [
        *_derived_line(entity1, _trim_towards(l1, corner, tangent1)),
        *_derived_line(entity2, _trim_towards(l2, corner, tangent2)),
        _new_corner_entity(entity1, Arc(center, radius, start, end)),
    ]
    return ModifyResult(remove_ids=removed, add_entities=tuple(added))
