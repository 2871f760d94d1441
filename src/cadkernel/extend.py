from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Mapping, Sequence

from . import geometry as g
from .intersect import CirclePrim, LinearPrim, circle_hits_against, linear_hits_against
from .models import Arc, BlockDefinition, CADEntity, EntityData, Line, Point, Polyline

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExtendResult:
    """New data for the entity ``entity_id``; the id is kept."""

    entity_id: str
    data: EntityData


def _nearest_forward_hit(
    origin: Point, direction: Point, others: Sequence[CADEntity], blocks,
) -> Point | None:
    ray = LinearPrim(origin, direction, g.RAY)
    best: Point | None = None
    best_dist = float("inf")
    for t, p in linear_hits_against(ray, others, blocks):
        if t <= g.RAY_EPS:
            continue
        dist = g.distance(origin, p)
        if g.MIN_SEGMENT < dist < best_dist:
            best, best_dist = p, dist
    return best


def _extend_line(click: Point, d: Line, others, blocks) -> Line | None:
    from_end = g.distance(click, d.end) < g.distance(click, d.start)
    u = g.unit_vector(d.end[0] - d.start[0], d.end[1] - d.start[1])
    if u is None:
        return None
    if from_end:
        hit = _nearest_forward_hit(d.end, u, others, blocks)
        return None if hit is None else Line(d.start, hit)
    hit = _nearest_forward_hit(d.start, (-u[0], -u[1]), others, blocks)
    return None if hit is None else Line(hit, d.end)


def _extend_polyline(click: Point, d: Polyline, others, blocks) -> Polyline | None:
    if d.closed or len(d.points) < 2:
        return None
    first, last = d.points[0], d.points[-1]
    from_last = g.distance(click, last) < g.distance(click, first)
    if from_last:
        origin, prev = last, d.points[-2]
    else:
        origin, prev = first, d.points[1]
    u = g.unit_vector(origin[0] - prev[0], origin[1] - prev[1])
    if u is None:
        return None
    hit = _nearest_forward_hit(origin, u, others, blocks)
    if hit is None:
        return None
    points = list(d.points)
    points[-1 if from_last else 0] = hit
    return replace(d, points=tuple(points))


def _extend_arc(click: Point, d: Arc, others, blocks) -> Arc | None:
    start_pt = g.point_on_circle(d.center, d.radius, d.start_angle)
    end_pt = g.point_on_circle(d.center, d.radius, d.end_angle)
    from_end = g.distance(click, end_pt) < g.distance(click, start_pt)
    s = g.normalize_angle(d.start_angle)
    e = g.normalize_angle(d.end_angle)

    best_angle: float | None = None
    best_gap = float("inf")
    for p in circle_hits_against(CirclePrim(d.center, d.radius), others, blocks):
        angle = g.normalize_angle(g.angle_of(d.center, p))
        if g.angle_in_arc(angle, s, e):
            continue
        # Angular gap travelled beyond the chosen end, CCW past the end or CW before the start.
        gap = g.normalize_angle(angle - e) if from_end else g.normalize_angle(s - angle)
        if gap * d.radius > g.MIN_SEGMENT and gap < best_gap:
            best_angle, best_gap = angle, gap
    if best_angle is None:
        return None
    if from_end:
        return Arc(d.center, d.radius, s, best_angle)
    return Arc(d.center, d.radius, best_angle, e)


def extend_entity(
    click_point: Point,
    target: CADEntity,
    entities: Sequence[CADEntity],
    blocks: Mapping[str, BlockDefinition] | None = None,
) -> ExtendResult | None:
    """Grow the end of ``target`` nearest ``click_point`` to the next boundary.

    Lines, arcs and open polylines can be extended; every other variant
    returns ``None``, as does an end with nothing ahead of it.
    """
    others = [e for e in entities if e.id != target.id and e.visible]
    d = target.data
    if isinstance(d, Line):
        data = _extend_line(click_point, d, others, blocks)
    elif isinstance(d, Arc):
        data = _extend_arc(click_point, d, others, blocks)
    elif isinstance(d, Polyline):
        data = _extend_polyline(click_point, d, others, blocks)
    else:
        logger.debug("Extend is not supported for %s entities", target.type)
        return None
    if data is None:
        logger.debug("No boundary ahead of %s %s", target.type, target.id)
        return None
    return ExtendResult(entity_id=target.id, data=data)
