from __future__ import annotations

import logging
import math
from typing import Mapping, Sequence

from . import geometry as g
from .intersect import (
    CirclePrim, LinearPrim, circle_hits_against, linear_hits_against, polyline_segments, rectangle_corners,
)
from .models import Arc, BlockDefinition, CADEntity, Circle, Line, ModifyResult, Point, Polyline, Rectangle

logger = logging.getLogger(__name__)


def _others(target: CADEntity, entities: Sequence[CADEntity]) -> list[CADEntity]:
    return [e for e in entities if e.id != target.id and e.visible]


def _interval_index(breaks: Sequence[float], value: float) -> int:
    for i in range(len(breaks) - 1):
        if breaks[i] <= value <= breaks[i + 1]:
            return i
    return len(breaks) - 2


def _segment_breaks(a: Point, b: Point, others: Sequence[CADEntity], blocks) -> list[float]:
    """Sorted interior intersection parameters along segment ``ab``."""
    hits = linear_hits_against(LinearPrim.segment(a, b), others, blocks)
    ts = sorted(t for t, _ in hits if g.TRIM_PARAM_MARGIN < t < 1.0 - g.TRIM_PARAM_MARGIN)
    length = g.distance(a, b)
    unique: list[float] = []
    for t in ts:
        if not unique or (t - unique[-1]) * length > g.POINT_TOL:
            unique.append(t)
    return unique


def _trim_line(click: Point, target: CADEntity, others, blocks) -> ModifyResult | None:
    d = target.data
    breaks = _segment_breaks(d.start, d.end, others, blocks)
    if not breaks:
        return None
    breaks = [0.0, *breaks, 1.0]
    click_t = min(1.0, max(0.0, g.segment_param(click, d.start, d.end)))
    skip = _interval_index(breaks, click_t)

    pieces: list[CADEntity] = []
    for i in range(len(breaks) - 1):
        if i == skip:
            continue
        start = g.lerp(d.start, d.end, breaks[i])
        end = g.lerp(d.start, d.end, breaks[i + 1])
        if g.distance(start, end) > g.MIN_SEGMENT:
            pieces.append(target.derive(Line(start, end)))
    return ModifyResult(remove_ids=(target.id,), add_entities=tuple(pieces))


def _circle_angles(center: Point, radius: float, others, blocks) -> list[float]:
    points = circle_hits_against(CirclePrim(center, radius), others, blocks)
    return sorted(g.normalize_angle(g.angle_of(center, p)) for p in points)


def _trim_circle(click: Point, target: CADEntity, others, blocks) -> ModifyResult | None:
    d = target.data
    angles: list[float] = []
    for a in _circle_angles(d.center, d.radius, others, blocks):
        if not angles or a - angles[-1] > g.POINT_TOL:
            angles.append(a)
    if len(angles) > 1 and angles[0] + g.TAU - angles[-1] <= g.POINT_TOL:
        angles.pop()
    if len(angles) < 2:
        return None

    click_angle = g.angle_of(d.center, click)
    n = len(angles)
    skip = next(
        (i for i in range(n) if g.angle_in_arc(click_angle, angles[i], angles[(i + 1) % n], tol=0.0)),
        0,
    )
    pieces: list[CADEntity] = []
    for i in range(n):
        if i == skip:
            continue
        start, end = angles[i], angles[(i + 1) % n]
        if d.radius * g.arc_sweep(start, end) > g.MIN_SEGMENT:
            pieces.append(target.derive(Arc(d.center, d.radius, start, end)))
    return ModifyResult(remove_ids=(target.id,), add_entities=tuple(pieces))


def _trim_arc(click: Point, target: CADEntity, others, blocks) -> ModifyResult | None:
    d = target.data
    start = g.normalize_angle(d.start_angle)
    sweep = g.arc_sweep(d.start_angle, d.end_angle)
    margin = g.TRIM_PARAM_MARGIN * sweep

    # Breaks are measured as CCW sweep from the arc start.
    candidates: list[float] = []
    for a in _circle_angles(d.center, d.radius, others, blocks):
        if not g.angle_in_arc(a, d.start_angle, d.end_angle):
            continue
        u = g.normalize_angle(a - start)
        if u > sweep + g.ANGLE_TOL:
            u -= g.TAU
        if margin < u < sweep - margin:
            candidates.append(u)
    offsets: list[float] = []
    for u in sorted(candidates):
        if not offsets or u - offsets[-1] > g.POINT_TOL:
            offsets.append(u)
    if not offsets:
        return None

    breaks = [0.0, *offsets, sweep]
    click_u = g.normalize_angle(g.angle_of(d.center, click) - start)
    if click_u > sweep:
        click_u = sweep if click_u - sweep < g.TAU - click_u else 0.0
    skip = _interval_index(breaks, click_u)

    pieces: list[CADEntity] = []
    for i in range(len(breaks) - 1):
        if i == skip or d.radius * (breaks[i + 1] - breaks[i]) <= g.MIN_SEGMENT:
            continue
        pieces.append(target.derive(Arc(
            d.center, d.radius,
            g.normalize_angle(start + breaks[i]),
            g.normalize_angle(start + breaks[i + 1]),
        )))
    return ModifyResult(remove_ids=(target.id,), add_entities=tuple(pieces))


def _nearest_segment(click: Point, segments: Sequence[tuple[Point, Point]], tolerance: float) -> int:
    best, best_dist = -1, tolerance
    for i, (a, b) in enumerate(segments):
        dist = g.point_segment_distance(click, a, b)
        if dist < best_dist:
            best, best_dist = i, dist
    return best


def _trim_rectangle(click: Point, target: CADEntity, others, blocks, tolerance: float) -> ModifyResult | None:
    edges = [target.derive(Line(a, b)) for a, b in polyline_segments(rectangle_corners(target.data), True)]
    idx = _nearest_segment(click, [(e.data.start, e.data.end) for e in edges], tolerance)
    if idx < 0:
        return None
    result = _trim_line(click, edges[idx], others, blocks)
    if result is None:
        return None
    kept = [e for i, e in enumerate(edges) if i != idx]
    return ModifyResult(remove_ids=(target.id,), add_entities=(*kept, *result.add_entities))


def _polyline_piece(points: Sequence[Point], closed: bool, u0: float, u1: float) -> list[Point]:
    """Points of the polyline between global parameters ``u0`` and ``u1``."""
    n_pts = len(points)
    n_seg = n_pts if closed else n_pts - 1

    def at(u: float) -> Point:
        k = int(math.floor(u))
        t = u - k
        if not closed and k >= n_seg:
            k, t = n_seg - 1, 1.0
        k %= n_seg
        return g.lerp(points[k], points[(k + 1) % n_pts], t)

    out = [at(u0)]
    j = int(math.floor(u0)) + 1
    while j < u1:
        out.append(points[j % n_pts])
        j += 1
    out.append(at(u1))
    cleaned = [out[0]]
    for p in out[1:]:
        if g.distance(p, cleaned[-1]) > g.EPS:
            cleaned.append(p)
    return cleaned


def _trim_polyline(click: Point, target: CADEntity, others, blocks, tolerance: float) -> ModifyResult | None:
    d = target.data
    segments = polyline_segments(d.points, d.closed)
    closed = d.closed and len(d.points) > 2
    n_seg = len(segments)

    clicked = _nearest_segment(click, segments, tolerance)
    if clicked < 0:
        return None

    breaks: list[float] = []
    for k, (a, b) in enumerate(segments):
        breaks.extend(k + t for t in _segment_breaks(a, b, others, blocks))

    a, b = segments[clicked]
    click_u = clicked + min(1.0, max(0.0, g.segment_param(click, a, b)))

    pieces: list[list[Point]] = []
    if closed:
        if len(breaks) < 2:
            return None
        # The clicked interval runs between the breaks surrounding the click, cyclically.
        lo = max((u for u in breaks if u <= click_u), default=breaks[-1] - n_seg)
        hi = min((u for u in breaks if u > click_u), default=breaks[0] + n_seg)
        pieces.append(_polyline_piece(d.points, True, hi, lo + n_seg))
    else:
        if not breaks:
            return None
        full = [0.0, *breaks, float(n_seg)]
        i = _interval_index(full, click_u)
        lo, hi = full[i], full[i + 1]
        if lo > 0.0:
            pieces.append(_polyline_piece(d.points, False, 0.0, lo))
        if hi < n_seg:
            pieces.append(_polyline_piece(d.points, False, hi, float(n_seg)))

    added = tuple(
        target.derive(Polyline(points=tuple(pts), closed=False))
        for pts in pieces
        if len(pts) >= 2 and g.polyline_length(pts) > g.MIN_SEGMENT
    )
    return ModifyResult(remove_ids=(target.id,), add_entities=added)


def trim_entity(
    click_point: Point,
    target: CADEntity,
    entities: Sequence[CADEntity],
    tolerance: float,
    blocks: Mapping[str, BlockDefinition] | None = None,
) -> ModifyResult | None:
    """Remove the part of ``target`` between the cutting edges around ``click_point``.

    Every other visible entity in ``entities`` acts as a cutting edge. Returns
    ``None`` when nothing cuts the clicked part or the variant cannot be trimmed.
    """
    others = _others(target, entities)
    d = target.data
    if isinstance(d, Line):
        result = _trim_line(click_point, target, others, blocks)
    elif isinstance(d, Circle):
        result = _trim_circle(click_point, target, others, blocks)
    elif isinstance(d, Arc):
        result = _trim_arc(click_point, target, others, blocks)
    elif isinstance(d, Rectangle):
        result = _trim_rectangle(click_point, target, others, blocks, tolerance)
    elif isinstance(d, Polyline):
        result = _trim_polyline(click_point, target, others, blocks, tolerance)
    else:
        logger.debug("Trim is not supported for %s entities", target.type)
        return None
    if result is None:
        logger.debug("No cutting edges found for %s %s", target.type, target.id)
    return result
