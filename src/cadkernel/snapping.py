from __future__ import annotations

import math
from typing import Iterable, Mapping, Sequence

from . import geometry as g
from .blocks import block_ref_entities
from .intersect import intersect_entities, polyline_segments, rectangle_corners
from .models import (
    Arc, BlockDefinition, BlockRef, CADEntity, Circle, Dimension, EntityData, Ellipse, GridSettings,
    Hatch, Line, Point, Polyline, PolarTrackingSettings, Ray, Rectangle, SnapResult, SnapSettings,
    Spline, Text, XLine,
)
from .query import bounding_box, hit_test
from .spline import spline_endpoints, spline_points

QUADRANT_ANGLES = (0.0, math.pi / 2.0, math.pi, 1.5 * math.pi)


def snap_to_grid_point(point: Point, grid: GridSettings) -> Point:
    s = grid.spacing
    if s <= 0:
        return point
    return (round(point[0] / s) * s, round(point[1] / s) * s)


def apply_ortho(start: Point, point: Point) -> Point:
    """Lock ``point`` to the horizontal or vertical through ``start``, whichever dominates."""
    dx, dy = point[0] - start[0], point[1] - start[1]
    if abs(dx) > abs(dy):
        return (point[0], start[1])
    return (start[0], point[1])


def polar_tracking_angle(start: Point, point: Point, settings: PolarTrackingSettings) -> float | None:
    """Tracked angle in degrees for the cursor, or None outside every capture band."""
    if not settings.enabled or g.distance(start, point) < g.EPS:
        return None
    cursor = math.degrees(g.angle_of(start, point)) % 360.0
    candidates: list[float] = []
    if settings.increment > 0:
        steps = int(math.ceil(360.0 / settings.increment))
        candidates.extend((k * settings.increment) % 360.0 for k in range(steps))
    candidates.extend(a % 360.0 for a in settings.additional_angles)

    best: float | None = None
    best_diff = math.inf
    for angle in candidates:
        diff = abs(cursor - angle) % 360.0
        diff = min(diff, 360.0 - diff)
        if diff < best_diff:
            best, best_diff = angle, diff
    return best if best_diff <= g.POLAR_TOL_DEG else None


def apply_polar_tracking(start: Point, point: Point, settings: PolarTrackingSettings) -> Point:
    """Rotate ``point`` about ``start`` onto the tracked angle, keeping its distance."""
    angle = polar_tracking_angle(start, point, settings)
    if angle is None:
        return point
    return g.point_on_circle(start, g.distance(start, point), math.radians(angle))


def _feature_candidates(
    data: EntityData, entity_id: str, snap: SnapSettings, blocks: Mapping[str, BlockDefinition] | None,
) -> list[SnapResult]:
    out: list[SnapResult] = []

    def add(points: Iterable[Point], kind: str) -> None:
        out.extend(SnapResult(p, kind, entity_id) for p in points)

    if isinstance(data, Line):
        if snap.endpoint_snap:
            add((data.start, data.end), "endpoint")
        if snap.midpoint_snap:
            add((g.midpoint(data.start, data.end),), "midpoint")
    elif isinstance(data, Circle):
        if snap.center_snap:
            add((data.center,), "center")
        if snap.endpoint_snap:
            add((g.point_on_circle(data.center, data.radius, a) for a in QUADRANT_ANGLES), "quadrant")
    elif isinstance(data, Arc):
        if snap.center_snap:
            add((data.center,), "center")
        if snap.endpoint_snap:
            add((
                g.point_on_circle(data.center, data.radius, data.start_angle),
                g.point_on_circle(data.center, data.radius, data.end_angle),
            ), "endpoint")
    elif isinstance(data, Rectangle):
        corners = rectangle_corners(data)
        if snap.endpoint_snap:
            add(corners, "endpoint")
        if snap.midpoint_snap:
            add((g.midpoint(a, b) for a, b in polyline_segments(corners, True)), "midpoint")
        if snap.center_snap:
            add(((data.top_left[0] + data.width / 2.0, data.top_left[1] + data.height / 2.0),), "center")
    elif isinstance(data, Polyline):
        if snap.endpoint_snap:
            add(data.points, "endpoint")
        if snap.midpoint_snap:
            add((g.midpoint(a, b) for a, b in polyline_segments(data.points, data.closed)), "midpoint")
    elif isinstance(data, Ellipse):
        if snap.center_snap:
            add((data.center,), "center")
    elif isinstance(data, Text):
        if snap.endpoint_snap:
            add((data.position,), "endpoint")
    elif isinstance(data, Dimension):
        if snap.endpoint_snap:
            add((data.start, data.end), "endpoint")
    elif isinstance(data, Spline):
        if snap.endpoint_snap:
            add(spline_endpoints(data), "endpoint")
            add(data.control_points, "endpoint")
    elif isinstance(data, (XLine, Ray)):
        if snap.endpoint_snap:
            add((data.base_point,), "endpoint")
    elif isinstance(data, BlockRef):
        if snap.endpoint_snap:
            add((data.insert_point,), "endpoint")
        if blocks and data.block_id in blocks:
            for child in block_ref_entities(blocks[data.block_id], data):
                out.extend(_feature_candidates(child.data, entity_id, snap, blocks))
    elif isinstance(data, Hatch):
        pass
    else:
        raise TypeError(f"Unsupported entity data: {type(data).__name__}")
    return out


def snap_candidates(
    entity: CADEntity, snap: SnapSettings, blocks: Mapping[str, BlockDefinition] | None = None,
) -> list[SnapResult]:
    """Endpoint, midpoint, center and quadrant candidates of one entity."""
    return _feature_candidates(entity.data, entity.id, snap, blocks)


def _segments_of(data: EntityData, blocks: Mapping[str, BlockDefinition] | None) -> list[tuple[Point, Point]]:
    if isinstance(data, Line):
        return [(data.start, data.end)]
    if isinstance(data, Rectangle):
        return polyline_segments(rectangle_corners(data), True)
    if isinstance(data, Polyline):
        return polyline_segments(data.points, data.closed)
    if isinstance(data, Hatch):
        return polyline_segments(data.boundary, True)
    if isinstance(data, Dimension):
        return [(data.start, data.end)]
    if isinstance(data, Spline):
        pts = spline_points(data)
        return list(zip(pts, pts[1:]))
    if isinstance(data, Ellipse):
        pts = g.ellipse_points(data.center, data.radius_x, data.radius_y, data.rotation)
        return polyline_segments(pts, True)
    if isinstance(data, BlockRef) and blocks and data.block_id in blocks:
        return [s for child in block_ref_entities(blocks[data.block_id], data) for s in _segments_of(child.data, blocks)]
    return []


def nearest_point_on(
    data: EntityData, point: Point, blocks: Mapping[str, BlockDefinition] | None = None,
) -> Point | None:
    """Closest point to ``point`` on the entity's curve."""
    if isinstance(data, Circle):
        u = g.unit_vector(point[0] - data.center[0], point[1] - data.center[1])
        if u is None:
            return None
        return (data.center[0] + u[0] * data.radius, data.center[1] + u[1] * data.radius)
    if isinstance(data, Arc):
        angle = g.angle_of(data.center, point)
        if g.angle_in_arc(angle, data.start_angle, data.end_angle, tol=0.0):
            return g.point_on_circle(data.center, data.radius, angle)
        ends = (
            g.point_on_circle(data.center, data.radius, data.start_angle),
            g.point_on_circle(data.center, data.radius, data.end_angle),
        )
        return min(ends, key=lambda p: g.distance(p, point))
    if isinstance(data, XLine):
        far = g.translate_point(data.base_point, *data.direction)
        return g.closest_point_on_line(point, data.base_point, far)
    if isinstance(data, Ray):
        far = g.translate_point(data.base_point, *data.direction)
        t = max(0.0, g.segment_param(point, data.base_point, far))
        return g.lerp(data.base_point, far, t)
    if isinstance(data, BlockRef) and blocks and data.block_id in blocks:
        found = [nearest_point_on(c.data, point, blocks) for c in block_ref_entities(blocks[data.block_id], data)]
        found = [p for p in found if p is not None]
        return min(found, key=lambda p: g.distance(p, point)) if found else None
    best: Point | None = None
    for a, b in _segments_of(data, blocks):
        proj, _ = g.project_point_to_segment(point, a, b)
        if best is None or g.distance(point, proj) < g.distance(point, best):
            best = proj
    return best


def _perpendicular_points(data: EntityData, from_point: Point) -> list[Point]:
    if isinstance(data, (Circle, Arc)):
        u = g.unit_vector(from_point[0] - data.center[0], from_point[1] - data.center[1])
        if u is None:
            return []
        pts = [
            (data.center[0] + u[0] * data.radius, data.center[1] + u[1] * data.radius),
            (data.center[0] - u[0] * data.radius, data.center[1] - u[1] * data.radius),
        ]
        if isinstance(data, Arc):
            pts = [p for p in pts if g.angle_in_arc(g.angle_of(data.center, p), data.start_angle, data.end_angle)]
        return pts
    if isinstance(data, XLine):
        far = g.translate_point(data.base_point, *data.direction)
        return [g.closest_point_on_line(from_point, data.base_point, far)]
    if isinstance(data, Ray):
        far = g.translate_point(data.base_point, *data.direction)
        if g.segment_param(from_point, data.base_point, far) < 0.0:
            return []
        return [g.closest_point_on_line(from_point, data.base_point, far)]
    out: list[Point] = []
    if isinstance(data, (Line, Rectangle, Polyline)):
        for a, b in _segments_of(data, None):
            t = g.segment_param(from_point, a, b)
            if 0.0 <= t <= 1.0:
                out.append(g.lerp(a, b, t))
    return out


def _tangent_points(data: EntityData, from_point: Point) -> list[Point]:
    if not isinstance(data, (Circle, Arc)):
        return []
    d = g.distance(from_point, data.center)
    if d <= data.radius + g.EPS:
        return []
    base = g.angle_of(data.center, from_point)
    alpha = math.acos(data.radius / d)
    pts = [g.point_on_circle(data.center, data.radius, base + s * alpha) for s in (1.0, -1.0)]
    if isinstance(data, Arc):
        pts = [p for p in pts if g.angle_in_arc(g.angle_of(data.center, p), data.start_angle, data.end_angle)]
    return pts


def _is_near(entity: CADEntity, point: Point, tolerance: float, blocks: Mapping[str, BlockDefinition] | None) -> bool:
    bb = bounding_box(entity, blocks)
    if bb is None:
        return hit_test(entity, point, tolerance, blocks)
    return (
        bb.min_x - tolerance <= point[0] <= bb.max_x + tolerance
        and bb.min_y - tolerance <= point[1] <= bb.max_y + tolerance
    )


def find_snap_point(
    point: Point,
    entities: Sequence[CADEntity],
    snap: SnapSettings,
    grid: GridSettings,
    tolerance: float = 10.0,
    from_point: Point | None = None,
    blocks: Mapping[str, BlockDefinition] | None = None,
) -> SnapResult | None:
    """Nearest enabled snap feature within ``tolerance`` of ``point``.

    Ties keep the first candidate found in entity order. Nearest-on-curve
    points are only consulted when no other feature qualifies; the grid is
    the last resort.
    """
    if not snap.enabled:
        return None

    visible = [e for e in entities if e.visible]
    candidates: list[SnapResult] = []
    for e in visible:
        candidates.extend(snap_candidates(e, snap, blocks))

    near = [e for e in visible if _is_near(e, point, tolerance, blocks)]
    if snap.intersection_snap:
        for i, a in enumerate(near):
            for b in near[i + 1:]:
                candidates.extend(SnapResult(p, "intersection", None) for p in intersect_entities(a.data, b.data, blocks))
    if from_point is not None:
        for e in near:
            if snap.perpendicular_snap:
                candidates.extend(SnapResult(p, "perpendicular", e.id) for p in _perpendicular_points(e.data, from_point))
            if snap.tangent_snap:
                candidates.extend(SnapResult(p, "tangent", e.id) for p in _tangent_points(e.data, from_point))

    best: SnapResult | None = None
    best_dist = tolerance
    for c in candidates:
        d = g.distance(point, c.point)
        if d < best_dist:
            best, best_dist = c, d

    if best is None and snap.nearest_snap:
        for e in near:
            p = nearest_point_on(e.data, point, blocks)
            if p is None:
                continue
            d = g.distance(point, p)
            if d < best_dist:
                best, best_dist = SnapResult(p, "nearest", e.id), d

    if best is None and snap.grid_snap and grid.snap_to_grid:
        gp = snap_to_grid_point(point, grid)
        if g.distance(point, gp) < tolerance:
            best = SnapResult(gp, "grid", None)
    return best
