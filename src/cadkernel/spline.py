from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from .geometry import POINT_TOL, distance
from .models import CADEntity, Point, Polyline, Spline


def generate_uniform_knots(n: int, degree: int, closed: bool) -> list[float]:
    """Knot vector for ``n`` control points: uniform when closed, clamped when open."""
    if closed:
        return [float(i) for i in range(n + degree + 1)]
    interior = n - degree
    knots = [0.0] * (degree + 1)
    knots.extend(float(i) for i in range(1, interior))
    knots.extend([float(max(1, interior))] * (degree + 1))
    return knots


def de_boor(k: int, degree: int, t: float, knots: Sequence[float], control_points: Sequence[Point]) -> Point:
    n = len(control_points)
    d = [control_points[(k - degree + j) % n] for j in range(degree + 1)]
    for r in range(1, degree + 1):
        for j in range(degree, r - 1, -1):
            i = k - degree + j
            denom = knots[i + degree - r + 1] - knots[i]
            alpha = 0.0 if denom == 0 else (t - knots[i]) / denom
            d[j] = (
                (1.0 - alpha) * d[j - 1][0] + alpha * d[j][0],
                (1.0 - alpha) * d[j - 1][1] + alpha * d[j][1],
            )
    return d[degree]


def evaluate_bspline(
    control_points: Sequence[Point], degree: int, closed: bool, segments: int = 100,
) -> list[Point]:
    """Sample a uniform B-spline with ``segments + 1`` points."""
    if len(control_points) < 2:
        return list(control_points)
    degree = min(degree, len(control_points) - 1)
    if degree < 1:
        return list(control_points)

    pts = list(control_points)
    if closed:
        pts.extend(control_points[i % len(control_points)] for i in range(degree))

    n = len(pts)
    knots = generate_uniform_knots(n, degree, closed)
    t_min = float(degree) if closed else 0.0
    t_max = float(n) if closed else knots[-1]

    result: list[Point] = []
    for i in range(segments + 1):
        t = t_min + (t_max - t_min) * (i / segments)
        k = degree
        for j in range(degree, len(knots) - 1):
            if knots[j] <= t < knots[j + 1]:
                k = j
                break
        if t >= knots[-1]:
            k = len(knots) - degree - 2
        result.append(de_boor(k, degree, t, knots, pts))
    return result


def evaluate_catmull_rom(control_points: Sequence[Point], closed: bool, segments: int = 80) -> list[Point]:
    """Interpolating Catmull-Rom curve through every control point."""
    if len(control_points) < 2:
        return list(control_points)
    if len(control_points) == 2:
        a, b = control_points
        return [
            (a[0] + (b[0] - a[0]) * i / segments, a[1] + (b[1] - a[1]) * i / segments)
            for i in range(segments + 1)
        ]

    cps = list(control_points)
    if closed:
        pts = [cps[-1], *cps, cps[0], cps[1]]
    else:
        pts = [cps[0], *cps, cps[-1]]

    num_segments = len(pts) - 3
    per_segment = max(4, -(-segments // num_segments))

    result: list[Point] = []
    for i in range(num_segments):
        p0, p1, p2, p3 = pts[i], pts[i + 1], pts[i + 2], pts[i + 3]
        for j in range(per_segment + 1):
            if i > 0 and j == 0:
                continue
            t = j / per_segment
            t2 = t * t
            t3 = t2 * t
            result.append(tuple(
                0.5 * (
                    2.0 * p1[c]
                    + (-p0[c] + p2[c]) * t
                    + (2.0 * p0[c] - 5.0 * p1[c] + 4.0 * p2[c] - p3[c]) * t2
                    + (-p0[c] + 3.0 * p1[c] - 3.0 * p2[c] + p3[c]) * t3
                )
                for c in (0, 1)
            ))
    return result


def spline_points(data: Spline) -> list[Point]:
    """Dense polyline used for display, hit-testing, bounds and intersections.

    Degree-1 splines are their control polygon. For closed splines the first
    point is repeated at the end so consecutive pairs cover the whole curve.
    """
    cps = list(data.control_points)
    if data.degree <= 1:
        pts = cps
    else:
        pts = evaluate_catmull_rom(cps, data.closed, max(60, len(cps) * 20))
    if data.closed and len(pts) > 2 and distance(pts[0], pts[-1]) > POINT_TOL:
        pts = [*pts, pts[0]]
    return pts


def move_spline(data: Spline, dx: float, dy: float) -> Spline:
    return replace(data, control_points=tuple((x + dx, y + dy) for x, y in data.control_points))


def spline_endpoints(data: Spline) -> list[Point]:
    if not data.control_points or data.closed:
        return []
    return [data.control_points[0], data.control_points[-1]]


def spline_to_polyline(entity: CADEntity, method: str = "catmull-rom", segments: int = 100) -> CADEntity | None:
    """Flatten a spline entity into a standalone polyline entity with a new id."""
    data = entity.data
    if not isinstance(data, Spline):
        return None
    if method == "bspline":
        pts = evaluate_bspline(data.control_points, data.degree, data.closed, segments)
    elif method == "catmull-rom":
        pts = evaluate_catmull_rom(data.control_points, data.closed, segments)
    else:
        raise ValueError(f"Unknown spline evaluation method: {method}")
    if data.closed and len(pts) > 2 and distance(pts[0], pts[-1]) <= POINT_TOL:
        pts = pts[:-1]
    if len(pts) < 2:
        return None
    return entity.derive(Polyline(points=tuple(pts), closed=data.closed))
