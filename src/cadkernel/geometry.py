from __future__ import annotations

import math
from typing import Iterable, Sequence

from .models import Point

EPS = 1e-10
RAY_EPS = 1e-6
ANGLE_TOL = 0.01
POINT_TOL = 1e-3
MIN_SEGMENT = 0.01
TRIM_PARAM_MARGIN = 0.001
MIN_OFFSET_SIZE = 0.1
FILLET_TOL = 0.5
POLAR_TOL_DEG = 10.0

TAU = 2.0 * math.pi

ParamRange = tuple[float, float]

SEGMENT: ParamRange = (0.0, 1.0)
RAY: ParamRange = (0.0, math.inf)
UNBOUNDED: ParamRange = (-math.inf, math.inf)


def distance(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def midpoint(a: Point, b: Point) -> Point:
    return ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)


def angle_of(origin: Point, target: Point) -> float:
    """Direction from ``origin`` to ``target`` in radians, CCW from +X."""
    return math.atan2(target[1] - origin[1], target[0] - origin[0])


def normalize_angle(angle: float) -> float:
    """Map ``angle`` into ``[0, 2π)``."""
    result = math.fmod(angle, TAU)
    if result < 0.0:
        result += TAU
    if result >= TAU:
        result -= TAU
    return result


def arc_sweep(start: float, end: float) -> float:
    """CCW sweep from ``start`` to ``end`` in ``(0, 2π]``."""
    sweep = normalize_angle(end) - normalize_angle(start)
    if sweep <= 0.0:
        sweep += TAU
    return sweep


def angle_in_arc(angle: float, start: float, end: float, tol: float = ANGLE_TOL) -> bool:
    """Return True when ``angle`` lies on the CCW sweep from ``start`` to ``end``.

    All three angles are normalized first, so negative or unwrapped values
    behave like their equivalents in ``[0, 2π)``.
    """
    a = normalize_angle(angle)
    s = normalize_angle(start)
    e = normalize_angle(end)
    if s <= e:
        return s - tol <= a <= e + tol or a >= TAU - tol + s or a <= e + tol - TAU
    return a >= s - tol or a <= e + tol


def point_on_circle(center: Point, radius: float, angle: float) -> Point:
    return (center[0] + radius * math.cos(angle), center[1] + radius * math.sin(angle))


def unit_vector(dx: float, dy: float) -> Point | None:
    length = math.hypot(dx, dy)
    if length < EPS:
        return None
    return (dx / length, dy / length)


def segment_param(p: Point, a: Point, b: Point) -> float:
    """Unclamped parameter of the projection of ``p`` onto line ``ab``."""
    dx, dy = b[0] - a[0], b[1] - a[1]
    len_sq = dx * dx + dy * dy
    if len_sq < EPS:
        return 0.0
    return ((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / len_sq


def lerp(a: Point, b: Point, t: float) -> Point:
    return (a[0] + t * (b[0] - a[0]), a[1] + t * (b[1] - a[1]))


def project_point_to_segment(p: Point, a: Point, b: Point) -> tuple[Point, float]:
    t = max(0.0, min(1.0, segment_param(p, a, b)))
    return lerp(a, b, t), t


def closest_point_on_line(p: Point, a: Point, b: Point) -> Point:
    return lerp(a, b, segment_param(p, a, b))


def point_segment_distance(p: Point, a: Point, b: Point) -> float:
    proj, _ = project_point_to_segment(p, a, b)
    return distance(p, proj)


def point_line_distance(p: Point, a: Point, b: Point) -> float:
    dx, dy = b[0] - a[0], b[1] - a[1]
    length = math.hypot(dx, dy)
    if length < EPS:
        return distance(p, a)
    return abs((p[0] - a[0]) * dy - (p[1] - a[1]) * dx) / length


def point_ray_distance(p: Point, base: Point, direction: Point) -> float:
    far = (base[0] + direction[0], base[1] + direction[1])
    if segment_param(p, base, far) < 0.0:
        return distance(p, base)
    return point_line_distance(p, base, far)


def _in_range(t: float, t_range: ParamRange, slack: float) -> bool:
    lo, hi = t_range
    return lo - slack <= t <= hi + slack


def linear_intersection(
    o1: Point,
    d1: Point,
    range1: ParamRange,
    o2: Point,
    d2: Point,
    range2: ParamRange,
) -> list[tuple[float, Point]]:
    """Intersect two parametric lines ``o + t·d`` restricted to parameter ranges.

    Returns ``[(t1, point)]`` or ``[]`` for parallel / out-of-range lines.
    """
    denom = d1[0] * d2[1] - d1[1] * d2[0]
    if abs(denom) < EPS:
        return []
    wx, wy = o2[0] - o1[0], o2[1] - o1[1]
    t = (wx * d2[1] - wy * d2[0]) / denom
    u = (wx * d1[1] - wy * d1[0]) / denom
    if not (_in_range(t, range1, EPS) and _in_range(u, range2, EPS)):
        return []
    return [(t, (o1[0] + t * d1[0], o1[1] + t * d1[1]))]


def line_line_intersection(a1: Point, a2: Point, b1: Point, b2: Point) -> list[Point]:
    """Intersection of two bounded segments (0 or 1 point)."""
    hits = linear_intersection(
        a1, (a2[0] - a1[0], a2[1] - a1[1]), SEGMENT,
        b1, (b2[0] - b1[0], b2[1] - b1[1]), SEGMENT,
    )
    return [p for _, p in hits]


def line_line_intersection_unbounded(a1: Point, a2: Point, b1: Point, b2: Point) -> Point | None:
    hits = linear_intersection(
        a1, (a2[0] - a1[0], a2[1] - a1[1]), UNBOUNDED,
        b1, (b2[0] - b1[0], b2[1] - b1[1]), UNBOUNDED,
    )
    return hits[0][1] if hits else None


def ray_segment_intersection(origin: Point, direction: Point, b1: Point, b2: Point) -> list[Point]:
    """Forward hits (``t > RAY_EPS``) of a ray against a bounded segment."""
    hits = linear_intersection(
        origin, direction, RAY, b1, (b2[0] - b1[0], b2[1] - b1[1]), SEGMENT,
    )
    return [p for t, p in hits if t > RAY_EPS]


def _quadratic_roots(a: float, b: float, c: float) -> list[float]:
    if abs(a) < EPS:
        return []
    disc = b * b - 4.0 * a * c
    if disc < 0.0:
        if disc < -EPS * max(1.0, b * b):
            return []
        disc = 0.0
    root = math.sqrt(disc)
    if root < EPS:
        return [-b / (2.0 * a)]
    return [(-b - root) / (2.0 * a), (-b + root) / (2.0 * a)]


def linear_circle_params(origin: Point, direction: Point, center: Point, radius: float) -> list[float]:
    fx, fy = origin[0] - center[0], origin[1] - center[1]
    a = direction[0] * direction[0] + direction[1] * direction[1]
    b = 2.0 * (fx * direction[0] + fy * direction[1])
    c = fx * fx + fy * fy - radius * radius
    return _quadratic_roots(a, b, c)


def line_circle_intersection(
    a: Point, b: Point, center: Point, radius: float, t_range: ParamRange = SEGMENT,
) -> list[Point]:
    """Intersections of line ``ab`` (restricted to ``t_range``) with a circle."""
    direction = (b[0] - a[0], b[1] - a[1])
    return [
        lerp(a, b, t)
        for t in linear_circle_params(a, direction, center, radius)
        if _in_range(t, t_range, EPS)
    ]


def line_arc_intersection(
    a: Point,
    b: Point,
    center: Point,
    radius: float,
    start_angle: float,
    end_angle: float,
    t_range: ParamRange = SEGMENT,
) -> list[Point]:
    return [
        p
        for p in line_circle_intersection(a, b, center, radius, t_range)
        if angle_in_arc(angle_of(center, p), start_angle, end_angle)
    ]


def _to_ellipse_frame(p: Point, center: Point, rotation: float) -> Point:
    cos_r, sin_r = math.cos(-rotation), math.sin(-rotation)
    dx, dy = p[0] - center[0], p[1] - center[1]
    return (dx * cos_r - dy * sin_r, dx * sin_r + dy * cos_r)


def linear_ellipse_params(
    origin: Point, direction: Point, center: Point, rx: float, ry: float, rotation: float = 0.0,
) -> list[float]:
    # Parameters are invariant under the affine map to the unit circle.
    lo = _to_ellipse_frame(origin, center, rotation)
    cos_r, sin_r = math.cos(-rotation), math.sin(-rotation)
    ld = (direction[0] * cos_r - direction[1] * sin_r, direction[0] * sin_r + direction[1] * cos_r)
    uo = (lo[0] / rx, lo[1] / ry)
    ud = (ld[0] / rx, ld[1] / ry)
    return linear_circle_params(uo, ud, (0.0, 0.0), 1.0)


def line_ellipse_intersection(
    a: Point,
    b: Point,
    center: Point,
    rx: float,
    ry: float,
    rotation: float = 0.0,
    t_range: ParamRange = SEGMENT,
) -> list[Point]:
    direction = (b[0] - a[0], b[1] - a[1])
    return [
        lerp(a, b, t)
        for t in linear_ellipse_params(a, direction, center, rx, ry, rotation)
        if _in_range(t, t_range, EPS)
    ]


def circle_circle_intersection(c1: Point, r1: float, c2: Point, r2: float) -> list[Point]:
    """Radical-line construction; tangent circles yield a single point."""
    d = distance(c1, c2)
    if d < POINT_TOL or d > r1 + r2 + POINT_TOL or d < abs(r1 - r2) - POINT_TOL:
        return []
    a = (r1 * r1 - r2 * r2 + d * d) / (2.0 * d)
    h = math.sqrt(max(0.0, r1 * r1 - a * a))
    mx = c1[0] + a * (c2[0] - c1[0]) / d
    my = c1[1] + a * (c2[1] - c1[1]) / d
    if h < POINT_TOL:
        return [(mx, my)]
    px = h * (c2[1] - c1[1]) / d
    py = h * (c2[0] - c1[0]) / d
    return [(mx + px, my - py), (mx - px, my + py)]


def reflect_point(p: Point, axis_start: Point, axis_end: Point) -> Point:
    dx, dy = axis_end[0] - axis_start[0], axis_end[1] - axis_start[1]
    len_sq = dx * dx + dy * dy
    if len_sq < EPS:
        return p
    proj = closest_point_on_line(p, axis_start, axis_end)
    return (2.0 * proj[0] - p[0], 2.0 * proj[1] - p[1])


def reflect_vector(v: Point, axis_start: Point, axis_end: Point) -> Point:
    origin = reflect_point((0.0, 0.0), axis_start, axis_end)
    tip = reflect_point(v, axis_start, axis_end)
    return (tip[0] - origin[0], tip[1] - origin[1])


def rotate_point(p: Point, center: Point, angle: float) -> Point:
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    dx, dy = p[0] - center[0], p[1] - center[1]
    return (center[0] + dx * cos_a - dy * sin_a, center[1] + dx * sin_a + dy * cos_a)


def rotate_vector(v: Point, angle: float) -> Point:
    return rotate_point(v, (0.0, 0.0), angle)


def scale_point(p: Point, center: Point, factor: float) -> Point:
    return (center[0] + (p[0] - center[0]) * factor, center[1] + (p[1] - center[1]) * factor)


def translate_point(p: Point, dx: float, dy: float) -> Point:
    return (p[0] + dx, p[1] + dy)


def points_bounds(points: Iterable[Point]) -> tuple[float, float, float, float] | None:
    xs: list[float] = []
    ys: list[float] = []
    for x, y in points:
        xs.append(x)
        ys.append(y)
    if not xs:
        return None
    return (min(xs), min(ys), max(xs), max(ys))


def polyline_length(points: Sequence[Point], closed: bool = False) -> float:
    if len(points) < 2:
        return 0.0
    total = sum(distance(points[i - 1], points[i]) for i in range(1, len(points)))
    if closed and len(points) > 2:
        total += distance(points[-1], points[0])
    return total


def polygon_area(points: Sequence[Point]) -> float:
    """Absolute shoelace area of a closed polygon."""
    n = len(points)
    if n < 3:
        return 0.0
    acc = 0.0
    for i in range(n):
        j = (i + 1) % n
        acc += points[i][0] * points[j][1] - points[j][0] * points[i][1]
    return abs(acc) / 2.0


def point_in_polygon(p: Point, polygon: Sequence[Point]) -> bool:
    """Even-odd ray casting test."""
    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > p[1]) != (yj > p[1]) and p[0] < (xj - xi) * (p[1] - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def ellipse_points(center: Point, rx: float, ry: float, rotation: float = 0.0, samples: int = 64) -> list[Point]:
    """Closed sampling of an ellipse (first point not repeated)."""
    cos_r, sin_r = math.cos(rotation), math.sin(rotation)
    out: list[Point] = []
    for i in range(samples):
        a = TAU * i / samples
        x, y = rx * math.cos(a), ry * math.sin(a)
        out.append((center[0] + x * cos_r - y * sin_r, center[1] + x * sin_r + y * cos_r))
    return out


def dedupe_points(points: Iterable[Point], tol: float = POINT_TOL) -> list[Point]:
    out: list[Point] = []
    for p in points:
        if all(distance(p, q) > tol for q in out):
            out.append(p)
    return out


def almost_equal_points(a: Point, b: Point, eps: float = 1e-9) -> bool:
    return math.isclose(a[0], b[0], abs_tol=eps) and math.isclose(a[1], b[1], abs_tol=eps)
