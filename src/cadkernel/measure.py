"""Read-only measurements: distance, area, angle and per-entity length/area."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal, Sequence

from . import geometry as g
from .models import (
    Arc, BlockRef, CADEntity, Circle, Dimension, Ellipse, Hatch, Line, Point, Polyline, Ray,
    Rectangle, Spline, Text, XLine,
)
from .spline import spline_points

MeasureKind = Literal["distance", "area", "angle"]


@dataclass(frozen=True, slots=True)
class Measurement:
    kind: MeasureKind
    value: float
    unit: str
    label: str
    points: tuple[Point, ...]


def measure_distance(p1: Point, p2: Point) -> Measurement:
    dx, dy = p2[0] - p1[0], p2[1] - p1[1]
    dist = math.hypot(dx, dy)
    angle = math.degrees(math.atan2(dy, dx))
    label = f"Distance: {dist:.4f}\nΔX: {dx:.4f}  ΔY: {dy:.4f}\nAngle: {angle:.2f}°"
    return Measurement("distance", dist, "units", label, (p1, p2))


def measure_area(points: Sequence[Point]) -> Measurement:
    """Shoelace area and perimeter of the polygon through ``points``."""
    pts = tuple(points)
    if len(pts) < 3:
        return Measurement("area", 0.0, "sq units", "Need at least 3 points", pts)
    area = g.polygon_area(pts)
    perimeter = g.polyline_length(pts, closed=True)
    label = f"Area: {area:.4f} sq units\nPerimeter: {perimeter:.4f} units\nVertices: {len(pts)}"
    return Measurement("area", area, "sq units", label, pts)


def measure_angle(p1: Point, vertex: Point, p3: Point) -> Measurement:
    """Counter-clockwise angle from ``vertex→p1`` to ``vertex→p3`` in degrees."""
    a1 = g.angle_of(vertex, p1)
    a2 = g.angle_of(vertex, p3)
    angle = math.degrees(a2 - a1) % 360.0
    supplement = 360.0 - angle
    label = f"Angle: {angle:.2f}°\nSupplement: {supplement:.2f}°"
    return Measurement("angle", angle, "°", label, (p1, vertex, p3))


def _ellipse_perimeter(a: float, b: float) -> float:
    # Ramanujan's second approximation
    h = ((a - b) / (a + b)) ** 2
    return math.pi * (a + b) * (1.0 + 3.0 * h / (10.0 + math.sqrt(4.0 - 3.0 * h)))


def entity_length(entity: CADEntity) -> float | None:
    """Curve length, or ``None`` for unbounded and non-curve variants."""
    d = entity.data
    if isinstance(d, (Line, Dimension)):
        return g.distance(d.start, d.end)
    if isinstance(d, Circle):
        return g.TAU * d.radius
    if isinstance(d, Arc):
        return d.radius * g.arc_sweep(d.start_angle, d.end_angle)
    if isinstance(d, Rectangle):
        return 2.0 * (d.width + d.height)
    if isinstance(d, Polyline):
        return g.polyline_length(d.points, d.closed)
    if isinstance(d, Ellipse):
        return _ellipse_perimeter(d.radius_x, d.radius_y)
    if isinstance(d, Spline):
        return g.polyline_length(spline_points(d))
    if isinstance(d, Hatch):
        return g.polyline_length(d.boundary, closed=True)
    if isinstance(d, (Text, XLine, Ray, BlockRef)):
        return None
    raise TypeError(f"Unsupported entity data: {type(d).__name__}")


def entity_area(entity: CADEntity) -> float | None:
    """Enclosed area of closed variants, ``None`` otherwise."""
    d = entity.data
    if isinstance(d, Circle):
        return math.pi * d.radius ** 2
    if isinstance(d, Ellipse):
        return math.pi * d.radius_x * d.radius_y
    if isinstance(d, Rectangle):
        return d.width * d.height
    if isinstance(d, Polyline):
        return g.polygon_area(d.points) if d.closed and len(d.points) >= 3 else None
    if isinstance(d, Hatch):
        return g.polygon_area(d.boundary)
    if isinstance(d, Spline):
        return g.polygon_area(spline_points(d)) if d.closed else None
    if isinstance(d, (Line, Arc, Text, Dimension, XLine, Ray, BlockRef)):
        return None
    raise TypeError(f"Unsupported entity data: {type(d).__name__}")
