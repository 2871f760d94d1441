from __future__ import annotations

import logging

from . import geometry as g
from .geometry import point_in_polygon
from .intersect import rectangle_corners
from .models import CADEntity, Circle, Ellipse, Hatch, Point, Polyline, Rectangle, make_entity

logger = logging.getLogger(__name__)

BOUNDARY_SAMPLES = 64


def entity_boundary(entity: CADEntity) -> list[Point] | None:
    """Closed boundary polygon of ``entity``, or ``None`` for open shapes."""
    d = entity.data
    if isinstance(d, Rectangle):
        return rectangle_corners(d)
    if isinstance(d, Polyline) and d.closed and len(d.points) >= 3:
        return list(d.points)
    if isinstance(d, Circle):
        return g.ellipse_points(d.center, d.radius, d.radius, 0.0, BOUNDARY_SAMPLES)
    if isinstance(d, Ellipse):
        return g.ellipse_points(d.center, d.radius_x, d.radius_y, d.rotation, BOUNDARY_SAMPLES)
    return None


def create_hatch(
    boundary_entity: CADEntity,
    pattern: str = "lines",
    scale: float = 1.0,
    angle: float = 0.0,
    fill_color: str | None = None,
    opacity: float = 0.4,
) -> CADEntity | None:
    """Hatch filling ``boundary_entity`` on its layer, or ``None`` when it is not closed."""
    boundary = entity_boundary(boundary_entity)
    if boundary is None:
        logger.debug("%s %s has no closed boundary", boundary_entity.type, boundary_entity.id)
        return None
    color = fill_color or boundary_entity.color
    data = Hatch(
        boundary=tuple(boundary), pattern=pattern, scale=scale, angle=angle, fill_color=color, opacity=opacity,
    )
    return make_entity(data, layer_id=boundary_entity.layer_id, color=color)


__all__ = ["BOUNDARY_SAMPLES", "create_hatch", "entity_boundary", "point_in_polygon"]
