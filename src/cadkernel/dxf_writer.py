from __future__ import annotations

import logging
import math
import re
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable

import ezdxf
from ezdxf import colors, units
from ezdxf.layouts import BaseLayout

from . import geometry as g
from .intersect import rectangle_corners
from .models import (
    Arc, BlockDefinition, BlockRef, CADEntity, Circle, Dimension, EntityData, Ellipse, Hatch, Layer,
    Line, Polyline, Ray, Rectangle, Spline, Text, XLine,
)
from .transform import mirror_entity_data

logger = logging.getLogger(__name__)

_DXF_UNIT_MAP = {
    "mm": units.MM,
    "inch": units.IN,
    "px": 0,
}

_LINETYPES = {
    "solid": "CONTINUOUS",
    "dashed": "DASHED",
    "dotted": "DOT",
    "dashdot": "DASHDOT",
}

_HATCH_PATTERNS = {
    "lines": "ANSI31",
    "cross": "ANSI37",
    "dots": "DOTS",
    "brick": "BRICK",
    "honeycomb": "HONEY",
}

_DEFAULT_COLOR = "#ffffff"
_INVALID_NAME_CHARS = re.compile(r'[<>/\\":;?*|=`]')


def _rgb(color: str) -> tuple[int, int, int] | None:
    value = color.lstrip("#")
    if len(value) == 3:
        value = "".join(c * 2 for c in value)
    if len(value) != 6:
        return None
    try:
        return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))
    except ValueError:
        return None


def _flip_y(data: EntityData) -> EntityData:
    """Editor space is y-down, DXF is y-up: mirror across the x axis."""
    flipped = mirror_entity_data(data, (0.0, 0.0), (1.0, 0.0))
    if isinstance(flipped, Text):
        return replace(flipped, rotation=-flipped.rotation)
    return flipped


def write_dxf(
    path: str | Path,
    entities: Iterable[CADEntity],
    *,
    blocks: Iterable[BlockDefinition] = (),
    layers: Iterable[Layer] = (),
    unit: str = "mm",
    flip_y: bool = True,
) -> int:
    """Write ``entities`` to an R2018 DXF file; returns the number written.

    Invisible entities are left out, as are variants DXF cannot express.
    """
    doc = ezdxf.new("R2018", setup=True)
    doc.units = _DXF_UNIT_MAP.get(unit.lower(), 0)
    msp = doc.modelspace()

    layer_names = _register_layers(doc, layers)
    block_names = _register_blocks(doc, blocks, layer_names)

    written = 0
    for entity in entities:
        if not entity.visible:
            continue
        if _add_entity(doc, msp, entity, layer_names, block_names, flip_y):
            written += 1

    doc.saveas(str(path))
    logger.debug("Wrote %d entities to %s", written, path)
    return written


def _register_layers(doc: ezdxf.document.Drawing, layers: Iterable[Layer]) -> dict[str, str]:
    names: dict[str, str] = {}
    for layer in layers:
        name = _INVALID_NAME_CHARS.sub("_", layer.name) or layer.id
        names[layer.id] = name
        dxf_layer = doc.layers.get(name) if name in doc.layers else doc.layers.add(name)
        rgb = _rgb(layer.color)
        if rgb is not None:
            dxf_layer.rgb = rgb
        if not layer.visible:
            dxf_layer.off()
        if layer.locked:
            dxf_layer.lock()
    return names


def _ensure_layer(doc: ezdxf.document.Drawing, layer_name: str) -> None:
    if layer_name in doc.layers:
        return
    doc.layers.new(name=layer_name)


def _register_blocks(
    doc: ezdxf.document.Drawing, blocks: Iterable[BlockDefinition], layer_names: dict[str, str],
) -> dict[str, str]:
    blocks = list(blocks)
    names: dict[str, str] = {}
    for block in blocks:
        base = _INVALID_NAME_CHARS.sub("_", block.name).strip() or block.id
        name, n = base, 1
        while name in doc.blocks:
            n += 1
            name = f"{base}_{n}"
        names[block.id] = name
        doc.blocks.new(name=name, base_point=(block.base_point[0], block.base_point[1], 0.0))

    # Children are written in block-local space; the INSERT carries the flip.
    for block in blocks:
        layout = doc.blocks.get(names[block.id])
        for child in block.entities:
            if child.visible:
                _add_entity(doc, layout, child, layer_names, names, flip_y=False)
    return names


def _attribs(doc: ezdxf.document.Drawing, entity: CADEntity, layer_names: dict[str, str]) -> dict[str, Any]:
    layer = layer_names.get(entity.layer_id, entity.layer_id)
    _ensure_layer(doc, layer)
    attribs: dict[str, Any] = {"layer": layer, "linetype": _LINETYPES.get(entity.line_style, "CONTINUOUS")}
    rgb = _rgb(entity.color)
    if rgb is not None and entity.color.lower() != _DEFAULT_COLOR:
        attribs["true_color"] = colors.rgb2int(rgb)
    return attribs


def _add_entity(
    doc: ezdxf.document.Drawing,
    layout: BaseLayout,
    entity: CADEntity,
    layer_names: dict[str, str],
    block_names: dict[str, str],
    flip_y: bool,
) -> bool:
    d = _flip_y(entity.data) if flip_y else entity.data
    attribs = _attribs(doc, entity, layer_names)

    if isinstance(d, Line):
        layout.add_line((d.start[0], d.start[1], 0.0), (d.end[0], d.end[1], 0.0), dxfattribs=attribs)
        return True

    if isinstance(d, Circle):
        layout.add_circle((d.center[0], d.center[1], 0.0), d.radius, dxfattribs=attribs)
        return True

    if isinstance(d, Arc):
        layout.add_arc(
            center=(d.center[0], d.center[1], 0.0),
            radius=d.radius,
            start_angle=math.degrees(g.normalize_angle(d.start_angle)),
            end_angle=math.degrees(g.normalize_angle(d.end_angle)),
            dxfattribs=attribs,
        )
        return True

    if isinstance(d, Rectangle):
        layout.add_lwpolyline(rectangle_corners(d), close=True, dxfattribs=attribs)
        return True

    if isinstance(d, Polyline):
        layout.add_lwpolyline(d.points, close=d.closed, dxfattribs=attribs)
        return True

    if isinstance(d, Ellipse):
        if d.radius_x >= d.radius_y:
            major = (d.radius_x * math.cos(d.rotation), d.radius_x * math.sin(d.rotation), 0.0)
            ratio = d.radius_y / d.radius_x
        else:
            major = (-d.radius_y * math.sin(d.rotation), d.radius_y * math.cos(d.rotation), 0.0)
            ratio = d.radius_x / d.radius_y
        layout.add_ellipse(
            center=(d.center[0], d.center[1], 0.0),
            major_axis=major,
            ratio=min(1.0, max(1e-6, ratio)),
            dxfattribs=attribs,
        )
        return True

    if isinstance(d, Text):
        layout.add_text(
            d.content,
            dxfattribs={
                **attribs,
                "insert": (d.position[0], d.position[1], 0.0),
                "height": max(d.font_size, 1e-6),
                "rotation": math.degrees(d.rotation),
            },
        )
        return True

    if isinstance(d, Dimension):
        dim = layout.add_aligned_dim(
            p1=(d.start[0], d.start[1]),
            p2=(d.end[0], d.end[1]),
            distance=d.offset,
            dxfattribs=attribs,
        )
        dim.render()
        return True

    if isinstance(d, Spline):
        fit_points = [(x, y, 0.0) for x, y in d.control_points]
        if d.closed:
            fit_points.append(fit_points[0])
        layout.add_spline(fit_points, degree=max(1, min(d.degree, 3)), dxfattribs=attribs)
        return True

    if isinstance(d, XLine):
        u = g.unit_vector(*d.direction)
        layout.add_xline((d.base_point[0], d.base_point[1], 0.0), (u[0], u[1], 0.0), dxfattribs=attribs)
        return True

    if isinstance(d, Ray):
        u = g.unit_vector(*d.direction)
        layout.add_ray((d.base_point[0], d.base_point[1], 0.0), (u[0], u[1], 0.0), dxfattribs=attribs)
        return True

    if isinstance(d, Hatch):
        hatch = layout.add_hatch(dxfattribs=attribs)
        if d.pattern == "solid":
            hatch.set_solid_fill(rgb=_rgb(d.fill_color))
        else:
            name = _HATCH_PATTERNS.get(d.pattern, "ANSI31")
            hatch.set_pattern_fill(name, scale=d.scale, angle=math.degrees(d.angle))
        hatch.paths.add_polyline_path(d.boundary, is_closed=True)
        return True

    if isinstance(d, BlockRef):
        name = block_names.get(d.block_id)
        if name is None:
            logger.warning("Skipping block reference %s: block %s is not defined", entity.id, d.block_id)
            return False
        layout.add_blockref(
            name,
            (d.insert_point[0], d.insert_point[1], 0.0),
            dxfattribs={
                **attribs,
                "xscale": d.scale_x,
                "yscale": d.scale_y,
                "rotation": math.degrees(d.rotation),
            },
        )
        return True

    logger.warning("Skipping %s entity %s: no DXF mapping", type(d).__name__, entity.id)
    return False
