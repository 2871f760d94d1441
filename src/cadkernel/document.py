"""Drawing container and its JSON form.

Entity data is stored with camelCase keys and ``{"x", "y"}`` points, the
layout the browser editor saves. Hatch angles are radians.
"""

from __future__ import annotations

import json
import logging
from dataclasses import MISSING, dataclass, fields, replace
from pathlib import Path
from typing import Any, Iterable, Mapping

from .blocks import explode_block_ref
from .exceptions import CadKernelError
from .models import (
    DEFAULT_LAYERS, ENTITY_TYPES, BlockDefinition, BlockRef, CADEntity, EntityData, Layer, ModifyResult,
    Point, make_entity,
)

logger = logging.getLogger(__name__)

_POINT_FIELDS = {"start", "end", "center", "top_left", "position", "base_point", "insert_point", "direction"}
_POINT_LIST_FIELDS = {"points", "boundary", "control_points"}
_KEY_OVERRIDES = {
    ("hatch", "scale"): "patternScale",
    ("hatch", "angle"): "patternAngle",
    ("hatch", "opacity"): "fillOpacity",
}


@dataclass(frozen=True, slots=True)
class Drawing:
    entities: tuple[CADEntity, ...] = ()
    blocks: tuple[BlockDefinition, ...] = ()
    layers: tuple[Layer, ...] = DEFAULT_LAYERS

    def __post_init__(self) -> None:
        object.__setattr__(self, "entities", tuple(self.entities))
        object.__setattr__(self, "blocks", tuple(self.blocks))
        object.__setattr__(self, "layers", tuple(self.layers))

    @property
    def blocks_by_id(self) -> dict[str, BlockDefinition]:
        return {b.id: b for b in self.blocks}

    def entity(self, entity_id: str) -> CADEntity | None:
        return next((e for e in self.entities if e.id == entity_id), None)

    def with_changes(
        self, remove_ids: Iterable[str] = (), add_entities: Iterable[CADEntity] = (),
    ) -> Drawing:
        removed = set(remove_ids)
        kept = tuple(e for e in self.entities if e.id not in removed)
        return replace(self, entities=kept + tuple(add_entities))

    def apply(self, result: ModifyResult | None) -> Drawing:
        """New drawing with ``result`` applied; ``None`` means no change."""
        if result is None:
            return self
        return self.with_changes(result.remove_ids, result.add_entities)

    def replace_entity(self, entity_id: str, data: EntityData) -> Drawing:
        return replace(
            self,
            entities=tuple(replace(e, data=data) if e.id == entity_id else e for e in self.entities),
        )


def explode_all(drawing: Drawing) -> Drawing:
    """Replace every block reference by its standalone child entities."""
    blocks = drawing.blocks_by_id
    out: list[CADEntity] = []
    for e in drawing.entities:
        if not isinstance(e.data, BlockRef):
            out.append(e)
            continue
        block = blocks.get(e.data.block_id)
        if block is None:
            logger.warning("Block %s referenced by %s is not defined; keeping the reference", e.data.block_id, e.id)
            out.append(e)
            continue
        out.extend(explode_block_ref(block, e))
    return replace(drawing, entities=tuple(out))


def _camel(name: str) -> str:
    first, *rest = name.split("_")
    return first + "".join(part.title() for part in rest)


def _data_key(kind: str, name: str) -> str:
    return _KEY_OVERRIDES.get((kind, name), _camel(name))


def _point_to_dict(p: Point) -> dict[str, float]:
    return {"x": p[0], "y": p[1]}


def _point_from_json(value: Any) -> Point:
    if isinstance(value, Mapping):
        return (float(value["x"]), float(value["y"]))
    x, y = value
    return (float(x), float(y))


def data_to_dict(data: EntityData) -> dict[str, Any]:
    out: dict[str, Any] = {"type": data.kind}
    for f in fields(data):
        value = getattr(data, f.name)
        if f.name in _POINT_FIELDS:
            value = _point_to_dict(value)
        elif f.name in _POINT_LIST_FIELDS:
            value = [_point_to_dict(p) for p in value]
        out[_data_key(data.kind, f.name)] = value
    return out


def data_from_dict(raw: Mapping[str, Any]) -> EntityData:
    """Build entity data from its JSON form; raises ``KeyError`` for unknown types or missing fields."""
    kind = raw["type"]
    cls = ENTITY_TYPES[kind]
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        key = _data_key(kind, f.name)
        if key not in raw:
            if f.default is MISSING and f.default_factory is MISSING:
                raise KeyError(key)
            continue
        value = raw[key]
        if f.name in _POINT_FIELDS:
            value = _point_from_json(value)
        elif f.name in _POINT_LIST_FIELDS:
            value = tuple(_point_from_json(p) for p in value)
        kwargs[f.name] = value
    return cls(**kwargs)


def entity_to_dict(entity: CADEntity) -> dict[str, Any]:
    return {
        "id": entity.id,
        "type": entity.type,
        "data": data_to_dict(entity.data),
        "layerId": entity.layer_id,
        "color": entity.color,
        "lineWidth": entity.line_width,
        "lineStyle": entity.line_style,
        "visible": entity.visible,
        "locked": entity.locked,
    }


def entity_from_dict(raw: Mapping[str, Any]) -> CADEntity:
    """Validated entity; raises ``KeyError`` or ``ValueError`` for bad input."""
    return make_entity(
        data_from_dict(raw["data"]),
        entity_id=raw.get("id"),
        layer_id=raw.get("layerId", "layer-0"),
        color=raw.get("color", "#ffffff"),
        line_width=float(raw.get("lineWidth", 1.0)),
        line_style=raw.get("lineStyle", "solid"),
        visible=bool(raw.get("visible", True)),
        locked=bool(raw.get("locked", False)),
    )


def _entities_from_json(items: Iterable[Mapping[str, Any]]) -> list[CADEntity]:
    out: list[CADEntity] = []
    for raw in items:
        try:
            out.append(entity_from_dict(raw))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping entity %s: %s", raw.get("id", "<no id>"), exc)
            if isinstance(exc, CadKernelError):
                logger.debug("Rejected entity data: %s", exc.to_dict())
    return out


def block_to_dict(block: BlockDefinition) -> dict[str, Any]:
    return {
        "id": block.id,
        "name": block.name,
        "basePoint": _point_to_dict(block.base_point),
        "entities": [entity_to_dict(e) for e in block.entities],
    }


def block_from_dict(raw: Mapping[str, Any]) -> BlockDefinition:
    return BlockDefinition(
        id=raw["id"],
        name=raw.get("name", raw["id"]),
        entities=tuple(_entities_from_json(raw.get("entities", ()))),
        base_point=_point_from_json(raw.get("basePoint", {"x": 0.0, "y": 0.0})),
    )


def layer_to_dict(layer: Layer) -> dict[str, Any]:
    return {"id": layer.id, "name": layer.name, "color": layer.color, "visible": layer.visible, "locked": layer.locked}


def layer_from_dict(raw: Mapping[str, Any]) -> Layer:
    return Layer(
        id=raw["id"],
        name=raw.get("name", raw["id"]),
        color=raw.get("color", "#ffffff"),
        visible=bool(raw.get("visible", True)),
        locked=bool(raw.get("locked", False)),
    )


def drawing_to_dict(drawing: Drawing) -> dict[str, Any]:
    return {
        "entities": [entity_to_dict(e) for e in drawing.entities],
        "blocks": [block_to_dict(b) for b in drawing.blocks],
        "layers": [layer_to_dict(layer) for layer in drawing.layers],
    }


def drawing_from_dict(raw: Mapping[str, Any]) -> Drawing:
    """Drawing from its JSON form; entities that cannot be read are skipped."""
    blocks: list[BlockDefinition] = []
    for item in raw.get("blocks", ()):
        try:
            blocks.append(block_from_dict(item))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping block %s: %s", item.get("id", "<no id>"), exc)
    layers = tuple(layer_from_dict(item) for item in raw["layers"]) if raw.get("layers") else DEFAULT_LAYERS
    return Drawing(entities=tuple(_entities_from_json(raw.get("entities", ()))), blocks=tuple(blocks), layers=layers)


def load_drawing(path: str | Path) -> Drawing:
    return drawing_from_dict(json.loads(Path(path).read_text(encoding="utf-8")))


def save_drawing(drawing: Drawing, path: str | Path) -> None:
    Path(path).write_text(json.dumps(drawing_to_dict(drawing), indent=2), encoding="utf-8")
