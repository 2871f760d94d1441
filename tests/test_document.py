import json
import logging

import pytest

from cadkernel.document import (
    Drawing, data_from_dict, data_to_dict, drawing_from_dict, drawing_to_dict, entity_to_dict, explode_all,
    load_drawing, save_drawing,
)
from cadkernel.models import (
    DEFAULT_LAYERS, BlockRef, Circle, Hatch, Layer, Line, ModifyResult, Rectangle, make_entity,
)


def test_round_trip_through_file(tmp_path, every_variant, block) -> None:
    drawing = Drawing(entities=every_variant, blocks=[block])
    path = tmp_path / "drawing.json"
    save_drawing(drawing, path)
    loaded = load_drawing(path)
    assert loaded.entities == drawing.entities
    assert loaded.blocks == drawing.blocks
    assert loaded.layers == DEFAULT_LAYERS


def test_json_uses_camel_case_and_xy_points() -> None:
    raw = data_to_dict(Rectangle((1.0, 2.0), 3.0, 4.0))
    assert raw == {"type": "rectangle", "topLeft": {"x": 1.0, "y": 2.0}, "width": 3.0, "height": 4.0}
    hatch = data_to_dict(Hatch(((0, 0), (1, 0), (1, 1)), scale=2.0, angle=0.5))
    assert hatch["patternScale"] == 2.0
    assert hatch["patternAngle"] == 0.5
    assert hatch["fillColor"] == "#ffffff"
    assert hatch["fillOpacity"] == 0.4
    entity = entity_to_dict(make_entity(Line((0, 0), (1, 0)), line_style="dashed"))
    assert entity["layerId"] == "layer-0"
    assert entity["lineStyle"] == "dashed"
    assert entity["type"] == "line"


def test_data_from_dict_accepts_pair_points_and_defaults() -> None:
    data = data_from_dict({"type": "blockref", "blockId": "block-1", "insertPoint": [5, 6]})
    assert data == BlockRef("block-1", (5.0, 6.0))


def test_data_from_dict_rejects_bad_input() -> None:
    with pytest.raises(KeyError):
        data_from_dict({"type": "circle", "center": {"x": 0, "y": 0}})
    with pytest.raises(KeyError):
        data_from_dict({"type": "blob"})


def test_bad_entities_are_skipped(caplog) -> None:
    good = entity_to_dict(make_entity(Line((0, 0), (1, 0))))
    raw = {
        "entities": [
            good,
            {"id": "neg", "data": {"type": "circle", "center": {"x": 0, "y": 0}, "radius": -1}},
            {"id": "blob", "data": {"type": "blob"}},
        ],
    }
    with caplog.at_level(logging.WARNING):
        drawing = drawing_from_dict(raw)
    assert [e.id for e in drawing.entities] == [good["id"]]
    assert "Skipping entity neg" in caplog.text
    assert "Skipping entity blob" in caplog.text
    assert drawing.layers == DEFAULT_LAYERS


def test_rejected_entity_details_are_logged_at_debug(caplog) -> None:
    raw = {"entities": [{"id": "neg", "data": {"type": "circle", "center": {"x": 0, "y": 0}, "radius": -1}}]}
    with caplog.at_level(logging.DEBUG, logger="cadkernel.document"):
        drawing_from_dict(raw)
    assert "'error_code': 'VALIDATION_ERROR'" in caplog.text
    assert "'field': 'radius'" in caplog.text


def test_layers_are_read() -> None:
    raw = drawing_to_dict(Drawing(layers=[Layer("layer-x", "X", "#00ff00", visible=False, locked=True)]))
    assert json.loads(json.dumps(raw))["layers"][0]["locked"] is True
    assert drawing_from_dict(raw).layers == (Layer("layer-x", "X", "#00ff00", visible=False, locked=True),)


def test_apply_modify_result() -> None:
    a = make_entity(Line((0, 0), (1, 0)))
    b = make_entity(Circle((0, 0), 1.0))
    c = make_entity(Circle((5, 5), 2.0))
    drawing = Drawing(entities=[a, b])
    updated = drawing.apply(ModifyResult(remove_ids=(a.id,), add_entities=(c,)))
    assert [e.id for e in updated.entities] == [b.id, c.id]
    assert [e.id for e in drawing.entities] == [a.id, b.id]
    assert drawing.apply(None) is drawing


def test_replace_entity_keeps_id() -> None:
    a = make_entity(Line((0, 0), (1, 0)))
    drawing = Drawing(entities=[a]).replace_entity(a.id, Line((0, 0), (2, 0)))
    assert drawing.entity(a.id).data.end == (2, 0)
    assert drawing.entity("missing") is None


def test_explode_all(block, caplog) -> None:
    ref = make_entity(BlockRef(block.id, (10.0, 0.0)), color="#ff0000", layer_id="layer-annotations")
    orphan = make_entity(BlockRef("block-missing", (0.0, 0.0)))
    with caplog.at_level(logging.WARNING):
        exploded = explode_all(Drawing(entities=[ref, orphan], blocks=[block]))
    kinds = [e.type for e in exploded.entities]
    assert kinds == ["line", "circle", "blockref"]
    assert exploded.entities[0].color == "#ff0000"
    assert exploded.entities[0].layer_id == "layer-annotations"
    assert exploded.entities[0].data.start == (10.0, 0.0)
    assert "block-missing" in caplog.text
