import math

import ezdxf
from ezdxf import colors

from cadkernel.blocks import create_block_definition
from cadkernel.dxf_writer import write_dxf
from cadkernel.models import Arc, BlockRef, Hatch, Layer, Line, Text, make_entity


def _modelspace(path):
    return ezdxf.readfile(str(path)).modelspace()


def test_every_variant_is_written(tmp_path, every_variant, block) -> None:
    out = tmp_path / "all.dxf"
    count = write_dxf(out, every_variant, blocks=[block])
    assert count == len(every_variant)
    kinds = {e.dxftype() for e in _modelspace(out)}
    assert kinds == {
        "LINE", "CIRCLE", "ARC", "LWPOLYLINE", "ELLIPSE", "TEXT", "DIMENSION",
        "HATCH", "SPLINE", "XLINE", "RAY", "INSERT",
    }


def test_y_axis_is_flipped_by_default(tmp_path) -> None:
    entities = [make_entity(Line((0, 0), (10, 5)))]
    flipped, kept = tmp_path / "flip.dxf", tmp_path / "keep.dxf"
    write_dxf(flipped, entities)
    write_dxf(kept, entities, flip_y=False)
    assert abs(_modelspace(flipped).query("LINE")[0].dxf.end.y + 5.0) < 1e-9
    assert abs(_modelspace(kept).query("LINE")[0].dxf.end.y - 5.0) < 1e-9


def test_arc_angles_are_mirrored(tmp_path) -> None:
    out = tmp_path / "arc.dxf"
    write_dxf(out, [make_entity(Arc((0, 0), 5.0, 0.0, math.pi / 2.0))])
    arc = _modelspace(out).query("ARC")[0]
    assert abs(arc.dxf.start_angle - 270.0) < 1e-6
    assert abs(arc.dxf.end_angle % 360.0) < 1e-6
    assert abs(arc.dxf.radius - 5.0) < 1e-9


def test_text_rotation_is_negated(tmp_path) -> None:
    out = tmp_path / "text.dxf"
    write_dxf(out, [make_entity(Text((1, 2), "HELLO", 3.0, math.pi / 6.0))])
    text = _modelspace(out).query("TEXT")[0]
    assert text.dxf.text == "HELLO"
    assert abs(text.dxf.rotation + 30.0) < 1e-6
    assert abs(text.dxf.insert.y + 2.0) < 1e-9


def test_style_attributes(tmp_path) -> None:
    out = tmp_path / "style.dxf"
    red = make_entity(Line((0, 0), (1, 0)), color="#ff0000", line_style="dashed")
    white = make_entity(Line((0, 1), (1, 1)))
    write_dxf(out, [red, white])
    first, second = _modelspace(out).query("LINE")
    assert first.dxf.true_color == colors.rgb2int((255, 0, 0))
    assert first.dxf.linetype == "DASHED"
    assert not second.dxf.hasattr("true_color")


def test_invisible_entities_are_skipped(tmp_path) -> None:
    out = tmp_path / "hidden.dxf"
    entities = [make_entity(Line((0, 0), (1, 0))), make_entity(Line((0, 1), (1, 1)), visible=False)]
    assert write_dxf(out, entities) == 1
    assert len(_modelspace(out).query("LINE")) == 1


def test_layers_are_registered(tmp_path) -> None:
    out = tmp_path / "layers.dxf"
    layers = [Layer("layer-a", "Walls", "#00ff00"), Layer("layer-b", "Hidden", visible=False, locked=True)]
    write_dxf(out, [make_entity(Line((0, 0), (1, 0)), layer_id="layer-a")], layers=layers)
    doc = ezdxf.readfile(str(out))
    assert doc.modelspace().query("LINE")[0].dxf.layer == "Walls"
    assert doc.layers.get("Walls").rgb == (0, 255, 0)
    hidden = doc.layers.get("Hidden")
    assert hidden.is_off()
    assert hidden.is_locked()


def test_units(tmp_path) -> None:
    line = [make_entity(Line((0, 0), (1, 0)))]
    write_dxf(tmp_path / "mm.dxf", line)
    write_dxf(tmp_path / "in.dxf", line, unit="inch")
    assert ezdxf.readfile(str(tmp_path / "mm.dxf")).units == 4
    assert ezdxf.readfile(str(tmp_path / "in.dxf")).units == 1


def test_blocks_are_defined_once_and_inserted_flipped(tmp_path, block) -> None:
    twin = create_block_definition("bolt", block.entities, base_point=(0.0, 0.0))
    refs = [
        make_entity(BlockRef(block.id, (10.0, 20.0), 2.0, 2.0, math.pi / 2.0)),
        make_entity(BlockRef(twin.id, (0.0, 0.0))),
    ]
    out = tmp_path / "blocks.dxf"
    assert write_dxf(out, refs, blocks=[block, twin]) == 2
    doc = ezdxf.readfile(str(out))
    assert "bolt" in doc.blocks
    assert "bolt_2" in doc.blocks
    assert len(doc.blocks.get("bolt").query("LINE")) == 1
    first, second = doc.modelspace().query("INSERT")
    assert first.dxf.name == "bolt"
    assert second.dxf.name == "bolt_2"
    assert abs(first.dxf.insert.y + 20.0) < 1e-9
    assert abs(first.dxf.yscale + 2.0) < 1e-9
    assert abs(first.dxf.rotation % 360.0 - 270.0) < 1e-6


def test_reference_to_missing_block_is_skipped(tmp_path) -> None:
    out = tmp_path / "missing.dxf"
    assert write_dxf(out, [make_entity(BlockRef("block-nowhere", (0.0, 0.0)))]) == 0
    assert len(_modelspace(out).query("INSERT")) == 0


def test_hatch_patterns_map_to_distinct_dxf_patterns(tmp_path) -> None:
    boundary = ((0.0, 0.0), (10.0, 0.0), (10.0, 10.0))
    patterns = ["solid", "lines", "cross", "dots", "brick", "honeycomb"]
    out = tmp_path / "hatch.dxf"
    write_dxf(out, [make_entity(Hatch(boundary, pattern=p)) for p in patterns])
    names = [h.dxf.pattern_name for h in _modelspace(out).query("HATCH")]
    assert names == ["SOLID", "ANSI31", "ANSI37", "DOTS", "BRICK", "HONEY"]
