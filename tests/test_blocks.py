import math

from cadkernel import geometry as g
from cadkernel.blocks import (
    block_ref_entities, calculate_base_point, create_block_definition, explode_block_ref, instance_data,
    transform_point,
)
from cadkernel.models import Arc, BlockRef, Ellipse, Line, Text, make_entity
from cadkernel.query import hit_test


def _close(a: float, b: float) -> bool:
    return abs(a - b) < 1e-9


def test_transform_point() -> None:
    p = transform_point((3.0, 1.0), (1.0, 1.0), (10.0, 10.0), 2.0, 2.0, math.pi / 2.0)
    assert g.almost_equal_points(p, (10.0, 14.0))


def test_calculate_base_point() -> None:
    entities = [make_entity(Line((0, 0), (4, 0))), make_entity(Line((0, 4), (4, 4)))]
    assert calculate_base_point(entities) == (2.0, 2.0)
    assert calculate_base_point([]) == (0.0, 0.0)


def test_rotated_reference_turns_ellipse_and_text() -> None:
    ref = BlockRef("block-x", (0.0, 0.0), 1.0, 1.0, 0.3)
    ellipse = instance_data(Ellipse((0, 0), 4.0, 1.0, 0.2), (0.0, 0.0), ref)
    text = instance_data(Text((0, 0), "A", 2.0, 0.2), (0.0, 0.0), ref)
    assert _close(ellipse.rotation, 0.5)
    assert _close(text.rotation, 0.5)


def test_mirrored_reference_reflects_ellipse_axes() -> None:
    child = Ellipse((0.0, 0.0), 4.0, 1.0, math.pi / 6.0)
    ref = BlockRef("block-x", (0.0, 0.0), -1.0, 1.0, 0.0)
    placed = instance_data(child, (0.0, 0.0), ref)
    assert _close(placed.rotation, 5.0 * math.pi / 6.0)
    tip = transform_point(
        (4.0 * math.cos(math.pi / 6.0), 4.0 * math.sin(math.pi / 6.0)), (0.0, 0.0), (0.0, 0.0), -1.0, 1.0, 0.0,
    )
    assert hit_test(make_entity(placed), tip, 0.05)


def test_mirrored_reference_reflects_text_and_arc() -> None:
    ref = BlockRef("block-x", (0.0, 0.0), -1.0, 1.0, 0.0)
    text = instance_data(Text((1, 0), "A", 2.0, math.pi / 6.0), (0.0, 0.0), ref)
    assert g.almost_equal_points(text.position, (-1.0, 0.0))
    assert _close(text.rotation, 5.0 * math.pi / 6.0)
    arc = instance_data(Arc((0, 0), 2.0, 0.0, math.pi / 2.0), (0.0, 0.0), ref)
    assert _close(arc.start_angle, math.pi / 2.0)
    assert _close(arc.end_angle, math.pi)


def test_block_ref_entities_are_placed(block) -> None:
    ref = BlockRef(block.id, (10.0, 0.0), 2.0, 2.0, 0.0)
    line, circle = block_ref_entities(block, ref)
    assert g.almost_equal_points(line.data.end, (18.0, 0.0))
    assert g.almost_equal_points(circle.data.center, (14.0, 4.0))
    assert _close(circle.data.radius, 2.0)


def test_explode_takes_reference_style(block) -> None:
    ref = make_entity(BlockRef(block.id, (10.0, 0.0)), color="#ff0000", layer_id="layer-annotations")
    parts = explode_block_ref(block, ref)
    assert [p.type for p in parts] == ["line", "circle"]
    assert all(p.color == "#ff0000" and p.layer_id == "layer-annotations" for p in parts)
    assert {p.id for p in parts}.isdisjoint(e.id for e in block.entities)
    other = create_block_definition("nut", block.entities, base_point=(0.0, 0.0))
    assert explode_block_ref(other, ref) == []
