"""Operations that dispatch on entity data must handle every variant."""

import math

from cadkernel.document import data_from_dict, data_to_dict
from cadkernel.grips import apply_grip_move, entity_grips
from cadkernel.intersect import entity_primitives
from cadkernel.measure import entity_area, entity_length
from cadkernel.models import ENTITY_TYPES, Ray, SnapSettings, XLine, validate_entity_data
from cadkernel.offset import offset_entity
from cadkernel.query import bounding_box, hit_test
from cadkernel.snapping import nearest_point_on, snap_candidates
from cadkernel.transform import (
    mirror_entity_data, rotate_entity_data, scale_entity_data, translate_entity_data,
)


def test_fixture_covers_every_variant(every_variant) -> None:
    assert {e.type for e in every_variant} == set(ENTITY_TYPES)


def test_queries(every_variant, block) -> None:
    blocks = {block.id: block}
    for e in every_variant:
        hit_test(e, (0.0, 0.0), 1.0, blocks)
        box = bounding_box(e, blocks)
        assert (box is None) == isinstance(e.data, (XLine, Ray)), e.type
        entity_primitives(e.data, blocks)
        snap_candidates(e, SnapSettings(), blocks)
        nearest_point_on(e.data, (1.0, 1.0), blocks)
        entity_length(e)
        entity_area(e)
        offset_entity(e, 1.0, (1.0, 1.0))


def test_transforms_produce_valid_data(every_variant) -> None:
    for e in every_variant:
        d = e.data
        for out in (
            translate_entity_data(d, 3.0, -4.0),
            rotate_entity_data(d, (5.0, 5.0), math.pi / 3.0),
            mirror_entity_data(d, (0.0, 0.0), (1.0, 2.0)),
            scale_entity_data(d, (1.0, 1.0), -2.0),
        ):
            assert validate_entity_data(out) is out


def test_translate_is_reversible(every_variant) -> None:
    for e in every_variant:
        back = translate_entity_data(translate_entity_data(e.data, 8.0, 0.0), -8.0, 0.0)
        assert back == e.data


def test_grips_exist_and_apply(every_variant) -> None:
    for e in every_variant:
        grips = entity_grips(e)
        assert grips, e.type
        moved = apply_grip_move(e, grips[0], grips[0].point)
        assert moved.kind == e.type


def test_json_form(every_variant) -> None:
    for e in every_variant:
        raw = data_to_dict(e.data)
        assert raw["type"] == e.type
        assert data_from_dict(raw) == e.data
