import logging
import math

import pytest

from cadkernel.blocks import create_block_definition
from cadkernel.models import (
    Arc, BlockRef, Circle, Dimension, Ellipse, Hatch, Line, Polyline, Ray, Rectangle, Spline, Text, XLine,
    make_entity,
)


@pytest.fixture
def block():
    return create_block_definition(
        "bolt",
        [
            make_entity(Line((0.0, 0.0), (4.0, 0.0))),
            make_entity(Circle((2.0, 2.0), 1.0)),
        ],
        base_point=(0.0, 0.0),
    )


@pytest.fixture
def every_variant(block):
    """One entity of each data variant, plus the block its reference uses."""
    data = [
        Line((0.0, 0.0), (10.0, 0.0)),
        Circle((20.0, 0.0), 5.0),
        Arc((40.0, 0.0), 5.0, 0.0, math.pi / 2.0),
        Rectangle((50.0, 0.0), 10.0, 4.0),
        Polyline(((0.0, 20.0), (10.0, 20.0), (10.0, 30.0))),
        Ellipse((30.0, 30.0), 6.0, 3.0, 0.2),
        Text((0.0, 50.0), "NOTE", 5.0),
        Dimension((0.0, 60.0), (20.0, 60.0), 4.0),
        Hatch(((50.0, 50.0), (60.0, 50.0), (60.0, 60.0)), pattern="cross"),
        Spline(((0.0, 80.0), (10.0, 90.0), (20.0, 80.0), (30.0, 90.0))),
        XLine((0.0, 100.0), (1.0, 0.0)),
        Ray((0.0, 110.0), (0.0, 1.0)),
        BlockRef(block.id, (80.0, 80.0), 2.0, 2.0, 0.0),
    ]
    return [make_entity(d) for d in data]


@pytest.fixture
def root_logging():
    """Undo handler and level changes a test makes through ``setup_logging``."""
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
    root.setLevel(level)
