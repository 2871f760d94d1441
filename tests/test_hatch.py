from cadkernel.hatch import BOUNDARY_SAMPLES, create_hatch, entity_boundary, point_in_polygon
from cadkernel.models import Circle, Hatch, Line, Polyline, Rectangle, make_entity


def test_hatch_from_rectangle() -> None:
    rect = make_entity(Rectangle((0, 0), 10.0, 5.0), layer_id="layer-annotations", color="#ff0000")
    hatch = create_hatch(rect, pattern="cross", scale=2.0)
    assert isinstance(hatch.data, Hatch)
    assert hatch.id != rect.id
    assert hatch.layer_id == "layer-annotations"
    assert hatch.data.boundary == ((0.0, 0.0), (10.0, 0.0), (10.0, 5.0), (0.0, 5.0))
    assert hatch.data.pattern == "cross"
    assert hatch.data.scale == 2.0
    assert hatch.data.fill_color == "#ff0000"
    assert hatch.data.opacity == 0.4


def test_hatch_fill_color_override() -> None:
    rect = make_entity(Rectangle((0, 0), 10.0, 5.0))
    hatch = create_hatch(rect, pattern="solid", fill_color="#0000ff", opacity=1.0)
    assert hatch.color == "#0000ff"
    assert hatch.data.fill_color == "#0000ff"


def test_circle_boundary_is_sampled() -> None:
    circle = make_entity(Circle((0, 0), 5.0))
    assert len(entity_boundary(circle)) == BOUNDARY_SAMPLES
    hatch = create_hatch(circle)
    assert point_in_polygon((0, 0), hatch.data.boundary)
    assert not point_in_polygon((6, 0), hatch.data.boundary)


def test_open_shapes_cannot_be_hatched() -> None:
    assert create_hatch(make_entity(Line((0, 0), (10, 0)))) is None
    assert create_hatch(make_entity(Polyline(((0, 0), (10, 0), (10, 10))))) is None
    closed = make_entity(Polyline(((0, 0), (10, 0), (10, 10)), closed=True))
    assert create_hatch(closed).data.boundary == closed.data.points
