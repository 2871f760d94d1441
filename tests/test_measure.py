import math

from cadkernel.measure import entity_area, entity_length, measure_angle, measure_area, measure_distance
from cadkernel.models import (
    Arc, Circle, Ellipse, Line, Polyline, Rectangle, Text, make_entity,
)


def test_measure_distance() -> None:
    m = measure_distance((0, 0), (3, 4))
    assert m.kind == "distance"
    assert m.value == 5.0
    assert m.label.startswith("Distance: 5.0000")
    assert "Angle: 53.13°" in m.label
    assert m.points == ((0, 0), (3, 4))


def test_measure_area() -> None:
    m = measure_area([(0, 0), (10, 0), (10, 10), (0, 10)])
    assert m.value == 100.0
    assert "Perimeter: 40.0000" in m.label
    assert "Vertices: 4" in m.label


def test_measure_area_needs_three_points() -> None:
    m = measure_area([(0, 0), (10, 0)])
    assert m.value == 0.0
    assert m.label == "Need at least 3 points"


def test_measure_angle_is_counter_clockwise() -> None:
    assert abs(measure_angle((1, 0), (0, 0), (0, 1)).value - 90.0) < 1e-9
    m = measure_angle((0, 1), (0, 0), (1, 0))
    assert abs(m.value - 270.0) < 1e-9
    assert "Supplement: 90.00°" in m.label


def test_entity_length() -> None:
    assert entity_length(make_entity(Line((0, 0), (3, 4)))) == 5.0
    assert abs(entity_length(make_entity(Circle((0, 0), 1.0))) - 2.0 * math.pi) < 1e-12
    assert abs(entity_length(make_entity(Arc((0, 0), 2.0, 0.0, math.pi))) - 2.0 * math.pi) < 1e-12
    assert entity_length(make_entity(Rectangle((0, 0), 2.0, 3.0))) == 10.0
    assert abs(entity_length(make_entity(Ellipse((0, 0), 5.0, 5.0))) - 10.0 * math.pi) < 1e-9
    assert entity_length(make_entity(Text((0, 0), "A", 5.0))) is None


def test_entity_area() -> None:
    assert abs(entity_area(make_entity(Circle((0, 0), 2.0))) - 4.0 * math.pi) < 1e-12
    assert entity_area(make_entity(Rectangle((0, 0), 2.0, 3.0))) == 6.0
    triangle = ((0, 0), (4, 0), (0, 3))
    assert entity_area(make_entity(Polyline(triangle, closed=True))) == 6.0
    assert entity_area(make_entity(Polyline(triangle))) is None
    assert entity_area(make_entity(Line((0, 0), (1, 0)))) is None
