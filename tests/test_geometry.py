import math

from cadkernel import geometry as g


def test_normalize_angle_wraps_into_range() -> None:
    assert abs(g.normalize_angle(-math.pi / 2.0) - 1.5 * math.pi) < 1e-12
    assert g.normalize_angle(2.0 * math.pi) == 0.0
    assert abs(g.normalize_angle(5.0 * math.pi) - math.pi) < 1e-12


def test_arc_sweep() -> None:
    assert abs(g.arc_sweep(0.0, math.pi / 2.0) - math.pi / 2.0) < 1e-12
    assert abs(g.arc_sweep(1.5 * math.pi, math.pi / 2.0) - math.pi) < 1e-12
    assert abs(g.arc_sweep(1.0, 1.0) - 2.0 * math.pi) < 1e-12


def test_angle_in_arc_normalizes_inputs() -> None:
    assert g.angle_in_arc(2.0 * math.pi + 0.1, 0.0, 0.5)
    assert g.angle_in_arc(-0.005, 0.0, math.pi)
    assert not g.angle_in_arc(-0.1, 0.0, math.pi, tol=0.0)
    # sweep crossing zero
    assert g.angle_in_arc(0.1, 1.5 * math.pi, 0.5 * math.pi)
    assert not g.angle_in_arc(math.pi, 1.5 * math.pi, 0.5 * math.pi)


def test_line_line_intersection() -> None:
    assert g.line_line_intersection((0, 0), (10, 0), (5, -5), (5, 5)) == [(5.0, 0.0)]
    assert g.line_line_intersection((0, 0), (10, 0), (0, 1), (10, 1)) == []
    assert g.line_line_intersection((0, 0), (10, 0), (15, -5), (15, 5)) == []


def test_line_line_intersection_unbounded() -> None:
    p = g.line_line_intersection_unbounded((0, 0), (1, 0), (5, 1), (5, 2))
    assert p is not None
    assert abs(p[0] - 5.0) < 1e-9
    assert abs(p[1]) < 1e-9
    assert g.line_line_intersection_unbounded((0, 0), (1, 0), (0, 1), (1, 1)) is None


def test_ray_segment_intersection_only_forward() -> None:
    assert g.ray_segment_intersection((0, 0), (1, 0), (5, -1), (5, 1)) == [(5.0, 0.0)]
    assert g.ray_segment_intersection((10, 0), (1, 0), (5, -1), (5, 1)) == []


def test_line_circle_intersection() -> None:
    pts = sorted(g.line_circle_intersection((-10, 0), (10, 0), (0, 0), 5.0))
    assert len(pts) == 2
    assert abs(pts[0][0] + 5.0) < 1e-9
    assert abs(pts[1][0] - 5.0) < 1e-9


def test_line_circle_tangent_gives_single_point() -> None:
    pts = g.line_circle_intersection((-10, 5), (10, 5), (0, 0), 5.0)
    assert len(pts) == 1
    assert abs(pts[0][0]) < 1e-9
    assert abs(pts[0][1] - 5.0) < 1e-9


def test_line_arc_intersection_respects_sweep() -> None:
    pts = g.line_arc_intersection((0, -10), (0, 10), (0, 0), 5.0, 0.0, math.pi)
    assert len(pts) == 1
    assert abs(pts[0][1] - 5.0) < 1e-9


def test_line_ellipse_intersection() -> None:
    pts = sorted(g.line_ellipse_intersection((-10, 0), (10, 0), (0, 0), 4.0, 2.0))
    assert len(pts) == 2
    assert abs(pts[0][0] + 4.0) < 1e-9
    assert abs(pts[1][0] - 4.0) < 1e-9


def test_line_ellipse_intersection_rotated() -> None:
    pts = sorted(g.line_ellipse_intersection((0, -10), (0, 10), (0, 0), 4.0, 2.0, math.pi / 2.0))
    assert len(pts) == 2
    assert abs(pts[0][1] + 4.0) < 1e-9
    assert abs(pts[1][1] - 4.0) < 1e-9


def test_circle_circle_intersection() -> None:
    pts = sorted(g.circle_circle_intersection((0, 0), 5.0, (8, 0), 5.0))
    assert len(pts) == 2
    assert abs(pts[0][0] - 4.0) < 1e-9 and abs(pts[0][1] + 3.0) < 1e-9
    assert abs(pts[1][0] - 4.0) < 1e-9 and abs(pts[1][1] - 3.0) < 1e-9
    assert g.circle_circle_intersection((0, 0), 1.0, (10, 0), 1.0) == []
    assert len(g.circle_circle_intersection((0, 0), 5.0, (10, 0), 5.0)) == 1


def test_reflect_and_rotate() -> None:
    assert g.almost_equal_points(g.reflect_point((1, 2), (0, 0), (1, 0)), (1.0, -2.0))
    assert g.almost_equal_points(g.reflect_point((2, 0), (0, 0), (1, 1)), (0.0, 2.0))
    assert g.almost_equal_points(g.rotate_point((1, 0), (0, 0), math.pi / 2.0), (0.0, 1.0))
    assert g.almost_equal_points(g.reflect_vector((1, 0), (5, 5), (6, 6)), (0.0, 1.0))


def test_point_distances() -> None:
    assert abs(g.point_segment_distance((5, 3), (0, 0), (10, 0)) - 3.0) < 1e-12
    assert abs(g.point_segment_distance((13, 4), (0, 0), (10, 0)) - 5.0) < 1e-12
    assert abs(g.point_line_distance((13, 4), (0, 0), (10, 0)) - 4.0) < 1e-12
    assert abs(g.point_ray_distance((-3, 4), (0, 0), (1, 0)) - 5.0) < 1e-12


def test_polygon_helpers() -> None:
    square = [(0, 0), (10, 0), (10, 10), (0, 10)]
    assert abs(g.polygon_area(square) - 100.0) < 1e-12
    assert abs(g.polyline_length(square, closed=True) - 40.0) < 1e-12
    assert g.point_in_polygon((5, 5), square)
    assert not g.point_in_polygon((15, 5), square)


def test_ellipse_points_are_on_curve() -> None:
    for x, y in g.ellipse_points((1, 1), 4.0, 2.0, 0.0, 16):
        assert abs(((x - 1) / 4.0) ** 2 + ((y - 1) / 2.0) ** 2 - 1.0) < 1e-9


def test_dedupe_points() -> None:
    pts = g.dedupe_points([(0, 0), (0.0001, 0), (1, 1)])
    assert pts == [(0, 0), (1, 1)]
