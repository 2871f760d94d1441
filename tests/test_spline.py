import pytest

from cadkernel import geometry as g
from cadkernel.models import Line, Polyline, Spline, make_entity
from cadkernel.spline import (
    evaluate_bspline, evaluate_catmull_rom, spline_endpoints, spline_points, spline_to_polyline,
)

CPS = [(0.0, 0.0), (10.0, 10.0), (20.0, 0.0), (30.0, 10.0)]


def test_catmull_rom_passes_through_end_points() -> None:
    pts = evaluate_catmull_rom(CPS, closed=False, segments=80)
    assert g.almost_equal_points(pts[0], CPS[0])
    assert g.almost_equal_points(pts[-1], CPS[-1])


def test_catmull_rom_passes_through_interior_points() -> None:
    pts = evaluate_catmull_rom(CPS, closed=False, segments=80)
    for cp in CPS:
        assert min(g.distance(cp, p) for p in pts) < 1e-9


def test_catmull_rom_is_continuous() -> None:
    pts = evaluate_catmull_rom(CPS, closed=False, segments=80)
    steps = [g.distance(a, b) for a, b in zip(pts, pts[1:])]
    assert max(steps) < 2.0


def test_bspline_open_is_clamped_to_end_points() -> None:
    pts = evaluate_bspline(CPS, degree=3, closed=False, segments=50)
    assert len(pts) == 51
    assert g.almost_equal_points(pts[0], CPS[0])
    assert g.almost_equal_points(pts[-1], CPS[-1])
    steps = [g.distance(a, b) for a, b in zip(pts, pts[1:])]
    assert max(steps) < 2.0


def test_closed_bspline_returns_to_start() -> None:
    pts = evaluate_bspline(CPS, degree=3, closed=True, segments=60)
    assert g.distance(pts[0], pts[-1]) < 1e-6


def test_degree_one_spline_is_its_control_polygon() -> None:
    data = Spline(tuple(CPS), degree=1)
    assert spline_points(data) == CPS


def test_closed_spline_points_wrap_around() -> None:
    pts = spline_points(Spline(tuple(CPS), closed=True))
    assert g.almost_equal_points(pts[0], pts[-1])


def test_spline_endpoints() -> None:
    assert spline_endpoints(Spline(tuple(CPS))) == [CPS[0], CPS[-1]]
    assert spline_endpoints(Spline(tuple(CPS), closed=True)) == []


def test_spline_to_polyline_creates_new_entity() -> None:
    entity = make_entity(Spline(tuple(CPS)), color="#00ff00")
    for method in ("catmull-rom", "bspline"):
        poly = spline_to_polyline(entity, method=method, segments=40)
        assert poly is not None
        assert isinstance(poly.data, Polyline)
        assert poly.id != entity.id
        assert poly.color == "#00ff00"
        assert g.almost_equal_points(poly.data.points[0], CPS[0])


def test_spline_to_polyline_drops_closing_duplicate() -> None:
    entity = make_entity(Spline(tuple(CPS), closed=True))
    poly = spline_to_polyline(entity, method="bspline", segments=40)
    assert poly.data.closed
    assert g.distance(poly.data.points[0], poly.data.points[-1]) > 1e-3


def test_spline_to_polyline_rejects_unknown_method() -> None:
    with pytest.raises(ValueError):
        spline_to_polyline(make_entity(Spline(tuple(CPS))), method="nurbs")


def test_spline_to_polyline_ignores_other_variants() -> None:
    assert spline_to_polyline(make_entity(Line((0, 0), (1, 0)))) is None
