from __future__ import annotations

import pytest

import ezresolve.polygon as polygon_module
from ezresolve.polygon import (
    HATCH_STYLE_IGNORE,
    HATCH_STYLE_NORMAL,
    HATCH_STYLE_OUTER,
    apply_hatch_style,
    bounding_box,
    build_nesting,
    clean_loop,
    dedupe_points,
    fix_bow_ties,
    loop_contains,
    point_in_polygon,
    remove_collinear,
    signed_area,
    triangle_area,
    triangulate_nested,
)
from tests._helpers import square


OUTER = square(0.0, 0.0, 10.0)
HOLE = square(2.0, 2.0, 6.0)
ISLAND = square(4.0, 4.0, 2.0)


def _filled_area(vertices, triangles) -> float:
    return sum(triangle_area(vertices[a], vertices[b], vertices[c]) for a, b, c in triangles)


def _by_area(nested, area: float):
    return next(loop for loop in nested if abs(loop.area - area) < 1e-9)


def test_signed_area_sign_gives_winding() -> None:
    assert signed_area(OUTER) == pytest.approx(100.0)
    assert signed_area(list(reversed(OUTER))) == pytest.approx(-100.0)


def test_point_in_polygon_ray_casting() -> None:
    assert point_in_polygon((5.0, 5.0), OUTER)
    assert not point_in_polygon((15.0, 5.0), OUTER)
    assert not point_in_polygon((5.0, 5.0), [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0)])


def test_dedupe_removes_near_duplicates_and_closing_vertex() -> None:
    points = [(0.0, 0.0), (1.0, 0.0), (1.0 + 1e-9, 0.0), (1.0, 1.0), (0.0, 0.0)]
    assert dedupe_points(points) == [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0)]


def test_remove_collinear_drops_middle_vertices() -> None:
    points = [(0.0, 0.0), (5.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]
    assert remove_collinear(points) == [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]


def test_fix_bow_ties_drops_reversing_vertex_and_rechecks() -> None:
    points = [(0.0, 0.0), (10.0, 0.0), (5.0, 0.0), (5.0, 5.0)]
    assert fix_bow_ties(points) == [(0.0, 0.0), (5.0, 0.0), (5.0, 5.0)]


def test_clean_loop_drops_degenerate_loops() -> None:
    assert clean_loop([(0.0, 0.0), (1.0, 1.0)]) == []
    assert clean_loop([(0.0, 0.0), (1.0, 0.0), (2.0, 0.0)]) == []
    assert clean_loop([(0.0, 0.0), (0.0, 0.0), (0.0, 0.0), (1.0, 1.0)]) == []
    assert clean_loop(OUTER + [OUTER[0]]) == OUTER


def test_loop_contains_uses_bbox_and_majority_vote() -> None:
    assert loop_contains(OUTER, HOLE)
    assert not loop_contains(HOLE, OUTER)
    overlapping = square(8.0, 8.0, 4.0)
    assert not loop_contains(OUTER, overlapping)
    assert bounding_box(HOLE) == (2.0, 2.0, 8.0, 8.0)


def test_nesting_levels_follow_containment_parity() -> None:
    nested = build_nesting([ISLAND, OUTER, HOLE])

    outer = _by_area(nested, 100.0)
    hole = _by_area(nested, 36.0)
    island = _by_area(nested, 4.0)
    assert [outer.nest_level, hole.nest_level, island.nest_level] == [0, 1, 2]
    assert [outer.should_fill, hole.should_fill, island.should_fill] == [True, False, True]
    assert outer.parent is None
    assert nested[hole.parent] is outer
    assert nested[island.parent] is hole


def test_parent_is_smallest_containing_loop() -> None:
    nested = build_nesting([OUTER, HOLE, square(3.0, 3.0, 1.0), square(6.0, 6.0, 1.0)])
    hole_index = nested.index(_by_area(nested, 36.0))
    small = [loop for loop in nested if loop.area == pytest.approx(1.0)]
    assert len(small) == 2
    assert all(loop.parent == hole_index for loop in small)
    assert all(loop.nest_level == 2 for loop in small)


def test_filled_area_is_outer_minus_hole_plus_island() -> None:
    vertices, triangles = triangulate_nested(build_nesting([OUTER, HOLE, ISLAND]))
    assert _filled_area(vertices, triangles) == pytest.approx(100.0 - 36.0 + 4.0)


def test_winding_of_input_loops_does_not_matter() -> None:
    loops = [list(reversed(OUTER)), HOLE, list(reversed(ISLAND))]
    vertices, triangles = triangulate_nested(build_nesting(loops))
    assert _filled_area(vertices, triangles) == pytest.approx(68.0)


def test_outer_style_fills_only_outermost_band() -> None:
    nested = build_nesting([OUTER, HOLE, ISLAND])
    styled = apply_hatch_style(nested, HATCH_STYLE_OUTER)
    assert [loop.should_fill for loop in styled] == [True, False, False]
    assert [loop.should_fill for loop in nested] == [True, False, True]

    vertices, triangles = triangulate_nested(nested, HATCH_STYLE_OUTER)
    assert _filled_area(vertices, triangles) == pytest.approx(64.0)


def test_ignore_style_fills_outer_boundary_solid() -> None:
    nested = build_nesting([OUTER, HOLE, ISLAND])
    assert [loop.should_fill for loop in apply_hatch_style(nested, HATCH_STYLE_IGNORE)] == [True, False, False]

    vertices, triangles = triangulate_nested(nested, HATCH_STYLE_IGNORE)
    assert _filled_area(vertices, triangles) == pytest.approx(100.0)


def test_normal_style_keeps_parity() -> None:
    nested = build_nesting([OUTER, HOLE, ISLAND])
    assert apply_hatch_style(nested, HATCH_STYLE_NORMAL) == nested


def test_failed_triangulation_falls_back_to_outer_boundary(monkeypatch) -> None:
    real = polygon_module.mapbox_earcut_2d

    def flaky(exterior, holes=None):
        if holes:
            raise RuntimeError("self-intersection")
        return real(exterior, holes)

    monkeypatch.setattr(polygon_module, "mapbox_earcut_2d", flaky)
    vertices, triangles = triangulate_nested(build_nesting([OUTER, HOLE]))
    assert _filled_area(vertices, triangles) == pytest.approx(100.0)


def test_loop_that_cannot_be_triangulated_is_skipped(monkeypatch) -> None:
    calls: list[int] = []

    def broken(exterior, holes=None):
        calls.append(len(list(exterior)))
        raise RuntimeError("broken")

    monkeypatch.setattr(polygon_module, "mapbox_earcut_2d", broken)
    vertices, triangles = triangulate_nested(build_nesting([OUTER, square(20.0, 0.0, 5.0)]))
    assert (vertices, triangles) == ([], [])
    assert len(calls) == 2


def test_too_small_loops_are_dropped_silently() -> None:
    nested = build_nesting([OUTER, [(1.0, 1.0), (2.0, 2.0)], [(3.0, 3.0), (3.0, 3.0), (3.0, 3.0)]])
    assert len(nested) == 1


def test_triangulation_comes_from_ezdxf_triangulation_module() -> None:
    from ezdxf.math import triangulation

    assert polygon_module.mapbox_earcut_2d is triangulation.mapbox_earcut_2d


def test_zero_area_triangles_are_discarded(monkeypatch) -> None:
    from ezdxf.math import Vec2

    def sliver(exterior, holes=None):
        points = [Vec2(p) for p in exterior]
        return [
            (points[0], points[1], points[2]),
            (points[0], points[1], points[1]),
        ]

    monkeypatch.setattr(polygon_module, "mapbox_earcut_2d", sliver)
    vertices, triangles = triangulate_nested(build_nesting([OUTER]))
    assert triangles == [(0, 1, 2)]
    assert _filled_area(vertices, triangles) == pytest.approx(50.0)
