"""Closed-loop cleaning, containment nesting and hole-aware triangulation.

Loops are sequences of 2D points in a common plane (for hatches, the OCS
plane). Cleaning runs once per loop before nesting; nesting assigns the
even-odd fill rule; triangulation fills every filled loop against its
immediate holes.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Sequence

from ezdxf.math.triangulation import mapbox_earcut_2d

logger = logging.getLogger(__name__)

Point2D = tuple[float, float]
BBox = tuple[float, float, float, float]
Triangle = tuple[int, int, int]

POINT_EPSILON = 1.0e-6
COLLINEAR_AREA_EPSILON = 1.0e-8
BOW_TIE_DOT = -0.9999
CONTAINMENT_SAMPLES = 5
TRIANGLE_AREA_EPSILON = 1.0e-12

HATCH_STYLE_NORMAL = 0
HATCH_STYLE_OUTER = 1
HATCH_STYLE_IGNORE = 2


@dataclass
class NestedLoop:
    points: list[Point2D]
    signed_area: float
    bbox: BBox
    nest_level: int = 0
    parent: int | None = None
    children: list[int] = field(default_factory=list)
    should_fill: bool = True

    @property
    def area(self) -> float:
        return abs(self.signed_area)


def dedupe_points(points: Sequence[Sequence[float]], eps: float = POINT_EPSILON) -> list[Point2D]:
    """Drop consecutive near-duplicates and a closing vertex equal to the first."""
    out: list[Point2D] = []
    for point in points:
        current = (float(point[0]), float(point[1]))
        if out and _distance(current, out[-1]) < eps:
            continue
        out.append(current)
    if len(out) > 1 and _distance(out[0], out[-1]) < eps:
        out.pop()
    return out


def remove_collinear(points: Sequence[Point2D], eps: float = COLLINEAR_AREA_EPSILON) -> list[Point2D]:
    count = len(points)
    out: list[Point2D] = []
    for i in range(count):
        prev = points[(i - 1) % count]
        curr = points[i]
        nxt = points[(i + 1) % count]
        area = abs(
            (curr[0] - prev[0]) * (nxt[1] - prev[1]) - (nxt[0] - prev[0]) * (curr[1] - prev[1])
        )
        if area > eps:
            out.append(curr)
    return out


def fix_bow_ties(points: Sequence[Point2D]) -> list[Point2D]:
    """Remove vertices where the outline doubles back on itself."""
    out: list[Point2D] = []
    i = 0
    while i < len(points):
        curr = points[i]
        if len(out) >= 2:
            prev = out[-1]
            prev_prev = out[-2]
            v1 = (prev[0] - prev_prev[0], prev[1] - prev_prev[1])
            v2 = (curr[0] - prev[0], curr[1] - prev[1])
            len1 = math.hypot(*v1)
            len2 = math.hypot(*v2)
            if len1 > 1.0e-9 and len2 > 1.0e-9:
                dot = (v1[0] * v2[0] + v1[1] * v2[1]) / (len1 * len2)
                if dot < BOW_TIE_DOT:
                    out.pop()
                    # re-check ``curr`` against the new tail
                    continue
        out.append(curr)
        i += 1
    return out


def clean_loop(points: Sequence[Sequence[float]]) -> list[Point2D]:
    """Run the full cleaning stage; loops left with fewer than 3 points become ``[]``."""
    if len(points) < 3:
        return []
    cleaned = dedupe_points(points)
    if len(cleaned) < 3:
        return []
    cleaned = remove_collinear(cleaned)
    if len(cleaned) < 3:
        return []
    cleaned = fix_bow_ties(cleaned)
    if len(cleaned) < 3:
        return []
    return cleaned


def signed_area(points: Sequence[Sequence[float]]) -> float:
    count = len(points)
    area = 0.0
    for i in range(count):
        j = (i + 1) % count
        area += points[i][0] * points[j][1]
        area -= points[j][0] * points[i][1]
    return area / 2.0


def bounding_box(points: Sequence[Sequence[float]]) -> BBox:
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return (min(xs), min(ys), max(xs), max(ys))


def point_in_polygon(point: Sequence[float], polygon: Sequence[Sequence[float]]) -> bool:
    x, y = point[0], point[1]
    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        xi, yi = polygon[i][0], polygon[i][1]
        xj, yj = polygon[j][0], polygon[j][1]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def loop_contains(
    outer: Sequence[Point2D],
    inner: Sequence[Point2D],
    outer_bbox: BBox | None = None,
    inner_bbox: BBox | None = None,
    eps: float = POINT_EPSILON,
) -> bool:
    """True when ``inner`` lies inside ``outer`` by majority vote of sample vertices."""
    if not outer or not inner:
        return False
    ob = outer_bbox or bounding_box(outer)
    ib = inner_bbox or bounding_box(inner)
    if ib[0] < ob[0] - eps or ib[2] > ob[2] + eps or ib[1] < ob[1] - eps or ib[3] > ob[3] + eps:
        return False

    sample_count = min(len(inner), CONTAINMENT_SAMPLES)
    step = max(1, len(inner) // sample_count)
    inside = 0
    for i in range(sample_count):
        if point_in_polygon(inner[(i * step) % len(inner)], outer):
            inside += 1
    return inside > sample_count / 2.0


def build_nesting(loops: Sequence[Sequence[Sequence[float]]]) -> list[NestedLoop]:
    """Clean the loops and arrange them into a containment forest.

    Loops that clean down to fewer than 3 points are dropped. The returned
    list keeps input order among the surviving loops; ``parent`` and
    ``children`` index into it.
    """
    nested: list[NestedLoop] = []
    for loop in loops:
        points = clean_loop(loop)
        if not points:
            logger.debug("dropping loop with fewer than 3 usable points")
            continue
        nested.append(NestedLoop(points=points, signed_area=signed_area(points), bbox=bounding_box(points)))

    order = sorted(range(len(nested)), key=lambda idx: nested[idx].area, reverse=True)
    for position, idx in enumerate(order):
        current = nested[idx]
        parent: int | None = None
        parent_area = math.inf
        for candidate_idx in order[:position]:
            candidate = nested[candidate_idx]
            if candidate.area >= parent_area:
                continue
            if loop_contains(candidate.points, current.points, candidate.bbox, current.bbox):
                parent = candidate_idx
                parent_area = candidate.area
        if parent is not None:
            current.parent = parent
            nested[parent].children.append(idx)

    for idx, loop in enumerate(nested):
        if loop.parent is None:
            _assign_levels(nested, idx, 0)
    return nested


def apply_hatch_style(nested: Sequence[NestedLoop], style: int) -> list[NestedLoop]:
    """Return copies with fill flags restricted by the hatch style flag."""
    if style == HATCH_STYLE_OUTER:
        limit = 1
    elif style == HATCH_STYLE_IGNORE:
        limit = 0
    else:
        return list(nested)
    return [
        replace(loop, should_fill=loop.should_fill and loop.nest_level <= limit)
        for loop in nested
    ]


def triangulate_nested(
    nested: Sequence[NestedLoop],
    style: int = HATCH_STYLE_NORMAL,
) -> tuple[list[Point2D], list[Triangle]]:
    """Triangulate every filled loop against its immediate non-filling children.

    With the "ignore" style, outer loops fill solid and holes are not cut.
    A loop whose triangulation fails is retried without holes; a loop that
    still fails is skipped.
    """
    loops = apply_hatch_style(nested, style)
    vertices: list[Point2D] = []
    triangles: list[Triangle] = []

    for loop in loops:
        if not loop.should_fill:
            continue
        outer = loop.points if loop.signed_area >= 0.0 else list(reversed(loop.points))
        holes: list[list[Point2D]] = []
        if style != HATCH_STYLE_IGNORE:
            for child_idx in loop.children:
                child = loops[child_idx]
                if child.should_fill or len(child.points) < 3:
                    continue
                hole = child.points if child.signed_area <= 0.0 else list(reversed(child.points))
                holes.append(hole)

        try:
            loop_vertices, loop_triangles = _earcut(outer, holes)
        except Exception as exc:
            logger.debug("triangulation with %d holes failed: %s", len(holes), exc)
            loop_vertices, loop_triangles = [], []
        if not loop_triangles and holes:
            try:
                loop_vertices, loop_triangles = _earcut(outer, [])
            except Exception as exc:
                logger.debug("outer boundary triangulation failed: %s", exc)
                continue

        base = len(vertices)
        vertices.extend(loop_vertices)
        triangles.extend((a + base, b + base, c + base) for a, b, c in loop_triangles)
    return vertices, triangles


def triangle_area(a: Sequence[float], b: Sequence[float], c: Sequence[float]) -> float:
    return abs((b[0] - a[0]) * (c[1] - a[1]) - (c[0] - a[0]) * (b[1] - a[1])) / 2.0


def _earcut(
    outer: Sequence[Point2D],
    holes: Sequence[Sequence[Point2D]],
) -> tuple[list[Point2D], list[Triangle]]:
    vertices: list[Point2D] = list(outer)
    for hole in holes:
        vertices.extend(hole)
    index: dict[Point2D, int] = {}
    for i, vertex in enumerate(vertices):
        index.setdefault(vertex, i)

    triangles: list[Triangle] = []
    for triangle in mapbox_earcut_2d(outer, holes or None):
        a, b, c = (index[(float(v.x), float(v.y))] for v in triangle)
        if triangle_area(vertices[a], vertices[b], vertices[c]) <= TRIANGLE_AREA_EPSILON:
            continue
        triangles.append((a, b, c))
    return vertices, triangles


def _assign_levels(nested: list[NestedLoop], idx: int, level: int) -> None:
    stack = [(idx, level)]
    while stack:
        current, depth = stack.pop()
        loop = nested[current]
        loop.nest_level = depth
        loop.should_fill = depth % 2 == 0
        stack.extend((child, depth + 1) for child in loop.children)


def _distance(a: Point2D, b: Point2D) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])
