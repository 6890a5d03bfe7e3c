"""Curve tessellation: bulge arcs, circular and elliptical arcs, B-splines.

Every function is pure and returns plain 3-tuples. Angles are radians.
"""

from __future__ import annotations

import math
from typing import Sequence

Point3D = tuple[float, float, float]

TAU = 2.0 * math.pi

BULGE_EPSILON = 1.0e-6
CHORD_EPSILON = 1.0e-6
_ALPHA_EPSILON = 1.0e-10


def bulge_to_arc(
    start: Sequence[float],
    end: Sequence[float],
    bulge: float,
) -> list[Point3D]:
    """Interior points of the arc encoded by ``bulge`` between two vertices.

    ``start`` and ``end`` themselves are not included. The arc lies in the
    plane ``z = start.z``.
    """
    sx, sy = float(start[0]), float(start[1])
    ex, ey = float(end[0]), float(end[1])
    z = float(start[2]) if len(start) > 2 else 0.0

    dx = ex - sx
    dy = ey - sy
    chord = math.hypot(dx, dy)
    if chord < CHORD_EPSILON or bulge == 0.0:
        return []

    theta = 4.0 * math.atan(abs(bulge))
    radius = chord / (2.0 * math.sin(theta / 2.0))
    sagitta = radius * (1.0 - math.cos(theta / 2.0))
    apothem = radius - sagitta

    direction = 1.0 if bulge > 0.0 else -1.0
    nx = -dy / chord
    ny = dx / chord
    cx = (sx + ex) / 2.0 + nx * direction * apothem
    cy = (sy + ey) / 2.0 + ny * direction * apothem

    start_angle = math.atan2(sy - cy, sx - cx)
    steps = max(8, math.ceil(abs(theta) * 10.0))
    out: list[Point3D] = []
    for i in range(1, steps):
        angle = start_angle + direction * theta * i / steps
        out.append((cx + radius * math.cos(angle), cy + radius * math.sin(angle), z))
    return out


def expand_bulges(
    points: Sequence[Sequence[float]],
    bulges: Sequence[float] | None,
    closed: bool = False,
    elevation: float = 0.0,
) -> list[Point3D]:
    vertices = [_as_point(point, elevation) for point in points]
    count = len(vertices)
    bulge_values = list(bulges or ())

    out: list[Point3D] = []
    for i, vertex in enumerate(vertices):
        out.append(vertex)
        if i == count - 1 and not closed:
            break
        bulge = float(bulge_values[i]) if i < len(bulge_values) and bulge_values[i] is not None else 0.0
        if abs(bulge) <= BULGE_EPSILON:
            continue
        out.extend(bulge_to_arc(vertex, vertices[(i + 1) % count], bulge))
    return out


def normalize_sweep(start_angle: float, end_angle: float, ccw: bool = True) -> float:
    """Signed sweep from ``start_angle`` to ``end_angle`` in the given winding."""
    sweep = float(end_angle) - float(start_angle)
    if ccw:
        while sweep < 0.0:
            sweep += TAU
    else:
        while sweep > 0.0:
            sweep -= TAU
    return sweep


def sample_arc(
    center: Sequence[float],
    radius: float,
    start_angle: float,
    end_angle: float,
    ccw: bool = True,
    segments: int = 64,
    include_start: bool = True,
) -> list[Point3D]:
    cx, cy, cz = _as_point(center)
    segments = max(1, int(segments))
    sweep = normalize_sweep(start_angle, end_angle, ccw)

    out: list[Point3D] = []
    for i in range(0 if include_start else 1, segments + 1):
        angle = start_angle + sweep * i / segments
        out.append((cx + radius * math.cos(angle), cy + radius * math.sin(angle), cz))
    return out


def sample_ellipse(
    center: Sequence[float],
    major_radius: float,
    minor_radius: float,
    rotation: float,
    start_angle: float,
    end_angle: float,
    segments: int = 64,
    ccw: bool = True,
    include_start: bool = True,
) -> list[Point3D]:
    """Points of a parametric ellipse rotated by ``rotation`` around its center.

    A zero sweep is a full ellipse.
    """
    cx, cy, cz = _as_point(center)
    segments = max(1, int(segments))
    sweep = normalize_sweep(start_angle, end_angle, ccw)
    if abs(sweep) < 1.0e-12:
        sweep = TAU if ccw else -TAU

    cos_r = math.cos(rotation)
    sin_r = math.sin(rotation)
    out: list[Point3D] = []
    for i in range(0 if include_start else 1, segments + 1):
        t = start_angle + sweep * i / segments
        x = major_radius * math.cos(t)
        y = minor_radius * math.sin(t)
        out.append((cx + x * cos_r - y * sin_r, cy + x * sin_r + y * cos_r, cz))
    return out


def uniform_clamped_knots(count: int, degree: int) -> list[float]:
    n = count - 1
    m = n + degree + 1
    knots: list[float] = []
    for i in range(m + 1):
        if i <= degree:
            knots.append(0.0)
        elif i >= m - degree:
            knots.append(1.0)
        else:
            knots.append((i - degree) / (m - 2 * degree))
    return knots


def evaluate_bspline(
    control_points: Sequence[Sequence[float]],
    knots: Sequence[float] | None,
    degree: int,
    sample_count: int,
) -> list[Point3D]:
    """Sample a B-spline with De Boor's algorithm.

    Returns ``sample_count + 1`` points spanning the valid domain
    ``[knots[degree], knots[-degree - 1]]``. A knot vector of the wrong
    length is replaced by a uniform clamped one; an empty domain falls back to
    the control polygon.
    """
    points = [_as_point(point) for point in control_points]
    if len(points) < 2:
        return points

    degree = max(1, min(int(degree), len(points) - 1))
    knot_vector = [float(k) for k in knots] if knots else []
    if len(knot_vector) != len(points) + degree + 1:
        knot_vector = uniform_clamped_knots(len(points), degree)

    t_min = knot_vector[degree]
    t_max = knot_vector[len(knot_vector) - degree - 1]
    if t_max <= t_min:
        return points

    sample_count = max(1, int(sample_count))
    out: list[Point3D] = []
    for i in range(sample_count + 1):
        t = t_min + (t_max - t_min) * (i / sample_count)
        out.append(_de_boor(t, points, knot_vector, degree))
    return out


def _find_span(t: float, knots: Sequence[float], degree: int, n: int) -> int:
    if t >= knots[n + 1]:
        return n
    for i in range(degree, n + 1):
        if knots[i] <= t < knots[i + 1]:
            return i
    return degree


def _de_boor(
    t: float,
    points: Sequence[Point3D],
    knots: Sequence[float],
    degree: int,
) -> Point3D:
    n = len(points) - 1
    k = _find_span(t, knots, degree, n)

    d = [list(points[max(0, min(n, k - degree + j))]) for j in range(degree + 1)]
    for r in range(1, degree + 1):
        for j in range(degree, r - 1, -1):
            i = k - degree + j
            denom = knots[i + degree - r + 1] - knots[i]
            alpha = (t - knots[i]) / denom if abs(denom) > _ALPHA_EPSILON else 0.0
            prev = d[j - 1]
            cur = d[j]
            d[j] = [
                (1.0 - alpha) * prev[0] + alpha * cur[0],
                (1.0 - alpha) * prev[1] + alpha * cur[1],
                (1.0 - alpha) * prev[2] + alpha * cur[2],
            ]
    result = d[degree]
    return (result[0], result[1], result[2])


def _as_point(point: Sequence[float], z: float = 0.0) -> Point3D:
    if len(point) >= 3:
        return (float(point[0]), float(point[1]), float(point[2]))
    return (float(point[0]), float(point[1]), float(z))
