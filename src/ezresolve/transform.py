"""Object-to-world transforms for entities and block instances.

Matrices are immutable row-major 16-tuples applied to column vectors, so a
product ``multiply(a, b)`` transforms a point by ``b`` first and ``a`` second.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

Vec3 = tuple[float, float, float]
Matrix44 = tuple[float, ...]

IDENTITY: Matrix44 = (
    1.0, 0.0, 0.0, 0.0,
    0.0, 1.0, 0.0, 0.0,
    0.0, 0.0, 1.0, 0.0,
    0.0, 0.0, 0.0, 1.0,
)

WORLD_Y: Vec3 = (0.0, 1.0, 0.0)
WORLD_Z: Vec3 = (0.0, 0.0, 1.0)

_ARBITRARY_AXIS_LIMIT = 1.0 / 64.0


def translation(dx: float, dy: float, dz: float = 0.0) -> Matrix44:
    return (
        1.0, 0.0, 0.0, float(dx),
        0.0, 1.0, 0.0, float(dy),
        0.0, 0.0, 1.0, float(dz),
        0.0, 0.0, 0.0, 1.0,
    )


def scaling(sx: float, sy: float, sz: float = 1.0) -> Matrix44:
    return (
        float(sx), 0.0, 0.0, 0.0,
        0.0, float(sy), 0.0, 0.0,
        0.0, 0.0, float(sz), 0.0,
        0.0, 0.0, 0.0, 1.0,
    )


def rotation_z(angle: float) -> Matrix44:
    c = math.cos(angle)
    s = math.sin(angle)
    return (
        c, -s, 0.0, 0.0,
        s, c, 0.0, 0.0,
        0.0, 0.0, 1.0, 0.0,
        0.0, 0.0, 0.0, 1.0,
    )


def basis_matrix(ex: Vec3, ey: Vec3, ez: Vec3) -> Matrix44:
    """Matrix whose columns are the given axes (local frame to world)."""
    return (
        ex[0], ey[0], ez[0], 0.0,
        ex[1], ey[1], ez[1], 0.0,
        ex[2], ey[2], ez[2], 0.0,
        0.0, 0.0, 0.0, 1.0,
    )


def multiply(a: Matrix44, b: Matrix44) -> Matrix44:
    out = []
    for row in range(4):
        r = row * 4
        for col in range(4):
            out.append(
                a[r] * b[col]
                + a[r + 1] * b[4 + col]
                + a[r + 2] * b[8 + col]
                + a[r + 3] * b[12 + col]
            )
    return tuple(out)


def multiply_all(matrices: Iterable[Matrix44]) -> Matrix44:
    result = IDENTITY
    for matrix in matrices:
        result = multiply(result, matrix)
    return result


def transform_point(matrix: Matrix44, point: Sequence[float]) -> Vec3:
    x = float(point[0])
    y = float(point[1])
    z = float(point[2]) if len(point) > 2 else 0.0
    m = matrix
    return (
        m[0] * x + m[1] * y + m[2] * z + m[3],
        m[4] * x + m[5] * y + m[6] * z + m[7],
        m[8] * x + m[9] * y + m[10] * z + m[11],
    )


def transform_points(matrix: Matrix44, points: Iterable[Sequence[float]]) -> list[Vec3]:
    if is_identity(matrix):
        return [_as_vec3(point) for point in points]
    return [transform_point(matrix, point) for point in points]


def is_identity(matrix: Matrix44, eps: float = 1.0e-12) -> bool:
    return all(abs(a - b) <= eps for a, b in zip(matrix, IDENTITY))


def cross(a: Sequence[float], b: Sequence[float]) -> Vec3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def normalize(v: Sequence[float]) -> Vec3:
    length = math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])
    if length <= 1.0e-12:
        raise ValueError(f"cannot normalize zero-length vector: {tuple(v)!r}")
    return (v[0] / length, v[1] / length, v[2] / length)


def is_default_extrusion(extrusion: Sequence[float] | None, eps: float = 1.0e-12) -> bool:
    if extrusion is None:
        return True
    return (
        abs(float(extrusion[0])) <= eps
        and abs(float(extrusion[1])) <= eps
        and abs(float(extrusion[2]) - 1.0) <= eps
    )


def arbitrary_axis(extrusion: Sequence[float]) -> tuple[Vec3, Vec3, Vec3]:
    """AutoCAD arbitrary axis algorithm: the OCS axes for an extrusion vector."""
    ez = normalize((float(extrusion[0]), float(extrusion[1]), float(extrusion[2])))
    if abs(ez[0]) < _ARBITRARY_AXIS_LIMIT and abs(ez[1]) < _ARBITRARY_AXIS_LIMIT:
        ex = normalize(cross(WORLD_Y, ez))
    else:
        ex = normalize(cross(WORLD_Z, ez))
    ey = normalize(cross(ez, ex))
    return ex, ey, ez


def ocs_to_wcs_matrix(extrusion: Sequence[float] | None) -> Matrix44:
    if is_default_extrusion(extrusion):
        return IDENTITY
    return basis_matrix(*arbitrary_axis(extrusion))


def wcs_to_ocs(point: Sequence[float], extrusion: Sequence[float] | None) -> Vec3:
    if is_default_extrusion(extrusion):
        return _as_vec3(point)
    ex, ey, ez = arbitrary_axis(extrusion)
    p = _as_vec3(point)
    return (_dot(ex, p), _dot(ey, p), _dot(ez, p))


def compose_insert_transform(
    insertion_point: Sequence[float],
    base_point: Sequence[float] | None,
    scale: Sequence[float],
    rotation_z_angle: float,
    extrusion: Sequence[float] | None,
    unit_scale: float = 1.0,
    apply_base_point_offset: bool = False,
) -> Matrix44:
    """Block instance transform ``T(insert) @ OCS @ Rz @ S [@ T(-base)]``.

    The base point offset is off by default: decoders already express block
    children relative to the block base point. ``unit_scale`` scales the
    translational parts only, for callers that pre-scale geometry.
    """
    insert = _as_vec3(insertion_point)
    sx = float(scale[0])
    sy = float(scale[1]) if len(scale) > 1 else sx
    sz = float(scale[2]) if len(scale) > 2 else 1.0

    matrices = [
        translation(insert[0] * unit_scale, insert[1] * unit_scale, insert[2] * unit_scale),
        ocs_to_wcs_matrix(extrusion),
        rotation_z(rotation_z_angle),
        scaling(sx, sy, sz),
    ]
    if apply_base_point_offset and base_point is not None:
        base = _as_vec3(base_point)
        matrices.append(
            translation(-base[0] * unit_scale, -base[1] * unit_scale, -base[2] * unit_scale)
        )
    return multiply_all(matrices)


def compose_nested(parent: Matrix44, child: Matrix44) -> Matrix44:
    return multiply(parent, child)


def array_instance_transforms(
    base: Matrix44,
    row_count: int,
    column_count: int,
    row_spacing: float,
    column_spacing: float,
) -> list[Matrix44]:
    rows = max(1, int(row_count))
    columns = max(1, int(column_count))
    out: list[Matrix44] = []
    for row in range(rows):
        for col in range(columns):
            if row == 0 and col == 0:
                out.append(base)
                continue
            offset = translation(col * column_spacing, row * row_spacing, 0.0)
            out.append(multiply(offset, base))
    return out


def _dot(a: Sequence[float], b: Sequence[float]) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def _as_vec3(point: Sequence[float]) -> Vec3:
    if len(point) >= 3:
        return (float(point[0]), float(point[1]), float(point[2]))
    return (float(point[0]), float(point[1]), 0.0)
