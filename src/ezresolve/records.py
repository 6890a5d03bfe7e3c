from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Sequence, Union

from .errors import DiagnosticKind

Point3D = tuple[float, float, float]
Triangle = tuple[int, int, int]


@dataclass(frozen=True)
class Polyline:
    points: tuple[Point3D, ...]
    closed: bool = False

    def translated(self, offset: Sequence[float]) -> "Polyline":
        return Polyline(points=_shift(self.points, offset), closed=self.closed)


@dataclass(frozen=True)
class Mesh:
    vertices: tuple[Point3D, ...]
    triangles: tuple[Triangle, ...]

    def translated(self, offset: Sequence[float]) -> "Mesh":
        return Mesh(vertices=_shift(self.vertices, offset), triangles=self.triangles)


Geometry = Union[Polyline, Mesh]


@dataclass(frozen=True)
class DrawRecord:
    layer: str
    geometry: Geometry
    color: int
    source_handle: str
    dxftype: str = ""
    placeholder: bool = False

    def translated(self, offset: Sequence[float]) -> "DrawRecord":
        return replace(self, geometry=self.geometry.translated(offset))


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    handle: str
    dxftype: str
    message: str

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.dxftype} {self.handle}: {self.message}"


@dataclass(frozen=True)
class ResolveResult:
    records: tuple[DrawRecord, ...]
    diagnostics: tuple[Diagnostic, ...]
    total_entities: int
    resolved_entities: int
    skipped_entities: int
    error_entities: int
    skipped_by_type: dict[str, int] = field(default_factory=dict)

    def diagnostics_of(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [diagnostic for diagnostic in self.diagnostics if diagnostic.kind is kind]


def _shift(points: Sequence[Point3D], offset: Sequence[float]) -> tuple[Point3D, ...]:
    dx = float(offset[0])
    dy = float(offset[1])
    dz = float(offset[2]) if len(offset) > 2 else 0.0
    return tuple((x + dx, y + dy, z + dz) for x, y, z in points)
