from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Sequence

from .colors import resolve_color
from .context import ResolutionContext, root_context
from .entity import BlockDefinition, Drawing, Entity, LayerEntry, point3
from .errors import (
    CyclicBlockReferenceError,
    DegenerateGeometryError,
    DiagnosticKind,
    MalformedEntityError,
    ResolveError,
    UnresolvableReferenceError,
)
from .logging_utils import log_once
from .options import ResolveOptions
from .polygon import build_nesting, triangulate_nested
from .records import Diagnostic, DrawRecord, Geometry, Mesh, Polyline, ResolveResult
from .tessellate import (
    TAU,
    evaluate_bspline,
    expand_bulges,
    normalize_sweep,
    sample_arc,
    sample_ellipse,
)
from .transform import (
    IDENTITY,
    Matrix44,
    array_instance_transforms,
    compose_insert_transform,
    compose_nested,
    is_default_extrusion,
    multiply,
    normalize,
    ocs_to_wcs_matrix,
    scaling,
    transform_point,
    transform_points,
    wcs_to_ocs,
)

logger = logging.getLogger(__name__)

_HATCH_JOIN_EPSILON = 1.0e-8

_RESOLVED = "resolved"
_SKIPPED = "skipped"
_ERROR = "error"


class EntityKind(str, Enum):
    LINE = "LINE"
    ARC = "ARC"
    CIRCLE = "CIRCLE"
    ELLIPSE = "ELLIPSE"
    LWPOLYLINE = "LWPOLYLINE"
    POLYLINE_2D = "POLYLINE_2D"
    POLYLINE_3D = "POLYLINE_3D"
    SPLINE = "SPLINE"
    HATCH = "HATCH"
    INSERT = "INSERT"
    POINT = "POINT"
    SOLID = "SOLID"
    TRACE = "TRACE"
    FACE3D = "FACE3D"
    RAY = "RAY"
    XLINE = "XLINE"
    DIMENSION = "DIMENSION"
    LEADER = "LEADER"
    WIPEOUT = "WIPEOUT"
    MLINE = "MLINE"


_TYPE_TAGS: dict[str, EntityKind] = {
    "LINE": EntityKind.LINE,
    "ARC": EntityKind.ARC,
    "CIRCLE": EntityKind.CIRCLE,
    "ELLIPSE": EntityKind.ELLIPSE,
    "LWPOLYLINE": EntityKind.LWPOLYLINE,
    "SPLINE": EntityKind.SPLINE,
    "HATCH": EntityKind.HATCH,
    "INSERT": EntityKind.INSERT,
    "MINSERT": EntityKind.INSERT,
    "POINT": EntityKind.POINT,
    "SOLID": EntityKind.SOLID,
    "TRACE": EntityKind.TRACE,
    "3DFACE": EntityKind.FACE3D,
    "RAY": EntityKind.RAY,
    "XLINE": EntityKind.XLINE,
    "DIMENSION": EntityKind.DIMENSION,
    "LEADER": EntityKind.LEADER,
    "WIPEOUT": EntityKind.WIPEOUT,
    "MLINE": EntityKind.MLINE,
}

SUPPORTED_ENTITY_TYPES: tuple[str, ...] = tuple(sorted(set(_TYPE_TAGS) | {"POLYLINE"}))


def entity_kind(entity: Entity) -> EntityKind | None:
    tag = entity.dxftype.upper()
    if tag == "POLYLINE":
        return EntityKind.POLYLINE_3D if entity.dxf.get("is_3d") else EntityKind.POLYLINE_2D
    return _TYPE_TAGS.get(tag)


class EntityDispatcher:
    """Resolve entities of one drawing into draw records.

    Diagnostics produced while resolving accumulate on ``diagnostics``; one
    dispatcher serves one resolution pass.
    """

    def __init__(self, drawing: Drawing, options: ResolveOptions | None = None) -> None:
        self.drawing = drawing
        self.options = options or ResolveOptions()
        self.layers: Mapping[str, LayerEntry] = drawing.layer_map()
        self.diagnostics: list[Diagnostic] = []

    def root_context(self) -> ResolutionContext:
        unit = float(self.options.unit_scale)
        if unit == 1.0:
            return root_context(IDENTITY)
        return root_context(scaling(unit, unit, unit))

    def resolve_entity(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord] | None:
        """Records for one entity, or ``None`` when no resolver handles its type."""
        kind = entity_kind(entity)
        if kind is None:
            return None
        return _RESOLVERS[kind](self, entity, context)

    def resolve_guarded(
        self, entity: Entity, context: ResolutionContext
    ) -> tuple[str, list[DrawRecord]]:
        """Resolve one entity, converting every failure into a diagnostic."""
        try:
            records = self.resolve_entity(entity, context)
        except ResolveError as exc:
            logger.debug("%s %s dropped: %s", entity.dxftype, entity.handle, exc)
            self.report(exc.kind, entity, str(exc))
            return _ERROR, []
        except Exception as exc:
            logger.error(
                "failed to resolve %s %s: %s", entity.dxftype, entity.handle, exc, exc_info=True
            )
            self.report(DiagnosticKind.RESOLVER_ERROR, entity, f"{type(exc).__name__}: {exc}")
            return _ERROR, []
        if records is None:
            logger.debug("no resolver for %s %s", entity.dxftype, entity.handle)
            self.report(DiagnosticKind.UNSUPPORTED_TYPE, entity, f"unsupported entity type {entity.dxftype}")
            return _SKIPPED, []
        return _RESOLVED, records

    def report(self, kind: DiagnosticKind, entity: Entity, message: str) -> None:
        self.diagnostics.append(
            Diagnostic(kind=kind, handle=entity.handle, dxftype=entity.dxftype, message=message)
        )

    def color(self, entity: Entity, context: ResolutionContext, default: int | None = None) -> int:
        if self.options.monochrome_color is not None:
            return self.options.monochrome_color
        fallback = self.options.default_color if default is None else default
        return resolve_color(entity, self.layers, context, fallback)

    def resolve_insert(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        dxf = entity.dxf
        name = str(dxf.get("name") or "").strip()
        if not name:
            raise MalformedEntityError("block reference without a block name")

        insert_point = _point(entity, "insert", default=(0.0, 0.0, 0.0))
        xscale = _number(entity, "xscale", 1.0)
        yscale = _number(entity, "yscale", xscale)
        zscale = _number(entity, "zscale", 1.0)
        rotation = math.radians(_number(entity, "rotation", 0.0))

        block = self.drawing.find_block(name)
        instance = compose_insert_transform(
            insert_point,
            block.base_point if block is not None else None,
            (xscale, yscale, zscale),
            rotation,
            _extrusion(entity),
            apply_base_point_offset=self.options.apply_base_point_offset,
        )

        if block is None:
            logger.warning("block %r referenced by %s is not defined", name, entity.handle)
            self.report(DiagnosticKind.UNRESOLVABLE_REFERENCE, entity, f"undefined block {name!r}")
            return [self._placeholder(entity, insert_point, context)]

        if block.name != name:
            log_once(
                logger,
                f"block-case:{name}",
                logging.WARNING,
                "block %r matched case-insensitively to %r",
                name,
                block.name,
            )

        records = self._expand_block(entity, block, instance, context)

        rows = max(1, int(_number(entity, "row_count", 1)))
        columns = max(1, int(_number(entity, "column_count", 1)))
        row_spacing = _number(entity, "row_spacing", 0.0)
        column_spacing = _number(entity, "column_spacing", 0.0)
        if (rows > 1 or columns > 1) and (row_spacing or column_spacing):
            return self._replicate(
                records,
                context.transform,
                array_instance_transforms(
                    instance,
                    rows,
                    columns,
                    row_spacing * yscale,
                    column_spacing * xscale,
                ),
            )
        return records

    def _expand_block(
        self,
        entity: Entity,
        block: BlockDefinition,
        instance: Matrix44,
        context: ResolutionContext,
    ) -> list[DrawRecord]:
        if context.is_expanding(block.name):
            logger.warning("cyclic reference to block %r at %s", block.name, entity.handle)
            raise CyclicBlockReferenceError(f"block {block.name!r} references itself")
        if context.depth >= self.options.max_block_depth:
            raise ResolveError(f"block nesting deeper than {self.options.max_block_depth}")
        inherited = self.color(entity, context)
        return self._resolve_block(block, context.enter_block(block.name, instance, inherited))

    def _resolve_block(self, block: BlockDefinition, context: ResolutionContext) -> list[DrawRecord]:
        records: list[DrawRecord] = []
        for child in block.entities:
            _, child_records = self.resolve_guarded(child, context)
            records.extend(child_records)
        return records

    def _replicate(
        self,
        records: list[DrawRecord],
        parent: Matrix44,
        cells: Sequence[Matrix44],
    ) -> list[DrawRecord]:
        origin = transform_point(compose_nested(parent, cells[0]), (0.0, 0.0, 0.0))
        out = list(records)
        for cell in cells[1:]:
            moved = transform_point(compose_nested(parent, cell), (0.0, 0.0, 0.0))
            offset = (moved[0] - origin[0], moved[1] - origin[1], moved[2] - origin[2])
            out.extend(record.translated(offset) for record in records)
        return out

    def _placeholder(
        self,
        entity: Entity,
        insert_point: Sequence[float],
        context: ResolutionContext,
    ) -> DrawRecord:
        half = self.options.placeholder_size / 2.0
        x, y, z = insert_point[0], insert_point[1], insert_point[2]
        corners = [
            (x - half, y - half, z),
            (x + half, y - half, z),
            (x + half, y + half, z),
            (x - half, y + half, z),
        ]
        color = self.options.placeholder_color
        if self.options.monochrome_color is not None:
            color = self.options.monochrome_color
        return DrawRecord(
            layer=entity.layer,
            geometry=Polyline(tuple(transform_points(context.transform, corners)), closed=True),
            color=color,
            source_handle=entity.handle,
            dxftype=entity.dxftype,
            placeholder=True,
        )

    def _record(
        self,
        entity: Entity,
        geometry: Geometry,
        context: ResolutionContext,
        default: int | None = None,
    ) -> DrawRecord:
        return DrawRecord(
            layer=entity.layer,
            geometry=geometry,
            color=self.color(entity, context, default),
            source_handle=entity.handle,
            dxftype=entity.dxftype,
        )

    def _ocs_matrix(self, entity: Entity, context: ResolutionContext) -> Matrix44:
        return multiply(context.transform, ocs_to_wcs_matrix(_extrusion(entity)))

    def _resolve_line(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        points = [_point(entity, "start"), _point(entity, "end")]
        geometry = Polyline(tuple(transform_points(context.transform, points)))
        return [self._record(entity, geometry, context)]

    def _resolve_arc(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        center = _point(entity, "center")
        radius = _radius(entity)
        start = math.radians(_number(entity, "start_angle", 0.0))
        end = math.radians(_number(entity, "end_angle", 360.0))
        if abs(normalize_sweep(start, end)) < 1.0e-12:
            raise DegenerateGeometryError("arc with zero sweep")
        points = sample_arc(center, radius, start, end, True, self.options.arc_segments)
        geometry = Polyline(tuple(transform_points(self._ocs_matrix(entity, context), points)))
        return [self._record(entity, geometry, context)]

    def _resolve_circle(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        center = _point(entity, "center")
        radius = _radius(entity)
        points = sample_arc(center, radius, 0.0, TAU, True, self.options.arc_segments)[:-1]
        geometry = Polyline(
            tuple(transform_points(self._ocs_matrix(entity, context), points)), closed=True
        )
        return [self._record(entity, geometry, context)]

    def _resolve_ellipse(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        extrusion = _extrusion(entity)
        center = wcs_to_ocs(_point(entity, "center"), extrusion)
        major = wcs_to_ocs(_point(entity, "major_axis"), extrusion)
        major_radius = math.hypot(major[0], major[1])
        ratio = _number(entity, "axis_ratio", 1.0)
        if major_radius <= 0.0 or ratio <= 0.0:
            raise DegenerateGeometryError("ellipse with zero axis")
        start = _number(entity, "start_angle", 0.0)
        end = _number(entity, "end_angle", TAU)
        sweep = normalize_sweep(start, end)
        full = abs(sweep) < 1.0e-12 or abs(sweep - TAU) < 1.0e-9

        points = sample_ellipse(
            center,
            major_radius,
            major_radius * ratio,
            math.atan2(major[1], major[0]),
            start,
            end,
            self.options.arc_segments,
        )
        if full:
            points = points[:-1]
        geometry = Polyline(
            tuple(transform_points(self._ocs_matrix(entity, context), points)), closed=full
        )
        return [self._record(entity, geometry, context)]

    def _resolve_lwpolyline(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        dxf = entity.dxf
        elevation = _number(entity, "elevation", 0.0)
        vertices = _point_list(entity, "points", elevation)
        if len(vertices) < 2:
            raise MalformedEntityError("polyline needs at least 2 vertices")
        closed = bool(dxf.get("closed"))
        points = expand_bulges(vertices, dxf.get("bulges"), closed, elevation)
        geometry = Polyline(
            tuple(transform_points(self._ocs_matrix(entity, context), points)), closed=closed
        )
        return [self._record(entity, geometry, context)]

    def _resolve_polyline_3d(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        points = _point_list(entity, "points")
        if len(points) < 2:
            raise MalformedEntityError("polyline needs at least 2 vertices")
        geometry = Polyline(
            tuple(transform_points(context.transform, points)), closed=bool(entity.dxf.get("closed"))
        )
        return [self._record(entity, geometry, context)]

    def _resolve_spline(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        geometry = Polyline(tuple(transform_points(context.transform, self._spline_points(entity.dxf))))
        return [self._record(entity, geometry, context)]

    def _spline_points(self, data: Mapping[str, Any]) -> list[tuple[float, float, float]]:
        control_points = _as_points(data.get("control_points"))
        if len(control_points) >= 2:
            samples = max(
                self.options.min_spline_samples,
                len(control_points) * self.options.spline_samples_per_point,
            )
            degree = int(data.get("degree") or 3)
            return evaluate_bspline(control_points, data.get("knots"), degree, samples)
        fit_points = _as_points(data.get("fit_points"))
        if len(fit_points) >= 2:
            return fit_points
        raise MalformedEntityError("spline needs at least 2 control points or fit points")

    def _resolve_hatch(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        dxf = entity.dxf
        paths = dxf.get("paths") or []
        if not paths:
            raise MalformedEntityError("hatch without boundary paths")
        elevation = _number(entity, "elevation", 0.0)
        matrix = self._ocs_matrix(entity, context)
        fill_default = self.options.fill_default_color

        loops = []
        for index, path in enumerate(paths):
            try:
                loops.append(self._hatch_loop(path))
            except DegenerateGeometryError as exc:
                logger.debug("hatch %s boundary path %d dropped: %s", entity.handle, index, exc)
                self.report(exc.kind, entity, f"boundary path {index}: {exc}")
        if not loops:
            raise DegenerateGeometryError("hatch has no usable boundary path")

        if not dxf.get("solid_fill"):
            records = []
            for loop in loops:
                if len(loop) < 3:
                    continue
                points = [(x, y, elevation) for x, y in loop]
                geometry = Polyline(tuple(transform_points(matrix, points)), closed=True)
                records.append(self._record(entity, geometry, context, fill_default))
            return records

        style = int(_number(entity, "hatch_style", 0))
        vertices, triangles = triangulate_nested(build_nesting(loops), style)
        if not triangles:
            logger.debug("hatch %s produced no fill triangles", entity.handle)
            return []
        points = [(x, y, elevation) for x, y in vertices]
        geometry = Mesh(vertices=tuple(transform_points(matrix, points)), triangles=tuple(triangles))
        return [self._record(entity, geometry, context, fill_default)]

    def _hatch_loop(self, path: Mapping[str, Any]) -> list[tuple[float, float]]:
        if path.get("edges"):
            out: list[tuple[float, float]] = []
            for edge in path["edges"]:
                for x, y, _ in self._hatch_edge_points(edge):
                    if out and math.hypot(x - out[-1][0], y - out[-1][1]) < _HATCH_JOIN_EPSILON:
                        continue
                    out.append((x, y))
            return out
        points = _as_points(path.get("points"))
        return [(x, y) for x, y, _ in expand_bulges(points, path.get("bulges"), closed=True)]

    def _hatch_edge_points(self, edge: Mapping[str, Any]) -> list[tuple[float, float, float]]:
        edge_type = str(edge.get("type") or "").upper()
        segments = self.options.hatch_arc_segments
        if edge_type == "LINE":
            return [point3(edge.get("start")), point3(edge.get("end"))]
        if edge_type == "ARC":
            radius = _edge_float(edge, "radius", 0.0)
            if radius <= 0.0:
                raise DegenerateGeometryError("hatch arc edge with non-positive radius")
            return sample_arc(
                point3(edge.get("center")),
                radius,
                math.radians(_edge_float(edge, "start_angle", 0.0)),
                math.radians(_edge_float(edge, "end_angle", 360.0)),
                bool(edge.get("ccw", True)),
                segments,
            )
        if edge_type == "ELLIPSE":
            major = point3(edge.get("major_axis"))
            major_radius = math.hypot(major[0], major[1])
            if major_radius <= 0.0:
                raise DegenerateGeometryError("hatch ellipse edge with zero major axis")
            return sample_ellipse(
                point3(edge.get("center")),
                major_radius,
                major_radius * _edge_float(edge, "ratio", 1.0),
                math.atan2(major[1], major[0]),
                math.radians(_edge_float(edge, "start_angle", 0.0)),
                math.radians(_edge_float(edge, "end_angle", 360.0)),
                segments,
                bool(edge.get("ccw", True)),
            )
        if edge_type == "SPLINE":
            fit_points = _as_points(edge.get("fit_points"))
            if len(fit_points) >= 2 and not edge.get("control_points"):
                return fit_points
            return self._spline_points(edge)
        raise MalformedEntityError(f"unknown hatch edge type {edge_type!r}")

    def _resolve_point(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        location = transform_point(context.transform, _point(entity, "location"))
        return [self._record(entity, Polyline((location,)), context)]

    def _resolve_solid(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        elevation = _number(entity, "elevation", 0.0)
        v0 = _point(entity, "vtx0", z=elevation)
        v1 = _point(entity, "vtx1", z=elevation)
        v2 = _point(entity, "vtx2", z=elevation)
        v3 = _point(entity, "vtx3", z=elevation, default=v2)

        # third and fourth corners are stored crosswise
        vertices = [v0, v1, v3, v2]
        triangles: list[tuple[int, int, int]] = [(0, 1, 2)]
        if v3 != v2:
            triangles.append((0, 2, 3))
        geometry = Mesh(
            vertices=tuple(transform_points(self._ocs_matrix(entity, context), vertices)),
            triangles=tuple(triangles),
        )
        return [self._record(entity, geometry, context)]

    def _resolve_face3d(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        v0 = _point(entity, "vtx0")
        v1 = _point(entity, "vtx1")
        v2 = _point(entity, "vtx2")
        v3 = _point(entity, "vtx3", default=v2)
        corners = transform_points(context.transform, [v0, v1, v2, v3])
        flags = int(_number(entity, "invisible_edges", 0))

        visible = [i for i in range(4) if not flags & (1 << i)]
        if len(visible) in (0, 4):
            return [self._record(entity, Polyline(tuple(corners), closed=True), context)]
        return [
            self._record(entity, Polyline((corners[i], corners[(i + 1) % 4])), context)
            for i in visible
        ]

    def _resolve_ray(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        start, direction = self._ray_axis(entity)
        length = self.options.ray_length
        end = tuple(start[i] + direction[i] * length for i in range(3))
        geometry = Polyline(tuple(transform_points(context.transform, [start, end])))
        return [self._record(entity, geometry, context)]

    def _resolve_xline(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        start, direction = self._ray_axis(entity)
        length = self.options.ray_length
        a = tuple(start[i] - direction[i] * length for i in range(3))
        b = tuple(start[i] + direction[i] * length for i in range(3))
        geometry = Polyline(tuple(transform_points(context.transform, [a, b])))
        return [self._record(entity, geometry, context)]

    def _ray_axis(self, entity: Entity) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
        start = _point(entity, "start")
        try:
            direction = normalize(_point(entity, "unit_vector"))
        except ValueError as exc:
            raise DegenerateGeometryError(str(exc)) from exc
        return start, direction

    def _resolve_dimension(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        name = str(entity.dxf.get("name") or "").strip()
        if not name:
            raise MalformedEntityError("dimension without a geometry block")
        block = self.drawing.find_block(name)
        if block is None:
            raise UnresolvableReferenceError(f"undefined dimension block {name!r}")
        # block geometry is stored in WCS; only a flipped extrusion mirrors it
        extrusion = _extrusion(entity)
        instance = IDENTITY
        if extrusion[2] < 0.0 and is_default_extrusion((-extrusion[0], -extrusion[1], -extrusion[2])):
            instance = scaling(-1.0, 1.0, 1.0)
        return self._expand_block(entity, block, instance, context)

    def _resolve_leader(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        vertices = _point_list(entity, "vertices")
        if len(vertices) < 2:
            raise MalformedEntityError("leader needs at least 2 vertices")
        if entity.dxf.get("is_spline") and len(vertices) > 2:
            samples = max(
                self.options.min_spline_samples,
                len(vertices) * self.options.spline_samples_per_point,
            )
            path = evaluate_bspline(vertices, None, min(3, len(vertices) - 1), samples)
        else:
            path = vertices
        records = [
            self._record(entity, Polyline(tuple(transform_points(context.transform, path))), context)
        ]
        if entity.dxf.get("has_arrowhead", True):
            arrow = self._arrowhead(vertices[0], vertices[1])
            if arrow is not None:
                geometry = Mesh(
                    vertices=tuple(transform_points(context.transform, arrow)),
                    triangles=((0, 1, 2),),
                )
                records.append(self._record(entity, geometry, context))
        return records

    def _arrowhead(
        self, tip: Sequence[float], base: Sequence[float]
    ) -> list[tuple[float, float, float]] | None:
        try:
            dx, dy, _ = normalize((tip[0] - base[0], tip[1] - base[1], 0.0))
        except ValueError:
            logger.debug("leader arrowhead skipped: first segment has no planar direction")
            return None
        length = self.options.leader_arrow_size
        width = length / 4.0
        back = (tip[0] - dx * length, tip[1] - dy * length)
        return [
            (tip[0], tip[1], tip[2]),
            (back[0] - dy * width, back[1] + dx * width, tip[2]),
            (back[0] + dy * width, back[1] - dx * width, tip[2]),
        ]

    def _resolve_wipeout(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        boundary = _point_list(entity, "boundary")
        if len(boundary) < 3:
            boundary = self._wipeout_frame(entity)
        elevation = boundary[0][2]
        loop = [(x, y) for x, y, _ in boundary]
        vertices, triangles = triangulate_nested(build_nesting([loop]))
        if not triangles:
            raise DegenerateGeometryError("wipeout boundary encloses no area")
        points = [(x, y, elevation) for x, y in vertices]
        color = self.options.wipeout_color
        if self.options.monochrome_color is not None:
            color = self.options.monochrome_color
        return [
            DrawRecord(
                layer=entity.layer,
                geometry=Mesh(
                    vertices=tuple(transform_points(context.transform, points)),
                    triangles=tuple(triangles),
                ),
                color=color,
                source_handle=entity.handle,
                dxftype=entity.dxftype,
            )
        ]

    def _wipeout_frame(self, entity: Entity) -> list[tuple[float, float, float]]:
        origin = _point(entity, "insert")
        u = _point(entity, "u_pixel")
        v = _point(entity, "v_pixel")
        size = _point(entity, "image_size", default=(1.0, 1.0, 0.0))
        u = (u[0] * size[0], u[1] * size[0], u[2] * size[0])
        v = (v[0] * size[1], v[1] * size[1], v[2] * size[1])
        return [
            origin,
            (origin[0] + u[0], origin[1] + u[1], origin[2] + u[2]),
            (origin[0] + u[0] + v[0], origin[1] + u[1] + v[1], origin[2] + u[2] + v[2]),
            (origin[0] + v[0], origin[1] + v[1], origin[2] + v[2]),
        ]

    def _resolve_mline(self, entity: Entity, context: ResolutionContext) -> list[DrawRecord]:
        vertices = entity.dxf.get("vertices") or []
        if len(vertices) < 2:
            raise MalformedEntityError("multiline needs at least 2 vertices")
        try:
            locations = [point3(vertex["location"]) for vertex in vertices]
            miters = [point3(vertex.get("miter_direction") or (0.0, 0.0, 0.0)) for vertex in vertices]
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedEntityError(f"invalid multiline vertex: {exc}") from exc

        closed = bool(entity.dxf.get("closed"))
        records = []
        for offset in self._mline_offsets(entity):
            points = [
                (p[0] + m[0] * offset, p[1] + m[1] * offset, p[2] + m[2] * offset)
                for p, m in zip(locations, miters)
            ]
            geometry = Polyline(tuple(transform_points(context.transform, points)), closed=closed)
            records.append(self._record(entity, geometry, context))
        return records

    def _mline_offsets(self, entity: Entity) -> list[float]:
        scale = _number(entity, "scale", 1.0)
        offsets = entity.dxf.get("offsets")
        if offsets:
            try:
                return [float(offset) * scale for offset in offsets]
            except (TypeError, ValueError) as exc:
                raise MalformedEntityError(f"invalid multiline offsets: {offsets!r}") from exc
        count = max(1, int(_number(entity, "line_count", 1)))
        # no style: lines spread evenly around the centerline
        spacing = scale * 0.5
        center = (count - 1) / 2.0
        return [(index - center) * spacing for index in range(count)]


Resolver = Callable[[EntityDispatcher, Entity, ResolutionContext], list[DrawRecord]]

_RESOLVERS: dict[EntityKind, Resolver] = {
    EntityKind.LINE: EntityDispatcher._resolve_line,
    EntityKind.ARC: EntityDispatcher._resolve_arc,
    EntityKind.CIRCLE: EntityDispatcher._resolve_circle,
    EntityKind.ELLIPSE: EntityDispatcher._resolve_ellipse,
    EntityKind.LWPOLYLINE: EntityDispatcher._resolve_lwpolyline,
    EntityKind.POLYLINE_2D: EntityDispatcher._resolve_lwpolyline,
    EntityKind.POLYLINE_3D: EntityDispatcher._resolve_polyline_3d,
    EntityKind.SPLINE: EntityDispatcher._resolve_spline,
    EntityKind.HATCH: EntityDispatcher._resolve_hatch,
    EntityKind.INSERT: EntityDispatcher.resolve_insert,
    EntityKind.POINT: EntityDispatcher._resolve_point,
    EntityKind.SOLID: EntityDispatcher._resolve_solid,
    EntityKind.TRACE: EntityDispatcher._resolve_solid,
    EntityKind.FACE3D: EntityDispatcher._resolve_face3d,
    EntityKind.RAY: EntityDispatcher._resolve_ray,
    EntityKind.XLINE: EntityDispatcher._resolve_xline,
    EntityKind.DIMENSION: EntityDispatcher._resolve_dimension,
    EntityKind.LEADER: EntityDispatcher._resolve_leader,
    EntityKind.WIPEOUT: EntityDispatcher._resolve_wipeout,
    EntityKind.MLINE: EntityDispatcher._resolve_mline,
}


def _verify_registry(registry: Mapping[Any, Resolver]) -> None:
    missing = [kind.value for kind in EntityKind if kind not in registry]
    extra = [str(key) for key in registry if not isinstance(key, EntityKind)]
    if missing or extra:
        raise RuntimeError(f"resolver registry mismatch: missing={missing} extra={extra}")


_verify_registry(_RESOLVERS)


def resolve_drawing(
    drawing: Drawing,
    options: ResolveOptions | None = None,
    types: str | Iterable[str] | None = None,
) -> ResolveResult:
    """Resolve every top-level entity of ``drawing`` in input order."""
    dispatcher = EntityDispatcher(drawing, options)
    context = dispatcher.root_context()

    records: list[DrawRecord] = []
    skipped_by_type: dict[str, int] = {}
    total = 0
    resolved = 0
    skipped = 0
    errors = 0
    for entity in drawing.query(types):
        total += 1
        status, entity_records = dispatcher.resolve_guarded(entity, context)
        if status == _RESOLVED:
            resolved += 1
            records.extend(entity_records)
        elif status == _SKIPPED:
            skipped += 1
            skipped_by_type[entity.dxftype] = skipped_by_type.get(entity.dxftype, 0) + 1
        else:
            errors += 1

    logger.debug(
        "resolved %d of %d entities (%d skipped, %d errors)", resolved, total, skipped, errors
    )
    return ResolveResult(
        records=tuple(records),
        diagnostics=tuple(dispatcher.diagnostics),
        total_entities=total,
        resolved_entities=resolved,
        skipped_entities=skipped,
        error_entities=errors,
        skipped_by_type=skipped_by_type,
    )


def _point(
    entity: Entity,
    key: str,
    z: float = 0.0,
    default: Sequence[float] | None = None,
) -> tuple[float, float, float]:
    value = entity.dxf.get(key)
    if value is None:
        if default is None:
            raise MalformedEntityError(f"missing {key}")
        return point3(default, z)
    try:
        return point3(value, z)
    except (TypeError, ValueError) as exc:
        raise MalformedEntityError(f"invalid {key}: {value!r}") from exc


def _number(entity: Entity, key: str, default: float) -> float:
    value = entity.dxf.get(key)
    if value is None:
        return float(default)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise MalformedEntityError(f"invalid {key}: {value!r}") from exc


def _radius(entity: Entity) -> float:
    if entity.dxf.get("radius") is None:
        raise MalformedEntityError("missing radius")
    radius = _number(entity, "radius", 0.0)
    if radius <= 0.0:
        raise DegenerateGeometryError(f"non-positive radius {radius}")
    return radius


def _point_list(entity: Entity, key: str, z: float = 0.0) -> list[tuple[float, float, float]]:
    try:
        return _as_points(entity.dxf.get(key), z)
    except (TypeError, ValueError) as exc:
        raise MalformedEntityError(f"invalid {key}") from exc


def _as_points(values: Any, z: float = 0.0) -> list[tuple[float, float, float]]:
    if not values:
        return []
    return [point3(value, z) for value in values]


def _edge_float(edge: Mapping[str, Any], key: str, default: float) -> float:
    value = edge.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise MalformedEntityError(f"invalid hatch edge {key}: {value!r}") from exc


def _extrusion(entity: Entity) -> tuple[float, float, float]:
    try:
        extrusion = entity.extrusion
        normalize(extrusion)
    except (TypeError, ValueError) as exc:
        raise MalformedEntityError(f"invalid extrusion: {exc}") from exc
    return extrusion
