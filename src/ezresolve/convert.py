"""ezdxf adapters: DXF documents in, flattened resolved geometry out."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from .dispatch import resolve_drawing
from .entity import BlockDefinition, Drawing, Entity, LayerEntry, point3
from .options import ResolveOptions
from .records import Mesh, Polyline, ResolveResult

logger = logging.getLogger(__name__)

_LAYOUT_BLOCK_PREFIXES = ("*MODEL_SPACE", "*PAPER_SPACE")


@dataclass(frozen=True)
class ConvertResult:
    source_path: str
    output_path: str
    total_entities: int
    resolved_entities: int
    skipped_entities: int
    error_entities: int
    written_records: int
    skipped_by_type: dict[str, int]


def read_dxf(source: str | Path | Any) -> Drawing:
    """Build a ``Drawing`` from a DXF file path or an ezdxf document.

    Entities on frozen or off layers are left out; the layer table is kept
    whole for color resolution.
    """
    ezdxf = _require_ezdxf()
    doc = ezdxf.readfile(str(source)) if isinstance(source, (str, Path)) else source

    layers = tuple(_layer_entry(layer) for layer in doc.layers)
    hidden = {layer.name for layer in layers if not layer.visible}

    blocks: dict[str, BlockDefinition] = {}
    for block in doc.blocks:
        name = str(block.name)
        if name.upper().startswith(_LAYOUT_BLOCK_PREFIXES):
            continue
        base_point = point3(block.block.dxf.get("base_point", (0.0, 0.0, 0.0)))
        blocks[name] = BlockDefinition(
            name=name,
            base_point=base_point,
            entities=tuple(_convert_entities(block, hidden)),
        )

    return Drawing(
        entities=tuple(_convert_entities(doc.modelspace(), hidden)),
        layers=layers,
        blocks=blocks,
    )


def to_dxf(
    result: ResolveResult,
    output_path: str,
    *,
    dxf_version: str = "R2010",
) -> int:
    """Write resolved draw records as POLYLINE/POINT/MESH entities; returns the written count."""
    ezdxf = _require_ezdxf()
    dxf_doc = ezdxf.new(dxfversion=dxf_version)
    modelspace = dxf_doc.modelspace()

    written = 0
    for record in result.records:
        try:
            _write_record(dxf_doc, modelspace, record)
        except Exception as exc:
            logger.warning("could not write record from %s %s: %s", record.dxftype, record.source_handle, exc)
            continue
        written += 1

    out_path = Path(output_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    dxf_doc.saveas(str(out_path))
    return written


def convert_file(
    input_path: str,
    output_path: str,
    *,
    types: str | Iterable[str] | None = None,
    dxf_version: str = "R2010",
    strict: bool = False,
    options: ResolveOptions | None = None,
) -> ConvertResult:
    """Resolve a DXF drawing and write the flattened geometry to a new DXF file."""
    drawing = read_dxf(input_path)
    result = resolve_drawing(drawing, options, types)

    failed = result.skipped_entities + result.error_entities
    if strict and failed > 0:
        summary = ", ".join(str(diagnostic) for diagnostic in result.diagnostics[:5])
        raise ValueError(f"failed to resolve {failed} entities ({summary})")

    written = to_dxf(result, output_path, dxf_version=dxf_version)
    return ConvertResult(
        source_path=str(input_path),
        output_path=str(Path(output_path)),
        total_entities=result.total_entities,
        resolved_entities=result.resolved_entities,
        skipped_entities=result.skipped_entities,
        error_entities=result.error_entities,
        written_records=written,
        skipped_by_type=dict(sorted(result.skipped_by_type.items())),
    )


def _require_ezdxf():
    try:
        import ezdxf
    except Exception as exc:
        raise ImportError(
            "ezdxf is required for reading and writing DXF files. "
            "Install it with `pip install ezdxf`."
        ) from exc
    return ezdxf


def _layer_entry(layer: Any) -> LayerEntry:
    dxf = layer.dxf
    true_color = dxf.get("true_color") if dxf.hasattr("true_color") else None
    return LayerEntry(
        name=str(dxf.name),
        frozen=bool(layer.is_frozen()),
        off=bool(layer.is_off()),
        locked=bool(layer.is_locked()),
        true_color=int(true_color) if true_color is not None else None,
        color_index=abs(int(dxf.get("color", 7))),
    )


def _convert_entities(layout: Iterable[Any], hidden_layers: set[str]) -> list[Entity]:
    out: list[Entity] = []
    for dxf_entity in layout:
        try:
            entity = _convert_entity(dxf_entity)
        except Exception as exc:
            logger.warning("could not read %s: %s", dxf_entity.dxftype(), exc)
            continue
        if entity.layer in hidden_layers:
            continue
        out.append(entity)
    return out


def _convert_entity(dxf_entity: Any) -> Entity:
    dxftype = str(dxf_entity.dxftype())
    attribs = dxf_entity.dxf
    data: dict[str, Any] = {
        "layer": str(attribs.get("layer", "0")),
        "color_index": int(attribs.get("color", 256)),
    }
    if attribs.hasattr("true_color"):
        data["true_color"] = int(attribs.get("true_color"))
    if attribs.hasattr("extrusion"):
        data["extrusion"] = point3(attribs.get("extrusion"))

    handle = str(attribs.get("handle", ""))
    reader = _READERS.get(dxftype)
    if reader is not None:
        dxftype = reader(dxf_entity, data) or dxftype
    return Entity(dxftype=dxftype, handle=handle, dxf=data)


def _read_line(e: Any, data: dict[str, Any]) -> None:
    data["start"] = point3(e.dxf.start)
    data["end"] = point3(e.dxf.end)


def _read_arc(e: Any, data: dict[str, Any]) -> None:
    _read_circle(e, data)
    data["start_angle"] = float(e.dxf.start_angle)
    data["end_angle"] = float(e.dxf.end_angle)


def _read_circle(e: Any, data: dict[str, Any]) -> None:
    data["center"] = point3(e.dxf.center)
    data["radius"] = float(e.dxf.radius)


def _read_ellipse(e: Any, data: dict[str, Any]) -> None:
    data["center"] = point3(e.dxf.center)
    data["major_axis"] = point3(e.dxf.major_axis)
    data["axis_ratio"] = float(e.dxf.ratio)
    data["start_angle"] = float(e.dxf.start_param)
    data["end_angle"] = float(e.dxf.end_param)


def _read_lwpolyline(e: Any, data: dict[str, Any]) -> None:
    rows = list(e.get_points("xyb"))
    data["points"] = [(float(x), float(y)) for x, y, _ in rows]
    data["bulges"] = [float(b) for _, _, b in rows]
    data["closed"] = bool(e.closed)
    data["elevation"] = float(e.dxf.get("elevation", 0.0))


def _read_polyline(e: Any, data: dict[str, Any]) -> str | None:
    if not (e.is_2d_polyline or e.is_3d_polyline):
        # polyface and polygon meshes have no resolver
        return "POLYFACE" if e.is_poly_face_mesh else "POLYMESH"
    vertices = list(e.vertices)
    data["is_3d"] = bool(e.is_3d_polyline)
    data["points"] = [point3(v.dxf.location) for v in vertices]
    data["bulges"] = [float(v.dxf.get("bulge", 0.0)) for v in vertices]
    data["closed"] = bool(e.is_closed)
    data["elevation"] = float(point3(e.dxf.get("elevation", (0.0, 0.0, 0.0)))[2])
    return None


def _read_spline(e: Any, data: dict[str, Any]) -> None:
    data["control_points"] = [point3(p) for p in e.control_points]
    data["knots"] = [float(k) for k in e.knots]
    data["degree"] = int(e.dxf.degree)
    data["fit_points"] = [point3(p) for p in e.fit_points]
    data["closed"] = bool(e.closed)


def _read_hatch(e: Any, data: dict[str, Any]) -> None:
    data["solid_fill"] = bool(e.dxf.solid_fill)
    data["hatch_style"] = int(e.dxf.get("hatch_style", 0))
    data["elevation"] = float(point3(e.dxf.get("elevation", (0.0, 0.0, 0.0)))[2])
    paths: list[dict[str, Any]] = []
    for path in e.paths:
        if hasattr(path, "vertices"):
            rows = list(path.vertices)
            paths.append(
                {
                    "points": [(float(row[0]), float(row[1])) for row in rows],
                    "bulges": [float(row[2]) if len(row) > 2 else 0.0 for row in rows],
                }
            )
            continue
        edges = [edge for edge in (_hatch_edge(item) for item in path.edges) if edge is not None]
        paths.append({"edges": edges})
    data["paths"] = paths


def _hatch_edge(edge: Any) -> dict[str, Any] | None:
    kind = type(edge).__name__
    if kind == "LineEdge":
        return {"type": "LINE", "start": point3(edge.start), "end": point3(edge.end)}
    if kind == "ArcEdge":
        ccw = bool(edge.ccw)
        start, end = float(edge.start_angle), float(edge.end_angle)
        if not ccw:
            # clockwise edges store mirrored angles
            start, end = 360.0 - start, 360.0 - end
        return {
            "type": "ARC",
            "center": point3(edge.center),
            "radius": float(edge.radius),
            "start_angle": start,
            "end_angle": end,
            "ccw": ccw,
        }
    if kind == "EllipseEdge":
        ccw = bool(edge.ccw)
        start, end = float(edge.start_angle), float(edge.end_angle)
        if not ccw:
            start, end = 360.0 - start, 360.0 - end
        return {
            "type": "ELLIPSE",
            "center": point3(edge.center),
            "major_axis": point3(edge.major_axis),
            "ratio": float(edge.ratio),
            "start_angle": start,
            "end_angle": end,
            "ccw": ccw,
        }
    if kind == "SplineEdge":
        return {
            "type": "SPLINE",
            "control_points": [point3(p) for p in edge.control_points],
            "knots": [float(k) for k in edge.knot_values],
            "degree": int(edge.degree),
            "fit_points": [point3(p) for p in edge.fit_points],
        }
    logger.debug("ignoring hatch edge %s", kind)
    return None


def _read_insert(e: Any, data: dict[str, Any]) -> None:
    dxf = e.dxf
    data["name"] = str(dxf.name)
    data["insert"] = point3(dxf.insert)
    data["xscale"] = float(dxf.get("xscale", 1.0))
    data["yscale"] = float(dxf.get("yscale", 1.0))
    data["zscale"] = float(dxf.get("zscale", 1.0))
    data["rotation"] = float(dxf.get("rotation", 0.0))
    data["row_count"] = int(dxf.get("row_count", 1))
    data["column_count"] = int(dxf.get("column_count", 1))
    data["row_spacing"] = float(dxf.get("row_spacing", 0.0))
    data["column_spacing"] = float(dxf.get("column_spacing", 0.0))


def _read_point(e: Any, data: dict[str, Any]) -> None:
    data["location"] = point3(e.dxf.location)


def _read_quad(e: Any, data: dict[str, Any]) -> None:
    for key in ("vtx0", "vtx1", "vtx2", "vtx3"):
        if e.dxf.hasattr(key):
            data[key] = point3(e.dxf.get(key))


def _read_face3d(e: Any, data: dict[str, Any]) -> None:
    _read_quad(e, data)
    data["invisible_edges"] = int(e.dxf.get("invisible_edges", 0))


def _read_ray(e: Any, data: dict[str, Any]) -> None:
    data["start"] = point3(e.dxf.start)
    data["unit_vector"] = point3(e.dxf.unit_vector)


def _read_dimension(e: Any, data: dict[str, Any]) -> None:
    data["name"] = str(e.dxf.get("geometry", ""))


def _read_leader(e: Any, data: dict[str, Any]) -> None:
    data["vertices"] = [point3(v) for v in e.vertices]
    data["has_arrowhead"] = bool(e.dxf.get("has_arrowhead", 1))
    data["is_spline"] = int(e.dxf.get("path_type", 0)) == 1


def _read_wipeout(e: Any, data: dict[str, Any]) -> None:
    dxf = e.dxf
    data["insert"] = point3(dxf.insert)
    data["u_pixel"] = point3(dxf.u_pixel)
    data["v_pixel"] = point3(dxf.v_pixel)
    data["image_size"] = point3(dxf.get("image_size", (1.0, 1.0)))
    data["boundary"] = [point3(p) for p in e.boundary_path_wcs()]


def _read_mline(e: Any, data: dict[str, Any]) -> None:
    data["vertices"] = [
        {"location": point3(v.location), "miter_direction": point3(v.miter_direction)}
        for v in e.vertices
    ]
    data["scale"] = float(e.dxf.get("scale_factor", 1.0))
    data["closed"] = bool(e.is_closed)
    data["line_count"] = int(e.dxf.get("style_element_count", 1))
    style = e.style
    if style is not None and len(style.elements):
        data["offsets"] = [float(element.offset) for element in style.elements]


_READERS = {
    "LINE": _read_line,
    "ARC": _read_arc,
    "CIRCLE": _read_circle,
    "ELLIPSE": _read_ellipse,
    "LWPOLYLINE": _read_lwpolyline,
    "POLYLINE": _read_polyline,
    "SPLINE": _read_spline,
    "HATCH": _read_hatch,
    "INSERT": _read_insert,
    "POINT": _read_point,
    "SOLID": _read_quad,
    "TRACE": _read_quad,
    "3DFACE": _read_face3d,
    "RAY": _read_ray,
    "XLINE": _read_ray,
    "DIMENSION": _read_dimension,
    "LEADER": _read_leader,
    "WIPEOUT": _read_wipeout,
    "MLINE": _read_mline,
}


def _write_record(dxf_doc: Any, modelspace: Any, record: Any) -> None:
    if record.layer not in dxf_doc.layers:
        dxf_doc.layers.add(record.layer)
    dxfattribs = {"layer": record.layer, "true_color": int(record.color) & 0xFFFFFF}

    geometry = record.geometry
    if isinstance(geometry, Mesh):
        mesh = modelspace.add_mesh(dxfattribs=dxfattribs)
        with mesh.edit_data() as mesh_data:
            mesh_data.vertices = list(geometry.vertices)
            mesh_data.faces = [list(triangle) for triangle in geometry.triangles]
        return
    if isinstance(geometry, Polyline):
        if len(geometry.points) == 1:
            modelspace.add_point(geometry.points[0], dxfattribs=dxfattribs)
            return
        modelspace.add_polyline3d(list(geometry.points), close=geometry.closed, dxfattribs=dxfattribs)
        return
    raise ValueError(f"unknown geometry {type(geometry).__name__}")

