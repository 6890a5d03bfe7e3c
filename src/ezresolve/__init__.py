from __future__ import annotations

from typing import Sequence

from .colors import ACI_PALETTE, aci_to_rgb, bgr_to_rgb, resolve_color, resolve_layer_color
from .context import ResolutionContext, root_context
from .convert import ConvertResult, convert_file, read_dxf, to_dxf
from .dispatch import EntityDispatcher, EntityKind, resolve_drawing
from .entity import BlockDefinition, Drawing, Entity, LayerEntry
from .errors import DiagnosticKind, ResolveError
from .options import ResolveOptions, load_options
from .records import Diagnostic, DrawRecord, Mesh, Polyline, ResolveResult

__all__ = [
    "ACI_PALETTE",
    "BlockDefinition",
    "ConvertResult",
    "Diagnostic",
    "DiagnosticKind",
    "DrawRecord",
    "Drawing",
    "Entity",
    "EntityDispatcher",
    "EntityKind",
    "LayerEntry",
    "Mesh",
    "Polyline",
    "ResolutionContext",
    "ResolveError",
    "ResolveOptions",
    "ResolveResult",
    "aci_to_rgb",
    "bgr_to_rgb",
    "convert_file",
    "load_options",
    "read_dxf",
    "resolve_color",
    "resolve_drawing",
    "resolve_layer_color",
    "root_context",
    "to_dxf",
]


def main(argv: Sequence[str] | None = None) -> int:
    from ezresolve.cli import main as cli_main

    return cli_main(argv)
