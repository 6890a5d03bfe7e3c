from __future__ import annotations

from enum import Enum


class DiagnosticKind(str, Enum):
    MALFORMED_ENTITY = "malformed-entity"
    UNRESOLVABLE_REFERENCE = "unresolvable-reference"
    DEGENERATE_GEOMETRY = "degenerate-geometry"
    CYCLIC_BLOCK_REFERENCE = "cyclic-block-reference"
    UNSUPPORTED_TYPE = "unsupported-type"
    RESOLVER_ERROR = "resolver-error"


class ResolveError(ValueError):
    kind: DiagnosticKind = DiagnosticKind.RESOLVER_ERROR


class MalformedEntityError(ResolveError):
    kind = DiagnosticKind.MALFORMED_ENTITY


class DegenerateGeometryError(ResolveError):
    kind = DiagnosticKind.DEGENERATE_GEOMETRY


class UnresolvableReferenceError(ResolveError):
    kind = DiagnosticKind.UNRESOLVABLE_REFERENCE


class CyclicBlockReferenceError(ResolveError):
    kind = DiagnosticKind.CYCLIC_BLOCK_REFERENCE
