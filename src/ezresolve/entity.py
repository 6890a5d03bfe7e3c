from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping

Point3D = tuple[float, float, float]

DEFAULT_LAYER = "0"
DEFAULT_EXTRUSION: Point3D = (0.0, 0.0, 1.0)


@dataclass(frozen=True)
class Entity:
    dxftype: str
    handle: str
    dxf: dict[str, Any]

    @property
    def layer(self) -> str:
        value = self.dxf.get("layer")
        if value is None or str(value) == "":
            return DEFAULT_LAYER
        return str(value)

    @property
    def extrusion(self) -> Point3D:
        value = self.dxf.get("extrusion")
        if value is None:
            return DEFAULT_EXTRUSION
        return point3(value)


@dataclass(frozen=True)
class LayerEntry:
    name: str
    frozen: bool = False
    off: bool = False
    locked: bool = False
    true_color: int | None = None
    color_index: int | None = None
    color: int | None = None

    @property
    def visible(self) -> bool:
        return not (self.frozen or self.off)


@dataclass(frozen=True)
class BlockDefinition:
    name: str
    base_point: Point3D = (0.0, 0.0, 0.0)
    entities: tuple[Entity, ...] = ()


@dataclass(frozen=True)
class Drawing:
    """Decoded drawing content: top-level entities, layer table and blocks.

    Layers hidden by the frozen/off flags are expected to be filtered out of
    ``entities`` by whoever builds the drawing; the layer table itself stays
    complete because color resolution needs every entry.
    """

    entities: tuple[Entity, ...] = ()
    layers: tuple[LayerEntry, ...] = ()
    blocks: Mapping[str, BlockDefinition] = field(default_factory=dict)

    def layer_map(self) -> dict[str, LayerEntry]:
        return {layer.name: layer for layer in self.layers}

    def find_block(self, name: str) -> BlockDefinition | None:
        block = self.blocks.get(name)
        if block is not None:
            return block
        lowered = name.lower()
        for block_name, candidate in self.blocks.items():
            if block_name.lower() == lowered:
                return candidate
        return None

    def query(self, types: str | Iterable[str] | None = None) -> Iterator[Entity]:
        selected = _normalize_types(types, {entity.dxftype for entity in self.entities})
        if selected is None:
            yield from self.entities
            return
        for entity in self.entities:
            if entity.dxftype.upper() in selected:
                yield entity


def point3(value: Any, z: float = 0.0) -> Point3D:
    if value is None:
        return (0.0, 0.0, z)
    if isinstance(value, (list, tuple)):
        if len(value) >= 3:
            return (float(value[0]), float(value[1]), float(value[2]))
        if len(value) >= 2:
            return (float(value[0]), float(value[1]), z)
    try:
        return (float(value.x), float(value.y), float(getattr(value, "z", z)))
    except AttributeError:
        pass
    raise ValueError(f"invalid point value: {value!r}")


def _normalize_types(
    types: str | Iterable[str] | None, present: set[str]
) -> set[str] | None:
    if types is None:
        return None
    if isinstance(types, str):
        tokens = re.split(r"[,\s]+", types.strip())
    else:
        tokens = list(types)

    normalized = [token.strip().upper() for token in tokens if token and token.strip()]
    if not normalized:
        return None
    if any(token in {"*", "ALL"} for token in normalized):
        return None

    candidates = sorted(name.upper() for name in present)
    selected: set[str] = set()
    for token in normalized:
        if any(ch in token for ch in "*?[]"):
            selected.update(name for name in candidates if fnmatch.fnmatchcase(name, token))
            continue
        selected.add(token)
    return selected
