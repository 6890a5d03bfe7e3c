from __future__ import annotations

from ezresolve.colors import (
    ACI_PALETTE,
    DEFAULT_COLOR,
    aci_to_rgb,
    bgr_to_rgb,
    is_valid_rgb,
    resolve_color,
    resolve_layer_color,
    rgb_to_hex,
)
from ezresolve.context import ResolutionContext
from ezresolve.entity import LayerEntry
from tests._helpers import make_entity


LAYERS = {
    "0": LayerEntry(name="0", color_index=7),
    "WALLS": LayerEntry(name="WALLS", color_index=3),
    "GLASS": LayerEntry(name="GLASS", color_index=1, true_color=0x123456),
    "RAW": LayerEntry(name="RAW", color=0x00AB12),
}


def test_palette_is_complete_and_starts_with_standard_colors() -> None:
    assert len(ACI_PALETTE) == 256
    assert ACI_PALETTE[1] == 0xFF0000
    assert ACI_PALETTE[2] == 0xFFFF00
    assert ACI_PALETTE[3] == 0x00FF00
    assert ACI_PALETTE[5] == 0x0000FF
    assert ACI_PALETTE[7] == 0xFFFFFF
    assert ACI_PALETTE[250] == 0x333333
    assert ACI_PALETTE[255] == 0xFFFFFF
    assert all(is_valid_rgb(color) for color in ACI_PALETTE)


def test_aci_index_1_resolves_to_red() -> None:
    entity = make_entity("LINE", color_index=1)
    assert resolve_color(entity, LAYERS) == 0xFF0000
    assert aci_to_rgb(1) == 0xFF0000


def test_bylayer_uses_layer_palette_color() -> None:
    entity = make_entity("LINE", layer="WALLS", color_index=256)
    assert resolve_color(entity, LAYERS) == 0x00FF00


def test_bylayer_prefers_layer_true_color() -> None:
    entity = make_entity("LINE", layer="GLASS", color_index=256)
    assert resolve_color(entity, LAYERS) == 0x123456


def test_layer_raw_color_is_used_when_no_index() -> None:
    assert resolve_layer_color("RAW", LAYERS) == 0x00AB12


def test_unknown_layer_falls_back_to_default() -> None:
    entity = make_entity("LINE", layer="MISSING", color_index=256)
    assert resolve_color(entity, LAYERS) == DEFAULT_COLOR
    assert resolve_layer_color("MISSING", LAYERS, default=0x010203) == 0x010203
    assert resolve_layer_color("0", None) == DEFAULT_COLOR


def test_true_color_wins_over_index() -> None:
    entity = make_entity("LINE", true_color=0xABCDEF, color_index=1)
    assert resolve_color(entity, LAYERS) == 0xABCDEF


def test_out_of_range_true_color_falls_through() -> None:
    entity = make_entity("LINE", true_color=0x1000000, color_index=1)
    assert resolve_color(entity, LAYERS) == 0xFF0000


def test_byblock_uses_inherited_color() -> None:
    entity = make_entity("LINE", layer="WALLS", color_index=0)
    context = ResolutionContext(inherited_color=0x112233)
    assert resolve_color(entity, LAYERS, context) == 0x112233


def test_byblock_without_inherited_color_uses_layer() -> None:
    entity = make_entity("LINE", layer="WALLS", color_index=0)
    assert resolve_color(entity, LAYERS, ResolutionContext()) == 0x00FF00
    assert resolve_color(entity, LAYERS, None) == 0x00FF00


def test_packed_color_is_reinterpreted_from_bgr() -> None:
    assert bgr_to_rgb(0x0000FF) == 0xFF0000
    assert bgr_to_rgb(0x123456) == 0x563412
    entity = make_entity("LINE", color=0x0000FF)
    assert resolve_color(entity, LAYERS) == 0xFF0000


def test_negative_index_uses_absolute_value() -> None:
    entity = make_entity("LINE", color_index=-1)
    assert resolve_color(entity, LAYERS) == 0xFF0000


def test_out_of_range_index_degrades_to_next_tier() -> None:
    with_packed = make_entity("LINE", layer="WALLS", color_index=300, color=0x0000FF)
    assert resolve_color(with_packed, LAYERS) == 0xFF0000

    without_packed = make_entity("LINE", layer="WALLS", color_index=300)
    assert resolve_color(without_packed, LAYERS) == 0x00FF00


def test_malformed_values_never_raise() -> None:
    entity = make_entity("LINE", layer="WALLS", true_color="bad", color_index=object(), color=None)
    assert resolve_color(entity, LAYERS) == 0x00FF00

    flag = make_entity("LINE", true_color=True)
    assert resolve_color(flag, {}) == DEFAULT_COLOR


def test_resolve_color_is_pure_for_every_index() -> None:
    context = ResolutionContext(inherited_color=0x445566)
    for index in list(range(0, 256)) + [256]:
        entity = make_entity("LINE", layer="WALLS", color_index=index)
        first = resolve_color(entity, LAYERS, context)
        second = resolve_color(entity, LAYERS, context)
        assert first == second
        assert is_valid_rgb(first)


def test_rgb_to_hex_masks_to_24_bits() -> None:
    assert rgb_to_hex(0xFF6600) == "#ff6600"
    assert rgb_to_hex(0x1000001) == "#000001"
