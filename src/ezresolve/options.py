"""
Resolution options.

Values can be overridden via ``EZRESOLVE_*`` environment variables; invalid
or out-of-range values fall back to the default instead of failing.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass

ENV_UNIT_SCALE = "EZRESOLVE_UNIT_SCALE"
ENV_BASE_POINT_OFFSET = "EZRESOLVE_BASE_POINT_OFFSET"
ENV_MONOCHROME_COLOR = "EZRESOLVE_MONOCHROME_COLOR"
ENV_ARC_SEGMENTS = "EZRESOLVE_ARC_SEGMENTS"
ENV_HATCH_ARC_SEGMENTS = "EZRESOLVE_HATCH_ARC_SEGMENTS"
ENV_MIN_SPLINE_SAMPLES = "EZRESOLVE_MIN_SPLINE_SAMPLES"
ENV_SPLINE_SAMPLES_PER_POINT = "EZRESOLVE_SPLINE_SAMPLES_PER_POINT"
ENV_RAY_LENGTH = "EZRESOLVE_RAY_LENGTH"
ENV_MAX_BLOCK_DEPTH = "EZRESOLVE_MAX_BLOCK_DEPTH"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ResolveOptions:
    unit_scale: float = 1.0
    apply_base_point_offset: bool = False
    monochrome_color: int | None = None
    arc_segments: int = 64
    hatch_arc_segments: int = 32
    min_spline_samples: int = 50
    spline_samples_per_point: int = 10
    ray_length: float = 10000.0
    max_block_depth: int = 64
    placeholder_size: float = 2.0
    placeholder_color: int = 0xFF6600
    default_color: int = 0xFFFFFF
    fill_default_color: int = 0x888888
    wipeout_color: int = 0xFFFFFF
    leader_arrow_size: float = 2.0


def parse_color(value: str | int) -> int:
    """Parse ``#RRGGBB``, ``0xRRGGBB`` or a decimal integer into RGB24."""
    if isinstance(value, int):
        color = value
    else:
        text = str(value).strip().lower()
        if text.startswith("#"):
            color = int(text[1:], 16)
        elif text.startswith("0x"):
            color = int(text[2:], 16)
        else:
            color = int(text, 10)
    if not 0 <= color <= 0xFFFFFF:
        raise ValueError(f"color out of range: {value!r}")
    return color


def _read_int_env(
    env_name: str,
    default: int,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default

    if min_value is not None and value < min_value:
        return default
    if max_value is not None and value > max_value:
        return default
    return value


def _read_float_env(
    env_name: str,
    default: float,
    *,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        return default

    if not math.isfinite(value):
        return default
    if min_value is not None and value <= min_value:
        return default
    if max_value is not None and value > max_value:
        return default
    return value


def _read_bool_env(env_name: str, default: bool) -> bool:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    value = str(raw).strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default


def _read_color_env(env_name: str, default: int | None) -> int | None:
    raw = os.environ.get(env_name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return parse_color(raw)
    except ValueError:
        return default


def load_options() -> ResolveOptions:
    return ResolveOptions(
        unit_scale=_read_float_env(ENV_UNIT_SCALE, 1.0, min_value=0.0),
        apply_base_point_offset=_read_bool_env(ENV_BASE_POINT_OFFSET, False),
        monochrome_color=_read_color_env(ENV_MONOCHROME_COLOR, None),
        arc_segments=_read_int_env(ENV_ARC_SEGMENTS, 64, min_value=4, max_value=4096),
        hatch_arc_segments=_read_int_env(ENV_HATCH_ARC_SEGMENTS, 32, min_value=4, max_value=4096),
        min_spline_samples=_read_int_env(ENV_MIN_SPLINE_SAMPLES, 50, min_value=2, max_value=100000),
        spline_samples_per_point=_read_int_env(
            ENV_SPLINE_SAMPLES_PER_POINT, 10, min_value=1, max_value=1000
        ),
        ray_length=_read_float_env(ENV_RAY_LENGTH, 10000.0, min_value=0.0),
        max_block_depth=_read_int_env(ENV_MAX_BLOCK_DEPTH, 64, min_value=1, max_value=10000),
    )
