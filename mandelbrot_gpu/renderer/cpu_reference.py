"""CPU reference renderer: scalar, per-pixel ground truth.

A deliberately plain implementation of the render pipeline, one pixel at a
time in Python floats. It shares the operation order of the tensor kernel,
so for float64 arithmetic both paths agree byte for byte.

Architecture:
    - pixel (x, y) → (mx0, my0) via compute.map_range
    - escape_time(): bounded recurrence, at most MAX_ITERATIONS steps
    - normalize: count → [0, 255] → [0, 1] (two-step, as on the device)
    - heat_color(): four-band heat ramp → (r, g, b, a)

Used by:
    - tests/test_parity_cpu_vs_gpu.py: device vs. reference parity
    - tests/test_cpu_reference.py: hand-checked values
    - Debugging without device kernels

NOT imported by the orchestrator. Intentionally simple (no batching).
"""

import math
from typing import Optional, Tuple

from ..utils.compute import map_range, pixel_to_plane
from .kernel import ESCAPE_RADIUS_SQ, MAX_ITERATIONS


Color = Tuple[int, int, int, int]


def escape_time(mx0: float, my0: float, n: int = MAX_ITERATIONS) -> int:
    """Count recurrence steps before (mx, my) leaves the radius-2 disc.

    Parameters
    ----------
    mx0, my0 : float
        Point in the complex plane
    n : int
        Iteration cap

    Returns
    -------
    int
        Iteration count in [0, n]; ``n`` means the point never escaped
    """
    mx = 0.0
    my = 0.0
    i = 0
    while mx * mx + my * my < ESCAPE_RADIUS_SQ and i < n:
        mx, my = mx * mx - my * my + mx0, 2 * mx * my + my0
        i += 1
    return i


def normalize_count(i: int, n: int = MAX_ITERATIONS) -> float:
    """Rescale an iteration count to [0, 1] through the [0, 255] stage."""
    return map_range(map_range(i, 0, n, 0, 255), 0, 255, 0, 1)


def _ramp(distance: float) -> int:
    # Round half away from zero; distances here are never negative
    return int(math.floor(distance / 0.25 * 255.0 + 0.5))


def heat_color(x: float) -> Color:
    """Four-band heat ramp for a normalized scalar.

    Parameters
    ----------
    x : float
        Value in [0, 1]

    Returns
    -------
    (r, g, b, a)
        8-bit channels

    Raises
    ------
    AssertionError
        If ``x`` lies outside [0, 1] (debug mode only)
    """
    assert 0.0 <= x <= 1.0, f"heat_color input must lie in [0, 1], got {x}"

    if x < 0.25:
        return 0, _ramp(x), 255, 255
    if x < 0.5:
        return 0, 255, _ramp(0.5 - x), 255
    if x < 0.75:
        return _ramp(x - 0.5), 255, 0, 255
    return 0, _ramp(1.0 - x), 0, 255


def pixel_color(x: int, y: int, width: int, height: int) -> Color:
    """Full pipeline for a single pixel."""
    mx0, my0 = pixel_to_plane(float(x), float(y), width, height)
    return heat_color(normalize_count(escape_time(mx0, my0)))


def render_reference(width: int, height: int, stride: Optional[int] = None) -> bytearray:
    """Render a whole image on the CPU into a new strided buffer.

    Parameters
    ----------
    width, height : int
        Image size in pixels
    stride : int, optional
        Row stride in bytes, defaults to ``width * 4``; padding stays zero

    Returns
    -------
    bytearray
        ``height * stride`` bytes of RGBA rows
    """
    if stride is None:
        stride = width * 4
    if stride < width * 4:
        raise ValueError(f"stride {stride} < row size {width * 4}")

    out = bytearray(height * stride)
    for y in range(height):
        row = y * stride
        for x in range(width):
            offset = row + 4 * x
            out[offset:offset + 4] = bytes(pixel_color(x, y, width, height))
    return out
