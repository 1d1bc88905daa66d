"""Test coordinate mapping and launch arithmetic.

Tests for mandelbrot_gpu.utils.compute:
    - map_range endpoints (x=0 → min, x→a2 → max)
    - Monotonicity and linear extrapolation (no clamping)
    - Tensor path bit-identical to scalar path
    - ceil_div / round_up
    - pixel_rows strided views

Run:
    pytest tests/test_compute.py -v
"""

import numpy as np
import pytest
import torch

from mandelbrot_gpu.utils.compute import (
    IMAG_RANGE,
    REAL_RANGE,
    ceil_div,
    map_range,
    pixel_rows,
    pixel_to_plane,
    round_up,
)


# ============================================================================
# MAP RANGE
# ============================================================================

@pytest.mark.parametrize("width", [1, 2, 7, 640, 1921])
def test_map_range_start_is_exact_min(width):
    assert map_range(0, 0, width, *REAL_RANGE) == REAL_RANGE[0]
    assert map_range(0, 0, width, *IMAG_RANGE) == IMAG_RANGE[0]


@pytest.mark.parametrize("width", [2, 640, 1921])
def test_map_range_upper_bound_approaches_max(width):
    assert map_range(width, 0, width, *REAL_RANGE) == pytest.approx(REAL_RANGE[1])
    last = map_range(width - 1, 0, width, *REAL_RANGE)
    assert last < REAL_RANGE[1]
    assert REAL_RANGE[1] - last == pytest.approx(3.5 / width)


def test_map_range_monotonic():
    values = [map_range(x, 0, 100, -1.0, 1.0) for x in range(100)]
    assert all(b > a for a, b in zip(values, values[1:]))


def test_map_range_extrapolates_outside_domain():
    assert map_range(-1, 0, 4, 0.0, 1.0) == pytest.approx(-0.25)
    assert map_range(8, 0, 4, 0.0, 1.0) == pytest.approx(2.0)


def test_map_range_two_step_normalization():
    # count → [0, 255] → [0, 1]
    assert map_range(map_range(100, 0, 100, 0, 255), 0, 255, 0, 1) == 1.0
    assert map_range(map_range(0, 0, 100, 0, 255), 0, 255, 0, 1) == 0.0
    assert map_range(map_range(50, 0, 100, 0, 255), 0, 255, 0, 1) == pytest.approx(0.5)


def test_map_range_tensor_matches_scalar_exactly():
    width = 333
    xs = torch.arange(width, dtype=torch.float64)
    mapped = map_range(xs, 0, width, *REAL_RANGE)
    expected = [map_range(float(x), 0, width, *REAL_RANGE) for x in range(width)]
    assert mapped.tolist() == expected


def test_pixel_to_plane_two_by_two():
    assert pixel_to_plane(0.0, 0.0, 2, 2) == (-2.5, -1.0)
    assert pixel_to_plane(1.0, 1.0, 2, 2) == (-0.75, 0.0)


# ============================================================================
# INTEGER HELPERS
# ============================================================================

@pytest.mark.parametrize("a,b,expected", [
    (1, 32, 1),
    (32, 32, 1),
    (33, 32, 2),
    (64, 32, 2),
    (65, 32, 3),
    (1920, 32, 60),
])
def test_ceil_div(a, b, expected):
    assert ceil_div(a, b) == expected


def test_ceil_div_rejects_non_positive_divisor():
    with pytest.raises(ValueError):
        ceil_div(4, 0)


@pytest.mark.parametrize("n,multiple,expected", [
    (8, 512, 512),
    (512, 512, 512),
    (513, 512, 1024),
    (8, 1, 8),
    (12, 8, 16),
])
def test_round_up(n, multiple, expected):
    assert round_up(n, multiple) == expected


# ============================================================================
# PIXEL ROWS
# ============================================================================

def test_pixel_rows_excludes_padding_and_writes_through():
    buf = bytearray(b'\xee' * (2 * 12))
    rows = pixel_rows(buf, 2, 2, 12)

    assert rows.shape == (2, 8)
    rows[...] = 1

    assert buf[0:8] == b'\x01' * 8
    assert buf[8:12] == b'\xee' * 4
    assert buf[12:20] == b'\x01' * 8
    assert buf[20:24] == b'\xee' * 4


def test_pixel_rows_accepts_numpy_array():
    arr = np.zeros((3, 5, 4), dtype=np.uint8)
    rows = pixel_rows(arr, 5, 3, 20)
    rows[1, :4] = [1, 2, 3, 4]
    assert arr[1, 0].tolist() == [1, 2, 3, 4]


def test_pixel_rows_rejects_short_stride():
    with pytest.raises(ValueError, match="shorter"):
        pixel_rows(bytearray(64), 4, 2, 12)


def test_pixel_rows_rejects_small_buffer():
    with pytest.raises(ValueError, match="need"):
        pixel_rows(bytearray(15), 2, 2, 8)
