"""Numerics: pixel → complex-plane mapping and launch arithmetic.

Core utilities:
    - map_range(): affine re-parameterization used for both pixel → plane
      mapping and iteration-count normalization
    - pixel_to_plane(): maps integer pixel indices onto the fixed viewport
    - ceil_div(), round_up(): grid and pitch sizing
    - pixel_rows(): strided host buffer → (H, W*4) uint8 view

Invariants:
    - map_range() is linear, NOT clamped: values outside [a1, a2) extrapolate
    - The operation order of map_range() is fixed so that the tensor path and
      the scalar CPU reference produce bit-identical float64 results
    - Viewport: real ∈ [-2.5, 1.0], imag ∈ [-1.0, 1.0] (no zoom/pan)
"""

from typing import Tuple, Union

import numpy as np
import torch

# Fixed viewport of the rendered image
REAL_RANGE: Tuple[float, float] = (-2.5, 1.0)
IMAG_RANGE: Tuple[float, float] = (-1.0, 1.0)


def map_range(
    a: Union[float, torch.Tensor],
    a1: float,
    a2: float,
    lo: float,
    hi: float
) -> Union[float, torch.Tensor]:
    """Affinely map ``a`` from the domain [a1, a2) onto [lo, hi].

    Parameters
    ----------
    a : float or torch.Tensor
        Value(s) along one axis of the source domain
    a1 : float
        Domain start (maps to ``lo``)
    a2 : float
        Domain end (approached as ``a → a2``, maps to ``hi``)
    lo : float
        Target range start
    hi : float
        Target range end

    Returns
    -------
    float or torch.Tensor
        ``((a - a1) / (a1 - a2)) * (lo - hi) + lo``

    Examples
    --------
    >>> map_range(0, 0, 4, -2.5, 1.0)
    -2.5
    >>> map_range(2, 0, 4, -1.0, 1.0)
    0.0
    """
    return ((a - a1) / (a1 - a2)) * (lo - hi) + lo


def pixel_to_plane(
    x: Union[float, torch.Tensor],
    y: Union[float, torch.Tensor],
    width: int,
    height: int
) -> Tuple[Union[float, torch.Tensor], Union[float, torch.Tensor]]:
    """Map pixel indices to the (real, imag) point sampled by that pixel.

    Parameters
    ----------
    x, y : float or torch.Tensor
        Pixel column and row (top-left origin)
    width, height : int
        Image size in pixels

    Returns
    -------
    (mx0, my0)
        Real and imaginary parts, same type as inputs
    """
    mx0 = map_range(x, 0, width, REAL_RANGE[0], REAL_RANGE[1])
    my0 = map_range(y, 0, height, IMAG_RANGE[0], IMAG_RANGE[1])
    return mx0, my0


def ceil_div(a: int, b: int) -> int:
    """Integer ceiling division for positive operands."""
    if b <= 0:
        raise ValueError(f"Divisor must be positive, got {b}")
    return -(-a // b)


def round_up(n: int, multiple: int) -> int:
    """Round ``n`` up to the next multiple of ``multiple``.

    Used to derive the row pitch of device buffers from the logical row size.
    """
    return ceil_div(n, multiple) * multiple


def pixel_rows(buffer, width: int, height: int, stride: int) -> np.ndarray:
    """View a strided RGBA host buffer as (height, width * 4) uint8 rows.

    Parameters
    ----------
    buffer : buffer-protocol object
        Host byte region (bytearray, memoryview, numpy array, mmap, bytes)
    width, height : int
        Image size in pixels
    stride : int
        Bytes between the starts of consecutive rows (>= width * 4)

    Returns
    -------
    np.ndarray
        Zero-copy view of the logical pixel bytes; row padding is excluded.
        Writable when ``buffer`` is writable.

    Raises
    ------
    ValueError
        If the stride is shorter than a row or the buffer is too small
    """
    row_bytes = width * 4
    if stride < row_bytes:
        raise ValueError(f"Row stride {stride} B is shorter than a {width}-px RGBA row ({row_bytes} B)")

    flat = np.frombuffer(memoryview(buffer).cast('B'), dtype=np.uint8)
    needed = height * stride
    if flat.size < needed:
        raise ValueError(f"Buffer holds {flat.size} B, need {needed} B ({height} rows × {stride} B)")

    return flat[:needed].reshape(height, stride)[:, :row_bytes]
