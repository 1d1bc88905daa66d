"""Device kernel: escape-time evaluation and coloring, one thread per pixel.

The accelerator launch is expressed as a data-parallel "for each pixel"
over torch tensors: every logical thread of the launch geometry becomes one
tensor lane, lanes outside the image are discarded, and each remaining lane
computes and writes exactly one RGBA pixel. The same code runs on CUDA and on
the CPU device.

Public API:
    escape_time(mx0, my0, n) → int32 counts
    pixel_counts(xs, ys, width, height) → int32 counts
    normalize_counts(counts, n) → float64 in [0, 1]
    shade(xs, ys, width, height) → (N, 4) uint8
    launch(device_buffer, width, height, geometry)

Invariants:
    - Iteration cap fixed at MAX_ITERATIONS (100)
    - float64 throughout, so results match the CPU reference exactly
    - Threads share no mutable state; each writes only its own 4 bytes
    - Out-of-bounds threads (grid over-coverage) perform no work
"""

import logging

import torch

from ..utils import color
from ..utils.compute import map_range, pixel_to_plane

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 100
ESCAPE_RADIUS_SQ = 4.0
DTYPE = torch.float64


def escape_time(mx0: torch.Tensor, my0: torch.Tensor, n: int = MAX_ITERATIONS) -> torch.Tensor:
    """Escape-time iteration counts for a batch of points.

    Parameters
    ----------
    mx0, my0 : torch.Tensor
        Real and imaginary parts, same shape, floating dtype
    n : int
        Iteration cap

    Returns
    -------
    torch.Tensor
        int32 counts in [0, n], shape of ``mx0``

    Notes
    -----
    Runs exactly ``n`` masked steps. Lanes that have escaped keep their last
    (mx, my), so their magnitude stays >= 4 and the count stops growing.
    This equals the per-point loop ``while |z|² < 4 and i < n``.
    """
    mx = torch.zeros_like(mx0)
    my = torch.zeros_like(my0)
    counts = torch.zeros(mx0.shape, dtype=torch.int32, device=mx0.device)

    for _ in range(n):
        running = mx * mx + my * my < ESCAPE_RADIUS_SQ
        next_mx = mx * mx - my * my + mx0
        next_my = 2 * mx * my + my0
        mx = torch.where(running, next_mx, mx)
        my = torch.where(running, next_my, my)
        counts += running.to(torch.int32)

    return counts


def normalize_counts(counts: torch.Tensor, n: int = MAX_ITERATIONS) -> torch.Tensor:
    """Rescale counts from [0, n] to [0, 255] and then to [0, 1]."""
    scaled = map_range(counts.to(DTYPE), 0, n, 0, 255)
    return map_range(scaled, 0, 255, 0, 1)


def pixel_counts(xs: torch.Tensor, ys: torch.Tensor, width: int, height: int) -> torch.Tensor:
    """Escape-time counts for integer pixel coordinates."""
    mx0, my0 = pixel_to_plane(xs.to(DTYPE), ys.to(DTYPE), width, height)
    return escape_time(mx0, my0)


def shade(xs: torch.Tensor, ys: torch.Tensor, width: int, height: int) -> torch.Tensor:
    """Per-pixel pipeline: plane mapping → escape time → heat ramp.

    Parameters
    ----------
    xs, ys : torch.Tensor
        Pixel columns and rows (integer-valued), any matching shape
    width, height : int
        Image size in pixels

    Returns
    -------
    torch.Tensor
        RGBA, shape (*xs.shape, 4), uint8
    """
    return color.heat_ramp(normalize_counts(pixel_counts(xs, ys, width, height)))


def launch(device_buffer: torch.Tensor, width: int, height: int, geometry) -> None:
    """Fill a pitched device buffer with the rendered image.

    Parameters
    ----------
    device_buffer : torch.Tensor
        uint8 tensor of shape (height, pitch) with pitch >= width * 4
    width, height : int
        Image size in pixels
    geometry : LaunchGeometry
        Block/grid shape; its covered extent may exceed the image

    Notes
    -----
    Threads are enumerated over the full covered extent
    (grid × block) and then filtered by the image bounds, which is the only
    bounds check. Bytes of the pitch padding are never written.
    """
    device = device_buffer.device
    ty = torch.arange(geometry.threads_y, device=device)
    tx = torch.arange(geometry.threads_x, device=device)
    thread_y, thread_x = torch.meshgrid(ty, tx, indexing='ij')

    active = (thread_x < width) & (thread_y < height)
    px = thread_x[active]
    py = thread_y[active]

    rgba = shade(px, py, width, height)

    cols = px.unsqueeze(1) * 4 + torch.arange(4, device=device)
    rows = py.unsqueeze(1).expand_as(cols)
    device_buffer[rows, cols] = rgba

    logger.debug(
        f"Kernel wrote {px.numel()} pixels "
        f"({geometry.num_threads - px.numel()} idle threads)"
    )
