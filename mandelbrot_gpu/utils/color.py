"""Heat-ramp color transfer: normalized escape time → RGBA.

The palette is fixed (no alternative color maps). Four equal-width bands over
the normalized scalar x ∈ [0, 1]:

    band          r              g              b              a
    [0, .25)      0              ramp 0→255     255            255
    [.25, .5)     0              255            ramp 255→0     255
    [.5, .75)     ramp 0→255     255            0              255
    [.75, 1]      0              ramp 255→0     0              255

Ramps are ``round(distance / BAND_WIDTH * 255)`` with rounding half away from
zero. Joins are NOT all continuous: at x = 0.75 band 3 ends at (255,255,0)
while band 4 starts at (0,255,0). This matches the reference palette exactly.

Invariants:
    - Output dtype uint8, shape (..., 4), channel order R, G, B, A
    - Input precondition 0 <= x <= 1 is asserted (skipped under ``python -O``;
      out-of-range input then yields unspecified colors)
"""

import torch

BAND_WIDTH = 0.25
CHANNEL_MAX = 255.0


def ramp(distance: torch.Tensor) -> torch.Tensor:
    """Scale a distance within a band to a [0, 255] channel value.

    Parameters
    ----------
    distance : torch.Tensor
        Distance into (or back from) the band edge, in [0, BAND_WIDTH]

    Returns
    -------
    torch.Tensor
        Rounded channel values (float, integral), half away from zero
    """
    return torch.floor(distance / BAND_WIDTH * CHANNEL_MAX + 0.5)


def heat_ramp(x: torch.Tensor) -> torch.Tensor:
    """Map normalized escape times to RGBA colors.

    Parameters
    ----------
    x : torch.Tensor
        Normalized values in [0, 1], any shape, floating dtype

    Returns
    -------
    torch.Tensor
        RGBA colors, shape (*x.shape, 4), dtype uint8, same device as ``x``

    Raises
    ------
    AssertionError
        If any value lies outside [0, 1] (debug mode only)
    """
    if __debug__:
        assert bool(((x >= 0.0) & (x <= 1.0)).all()), (
            f"heat_ramp input must lie in [0, 1], got range "
            f"[{x.min().item():.6f}, {x.max().item():.6f}]"
        )

    zero = torch.zeros_like(x)
    full = torch.full_like(x, CHANNEL_MAX)

    band1 = x < 0.25
    band2 = (x >= 0.25) & (x < 0.5)
    band3 = (x >= 0.5) & (x < 0.75)
    # Band 4 is everything else, including x == 1.0

    r = torch.where(band3, ramp(x - 0.5), zero)

    g = torch.where(band1, ramp(x), full)
    g = torch.where(band1 | band2 | band3, g, ramp(1.0 - x))

    b = torch.where(band1, full, zero)
    b = torch.where(band2, ramp(0.5 - x), b)

    a = full

    return torch.stack([r, g, b, a], dim=-1).to(torch.uint8)
