"""Device/CPU parity tests against the scalar reference renderer.

The device renderer (tensor kernel on CPU or CUDA) must reproduce the scalar
reference byte for byte: both use float64 with the same operation order, the
same iteration cap and the same rounding.

Test strategy:
1. Render the same image size with render() and render_reference()
2. Compare every pixel byte; host row padding must survive untouched
3. Repeat on CUDA when available

Usage:
    pytest tests/test_parity_cpu_vs_gpu.py        # CPU device always, CUDA if present
    pytest tests/test_parity_cpu_vs_gpu.py -m cuda  # CUDA cases only
"""

import logging

import pytest
import torch

from mandelbrot_gpu import render
from mandelbrot_gpu.renderer.cpu_reference import render_reference
from mandelbrot_gpu.utils.compute import pixel_rows
from mandelbrot_gpu.utils.validators import RendererConfigV1

logger = logging.getLogger(__name__)

PAD = 0xC3

SIZES = [
    (1, 1),
    (3, 2),
    (32, 32),
    (33, 31),
    (67, 45),
    (128, 73),
]

DEVICES = [
    pytest.param("cpu", id="cpu"),
    pytest.param(
        "cuda",
        id="cuda",
        marks=[
            pytest.mark.cuda,
            pytest.mark.skipif(not torch.cuda.is_available(), reason="CUDA not available"),
        ],
    ),
]


# ============================================================================
# FIXTURES
# ============================================================================

def padded_host_buffer(width: int, height: int, extra: int) -> tuple:
    """Host buffer whose rows carry ``extra`` sentinel bytes of padding."""
    stride = width * 4 + extra
    return bytearray([PAD]) * (height * stride), stride


# ============================================================================
# PARITY
# ============================================================================

@pytest.mark.parametrize("device", DEVICES)
@pytest.mark.parametrize("width,height", SIZES)
def test_device_matches_reference(device, width, height):
    cfg = RendererConfigV1(device=device)
    buf = bytearray(width * height * 4)

    render(buf, width, height, width * 4, config=cfg)

    expected = render_reference(width, height)
    if buf != expected:
        rows = pixel_rows(buf, width, height, width * 4)
        ref = pixel_rows(expected, width, height, width * 4)
        mismatched = int((rows != ref).sum())
        logger.error(f"{device} {width}×{height}: {mismatched} byte(s) differ")
    assert buf == expected


@pytest.mark.parametrize("device", DEVICES)
@pytest.mark.parametrize("extra", [4, 13, 500])
def test_device_matches_reference_with_host_padding(device, extra):
    width, height = 41, 27
    cfg = RendererConfigV1(device=device)
    buf, stride = padded_host_buffer(width, height, extra)

    render(buf, width, height, stride, config=cfg)

    expected = render_reference(width, height, stride=stride)
    for y in range(height):
        row = buf[y * stride:(y + 1) * stride]
        assert row[:width * 4] == expected[y * stride:y * stride + width * 4]
        assert row[width * 4:] == bytearray([PAD]) * extra


@pytest.mark.cuda
@pytest.mark.skipif(not torch.cuda.is_available(), reason="CUDA not available")
def test_cuda_and_cpu_devices_agree_on_large_image():
    width, height = 641, 479
    on_cpu = bytearray(width * height * 4)
    on_gpu = bytearray(width * height * 4)

    render(on_cpu, width, height, width * 4, config=RendererConfigV1(device="cpu"))
    render(on_gpu, width, height, width * 4, config=RendererConfigV1(device="cuda"))

    assert on_cpu == on_gpu
