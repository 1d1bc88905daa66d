"""mandelbrot_gpu: false-color Mandelbrot rendering on a parallel accelerator.

This package maps every pixel of a requested image to the complex plane,
runs a bounded escape-time iteration on the device (CUDA via PyTorch, or the
CPU device as fallback), colors the iteration count through a fixed
four-band heat ramp and copies the RGBA result into caller-owned host memory.

Architecture layers (strict one-way dependency):
    scripts/ → mandelbrot_gpu/renderer/ → mandelbrot_gpu/utils/

Key invariants:
    - Viewport fixed: real ∈ [-2.5, 1.0], imag ∈ [-1.0, 1.0]
    - Escape-time cap fixed at 100 iterations
    - One logical thread per pixel, no shared mutable state
    - Host and device row strides are independent
    - No partial images: the host buffer is written only after the device
      work has completed without error

Public entry point:
    from mandelbrot_gpu import render
    render(host_buffer, width, height, host_stride, n_iterations)
"""

__version__ = "1.0.0"

from .renderer.orchestrator import DeviceError, RenderError, render, render_array

__all__ = [
    'render',
    'render_array',
    'RenderError',
    'DeviceError',
]
