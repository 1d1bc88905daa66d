"""Mandelbrot render pipeline on a parallel accelerator.

Modules:
    - kernel: per-pixel escape time + heat ramp as a data-parallel launch
    - orchestrator: device buffer lifecycle, launch geometry, strided copy-back
    - cpu_reference: scalar ground truth for tests and debugging

Invariants:
    - Viewport fixed at real ∈ [-2.5, 1.0], imag ∈ [-1.0, 1.0]
    - Escape-time cap fixed at 100
    - Launch blocks are 32×32 threads; grid = ceil(width/32) × ceil(height/32)
    - Device buffer freed exactly once per render call

Used by:
    - scripts/render_png.py: render to PNG
    - External callers via mandelbrot_gpu.render
"""

from .orchestrator import (
    DeviceBuffer,
    DeviceError,
    ImageDescriptor,
    LaunchGeometry,
    RenderError,
    buffer_stats,
    launch_geometry,
    render,
    render_array,
)

__all__ = [
    'DeviceBuffer',
    'DeviceError',
    'ImageDescriptor',
    'LaunchGeometry',
    'RenderError',
    'buffer_stats',
    'launch_geometry',
    'render',
    'render_array',
]
