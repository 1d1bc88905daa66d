"""Render orchestrator: device-memory lifecycle around the pixel kernel.

Implements the single public entry point:
    render(host_buffer, width, height, host_stride, n_iterations)

Pipeline (each step a hard precondition for the next, each checked):
    1. Allocate a pitched device buffer (height rows × pitch bytes)
    2. Compute launch geometry (32×32 blocks, ceil-divided grid), launch
    3. Synchronize and surface asynchronous device errors
    4. 2D strided copy device → host (device pitch and host stride independent)
    5. Free the device buffer (always, in ``finally``)

Error handling:
    - Caller contract violations (sizes, strides, read-only buffer) raise
      ValueError/TypeError before any device memory is touched
    - Accelerator failures at any step become DeviceError (name, description,
      call-site function and line), logged at ERROR, then raised
    - error_policy="abort" logs CRITICAL and exits with EXIT_DEVICE_ERROR
    - No partial image: the host buffer is written only once the whole image
      has been staged to host memory

Concurrency:
    One logical thread per pixel, no shared state. The host synchronizes once,
    before copy-back. Overlapping renders on one device are not guarded.
"""

import logging
import traceback
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import torch

from ..utils import profiler, torch_utils
from ..utils.compute import ceil_div, pixel_rows, round_up
from ..utils.validators import RendererConfigV1
from . import kernel

logger = logging.getLogger(__name__)

BLOCK_SHAPE: Tuple[int, int] = (32, 32)
BYTES_PER_PIXEL = 4
EXIT_DEVICE_ERROR = 70  # EX_SOFTWARE

_buffer_stats = {'allocated': 0, 'freed': 0}


# ============================================================================
# ERRORS
# ============================================================================

class RenderError(RuntimeError):
    """Base class for render failures."""


class DeviceError(RenderError):
    """Accelerator runtime failure during allocate, launch, sync, copy or free.

    Attributes
    ----------
    name : str
        Error name (exception class raised by the runtime)
    description : str
        Runtime message
    step : str
        Orchestrator step that failed
    function : str
        Function at the failing call site
    line : int
        Line number at the failing call site
    """

    def __init__(self, name: str, description: str, step: str, function: str, line: int):
        self.name = name
        self.description = description
        self.step = step
        self.function = function
        self.line = line
        super().__init__(f"{step}: {name}: {description} (in {function}, line {line})")


@contextmanager
def device_call(step: str):
    """Convert runtime failures inside the block into DeviceError.

    The innermost traceback frame locates the call site. The error is logged
    to the diagnostic stream before it propagates.
    """
    try:
        yield
    except RenderError:
        raise
    except (RuntimeError, MemoryError) as e:
        frame = traceback.extract_tb(e.__traceback__)[-1]
        err = DeviceError(type(e).__name__, str(e), step, frame.name, frame.lineno)
        logger.error(f"Device error: {err}")
        raise err from e


# ============================================================================
# DATA MODEL
# ============================================================================

@dataclass
class ImageDescriptor:
    """Caller-owned destination: host byte region plus its row stride."""
    width: int
    height: int
    host_buffer: object
    host_stride: int

    def validate(self) -> None:
        """Check the descriptor invariants.

        Raises
        ------
        ValueError
            Non-positive size, stride shorter than a row, buffer too small
        TypeError
            Buffer does not support the buffer protocol or is read-only
        """
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image size must be positive, got {self.width}×{self.height}")

        row_bytes = self.width * BYTES_PER_PIXEL
        if self.host_stride < row_bytes:
            raise ValueError(
                f"Host stride {self.host_stride} B is shorter than a row ({row_bytes} B)"
            )

        try:
            view = memoryview(self.host_buffer)
        except TypeError as e:
            raise TypeError(
                f"host_buffer must support the buffer protocol, got {type(self.host_buffer).__name__}"
            ) from e
        if view.readonly:
            raise TypeError("host_buffer is read-only")
        if not view.c_contiguous:
            raise TypeError("host_buffer must be C-contiguous")

        needed = self.height * self.host_stride
        if view.nbytes < needed:
            raise ValueError(
                f"Host buffer holds {view.nbytes} B, need {needed} B "
                f"({self.height} rows × {self.host_stride} B)"
            )


@dataclass(frozen=True)
class LaunchGeometry:
    """Thread blocks and grid covering a width × height image."""
    block: Tuple[int, int]
    grid: Tuple[int, int]

    @property
    def threads_x(self) -> int:
        return self.grid[0] * self.block[0]

    @property
    def threads_y(self) -> int:
        return self.grid[1] * self.block[1]

    @property
    def num_threads(self) -> int:
        return self.threads_x * self.threads_y


def launch_geometry(width: int, height: int) -> LaunchGeometry:
    """Fixed 32×32 blocks, grid ceil(width/32) × ceil(height/32)."""
    bx, by = BLOCK_SHAPE
    return LaunchGeometry(block=BLOCK_SHAPE, grid=(ceil_div(width, bx), ceil_div(height, by)))


class DeviceBuffer:
    """Pitched uint8 image buffer in device memory.

    Rows are ``pitch`` bytes apart, ``pitch`` being the logical row size
    rounded up to ``alignment``. Freed exactly once.

    Attributes
    ----------
    tensor : torch.Tensor or None
        (height, pitch) uint8 storage; None once freed
    pitch : int
        Bytes between row starts (>= width * 4)
    """

    def __init__(self, width: int, height: int, device: torch.device, alignment: int = 512):
        self.width = width
        self.height = height
        self.device = device
        self.pitch = round_up(width * BYTES_PER_PIXEL, alignment)
        self.tensor = torch.empty((height, self.pitch), dtype=torch.uint8, device=device)
        _buffer_stats['allocated'] += 1

    @property
    def freed(self) -> bool:
        return self.tensor is None

    def to_host(self) -> np.ndarray:
        """Stage the logical pixel bytes (padding dropped) into host memory."""
        if self.freed:
            raise RenderError("Device buffer used after free")
        rows = self.tensor[:, :self.width * BYTES_PER_PIXEL]
        staging = torch.empty(rows.shape, dtype=torch.uint8, device="cpu")
        staging.copy_(rows)
        return staging.numpy()

    def free(self) -> None:
        if self.freed:
            raise RenderError("Device buffer freed twice")
        self.tensor = None
        _buffer_stats['freed'] += 1
        if self.device.type == "cuda":
            torch.cuda.empty_cache()


def buffer_stats() -> dict:
    """Device buffer allocations and frees since import (or last reset)."""
    return dict(_buffer_stats)


def reset_buffer_stats() -> None:
    _buffer_stats['allocated'] = 0
    _buffer_stats['freed'] = 0


# ============================================================================
# RENDER
# ============================================================================

def render(
    host_buffer,
    width: int,
    height: int,
    host_stride: int,
    n_iterations: int = kernel.MAX_ITERATIONS,
    *,
    config: Optional[RendererConfigV1] = None
) -> None:
    """Render the Mandelbrot heat map into a caller-owned host buffer.

    Parameters
    ----------
    host_buffer : writable buffer-protocol object
        Destination, at least ``height * host_stride`` bytes
    width, height : int
        Image size in pixels (positive)
    host_stride : int
        Bytes between consecutive rows in ``host_buffer`` (>= width * 4)
    n_iterations : int
        Accepted for interface compatibility; the escape-time cap is fixed at
        ``kernel.MAX_ITERATIONS`` and this value is not consulted
    config : RendererConfigV1, optional
        Device, pitch alignment, error policy, profiling; defaults if None

    Raises
    ------
    ValueError, TypeError
        Invalid image descriptor (nothing is allocated)
    DeviceError
        Accelerator failure (error_policy="raise"); host buffer untouched
    SystemExit
        Accelerator failure with error_policy="abort"

    Notes
    -----
    Writes ``width * 4`` bytes of R, G, B, A per row; host row padding is left
    as it was. Rendering is deterministic: repeated calls produce identical
    bytes.

    Examples
    --------
    >>> buf = bytearray(480 * 640 * 4)
    >>> render(buf, 640, 480, 640 * 4, 100)
    """
    config = config or RendererConfigV1()
    descriptor = ImageDescriptor(width, height, host_buffer, host_stride)
    descriptor.validate()

    if n_iterations != kernel.MAX_ITERATIONS:
        logger.warning(
            f"n_iterations={n_iterations} is ignored; escape-time cap is fixed at "
            f"{kernel.MAX_ITERATIONS}"
        )

    device = torch_utils.resolve_device(config.device)

    try:
        pixels = _render_on_device(descriptor, device, config)
    except DeviceError:
        if config.error_policy == "abort":
            logger.critical("Aborting after device error")
            raise SystemExit(EXIT_DEVICE_ERROR)
        raise

    # Pixels are fully staged; copying into the caller's rows cannot fail
    # part way since the descriptor was validated.
    pixel_rows(host_buffer, width, height, host_stride)[...] = pixels


def _render_on_device(
    descriptor: ImageDescriptor,
    device: torch.device,
    config: RendererConfigV1
) -> np.ndarray:
    """Steps 1-5; returns the (height, width * 4) uint8 image in host memory."""
    width, height = descriptor.width, descriptor.height

    def stage(name: str):
        if config.profile:
            return profiler.timer(name)
        return nullcontext()

    with stage("allocate"), device_call("allocate"):
        buf = DeviceBuffer(width, height, device, config.pitch_alignment)

    try:
        geometry = launch_geometry(width, height)
        logger.debug(
            f"Launching {width}×{height} on {torch_utils.describe_device(device)}: "
            f"block={geometry.block}, grid={geometry.grid}, pitch={buf.pitch} B, "
            f"host_stride={descriptor.host_stride} B"
        )

        with stage("launch"), profiler.nvtx_range("mandelbrot.launch"), device_call("launch"):
            kernel.launch(buf.tensor, width, height, geometry)

        with stage("synchronize"), device_call("synchronize"):
            torch_utils.synchronize(device)

        with stage("copy"), device_call("copy"):
            pixels = buf.to_host()
    finally:
        with stage("free"), device_call("free"):
            buf.free()

    return pixels


def render_array(
    width: int,
    height: int,
    n_iterations: int = kernel.MAX_ITERATIONS,
    *,
    config: Optional[RendererConfigV1] = None
) -> np.ndarray:
    """Render into a freshly allocated (height, width, 4) uint8 array."""
    out = np.zeros((height, width, BYTES_PER_PIXEL), dtype=np.uint8)
    render(out, width, height, width * BYTES_PER_PIXEL, n_iterations, config=config)
    return out
