"""Lightweight profiling: wall-clock timers and NVTX markers.

Provides:
    - timer(): Context manager for wall-clock timing with optional sink
    - nvtx_range(): NVIDIA Nsight markers for GPU profiling
    - TimerAccumulator: running totals across repeated renders

Used to measure the orchestrator stages (allocate, launch, synchronize,
copy-back, free) when profiling is enabled in the renderer config.
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Optional

import torch

logger = logging.getLogger(__name__)


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Context manager for wall-clock timing.

    Parameters
    ----------
    name : str
        Timer name
    sink : Optional[Callable[[str, float], None]]
        Callback(name, elapsed_seconds); logs at DEBUG when None

    Examples
    --------
    >>> with timer("launch"):
    ...     kernel.launch(buf.tensor, width, height, geometry)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is not None:
            sink(name, elapsed)
        else:
            logger.debug(f"{name}: {elapsed * 1e3:.3f} ms")


@contextmanager
def nvtx_range(msg: str):
    """Push an NVTX range around the block (visible in Nsight Systems).

    No-op when CUDA is not available.
    """
    pushed = torch.cuda.is_available()
    if pushed:
        torch.cuda.nvtx.range_push(msg)
    try:
        yield
    finally:
        if pushed:
            torch.cuda.nvtx.range_pop()


class TimerAccumulator:
    """Accumulate timing measurements per stage name.

    Attributes
    ----------
    totals : dict
        Stage name → accumulated seconds
    counts : dict
        Stage name → number of measurements
    """

    def __init__(self):
        self.totals = {}
        self.counts = {}

    def __call__(self, name: str, elapsed: float) -> None:
        """Sink-compatible: ``timer("launch", sink=acc)``."""
        self.totals[name] = self.totals.get(name, 0.0) + elapsed
        self.counts[name] = self.counts.get(name, 0) + 1

    def mean(self, name: str) -> float:
        """Mean seconds for ``name``; 0.0 if never measured."""
        count = self.counts.get(name, 0)
        return self.totals[name] / count if count else 0.0

    def summary(self) -> str:
        """One line per stage: ``name: mean ms (n=count)``."""
        return '\n'.join(
            f"{name}: {self.mean(name) * 1e3:.3f} ms (n={self.counts[name]})"
            for name in sorted(self.totals)
        )

    def reset(self) -> None:
        self.totals.clear()
        self.counts.clear()
