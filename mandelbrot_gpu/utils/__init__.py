"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Coordinate mapping & launch arithmetic (compute)
    - Heat-ramp color transfer (color)
    - Config validation (validators)
    - Atomic I/O and YAML (fs)
    - Device selection and synchronization (torch_utils)
    - Pixel digests for provenance (hashing)
    - Profiling (profiler)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (renderer, scripts).

Convenience imports:
    from mandelbrot_gpu.utils import compute, color, validators
    from mandelbrot_gpu.utils.logging_config import setup_logging, get_logger
"""

from . import color
from . import compute
from . import fs
from . import hashing
from . import logging_config
from . import profiler
from . import torch_utils
from . import validators

from .logging_config import get_logger, push_context, setup_logging

__all__ = [
    # Modules
    'color',
    'compute',
    'fs',
    'hashing',
    'logging_config',
    'profiler',
    'torch_utils',
    'validators',
    # Direct exports
    'setup_logging',
    'get_logger',
    'push_context',
]
