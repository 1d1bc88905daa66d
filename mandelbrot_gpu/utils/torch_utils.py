"""PyTorch ergonomics: device selection and host/device synchronization.

Provides:
    - resolve_device(): "auto" | "cpu" | "cuda" | "cuda:N" → torch.device
    - synchronize(): block the host until queued device work has finished
    - describe_device(): short human-readable device label for logs

The accelerator is reached through PyTorch. When CUDA is unavailable the CPU
device runs the same tensor kernels, so the render pipeline stays portable.
"""

import logging

import torch

logger = logging.getLogger(__name__)


def resolve_device(name: str = "auto") -> torch.device:
    """Resolve a configured device name.

    Parameters
    ----------
    name : str
        "auto" (CUDA when available, else CPU), "cpu", "cuda" or "cuda:N"

    Returns
    -------
    torch.device
        Resolved device

    Raises
    ------
    ValueError
        If a CUDA device is requested but CUDA is not available, or the
        index is out of range
    """
    if name == "auto":
        return torch.device("cuda" if torch.cuda.is_available() else "cpu")

    try:
        device = torch.device(name)
    except RuntimeError as e:
        raise ValueError(f"Invalid device name: '{name}'") from e

    if device.type == "cuda":
        if not torch.cuda.is_available():
            raise ValueError(f"Device '{name}' requested but CUDA is not available")
        if device.index is not None and device.index >= torch.cuda.device_count():
            raise ValueError(
                f"Device '{name}' out of range: {torch.cuda.device_count()} CUDA device(s) visible"
            )
    elif device.type != "cpu":
        raise ValueError(f"Unsupported device type: {device.type}. Use 'cpu' or 'cuda'.")
    return device


def synchronize(device: torch.device) -> None:
    """Wait for all kernels queued on ``device`` to finish.

    Asynchronous CUDA errors surface here as RuntimeError. No-op on CPU,
    where tensor operations complete eagerly.
    """
    if device.type == "cuda":
        torch.cuda.synchronize(device)


def describe_device(device: torch.device) -> str:
    """Return a short label such as ``cuda:0 (NVIDIA A100)`` or ``cpu``."""
    if device.type == "cuda":
        index = device.index if device.index is not None else torch.cuda.current_device()
        return f"cuda:{index} ({torch.cuda.get_device_name(index)})"
    return "cpu"
