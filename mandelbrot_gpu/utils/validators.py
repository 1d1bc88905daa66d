"""YAML schema validation and config loading.

Provides centralized validation for renderer configuration using pydantic:
    - Renderer schema (renderer.v1.yaml): device, pitch alignment, error
      policy, profiling switch, logging section

Configs fail fast with actionable messages (offending keys, allowed values).
The viewport bounds and the escape-time cap are deliberately absent: they are
fixed properties of the renderer, not settings.

Usage:
    from mandelbrot_gpu.utils import validators

    cfg = validators.load_renderer_config("configs/renderer.v1.yaml")
    cfg = validators.RendererConfigV1()  # all defaults
"""

import re
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

_DEVICE_PATTERN = re.compile(r"^(auto|cpu|cuda(:\d+)?)$")


# ============================================================================
# RENDERER SCHEMA V1
# ============================================================================

class LoggingConfig(BaseModel):
    """Logging section, forwarded to ``logging_config.setup_logging``."""
    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    level: str = Field(default="INFO", description="Root log level")
    json_format: bool = Field(default=False, alias="json", description="JSON lines instead of human format")
    color: bool = Field(default=True, description="ANSI colors on a TTY")
    file: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if v.upper() not in allowed:
            raise ValueError(f"level must be one of {sorted(allowed)}, got {v}")
        return v.upper()

    def setup_kwargs(self) -> dict:
        """Keyword arguments for ``setup_logging``."""
        return {
            'log_level': self.level,
            'log_file': self.file,
            'json': self.json_format,
            'color': self.color,
        }


class RendererConfigV1(BaseModel):
    """Renderer configuration (renderer.v1.yaml schema).

    Attributes
    ----------
    device : str
        "auto" (CUDA when available, else CPU), "cpu", "cuda" or "cuda:N"
    pitch_alignment : int
        Row alignment of device buffers in bytes (power of two, 1..4096)
    error_policy : str
        "raise": surface DeviceError to the caller (default)
        "abort": log CRITICAL and terminate the process
    profile : bool
        Time the orchestrator stages and log them at DEBUG
    logging : LoggingConfig
        Logging section for scripts
    """
    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    schema_version: str = Field(default="renderer.v1", alias="schema", description="Schema version")
    device: str = Field(default="auto")
    pitch_alignment: int = Field(default=512, ge=1, le=4096)
    error_policy: str = Field(default="raise")
    profile: bool = Field(default=False)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "renderer.v1":
            raise ValueError(f"Expected schema 'renderer.v1', got '{v}'")
        return v

    @field_validator('device')
    @classmethod
    def validate_device(cls, v: str) -> str:
        if not _DEVICE_PATTERN.match(v):
            raise ValueError(f"device must be 'auto', 'cpu', 'cuda' or 'cuda:N', got '{v}'")
        return v

    @field_validator('pitch_alignment')
    @classmethod
    def validate_pitch_alignment(cls, v: int) -> int:
        if v & (v - 1):
            raise ValueError(f"pitch_alignment must be a power of two, got {v}")
        return v

    @field_validator('error_policy')
    @classmethod
    def validate_error_policy(cls, v: str) -> str:
        allowed = {'raise', 'abort'}
        if v not in allowed:
            raise ValueError(f"error_policy must be one of {sorted(allowed)}, got '{v}'")
        return v


# ============================================================================
# PUBLIC API
# ============================================================================

def load_renderer_config(path: Union[str, Path]) -> RendererConfigV1:
    """Load and validate renderer config from YAML.

    Parameters
    ----------
    path : str or Path
        Path to renderer.v1.yaml file

    Returns
    -------
    RendererConfigV1
        Validated config model

    Raises
    ------
    FileNotFoundError
        If file does not exist
    ValueError
        If validation fails (message names the file and offending keys)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Renderer config not found: {path}")

    data = fs.load_yaml(path)
    try:
        return RendererConfigV1(**data)
    except ValueError as e:
        raise ValueError(f"Renderer config validation failed at {path}: {e}") from e
