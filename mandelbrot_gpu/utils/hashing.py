"""SHA-256 hashing for rendered pixels and files.

Provides:
    - sha256_pixels(): Hash the logical pixel bytes of a strided RGBA buffer
    - sha256_file(): Hash file contents (e.g., a saved PNG)

Pixel digests ignore row padding, so the same image rendered with different
host strides hashes identically. Used to log render provenance and to check
that repeated renders are byte-identical.

Note: Module named `hashing.py` to avoid shadowing builtin `hash()`.
"""

import hashlib
from pathlib import Path
from typing import Union

from .compute import pixel_rows


def sha256_pixels(buffer, width: int, height: int, stride: int) -> str:
    """Compute SHA-256 of the RGBA pixels held in a strided buffer.

    Parameters
    ----------
    buffer : buffer-protocol object
        Host buffer holding ``height`` rows of ``stride`` bytes
    width, height : int
        Image size in pixels
    stride : int
        Row stride in bytes

    Returns
    -------
    str
        SHA-256 hex digest (64 characters)

    Examples
    --------
    >>> buf = bytearray(2 * 16)
    >>> sha256_pixels(buf, 2, 2, 16) == sha256_pixels(bytearray(2 * 8), 2, 2, 8)
    True
    """
    rows = pixel_rows(buffer, width, height, stride)
    sha256 = hashlib.sha256()
    for row in rows:
        sha256.update(row.tobytes())
    return sha256.hexdigest()


def sha256_file(path: Union[str, Path], chunk_size: int = 1 << 20) -> str:
    """Compute SHA-256 hash of file contents.

    Parameters
    ----------
    path : Union[str, Path]
        File path
    chunk_size : int
        Read chunk size in bytes, default 1 MB

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    sha256 = hashlib.sha256()
    with open(path, 'rb') as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            sha256.update(chunk)
    return sha256.hexdigest()
