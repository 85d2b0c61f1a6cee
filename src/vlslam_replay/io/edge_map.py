"""Edge-probability map records.

An edge record stores a single-channel float image as ``rows``, ``cols``
and a flat row-major ``data`` buffer inside a NumPy ``.npz`` archive.
Decoding yields an 8-bit intensity image (probability * 255).
"""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

import numpy as np

from ..errors import DecodeError


def decode_edge_map(data: bytes) -> np.ndarray:
    """Decode a serialized edge record into an 8-bit image.

    Values are scaled by 255, rounded to nearest and saturated to [0, 255].
    NaN probabilities decode to 0.

    Args:
        data: Raw bytes of an edge record

    Returns:
        uint8 array of shape (rows, cols)

    Raises:
        DecodeError: If the bytes are not an edge record or the buffer
            length does not match rows * cols
    """
    try:
        with np.load(io.BytesIO(data), allow_pickle=False) as archive:
            rows = int(archive["rows"])
            cols = int(archive["cols"])
            values = np.asarray(archive["data"], dtype=np.float32).ravel()
    except (ValueError, OSError, EOFError, KeyError, TypeError, zipfile.BadZipFile) as e:
        raise DecodeError(f"Invalid edge map record: {e}") from e
    except AttributeError as e:
        # np.load returned a bare array rather than an archive
        raise DecodeError("Invalid edge map record: not an archive") from e

    if rows < 0 or cols < 0:
        raise DecodeError(f"Invalid edge map shape: {rows}x{cols}")
    if values.size != rows * cols:
        raise DecodeError(
            f"Edge map buffer has {values.size} values, expected {rows}x{cols}"
        )

    probabilities = values.reshape(rows, cols)
    scaled = np.nan_to_num(
        probabilities.astype(np.float64) * 255.0, nan=0.0, posinf=255.0, neginf=0.0
    )
    return np.clip(np.rint(scaled), 0, 255).astype(np.uint8)


def load_edge_map(path: str | Path) -> np.ndarray:
    """Read and decode an edge record from disk.

    Raises:
        DecodeError: If the file cannot be read or decoded
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise DecodeError(f"Failed to read edge map: {path}") from e

    try:
        return decode_edge_map(data)
    except DecodeError as e:
        raise DecodeError(f"Failed to load edge map @ {path}: {e}") from e


def encode_edge_map(probabilities: np.ndarray) -> bytes:
    """Serialize a 2D float probability image into an edge record."""
    probabilities = np.asarray(probabilities, dtype=np.float32)
    if probabilities.ndim != 2:
        raise ValueError(f"Edge map must be 2D, got {probabilities.shape}")

    buffer = io.BytesIO()
    np.savez(
        buffer,
        rows=np.int64(probabilities.shape[0]),
        cols=np.int64(probabilities.shape[1]),
        data=probabilities.ravel(),
    )
    return buffer.getvalue()


def save_edge_map(path: str | Path, probabilities: np.ndarray) -> None:
    """Write a 2D float probability image as an edge record."""
    Path(path).write_bytes(encode_edge_map(probabilities))
