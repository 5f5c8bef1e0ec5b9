"""Common type definitions."""

from typing import Union
from pathlib import Path

# Type alias for paths
PathLike = Union[str, Path]

# Anything accepted as one input payload; str is encoded as UTF-8
Payload = Union[bytes, bytearray, memoryview, str]


def to_bytes(payload: Payload) -> bytes:
    """Normalize a payload to immutable bytes."""
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, (bytearray, memoryview)):
        return bytes(payload)
    if isinstance(payload, str):
        return payload.encode('utf-8')
    raise TypeError(f"Payload must be bytes-like or str, got {type(payload).__name__}")
