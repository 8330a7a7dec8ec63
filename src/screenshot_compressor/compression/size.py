"""
Size Inspection
===============

Byte/KB/MB size reporting for encoded payloads.

All values are exact: kb == bytes / 1024 and mb == bytes / 1024**2.
Only the human-readable label is rounded.
"""

import base64
import binascii
from dataclasses import dataclass

from screenshot_compressor.compression.errors import InvalidInputError
from screenshot_compressor.compression.formats import normalize_base64


KB = 1024
MB = 1024 * 1024


@dataclass(frozen=True, slots=True)
class SizeInfo:
    """
    Size of an encoded payload.
    
    Attributes:
        bytes: Exact payload length
        kb: bytes / 1024
        mb: bytes / (1024 * 1024)
        formatted: Human-readable label ("1.50 MB", "12.00 KB", "11 bytes")
    """
    
    bytes: int
    kb: float
    mb: float
    formatted: str


def format_size(size_bytes: int) -> str:
    """Render a byte count as MB, KB or bytes."""
    kb = size_bytes / KB
    mb = size_bytes / MB
    if mb >= 1:
        return f"{mb:.2f} MB"
    if kb >= 1:
        return f"{kb:.2f} KB"
    return f"{size_bytes} bytes"


def inspect_size(payload: bytes) -> SizeInfo:
    """
    Compute size information for an encoded payload.
    
    Args:
        payload: Encoded bytes
        
    Returns:
        SizeInfo
        
    Raises:
        TypeError: If payload is not bytes
    """
    if not isinstance(payload, (bytes, bytearray)):
        raise TypeError(
            f"payload must be bytes, got {type(payload).__name__}"
        )
    
    size_bytes = len(payload)
    return SizeInfo(
        bytes=size_bytes,
        kb=size_bytes / KB,
        mb=size_bytes / MB,
        formatted=format_size(size_bytes),
    )


def base64_size_info(payload: str) -> SizeInfo:
    """
    Size information for a base64 (or data-URL) image string.
    
    Raises:
        InvalidInputError: If the payload is not valid base64
    """
    try:
        data = base64.b64decode(normalize_base64(payload), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInputError(f"Base64 decode failed: {e}") from e
    return inspect_size(data)
