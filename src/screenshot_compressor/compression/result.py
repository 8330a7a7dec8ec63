"""
Compression Result
==================

Immutable record returned by every compression call.

Wire shape (to_dict):
    {
        "base64": "iVBORw0KGgo...",
        "sizeBytes": 402113,
        "sizeKB": 392.688...,
        "sizeMB": 0.3834...,
        "quality": 62,
        "format": "png",
        "iterations": 6,
        "width": 1280,
        "height": 960,
        "mediaType": "image/png",
        "compressed": true
    }
"""

import base64
from dataclasses import dataclass
from typing import Optional

from screenshot_compressor.compression.formats import ImageFormat
from screenshot_compressor.compression.size import KB, MB


@dataclass(frozen=True, slots=True)
class CompressionResult:
    """
    Final encoded image with metadata.
    
    Size fields are derived from size_bytes and always consistent:
    size_kb == size_bytes / 1024, size_mb == size_bytes / 1024**2.
    
    Attributes:
        base64: Encoded image (plain base64, no data-URL prefix)
        size_bytes: Encoded length in bytes
        size_kb: size_bytes / 1024
        size_mb: size_bytes / (1024 * 1024)
        quality: Quality parameter used (None for pass-through)
        format: Output format (None if a pass-through payload is unrecognized)
        iterations: Encode attempts of the quality search that produced it
        width: Output width in pixels (None for pass-through)
        height: Output height in pixels (None for pass-through)
        compressed: False when the input was passed through untouched
    """
    
    base64: str
    size_bytes: int
    size_kb: float
    size_mb: float
    quality: Optional[int]
    format: Optional[ImageFormat]
    iterations: int
    width: Optional[int] = None
    height: Optional[int] = None
    compressed: bool = True
    
    @classmethod
    def from_buffer(
        cls,
        buffer: bytes,
        quality: int,
        fmt: ImageFormat,
        iterations: int,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> "CompressionResult":
        """Build a result from encoded bytes."""
        size_bytes = len(buffer)
        return cls(
            base64=base64.b64encode(buffer).decode("ascii"),
            size_bytes=size_bytes,
            size_kb=size_bytes / KB,
            size_mb=size_bytes / MB,
            quality=quality,
            format=fmt,
            iterations=iterations,
            width=width,
            height=height,
        )
    
    @classmethod
    def passthrough(
        cls,
        payload: str,
        data: bytes = b"",
        fmt: Optional[ImageFormat] = None,
        size_bytes: Optional[int] = None,
    ) -> "CompressionResult":
        """
        Wrap an input payload that was not re-encoded.
        
        size_bytes overrides len(data) when the payload could not be decoded.
        """
        if size_bytes is None:
            size_bytes = len(data)
        return cls(
            base64=payload,
            size_bytes=size_bytes,
            size_kb=size_bytes / KB,
            size_mb=size_bytes / MB,
            quality=None,
            format=fmt,
            iterations=0,
            compressed=False,
        )
    
    @property
    def media_type(self) -> Optional[str]:
        return self.format.media_type if self.format is not None else None
    
    def fits(self, target_size_kb: float) -> bool:
        return self.size_kb <= target_size_kb
    
    def decode(self) -> bytes:
        """Encoded image bytes."""
        return base64.b64decode(self.base64)
    
    def __repr__(self) -> str:
        """Compact repr that doesn't dump the payload."""
        fmt = self.format.value if self.format is not None else None
        return (
            f"CompressionResult(size={self.size_kb:.1f}KB, "
            f"quality={self.quality}, format={fmt}, "
            f"iterations={self.iterations}, compressed={self.compressed})"
        )
    
    def to_dict(self) -> dict:
        """Export in the wire shape consumed by tool results."""
        return {
            "base64": self.base64,
            "sizeBytes": self.size_bytes,
            "sizeKB": self.size_kb,
            "sizeMB": self.size_mb,
            "quality": self.quality,
            "format": self.format.value if self.format is not None else None,
            "iterations": self.iterations,
            "width": self.width,
            "height": self.height,
            "mediaType": self.media_type,
            "compressed": self.compressed,
        }
