"""
Image Formats
=============

Closed set of output formats and helpers for base64 image payloads.
"""

import re
from enum import Enum
from typing import Optional

from screenshot_compressor.compression.errors import UnsupportedFormatError


_DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")

_ALIASES = {
    "jpg": "jpeg",
}


class ImageFormat(str, Enum):
    """Output formats supported by the compression pipeline."""
    
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"
    
    @property
    def media_type(self) -> str:
        """MIME type used when embedding the image in a tool result."""
        return f"image/{self.value}"
    
    @property
    def extension(self) -> str:
        """File extension understood by cv2.imencode."""
        return ".jpg" if self is ImageFormat.JPEG else f".{self.value}"
    
    @classmethod
    def parse(cls, value: "str | ImageFormat") -> "ImageFormat":
        """
        Parse a format name (case-insensitive).
        
        Args:
            value: Format name or ImageFormat
            
        Returns:
            Matching ImageFormat
            
        Raises:
            UnsupportedFormatError: If the name is not png, jpeg or webp
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise UnsupportedFormatError(f"Unsupported format: {value!r}")
        
        normalized = value.strip().lower()
        normalized = _ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise UnsupportedFormatError(f"Unsupported format: {value}") from None


def strip_data_url(payload: str) -> str:
    """Remove a leading ``data:image/<type>;base64,`` prefix if present."""
    return _DATA_URL_PREFIX.sub("", payload, count=1)


def normalize_base64(payload: str) -> str:
    """
    Bare base64 body of a payload: data-URL prefix and all whitespace removed.
    
    Line-wrapped (RFC 2045, 76 columns) input decodes the same as one line.
    """
    return "".join(strip_data_url(payload.strip()).split())


def sniff_format(data: bytes) -> Optional[ImageFormat]:
    """
    Detect the encoded format from its magic bytes.
    
    Returns:
        ImageFormat, or None if the bytes are not png/jpeg/webp
    """
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return ImageFormat.PNG
    if data.startswith(b"\xff\xd8\xff"):
        return ImageFormat.JPEG
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return ImageFormat.WEBP
    return None
