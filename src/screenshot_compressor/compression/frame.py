"""
Raw Frame
=========

Decoded pixel buffer passed through the compression pipeline.

Design Rules:
    - This is the ONLY place in the package that decodes input images
    - Frames are call-local: created per compression call, never cached
    - Fails fast on corrupt payloads with InvalidInputError
"""

import base64
import binascii
import logging
from dataclasses import dataclass

import cv2
import numpy as np

from screenshot_compressor.compression.errors import InvalidInputError
from screenshot_compressor.compression.formats import normalize_base64


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, eq=False)
class RawFrame:
    """
    Decoded bitmap with known dimensions.
    
    Attributes:
        pixels: uint8 array, (H, W) grayscale, (H, W, 3) BGR or (H, W, 4) BGRA
    """
    
    pixels: np.ndarray
    
    def __post_init__(self) -> None:
        """Validate shape and dtype."""
        if self.pixels.dtype != np.uint8:
            raise InvalidInputError(f"Invalid dtype: {self.pixels.dtype}")
        if self.pixels.ndim not in (2, 3):
            raise InvalidInputError(f"Invalid image shape: {self.pixels.shape}")
        if self.pixels.ndim == 3 and self.pixels.shape[2] not in (1, 3, 4):
            raise InvalidInputError(f"Invalid channel count: {self.pixels.shape}")
        if self.pixels.shape[0] < 1 or self.pixels.shape[1] < 1:
            raise InvalidInputError(f"Empty image: {self.pixels.shape}")
    
    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])
    
    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])
    
    @property
    def channels(self) -> int:
        return 1 if self.pixels.ndim == 2 else int(self.pixels.shape[2])
    
    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixels."""
        return f"RawFrame({self.width}x{self.height}, channels={self.channels})"


def decode_bytes(data: bytes) -> RawFrame:
    """
    Decode an encoded image (png/jpeg/webp/...) into a RawFrame.
    
    Alpha channels are preserved.
    
    Raises:
        InvalidInputError: If the bytes are not a decodable image
    """
    if not data:
        raise InvalidInputError("Empty image payload")
    
    nparr = np.frombuffer(data, np.uint8)
    try:
        pixels = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise InvalidInputError(f"Failed to decode image: {e}") from e
    
    if pixels is None:
        raise InvalidInputError("Failed to decode image: cv2.imdecode returned None")
    
    # 16-bit sources are reduced to 8 bits per channel
    if pixels.dtype == np.uint16:
        pixels = (pixels >> 8).astype(np.uint8)
    
    return RawFrame(pixels=pixels)


def decode_image(payload: str) -> RawFrame:
    """
    Decode a base64 or data-URL image string into a RawFrame.
    
    Args:
        payload: Base64 image, optionally prefixed with
            ``data:image/<subtype>;base64,``
            
    Returns:
        Decoded RawFrame
        
    Raises:
        InvalidInputError: If base64 or image decoding fails
    """
    if not isinstance(payload, str):
        raise InvalidInputError(
            f"Expected base64 string, got {type(payload).__name__}"
        )
    
    try:
        data = base64.b64decode(normalize_base64(payload), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInputError(f"Base64 decode failed: {e}") from e
    
    frame = decode_bytes(data)
    logger.debug(f"Decoded {frame!r} from {len(data)} bytes")
    return frame
