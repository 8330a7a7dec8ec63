"""
Image Codec
===========

Narrow encode/resize interface over the imaging backend.

The compression algorithms only talk to the ImageCodec protocol, so the
backend can be swapped without touching the search or resize loops.
OpenCVCodec is the production implementation.

Quality mapping (1..100, higher = larger and closer to the source):
    - jpeg: lossy quality factor, progressive + optimized Huffman tables
    - webp: lossy quality factor for color; alpha is stored losslessly
            (OpenCV has no separate alpha-quality control)
    - png:  indexed PNG with a quantized palette of 2..256 colors, the
            palette shrinking geometrically as quality drops;
            quality 100 is lossless truecolor
"""

import io
import logging
from typing import List, Optional, Protocol, Tuple

import cv2
import numpy as np
from PIL import Image

from screenshot_compressor.compression.errors import CompressionFailedError
from screenshot_compressor.compression.formats import ImageFormat
from screenshot_compressor.compression.frame import RawFrame


logger = logging.getLogger(__name__)


MIN_QUALITY = 1
MAX_QUALITY = 100

PNG_COMPRESSION_LEVEL = 9


class ImageCodec(Protocol):
    """
    Protocol for imaging backends.
    
    All implementations must be deterministic: identical inputs give
    identical output bytes.
    """
    
    def encode(self, frame: RawFrame, fmt: ImageFormat, quality: int) -> bytes:
        """Encode a frame in the given format at the given quality."""
        ...
    
    def resize(self, frame: RawFrame, width: int, height: int) -> RawFrame:
        """Resize a frame to exactly width x height."""
        ...
    
    def metadata(self, frame: RawFrame) -> Tuple[int, int]:
        """Return (width, height) of a frame."""
        ...


def fit_inside(
    width: int,
    height: int,
    max_width: Optional[int] = None,
    max_height: Optional[int] = None,
) -> Tuple[int, int]:
    """
    Target size for a fit-inside resize without enlargement.
    
    Preserves aspect ratio; each dimension is at least 1 pixel.
    
    Returns:
        (width, height), unchanged if the image already fits
    """
    scale = 1.0
    if max_width:
        scale = min(scale, max_width / width)
    if max_height:
        scale = min(scale, max_height / height)
    
    if scale >= 1.0:
        return width, height
    
    return max(1, round(width * scale)), max(1, round(height * scale))


def palette_colors(quality: int) -> int:
    """
    Palette size for a PNG quality.
    
    Geometric from 2 colors at quality 1 to 256 at quality 100; each
    quality step scales the palette by the same ratio:
    
        quality   1   40   60   85   100
        colors    2   14   36  123   256
    """
    exponent = 1 + 7 * (quality - MIN_QUALITY) / (MAX_QUALITY - MIN_QUALITY)
    return max(2, min(256, round(2 ** exponent)))


def _encode_indexed_png(pixels: np.ndarray, quality: int) -> bytes:
    """Quantize to palette_colors(quality) and write an indexed PNG."""
    if pixels.ndim == 3 and pixels.shape[2] == 4:
        image = Image.fromarray(cv2.cvtColor(pixels, cv2.COLOR_BGRA2RGBA))
        # median cut does not support alpha
        method = Image.Quantize.FASTOCTREE
    else:
        if pixels.ndim == 3 and pixels.shape[2] == 3:
            rgb = cv2.cvtColor(pixels, cv2.COLOR_BGR2RGB)
        else:
            rgb = cv2.cvtColor(pixels.reshape(pixels.shape[:2]), cv2.COLOR_GRAY2RGB)
        image = Image.fromarray(rgb)
        method = Image.Quantize.MEDIANCUT
    
    indexed = image.quantize(colors=palette_colors(quality), method=method)
    output = io.BytesIO()
    indexed.save(output, format="PNG", optimize=True)
    return output.getvalue()


class OpenCVCodec:
    """
    ImageCodec backed by OpenCV.
    
    Uses cv2.imencode for jpeg/webp and lossless png, Pillow palette
    quantization for lossy png, and cv2.resize with INTER_AREA for
    downscaling.
    """
    
    def encode(self, frame: RawFrame, fmt: ImageFormat, quality: int) -> bytes:
        """
        Encode a frame.
        
        Args:
            frame: Decoded frame
            fmt: Output format
            quality: Quality parameter in [1, 100]
            
        Returns:
            Encoded bytes
            
        Raises:
            UnsupportedFormatError: If fmt is not png, jpeg or webp
            ValueError: If quality is outside [1, 100]
            CompressionFailedError: If the backend fails to encode
        """
        fmt = ImageFormat.parse(fmt)
        if not MIN_QUALITY <= quality <= MAX_QUALITY:
            raise ValueError(
                f"quality must be in [{MIN_QUALITY}, {MAX_QUALITY}], got {quality}"
            )
        
        if fmt is ImageFormat.PNG and quality < MAX_QUALITY:
            try:
                data = _encode_indexed_png(frame.pixels, quality)
            except (cv2.error, OSError, ValueError, MemoryError) as e:
                raise CompressionFailedError(
                    f"Failed to encode {frame!r} as png (quality={quality}): {e}"
                ) from e
        else:
            data = self._imencode(frame, fmt, quality)
        
        logger.debug(f"Encoded {frame!r} as {fmt.value} (quality={quality}): {len(data)} bytes")
        return data
    
    def _imencode(self, frame: RawFrame, fmt: ImageFormat, quality: int) -> bytes:
        """Encode jpeg/webp, or lossless png, with cv2.imencode."""
        pixels = frame.pixels
        params: List[int]
        
        if fmt is ImageFormat.JPEG:
            if pixels.ndim == 3 and pixels.shape[2] == 4:
                pixels = cv2.cvtColor(pixels, cv2.COLOR_BGRA2BGR)
            params = [
                cv2.IMWRITE_JPEG_QUALITY, quality,
                cv2.IMWRITE_JPEG_PROGRESSIVE, 1,
                cv2.IMWRITE_JPEG_OPTIMIZE, 1,
            ]
        elif fmt is ImageFormat.WEBP:
            params = [cv2.IMWRITE_WEBP_QUALITY, quality]
        else:
            params = [cv2.IMWRITE_PNG_COMPRESSION, PNG_COMPRESSION_LEVEL]
        
        try:
            success, buffer = cv2.imencode(fmt.extension, pixels, params)
        except (cv2.error, MemoryError) as e:
            raise CompressionFailedError(
                f"Failed to encode {frame!r} as {fmt.value} (quality={quality}): {e}"
            ) from e
        
        if not success:
            raise CompressionFailedError(
                f"cv2.imencode rejected {frame!r} as {fmt.value} (quality={quality})"
            )
        return buffer.tobytes()
    
    def resize(self, frame: RawFrame, width: int, height: int) -> RawFrame:
        """
        Resize a frame to exactly width x height.
        
        Raises:
            CompressionFailedError: If OpenCV fails to resize
        """
        width = max(1, int(width))
        height = max(1, int(height))
        if (width, height) == (frame.width, frame.height):
            return frame
        
        # INTER_AREA for shrinking, cubic if a caller asks to grow
        shrinking = width * height < frame.width * frame.height
        interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_CUBIC
        try:
            pixels = cv2.resize(
                frame.pixels, (width, height), interpolation=interpolation
            )
        except (cv2.error, MemoryError) as e:
            raise CompressionFailedError(
                f"Failed to resize {frame!r} to {width}x{height}: {e}"
            ) from e
        
        # cv2.resize drops a trailing singleton channel
        if frame.pixels.ndim == 3 and pixels.ndim == 2:
            pixels = pixels[:, :, np.newaxis]
        
        return RawFrame(pixels=pixels)
    
    def metadata(self, frame: RawFrame) -> Tuple[int, int]:
        return frame.width, frame.height

