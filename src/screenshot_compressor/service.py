"""
Screenshot Service
==================

Capture-side glue around the compressor.

Compression is a quality-of-service optimization, not a correctness
requirement: if it fails for any reason the original frame is returned
with a warning, and the screenshot itself never fails because of it.

Design Rules:
    - The compressor runs in a worker pool (CPU-bound codec calls)
    - No retries here; one attempt per frame
    - Exposes minimal counters for observability
"""

import base64
import binascii
import logging
import re
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Optional, Protocol

from screenshot_compressor.compression import (
    CompressionError,
    CompressionResult,
    ImageCompressor,
    normalize_base64,
    sniff_format,
)


logger = logging.getLogger(__name__)


_DATA_URL_TYPE = re.compile(r"^data:(image/\w+);base64,")


class FrameSource(Protocol):
    """
    Protocol for screen capture backends.
    
    Implementations return the current desktop frame as a base64 image.
    """
    
    async def capture(self) -> str:
        """Capture the screen and return it base64-encoded."""
        ...


@dataclass(frozen=True, slots=True)
class Screenshot:
    """
    Screenshot ready to embed in a tool result.
    
    Attributes:
        image: Base64 image (no data-URL prefix)
        media_type: MIME type of image
        compressed: False if the original frame was returned
        result: Compression metadata when compressed
    """
    
    image: str
    media_type: str
    compressed: bool
    result: Optional[CompressionResult] = None
    
    def __repr__(self) -> str:
        return (
            f"Screenshot(media_type={self.media_type}, "
            f"compressed={self.compressed}, result={self.result!r})"
        )
    
    def to_dict(self) -> dict:
        """Export for JSON responses."""
        return {
            "image": self.image,
            "mediaType": self.media_type,
            "compressed": self.compressed,
            "result": (
                {k: v for k, v in self.result.to_dict().items() if k != "base64"}
                if self.result is not None
                else None
            ),
        }


def detect_media_type(payload: str, default: str) -> str:
    """
    Best-effort MIME type of a base64 image.
    
    Checks the magic bytes, then a data-URL prefix, then falls back to
    default. Never raises.
    """
    data_b64 = normalize_base64(payload)
    try:
        head = base64.b64decode(data_b64[:16], validate=True)
    except (binascii.Error, ValueError):
        head = b""
    
    fmt = sniff_format(head)
    if fmt is not None:
        return fmt.media_type
    
    if match := _DATA_URL_TYPE.match(payload.strip()):
        return match.group(1)
    return default


class ScreenshotService:
    """
    Compresses captured frames, degrading to the original on failure.
    
    Example:
        service = ScreenshotService(compressor, source=xvfb_source, timeout=2.0)
        shot = await service.screenshot()
        block = {"type": "image", "media_type": shot.media_type, "data": shot.image}
    """
    
    def __init__(
        self,
        compressor: ImageCompressor,
        source: Optional[FrameSource] = None,
        timeout: Optional[float] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        """
        Initialize service.
        
        Args:
            compressor: Configured compressor
            source: Screen capture backend, needed only for screenshot()
            timeout: Per-frame compression deadline in seconds
            executor: Worker pool for compression (None = loop default)
        """
        self._compressor = compressor
        self._source = source
        self._timeout = timeout
        self._executor = executor
        
        self._frames: int = 0
        self._compressed: int = 0
        self._passthrough: int = 0
        self._fallbacks: int = 0
        self._over_target: int = 0
    
    @property
    def compressor(self) -> ImageCompressor:
        return self._compressor
    
    async def screenshot(self) -> Screenshot:
        """
        Capture a frame from the source and compress it.
        
        Raises:
            RuntimeError: If the service has no frame source
        """
        if self._source is None:
            raise RuntimeError("ScreenshotService has no frame source")
        
        logger.info("Taking screenshot")
        image = await self._source.capture()
        return await self.compress_frame(image)
    
    async def compress_frame(
        self,
        image: str,
        timeout: Optional[float] = None,
    ) -> Screenshot:
        """
        Compress a captured frame, returning the original if that fails.
        
        Args:
            image: Base64 or data-URL image
            timeout: Overrides the service deadline for this frame
            
        Returns:
            Screenshot (never raises for compression problems)
        """
        self._frames += 1
        config = self._compressor.config
        default_media_type = config.format.media_type
        
        if not config.enabled:
            self._passthrough += 1
            return Screenshot(
                image=normalize_base64(image),
                media_type=detect_media_type(image, default_media_type),
                compressed=False,
            )
        
        try:
            result = await self._compressor.compress_to_fit_async(
                image,
                timeout=timeout if timeout is not None else self._timeout,
                executor=self._executor,
            )
        except CompressionError as e:
            self._fallbacks += 1
            logger.warning(f"Screenshot compression failed: {e}")
            return Screenshot(
                image=normalize_base64(image),
                media_type=detect_media_type(image, default_media_type),
                compressed=False,
            )
        
        self._compressed += 1
        if not result.fits(config.target_size_kb):
            self._over_target += 1
        
        logger.info(f"Screenshot compressed to {result.size_kb:.1f}KB")
        return Screenshot(
            image=result.base64,
            media_type=result.media_type or default_media_type,
            compressed=True,
            result=result,
        )
    
    def metrics(self) -> dict:
        """
        Get service counters for observability.
        
        Returns:
            Dict with frames, compressed, passthrough, fallbacks, over_target
        """
        return {
            "frames": self._frames,
            "compressed": self._compressed,
            "passthrough": self._passthrough,
            "fallbacks": self._fallbacks,
            "over_target": self._over_target,
        }
