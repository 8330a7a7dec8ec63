"""
Image Compressor
================

Public entry point of the adaptive compression pipeline.

Pipeline:
    base64 / data-URL payload
        -> decode_image
        -> constrain_dimensions (one pass, max width/height)
        -> search_quality (bounded binary search)
        -> [still over target] resize_until_fits (progressive downscale)
        -> CompressionResult

Design Rules:
    - The compressor holds only its read-only config and codec, so one
      instance can serve concurrent calls
    - No retries: codec failures surface as CompressionFailedError and the
      caller decides how to fall back
    - An unreachable target is not an error; the best-effort result is
      returned and logged
"""

import asyncio
import base64
import binascii
import functools
import logging
from concurrent.futures import Executor
from typing import Optional

from screenshot_compressor.compression.cancel import CancelToken
from screenshot_compressor.compression.codec import ImageCodec, OpenCVCodec
from screenshot_compressor.compression.errors import (
    CompressionError,
    CompressionFailedError,
    CompressionTimeoutError,
)
from screenshot_compressor.compression.formats import (
    ImageFormat,
    normalize_base64,
    sniff_format,
)
from screenshot_compressor.compression.frame import decode_image
from screenshot_compressor.compression.options import CompressionConfig
from screenshot_compressor.compression.resize import (
    constrain_dimensions,
    resize_until_fits,
)
from screenshot_compressor.compression.result import CompressionResult
from screenshot_compressor.compression.search import search_quality


logger = logging.getLogger(__name__)


LOSSLESS_QUALITY = 100


class ImageCompressor:
    """
    Compresses base64 screenshots to a size and quality budget.
    
    Attributes:
        config: Compression parameters (immutable, shared across calls)
        codec: Imaging backend
        
    Example:
        compressor = ImageCompressor(CompressionConfig(target_size_kb=512))
        result = compressor.compress_to_fit(screenshot_b64)
        print(result.size_kb, result.quality)
    """
    
    def __init__(
        self,
        config: Optional[CompressionConfig] = None,
        codec: Optional[ImageCodec] = None,
    ) -> None:
        self._config = config or CompressionConfig()
        self._codec: ImageCodec = codec or OpenCVCodec()
    
    @property
    def config(self) -> CompressionConfig:
        return self._config
    
    @property
    def codec(self) -> ImageCodec:
        return self._codec
    
    def compress_to_fit(
        self,
        payload: str,
        cancel: Optional[CancelToken] = None,
    ) -> CompressionResult:
        """
        Compress a screenshot to the configured target size.
        
        Args:
            payload: Base64 image, optionally a ``data:image/...;base64,`` URL
            cancel: Optional token checked before every encode
            
        Returns:
            CompressionResult. When compression is disabled, the input is
            returned untouched (compressed=False).
            
        Raises:
            InvalidInputError: If the payload is not a decodable image
            CompressionFailedError: If the codec fails (not retried)
        """
        config = self._config
        if not config.enabled:
            return self._passthrough(payload)
        
        try:
            frame = decode_image(payload)
            fmt = config.format
            
            constrained = constrain_dimensions(
                frame, config.max_width, config.max_height, self._codec
            )
            
            search = search_quality(constrained, fmt, config, self._codec, cancel)
            result = CompressionResult.from_buffer(
                search.buffer,
                quality=search.quality,
                fmt=fmt,
                iterations=search.iterations,
                width=constrained.width,
                height=constrained.height,
            )
            
            if not result.fits(config.target_size_kb):
                logger.debug(
                    f"{result.size_kb:.1f}KB at q={result.quality} exceeds "
                    f"{config.target_size_kb}KB, resizing progressively"
                )
                result = resize_until_fits(
                    constrained, fmt, config, self._codec, result, cancel
                )
        except CompressionError:
            raise
        except Exception as e:
            raise CompressionFailedError(f"Compression failed: {e}") from e
        
        if not result.fits(config.target_size_kb):
            logger.warning(
                f"Target {config.target_size_kb}KB unreachable; returning "
                f"{result.size_kb:.1f}KB at {result.width}x{result.height}, "
                f"q={result.quality}"
            )
        
        logger.info(
            f"Compressed {frame.width}x{frame.height} -> "
            f"{result.width}x{result.height} {fmt.value}: "
            f"{result.size_kb:.1f}KB, q={result.quality}, "
            f"iterations={result.iterations}"
        )
        return result
    
    def compress_to_size(
        self,
        payload: str,
        cancel: Optional[CancelToken] = None,
    ) -> CompressionResult:
        """
        Quality search only: no dimension cap and no progressive resize.
        
        Raises:
            InvalidInputError: If the payload is not a decodable image
            CompressionFailedError: If the codec fails
        """
        try:
            frame = decode_image(payload)
            search = search_quality(
                frame, self._config.format, self._config, self._codec, cancel
            )
        except CompressionError:
            raise
        except Exception as e:
            raise CompressionFailedError(f"Compression failed: {e}") from e
        
        return CompressionResult.from_buffer(
            search.buffer,
            quality=search.quality,
            fmt=self._config.format,
            iterations=search.iterations,
            width=frame.width,
            height=frame.height,
        )
    
    def convert_format(
        self,
        payload: str,
        fmt: "ImageFormat | str",
    ) -> CompressionResult:
        """
        Re-encode an image in another format at full quality.
        
        Raises:
            UnsupportedFormatError: If fmt is not png, jpeg or webp
            InvalidInputError: If the payload is not a decodable image
            CompressionFailedError: If the codec fails
        """
        fmt = ImageFormat.parse(fmt)
        frame = decode_image(payload)
        try:
            buffer = self._codec.encode(frame, fmt, LOSSLESS_QUALITY)
        except CompressionError:
            raise
        except Exception as e:
            raise CompressionFailedError(f"Conversion to {fmt.value} failed: {e}") from e
        
        return CompressionResult.from_buffer(
            buffer,
            quality=LOSSLESS_QUALITY,
            fmt=fmt,
            iterations=1,
            width=frame.width,
            height=frame.height,
        )
    
    async def compress_to_fit_async(
        self,
        payload: str,
        timeout: Optional[float] = None,
        executor: Optional[Executor] = None,
    ) -> CompressionResult:
        """
        Run compress_to_fit in a worker pool without blocking the event loop.
        
        On timeout (or if the awaiting task is cancelled) the worker is told
        to stop before its next encode. An encode already running finishes
        in the background.
        
        Args:
            payload: Base64 or data-URL image
            timeout: Seconds before giving up. None = no limit.
            executor: Pool to run in. None = the loop's default executor.
            
        Raises:
            CompressionTimeoutError: If the timeout expires
            InvalidInputError / CompressionFailedError: As compress_to_fit
        """
        cancel = CancelToken(timeout=timeout)
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(
            executor,
            functools.partial(self.compress_to_fit, payload, cancel),
        )
        
        try:
            if timeout is None:
                return await future
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            cancel.cancel()
            raise CompressionTimeoutError(
                f"Compression did not finish within {timeout}s"
            ) from None
        except asyncio.CancelledError:
            cancel.cancel()
            raise
    
    def _passthrough(self, payload: str) -> CompressionResult:
        """
        Return the input unchanged, with its size and sniffed format.
        
        Never raises: a payload that is not valid base64 is returned as
        given, sized from its length, with no format.
        """
        data_b64 = normalize_base64(payload)
        try:
            data = base64.b64decode(data_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            logger.debug(f"Pass-through payload is not valid base64: {e}")
            return CompressionResult.passthrough(
                payload, size_bytes=len(data_b64) * 3 // 4
            )
        
        return CompressionResult.passthrough(data_b64, data, sniff_format(data))


def compress_png_base64_under_1mb(payload: str) -> str:
    """
    Compress a base64 PNG to at most 1 MB.
    
    Quality search only (95 down to 10), no resizing.
    
    Returns:
        Base64 PNG
    """
    config = CompressionConfig(
        target_size_kb=1024,
        format=ImageFormat.PNG,
        initial_quality=95,
        min_quality=10,
    )
    return ImageCompressor(config).compress_to_size(payload).base64
