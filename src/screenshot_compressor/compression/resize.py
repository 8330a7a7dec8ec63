"""
Dimension Handling
==================

Two resize stages of the compression pipeline:

    - constrain_dimensions: one fit-inside pass that caps the frame to the
      configured max width/height before any quality search
    - resize_until_fits: progressive downscaling used when the quality
      search cannot reach the target even at min_quality

The progressive schedule is 90%, 80%, ... 30% of the constrained size
(seven steps), each step costing one full quality search.
"""

import logging
from typing import Optional

from screenshot_compressor.compression.cancel import CancelToken
from screenshot_compressor.compression.codec import ImageCodec, fit_inside
from screenshot_compressor.compression.formats import ImageFormat
from screenshot_compressor.compression.frame import RawFrame
from screenshot_compressor.compression.options import CompressionConfig
from screenshot_compressor.compression.result import CompressionResult
from screenshot_compressor.compression.search import search_quality


logger = logging.getLogger(__name__)


# Scale factors in tenths: 0.9 down to the 0.3 floor
SCALE_START_TENTHS = 9
SCALE_FLOOR_TENTHS = 3


def constrain_dimensions(
    frame: RawFrame,
    max_width: Optional[int],
    max_height: Optional[int],
    codec: ImageCodec,
) -> RawFrame:
    """
    Cap a frame to max_width x max_height, preserving aspect ratio.
    
    Never enlarges. Returns the same frame object when no bound is set
    or the frame already fits.
    """
    if not max_width and not max_height:
        return frame
    
    width, height = codec.metadata(frame)
    exceeds_width = bool(max_width) and width > max_width
    exceeds_height = bool(max_height) and height > max_height
    if not exceeds_width and not exceeds_height:
        return frame
    
    new_width, new_height = fit_inside(width, height, max_width, max_height)
    logger.debug(
        f"Constraining {width}x{height} to {new_width}x{new_height} "
        f"(max {max_width}x{max_height})"
    )
    return codec.resize(frame, new_width, new_height)


def resize_until_fits(
    frame: RawFrame,
    fmt: ImageFormat,
    config: CompressionConfig,
    codec: ImageCodec,
    current: CompressionResult,
    cancel: Optional[CancelToken] = None,
) -> CompressionResult:
    """
    Shrink the frame step by step until an encoding fits the target.
    
    Each step resizes the ORIGINAL (constrained) frame to
    floor(width * scale) x floor(height * scale) and re-runs the quality
    search. Stops at the first fitting result or after the 0.3 step.
    
    Args:
        frame: Constrained frame the first search ran on
        fmt: Output format
        config: Compression parameters
        codec: Imaging backend
        current: Result of the first search (over target)
        cancel: Checked before every step and encode
        
    Returns:
        The smallest result observed; a fitting one if any step fit.
        Never raises just because the target is unreachable.
    """
    width, height = codec.metadata(frame)
    smallest = current
    
    for tenths in range(SCALE_START_TENTHS, SCALE_FLOOR_TENTHS - 1, -1):
        if current.fits(config.target_size_kb):
            break
        if cancel is not None:
            cancel.check()
        
        target_width = max(1, width * tenths // 10)
        target_height = max(1, height * tenths // 10)
        new_width, new_height = fit_inside(width, height, target_width, target_height)
        resized = codec.resize(frame, new_width, new_height)
        
        search = search_quality(resized, fmt, config, codec, cancel)
        current = CompressionResult.from_buffer(
            search.buffer,
            quality=search.quality,
            fmt=fmt,
            iterations=search.iterations,
            width=resized.width,
            height=resized.height,
        )
        logger.debug(
            f"Resize step {tenths / 10:.1f}: {resized.width}x{resized.height} "
            f"-> {current.size_kb:.1f}KB at q={current.quality}"
        )
        
        if current.size_bytes < smallest.size_bytes:
            smallest = current
    
    return smallest
