"""
Quality Search
==============

Binary search over the codec quality parameter.

Finds the highest integer quality in [min_quality, initial_quality] whose
encoding fits the target size, using at most max_iterations encodes.

The search assumes size grows (weakly) with quality for a fixed frame and
format. Codecs do not strictly guarantee this, so the result is the best
quality the search observed, not a proven optimum.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from screenshot_compressor.compression.cancel import CancelToken
from screenshot_compressor.compression.codec import ImageCodec
from screenshot_compressor.compression.formats import ImageFormat
from screenshot_compressor.compression.frame import RawFrame
from screenshot_compressor.compression.options import CompressionConfig


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QualitySearchResult:
    """
    Outcome of one quality search.
    
    Attributes:
        buffer: Encoded bytes for the chosen quality
        quality: Quality parameter used for buffer
        iterations: Encode attempts made by the binary search
        fits: Whether buffer is within the target size
    """
    
    buffer: bytes
    quality: int
    iterations: int
    fits: bool
    
    @property
    def size_kb(self) -> float:
        return len(self.buffer) / 1024
    
    def __repr__(self) -> str:
        return (
            f"QualitySearchResult(size={len(self.buffer)}B, "
            f"quality={self.quality}, iterations={self.iterations}, "
            f"fits={self.fits})"
        )


def search_quality(
    frame: RawFrame,
    fmt: ImageFormat,
    config: CompressionConfig,
    codec: ImageCodec,
    cancel: Optional[CancelToken] = None,
) -> QualitySearchResult:
    """
    Find the highest quality whose encoding fits config.target_size_kb.
    
    If even min_quality overshoots, the min_quality encoding is returned
    with fits=False, so a result always exists.
    
    Args:
        frame: Frame to encode
        fmt: Output format
        config: Quality bounds, target size and iteration cap
        codec: Imaging backend
        cancel: Checked before every encode
        
    Returns:
        QualitySearchResult
        
    Raises:
        CompressionCancelledError / CompressionTimeoutError: If cancel fires
        CompressionFailedError: If the codec fails
    """
    low = config.min_quality
    high = config.initial_quality
    iterations = 0
    best: Optional[QualitySearchResult] = None
    attempts: Dict[int, bytes] = {}
    
    while low <= high and iterations < config.max_iterations:
        if cancel is not None:
            cancel.check()
        
        mid = (low + high) // 2
        candidate = codec.encode(frame, fmt, mid)
        iterations += 1
        attempts[mid] = candidate
        
        if config.fits(len(candidate)):
            best = QualitySearchResult(
                buffer=candidate, quality=mid, iterations=iterations, fits=True
            )
            low = mid + 1
        else:
            high = mid - 1
        
        logger.debug(
            f"Quality search {iterations}/{config.max_iterations}: "
            f"q={mid} -> {len(candidate) / 1024:.1f}KB "
            f"(target {config.target_size_kb}KB)"
        )
    
    if best is not None:
        return QualitySearchResult(
            buffer=best.buffer,
            quality=best.quality,
            iterations=iterations,
            fits=True,
        )
    
    # Nothing fit: fall back to the lowest quality
    fallback = attempts.get(config.min_quality)
    if fallback is None:
        if cancel is not None:
            cancel.check()
        fallback = codec.encode(frame, fmt, config.min_quality)
    
    return QualitySearchResult(
        buffer=fallback,
        quality=config.min_quality,
        iterations=iterations,
        fits=config.fits(len(fallback)),
    )
