"""
Compression Module
==================

Adaptive screenshot compression: bounded quality search with a
progressive-resize fallback.

Components:
    - ImageCompressor: Public entry point (compress_to_fit)
    - search_quality: Binary search over the quality parameter
    - constrain_dimensions / resize_until_fits: Dimension handling
    - ImageCodec / OpenCVCodec: Encode/resize backend
    - inspect_size: Byte/KB/MB size reporting

Example:
    from screenshot_compressor.compression import CompressionConfig, ImageCompressor
    
    compressor = ImageCompressor(CompressionConfig(target_size_kb=512, format="jpeg"))
    result = compressor.compress_to_fit(screenshot_b64)
"""

from screenshot_compressor.compression.cancel import CancelToken
from screenshot_compressor.compression.codec import ImageCodec, OpenCVCodec, fit_inside
from screenshot_compressor.compression.compressor import (
    ImageCompressor,
    compress_png_base64_under_1mb,
)
from screenshot_compressor.compression.errors import (
    CompressionCancelledError,
    CompressionError,
    CompressionFailedError,
    CompressionTimeoutError,
    InvalidInputError,
    UnsupportedFormatError,
)
from screenshot_compressor.compression.formats import (
    ImageFormat,
    normalize_base64,
    sniff_format,
    strip_data_url,
)
from screenshot_compressor.compression.frame import RawFrame, decode_bytes, decode_image
from screenshot_compressor.compression.options import CompressionConfig
from screenshot_compressor.compression.resize import constrain_dimensions, resize_until_fits
from screenshot_compressor.compression.result import CompressionResult
from screenshot_compressor.compression.search import QualitySearchResult, search_quality
from screenshot_compressor.compression.size import SizeInfo, base64_size_info, inspect_size


__all__ = [
    # Entry point
    "ImageCompressor",
    "compress_png_base64_under_1mb",
    "CompressionConfig",
    "CompressionResult",
    # Stages
    "search_quality",
    "QualitySearchResult",
    "constrain_dimensions",
    "resize_until_fits",
    # Codec
    "ImageCodec",
    "OpenCVCodec",
    "fit_inside",
    "RawFrame",
    "decode_image",
    "decode_bytes",
    # Formats and sizes
    "ImageFormat",
    "sniff_format",
    "normalize_base64",
    "strip_data_url",
    "SizeInfo",
    "inspect_size",
    "base64_size_info",
    # Cancellation
    "CancelToken",
    # Errors
    "CompressionError",
    "InvalidInputError",
    "UnsupportedFormatError",
    "CompressionFailedError",
    "CompressionTimeoutError",
    "CompressionCancelledError",
]
