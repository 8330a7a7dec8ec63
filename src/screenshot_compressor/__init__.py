"""
Screenshot Compressor
=====================

Adaptive compression of virtual-desktop screenshots for AI agents.

Captured frames are re-encoded to a size budget before they are embedded
as image blocks in tool results: a bounded binary search over the codec
quality parameter, with progressive downscaling when quality alone cannot
reach the target.

Components:
    - compression: The compression pipeline (ImageCompressor)
    - service: Capture-side glue with graceful fallback (ScreenshotService)
    - config: YAML + environment configuration
    - main: FastAPI application

Example:
    from screenshot_compressor.config import get_settings
    from screenshot_compressor.compression import ImageCompressor
    
    compressor = ImageCompressor(get_settings().effective_compression())
    result = compressor.compress_to_fit(screenshot_b64)
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
