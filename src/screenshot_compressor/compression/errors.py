"""
Compression Errors
==================

Exception hierarchy for the screenshot compression pipeline.

Design Rules:
    - Every pipeline failure is a CompressionError
    - Unreachable size targets are NOT errors (best-effort result)
    - Timeouts and cancellation are CompressionFailedErrors, so callers
      need a single fallback path
"""


class CompressionError(Exception):
    """Base class for all compression pipeline errors."""
    pass


class InvalidInputError(CompressionError):
    """Raised when the payload is not decodable as an image."""
    pass


class UnsupportedFormatError(CompressionError, ValueError):
    """Raised when an output format is outside png/jpeg/webp."""
    pass


class CompressionFailedError(CompressionError):
    """Raised when the codec fails for any other reason."""
    pass


class CompressionTimeoutError(CompressionFailedError):
    """Raised when the compression deadline passes between encodes."""
    pass


class CompressionCancelledError(CompressionFailedError):
    """Raised when compression is cancelled between encodes."""
    pass
