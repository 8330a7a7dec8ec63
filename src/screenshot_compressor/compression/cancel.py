"""
Cancellation
============

Cooperative cancellation for the compression loops.

A CancelToken is checked before every encode attempt and every resize
step. It cannot interrupt a codec call that is already running.
"""

import threading
import time
from typing import Optional

from screenshot_compressor.compression.errors import (
    CompressionCancelledError,
    CompressionTimeoutError,
)


class CancelToken:
    """
    Thread-safe cancellation flag with an optional deadline.
    
    Example:
        token = CancelToken(timeout=2.0)
        result = compressor.compress_to_fit(image, cancel=token)
    """
    
    def __init__(self, timeout: Optional[float] = None) -> None:
        """
        Initialize token.
        
        Args:
            timeout: Seconds from now after which check() raises.
                None = no deadline.
        """
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0")
        
        self._event = threading.Event()
        self._deadline: Optional[float] = (
            time.monotonic() + timeout if timeout is not None else None
        )
    
    @property
    def cancelled(self) -> bool:
        """True once cancel() has been called."""
        return self._event.is_set()
    
    @property
    def expired(self) -> bool:
        """True once the deadline has passed."""
        return self._deadline is not None and time.monotonic() >= self._deadline
    
    def cancel(self) -> None:
        """Request that the pipeline stop before its next encode."""
        self._event.set()
    
    def check(self) -> None:
        """
        Raise if the work should stop.
        
        Raises:
            CompressionCancelledError: If cancel() was called
            CompressionTimeoutError: If the deadline has passed
        """
        if self._event.is_set():
            raise CompressionCancelledError("Compression cancelled")
        if self.expired:
            raise CompressionTimeoutError("Compression deadline exceeded")
