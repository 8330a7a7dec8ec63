"""
Test Configuration
==================

Pytest fixtures and test configuration for the screenshot compressor.
"""

import base64
import time
from typing import List, Tuple

import cv2
import numpy as np
import pytest

from screenshot_compressor.compression import ImageFormat, RawFrame


ENV_VARS = [
    "SCREENSHOT_COMPRESSION_ENABLED",
    "SCREENSHOT_TARGET_SIZE_KB",
    "SCREENSHOT_INITIAL_QUALITY",
    "SCREENSHOT_MIN_QUALITY",
    "SCREENSHOT_MAX_ITERATIONS",
    "SCREENSHOT_IMAGE_FORMAT",
    "SCREENSHOT_MAX_WIDTH",
    "SCREENSHOT_MAX_HEIGHT",
    "SCREENSHOT_LOG_LEVEL",
    "DISPLAY_WIDTH",
    "DISPLAY_HEIGHT",
    "PORT",
]


def encode_b64(pixels: np.ndarray, ext: str = ".png") -> str:
    """Encode pixels with OpenCV and return base64."""
    success, buffer = cv2.imencode(ext, pixels)
    assert success
    return base64.b64encode(buffer.tobytes()).decode("ascii")


class FakeCodec:
    """
    Deterministic codec with a linear size model.
    
    Encoded size = width * height * bytes_per_pixel * quality / 100,
    so size is strictly monotonic in quality and pixel count.
    """
    
    def __init__(self, bytes_per_pixel: float = 1.0, delay: float = 0.0) -> None:
        self.bytes_per_pixel = bytes_per_pixel
        self.delay = delay
        self.encode_calls: List[int] = []
        self.resize_calls: List[Tuple[int, int]] = []
    
    def size_for(self, width: int, height: int, quality: int) -> int:
        return int(width * height * self.bytes_per_pixel * quality / 100)
    
    def encode(self, frame: RawFrame, fmt: ImageFormat, quality: int) -> bytes:
        if self.delay:
            time.sleep(self.delay)
        self.encode_calls.append(quality)
        return b"\x00" * self.size_for(frame.width, frame.height, quality)
    
    def resize(self, frame: RawFrame, width: int, height: int) -> RawFrame:
        self.resize_calls.append((width, height))
        return RawFrame(pixels=np.zeros((height, width, 3), dtype=np.uint8))
    
    def metadata(self, frame: RawFrame) -> Tuple[int, int]:
        return frame.width, frame.height


class BrokenCodec(FakeCodec):
    """Codec whose encoder always fails."""
    
    def encode(self, frame: RawFrame, fmt: ImageFormat, quality: int) -> bytes:
        raise RuntimeError("encoder exploded")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove configuration environment variables for every test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_codec():
    """Provide a FakeCodec with 1 byte per pixel at quality 100."""
    return FakeCodec()


@pytest.fixture
def square_frame():
    """Provide a blank 100x100 BGR frame."""
    return RawFrame(pixels=np.zeros((100, 100, 3), dtype=np.uint8))


@pytest.fixture
def noisy_pixels():
    """Provide 400x300 random BGR pixels (hard to compress)."""
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, size=(300, 400, 3), dtype=np.uint8)


@pytest.fixture
def desktop_pixels():
    """Provide a 320x240 desktop: noisy gradient wallpaper, a window with text rows."""
    rng = np.random.default_rng(7)
    ramp = np.tile(np.linspace(40, 220, 320), (240, 1))
    wallpaper = np.dstack([ramp, ramp[:, ::-1], np.full((240, 320), 120.0)])
    wallpaper += rng.normal(0, 6, size=wallpaper.shape)
    pixels = np.clip(wallpaper, 0, 255).astype(np.uint8)

    pixels[40:200, 60:280] = (245, 245, 245)
    for row in range(60, 190, 12):
        pixels[row:row + 6, 70:90 + (row * 7) % 180] = (30, 30, 30)
    return pixels


@pytest.fixture
def noisy_image_b64(noisy_pixels):
    """Provide the noisy image as base64 PNG."""
    return encode_b64(noisy_pixels)


@pytest.fixture
def gradient_image_b64():
    """Provide a small smooth 160x120 gradient as base64 PNG."""
    x = np.linspace(0, 255, 160, dtype=np.float64)
    y = np.linspace(0, 255, 120, dtype=np.float64)
    blue = np.tile(x, (120, 1))
    green = np.tile(y[:, np.newaxis], (1, 160))
    red = np.full((120, 160), 128.0)
    pixels = np.dstack([blue, green, red]).astype(np.uint8)
    return encode_b64(pixels)


@pytest.fixture
def wide_image_b64():
    """Provide a flat 2000x1000 desktop-like image as base64 PNG."""
    pixels = np.full((1000, 2000, 3), 200, dtype=np.uint8)
    pixels[100:200, 100:900] = (40, 90, 160)
    return encode_b64(pixels)
