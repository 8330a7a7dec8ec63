"""
Compressor Tests
================

End-to-end tests for ImageCompressor with the OpenCV codec.
"""

import asyncio
import base64
import textwrap

import cv2
import numpy as np
import pytest

from screenshot_compressor.compression import (
    CompressionConfig,
    CompressionFailedError,
    CompressionTimeoutError,
    ImageCompressor,
    ImageFormat,
    InvalidInputError,
    OpenCVCodec,
    RawFrame,
    compress_png_base64_under_1mb,
    decode_image,
    sniff_format,
)

from conftest import BrokenCodec, FakeCodec, encode_b64


def assert_consistent(result, config):
    """Properties every compressed result must satisfy."""
    assert result.size_kb == result.size_bytes / 1024
    assert result.size_mb == result.size_bytes / (1024 * 1024)
    assert config.min_quality <= result.quality <= config.initial_quality
    assert result.iterations <= config.max_iterations
    
    data = base64.b64decode(result.base64)
    assert len(data) == result.size_bytes
    assert sniff_format(data) is config.format
    decoded = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_UNCHANGED)
    assert decoded is not None
    assert decoded.shape[:2] == (result.height, result.width)


class TestCompressToFit:
    """Tests for ImageCompressor.compress_to_fit."""
    
    @pytest.mark.parametrize("fmt", ["png", "jpeg", "webp"])
    def test_result_properties(self, noisy_image_b64, fmt):
        config = CompressionConfig(
            format=fmt, target_size_kb=100, initial_quality=90, min_quality=20
        )
        result = ImageCompressor(config).compress_to_fit(noisy_image_b64)
        assert result.compressed
        assert result.format is ImageFormat.parse(fmt)
        assert_consistent(result, config)
    
    def test_under_target_keeps_initial_quality(self, gradient_image_b64):
        """A small image already under target is encoded at initial_quality."""
        config = CompressionConfig(format="jpeg", target_size_kb=512)
        result = ImageCompressor(config).compress_to_fit(gradient_image_b64)
        assert result.quality == config.initial_quality
        assert result.fits(config.target_size_kb)
        assert (result.width, result.height) == (160, 120)
        assert_consistent(result, config)
    
    def test_resizes_when_quality_is_not_enough(self, noisy_image_b64):
        """Half the min_quality size is out of reach without downscaling."""
        frame = decode_image(noisy_image_b64)
        floor_size = len(OpenCVCodec().encode(frame, ImageFormat.JPEG, 40))
        config = CompressionConfig(
            format="jpeg",
            target_size_kb=floor_size / 1024 / 2,
            initial_quality=85,
            min_quality=40,
        )
        result = ImageCompressor(config).compress_to_fit(noisy_image_b64)
        assert result.fits(config.target_size_kb)
        assert 120 <= result.width < 400
        assert_consistent(result, config)
    
    def test_unreachable_target_returns_result(self, noisy_image_b64):
        """Never raises because the target cannot be met."""
        config = CompressionConfig(format="jpeg", target_size_kb=0.1)
        result = ImageCompressor(config).compress_to_fit(noisy_image_b64)
        assert result.size_kb > config.target_size_kb
        assert result.quality == config.min_quality
        assert (result.width, result.height) == (120, 90)
        assert_consistent(result, config)
    
    def test_dimension_cap(self, wide_image_b64):
        config = CompressionConfig(format="png", max_width=1280, max_height=960)
        result = ImageCompressor(config).compress_to_fit(wide_image_b64)
        assert (result.width, result.height) == (1280, 640)
        assert_consistent(result, config)
    
    def test_data_url_matches_bare_base64(self, gradient_image_b64):
        compressor = ImageCompressor(CompressionConfig(format="webp", target_size_kb=4))
        bare = compressor.compress_to_fit(gradient_image_b64)
        prefixed = compressor.compress_to_fit(
            f"data:image/png;base64,{gradient_image_b64}"
        )
        assert prefixed.base64 == bare.base64
        assert prefixed.quality == bare.quality
    
    def test_line_wrapped_payload(self, gradient_image_b64):
        """76-column wrapped base64 compresses like the single-line payload."""
        compressor = ImageCompressor(CompressionConfig(format="jpeg", target_size_kb=64))
        wrapped = "\n".join(textwrap.wrap(gradient_image_b64, 76))
        assert compressor.compress_to_fit(wrapped).base64 == (
            compressor.compress_to_fit(gradient_image_b64).base64
        )
    
    def test_png_search_lowers_quality(self, desktop_pixels):
        """With the default png range the quality search meets the target without resizing."""
        codec = OpenCVCodec()
        frame = RawFrame(pixels=desktop_pixels)
        high = len(codec.encode(frame, ImageFormat.PNG, 85))
        low = len(codec.encode(frame, ImageFormat.PNG, 40))
        config = CompressionConfig(target_size_kb=(high + low) / 2 / 1024)
        result = ImageCompressor(config).compress_to_fit(encode_b64(desktop_pixels))
        assert result.fits(config.target_size_kb)
        assert config.min_quality < result.quality < config.initial_quality
        assert (result.width, result.height) == (320, 240)
        assert_consistent(result, config)
    
    def test_malformed_base64(self):
        with pytest.raises(InvalidInputError):
            ImageCompressor().compress_to_fit("this is ### not base64")
    
    def test_not_an_image(self):
        payload = base64.b64encode(b"plain text, not pixels").decode()
        with pytest.raises(InvalidInputError):
            ImageCompressor().compress_to_fit(payload)
    
    def test_codec_failure_wrapped(self, gradient_image_b64):
        compressor = ImageCompressor(codec=BrokenCodec())
        with pytest.raises(CompressionFailedError):
            compressor.compress_to_fit(gradient_image_b64)
    
    def test_disabled_passes_through(self, gradient_image_b64):
        config = CompressionConfig(enabled=False)
        result = ImageCompressor(config).compress_to_fit(gradient_image_b64)
        assert not result.compressed
        assert result.base64 == gradient_image_b64
        assert result.quality is None
        assert result.iterations == 0
        assert result.format is ImageFormat.PNG
        assert result.size_bytes == len(base64.b64decode(gradient_image_b64))
    
    def test_disabled_strips_data_url(self, gradient_image_b64):
        config = CompressionConfig(enabled=False)
        result = ImageCompressor(config).compress_to_fit(
            f"data:image/png;base64,{gradient_image_b64}"
        )
        assert base64.b64decode(result.base64) == base64.b64decode(gradient_image_b64)
    
    def test_disabled_never_raises(self):
        """Malformed input is passed through untouched when compression is off."""
        config = CompressionConfig(enabled=False)
        payload = "not ### base64"
        result = ImageCompressor(config).compress_to_fit(payload)
        assert not result.compressed
        assert result.base64 == payload
        assert result.format is None
        assert result.media_type is None
        assert result.size_bytes == len("not###base64") * 3 // 4
    
    def test_disabled_normalizes_wrapped_payload(self, gradient_image_b64):
        config = CompressionConfig(enabled=False)
        wrapped = "\n".join(textwrap.wrap(gradient_image_b64, 76))
        result = ImageCompressor(config).compress_to_fit(wrapped)
        assert result.base64 == gradient_image_b64
        assert result.format is ImageFormat.PNG
    
    def test_same_compressor_reused(self, gradient_image_b64, noisy_image_b64):
        """Calls share nothing but the read-only config."""
        compressor = ImageCompressor(CompressionConfig(format="jpeg", target_size_kb=20))
        first = compressor.compress_to_fit(gradient_image_b64)
        compressor.compress_to_fit(noisy_image_b64)
        again = compressor.compress_to_fit(gradient_image_b64)
        assert first.base64 == again.base64


class TestCompressToFitAsync:
    """Tests for the worker-pool entry point."""
    
    def test_matches_sync(self, gradient_image_b64):
        compressor = ImageCompressor(CompressionConfig(format="jpeg", target_size_kb=8))
        sync_result = compressor.compress_to_fit(gradient_image_b64)
        async_result = asyncio.run(compressor.compress_to_fit_async(gradient_image_b64))
        assert async_result.base64 == sync_result.base64
    
    def test_timeout(self, gradient_image_b64):
        """A slow codec is abandoned and stops before its next encode."""
        codec = FakeCodec(delay=0.2)
        compressor = ImageCompressor(CompressionConfig(target_size_kb=0.01), codec=codec)
        
        with pytest.raises(CompressionTimeoutError):
            asyncio.run(
                compressor.compress_to_fit_async(gradient_image_b64, timeout=0.05)
            )
        assert len(codec.encode_calls) <= 2
    
    def test_invalid_input_propagates(self):
        with pytest.raises(InvalidInputError):
            asyncio.run(ImageCompressor().compress_to_fit_async("### nope ###"))


class TestHelpers:
    """Tests for compress_to_size, convert_format and the 1MB helper."""
    
    def test_compress_to_size_skips_resizing(self, wide_image_b64):
        config = CompressionConfig(format="png", max_width=100, max_height=100)
        result = ImageCompressor(config).compress_to_size(wide_image_b64)
        assert (result.width, result.height) == (2000, 1000)
    
    def test_convert_jpeg_to_png(self, noisy_pixels):
        jpeg_b64 = encode_b64(noisy_pixels, ".jpg")
        result = ImageCompressor().convert_format(f"data:image/jpeg;base64,{jpeg_b64}", "png")
        data = base64.b64decode(result.base64)
        assert data[:4] == b"\x89PNG"
        assert result.format is ImageFormat.PNG
        assert result.quality == 100
    
    def test_under_1mb(self, noisy_image_b64):
        output = compress_png_base64_under_1mb(noisy_image_b64)
        data = base64.b64decode(output)
        assert sniff_format(data) is ImageFormat.PNG
        assert len(data) <= 1024 * 1024
