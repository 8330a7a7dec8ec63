"""
Quality Search Tests
====================

Tests for the bounded binary search over the quality parameter.

Uses FakeCodec (size = pixels * quality / 100 bytes) so the expected
answers are exact.
"""

import pytest

from screenshot_compressor.compression import (
    CancelToken,
    CompressionCancelledError,
    CompressionConfig,
    ImageFormat,
    search_quality,
)


def make_config(**overrides) -> CompressionConfig:
    values = {
        "target_size_kb": 5,
        "initial_quality": 95,
        "min_quality": 10,
        "max_iterations": 10,
        "format": "jpeg",
    }
    values.update(overrides)
    return CompressionConfig(**values)


class TestSearchQuality:
    """Tests for search_quality."""
    
    def test_finds_highest_fitting_quality(self, square_frame, fake_codec):
        """100x100 at 1 B/px: q * 100 bytes <= 5120 -> q = 51."""
        result = search_quality(square_frame, ImageFormat.JPEG, make_config(), fake_codec)
        assert result.quality == 51
        assert result.fits
        assert len(result.buffer) == 5100
        assert result.iterations <= 10
    
    def test_matches_linear_scan(self, square_frame, fake_codec):
        """Binary search agrees with an exhaustive scan on a monotonic codec."""
        config = make_config(target_size_kb=3.3)
        result = search_quality(square_frame, ImageFormat.JPEG, config, fake_codec)
        
        fitting = [
            q for q in range(config.min_quality, config.initial_quality + 1)
            if fake_codec.size_for(100, 100, q) <= config.target_size_kb * 1024
        ]
        assert result.quality == max(fitting)
    
    def test_already_under_target(self, square_frame, fake_codec):
        """A generous target lands on initial_quality."""
        config = make_config(target_size_kb=1000)
        result = search_quality(square_frame, ImageFormat.JPEG, config, fake_codec)
        assert result.quality == config.initial_quality
        assert result.fits
        assert result.iterations <= 7
    
    def test_unreachable_returns_min_quality(self, square_frame, fake_codec):
        """Nothing fits: the min_quality encoding is returned."""
        config = make_config(target_size_kb=0.5)
        result = search_quality(square_frame, ImageFormat.JPEG, config, fake_codec)
        assert result.quality == config.min_quality
        assert not result.fits
        assert len(result.buffer) == fake_codec.size_for(100, 100, config.min_quality)
    
    def test_min_quality_encoding_reused(self, square_frame, fake_codec):
        """When the search already tried min_quality, no extra encode is made."""
        config = make_config(target_size_kb=0.5)
        result = search_quality(square_frame, ImageFormat.JPEG, config, fake_codec)
        assert config.min_quality in fake_codec.encode_calls
        assert len(fake_codec.encode_calls) == result.iterations
    
    def test_iteration_cap(self, square_frame, fake_codec):
        """The binary search stops after max_iterations encodes."""
        config = make_config(target_size_kb=0.5, max_iterations=2)
        result = search_quality(square_frame, ImageFormat.JPEG, config, fake_codec)
        assert result.iterations == 2
        assert result.quality == config.min_quality
        # Two search encodes plus the min_quality fallback
        assert fake_codec.encode_calls == [52, 30, 10]
    
    def test_single_iteration(self, square_frame, fake_codec):
        config = make_config(target_size_kb=1000, max_iterations=1)
        result = search_quality(square_frame, ImageFormat.JPEG, config, fake_codec)
        assert result.iterations == 1
        assert result.quality == 52
        assert result.fits
    
    def test_equal_bounds(self, square_frame, fake_codec):
        config = make_config(initial_quality=40, min_quality=40, target_size_kb=1000)
        result = search_quality(square_frame, ImageFormat.JPEG, config, fake_codec)
        assert result.quality == 40
        assert result.iterations == 1
    
    @pytest.mark.parametrize("target_kb", [0.01, 0.5, 1, 2.5, 5, 7.77, 9.3, 50])
    @pytest.mark.parametrize("max_iterations", [1, 3, 10])
    def test_bounds_hold(self, square_frame, fake_codec, target_kb, max_iterations):
        """Quality stays in range and iterations never exceed the cap."""
        config = make_config(target_size_kb=target_kb, max_iterations=max_iterations)
        result = search_quality(square_frame, ImageFormat.JPEG, config, fake_codec)
        assert config.min_quality <= result.quality <= config.initial_quality
        assert result.iterations <= config.max_iterations
        assert len(fake_codec.encode_calls) <= config.max_iterations + 1
    
    def test_cancelled_before_first_encode(self, square_frame, fake_codec):
        token = CancelToken()
        token.cancel()
        with pytest.raises(CompressionCancelledError):
            search_quality(square_frame, ImageFormat.JPEG, make_config(), fake_codec, token)
        assert fake_codec.encode_calls == []
