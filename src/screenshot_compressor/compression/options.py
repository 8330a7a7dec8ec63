"""
Compression Options
===================

Immutable parameters for the adaptive compression pipeline.

One CompressionConfig is built at startup (see screenshot_compressor.config)
and shared read-only by every compression call.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from screenshot_compressor.compression.formats import ImageFormat


class CompressionConfig(BaseModel):
    """
    Adaptive compression parameters.
    
    Invariant: min_quality <= initial_quality (rejected at construction).
    """
    
    model_config = ConfigDict(frozen=True)
    
    enabled: bool = Field(
        default=True,
        description="If false, frames pass through uncompressed",
    )
    target_size_kb: float = Field(
        default=512.0,
        gt=0,
        description="Upper bound on encoded size in KB",
    )
    initial_quality: int = Field(
        default=85,
        ge=1,
        le=100,
        description="Upper bound of the quality search range",
    )
    min_quality: int = Field(
        default=40,
        ge=1,
        le=100,
        description="Lower bound of the quality search range",
    )
    format: ImageFormat = Field(
        default=ImageFormat.PNG,
        description="Output format: png, jpeg or webp",
    )
    max_iterations: int = Field(
        default=10,
        ge=1,
        description="Maximum encode attempts per quality search",
    )
    max_width: Optional[int] = Field(
        default=None,
        gt=0,
        description="Width cap applied before searching",
    )
    max_height: Optional[int] = Field(
        default=None,
        gt=0,
        description="Height cap applied before searching",
    )
    
    @field_validator("format", mode="before")
    @classmethod
    def _parse_format(cls, value: Any) -> ImageFormat:
        return ImageFormat.parse(value)
    
    @model_validator(mode="after")
    def _check_quality_range(self) -> "CompressionConfig":
        if self.min_quality > self.initial_quality:
            raise ValueError(
                f"min_quality ({self.min_quality}) must be <= "
                f"initial_quality ({self.initial_quality})"
            )
        return self
    
    def fits(self, size_bytes: int) -> bool:
        """True if an encoding of size_bytes is within the target."""
        return size_bytes / 1024 <= self.target_size_kb
