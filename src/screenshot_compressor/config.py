"""
Screenshot Compressor Configuration
===================================

This module handles configuration loading for the compression service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    SCREENSHOT_COMPRESSION_ENABLED -> compression.enabled
    SCREENSHOT_TARGET_SIZE_KB      -> compression.target_size_kb
    SCREENSHOT_INITIAL_QUALITY     -> compression.initial_quality
    SCREENSHOT_MIN_QUALITY         -> compression.min_quality
    SCREENSHOT_MAX_ITERATIONS      -> compression.max_iterations
    SCREENSHOT_IMAGE_FORMAT        -> compression.format
    SCREENSHOT_MAX_WIDTH           -> compression.max_width
    SCREENSHOT_MAX_HEIGHT          -> compression.max_height
    DISPLAY_WIDTH                  -> display.width
    DISPLAY_HEIGHT                 -> display.height
    SCREENSHOT_LOG_LEVEL           -> logging.level
    PORT                           -> server.port

Settings are built once at startup and passed explicitly into the
compressor. Nothing in the compression package reads this module's
state on its own.

Example:
    from screenshot_compressor.config import get_settings
    
    settings = get_settings()
    compressor = ImageCompressor(settings.effective_compression())
"""

import logging
import math
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Optional

import yaml
from pydantic import BaseModel, Field

from screenshot_compressor.compression.formats import ImageFormat
from screenshot_compressor.compression.options import CompressionConfig


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identification configuration."""
    
    name: str = Field(default="screenshot-compressor", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class DisplayConfig(BaseModel):
    """Capture resolution of the virtual desktop."""
    
    width: int = Field(default=1280, gt=0, description="Display width in pixels")
    height: int = Field(default=960, gt=0, description="Display height in pixels")


class ServerConfig(BaseModel):
    """Server configuration."""
    
    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=9990, ge=1, le=65535, description="Bind port")
    workers: int = Field(
        default=2,
        ge=1,
        description="Worker threads for CPU-bound compression",
    )
    request_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Default per-frame compression deadline",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""
    
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the screenshot compressor.
    
    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """
    
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    compression: CompressionConfig = Field(default_factory=CompressionConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    
    def effective_compression(self) -> CompressionConfig:
        """
        Compression config with the display size as the default dimension cap.
        
        Explicit max_width/max_height values win over the display size.
        """
        update = {}
        if self.compression.max_width is None:
            update["max_width"] = self.display.width
        if self.compression.max_height is None:
            update["max_height"] = self.display.height
        if not update:
            return self.compression
        return self.compression.model_copy(update=update)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.
    
    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values
        
    Args:
        config_path: Path to config.yaml. If None, searches common locations.
        
    Returns:
        Settings: Loaded configuration
        
    Raises:
        UnsupportedFormatError: If SCREENSHOT_IMAGE_FORMAT is not png/jpeg/webp
        pydantic.ValidationError: If the merged configuration is invalid
    """
    # Find config file
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break
    
    # Load from YAML if exists
    config_data: dict = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.info("No config file found, using defaults and environment variables")
    
    # Apply environment variable overrides
    _apply_env_overrides(config_data)
    
    return Settings.model_validate(config_data)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    return load_config()


def parse_bool(value: Optional[str], fallback: bool) -> bool:
    """Parse 1/true/yes/on (case-insensitive); anything else is False."""
    if value is None:
        return fallback
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_positive(
    name: str,
    value: Optional[str],
    cast: Callable[[float], Any] = float,
) -> Optional[Any]:
    """
    Parse a finite positive number from an environment value.
    
    Returns:
        The cast value, or None if unset or invalid (default is kept)
    """
    if value is None or not value.strip():
        return None
    try:
        parsed = float(value)
    except ValueError:
        parsed = math.nan
    if not math.isfinite(parsed) or parsed <= 0:
        logger.warning(f"Ignoring {name}={value!r}: expected a positive number")
        return None
    return cast(parsed)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""
    env = os.environ
    
    # Compression settings
    if "SCREENSHOT_COMPRESSION_ENABLED" in env:
        config_data.setdefault("compression", {})["enabled"] = parse_bool(
            env["SCREENSHOT_COMPRESSION_ENABLED"], True
        )
    
    numeric = [
        ("SCREENSHOT_TARGET_SIZE_KB", "compression", "target_size_kb", float),
        ("SCREENSHOT_INITIAL_QUALITY", "compression", "initial_quality", int),
        ("SCREENSHOT_MIN_QUALITY", "compression", "min_quality", int),
        ("SCREENSHOT_MAX_ITERATIONS", "compression", "max_iterations", int),
        ("SCREENSHOT_MAX_WIDTH", "compression", "max_width", int),
        ("SCREENSHOT_MAX_HEIGHT", "compression", "max_height", int),
        ("DISPLAY_WIDTH", "display", "width", int),
        ("DISPLAY_HEIGHT", "display", "height", int),
    ]
    for env_name, section, key, cast in numeric:
        parsed = parse_positive(env_name, env.get(env_name), cast)
        if parsed is not None:
            config_data.setdefault(section, {})[key] = parsed
    
    # Unknown formats are a configuration error, caught here rather than per call
    if env_format := env.get("SCREENSHOT_IMAGE_FORMAT"):
        config_data.setdefault("compression", {})["format"] = ImageFormat.parse(env_format)
    
    # Server settings
    if env_port := parse_positive("PORT", env.get("PORT"), int):
        config_data.setdefault("server", {})["port"] = env_port
    
    # Logging settings
    if env_log := env.get("SCREENSHOT_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)
    
    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    
    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
