#!/usr/bin/env python3
"""
Compress Image Script
=====================

Standalone script to run the compression pipeline on an image file.

Settings come from config.yaml / environment variables (see
screenshot_compressor.config); command-line flags override them.

Usage:
    python scripts/compress_image.py screenshot.png
    python scripts/compress_image.py screenshot.png -o out.jpg --format jpeg --target-kb 256
    python scripts/compress_image.py screenshot.png --max-width 1280 --max-height 960
"""

import argparse
import base64
import logging
import os
import sys
import time

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from screenshot_compressor.compression import (
    CompressionConfig,
    CompressionError,
    ImageCompressor,
    ImageFormat,
    inspect_size,
)
from screenshot_compressor.config import load_config


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compress an image to a target size"
    )
    parser.add_argument("input", help="Path to the source image")
    parser.add_argument(
        "-o",
        "--output",
        help="Output file (default: <input>.compressed.<format>)",
    )
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--target-kb", type=float, help="Target size in KB")
    parser.add_argument(
        "--format",
        choices=[fmt.value for fmt in ImageFormat],
        help="Output format",
    )
    parser.add_argument("--initial-quality", type=int, help="Upper quality bound")
    parser.add_argument("--min-quality", type=int, help="Lower quality bound")
    parser.add_argument("--max-iterations", type=int, help="Search iteration cap")
    parser.add_argument("--max-width", type=int, help="Width cap")
    parser.add_argument("--max-height", type=int, help="Height cap")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    settings = load_config(args.config)
    
    overrides = {
        "target_size_kb": args.target_kb,
        "format": args.format,
        "initial_quality": args.initial_quality,
        "min_quality": args.min_quality,
        "max_iterations": args.max_iterations,
        "max_width": args.max_width,
        "max_height": args.max_height,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    
    # Re-validate so flag overrides are checked like file values
    compression = CompressionConfig.model_validate({
        **settings.effective_compression().model_dump(),
        **overrides,
        "enabled": True,
    })
    
    with open(args.input, "rb") as f:
        data = f.read()
    
    original = inspect_size(data)
    logger.info(f"Input: {args.input} ({original.formatted})")
    
    start = time.perf_counter()
    try:
        result = ImageCompressor(compression).compress_to_fit(
            base64.b64encode(data).decode("ascii")
        )
    except CompressionError as e:
        logger.error(f"Compression failed: {e}")
        return 1
    elapsed_ms = (time.perf_counter() - start) * 1000
    
    output_path = args.output or (
        f"{os.path.splitext(args.input)[0]}.compressed.{compression.format.extension.lstrip('.')}"
    )
    with open(output_path, "wb") as f:
        f.write(result.decode())
    
    logger.info(
        f"Output: {output_path} ({inspect_size(result.decode()).formatted}), "
        f"{result.width}x{result.height}, quality={result.quality}, "
        f"iterations={result.iterations}, {elapsed_ms:.0f}ms"
    )
    if not result.fits(compression.target_size_kb):
        logger.warning(f"Target of {compression.target_size_kb}KB was not reached")
    return 0


if __name__ == "__main__":
    sys.exit(main())
