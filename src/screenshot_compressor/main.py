"""
Screenshot Compressor Main Application
======================================

FastAPI entry point hosting the compression pipeline in-process.

Endpoints:
    GET  /          - Service information
    GET  /health    - Liveness probe
    GET  /config    - Effective compression configuration
    GET  /metrics   - Compression counters
    POST /compress  - Compress a base64 screenshot

Run:
    python -m screenshot_compressor.main
    uvicorn screenshot_compressor.main:create_app --factory --port 9990
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from screenshot_compressor.compression import ImageCompressor
from screenshot_compressor.config import Settings, get_settings, setup_logging
from screenshot_compressor.service import ScreenshotService


logger = logging.getLogger(__name__)


# =============================================================================
# Request Models
# =============================================================================

class CompressRequest(BaseModel):
    """Body of POST /compress."""
    
    image: str = Field(
        ...,
        min_length=1,
        description="Base64 image, optionally a data:image/...;base64, URL",
    )
    timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Compression deadline for this frame",
    )


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.
    
    Args:
        settings: Configuration. None = load from config.yaml/environment.
    """
    settings = settings or get_settings()
    
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Create the compressor and worker pool; shut the pool down on exit."""
        compression = settings.effective_compression()
        logger.info(f"Starting {settings.service.name} {settings.service.version}")
        logger.info(
            f"Compression: enabled={compression.enabled}, "
            f"format={compression.format.value}, "
            f"target={compression.target_size_kb}KB, "
            f"quality={compression.min_quality}-{compression.initial_quality}, "
            f"max={compression.max_width}x{compression.max_height}"
        )
        
        executor = ThreadPoolExecutor(
            max_workers=settings.server.workers,
            thread_name_prefix="compress",
        )
        app.state.settings = settings
        app.state.compression = compression
        app.state.service = ScreenshotService(
            ImageCompressor(compression),
            timeout=settings.server.request_timeout_seconds,
            executor=executor,
        )
        app.state.startup_time = time.time()
        
        yield
        
        logger.info("Shutting down gracefully...")
        executor.shutdown(wait=True, cancel_futures=True)
        logger.info("Shutdown complete")
    
    app = FastAPI(
        title="Screenshot Compressor",
        description="Adaptive screenshot compression for desktop agents",
        version=settings.service.version,
        lifespan=lifespan,
    )
    
    # =========================================================================
    # HTTP Endpoints
    # =========================================================================
    
    @app.get("/")
    async def root() -> JSONResponse:
        """Service information endpoint."""
        return JSONResponse({
            "service": settings.service.name,
            "version": settings.service.version,
            "status": "running",
        })
    
    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        """Liveness probe - always 200 while the process is up."""
        return JSONResponse({
            "status": "healthy",
            "uptime_seconds": round(time.time() - request.app.state.startup_time, 1),
        })
    
    @app.get("/config")
    async def config(request: Request) -> JSONResponse:
        """Effective compression configuration."""
        return JSONResponse(request.app.state.compression.model_dump(mode="json"))
    
    @app.get("/metrics")
    async def metrics(request: Request) -> JSONResponse:
        """Compression counters."""
        return JSONResponse(request.app.state.service.metrics())
    
    @app.post("/compress")
    async def compress(body: CompressRequest, request: Request) -> JSONResponse:
        """
        Compress a screenshot.
        
        Always 200: if compression fails the original frame comes back
        with compressed=false.
        """
        service: ScreenshotService = request.app.state.service
        shot = await service.compress_frame(body.image, timeout=body.timeout_seconds)
        return JSONResponse(shot.to_dict())
    
    return app


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    
    settings = get_settings()
    setup_logging(settings)
    
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )
