from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from colorapi import __version__
from colorapi.api.v1 import router as v1_router
from colorapi.config import config
from colorapi.schemas import HealthResponse
from colorapi.services.extract_api import get_extraction_options
from colorapi.utils.logging import get_logger

logger = get_logger()

# Fail fast on a bad deployment config instead of on the first request
extraction_options = get_extraction_options()

app = FastAPI(
    title="Dominant Color Service",
    description="Reports the dominant color of an image as hex, RGB and HSL",
    version=__version__
)

# CORS: any origin by default, JSON content type only
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins(),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(v1_router)

logger.info("Dominant color service configured", extra={
    "stride": extraction_options.stride,
    "transparency_mode": extraction_options.transparency_mode,
    "quantization": extraction_options.quantization,
    "downscale_max": config.DOWNSCALE_MAX,
})


@app.get("/healthz", response_model=HealthResponse)
def health_check():
    """Liveness check"""
    return HealthResponse(status="ok", version=__version__)


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Dominant Color Service",
        "version": __version__,
        "docs": "/docs"
    }
