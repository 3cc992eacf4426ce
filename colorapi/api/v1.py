"""
Dominant Color Service v1 API Routes
Implements /v1/extract-color endpoints and supporting routes.
"""
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse, Response

from colorapi import __version__
from colorapi.config import Config
from colorapi.schemas import DominantColorResponse, ErrorResponse, PixelBufferRequest
from colorapi.services import extract_api
from colorapi.services.colors.extraction import InvalidBufferError
from colorapi.services.imaging import ImageDecodeError, ImageFetchError
from colorapi.utils.metrics import get_metrics

config = Config()
router = APIRouter(prefix="/v1", tags=["Dominant Color"])


def _upstream_error(e: Exception) -> JSONResponse:
    return JSONResponse(status_code=502, content={"error": str(e)})


@router.options("/extract-color", include_in_schema=False)
async def extract_color_preflight() -> Response:
    """Answer bare preflight requests with the CORS headers."""
    origins = config.allowed_origins()
    allow_origin = "*" if not origins or "*" in origins else origins[0]
    return Response(
        status_code=200,
        headers={
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Headers": "Content-Type",
            "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        },
    )


@router.get("/extract-color",
            response_model=DominantColorResponse,
            responses={400: {"description": "Missing or invalid imageUrl"},
                       502: {"model": ErrorResponse}},
            summary="Dominant Color by URL",
            description="Fetch an image and report its dominant color as hex, RGB and HSL")
async def extract_color(
    image_url: Optional[str] = Query(None, alias="imageUrl", description="Absolute http(s) image URL")
):
    """
    Extract the dominant color of a remote image.

    - **imageUrl**: JPG, PNG, GIF, WebP or BMP image URL
    """
    try:
        return await extract_api.handle_extract_url(image_url)
    except ImageFetchError as e:
        if e.client_error:
            raise HTTPException(status_code=400, detail=str(e))
        return _upstream_error(e)
    except ImageDecodeError as e:
        return _upstream_error(e)
    except InvalidBufferError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/extract-color/upload",
             response_model=DominantColorResponse,
             summary="Dominant Color by Upload",
             description="Decode an uploaded image and report its dominant color")
async def extract_color_upload(file: UploadFile = File(..., description="Image file")):
    """Extract the dominant color of an uploaded image."""
    if file.content_type not in config.SUPPORTED_MIME_TYPES:
        raise HTTPException(
            status_code=415,
            detail=f"Unsupported media type. Supported: {', '.join(config.SUPPORTED_MIME_TYPES)}"
        )

    try:
        return await extract_api.handle_extract_upload(file)
    except ImageDecodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidBufferError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/extract-color/pixels",
             response_model=DominantColorResponse,
             summary="Dominant Color of a Pixel Buffer",
             description="Report the dominant color of an already decoded RGBA buffer")
async def extract_color_pixels(body: PixelBufferRequest):
    """Extract the dominant color of raw RGBA pixels (no downscaling)."""
    try:
        return await extract_api.handle_extract_direct(body)
    except InvalidBufferError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/healthz",
            summary="Health Check",
            description="Liveness check for the extractor")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint."""
    options = extract_api.get_extraction_options()
    return {
        "status": "ok",
        "service": "colorapi-dominant-color",
        "version": __version__,
        "extraction": {
            "stride": options.stride,
            "transparency_mode": options.transparency_mode,
            "quantization": options.quantization,
            "bucket_width": options.bucket_width,
            "downscale_max": config.DOWNSCALE_MAX,
        },
        "timestamp": int(time.time())
    }


@router.get("/metrics",
            summary="Service Metrics",
            description="In-process counters and timing statistics")
async def metrics_summary() -> Dict[str, Any]:
    """Get metrics summary."""
    return get_metrics().get_summary()
