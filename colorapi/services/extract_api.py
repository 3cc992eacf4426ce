"""
Color Extraction API Orchestrator

Handles URL, upload and direct-pixel modes for dominant color extraction.
Coordinates fetch, decode and downscale before handing the pixel buffer to
the extractor, and records logs and metrics for each request.
"""

import base64
import binascii
import time
from functools import lru_cache
from typing import Awaitable, Callable, Tuple

import numpy as np
from fastapi import UploadFile

from colorapi.config import config
from colorapi.schemas import DominantColorResponse, PixelBufferRequest
from colorapi.services import imaging
from colorapi.services.colors.extraction import (
    ExtractionOptions, InvalidBufferError, extract_dominant_color
)
from colorapi.utils.ids import generate_request_id
from colorapi.utils.logging import get_logger
from colorapi.utils.metrics import get_metrics

logger = get_logger()

PixelLoader = Callable[[], Awaitable[Tuple[np.ndarray, int, int]]]


@lru_cache(maxsize=1)
def get_extraction_options() -> ExtractionOptions:
    """Extraction settings for this deployment."""
    return ExtractionOptions.from_config(config)


async def handle_extract_url(image_url: str) -> DominantColorResponse:
    """
    Fetch an image by URL and return its dominant color.

    Raises:
        ImageFetchError: For invalid URLs or failed downloads
        ImageDecodeError: For undecodable bytes
    """
    async def load() -> Tuple[np.ndarray, int, int]:
        file_bytes = await imaging.fetch_image_bytes(image_url)
        return _decode_and_downscale(file_bytes)

    return await _run_extraction("url", load)


async def handle_extract_upload(file: UploadFile) -> DominantColorResponse:
    """
    Decode an uploaded image and return its dominant color.

    Raises:
        ImageDecodeError: For oversize, unreadable or undecodable files
    """
    async def load() -> Tuple[np.ndarray, int, int]:
        try:
            file_bytes = await file.read()
        except Exception as e:
            raise imaging.ImageDecodeError(f"Failed to read file: {str(e)}")

        if len(file_bytes) > config.max_file_bytes():
            raise imaging.ImageDecodeError(f"File too large. Maximum size: {config.MAX_FILE_MB}MB")

        return _decode_and_downscale(file_bytes)

    return await _run_extraction("upload", load)


async def handle_extract_direct(request: PixelBufferRequest) -> DominantColorResponse:
    """
    Return the dominant color of an already decoded RGBA buffer.

    No downscaling is applied in this mode.

    Raises:
        InvalidBufferError: For bad base64, oversize areas or length mismatch
    """
    async def load() -> Tuple[np.ndarray, int, int]:
        if request.width * request.height > config.MAX_PIXELS:
            raise InvalidBufferError(
                f"Image too large: {request.width}x{request.height} exceeds {config.MAX_PIXELS} pixels"
            )
        try:
            raw = base64.b64decode(request.pixels_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidBufferError(f"Invalid base64 pixel data: {str(e)}")

        return np.frombuffer(raw, dtype=np.uint8), request.width, request.height

    return await _run_extraction("direct", load)


def _decode_and_downscale(file_bytes: bytes) -> Tuple[np.ndarray, int, int]:
    rgba = imaging.decode_to_rgba(file_bytes)
    original_height, original_width = rgba.shape[:2]
    rgba = imaging.downscale_rgba(rgba, config.DOWNSCALE_MAX)
    height, width = rgba.shape[:2]

    logger.debug(f"Decoded {original_width}x{original_height}, sampling {width}x{height}")
    return rgba, width, height


async def _run_extraction(mode: str, load_pixels: PixelLoader) -> DominantColorResponse:
    """
    Shared request lifecycle: load pixels, extract, log and record metrics.
    """
    request_id = generate_request_id(mode)
    start_time = time.time()
    metrics = get_metrics()
    metrics.increment_request_count(mode)

    logger.info("Starting color extraction", extra={"request_id": request_id, "mode": mode})

    try:
        pixels, width, height = await load_pixels()
        decode_time = time.time() - start_time

        extract_start = time.time()
        result = extract_dominant_color(pixels, width, height, get_extraction_options())
        extract_time = time.time() - extract_start

        total_time = time.time() - start_time

        if result.sampled == 0:
            logger.warning("No opaque pixels sampled; defaulting to black",
                           extra={"request_id": request_id})
            metrics.increment_transparent_count()

        logger.info("Color extraction completed successfully",
                    extra={
                        "request_id": request_id,
                        "mode": mode,
                        "dims": f"{width}x{height}",
                        "sampled_pixels": result.sampled,
                        "bucket_pixels": result.count,
                        "hex": result.hex,
                        "ms_decode": decode_time * 1000,
                        "ms_extract": extract_time * 1000,
                        "ms_total": total_time * 1000,
                        "result": "ok"
                    })

        metrics.record_timing("decode", decode_time * 1000)
        metrics.record_timing("extract", extract_time * 1000)
        metrics.record_timing("color_extract", total_time * 1000)
        metrics.record_sampled_pixels(result.sampled)

        return DominantColorResponse(**result.as_dict())

    except Exception as e:
        error_time = time.time() - start_time
        logger.error(f"Color extraction failed: {str(e)}",
                     extra={
                         "request_id": request_id,
                         "mode": mode,
                         "ms_total": error_time * 1000,
                         "result": "error",
                         "error_type": type(e).__name__
                     })
        metrics.increment_failure_count(type(e).__name__)
        raise
