"""
Dominant Color Service Imaging Utilities
Handles image fetch, validation, decoding and downscaling.
"""
import io
import math
from typing import Optional, Tuple
from urllib.parse import urlparse

import cv2
import httpx
import numpy as np
from PIL import Image

from colorapi.config import config


class ImageFetchError(RuntimeError):
    """Image bytes could not be retrieved."""

    def __init__(self, message: str, client_error: bool = False):
        super().__init__(message)
        self.client_error = client_error


class ImageDecodeError(ValueError):
    """Image bytes could not be decoded into pixels."""


# (signature, mime type); WebP is checked separately
MAGIC_SIGNATURES = [
    (b'\xff\xd8\xff', "image/jpeg"),
    (b'\x89PNG\r\n\x1a\n', "image/png"),
    (b'GIF87a', "image/gif"),
    (b'GIF89a', "image/gif"),
    (b'BM', "image/bmp"),
]


def validate_image_url(url: Optional[str]) -> str:
    """
    Validate an image URL before fetching.

    Returns:
        The stripped URL

    Raises:
        ImageFetchError: (client_error=True) for missing, relative or non-http(s) URLs
    """
    if url is None or not url.strip():
        raise ImageFetchError("imageUrl is required", client_error=True)

    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ImageFetchError(f"Unsupported image URL: {url}", client_error=True)
    return url


async def fetch_image_bytes(url: str, client: Optional[httpx.AsyncClient] = None) -> bytes:
    """
    Download image bytes.

    Args:
        url: Absolute http(s) URL
        client: Optional client to reuse (tests inject a mock transport)

    Returns:
        Response body

    Raises:
        ImageFetchError: On transport errors, timeouts, non-2xx status or oversize body
    """
    url = validate_image_url(url)

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=config.FETCH_TIMEOUT_S, follow_redirects=True)

    limit = config.max_file_bytes()
    too_large = f"Image too large. Maximum size: {config.MAX_FILE_MB}MB"

    try:
        async with client.stream("GET", url) as response:
            if not response.is_success:
                raise ImageFetchError(
                    f"Fetch failed: {response.reason_phrase or response.status_code}"
                )

            declared = response.headers.get("Content-Length", "")
            if declared.isdigit() and int(declared) > limit:
                raise ImageFetchError(too_large)

            # Stop reading as soon as the cap is passed
            chunks = []
            received = 0
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > limit:
                    raise ImageFetchError(too_large)
                chunks.append(chunk)
    except httpx.TimeoutException:
        raise ImageFetchError(f"Fetch failed: timed out after {config.FETCH_TIMEOUT_S}s")
    except httpx.HTTPError as e:
        raise ImageFetchError(f"Fetch failed: {str(e)}")
    finally:
        if owns_client:
            await client.aclose()

    return b"".join(chunks)


def validate_magic_bytes(file_bytes: bytes) -> str:
    """
    Validate file magic bytes to ensure it's actually an image.

    Returns:
        Detected MIME type

    Raises:
        ImageDecodeError: For empty, truncated or unrecognised data
    """
    if len(file_bytes) < 8:
        raise ImageDecodeError("File too small or corrupt")

    if file_bytes[:4] == b'RIFF' and file_bytes[8:12] == b'WEBP':
        return "image/webp"

    for signature, mime_type in MAGIC_SIGNATURES:
        if file_bytes.startswith(signature):
            return mime_type

    raise ImageDecodeError("Invalid image file. Magic bytes don't match supported formats.")


def decode_to_rgba(file_bytes: bytes) -> np.ndarray:
    """
    Decode image bytes to an RGBA numpy array.

    Returns:
        (height, width, 4) uint8 array

    Raises:
        ImageDecodeError: If the bytes are not a decodable image
    """
    validate_magic_bytes(file_bytes)

    try:
        pil_image = Image.open(io.BytesIO(file_bytes))
        # Animated formats: first frame only
        pil_image.seek(0)
        if pil_image.mode != 'RGBA':
            pil_image = pil_image.convert('RGBA')
        rgba = np.array(pil_image, dtype=np.uint8)
    except Exception as e:
        raise ImageDecodeError(f"Failed to decode image: {str(e)}")

    return rgba


def compute_downscaled_size(width: int, height: int, max_edge: int) -> Tuple[int, int]:
    """
    Target size so the longest edge is at most ``max_edge``.

    One ratio is applied to both dimensions, each rounded half-up and kept
    at least 1 px. ``max_edge`` of 0 disables downscaling.
    """
    longest = max(width, height)
    if max_edge <= 0 or longest <= max_edge:
        return width, height

    ratio = max_edge / longest
    new_width = max(1, int(math.floor(width * ratio + 0.5)))
    new_height = max(1, int(math.floor(height * ratio + 0.5)))
    return new_width, new_height


def downscale_rgba(rgba: np.ndarray, max_edge: Optional[int] = None) -> np.ndarray:
    """
    Resize an RGBA image so the longest edge is at most max_edge pixels.

    Args:
        rgba: (height, width, 4) uint8 array
        max_edge: Maximum edge size (default from config, 0 = disabled)

    Returns:
        Resized array, or the input when no resize is needed
    """
    if max_edge is None:
        max_edge = config.DOWNSCALE_MAX

    height, width = rgba.shape[:2]
    new_width, new_height = compute_downscaled_size(width, height, max_edge)
    if (new_width, new_height) == (width, height):
        return rgba

    # Resample premultiplied so transparent pixels carry no color
    alpha = rgba[:, :, 3:4].astype(np.float32)
    premultiplied = np.concatenate([rgba[:, :, :3].astype(np.float32) * alpha / 255.0, alpha], axis=2)

    # INTER_AREA for downscaling (better quality)
    resized = cv2.resize(premultiplied, (new_width, new_height), interpolation=cv2.INTER_AREA)

    out_alpha = resized[:, :, 3:4]
    rgb = np.where(out_alpha > 0, resized[:, :, :3] * 255.0 / np.maximum(out_alpha, 1e-6), 0.0)
    result = np.concatenate([rgb, out_alpha], axis=2)
    return np.clip(np.rint(result), 0, 255).astype(np.uint8)
