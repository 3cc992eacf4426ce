"""
Unit tests for the imaging collaborator: URL checks, fetch, decode, downscale.
"""

import asyncio

import httpx
import numpy as np
import pytest
from PIL import Image

from colorapi.services.imaging import (
    ImageDecodeError, ImageFetchError, compute_downscaled_size, decode_to_rgba,
    downscale_rgba, fetch_image_bytes, validate_image_url, validate_magic_bytes
)
from colorapi.services.colors.extraction import ExtractionOptions, extract_dominant_color
from tests.conftest import encode_image


def run_fetch(url, handler):
    """Run fetch_image_bytes against a mock transport."""
    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_image_bytes(url, client=client)
    return asyncio.run(_run())


class TestValidateImageUrl:

    @pytest.mark.parametrize("url", [None, "", "   "])
    def test_missing_url(self, url):
        with pytest.raises(ImageFetchError) as exc_info:
            validate_image_url(url)
        assert exc_info.value.client_error
        assert str(exc_info.value) == "imageUrl is required"

    @pytest.mark.parametrize("url", ["ftp://example.com/a.png", "/relative/a.png", "http://"])
    def test_unsupported_url(self, url):
        with pytest.raises(ImageFetchError) as exc_info:
            validate_image_url(url)
        assert exc_info.value.client_error
        assert str(exc_info.value) == f"Unsupported image URL: {url}"

    def test_valid_url_is_stripped(self):
        assert validate_image_url(" https://example.com/a.png ") == "https://example.com/a.png"


class TestFetchImageBytes:

    def test_fetch_success(self, png_factory):
        body = png_factory((1, 2, 3))

        content = run_fetch(
            "https://example.com/a.png",
            lambda request: httpx.Response(200, content=body),
        )

        assert content == body

    def test_fetch_http_error_status(self):
        with pytest.raises(ImageFetchError) as exc_info:
            run_fetch("https://example.com/missing.png", lambda request: httpx.Response(404))

        assert str(exc_info.value) == "Fetch failed: Not Found"
        assert not exc_info.value.client_error

    def test_fetch_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ImageFetchError) as exc_info:
            run_fetch("https://example.com/a.png", handler)

        assert "connection refused" in str(exc_info.value)

    def test_fetch_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ImageFetchError) as exc_info:
            run_fetch("https://example.com/a.png", handler)

        assert "timed out" in str(exc_info.value)

    def test_fetch_rejects_oversize_body(self, monkeypatch):
        from colorapi.config import Config
        monkeypatch.setattr(Config, "MAX_FILE_MB", 0)

        with pytest.raises(ImageFetchError) as exc_info:
            run_fetch("https://example.com/a.png", lambda request: httpx.Response(200, content=b"x"))

        assert "too large" in str(exc_info.value)

    def test_fetch_rejects_declared_oversize_length(self, monkeypatch):
        from colorapi.config import Config
        monkeypatch.setattr(Config, "MAX_FILE_MB", 1)

        def handler(request):
            return httpx.Response(200, headers={"Content-Length": str(50 * 1024 * 1024)}, content=b"x")

        with pytest.raises(ImageFetchError) as exc_info:
            run_fetch("https://example.com/a.png", handler)

        assert "too large" in str(exc_info.value)

    def test_fetch_stops_reading_streamed_oversize_body(self, monkeypatch):
        from colorapi.config import Config
        monkeypatch.setattr(Config, "MAX_FILE_MB", 1)
        chunk = b"\0" * (400 * 1024)
        served = []

        async def body():
            for _ in range(10):
                served.append(len(chunk))
                yield chunk

        def handler(request):
            # No Content-Length: the cap must be enforced while reading
            return httpx.Response(200, content=body())

        with pytest.raises(ImageFetchError) as exc_info:
            run_fetch("https://example.com/huge.png", handler)

        assert "too large" in str(exc_info.value)
        assert len(served) < 10

    def test_fetch_streamed_body_within_cap(self):
        async def body():
            yield b"\x89PNG\r\n"
            yield b"\x1a\nrest"

        content = run_fetch("https://example.com/a.png", lambda request: httpx.Response(200, content=body()))

        assert content == b"\x89PNG\r\n\x1a\nrest"


class TestValidateMagicBytes:

    def test_png(self, png_factory):
        assert validate_magic_bytes(png_factory((0, 0, 0))) == "image/png"

    def test_jpeg(self):
        data = encode_image(Image.new("RGB", (8, 8), (10, 20, 30)), fmt="JPEG")
        assert validate_magic_bytes(data) == "image/jpeg"

    def test_gif(self):
        data = encode_image(Image.new("RGB", (8, 8), (10, 20, 30)), fmt="GIF")
        assert validate_magic_bytes(data) == "image/gif"

    def test_webp_signature(self):
        assert validate_magic_bytes(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "image/webp"

    @pytest.mark.parametrize("data", [b"", b"\x89PNG", b"<html><body>not found</body></html>"])
    def test_invalid(self, data):
        with pytest.raises(ImageDecodeError):
            validate_magic_bytes(data)


class TestDecodeToRgba:

    def test_rgb_png_gets_opaque_alpha(self, png_factory):
        rgba = decode_to_rgba(png_factory((12, 34, 56), size=(5, 3)))

        assert rgba.shape == (3, 5, 4)
        assert rgba.dtype == np.uint8
        assert tuple(rgba[0, 0]) == (12, 34, 56, 255)

    def test_rgba_png_keeps_transparency(self):
        image = Image.new("RGBA", (4, 2), (0, 0, 0, 0))
        image.putpixel((3, 1), (200, 100, 50, 255))

        rgba = decode_to_rgba(encode_image(image))

        assert rgba[0, 0, 3] == 0
        assert tuple(rgba[1, 3]) == (200, 100, 50, 255)

    def test_truncated_png_raises(self):
        with pytest.raises(ImageDecodeError):
            decode_to_rgba(b"\x89PNG\r\n\x1a\n" + b"garbage-bytes")


class TestDownscale:

    @pytest.mark.parametrize("size,max_edge,expected", [
        ((128, 64), 64, (64, 32)),
        ((100, 30), 64, (64, 19)),
        ((65, 33), 64, (64, 32)),
        ((10, 10), 64, (10, 10)),
        ((64, 64), 64, (64, 64)),
        ((1000, 1), 64, (64, 1)),
        ((1000, 500), 0, (1000, 500)),
    ])
    def test_compute_downscaled_size(self, size, max_edge, expected):
        assert compute_downscaled_size(size[0], size[1], max_edge) == expected

    def test_downscale_rgba_shape_and_color(self):
        rgba = np.zeros((64, 128, 4), dtype=np.uint8)
        rgba[:, :] = (40, 80, 160, 255)

        resized = downscale_rgba(rgba, 64)

        assert resized.shape == (32, 64, 4)
        assert np.all(resized == np.array([40, 80, 160, 255], dtype=np.uint8))

    def test_downscale_noop_returns_input(self):
        rgba = np.zeros((10, 20, 4), dtype=np.uint8)
        assert downscale_rgba(rgba, 64) is rgba
        assert downscale_rgba(rgba, 0) is rgba

    def test_downscale_ignores_color_of_transparent_pixels(self):
        # Red / fully transparent checkerboard: every 2x2 block is half red
        rgba = np.zeros((128, 128, 4), dtype=np.uint8)
        red = (np.indices((128, 128)).sum(axis=0) % 2) == 0
        rgba[red] = (255, 0, 0, 255)

        resized = downscale_rgba(rgba, 64)

        assert resized.shape == (64, 64, 4)
        assert np.all(resized[:, :, :3] == np.array([255, 0, 0], dtype=np.uint8))
        assert np.all(np.isin(resized[:, :, 3], (127, 128)))

        result = extract_dominant_color(resized, 64, 64, ExtractionOptions())
        assert result.hex == "#FF0000"

    def test_downscale_fully_transparent_stays_clear(self):
        rgba = np.zeros((100, 100, 4), dtype=np.uint8)
        rgba[:, :, :3] = (90, 200, 30)

        resized = downscale_rgba(rgba, 64)

        assert np.all(resized == 0)
