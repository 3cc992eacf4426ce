"""
Test configuration and fixtures for the dominant color service tests.
"""
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Import the main app
from main import app


@pytest.fixture
def test_client():
    """Create test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset metrics before each test."""
    from colorapi.utils.metrics import reset_metrics
    reset_metrics()


def encode_image(image: Image.Image, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_factory():
    """Build in-memory PNG bytes of a single solid color."""
    def _make(color, size=(100, 50), mode="RGB") -> bytes:
        return encode_image(Image.new(mode, size, color))
    return _make
