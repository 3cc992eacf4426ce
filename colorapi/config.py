"""
Dominant Color Service Configuration
Manages environment variables and defaults for extraction and its collaborators.
"""
import os
from typing import List, Literal

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Configuration class for the dominant color service."""

    # Extraction (fixed per deployment)
    STRIDE: int = int(os.environ.get("COLORAPI_STRIDE", "1"))
    TRANSPARENCY_MODE: Literal["strict-zero", "lenient-threshold"] = os.environ.get(
        "COLORAPI_TRANSPARENCY_MODE", "strict-zero"
    )
    QUANTIZATION: Literal["mask", "round"] = os.environ.get("COLORAPI_QUANTIZATION", "mask")
    BUCKET_WIDTH: int = int(os.environ.get("COLORAPI_BUCKET_WIDTH", "10"))

    # Decode collaborator
    DOWNSCALE_MAX: int = int(os.environ.get("COLORAPI_DOWNSCALE_MAX", "64"))  # 0 disables
    MAX_FILE_MB: int = int(os.environ.get("COLORAPI_MAX_FILE_MB", "10"))
    MAX_PIXELS: int = int(os.environ.get("COLORAPI_MAX_PIXELS", str(4096 * 4096)))
    FETCH_TIMEOUT_S: float = float(os.environ.get("COLORAPI_FETCH_TIMEOUT_S", "10"))

    # Logging
    LOG_LEVEL: str = os.environ.get("COLORAPI_LOG_LEVEL", "INFO")

    # CORS settings
    ALLOWED_ORIGINS: str = os.environ.get("COLORAPI_ALLOWED_ORIGINS", "*")

    # Supported uploads
    SUPPORTED_MIME_TYPES = ["image/jpeg", "image/png", "image/gif", "image/webp", "image/bmp"]

    @classmethod
    def validate_stride(cls, stride: int) -> bool:
        """Validate sampling stride."""
        return stride >= 1

    @classmethod
    def validate_transparency_mode(cls, mode: str) -> bool:
        """Validate transparency mode."""
        return mode in ["strict-zero", "lenient-threshold"]

    @classmethod
    def validate_quantization(cls, strategy: str) -> bool:
        """Validate quantization strategy."""
        return strategy in ["mask", "round"]

    @classmethod
    def validate_bucket_width(cls, width: int) -> bool:
        """Validate rounding bucket width."""
        return 1 <= width <= 255

    @classmethod
    def allowed_origins(cls) -> List[str]:
        """CORS origins as a list."""
        return [origin.strip() for origin in cls.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @classmethod
    def max_file_bytes(cls) -> int:
        return cls.MAX_FILE_MB * 1024 * 1024


# Global config instance
config = Config()
