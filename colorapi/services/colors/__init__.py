"""
Dominant Color Colors Module

Provides the dominant color extractor and RGB/hex/HSL conversion.
"""

from .conversion import hex_to_rgb, rgb_to_hex, rgb_to_hsl
from .extraction import (
    ColorBucket,
    DominantColor,
    ExtractionOptions,
    InvalidBufferError,
    extract_dominant_color,
)

__all__ = [
    "ColorBucket",
    "DominantColor",
    "ExtractionOptions",
    "InvalidBufferError",
    "extract_dominant_color",
    "hex_to_rgb",
    "rgb_to_hex",
    "rgb_to_hsl",
]
