"""
Dominant Color Service

Fetches an image, decodes it and reports its dominant color as hex, RGB
and HSL using fixed-bucket quantization.
"""

__version__ = "1.0.0"
