"""
Dominant Color Service API Schemas
Pydantic models for color extraction request/response validation.
"""
from pydantic import BaseModel, Field


class DominantColorResponse(BaseModel):
    """Dominant color in RGB, hex and HSL form."""
    r: int = Field(..., ge=0, le=255, description="Red channel (bucket average)")
    g: int = Field(..., ge=0, le=255, description="Green channel (bucket average)")
    b: int = Field(..., ge=0, le=255, description="Blue channel (bucket average)")
    hex: str = Field(
        ...,
        pattern=r"^#[0-9A-F]{6}$",
        description="Uppercase hex color code in format #RRGGBB"
    )
    h: int = Field(..., ge=0, le=359, description="Hue in degrees")
    s: int = Field(..., ge=0, le=100, description="Saturation in percent")
    l: int = Field(..., ge=0, le=100, description="Lightness in percent")


class PixelBufferRequest(BaseModel):
    """Direct mode request with an already decoded RGBA buffer."""
    width: int = Field(..., ge=0, description="Image width in pixels")
    height: int = Field(..., ge=0, description="Image height in pixels")
    pixels_b64: str = Field(
        ...,
        description="Base64-encoded flat R,G,B,A bytes, row-major (width*height*4 bytes)"
    )


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field("ok", description="Service health status")
    version: str = Field(..., description="Service version")
    service: str = Field("colorapi-dominant-color", description="Service name")


class ErrorResponse(BaseModel):
    """Upstream fetch/decode error response."""
    error: str = Field(..., description="Error message")
