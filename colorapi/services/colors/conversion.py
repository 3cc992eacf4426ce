"""
Color space conversion helpers.

Integer RGB (0-255) to hex and HSL. All rounding is half-up so that results
match the usual web-tooling output (e.g. 0.5 -> 1, not banker's rounding).
"""
import math
from typing import Tuple


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves away from -inf."""
    return int(math.floor(value + 0.5))


def _clamp_channel(value: int) -> int:
    return max(0, min(255, int(value)))


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Convert RGB channel values to an uppercase ``#RRGGBB`` string."""
    r, g, b = _clamp_channel(r), _clamp_channel(g), _clamp_channel(b)
    return f"#{r:02X}{g:02X}{b:02X}"


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    """Convert hex color string to RGB tuple."""
    value = hex_color.lstrip('#')
    if len(value) != 6:
        raise ValueError(f"Invalid hex color: {hex_color!r}")
    try:
        return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        raise ValueError(f"Invalid hex color: {hex_color!r}")


def rgb_to_hsl(r: int, g: int, b: int) -> Tuple[int, int, int]:
    """
    Convert RGB to HSL.

    Args:
        r, g, b: Channel values 0-255

    Returns:
        Tuple of (h, s, l): hue in integer degrees [0, 360),
        saturation and lightness in integer percent [0, 100]
    """
    rn, gn, bn = r / 255.0, g / 255.0, b / 255.0
    cmax = max(rn, gn, bn)
    cmin = min(rn, gn, bn)
    lightness = (cmax + cmin) / 2

    if cmax == cmin:
        # Achromatic
        return 0, 0, round_half_up(lightness * 100)

    d = cmax - cmin
    if lightness > 0.5:
        saturation = d / (2 - cmax - cmin)
    else:
        saturation = d / (cmax + cmin)

    if cmax == rn:
        hue = (gn - bn) / d + (6 if gn < bn else 0)
    elif cmax == gn:
        hue = (bn - rn) / d + 2
    else:
        hue = (rn - gn) / d + 4
    hue = (hue / 6) % 1.0

    return (
        round_half_up(hue * 360) % 360,
        round_half_up(saturation * 100),
        round_half_up(lightness * 100),
    )
