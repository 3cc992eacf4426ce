"""
Dominant color extraction.

This module implements the core aggregation for the dominant color service:
stride sampling, transparency filtering, fixed-bucket quantization, frequency
counting and averaging of the winning bucket. Input is a decoded RGBA pixel
buffer; fetching and decoding belong to ``colorapi.services.imaging``.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Optional, Tuple, Union

import numpy as np
from loguru import logger

from colorapi.config import Config, config
from .conversion import rgb_to_hex, rgb_to_hsl

PixelBuffer = Union[bytes, bytearray, memoryview, np.ndarray]

# Pixels with alpha below the threshold are discarded
TRANSPARENCY_THRESHOLDS = {
    "strict-zero": 1,
    "lenient-threshold": 128,
}

MASK_BITS = 0xF0
KEY_CHANNEL_BITS = 10


class InvalidBufferError(ValueError):
    """Pixel buffer length disagrees with width x height x 4."""


@dataclass(frozen=True)
class ExtractionOptions:
    """Deployment-level extraction settings."""
    stride: int = 1
    transparency_mode: str = "strict-zero"
    quantization: str = "mask"
    bucket_width: int = 10

    def __post_init__(self):
        if not Config.validate_stride(self.stride):
            raise ValueError(f"stride must be >= 1, got {self.stride}")
        if not Config.validate_transparency_mode(self.transparency_mode):
            raise ValueError(f"Unknown transparency mode: {self.transparency_mode}")
        if not Config.validate_quantization(self.quantization):
            raise ValueError(f"Unknown quantization strategy: {self.quantization}")
        if not Config.validate_bucket_width(self.bucket_width):
            raise ValueError(f"bucket_width must be in 1..255, got {self.bucket_width}")

    @property
    def alpha_threshold(self) -> int:
        return TRANSPARENCY_THRESHOLDS[self.transparency_mode]

    @classmethod
    def from_config(cls, cfg: Config = config) -> "ExtractionOptions":
        return cls(
            stride=cfg.STRIDE,
            transparency_mode=cfg.TRANSPARENCY_MODE,
            quantization=cfg.QUANTIZATION,
            bucket_width=cfg.BUCKET_WIDTH,
        )


@dataclass
class ColorBucket:
    """Occurrence count and unquantized channel sums for one quantized key."""
    key: int
    count: int = 0
    sum_r: int = 0
    sum_g: int = 0
    sum_b: int = 0

    def average(self) -> Tuple[int, int, int]:
        """Half-up integer average of the accumulated channels."""
        n = self.count
        return tuple((2 * total + n) // (2 * n) for total in (self.sum_r, self.sum_g, self.sum_b))


@dataclass(frozen=True)
class DominantColor:
    """Extraction result."""
    r: int
    g: int
    b: int
    hex: str
    h: int
    s: int
    l: int
    count: int = 0
    sampled: int = 0

    def as_dict(self) -> Dict[str, Union[int, str]]:
        """Output record without the aggregation bookkeeping."""
        data = asdict(self)
        data.pop("count")
        data.pop("sampled")
        return data


def quantize_mask(values):
    """Clear the low 4 bits: 16 levels per channel."""
    return values & MASK_BITS


def quantize_round(values, width: int):
    """Round to the nearest multiple of ``width``, halves up."""
    return (values * 2 + width) // (2 * width) * width


def pack_key(qr, qg, qb):
    """Pack a quantized triple into one integer key (10 bits per channel)."""
    return (qr << (2 * KEY_CHANNEL_BITS)) | (qg << KEY_CHANNEL_BITS) | qb


def as_rgba_array(pixels: PixelBuffer, width: int, height: int) -> np.ndarray:
    """
    View a flat RGBA buffer as an (N, 4) uint8 array.

    Raises:
        InvalidBufferError: If dimensions are negative, the dtype is not uint8,
            or the length is not width * height * 4
    """
    if width < 0 or height < 0:
        raise InvalidBufferError(f"Invalid dimensions: {width}x{height}")

    if isinstance(pixels, np.ndarray):
        if pixels.dtype != np.uint8:
            raise InvalidBufferError(f"Pixel buffer must be uint8, got {pixels.dtype}")
        flat = pixels.reshape(-1)
    else:
        flat = np.frombuffer(pixels, dtype=np.uint8)

    expected = width * height * 4
    if flat.size != expected:
        raise InvalidBufferError(
            f"Pixel buffer length {flat.size} does not match "
            f"{width}x{height}x4 = {expected}"
        )

    return flat.reshape(-1, 4)


def tally_buckets(rgba: np.ndarray, options: ExtractionOptions) -> Dict[int, ColorBucket]:
    """
    Count sampled, non-transparent pixels per quantized color.

    Args:
        rgba: (N, 4) uint8 pixel array
        options: Extraction settings

    Returns:
        Mapping of packed key to ColorBucket, ordered by the first pixel that
        landed in each bucket
    """
    sampled = rgba[::options.stride]
    opaque = sampled[sampled[:, 3] >= options.alpha_threshold]
    logger.debug(f"Sampled {len(sampled)} pixels, {len(opaque)} non-transparent")

    if len(opaque) == 0:
        return {}

    rgb = opaque[:, :3].astype(np.int64)
    if options.quantization == "mask":
        quantized = quantize_mask(rgb)
    else:
        quantized = quantize_round(rgb, options.bucket_width)

    keys = pack_key(quantized[:, 0], quantized[:, 1], quantized[:, 2])
    unique_keys, first_index, inverse, counts = np.unique(
        keys, return_index=True, return_inverse=True, return_counts=True
    )

    sums = np.zeros((len(unique_keys), 3), dtype=np.int64)
    np.add.at(sums, inverse.reshape(-1), rgb)

    buckets: Dict[int, ColorBucket] = {}
    for i in np.argsort(first_index, kind="stable"):
        key = int(unique_keys[i])
        buckets[key] = ColorBucket(
            key=key,
            count=int(counts[i]),
            sum_r=int(sums[i, 0]),
            sum_g=int(sums[i, 1]),
            sum_b=int(sums[i, 2]),
        )

    logger.debug(f"Tallied {len(buckets)} buckets")
    return buckets


def select_dominant_bucket(buckets: Dict[int, ColorBucket]) -> Optional[ColorBucket]:
    """Bucket with the strictly highest count; the earliest one wins ties."""
    best: Optional[ColorBucket] = None
    for bucket in buckets.values():
        if best is None or bucket.count > best.count:
            best = bucket
    return best


def extract_dominant_color(
    pixels: PixelBuffer,
    width: int,
    height: int,
    options: Optional[ExtractionOptions] = None,
) -> DominantColor:
    """
    Compute the dominant color of a decoded RGBA image.

    Args:
        pixels: Flat R,G,B,A buffer, row-major, 8 bits per channel
        width: Image width in pixels
        height: Image height in pixels
        options: Extraction settings (defaults to the deployment config)

    Returns:
        DominantColor with the averaged r,g,b of the most frequent bucket.
        Fully transparent or empty images yield black.

    Raises:
        InvalidBufferError: If the buffer does not match the dimensions
    """
    if options is None:
        options = ExtractionOptions.from_config()

    rgba = as_rgba_array(pixels, width, height)
    buckets = tally_buckets(rgba, options)
    sampled = sum(bucket.count for bucket in buckets.values())

    winner = select_dominant_bucket(buckets)
    if winner is None:
        r, g, b = 0, 0, 0
        count = 0
    else:
        r, g, b = winner.average()
        count = winner.count

    h, s, l = rgb_to_hsl(r, g, b)
    result = DominantColor(
        r=r, g=g, b=b,
        hex=rgb_to_hex(r, g, b),
        h=h, s=s, l=l,
        count=count,
        sampled=sampled,
    )

    logger.debug(f"Dominant color {result.hex} from {count}/{sampled} pixels")
    return result
