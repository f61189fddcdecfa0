"""Dominant colour extraction from quantised colour histograms."""

from typing import List, Tuple, TYPE_CHECKING
import numpy as np

from .analyzer import ImageSource, to_rgb_array

if TYPE_CHECKING:
    from .detector import Region


Color = Tuple[int, int, int]

QUANTIZE_BITS = 4
LEVELS = 1 << QUANTIZE_BITS  # 16 levels per channel, 4096 buckets
MAX_DOMINANT_COLORS = 5


def quantize(pixels: np.ndarray) -> np.ndarray:
    """Reduce each channel to the 4 most significant bits of its dtype (uint8 or uint16)."""
    return pixels >> (pixels.dtype.itemsize * 8 - QUANTIZE_BITS)


def dequantize(level: int) -> int:
    """Spread a 4-bit level back over 0-255 (0 -> 0, 15 -> 255)."""
    return level * 255 // (LEVELS - 1)


def _bucket_color(key: int) -> Color:
    r = (key >> (2 * QUANTIZE_BITS)) & (LEVELS - 1)
    g = (key >> QUANTIZE_BITS) & (LEVELS - 1)
    b = key & (LEVELS - 1)
    return (dequantize(r), dequantize(g), dequantize(b))


def get_dominant_colors(
    image: ImageSource,
    region: 'Region',
    max_colors: int = MAX_DOMINANT_COLORS
) -> List[Color]:
    """
    Extract the most frequent quantised colours inside a region.

    Every bucket holding at least a quarter of the peak bucket's count is a
    dominant colour. Results are ordered by count (highest first), then by
    quantised RGB value, and capped at max_colors.

    Args:
        image: PIL Image or RGB pixel array
        region: Area to sample; clamped to the image bounds
        max_colors: Maximum number of colours returned

    Returns:
        List of (r, g, b) tuples, empty when the region misses the image
    """
    pixels = to_rgb_array(image)
    height, width = pixels.shape[:2]

    x0 = max(region.x, 0)
    y0 = max(region.y, 0)
    x1 = min(region.x + region.width, width)
    y1 = min(region.y + region.height, height)
    if x1 <= x0 or y1 <= y0:
        return []

    levels = quantize(pixels[y0:y1, x0:x1].reshape(-1, 3)).astype(np.int64)
    keys = (levels[:, 0] << (2 * QUANTIZE_BITS)) | (levels[:, 1] << QUANTIZE_BITS) | levels[:, 2]
    counts = np.bincount(keys, minlength=LEVELS ** 3)

    threshold = int(counts.max()) // 4
    candidates = np.nonzero((counts >= threshold) & (counts > 0))[0]

    # Candidates are in ascending key order; a stable sort on count keeps it for ties
    order = candidates[np.argsort(-counts[candidates], kind='stable')]

    return [_bucket_color(int(key)) for key in order[:max_colors]]
