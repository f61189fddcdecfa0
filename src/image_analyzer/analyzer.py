"""Saliency analysis: per-pixel importance from local contrast and brightness."""

from typing import Union
import numpy as np
import cv2
from PIL import Image


ImageSource = Union[Image.Image, np.ndarray]

# Pillow modes holding 16-bit samples; convert('RGB') would clip them to 255
HIGH_DEPTH_MODES = ('I;16', 'I;16L', 'I;16B', 'I;16N', 'I')
UINT16_MAX = 65535

NEIGHBOR_OFFSETS = (
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1), (0, 1),
    (1, -1), (1, 0), (1, 1),
)


def to_rgb_array(image: ImageSource) -> np.ndarray:
    """
    Convert an image source to an H x W x 3 array at its native bit depth.

    16-bit sources (Pillow I;16/I modes, uint16 arrays) stay uint16; every
    other source becomes uint8 RGB.

    Args:
        image: PIL Image (any mode) or numpy array (H x W grayscale,
            H x W x 3 RGB or H x W x 4 RGBA, dtype uint8 or uint16)

    Returns:
        Read-only view or copy of the pixels; the input is never modified
    """
    if isinstance(image, Image.Image):
        if image.mode in HIGH_DEPTH_MODES:
            gray = np.clip(np.asarray(image), 0, UINT16_MAX).astype(np.uint16)
            return np.stack([gray] * 3, axis=-1)
        if image.mode != 'RGB':
            image = image.convert('RGB')
        return np.asarray(image, dtype=np.uint8)

    pixels = np.asarray(image)
    if pixels.dtype.kind != 'u' or pixels.dtype.itemsize not in (1, 2):
        raise ValueError(f"Pixel arrays must be uint8 or uint16, got {pixels.dtype}")
    # Normalise byte order
    pixels = pixels.astype(np.uint8 if pixels.dtype.itemsize == 1 else np.uint16, copy=False)

    if pixels.ndim == 2:
        return np.stack([pixels] * 3, axis=-1)
    if pixels.ndim == 3 and pixels.shape[2] == 4:
        return pixels[..., :3]
    if pixels.ndim == 3 and pixels.shape[2] == 3:
        return pixels

    raise ValueError(f"Unsupported pixel array shape: {pixels.shape}")


def channel_max(pixels: np.ndarray) -> float:
    """Full-scale channel value for the array's dtype (255 or 65535)."""
    return float(np.iinfo(pixels.dtype).max)


def to_8bit_image(image: Image.Image) -> Image.Image:
    """Reduce a 16-bit Pillow image to 8-bit grayscale; other modes pass through."""
    if image.mode not in HIGH_DEPTH_MODES:
        return image
    gray = to_rgb_array(image)[..., 0]
    return Image.fromarray((gray >> 8).astype(np.uint8))


def compute_edge_strength(pixels: np.ndarray) -> np.ndarray:
    """
    Mean colour distance between each interior pixel and its 8 neighbours.

    Each distance is the Euclidean distance between RGB tuples normalised to
    [0, 1] per channel. Border cells are zero since they lack a full
    neighbourhood; images under 3x3 yield an all-zero grid.
    """
    height, width = pixels.shape[:2]
    edges = np.zeros((height, width), dtype=np.float64)
    if width < 3 or height < 3:
        return edges

    rgb = pixels.astype(np.float64) / channel_max(pixels)
    center = rgb[1:-1, 1:-1]

    total = np.zeros((height - 2, width - 2), dtype=np.float64)
    for dy, dx in NEIGHBOR_OFFSETS:
        neighbor = rgb[1 + dy:height - 1 + dy, 1 + dx:width - 1 + dx]
        total += np.sqrt(((center - neighbor) ** 2).sum(axis=-1))

    edges[1:-1, 1:-1] = total / len(NEIGHBOR_OFFSETS)
    return edges


def compute_brightness(pixels: np.ndarray) -> np.ndarray:
    """Mean of the three channels normalised to [0, 1], zero on the border."""
    height, width = pixels.shape[:2]
    brightness = np.zeros((height, width), dtype=np.float64)
    if width < 3 or height < 3:
        return brightness

    interior = pixels[1:-1, 1:-1].astype(np.float64)
    brightness[1:-1, 1:-1] = interior.sum(axis=-1) / (3.0 * channel_max(pixels))
    return brightness


def compute_saliency_map(
    pixels: np.ndarray,
    contrast_weight: float,
    color_weight: float
) -> np.ndarray:
    """
    Compute a dense saliency grid aligned 1:1 with the image pixels.

    saliency = contrast_weight * edge_strength + color_weight * brightness

    This is a cheap heuristic meant for ranking regions of the same image
    against each other. Its absolute scale carries no perceptual meaning.

    Args:
        pixels: H x W x 3 uint8 or uint16 array (see to_rgb_array)
        contrast_weight: Weight of the edge-strength term
        color_weight: Weight of the brightness term

    Returns:
        H x W float64 array, non-negative, zero on the first/last row and column
    """
    return (contrast_weight * compute_edge_strength(pixels)
            + color_weight * compute_brightness(pixels))


def integral_image(grid: np.ndarray) -> np.ndarray:
    """Summed-area table with a leading zero row and column, (H+1) x (W+1)."""
    return cv2.integral(np.ascontiguousarray(grid, dtype=np.float64), sdepth=cv2.CV_64F)


def window_means(
    integral: np.ndarray,
    xs: np.ndarray,
    ys: np.ndarray,
    window_width: int,
    window_height: int
) -> np.ndarray:
    """
    Mean grid value for every window with top-left at (xs[j], ys[i]).

    Windows are clipped to the grid, matching a direct per-cell average.

    Returns:
        len(ys) x len(xs) array of means
    """
    rows, cols = integral.shape[0] - 1, integral.shape[1] - 1

    x0 = np.asarray(xs, dtype=np.intp)
    y0 = np.asarray(ys, dtype=np.intp)
    x1 = np.minimum(x0 + window_width, cols)
    y1 = np.minimum(y0 + window_height, rows)

    sums = (integral[np.ix_(y1, x1)] - integral[np.ix_(y0, x1)]
            - integral[np.ix_(y1, x0)] + integral[np.ix_(y0, x0)])
    counts = np.outer(y1 - y0, x1 - x0)

    means = np.zeros(sums.shape, dtype=np.float64)
    np.divide(sums, counts, out=means, where=counts > 0)
    # prefix-sum cancellation can leave tiny negatives over all-zero windows
    np.maximum(means, 0.0, out=means)
    return means
