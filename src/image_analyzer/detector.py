"""Saliency-based subject detection and crop-window optimisation."""

import math
from typing import List, Optional, Tuple
from dataclasses import dataclass
import numpy as np

from .analyzer import (
    ImageSource,
    to_rgb_array,
    compute_saliency_map,
    integral_image,
    window_means,
)
from .colors import get_dominant_colors, Color
from . import defaults


# Window sizes are image width divided by each of these
WINDOW_DIVISORS = (20, 16, 12, 8, 4)
MIN_WINDOW_SIZE = 10
MIN_CROP_STEP = 10


class InvalidDimensionsError(ValueError):
    """Image width or height is zero or negative."""


@dataclass(frozen=True)
class Region:
    """Axis-aligned rectangle of an image carrying an importance score."""
    x: int
    y: int
    width: int
    height: int
    score: float = 0.0

    @property
    def center(self) -> Tuple[int, int]:
        """Get center point of region."""
        return (self.x + self.width // 2, self.y + self.height // 2)

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """(left, top, right, bottom), as used by PIL crop."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def intersection_area(self, other: 'Region') -> int:
        """Area shared with another region (0 when disjoint)."""
        x1 = max(self.x, other.x)
        y1 = max(self.y, other.y)
        x2 = min(self.x + self.width, other.x + other.width)
        y2 = min(self.y + self.height, other.y + other.height)

        if x2 <= x1 or y2 <= y1:
            return 0
        return (x2 - x1) * (y2 - y1)

    def to_dict(self) -> dict:
        return {
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
            'score': self.score,
        }


@dataclass(frozen=True)
class DetectionConfig:
    """
    Tunables for subject detection.

    Attributes:
        edge_threshold: Minimum mean saliency for a window to become a candidate
        contrast_weight: Weight of edge strength in the saliency formula
        color_weight: Weight of brightness in the saliency formula
        saliency_weight: Reserved; carried in configuration files but not
            consumed by the saliency formula
        min_subject_ratio: Minimum region area as a fraction of image area
    """
    edge_threshold: float = defaults.EDGE_THRESHOLD
    contrast_weight: float = defaults.CONTRAST_WEIGHT
    color_weight: float = defaults.COLOR_WEIGHT
    saliency_weight: float = defaults.SALIENCY_WEIGHT
    min_subject_ratio: float = defaults.MIN_SUBJECT_RATIO


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


# ============================================================================
# Candidate regions
# ============================================================================

def window_sizes(image_width: int) -> List[int]:
    """Square window sizes scanned for an image of the given width."""
    sizes = [image_width // divisor for divisor in WINDOW_DIVISORS]
    return [size for size in sizes if size >= MIN_WINDOW_SIZE]


def scan_regions(saliency: np.ndarray, edge_threshold: float) -> List[Region]:
    """
    Multi-scale sliding-window scan over a saliency grid.

    For each window size s (see window_sizes), top-left positions step by
    max(1, s // 8) along both axes, y outer and x inner. A window becomes a
    candidate when its mean saliency is strictly above edge_threshold.
    Candidates overlap heavily across scales and positions.

    Args:
        saliency: H x W saliency grid
        edge_threshold: Minimum mean saliency to accept a window

    Returns:
        Candidate regions in scan order (size, then y, then x)
    """
    height, width = saliency.shape[:2]
    sizes = window_sizes(width)
    if not sizes or saliency.size == 0:
        return []

    integral = integral_image(saliency)

    regions = []
    for size in sizes:
        stride = max(1, size // 8)
        ys = np.arange(0, height - size + 1, stride)
        xs = np.arange(0, width - size + 1, stride)
        if len(ys) == 0 or len(xs) == 0:
            continue

        means = window_means(integral, xs, ys, size, size)

        # np.nonzero yields row-major order, i.e. y outer, x inner
        for row, col in zip(*np.nonzero(means > edge_threshold)):
            regions.append(Region(
                x=int(xs[col]),
                y=int(ys[row]),
                width=size,
                height=size,
                score=float(means[row, col])
            ))

    return regions


def filter_regions(
    regions: List[Region],
    image_area: int,
    min_subject_ratio: float
) -> List[Region]:
    """
    Drop regions below the minimum subject area and rank the rest.

    Sorting is stable: regions with equal scores keep their scan order.

    Returns:
        Surviving regions sorted by score (highest first)
    """
    min_area = round_half_up(image_area * min_subject_ratio)
    kept = [r for r in regions if r.area >= min_area]
    return sorted(kept, key=lambda r: r.score, reverse=True)


def rank_subjects(pixels: np.ndarray, config: DetectionConfig) -> List[Region]:
    """Full, untruncated ranked subject list for an RGB pixel array."""
    height, width = pixels.shape[:2]
    saliency = compute_saliency_map(pixels, config.contrast_weight, config.color_weight)
    regions = scan_regions(saliency, config.edge_threshold)
    return filter_regions(regions, width * height, config.min_subject_ratio)


# ============================================================================
# Crop window optimisation
# ============================================================================

def calculate_crop_size(
    image_width: int,
    image_height: int,
    target_ratio: float
) -> Tuple[int, int]:
    """
    Largest crop of the given width/height ratio that fits the image.

    Wider targets keep the full width, taller targets keep the full height.
    Never upscales.

    Raises:
        InvalidDimensionsError: Image width or height is not positive
        ValueError: Target ratio is not a positive finite number
    """
    if image_width <= 0 or image_height <= 0:
        raise InvalidDimensionsError(
            f"Invalid image dimensions: {image_width}x{image_height}"
        )
    if not (target_ratio > 0 and math.isfinite(target_ratio)):
        raise ValueError(f"Target aspect ratio must be positive, got {target_ratio}")

    if target_ratio > image_width / image_height:
        crop_width = image_width
        crop_height = round_half_up(image_width / target_ratio)
    else:
        crop_height = image_height
        crop_width = round_half_up(image_height * target_ratio)

    return (max(1, crop_width), max(1, crop_height))


def _overlap_scores(
    subjects: List[Region],
    xs: np.ndarray,
    ys: np.ndarray,
    crop_width: int,
    crop_height: int
) -> np.ndarray:
    """
    Subject coverage score for every crop window at (xs[j], ys[i]).

    Each subject contributes (intersection area / subject area) * score.

    Returns:
        len(ys) x len(xs) array of scores
    """
    sx1 = np.array([s.x for s in subjects], dtype=np.float64)
    sy1 = np.array([s.y for s in subjects], dtype=np.float64)
    sx2 = sx1 + np.array([s.width for s in subjects], dtype=np.float64)
    sy2 = sy1 + np.array([s.height for s in subjects], dtype=np.float64)
    weights = np.array([s.score / s.area for s in subjects], dtype=np.float64)

    x0 = np.asarray(xs, dtype=np.float64)[:, None]
    y0 = np.asarray(ys, dtype=np.float64)[:, None]

    overlap_x = np.clip(np.minimum(x0 + crop_width, sx2) - np.maximum(x0, sx1), 0, None)
    overlap_y = np.clip(np.minimum(y0 + crop_height, sy2) - np.maximum(y0, sy1), 0, None)

    return overlap_y @ (overlap_x * weights).T


def score_crop_position(
    subjects: List[Region],
    x: int,
    y: int,
    crop_width: int,
    crop_height: int
) -> float:
    """Coverage score of a single crop window (0 with no subjects)."""
    if not subjects:
        return 0.0
    scores = _overlap_scores(subjects, np.array([x]), np.array([y]), crop_width, crop_height)
    return float(scores[0, 0])


def find_optimal_crop_position(
    subjects: List[Region],
    crop_width: int,
    crop_height: int,
    image_width: int,
    image_height: int
) -> Region:
    """
    Grid-search the crop position that covers the most subject weight.

    Positions step by max(10, max(crop_width, crop_height) // 20), y outer and
    x inner. The centred window with score 0 is the starting best; a window
    replaces it only with a strictly greater score, so the first window to
    reach the maximum wins.

    Returns:
        The chosen crop window, scored with its coverage
    """
    best = Region(
        x=(image_width - crop_width) // 2,
        y=(image_height - crop_height) // 2,
        width=crop_width,
        height=crop_height,
        score=0.0
    )
    if not subjects:
        return best

    step = max(MIN_CROP_STEP, max(crop_width, crop_height) // 20)
    xs = np.arange(0, image_width - crop_width + 1, step)
    ys = np.arange(0, image_height - crop_height + 1, step)
    if len(xs) == 0 or len(ys) == 0:
        return best

    scores = _overlap_scores(subjects, xs, ys, crop_width, crop_height)
    row, col = np.unravel_index(int(np.argmax(scores)), scores.shape)
    best_score = float(scores[row, col])

    if best_score > best.score:
        return Region(
            x=int(xs[col]),
            y=int(ys[row]),
            width=crop_width,
            height=crop_height,
            score=best_score
        )
    return best


# ============================================================================
# Public entry points
# ============================================================================

def detect_subjects(
    image: ImageSource,
    config: DetectionConfig = DetectionConfig(),
    max_subjects: int = defaults.MAX_SUBJECTS
) -> List[Region]:
    """
    Find visually important regions.

    Args:
        image: PIL Image or RGB pixel array
        config: Detection tunables
        max_subjects: Maximum number of regions returned

    Returns:
        Up to max_subjects regions sorted by score (highest first); empty when
        nothing clears the thresholds
    """
    return rank_subjects(to_rgb_array(image), config)[:max_subjects]


def find_best_crop_region(
    image: ImageSource,
    target_aspect_ratio: float,
    config: DetectionConfig = DetectionConfig()
) -> Region:
    """
    Choose the crop window of the target ratio that best preserves subjects.

    Falls back to the centred window with score 0 when no subject helps.

    Raises:
        InvalidDimensionsError: Image has zero width or height
    """
    pixels = to_rgb_array(image)
    height, width = pixels.shape[:2]

    crop_width, crop_height = calculate_crop_size(width, height, target_aspect_ratio)

    # The optimiser weighs every ranked subject, not just the top few
    subjects = rank_subjects(pixels, config)

    return find_optimal_crop_position(subjects, crop_width, crop_height, width, height)


class SubjectDetector:
    """Subject detector bound to one immutable DetectionConfig."""

    def __init__(self, config: Optional[DetectionConfig] = None):
        """
        Initialize detector.

        Args:
            config: Detection tunables (defaults if None)
        """
        self.config = config or DetectionConfig()

    def detect_subjects(self, image: ImageSource) -> List[Region]:
        """Up to 10 subject regions sorted by score (highest first)."""
        return detect_subjects(image, self.config)

    def find_best_crop_region(self, image: ImageSource, target_aspect_ratio: float) -> Region:
        """Best in-bounds crop window for the given width/height ratio."""
        return find_best_crop_region(image, target_aspect_ratio, self.config)

    def get_dominant_colors(self, image: ImageSource, region: Region) -> List[Color]:
        """Up to 5 frequent colours inside region."""
        return get_dominant_colors(image, region)
