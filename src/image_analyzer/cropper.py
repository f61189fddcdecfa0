"""Aspect-ratio cropping that preserves detected subjects."""

import math
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass
import numpy as np
from PIL import Image

from .analyzer import ImageSource, HIGH_DEPTH_MODES, to_rgb_array
from .detector import (
    DetectionConfig,
    InvalidDimensionsError,
    Region,
    SubjectDetector,
)
from . import defaults


# Quality score weights
PRESERVATION_WEIGHT = 0.3
RATIO_ACCURACY_WEIGHT = 0.3
SUBJECT_WEIGHT = 0.3
CENTERING_WEIGHT = 0.1

# Source/target ratios closer than this are resized without cropping
RESIZE_RATIO_TOLERANCE = 0.01


class UpscalingError(ValueError):
    """Requested crop is larger than the source and upscaling is disabled."""


@dataclass(frozen=True)
class AspectRatio:
    """Named width:height ratio."""
    width: int
    height: int
    name: str

    @property
    def ratio(self) -> float:
        return self.width / self.height


SQUARE = AspectRatio(1, 1, 'square')
PORTRAIT = AspectRatio(3, 4, 'portrait')
LANDSCAPE = AspectRatio(4, 3, 'landscape')
WIDESCREEN = AspectRatio(16, 9, 'widescreen')
INSTAGRAM = AspectRatio(4, 5, 'instagram')
STORY = AspectRatio(9, 16, 'story')


def common_aspect_ratios() -> List[AspectRatio]:
    """Commonly used aspect ratios."""
    return [SQUARE, PORTRAIT, LANDSCAPE, WIDESCREEN, INSTAGRAM, STORY]


def parse_aspect_ratio(value: str) -> AspectRatio:
    """
    Parse a ratio name ('square') or 'W:H' / 'WxH' string ('16:9').

    Raises:
        ValueError: Unknown name or malformed string
    """
    text = value.strip().lower()
    for ratio in common_aspect_ratios():
        if ratio.name == text:
            return ratio

    for sep in (':', 'x'):
        if sep in text:
            left, _, right = text.partition(sep)
            try:
                width, height = int(left), int(right)
            except ValueError:
                break
            if width <= 0 or height <= 0:
                break
            return AspectRatio(width, height, f"{width}x{height}")

    names = ', '.join(r.name for r in common_aspect_ratios())
    raise ValueError(f"Unknown aspect ratio '{value}' (use W:H or one of: {names})")


@dataclass(frozen=True)
class CropConfig:
    """
    Cropper tunables.

    Attributes:
        allow_upscaling: Permit crop_to_size targets larger than the source
        quality_threshold: Minimum quality for get_optimal_crops to keep a crop
    """
    allow_upscaling: bool = defaults.ALLOW_UPSCALING
    quality_threshold: float = defaults.QUALITY_THRESHOLD


@dataclass(frozen=True)
class CropResult:
    """Outcome of one crop request."""
    image: Image.Image
    region: Region
    target_ratio: float
    quality: float

    def to_dict(self) -> dict:
        return {
            'region': self.region.to_dict(),
            'target_ratio': self.target_ratio,
            'quality': self.quality,
        }


def calculate_crop_quality(
    image_size: Tuple[int, int],
    region: Region,
    target_ratio: float
) -> float:
    """
    Score how well a crop preserves the original, in [0, 1].

    Combines how much area survives, how close the crop is to the target
    ratio, the optimiser's subject coverage score and how centred the crop
    is. The coverage score is not bounded by 1 (several fully covered
    subjects add up), so only the weighted sum is clamped.

    Args:
        image_size: (width, height) of the original image
        region: Chosen crop window
        target_ratio: Requested width/height ratio

    Returns:
        Quality score clamped to [0, 1]
    """
    width, height = image_size
    if width <= 0 or height <= 0:
        raise InvalidDimensionsError(f"Invalid image dimensions: {width}x{height}")

    preservation_ratio = region.area / (width * height)

    crop_ratio = region.width / region.height
    ratio_accuracy = 1.0 - abs(crop_ratio - target_ratio) / max(crop_ratio, target_ratio)

    subject_score = region.score

    crop_cx, crop_cy = region.center
    image_cx, image_cy = width // 2, height // 2
    max_distance = math.hypot(width, height)
    distance = math.hypot(crop_cx - image_cx, crop_cy - image_cy)
    centering_score = 1.0 - distance / max_distance

    quality = (PRESERVATION_WEIGHT * preservation_ratio
               + RATIO_ACCURACY_WEIGHT * ratio_accuracy
               + SUBJECT_WEIGHT * subject_score
               + CENTERING_WEIGHT * centering_score)

    return min(1.0, max(0.0, quality))


def _as_pil(image: ImageSource) -> Image.Image:
    if isinstance(image, Image.Image):
        return image
    pixels = np.asarray(image)
    if pixels.dtype.itemsize == 2 and pixels.ndim == 3:
        # Pillow has no 16-bit RGB mode
        return Image.fromarray((to_rgb_array(pixels) >> 8).astype(np.uint8))
    return Image.fromarray(pixels)


def _resize(image: Image.Image, size: Tuple[int, int]) -> Image.Image:
    # LANCZOS needs 32-bit samples for 16-bit sources
    if image.mode in HIGH_DEPTH_MODES:
        image = image.convert('I')
    return image.resize(size, Image.LANCZOS)


class SmartCropper:
    """Crops images to aspect ratios around their most salient content."""

    def __init__(
        self,
        config: Optional[CropConfig] = None,
        detector: Optional[SubjectDetector] = None,
        detection_config: Optional[DetectionConfig] = None
    ):
        """
        Initialize cropper.

        Args:
            config: Cropper tunables (defaults if None)
            detector: Subject detector (created from detection_config if None)
            detection_config: Detection tunables for a newly created detector
        """
        self.config = config or CropConfig()
        self.detector = detector or SubjectDetector(detection_config)

    def crop_to_aspect_ratio(self, image: ImageSource, aspect_ratio: AspectRatio) -> CropResult:
        """Crop to a named aspect ratio."""
        return self.crop_to_ratio(image, aspect_ratio.ratio)

    def crop_to_ratio(self, image: ImageSource, target_ratio: float) -> CropResult:
        """
        Crop to a width/height ratio while keeping important subjects.

        Args:
            image: PIL Image or RGB pixel array
            target_ratio: Target width / height

        Returns:
            CropResult with the cropped image, window and quality score

        Raises:
            InvalidDimensionsError: Image has zero width or height
        """
        pil_image = _as_pil(image)
        width, height = pil_image.size
        if width <= 0 or height <= 0:
            raise InvalidDimensionsError(f"Invalid image dimensions: {width}x{height}")

        # Detection runs on the source so 16-bit arrays keep full precision
        region = self.detector.find_best_crop_region(image, target_ratio)
        quality = calculate_crop_quality((width, height), region, target_ratio)

        return CropResult(
            image=pil_image.crop(region.box),
            region=region,
            target_ratio=target_ratio,
            quality=quality
        )

    def crop_to_multiple_ratios(
        self,
        image: ImageSource,
        ratios: List[AspectRatio]
    ) -> List[CropResult]:
        """
        Crop to each ratio in turn.

        Raises:
            ValueError: First failing ratio, with its name in the message
        """
        results = []
        for ratio in ratios:
            try:
                results.append(self.crop_to_aspect_ratio(image, ratio))
            except ValueError as e:
                raise type(e)(f"Failed to crop to {ratio.name}: {e}") from e
        return results

    def crop_to_size(self, image: ImageSource, target_width: int, target_height: int) -> CropResult:
        """
        Crop to the aspect ratio of a target size.

        The crop is not resized; see smart_resize for that.

        Raises:
            UpscalingError: Target exceeds the source and upscaling is disabled
        """
        if target_width <= 0 or target_height <= 0:
            raise InvalidDimensionsError(
                f"Invalid target dimensions: {target_width}x{target_height}"
            )

        pil_image = _as_pil(image)
        width, height = pil_image.size

        if not self.config.allow_upscaling and (target_width > width or target_height > height):
            raise UpscalingError(
                f"Target size ({target_width}x{target_height}) is larger than "
                f"original ({width}x{height}) and upscaling is disabled"
            )

        return self.crop_to_ratio(image, target_width / target_height)

    def get_optimal_crops(self, image: ImageSource) -> Dict[str, CropResult]:
        """
        Crop to every common ratio, keeping crops that meet the quality threshold.

        Returns:
            Mapping of ratio name to CropResult, in common_aspect_ratios order
        """
        results = {}
        for ratio in common_aspect_ratios():
            result = self.crop_to_aspect_ratio(image, ratio)
            if result.quality >= self.config.quality_threshold:
                results[ratio.name] = result
        return results

    def smart_resize(self, image: ImageSource, target_width: int, target_height: int) -> Image.Image:
        """
        Resize to exact dimensions, smart-cropping first when the ratio differs.

        Args:
            image: PIL Image or RGB pixel array
            target_width: Output width in pixels
            target_height: Output height in pixels

        Returns:
            Image of exactly target_width x target_height
        """
        if target_width <= 0 or target_height <= 0:
            raise InvalidDimensionsError(
                f"Invalid target dimensions: {target_width}x{target_height}"
            )

        pil_image = _as_pil(image)
        width, height = pil_image.size
        if width <= 0 or height <= 0:
            raise InvalidDimensionsError(f"Invalid image dimensions: {width}x{height}")

        if (width, height) == (target_width, target_height):
            return pil_image

        target_ratio = target_width / target_height
        original_ratio = width / height

        if abs(target_ratio - original_ratio) < RESIZE_RATIO_TOLERANCE:
            return _resize(pil_image, (target_width, target_height))

        cropped = self.crop_to_ratio(image, target_ratio).image
        return _resize(cropped, (target_width, target_height))
