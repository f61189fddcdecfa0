"""Core pipeline orchestration: load, analyse, crop and save images."""

import os
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple, Sequence
from PIL import Image, ImageOps

from .analyzer import ImageSource, HIGH_DEPTH_MODES, to_8bit_image
from .detector import DetectionConfig, Region, SubjectDetector
from .colors import Color
from .cropper import AspectRatio, CropConfig, CropResult, SmartCropper, common_aspect_ratios
from .utils import ensure_directory, get_output_path, format_file_size
from . import defaults


class ImageLoadError(OSError):
    """Image file is missing, undecodable or in an unsupported format."""


class ImageValidationError(ValueError):
    """Image does not meet the minimum size requirement."""


@dataclass(frozen=True)
class ImageInfo:
    """Basic image metadata."""
    width: int
    height: int
    aspect_ratio: float
    area: int


@dataclass
class AnalysisResult:
    """Subjects and quality-filtered crops for one image."""
    info: ImageInfo
    subjects: List[Region]
    crops: Dict[str, CropResult]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'info': {
                'width': self.info.width,
                'height': self.info.height,
                'aspect_ratio': self.info.aspect_ratio,
                'area': self.info.area,
            },
            'subjects': [s.to_dict() for s in self.subjects],
            'crops': {name: crop.to_dict() for name, crop in self.crops.items()},
        }


@dataclass
class ProcessingResult:
    """Result of processing one image file."""
    success: bool
    input_path: str
    output_paths: List[str] = field(default_factory=list)
    error_message: Optional[str] = None
    skipped: bool = False  # outputs already present (batch --skip-existing)
    original_dimensions: Optional[Tuple[int, int]] = None  # (width, height)
    subjects: List[Dict[str, Any]] = field(default_factory=list)
    crops: List[Dict[str, Any]] = field(default_factory=list)  # name, region, quality, path


_SAVE_FORMATS = {
    '.jpg': 'JPEG',
    '.jpeg': 'JPEG',
    '.png': 'PNG',
    '.webp': 'WEBP',
}


class ImageAnalyzer:
    """High-level interface for subject detection and smart cropping."""

    def __init__(
        self,
        detection_config: Optional[DetectionConfig] = None,
        crop_config: Optional[CropConfig] = None,
        quality: int = defaults.JPEG_QUALITY,
        min_image_size: int = defaults.MIN_IMAGE_SIZE,
        supported_formats: Sequence[str] = defaults.SUPPORTED_FORMATS
    ):
        """
        Initialize analyzer.

        Args:
            detection_config: Subject detection tunables (defaults if None)
            crop_config: Cropper tunables (defaults if None)
            quality: JPEG/WebP output quality (1-100)
            min_image_size: Minimum width and height accepted by validate_image
            supported_formats: Accepted input formats (e.g. 'jpg', 'png')
        """
        self.quality = quality
        self.min_image_size = min_image_size
        self.supported_formats = {f.lower() for f in supported_formats}

        self.detector = SubjectDetector(detection_config)
        self.cropper = SmartCropper(crop_config, detector=self.detector)

    @classmethod
    def from_config(cls, config) -> 'ImageAnalyzer':
        """Build from an AppConfig."""
        return cls(
            detection_config=config.vision,
            crop_config=config.cropper,
            quality=config.analyzer.default_quality,
            min_image_size=config.analyzer.min_image_size,
            supported_formats=config.analyzer.supported_formats
        )

    def load_image(self, path: str) -> Image.Image:
        """
        Load an image as RGB with EXIF orientation applied.

        16-bit grayscale files keep their I;16/I mode so detection sees every
        level; everything else is converted to 8-bit RGB.

        Raises:
            ImageLoadError: File missing, undecodable or unsupported format
        """
        try:
            with Image.open(path) as img:
                fmt = (img.format or '').lower()
                if not self._is_format_supported(fmt):
                    raise ImageLoadError(f"Unsupported image format: {fmt or 'unknown'}")

                # Fixes rotated camera images
                img = ImageOps.exif_transpose(img)
                if img.mode in HIGH_DEPTH_MODES:
                    return img.copy()
                return img.convert('RGB')
        except ImageLoadError:
            raise
        except OSError as e:
            raise ImageLoadError(f"Failed to load image {path}: {e}") from e

    def _is_format_supported(self, fmt: str) -> bool:
        if fmt in self.supported_formats:
            return True
        # Pillow reports JPEG files as 'jpeg'
        return fmt == 'jpeg' and 'jpg' in self.supported_formats

    @staticmethod
    def get_image_info(image: Image.Image) -> ImageInfo:
        width, height = image.size
        return ImageInfo(
            width=width,
            height=height,
            aspect_ratio=width / height if height else 0.0,
            area=width * height
        )

    def validate_image(self, image: Image.Image) -> None:
        """
        Check the image meets the minimum size.

        Raises:
            ImageValidationError: Either side is below min_image_size
        """
        width, height = image.size
        if width < self.min_image_size or height < self.min_image_size:
            raise ImageValidationError(
                f"Image too small: {width}x{height} (minimum: {self.min_image_size})"
            )

    def detect_subjects(self, image: ImageSource) -> List[Region]:
        return self.detector.detect_subjects(image)

    def get_dominant_colors(self, image: ImageSource, region: Region) -> List[Color]:
        return self.detector.get_dominant_colors(image, region)

    def crop_to_aspect_ratio(self, image: ImageSource, aspect_ratio: AspectRatio) -> CropResult:
        return self.cropper.crop_to_aspect_ratio(image, aspect_ratio)

    def crop_to_ratio(self, image: ImageSource, ratio: float) -> CropResult:
        return self.cropper.crop_to_ratio(image, ratio)

    def crop_to_multiple_ratios(
        self,
        image: ImageSource,
        ratios: List[AspectRatio]
    ) -> List[CropResult]:
        return self.cropper.crop_to_multiple_ratios(image, ratios)

    def analyze_image(self, image: Image.Image) -> AnalysisResult:
        """
        Detect subjects and compute quality-filtered crops for common ratios.

        Args:
            image: PIL Image

        Returns:
            AnalysisResult with image info, subjects and accepted crops
        """
        return AnalysisResult(
            info=self.get_image_info(image),
            subjects=self.detect_subjects(image),
            crops=self.cropper.get_optimal_crops(image)
        )

    def process_image(
        self,
        input_path: str,
        output_dir: str,
        ratios: Optional[List[AspectRatio]] = None,
        fmt: str = defaults.OUTPUT_FORMAT,
        prefix: str = defaults.OUTPUT_PREFIX,
        verbose: bool = False
    ) -> ProcessingResult:
        """
        Crop one image file to each ratio and save the results.

        Outputs are named <prefix><stem>_<ratio name>.<fmt> in output_dir.

        Args:
            input_path: Path to input image
            output_dir: Directory for cropped images
            ratios: Target ratios (common ratios if None)
            fmt: Output format extension (jpg, png, webp)
            prefix: Output file name prefix
            verbose: Print processing details

        Returns:
            ProcessingResult with outcome details
        """
        if ratios is None:
            ratios = common_aspect_ratios()

        try:
            image = self.load_image(input_path)
            self.validate_image(image)

            original_dimensions = image.size
            if verbose:
                print(f"Input image: {image.width}x{image.height}")

            subjects = self.detect_subjects(image)
            if verbose:
                print(f"Detected {len(subjects)} subjects")

            results = self.crop_to_multiple_ratios(image, ratios)

            output_paths = []
            crops = []
            for ratio, result in zip(ratios, results):
                output_path = get_output_path(
                    input_path, output_dir,
                    suffix=f"_{ratio.name}", prefix=prefix, fmt=fmt
                )
                self.save_output(result.image, output_path, verbose=verbose)
                output_paths.append(output_path)
                crops.append({
                    'name': ratio.name,
                    'output_path': output_path,
                    **result.to_dict(),
                })

            return ProcessingResult(
                success=True,
                input_path=input_path,
                output_paths=output_paths,
                original_dimensions=original_dimensions,
                subjects=[s.to_dict() for s in subjects],
                crops=crops
            )

        except Exception as e:
            return ProcessingResult(
                success=False,
                input_path=input_path,
                error_message=str(e)
            )

    def save_output(
        self,
        image: Image.Image,
        output_path: str,
        verbose: bool = False
    ) -> None:
        """
        Save an image, choosing the encoder from the file extension.

        Args:
            image: PIL Image to save
            output_path: Destination (.jpg, .jpeg, .png or .webp)
            verbose: Print save details

        Raises:
            ValueError: Unsupported output extension
        """
        ext = os.path.splitext(output_path)[1].lower()
        fmt = _SAVE_FORMATS.get(ext)
        if fmt is None:
            raise ValueError(f"Unsupported output format: {ext or output_path}")

        # Ensure output directory exists
        output_dir = os.path.dirname(output_path)
        if output_dir:
            ensure_directory(output_dir)

        save_kwargs = {'format': fmt}
        if fmt in ('JPEG', 'WEBP'):
            image = to_8bit_image(image)

        if fmt == 'JPEG':
            save_kwargs.update(quality=self.quality, optimize=True)
            if image.mode not in ('RGB', 'L'):
                image = image.convert('RGB')
        elif fmt == 'WEBP':
            save_kwargs['quality'] = self.quality

        image.save(output_path, **save_kwargs)

        if verbose:
            print(f"Saved to: {output_path} ({format_file_size(os.path.getsize(output_path))})")
