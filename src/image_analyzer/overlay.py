"""Debug overlay showing detected subjects and the chosen crop window."""

from typing import List, Optional
from PIL import Image, ImageDraw

from .analyzer import to_8bit_image
from .detector import Region


SUBJECT_COLOR = (0, 255, 0)
CROP_COLOR = (255, 204, 0)
CROP_CENTER_COLOR = (255, 0, 0)
IMAGE_CENTER_COLOR = (0, 170, 255)
IMAGE_CENTER_MARK = 6


def _draw_box(draw: ImageDraw.ImageDraw, region: Region, color, stroke: int) -> None:
    x1, y1, x2, y2 = region.box
    # PIL rectangles include the end coordinate
    draw.rectangle((x1, y1, x2 - 1, y2 - 1), outline=color, width=stroke)


def _draw_cross(draw: ImageDraw.ImageDraw, x: int, y: int, half: int, color) -> None:
    draw.line((x - half, y, x + half, y), fill=color)
    draw.line((x, y - half, x, y + half), fill=color)


def draw_debug_overlay(
    image: Image.Image,
    subjects: List[Region],
    crop_region: Optional[Region] = None
) -> Image.Image:
    """
    Render subject boxes and crop window on a copy of the image.

    Subjects are outlined in green, the crop window in gold with a red cross
    at its centre, and the image centre is marked in blue.

    Args:
        image: Source image (not modified)
        subjects: Regions to outline
        crop_region: Crop window to outline, if any

    Returns:
        New RGB image with the overlay drawn
    """
    overlay = to_8bit_image(image).convert('RGB')
    width, height = overlay.size
    short_side = min(width, height)
    stroke = max(2, int(0.004 * short_side))
    cross = max(4, int(0.01 * short_side))

    draw = ImageDraw.Draw(overlay)

    for subject in subjects:
        _draw_box(draw, subject, SUBJECT_COLOR, stroke)

    if crop_region is not None and crop_region.width > 0 and crop_region.height > 0:
        _draw_box(draw, crop_region, CROP_COLOR, stroke)
        cx, cy = crop_region.center
        _draw_cross(draw, cx, cy, cross, CROP_CENTER_COLOR)

    _draw_cross(draw, width // 2, height // 2, IMAGE_CENTER_MARK, IMAGE_CENTER_COLOR)

    return overlay
