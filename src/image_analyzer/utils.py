"""Shared utility functions."""

import os
from pathlib import Path
from typing import List
from PIL import Image

from . import defaults


SUPPORTED_FORMATS = {f'.{ext}' for ext in defaults.SUPPORTED_FORMATS}

_INVALID_FILENAME_CHARS = '/\\:*?"<>|'


def is_image_file(path: str) -> bool:
    """Check if file is a supported image format."""
    return Path(path).suffix.lower() in SUPPORTED_FORMATS


def ensure_directory(path: str) -> None:
    """Create directory if it doesn't exist."""
    Path(path).mkdir(parents=True, exist_ok=True)


def validate_image_file(image_path: str) -> bool:
    """Validate that image file can be opened and processed."""
    if not os.path.exists(image_path):
        return False

    if not is_image_file(image_path):
        return False

    try:
        with Image.open(image_path) as img:
            img.verify()
        return True
    except Exception:
        return False


def sanitize_filename(filename: str) -> str:
    """Replace characters that are invalid in file names and trim spaces/dots."""
    for char in _INVALID_FILENAME_CHARS:
        filename = filename.replace(char, '_')
    return filename.strip(' .')


def get_output_path(
    input_path: str,
    output_dir: str,
    suffix: str = "",
    prefix: str = "",
    fmt: str = ""
) -> str:
    """
    Generate output path for processed image.

    The extension defaults to the input's own extension, or jpg when the
    input has none.
    """
    path = Path(input_path)
    if not fmt:
        fmt = path.suffix.lstrip('.').lower() or defaults.OUTPUT_FORMAT
    output_name = sanitize_filename(f"{prefix}{path.stem}{suffix}") + f".{fmt}"
    return os.path.join(output_dir, output_name)


def format_file_size(size: int) -> str:
    """Format a byte count in human-readable form (1024-based)."""
    unit = 1024
    if size < unit:
        return f"{size} B"

    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit

    return f"{size / div:.1f} {'KMGTPE'[exp]}B"


def collect_images(input_dir: str, recursive: bool = False) -> List[str]:
    """
    Collect image files from a directory.

    Args:
        input_dir: Directory to scan
        recursive: Descend into subdirectories

    Returns:
        Sorted list of image file paths
    """
    if not recursive:
        return sorted(
            os.path.join(input_dir, f)
            for f in os.listdir(input_dir)
            if is_image_file(f) and os.path.isfile(os.path.join(input_dir, f))
        )

    images = []
    for root, dirs, files in os.walk(input_dir):
        for file in files:
            file_path = os.path.join(root, file)
            if is_image_file(file_path):
                images.append(file_path)
    return sorted(images)
