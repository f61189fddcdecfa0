"""Batch processing logic for directories of images."""

import os
import json
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import List, Optional

from tqdm import tqdm

from .preprocessor import ImageAnalyzer, ProcessingResult
from .cropper import parse_aspect_ratio
from .config import AppConfig, config_from_dict
from .utils import collect_images, ensure_directory, get_output_path


@dataclass
class BatchStats:
    """Statistics for batch processing."""
    total: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    output_files: int = 0
    errors: List[str] = field(default_factory=list)


# One analyzer per worker process
_analyzer: Optional[ImageAnalyzer] = None


def init_worker(config: dict) -> None:
    """
    Build the worker's analyzer once, reused for every image it processes.

    Args:
        config: Batch options; 'app_config' holds AppConfig.to_dict() output
    """
    global _analyzer
    _analyzer = ImageAnalyzer.from_config(config_from_dict(config.get('app_config', {})))


def _analysis_path(input_path: str, output_dir: str) -> str:
    return get_output_path(input_path, output_dir, suffix='_analysis', fmt='json')


def process_single_image(args) -> ProcessingResult:
    """
    Process a single image with the worker's analyzer.

    Args:
        args: Tuple of (input_path, output_dir, config_dict)

    Returns:
        ProcessingResult
    """
    input_path, output_dir, config = args

    analysis_path = _analysis_path(input_path, output_dir)
    if config.get('skip_existing') and os.path.exists(analysis_path):
        return ProcessingResult(success=True, input_path=input_path, skipped=True)

    ratios = [parse_aspect_ratio(r) for r in config['ratios']]
    result = _analyzer.process_image(
        input_path, output_dir,
        ratios=ratios,
        fmt=config.get('format', 'jpg'),
        prefix=config.get('prefix', '')
    )

    # Sidecar with subjects and crop windows, also marks the image as done
    if result.success:
        analysis_data = {
            'filename': os.path.basename(input_path),
            'original_dimensions': result.original_dimensions,
            'subjects': result.subjects,
            'crops': result.crops,
        }
        with open(analysis_path, 'w') as f:
            json.dump(analysis_data, f, indent=2)

    return result


def run_batch(input_dir: str, output_dir: str, config: dict, workers: int = 4) -> int:
    """
    Run batch processing on a directory of images.

    Args:
        input_dir: Input directory containing images
        output_dir: Output directory for cropped images
        config: Options: ratios, format, prefix, recursive, skip_existing, app_config
        workers: Number of parallel worker processes

    Returns:
        0 on success, 1 if any failures
    """
    if not os.path.isdir(input_dir):
        print(f"Error: Input directory does not exist: {input_dir}")
        return 1

    ensure_directory(output_dir)
    config = {'app_config': AppConfig.default().to_dict(), **config}

    print("Scanning for images...")
    images = collect_images(input_dir, recursive=config.get('recursive', False))

    if not images:
        print("No images found in input directory")
        return 0

    print(f"Found {len(images)} images")

    tasks = [(img, output_dir, config) for img in images]
    stats = BatchStats(total=len(images))

    print(f"\nProcessing images (ratios: {', '.join(config['ratios'])}, workers: {workers})...\n")

    with ProcessPoolExecutor(max_workers=workers, initializer=init_worker, initargs=(config,)) as executor:
        futures = {executor.submit(process_single_image, task): task for task in tasks}

        with tqdm(total=len(tasks), unit='img') as pbar:
            for future in as_completed(futures):
                input_path = futures[future][0]

                try:
                    result = future.result()
                    if result.skipped:
                        stats.skipped += 1
                    elif result.success:
                        stats.success += 1
                        stats.output_files += len(result.output_paths)
                    else:
                        stats.failed += 1
                        stats.errors.append(f"{input_path}: {result.error_message}")
                except Exception as e:
                    stats.failed += 1
                    stats.errors.append(f"{input_path}: {str(e)}")

                pbar.update(1)

    print_summary(stats, output_dir)

    return 0 if stats.failed == 0 else 1


def print_summary(stats: BatchStats, output_dir: str) -> None:
    """Print the end-of-run summary."""
    print("\n" + "=" * 60)
    print("BATCH PROCESSING SUMMARY")
    print("=" * 60)
    print(f"Total images:     {stats.total}")
    print(f"Successful:       {stats.success}")
    print(f"  Output files:   {stats.output_files}")
    if stats.skipped > 0:
        print(f"Skipped:          {stats.skipped}")
    print(f"Failed:           {stats.failed}")

    if stats.errors:
        print("\nErrors:")
        for error in stats.errors[:10]:
            print(f"  - {error}")
        if len(stats.errors) > 10:
            print(f"  ... and {len(stats.errors) - 10} more")

    print(f"\nOutput directory: {output_dir}")
    print("=" * 60)
