"""Click-based CLI entry point with unified subcommands."""

import os
import sys
import json
import functools
import dataclasses
import click

from .preprocessor import ImageAnalyzer, ImageLoadError, ImageValidationError
from .cropper import parse_aspect_ratio, common_aspect_ratios
from .overlay import draw_debug_overlay
from .config import AppConfig, ConfigError, load_config, save_config, get_config_path
from .utils import get_output_path, ensure_directory
from . import defaults, __version__


RATIO_HELP = ', '.join(r.name for r in common_aspect_ratios())


def common_options(f):
    """Decorator that adds shared configuration options to a Click command."""
    @click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
                  help='JSON configuration file (default: built-in defaults)')
    @click.option('--quality', '-q', type=click.IntRange(1, 100), default=None,
                  help='JPEG/WebP quality 1-100 (default: from config)')
    @click.option('--edge-threshold', '-t', type=click.FloatRange(0.0, 1.0), default=None,
                  help=f'Minimum mean saliency for a subject (default: {defaults.EDGE_THRESHOLD})')
    @click.option('--verbose', '-v', is_flag=True, help='Verbose output')
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        return f(*args, **kwargs)
    return wrapper


def load_app_config(config_path, quality=None, edge_threshold=None) -> AppConfig:
    """Load and validate configuration, applying CLI overrides."""
    try:
        config = load_config(config_path) if config_path else AppConfig.default()
        if quality is not None:
            config.analyzer.default_quality = quality
        if edge_threshold is not None:
            config.vision = dataclasses.replace(config.vision, edge_threshold=edge_threshold)
        config.validate()
    except ConfigError as e:
        raise click.BadParameter(str(e), param_hint='--config')
    return config


def parse_ratios(values):
    """Convert --ratio values to AspectRatio objects (all common ratios if none)."""
    if not values:
        return common_aspect_ratios()
    try:
        return [parse_aspect_ratio(v) for v in values]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='--ratio')


def load_input(analyzer, path, verbose):
    """Load and validate an input image, turning failures into CLI errors."""
    try:
        image = analyzer.load_image(path)
        analyzer.validate_image(image)
    except (ImageLoadError, ImageValidationError) as e:
        click.secho(f"Error: {e}", fg='red')
        raise click.Abort()

    if verbose:
        click.echo(f"Input image: {image.width}x{image.height}")
    return image


@click.group()
@click.version_option(version=__version__)
def cli():
    """Image Analyzer - subject detection and smart cropping to any aspect ratio."""
    pass


@cli.command()
@click.option('--input', '-i', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Input image file path')
@click.option('--json', 'as_json', is_flag=True, help='Print the analysis as JSON')
@common_options
def analyze(input, as_json, config_path, quality, edge_threshold, verbose):
    """Detect subjects and report the best crops for common ratios."""
    config = load_app_config(config_path, quality, edge_threshold)
    analyzer = ImageAnalyzer.from_config(config)
    image = load_input(analyzer, input, verbose and not as_json)

    result = analyzer.analyze_image(image)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    info = result.info
    click.echo(f"Image: {info.width}x{info.height} (ratio: {info.aspect_ratio:.2f}, area: {info.area})")

    click.echo(f"\nDetected {len(result.subjects)} subjects:")
    for i, subject in enumerate(result.subjects, 1):
        cx, cy = subject.center
        click.echo(f"  Subject {i}: {subject.width}x{subject.height} at ({subject.x},{subject.y}) "
                   f"center=({cx},{cy}) score={subject.score:.3f}")
        if verbose:
            colors = analyzer.get_dominant_colors(image, subject)
            click.echo("    colors: " + ' '.join('#%02x%02x%02x' % c for c in colors))

    threshold = config.cropper.quality_threshold
    click.echo(f"\nOptimal crops (quality >= {threshold:.2f}): {len(result.crops)}")
    for name, crop in result.crops.items():
        r = crop.region
        click.echo(f"  {name}: {r.width}x{r.height} at ({r.x},{r.y}) quality={crop.quality:.3f}")


@cli.command()
@click.option('--input', '-i', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Input image file path')
@click.option('--output', '-o', type=click.Path(file_okay=False), default=None,
              help='Output directory (default: from config)')
@click.option('--ratio', '-r', 'ratios', multiple=True,
              help=f'Target ratio, W:H or a name ({RATIO_HELP}); repeatable (default: all)')
@click.option('--format', '-f', 'fmt', type=click.Choice(['jpg', 'png', 'webp'], case_sensitive=False),
              default=None, help='Output format (default: from config)')
@click.option('--debug', is_flag=True, help='Also write debug overlays with subjects and crop box')
@common_options
def crop(input, output, ratios, fmt, debug, config_path, quality, edge_threshold, verbose):
    """Crop a single image to one or more aspect ratios."""
    config = load_app_config(config_path, quality, edge_threshold)
    aspect_ratios = parse_ratios(ratios)
    fmt = (fmt or config.output.default_format).lower()
    analyzer = ImageAnalyzer.from_config(config)
    output = output or config.output.output_dir
    image = load_input(analyzer, input, verbose)

    ensure_directory(output)
    subjects = analyzer.detect_subjects(image) if debug else []

    for ratio in aspect_ratios:
        result = analyzer.crop_to_aspect_ratio(image, ratio)
        output_path = get_output_path(input, output, suffix=f"_{ratio.name}",
                                      prefix=config.output.prefix, fmt=fmt)
        analyzer.save_output(result.image, output_path, verbose=verbose)

        r = result.region
        click.echo(f"{ratio.name}: {r.width}x{r.height} at ({r.x},{r.y}) "
                   f"quality={result.quality:.3f} -> {output_path}")

        if debug:
            overlay = draw_debug_overlay(image, subjects, result.region)
            debug_path = get_output_path(input, output, suffix=f"_{ratio.name}_debug", fmt='png')
            analyzer.save_output(overlay, debug_path, verbose=verbose)

    click.secho("Success!", fg='green', bold=True)


@cli.command()
@click.option('--input', '-i', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Input image file path')
@click.option('--output', '-o', required=True, type=click.Path(),
              help='Output directory or file path')
@click.option('--width', '-w', required=True, type=click.IntRange(min=1), help='Target width in pixels')
@click.option('--height', '-h', required=True, type=click.IntRange(min=1), help='Target height in pixels')
@common_options
def resize(input, output, width, height, config_path, quality, edge_threshold, verbose):
    """Resize to exact dimensions, smart-cropping when the ratio differs."""
    config = load_app_config(config_path, quality, edge_threshold)
    analyzer = ImageAnalyzer.from_config(config)
    image = load_input(analyzer, input, verbose)

    if os.path.isdir(output):
        output_path = get_output_path(input, output, suffix=config.output.suffix,
                                      fmt=config.output.default_format)
    else:
        output_path = output

    try:
        resized = analyzer.cropper.smart_resize(image, width, height)
        analyzer.save_output(resized, output_path, verbose=verbose)
    except ValueError as e:
        click.secho(f"Error: {e}", fg='red')
        raise click.Abort()

    click.secho(f"Resized to {width}x{height} -> {output_path}", fg='green')


@cli.command()
@click.option('--input', '-i', required=True, type=click.Path(exists=True, file_okay=False),
              help='Input directory containing images')
@click.option('--output', '-o', type=click.Path(file_okay=False), default=None,
              help='Output directory for cropped images (default: from config)')
@click.option('--ratio', '-r', 'ratios', multiple=True,
              help=f'Target ratio, W:H or a name ({RATIO_HELP}); repeatable (default: all)')
@click.option('--format', '-f', 'fmt', type=click.Choice(['jpg', 'png', 'webp'], case_sensitive=False),
              default=None, help='Output format (default: from config)')
@click.option('--workers', default=4, type=click.IntRange(min=1),
              help='Number of parallel workers (default: 4)')
@click.option('--skip-existing', is_flag=True,
              help='Skip images that already have an analysis file in the output directory')
@click.option('--recursive', is_flag=True, help='Process subdirectories recursively')
@common_options
def batch(input, output, ratios, fmt, workers, skip_existing, recursive,
          config_path, quality, edge_threshold, verbose):
    """Batch crop a directory of images."""
    from .batch import run_batch

    config = load_app_config(config_path, quality, edge_threshold)
    output = output or config.output.output_dir
    # Validate here, workers re-parse the strings
    aspect_ratios = parse_ratios(ratios)

    options = {
        'ratios': list(ratios) or [r.name for r in aspect_ratios],
        'format': (fmt or config.output.default_format).lower(),
        'prefix': config.output.prefix,
        'recursive': recursive,
        'skip_existing': skip_existing,
        'app_config': config.to_dict(),
    }

    sys.exit(run_batch(input, output, options, workers=workers))


@cli.command('init-config')
@click.option('--path', type=click.Path(dir_okay=False), default=None,
              help=f'Where to write the file (default: {get_config_path()})')
@click.option('--force', is_flag=True, help='Overwrite an existing file')
def init_config(path, force):
    """Write the default configuration to a JSON file."""
    path = path or str(get_config_path())
    if os.path.exists(path) and not force:
        click.secho(f"Config already exists: {path} (use --force to overwrite)", fg='yellow')
        raise click.Abort()

    save_config(AppConfig.default(), path)
    click.secho(f"Wrote default configuration to {path}", fg='green')


if __name__ == '__main__':
    cli()
