"""Persisted JSON configuration for the CLI and batch runner."""

import json
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Tuple, Union

from .detector import DetectionConfig
from .cropper import CropConfig
from . import defaults


CONFIG_DIR_NAME = 'image-analyzer'
CONFIG_FILE_NAME = 'config.json'


class ConfigError(ValueError):
    """Configuration file is unreadable, malformed or out of range."""


@dataclass
class AnalyzerSettings:
    """Input/output settings for the image analyzer."""
    default_quality: int = defaults.JPEG_QUALITY
    supported_formats: Tuple[str, ...] = defaults.SUPPORTED_FORMATS
    min_image_size: int = defaults.MIN_IMAGE_SIZE


@dataclass
class OutputSettings:
    """Naming and placement of generated files."""
    default_format: str = defaults.OUTPUT_FORMAT
    output_dir: str = defaults.OUTPUT_DIR
    prefix: str = defaults.OUTPUT_PREFIX
    suffix: str = defaults.OUTPUT_SUFFIX


@dataclass
class AppConfig:
    """Complete application configuration."""
    analyzer: AnalyzerSettings = field(default_factory=AnalyzerSettings)
    vision: DetectionConfig = field(default_factory=DetectionConfig)
    cropper: CropConfig = field(default_factory=CropConfig)
    output: OutputSettings = field(default_factory=OutputSettings)

    @classmethod
    def default(cls) -> 'AppConfig':
        return cls()

    def to_dict(self) -> dict:
        data = asdict(self)
        data['analyzer']['supported_formats'] = list(self.analyzer.supported_formats)
        return data

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ConfigError: First invalid setting found
        """
        if not 1 <= self.analyzer.default_quality <= 100:
            raise ConfigError("analyzer.default_quality must be between 1 and 100")

        if self.analyzer.min_image_size < 1:
            raise ConfigError("analyzer.min_image_size must be positive")

        if not self.analyzer.supported_formats:
            raise ConfigError("analyzer.supported_formats cannot be empty")

        if not 0 <= self.vision.edge_threshold <= 1:
            raise ConfigError("vision.edge_threshold must be between 0 and 1")

        if not 0 <= self.vision.min_subject_ratio <= 1:
            raise ConfigError("vision.min_subject_ratio must be between 0 and 1")

        if not 0 <= self.cropper.quality_threshold <= 1:
            raise ConfigError("cropper.quality_threshold must be between 0 and 1")


def _coerce(value, default, name: str):
    """Check a JSON value against the type of the field's default."""
    # bool is an int subclass; JSON true/false never stand in for numbers
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
    elif isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif isinstance(default, str):
        if isinstance(value, str):
            return value
    elif isinstance(default, tuple):
        if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            return tuple(value)
        raise ConfigError(f"'{name}' must be a list of strings")

    raise ConfigError(f"'{name}' must be of type {type(default).__name__}, got {value!r}")


def _build_section(cls, data: dict, section: str):
    """Build a settings dataclass from a JSON object, ignoring unknown keys."""
    if not isinstance(data, dict):
        raise ConfigError(f"'{section}' must be a JSON object")
    default = cls()
    values = {}
    for f in fields(cls):
        if f.name in data:
            values[f.name] = _coerce(data[f.name], getattr(default, f.name), f"{section}.{f.name}")
    return cls(**values)


def config_from_dict(data: dict) -> AppConfig:
    """Build an AppConfig; missing sections and keys keep their defaults."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a JSON object")

    return AppConfig(
        analyzer=_build_section(AnalyzerSettings, data.get('analyzer', {}), 'analyzer'),
        vision=_build_section(DetectionConfig, data.get('vision', {}), 'vision'),
        cropper=_build_section(CropConfig, data.get('cropper', {}), 'cropper'),
        output=_build_section(OutputSettings, data.get('output', {}), 'output'),
    )


def load_config(path: Union[str, Path]) -> AppConfig:
    """
    Load configuration from a JSON file.

    Raises:
        ConfigError: File cannot be read or parsed
    """
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Failed to parse config file: {e}") from e

    return config_from_dict(data)


def save_config(config: AppConfig, path: Union[str, Path]) -> None:
    """Write configuration as indented JSON, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)


def get_config_path() -> Path:
    """Default configuration file location (~/.config/image-analyzer/config.json)."""
    try:
        home = Path.home()
    except RuntimeError:
        return Path('.') / CONFIG_FILE_NAME
    return home / '.config' / CONFIG_DIR_NAME / CONFIG_FILE_NAME
