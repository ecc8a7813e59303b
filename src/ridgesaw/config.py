"""
Configuration management for ridge-saw.

Loads YAML configuration with defaults for generation, detector and
tracing settings. Command-line options are applied on top by the CLI.
"""

import math
import os
import tempfile
from dataclasses import dataclass, field, fields, replace
from typing import Optional

import yaml

from ridgesaw.models import NoiseKind


DEFAULT_TILE_SIZE = 2048
DEFAULT_DETECTOR = "ridgetool"
DETECTOR_ENV_VAR = "RIDGETOOL"


@dataclass(frozen=True)
class GenerationConfig:
    """Resolved random generation and detection settings."""
    noise: NoiseKind = NoiseKind.SPECKLE
    size: int = DEFAULT_TILE_SIZE
    scale: float = 0.0
    target: Optional[int] = None  # None: generate exactly once
    seed: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.noise, NoiseKind):
            raise ValueError(f"Bad noise type '{self.noise}'")
        if not _is_int(self.size) or self.size < 1:
            raise ValueError(f"Bad tile size '{self.size}'")
        if not _is_real(self.scale) or not self.scale >= 0:
            raise ValueError(f"Bad detection scale '{self.scale}'")
        if self.target is not None and (not _is_int(self.target) or self.target < 1):
            raise ValueError(f"Bad target count '{self.target}'")
        if self.seed is not None and (not _is_int(self.seed) or self.seed < 1):
            raise ValueError(f"Bad random seed '{self.seed}'")


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _is_real(value):
    return _is_int(value) or (isinstance(value, float) and math.isfinite(value))


@dataclass
class DetectorConfig:
    """Configuration for the external ridge detector."""
    executable: str = DEFAULT_DETECTOR
    temp_dir: Optional[str] = None  # None: system temporary directory


@dataclass
class TracingConfig:
    """Configuration for runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: Optional[str] = None
    json_output: bool = False


@dataclass
class AppConfig:
    """Complete configuration."""
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)


def load_config(config_path=None):
    """
    Load configuration from a YAML file.

    Missing values keep their defaults and unknown keys are ignored.
    Raises FileNotFoundError if config_path is given but does not exist,
    and ValueError for values that fail validation.
    """
    config = AppConfig()

    if config_path:
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with open(config_path, "r", encoding="utf-8") as f:
            try:
                yaml_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid config file '{config_path}': {e}") from e
        if not isinstance(yaml_data, dict):
            raise ValueError(f"Config file '{config_path}' must contain a mapping")
        try:
            config = _merge_config(config, yaml_data)
        except TypeError as e:
            raise ValueError(f"Invalid config file '{config_path}': {e}") from e

    return config


def _known_keys(section_cls, values):
    if values is None:
        return {}
    if not isinstance(values, dict):
        raise ValueError(f"Config section for {section_cls.__name__} must be a mapping")
    names = {f.name for f in fields(section_cls)}
    return {k: v for k, v in values.items() if k in names}


def _merge_config(config, yaml_data):
    """Merge YAML data into the config dataclasses."""
    if "generation" in yaml_data:
        values = _known_keys(GenerationConfig, yaml_data["generation"])
        if "noise" in values:
            values["noise"] = parse_noise_kind(values["noise"])
        config.generation = replace(config.generation, **values)

    if "detector" in yaml_data:
        for key, value in _known_keys(DetectorConfig, yaml_data["detector"]).items():
            setattr(config.detector, key, value)

    if "tracing" in yaml_data:
        for key, value in _known_keys(TracingConfig, yaml_data["tracing"]).items():
            setattr(config.tracing, key, value)

    return config


def parse_noise_kind(value):
    """
    Map a noise type from a YAML configuration file to NoiseKind.

    Accepts the single-letter codes ('S', 'N') as well as the enum names
    ('speckle', 'norm'), case-insensitively. The command line only takes
    the exact codes.
    """
    text = str(value).strip().upper()
    for kind in NoiseKind:
        if text in (kind.value, kind.name):
            return kind
    raise ValueError(f"Bad noise type '{value}'")


def resolve_detector_executable(detector_config):
    """Detector path: RIDGETOOL environment variable, then config."""
    return os.environ.get(DETECTOR_ENV_VAR) or detector_config.executable or DEFAULT_DETECTOR


def resolve_temp_dir(detector_config):
    return detector_config.temp_dir or tempfile.gettempdir()


def save_default_config(path):
    """Write the default configuration to a YAML file for reference."""
    config = AppConfig()

    yaml_data = {
        "generation": {
            "noise": config.generation.noise.name.lower(),
            "size": config.generation.size,
            "scale": config.generation.scale,
            "target": config.generation.target,
            "seed": config.generation.seed,
        },
        "detector": {
            "executable": config.detector.executable,
            "temp_dir": config.detector.temp_dir,
        },
        "tracing": {
            "enabled": config.tracing.enabled,
            "level": config.tracing.level,
            "file_path": config.tracing.file_path,
            "json_output": config.tracing.json_output,
        },
    }

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)
