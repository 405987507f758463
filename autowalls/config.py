"""
Configuration Module

Per-stage settings for the wall detection pipeline and the YAML loader
that fills them from config/settings.yaml.
"""

import logging
from dataclasses import Field, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union, get_args

import yaml

from .constants import (
    PIPELINE_KMEANS_K,
    DEFAULT_KMEANS_MAX_ITERATIONS,
    DEFAULT_KMEANS_CONVERGENCE,
    DEFAULT_OUTSIDE_FRACTION,
    DEFAULT_MAX_REGION_SIZE,
    DEFAULT_MAX_HOLE_SIZE,
    DEFAULT_HOLE_THRESHOLD,
    DEFAULT_CANNY_LOW,
    DEFAULT_CANNY_HIGH,
    DEFAULT_CANNY_SIGMA,
    DEFAULT_KOVALEVSKY_THRESHOLD,
    PIPELINE_WALL_THRESHOLD,
    SEGMENTATION_MEDIAN_KERNEL,
    EDGE_MEDIAN_KERNEL,
    BRIGHTEN_KERNEL,
    EdgeMethod,
)
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path(__file__).parent.parent / "config" / "settings.yaml"


@dataclass
class KMeansConfig:
    """Colour clustering settings."""
    k: int = PIPELINE_KMEANS_K
    max_iterations: int = DEFAULT_KMEANS_MAX_ITERATIONS
    convergence_threshold: float = DEFAULT_KMEANS_CONVERGENCE
    seed: Optional[int] = None


@dataclass
class RegionConfig:
    """Small same-colour region cleanup after segmentation (off by default)."""
    enabled: bool = False
    max_region_size: int = DEFAULT_MAX_REGION_SIZE
    include_alpha: bool = False


@dataclass
class HoleConfig:
    """Small dark hole cleanup after segmentation (off by default)."""
    enabled: bool = False
    max_hole_size: int = DEFAULT_MAX_HOLE_SIZE
    threshold: float = DEFAULT_HOLE_THRESHOLD


@dataclass
class CannyConfig:
    low_threshold: float = DEFAULT_CANNY_LOW
    high_threshold: float = DEFAULT_CANNY_HIGH
    sigma: float = DEFAULT_CANNY_SIGMA


@dataclass
class KovalevskyConfig:
    threshold: float = DEFAULT_KOVALEVSKY_THRESHOLD


@dataclass
class PipelineConfig:
    """
    Settings for one wall detection run.

    pixelize: split inside/outside, denoise and snap colours to the grid
    edge_detection: run the edge detector on the segmented image
    internal_walls: add a thinned edge pass over the unsegmented image
    edge_method: "kovalevsky" or "canny"
    sub_cell_scale: wall cells per scene grid cell
    resolution_scale: scene pixels per image pixel (None = derived from grid)
    """
    pixelize: bool = True
    edge_detection: bool = True
    internal_walls: bool = False
    edge_method: str = EdgeMethod.KOVALEVSKY
    outside_fraction: float = DEFAULT_OUTSIDE_FRACTION
    segmentation_median_kernel: int = SEGMENTATION_MEDIAN_KERNEL
    edge_median_kernel: int = EDGE_MEDIAN_KERNEL
    brighten_kernel: int = BRIGHTEN_KERNEL
    wall_threshold: float = PIPELINE_WALL_THRESHOLD
    sub_cell_scale: int = 1
    resolution_scale: Optional[float] = None
    kmeans: KMeansConfig = field(default_factory=KMeansConfig)
    regions: RegionConfig = field(default_factory=RegionConfig)
    holes: HoleConfig = field(default_factory=HoleConfig)
    canny: CannyConfig = field(default_factory=CannyConfig)
    kovalevsky: KovalevskyConfig = field(default_factory=KovalevskyConfig)

    def validate(self) -> None:
        """Raise ConfigurationError on values no stage can run with."""
        if self.edge_method not in (EdgeMethod.KOVALEVSKY, EdgeMethod.CANNY):
            raise ConfigurationError(f"Unknown edge method: {self.edge_method}", "edge_method")
        if self.kmeans.k < 1:
            raise ConfigurationError(f"k must be at least 1, got {self.kmeans.k}", "kmeans.k")
        if not 0 <= self.outside_fraction <= 1:
            raise ConfigurationError(
                f"outside_fraction must be within [0, 1], got {self.outside_fraction}", "outside_fraction"
            )
        if self.canny.low_threshold > self.canny.high_threshold:
            raise ConfigurationError("canny.low_threshold exceeds canny.high_threshold", "canny")
        if self.sub_cell_scale < 1:
            raise ConfigurationError(
                f"sub_cell_scale must be at least 1, got {self.sub_cell_scale}", "sub_cell_scale"
            )
        if self.resolution_scale is not None and self.resolution_scale <= 0:
            raise ConfigurationError(
                f"resolution_scale must be positive, got {self.resolution_scale}", "resolution_scale"
            )


def _check_type(setting: Field, value: Any, key: str) -> None:
    """Reject values whose type does not match the setting's declared type."""
    if value is None:
        if setting.default is None:
            return
        raise ConfigurationError(f"Setting '{key}' may not be empty", key)

    declared = [t for t in get_args(setting.type) if t is not type(None)] or [setting.type]
    expected = declared[0]
    if expected is float:
        valid = isinstance(value, (int, float)) and not isinstance(value, bool)
    elif expected is int:
        valid = isinstance(value, int) and not isinstance(value, bool)
    else:
        valid = isinstance(value, expected)

    if not valid:
        raise ConfigurationError(
            f"Setting '{key}' must be {expected.__name__}, got {type(value).__name__} {value!r}", key
        )


def _build(cls, values: Dict[str, Any], prefix: str = ""):
    """Instantiate a config dataclass from a mapping, recursing into nested sections."""
    if not isinstance(values, dict):
        raise ConfigurationError(f"Section must be a mapping, got {type(values).__name__}", prefix or "root")

    known = {f.name: f for f in fields(cls)}
    kwargs = {}
    for key, value in values.items():
        if key not in known:
            raise ConfigurationError(f"Unknown setting '{prefix}{key}'", f"{prefix}{key}")

        default = known[key].default_factory() if callable(known[key].default_factory) else None
        if is_dataclass(default):
            kwargs[key] = _build(type(default), value or {}, f"{prefix}{key}.")
        else:
            _check_type(known[key], value, f"{prefix}{key}")
            kwargs[key] = value

    return cls(**kwargs)


def config_from_dict(values: Optional[Dict[str, Any]]) -> PipelineConfig:
    """Build and validate a PipelineConfig from parsed settings."""
    config = _build(PipelineConfig, values or {})
    config.validate()
    return config


def load_config(path: Optional[Union[str, Path]] = None) -> PipelineConfig:
    """
    Load pipeline settings from a YAML file.

    Args:
        path: Settings file; defaults to config/settings.yaml

    Returns:
        Validated PipelineConfig

    Raises:
        ConfigurationError: If the file is missing, malformed or has unknown keys
    """
    settings_path = Path(path) if path else DEFAULT_SETTINGS_PATH
    if not settings_path.exists():
        raise ConfigurationError(f"Settings file not found: {settings_path}")

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            values = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {settings_path}: {e}") from e

    logger.debug(f"Loaded settings from {settings_path}")
    return config_from_dict(values)
