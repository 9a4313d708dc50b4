"""YAML configuration file loading for landsat_ndvi.

This module provides functions to load CompositeConfig and ComparisonConfig
from YAML files, with validation and sensible error messages.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .models import ComparisonConfig, CompositeConfig, ExportConfig


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


def _resolve_path(base_dir: Path, path_str: Optional[str]) -> Optional[Path]:
    """Resolve a path string relative to the config file's directory.

    If the path is absolute, it's returned as-is.
    If the path is relative, it's resolved relative to base_dir.
    """
    if path_str is None:
        return None
    path = Path(path_str)
    if path.is_absolute():
        return path
    return base_dir / path


def _resolve_aoi(base_dir: Path, aoi: Optional[str]) -> Optional[str]:
    """Resolve an AOI value that names a file next to the config."""
    if aoi is None:
        return None
    candidate = base_dir / str(aoi).strip()
    if not Path(str(aoi).strip()).is_absolute() and candidate.exists():
        return str(candidate)
    return str(aoi)


def _parse_export_config(data: Dict[str, Any]) -> ExportConfig:
    """Parse export configuration from a dict."""
    export_data = data.get("export", {}) or {}
    return ExportConfig(
        no_data=float(export_data.get("no_data", ExportConfig.no_data)),
        resolution=float(export_data.get("resolution", ExportConfig.resolution)),
        crs=export_data.get("crs", ExportConfig.crs),
        format=export_data.get("format", ExportConfig.format),
    )


def _read_mapping(config_path: Union[str, Path]) -> Dict[str, Any]:
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML: {e}")

    if data is None:
        raise ConfigurationError("Configuration file is empty")

    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a YAML mapping (dict)")

    return data


def _require(data: Dict[str, Any], *names: str) -> None:
    for name in names:
        if name not in data:
            raise ConfigurationError(f"Missing required field: {name}")


def load_composite_config(
    config_path: Union[str, Path],
    validate: bool = True,
) -> CompositeConfig:
    """Load a CompositeConfig from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.
        validate: Whether to validate the configuration (default: True).

    Returns:
        A CompositeConfig instance.

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
        FileNotFoundError: If config_path doesn't exist.
        ValueError: If validate=True and the configuration is invalid.

    Example YAML structure:
        ```yaml
        scenes_dir: ./scenes
        output_dir: ./exports
        year: 2024
        cloud_mask_enabled: true
        cloud_cover_threshold: 20
        layer: ndvi
        aoi: ./aoi.gpkg

        export:
          no_data: -9999
          resolution: 30
          crs: EPSG:2193
        ```
    """
    data = _read_mapping(config_path)
    base_dir = Path(config_path).parent
    _require(data, "scenes_dir", "output_dir")

    config = CompositeConfig(
        scenes_dir=_resolve_path(base_dir, data["scenes_dir"]),
        output_dir=_resolve_path(base_dir, data["output_dir"]),
        year=int(data.get("year", CompositeConfig.year)),
        cloud_mask_enabled=bool(data.get("cloud_mask_enabled", False)),
        cloud_cover_threshold=float(
            data.get("cloud_cover_threshold", CompositeConfig.cloud_cover_threshold)
        ),
        mask_dilation=int(data.get("mask_dilation", CompositeConfig.mask_dilation)),
        min_clear_obs=int(data.get("min_clear_obs", CompositeConfig.min_clear_obs)),
        layer=data.get("layer", CompositeConfig.layer),
        aoi=_resolve_aoi(base_dir, data.get("aoi")),
        parallel=bool(data.get("parallel", False)),
        export=_parse_export_config(data),
    )

    if validate:
        config.validate()

    return config


def load_comparison_config(
    config_path: Union[str, Path],
    validate: bool = True,
) -> ComparisonConfig:
    """Load a ComparisonConfig from a YAML file.

    Example YAML structure:
        ```yaml
        scenes_dir: ./scenes
        output_dir: ./exports
        first_year: 2005
        last_year: 2024
        first_cloud_cover: 30
        last_cloud_cover: 20
        ```
    """
    data = _read_mapping(config_path)
    base_dir = Path(config_path).parent
    _require(data, "scenes_dir", "output_dir", "first_year", "last_year")

    config = ComparisonConfig(
        scenes_dir=_resolve_path(base_dir, data["scenes_dir"]),
        output_dir=_resolve_path(base_dir, data["output_dir"]),
        first_year=int(data["first_year"]),
        last_year=int(data["last_year"]),
        first_cloud_cover=float(
            data.get("first_cloud_cover", ComparisonConfig.first_cloud_cover)
        ),
        last_cloud_cover=float(
            data.get("last_cloud_cover", ComparisonConfig.last_cloud_cover)
        ),
        cloud_mask_enabled=bool(data.get("cloud_mask_enabled", False)),
        mask_dilation=int(data.get("mask_dilation", ComparisonConfig.mask_dilation)),
        min_clear_obs=int(data.get("min_clear_obs", ComparisonConfig.min_clear_obs)),
        aoi=_resolve_aoi(base_dir, data.get("aoi")),
        export=_parse_export_config(data),
    )

    if validate:
        config.validate()

    return config


__all__ = [
    "ConfigurationError",
    "load_composite_config",
    "load_comparison_config",
]
