"""Configuration dataclasses for landsat_ndvi workflows.

These dataclasses provide validated configuration for the composite and
comparison exports. They can be instantiated from CLI arguments or YAML files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..catalog import LAYER_KEYS
from ..export import DEFAULT_CRS, DEFAULT_RESOLUTION, FLOAT_NODATA, RASTER_FORMATS


# =============================================================================
# Default Values (matching existing CLI defaults)
# =============================================================================

MIN_YEAR = 2000
MAX_YEAR = 2024
DEFAULT_YEAR = 2024

DEFAULT_CLOUD_COVER = 20.0
DEFAULT_MASK_DILATION = 0
DEFAULT_MIN_CLEAR_OBS = 1
DEFAULT_LAYER = "ndvi"
DEFAULT_FORMAT = "GTiff"


def _validate_year(name: str, year: int) -> None:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValueError(f"{name} must be in [{MIN_YEAR}, {MAX_YEAR}], got {year}")


def _validate_cloud_cover(name: str, value: float) -> None:
    if not 0 <= value <= 100:
        raise ValueError(f"{name} must be in [0, 100], got {value}")


# =============================================================================
# Component Configurations
# =============================================================================

@dataclass
class ExportConfig:
    """Output raster settings.

    Attributes:
        no_data: Sentinel written into pixels without a valid observation.
        resolution: Ground sample distance in CRS units, used when the
            scenes carry no geotransform.
        crs: CRS identifier used when the scenes carry none.
        format: Output raster format (GTiff).
    """
    no_data: float = FLOAT_NODATA
    resolution: float = DEFAULT_RESOLUTION
    crs: str = DEFAULT_CRS
    format: str = DEFAULT_FORMAT

    def validate(self) -> None:
        """Validate export configuration.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.resolution <= 0:
            raise ValueError(f"resolution must be positive, got {self.resolution}")
        if not self.crs:
            raise ValueError("crs must be specified")
        if self.format.lower() not in RASTER_FORMATS:
            raise ValueError(
                f"format must be one of {sorted(RASTER_FORMATS)}, got '{self.format}'"
            )


# =============================================================================
# Workflow Configurations
# =============================================================================

@dataclass
class CompositeConfig:
    """Complete configuration for a single-year composite export.

    Attributes:
        scenes_dir: Directory (or file) holding scene GeoTIFFs.
        output_dir: Directory for exported rasters.
        year: Acquisition year; selects Landsat 7 before 2014, Landsat 8 after.
        cloud_mask_enabled: Mask QA_PIXEL cloud/shadow/snow flags.
        cloud_cover_threshold: Scenes with cloud cover at or above this
            percentage are skipped.
        mask_dilation: Pixels to grow the cloud mask by.
        min_clear_obs: Minimum clear observations per composite pixel.
        layer: Layer to export ("true_colour", "false_colour" or "ndvi").
        aoi: Optional AOI specification used to clip the export.
        parallel: Composite bands concurrently.
        export: Output raster settings.
    """
    scenes_dir: Path
    output_dir: Path
    year: int = DEFAULT_YEAR
    cloud_mask_enabled: bool = False
    cloud_cover_threshold: float = DEFAULT_CLOUD_COVER
    mask_dilation: int = DEFAULT_MASK_DILATION
    min_clear_obs: int = DEFAULT_MIN_CLEAR_OBS
    layer: str = DEFAULT_LAYER
    aoi: Optional[str] = None
    parallel: bool = False
    export: ExportConfig = field(default_factory=ExportConfig)

    def validate(self) -> None:
        """Validate composite configuration.

        Raises:
            ValueError: If configuration is invalid.
            FileNotFoundError: If the scenes directory doesn't exist.
        """
        if not self.scenes_dir.exists():
            raise FileNotFoundError(f"Scenes directory not found: {self.scenes_dir}")
        _validate_year("year", self.year)
        _validate_cloud_cover("cloud_cover_threshold", self.cloud_cover_threshold)
        if self.mask_dilation < 0:
            raise ValueError(f"mask_dilation must be non-negative, got {self.mask_dilation}")
        if self.min_clear_obs < 1:
            raise ValueError(f"min_clear_obs must be at least 1, got {self.min_clear_obs}")
        if self.layer not in LAYER_KEYS:
            raise ValueError(f"layer must be one of {list(LAYER_KEYS)}, got '{self.layer}'")
        self.export.validate()


@dataclass
class ComparisonConfig:
    """Complete configuration for a two-period NDVI comparison export.

    Attributes:
        scenes_dir: Directory (or file) holding scene GeoTIFFs for both years.
        output_dir: Directory for exported rasters.
        first_year: Earlier year.
        last_year: Later year.
        first_cloud_cover: Cloud cover threshold for the first year's scenes.
        last_cloud_cover: Cloud cover threshold for the last year's scenes.
        cloud_mask_enabled: Mask QA_PIXEL cloud/shadow/snow flags.
        mask_dilation: Pixels to grow the cloud mask by.
        min_clear_obs: Minimum clear observations per composite pixel.
        aoi: Optional AOI specification used to clip the export.
        export: Output raster settings.
    """
    scenes_dir: Path
    output_dir: Path
    first_year: int
    last_year: int
    first_cloud_cover: float = DEFAULT_CLOUD_COVER
    last_cloud_cover: float = DEFAULT_CLOUD_COVER
    cloud_mask_enabled: bool = False
    mask_dilation: int = DEFAULT_MASK_DILATION
    min_clear_obs: int = DEFAULT_MIN_CLEAR_OBS
    aoi: Optional[str] = None
    export: ExportConfig = field(default_factory=ExportConfig)

    def validate(self) -> None:
        """Validate comparison configuration.

        Raises:
            ValueError: If configuration is invalid.
            FileNotFoundError: If the scenes directory doesn't exist.
        """
        if not self.scenes_dir.exists():
            raise FileNotFoundError(f"Scenes directory not found: {self.scenes_dir}")
        _validate_year("first_year", self.first_year)
        _validate_year("last_year", self.last_year)
        if self.first_year >= self.last_year:
            raise ValueError(
                f"first_year ({self.first_year}) must be before last_year ({self.last_year})"
            )
        _validate_cloud_cover("first_cloud_cover", self.first_cloud_cover)
        _validate_cloud_cover("last_cloud_cover", self.last_cloud_cover)
        if self.mask_dilation < 0:
            raise ValueError(f"mask_dilation must be non-negative, got {self.mask_dilation}")
        if self.min_clear_obs < 1:
            raise ValueError(f"min_clear_obs must be at least 1, got {self.min_clear_obs}")
        self.export.validate()


__all__ = [
    "ExportConfig",
    "CompositeConfig",
    "ComparisonConfig",
    # Default values for reference
    "MIN_YEAR",
    "MAX_YEAR",
    "DEFAULT_YEAR",
    "DEFAULT_CLOUD_COVER",
    "DEFAULT_MASK_DILATION",
    "DEFAULT_MIN_CLEAR_OBS",
    "DEFAULT_LAYER",
    "DEFAULT_FORMAT",
]
