"""CLI argument parsing and configuration building for landsat_ndvi."""

import argparse
import os
from pathlib import Path
from typing import Optional

from ..catalog import LAYER_KEYS
from .models import (
    DEFAULT_CLOUD_COVER,
    DEFAULT_FORMAT,
    DEFAULT_LAYER,
    DEFAULT_MASK_DILATION,
    DEFAULT_MIN_CLEAR_OBS,
    DEFAULT_YEAR,
    ComparisonConfig,
    CompositeConfig,
    ExportConfig,
)
from .yaml_loader import ConfigurationError, load_comparison_config, load_composite_config


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value).expanduser().resolve() if value else None


def _add_shared_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML configuration file. CLI arguments override YAML values.",
    )
    parser.add_argument(
        "--scenes-dir",
        default=os.getenv("LANDSAT_SCENES_DIR"),
        help="Directory of Landsat scene GeoTIFFs (SR_B1..SR_B7 + QA_PIXEL).",
    )
    parser.add_argument(
        "--output-dir",
        default=os.getenv("LANDSAT_OUTPUT_DIR"),
        help="Directory for exported rasters.",
    )
    parser.add_argument(
        "--cloud-mask",
        dest="cloud_mask",
        action="store_true",
        default=None,
        help="Mask cloud, cloud shadow and snow (and cirrus on Landsat 8) pixels.",
    )
    parser.add_argument(
        "--mask-dilation",
        type=int,
        default=None,
        help=f"Number of pixels to dilate the cloud mask (default: {DEFAULT_MASK_DILATION}).",
    )
    parser.add_argument(
        "--min-clear-obs",
        type=int,
        default=None,
        help=f"Minimum clear observations per composite pixel (default: {DEFAULT_MIN_CLEAR_OBS}).",
    )
    parser.add_argument(
        "--aoi",
        default=os.getenv("LANDSAT_AOI"),
        help="AOI used to clip the export (GeoPackage, Shapefile, GeoJSON, WKT, or bbox).",
    )
    parser.add_argument("--no-data", type=float, default=None, help="No-data sentinel (default: -9999).")
    parser.add_argument("--crs", default=None, help="Fallback CRS when scenes carry none (default: EPSG:2193).")
    parser.add_argument(
        "--resolution",
        type=float,
        default=None,
        help="Fallback ground sample distance when scenes carry no geotransform (default: 30).",
    )
    parser.add_argument(
        "--format",
        dest="output_format",
        default=None,
        help=f"Output raster format (default: {DEFAULT_FORMAT}).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )


def add_composite_args(parser: argparse.ArgumentParser) -> None:
    """Add single-year composite arguments to an ArgumentParser."""
    _add_shared_args(parser)
    parser.add_argument(
        "--year",
        type=int,
        default=None,
        help=f"Acquisition year, 2000-2024 (default: {DEFAULT_YEAR}). Before 2014 uses Landsat 7.",
    )
    parser.add_argument(
        "--cloud-cover",
        type=float,
        default=None,
        help=f"Skip scenes with cloud cover at or above this percentage (default: {DEFAULT_CLOUD_COVER:g}).",
    )
    parser.add_argument(
        "--layer",
        choices=list(LAYER_KEYS),
        default=None,
        help=f"Layer to export (default: {DEFAULT_LAYER}).",
    )
    parser.add_argument(
        "--parallel",
        action="store_true",
        default=None,
        help="Composite bands concurrently with dask's threaded scheduler.",
    )


def add_comparison_args(parser: argparse.ArgumentParser) -> None:
    """Add two-period comparison arguments to an ArgumentParser."""
    _add_shared_args(parser)
    parser.add_argument("--first-year", type=int, default=None, help="Earlier year to compare.")
    parser.add_argument("--last-year", type=int, default=None, help="Later year to compare.")
    parser.add_argument(
        "--first-cloud-cover",
        type=float,
        default=None,
        help="Cloud cover threshold for the first year's scenes.",
    )
    parser.add_argument(
        "--last-cloud-cover",
        type=float,
        default=None,
        help="Cloud cover threshold for the last year's scenes.",
    )


def _apply_export_overrides(export: ExportConfig, args: argparse.Namespace) -> None:
    if args.no_data is not None:
        export.no_data = args.no_data
    if args.crs is not None:
        export.crs = args.crs
    if args.resolution is not None:
        export.resolution = args.resolution
    if args.output_format is not None:
        export.format = args.output_format


def _load_base(loader, args: argparse.Namespace):
    try:
        return loader(args.config, validate=False)
    except (ConfigurationError, FileNotFoundError) as e:
        raise ValueError(f"Failed to load config from {args.config}: {e}")


def build_composite_config(args: argparse.Namespace) -> CompositeConfig:
    """Build a CompositeConfig from parsed CLI arguments and optional YAML config."""
    if args.config is not None:
        config = _load_base(load_composite_config, args)
        if args.scenes_dir:
            config.scenes_dir = _optional_path(args.scenes_dir)
        if args.output_dir:
            config.output_dir = _optional_path(args.output_dir)
    else:
        if not args.scenes_dir or not args.output_dir:
            raise ValueError("Provide --scenes-dir and --output-dir (or --config).")
        config = CompositeConfig(
            scenes_dir=_optional_path(args.scenes_dir),
            output_dir=_optional_path(args.output_dir),
        )

    if args.year is not None:
        config.year = args.year
    if args.cloud_mask is not None:
        config.cloud_mask_enabled = args.cloud_mask
    if args.cloud_cover is not None:
        config.cloud_cover_threshold = args.cloud_cover
    if args.mask_dilation is not None:
        config.mask_dilation = args.mask_dilation
    if args.min_clear_obs is not None:
        config.min_clear_obs = args.min_clear_obs
    if args.layer is not None:
        config.layer = args.layer
    if args.aoi:
        config.aoi = args.aoi
    if args.parallel is not None:
        config.parallel = args.parallel
    _apply_export_overrides(config.export, args)

    config.validate()
    return config


def build_comparison_config(args: argparse.Namespace) -> ComparisonConfig:
    """Build a ComparisonConfig from parsed CLI arguments and optional YAML config."""
    if args.config is not None:
        config = _load_base(load_comparison_config, args)
        if args.scenes_dir:
            config.scenes_dir = _optional_path(args.scenes_dir)
        if args.output_dir:
            config.output_dir = _optional_path(args.output_dir)
        if args.first_year is not None:
            config.first_year = args.first_year
        if args.last_year is not None:
            config.last_year = args.last_year
    else:
        if not args.scenes_dir or not args.output_dir:
            raise ValueError("Provide --scenes-dir and --output-dir (or --config).")
        if args.first_year is None or args.last_year is None:
            raise ValueError("Provide --first-year and --last-year (or --config).")
        config = ComparisonConfig(
            scenes_dir=_optional_path(args.scenes_dir),
            output_dir=_optional_path(args.output_dir),
            first_year=args.first_year,
            last_year=args.last_year,
        )

    if args.first_cloud_cover is not None:
        config.first_cloud_cover = args.first_cloud_cover
    if args.last_cloud_cover is not None:
        config.last_cloud_cover = args.last_cloud_cover
    if args.cloud_mask is not None:
        config.cloud_mask_enabled = args.cloud_mask
    if args.mask_dilation is not None:
        config.mask_dilation = args.mask_dilation
    if args.min_clear_obs is not None:
        config.min_clear_obs = args.min_clear_obs
    if args.aoi:
        config.aoi = args.aoi
    _apply_export_overrides(config.export, args)

    config.validate()
    return config


__all__ = [
    "add_composite_args",
    "add_comparison_args",
    "build_composite_config",
    "build_comparison_config",
]
