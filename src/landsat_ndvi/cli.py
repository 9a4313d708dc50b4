"""Command-line entry point: per-year composite and two-period NDVI exports."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple

from shapely.geometry.base import BaseGeometry

from .aoi import export_region, parse_aoi
from .catalog import LayerCatalog, build_layer_set, layer_index
from .change import ndvi_difference
from .config import ComparisonConfig, CompositeConfig, ConfigurationError, ExportConfig
from .config.cli import (
    add_comparison_args,
    add_composite_args,
    build_comparison_config,
    build_composite_config,
)
from .errors import DimensionMismatch
from .export import Georeference, clip_and_fill, write_tile
from .scenes import collect_scenes, load_series
from .tiles import RasterTile

LOGGER = logging.getLogger(__name__)


def _resolve_georeference(
    georeference: Georeference,
    tile: RasterTile,
    export: ExportConfig,
) -> Georeference:
    """Fill in CRS and geotransform when the scenes carry none."""
    crs = georeference.crs or export.crs
    transform = georeference.transform
    if transform.is_identity:
        LOGGER.warning(
            "Scenes carry no geotransform; assuming %g-unit pixels from origin (0, %g)",
            export.resolution,
            tile.height * export.resolution,
        )
        return Georeference.from_origin(0.0, tile.height * export.resolution, export.resolution, crs)
    return Georeference(crs=crs, transform=transform)


def _aoi_geometries(
    aoi: Optional[str],
    crs: Optional[str],
) -> Tuple[Optional[BaseGeometry], Optional[BaseGeometry]]:
    if not aoi:
        return None, None
    boundary = parse_aoi(aoi, crs=crs)
    return boundary, export_region(boundary)


def _export(
    tile: RasterTile,
    path: Path,
    aoi: Optional[str],
    georeference: Georeference,
    export: ExportConfig,
) -> Path:
    boundary, region = _aoi_geometries(aoi, georeference.crs)
    filled = clip_and_fill(
        tile,
        boundary,
        region,
        no_data_value=export.no_data,
        transform=georeference.transform,
    )
    return write_tile(
        filled,
        path,
        fmt=export.format,
        georeference=georeference,
        no_data_value=export.no_data,
    )


def run_composite(config: CompositeConfig) -> Path:
    """Build the year's layers and export the configured one."""
    scenes = collect_scenes([config.scenes_dir])
    series, georeference = load_series(scenes, config.year, config.cloud_cover_threshold)

    catalog = LayerCatalog(
        mask_dilation=config.mask_dilation,
        min_clear_obs=config.min_clear_obs,
        parallel=config.parallel,
    )
    catalog.build(config.year, config.cloud_mask_enabled, series)
    layer = catalog.select(layer_index(config.layer))
    LOGGER.info("Exporting %s", catalog.label)

    georeference = _resolve_georeference(georeference, layer.tile, config.export)
    destination = config.output_dir / f"{config.layer}_{config.year}.tif"
    return _export(layer.tile, destination, config.aoi, georeference, config.export)


def run_comparison(config: ComparisonConfig) -> Path:
    """Export the NDVI change between the first and last year."""
    scenes = collect_scenes([config.scenes_dir])
    composites = []
    georeferences = []
    for year, cloud_cover in (
        (config.first_year, config.first_cloud_cover),
        (config.last_year, config.last_cloud_cover),
    ):
        series, georeference = load_series(scenes, year, cloud_cover)
        georeferences.append(georeference)
        layer_set = build_layer_set(
            year,
            config.cloud_mask_enabled,
            series,
            mask_dilation=config.mask_dilation,
            min_clear_obs=config.min_clear_obs,
        )
        composites.append(layer_set.ndvi.tile)

    first, last = georeferences
    if first.transform != last.transform or first.crs != last.crs:
        raise DimensionMismatch(
            f"Scenes for {config.first_year} and {config.last_year} are on different grids: "
            f"{first.crs} {first.transform!r} vs {last.crs} {last.transform!r}"
        )

    change = ndvi_difference(*composites)
    georeference = _resolve_georeference(last, change, config.export)
    destination = config.output_dir / f"ndvi_change_{config.first_year}_{config.last_year}.tif"
    return _export(change, destination, config.aoi, georeference, config.export)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="landsat-ndvi",
        description="Landsat 7/8 median composites and NDVI exports from local scenes.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build one year's layers and export one of them.")
    add_composite_args(build)

    compare = subparsers.add_parser("compare", help="Export NDVI change between two years.")
    add_comparison_args(compare)
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Optional argument list. If None, uses sys.argv.
    """
    return build_parser().parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "build":
            output = run_composite(build_composite_config(args))
        else:
            output = run_comparison(build_comparison_config(args))
    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        logging.error("Export failed: %s", e)
        return 1
    except Exception as e:
        logging.exception("Unexpected error during export: %s", e)
        return 1

    LOGGER.info("Export written -> %s", output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
