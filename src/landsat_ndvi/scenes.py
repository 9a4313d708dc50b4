"""Reading Landsat surface-reflectance scenes from local GeoTIFFs.

Each scene is one multi-band GeoTIFF whose band descriptions name the bands
(``SR_B1`` .. ``SR_B7``, ``QA_PIXEL``). Scene metadata is read from dataset
tags:

- ``ACQUIRED``: ISO-8601 acquisition date or datetime
- ``CLOUD_COVER``: scene cloud cover percentage

Pixels equal to the dataset nodata value are invalid in the returned tile.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np
import rasterio

from .errors import DimensionMismatch, EmptySeries
from .export import Georeference
from .sensors import profile_for_year
from .tiles import RasterTile, TimeSeries

LOGGER = logging.getLogger(__name__)

ACQUIRED_TAG = "ACQUIRED"
CLOUD_COVER_TAG = "CLOUD_COVER"
RASTER_SUFFIXES = {".tif", ".tiff"}


def _parse_acquired(value: Optional[str], path: Path) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        LOGGER.warning("Scene %s has unreadable %s tag '%s'", path.name, ACQUIRED_TAG, value)
        return None


def read_scene(path: Path) -> Tuple[RasterTile, Georeference]:
    """Read one scene GeoTIFF into a tile and its georeference.

    Raises:
        ValueError: If a band has no description to name it by.
    """
    path = Path(path)
    with rasterio.open(path) as src:
        names = list(src.descriptions)
        if not all(names):
            raise ValueError(f"Scene {path} has bands without descriptions: {names}")
        data = src.read().astype(np.float64)
        nodata = src.nodata
        tags = src.tags()
        georeference = Georeference(
            crs=src.crs.to_string() if src.crs else None,
            transform=src.transform,
        )

    if nodata is not None:
        valid = ~np.any(data == nodata, axis=0)
    else:
        valid = np.ones(data.shape[1:], dtype=bool)

    properties = {}
    if CLOUD_COVER_TAG in tags:
        properties[CLOUD_COVER_TAG] = float(tags[CLOUD_COVER_TAG])
    properties["source"] = str(path)

    tile = RasterTile(
        bands={name: data[index] for index, name in enumerate(names)},
        mask=valid,
        acquired=_parse_acquired(tags.get(ACQUIRED_TAG), path),
        properties=properties,
    )
    return tile, georeference


def collect_scenes(candidates: Sequence[Path]) -> List[Path]:
    """Discover scene GeoTIFFs from a mix of file and directory paths.

    Directories are searched (non-recursively) for .tif and .tiff files.
    Duplicates are removed based on resolved absolute paths.
    """
    paths: List[Path] = []
    seen: set = set()
    for candidate in candidates:
        path = Path(candidate)
        if path.is_dir():
            found = sorted(p for p in path.iterdir() if p.suffix.lower() in RASTER_SUFFIXES)
        elif path.is_file():
            found = [path]
        else:
            raise FileNotFoundError(f"Scene path not found: {path}")
        for item in found:
            resolved = item.resolve()
            if resolved not in seen:
                seen.add(resolved)
                paths.append(resolved)
    return paths


def load_series(
    paths: Sequence[Path],
    year: int,
    cloud_cover_threshold: Optional[float] = None,
) -> Tuple[TimeSeries, Georeference]:
    """Load the scenes of ``year`` into a time series.

    Scenes dated in another year, and scenes whose cloud cover is not below
    ``cloud_cover_threshold``, are skipped. Undated scenes are kept.

    Returns:
        Tuple of the time-ordered series and the georeference of its grid.

    Raises:
        EmptySeries: If no scene survives the filters.
        DimensionMismatch: If scenes are on different grids.
    """
    tiles: List[RasterTile] = []
    georeference: Optional[Georeference] = None
    for path in paths:
        tile, scene_georeference = read_scene(path)
        if tile.acquired is not None and tile.acquired.year != year:
            LOGGER.debug("Skipping %s: acquired %s", path.name, tile.acquired.date())
            continue
        cloud_cover = tile.properties.get(CLOUD_COVER_TAG)
        if cloud_cover_threshold is not None and cloud_cover is not None:
            if cloud_cover >= cloud_cover_threshold:
                LOGGER.info(
                    "Skipping %s: cloud cover %.1f%% >= %.1f%%",
                    path.name,
                    cloud_cover,
                    cloud_cover_threshold,
                )
                continue
        if georeference is None:
            georeference = scene_georeference
        elif scene_georeference.transform != georeference.transform:
            raise DimensionMismatch(f"Scene {path} is not on the grid of the first scene")
        tiles.append(tile)

    if not tiles:
        raise EmptySeries(f"No scenes for {year} among {len(paths)} candidate(s)")

    series = TimeSeries.from_tiles(tiles, sensor=profile_for_year(year), year=year)
    LOGGER.info("Loaded %d of %d scenes for %s", len(series), len(paths), year)
    return series, georeference


__all__ = [
    "ACQUIRED_TAG",
    "CLOUD_COVER_TAG",
    "read_scene",
    "collect_scenes",
    "load_series",
]
