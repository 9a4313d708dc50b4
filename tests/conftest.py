"""Shared test fixtures for landsat_ndvi tests."""

from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

import numpy as np
import pytest
import rasterio
from affine import Affine
from rasterio.crs import CRS

from landsat_ndvi.sensors import (
    CLOUD_BIT,
    LANDSAT_7,
    LANDSAT_8,
    REFLECTANCE_BANDS,
    REFLECTANCE_MULTIPLIER,
    REFLECTANCE_OFFSET,
)
from landsat_ndvi.tiles import RasterTile, TimeSeries

# Clear-sky QA_PIXEL value (bit 6 "clear" set, no disqualifying bits)
QA_CLEAR = 1 << 6
QA_CLOUD = (1 << CLOUD_BIT) | (1 << 1)

SCENE_TRANSFORM = Affine(30.0, 0.0, 1570000.0, 0.0, -30.0, 5180000.0)
SCENE_CRS = "EPSG:2193"


def to_dn(reflectance) -> np.ndarray:
    """Invert the Collection 2 scaling so tests can reason in reflectance."""
    return (np.asarray(reflectance, dtype=np.float64) - REFLECTANCE_OFFSET) / REFLECTANCE_MULTIPLIER


def reflectance_tile(
    values: Dict[str, float],
    shape=(4, 4),
    qa: Optional[np.ndarray] = None,
    acquired: Optional[datetime] = None,
) -> RasterTile:
    """Tile with uniform DN bands for the given reflectances plus QA_PIXEL.

    Bands not listed default to reflectance 0.05.
    """
    bands = {}
    for name in REFLECTANCE_BANDS:
        bands[name] = np.full(shape, to_dn(values.get(name, 0.05)))
    bands["QA_PIXEL"] = qa if qa is not None else np.full(shape, QA_CLEAR)
    return RasterTile(bands=bands, acquired=acquired)


def write_scene(
    path: Path,
    bands: Dict[str, np.ndarray],
    acquired: Optional[str] = None,
    cloud_cover: Optional[float] = None,
    transform: Affine = SCENE_TRANSFORM,
    crs: Optional[str] = SCENE_CRS,
    nodata: Optional[float] = None,
) -> Path:
    """Write a Landsat-style scene GeoTIFF with band descriptions and tags."""
    names = list(bands)
    data = np.stack([np.asarray(bands[name]) for name in names]).astype(np.uint16)
    profile = {
        "driver": "GTiff",
        "dtype": "uint16",
        "width": data.shape[2],
        "height": data.shape[1],
        "count": len(names),
        "crs": CRS.from_string(crs) if crs else None,
        "transform": transform,
        "nodata": nodata,
    }
    with rasterio.open(path, "w", **profile) as dst:
        dst.write(data)
        for idx, name in enumerate(names, start=1):
            dst.set_band_description(idx, name)
        tags = {}
        if acquired is not None:
            tags["ACQUIRED"] = acquired
        if cloud_cover is not None:
            tags["CLOUD_COVER"] = str(cloud_cover)
        if tags:
            dst.update_tags(**tags)
    return path


def _scene_bands(red: float, nir: float, shape, qa: Optional[np.ndarray] = None, layout=LANDSAT_8):
    bands = {name: np.full(shape, to_dn(0.05)) for name in REFLECTANCE_BANDS}
    bands[layout.red] = np.full(shape, to_dn(red))
    bands[layout.nir] = np.full(shape, to_dn(nir))
    bands["QA_PIXEL"] = qa if qa is not None else np.full(shape, QA_CLEAR)
    return bands


@pytest.fixture
def single_band_series() -> TimeSeries:
    """Three 2x2 single-band tiles; pixel (0, 0) is [0.1, 0.3, 0.2]."""
    values = [0.1, 0.3, 0.2]
    tiles = [
        RasterTile(
            bands={"B": np.array([[value, value + 1.0], [value + 2.0, value + 3.0]])},
            acquired=datetime(2020, month, 1),
        )
        for month, value in enumerate(values, start=1)
    ]
    return TimeSeries.from_tiles(tiles, sensor=LANDSAT_8, year=2020)


@pytest.fixture
def landsat8_series() -> TimeSeries:
    """Three cloud-free Landsat 8 tiles for 2020 with increasing vegetation."""
    tiles = [
        reflectance_tile(
            {"SR_B4": 0.1, "SR_B5": nir, "SR_B3": 0.08, "SR_B2": 0.06},
            acquired=datetime(2020, month, 15),
        )
        for month, nir in ((1, 0.3), (6, 0.5), (11, 0.4))
    ]
    return TimeSeries.from_tiles(tiles, sensor=LANDSAT_8, year=2020)


@pytest.fixture
def landsat7_series() -> TimeSeries:
    """Two cloud-free Landsat 7 tiles for 2010."""
    tiles = [
        reflectance_tile(
            {"SR_B3": 0.1, "SR_B4": nir, "SR_B2": 0.07, "SR_B1": 0.05},
            acquired=datetime(2010, month, 15),
        )
        for month, nir in ((3, 0.3), (9, 0.5))
    ]
    return TimeSeries.from_tiles(tiles, sensor=LANDSAT_7, year=2010)


@pytest.fixture
def scenes_dir(tmp_path: Path) -> Path:
    """Directory of 8x8 Landsat scenes for 2010 and 2020.

    2020: three Landsat 8 scenes (NIR 0.3/0.5/0.4, RED 0.1) plus one scene at
    80% cloud cover. The June scene has a cloudy top-left 2x2 block.
    2010: two Landsat 7 scenes (NIR 0.2/0.4, RED 0.1).
    """
    directory = tmp_path / "scenes"
    directory.mkdir()
    shape = (8, 8)

    cloudy_qa = np.full(shape, QA_CLEAR)
    cloudy_qa[:2, :2] = QA_CLOUD

    write_scene(directory / "LC08_20200115.tif", _scene_bands(0.1, 0.3, shape),
                acquired="2020-01-15", cloud_cover=5.0)
    write_scene(directory / "LC08_20200615.tif", _scene_bands(0.1, 0.5, shape, qa=cloudy_qa),
                acquired="2020-06-15", cloud_cover=12.0)
    write_scene(directory / "LC08_20201115.tif", _scene_bands(0.1, 0.4, shape),
                acquired="2020-11-15", cloud_cover=8.0)
    write_scene(directory / "LC08_20200801.tif", _scene_bands(0.1, 0.9, shape),
                acquired="2020-08-01", cloud_cover=80.0)

    write_scene(directory / "LE07_20100301.tif", _scene_bands(0.1, 0.2, shape, layout=LANDSAT_7),
                acquired="2010-03-01", cloud_cover=3.0)
    write_scene(directory / "LE07_20100901.tif", _scene_bands(0.1, 0.4, shape, layout=LANDSAT_7),
                acquired="2010-09-01", cloud_cover=10.0)
    return directory


@pytest.fixture
def make_tile():
    """Factory for uniform reflectance tiles (see ``reflectance_tile``)."""
    return reflectance_tile


@pytest.fixture
def scene_writer():
    """Factory writing Landsat-style scene GeoTIFFs (see ``write_scene``)."""
    return write_scene
