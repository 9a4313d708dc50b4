"""Clipping, no-data filling and GeoTIFF serialization of composites."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import numpy as np
from affine import Affine
from rasterio import features
from rasterio.crs import CRS
from rasterio.io import MemoryFile
from rasterio.transform import from_origin
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

from .errors import UnsupportedFormat
from .tiles import RasterTile

LOGGER = logging.getLogger(__name__)

FLOAT_NODATA = -9999.0
DEFAULT_RESOLUTION = 30.0
DEFAULT_CRS = "EPSG:2193"

# Accepted format names (lower-case) -> GDAL driver
RASTER_FORMATS = {
    "gtiff": "GTiff",
    "geotiff": "GTiff",
    "tif": "GTiff",
    "tiff": "GTiff",
}


@dataclass(frozen=True)
class Georeference:
    """Coordinate reference metadata of a raster grid.

    Attributes:
        crs: CRS identifier understood by rasterio (e.g. "EPSG:2193").
        transform: Affine transform from pixel (col, row) to CRS coordinates.
    """

    crs: Optional[str] = DEFAULT_CRS
    transform: Affine = field(default_factory=Affine.identity)

    @classmethod
    def from_origin(
        cls,
        west: float,
        north: float,
        resolution: float = DEFAULT_RESOLUTION,
        crs: Optional[str] = DEFAULT_CRS,
    ) -> "Georeference":
        """North-up grid with square pixels anchored at the upper-left corner."""
        return cls(crs=crs, transform=from_origin(west, north, resolution, resolution))

    @property
    def resolution(self) -> float:
        return float((abs(self.transform.a) + abs(self.transform.e)) / 2)


def resolve_format(fmt: str) -> str:
    """Map a user-facing format name to a GDAL driver name."""
    driver = RASTER_FORMATS.get(str(fmt).strip().lower())
    if driver is None:
        raise UnsupportedFormat(
            f"Unsupported output format '{fmt}'. Expected one of: {', '.join(sorted(RASTER_FORMATS))}"
        )
    return driver


def _inside(geometry: BaseGeometry, shape, transform: Affine) -> np.ndarray:
    """Boolean grid, True where the pixel centre falls inside ``geometry``."""
    if geometry.is_empty:
        return np.zeros(shape, dtype=bool)
    return features.geometry_mask(
        [mapping(geometry)],
        out_shape=shape,
        transform=transform,
        invert=True,
    )


def clip_and_fill(
    tile: RasterTile,
    boundary_geometry: Optional[BaseGeometry],
    clip_geometry: Optional[BaseGeometry],
    no_data_value: float = FLOAT_NODATA,
    transform: Optional[Affine] = None,
) -> RasterTile:
    """Clip a composite to its export region and fill gaps with a sentinel.

    The steps run in a fixed order:
    1. Pixels outside ``boundary_geometry`` (the AOI polygon) become invalid
    2. Pixels outside ``clip_geometry`` (the export rectangle) become invalid
    3. Every invalid pixel gets ``no_data_value`` in all bands and is marked
       valid, so the output holds no invalid pixel

    Args:
        tile: Composite to export.
        boundary_geometry: AOI polygon, or None to skip the first stage.
        clip_geometry: Export region, or None to skip the second stage.
        no_data_value: Sentinel written into pixels without a valid value.
        transform: Affine transform from pixel to geometry coordinates.
            Defaults to the identity (geometries in pixel space).

    Returns:
        Fully valid RasterTile.
    """
    transform = transform if transform is not None else Affine.identity()
    mask = tile.mask
    if boundary_geometry is not None:
        mask = mask & _inside(boundary_geometry, tile.shape, transform)
    if clip_geometry is not None:
        mask = mask & _inside(clip_geometry, tile.shape, transform)

    filled = {
        name: np.where(mask, data, no_data_value)
        for name, data in tile.bands.items()
    }
    LOGGER.info(
        "Export clip: %d of %d pixels kept, remainder filled with %s",
        int(mask.sum()),
        mask.size,
        no_data_value,
    )
    return RasterTile(
        bands=filled,
        mask=np.ones(tile.shape, dtype=bool),
        acquired=tile.acquired,
        properties=tile.properties,
    )


def serialize(
    tile: RasterTile,
    fmt: str = "GTiff",
    georeference: Optional[Georeference] = None,
    no_data_value: float = FLOAT_NODATA,
    dtype: str = "float32",
) -> bytes:
    """Encode ``tile`` as a self-describing raster file.

    The file records grid size, one band per tile band (band descriptions
    carry the band names), the nodata value, CRS and geotransform. Pixels
    still invalid in ``tile`` are written as ``no_data_value``.

    Samples are cast to ``dtype``. The float32 default keeps about seven
    significant digits of the float64 composite; pass "float64" for a
    lossless round trip.

    Raises:
        UnsupportedFormat: If ``fmt`` is not a recognised raster format.
    """
    driver = resolve_format(fmt)
    georeference = georeference or Georeference()

    names = tile.band_names
    data = np.stack([np.where(tile.mask, tile.bands[name], no_data_value) for name in names])
    profile = {
        "driver": driver,
        "dtype": dtype,
        "width": tile.width,
        "height": tile.height,
        "count": len(names),
        "crs": CRS.from_user_input(georeference.crs) if georeference.crs else None,
        "transform": georeference.transform,
        "nodata": no_data_value,
        "compress": "deflate",
        "tiled": True,
    }

    with MemoryFile() as memfile:
        with memfile.open(**profile) as dst:
            dst.write(data.astype(dtype))
            for idx, name in enumerate(names, start=1):
                dst.set_band_description(idx, name)
            if tile.properties:
                dst.update_tags(**{str(k).upper(): str(v) for k, v in tile.properties.items()})
        memfile.seek(0)
        return memfile.read()


def write_tile(
    tile: RasterTile,
    path: Path,
    fmt: str = "GTiff",
    georeference: Optional[Georeference] = None,
    no_data_value: float = FLOAT_NODATA,
    dtype: str = "float32",
) -> Path:
    """Serialize ``tile`` to ``path``. Parent directories are created if needed."""
    payload = serialize(
        tile, fmt=fmt, georeference=georeference, no_data_value=no_data_value, dtype=dtype
    )
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    LOGGER.info("Wrote %s (%d x %d, %d band(s))", path, tile.width, tile.height, len(tile.band_names))
    return path


__all__ = [
    "FLOAT_NODATA",
    "DEFAULT_RESOLUTION",
    "DEFAULT_CRS",
    "RASTER_FORMATS",
    "Georeference",
    "resolve_format",
    "clip_and_fill",
    "serialize",
    "write_tile",
]
