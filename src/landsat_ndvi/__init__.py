"""Local Landsat 7/8 NDVI compositing engine."""

from .band_math import apply_surface_reflectance_scaling, scale
from .catalog import (
    CatalogState,
    CompositeLayer,
    LayerCatalog,
    LayerSet,
    VisParams,
    build_layer_set,
)
from .change import ndvi_difference
from .cloud_masking import apply_mask, compute_validity_mask, mask_clouds
from .compositing import clear_observation_counts, median, median_with_counts
from .errors import (
    CompositeError,
    DimensionMismatch,
    EmptySeries,
    InvalidBand,
    OutOfRange,
    UnsupportedFormat,
)
from .export import FLOAT_NODATA, Georeference, clip_and_fill, serialize, write_tile
from .ndvi import compute_ndvi
from .sensors import LANDSAT_7, LANDSAT_8, SensorProfile, profile_for_year
from .tiles import RasterTile, TimeSeries

__version__ = "0.1.0"

__all__ = [
    # Data model
    "RasterTile",
    "TimeSeries",
    "SensorProfile",
    "LANDSAT_7",
    "LANDSAT_8",
    "profile_for_year",
    # Pipeline stages
    "scale",
    "apply_surface_reflectance_scaling",
    "compute_validity_mask",
    "apply_mask",
    "mask_clouds",
    "compute_ndvi",
    "median",
    "median_with_counts",
    "clear_observation_counts",
    "clip_and_fill",
    "serialize",
    "write_tile",
    "Georeference",
    "FLOAT_NODATA",
    "ndvi_difference",
    # Catalog
    "CatalogState",
    "CompositeLayer",
    "LayerCatalog",
    "LayerSet",
    "VisParams",
    "build_layer_set",
    # Errors
    "CompositeError",
    "InvalidBand",
    "DimensionMismatch",
    "EmptySeries",
    "OutOfRange",
    "UnsupportedFormat",
]
