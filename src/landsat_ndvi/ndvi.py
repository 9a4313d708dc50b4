"""Sensor-aware NDVI derivation."""

from __future__ import annotations

import logging

import numpy as np

from .sensors import SensorProfile
from .tiles import RasterTile

LOGGER = logging.getLogger(__name__)

NDVI_BAND = "NDVI"


def compute_ndvi(tile: RasterTile, sensor: SensorProfile) -> RasterTile:
    """Compute NDVI = (NIR - RED) / (NIR + RED) for one tile.

    The sensor profile decides which bands play the NIR and RED roles
    (Landsat 7: SR_B4/SR_B3, Landsat 8: SR_B5/SR_B4).

    Pixels where ``NIR + RED`` is exactly zero, or where either input is not
    finite, are marked invalid and hold 0.0 instead of NaN or inf. Results are
    clipped to [-1, 1].

    Args:
        tile: Tile holding the sensor's red and near-infrared bands.
        sensor: Sensor profile binding band names to roles.

    Returns:
        Single-band tile named "NDVI" carrying the input's acquisition
        timestamp and properties.

    Raises:
        InvalidBand: If the red or near-infrared band is missing.
    """
    nir = tile.band(sensor.nir)
    red = tile.band(sensor.red)

    with np.errstate(invalid="ignore", over="ignore"):
        denominator = nir + red
        difference = nir - red
    computable = np.isfinite(denominator) & np.isfinite(difference) & (denominator != 0.0)

    ndvi = np.zeros(tile.shape, dtype=np.float64)
    np.divide(difference, denominator, out=ndvi, where=computable)
    # Negative reflectance (dark targets after offset) can push the ratio past +-1
    np.clip(ndvi, -1.0, 1.0, out=ndvi)

    degenerate = int((tile.mask & ~computable).sum())
    if degenerate:
        LOGGER.debug("NDVI: %d valid pixels had a zero or non-finite denominator", degenerate)

    return RasterTile(
        bands={NDVI_BAND: ndvi},
        mask=tile.mask & computable,
        acquired=tile.acquired,
        properties=tile.properties,
    )


__all__ = ["NDVI_BAND", "compute_ndvi"]
