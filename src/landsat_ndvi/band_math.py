"""Elementwise scale/offset transforms over raster tiles."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from .sensors import REFLECTANCE_MULTIPLIER, REFLECTANCE_OFFSET, SensorProfile
from .tiles import RasterTile

LOGGER = logging.getLogger(__name__)


def scale(
    tile: RasterTile,
    band_names: Sequence[str],
    multiplier: float,
    offset: float,
) -> RasterTile:
    """Return a tile where each named band is ``sample * multiplier + offset``.

    Bands not named pass through unchanged and the validity mask is kept as is.
    No clamping is applied.

    Args:
        tile: Input tile.
        band_names: Bands to transform.
        multiplier: Gain applied to each sample.
        offset: Value added after the gain.

    Returns:
        New RasterTile with the transformed bands.

    Raises:
        InvalidBand: If a requested band is absent from the tile.
    """
    scaled = {
        name: tile.band(name) * np.float64(multiplier) + np.float64(offset)
        for name in band_names
    }
    return tile.with_bands(scaled)


def apply_surface_reflectance_scaling(tile: RasterTile, sensor: SensorProfile) -> RasterTile:
    """Convert Collection 2 Level 2 digital numbers to surface reflectance.

    Only the sensor's reflectance bands present in ``tile`` are scaled; the
    quality band keeps its raw bit-packed integers.
    """
    present = [name for name in sensor.reflectance_bands if name in tile.bands]
    if not present:
        LOGGER.warning("Tile has none of the %s reflectance bands", sensor.name)
    return scale(tile, present, REFLECTANCE_MULTIPLIER, REFLECTANCE_OFFSET)


__all__ = ["scale", "apply_surface_reflectance_scaling"]
