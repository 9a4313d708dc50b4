"""Two-period NDVI comparison."""

from __future__ import annotations

import logging

import numpy as np

from .errors import DimensionMismatch
from .ndvi import NDVI_BAND
from .tiles import RasterTile

LOGGER = logging.getLogger(__name__)

CHANGE_BAND = "NDVI_CHANGE"


def ndvi_difference(first: RasterTile, last: RasterTile, band: str = NDVI_BAND) -> RasterTile:
    """Return ``last - first`` for an NDVI band, valid where both inputs are.

    Args:
        first: Composite for the earlier period.
        last: Composite for the later period.
        band: Band to difference in both tiles.

    Returns:
        Single-band tile named "NDVI_CHANGE" in [-2, 2]. Invalid pixels hold NaN.
    """
    if first.shape != last.shape:
        raise DimensionMismatch(
            f"Cannot compare composites of shape {first.shape} and {last.shape}"
        )
    valid = first.mask & last.mask
    change = np.where(valid, last.band(band) - first.band(band), np.nan)
    if valid.any():
        LOGGER.info(
            "NDVI change over %d pixels: mean=%.4f min=%.4f max=%.4f",
            int(valid.sum()),
            float(change[valid].mean()),
            float(change[valid].min()),
            float(change[valid].max()),
        )
    else:
        LOGGER.warning("No pixel is valid in both periods; change layer is empty.")
    return RasterTile(bands={CHANGE_BAND: change}, mask=valid)


__all__ = ["CHANGE_BAND", "ndvi_difference"]
