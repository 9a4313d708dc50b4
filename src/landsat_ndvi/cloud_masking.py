"""Cloud, shadow and snow masking from the Landsat QA_PIXEL band.

A pixel is clear when none of the disqualifying bits are set in its quality
value. See ``sensors`` for the bit layout; cirrus is only flagged for the
Landsat 8 profile.

Masks only ever remove pixels: ``apply_mask`` intersects the new mask with the
tile's existing one, so a pixel invalidated upstream stays invalid.
"""

from __future__ import annotations

import logging
from typing import Iterable

import numpy as np
from scipy import ndimage

from .errors import DimensionMismatch
from .sensors import SensorProfile
from .tiles import RasterTile

LOGGER = logging.getLogger(__name__)


def compute_validity_mask(
    quality_band: np.ndarray,
    flag_bits: Iterable[int],
    dilation: int = 0,
) -> np.ndarray:
    """Build a boolean clear-sky mask from a quality band.

    Args:
        quality_band: 2-D grid of bit-packed quality values.
        flag_bits: Bit positions considered disqualifying.
        dilation: Number of pixels to grow the flagged region by. Helps drop
            partially cloudy pixels at cloud edges. Default 0 (no dilation).

    Returns:
        Boolean array where True = clear pixel, False = flagged pixel.
        Non-finite quality values are treated as flagged.

    Example:
        >>> qa = np.array([[0, 1 << 3], [1 << 4, 64]])
        >>> compute_validity_mask(qa, [3, 4, 5])
        array([[ True, False],
               [False,  True]])
    """
    quality = np.asarray(quality_band, dtype=np.float64)
    finite = np.isfinite(quality)
    values = np.where(finite, quality, 0).astype(np.int64)

    disqualifying = 0
    for bit in flag_bits:
        disqualifying |= 1 << int(bit)

    flagged = (values & disqualifying) != 0
    if dilation > 0:
        flagged = ndimage.binary_dilation(flagged, iterations=dilation)

    return finite & ~flagged


def apply_mask(tile: RasterTile, mask: np.ndarray) -> RasterTile:
    """Intersect ``tile``'s validity mask with ``mask`` (logical AND)."""
    mask = np.asarray(mask, dtype=bool)
    if mask.shape != tile.shape:
        raise DimensionMismatch(
            f"Mask has shape {mask.shape}, tile has shape {tile.shape}"
        )
    return tile.with_mask(tile.mask & mask)


def mask_clouds(tile: RasterTile, sensor: SensorProfile, dilation: int = 0) -> RasterTile:
    """Mask the sensor's cloud/shadow/snow (and cirrus) flags in ``tile``."""
    clear = compute_validity_mask(tile.band(sensor.quality), sensor.mask_bits, dilation)
    masked = apply_mask(tile, clear)
    LOGGER.debug(
        "Cloud mask (%s, acquired %s): %d -> %d valid pixels",
        sensor.name,
        tile.acquired,
        tile.valid_count,
        masked.valid_count,
    )
    return masked


__all__ = ["compute_validity_mask", "apply_mask", "mask_clouds"]
