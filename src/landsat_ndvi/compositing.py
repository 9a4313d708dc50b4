"""Temporal median compositing of masked raster time series.

Compositing Pipeline
--------------------
1. Stack every tile's bands into a (time, band, y, x) array
2. Stack the validity masks into a (time, y, x) array
3. Replace masked observations with NaN
4. Compute the pixel-wise median across time, skipping NaN
5. Invalidate pixels with fewer than ``min_clear_obs`` clear observations

Each pixel keeps its own number of clear observations, so the reduction is
ragged: a pixel seen clear in two scenes is the mean of those two values, a
pixel seen in three is the middle one, and a pixel never seen clear stays
invalid. The result does not depend on the order of tiles in the series.
"""

from __future__ import annotations

import logging
import time
import warnings
from typing import Optional, Sequence, Tuple

import numpy as np
import xarray as xr
from dask import compute as dask_compute

from .errors import EmptySeries
from .tiles import RasterTile, TimeSeries

LOGGER = logging.getLogger(__name__)


def _stack_series(
    series: TimeSeries,
    bands: Sequence[str],
) -> Tuple[xr.DataArray, xr.DataArray]:
    data = np.stack(
        [np.stack([tile.band(name) for name in bands]) for tile in series.tiles]
    )
    masks = np.stack([tile.mask for tile in series.tiles])
    stack = xr.DataArray(
        data,
        dims=["time", "band", "y", "x"],
        coords={"time": np.arange(len(series)), "band": list(bands)},
    )
    clear = xr.DataArray(
        masks,
        dims=["time", "y", "x"],
        coords={"time": np.arange(len(series))},
    )
    return stack, clear


def clear_observation_counts(series: TimeSeries) -> np.ndarray:
    """Return the number of valid observations per pixel as an int array."""
    if not series.tiles:
        raise EmptySeries("Cannot count observations of an empty series")
    return np.sum([tile.mask for tile in series.tiles], axis=0).astype(np.int32)


def median_with_counts(
    series: TimeSeries,
    bands: Optional[Sequence[str]] = None,
    min_clear_obs: int = 1,
    parallel: bool = False,
) -> Tuple[RasterTile, np.ndarray]:
    """Compute the per-pixel temporal median of a masked time series.

    Args:
        series: Tiles to reduce. Invalid pixels in a tile do not contribute.
        bands: Bands to composite. Defaults to the first tile's bands.
        min_clear_obs: Minimum number of clear observations required per
            pixel. Pixels with fewer are invalid in the output.
        parallel: If True, reduce bands concurrently with dask's threaded
            scheduler.

    Returns:
        Tuple of:
        - composite: RasterTile with one band per composited band. Invalid
          pixels hold NaN.
        - valid_counts: 2-D int array with the number of clear observations.

    Raises:
        EmptySeries: If the series holds no tiles.
        InvalidBand: If a tile lacks one of ``bands``.
    """
    if not series.tiles:
        raise EmptySeries(f"No tiles to composite for {series.sensor.name} {series.year}")
    if min_clear_obs < 1:
        raise ValueError(f"min_clear_obs must be at least 1, got {min_clear_obs}")

    bands = list(bands) if bands is not None else list(series.tiles[0].band_names)
    t0 = time.perf_counter()
    stack, clear = _stack_series(series, bands)
    if parallel:
        stack = stack.chunk({"band": 1})

    masked = stack.where(clear)
    valid_counts = clear.sum(dim="time")

    with warnings.catch_warnings():
        # all-masked pixels reduce to NaN
        warnings.simplefilter("ignore", category=RuntimeWarning)
        reduced = masked.median(dim="time", skipna=True)
        if parallel:
            (reduced,) = dask_compute(reduced, scheduler="threads")
        values = reduced.transpose("band", "y", "x").values

    counts = valid_counts.values.astype(np.int32)
    valid = (counts >= min_clear_obs) & np.isfinite(values).all(axis=0)
    values = np.where(valid, values, np.nan)

    composite = RasterTile(
        bands={name: values[index] for index, name in enumerate(bands)},
        mask=valid,
        properties={
            "sensor": series.sensor.name,
            "year": series.year,
            "scene_count": len(series),
        },
    )

    if valid.any():
        LOGGER.info(
            "%s %s median of %d scenes: clear obs min=%d mean=%.2f max=%d, %d/%d pixels valid (%.2fs)",
            series.sensor.name,
            series.year,
            len(series),
            int(counts.min()),
            float(counts.mean()),
            int(counts.max()),
            int(valid.sum()),
            valid.size,
            time.perf_counter() - t0,
        )
    else:
        LOGGER.warning(
            "%s %s produced no clear pixels after masking.",
            series.sensor.name,
            series.year,
        )
    return composite, counts


def median(
    series: TimeSeries,
    bands: Optional[Sequence[str]] = None,
    min_clear_obs: int = 1,
    parallel: bool = False,
) -> RasterTile:
    """Reduce ``series`` to its per-pixel median. See ``median_with_counts``."""
    composite, _ = median_with_counts(
        series, bands=bands, min_clear_obs=min_clear_obs, parallel=parallel
    )
    return composite


__all__ = [
    "clear_observation_counts",
    "median_with_counts",
    "median",
]
