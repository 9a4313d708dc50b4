"""In-memory raster tiles and time series.

A ``RasterTile`` is a set of named float64 bands on a fixed ``(height, width)``
grid together with a boolean validity mask (True = valid). Tiles are immutable:
arrays are copied and flagged read-only on construction, and every pipeline stage
returns a new tile instead of mutating its input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np

from .errors import DimensionMismatch, InvalidBand
from .sensors import SensorProfile


def _frozen(array: np.ndarray, dtype) -> np.ndarray:
    result = np.array(array, dtype=dtype, copy=True)
    result.setflags(write=False)
    return result


@dataclass(frozen=True, eq=False)
class RasterTile:
    """Named bands plus a per-pixel validity mask.

    Attributes:
        bands: Mapping of band name to 2-D sample grid.
        mask: Boolean grid, True where the pixel is valid. Defaults to all valid.
        acquired: Acquisition timestamp, used to order tiles in a series.
        properties: Free-form scene metadata (e.g. ``CLOUD_COVER``).
    """

    bands: Mapping[str, np.ndarray]
    mask: Optional[np.ndarray] = None
    acquired: Optional[datetime] = None
    properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.bands:
            raise ValueError("RasterTile requires at least one band")
        bands: Dict[str, np.ndarray] = {}
        shape: Optional[Tuple[int, int]] = None
        for name, data in self.bands.items():
            array = _frozen(data, np.float64)
            if array.ndim != 2:
                raise DimensionMismatch(
                    f"Band '{name}' must be 2-D, got shape {array.shape}"
                )
            if shape is None:
                shape = array.shape
            elif array.shape != shape:
                raise DimensionMismatch(
                    f"Band '{name}' has shape {array.shape}, expected {shape}"
                )
            bands[name] = array

        if self.mask is None:
            mask = np.ones(shape, dtype=bool)
            mask.setflags(write=False)
        else:
            mask = _frozen(self.mask, bool)
            if mask.shape != shape:
                raise DimensionMismatch(
                    f"Mask has shape {mask.shape}, expected {shape}"
                )

        object.__setattr__(self, "bands", MappingProxyType(bands))
        object.__setattr__(self, "mask", mask)
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    @property
    def shape(self) -> Tuple[int, int]:
        return self.mask.shape

    @property
    def height(self) -> int:
        return self.mask.shape[0]

    @property
    def width(self) -> int:
        return self.mask.shape[1]

    @property
    def band_names(self) -> Tuple[str, ...]:
        return tuple(self.bands)

    @property
    def valid_count(self) -> int:
        return int(self.mask.sum())

    def band(self, name: str) -> np.ndarray:
        """Return the samples for ``name``, raising ``InvalidBand`` if absent."""
        try:
            return self.bands[name]
        except KeyError:
            raise InvalidBand(name, self.band_names) from None

    def select(self, names: Sequence[str]) -> "RasterTile":
        """Return a tile holding only ``names``, in the given order."""
        return self.with_bands({name: self.band(name) for name in names}, replace=True)

    def with_bands(self, bands: Mapping[str, np.ndarray], replace: bool = False) -> "RasterTile":
        """Return a copy with ``bands`` added (or substituted when ``replace``)."""
        merged = dict(bands) if replace else {**self.bands, **bands}
        return RasterTile(
            bands=merged,
            mask=self.mask,
            acquired=self.acquired,
            properties=self.properties,
        )

    def with_mask(self, mask: np.ndarray) -> "RasterTile":
        return RasterTile(
            bands=self.bands,
            mask=mask,
            acquired=self.acquired,
            properties=self.properties,
        )

    def __repr__(self) -> str:
        return (
            f"RasterTile(bands={list(self.band_names)}, shape={self.shape}, "
            f"valid={self.valid_count}, acquired={self.acquired})"
        )


def _sort_key(indexed: Tuple[int, RasterTile]) -> Tuple[int, datetime, int]:
    index, tile = indexed
    if tile.acquired is None:
        return (1, datetime.min, index)
    return (0, tile.acquired, index)


@dataclass(frozen=True, eq=False)
class TimeSeries:
    """Tiles of one sensor and one nominal year, ordered by acquisition time."""

    tiles: Tuple[RasterTile, ...]
    sensor: SensorProfile
    year: int

    def __post_init__(self) -> None:
        # Stable sort: undated tiles go last and keep their relative order
        tiles = tuple(tile for _, tile in sorted(enumerate(self.tiles), key=_sort_key))
        if tiles:
            shape = tiles[0].shape
            for index, tile in enumerate(tiles[1:], start=1):
                if tile.shape != shape:
                    raise DimensionMismatch(
                        f"Tile {index} has shape {tile.shape}, expected {shape}"
                    )
        object.__setattr__(self, "tiles", tiles)

    @classmethod
    def from_tiles(
        cls,
        tiles: Iterable[RasterTile],
        sensor: SensorProfile,
        year: int,
    ) -> "TimeSeries":
        """Build a series from any iterable of tiles (ordered on construction)."""
        return cls(tiles=tuple(tiles), sensor=sensor, year=year)

    @property
    def shape(self) -> Optional[Tuple[int, int]]:
        return self.tiles[0].shape if self.tiles else None

    def map(self, func) -> "TimeSeries":
        """Apply ``func`` to every tile, keeping sensor, year and order."""
        return TimeSeries(
            tiles=tuple(func(tile) for tile in self.tiles),
            sensor=self.sensor,
            year=self.year,
        )

    def __len__(self) -> int:
        return len(self.tiles)

    def __iter__(self):
        return iter(self.tiles)


__all__ = ["RasterTile", "TimeSeries"]
