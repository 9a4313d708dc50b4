"""Per-year layer catalog: true colour, false colour and NDVI composites.

The catalog is a small state machine. It starts ``EMPTY``; ``build`` runs the
full pipeline for a year and moves it to ``BUILT``; ``select`` picks which of
the three layers is current for display. Every ``build`` replaces the layer set
wholesale, and a failed build leaves the previous state untouched.

Pipeline per build
------------------
1. Select the sensor profile from the year (< 2014 -> Landsat 7)
2. Scale SR_B1..SR_B7 digital numbers to surface reflectance
3. Optionally mask cloud/shadow/snow (+ cirrus on Landsat 8) from QA_PIXEL
4. Median-composite the reflectance bands for the colour layers
5. Derive per-scene NDVI and median-composite it for the NDVI layer

Instances are not thread-safe; serialize calls to ``build`` and ``select``.
"""

from __future__ import annotations

import enum
import logging
import operator
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .band_math import apply_surface_reflectance_scaling
from .cloud_masking import mask_clouds
from .compositing import median
from .errors import OutOfRange
from .ndvi import NDVI_BAND, compute_ndvi
from .sensors import SensorProfile, profile_for_year
from .tiles import RasterTile, TimeSeries

LOGGER = logging.getLogger(__name__)

TRUE_COLOUR = 0
FALSE_COLOUR = 1
NDVI = 2

LAYER_KEYS: Tuple[str, ...] = ("true_colour", "false_colour", "ndvi")

NDVI_PALETTE: Tuple[str, ...] = ("blue", "white", "green")


@dataclass(frozen=True)
class VisParams:
    """Display parameters of a layer.

    Attributes:
        min: Value mapped to the bottom of the display range.
        max: Value mapped to the top of the display range.
        bands: Band -> red/green/blue channel assignment for colour composites.
        palette: Colour ramp for single-band layers.
    """

    min: float
    max: float
    bands: Tuple[str, ...] = ()
    palette: Tuple[str, ...] = ()


@dataclass(frozen=True, eq=False)
class CompositeLayer:
    name: str
    tile: RasterTile
    vis: VisParams

    def label(self, year: int) -> str:
        return f"{year} {self.name}"


@dataclass(frozen=True, eq=False)
class LayerSet:
    """The three layers built for one year and cloud-masking mode."""

    year: int
    cloud_mask_enabled: bool
    sensor: SensorProfile
    layers: Tuple[CompositeLayer, CompositeLayer, CompositeLayer]

    def __post_init__(self) -> None:
        if len(self.layers) != len(LAYER_KEYS):
            raise ValueError(f"LayerSet requires exactly {len(LAYER_KEYS)} layers")

    @property
    def true_colour(self) -> CompositeLayer:
        return self.layers[TRUE_COLOUR]

    @property
    def false_colour(self) -> CompositeLayer:
        return self.layers[FALSE_COLOUR]

    @property
    def ndvi(self) -> CompositeLayer:
        return self.layers[NDVI]

    def __getitem__(self, index: int) -> CompositeLayer:
        try:
            position = operator.index(index)
        except TypeError:
            raise OutOfRange(f"Layer index must be an integer, got {index!r}") from None
        if isinstance(index, bool) or position not in range(len(self.layers)):
            raise OutOfRange(f"Layer index {index!r} outside 0..{len(self.layers) - 1}")
        return self.layers[position]

    def __len__(self) -> int:
        return len(self.layers)


class CatalogState(enum.Enum):
    EMPTY = "empty"
    BUILT = "built"


def layer_index(key: str) -> int:
    """Map a layer key ("true_colour", "false_colour", "ndvi") to its index."""
    try:
        return LAYER_KEYS.index(key)
    except ValueError:
        raise OutOfRange(
            f"Unknown layer '{key}'. Expected one of: {', '.join(LAYER_KEYS)}"
        ) from None


def build_layer_set(
    year: int,
    cloud_mask_enabled: bool,
    source_series: TimeSeries,
    mask_dilation: int = 0,
    min_clear_obs: int = 1,
    parallel: bool = False,
) -> LayerSet:
    """Run the compositing pipeline for one year and return its three layers.

    Raises:
        ValueError: If the series was acquired for another year or sensor.
        EmptySeries: If the series holds no tiles.
        InvalidBand: If a tile lacks a band the pipeline needs.
    """
    sensor = profile_for_year(year)
    if source_series.year != year:
        raise ValueError(
            f"Series is for year {source_series.year}, cannot build layers for {year}"
        )
    if source_series.sensor is not sensor:
        raise ValueError(
            f"Series holds {source_series.sensor.name} scenes but {year} requires {sensor.name}"
        )

    LOGGER.info(
        "Building %s layers for %s from %d scenes (cloud mask %s)",
        sensor.name,
        year,
        len(source_series),
        "on" if cloud_mask_enabled else "off",
    )
    corrected = source_series.map(lambda tile: apply_surface_reflectance_scaling(tile, sensor))
    if cloud_mask_enabled:
        corrected = corrected.map(lambda tile: mask_clouds(tile, sensor, mask_dilation))

    colour_bands = list(dict.fromkeys(sensor.true_colour + sensor.false_colour))
    reflectance = median(
        corrected, bands=colour_bands, min_clear_obs=min_clear_obs, parallel=parallel
    )
    ndvi_series = corrected.map(lambda tile: compute_ndvi(tile, sensor))
    ndvi = median(ndvi_series, bands=[NDVI_BAND], min_clear_obs=min_clear_obs, parallel=parallel)

    prefix = f"Landsat {sensor.generation}"
    layers = (
        CompositeLayer(
            name=f"{prefix} true colour",
            tile=reflectance.select(sensor.true_colour),
            vis=VisParams(min=0.0, max=0.2, bands=sensor.true_colour),
        ),
        CompositeLayer(
            name=f"{prefix} false colour",
            tile=reflectance.select(sensor.false_colour),
            vis=VisParams(min=0.0, max=0.3, bands=sensor.false_colour),
        ),
        CompositeLayer(
            name=f"{prefix} NDVI",
            tile=ndvi,
            vis=VisParams(min=-1.0, max=1.0, palette=NDVI_PALETTE),
        ),
    )
    return LayerSet(
        year=year,
        cloud_mask_enabled=cloud_mask_enabled,
        sensor=sensor,
        layers=layers,
    )


class LayerCatalog:
    """Holds the layer set of the most recent successful build."""

    def __init__(
        self,
        mask_dilation: int = 0,
        min_clear_obs: int = 1,
        parallel: bool = False,
    ) -> None:
        self.mask_dilation = mask_dilation
        self.min_clear_obs = min_clear_obs
        self.parallel = parallel
        self._layer_set: Optional[LayerSet] = None
        self._current_index = TRUE_COLOUR

    @property
    def state(self) -> CatalogState:
        return CatalogState.EMPTY if self._layer_set is None else CatalogState.BUILT

    @property
    def layer_set(self) -> Optional[LayerSet]:
        return self._layer_set

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current(self) -> CompositeLayer:
        return self._require_built()[self._current_index]

    @property
    def label(self) -> str:
        """Caption of the current view, e.g. "2024 Landsat 8 true colour"."""
        layer_set = self._require_built()
        return layer_set[self._current_index].label(layer_set.year)

    def build(
        self,
        year: int,
        cloud_mask_enabled: bool,
        source_series: TimeSeries,
    ) -> LayerSet:
        """Rebuild all three layers for ``year``, discarding the previous set.

        The current layer index is kept, so the same view is shown for the new
        year. On failure the catalog keeps its previous state.
        """
        layer_set = build_layer_set(
            year,
            cloud_mask_enabled,
            source_series,
            mask_dilation=self.mask_dilation,
            min_clear_obs=self.min_clear_obs,
            parallel=self.parallel,
        )
        self._layer_set = layer_set
        LOGGER.info("Catalog built: %s", self.label)
        return layer_set

    def select(self, index: int) -> CompositeLayer:
        """Mark layer ``index`` (0 true colour, 1 false colour, 2 NDVI) as current."""
        layer = self._require_built()[index]
        self._current_index = operator.index(index)
        LOGGER.debug("Selected layer %d: %s", index, layer.name)
        return layer

    def layers(self) -> Sequence[CompositeLayer]:
        return self._require_built().layers

    def _require_built(self) -> LayerSet:
        if self._layer_set is None:
            raise RuntimeError("No layers built yet; call build() first.")
        return self._layer_set


__all__ = [
    "TRUE_COLOUR",
    "FALSE_COLOUR",
    "NDVI",
    "LAYER_KEYS",
    "NDVI_PALETTE",
    "VisParams",
    "CompositeLayer",
    "LayerSet",
    "CatalogState",
    "layer_index",
    "build_layer_set",
    "LayerCatalog",
]
