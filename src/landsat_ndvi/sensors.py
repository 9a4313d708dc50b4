"""Landsat sensor profiles.

Two Collection 2 Level 2 surface-reflectance products are supported. They share
band names (``SR_B1`` .. ``SR_B7``) but not band meanings: the Landsat 8 OLI
inserts a coastal/aerosol band at ``SR_B1``, shifting red and near-infrared up by
one position relative to the Landsat 7 ETM+.

QA_PIXEL Bits Reference
-----------------------
| Bit | Flag           | Masked?               |
|-----|----------------|-----------------------|
| 0   | Fill           | No (nodata handled)   |
| 1   | Dilated cloud  | No                    |
| 2   | Cirrus         | Landsat 8 only        |
| 3   | Cloud          | Yes                   |
| 4   | Cloud shadow   | Yes                   |
| 5   | Snow           | Yes                   |
| 6   | Clear          | No                    |
| 7   | Water          | No                    |
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple

# =============================================================================
# Collection 2 Level 2 Constants
# =============================================================================

# Scene before this year -> Landsat 7 ETM+, otherwise Landsat 8 OLI
MODERN_SENSOR_FIRST_YEAR = 2014

# DN -> surface reflectance: reflectance = DN * 0.0000275 - 0.2
REFLECTANCE_MULTIPLIER = 0.0000275
REFLECTANCE_OFFSET = -0.2

REFLECTANCE_BANDS: Tuple[str, ...] = (
    "SR_B1", "SR_B2", "SR_B3", "SR_B4", "SR_B5", "SR_B6", "SR_B7",
)
QUALITY_BAND = "QA_PIXEL"

CIRRUS_BIT = 2
CLOUD_BIT = 3
SHADOW_BIT = 4
SNOW_BIT = 5


@dataclass(frozen=True, eq=False)
class SensorProfile:
    """Band roles and quality bits for one Landsat generation.

    Attributes:
        name: Display name, e.g. "Landsat 8".
        generation: Generation number as used in layer names ("7" or "8").
        red: Band bound to the RED role in NDVI.
        nir: Band bound to the NIR role in NDVI.
        true_colour: Bands mapped to the red/green/blue display channels.
        false_colour: NIR/red/green bands mapped to the display channels.
        flag_bits: QA_PIXEL flag name -> bit position considered disqualifying.
    """

    name: str
    generation: str
    red: str
    nir: str
    true_colour: Tuple[str, str, str]
    false_colour: Tuple[str, str, str]
    flag_bits: Mapping[str, int]
    reflectance_bands: Tuple[str, ...] = REFLECTANCE_BANDS
    quality: str = QUALITY_BAND

    @property
    def mask_bits(self) -> Tuple[int, ...]:
        return tuple(sorted(self.flag_bits.values()))

    @property
    def is_modern(self) -> bool:
        return "cirrus" in self.flag_bits

    def __str__(self) -> str:
        return self.name


LANDSAT_7 = SensorProfile(
    name="Landsat 7",
    generation="7",
    red="SR_B3",
    nir="SR_B4",
    true_colour=("SR_B3", "SR_B2", "SR_B1"),
    false_colour=("SR_B4", "SR_B3", "SR_B2"),
    flag_bits=MappingProxyType({"cloud": CLOUD_BIT, "shadow": SHADOW_BIT, "snow": SNOW_BIT}),
)

LANDSAT_8 = SensorProfile(
    name="Landsat 8",
    generation="8",
    red="SR_B4",
    nir="SR_B5",
    true_colour=("SR_B4", "SR_B3", "SR_B2"),
    false_colour=("SR_B5", "SR_B4", "SR_B3"),
    flag_bits=MappingProxyType({
        "cirrus": CIRRUS_BIT,
        "cloud": CLOUD_BIT,
        "shadow": SHADOW_BIT,
        "snow": SNOW_BIT,
    }),
)

SENSOR_PROFILES: Tuple[SensorProfile, ...] = (LANDSAT_7, LANDSAT_8)


def profile_for_year(year: int) -> SensorProfile:
    """Return the sensor profile used for scenes acquired in ``year``.

    Example:
        >>> profile_for_year(2013).name
        'Landsat 7'
        >>> profile_for_year(2014).name
        'Landsat 8'
    """
    return LANDSAT_7 if year < MODERN_SENSOR_FIRST_YEAR else LANDSAT_8


__all__ = [
    "MODERN_SENSOR_FIRST_YEAR",
    "REFLECTANCE_MULTIPLIER",
    "REFLECTANCE_OFFSET",
    "REFLECTANCE_BANDS",
    "QUALITY_BAND",
    "SensorProfile",
    "LANDSAT_7",
    "LANDSAT_8",
    "SENSOR_PROFILES",
    "profile_for_year",
]
