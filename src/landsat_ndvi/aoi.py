"""AOI (Area of Interest) parsing.

Supported AOI Formats
---------------------
1. **Bounding box string**: Comma-separated "minx,miny,maxx,maxy"
   Example: "1570000,5170000,1575000,5175000"

2. **WKT (Well-Known Text)**: Standard geometry representation
   Example: "POLYGON ((0 0, 10 0, 10 10, 0 10, 0 0))"

3. **GeoJSON**: JSON geometry or feature
   Example: '{"type": "Polygon", "coordinates": [[[...]]]]}'

4. **File path**: Path to GeoPackage (.gpkg), Shapefile (.shp) or a text file
   holding any of the above. Vector files are unioned into one geometry and
   reprojected to the requested CRS when they carry one.

5. **JSON array**: Bounding box as JSON array [minx, miny, maxx, maxy]

Coordinates are expected in the CRS of the rasters being clipped.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import geopandas as gpd
from shapely import wkt
from shapely.geometry import box, shape
from shapely.geometry.base import BaseGeometry

LOGGER = logging.getLogger(__name__)


def _bbox_parts(text: str) -> Optional[List[float]]:
    """Return the four numbers of a "minx,miny,maxx,maxy" string, or None."""
    parts = text.split(",")
    if len(parts) != 4:
        return None
    try:
        return [float(part) for part in parts]
    except ValueError:
        return None


def parse_aoi(aoi: str, crs: Optional[str] = None) -> BaseGeometry:
    """Parse AOI from various input formats.

    Args:
        aoi: AOI specification (see module docstring).
        crs: Target CRS for vector files. Geometries given inline are
            returned in their own coordinates.

    Returns:
        Parsed, valid geometry.

    Raises:
        ValueError: If the AOI file is empty or the geometry is empty.
    """
    candidate = aoi.strip()
    path = Path(candidate)
    geom: Optional[BaseGeometry] = None

    if path.exists():
        suffix = path.suffix.lower()
        if suffix in {".gpkg", ".shp"}:
            gdf = gpd.read_file(path)
            if gdf.empty:
                raise ValueError(f"AOI file '{path}' contains no features.")
            if crs is not None:
                if gdf.crs is not None:
                    gdf = gdf.to_crs(crs)
                else:
                    LOGGER.warning("AOI file %s has no CRS; assuming %s coordinates.", path, crs)
            geom_series = gdf.geometry.dropna()
            if geom_series.empty:
                raise ValueError(f"AOI file '{path}' contains no valid geometries.")
            geom = geom_series.union_all()
        else:
            candidate = path.read_text(encoding="utf-8").strip()

    if geom is None:
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            payload = None

        if isinstance(payload, dict):
            geom = shape(payload.get("geometry", payload))
        elif isinstance(payload, list) and len(payload) == 4:
            geom = box(*payload)
        else:
            parts = _bbox_parts(candidate)
            geom = box(*parts) if parts is not None else wkt.loads(candidate)

    if geom.is_empty:
        raise ValueError("AOI geometry is empty.")
    if not geom.is_valid:
        geom = geom.buffer(0)
    return geom


def export_region(aoi: BaseGeometry) -> BaseGeometry:
    """Rectangular export region of an AOI (its bounding box)."""
    return box(*aoi.bounds)


__all__ = ["parse_aoi", "export_region"]
