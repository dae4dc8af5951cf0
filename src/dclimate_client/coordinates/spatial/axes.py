"""
dClimate Client Coordinate Axis Discovery

This module locates latitude/longitude axes in a dataset and extracts their
values as validated numeric arrays.
"""

from typing import Optional, Sequence, Tuple
import numpy as np
import xarray as xr

from ...core.config import (
    LAT_DIM, LON_DIM, LATITUDE_ALIASES, LONGITUDE_ALIASES,
    LATITUDE_BOUNDS, LONGITUDE_BOUNDS,
)
from ...core.core_types import normalize_segment
from ...core.exceptions import InvalidSelectionError

# ============================================================================
# Axis Name Resolution
# ============================================================================

def infer_coordinate_key(dataset: xr.Dataset, candidates: Sequence[str]) -> Optional[str]:
    """
    Return the dataset coordinate matching the first candidate name.

    Matching is done on normalized names, so "Latitude" matches "latitude".
    """
    keys = [str(key) for key in dataset.coords]
    normalized = [normalize_segment(key) for key in keys]

    for candidate in candidates:
        target = normalize_segment(candidate)
        if target in normalized:
            return keys[normalized.index(target)]
    return None


def resolve_geo_axes(
    dataset: xr.Dataset,
    latitude_key: Optional[str] = None,
    longitude_key: Optional[str] = None,
    infer: bool = True,
) -> Tuple[str, str]:
    """
    Resolve latitude/longitude coordinate names.

    Args:
        dataset: Dataset to inspect
        latitude_key: Explicit latitude name (skips inference)
        longitude_key: Explicit longitude name (skips inference)
        infer: Look up aliases (lat, y / lon, lng, x) when a key is not given;
            otherwise fall back to "latitude"/"longitude"

    Returns:
        Tuple[str, str]: (latitude_key, longitude_key)

    Raises:
        InvalidSelectionError: If either axis is missing
    """
    if infer:
        lat_key = latitude_key or infer_coordinate_key(dataset, LATITUDE_ALIASES)
        lon_key = longitude_key or infer_coordinate_key(dataset, LONGITUDE_ALIASES)
        if not lat_key or not lon_key:
            raise InvalidSelectionError(
                "Latitude/longitude coordinates were not found in the dataset.",
                f"Available coordinates: {', '.join(map(str, dataset.coords))}"
            )
    else:
        lat_key = latitude_key or LAT_DIM
        lon_key = longitude_key or LON_DIM

    if lat_key not in dataset.coords or lon_key not in dataset.coords:
        raise InvalidSelectionError(
            f"Latitude ({lat_key}) and/or longitude ({lon_key}) coordinates not found in dataset"
        )
    return lat_key, lon_key

# ============================================================================
# Coordinate Extraction
# ============================================================================

def coordinate_values(dataset: xr.Dataset, key: str, label: str) -> np.ndarray:
    """
    Return a 1-D float array for coordinate ``key``.

    Raises:
        InvalidSelectionError: If the coordinate is empty, not 1-D or not numeric
    """
    coord = dataset.coords[key]
    if coord.ndim != 1 or coord.size == 0:
        raise InvalidSelectionError(
            "Latitude and longitude coordinates must be non-empty arrays",
            f"{label} coordinate '{key}' has shape {coord.shape}"
        )
    try:
        values = np.asarray(coord.values, dtype=float)
    except (TypeError, ValueError):
        raise InvalidSelectionError(f"Invalid {label} coordinate values in '{key}'")

    bad = values[np.isnan(values)]
    if bad.size:
        raise InvalidSelectionError(f"Invalid {label} coordinate: NaN")
    return values


def validate_geographic_range(lats: np.ndarray, lons: np.ndarray) -> None:
    """
    Check every coordinate lies within ±90 latitude and ±180 longitude.

    Raises:
        InvalidSelectionError: Naming the first offending value
    """
    lat_lo, lat_hi = LATITUDE_BOUNDS
    bad_lat = lats[(lats < lat_lo) | (lats > lat_hi)]
    if bad_lat.size:
        raise InvalidSelectionError(
            f"Invalid latitude coordinate: {bad_lat[0]}. Must be between {lat_lo:g} and {lat_hi:g}."
        )

    lon_lo, lon_hi = LONGITUDE_BOUNDS
    bad_lon = lons[(lons < lon_lo) | (lons > lon_hi)]
    if bad_lon.size:
        raise InvalidSelectionError(
            f"Invalid longitude coordinate: {bad_lon[0]}. Must be between {lon_lo:g} and {lon_hi:g}."
        )


def is_empty(dataset: xr.Dataset) -> bool:
    """True when any dimension has size zero, or the dataset holds nothing at all."""
    sizes = dict(dataset.sizes)
    if any(size == 0 for size in sizes.values()):
        return True
    return not sizes and not dataset.data_vars


def axis_dim(dataset: xr.Dataset, key: str) -> str:
    """Dimension indexed by the 1-D coordinate ``key``."""
    return dataset.coords[key].dims[0]
