"""
dClimate Client Rectangle Selection

Inclusive bounding-box selection over latitude/longitude axes.
"""

from typing import Optional
import numpy as np
import xarray as xr

from ...core.exceptions import InvalidSelectionError
from .axes import (
    axis_dim, coordinate_values, resolve_geo_axes, validate_geographic_range,
)


def validate_rectangle_bounds(
    min_lat: float,
    min_lon: float,
    max_lat: float,
    max_lon: float,
) -> None:
    """
    Require strictly increasing latitude and longitude bounds.

    Raises:
        InvalidSelectionError: If ``min >= max`` on either axis
    """
    if min_lat >= max_lat:
        raise InvalidSelectionError(
            f"minLat ({min_lat}) must be less than maxLat ({max_lat})"
        )
    if min_lon >= max_lon:
        raise InvalidSelectionError(
            f"minLon ({min_lon}) must be less than maxLon ({max_lon})"
        )


def rectangle(
    dataset: xr.Dataset,
    min_lat: float,
    min_lon: float,
    max_lat: float,
    max_lon: float,
    latitude_key: Optional[str] = None,
    longitude_key: Optional[str] = None,
) -> xr.Dataset:
    """
    Select every grid cell inside a latitude/longitude rectangle.

    Bounds are inclusive on all four sides. Coordinates outside ±90/±180
    are rejected before any filtering.

    Args:
        dataset: Dataset to filter
        min_lat: Southern boundary in decimal degrees
        min_lon: Western boundary in decimal degrees
        max_lat: Northern boundary in decimal degrees
        max_lon: Eastern boundary in decimal degrees
        latitude_key: Latitude coordinate name (default "latitude")
        longitude_key: Longitude coordinate name (default "longitude")

    Returns:
        xr.Dataset: Subset inside the box, or an empty ``xr.Dataset()``
        when no cell falls inside

    Raises:
        InvalidSelectionError: On inverted/degenerate bounds, missing axes
            or out-of-range coordinate values

    Examples:
        >>> subset = rectangle(ds, 40.0, -75.0, 41.0, -73.0)
    """
    validate_rectangle_bounds(min_lat, min_lon, max_lat, max_lon)

    lat_key, lon_key = resolve_geo_axes(dataset, latitude_key, longitude_key, infer=False)
    lats = coordinate_values(dataset, lat_key, "latitude")
    lons = coordinate_values(dataset, lon_key, "longitude")
    validate_geographic_range(lats, lons)

    lat_indices = np.where((lats >= min_lat) & (lats <= max_lat))[0]
    lon_indices = np.where((lons >= min_lon) & (lons <= max_lon))[0]

    if lat_indices.size == 0 or lon_indices.size == 0:
        return xr.Dataset()

    return dataset.isel({
        axis_dim(dataset, lat_key): lat_indices,
        axis_dim(dataset, lon_key): lon_indices,
    })
