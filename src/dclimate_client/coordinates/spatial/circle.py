"""
dClimate Client Circle Selection

Great-circle radius selection: mask every cell farther than the radius from
the center, then crop to the rows/columns that still hold data.
"""

import logging
from typing import Optional
import numpy as np
import xarray as xr

from ...core.exceptions import InvalidSelectionError
from ...utils.geometry import haversine_grid
from .axes import axis_dim, coordinate_values, resolve_geo_axes

logger = logging.getLogger('dclimate_client.coordinates.spatial.circle')


def circle_mask(
    dataset: xr.Dataset,
    center_lat: float,
    center_lon: float,
    radius_km: float,
    lat_key: str,
    lon_key: str,
) -> xr.DataArray:
    """
    Boolean (lat, lon) grid, True where the cell is within ``radius_km``.

    The boundary is inclusive.
    """
    lats = coordinate_values(dataset, lat_key, "latitude")
    lons = coordinate_values(dataset, lon_key, "longitude")
    lat_dim, lon_dim = axis_dim(dataset, lat_key), axis_dim(dataset, lon_key)

    distances = haversine_grid(center_lat, center_lon, lats, lons)
    return xr.DataArray(
        distances <= radius_km,
        dims=(lat_dim, lon_dim),
        name="circle_mask",
    )


def _valid_indices(valid: xr.DataArray, dim: str, size: int) -> np.ndarray:
    """Indices along ``dim`` with at least one non-null value."""
    if dim not in valid.dims:
        return np.arange(size) if bool(valid.any()) else np.array([], dtype=int)
    others = [d for d in valid.dims if d != dim]
    reduced = valid.any(dim=others) if others else valid
    return np.flatnonzero(reduced.values)


def circle(
    dataset: xr.Dataset,
    center_lat: float,
    center_lon: float,
    radius_km: float,
    latitude_key: Optional[str] = None,
    longitude_key: Optional[str] = None,
) -> xr.Dataset:
    """
    Select data within ``radius_km`` of (center_lat, center_lon).

    Cells outside the circle are set to NaN and the result is cropped to
    the smallest row/column ranges holding a non-null value. The crop uses
    the first data variable only, so other variables may keep rows that
    are entirely null for them.

    Args:
        dataset: Dataset to filter
        center_lat: Latitude of the center in decimal degrees
        center_lon: Longitude of the center in decimal degrees
        radius_km: Radius in kilometres, must be positive
        latitude_key: Latitude coordinate name (default "latitude")
        longitude_key: Longitude coordinate name (default "longitude")

    Returns:
        xr.Dataset: Masked and cropped dataset, or ``xr.Dataset()`` when
        no cell lies within the circle

    Raises:
        InvalidSelectionError: If the radius is not positive or axes are missing

    Examples:
        >>> # All data within 100 km of New York City
        >>> subset = circle(ds, 40.7128, -74.0060, 100)
    """
    if not radius_km > 0:
        raise InvalidSelectionError(
            "Radius must be a positive number", f"radius_km={radius_km}"
        )

    lat_key, lon_key = resolve_geo_axes(dataset, latitude_key, longitude_key, infer=False)
    mask = circle_mask(dataset, center_lat, center_lon, radius_km, lat_key, lon_key)

    if not bool(mask.any()):
        logger.debug(
            "No cells within %s km of (%s, %s)", radius_km, center_lat, center_lon
        )
        return xr.Dataset()

    masked = dataset.where(mask)

    data_vars = list(masked.data_vars)
    if not data_vars:
        return xr.Dataset()

    lat_dim, lon_dim = mask.dims
    valid = masked[data_vars[0]].notnull()
    lat_indices = _valid_indices(valid, lat_dim, masked.sizes[lat_dim])
    lon_indices = _valid_indices(valid, lon_dim, masked.sizes[lon_dim])

    if lat_indices.size == 0 or lon_indices.size == 0:
        return xr.Dataset()

    return masked.isel({lat_dim: lat_indices, lon_dim: lon_indices})
