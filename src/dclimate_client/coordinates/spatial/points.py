"""
dClimate Client Point Selection

Single-point and multi-point selection over a dataset's latitude/longitude
axes.
"""

import logging
from typing import Optional, Sequence
import numpy as np
import xarray as xr

from ...core.config import DEFAULT_EPSG, DEFAULT_POINT_TOLERANCE, POINT_DIM
from ...core.core_types import PointOptions
from ...core.exceptions import InvalidSelectionError, NoDataFoundError
from ...utils.geometry import nearest_value
from .axes import coordinate_values, is_empty, resolve_geo_axes

logger = logging.getLogger('dclimate_client.coordinates.spatial.points')

# ============================================================================
# Single Point
# ============================================================================

def point(
    dataset: xr.Dataset,
    latitude: float,
    longitude: float,
    options: Optional[PointOptions] = None,
) -> xr.Dataset:
    """
    Select the grid cell at (latitude, longitude).

    Axis names are inferred from common aliases unless given in ``options``.
    Nearest-neighbour matching is used unless ``options.method == "exact"``;
    ``options.tolerance`` bounds the nearest match.

    Args:
        dataset: Dataset to select from
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees
        options: Point query options

    Returns:
        xr.Dataset: Dataset with the latitude/longitude dimensions collapsed

    Raises:
        InvalidSelectionError: If latitude/longitude axes cannot be found
        NoDataFoundError: If no cell matches or the result is empty
    """
    options = options or PointOptions()
    lat_key, lon_key = resolve_geo_axes(dataset, options.latitude_key, options.longitude_key)

    sel_kwargs = {}
    if options.method == "nearest":
        sel_kwargs["method"] = "nearest"
        if options.tolerance is not None:
            sel_kwargs["tolerance"] = options.tolerance

    try:
        subset = dataset.sel({lat_key: latitude, lon_key: longitude}, **sel_kwargs)
    except KeyError as e:
        raise NoDataFoundError(
            f"No data found at latitude {latitude}, longitude {longitude}",
            str(e)
        )

    if is_empty(subset):
        raise NoDataFoundError("Dataset selection contains no data points.")
    return subset

# ============================================================================
# Multiple Points
# ============================================================================

def points(
    dataset: xr.Dataset,
    point_lats: Sequence[float],
    point_lons: Sequence[float],
    *,
    epsg_crs: int = DEFAULT_EPSG,
    snap_to_grid: bool = True,
    tolerance: float = DEFAULT_POINT_TOLERANCE,
    latitude_key: Optional[str] = None,
    longitude_key: Optional[str] = None,
) -> xr.Dataset:
    """
    Select data at several points along a new ``point`` dimension.

    Args:
        dataset: Dataset to select from
        point_lats: Latitudes of the points
        point_lons: Longitudes of the points (same length as ``point_lats``)
        epsg_crs: EPSG code of the input coordinates; only 4326 is supported
        snap_to_grid: Snap each point to its nearest grid cell without a
            distance bound. When False, every point must lie within
            ``tolerance`` of a grid cell.
        tolerance: Maximum coordinate distance when ``snap_to_grid`` is False
        latitude_key: Latitude coordinate name (default "latitude")
        longitude_key: Longitude coordinate name (default "longitude")

    Returns:
        xr.Dataset: Loaded dataset indexed by ``point``

    Raises:
        InvalidSelectionError: On mismatched/empty inputs or an unsupported CRS
        NoDataFoundError: If a point is outside tolerance in strict mode
    """
    lats = np.atleast_1d(np.asarray(point_lats, dtype=float))
    lons = np.atleast_1d(np.asarray(point_lons, dtype=float))

    if lats.ndim != 1 or lons.ndim != 1 or lats.size != lons.size:
        raise InvalidSelectionError(
            "Point latitudes and longitudes must be arrays of equal length"
        )
    if lats.size == 0:
        raise InvalidSelectionError("At least one point coordinate is required")

    if epsg_crs != DEFAULT_EPSG:
        raise InvalidSelectionError(
            "CRS transformation not yet implemented. "
            f"Please provide coordinates in EPSG:{DEFAULT_EPSG}",
            f"Requested EPSG:{epsg_crs}"
        )

    lat_key, lon_key = resolve_geo_axes(dataset, latitude_key, longitude_key, infer=False)
    indexers = {
        lat_key: xr.DataArray(lats, dims=POINT_DIM),
        lon_key: xr.DataArray(lons, dims=POINT_DIM),
    }

    if snap_to_grid:
        selected = dataset.sel(indexers, method="nearest")
    else:
        try:
            selected = dataset.sel(indexers, method="nearest", tolerance=tolerance)
        except KeyError:
            raise NoDataFoundError(
                "User requested not to snap_to_grid, but at least one coordinate not in dataset",
                _describe_misses(dataset, lat_key, lon_key, lats, lons, tolerance)
            )

    logger.debug("Selected %d points from %s/%s", lats.size, lat_key, lon_key)
    return selected.load()


def _describe_misses(
    dataset: xr.Dataset,
    lat_key: str,
    lon_key: str,
    lats: np.ndarray,
    lons: np.ndarray,
    tolerance: float,
) -> str:
    """Name the requested points with no grid cell within ``tolerance``."""
    grid_lats = coordinate_values(dataset, lat_key, "latitude")
    grid_lons = coordinate_values(dataset, lon_key, "longitude")

    misses = []
    for lat, lon in zip(lats, lons):
        near_lat = nearest_value(grid_lats, lat)
        near_lon = nearest_value(grid_lons, lon)
        if abs(near_lat - lat) > tolerance or abs(near_lon - lon) > tolerance:
            misses.append(f"({lat:g}, {lon:g}) nearest ({near_lat:g}, {near_lon:g})")
    return f"Outside tolerance {tolerance:g}: " + "; ".join(misses)
