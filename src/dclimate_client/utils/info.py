"""
dClimate Client Information Utilities

This module provides functions for summarizing loaded datasets and catalog
listings: coordinate ranges, grid resolution, time coverage and the
dataset paths a catalog offers.
"""

from typing import Dict, List, Optional
import numpy as np
import pandas as pd
import xarray as xr

from ..core.config import TIME_ALIASES
from ..core.core_types import CatalogListing, build_path
from ..core.exceptions import InvalidSelectionError


# ============================================================================
# Coordinate Information
# ============================================================================

def get_coordinate_info(dataset: xr.Dataset) -> Dict[str, Dict]:
    """
    Size, dtype and value range of every coordinate.

    Args:
        dataset: Dataset to describe

    Returns:
        Dict: ``{name: {"size", "dtype", "min", "max"}}``; min/max are None
        for empty coordinates

    Examples:
        >>> info = get_coordinate_info(ds)
        >>> print(f"Latitude: {info['latitude']['min']} to {info['latitude']['max']}")
    """
    info = {}
    for name, coord in dataset.coords.items():
        values = coord.values
        entry = {
            'size': int(values.size),
            'dtype': str(values.dtype),
            'min': None,
            'max': None,
        }
        if values.size and values.dtype.kind == "M":
            entry['min'] = pd.Timestamp(values.min())
            entry['max'] = pd.Timestamp(values.max())
        elif values.size and values.dtype.kind in "iuf":
            entry['min'] = values.min().item()
            entry['max'] = values.max().item()
        elif values.size:
            entry['min'] = values.flat[0]
            entry['max'] = values.flat[-1]
        info[str(name)] = entry
    return info


def get_spatial_info(
    dataset: xr.Dataset,
    latitude_key: Optional[str] = None,
    longitude_key: Optional[str] = None,
) -> Dict:
    """
    Grid extent and mean spacing of the latitude/longitude axes.

    Examples:
        >>> info = get_spatial_info(ds)
        >>> print(f"Grid: {info['nlat']} x {info['nlon']}")
        >>> print(f"Resolution: {info['dlat_mean']:.3f} x {info['dlon_mean']:.3f}")
    """
    from ..coordinates.spatial.axes import resolve_geo_axes

    lat_key, lon_key = resolve_geo_axes(dataset, latitude_key, longitude_key)
    lats = np.asarray(dataset[lat_key].values, dtype=float)
    lons = np.asarray(dataset[lon_key].values, dtype=float)

    def _mean_step(values: np.ndarray) -> Optional[float]:
        if values.size < 2:
            return None
        return float(np.abs(np.diff(values)).mean())

    return {
        'latitude_key': lat_key,
        'longitude_key': lon_key,
        'nlat': int(lats.size),
        'nlon': int(lons.size),
        'lat_range': (float(lats.min()), float(lats.max())) if lats.size else None,
        'lon_range': (float(lons.min()), float(lons.max())) if lons.size else None,
        'dlat_mean': _mean_step(lats),
        'dlon_mean': _mean_step(lons),
    }


# ============================================================================
# Time Information
# ============================================================================

def get_time_info(dataset: xr.Dataset, dimension: Optional[str] = None) -> Dict:
    """
    Time coverage of a dataset.

    Raises:
        InvalidSelectionError: If no time coordinate exists
    """
    from ..coordinates.time_handler import find_time_dimension

    time_dim = find_time_dimension(list(dataset.coords), dimension or TIME_ALIASES[0])
    if time_dim is None:
        raise InvalidSelectionError(
            "Dataset has no time coordinate",
            f"Looked for: {', '.join(TIME_ALIASES)}"
        )

    values = dataset[time_dim].values
    info = {'dimension': time_dim, 'count': int(values.size), 'start': None, 'end': None}
    if values.size:
        if np.issubdtype(values.dtype, np.datetime64):
            info['start'] = pd.Timestamp(values.min())
            info['end'] = pd.Timestamp(values.max())
        else:
            info['start'] = values.min().item()
            info['end'] = values.max().item()
    return info


# ============================================================================
# Catalog Information
# ============================================================================

def list_catalog_paths(listing: CatalogListing) -> List[str]:
    """
    Flatten a catalog listing into ``collection-dataset-variant`` paths.

    Examples:
        >>> list_catalog_paths(listing)[:2]
        ['era5-2m_temperature-finalized', 'era5-2m_temperature-non-finalized']
    """
    paths = []
    for collection in listing:
        for dataset in collection.datasets:
            for variant in dataset.variants:
                paths.append(build_path(collection.collection, dataset.dataset, variant.variant))
    return paths


def catalog_to_dataframe(listing: CatalogListing) -> pd.DataFrame:
    """One row per variant with its organization, collection, dataset and CID."""
    rows = []
    for collection in listing:
        for dataset in collection.datasets:
            for variant in dataset.variants:
                rows.append({
                    'organization': collection.organization,
                    'collection': collection.collection,
                    'dataset': dataset.dataset,
                    'variant': variant.variant,
                    'cid': variant.cid,
                    'concat_priority': variant.concat_priority,
                    'concat_dimension': variant.concat_dimension,
                })
    return pd.DataFrame(
        rows,
        columns=['organization', 'collection', 'dataset', 'variant', 'cid',
                 'concat_priority', 'concat_dimension'],
    )
