"""
dClimate Client Distance and Geometry Utilities

Pure functions: great-circle distance, bounding-box membership and
nearest-value matching.
"""

from typing import List, Sequence, Union
import numpy as np

from ..core.config import EARTH_RADIUS_KM

Number = Union[int, float]
NumberOrSequence = Union[Number, Sequence[Number]]

# ============================================================================
# Great-circle Distance
# ============================================================================

def _haversine_pair(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    lat1_rad, lon1_rad = np.radians(lat1), np.radians(lon1)
    lat2_rad, lon2_rad = np.radians(lat2), np.radians(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad
    a = np.sin(dlat / 2) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2) ** 2

    # abs() absorbs tiny negative values from cancellation near zero distance
    c = 2 * np.arcsin(np.sqrt(abs(a)))
    return float(c * EARTH_RADIUS_KM)


def haversine(
    lat1: NumberOrSequence,
    lon1: NumberOrSequence,
    lat2: NumberOrSequence,
    lon2: NumberOrSequence,
) -> Union[float, List[float]]:
    """
    Arc length in km between coordinate pairs on a spherical earth.

    Scalars return a float. If any argument is a sequence the result is a
    list as long as the longest input; shorter inputs wrap around by index
    (scalars behave as length-one sequences).

    Args:
        lat1: Latitude(s) of the first point(s) in decimal degrees
        lon1: Longitude(s) of the first point(s) in decimal degrees
        lat2: Latitude(s) of the second point(s) in decimal degrees
        lon2: Longitude(s) of the second point(s) in decimal degrees

    Returns:
        Union[float, List[float]]: Distance(s) in km

    Examples:
        >>> round(haversine(0, 0, 0, 1), 2)
        111.19
        >>> haversine(0, 0, [0, 0], [1, 2])   # doctest: +SKIP
        [111.19..., 222.38...]
    """
    args = (lat1, lon1, lat2, lon2)
    if all(np.isscalar(a) for a in args):
        return _haversine_pair(*args)

    arrays = [list(a) if not np.isscalar(a) else [a] for a in args]
    if any(len(a) == 0 for a in arrays):
        return []

    length = max(len(a) for a in arrays)
    return [
        _haversine_pair(*(a[i % len(a)] for a in arrays))
        for i in range(length)
    ]


def haversine_grid(
    center_lat: float,
    center_lon: float,
    lats: Sequence[float],
    lons: Sequence[float],
) -> np.ndarray:
    """
    Distance in km from one center to every (lat, lon) grid cell.

    Returns:
        np.ndarray: Array of shape ``(len(lats), len(lons))``
    """
    lat_rad = np.radians(np.asarray(lats, dtype=float))[:, np.newaxis]
    lon_rad = np.radians(np.asarray(lons, dtype=float))[np.newaxis, :]
    clat, clon = np.radians(center_lat), np.radians(center_lon)

    a = (np.sin((lat_rad - clat) / 2) ** 2
         + np.cos(clat) * np.cos(lat_rad) * np.sin((lon_rad - clon) / 2) ** 2)
    return 2 * np.arcsin(np.sqrt(np.abs(a))) * EARTH_RADIUS_KM

# ============================================================================
# Membership and Matching
# ============================================================================

def in_bbox(
    lat: float,
    lon: float,
    min_lat: float,
    min_lon: float,
    max_lat: float,
    max_lon: float,
) -> bool:
    """Inclusive bounding-box test."""
    return min_lat <= lat <= max_lat and min_lon <= lon <= max_lon


def nearest_value(values: Sequence[float], target: float) -> float:
    """
    Value in ``values`` closest to ``target``; ties keep the first occurrence.

    Raises:
        ValueError: If ``values`` is empty
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        raise ValueError("Cannot match against an empty coordinate array")
    return float(arr[int(np.argmin(np.abs(arr - target)))])
