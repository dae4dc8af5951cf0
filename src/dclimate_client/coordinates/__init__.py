"""
dClimate Client Coordinate Handling

This package provides geospatial selection over latitude/longitude axes and
time range normalization.
"""

# Spatial selection
from .spatial import (
    infer_coordinate_key,
    resolve_geo_axes,
    is_empty,
    point,
    points,
    rectangle,
    circle,
    circle_mask,
)

# Time coordinate functions
from .time_handler import (
    normalize_time_value,
    normalize_time_range,
    to_epoch_ms,
    find_time_dimension,
)

__all__ = [
    # Spatial selection
    "infer_coordinate_key",
    "resolve_geo_axes",
    "is_empty",
    "point",
    "points",
    "rectangle",
    "circle",
    "circle_mask",
    # Time coordinate functions
    "normalize_time_value",
    "normalize_time_range",
    "to_epoch_ms",
    "find_time_dimension",
]
