"""
dClimate Client Geospatial Selection

This package provides point, multi-point, rectangle and circle selection
over a dataset's latitude/longitude axes.
"""

# Axis discovery
from .axes import (
    infer_coordinate_key,
    resolve_geo_axes,
    coordinate_values,
    validate_geographic_range,
    is_empty,
)

# Selections
from .points import point, points
from .rectangle import rectangle, validate_rectangle_bounds
from .circle import circle, circle_mask

__all__ = [
    # Axis discovery
    "infer_coordinate_key",
    "resolve_geo_axes",
    "coordinate_values",
    "validate_geographic_range",
    "is_empty",
    # Selections
    "point",
    "points",
    "rectangle",
    "validate_rectangle_bounds",
    "circle",
    "circle_mask",
]
