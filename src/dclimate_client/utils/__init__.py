"""
dClimate Client Utilities

This package provides great-circle geometry helpers and summaries of
datasets and catalog listings.
"""

# Geometry functions
from .geometry import (
    haversine,
    haversine_grid,
    in_bbox,
    nearest_value,
)

# Information functions
from .info import (
    get_coordinate_info,
    get_spatial_info,
    get_time_info,
    list_catalog_paths,
    catalog_to_dataframe,
)

__all__ = [
    # Geometry functions
    "haversine",
    "haversine_grid",
    "in_bbox",
    "nearest_value",
    # Information functions
    "get_coordinate_info",
    "get_spatial_info",
    "get_time_info",
    "list_catalog_paths",
    "catalog_to_dataframe",
]
