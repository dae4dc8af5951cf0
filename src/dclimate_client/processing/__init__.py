"""
dClimate Client Data Processing

This package provides post-load processing, currently the concatenation of
dataset variants.
"""

from .concatenation import (
    VariantToLoad,
    concatenate_variants,
    find_split_index,
    sort_by_priority,
)

__all__ = [
    "VariantToLoad",
    "concatenate_variants",
    "find_split_index",
    "sort_by_priority",
]
