"""
dClimate Client Variant Concatenation

This module merges several variants of one dataset (e.g. finalized and
non-finalized readings) into a single series along the concatenation
dimension, without duplicate or overlapping coordinates.
"""

import logging
import math
from typing import Any, List, Sequence, Tuple
import xarray as xr

from ..core.config import DEFAULT_CONCAT_DIM
from ..core.core_types import ConcatenableVariant
from ..core.exceptions import EmptyVariantSetError, MissingCoordinateDimensionError
from ..coordinates.time_handler import to_epoch_ms

logger = logging.getLogger('dclimate_client.processing.concatenation')

VariantToLoad = Tuple[ConcatenableVariant, xr.Dataset]

# ============================================================================
# Split Point
# ============================================================================

def find_split_index(coords: Sequence[Any], after_value: Any) -> int:
    """
    Index of the first coordinate strictly greater than ``after_value``.

    Values are compared as numbers: temporal values as epoch milliseconds,
    numeric values unchanged.

    Returns:
        int: Split index, or -1 if every coordinate is <= ``after_value``
    """
    after = to_epoch_ms(after_value)
    for i, value in enumerate(coords):
        if to_epoch_ms(value) > after:
            return i
    return -1


def sort_by_priority(variants: Sequence[VariantToLoad]) -> List[VariantToLoad]:
    """Ascending priority; variants without one sort last, ties keep input order."""
    def key(item: VariantToLoad) -> float:
        priority = item[0].priority
        return math.inf if priority is None else priority

    return sorted(variants, key=key)


def _coordinate_values(dataset: xr.Dataset, dim: str, variant: str):
    if dim not in dataset.coords or dataset.coords[dim].size == 0:
        raise MissingCoordinateDimensionError(variant, dim)
    return dataset.coords[dim].values

# ============================================================================
# Concatenation
# ============================================================================

def concatenate_variants(variants: Sequence[VariantToLoad]) -> xr.Dataset:
    """
    Concatenate dataset variants in priority order.

    The highest-priority (lowest number) dataset is the starting point. Each
    following variant contributes only the coordinates strictly after the
    last one already covered; a variant with nothing new is skipped.

    Args:
        variants: (variant config, opened dataset) pairs

    Returns:
        xr.Dataset: Combined dataset with strictly increasing coordinates
        along the concatenation dimension

    Raises:
        EmptyVariantSetError: If ``variants`` is empty
        MissingCoordinateDimensionError: If a variant lacks the dimension

    Examples:
        >>> # finalized covers [1, 2, 3], non-finalized covers [2, 3, 4, 5]
        >>> combined = concatenate_variants([(finalized, ds_a), (provisional, ds_b)])
        >>> combined["time"].values.tolist()
        [1, 2, 3, 4, 5]
    """
    if not variants:
        raise EmptyVariantSetError()

    if len(variants) == 1:
        return variants[0][1]

    ordered = sort_by_priority(variants)
    first_config, combined = ordered[0]
    concat_dim = first_config.dimension or DEFAULT_CONCAT_DIM

    for config, dataset in ordered[1:]:
        combined_coords = _coordinate_values(combined, concat_dim, first_config.variant)
        next_coords = _coordinate_values(dataset, concat_dim, config.variant)

        split_index = find_split_index(next_coords, combined_coords[-1])
        if split_index == -1:
            logger.warning(
                "Variant '%s' has no data after the previous variant, skipping concatenation",
                config.variant
            )
            continue

        sliced = dataset.isel({concat_dim: slice(split_index, None)})
        combined = xr.concat(
            [combined, sliced],
            dim=concat_dim,
            data_vars="minimal",
            coords="minimal",
            compat="override",
            join="outer",
            combine_attrs="override",
        )
        logger.info(
            "Appended %d '%s' steps from variant '%s'",
            sliced.sizes[concat_dim], concat_dim, config.variant
        )

    return combined
