"""
dClimate Client Time Coordinate Processing

This module coerces caller supplied time range endpoints into the form of a
dataset's time coordinate and converts coordinate values into a single
comparable number for ordering.
"""

from typing import Any, Optional, Sequence, Tuple, Union
from datetime import datetime
import numbers
import numpy as np
import pandas as pd

from ..core.config import TIME_ALIASES
from ..core.core_types import TimeRange, TimeValue

NormalizedTime = Union[float, pd.Timestamp, str]

# ============================================================================
# Time Value Normalization
# ============================================================================

def _is_date_like(value: Any) -> bool:
    return isinstance(value, (datetime, np.datetime64, pd.Timestamp))


def _is_numeric(value: Any) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


def _parse_timestamp(value: TimeValue) -> Optional[pd.Timestamp]:
    """Parse ``value`` as a tz-naive UTC timestamp, or None if it is not a date."""
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is pd.NaT:
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def normalize_time_value(time_value: TimeValue) -> pd.Timestamp:
    """
    Normalize various time formats to a tz-naive UTC ``pandas.Timestamp``.

    Args:
        time_value: Time value (str, datetime, np.datetime64)

    Returns:
        pd.Timestamp: Normalized time value

    Raises:
        TypeError: If the value cannot be parsed as a date
    """
    ts = _parse_timestamp(time_value)
    if ts is None:
        raise TypeError(f'Unable to coerce value "{time_value}" to a Date coordinate')
    return ts


def to_epoch_ms(value: Any) -> float:
    """
    Convert a coordinate value to a comparable number.

    Temporal values become epoch milliseconds (date-like strings are
    parsed), numbers pass through unchanged. Unparseable strings map to 0.
    """
    if _is_numeric(value):
        if isinstance(value, np.generic):
            return float(value.item())
        return float(value)
    if isinstance(value, (str, bytes)) or _is_date_like(value):
        ts = _parse_timestamp(value)
        if ts is None:
            return 0.0
        return ts.value / 1e6
    return float(value)


def _coerce_by_sample(value: TimeValue, sample: Any) -> NormalizedTime:
    """Coerce one range endpoint to the type of ``sample``."""
    if _is_numeric(sample):
        if _is_date_like(value):
            return normalize_time_value(value).value / 1e6
        try:
            return float(value)
        except (TypeError, ValueError):
            pass
        ts = _parse_timestamp(value)
        if ts is not None:
            return ts.value / 1e6
        raise TypeError(f'Unable to coerce value "{value}" to a numeric coordinate')

    if _is_date_like(sample):
        return normalize_time_value(value)

    # No usable sample: ISO strings
    if _is_date_like(value):
        return normalize_time_value(value).isoformat()
    return str(value)


def normalize_time_range(
    time_range: TimeRange,
    coord_values: Optional[Sequence[Any]] = None,
) -> Tuple[NormalizedTime, NormalizedTime]:
    """
    Normalize a time range against a sample of the dataset's time coordinate.

    Numeric coordinates get numeric endpoints, date-like coordinates get
    ``pd.Timestamp`` endpoints, and without a sample the endpoints become
    ISO-8601 strings. A reversed range is swapped, never rejected.

    Args:
        time_range: Caller supplied range
        coord_values: Values of the time coordinate (only the first is inspected)

    Returns:
        Tuple[NormalizedTime, NormalizedTime]: (start, end) with start <= end

    Raises:
        TypeError: If an endpoint cannot be coerced to the coordinate's type

    Examples:
        >>> normalize_time_range(TimeRange("2024-02-01", "2024-01-01"),
        ...                      np.array(["2024-01-15"], dtype="datetime64[ns]"))
        (Timestamp('2024-01-01 00:00:00'), Timestamp('2024-02-01 00:00:00'))
    """
    sample = None
    if coord_values is not None and len(coord_values) > 0:
        sample = coord_values[0]
        if isinstance(sample, np.ndarray) and sample.ndim == 0:
            sample = sample.item()

    start = _coerce_by_sample(time_range.start, sample)
    end = _coerce_by_sample(time_range.end, sample)

    if isinstance(start, str) and isinstance(end, str):
        start_ts, end_ts = _parse_timestamp(start), _parse_timestamp(end)
        if start_ts is not None and end_ts is not None and start_ts > end_ts:
            return end_ts.isoformat(), start_ts.isoformat()
        return start, end

    if start > end:
        return end, start
    return start, end

# ============================================================================
# Time Dimension Discovery
# ============================================================================

def find_time_dimension(coord_names: Sequence[str], preferred: str) -> Optional[str]:
    """
    Find the time-like coordinate among ``coord_names``.

    ``preferred`` wins when present; otherwise the first of
    time/t/date/datetime found (case-insensitive) is returned.
    """
    if preferred in coord_names:
        return preferred

    lowered = {str(name).lower(): name for name in coord_names}
    for alias in TIME_ALIASES:
        if alias in lowered:
            return lowered[alias]
    return None
