"""
dClimate Client Geotemporal Dataset

This module wraps a loaded ``xr.Dataset`` with its provenance and exposes
chainable geographic and temporal selections. Every selection returns a
new view that shares the same DatasetMetadata object; the wrapped dataset
is never modified in place.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence
import xarray as xr

from .core.config import TIME_DIM
from .core.core_types import DatasetMetadata, GeoSelection, PointOptions, TimeRange
from .core.exceptions import InvalidSelectionError, NoDataFoundError
from .coordinates import spatial
from .coordinates.time_handler import find_time_dimension, normalize_time_range

logger = logging.getLogger('dclimate_client.geotemporal')


class GeoTemporalDataset:
    """
    Immutable view over a dataset plus its metadata.

    Args:
        dataset: Wrapped dataset
        metadata: Provenance of the load, shared by all derived views

    Examples:
        >>> view, metadata = await client.load_dataset(request)
        >>> nyc = view.point(40.7128, -74.0060).time_range(TimeRange("2023-01-01", "2023-01-31"))
        >>> nyc.info is metadata
        True
    """

    def __init__(self, dataset: xr.Dataset, metadata: DatasetMetadata):
        self._data = dataset
        self._metadata = metadata

    def _derive(self, dataset: xr.Dataset) -> "GeoTemporalDataset":
        return GeoTemporalDataset(dataset, self._metadata)

    def __repr__(self) -> str:
        return (
            f"GeoTemporalDataset(path={self._metadata.path!r}, "
            f"sizes={dict(self._data.sizes)}, variables={self.variables})"
        )

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def data(self) -> xr.Dataset:
        return self._data

    @property
    def info(self) -> DatasetMetadata:
        return self._metadata

    @property
    def variables(self) -> List[str]:
        return [str(name) for name in self._data.data_vars]

    @property
    def coords(self) -> Mapping[Any, xr.DataArray]:
        return self._data.coords

    @property
    def sizes(self) -> Dict[str, int]:
        return {str(dim): int(size) for dim, size in self._data.sizes.items()}

    def is_empty(self) -> bool:
        return spatial.is_empty(self._data)

    def ensure_has_data(self) -> "GeoTemporalDataset":
        """Return self, or raise NoDataFoundError if the view holds no data."""
        if self.is_empty():
            raise NoDataFoundError(
                "Dataset selection contains no data points.",
                f"Dataset: {self._metadata.path}"
            )
        return self

    # ========================================================================
    # Spatial Selections
    # ========================================================================

    def point(
        self,
        latitude: float,
        longitude: float,
        options: Optional[PointOptions] = None,
    ) -> "GeoTemporalDataset":
        """Nearest (or exact) grid cell at a location. See ``spatial.point``."""
        return self._derive(spatial.point(self._data, latitude, longitude, options))

    def points(
        self,
        latitudes: Sequence[float],
        longitudes: Sequence[float],
        **kwargs,
    ) -> "GeoTemporalDataset":
        """Several locations along a new ``point`` dimension. See ``spatial.points``."""
        return self._derive(spatial.points(self._data, latitudes, longitudes, **kwargs))

    def circle(
        self,
        center_lat: float,
        center_lon: float,
        radius_km: float,
        latitude_key: Optional[str] = None,
        longitude_key: Optional[str] = None,
    ) -> "GeoTemporalDataset":
        return self._derive(spatial.circle(
            self._data, center_lat, center_lon, radius_km, latitude_key, longitude_key
        ))

    def rectangle(
        self,
        min_lat: float,
        min_lon: float,
        max_lat: float,
        max_lon: float,
        latitude_key: Optional[str] = None,
        longitude_key: Optional[str] = None,
    ) -> "GeoTemporalDataset":
        return self._derive(spatial.rectangle(
            self._data, min_lat, min_lon, max_lat, max_lon, latitude_key, longitude_key
        ))

    # ========================================================================
    # Temporal Selection
    # ========================================================================

    def time_range(self, time_range: TimeRange, dimension: str = TIME_DIM) -> "GeoTemporalDataset":
        """
        Select an inclusive time window.

        The time coordinate is ``dimension`` when present, else the first of
        time/t/date/datetime. Endpoints are coerced to the coordinate's type
        and swapped when reversed.

        Raises:
            InvalidSelectionError: No time coordinate, or endpoints not coercible
            NoDataFoundError: Nothing inside the window
        """
        time_dim = find_time_dimension(list(self._data.coords), dimension)
        if time_dim is None:
            raise InvalidSelectionError(
                f'Time dimension "{dimension}" not found',
                f"Available coordinates: {', '.join(str(c) for c in self._data.coords)}"
            )

        try:
            start, end = normalize_time_range(time_range, self._data[time_dim].values)
        except TypeError as e:
            raise InvalidSelectionError("Invalid time range", str(e)) from e

        subset = self._data.sel({time_dim: slice(start, end)})
        if spatial.is_empty(subset):
            raise NoDataFoundError(
                f"No data between {start} and {end}",
                f"Dimension: {time_dim}"
            )
        return self._derive(subset)

    # ========================================================================
    # Combined Selection
    # ========================================================================

    def select(self, selection: GeoSelection) -> "GeoTemporalDataset":
        """
        Apply a point selection, then a time range.

        When the time range fails after a point selection succeeded, the
        point-only view is returned and the failure is logged at INFO. A
        time range on its own, and any point failure, raise as usual.
        """
        if not selection.has_selection:
            return self

        view = self
        if selection.point is not None:
            view = view.point(
                selection.point.latitude,
                selection.point.longitude,
                selection.point.options,
            )

        if selection.time_range is None:
            return view

        try:
            return view.time_range(selection.time_range)
        except (InvalidSelectionError, NoDataFoundError) as e:
            if selection.point is None:
                raise
            logger.info(
                "Time range selection failed on %s, returning point selection only: %s",
                self._metadata.path, e.message
            )
            return view

    # ========================================================================
    # Export
    # ========================================================================

    def to_records(self, var_name: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Flatten to one dict per cell, coordinates included.

        Args:
            var_name: Restrict to one data variable

        Raises:
            InvalidSelectionError: Unknown ``var_name``
        """
        if var_name is None:
            frame = self._data.to_dataframe()
        else:
            if var_name not in self._data.data_vars:
                raise InvalidSelectionError(
                    f'Variable "{var_name}" not found',
                    f"Available variables: {', '.join(self.variables)}"
                )
            frame = self._data[var_name].to_dataframe()
        return frame.reset_index().to_dict(orient="records")

    def to_dict(self) -> Dict[str, Any]:
        return self._data.to_dict()
