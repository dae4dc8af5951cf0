import numpy as np
import pytest
import xarray as xr

from conftest import GRID_LATS, GRID_LONS, make_grid_dataset

from dclimate_client.core.core_types import PointOptions
from dclimate_client.core.exceptions import InvalidSelectionError, NoDataFoundError
from dclimate_client.coordinates.spatial import circle, point, points, rectangle
from dclimate_client.utils.geometry import haversine, haversine_grid


def _is_empty_result(ds):
    return not ds.data_vars and not ds.sizes


# ============================================================================
# Rectangle
# ============================================================================

def test_rectangle_covering_grid_returns_all_nine_points(grid_dataset):
    subset = rectangle(grid_dataset, 40.0, -75.0, 41.0, -73.0)

    assert subset.sizes["latitude"] == 3
    assert subset.sizes["longitude"] == 3
    assert subset["temperature"].size == 9


def test_rectangle_bounds_are_inclusive(grid_dataset):
    subset = rectangle(grid_dataset, 40.5, -73.5, 41.0, -73.0)

    assert subset["latitude"].values.tolist() == [40.5, 41.0]
    assert subset["longitude"].values.tolist() == [-73.5, -73.0]
    assert subset["temperature"].values.tolist() == [[4.0, 5.0], [7.0, 8.0]]


@pytest.mark.parametrize("bounds", [
    (40.0, -75.0, 40.0, -73.0),   # min_lat == max_lat
    (40.0, -73.0, 41.0, -73.0),   # min_lon == max_lon
    (41.0, -75.0, 40.0, -73.0),   # inverted latitude
])
def test_rectangle_rejects_degenerate_bounds(grid_dataset, bounds):
    with pytest.raises(InvalidSelectionError):
        rectangle(grid_dataset, *bounds)


def test_rectangle_outside_grid_returns_empty_dataset(grid_dataset):
    assert _is_empty_result(rectangle(grid_dataset, 10.0, 10.0, 11.0, 11.0))


def test_rectangle_rejects_out_of_range_coordinates():
    ds = make_grid_dataset(lats=[40.0, 95.0])
    with pytest.raises(InvalidSelectionError, match="latitude"):
        rectangle(ds, 0.0, -75.0, 41.0, -73.0)


def test_rectangle_missing_axes_raises():
    ds = make_grid_dataset(lat_name="y", lon_name="x")
    with pytest.raises(InvalidSelectionError):
        rectangle(ds, 40.0, -75.0, 41.0, -73.0)
    subset = rectangle(ds, 40.0, -75.0, 41.0, -73.0, latitude_key="y", longitude_key="x")
    assert subset.sizes["y"] == 3


# ============================================================================
# Circle
# ============================================================================

def test_circle_far_away_returns_empty_dataset(grid_dataset):
    assert _is_empty_result(circle(grid_dataset, 50.0, -80.0, 1))


@pytest.mark.parametrize("radius", [0, -1, -0.5])
def test_circle_rejects_non_positive_radius(grid_dataset, radius):
    with pytest.raises(InvalidSelectionError):
        circle(grid_dataset, 40.5, -73.5, radius)


def test_circle_points_are_within_radius(grid_dataset):
    # 0.5 deg of longitude at 40.5N is ~42 km, 0.5 deg of latitude ~56 km
    subset = circle(grid_dataset, 40.5, -73.5, 50)

    assert subset["latitude"].values.tolist() == [40.5]
    assert subset["longitude"].values.tolist() == GRID_LONS

    values = subset["temperature"]
    for lat in subset["latitude"].values:
        for lon in subset["longitude"].values:
            if not np.isnan(values.sel(latitude=lat, longitude=lon)):
                assert haversine(40.5, -73.5, float(lat), float(lon)) <= 50 + 1e-9


def test_circle_includes_point_exactly_on_radius(grid_dataset):
    distances = haversine_grid(40.0, -74.0, np.array(GRID_LATS), np.array(GRID_LONS))
    radius = float(distances[1, 0])  # (40.5, -74.0)

    subset = circle(grid_dataset, 40.0, -74.0, radius)

    assert subset["latitude"].values.tolist() == [40.0, 40.5]
    assert subset["longitude"].values.tolist() == [-74.0, -73.5]
    assert float(subset["temperature"].sel(latitude=40.5, longitude=-74.0)) == 3.0
    assert np.isnan(float(subset["temperature"].sel(latitude=40.5, longitude=-73.5)))


def test_circle_keeps_extra_dimensions():
    ds = make_grid_dataset()
    ds = xr.concat([ds, ds + 100], dim="time").assign_coords(time=[0, 1])

    subset = circle(ds, 40.5, -73.5, 50)
    assert subset.sizes["time"] == 2
    assert subset.sizes["latitude"] == 1


# ============================================================================
# Point
# ============================================================================

def test_point_nearest_collapses_spatial_dims(grid_dataset):
    subset = point(grid_dataset, 40.1, -73.9)

    assert float(subset["latitude"]) == 40.0
    assert float(subset["longitude"]) == -74.0
    assert float(subset["temperature"]) == 0.0
    assert "latitude" not in subset.dims


def test_point_infers_axis_aliases():
    ds = make_grid_dataset(lat_name="lat", lon_name="lon")
    subset = point(ds, 41.0, -73.0)
    assert float(subset["temperature"]) == 8.0


def test_point_exact_miss_raises_no_data(grid_dataset):
    with pytest.raises(NoDataFoundError):
        point(grid_dataset, 40.1, -73.9, PointOptions(method="exact"))


def test_point_tolerance_miss_raises_no_data(grid_dataset):
    with pytest.raises(NoDataFoundError):
        point(grid_dataset, 40.2, -74.0, PointOptions(tolerance=0.01))


def test_point_without_geographic_axes_raises():
    ds = xr.Dataset({"v": (("a", "b"), np.zeros((2, 2)))}, coords={"a": [0, 1], "b": [0, 1]})
    with pytest.raises(InvalidSelectionError):
        point(ds, 0, 0)


def test_point_options_validate_method():
    with pytest.raises(ValueError):
        PointOptions(method="bilinear")


# ============================================================================
# Multiple points
# ============================================================================

def test_points_select_along_point_dimension(grid_dataset):
    subset = points(grid_dataset, [40.0, 41.0], [-74.0, -73.0])

    assert subset.sizes["point"] == 2
    assert subset["temperature"].values.tolist() == [0.0, 8.0]


def test_points_snap_to_nearest_cell(grid_dataset):
    subset = points(grid_dataset, [40.2], [-73.4])
    assert subset["temperature"].values.tolist() == [1.0]


def test_points_strict_mode_rejects_off_grid_points(grid_dataset):
    with pytest.raises(NoDataFoundError, match="snap_to_grid"):
        points(grid_dataset, [40.0, 40.2], [-74.0, -74.0], snap_to_grid=False)


def test_points_strict_mode_accepts_grid_points(grid_dataset):
    subset = points(grid_dataset, [40.5], [-73.5], snap_to_grid=False)
    assert subset["temperature"].values.tolist() == [4.0]


def test_points_length_mismatch_raises(grid_dataset):
    with pytest.raises(InvalidSelectionError):
        points(grid_dataset, [40.0, 41.0], [-74.0])
    with pytest.raises(InvalidSelectionError):
        points(grid_dataset, [], [])


def test_points_reject_other_crs(grid_dataset):
    with pytest.raises(InvalidSelectionError, match="EPSG:4326"):
        points(grid_dataset, [40.0], [-74.0], epsg_crs=3857)
