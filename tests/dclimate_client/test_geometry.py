import numpy as np
import pytest

from dclimate_client.utils.geometry import haversine, haversine_grid, in_bbox, nearest_value


def test_haversine_one_degree_of_longitude_at_equator():
    assert haversine(0, 0, 0, 1) == pytest.approx(111.195, rel=1e-4)


def test_haversine_same_point_is_zero():
    assert haversine(40.7128, -74.006, 40.7128, -74.006) == pytest.approx(0.0, abs=1e-9)


def test_haversine_known_city_pair():
    # New York -> London is roughly 5570 km on a 6371 km sphere
    distance = haversine(40.7128, -74.0060, 51.5074, -0.1278)
    assert 5550 < distance < 5590


def test_haversine_sequences_wrap_shorter_inputs():
    distances = haversine(0, 0, [0, 0, 0], [1, 2])
    assert len(distances) == 3
    assert distances[1] == pytest.approx(2 * distances[0], rel=1e-6)
    # third pair wraps to lon2[0]
    assert distances[2] == pytest.approx(distances[0])


def test_haversine_empty_sequence_returns_empty_list():
    assert haversine([], 0, 0, 0) == []


def test_haversine_grid_matches_pairwise():
    lats = [40.0, 40.5, 41.0]
    lons = [-74.0, -73.5]
    grid = haversine_grid(40.2, -73.8, lats, lons)

    assert grid.shape == (3, 2)
    for i, lat in enumerate(lats):
        for j, lon in enumerate(lons):
            assert grid[i, j] == pytest.approx(haversine(40.2, -73.8, lat, lon), rel=1e-9)


def test_in_bbox_is_inclusive():
    assert in_bbox(40.0, -75.0, 40.0, -75.0, 41.0, -73.0)
    assert in_bbox(41.0, -73.0, 40.0, -75.0, 41.0, -73.0)
    assert not in_bbox(41.0001, -74.0, 40.0, -75.0, 41.0, -73.0)


def test_nearest_value_prefers_first_on_tie():
    assert nearest_value([1.0, 2.0, 3.0], 2.4) == 2.0
    assert nearest_value(np.array([1.0, 3.0]), 2.0) == 1.0


def test_nearest_value_empty_raises():
    with pytest.raises(ValueError):
        nearest_value([], 1.0)
