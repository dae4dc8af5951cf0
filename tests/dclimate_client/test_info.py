import pandas as pd
import pytest

from dclimate_client.core.core_types import (
    CatalogCollectionEntry,
    CatalogDatasetEntry,
    DatasetVariantConfig,
)
from dclimate_client.core.exceptions import InvalidSelectionError
from dclimate_client.utils.info import (
    catalog_to_dataframe,
    get_coordinate_info,
    get_spatial_info,
    get_time_info,
    list_catalog_paths,
)


@pytest.fixture
def listing():
    return [
        CatalogCollectionEntry(
            collection="era5",
            organization="ecmwf",
            datasets=[CatalogDatasetEntry("2m_temperature", [
                DatasetVariantConfig("finalized", "cid-a", 1, "time"),
                DatasetVariantConfig("non-finalized", "cid-b", 2),
            ])],
        ),
        CatalogCollectionEntry(
            collection="cpc",
            datasets=[CatalogDatasetEntry("precip_conus", [DatasetVariantConfig("default", "cid-c")])],
        ),
    ]


def test_coordinate_info(timeseries_dataset):
    info = get_coordinate_info(timeseries_dataset)

    assert info["latitude"]["min"] == 40.0
    assert info["latitude"]["max"] == 41.0
    assert info["time"]["size"] == 5
    assert info["time"]["min"] == pd.Timestamp("2024-01-01")
    assert info["time"]["max"] == pd.Timestamp("2024-01-05")


def test_spatial_info(grid_dataset):
    info = get_spatial_info(grid_dataset)

    assert (info["nlat"], info["nlon"]) == (3, 3)
    assert info["lat_range"] == (40.0, 41.0)
    assert info["dlat_mean"] == pytest.approx(0.5)
    assert info["dlon_mean"] == pytest.approx(0.5)


def test_time_info(timeseries_dataset, grid_dataset):
    info = get_time_info(timeseries_dataset)
    assert info["dimension"] == "time"
    assert info["count"] == 5
    assert info["end"] == pd.Timestamp("2024-01-05")

    with pytest.raises(InvalidSelectionError):
        get_time_info(grid_dataset)


def test_list_catalog_paths(listing):
    assert list_catalog_paths(listing) == [
        "era5-2m_temperature-finalized",
        "era5-2m_temperature-non-finalized",
        "cpc-precip_conus-default",
    ]


def test_catalog_to_dataframe(listing):
    frame = catalog_to_dataframe(listing)

    assert len(frame) == 3
    assert frame.loc[0, "organization"] == "ecmwf"
    assert frame.loc[2, "cid"] == "cid-c"
    assert catalog_to_dataframe([]).empty
