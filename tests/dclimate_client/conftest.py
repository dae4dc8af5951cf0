import json
from collections import Counter

import httpx
import numpy as np
import pandas as pd
import pytest
import xarray as xr


GATEWAY = "https://gateway.test"
STAC_SERVER = "https://stac.test"

GRID_LATS = [40.0, 40.5, 41.0]
GRID_LONS = [-74.0, -73.5, -73.0]


def make_grid_dataset(lats=GRID_LATS, lons=GRID_LONS, lat_name="latitude", lon_name="longitude"):
    """3x3 grid with one variable whose values are 0..8 in row-major order."""
    values = np.arange(len(lats) * len(lons), dtype=float).reshape(len(lats), len(lons))
    return xr.Dataset(
        {"temperature": ((lat_name, lon_name), values)},
        coords={lat_name: list(lats), lon_name: list(lons)},
    )


def make_timeseries_dataset(start="2024-01-01", periods=5, lats=GRID_LATS, lons=GRID_LONS,
                            time_name="time", offset=0.0):
    times = pd.date_range(start, periods=periods, freq="D")
    values = (np.arange(periods, dtype=float)[:, None, None]
              + np.zeros((periods, len(lats), len(lons)))
              + offset)
    return xr.Dataset(
        {"t2m": ((time_name, "latitude", "longitude"), values)},
        coords={time_name: times, "latitude": list(lats), "longitude": list(lons)},
    )


@pytest.fixture
def grid_dataset():
    return make_grid_dataset()


@pytest.fixture
def timeseries_dataset():
    return make_timeseries_dataset()


# ============================================================================
# Fake catalog network
# ============================================================================

STAC_VERSION = "1.0.0"

EXTENT = {
    "spatial": {"bbox": [[-180.0, -90.0, 180.0, 90.0]]},
    "temporal": {"interval": [["1950-01-01T00:00:00Z", None]]},
}


def stac_item(item_id, cid=None, properties=None):
    """Minimal valid STAC item; ``cid`` becomes the ``data`` asset."""
    assets = {"data": {"href": f"ipfs://{cid}"}} if cid else {}
    return {
        "type": "Feature",
        "stac_version": STAC_VERSION,
        "id": item_id,
        "properties": {"datetime": "2024-01-01T00:00:00Z", **(properties or {})},
        "geometry": None,
        "assets": assets,
        "links": [],
    }


def stac_catalog(catalog_id, links):
    return {
        "type": "Catalog",
        "stac_version": STAC_VERSION,
        "id": catalog_id,
        "description": f"{catalog_id} catalog",
        "links": links,
    }


def stac_collection(collection_id, links):
    return {
        "type": "Collection",
        "stac_version": STAC_VERSION,
        "id": collection_id,
        "description": f"{collection_id} collection",
        "license": "proprietary",
        "extent": EXTENT,
        "links": links,
    }


def search_payload(*features):
    return {"type": "FeatureCollection", "features": list(features)}


def catalog_documents():
    """
    Root -> ecmwf organization -> era5 collection, plus a cpc collection
    linked directly from the root.
    """
    ipfs = f"{GATEWAY}/ipfs"
    return {
        f"{GATEWAY}/stac": {"cid": "root-cid"},
        f"{ipfs}/root-cid": stac_catalog("dclimate", [
            {"rel": "self", "href": "ipfs://root-cid"},
            {
                "rel": "child",
                "href": "ipfs://org-ecmwf",
                "dclimate:id": "ecmwf",
                "dclimate:collections": ["era5"],
                "dclimate:datasets": ["era5-2m_temperature", "era5-total_precipitation"],
            },
            {"rel": "child", "href": "ipfs://coll-cpc"},
        ]),
        f"{ipfs}/org-ecmwf": stac_catalog(
            "ecmwf", [{"rel": "child", "href": "ipfs://coll-era5"}]
        ),
        f"{ipfs}/coll-era5": stac_collection("era5", [
            {"rel": "item", "href": "ipfs://item-t2m-finalized"},
            {
                "rel": "item",
                "href": "ipfs://item-t2m-non-finalized",
                "dclimate:id": "era5-2m_temperature-non-finalized",
                "dclimate:concatPriority": 2,
            },
            {"rel": "item", "href": "ipfs://item-precip-ensemble"},
            {"rel": "item", "href": "ipfs://item-precip-deterministic"},
        ]),
        f"{ipfs}/item-t2m-finalized": stac_item(
            "era5-2m_temperature-finalized", "cid-t2m-finalized",
            {"dclimate:concatPriority": 1, "dclimate:concatDimension": "time"},
        ),
        f"{ipfs}/item-t2m-non-finalized": stac_item(
            "era5-2m_temperature-non-finalized", "cid-t2m-non-finalized",
        ),
        f"{ipfs}/item-precip-ensemble": stac_item(
            "era5-total_precipitation-ensemble", "cid-precip-ensemble",
        ),
        f"{ipfs}/item-precip-deterministic": stac_item(
            "era5-total_precipitation-deterministic", "cid-precip-deterministic",
        ),
        f"{ipfs}/coll-cpc": stac_collection(
            "cpc", [{"rel": "item", "href": "ipfs://item-cpc-precip"}]
        ),
        f"{ipfs}/item-cpc-precip": stac_item("cpc-precip_conus", "cid-cpc-precip"),
    }


class FakeCatalogServer:
    """
    Serves JSON documents keyed by full URL. Values that are ints are sent
    as bare status codes. Every request is counted in ``calls``.
    """

    def __init__(self, documents=None, search_response=503):
        self.documents = catalog_documents() if documents is None else documents
        self.search_response = search_response
        self.calls = Counter()
        self.search_bodies = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls[url] += 1

        if request.method == "POST" and url == f"{STAC_SERVER}/search":
            self.search_bodies.append(json.loads(request.content))
            return self._respond(self.search_response)

        if url not in self.documents:
            return httpx.Response(404, json={"error": "not found"})
        return self._respond(self.documents[url])

    @staticmethod
    def _respond(payload):
        if isinstance(payload, int):
            return httpx.Response(payload)
        if isinstance(payload, str):
            return httpx.Response(200, text=payload)
        return httpx.Response(200, json=payload)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport())

    def count(self, url: str) -> int:
        return self.calls[url]

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())


@pytest.fixture
def catalog_server():
    return FakeCatalogServer()
