import asyncio

import fsspec
import httpx
import pytest
import xarray as xr

from conftest import make_grid_dataset

from dclimate_client.core.core_types import CidSource, EndpointSource
from dclimate_client.io.dataset_loader import (
    CID_ATTR,
    open_dataset_async,
    open_dataset_from_cid,
    open_dataset_from_source,
)


@pytest.fixture
def fake_store(monkeypatch):
    calls = {}

    def fake_get_mapper(url):
        calls["url"] = url
        return {"store": url}

    def fake_open_zarr(store, **kwargs):
        calls["store"] = store
        calls["kwargs"] = kwargs
        return make_grid_dataset()

    monkeypatch.setattr(fsspec, "get_mapper", fake_get_mapper)
    monkeypatch.setattr(xr, "open_zarr", fake_open_zarr)
    return calls


def test_open_dataset_from_cid_builds_gateway_url(fake_store):
    ds = open_dataset_from_cid("bafy123", "https://gw.test/")

    assert fake_store["url"] == "https://gw.test/ipfs/bafy123"
    assert fake_store["store"] == {"store": "https://gw.test/ipfs/bafy123"}
    assert fake_store["kwargs"] == {"consolidated": None, "chunks": None}
    assert ds.attrs[CID_ATTR] == "bafy123"


def test_open_dataset_from_cid_requires_cid(fake_store):
    with pytest.raises(ValueError):
        open_dataset_from_cid("", "https://gw.test")
    assert "url" not in fake_store


def test_open_dataset_async_uses_given_opener():
    seen = []

    def opener(cid, gateway_url):
        seen.append((cid, gateway_url))
        return make_grid_dataset()

    ds = asyncio.run(open_dataset_async("bafy", "https://gw.test", opener))

    assert seen == [("bafy", "https://gw.test")]
    assert "temperature" in ds


def test_open_dataset_from_endpoint_source(fake_store):
    def handler(request):
        return httpx.Response(200, json={"cid": "bafy-from-endpoint"})

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await open_dataset_from_source(
                EndpointSource("https://api.test/fpar"), client, "https://gw.test"
            )

    ds = asyncio.run(scenario())

    assert fake_store["url"] == "https://gw.test/ipfs/bafy-from-endpoint"
    assert ds.attrs[CID_ATTR] == "bafy-from-endpoint"


def test_open_dataset_from_cid_source_makes_no_request(fake_store):
    def handler(request):
        raise AssertionError("no request expected")

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await open_dataset_from_source(CidSource("bafy-direct"), client, "https://gw.test")

    ds = asyncio.run(scenario())
    assert ds.attrs[CID_ATTR] == "bafy-direct"
