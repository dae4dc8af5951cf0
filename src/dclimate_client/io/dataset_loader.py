"""
dClimate Client Dataset Loader

This module opens content-addressed Zarr stores through an IPFS HTTP gateway
as lazily loaded xarray datasets. It is the only place the package touches
the array store; everything else works on the returned ``xr.Dataset``.
"""

import asyncio
import logging
from typing import Callable, Optional

import fsspec
import httpx
import xarray as xr

from ..core.config import DEFAULT_IPFS_GATEWAY, gateway_ipfs_url
from ..core.core_types import VariantSource
from ..catalog.legacy import resolve_variant_source

logger = logging.getLogger('dclimate_client.io.dataset_loader')

# Attribute recording the CID a dataset was opened from
CID_ATTR = "_zarr_cid"

DatasetOpener = Callable[[str, str], xr.Dataset]

# ============================================================================
# Opening
# ============================================================================

def open_dataset_from_cid(
    cid: str,
    gateway_url: str = DEFAULT_IPFS_GATEWAY,
    consolidated: Optional[bool] = None,
) -> xr.Dataset:
    """
    Open the Zarr store behind ``cid``.

    Blocking; reads only metadata until data is accessed.

    Args:
        cid: Content identifier of the store root
        gateway_url: IPFS HTTP gateway base URL
        consolidated: Passed to ``xr.open_zarr``; None tries consolidated
            metadata first

    Returns:
        xr.Dataset: Lazy dataset with ``attrs["_zarr_cid"]`` set

    Raises:
        ValueError: If ``cid`` is empty

    Examples:
        >>> ds = open_dataset_from_cid("bafy...", "https://ipfs-gateway.dclimate.net")
    """
    if not cid:
        raise ValueError("A CID must be provided to load a dataset.")

    url = gateway_ipfs_url(cid, gateway_url)
    logger.info("Opening Zarr store %s", url)

    store = fsspec.get_mapper(url)
    dataset = xr.open_zarr(store, consolidated=consolidated, chunks=None)
    dataset.attrs.setdefault(CID_ATTR, cid)

    logger.debug(
        "Opened %s: dims=%s, variables=%s",
        cid, dict(dataset.sizes), list(dataset.data_vars)
    )
    return dataset


async def open_dataset_async(
    cid: str,
    gateway_url: str = DEFAULT_IPFS_GATEWAY,
    opener: DatasetOpener = open_dataset_from_cid,
) -> xr.Dataset:
    """Run a blocking opener in a worker thread."""
    return await asyncio.to_thread(opener, cid, gateway_url)


async def open_dataset_from_source(
    source: VariantSource,
    client: httpx.AsyncClient,
    gateway_url: str = DEFAULT_IPFS_GATEWAY,
    opener: DatasetOpener = open_dataset_from_cid,
    cancel_event: Optional[asyncio.Event] = None,
) -> xr.Dataset:
    """
    Open a dataset from a VariantSource.

    Endpoint sources are looked up first; CID sources open directly.
    """
    cid = await resolve_variant_source(source, client, cancel_event)
    return await open_dataset_async(cid, gateway_url, opener)
