"""
dClimate Client STAC Catalog Loader

This module walks the IPFS-hosted STAC catalog through an HTTP gateway and
builds the typed tree defined in ``schema``:

    {gateway}/stac            -> {"cid": <root cid>}
    {gateway}/ipfs/<root cid> -> root Catalog
    child links               -> organization Catalogs or Collections
    item links                -> Items

Siblings at each level are fetched concurrently. A child document that
cannot be fetched or parsed is logged and skipped; only a failure to load
the root makes the catalog unavailable.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx
import pystac

from ..core.config import DEFAULT_IPFS_GATEWAY, IPFS_SCHEME, STAC_ROOT_PATH, gateway_ipfs_url
from ..core.exceptions import CatalogUnavailableError, ResolutionCancelledError
from .http import fetch_cid, fetch_json
from .schema import (
    CatalogOrganization,
    StacCatalog,
    StacCollection,
    StacItem,
    StacLink,
    document_type,
)

logger = logging.getLogger('dclimate_client.catalog.stac_loader')

# Errors that make a single child document unusable
_CHILD_ERRORS = (httpx.HTTPError, ValueError, TypeError, KeyError)


async def gather_children(aws) -> list:
    """
    Await sibling loads together.

    Every sibling runs to completion before an exception is re-raised, so
    none is left pending with an unretrieved error. A cancellation wins
    over other failures.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    errors = [r for r in results if isinstance(r, BaseException)]
    if errors:
        cancelled = [e for e in errors if isinstance(e, ResolutionCancelledError)]
        raise (cancelled or errors)[0]
    return results


def resolve_ipfs_uri(uri: str, gateway_url: str = DEFAULT_IPFS_GATEWAY) -> str:
    """Map ``ipfs://<cid>`` to its gateway URL; other URIs pass through."""
    if uri.startswith(IPFS_SCHEME):
        return gateway_ipfs_url(uri[len(IPFS_SCHEME):], gateway_url)
    return uri


class StacCatalogLoader:
    """
    Loads the full catalog tree from one gateway.

    Args:
        client: Shared async HTTP client
        gateway_url: IPFS HTTP gateway base URL
    """

    def __init__(self, client: httpx.AsyncClient, gateway_url: str = DEFAULT_IPFS_GATEWAY):
        self.client = client
        self.gateway_url = gateway_url.rstrip("/")

    async def fetch_root_cid(self, cancel_event: Optional[asyncio.Event] = None) -> str:
        """Look up the CID of the current root catalog."""
        url = f"{self.gateway_url}/{STAC_ROOT_PATH}"
        try:
            return await fetch_cid(self.client, url, cancel_event=cancel_event)
        except (httpx.HTTPError, ValueError) as e:
            raise CatalogUnavailableError(
                "Failed to fetch root catalog CID from STAC API", e
            ) from e

    async def load(
        self,
        root_cid: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> StacCatalog:
        """
        Load the whole tree.

        Args:
            root_cid: Specific catalog version; looked up when omitted
            cancel_event: Aborts every pending fetch when set

        Returns:
            StacCatalog: Root with organizations, collections and items attached

        Raises:
            CatalogUnavailableError: Root CID or root document unavailable, or
                a collection lists the same variant twice
            ResolutionCancelledError: ``cancel_event`` was set
        """
        cid = root_cid or await self.fetch_root_cid(cancel_event)
        logger.info("Loading STAC catalog %s from %s", cid, self.gateway_url)

        try:
            raw = await fetch_json(
                self.client, gateway_ipfs_url(cid, self.gateway_url), cancel_event=cancel_event
            )
            catalog = StacCatalog.from_dict(raw, root_cid=cid)
        except (httpx.HTTPError, ValueError) as e:
            raise CatalogUnavailableError(
                f"Failed to load STAC catalog from IPFS CID: {cid}", e
            ) from e

        children = await gather_children(
            [self._load_child(link, cancel_event) for link in catalog.child_links()]
        )
        for child in children:
            if isinstance(child, CatalogOrganization):
                catalog.organizations.append(child)
            elif isinstance(child, StacCollection):
                catalog.collections.append(child)

        for _, collection in catalog.iter_collections():
            try:
                collection.check_unique_variants()
            except ValueError as e:
                raise CatalogUnavailableError("Malformed STAC catalog", e) from e

        logger.info(
            "Loaded STAC catalog: %d organizations, %d collections",
            len(catalog.organizations), len(catalog.collection_ids())
        )
        return catalog

    # ------------------------------------------------------------------------
    # Children
    # ------------------------------------------------------------------------

    async def _fetch_document(self, link: StacLink, cancel_event) -> Any:
        return await fetch_json(
            self.client,
            resolve_ipfs_uri(link.href, self.gateway_url),
            cancel_event=cancel_event,
        )

    async def _load_child(self, link: StacLink, cancel_event):
        """Load a root child, which is either an organization or a collection."""
        try:
            raw = await self._fetch_document(link, cancel_event)
            kind = document_type(raw)
            if kind == pystac.STACObjectType.CATALOG:
                node = CatalogOrganization.from_dict(raw, link)
            elif kind == pystac.STACObjectType.COLLECTION:
                node = StacCollection.from_dict(raw, fallback_id=link.dclimate_id)
            else:
                raise ValueError(f"Expected a Catalog or Collection, got {kind}")
        except _CHILD_ERRORS as e:
            logger.warning("Failed to load catalog child %s: %s", link.href, e)
            return None

        if isinstance(node, CatalogOrganization):
            collections = await gather_children(
                [self._load_collection(child, cancel_event)
                 for child in node.links if child.rel == pystac.RelType.CHILD]
            )
            node.collections = [c for c in collections if c is not None]
            return node

        await self._attach_items(node, cancel_event)
        return node

    async def _load_collection(self, link: StacLink, cancel_event) -> Optional[StacCollection]:
        try:
            raw = await self._fetch_document(link, cancel_event)
            collection = StacCollection.from_dict(raw, fallback_id=link.dclimate_id)
        except _CHILD_ERRORS as e:
            logger.warning("Failed to load collection %s: %s", link.href, e)
            return None

        await self._attach_items(collection, cancel_event)
        return collection

    async def _attach_items(self, collection: StacCollection, cancel_event) -> None:
        items = await gather_children(
            [self._load_item(collection.id, link, cancel_event)
             for link in collection.item_links()]
        )
        collection.items = [item for item in items if item is not None]
        logger.debug("Collection %s: %d items", collection.id, len(collection.items))

    async def _load_item(self, collection_id: str, link: StacLink, cancel_event) -> Optional[StacItem]:
        try:
            raw = await self._fetch_document(link, cancel_event)
            item = StacItem.from_dict(raw, collection_id, link)
        except _CHILD_ERRORS as e:
            logger.warning("Failed to load item %s: %s", link.href, e)
            return None

        if item is None:
            logger.debug("Ignoring item outside collection %s: %s", collection_id, link.href)
        return item


async def load_stac_catalog(
    client: httpx.AsyncClient,
    gateway_url: str = DEFAULT_IPFS_GATEWAY,
    root_cid: Optional[str] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> StacCatalog:
    """Convenience wrapper around StacCatalogLoader.load()."""
    return await StacCatalogLoader(client, gateway_url).load(root_cid, cancel_event)
