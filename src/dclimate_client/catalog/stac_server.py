"""
dClimate Client STAC Server Lookup

Fast CID resolution through the STAC server search API, which avoids
walking the IPFS-hosted catalog. Search responses are parsed as a
``pystac.ItemCollection``; a malformed payload is a ValueError. The
resolver treats every failure here as a miss and moves on to the full
catalog.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

import httpx
import pystac

from ..core.config import (
    DEFAULT_STAC_SERVER_URL,
    ITEM_ID_SEPARATOR,
    STAC_SEARCH_LIMIT,
    VARIANT_PREFERENCE,
)
from ..core.core_types import ResolutionMethod, ResolvedSource, build_path
from ..core.exceptions import DatasetNotFoundError, VariantNotFoundError
from .http import fetch_json
from .schema import data_asset_cid, item_variant, read_stac

logger = logging.getLogger('dclimate_client.catalog.stac_server')


async def search_collection(
    client: httpx.AsyncClient,
    collection: str,
    server_url: str = DEFAULT_STAC_SERVER_URL,
    cancel_event: Optional[asyncio.Event] = None,
) -> List[pystac.Item]:
    """POST ``/search`` for one collection and return its items."""
    body = {"limit": STAC_SEARCH_LIMIT, "collections": [collection]}
    payload = await fetch_json(
        client, f"{server_url.rstrip('/')}/search", "POST",
        json=body, cancel_event=cancel_event,
    )
    return list(read_stac(pystac.ItemCollection, payload, "STAC search response"))


def matching_features(
    features: List[pystac.Item],
    collection: str,
    dataset: str,
) -> List[pystac.Item]:
    """Items whose id is ``{collection}-{dataset}`` or starts with it followed by a variant."""
    prefix = f"{collection}{ITEM_ID_SEPARATOR}{dataset}"
    matches = []
    for feature in features:
        item_id = feature.id if isinstance(feature.id, str) else ""
        if item_id == prefix or item_id.startswith(prefix + ITEM_ID_SEPARATOR):
            matches.append(feature)
    return matches


def select_feature(
    matches: List[pystac.Item],
    collection: str,
    dataset: str,
    variant: Optional[str] = None,
) -> Tuple[pystac.Item, str]:
    """
    Pick the item for ``variant``, or by preference when not given.

    Preference: default, final, finalized, latest, then the first match.

    Raises:
        DatasetNotFoundError: No matches
        VariantNotFoundError: ``variant`` given but absent
    """
    path = build_path(collection, dataset)
    if not matches:
        raise DatasetNotFoundError(f"No items found for {collection}/{dataset}")

    by_variant: Dict[str, pystac.Item] = {}
    for feature in matches:
        by_variant.setdefault(item_variant(feature, collection) or "", feature)

    if variant:
        if variant not in by_variant:
            raise VariantNotFoundError(variant, path, list(by_variant))
        return by_variant[variant], variant

    for preferred in VARIANT_PREFERENCE:
        if preferred in by_variant:
            return by_variant[preferred], preferred

    first = matches[0]
    return first, item_variant(first, collection) or ""


def feature_cid(feature: pystac.Item) -> str:
    cid = data_asset_cid(feature)
    if not cid:
        raise DatasetNotFoundError(f"Item '{feature.id}' has no data asset")
    return cid


async def resolve_from_stac_server(
    client: httpx.AsyncClient,
    collection: str,
    dataset: str,
    variant: Optional[str] = None,
    server_url: str = DEFAULT_STAC_SERVER_URL,
    cancel_event: Optional[asyncio.Event] = None,
) -> ResolvedSource:
    """
    Resolve a dataset CID via the STAC server.

    The search API does not report which organization publishes a
    collection, so the result carries none.

    Args:
        client: Shared async HTTP client
        collection: Canonical collection id (e.g. "era5")
        dataset: Canonical dataset name (e.g. "2m_temperature")
        variant: Canonical variant, chosen by preference when omitted
        server_url: STAC server base URL
        cancel_event: Aborts the search when set

    Returns:
        ResolvedSource: Result tagged ``fast_path``

    Raises:
        httpx.HTTPError, ValueError: Transport, status or parse failure
        DatasetNotFoundError: No matching item or variant
        ResolutionCancelledError: ``cancel_event`` was set
    """
    features = await search_collection(client, collection, server_url, cancel_event)
    matches = matching_features(features, collection, dataset)
    feature, resolved_variant = select_feature(matches, collection, dataset, variant)
    cid = feature_cid(feature)

    logger.debug(
        "STAC server resolved %s/%s/%s -> %s", collection, dataset, resolved_variant, cid
    )
    return ResolvedSource(
        cid=cid,
        collection=collection,
        dataset=dataset,
        variant=resolved_variant,
        method=ResolutionMethod.FAST_PATH,
        path=build_path(collection, dataset, resolved_variant),
    )
